# src/passtrack/logic/aggregator.py
"""
Zustandslose Statistikfunktionen über beliebige Folgen von Rallies.

Leere Eingaben liefern 0 bzw. 0.0, niemals einen Fehler. Die Ergebnisse hängen
nicht von der Reihenfolge der Eingabe ab; wer eine chronologische Reihenfolge
braucht, sortiert vorher mit chronological().
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TYPE_CHECKING
import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from ..data.models import Rally

# Reservierter Schlüssel für Rallies ohne Wert im gruppierten Feld
UNSET = None


@dataclass
class RallyStats:
    """Kennzahlen für eine Menge von Rallies."""
    count: int = 0
    average: float = 0.0
    good_pass_percentage: float = 0.0
    distribution: Dict[int, int] = field(default_factory=dict)


def _scores(rallies: Iterable["Rally"]) -> np.ndarray:
    return np.fromiter((r.pass_score for r in rallies), dtype=np.int64)


def count(rallies: Sequence["Rally"]) -> int:
    return len(rallies)


def mean(rallies: Sequence["Rally"]) -> float:
    scores = _scores(rallies)
    if scores.size == 0:
        return 0.0
    # Ganzzahlige Summe, damit das Ergebnis unabhängig von der Reihenfolge ist
    return int(scores.sum()) / scores.size


def favorable_percentage(rallies: Sequence["Rally"], threshold: float) -> float:
    """Anteil (0-100) der Pässe mit Bewertung >= threshold."""
    scores = _scores(rallies)
    if scores.size == 0:
        return 0.0
    good = int(np.count_nonzero(scores >= threshold))
    return 100.0 * good / scores.size


def distribution(rallies: Sequence["Rally"], scores: Optional[Iterable[int]] = None) -> Dict[int, int]:
    """
    Anzahl Pässe pro Bewertung, aufsteigend nach Bewertung.
    Nur mit 'scores' (vollständige Aufzählung des Bewertungssystems) werden
    auch Bewertungen ohne Vorkommen mit 0 ausgegeben.
    """
    counts = pd.Series(_scores(rallies), dtype="int64").value_counts()
    if scores is not None:
        counts = counts.reindex(sorted(set(scores) | set(counts.index)), fill_value=0)
    counts = counts.sort_index()
    return {int(score): int(n) for score, n in counts.items()}


def group_by(rallies: Iterable["Rally"], key_fn: Callable[["Rally"], Optional[str]]) -> Dict[Optional[str], List["Rally"]]:
    """Gruppiert Rallies nach key_fn; Rallies ohne Wert landen unter UNSET."""
    groups: Dict[Optional[str], List["Rally"]] = {}
    for rally in rallies:
        groups.setdefault(key_fn(rally), []).append(rally)
    return groups


def recorded_only(groups: Dict[Optional[str], List["Rally"]]) -> Dict[str, List["Rally"]]:
    """Entfernt den UNSET-Eimer (für Nenner 'nur erfasste Werte')."""
    return {key: value for key, value in groups.items() if key is not UNSET}


def chronological(rallies: Iterable["Rally"]) -> List["Rally"]:
    return sorted(rallies, key=lambda r: (r.rally_number, r.timestamp))


def summarize(rallies: Sequence["Rally"], threshold: float, scores: Optional[Iterable[int]] = None) -> RallyStats:
    return RallyStats(
        count=count(rallies),
        average=mean(rallies),
        good_pass_percentage=favorable_percentage(rallies, threshold),
        distribution=distribution(rallies, scores),
    )
