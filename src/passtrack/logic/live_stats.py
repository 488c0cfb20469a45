# src/passtrack/logic/live_stats.py

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ..data.models import Rally


@dataclass
class LiveStatEntry:
    """Laufende Zähler eines Spielers in der aktiven Session (nicht persistiert)."""
    pass_count: int = 0
    total_score: int = 0

    @property
    def average(self) -> float:
        if self.pass_count == 0:
            return 0.0
        return self.total_score / self.pass_count


class LiveStatCache:
    """
    Denormalisierte Zähler pro Spieler für schnellen Zugriff während einer Session.
    Wird ausschließlich über apply()/reverse() verändert, damit jeder Log-Schritt
    exakt umkehrbar bleibt.
    """

    def __init__(self):
        self._entries: Dict[str, LiveStatEntry] = {}

    def reset(self, player_ids: Iterable[str]):
        """Setzt die Zähler für die neue Session auf 0."""
        self._entries = {player_id: LiveStatEntry() for player_id in player_ids}

    def clear(self):
        self._entries = {}

    def apply(self, rally: "Rally"):
        entry = self._entries.setdefault(rally.player_id, LiveStatEntry())
        entry.pass_count += 1
        entry.total_score += rally.pass_score

    def reverse(self, rally: "Rally"):
        # KeyError, falls der Spieler nie erfasst wurde
        entry = self._entries[rally.player_id]
        entry.pass_count -= 1
        entry.total_score -= rally.pass_score

    def get(self, player_id: str) -> LiveStatEntry:
        return self._entries.get(player_id, LiveStatEntry())

    def snapshot(self) -> Dict[str, Tuple[int, int]]:
        """Kopie aller Zähler als {player_id: (pass_count, total_score)}."""
        return {pid: (e.pass_count, e.total_score) for pid, e in self._entries.items()}

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
