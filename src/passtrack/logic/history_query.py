# src/passtrack/logic/history_query.py
"""
Auswertung abgeschlossener Sessions: Filtern, Sortieren, Spielervergleich,
Trends und Aufschlüsselungen nach Zone/Kontakt.

Alle Kennzahlen werden aus den gespeicherten Rallies neu berechnet; die
Live-Zähler einer laufenden Session spielen hier keine Rolle.
"""

import datetime
import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from . import aggregator
from .aggregator import RallyStats
from ..config import (
    COMPARISON_MAX_PLAYERS, COMPARISON_MIN_PLAYERS, DATE_WINDOW_DAYS,
    DEFAULT_GOOD_PASS_THRESHOLD, DEFAULT_SCORING_SYSTEM, OPTIONAL_FIELDS,
    TREND_SESSION_LIMIT, ScoringSystem,
)
from ..data.models import Rally, Session
from ..data.repository import SessionRepository
from ..exceptions import InvalidQueryError

logger = logging.getLogger(__name__)


class DateWindow(enum.Enum):
    TODAY = "today"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"
    LAST_90_DAYS = "last_90_days"
    CUSTOM = "custom"
    ALL_TIME = "all_time"


class SortOption(enum.Enum):
    DATE_NEWEST = "date_newest"
    DATE_OLDEST = "date_oldest"
    AVERAGE_HIGHEST = "average_highest"
    AVERAGE_LOWEST = "average_lowest"
    PASSES_MOST = "passes_most"
    PASSES_LEAST = "passes_least"


# Sortierspalte und Richtung je Option
_SORT_COLUMNS = {
    SortOption.DATE_NEWEST: ("start_time", False),
    SortOption.DATE_OLDEST: ("start_time", True),
    SortOption.AVERAGE_HIGHEST: ("average", False),
    SortOption.AVERAGE_LOWEST: ("average", True),
    SortOption.PASSES_MOST: ("rally_count", False),
    SortOption.PASSES_LEAST: ("rally_count", True),
}


def resolve_window(window: DateWindow, now: datetime.datetime,
                   custom_start: Optional[datetime.datetime] = None,
                   custom_end: Optional[datetime.datetime] = None
                   ) -> Optional[Tuple[Optional[datetime.datetime], Optional[datetime.datetime]]]:
    """
    Liefert (von, bis) inklusive für ein Zeitfenster, None für 'Gesamter Zeitraum'.
    Beim eigenen Zeitraum darf eine Grenze fehlen (offen).
    """
    if window is DateWindow.ALL_TIME:
        return None
    if window is DateWindow.CUSTOM:
        if custom_start and custom_end and custom_start > custom_end:
            raise InvalidQueryError("Startdatum liegt nach dem Enddatum.")
        return custom_start, custom_end
    if window is DateWindow.TODAY:
        return datetime.datetime.combine(now.date(), datetime.time.min), now
    return now - datetime.timedelta(days=DATE_WINDOW_DAYS[window.value]), now


@dataclass
class SessionFilter:
    """Filter- und Sortierparameter für die Sessionliste."""
    search_text: str = ""
    team_id: Optional[str] = None
    player_id: Optional[str] = None
    min_average: Optional[float] = None
    max_average: Optional[float] = None
    min_passes: int = 0
    date_window: DateWindow = DateWindow.ALL_TIME
    custom_start: Optional[datetime.datetime] = None
    custom_end: Optional[datetime.datetime] = None
    sort_by: SortOption = SortOption.DATE_NEWEST

    def has_active_filters(self) -> bool:
        return (bool(self.search_text.strip())
                or self.team_id is not None
                or self.player_id is not None
                or self.min_average is not None
                or self.max_average is not None
                or self.min_passes > 0
                or self.date_window is not DateWindow.ALL_TIME
                or self.sort_by is not SortOption.DATE_NEWEST)


@dataclass
class PlayerComparison:
    player_id: str
    stats: RallyStats


@dataclass
class PlayerOverallStats:
    player_id: str
    total_passes: int = 0
    average: float = 0.0
    good_pass_percentage: float = 0.0
    perfect_pass_percentage: float = 0.0
    sessions_played: int = 0


@dataclass
class SessionTrendPoint:
    session_id: str
    date: datetime.datetime
    average: float
    pass_count: int


@dataclass
class CategoryStats:
    category: str
    count: int
    average: float
    good_pass_percentage: float


@dataclass
class TeamSummary:
    team_id: str
    session_count: int = 0
    average: float = 0.0
    total_passes: int = 0
    last_session: Optional[datetime.datetime] = None


@dataclass
class SessionPlayerStats:
    player_id: str
    stats: RallyStats = field(default_factory=RallyStats)


def max_value(comparisons: Sequence[PlayerComparison], metric: Callable[[RallyStats], float]) -> float:
    """Größter Wert einer Kennzahl über alle Vergleichsergebnisse (0.0 wenn leer)."""
    return max((metric(c.stats) for c in comparisons), default=0.0)


class HistoryQueryEngine:
    """Auswertungen über abgeschlossene Sessions."""

    def __init__(self, repository: SessionRepository,
                 scoring_system: ScoringSystem = DEFAULT_SCORING_SYSTEM,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        self.repository = repository
        self.scoring_system = scoring_system
        self._clock = clock

    def completed_sessions(self) -> List[Session]:
        return self.repository.fetch_where(lambda s: s.end_time is not None)

    def _sessions(self, sessions: Optional[Sequence[Session]]) -> List[Session]:
        return list(sessions) if sessions is not None else self.completed_sessions()

    # --- SESSIONLISTE ---

    @staticmethod
    def sessions_frame(sessions: Sequence[Session]) -> pd.DataFrame:
        """Eine Zeile pro Session mit den abgeleiteten Kennzahlen."""
        return pd.DataFrame({
            'position': np.arange(len(sessions)),
            'session_id': [s.session_id for s in sessions],
            'team_id': [s.team_id for s in sessions],
            'team_name': pd.Series([s.team_name for s in sessions], dtype=object),
            'start_time': pd.Series([s.start_time for s in sessions], dtype=object),
            'rally_count': np.array([s.rally_count for s in sessions], dtype=np.int64),
            'average': np.array([s.team_average for s in sessions], dtype=float),
        })

    def filter_sessions(self, session_filter: SessionFilter,
                        sessions: Optional[Sequence[Session]] = None) -> List[Session]:
        """
        Wendet alle aktiven Filter (UND-verknüpft) an und sortiert stabil.
        Ein leeres Ergebnis ist gültig.
        """
        sessions = self._sessions(sessions)
        if not sessions:
            return []

        df = self.sessions_frame(sessions)
        mask = pd.Series(True, index=df.index)

        text = session_filter.search_text.strip()
        if text:
            mask &= df['team_name'].str.contains(text, case=False, regex=False)

        if session_filter.team_id is not None:
            mask &= df['team_id'] == session_filter.team_id

        if session_filter.player_id is not None:
            mask &= pd.Series([session_filter.player_id in s.passer_ids for s in sessions], index=df.index)

        low = -np.inf if session_filter.min_average is None else session_filter.min_average
        high = np.inf if session_filter.max_average is None else session_filter.max_average
        mask &= df['average'].between(low, high, inclusive="both")

        if session_filter.min_passes > 0:
            mask &= df['rally_count'] >= session_filter.min_passes

        bounds = resolve_window(session_filter.date_window, self._clock(),
                                session_filter.custom_start, session_filter.custom_end)
        if bounds is not None:
            start, end = bounds
            in_window = [
                (start is None or s.start_time >= start) and (end is None or s.start_time <= end)
                for s in sessions
            ]
            mask &= pd.Series(in_window, index=df.index)

        df = df[mask]

        column, ascending = _SORT_COLUMNS[session_filter.sort_by]
        if column == 'start_time':
            # naive Wandzeit, ohne Umweg über die lokale Zeitzone (mergesort = stabil)
            keys = pd.to_datetime(df['start_time'])
            order = keys.sort_values(ascending=ascending, kind="mergesort").index
            df = df.loc[order]
        else:
            df = df.sort_values(column, ascending=ascending, kind="mergesort")

        logger.debug("Sessionfilter: %d von %d Sessions.", len(df), len(sessions))
        return [sessions[int(pos)] for pos in df['position']]

    def _in_window(self, sessions: Iterable[Session], window: DateWindow,
                   custom_start: Optional[datetime.datetime],
                   custom_end: Optional[datetime.datetime],
                   team_id: Optional[str]) -> List[Session]:
        return self.filter_sessions(
            SessionFilter(team_id=team_id, date_window=window,
                          custom_start=custom_start, custom_end=custom_end),
            sessions=list(sessions),
        )

    def team_summary(self, team_id: str,
                     sessions: Optional[Sequence[Session]] = None) -> TeamSummary:
        """
        Überblick für ein Team. Der Schnitt ist der Mittelwert der
        Session-Schnitte, ungewichtet nach Anzahl der Pässe.
        """
        team_sessions = self.filter_sessions(SessionFilter(team_id=team_id),
                                             sessions=self._sessions(sessions))
        if not team_sessions:
            return TeamSummary(team_id=team_id)

        df = self.sessions_frame(team_sessions)
        return TeamSummary(
            team_id=team_id,
            session_count=len(df),
            average=float(df['average'].mean()),
            total_passes=int(df['rally_count'].sum()),
            last_session=team_sessions[0].start_time,
        )

    # --- SPIELERVERGLEICH ---

    def compare_players(self, player_ids: Sequence[str],
                        date_window: DateWindow = DateWindow.ALL_TIME,
                        team_id: Optional[str] = None,
                        threshold: float = DEFAULT_GOOD_PASS_THRESHOLD,
                        custom_start: Optional[datetime.datetime] = None,
                        custom_end: Optional[datetime.datetime] = None,
                        sessions: Optional[Sequence[Session]] = None) -> List[PlayerComparison]:
        """
        Kennzahlen für 2-4 Spieler, jeweils unabhängig berechnet. Spieler ohne
        Pässe im Zeitraum erscheinen mit Nullwerten. Keine Normierung zwischen
        den Spielern (dafür max_value()).
        """
        player_ids = list(player_ids)
        if len(set(player_ids)) != len(player_ids):
            raise InvalidQueryError("Spieler doppelt im Vergleich.")
        if not COMPARISON_MIN_PLAYERS <= len(player_ids) <= COMPARISON_MAX_PLAYERS:
            raise InvalidQueryError(
                f"Vergleich benötigt {COMPARISON_MIN_PLAYERS}-{COMPARISON_MAX_PLAYERS} Spieler, "
                f"erhalten: {len(player_ids)}."
            )

        window_sessions = self._in_window(self._sessions(sessions), date_window,
                                          custom_start, custom_end, team_id)
        scores = self.scoring_system.scores()

        results = []
        for player_id in player_ids:
            rallies = [r for s in window_sessions for r in s.rallies_for(player_id)]
            results.append(PlayerComparison(
                player_id=player_id,
                stats=aggregator.summarize(rallies, threshold, scores),
            ))
        return results

    # --- SPIELERDETAILS ---

    def player_overall_stats(self, player_id: str, team_id: Optional[str] = None,
                             threshold: float = DEFAULT_GOOD_PASS_THRESHOLD,
                             sessions: Optional[Sequence[Session]] = None) -> PlayerOverallStats:
        sessions = self._sessions(sessions)
        if team_id is not None:
            sessions = [s for s in sessions if s.team_id == team_id]

        per_session = [(s, s.rallies_for(player_id)) for s in sessions]
        rallies = [r for _, session_rallies in per_session for r in session_rallies]
        if not rallies:
            return PlayerOverallStats(player_id=player_id)

        perfect = [r for r in rallies if r.pass_score == self.scoring_system.max_score]
        return PlayerOverallStats(
            player_id=player_id,
            total_passes=len(rallies),
            average=aggregator.mean(rallies),
            good_pass_percentage=aggregator.favorable_percentage(rallies, threshold),
            perfect_pass_percentage=100.0 * len(perfect) / len(rallies),
            sessions_played=sum(1 for _, session_rallies in per_session if session_rallies),
        )

    def player_session_trend(self, player_id: str, team_id: Optional[str] = None,
                             limit: int = TREND_SESSION_LIMIT,
                             sessions: Optional[Sequence[Session]] = None) -> List[SessionTrendPoint]:
        """
        Schnitt des Spielers in den letzten 'limit' Sessions, chronologisch.
        Sessions ohne Pässe des Spielers werden übersprungen.
        """
        recent = self.filter_sessions(SessionFilter(team_id=team_id, sort_by=SortOption.DATE_NEWEST),
                                      sessions=self._sessions(sessions))[:limit]
        points = []
        for session in reversed(recent):
            rallies = session.rallies_for(player_id)
            if not rallies:
                continue
            points.append(SessionTrendPoint(
                session_id=session.session_id,
                date=session.start_time,
                average=aggregator.mean(rallies),
                pass_count=len(rallies),
            ))
        return points

    # --- AUFSCHLÜSSELUNG ---

    def breakdown(self, rallies: Sequence[Rally], field_name: str,
                  categories: Optional[Iterable[str]] = None,
                  threshold: float = DEFAULT_GOOD_PASS_THRESHOLD) -> List[CategoryStats]:
        """
        Kennzahlen pro Kategorie eines optionalen Feldes (z.B. 'zone').
        Rallies ohne erfassten Wert zählen nicht mit. Mit 'categories' werden
        auch Kategorien ohne Pässe (mit Nullwerten) ausgegeben.
        """
        attribute = OPTIONAL_FIELDS.get(field_name, field_name)
        if attribute not in OPTIONAL_FIELDS.values():
            raise InvalidQueryError(f"Unbekanntes Feld für Aufschlüsselung: {field_name}")

        groups = aggregator.recorded_only(
            aggregator.group_by(rallies, lambda r: getattr(r, attribute)))

        if categories is None:
            keys = sorted(groups)
        else:
            keys = list(categories)
            known = set(keys)
            keys += sorted(k for k in groups if k not in known)

        return [
            CategoryStats(
                category=key,
                count=aggregator.count(groups.get(key, [])),
                average=aggregator.mean(groups.get(key, [])),
                good_pass_percentage=aggregator.favorable_percentage(groups.get(key, []), threshold),
            )
            for key in keys
        ]

    def breakdown_frame(self, rallies: Sequence[Rally], field_name: str) -> pd.DataFrame:
        """Wie breakdown(), aber als DataFrame (Kategorie, Anzahl, Schnitt) für Exporte."""
        rows = self.breakdown(rallies, field_name)
        return pd.DataFrame(
            [(row.category, row.count, round(row.average, 2), round(row.good_pass_percentage, 1))
             for row in rows],
            columns=['Kategorie', 'Anzahl', 'Schnitt', 'Gut_Prozent'],
        )

    def session_player_stats(self, session: Session) -> List[SessionPlayerStats]:
        """Statistik pro Passgeber einer Session, bester Schnitt zuerst."""
        scores = self.scoring_system.scores()
        stats = [
            SessionPlayerStats(
                player_id=player_id,
                stats=aggregator.summarize(session.rallies_for(player_id),
                                           session.good_pass_threshold, scores),
            )
            for player_id in session.passer_ids
        ]
        return sorted(stats, key=lambda s: s.stats.average, reverse=True)
