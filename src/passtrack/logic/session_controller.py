# src/passtrack/logic/session_controller.py

import datetime
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from . import aggregator
from .live_stats import LiveStatCache
from .undo import UndoController
from ..config import DEFAULT_SCORING_SYSTEM, OPTIONAL_FIELDS, ScoringSystem
from ..data.models import Player, Rally, Session, Team
from ..data.repository import SessionRepository
from ..exceptions import (
    InvalidFieldError, InvalidRosterError, InvalidScoreError, NotActiveError, PersistenceError,
)

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    NO_ACTIVE_SESSION = "no_active_session"
    ACTIVE = "active"


@dataclass
class LiveStatLine:
    """Live-Statistik eines Spielers (oder des Teams) in der aktiven Session."""
    player_id: Optional[str]
    pass_count: int
    average: float
    good_pass_percentage: float


class SessionController:
    """
    Verwaltet den Zustand der aktuellen Session (Start, Pass erfassen, Undo,
    Abschluss). Es gibt höchstens eine aktive Session pro Controller; die
    Übergangsmethoden sind die einzige Stelle, an der sich der Zustand ändert.
    """

    def __init__(self, repository: SessionRepository,
                 scoring_system: ScoringSystem = DEFAULT_SCORING_SYSTEM,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        self.repository = repository
        self.scoring_system = scoring_system
        self._clock = clock
        self._current_session: Optional[Session] = None
        self._live_stats = LiveStatCache()
        self._undo = UndoController()
        # Zähler für Beobachter: ändert sich bei jeder Zustandsänderung
        self._version = 0

    # --- ZUSTAND ---

    @property
    def current_session(self) -> Optional[Session]:
        return self._current_session

    @property
    def state(self) -> SessionState:
        if self._current_session is None:
            return SessionState.NO_ACTIVE_SESSION
        return SessionState.ACTIVE

    @property
    def is_active(self) -> bool:
        return self._current_session is not None

    @property
    def version(self) -> int:
        return self._version

    @property
    def live_stats_cache(self) -> LiveStatCache:
        return self._live_stats

    def _require_active(self) -> Session:
        if self._current_session is None:
            raise NotActiveError("Keine aktive Session.")
        return self._current_session

    def _bump(self):
        self._version += 1

    # --- SESSION-VERWALTUNG ---

    def start(self, team: Team, passer_ids: Sequence[str],
              enabled_fields: Optional[Mapping[str, bool]] = None,
              threshold: Optional[float] = None) -> Session:
        """
        Startet eine neue Session. Eine noch laufende Session wird vorher
        automatisch abgeschlossen und gespeichert.
        """
        passer_ids = tuple(passer_ids)
        if not passer_ids:
            raise InvalidRosterError("Mindestens ein Passgeber muss ausgewählt sein.")
        unknown = [pid for pid in passer_ids if team.find_player(pid) is None]
        if unknown:
            raise InvalidRosterError(f"Spieler nicht im Team '{team.name}': {unknown}")
        if len(set(passer_ids)) != len(passer_ids):
            raise InvalidRosterError("Passgeber doppelt ausgewählt.")

        fields = dict(enabled_fields or {})
        unknown_fields = set(fields) - set(OPTIONAL_FIELDS)
        if unknown_fields:
            raise InvalidFieldError(f"Unbekannte Datenfelder: {sorted(unknown_fields)}")

        if self._current_session is not None:
            logger.info("Laufende Session %s wird vor dem Neustart abgeschlossen.",
                        self._current_session.session_id)
            self.complete()

        session = Session(
            team_id=team.team_id,
            team_name=team.name,
            passer_ids=passer_ids,
            start_time=self._clock(),
            track_zone=fields.get('zone', False),
            track_contact_type=fields.get('contactType', False),
            track_contact_location=fields.get('contactLocation', False),
            track_serve_type=fields.get('serveType', False),
            good_pass_threshold=team.default_threshold if threshold is None else threshold,
        )

        self._current_session = session
        self._live_stats.reset(passer_ids)
        self._bump()

        logger.info("Session %s für Team '%s' gestartet (%d Passgeber).",
                    session.session_id, team.name, len(passer_ids))
        return session

    def log_pass(self, player_id: str, score: int,
                 zone: Optional[str] = None,
                 contact_type: Optional[str] = None,
                 contact_location: Optional[str] = None,
                 serve_type: Optional[str] = None) -> Rally:
        """Erfasst einen Pass; Protokoll und Live-Zähler werden gemeinsam aktualisiert."""
        session = self._require_active()

        if isinstance(score, bool) or not isinstance(score, int) or not self.scoring_system.contains(score):
            raise InvalidScoreError(
                f"Wertung {score!r} außerhalb von {self.scoring_system.label} "
                f"({self.scoring_system.min_score}..{self.scoring_system.max_score})."
            )
        if player_id not in session.passer_ids:
            raise InvalidRosterError(f"Spieler {player_id} gehört nicht zu dieser Session.")

        # Nicht aktivierte Felder werden nicht gespeichert
        rally = Rally(
            player_id=player_id,
            rally_number=len(session.rallies) + 1,
            pass_score=score,
            zone=zone if session.track_zone else None,
            contact_type=contact_type if session.track_contact_type else None,
            contact_location=contact_location if session.track_contact_location else None,
            serve_type=serve_type if session.track_serve_type else None,
            timestamp=self._clock(),
        )

        session.rallies.append(rally)
        self._live_stats.apply(rally)
        self._bump()

        logger.debug("Rally %d: Spieler %s, Wertung %d", rally.rally_number, player_id, score)
        return rally

    def undo_last(self) -> Rally:
        """Macht den letzten Pass rückgängig. Leeres Protokoll -> EmptyLogError."""
        session = self._require_active()
        rally = self._undo.undo_last(session, self._live_stats)
        self._bump()
        return rally

    def complete(self) -> Optional[Session]:
        """
        Schließt die aktive Session ab und übergibt sie an die Speicherschicht.
        Ohne aktive Session passiert nichts.
        """
        session = self._current_session
        if session is None:
            logger.debug("complete() ohne aktive Session ignoriert.")
            return None

        open_rallies = session.rallies
        session.end_time = self._clock()
        session.rallies = tuple(open_rallies)
        try:
            self.repository.save(session)
        except PersistenceError:
            # Session bleibt aktiv, damit der Aufrufer erneut speichern kann
            session.end_time = None
            session.rallies = open_rallies
            logger.error("Session %s konnte nicht gespeichert werden.", session.session_id)
            raise

        self._current_session = None
        self._live_stats.clear()
        self._bump()

        logger.info("Session %s beendet: %d Pässe, Schnitt %.2f, Dauer %s.",
                    session.session_id, session.rally_count,
                    session.team_average, session.duration_formatted)
        return session

    # --- LIVE-STATISTIK ---

    def live_stats(self, player_id: str) -> LiveStatLine:
        """Zähler und Schnitt aus dem Cache, Gut-Quote aus dem Protokoll."""
        session = self._require_active()
        entry = self._live_stats.get(player_id)
        return LiveStatLine(
            player_id=player_id,
            pass_count=entry.pass_count,
            average=entry.average,
            good_pass_percentage=aggregator.favorable_percentage(
                session.rallies_for(player_id), session.good_pass_threshold),
        )

    def team_live_stats(self) -> LiveStatLine:
        session = self._require_active()
        return LiveStatLine(
            player_id=None,
            pass_count=session.rally_count,
            average=session.team_average,
            good_pass_percentage=session.good_pass_percentage,
        )

    def live_leaderboard(self) -> List[LiveStatLine]:
        """Alle Passgeber der Session, bester Schnitt zuerst."""
        session = self._require_active()
        lines = [self.live_stats(pid) for pid in session.passer_ids]
        return sorted(lines, key=lambda line: line.average, reverse=True)

    def live_distribution(self) -> Dict[int, int]:
        session = self._require_active()
        return aggregator.distribution(session.rallies, self.scoring_system.scores())

    def event_log(self) -> Tuple[Rally, ...]:
        return self._require_active().event_log()

    # --- AUFLÖSUNG FÜR REPORTS ---

    def get_passers(self, session: Session) -> List[Player]:
        """Spieler des Teams, die in der Session als Passgeber ausgewählt waren."""
        team = self.repository.fetch_team(session.team_id)
        if team is None:
            logger.warning("Team %s für Session %s nicht gefunden.", session.team_id, session.session_id)
            return []
        passer_ids = set(session.passer_ids)
        return [player for player in team.players if player.player_id in passer_ids]
