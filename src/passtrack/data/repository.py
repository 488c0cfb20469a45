# src/passtrack/data/repository.py

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from .models import Session, Team

SessionPredicate = Callable[[Session], bool]


class SessionRepository(ABC):
    """
    Speicherschnittstelle, die Session-Steuerung und Auswertung benötigen.
    Fehler der Implementierung werden als PersistenceError gemeldet.
    """

    @abstractmethod
    def save(self, session: Session) -> None:
        """Speichert (oder ersetzt) eine Session inklusive aller Rallies."""

    @abstractmethod
    def fetch_all(self) -> List[Session]:
        """Alle Sessions, neueste zuerst."""

    def fetch_where(self, predicate: SessionPredicate) -> List[Session]:
        return [s for s in self.fetch_all() if predicate(s)]

    @abstractmethod
    def delete(self, session: Session) -> None:
        """Löscht die Session samt ihrer Rallies."""

    @abstractmethod
    def save_team(self, team: Team) -> None:
        """Speichert ein Team mit seinen Spielern."""

    @abstractmethod
    def fetch_team(self, team_id: str) -> Optional[Team]:
        """Team per ID oder None."""


class InMemorySessionRepository(SessionRepository):
    """Einfache Implementierung im Arbeitsspeicher (Tests, Einbettung)."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._teams: Dict[str, Team] = {}

    def save(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    def fetch_all(self) -> List[Session]:
        # sorted() ist stabil: gleiche Startzeit behält die Einfügereihenfolge
        return sorted(self._sessions.values(), key=lambda s: s.start_time, reverse=True)

    def delete(self, session: Session) -> None:
        self._sessions.pop(session.session_id, None)

    def save_team(self, team: Team) -> None:
        self._teams[team.team_id] = team

    def fetch_team(self, team_id: str) -> Optional[Team]:
        return self._teams.get(team_id)
