# src/passtrack/data/models.py

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Sequence, Tuple
import datetime
import uuid

from ..config import DEFAULT_GOOD_PASS_THRESHOLD, OPTIONAL_FIELDS
from ..logic import aggregator


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Player:
    """Definiert einen einzelnen Spieler (Passgeber)."""
    name: str
    number: int
    player_id: str = field(default_factory=new_id)
    position: Optional[str] = None
    is_active: bool = True


@dataclass
class Team:
    """Definiert ein Team mit seinen Spielern."""
    name: str
    team_id: str = field(default_factory=new_id)
    created_at: datetime.datetime = field(default_factory=datetime.datetime.now)
    players: List[Player] = field(default_factory=list)
    default_threshold: float = DEFAULT_GOOD_PASS_THRESHOLD
    venue_type: str = 'indoor'

    @property
    def active_players(self) -> List[Player]:
        return [p for p in self.players if p.is_active]

    @property
    def player_count(self) -> int:
        return len(self.players)

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None


@dataclass(frozen=True)
class Rally:
    """
    Ein einzelner bewerteter Pass innerhalb einer Session.
    Nach dem Anlegen unveränderlich; gelöscht wird nur per Undo oder mit der Session.
    """
    player_id: str
    rally_number: int
    pass_score: int

    # Optionale Detailangaben (nur wenn in der Session aktiviert)
    zone: Optional[str] = None
    contact_type: Optional[str] = None
    contact_location: Optional[str] = None
    serve_type: Optional[str] = None

    timestamp: datetime.datetime = field(default_factory=datetime.datetime.now)
    rally_id: str = field(default_factory=new_id)


@dataclass
class Session:
    """
    Definiert eine Trainings-/Spieleinheit. Die Session besitzt ihre Rallies,
    alle Statistiken werden bei Bedarf daraus berechnet.
    """
    team_id: str
    team_name: str
    passer_ids: Tuple[str, ...]
    start_time: datetime.datetime = field(default_factory=datetime.datetime.now)
    end_time: Optional[datetime.datetime] = None
    rallies: Sequence[Rally] = field(default_factory=list)

    track_zone: bool = False
    track_contact_type: bool = False
    track_contact_location: bool = False
    track_serve_type: bool = False
    good_pass_threshold: float = DEFAULT_GOOD_PASS_THRESHOLD

    session_id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.passer_ids = tuple(self.passer_ids)

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def rally_count(self) -> int:
        return aggregator.count(self.rallies)

    @property
    def team_average(self) -> float:
        return aggregator.mean(self.rallies)

    @property
    def good_pass_percentage(self) -> float:
        return aggregator.favorable_percentage(self.rallies, self.good_pass_threshold)

    @property
    def duration(self) -> float:
        """Dauer in Sekunden; bei laufender Session bis jetzt."""
        end = self.end_time or datetime.datetime.now()
        return (end - self.start_time).total_seconds()

    @property
    def duration_formatted(self) -> str:
        seconds = int(self.duration)
        return f"{seconds // 60:02d}:{seconds % 60:02d}"

    @property
    def enabled_fields(self) -> Dict[str, bool]:
        flags = (self.track_zone, self.track_contact_type,
                 self.track_contact_location, self.track_serve_type)
        return dict(zip(OPTIONAL_FIELDS, flags))

    def rallies_for(self, player_id: str) -> List[Rally]:
        return [r for r in self.rallies if r.player_id == player_id]

    def event_log(self) -> Tuple[Rally, ...]:
        """Schreibgeschützte Momentaufnahme aller Rallies (für Export/Reports)."""
        return tuple(self.rallies)
