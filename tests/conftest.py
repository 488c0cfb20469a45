import datetime

import pytest

from passtrack.data.models import Player, Rally, Session, Team
from passtrack.data.repository import InMemorySessionRepository
from passtrack.logic.session_controller import SessionController

NOW = datetime.datetime(2026, 3, 10, 12, 0, 0)


class StepClock:
    """Liefert bei jedem Aufruf eine Sekunde später."""

    def __init__(self, start=NOW):
        self.current = start

    def __call__(self):
        value = self.current
        self.current += datetime.timedelta(seconds=1)
        return value


@pytest.fixture
def team():
    return Team(
        name="Demo Varsity Team",
        players=[
            Player(name="Tyler", number=4, position="Libero", player_id="A"),
            Player(name="Sam", number=2, position="OH", player_id="B"),
            Player(name="Max", number=10, position="DS", player_id="C"),
            Player(name="Rat", number=5, position="MB", is_active=False, player_id="D"),
        ],
    )


@pytest.fixture
def repository(team):
    repo = InMemorySessionRepository()
    repo.save_team(team)
    return repo


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def controller(repository, clock):
    return SessionController(repository, clock=clock)


@pytest.fixture
def make_session(team):
    """Baut eine abgeschlossene Session aus [(player_id, score), ...]."""

    def _make(passes, start_time=NOW, team_name=None, team_id=None, passer_ids=None,
              threshold=2.0, **tags):
        rallies = tuple(
            Rally(player_id=pid, rally_number=i + 1, pass_score=score,
                  timestamp=start_time + datetime.timedelta(seconds=i))
            for i, (pid, score) in enumerate(passes)
        )
        if passer_ids is None:
            passer_ids = tuple(dict.fromkeys(pid for pid, _ in passes)) or ("A",)
        return Session(
            team_id=team_id or team.team_id,
            team_name=team_name or team.name,
            passer_ids=passer_ids,
            start_time=start_time,
            end_time=start_time + datetime.timedelta(minutes=30),
            rallies=rallies,
            good_pass_threshold=threshold,
            **tags,
        )

    return _make
