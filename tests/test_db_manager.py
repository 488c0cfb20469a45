import datetime

import pytest

from passtrack.data.db_manager import DBManager
from passtrack.exceptions import PersistenceError
from passtrack.logic.history_query import HistoryQueryEngine, SessionFilter, SortOption
from passtrack.logic.session_controller import SessionController


@pytest.fixture
def db(tmp_path):
    manager = DBManager(db_path=str(tmp_path / "db" / "passtrack.db"))
    manager.setup_database()
    return manager


def test_completed_session_is_stored_with_rallies(db, team, clock):
    db.save_team(team)
    controller = SessionController(db, clock=clock)
    controller.start(team, ["A", "B"], enabled_fields={"zone": True, "contactLocation": True})
    controller.log_pass("A", 3, zone="1", contact_location="High-Left")
    controller.log_pass("B", 0, zone="5")
    session = controller.complete()

    [loaded] = db.fetch_all()
    assert loaded.session_id == session.session_id
    assert loaded.passer_ids == ("A", "B")
    assert loaded.end_time == session.end_time
    assert loaded.track_zone and loaded.track_contact_location
    assert not loaded.track_contact_type
    assert isinstance(loaded.rallies, tuple)
    assert list(loaded.rallies) == list(session.rallies)
    assert loaded.team_average == pytest.approx(1.5)


def test_fetch_all_orders_newest_first(db, make_session):
    now = datetime.datetime(2026, 3, 10, 12, 0)
    for days in (3, 1, 2):
        db.save(make_session([("A", 1)], start_time=now - datetime.timedelta(days=days)))
    starts = [s.start_time for s in db.fetch_all()]
    assert starts == sorted(starts, reverse=True)


def test_saving_again_replaces_rallies(db, make_session):
    session = make_session([("A", 1), ("A", 2)])
    db.save(session)
    session.rallies = session.rallies[:1]
    db.save(session)
    [loaded] = db.fetch_all()
    assert loaded.rally_count == 1


def test_delete_removes_session_and_rallies(db, make_session):
    keep = make_session([("A", 3)])
    drop = make_session([("A", 1), ("B", 2)])
    db.save(keep)
    db.save(drop)

    db.delete(drop)

    assert [s.session_id for s in db.fetch_all()] == [keep.session_id]
    rows = db.execute_query_fetch_all("SELECT COUNT(*) FROM rallies WHERE session_id = ?", (drop.session_id,))
    assert rows == [(0,)]


def test_team_round_trip_keeps_roster_order(db, team):
    db.save_team(team)
    loaded = db.fetch_team(team.team_id)
    assert [p.player_id for p in loaded.players] == ["A", "B", "C", "D"]
    assert [p.name for p in loaded.active_players] == ["Tyler", "Sam", "Max"]
    assert loaded.default_threshold == team.default_threshold
    assert db.fetch_team("missing") is None


def test_query_engine_reads_from_database(db, make_session):
    now = datetime.datetime(2026, 3, 10, 12, 0)
    for score, days in ((1, 3), (2, 2), (3, 1)):
        db.save(make_session([("A", score)], start_time=now - datetime.timedelta(days=days)))

    engine = HistoryQueryEngine(db, clock=lambda: now)
    result = engine.filter_sessions(SessionFilter(min_average=1.5, sort_by=SortOption.AVERAGE_HIGHEST))
    assert [s.team_average for s in result] == [3.0, 2.0]


def test_storage_failure_raises_persistence_error(tmp_path):
    # Verzeichnis statt Datei
    manager = DBManager(db_path=str(tmp_path))
    with pytest.raises(PersistenceError):
        manager.setup_database()
