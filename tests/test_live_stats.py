import pytest

from passtrack.data.models import Rally, Session
from passtrack.exceptions import EmptyLogError
from passtrack.logic.live_stats import LiveStatCache, LiveStatEntry
from passtrack.logic.undo import UndoController


def test_apply_and_reverse_are_symmetric():
    cache = LiveStatCache()
    cache.reset(["A", "B"])
    before = cache.snapshot()

    rally = Rally(player_id="A", rally_number=1, pass_score=3)
    cache.apply(rally)
    assert cache.get("A").pass_count == 1
    assert cache.get("A").average == 3.0

    cache.reverse(rally)
    assert cache.snapshot() == before


def test_reset_zeroes_previous_counts():
    cache = LiveStatCache()
    cache.reset(["A"])
    cache.apply(Rally(player_id="A", rally_number=1, pass_score=2))
    cache.reset(["A", "C"])
    assert cache.snapshot() == {"A": (0, 0), "C": (0, 0)}
    assert "C" in cache
    assert len(cache) == 2


def test_unknown_player_reads_as_empty_entry():
    cache = LiveStatCache()
    assert cache.get("nobody") == LiveStatEntry()
    assert cache.get("nobody").average == 0.0
    with pytest.raises(KeyError):
        cache.reverse(Rally(player_id="nobody", rally_number=1, pass_score=1))


def test_undo_controller_removes_last_rally_only():
    session = Session(team_id="t", team_name="Team", passer_ids=("A", "B"))
    cache = LiveStatCache()
    cache.reset(session.passer_ids)
    for number, (pid, score) in enumerate([("A", 3), ("B", 1)], start=1):
        rally = Rally(player_id=pid, rally_number=number, pass_score=score)
        session.rallies.append(rally)
        cache.apply(rally)

    removed = UndoController().undo_last(session, cache)

    assert removed.player_id == "B"
    assert [r.rally_number for r in session.rallies] == [1]
    assert cache.snapshot() == {"A": (1, 3), "B": (0, 0)}


def test_undo_controller_on_empty_session():
    session = Session(team_id="t", team_name="Team", passer_ids=("A",))
    with pytest.raises(EmptyLogError):
        UndoController().undo_last(session, LiveStatCache())
