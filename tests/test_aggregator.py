import random

import pytest

from passtrack.config import FOUR_POINT, SIX_POINT
from passtrack.data.models import Rally
from passtrack.logic import aggregator


def _rallies(scores, player_id="A", **tags):
    return [Rally(player_id=player_id, rally_number=i + 1, pass_score=s, **tags)
            for i, s in enumerate(scores)]


def test_empty_sequence_uses_zero_convention():
    assert aggregator.count([]) == 0
    assert aggregator.mean([]) == 0.0
    assert aggregator.favorable_percentage([], 2) == 0.0
    assert aggregator.distribution([]) == {}


def test_mean_and_favorable_percentage():
    rallies = _rallies([3, 2, 1])
    assert aggregator.mean(rallies) == pytest.approx(2.0)
    assert aggregator.favorable_percentage(rallies, 2) == pytest.approx(200 / 3)
    assert aggregator.favorable_percentage(rallies, 2.5) == pytest.approx(100 / 3)


def test_results_do_not_depend_on_order():
    rallies = _rallies([0, 3, 3, 1, 2, 2, 3])
    shuffled = list(reversed(rallies))
    assert aggregator.mean(rallies) == aggregator.mean(shuffled)
    assert aggregator.favorable_percentage(rallies, 2) == aggregator.favorable_percentage(shuffled, 2)
    assert aggregator.distribution(rallies) == aggregator.distribution(shuffled)


def test_mean_lies_between_min_and_max():
    rng = random.Random(7)
    for _ in range(200):
        scores = [rng.randint(-1, 4) for _ in range(rng.randint(1, 25))]
        value = aggregator.mean(_rallies(scores))
        assert min(scores) <= value <= max(scores)


def test_favorable_percentage_does_not_increase_with_threshold():
    rng = random.Random(11)
    for _ in range(100):
        rallies = _rallies([rng.randint(0, 3) for _ in range(rng.randint(0, 20))])
        values = [aggregator.favorable_percentage(rallies, t) for t in (-1, 0, 0.5, 1, 2, 2.5, 3, 4)]
        assert values == sorted(values, reverse=True)
        assert all(0.0 <= v <= 100.0 for v in values)


def test_distribution_reports_only_present_scores_without_enumeration():
    assert aggregator.distribution(_rallies([3, 3, 0])) == {0: 1, 3: 2}


def test_distribution_zero_fills_enumerated_range():
    dist = aggregator.distribution(_rallies([3, 3, 0]), FOUR_POINT.scores())
    assert dist == {0: 1, 1: 0, 2: 0, 3: 2}
    assert list(dist) == [0, 1, 2, 3]

    assert aggregator.distribution([], SIX_POINT.scores()) == {-1: 0, 0: 0, 1: 0, 2: 0, 3: 0, 4: 0}


def test_group_by_keeps_unset_bucket_until_excluded():
    rallies = _rallies([3, 2], zone="1") + _rallies([1], zone="6") + _rallies([0])
    groups = aggregator.group_by(rallies, lambda r: r.zone)

    assert set(groups) == {"1", "6", aggregator.UNSET}
    assert [r.pass_score for r in groups[aggregator.UNSET]] == [0]

    recorded = aggregator.recorded_only(groups)
    assert set(recorded) == {"1", "6"}
    assert sum(len(v) for v in recorded.values()) == 3


def test_chronological_sorts_by_rally_number():
    rallies = _rallies([1, 2, 3])
    assert aggregator.chronological(reversed(rallies)) == rallies


def test_summarize_bundles_all_metrics():
    stats = aggregator.summarize(_rallies([3, 1]), threshold=2, scores=FOUR_POINT.scores())
    assert stats.count == 2
    assert stats.average == pytest.approx(2.0)
    assert stats.good_pass_percentage == pytest.approx(50.0)
    assert stats.distribution == {0: 0, 1: 1, 2: 0, 3: 1}
