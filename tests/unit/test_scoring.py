"""Tests for domain.scoring composite driver score."""

from dataclasses import replace

import pytest

from domain.models import DriverStats
from domain.scoring import compute_score, quality_score, volume_weight


def _stats(**kwargs):
    defaults = dict(
        name="Jean Dupont",
        total_tasks=10,
        completed_tasks=10,
        total_ratings=5,
        average_rating=4.4,
        punctuality_rate=90.0,
        scanbac_rate=100.0,
        forced_address_rate=0.0,
        forced_contactless_rate=0.0,
    )
    defaults.update(kwargs)
    return DriverStats(**defaults)


class TestComputeScore:
    """Tests for compute_score."""

    def test_reference_driver(self):
        # quality (88*3 + 90*2 + 100 + 100 + 100) / 8 = 93, volume 10/50
        assert compute_score(_stats()) == pytest.approx(18.6)

    def test_no_completed_task_scores_zero(self):
        assert compute_score(_stats(completed_tasks=0)) == 0.0

    def test_no_rating_scores_zero(self):
        assert compute_score(_stats(total_ratings=0, average_rating=None)) == 0.0

    def test_volume_caps_at_fifty(self):
        at_cap = compute_score(_stats(completed_tasks=50))
        above_cap = compute_score(_stats(completed_tasks=500))
        assert at_cap == pytest.approx(93.0)
        assert above_cap == pytest.approx(at_cap)

    def test_peer_maximum_does_not_change_score(self):
        assert compute_score(_stats(), max_completed_tasks=400) == pytest.approx(18.6)

    def test_perfect_driver_is_bounded(self):
        perfect = _stats(
            completed_tasks=80,
            average_rating=5.0,
            punctuality_rate=100.0,
        )
        assert compute_score(perfect) == pytest.approx(100.0)

    def test_null_rates_count_as_zero(self):
        stats = _stats(
            completed_tasks=50,
            average_rating=5.0,
            punctuality_rate=None,
            scanbac_rate=None,
            forced_address_rate=None,
            forced_contactless_rate=None,
        )
        # (300 + 0 + 0 + 100 + 100) / 8
        assert compute_score(stats) == pytest.approx(62.5)

    @pytest.mark.parametrize(
        "field, better, worse",
        [
            ("average_rating", 4.8, 3.0),
            ("punctuality_rate", 95.0, 60.0),
            ("scanbac_rate", 100.0, 40.0),
            ("forced_address_rate", 0.0, 30.0),
            ("forced_contactless_rate", 5.0, 50.0),
            ("completed_tasks", 40, 10),
        ],
    )
    def test_monotonic(self, field, better, worse):
        base = _stats()
        assert compute_score(replace(base, **{field: better})) > compute_score(
            replace(base, **{field: worse})
        )

    def test_score_within_bounds(self):
        worst = _stats(
            average_rating=0.0,
            punctuality_rate=0.0,
            scanbac_rate=0.0,
            forced_address_rate=100.0,
            forced_contactless_rate=100.0,
        )
        assert compute_score(worst) == 0.0


class TestQualityScore:
    def test_weights(self):
        assert quality_score(_stats()) == pytest.approx(93.0)


class TestVolumeWeight:
    @pytest.mark.parametrize(
        "completed, expected",
        [(0, 0.0), (1, 0.02), (25, 0.5), (50, 1.0), (75, 1.0), (-3, 0.0)],
    )
    def test_ramp(self, completed, expected):
        assert volume_weight(completed) == pytest.approx(expected)
