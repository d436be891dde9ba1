"""
Unit tests for the memory model: tiered decay, review intervals and
outcome deltas.
"""

from datetime import datetime, timedelta, timezone

import pytest

from neuro_review.review import memory_model
from neuro_review.review.memory_model import (
    NEVER_REVIEWED_BASE,
    decay,
    due_date,
    end_of_today,
    hours_overdue,
    is_due,
    is_due_this_week,
    is_due_today,
    strength_delta,
    strength_tier,
)


class TestTiers:
    """Tier lookup is half-open: a bound belongs to the stronger tier."""

    @pytest.mark.parametrize(
        "strength,tier",
        [(0, 0), (19.9, 0), (20, 1), (39.9, 1), (40, 2), (60, 3), (75, 4), (89.9, 4), (90, 5), (100, 5)],
    )
    def test_strength_tier(self, strength, tier):
        assert strength_tier(strength) == tier

    def test_weaker_memories_decay_faster(self):
        rates = [memory_model.decay_rate(s) for s in (10, 30, 50, 70, 80, 95)]
        assert rates == [5.0, 2.0, 1.0, 0.5, 0.2, 0.1]

    def test_weaker_memories_reviewed_sooner(self):
        hours = [memory_model.review_interval_hours(s) for s in (10, 30, 50, 70, 80, 95)]
        assert hours == [1, 24, 48, 96, 168, 336]


class TestDecay:
    """Tests for read-time strength decay."""

    def test_weak_concept_after_thirty_hours(self, now):
        """strength 10 at 5/day over 1.25 days loses 6.25."""
        result = decay(10.0, now - timedelta(hours=30), now)

        assert result == pytest.approx(3.75)

    def test_floors_at_zero(self, now):
        assert decay(10.0, now - timedelta(days=30), now) == 0.0

    def test_never_reviewed_is_unchanged(self, now):
        assert decay(42.0, None, now) == 42.0

    def test_zero_elapsed_is_unchanged(self, now):
        assert decay(80.0, now, now) == 80.0

    def test_future_last_reviewed_counts_as_zero_elapsed(self, now):
        assert decay(80.0, now + timedelta(hours=5), now) == 80.0

    def test_is_monotonic_in_time(self, now):
        last = now - timedelta(days=1)
        values = [decay(65.0, last, now + timedelta(days=d)) for d in range(0, 30, 3)]

        assert values == sorted(values, reverse=True)
        assert all(v >= 0 for v in values)

    def test_is_idempotent(self, now):
        last = now - timedelta(hours=17)
        assert decay(55.0, last, now) == decay(55.0, last, now)

    def test_rate_comes_from_pre_decay_tier(self, now):
        """strength 41 over 2 days uses the 1/day tier even though it ends below 40."""
        assert decay(41.0, now - timedelta(days=2), now) == pytest.approx(39.0)


class TestDueDate:
    """Tests for due-date computation and due flags."""

    def test_due_after_tier_interval(self, now):
        last = now - timedelta(hours=48)

        assert due_date(50.0, last) == now
        assert is_due(due_date(50.0, last), now)

    def test_not_due_before_interval(self, now):
        last = now - timedelta(hours=10)
        due = due_date(95.0, last)

        assert due == last + timedelta(hours=336)
        assert not is_due(due, now)

    def test_never_reviewed_anchored_at_epoch(self, now):
        due = due_date(100.0, None)

        assert due == NEVER_REVIEWED_BASE + timedelta(hours=336)
        assert is_due(due, now)

    def test_deterministic(self):
        last = datetime(2025, 1, 1, 8, 30, tzinfo=timezone.utc)
        assert due_date(33.0, last) == due_date(33.0, last)

    def test_end_of_today_is_next_midnight(self, now):
        assert end_of_today(now) == datetime(2025, 6, 16, tzinfo=timezone.utc)

    def test_due_today_but_not_yet_due(self, now):
        due = now + timedelta(hours=6)

        assert not is_due(due, now)
        assert is_due_today(due, now)
        assert is_due_this_week(due, now)

    def test_due_this_week_but_not_today(self, now):
        due = now + timedelta(days=3)

        assert not is_due_today(due, now)
        assert is_due_this_week(due, now)

    def test_beyond_this_week(self, now):
        assert not is_due_this_week(now + timedelta(days=8), now)

    def test_hours_overdue(self, now):
        assert hours_overdue(now - timedelta(hours=5), now) == pytest.approx(5.0)
        assert hours_overdue(now + timedelta(hours=5), now) == 0.0


class TestStrengthDelta:
    """Tests for outcome-driven strength adjustments."""

    @pytest.mark.parametrize(
        "score,expected",
        [(100, 30), (95, 30), (94.9, 25), (90, 25), (89, 20), (50, 20), (0, 20)],
    )
    def test_pass(self, score, expected):
        assert strength_delta(score, True) == expected

    @pytest.mark.parametrize(
        "score,expected",
        [(100, -5), (60, -5), (59, -10), (40, -10), (39, -15), (35, -15), (0, -15)],
    )
    def test_fail(self, score, expected):
        assert strength_delta(score, False) == expected

    def test_pass_never_negative_fail_never_positive(self):
        for score in range(0, 101, 5):
            assert strength_delta(score, True) > 0
            assert strength_delta(score, False) < 0

    def test_out_of_range_scores_are_clamped(self):
        assert strength_delta(150, True) == 30
        assert strength_delta(-20, False) == -15
