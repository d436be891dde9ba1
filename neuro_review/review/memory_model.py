"""
Memory Model - Strength Decay and Review Intervals.

Pure, stateless functions over a 0-100 memory strength:
1. decay() - Read-time projection of forgetting since the last review
2. due_date() - When a concept should be reviewed, by strength tier
3. strength_delta() - Signed adjustment for an evaluation outcome

Weaker memories decay faster and are reviewed sooner (Ebbinghaus-style
tiering). Rewards are larger than penalties so a single failed review
cannot collapse a concept to zero.
"""

from __future__ import annotations

from bisect import bisect_right
from datetime import datetime, time, timedelta, timezone
from typing import Optional


# =============================================================================
# TIER TABLES
# =============================================================================

MIN_STRENGTH = 0.0
MAX_STRENGTH = 100.0

# Lower bounds of each strength tier; tier i covers [bounds[i-1], bounds[i])
STRENGTH_TIER_BOUNDS = (20.0, 40.0, 60.0, 75.0, 90.0)

# Strength units lost per day, weakest tier first
DECAY_RATES_PER_DAY = (5.0, 2.0, 1.0, 0.5, 0.2, 0.1)

# Hours until the next review, weakest tier first (1h, 1d, 2d, 4d, 1w, 2w)
REVIEW_INTERVAL_HOURS = (1, 24, 48, 96, 168, 336)

# Base for concepts never reviewed, so they are always due
NEVER_REVIEWED_BASE = datetime(1970, 1, 1, tzinfo=timezone.utc)

SECONDS_PER_DAY = 86400.0
WEEK = timedelta(days=7)


def strength_tier(strength: float) -> int:
    """Return the tier index (0 = weakest) for a strength value."""
    return bisect_right(STRENGTH_TIER_BOUNDS, strength)


def decay_rate(strength: float) -> float:
    """Daily decay rate for the tier the (pre-decay) strength falls in."""
    return DECAY_RATES_PER_DAY[strength_tier(strength)]


def review_interval_hours(strength: float) -> int:
    """Review interval in hours for a strength tier."""
    return REVIEW_INTERVAL_HOURS[strength_tier(strength)]


def elapsed_days(last_reviewed: datetime, now: datetime) -> float:
    """Days between two instants; negative spans (clock skew) count as zero."""
    return max(0.0, (now - last_reviewed).total_seconds() / SECONDS_PER_DAY)


def decay(strength: float, last_reviewed: Optional[datetime], now: datetime) -> float:
    """
    Project current strength after forgetting since last review.

    Never persisted and never advances last_reviewed: calling it twice with
    the same inputs returns the same value.

    Args:
        strength: Last persisted strength (0-100)
        last_reviewed: Timestamp of last committed review, or None
        now: Instant to project to

    Returns:
        Decayed strength, floored at 0
    """
    if last_reviewed is None:
        return strength

    amount = min(strength, decay_rate(strength) * elapsed_days(last_reviewed, now))
    return max(MIN_STRENGTH, strength - amount)


def due_date(strength: float, last_reviewed: Optional[datetime]) -> datetime:
    """
    Timestamp when the concept becomes due for review.

    A concept that was never reviewed is anchored at the Unix epoch and is
    therefore always due.
    """
    base = last_reviewed if last_reviewed is not None else NEVER_REVIEWED_BASE
    return base + timedelta(hours=review_interval_hours(strength))


def end_of_today(now: datetime) -> datetime:
    """Next midnight after `now`, in the same timezone as `now`."""
    return datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=now.tzinfo)


def is_due(due: datetime, now: datetime) -> bool:
    return due <= now


def is_due_today(due: datetime, now: datetime) -> bool:
    return due <= end_of_today(now)


def is_due_this_week(due: datetime, now: datetime) -> bool:
    return due <= now + WEEK


def hours_overdue(due: datetime, now: datetime) -> float:
    """Hours past the due date; 0 when not yet due."""
    if not is_due(due, now):
        return 0.0
    return max(0.0, (now - due).total_seconds() / 3600.0)


def clamp_score(score: float) -> float:
    """Clamp an evaluator score into 0-100."""
    return min(MAX_STRENGTH, max(MIN_STRENGTH, score))


def clamp_strength(strength: float) -> float:
    return min(MAX_STRENGTH, max(MIN_STRENGTH, strength))


def strength_delta(score: float, is_pass: bool) -> int:
    """
    Signed strength adjustment for an evaluation outcome.

    Pass: >=95 -> +30, >=90 -> +25, else +20
    Fail: >=60 -> -5,  >=40 -> -10, else -15

    Scores outside 0-100 are clamped first.
    """
    score = clamp_score(score)

    if is_pass:
        if score >= 95:
            return 30
        if score >= 90:
            return 25
        return 20

    if score >= 60:
        return -5
    if score >= 40:
        return -10
    return -15
