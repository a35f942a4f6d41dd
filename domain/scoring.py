"""Domain composite scoring, pure functions with zero external dependencies.

Only stdlib and domain.models imports allowed.
"""

from __future__ import annotations

RATING_WEIGHT = 3
PUNCTUALITY_WEIGHT = 2
SCANBAC_WEIGHT = 1
FORCED_ADDRESS_WEIGHT = 1
FORCED_CONTACTLESS_WEIGHT = 1
TOTAL_WEIGHT = (
    RATING_WEIGHT
    + PUNCTUALITY_WEIGHT
    + SCANBAC_WEIGHT
    + FORCED_ADDRESS_WEIGHT
    + FORCED_CONTACTLESS_WEIGHT
)
VOLUME_CAP = 50


def quality_score(stats) -> float:
    """Weighted blend of rating, punctuality, scanbac and inverted forced rates."""
    rating_pct = (
        stats.average_rating / 5 * 100 if stats.average_rating is not None else 0.0
    )
    numerator = (
        rating_pct * RATING_WEIGHT
        + (stats.punctuality_rate or 0.0) * PUNCTUALITY_WEIGHT
        + (stats.scanbac_rate or 0.0) * SCANBAC_WEIGHT
        + (100 - (stats.forced_address_rate or 0.0)) * FORCED_ADDRESS_WEIGHT
        + (100 - (stats.forced_contactless_rate or 0.0)) * FORCED_CONTACTLESS_WEIGHT
    )
    return numerator / TOTAL_WEIGHT


def volume_weight(completed_tasks: int) -> float:
    """Confidence ramp reaching 1 at ``VOLUME_CAP`` completed tasks."""
    return min(max(completed_tasks, 0), VOLUME_CAP) / VOLUME_CAP


def compute_score(stats, max_completed_tasks: int = 0) -> float:
    """Return the composite score of a driver, bounded to [0, 100].

    A driver needs at least one completed task and one rating to be scored.

    Args:
        stats: Raw statistics (anything with the DriverStats rate fields).
        max_completed_tasks: Highest completed-task count among the driver's
            peers. Accepted for callers that compute it; the volume ramp uses
            the fixed ``VOLUME_CAP`` instead.
    """
    if stats.completed_tasks < 1 or stats.total_ratings < 1:
        return 0.0
    score = quality_score(stats) * volume_weight(stats.completed_tasks)
    return max(0.0, min(100.0, score))
