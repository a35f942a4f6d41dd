"""Domain dashboard summary, pure functions with zero external dependencies.

Only stdlib and domain.* imports allowed.
"""

from __future__ import annotations

from collections import Counter

from domain.classification import resolve_driver_name
from domain.models import UNKNOWN, DashboardSummary
from domain.stats import compute_raw_stats, punctuality_breakdown, rating_of

FAILED_PROGRESSIONS = ("FAILED", "CANCELLED")
FAILED_STATUSES = ("DELIVERY_FAILED", "NOT_DELIVERED", "CANCELLED", "REJECTED")
PENDING_STATUS = "PENDING"
QUALITY_ALERT_RATING = 3
TOP_DRIVERS = 5


def _upper(value) -> str:
    return str(value or "").upper()


def is_failed(tache) -> bool:
    """A delivery fails on a failed progression or a failed status."""
    return (
        _upper(tache.progression) in FAILED_PROGRESSIONS
        or _upper(tache.status) in FAILED_STATUSES
    )


def is_quality_alert(tache) -> bool:
    """Any rated task at 3 or below, whatever its progression."""
    rating = rating_of(tache)
    return rating is not None and rating <= QUALITY_ALERT_RATING


def top_five_star_drivers(taches, limit: int = TOP_DRIVERS) -> list[tuple[str, int]]:
    """Drivers with the most five-star ratings, as (name, count) pairs."""
    counts: Counter[str] = Counter()
    for tache in taches:
        if rating_of(tache) != 5:
            continue
        name = resolve_driver_name(tache)
        if name and name != UNKNOWN:
            counts[name] += 1
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:limit]


def _count_by(values) -> dict[str, int]:
    return dict(Counter(value or UNKNOWN for value in values).most_common())


def dashboard_summary(taches) -> DashboardSummary:
    """Headline figures for the whole task list, drivers included or not."""
    taches = list(taches)
    overall = compute_raw_stats(UNKNOWN, taches)
    return DashboardSummary(
        total_tasks=overall.total_tasks,
        completed_tasks=overall.completed_tasks,
        failed_tasks=sum(1 for t in taches if is_failed(t)),
        pending_tasks=sum(1 for t in taches if _upper(t.status) == PENDING_STATUS),
        total_ratings=overall.total_ratings,
        average_rating=overall.average_rating,
        quality_alerts=sum(1 for t in taches if is_quality_alert(t)),
        punctuality=punctuality_breakdown(taches),
        scanbac_rate=overall.scanbac_rate,
        forced_address_rate=overall.forced_address_rate,
        forced_contactless_rate=overall.forced_contactless_rate,
        tasks_by_status=_count_by(t.status for t in taches),
        tasks_by_progression=_count_by(t.progression for t in taches),
        top_five_star_drivers=top_five_star_drivers(taches),
    )
