"""Domain raw statistics, pure functions with zero external dependencies.

Only stdlib and domain.models imports allowed.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone

from domain.models import (
    COMPLETED,
    DriverStats,
    Punctuality,
    PunctualityBreakdown,
    PunctualityCheck,
)

GRACE = timedelta(minutes=15)
DEFAULT_WINDOW = timedelta(minutes=120)
ALERT_RATING = 4
SCANBAC_CHANNEL = "mobile"


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO 8601 string or datetime, returning None when impossible.

    Naive values are taken as UTC so that every parsed value is comparable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def rating_of(tache) -> float | None:
    """Return the numeric rating of a task, or None if absent or not a number."""
    value = tache.notation
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return value


def is_completed(tache) -> bool:
    return str(tache.progression or "").upper() == COMPLETED


def is_alert(tache) -> bool:
    """A completed task rated below 4."""
    rating = rating_of(tache)
    return is_completed(tache) and rating is not None and rating < ALERT_RATING


def check_punctuality(tache) -> PunctualityCheck | None:
    """Place a task's closure relative to its scheduled window plus grace.

    Returns None when the task has no window start or closure timestamp, or
    when any of its timestamps cannot be parsed or its window with grace
    leaves the datetime range. Without a declared end, the
    window lasts two hours.
    """
    start = parse_timestamp(tache.debut_creneau)
    closure = parse_timestamp(tache.date_cloture)
    if start is None or closure is None:
        return None

    end = parse_timestamp(tache.fin_creneau)
    if end is None and tache.fin_creneau not in (None, ""):
        return None

    # Windows running past the datetime range cannot be placed.
    try:
        if end is None:
            end = start + DEFAULT_WINDOW
        early_limit = start - GRACE
        late_limit = end + GRACE
    except OverflowError:
        return None

    if closure < early_limit:
        return PunctualityCheck(Punctuality.EARLY, _minutes(early_limit - closure))
    if closure > late_limit:
        return PunctualityCheck(Punctuality.LATE, _minutes(closure - late_limit))
    return PunctualityCheck(Punctuality.ON_TIME)


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def punctuality_breakdown(taches) -> PunctualityBreakdown:
    """Count early, on-time and late deliveries among completed tasks."""
    counts = {status: 0 for status in Punctuality}
    late_over_1h = 0
    for tache in taches:
        if not is_completed(tache):
            continue
        check = check_punctuality(tache)
        if check is None:
            continue
        counts[check.status] += 1
        if check.status is Punctuality.LATE and check.minutes > 60:
            late_over_1h += 1
    return PunctualityBreakdown(
        eligible=sum(counts.values()),
        early=counts[Punctuality.EARLY],
        on_time=counts[Punctuality.ON_TIME],
        late=counts[Punctuality.LATE],
        late_over_1h=late_over_1h,
    )


def _rate(count: int, total: int) -> float | None:
    if total == 0:
        return None
    return count / total * 100


def compute_raw_stats(driver_name: str, taches) -> DriverStats:
    """Compute a driver's raw statistics from its tasks. ``score`` stays None."""
    taches = list(taches)
    completed = [t for t in taches if is_completed(t)]
    ratings = [r for r in (rating_of(t) for t in completed) if r is not None]
    n = len(completed)

    return DriverStats(
        name=driver_name,
        total_tasks=len(taches),
        completed_tasks=n,
        total_ratings=len(ratings),
        average_rating=sum(ratings) / len(ratings) if ratings else None,
        punctuality_rate=punctuality_breakdown(completed).rate,
        scanbac_rate=_rate(
            sum(1 for t in completed if t.complete_par == SCANBAC_CHANNEL), n
        ),
        forced_address_rate=_rate(
            sum(1 for t in completed if t.adresse_correcte is False), n
        ),
        forced_contactless_rate=_rate(
            sum(1 for t in completed if t.sans_contact_force is True), n
        ),
        total_alerts=sum(1 for t in completed if is_alert(t)),
    )
