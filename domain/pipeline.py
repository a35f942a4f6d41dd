"""Domain quality pipeline, pure functions with zero external dependencies.

Only stdlib and domain.* imports allowed.

Every call recomputes the whole report from the task list and rule set it
is given; nothing is cached between calls.
"""

from __future__ import annotations

from collections import Counter

from domain.aggregation import aggregate_drivers, build_alert_recurrence
from domain.classification import resolve_carrier, resolve_depot, resolve_driver_name
from domain.models import STORE_DEPOT, UNKNOWN, QualityReport
from domain.scoring import compute_score
from domain.stats import compute_raw_stats
from domain.summary import dashboard_summary


def group_by_driver(taches) -> dict[str, list]:
    """Group tasks by resolved driver name, dropping tasks without a driver."""
    groups: dict[str, list] = {}
    for tache in taches:
        name = resolve_driver_name(tache)
        if not name or name == UNKNOWN:
            continue
        groups.setdefault(name, []).append(tache)
    return groups


def main_depot(taches, depot_rules) -> str:
    """Most frequent depot among a driver's tasks; first seen wins ties."""
    counts = Counter(resolve_depot(t.nom_hub, depot_rules) for t in taches)
    if not counts:
        return STORE_DEPOT
    return counts.most_common(1)[0][0]


def build_driver_stats(taches, rules) -> list:
    """Compute scored statistics for every driver, with depot and carrier set."""
    groups = group_by_driver(taches)
    raw = [compute_raw_stats(name, driver_taches) for name, driver_taches in groups.items()]
    max_completed = max((s.completed_tasks for s in raw), default=0)

    for stats in raw:
        stats.score = compute_score(stats, max_completed)
        stats.depot = main_depot(groups[stats.name], rules.depot_rules)
        stats.carrier = resolve_carrier(stats.name, rules.carrier_rules)
    return raw


def build_quality_report(taches, rules) -> QualityReport:
    """Driver statistics with their rollup, alert recurrence and dashboard summary."""
    taches = list(taches)
    drivers = build_driver_stats(taches, rules)
    return QualityReport(
        drivers=drivers,
        tree=aggregate_drivers(drivers),
        alerts=build_alert_recurrence(taches, rules),
        summary=dashboard_summary(taches),
    )
