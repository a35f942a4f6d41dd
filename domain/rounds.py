"""Domain round analytics, pure functions with zero external dependencies.

Only stdlib and domain.* imports allowed.
"""

from __future__ import annotations

from domain.classification import categorize_round, resolve_carrier, resolve_depot
from domain.models import (
    DepotForecast,
    DepotOverload,
    ForecastReport,
    ForecastTotals,
    OverweightReport,
    OverweightRound,
    RoundCategory,
)
from domain.stats import parse_timestamp


def _totals_for(categorization) -> ForecastTotals:
    totals = ForecastTotals(total=1)
    if categorization.shift is RoundCategory.MATIN:
        totals.matin = 1
    elif categorization.shift is RoundCategory.SOIR:
        totals.soir = 1
    if categorization.type is RoundCategory.BU:
        totals.bu = 1
    else:
        totals.classique = 1
    return totals


def forecast_rounds(tournees, rules) -> ForecastReport:
    """Count rounds per shift and type, by depot, by carrier and overall."""
    by_depot: dict[str, DepotForecast] = {}
    for tournee in tournees:
        depot = resolve_depot(tournee.nom_hub, rules.depot_rules)
        carrier = resolve_carrier(tournee, rules.carrier_rules)
        counts = _totals_for(categorize_round(tournee, rules.forecast_rules))

        forecast = by_depot.setdefault(depot, DepotForecast(name=depot))
        forecast.totals.add(counts)
        forecast.by_carrier.setdefault(carrier, ForecastTotals()).add(counts)

    depots = sorted(by_depot.values(), key=lambda d: (-d.totals.total, d.name))
    totals = ForecastTotals()
    by_carrier: dict[str, ForecastTotals] = {}
    for forecast in depots:
        totals.add(forecast.totals)
        forecast.by_carrier = _sorted_totals(forecast.by_carrier)
        for carrier, counts in forecast.by_carrier.items():
            by_carrier.setdefault(carrier, ForecastTotals()).add(counts)

    return ForecastReport(
        totals=totals,
        by_depot=depots,
        by_carrier=_sorted_totals(by_carrier),
    )


def _sorted_totals(mapping: dict[str, ForecastTotals]) -> dict[str, ForecastTotals]:
    return dict(sorted(mapping.items(), key=lambda item: (-item[1].total, item[0])))


def _round_key(nom, when, hub):
    """Key a round by (name, calendar day, hub), or None if incomplete."""
    if not nom or not hub:
        return None
    parsed = parse_timestamp(when)
    if parsed is None:
        return None
    return (nom, parsed.date(), hub)


def detect_overweight_rounds(tournees, taches, depot_rules) -> OverweightReport:
    """Flag rounds whose summed task weight exceeds the vehicle capacity.

    Only rounds with a numeric capacity are evaluated. Tasks are attached to
    a round by name, calendar day and hub.
    """
    weights: dict[tuple, float] = {}
    for tache in taches:
        key = _round_key(tache.nom_tournee, tache.date, tache.nom_hub)
        poids = tache.poids_kg
        if key is None or isinstance(poids, bool) or not isinstance(poids, (int, float)):
            continue
        if poids > 0:
            weights[key] = weights.get(key, 0.0) + poids

    deviations = []
    per_depot: dict[str, list[int]] = {}
    for tournee in tournees:
        capacity = tournee.capacite_poids
        if isinstance(capacity, bool) or not isinstance(capacity, (int, float)):
            continue
        key = _round_key(tournee.nom, tournee.date, tournee.nom_hub)
        if key is None:
            continue
        total_weight = weights.get(key, 0.0)
        overweight = total_weight > capacity

        counts = per_depot.setdefault(resolve_depot(tournee.nom_hub, depot_rules), [0, 0])
        counts[0] += 1
        if overweight:
            counts[1] += 1
            deviations.append(
                OverweightRound(round=tournee, total_weight=total_weight, capacity=capacity)
            )

    deviations.sort(key=lambda d: d.deviation, reverse=True)
    by_depot = [
        DepotOverload(name=name, total_rounds=total, overweight_rounds=over)
        for name, (total, over) in per_depot.items()
    ]
    by_depot.sort(key=lambda d: (-d.overload_rate, d.name))
    return OverweightReport(deviations=deviations, by_depot=by_depot)
