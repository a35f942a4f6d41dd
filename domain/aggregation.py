"""Domain hierarchical aggregation, pure functions with zero external dependencies.

Only stdlib and domain.* imports allowed.

Rolls per-driver statistics up through carrier, depot and global levels,
and builds the alert recurrence tree used for troubleshooting low ratings.
"""

from __future__ import annotations

from collections import Counter

from domain.classification import resolve_carrier, resolve_depot, resolve_driver_name
from domain.models import (
    STORE_DEPOT,
    UNKNOWN,
    AggregateLevel,
    AggregateStats,
    CarrierAlerts,
    DepotAlerts,
    DriverAlert,
)
from domain.stats import is_alert, is_completed, rating_of

DEFAULT_COMMENT_CATEGORY = "Autre"

# Ordered: the first category with a matching keyword wins.
COMMENT_CATEGORIES = (
    ("Attitude livreur", ("agressif", "impoli", "pas aimable", "dispute")),
    ("Amabilité livreur", ("sourire", "aimable", "gentil", "serviable", "courtois")),
    ("Casse produit", ("casse", "abime", "endommage", "produit abîmé")),
    ("Manquant produit", ("manque", "manquant", "pas recu", "produit manquant")),
    ("Manquant multiple", ("plusieurs manquants", "nombreux produits manquants")),
    ("Manquant bac", ("bac manquant", "bac non repris")),
    ("Non livré", ("non livre", "pas livre", "jamais recu")),
    ("Erreur de préparation", ("erreur de commande", "mauvais produit", "erreur sur la commande")),
    ("Erreur de livraison", ("erreur d'adresse", "mauvaise adresse", "pas le bon client")),
    ("Livraison en avance", ("en avance", "trop tot", "avant l'heure")),
    ("Livraison en retard", ("en retard", "trop tard", "apres l'heure")),
    ("Rupture chaine de froid", ("froid", "chaud", "decongele", "pas frais")),
    ("Process", ("process", "application", "site web", "communication")),
    ("Non pertinent", ("merci", "ras", "ok", "nickel", "parfait")),
)

_RATE_FIELDS = (
    "punctuality_rate",
    "scanbac_rate",
    "forced_address_rate",
    "forced_contactless_rate",
)


def categorize_comment(comment, categories=COMMENT_CATEGORIES) -> str:
    """Return the first category whose keyword list matches the comment."""
    text = str(comment or "").lower()
    if not text:
        return DEFAULT_COMMENT_CATEGORY
    for category, keywords in categories:
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_COMMENT_CATEGORY


def weighted_average(items) -> float | None:
    """Average (value, weight) pairs, ignoring None values and empty weights.

    A None value carries no weight rather than counting as zero. Returns
    None when nothing contributes.
    """
    contributing = [(v, w) for v, w in items if v is not None and w > 0]
    if not contributing:
        return None
    if len(contributing) == 1:
        return contributing[0][0]
    total_weight = sum(w for _, w in contributing)
    return sum(v * w for v, w in contributing) / total_weight


def aggregate(name: str, level: AggregateLevel, children) -> AggregateStats:
    """Combine driver or aggregate statistics into one level up.

    Counts are summed. The rating is weighted by each child's ratings, the
    other rates by each child's completed tasks. The score is the plain mean
    of the child scores.
    """
    children = list(children)
    total_ratings = sum(c.total_ratings for c in children)
    total_alerts = sum(c.total_alerts for c in children)
    scores = [c.score or 0.0 for c in children]

    stats = AggregateStats(
        name=name,
        level=level,
        total_tasks=sum(c.total_tasks for c in children),
        completed_tasks=sum(c.completed_tasks for c in children),
        total_ratings=total_ratings,
        average_rating=weighted_average(
            (c.average_rating, c.total_ratings) for c in children
        ),
        total_alerts=total_alerts,
        alert_rate=total_alerts / total_ratings * 100 if total_ratings else 0.0,
        score=sum(scores) / len(scores) if scores else 0.0,
        children=children,
    )
    for rate_field in _RATE_FIELDS:
        setattr(
            stats,
            rate_field,
            weighted_average(
                (getattr(c, rate_field), c.completed_tasks) for c in children
            ),
        )
    return stats


def _by_score(stats):
    return (-(stats.score or 0.0), stats.name)


def aggregate_drivers(drivers, name: str = "Global") -> AggregateStats:
    """Group scored drivers by depot then carrier and aggregate every level.

    Each driver must carry its ``depot`` and ``carrier``; missing values
    fall back to ``"Store"`` and ``"Unknown"``.
    """
    tree: dict[str, dict[str, list]] = {}
    for driver in drivers:
        depot = driver.depot or STORE_DEPOT
        carrier = driver.carrier or UNKNOWN
        tree.setdefault(depot, {}).setdefault(carrier, []).append(driver)

    depots = []
    for depot, carriers in tree.items():
        carrier_stats = [
            aggregate(carrier, AggregateLevel.CARRIER, sorted(members, key=_by_score))
            for carrier, members in carriers.items()
        ]
        depots.append(
            aggregate(depot, AggregateLevel.DEPOT, sorted(carrier_stats, key=_by_score))
        )
    return aggregate(name, AggregateLevel.GLOBAL, sorted(depots, key=_by_score))


def build_alert_recurrence(taches, rules) -> list[DepotAlerts]:
    """Group alert tasks by depot, carrier and driver, counting comment categories.

    Rating totals come from each driver's full task list, not only from the
    alerts. Alerts without a comment count towards ``alert_count`` but not
    towards any category.
    """
    taches = list(taches)
    ratings_by_driver: dict[str, list[float]] = {}
    for tache in taches:
        rating = rating_of(tache)
        if rating is not None and is_completed(tache):
            ratings_by_driver.setdefault(resolve_driver_name(tache), []).append(rating)

    tree: dict[str, dict[str, dict[str, DriverAlert]]] = {}
    for tache in taches:
        if not is_alert(tache):
            continue
        depot = resolve_depot(tache.nom_hub, rules.depot_rules)
        carrier = resolve_carrier(tache, rules.carrier_rules)
        driver = resolve_driver_name(tache)

        drivers = tree.setdefault(depot, {}).setdefault(carrier, {})
        if driver not in drivers:
            ratings = ratings_by_driver.get(driver, [])
            drivers[driver] = DriverAlert(
                name=driver,
                total_ratings=len(ratings),
                average_rating=sum(ratings) / len(ratings) if ratings else None,
            )
        entry = drivers[driver]
        entry.alert_count += 1
        if tache.commentaire and tache.commentaire.strip():
            category = categorize_comment(tache.commentaire)
            entry.comment_categories[category] = (
                entry.comment_categories.get(category, 0) + 1
            )

    result = []
    for depot, carriers in tree.items():
        carrier_alerts = [
            CarrierAlerts(
                name=carrier,
                drivers=sorted(drivers.values(), key=lambda d: (-d.alert_count, d.name)),
            )
            for carrier, drivers in carriers.items()
        ]
        carrier_alerts.sort(key=lambda c: (-c.alert_count, c.name))
        result.append(DepotAlerts(name=depot, carriers=carrier_alerts))
    result.sort(key=lambda d: (-d.alert_count, d.name))
    return result


def category_totals(alerts) -> dict[str, int]:
    """Sum comment categories across an alert recurrence tree."""
    totals = Counter()
    for depot in alerts:
        for carrier in depot.carriers:
            for driver in carrier.drivers:
                totals.update(driver.comment_categories)
    return dict(totals.most_common())
