import logging

import pandas as pd
from sqlalchemy.orm import Session

from dashboard.adapters.outbound.sqlalchemy_repos import (
    SqlAlchemyRuleRepository,
    SqlAlchemyTaskRepository,
)
from domain.aggregation import category_totals
from domain.models import QualityReport
from domain.pipeline import build_quality_report

logger = logging.getLogger(__name__)

RATE_COLUMNS = {
    "average_rating": "note_moyenne",
    "punctuality_rate": "ponctualite",
    "scanbac_rate": "scanbac",
    "forced_address_rate": "adresse_forcee",
    "forced_contactless_rate": "sans_contact_force",
}

CLASSEMENT_COLUMNS = [
    "livreur", "depot", "transporteur", "taches", "taches_terminees", "notes",
    *RATE_COLUMNS.values(), "alertes", "taux_alerte", "score",
]

SYNTHESE_COLUMNS = [
    "niveau", "depot", "transporteur", "taches", "taches_terminees", "notes",
    *RATE_COLUMNS.values(), "alertes", "taux_alerte", "score",
]

RECURRENCE_COLUMNS = [
    "depot", "transporteur", "livreur", "alertes", "notes", "note_moyenne",
    "categorie_principale", "categories",
]

REPARTITION_COLUMNS = ["champ", "valeur", "taches"]
CATEGORIE_COLUMNS = ["categorie", "alertes"]
MEILLEURS_COLUMNS = ["livreur", "notes_5_etoiles"]


def rapport_qualite(session: Session) -> QualityReport:
    """Load tasks and rules from the database and run the quality pipeline."""
    taches = SqlAlchemyTaskRepository(session).list_all()
    rules = SqlAlchemyRuleRepository(session).get_rule_set()
    report = build_quality_report(taches, rules)
    logger.info(
        "Rapport qualite: %d taches, %d livreurs, %d depots",
        len(taches), len(report.drivers), len(report.tree.children),
    )
    return report


def _rates(stats) -> dict:
    return {column: getattr(stats, attr) for attr, column in RATE_COLUMNS.items()}


def classement_livreurs(report: QualityReport, notes_min: int = 0) -> pd.DataFrame:
    """Driver ranking by score, optionally limited to drivers with enough ratings."""
    rows = [
        {
            "livreur": d.name,
            "depot": d.depot,
            "transporteur": d.carrier,
            "taches": d.total_tasks,
            "taches_terminees": d.completed_tasks,
            "notes": d.total_ratings,
            **_rates(d),
            "alertes": d.total_alerts,
            "taux_alerte": d.alert_rate,
            "score": d.score,
        }
        for d in report.drivers
        if d.total_ratings >= notes_min
    ]
    if not rows:
        return pd.DataFrame(columns=CLASSEMENT_COLUMNS)
    return (
        pd.DataFrame(rows, columns=CLASSEMENT_COLUMNS)
        .sort_values(["score", "livreur"], ascending=[False, True])
        .reset_index(drop=True)
    )


def synthese_qualite(report: QualityReport) -> pd.DataFrame:
    """Flatten the depot/carrier rollup: one row per depot, then its carriers."""
    rows = []
    for depot in report.tree.children:
        for stats, transporteur in [(depot, None)] + [(c, c.name) for c in depot.children]:
            rows.append({
                "niveau": stats.level.value,
                "depot": depot.name,
                "transporteur": transporteur,
                "taches": stats.total_tasks,
                "taches_terminees": stats.completed_tasks,
                "notes": stats.total_ratings,
                **_rates(stats),
                "alertes": stats.total_alerts,
                "taux_alerte": stats.alert_rate,
                "score": stats.score,
            })
    if not rows:
        return pd.DataFrame(columns=SYNTHESE_COLUMNS)
    return pd.DataFrame(rows, columns=SYNTHESE_COLUMNS)


def resume_global(report: QualityReport) -> dict:
    """Network-wide headline figures.

    Rates and score come from the driver rollup. Task counts, failures,
    rating coverage and the punctuality breakdown cover every task,
    including tasks without a known driver.
    """
    tree = report.tree
    summary = report.summary
    punctuality = summary.punctuality
    return {
        "notes": tree.total_ratings,
        "alertes": tree.total_alerts,
        "taux_alerte": tree.alert_rate,
        **_rates(tree),
        "score": tree.score,
        "taches": summary.total_tasks,
        "taches_terminees": summary.completed_tasks,
        "taches_en_attente": summary.pending_tasks,
        "echecs": summary.failed_tasks,
        "taux_echec": summary.failed_delivery_rate,
        "notes_recues": summary.total_ratings,
        "taux_notation": summary.rating_rate,
        "alertes_qualite": summary.quality_alerts,
        "en_avance": punctuality.early,
        "en_retard": punctuality.late,
        "retard_plus_1h": punctuality.late_over_1h,
        "taux_retard_plus_1h": punctuality.late_over_1h_rate,
    }


def repartition_taches(report: QualityReport) -> pd.DataFrame:
    """Task counts per status, then per progression."""
    summary = report.summary
    rows = [
        {"champ": champ, "valeur": valeur, "taches": count}
        for champ, counts in (
            ("status", summary.tasks_by_status),
            ("progression", summary.tasks_by_progression),
        )
        for valeur, count in counts.items()
    ]
    if not rows:
        return pd.DataFrame(columns=REPARTITION_COLUMNS)
    return pd.DataFrame(rows, columns=REPARTITION_COLUMNS)


def categories_commentaires(report: QualityReport) -> pd.DataFrame:
    rows = [
        {"categorie": categorie, "alertes": count}
        for categorie, count in category_totals(report.alerts).items()
    ]
    if not rows:
        return pd.DataFrame(columns=CATEGORIE_COLUMNS)
    return pd.DataFrame(rows, columns=CATEGORIE_COLUMNS)


def meilleurs_livreurs(report: QualityReport) -> pd.DataFrame:
    """The five drivers with the most five-star ratings."""
    rows = [
        {"livreur": name, "notes_5_etoiles": count}
        for name, count in report.summary.top_five_star_drivers
    ]
    if not rows:
        return pd.DataFrame(columns=MEILLEURS_COLUMNS)
    return pd.DataFrame(rows, columns=MEILLEURS_COLUMNS)


def recurrence_alertes(report: QualityReport) -> pd.DataFrame:
    """One row per driver with alerts, most frequent comment category first."""
    rows = []
    for depot in report.alerts:
        for carrier in depot.carriers:
            for driver in carrier.drivers:
                categories = dict(
                    sorted(driver.comment_categories.items(), key=lambda kv: (-kv[1], kv[0]))
                )
                rows.append({
                    "depot": depot.name,
                    "transporteur": carrier.name,
                    "livreur": driver.name,
                    "alertes": driver.alert_count,
                    "notes": driver.total_ratings,
                    "note_moyenne": driver.average_rating,
                    "categorie_principale": next(iter(categories), None),
                    "categories": categories,
                })
    if not rows:
        return pd.DataFrame(columns=RECURRENCE_COLUMNS)
    return pd.DataFrame(rows, columns=RECURRENCE_COLUMNS)
