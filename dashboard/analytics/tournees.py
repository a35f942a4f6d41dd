import pandas as pd
from sqlalchemy.orm import Session

from dashboard.adapters.outbound.sqlalchemy_repos import (
    SqlAlchemyRoundRepository,
    SqlAlchemyRuleRepository,
    SqlAlchemyTaskRepository,
)
from domain.rounds import detect_overweight_rounds, forecast_rounds

PREVISION_COLUMNS = ["depot", "transporteur", "total", "matin", "soir", "bu", "classique"]
SURCHARGE_COLUMNS = ["tournee", "date", "hub", "poids_calcule", "capacite", "ecart"]


def prevision_tournees(session: Session) -> pd.DataFrame:
    """Rounds per depot and carrier, split by shift and type."""
    tournees = SqlAlchemyRoundRepository(session).list_all()
    rules = SqlAlchemyRuleRepository(session).get_rule_set()
    report = forecast_rounds(tournees, rules)

    rows = []
    for depot in report.by_depot:
        for carrier, totals in depot.by_carrier.items():
            rows.append({
                "depot": depot.name,
                "transporteur": carrier,
                "total": totals.total,
                "matin": totals.matin,
                "soir": totals.soir,
                "bu": totals.bu,
                "classique": totals.classique,
            })
    return pd.DataFrame(rows, columns=PREVISION_COLUMNS)


def tournees_en_surcharge(session: Session) -> pd.DataFrame:
    tournees = SqlAlchemyRoundRepository(session).list_all()
    taches = SqlAlchemyTaskRepository(session).list_all()
    rules = SqlAlchemyRuleRepository(session).get_rule_set()
    report = detect_overweight_rounds(tournees, taches, rules.depot_rules)

    rows = [
        {
            "tournee": d.round.nom,
            "date": d.round.date,
            "hub": d.round.nom_hub,
            "poids_calcule": d.total_weight,
            "capacite": d.capacity,
            "ecart": d.deviation,
        }
        for d in report.deviations
    ]
    return pd.DataFrame(rows, columns=SURCHARGE_COLUMNS)


def taux_surcharge_par_depot(session: Session) -> pd.DataFrame:
    tournees = SqlAlchemyRoundRepository(session).list_all()
    taches = SqlAlchemyTaskRepository(session).list_all()
    rules = SqlAlchemyRuleRepository(session).get_rule_set()
    report = detect_overweight_rounds(tournees, taches, rules.depot_rules)
    return pd.DataFrame(
        [
            {
                "depot": d.name,
                "tournees": d.total_rounds,
                "tournees_surcharge": d.overweight_rounds,
                "taux_surcharge": d.overload_rate,
            }
            for d in report.by_depot
        ],
        columns=["depot", "tournees", "tournees_surcharge", "taux_surcharge"],
    )
