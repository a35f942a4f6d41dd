"""SQLAlchemy implementations of domain repository ports.

Each adapter translates between ORM models (sqlalchemy_models) and
pure domain models (domain.models), keeping the domain layer free
of any infrastructure dependency.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace

from sqlalchemy import select
from sqlalchemy.orm import Session

from dashboard.adapters.outbound.sqlalchemy_models import (
    RegleDepot as OrmRegleDepot,
    RegleForecast as OrmRegleForecast,
    RegleTransporteur as OrmRegleTransporteur,
    Tache as OrmTache,
    Tournee as OrmTournee,
)
from domain.models import (
    CarrierRule,
    DepotRule,
    ForecastRule,
    ForecastRuleType,
    HubCategory,
    Livreur,
    MatchType,
    RoundCategory,
    RuleSet,
    Tache as DomainTache,
    Tournee as DomainTournee,
)
from domain.ports import RoundRepository, RuleRepository, TaskRepository

logger = logging.getLogger(__name__)


def _livreur(prenom, nom, id_externe) -> Livreur | None:
    if not any([prenom, nom, id_externe]):
        return None
    return Livreur(prenom=prenom, nom=nom, id_externe=id_externe)


def _json_list(raw: str | None) -> tuple[str, ...]:
    try:
        values = json.loads(raw or "[]")
    except ValueError:
        return ()
    if not isinstance(values, list):
        return ()
    return tuple(str(v) for v in values if v is not None)


class SqlAlchemyTaskRepository(TaskRepository):
    """SQLAlchemy adapter for the TaskRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Commands ───────────────────────────────────────────────────────

    def save(self, tache: DomainTache) -> DomainTache:
        """Persist a domain Tache, replacing any row with the same tache_id."""
        orm_obj = self._session.scalars(
            select(OrmTache).where(OrmTache.tache_id == tache.tache_id)
        ).first()
        if orm_obj is None:
            orm_obj = OrmTache(tache_id=tache.tache_id)
            self._session.add(orm_obj)

        livreur = tache.livreur or Livreur()
        orm_obj.livreur_prenom = livreur.prenom
        orm_obj.livreur_nom = livreur.nom
        orm_obj.livreur_id_externe = livreur.id_externe
        for name in (
            "prenom_chauffeur", "nom_chauffeur", "nom_hub", "progression",
            "status", "notation", "commentaire", "complete_par",
            "adresse_correcte", "sans_contact_force", "nom_tournee",
            "poids_kg", "carrier_override",
        ):
            setattr(orm_obj, name, getattr(tache, name))
        for name in ("debut_creneau", "fin_creneau", "date_cloture", "date"):
            value = getattr(tache, name)
            setattr(orm_obj, name, value.isoformat() if hasattr(value, "isoformat") else value)
        self._session.flush()
        return tache

    # ── Queries ────────────────────────────────────────────────────────

    def find_by_id(self, tache_id: str) -> DomainTache | None:
        orm_obj = self._session.scalars(
            select(OrmTache).where(OrmTache.tache_id == tache_id)
        ).first()
        return self._to_domain(orm_obj) if orm_obj else None

    def list_all(self) -> list[DomainTache]:
        stmt = select(OrmTache).order_by(OrmTache.id)
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _to_domain(orm: OrmTache) -> DomainTache:
        """Convert an ORM Tache row to a domain Tache."""
        return DomainTache(
            tache_id=orm.tache_id,
            livreur=_livreur(orm.livreur_prenom, orm.livreur_nom, orm.livreur_id_externe),
            prenom_chauffeur=orm.prenom_chauffeur,
            nom_chauffeur=orm.nom_chauffeur,
            nom_hub=orm.nom_hub,
            progression=orm.progression,
            status=orm.status,
            notation=orm.notation,
            commentaire=orm.commentaire,
            debut_creneau=orm.debut_creneau,
            fin_creneau=orm.fin_creneau,
            date_cloture=orm.date_cloture,
            complete_par=orm.complete_par,
            adresse_correcte=orm.adresse_correcte,
            sans_contact_force=orm.sans_contact_force,
            nom_tournee=orm.nom_tournee,
            date=orm.date,
            poids_kg=orm.poids_kg,
            carrier_override=orm.carrier_override,
        )


class SqlAlchemyRoundRepository(RoundRepository):
    """SQLAlchemy adapter for the RoundRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def save(self, tournee: DomainTournee) -> DomainTournee:
        """Persist a domain Tournee keyed by (nom, date, nom_hub)."""
        date = tournee.date.isoformat() if hasattr(tournee.date, "isoformat") else tournee.date
        orm_obj = self._session.scalars(
            select(OrmTournee)
            .where(OrmTournee.nom == tournee.nom)
            .where(OrmTournee.date == date)
            .where(OrmTournee.nom_hub == tournee.nom_hub)
        ).first()
        if orm_obj is None:
            orm_obj = OrmTournee(nom=tournee.nom, date=date, nom_hub=tournee.nom_hub)
            self._session.add(orm_obj)

        livreur = tournee.livreur or Livreur(
            prenom=tournee.prenom_chauffeur, nom=tournee.nom_chauffeur
        )
        orm_obj.tournee_id = tournee.id
        orm_obj.statut = tournee.statut
        orm_obj.capacite_poids = tournee.capacite_poids
        orm_obj.livreur_prenom = livreur.prenom
        orm_obj.livreur_nom = livreur.nom
        orm_obj.livreur_id_externe = livreur.id_externe
        orm_obj.carrier_override = tournee.carrier_override
        self._session.flush()
        return tournee

    def list_all(self) -> list[DomainTournee]:
        stmt = select(OrmTournee).order_by(OrmTournee.id)
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    @staticmethod
    def _to_domain(orm: OrmTournee) -> DomainTournee:
        return DomainTournee(
            nom=orm.nom,
            date=orm.date,
            nom_hub=orm.nom_hub,
            statut=orm.statut,
            capacite_poids=orm.capacite_poids,
            livreur=_livreur(orm.livreur_prenom, orm.livreur_nom, orm.livreur_id_externe),
            carrier_override=orm.carrier_override,
            id=orm.tournee_id,
        )


class SqlAlchemyRuleRepository(RuleRepository):
    """SQLAlchemy adapter for the RuleRepository port.

    Rows whose type or category is not recognised are skipped with a
    warning, so a bad rule never blocks the report.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Queries ────────────────────────────────────────────────────────

    def get_rule_set(self) -> RuleSet:
        """Return every stored rule, depot rules in evaluation order."""
        depot_rows = self._session.scalars(
            select(OrmRegleDepot).order_by(OrmRegleDepot.position, OrmRegleDepot.id)
        )
        carrier_rows = self._session.scalars(
            select(OrmRegleTransporteur).order_by(
                OrmRegleTransporteur.priority, OrmRegleTransporteur.id
            )
        )
        forecast_rows = self._session.scalars(
            select(OrmRegleForecast).order_by(OrmRegleForecast.id)
        )
        return RuleSet(
            depot_rules=tuple(self._depot_to_domain(r) for r in depot_rows),
            carrier_rules=tuple(
                rule for rule in map(self._carrier_to_domain, carrier_rows) if rule
            ),
            forecast_rules=tuple(
                rule for rule in map(self._forecast_to_domain, forecast_rows) if rule
            ),
        )

    # ── Commands ───────────────────────────────────────────────────────

    def save_depot_rule(self, rule: DepotRule) -> DepotRule:
        position = len(self._session.scalars(select(OrmRegleDepot.id)).all())
        orm_obj = OrmRegleDepot(
            depot_name=rule.depot_name,
            type=HubCategory.parse(rule.type, HubCategory.STORE).value,
            prefixes_json=json.dumps(list(rule.prefixes)),
            is_active=rule.is_active,
            position=position,
        )
        self._session.add(orm_obj)
        self._session.flush()
        return replace(rule, id=orm_obj.id)

    def save_carrier_rule(self, rule: CarrierRule) -> CarrierRule:
        orm_obj = OrmRegleTransporteur(
            carrier=rule.carrier,
            type=rule.type.value,
            value=rule.value,
            priority=rule.priority,
            is_active=rule.is_active,
        )
        self._session.add(orm_obj)
        self._session.flush()
        return replace(rule, id=orm_obj.id)

    def save_forecast_rule(self, rule: ForecastRule) -> ForecastRule:
        orm_obj = OrmRegleForecast(
            name=rule.name,
            type=rule.type.value,
            keywords_json=json.dumps(list(rule.keywords)),
            category=rule.category.value,
            is_active=rule.is_active,
        )
        self._session.add(orm_obj)
        self._session.flush()
        return replace(rule, id=orm_obj.id)

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _depot_to_domain(orm: OrmRegleDepot) -> DepotRule:
        return DepotRule(
            depot_name=orm.depot_name,
            type=HubCategory.parse(orm.type, HubCategory.STORE),
            prefixes=_json_list(orm.prefixes_json),
            is_active=bool(orm.is_active),
            id=orm.id,
        )

    @staticmethod
    def _carrier_to_domain(orm: OrmRegleTransporteur) -> CarrierRule | None:
        valid_types = {t.value for t in MatchType}
        if orm.type not in valid_types:
            logger.warning("Regle transporteur %s ignoree: type %r inconnu", orm.id, orm.type)
            return None
        return CarrierRule(
            carrier=orm.carrier,
            type=MatchType(orm.type),
            value=orm.value,
            priority=orm.priority if orm.priority is not None else 100,
            is_active=bool(orm.is_active),
            id=orm.id,
        )

    @staticmethod
    def _forecast_to_domain(orm: OrmRegleForecast) -> ForecastRule | None:
        try:
            rule_type = ForecastRuleType(orm.type)
            category = RoundCategory(orm.category)
        except ValueError:
            logger.warning(
                "Regle forecast %s ignoree: type %r / categorie %r inconnus",
                orm.id, orm.type, orm.category,
            )
            return None
        return ForecastRule(
            name=orm.name,
            type=rule_type,
            keywords=_json_list(orm.keywords_json),
            category=category,
            is_active=bool(orm.is_active),
            id=orm.id,
        )
