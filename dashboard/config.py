"""YAML configuration: database URL, log level and default rule sets."""

from __future__ import annotations

import logging
import os

import yaml
from sqlalchemy import select
from sqlalchemy.orm import Session

from dashboard.adapters.outbound.sqlalchemy_models import (
    RegleDepot,
    RegleForecast,
    RegleTransporteur,
)
from dashboard.adapters.outbound.sqlalchemy_repos import SqlAlchemyRuleRepository
from domain.models import (
    CarrierRule,
    DepotRule,
    ForecastRule,
    ForecastRuleType,
    HubCategory,
    MatchType,
    RoundCategory,
    RuleSet,
)

logger = logging.getLogger(__name__)

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


def load_config(path: str | None = None) -> dict:
    """Load the YAML config from ``path``, $QUALITE_CONFIG or the bundled file.

    ``DATABASE_URL`` in the environment overrides ``database.url``.
    """
    path = path or os.environ.get("QUALITE_CONFIG", CONFIG_PATH)
    with open(path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if os.environ.get("DATABASE_URL"):
        config.setdefault("database", {})["url"] = os.environ["DATABASE_URL"]
    return config


def configure_logging(config: dict) -> None:
    level = config.get("logging", {}).get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _as_tuple(values) -> tuple[str, ...]:
    if isinstance(values, str):
        values = [values]
    return tuple(str(v) for v in values or [] if v is not None)


def _depot_rule(entry: dict) -> DepotRule | None:
    category = HubCategory.parse(entry.get("type"))
    if category is None or not entry.get("depot_name"):
        return None
    return DepotRule(
        depot_name=str(entry["depot_name"]),
        type=category,
        prefixes=_as_tuple(entry.get("prefixes")),
        is_active=bool(entry.get("is_active", True)),
    )


def _carrier_rule(entry: dict) -> CarrierRule | None:
    try:
        match_type = MatchType(entry.get("type"))
        priority = int(entry.get("priority", 100))
    except (TypeError, ValueError):
        return None
    if not entry.get("carrier") or entry.get("value") in (None, ""):
        return None
    return CarrierRule(
        carrier=str(entry["carrier"]),
        type=match_type,
        value=str(entry["value"]),
        priority=priority,
        is_active=bool(entry.get("is_active", True)),
    )


def _forecast_rule(entry: dict) -> ForecastRule | None:
    try:
        rule_type = ForecastRuleType(entry.get("type"))
        category = RoundCategory(entry.get("category"))
    except ValueError:
        return None
    return ForecastRule(
        name=str(entry.get("name") or category.value),
        type=rule_type,
        keywords=_as_tuple(entry.get("keywords")),
        category=category,
        is_active=bool(entry.get("is_active", True)),
    )


def _parse_rules(entries, parser, label: str) -> tuple:
    rules = []
    for entry in entries or []:
        rule = parser(entry) if isinstance(entry, dict) else None
        if rule is None:
            logger.warning("Regle %s invalide ignoree: %r", label, entry)
            continue
        rules.append(rule)
    return tuple(rules)


def rule_set_from_config(config: dict) -> RuleSet:
    """Build a RuleSet from the ``rules`` section, skipping invalid entries."""
    rules = config.get("rules", {}) or {}
    return RuleSet(
        depot_rules=_parse_rules(rules.get("depots"), _depot_rule, "depot"),
        carrier_rules=_parse_rules(rules.get("carriers"), _carrier_rule, "transporteur"),
        forecast_rules=_parse_rules(rules.get("forecast"), _forecast_rule, "forecast"),
    )


def seed_rules(session: Session, config: dict) -> dict:
    """Store the configured rules for every rule table that is still empty."""
    repo = SqlAlchemyRuleRepository(session)
    rule_set = rule_set_from_config(config)
    seeded = {"depots": 0, "carriers": 0, "forecast": 0}

    if session.scalars(select(RegleDepot.id)).first() is None:
        for rule in rule_set.depot_rules:
            repo.save_depot_rule(rule)
            seeded["depots"] += 1
    if session.scalars(select(RegleTransporteur.id)).first() is None:
        for rule in rule_set.carrier_rules:
            repo.save_carrier_rule(rule)
            seeded["carriers"] += 1
    if session.scalars(select(RegleForecast.id)).first() is None:
        for rule in rule_set.forecast_rules:
            repo.save_forecast_rule(rule)
            seeded["forecast"] += 1

    logger.info("Regles initialisees: %s", seeded)
    return seeded
