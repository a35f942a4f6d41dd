"""Domain classification rules, pure functions with zero external dependencies.

Only stdlib and domain.models imports allowed.

Resolves the driver, depot, hub category, carrier and round category of a
task or round from externally supplied rules. A missing field or an empty
rule set always degrades to a default value, never to an exception.
"""

from __future__ import annotations

from collections.abc import Mapping

from domain.models import (
    STORE_DEPOT,
    UNKNOWN,
    CarrierRule,
    DepotRule,
    ForecastRule,
    ForecastRuleType,
    HubCategory,
    MatchType,
    RoundCategorization,
    RoundCategory,
)


def _field(item, *names):
    """Read the first non-None attribute (or mapping key) among ``names``."""
    for name in names:
        if isinstance(item, Mapping):
            value = item.get(name)
        else:
            value = getattr(item, name, None)
        if value is not None:
            return value
    return None


def _join_names(first, last) -> str:
    parts = [str(p).strip() for p in (first, last) if p]
    return " ".join(p for p in parts if p)


def resolve_driver_name(item) -> str:
    """Return the display name of the driver assigned to a task or round.

    Resolution order:
    1. A plain string is returned verbatim.
    2. The nested driver object (``livreur``, or ``driver`` in raw exports).
    3. The flat ``prenom_chauffeur`` / ``nom_chauffeur`` fields.
    4. ``"Unknown"``.
    """
    if isinstance(item, str):
        return item
    if item is None:
        return UNKNOWN

    nested = _field(item, "livreur", "driver")
    if nested is not None:
        name = _join_names(
            _field(nested, "prenom", "firstName"),
            _field(nested, "nom", "lastName"),
        )
        if name:
            return name

    name = _join_names(
        _field(item, "prenom_chauffeur", "prenomChauffeur"),
        _field(item, "nom_chauffeur", "nomChauffeur"),
    )
    return name or UNKNOWN


def _match_depot_rule(hub_name, depot_rules) -> DepotRule | None:
    """Return the first active rule with a prefix the hub name starts with."""
    if not hub_name:
        return None
    hub = str(hub_name).lower()
    for rule in depot_rules:
        if not rule.is_active:
            continue
        for prefix in rule.prefixes:
            prefix = (prefix or "").strip().lower()
            if prefix and hub.startswith(prefix):
                return rule
    return None


def resolve_hub_category(hub_name, depot_rules) -> HubCategory:
    """Return the category of the first matching rule, ``STORE`` by default.

    Rules are tested in the order supplied.
    """
    rule = _match_depot_rule(hub_name, depot_rules)
    if rule is None:
        return HubCategory.STORE
    return HubCategory.parse(rule.type, HubCategory.STORE)


def resolve_depot(hub_name, depot_rules) -> str:
    """Return the depot name of a warehouse hub, ``"Store"`` otherwise."""
    rule = _match_depot_rule(hub_name, depot_rules)
    if rule is None:
        return STORE_DEPOT
    if HubCategory.parse(rule.type) is HubCategory.WAREHOUSE:
        return rule.depot_name
    return STORE_DEPOT


def normalize_name(value) -> str:
    """Lowercase and remove every whitespace character."""
    return "".join(str(value or "").lower().split())


def _rule_matches(rule: CarrierRule, name: str) -> bool:
    value = normalize_name(rule.value)
    if not value:
        return False
    if rule.type is MatchType.SUFFIX:
        return name.endswith(value)
    if rule.type is MatchType.PREFIX:
        return name.startswith(value)
    if rule.type is MatchType.CONTAINS:
        return value in name
    return False


def resolve_carrier(item, carrier_rules) -> str:
    """Return the carrier a task, round or driver name is attributed to.

    A non-empty manual ``carrier_override`` wins over every rule. Otherwise
    the active rules are evaluated by ascending priority against the
    normalized driver name and the first match wins, whatever its match type.
    """
    if item is not None and not isinstance(item, str):
        override = _field(item, "carrier_override", "carrierOverride")
        if isinstance(override, str) and override.strip():
            return override

    driver_name = resolve_driver_name(item)
    if not driver_name or driver_name == UNKNOWN:
        return UNKNOWN

    name = normalize_name(driver_name)
    active = sorted(
        (r for r in carrier_rules if r.is_active),
        key=lambda r: r.priority,
    )
    for rule in active:
        if _rule_matches(rule, name):
            return rule.carrier
    return UNKNOWN


def categorize_round(tournee, forecast_rules) -> RoundCategorization:
    """Classify a round by shift (from its hub name) and type (from its name).

    The shift is the category of the first active ``time`` rule with a
    keyword contained in the hub name, limited to Matin and Soir. The type
    is BU when an active ``type`` rule of category BU has a keyword the
    round name starts with, Classique otherwise.
    """
    hub = str(_field(tournee, "nom_hub") or "").lower()
    round_name = str(_field(tournee, "nom") or "").lower()
    active = [r for r in forecast_rules if r.is_active]

    shift = None
    for rule in active:
        if rule.type is not ForecastRuleType.TIME:
            continue
        if rule.category not in (RoundCategory.MATIN, RoundCategory.SOIR):
            continue
        if hub and _any_keyword(rule, lambda k: k in hub):
            shift = rule.category
            break

    round_type = RoundCategory.CLASSIQUE
    if round_name:
        for rule in active:
            if rule.type is ForecastRuleType.TYPE and rule.category is RoundCategory.BU:
                if _any_keyword(rule, round_name.startswith):
                    round_type = RoundCategory.BU
                    break

    return RoundCategorization(shift=shift, type=round_type)


def _any_keyword(rule: ForecastRule, predicate) -> bool:
    for keyword in rule.keywords:
        keyword = (keyword or "").strip().lower()
        if keyword and predicate(keyword):
            return True
    return False
