"""Domain models, pure Python with zero external dependencies.

Only stdlib imports allowed: dataclasses, datetime, enum.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

UNKNOWN = "Unknown"
STORE_DEPOT = "Store"
COMPLETED = "COMPLETED"


class HubCategory(Enum):
    """Category of a hub: a depot warehouse or a store."""

    WAREHOUSE = "warehouse"
    STORE = "store"

    @classmethod
    def parse(cls, value, default=None):
        """Accept enum values, English or legacy French spellings."""
        if isinstance(value, cls):
            return value
        aliases = {
            "warehouse": cls.WAREHOUSE,
            "entrepot": cls.WAREHOUSE,
            "store": cls.STORE,
            "magasin": cls.STORE,
        }
        return aliases.get(str(value or "").strip().lower(), default)


class MatchType(Enum):
    """How a carrier rule value is tested against a driver name."""

    SUFFIX = "suffix"
    PREFIX = "prefix"
    CONTAINS = "contains"


class ForecastRuleType(Enum):
    TIME = "time"
    TYPE = "type"


class RoundCategory(Enum):
    MATIN = "Matin"
    SOIR = "Soir"
    BU = "BU"
    CLASSIQUE = "Classique"


class AggregateLevel(Enum):
    CARRIER = "carrier"
    DEPOT = "depot"
    GLOBAL = "global"


class Punctuality(Enum):
    """Position of a closure timestamp relative to the grace window."""

    EARLY = "early"
    ON_TIME = "on_time"
    LATE = "late"


# ── Entities ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Livreur:
    """Nested driver object attached to a task or a round."""

    prenom: str | None = None
    nom: str | None = None
    id_externe: str | None = None


@dataclass(frozen=True)
class Tache:
    """A delivery task as exported by the routing platform.

    Timestamps are kept as received (ISO strings or datetimes) and parsed
    lazily by the statistics functions, so a malformed value only excludes
    the task from the rate that needs it.
    """

    tache_id: str
    livreur: Livreur | None = None
    prenom_chauffeur: str | None = None
    nom_chauffeur: str | None = None
    nom_hub: str | None = None
    progression: str | None = None
    status: str | None = None
    notation: float | None = None
    commentaire: str | None = None
    debut_creneau: str | datetime | None = None
    fin_creneau: str | datetime | None = None
    date_cloture: str | datetime | None = None
    complete_par: str | None = None
    adresse_correcte: bool | None = None
    sans_contact_force: bool | None = None
    nom_tournee: str | None = None
    date: str | datetime | None = None
    poids_kg: float | None = None
    carrier_override: str | None = None


@dataclass(frozen=True)
class Tournee:
    """A delivery round (route) with its vehicle capacity."""

    nom: str
    date: str | datetime | None = None
    nom_hub: str | None = None
    statut: str | None = None
    capacite_poids: float | None = None
    livreur: Livreur | None = None
    prenom_chauffeur: str | None = None
    nom_chauffeur: str | None = None
    carrier_override: str | None = None
    id: str | None = None


# ── Classification rules ───────────────────────────────────────────────


@dataclass(frozen=True)
class DepotRule:
    """Maps hub names starting with one of ``prefixes`` to a depot."""

    depot_name: str
    type: HubCategory
    prefixes: tuple[str, ...] = ()
    is_active: bool = True
    id: int | None = None


@dataclass(frozen=True)
class CarrierRule:
    """Attributes a driver to a carrier by matching the normalized name.

    Lower ``priority`` values are evaluated first.
    """

    carrier: str
    type: MatchType
    value: str
    priority: int = 100
    is_active: bool = True
    id: int | None = None


@dataclass(frozen=True)
class ForecastRule:
    name: str
    type: ForecastRuleType
    keywords: tuple[str, ...]
    category: RoundCategory
    is_active: bool = True
    id: int | None = None


@dataclass(frozen=True)
class RuleSet:
    """The classification rules in force for one computation."""

    depot_rules: tuple[DepotRule, ...] = ()
    carrier_rules: tuple[CarrierRule, ...] = ()
    forecast_rules: tuple[ForecastRule, ...] = ()


# ── Derived records ─────────────────────────────────────────────────────


@dataclass
class DriverStats:
    """Per-driver statistics. Rates are percentages or None (no denominator)."""

    name: str
    total_tasks: int = 0
    completed_tasks: int = 0
    total_ratings: int = 0
    average_rating: float | None = None
    punctuality_rate: float | None = None
    scanbac_rate: float | None = None
    forced_address_rate: float | None = None
    forced_contactless_rate: float | None = None
    total_alerts: int = 0
    score: float | None = None
    depot: str | None = None
    carrier: str | None = None

    @property
    def alert_rate(self) -> float:
        if self.total_ratings == 0:
            return 0.0
        return self.total_alerts / self.total_ratings * 100


@dataclass
class AggregateStats:
    """Carrier, depot or global rollup of the statistics below it."""

    name: str
    level: AggregateLevel
    total_tasks: int = 0
    completed_tasks: int = 0
    total_ratings: int = 0
    average_rating: float | None = None
    punctuality_rate: float | None = None
    scanbac_rate: float | None = None
    forced_address_rate: float | None = None
    forced_contactless_rate: float | None = None
    total_alerts: int = 0
    alert_rate: float = 0.0
    score: float = 0.0
    children: list[AggregateStats | DriverStats] = field(default_factory=list)


@dataclass(frozen=True)
class PunctualityCheck:
    status: Punctuality
    minutes: int = 0


@dataclass(frozen=True)
class PunctualityBreakdown:
    eligible: int = 0
    early: int = 0
    on_time: int = 0
    late: int = 0
    late_over_1h: int = 0

    @property
    def rate(self) -> float | None:
        if self.eligible == 0:
            return None
        return self.on_time / self.eligible * 100

    @property
    def late_over_1h_rate(self) -> float | None:
        if self.eligible == 0:
            return None
        return self.late_over_1h / self.eligible * 100


@dataclass
class DriverAlert:
    name: str
    alert_count: int = 0
    total_ratings: int = 0
    average_rating: float | None = None
    comment_categories: dict[str, int] = field(default_factory=dict)


@dataclass
class CarrierAlerts:
    name: str
    drivers: list[DriverAlert] = field(default_factory=list)

    @property
    def alert_count(self) -> int:
        return sum(d.alert_count for d in self.drivers)


@dataclass
class DepotAlerts:
    name: str
    carriers: list[CarrierAlerts] = field(default_factory=list)

    @property
    def alert_count(self) -> int:
        return sum(c.alert_count for c in self.carriers)


@dataclass(frozen=True)
class DashboardSummary:
    """Headline figures over a whole task list.

    Failed tasks are counted from either the progression or the status.
    ``quality_alerts`` counts every rated task at 3 or below, completed or not.
    """

    total_tasks: int
    completed_tasks: int
    failed_tasks: int
    pending_tasks: int
    total_ratings: int
    average_rating: float | None
    quality_alerts: int
    punctuality: PunctualityBreakdown
    scanbac_rate: float | None
    forced_address_rate: float | None
    forced_contactless_rate: float | None
    tasks_by_status: dict[str, int] = field(default_factory=dict)
    tasks_by_progression: dict[str, int] = field(default_factory=dict)
    top_five_star_drivers: list[tuple[str, int]] = field(default_factory=list)

    @property
    def failed_delivery_rate(self) -> float | None:
        if self.total_tasks == 0:
            return None
        return self.failed_tasks / self.total_tasks * 100

    @property
    def rating_rate(self) -> float | None:
        if self.completed_tasks == 0:
            return None
        return self.total_ratings / self.completed_tasks * 100


@dataclass(frozen=True)
class QualityReport:
    drivers: list[DriverStats]
    tree: AggregateStats
    alerts: list[DepotAlerts]
    summary: DashboardSummary


@dataclass
class ForecastTotals:
    total: int = 0
    matin: int = 0
    soir: int = 0
    bu: int = 0
    classique: int = 0

    def add(self, other: ForecastTotals) -> None:
        self.total += other.total
        self.matin += other.matin
        self.soir += other.soir
        self.bu += other.bu
        self.classique += other.classique


@dataclass(frozen=True)
class RoundCategorization:
    shift: RoundCategory | None
    type: RoundCategory


@dataclass
class DepotForecast:
    name: str
    totals: ForecastTotals = field(default_factory=ForecastTotals)
    by_carrier: dict[str, ForecastTotals] = field(default_factory=dict)


@dataclass(frozen=True)
class ForecastReport:
    totals: ForecastTotals
    by_depot: list[DepotForecast]
    by_carrier: dict[str, ForecastTotals]


@dataclass(frozen=True)
class OverweightRound:
    """Read-only result: a round whose loaded weight exceeds its capacity."""

    round: Tournee
    total_weight: float
    capacity: float

    @property
    def deviation(self) -> float:
        return self.total_weight - self.capacity


@dataclass(frozen=True)
class DepotOverload:
    name: str
    total_rounds: int
    overweight_rounds: int

    @property
    def overload_rate(self) -> float:
        if self.total_rounds == 0:
            return 0.0
        return self.overweight_rounds / self.total_rounds * 100


@dataclass(frozen=True)
class OverweightReport:
    deviations: list[OverweightRound]
    by_depot: list[DepotOverload]
