"""Domain ports, abstract interfaces for the repositories feeding the pipeline.

Only stdlib (abc) and domain.models imports allowed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import CarrierRule, DepotRule, ForecastRule, RuleSet, Tache, Tournee


class TaskRepository(ABC):
    """Persistence port for delivery tasks."""

    @abstractmethod
    def save(self, tache: Tache) -> Tache: ...

    @abstractmethod
    def find_by_id(self, tache_id: str) -> Tache | None: ...

    @abstractmethod
    def list_all(self) -> list[Tache]: ...


class RoundRepository(ABC):
    """Persistence port for delivery rounds."""

    @abstractmethod
    def save(self, tournee: Tournee) -> Tournee: ...

    @abstractmethod
    def list_all(self) -> list[Tournee]: ...


class RuleRepository(ABC):
    """Persistence port for classification rules."""

    @abstractmethod
    def get_rule_set(self) -> RuleSet: ...

    @abstractmethod
    def save_depot_rule(self, rule: DepotRule) -> DepotRule: ...

    @abstractmethod
    def save_carrier_rule(self, rule: CarrierRule) -> CarrierRule: ...

    @abstractmethod
    def save_forecast_rule(self, rule: ForecastRule) -> ForecastRule: ...
