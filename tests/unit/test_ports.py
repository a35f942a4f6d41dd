import pytest

from dashboard.adapters.outbound.sqlalchemy_repos import (
    SqlAlchemyRoundRepository,
    SqlAlchemyRuleRepository,
    SqlAlchemyTaskRepository,
)
from domain.ports import RoundRepository, RuleRepository, TaskRepository


@pytest.mark.parametrize("port", [TaskRepository, RoundRepository, RuleRepository])
def test_ports_are_abstract(port):
    with pytest.raises(TypeError):
        port()


@pytest.mark.parametrize(
    "adapter, port",
    [
        (SqlAlchemyTaskRepository, TaskRepository),
        (SqlAlchemyRoundRepository, RoundRepository),
        (SqlAlchemyRuleRepository, RuleRepository),
    ],
)
def test_adapters_implement_ports(adapter, port):
    assert issubclass(adapter, port)
    assert not adapter.__abstractmethods__
