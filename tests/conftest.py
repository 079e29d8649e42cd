from datetime import datetime, timedelta, timezone

import pytest

from approvals.blueprint import build_blueprint
from approvals.config import get_settings
from approvals.schema import TaskDefinition
from approvals.tracker import instantiate_pipeline

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def make_task(task_id, duration, deps=(), **kwargs):
    return TaskDefinition(
        id=task_id,
        name=kwargs.pop("name", f"Service {task_id}"),
        duration_days=duration,
        dependencies=list(deps),
        **kwargs
    )


def days(n, hours=0):
    return T0 + timedelta(days=n, hours=hours)


@pytest.fixture
def abc_catalog():
    """A(3) -> B(5), A(3) -> C(2)"""
    return [
        make_task("A", 3, authority="RJSC"),
        make_task("B", 5, ["A"], authority="NBR"),
        make_task("C", 2, ["A"], authority="NBR"),
    ]


@pytest.fixture
def abc_blueprint(abc_catalog):
    return build_blueprint(abc_catalog)


@pytest.fixture
def abc_state(abc_blueprint):
    return instantiate_pipeline(abc_blueprint, "case-abc", T0)


@pytest.fixture
def single_state():
    """One ten-day task with no prerequisites"""
    blueprint = build_blueprint([make_task("T", 10)])
    return instantiate_pipeline(blueprint, "case-t", T0)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
