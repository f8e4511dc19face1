from datetime import datetime, timedelta

import pytest
from rich.console import Console

from allocator.common.console import get_console
from allocator.models import ConstraintSet, Resource, ResourceKind, Task
from allocator.services.genetic_optimizer import GeneticAlgorithmConfig


@pytest.fixture
def console() -> Console:
    return get_console("quiet")


@pytest.fixture
def day_one() -> datetime:
    """Midnight two days from now, so deadlines built on it lie in the future."""
    return (datetime.now() + timedelta(days=2)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )


@pytest.fixture
def single_task(day_one) -> Task:
    return Task(
        task_id="task-1",
        project_id="project-1",
        start=day_one,
        end=day_one + timedelta(days=1),
        base_cost=1000.0,
        name="Pour foundation",
    )


@pytest.fixture
def single_resource() -> Resource:
    return Resource(
        resource_id="worker-1",
        kind=ResourceKind.WORKER,
        name="Alice",
        cost_rate=500.0,
    )


@pytest.fixture
def small_config() -> GeneticAlgorithmConfig:
    return GeneticAlgorithmConfig(
        population_size=10,
        max_generations=20,
        parallel_workers=1,
        seed=7,
    )


@pytest.fixture
def impossible_budget() -> ConstraintSet:
    return ConstraintSet(budget_limit=1.0)
