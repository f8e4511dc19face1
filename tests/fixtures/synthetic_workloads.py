"""Synthetic workload generators for stress testing the allocation optimizer."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Sequence, Tuple

from allocator.models import Resource, ResourceKind, Task

_DEFAULT_START = datetime(2024, 1, 1, 8, 0, 0)

_KINDS: Sequence[ResourceKind] = (
    ResourceKind.WORKER,
    ResourceKind.WORKER,
    ResourceKind.EQUIPMENT,
    ResourceKind.MATERIAL,
)

_SKILLS = ("carpentry", "electrical", "plumbing", "concrete")


def generate_synthetic_tasks(
    task_count: int = 50,
    *,
    project_count: int = 3,
    start: datetime | None = None,
) -> List[Task]:
    """Create deterministic tasks with staggered windows of one to four days."""

    base_start = (start or _DEFAULT_START).replace(minute=0, second=0, microsecond=0)
    tasks: List[Task] = []
    for index in range(task_count):
        task_start = base_start + timedelta(days=index % 10, hours=(index % 3) * 2)
        task_end = task_start + timedelta(days=1 + index % 4)
        tasks.append(
            Task(
                task_id=f"task-{index:04d}",
                project_id=f"project-{index % max(1, project_count):02d}",
                start=task_start,
                end=task_end,
                base_cost=1000.0 + (index % 5) * 250.0,
                required_skills=(_SKILLS[index % len(_SKILLS)],) if index % 2 == 0 else (),
                name=f"Synthetic Task {index:04d}",
            )
        )
    return tasks


def generate_synthetic_resources(
    resource_count: int = 20,
    *,
    availability_days: int = 30,
    start: datetime | None = None,
) -> List[Resource]:
    """Generate a mixed pool of workers, equipment and materials."""

    base_start = (start or _DEFAULT_START).replace(hour=0, minute=0, second=0, microsecond=0)
    resources: List[Resource] = []
    for index in range(resource_count):
        kind = _KINDS[index % len(_KINDS)]
        resources.append(
            Resource(
                resource_id=f"{kind.value}-{index:04d}",
                kind=kind,
                name=f"{kind.value.title()} {index:04d}",
                cost_rate=200.0 + (index % 7) * 75.0,
                available_from=base_start,
                available_until=base_start + timedelta(days=availability_days),
                skills=(_SKILLS[index % len(_SKILLS)], _SKILLS[(index + 1) % len(_SKILLS)]),
            )
        )
    return resources


def generate_workload(
    task_count: int = 50,
    resource_count: int = 20,
    *,
    start: datetime | None = None,
) -> Tuple[List[Task], List[Resource]]:
    """Convenience helper returning tasks and a resource pool sharing one start date."""

    return (
        generate_synthetic_tasks(task_count, start=start),
        generate_synthetic_resources(resource_count, start=start),
    )
