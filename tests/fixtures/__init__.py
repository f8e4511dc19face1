"""Helper fixtures for constructing deterministic allocation workloads."""

from .synthetic_workloads import (
    generate_synthetic_resources,
    generate_synthetic_tasks,
    generate_workload,
)

__all__ = [
    "generate_synthetic_resources",
    "generate_synthetic_tasks",
    "generate_workload",
]
