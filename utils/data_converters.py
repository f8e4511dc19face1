"""
Data conversion utilities for turning project snapshots into optimizer inputs.

The surrounding application exports tasks and resources as camelCase JSON
(``taskId``, ``startDate``, ``costRate`` ...). Scripts and tests tend to use
snake_case. Both spellings are accepted for every field.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from allocator.models import ConstraintSet, Resource, ResourceKind, Task
from allocator.services.fitness import FitnessWeights, OptimizationObjective
from allocator.services.genetic_optimizer import GeneticAlgorithmConfig

logger = logging.getLogger(__name__)

_MISSING = object()

# Resource types exported by the client under other names
RESOURCE_KIND_ALIASES = {
    "human": ResourceKind.WORKER,
    "labor": ResourceKind.WORKER,
}

OBJECTIVE_ALIASES = {
    "minimize_cost": OptimizationObjective.MINIMIZE_COST,
    "maximize_utilization": OptimizationObjective.MAXIMIZE_UTILIZATION,
    "composite": OptimizationObjective.COMPOSITE,
    "balanced": OptimizationObjective.COMPOSITE,
}


def _get(data: Dict[str, Any], *keys: str, default: Any = _MISSING) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    if default is _MISSING:
        raise ValueError(f"Missing required field '{keys[0]}'")
    return default


def parse_datetime(value) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (a trailing ``Z`` is read as UTC)."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValueError(f"Invalid datetime '{value}'") from e


def convert_resource_kind(value) -> ResourceKind:
    if isinstance(value, ResourceKind):
        return value
    key = str(value).lower()
    if key in RESOURCE_KIND_ALIASES:
        return RESOURCE_KIND_ALIASES[key]
    try:
        return ResourceKind(key)
    except ValueError as e:
        raise ValueError(f"Unknown resource type '{value}'") from e


def convert_tasks(data) -> List[Task]:
    """
    Convert task records into ``Task`` values.
    """
    # Handle both wrapped and direct array formats
    if isinstance(data, dict):
        task_list = data.get("tasks", [])
    else:
        task_list = list(data or [])

    logger.debug(f"🔄 Converting {len(task_list)} tasks...")

    tasks = []
    for task_data in task_list:
        tasks.append(
            Task(
                task_id=str(_get(task_data, "task_id", "taskId", "id")),
                project_id=str(_get(task_data, "project_id", "projectId", default="")),
                start=parse_datetime(_get(task_data, "start", "start_date", "startDate")),
                end=parse_datetime(_get(task_data, "end", "end_date", "endDate")),
                base_cost=float(
                    _get(task_data, "base_cost", "baseCost", "estimated_cost", "estimatedCost", default=0.0)
                ),
                required_skills=tuple(
                    _get(task_data, "required_skills", "requiredSkills", default=())
                ),
                name=_get(task_data, "name", "title", default=None),
            )
        )
    return tasks


def convert_resources(data) -> List[Resource]:
    """
    Convert resource records into ``Resource`` values.
    """
    if isinstance(data, dict):
        resource_list = data.get("resources", data.get("availableResources", []))
    else:
        resource_list = list(data or [])

    logger.debug(f"🔄 Converting {len(resource_list)} resources...")

    resources = []
    for resource_data in resource_list:
        resource_id = str(_get(resource_data, "resource_id", "resourceId", "id"))
        resources.append(
            Resource(
                resource_id=resource_id,
                kind=convert_resource_kind(
                    _get(resource_data, "kind", "type", "resource_type", "resourceType")
                ),
                name=_get(resource_data, "name", "resource_name", "resourceName", default=resource_id),
                cost_rate=float(
                    _get(resource_data, "cost_rate", "costRate", "daily_rate", "dailyRate")
                ),
                available_from=parse_datetime(
                    _get(resource_data, "available_from", "availableFrom", default=None)
                ),
                available_until=parse_datetime(
                    _get(resource_data, "available_until", "availableUntil", default=None)
                ),
                skills=tuple(_get(resource_data, "skills", default=())),
            )
        )
    return resources


def convert_constraints(data: Optional[Dict[str, Any]]) -> ConstraintSet:
    if not data:
        return ConstraintSet()
    budget = _get(data, "budget_limit", "budgetLimit", default=None)
    return ConstraintSet(
        budget_limit=float(budget) if budget is not None else None,
        deadline=parse_datetime(_get(data, "deadline", default=None)),
        required_skills=tuple(_get(data, "required_skills", "requiredSkills", default=())),
    )


def convert_objective(value) -> OptimizationObjective:
    if isinstance(value, OptimizationObjective):
        return value
    raw = str(value)
    if raw.isupper():
        key = raw.lower()
    else:
        # camelCase goals such as "minimizeCost" become "minimize_cost"
        key = "".join("_" + c.lower() if c.isupper() else c for c in raw).lstrip("_")
    if key not in OBJECTIVE_ALIASES:
        raise ValueError(f"Unknown optimization goal '{value}'")
    return OBJECTIVE_ALIASES[key]


def convert_config(data: Optional[Dict[str, Any]]) -> GeneticAlgorithmConfig:
    """Build a ``GeneticAlgorithmConfig``; absent fields keep their defaults."""
    config = GeneticAlgorithmConfig()
    if not data:
        return config

    fields = {
        "population_size": (int, "population_size", "populationSize"),
        "max_generations": (int, "max_generations", "maxGenerations"),
        "mutation_rate": (float, "mutation_rate", "mutationRate"),
        "crossover_rate": (float, "crossover_rate", "crossoverRate"),
        "elitism_rate": (float, "elitism_rate", "elitismRate"),
        "tournament_size": (int, "tournament_size", "tournamentSize"),
        "convergence_threshold": (float, "convergence_threshold", "convergenceThreshold"),
        "convergence_window": (int, "convergence_window", "convergenceWindow"),
        "parallel_workers": (int, "parallel_workers", "parallelWorkers"),
        "time_limit_seconds": (float, "time_limit_seconds", "timeLimitSeconds"),
        "seed": (int, "seed"),
    }
    for attribute, (cast, *keys) in fields.items():
        value = _get(data, *keys, default=None)
        if value is not None:
            setattr(config, attribute, cast(value))

    goal = _get(data, "objective", "optimization_goal", "optimizationGoal", default=None)
    if goal is not None:
        config.objective = convert_objective(goal)

    weights = _get(data, "fitness_weights", "fitnessWeights", default=None)
    if weights:
        config.fitness_weights = FitnessWeights(
            cost_weight=float(_get(weights, "cost_weight", "costWeight", default=0.4)),
            utilization_weight=float(
                _get(weights, "utilization_weight", "utilizationWeight", default=0.4)
            ),
            violation_weight=float(_get(weights, "violation_weight", "violationWeight", default=0.1)),
            baseline=float(_get(weights, "baseline", default=0.2)),
            predictor_weight=float(_get(weights, "predictor_weight", "predictorWeight", default=0.0)),
        )
    return config
