"""Deterministic benchmarking harness for the allocation optimizer."""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from allocator.common.console import get_console  # noqa: E402
from allocator.models import ConstraintSet  # noqa: E402
from allocator.services.genetic_optimizer import (  # noqa: E402
    GeneticAlgorithmConfig,
    optimize_allocation,
)
from tests.fixtures.synthetic_workloads import generate_workload  # noqa: E402


def _run_iteration(
    task_count: int,
    resource_count: int,
    config: GeneticAlgorithmConfig,
    iteration: int,
) -> Dict[str, Any]:
    tasks, resources = generate_workload(task_count, resource_count)
    started = time.perf_counter()
    result, plan = optimize_allocation(
        tasks,
        resources,
        ConstraintSet(),
        config=config,
        enable_evolution_logging=False,
    )
    return {
        "iteration": iteration,
        "tasks": len(tasks),
        "resources": len(resources),
        "generations": result.generations_executed,
        "termination": result.termination.value,
        "best_fitness": round(result.best_fitness, 6),
        "total_cost": round(plan.metrics.total_cost, 2),
        "warnings": len(plan.warnings),
        "seconds": round(time.perf_counter() - started, 3),
    }


def run_benchmark(
    task_count: int,
    resource_count: int,
    iterations: int,
    config: GeneticAlgorithmConfig,
) -> Dict[str, Any]:
    summary: List[Dict[str, Any]] = []
    for iteration in range(1, iterations + 1):
        summary.append(_run_iteration(task_count, resource_count, config, iteration))

    return {
        "tasks": task_count,
        "resources": resource_count,
        "iterations": iterations,
        "population_size": config.population_size,
        "max_generations": config.max_generations,
        "parallel_workers": config.parallel_workers,
        "results": summary,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--tasks", type=int, default=50, help="Number of synthetic tasks")
    parser.add_argument("--resources", type=int, default=20, help="Number of synthetic resources")
    parser.add_argument(
        "--iterations",
        type=int,
        default=3,
        help="Number of benchmark iterations to execute",
    )
    parser.add_argument("--population", type=int, default=100)
    parser.add_argument("--generations", type=int, default=200)
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Fitness worker processes (defaults to ALLOCATOR_PARALLEL_WORKERS or CPU count)",
    )
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    config = GeneticAlgorithmConfig(
        population_size=args.population,
        max_generations=args.generations,
        parallel_workers=args.workers,
        seed=args.seed,
    )

    console = get_console()
    result = run_benchmark(args.tasks, args.resources, max(1, args.iterations), config)

    console.print("[bold cyan]Allocation optimizer benchmark summary[/bold cyan]")
    console.print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
