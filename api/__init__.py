"""
FastAPI application exposing the allocation optimizer to the surrounding application.

- POST /optimize: run the genetic optimizer on a task/resource snapshot
- GET /health: liveness probe
"""

import logging
import time
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from allocator.models import AllocationPlan, OptimizationResult
from allocator.services.genetic_optimizer import InvalidInputError, optimize_allocation
from utils.data_converters import (
    convert_config,
    convert_constraints,
    convert_resources,
    convert_tasks,
)

logger = logging.getLogger(__name__)


# MARK: - Pydantic Models for API


class CamelModel(BaseModel):
    """Accepts camelCase (as exported by the client) or snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskIn(CamelModel):
    task_id: str
    project_id: str = ""
    start_date: datetime
    end_date: datetime
    base_cost: float = 0.0
    required_skills: List[str] = []
    name: Optional[str] = None


class ResourceIn(CamelModel):
    resource_id: str
    type: str
    name: Optional[str] = None
    cost_rate: float
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    skills: List[str] = []


class ConstraintsIn(CamelModel):
    budget_limit: Optional[float] = None
    deadline: Optional[datetime] = None
    required_skills: List[str] = []


class ConfigIn(CamelModel):
    population_size: Optional[int] = None
    max_generations: Optional[int] = None
    mutation_rate: Optional[float] = None
    crossover_rate: Optional[float] = None
    elitism_rate: Optional[float] = None
    tournament_size: Optional[int] = None
    convergence_threshold: Optional[float] = None
    convergence_window: Optional[int] = None
    parallel_workers: Optional[int] = None
    time_limit_seconds: Optional[float] = None
    seed: Optional[int] = None
    optimization_goal: Optional[str] = None


class OptimizationRequest(CamelModel):
    tasks: List[TaskIn]
    resources: List[ResourceIn]
    constraints: Optional[ConstraintsIn] = None
    config: Optional[ConfigIn] = None


class RecommendedResourceOut(BaseModel):
    resource_id: str
    resource_name: str
    resource_kind: str
    allocation_percentage: float
    start_time: str  # ISO datetime
    end_time: str  # ISO datetime
    estimated_cost: float


class RecommendationOut(BaseModel):
    task_id: str
    task_name: str
    project_id: str
    estimated_cost: float
    estimated_duration_hours: float
    is_critical: bool
    resources: List[RecommendedResourceOut]


class WarningOut(BaseModel):
    severity: str
    category: str
    message: str
    recommended_action: str
    affected_task_ids: List[str]
    affected_resource_ids: List[str]
    cost_impact: Optional[float] = None
    time_impact_hours: Optional[float] = None


class AlternativeOut(BaseModel):
    scenario_id: str
    name: str
    description: str
    total_cost: float
    average_utilization: float
    fitness: float


class MetricsOut(BaseModel):
    baseline_cost: float
    total_cost: float
    cost_savings: float
    cost_savings_percentage: float
    average_utilization: float
    feasibility_score: float


class OptimizationResponse(BaseModel):
    status: str
    message: str
    termination: str
    confidence_score: float
    fitness_score: float
    generations_executed: int
    convergence_generation: Optional[int] = None
    runtime: float
    critical_task_ids: List[str]
    metrics: MetricsOut
    recommendations: List[RecommendationOut]
    warnings: List[WarningOut]
    alternatives: List[AlternativeOut]


# MARK: - FastAPI App

app = FastAPI(title="Allocation Optimizer", version="1.0.0")


# MARK: - Helper Functions


def build_response(
    result: OptimizationResult, plan: AllocationPlan, runtime: float
) -> OptimizationResponse:
    critical = set(plan.scheduling_plan.critical_task_ids)
    recommendations = [
        RecommendationOut(
            task_id=recommendation.task_id,
            task_name=recommendation.task_name,
            project_id=recommendation.project_id,
            estimated_cost=recommendation.estimated_cost,
            estimated_duration_hours=recommendation.estimated_duration_hours,
            is_critical=recommendation.task_id in critical,
            resources=[
                RecommendedResourceOut(
                    resource_id=resource.resource_id,
                    resource_name=resource.resource_name,
                    resource_kind=resource.resource_kind.value,
                    allocation_percentage=resource.allocation_percentage,
                    start_time=resource.start.isoformat(),
                    end_time=resource.end.isoformat(),
                    estimated_cost=resource.estimated_cost,
                )
                for resource in recommendation.recommended_resources
            ],
        )
        for recommendation in plan.recommendations
    ]
    warnings = [
        WarningOut(
            severity=warning.severity.value,
            category=warning.category.value,
            message=warning.message,
            recommended_action=warning.recommended_action,
            affected_task_ids=list(warning.affected_task_ids),
            affected_resource_ids=list(warning.affected_resource_ids),
            cost_impact=warning.cost_impact,
            time_impact_hours=warning.time_impact_hours,
        )
        for warning in plan.warnings
    ]
    metrics = plan.metrics
    return OptimizationResponse(
        status=plan.status.value,
        message=f"Allocated {len(plan.recommendations)} tasks in {result.generations_executed} generations",
        termination=result.termination.value,
        confidence_score=plan.confidence_score,
        fitness_score=result.best_fitness,
        generations_executed=result.generations_executed,
        convergence_generation=result.convergence_generation,
        runtime=runtime,
        critical_task_ids=list(plan.scheduling_plan.critical_task_ids),
        metrics=MetricsOut(
            baseline_cost=metrics.baseline_cost,
            total_cost=metrics.total_cost,
            cost_savings=metrics.cost_savings,
            cost_savings_percentage=metrics.cost_savings_percentage,
            average_utilization=metrics.average_utilization,
            feasibility_score=metrics.feasibility_score,
        ),
        recommendations=recommendations,
        warnings=warnings,
        alternatives=[
            AlternativeOut(
                scenario_id=alternative.scenario_id,
                name=alternative.name,
                description=alternative.description,
                total_cost=alternative.total_cost,
                average_utilization=alternative.average_utilization,
                fitness=alternative.fitness,
            )
            for alternative in plan.alternatives
        ],
    )


# MARK: - Endpoints


@app.post("/optimize", response_model=OptimizationResponse)
def optimize(request: OptimizationRequest):
    """Run the genetic optimizer on the submitted snapshot."""
    start_time = time.time()
    try:
        tasks = convert_tasks([task.model_dump() for task in request.tasks])
        resources = convert_resources([resource.model_dump() for resource in request.resources])
        constraints = convert_constraints(
            request.constraints.model_dump() if request.constraints else None
        )
        config = convert_config(request.config.model_dump() if request.config else None)

        logger.info(
            f"🧬 Optimizing {len(tasks)} tasks with {len(resources)} resources "
            f"(population={config.population_size}, generations={config.max_generations})"
        )
        result, plan = optimize_allocation(
            tasks,
            resources,
            constraints,
            config=config,
            enable_evolution_logging=False,
        )
    except (InvalidInputError, ValueError) as e:
        logger.warning(f"Rejected optimization request: {e}")
        raise HTTPException(status_code=422, detail=str(e))

    runtime = time.time() - start_time
    logger.info(
        f"✅ Optimization finished: {result.termination.value}, fitness {result.best_fitness:.4f}, "
        f"{runtime:.2f}s"
    )
    return build_response(result, plan, runtime)


@app.get("/health")
def health():
    return {"status": "ok"}
