"""
Turns the winning genome of an optimization run into an allocation plan.

Everything here is a deterministic transform of ``OptimizationResult``: no
search, no randomness. The plan carries per-task recommendations, a scheduling
plan with critical tasks, aggregate metrics, constraint warnings and
alternative scenarios drawn from the final population.
"""

from collections import OrderedDict
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from allocator.models import (
    SECONDS_PER_HOUR,
    Allocation,
    AllocationPlan,
    AlternativeScenario,
    ConstraintSet,
    OptimizationMetrics,
    OptimizationResult,
    OptimizationWarning,
    PlanStatus,
    RecommendedResource,
    Resource,
    ResourceRecommendation,
    ResourceUtilization,
    SchedulingPlan,
    Task,
    TaskSchedule,
    WarningCategory,
    WarningSeverity,
)
from allocator.services.fitness import (
    FitnessWeights,
    latest_end,
    misses_deadline,
    total_cost,
    violation_penalty,
)

BUDGET_WARNING_RATIO = 0.95

CriticalPredicate = Callable[[TaskSchedule], bool]


def zero_slack(schedule: TaskSchedule) -> bool:
    return schedule.slack_hours <= 0


def _hours(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_HOUR


class ResultSynthesizer:
    def __init__(
        self,
        critical_predicate: Optional[CriticalPredicate] = None,
        weights: Optional[FitnessWeights] = None,
    ):
        self.critical_predicate = critical_predicate or zero_slack
        self.weights = weights or FitnessWeights()

    def synthesize(
        self,
        result: OptimizationResult,
        tasks: Sequence[Task],
        resources: Sequence[Resource],
        constraints: Optional[ConstraintSet] = None,
    ) -> AllocationPlan:
        constraints = constraints or ConstraintSet()
        genome = result.best_individual.genome
        resources_by_id = {resource.resource_id: resource for resource in resources}
        by_task = self.group_by_task(genome, tasks)

        warnings = self.detect_warnings(genome, tasks, resources_by_id, constraints)
        if result.interrupted:
            status = PlanStatus.INTERRUPTED
        elif any(w.severity is WarningSeverity.CRITICAL for w in warnings):
            status = PlanStatus.PARTIAL
        else:
            status = PlanStatus.SUCCESS

        return AllocationPlan(
            status=status,
            confidence_score=min(1.0, result.best_fitness),
            recommendations=self.build_recommendations(by_task, tasks, resources_by_id),
            scheduling_plan=self.build_scheduling_plan(by_task, tasks, resources_by_id, constraints),
            metrics=self.calculate_metrics(result, tasks, constraints),
            warnings=tuple(warnings),
            alternatives=self.generate_alternatives(result),
        )

    @staticmethod
    def group_by_task(
        genome: Sequence[Allocation], tasks: Sequence[Task]
    ) -> "OrderedDict[str, List[Allocation]]":
        """Group allocations by task, in input task order."""
        grouped: "OrderedDict[str, List[Allocation]]" = OrderedDict(
            (task.task_id, []) for task in tasks
        )
        for allocation in genome:
            grouped.setdefault(allocation.task_id, []).append(allocation)
        return grouped

    def build_recommendations(
        self,
        by_task: Dict[str, List[Allocation]],
        tasks: Sequence[Task],
        resources_by_id: Dict[str, Resource],
    ) -> tuple:
        recommendations = []
        for task in tasks:
            allocations = by_task.get(task.task_id) or []
            if not allocations:
                continue
            recommended = tuple(
                RecommendedResource(
                    resource_id=a.resource_id,
                    resource_name=self._resource_name(a.resource_id, resources_by_id),
                    resource_kind=a.resource_kind,
                    allocation_percentage=a.allocation_percentage,
                    start=a.start,
                    end=a.end,
                    estimated_cost=a.estimated_cost,
                )
                for a in allocations
            )
            recommendations.append(
                ResourceRecommendation(
                    task_id=task.task_id,
                    task_name=task.display_name,
                    project_id=task.project_id,
                    resource_kind=allocations[0].resource_kind,
                    recommended_resources=recommended,
                    estimated_cost=total_cost(allocations),
                    estimated_duration_hours=_hours(task.start, task.end),
                )
            )
        return tuple(recommendations)

    def build_scheduling_plan(
        self,
        by_task: Dict[str, List[Allocation]],
        tasks: Sequence[Task],
        resources_by_id: Dict[str, Resource],
        constraints: ConstraintSet,
    ) -> SchedulingPlan:
        all_allocations = [a for allocations in by_task.values() for a in allocations]
        plan_start = min(
            [task.start for task in tasks] + [a.start for a in all_allocations]
        )
        plan_end = max([task.end for task in tasks] + [a.end for a in all_allocations])
        slack_reference = constraints.deadline or plan_end

        schedules = []
        for task in tasks:
            allocations = by_task.get(task.task_id) or []
            start = min([a.start for a in allocations], default=task.start)
            end = max([a.end for a in allocations], default=task.end)
            schedule = TaskSchedule(
                task_id=task.task_id,
                task_name=task.display_name,
                start=start,
                end=end,
                duration_hours=_hours(start, end),
                slack_hours=_hours(end, slack_reference),
                assigned_resource_ids=tuple(
                    dict.fromkeys(a.resource_id for a in allocations)
                ),
                estimated_cost=total_cost(allocations),
            )
            schedules.append(
                replace(schedule, is_critical=bool(self.critical_predicate(schedule)))
            )

        return SchedulingPlan(
            tasks=tuple(schedules),
            critical_task_ids=tuple(s.task_id for s in schedules if s.is_critical),
            total_duration_hours=_hours(plan_start, plan_end),
            total_cost=total_cost(all_allocations),
            resource_utilization=self.resource_utilization(
                all_allocations, resources_by_id, _hours(plan_start, plan_end)
            ),
        )

    def resource_utilization(
        self,
        allocations: Sequence[Allocation],
        resources_by_id: Dict[str, Resource],
        horizon_hours: float,
    ) -> tuple:
        per_resource: "OrderedDict[str, List[Allocation]]" = OrderedDict()
        for allocation in allocations:
            per_resource.setdefault(allocation.resource_id, []).append(allocation)

        utilization = []
        for resource_id, assigned in per_resource.items():
            resource = resources_by_id.get(resource_id)
            allocated_hours = sum(
                a.duration_hours * a.allocation_percentage / 100.0 for a in assigned
            )
            if resource and resource.available_from and resource.available_until:
                available_hours = _hours(resource.available_from, resource.available_until)
            else:
                available_hours = horizon_hours
            utilization.append(
                ResourceUtilization(
                    resource_id=resource_id,
                    resource_name=self._resource_name(resource_id, resources_by_id),
                    resource_kind=assigned[0].resource_kind,
                    allocated_hours=allocated_hours,
                    available_hours=available_hours,
                    utilization_percentage=(
                        allocated_hours / available_hours * 100.0 if available_hours > 0 else 0.0
                    ),
                    task_ids=tuple(dict.fromkeys(a.task_id for a in assigned)),
                )
            )
        return tuple(utilization)

    def calculate_metrics(
        self,
        result: OptimizationResult,
        tasks: Sequence[Task],
        constraints: ConstraintSet,
    ) -> OptimizationMetrics:
        best = result.best_individual
        baseline = sum(task.base_cost for task in tasks)
        cost = best.total_cost
        return OptimizationMetrics(
            baseline_cost=baseline,
            total_cost=cost,
            cost_savings=max(0.0, baseline - cost),
            cost_savings_percentage=(baseline - cost) / baseline * 100.0 if baseline > 0 else 0.0,
            average_utilization=best.average_utilization,
            feasibility_score=max(
                0.0, 1.0 - violation_penalty(best.genome, constraints, self.weights)
            ),
            best_fitness=result.best_fitness,
            generations_executed=result.generations_executed,
            run_time_seconds=result.duration_seconds,
        )

    def detect_warnings(
        self,
        genome: Sequence[Allocation],
        tasks: Sequence[Task],
        resources_by_id: Dict[str, Resource],
        constraints: ConstraintSet,
    ) -> List[OptimizationWarning]:
        warnings: List[OptimizationWarning] = []

        cost = total_cost(genome)
        budget = constraints.budget_limit
        if budget is not None and cost > budget * BUDGET_WARNING_RATIO:
            exceeded = cost > budget
            warnings.append(
                OptimizationWarning(
                    severity=WarningSeverity.CRITICAL if exceeded else WarningSeverity.HIGH,
                    category=WarningCategory.BUDGET_OVERRUN,
                    message=(
                        f"Estimated cost {cost:,.2f} exceeds the budget limit {budget:,.2f}"
                        if exceeded
                        else f"Estimated cost {cost:,.2f} is within 5% of the budget limit {budget:,.2f}"
                    ),
                    recommended_action="Consider the cost-optimized alternative scenario",
                    affected_resource_ids=tuple(dict.fromkeys(a.resource_id for a in genome)),
                    cost_impact=cost - budget,
                )
            )

        if misses_deadline(genome, constraints):
            end = latest_end(genome)
            late_tasks = tuple(
                dict.fromkeys(a.task_id for a in genome if a.end > constraints.deadline)
            )
            warnings.append(
                OptimizationWarning(
                    severity=WarningSeverity.HIGH,
                    category=WarningCategory.SCHEDULE_DELAY,
                    message=(
                        f"{len(late_tasks)} task(s) finish after the deadline "
                        f"{constraints.deadline.isoformat()}"
                    ),
                    recommended_action="Reschedule or shorten the late tasks",
                    affected_task_ids=late_tasks,
                    time_impact_hours=_hours(constraints.deadline, end),
                )
            )

        warnings.extend(self._availability_warnings(genome, resources_by_id))
        warnings.extend(self._skill_warnings(genome, tasks, resources_by_id, constraints))
        return warnings

    def _availability_warnings(
        self, genome: Sequence[Allocation], resources_by_id: Dict[str, Resource]
    ) -> List[OptimizationWarning]:
        conflicts: "OrderedDict[str, List[str]]" = OrderedDict()
        for allocation in genome:
            resource = resources_by_id.get(allocation.resource_id)
            if resource is not None and not resource.covers(allocation.start, allocation.end):
                conflicts.setdefault(resource.resource_id, []).append(allocation.task_id)

        return [
            OptimizationWarning(
                severity=WarningSeverity.MEDIUM,
                category=WarningCategory.RESOURCE_CONFLICT,
                message=(
                    f"{self._resource_name(resource_id, resources_by_id)} is allocated "
                    f"outside its availability window"
                ),
                recommended_action="Adjust the task window or choose another resource",
                affected_task_ids=tuple(dict.fromkeys(task_ids)),
                affected_resource_ids=(resource_id,),
            )
            for resource_id, task_ids in conflicts.items()
        ]

    def _skill_warnings(
        self,
        genome: Sequence[Allocation],
        tasks: Sequence[Task],
        resources_by_id: Dict[str, Resource],
        constraints: ConstraintSet,
    ) -> List[OptimizationWarning]:
        warnings = []
        by_task = self.group_by_task(genome, tasks)
        for task in tasks:
            required = set(task.required_skills) | set(constraints.required_skills)
            if not required:
                continue
            offered = set()
            for allocation in by_task.get(task.task_id, []):
                resource = resources_by_id.get(allocation.resource_id)
                if resource is not None:
                    offered.update(resource.skills)
            missing = sorted(required - offered)
            if missing:
                warnings.append(
                    OptimizationWarning(
                        severity=WarningSeverity.MEDIUM,
                        category=WarningCategory.SKILL_GAP,
                        message=f"{task.display_name} lacks required skills: {', '.join(missing)}",
                        recommended_action="Assign a resource with the missing skills",
                        affected_task_ids=(task.task_id,),
                    )
                )
        return warnings

    @staticmethod
    def generate_alternatives(result: OptimizationResult) -> tuple:
        """Lowest-cost and highest-utilization individuals of the final generation."""
        population = result.final_population
        if not population:
            return ()
        cheapest = min(population, key=lambda individual: individual.total_cost)
        busiest = max(population, key=lambda individual: individual.average_utilization)
        return (
            AlternativeScenario(
                scenario_id="alt_cost_optimized",
                name="Cost Optimized",
                description="Lowest total cost in the final generation",
                total_cost=cheapest.total_cost,
                average_utilization=cheapest.average_utilization,
                fitness=cheapest.fitness,
            ),
            AlternativeScenario(
                scenario_id="alt_utilization_optimized",
                name="Utilization Optimized",
                description="Highest average allocation in the final generation",
                total_cost=busiest.total_cost,
                average_utilization=busiest.average_utilization,
                fitness=busiest.fitness,
            ),
        )

    @staticmethod
    def _resource_name(resource_id: str, resources_by_id: Dict[str, Resource]) -> str:
        resource = resources_by_id.get(resource_id)
        return resource.name if resource else "Unknown"
