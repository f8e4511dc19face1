from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

SECONDS_PER_DAY = 86400.0
SECONDS_PER_HOUR = 3600.0

# MARK: - Enums


class ResourceKind(Enum):
    WORKER = "worker"
    EQUIPMENT = "equipment"
    MATERIAL = "material"


class AllocationStatus(Enum):
    PLANNED = "planned"
    ALLOCATED = "allocated"
    IN_USE = "in_use"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TerminationReason(Enum):
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    INTERRUPTED = "interrupted"


class WarningSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class WarningCategory(Enum):
    RESOURCE_CONFLICT = "resource_conflict"
    BUDGET_OVERRUN = "budget_overrun"
    SCHEDULE_DELAY = "schedule_delay"
    SKILL_GAP = "skill_gap"


class PlanStatus(Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    INTERRUPTED = "interrupted"


# MARK: - Inputs


def _same_awareness(first: datetime, second: datetime) -> bool:
    return (first.tzinfo is None) == (second.tzinfo is None)


@dataclass(frozen=True)
class Task:
    task_id: str
    project_id: str
    start: datetime
    end: datetime
    base_cost: float = 0.0  # Unoptimized cost estimate, used as the savings baseline
    required_skills: tuple[str, ...] = ()
    name: Optional[str] = None

    def __post_init__(self):
        if not self.task_id:
            raise ValueError("Task requires a task_id")
        if not _same_awareness(self.start, self.end):
            raise ValueError(
                f"Task {self.task_id} mixes timezone-aware and naive start/end datetimes"
            )
        if self.end < self.start:
            raise ValueError(
                f"Task {self.task_id} ends ({self.end}) before it starts ({self.start})"
            )
        if self.base_cost < 0:
            raise ValueError(
                f"Task {self.task_id} has a negative base cost {self.base_cost}"
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def display_name(self) -> str:
        return self.name or self.task_id


@dataclass(frozen=True)
class Resource:
    resource_id: str
    kind: ResourceKind
    name: str
    cost_rate: float  # Currency per day at 100% allocation
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    skills: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.resource_id:
            raise ValueError("Resource requires a resource_id")
        if self.cost_rate < 0:
            raise ValueError(
                f"Resource {self.resource_id} has a negative cost rate {self.cost_rate}"
            )
        if self.available_from is not None and self.available_until is not None:
            if not _same_awareness(self.available_from, self.available_until):
                raise ValueError(
                    f"Resource {self.resource_id} mixes timezone-aware and naive availability"
                )
            if self.available_until < self.available_from:
                raise ValueError(
                    f"Resource {self.resource_id} availability ends before it starts"
                )

    def covers(self, start: datetime, end: datetime) -> bool:
        """Return True when ``[start, end]`` lies inside the availability window."""
        if self.available_from is not None and start < self.available_from:
            return False
        if self.available_until is not None and end > self.available_until:
            return False
        return True


@dataclass(frozen=True)
class ConstraintSet:
    budget_limit: Optional[float] = None
    deadline: Optional[datetime] = None
    required_skills: tuple[str, ...] = ()  # Applies to every task, on top of Task.required_skills


# MARK: - Genome


@dataclass(frozen=True)
class Allocation:
    allocation_id: str
    resource_id: str
    task_id: str
    start: datetime
    end: datetime
    allocation_percentage: float  # 0.0 -> 100.0 of the resource's capacity
    cost_rate: float
    resource_kind: ResourceKind = ResourceKind.WORKER
    project_id: Optional[str] = None
    status: AllocationStatus = AllocationStatus.PLANNED

    def __post_init__(self):
        if not self.resource_id:
            raise ValueError(f"Allocation {self.allocation_id} has no resource reference")
        if not self.task_id:
            raise ValueError(f"Allocation {self.allocation_id} has no task reference")
        if not 0.0 <= self.allocation_percentage <= 100.0:
            raise ValueError(
                f"Allocation percentage {self.allocation_percentage} is outside [0, 100]"
            )
        if self.end < self.start:
            raise ValueError(f"Allocation {self.allocation_id} ends before it starts")

    @property
    def duration_days(self) -> float:
        return (self.end - self.start).total_seconds() / SECONDS_PER_DAY

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / SECONDS_PER_HOUR

    @property
    def estimated_cost(self) -> float:
        return self.cost_rate * (self.allocation_percentage / 100.0) * self.duration_days

    def with_percentage(self, allocation_percentage: float) -> "Allocation":
        return replace(self, allocation_percentage=allocation_percentage)


@dataclass
class Individual:
    """A candidate solution: one full allocation of every task."""

    genome: list[Allocation]
    fitness: float = 0.0
    generation: int = 0
    age: int = 0  # Generations survived through elitism

    def copy(self, **changes) -> "Individual":
        """Return an independent copy; allocations are frozen so a shallow list copy suffices."""
        values = {
            "genome": list(self.genome),
            "fitness": self.fitness,
            "generation": self.generation,
            "age": self.age,
        }
        values.update(changes)
        return Individual(**values)

    def task_ids(self) -> set[str]:
        return {allocation.task_id for allocation in self.genome}

    @property
    def total_cost(self) -> float:
        return sum(allocation.estimated_cost for allocation in self.genome)

    @property
    def average_utilization(self) -> float:
        if not self.genome:
            return 0.0
        return sum(a.allocation_percentage for a in self.genome) / len(self.genome)


@dataclass(frozen=True)
class OptimizationResult:
    best_individual: Individual
    best_fitness: float
    generations_executed: int
    fitness_history: tuple[float, ...]
    duration_seconds: float
    termination: TerminationReason
    convergence_generation: Optional[int] = None
    final_population: tuple[Individual, ...] = ()

    @property
    def converged(self) -> bool:
        return self.termination is TerminationReason.CONVERGED

    @property
    def interrupted(self) -> bool:
        return self.termination is TerminationReason.INTERRUPTED


# MARK: - Plan


@dataclass(frozen=True)
class RecommendedResource:
    resource_id: str
    resource_name: str
    resource_kind: ResourceKind
    allocation_percentage: float
    start: datetime
    end: datetime
    estimated_cost: float


@dataclass(frozen=True)
class ResourceRecommendation:
    task_id: str
    task_name: str
    project_id: str
    resource_kind: ResourceKind
    recommended_resources: tuple[RecommendedResource, ...]
    estimated_cost: float
    estimated_duration_hours: float


@dataclass(frozen=True)
class TaskSchedule:
    task_id: str
    task_name: str
    start: datetime
    end: datetime
    duration_hours: float
    slack_hours: float
    assigned_resource_ids: tuple[str, ...]
    estimated_cost: float
    is_critical: bool = False


@dataclass(frozen=True)
class ResourceUtilization:
    resource_id: str
    resource_name: str
    resource_kind: ResourceKind
    allocated_hours: float  # Percentage-weighted hours committed to tasks
    available_hours: Optional[float]
    utilization_percentage: float
    task_ids: tuple[str, ...]


@dataclass(frozen=True)
class SchedulingPlan:
    tasks: tuple[TaskSchedule, ...]
    critical_task_ids: tuple[str, ...]
    total_duration_hours: float
    total_cost: float
    resource_utilization: tuple[ResourceUtilization, ...]


@dataclass(frozen=True)
class OptimizationMetrics:
    baseline_cost: float
    total_cost: float
    cost_savings: float
    cost_savings_percentage: float
    average_utilization: float  # 0 -> 100
    feasibility_score: float  # 0 -> 1
    best_fitness: float
    generations_executed: int
    run_time_seconds: float


@dataclass(frozen=True)
class OptimizationWarning:
    severity: WarningSeverity
    category: WarningCategory
    message: str
    recommended_action: str
    affected_task_ids: tuple[str, ...] = ()
    affected_resource_ids: tuple[str, ...] = ()
    cost_impact: Optional[float] = None
    time_impact_hours: Optional[float] = None


@dataclass(frozen=True)
class AlternativeScenario:
    scenario_id: str
    name: str
    description: str
    total_cost: float
    average_utilization: float
    fitness: float


@dataclass(frozen=True)
class AllocationPlan:
    status: PlanStatus
    confidence_score: float
    recommendations: tuple[ResourceRecommendation, ...]
    scheduling_plan: SchedulingPlan
    metrics: OptimizationMetrics
    warnings: tuple[OptimizationWarning, ...] = ()
    alternatives: tuple[AlternativeScenario, ...] = field(default_factory=tuple)
