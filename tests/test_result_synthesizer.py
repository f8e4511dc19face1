from datetime import datetime, timedelta

import pytest

from allocator.models import (
    Allocation,
    ConstraintSet,
    Individual,
    OptimizationResult,
    PlanStatus,
    Resource,
    ResourceKind,
    Task,
    TerminationReason,
    WarningCategory,
    WarningSeverity,
)
from allocator.services.result_synthesizer import ResultSynthesizer

START = datetime(2025, 9, 1, 8, 0)

TASKS = [
    Task(task_id="t1", project_id="p1", start=START, end=START + timedelta(days=2), base_cost=2000.0, name="Framing"),
    Task(
        task_id="t2",
        project_id="p1",
        start=START + timedelta(days=1),
        end=START + timedelta(days=3),
        base_cost=1500.0,
        required_skills=("electrical",),
        name="Wiring",
    ),
]

RESOURCES = [
    Resource(resource_id="w1", kind=ResourceKind.WORKER, name="Dana", cost_rate=400.0, skills=("carpentry",)),
    Resource(
        resource_id="e1",
        kind=ResourceKind.EQUIPMENT,
        name="Lift",
        cost_rate=200.0,
        available_from=START,
        available_until=START + timedelta(days=2),
    ),
]


def allocation(task: Task, resource: Resource, percentage: float) -> Allocation:
    return Allocation(
        allocation_id=f"{task.task_id}:{resource.resource_id}",
        resource_id=resource.resource_id,
        task_id=task.task_id,
        start=task.start,
        end=task.end,
        allocation_percentage=percentage,
        cost_rate=resource.cost_rate,
        resource_kind=resource.kind,
        project_id=task.project_id,
    )


def make_result(genome, termination=TerminationReason.EXHAUSTED, population=None):
    best = Individual(genome=genome, fitness=0.6)
    return OptimizationResult(
        best_individual=best,
        best_fitness=0.6,
        generations_executed=7,
        fitness_history=(0.5, 0.6),
        duration_seconds=0.25,
        termination=termination,
        final_population=tuple(population or [best]),
    )


@pytest.fixture
def genome():
    # t1: Dana 50% for 2 days (400) ; t2: Dana 100% for 2 days (800) + Lift 25% for 2 days (100)
    return [
        allocation(TASKS[0], RESOURCES[0], 50.0),
        allocation(TASKS[1], RESOURCES[0], 100.0),
        allocation(TASKS[1], RESOURCES[1], 25.0),
    ]


def test_recommendations_grouped_by_task(genome):
    plan = ResultSynthesizer().synthesize(make_result(genome), TASKS, RESOURCES)

    assert [r.task_id for r in plan.recommendations] == ["t1", "t2"]
    wiring = plan.recommendations[1]
    assert wiring.task_name == "Wiring"
    assert [r.resource_name for r in wiring.recommended_resources] == ["Dana", "Lift"]
    assert wiring.estimated_cost == pytest.approx(900.0)
    assert wiring.estimated_duration_hours == pytest.approx(48.0)


def test_metrics(genome):
    plan = ResultSynthesizer().synthesize(make_result(genome), TASKS, RESOURCES)
    metrics = plan.metrics

    assert metrics.baseline_cost == pytest.approx(3500.0)
    assert metrics.total_cost == pytest.approx(1300.0)
    assert metrics.cost_savings == pytest.approx(2200.0)
    assert metrics.cost_savings_percentage == pytest.approx(2200.0 / 3500.0 * 100.0)
    assert metrics.average_utilization == pytest.approx(175.0 / 3)
    assert metrics.feasibility_score == 1.0
    assert metrics.generations_executed == 7
    assert plan.confidence_score == pytest.approx(0.6)


def test_savings_never_negative(genome):
    cheap_tasks = [Task(task_id=t.task_id, project_id=t.project_id, start=t.start, end=t.end) for t in TASKS]
    metrics = ResultSynthesizer().synthesize(make_result(genome), cheap_tasks, RESOURCES).metrics
    assert metrics.cost_savings == 0.0
    assert metrics.cost_savings_percentage == 0.0


def test_scheduling_plan_and_critical_tasks(genome):
    plan = ResultSynthesizer().synthesize(make_result(genome), TASKS, RESOURCES)
    schedule = plan.scheduling_plan

    assert schedule.total_duration_hours == pytest.approx(72.0)
    assert schedule.total_cost == pytest.approx(1300.0)
    # t2 ends with the plan so it has no slack
    assert schedule.critical_task_ids == ("t2",)
    framing = schedule.tasks[0]
    assert framing.slack_hours == pytest.approx(24.0)
    assert framing.assigned_resource_ids == ("w1",)
    assert not framing.is_critical


def test_custom_critical_predicate(genome):
    synthesizer = ResultSynthesizer(critical_predicate=lambda s: s.estimated_cost > 500)
    plan = synthesizer.synthesize(make_result(genome), TASKS, RESOURCES)
    assert plan.scheduling_plan.critical_task_ids == ("t2",)
    plan = ResultSynthesizer(critical_predicate=lambda s: True).synthesize(
        make_result(genome), TASKS, RESOURCES
    )
    assert plan.scheduling_plan.critical_task_ids == ("t1", "t2")


def test_resource_utilization(genome):
    plan = ResultSynthesizer().synthesize(make_result(genome), TASKS, RESOURCES)
    by_id = {entry.resource_id: entry for entry in plan.scheduling_plan.resource_utilization}

    # Dana: 50% of 48h + 100% of 48h over the 72h plan horizon
    assert by_id["w1"].allocated_hours == pytest.approx(72.0)
    assert by_id["w1"].utilization_percentage == pytest.approx(100.0)
    assert by_id["w1"].task_ids == ("t1", "t2")
    # Lift: 25% of 48h over its own 48h window
    assert by_id["e1"].available_hours == pytest.approx(48.0)
    assert by_id["e1"].utilization_percentage == pytest.approx(25.0)


def test_budget_overrun_is_critical(genome):
    constraints = ConstraintSet(budget_limit=1000.0)
    plan = ResultSynthesizer().synthesize(make_result(genome), TASKS, RESOURCES, constraints)
    budget = [w for w in plan.warnings if w.category is WarningCategory.BUDGET_OVERRUN]

    assert len(budget) == 1
    assert budget[0].severity is WarningSeverity.CRITICAL
    assert budget[0].cost_impact == pytest.approx(300.0)
    assert plan.status is PlanStatus.PARTIAL
    assert plan.metrics.feasibility_score == pytest.approx(0.9)


def test_budget_close_to_limit_is_high(genome):
    constraints = ConstraintSet(budget_limit=1350.0)
    plan = ResultSynthesizer().synthesize(make_result(genome), TASKS, RESOURCES, constraints)
    budget = [w for w in plan.warnings if w.category is WarningCategory.BUDGET_OVERRUN]

    assert budget[0].severity is WarningSeverity.HIGH
    assert plan.status is PlanStatus.SUCCESS


def test_deadline_warning(genome):
    constraints = ConstraintSet(deadline=START + timedelta(days=2))
    plan = ResultSynthesizer().synthesize(make_result(genome), TASKS, RESOURCES, constraints)
    delays = [w for w in plan.warnings if w.category is WarningCategory.SCHEDULE_DELAY]

    assert len(delays) == 1
    assert delays[0].affected_task_ids == ("t2",)
    assert delays[0].time_impact_hours == pytest.approx(24.0)
    # slack is measured against the deadline
    assert plan.scheduling_plan.tasks[1].slack_hours == pytest.approx(-24.0)


def test_availability_and_skill_warnings(genome):
    plan = ResultSynthesizer().synthesize(make_result(genome), TASKS, RESOURCES)
    categories = {w.category: w for w in plan.warnings}

    # Lift is only available for two days but Wiring runs into day three
    conflict = categories[WarningCategory.RESOURCE_CONFLICT]
    assert conflict.affected_resource_ids == ("e1",)
    assert conflict.affected_task_ids == ("t2",)
    skill_gap = categories[WarningCategory.SKILL_GAP]
    assert skill_gap.affected_task_ids == ("t2",)
    assert "electrical" in skill_gap.message
    assert all(w.severity is WarningSeverity.MEDIUM for w in plan.warnings)


def test_interrupted_run_is_reported(genome):
    result = make_result(genome, termination=TerminationReason.INTERRUPTED)
    plan = ResultSynthesizer().synthesize(result, TASKS, RESOURCES)
    assert plan.status is PlanStatus.INTERRUPTED


def test_alternatives_from_final_population(genome):
    cheap = Individual(genome=[allocation(TASKS[0], RESOURCES[1], 10.0), allocation(TASKS[1], RESOURCES[1], 10.0)], fitness=0.3)
    busy = Individual(genome=[allocation(TASKS[0], RESOURCES[0], 95.0), allocation(TASKS[1], RESOURCES[0], 99.0)], fitness=0.4)
    result = make_result(genome, population=[Individual(genome=genome, fitness=0.6), cheap, busy])

    alternatives = {a.scenario_id: a for a in ResultSynthesizer.generate_alternatives(result)}
    assert alternatives["alt_cost_optimized"].total_cost == pytest.approx(cheap.total_cost)
    assert alternatives["alt_utilization_optimized"].average_utilization == pytest.approx(97.0)
    assert alternatives["alt_utilization_optimized"].fitness == 0.4


def test_unknown_resource_name():
    assert ResultSynthesizer._resource_name("ghost", {}) == "Unknown"
