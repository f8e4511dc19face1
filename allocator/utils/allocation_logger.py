from datetime import timedelta
from typing import Optional

from rich import box, table
from rich.console import Console

from allocator.models import AllocationPlan, PlanStatus
from allocator.utils.utils import (
    style_datetime,
    style_duration,
    style_kind,
    style_severity,
)
from allocator.common.console import get_console

STATUS_COLORS = {
    PlanStatus.SUCCESS: "green",
    PlanStatus.PARTIAL: "yellow",
    PlanStatus.INTERRUPTED: "red",
}


class AllocationLogger:

    @staticmethod
    def recommendations_table(plan: AllocationPlan, title: Optional[str] = None) -> table.Table:
        """Create a table with the recommended resources for every task"""
        recommendations_table = table.Table(
            title=title or "Recommended Allocations",
            title_style="bold green",
            style="dim",
            box=box.ROUNDED,
        )
        recommendations_table.add_column("Task", style="italic")
        recommendations_table.add_column("Resource")
        recommendations_table.add_column("Kind")
        recommendations_table.add_column("Allocation", justify="right")
        recommendations_table.add_column("Start")
        recommendations_table.add_column("End")
        recommendations_table.add_column("Cost", justify="right")

        for recommendation in plan.recommendations:
            recommendations_table.add_section()
            for index, resource in enumerate(recommendation.recommended_resources):
                # Display the task only on its first row
                recommendations_table.add_row(
                    recommendation.task_name if index == 0 else "",
                    resource.resource_name,
                    style_kind(resource.resource_kind),
                    f"{resource.allocation_percentage:.1f}%",
                    style_datetime(resource.start),
                    style_datetime(resource.end),
                    f"{resource.estimated_cost:,.2f}",
                )
            recommendations_table.add_row(
                "", "", "", "", "", "[bold]Total[/bold]", f"[bold]{recommendation.estimated_cost:,.2f}[/bold]"
            )
        return recommendations_table

    @staticmethod
    def scheduling_plan_table(plan: AllocationPlan) -> table.Table:
        schedule_table = table.Table(
            title="Scheduling Plan",
            title_style="bold red",
            style="dim",
            box=box.ROUNDED,
        )
        schedule_table.add_column("Task", style="italic")
        schedule_table.add_column("Start")
        schedule_table.add_column("End")
        schedule_table.add_column("Duration")
        schedule_table.add_column("Slack", justify="right")
        schedule_table.add_column("Resources", style="italic")
        schedule_table.add_column("Cost", justify="right")

        for task in plan.scheduling_plan.tasks:
            name = f"[bold red]{task.task_name} ★[/bold red]" if task.is_critical else task.task_name
            schedule_table.add_row(
                name,
                style_datetime(task.start),
                style_datetime(task.end),
                style_duration(timedelta(hours=task.duration_hours)),
                f"{task.slack_hours:.1f}h",
                ", ".join(task.assigned_resource_ids),
                f"{task.estimated_cost:,.2f}",
            )
        return schedule_table

    @staticmethod
    def utilization_table(plan: AllocationPlan) -> table.Table:
        utilization_table = table.Table(
            title="Resource Utilization",
            title_style="bold cyan",
            style="dim",
            box=box.ROUNDED,
        )
        utilization_table.add_column("Resource", style="italic")
        utilization_table.add_column("Kind")
        utilization_table.add_column("Allocated", justify="right")
        utilization_table.add_column("Available", justify="right")
        utilization_table.add_column("Utilization", justify="right")
        utilization_table.add_column("Tasks", style="dim")

        for entry in plan.scheduling_plan.resource_utilization:
            utilization_table.add_row(
                entry.resource_name,
                style_kind(entry.resource_kind),
                f"{entry.allocated_hours:.1f}h",
                f"{entry.available_hours:.1f}h" if entry.available_hours is not None else "-",
                f"{entry.utilization_percentage:.1f}%",
                ", ".join(entry.task_ids),
            )
        return utilization_table

    @staticmethod
    def metrics_table(plan: AllocationPlan) -> table.Table:
        metrics = plan.metrics
        status_color = STATUS_COLORS.get(plan.status, "white")
        metrics_table = table.Table(style="dim", box=box.SIMPLE)
        metrics_table.add_column("Status")
        metrics_table.add_column("Baseline", justify="right")
        metrics_table.add_column("Total Cost", justify="right")
        metrics_table.add_column("Savings", justify="right")
        metrics_table.add_column("Avg Utilization", justify="right")
        metrics_table.add_column("Feasibility", justify="right")
        metrics_table.add_column("Fitness", justify="right")
        metrics_table.add_column("Generations", justify="right")
        metrics_table.add_column("Run Time", justify="right")
        metrics_table.add_row(
            f"[{status_color}]{plan.status.value}[/{status_color}]",
            f"{metrics.baseline_cost:,.2f}",
            f"{metrics.total_cost:,.2f}",
            f"{metrics.cost_savings:,.2f} ({metrics.cost_savings_percentage:.1f}%)",
            f"{metrics.average_utilization:.1f}%",
            f"{metrics.feasibility_score:.2f}",
            f"{metrics.best_fitness:.4f}",
            str(metrics.generations_executed),
            f"{metrics.run_time_seconds:.2f}s",
        )
        return metrics_table

    @staticmethod
    def warnings_table(plan: AllocationPlan) -> table.Table:
        warnings_table = table.Table(
            title="Warnings",
            title_style="bold red",
            style="dim",
            box=box.ROUNDED,
        )
        warnings_table.add_column("Severity")
        warnings_table.add_column("Category")
        warnings_table.add_column("Message", style="italic")
        warnings_table.add_column("Recommended Action")

        for warning in plan.warnings:
            warnings_table.add_row(
                style_severity(warning.severity),
                warning.category.value,
                warning.message,
                warning.recommended_action,
            )
        return warnings_table

    @staticmethod
    def alternatives_table(plan: AllocationPlan) -> table.Table:
        alternatives_table = table.Table(
            title="Alternative Scenarios",
            title_style="bold magenta",
            style="dim",
            box=box.SIMPLE,
        )
        alternatives_table.add_column("Scenario", style="bold")
        alternatives_table.add_column("Description", style="italic")
        alternatives_table.add_column("Total Cost", justify="right")
        alternatives_table.add_column("Avg Utilization", justify="right")
        alternatives_table.add_column("Fitness", justify="right")

        for scenario in plan.alternatives:
            alternatives_table.add_row(
                scenario.name,
                scenario.description,
                f"{scenario.total_cost:,.2f}",
                f"{scenario.average_utilization:.1f}%",
                f"{scenario.fitness:.4f}",
            )
        return alternatives_table

    @staticmethod
    def print(plan: AllocationPlan, console: Optional[Console] = None) -> None:
        console = console or get_console()
        console.print(AllocationLogger.recommendations_table(plan))
        console.print(AllocationLogger.scheduling_plan_table(plan))
        console.print(AllocationLogger.utilization_table(plan))
        console.print(AllocationLogger.metrics_table(plan))
        if plan.warnings:
            console.print(AllocationLogger.warnings_table(plan))
        else:
            console.print("[bold green]🎉 No constraint warnings![/bold green]")
        if plan.alternatives:
            console.print(AllocationLogger.alternatives_table(plan))
