from datetime import datetime, timedelta

from allocator.models import ResourceKind, WarningSeverity

RESOURCE_COLORS = {
    ResourceKind.WORKER: "blue",
    ResourceKind.EQUIPMENT: "cyan",
    ResourceKind.MATERIAL: "magenta",
}

SEVERITY_COLORS = {
    WarningSeverity.LOW: "dim",
    WarningSeverity.MEDIUM: "yellow",
    WarningSeverity.HIGH: "red",
    WarningSeverity.CRITICAL: "bold red",
}


def style_datetime(dt: datetime) -> str:
    """Format datetime with styling"""
    return dt.strftime("%d.%m.%Y [bold italic]%H:%M[/bold italic]")


def style_duration(duration: timedelta) -> str:
    """Format duration in a readable way"""
    total_hours = duration.total_seconds() / 3600
    if total_hours < 24:
        return f"{total_hours:.1f}h"
    else:
        days = int(total_hours // 24)
        hours = total_hours % 24
        return f"{days}d {hours:.1f}h"


def style_kind(kind: ResourceKind) -> str:
    color = RESOURCE_COLORS.get(kind, "white")
    return f"[{color}]{kind.value}[/{color}]"


def style_severity(severity: WarningSeverity) -> str:
    color = SEVERITY_COLORS.get(severity, "white")
    return f"[{color}]{severity.value.upper()}[/{color}]"
