"""
APPROVAL PIPELINE - Reporting
=============================
Human-readable case reports and per-authority performance metrics.
"""

from datetime import datetime
from typing import Dict, Iterable, List

from .schema import AuthorityMetrics, PipelineState, TaskStatus
from .tracker import days_elapsed, days_remaining, missing_documents

STATUS_ICONS = {
    TaskStatus.NOT_STARTED: "⬜",
    TaskStatus.IN_PROGRESS: "🔵",
    TaskStatus.UNDER_REVIEW: "🟣",
    TaskStatus.APPROVED: "✅",
    TaskStatus.REJECTED: "❌",
    TaskStatus.ON_HOLD: "⏸️",
    TaskStatus.BLOCKED: "🟡",
}


def authority_metrics(states: Iterable[PipelineState], now: datetime) -> List[AuthorityMetrics]:
    """
    Aggregate task outcomes by issuing authority across many cases.

    A breach is an approved task whose elapsed days exceeded its standard
    duration. Authorities are returned in first-seen order.
    """
    totals: Dict[str, Dict[str, int]] = {}

    for state in states:
        for scheduled in state.blueprint.tasks:
            task = scheduled.task
            m = totals.setdefault(task.authority, {"total": 0, "completed": 0, "days": 0, "breaches": 0})
            m["total"] += 1

            if state.instances[task.id].status == TaskStatus.APPROVED:
                elapsed = days_elapsed(state, task.id, now)
                m["completed"] += 1
                m["days"] += elapsed
                if elapsed > task.duration_days:
                    m["breaches"] += 1

    return [
        AuthorityMetrics(
            authority=authority,
            total_tasks=m["total"],
            completed_tasks=m["completed"],
            average_days_to_complete=m["days"] / m["completed"] if m["completed"] else 0.0,
            sla_breaches=m["breaches"],
            on_time_pct=(m["completed"] - m["breaches"]) / m["completed"] * 100 if m["completed"] else 100.0,
        )
        for authority, m in totals.items()
    ]


def render_status_report(state: PipelineState, now: datetime) -> str:
    """Generate human-readable status report"""
    blueprint = state.blueprint
    pct = int(state.overall_progress_pct)

    lines = [
        f"📋 Case {state.case_id}",
        f"Progress: {'█' * (pct // 10)}{'░' * (10 - pct // 10)} {pct}% "
        f"({state.completed_count}/{len(state.instances)} approved)",
        f"Minimum duration: {blueprint.total_duration_days} days",
        f"Critical path: {' -> '.join(blueprint.critical_path_ids) or '-'}",
        "",
        "Tasks:"
    ]

    for scheduled in blueprint.tasks:
        task_id = scheduled.id
        instance = state.instances[task_id]
        icon = STATUS_ICONS.get(instance.status, "❓")
        marker = " ★" if scheduled.is_on_critical_path else ""

        timing = ""
        if instance.started_at is not None:
            timing = f" [{days_elapsed(state, task_id, now)}d elapsed, {days_remaining(state, task_id, now)}d left]"

        docs = ""
        missing = missing_documents(state, task_id)
        if missing and not instance.status.is_terminal:
            docs = f" (missing docs: {', '.join(missing)})"

        lines.append(
            f"  {icon} [{task_id}] {scheduled.task.name} "
            f"day {scheduled.earliest_start}-{scheduled.earliest_finish}{marker}{timing}{docs}"
        )

    if blueprint.parallel_groups:
        lines.extend(["", "Parallel groups:"])
        for group in blueprint.parallel_groups:
            lines.append(f"  day {group.earliest_start}: {', '.join(group.task_ids)}")

    return "\n".join(lines)
