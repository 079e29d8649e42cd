"""
APPROVAL PIPELINE SCHEDULER
===========================

Dependency ordering, critical-path timing and live SLA tracking for
government approval pipelines.

Usage:
    from approvals import build_blueprint, build_catalog, PipelineTracker

    blueprint = build_blueprint(build_catalog())
    tracker = PipelineTracker.from_blueprint(blueprint, "case-001", now)
    tracker.subscribe(issue_certificate)

    tracker.start_task("rjsc-registration", now)
    tracker.set_status("rjsc-registration", TaskStatus.UNDER_REVIEW, now)
    snapshot = tracker.query(now)

    escalations = EscalationDetector().detect(tracker.state, now)
"""

from .schema import (
    TaskDefinition,
    TaskStatus,
    TaskPriority,
    ScheduledTask,
    ParallelGroup,
    PipelineBlueprint,
    TaskInstance,
    PipelineState,
    TaskApproved,
    TaskSnapshot,
    PipelineSnapshot,
    Escalation,
    EscalationReason,
    Severity,
    AuthorityMetrics,
)
from .errors import (
    SchedulerError,
    CycleError,
    DanglingReferenceError,
    DuplicateTaskError,
    PrerequisiteError,
    InvalidTransitionError,
    UnknownTaskError,
    CaseNotFoundError,
)
from .blueprint import build_blueprint
from .catalog import APPROVAL_SERVICES, build_catalog, load_catalog, select_tasks
from .tracker import (
    PipelineTracker,
    instantiate_pipeline,
    start_task,
    set_status,
    days_elapsed,
    days_remaining,
    query,
    drain_events,
    next_available_tasks,
)
from .detector import EscalationDetector, classify, detect_escalations
from .reporting import authority_metrics, render_status_report

__version__ = "1.0.0"
__all__ = [
    "TaskDefinition",
    "TaskStatus",
    "TaskPriority",
    "ScheduledTask",
    "ParallelGroup",
    "PipelineBlueprint",
    "TaskInstance",
    "PipelineState",
    "TaskApproved",
    "TaskSnapshot",
    "PipelineSnapshot",
    "Escalation",
    "EscalationReason",
    "Severity",
    "AuthorityMetrics",
    "SchedulerError",
    "CycleError",
    "DanglingReferenceError",
    "DuplicateTaskError",
    "PrerequisiteError",
    "InvalidTransitionError",
    "UnknownTaskError",
    "CaseNotFoundError",
    "build_blueprint",
    "APPROVAL_SERVICES",
    "build_catalog",
    "load_catalog",
    "select_tasks",
    "PipelineTracker",
    "instantiate_pipeline",
    "start_task",
    "set_status",
    "days_elapsed",
    "days_remaining",
    "query",
    "drain_events",
    "next_available_tasks",
    "EscalationDetector",
    "classify",
    "detect_escalations",
    "authority_metrics",
    "render_status_report",
]
