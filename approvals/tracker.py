"""
APPROVAL PIPELINE - State Tracker
=================================
Live per-case task statuses, prerequisite gating and time-based queries.

Every time-dependent call takes ``now`` from the caller; nothing here reads
the wall clock. Approvals are announced as TaskApproved events queued on the
state's outbox; PipelineTracker delivers them to subscribers.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Set

from .errors import InvalidTransitionError, PrerequisiteError, UnknownTaskError
from .schema import (
    PipelineBlueprint, PipelineSnapshot, PipelineState, ScheduledTask,
    TaskApproved, TaskInstance, TaskSnapshot, TaskStatus
)

logger = logging.getLogger("approvals.tracker")

TaskApprovedListener = Callable[[TaskApproved], None]

# BLOCKED is reachable from any non-terminal status, see can_transition
_TRANSITIONS: Dict[TaskStatus, Set[TaskStatus]] = {
    TaskStatus.NOT_STARTED: {TaskStatus.IN_PROGRESS},
    TaskStatus.IN_PROGRESS: {TaskStatus.UNDER_REVIEW, TaskStatus.ON_HOLD, TaskStatus.REJECTED},
    TaskStatus.UNDER_REVIEW: {TaskStatus.APPROVED, TaskStatus.REJECTED, TaskStatus.ON_HOLD},
    TaskStatus.ON_HOLD: {TaskStatus.IN_PROGRESS},
    TaskStatus.BLOCKED: {TaskStatus.NOT_STARTED, TaskStatus.IN_PROGRESS},
    TaskStatus.APPROVED: set(),
    TaskStatus.REJECTED: set(),
}

_STARTABLE = {TaskStatus.NOT_STARTED, TaskStatus.BLOCKED, TaskStatus.ON_HOLD}


# ========================================
# INSTANTIATION
# ========================================

def instantiate_pipeline(
    blueprint: PipelineBlueprint,
    case_id: str,
    now: Optional[datetime] = None
) -> PipelineState:
    """Fresh pipeline for one case, every task not-started"""
    state = PipelineState(
        case_id=case_id,
        blueprint=blueprint,
        instances={task_id: TaskInstance(task_id=task_id) for task_id in blueprint.task_ids},
        created_at=now,
        updated_at=now,
    )
    logger.info(f"🚀 Created pipeline for case {case_id} ({len(state.instances)} tasks)")
    return state


# ========================================
# LOOKUPS
# ========================================

def _get_instance(state: PipelineState, task_id: str) -> TaskInstance:
    instance = state.instances.get(task_id)
    if instance is None:
        raise UnknownTaskError(task_id)
    return instance


def _get_scheduled(state: PipelineState, task_id: str) -> ScheduledTask:
    scheduled = state.blueprint.get(task_id)
    if scheduled is None:
        raise UnknownTaskError(task_id)
    return scheduled


def blocking_dependencies(state: PipelineState, task_id: str) -> List[str]:
    """Dependencies of task_id that are not currently approved"""
    scheduled = _get_scheduled(state, task_id)
    blocking = []
    for dep_id in scheduled.task.dependencies:
        dep = state.instances.get(dep_id)
        if dep is None or dep.status != TaskStatus.APPROVED:
            blocking.append(dep_id)
    return blocking


def can_transition(state: PipelineState, task_id: str, new_status: TaskStatus) -> bool:
    current = _get_instance(state, task_id).status
    if new_status == TaskStatus.BLOCKED:
        return (
            not current.is_terminal
            and current != TaskStatus.BLOCKED
            and bool(blocking_dependencies(state, task_id))
        )
    return new_status in _TRANSITIONS[current]


def next_available_tasks(state: PipelineState) -> List[str]:
    """Not-started tasks whose prerequisites are all approved, in blueprint order"""
    return [
        task_id for task_id in state.blueprint.task_ids
        if state.instances[task_id].status == TaskStatus.NOT_STARTED
        and not blocking_dependencies(state, task_id)
    ]


# ========================================
# STATUS OPERATIONS
# ========================================

def start_task(state: PipelineState, task_id: str, now: datetime) -> TaskInstance:
    """
    Move a task to in-progress.

    Already in-progress is a no-op returning the existing instance.

    Raises:
        UnknownTaskError: task_id is not part of this pipeline
        PrerequisiteError: a dependency is not approved
        InvalidTransitionError: task is under review or terminal
    """
    instance = _get_instance(state, task_id)
    if instance.status == TaskStatus.IN_PROGRESS:
        return instance

    blocked_by = blocking_dependencies(state, task_id)
    if blocked_by:
        logger.warning(f"⛔ Task {task_id} blocked by: {blocked_by}")
        raise PrerequisiteError(task_id, blocked_by)

    if instance.status not in _STARTABLE:
        raise InvalidTransitionError(task_id, instance.status.value, TaskStatus.IN_PROGRESS.value)

    return set_status(state, task_id, TaskStatus.IN_PROGRESS, now)


def set_status(
    state: PipelineState,
    task_id: str,
    new_status: TaskStatus,
    now: datetime,
    officer: Optional[str] = None,
    notes: Optional[str] = None
) -> TaskInstance:
    """
    Apply a status transition.

    Validation happens before any field is written, so a rejected call
    leaves the pipeline exactly as it was.
    """
    new_status = TaskStatus(new_status)
    instance = _get_instance(state, task_id)
    current = instance.status

    if new_status == TaskStatus.IN_PROGRESS:
        blocked_by = blocking_dependencies(state, task_id)
        if blocked_by:
            raise PrerequisiteError(task_id, blocked_by)

    if not can_transition(state, task_id, new_status):
        reason = ""
        if new_status == TaskStatus.BLOCKED and not current.is_terminal:
            reason = "already blocked" if current == TaskStatus.BLOCKED else "no unapproved prerequisites"
        raise InvalidTransitionError(task_id, current.value, new_status.value, reason)

    instance.status = new_status
    if officer:
        instance.assigned_officer = officer
    if notes is not None:
        instance.notes = notes

    if new_status == TaskStatus.IN_PROGRESS and instance.started_at is None:
        instance.started_at = now

    if new_status == TaskStatus.APPROVED:
        instance.completed_at = now
        state.outbox.append(TaskApproved(case_id=state.case_id, task_id=task_id, approved_at=now))
        _update_blocked_tasks(state, task_id)
        logger.info(f"✅ Approved: {task_id} ({state.overall_progress_pct:.0f}% of case {state.case_id})")
    else:
        logger.info(f"▶️ {task_id}: {current.value} -> {new_status.value}")

    state.updated_at = now
    return instance


def _update_blocked_tasks(state: PipelineState, approved_id: str) -> None:
    """Return blocked dependents of approved_id to not-started once unblocked"""
    for dependent_id in state.blueprint.dependents_of(approved_id):
        dependent = state.instances[dependent_id]
        if dependent.status == TaskStatus.BLOCKED and not blocking_dependencies(state, dependent_id):
            dependent.status = TaskStatus.NOT_STARTED
            logger.info(f"🔓 Unblocked task: {dependent_id}")


def drain_events(state: PipelineState) -> List[TaskApproved]:
    """Pop every undelivered TaskApproved event"""
    events = list(state.outbox)
    state.outbox.clear()
    return events


# ========================================
# DOCUMENTS
# ========================================

def record_document(state: PipelineState, task_id: str, document_id: str) -> TaskInstance:
    instance = _get_instance(state, task_id)
    if document_id not in instance.uploaded_documents:
        instance.uploaded_documents.append(document_id)
    return instance


def missing_documents(state: PipelineState, task_id: str) -> List[str]:
    required = _get_scheduled(state, task_id).task.required_documents
    uploaded = _get_instance(state, task_id).uploaded_documents
    return [doc_id for doc_id in required if doc_id not in uploaded]


def is_document_complete(state: PipelineState, task_id: str) -> bool:
    return not missing_documents(state, task_id)


# ========================================
# TIME QUERIES
# ========================================

def days_elapsed(state: PipelineState, task_id: str, now: datetime) -> int:
    """Whole days since start; frozen at completed_at once approved"""
    instance = _get_instance(state, task_id)
    if instance.started_at is None:
        return 0
    end = instance.completed_at or now
    return max(0, (end - instance.started_at).days)


def days_remaining(state: PipelineState, task_id: str, now: datetime) -> int:
    instance = _get_instance(state, task_id)
    if instance.completed_at is not None:
        return 0
    duration = _get_scheduled(state, task_id).task.duration_days
    return max(0, duration - days_elapsed(state, task_id, now))


def query(state: PipelineState, now: datetime) -> PipelineSnapshot:
    per_task = {
        task_id: TaskSnapshot(
            status=state.instances[task_id].status,
            days_elapsed=days_elapsed(state, task_id, now),
            days_remaining=days_remaining(state, task_id, now),
        )
        for task_id in state.blueprint.task_ids
    }
    return PipelineSnapshot(
        case_id=state.case_id,
        per_task=per_task,
        completed_count=state.completed_count,
        overall_progress_pct=state.overall_progress_pct,
        critical_path_ids=list(state.blueprint.critical_path_ids),
        total_duration_days=state.blueprint.total_duration_days,
    )


# ========================================
# SERIALISED OWNER
# ========================================

class PipelineTracker:
    """
    Owns one PipelineState and serialises every read and write on it.

    start_task/set_status read dependency statuses before writing, so they
    must not interleave with a concurrent change on a dependency. After each
    successful mutation the queued TaskApproved events are handed to the
    subscribers (certificate issuance, notifications).
    """

    def __init__(
        self,
        state: PipelineState,
        subscribers: Optional[Iterable[TaskApprovedListener]] = None
    ):
        self.state = state
        self._lock = threading.RLock()
        self._subscribers: List[TaskApprovedListener] = list(subscribers or [])

    @classmethod
    def from_blueprint(
        cls,
        blueprint: PipelineBlueprint,
        case_id: str,
        now: Optional[datetime] = None,
        subscribers: Optional[Iterable[TaskApprovedListener]] = None
    ) -> "PipelineTracker":
        return cls(instantiate_pipeline(blueprint, case_id, now), subscribers)

    def subscribe(self, listener: TaskApprovedListener) -> None:
        with self._lock:
            self._subscribers.append(listener)

    def start_task(self, task_id: str, now: datetime) -> TaskInstance:
        with self._lock:
            instance = start_task(self.state, task_id, now)
            events = drain_events(self.state)
            subscribers = list(self._subscribers)
        self._publish(events, subscribers)
        return instance

    def set_status(
        self,
        task_id: str,
        new_status: TaskStatus,
        now: datetime,
        officer: Optional[str] = None,
        notes: Optional[str] = None
    ) -> TaskInstance:
        with self._lock:
            instance = set_status(self.state, task_id, new_status, now, officer=officer, notes=notes)
            events = drain_events(self.state)
            subscribers = list(self._subscribers)
        self._publish(events, subscribers)
        return instance

    def record_document(self, task_id: str, document_id: str) -> TaskInstance:
        with self._lock:
            return record_document(self.state, task_id, document_id)

    def query(self, now: datetime) -> PipelineSnapshot:
        with self._lock:
            return query(self.state, now)

    def next_available_tasks(self) -> List[str]:
        with self._lock:
            return next_available_tasks(self.state)

    def _publish(self, events: List[TaskApproved], subscribers: List[TaskApprovedListener]) -> None:
        for event in events:
            for listener in subscribers:
                try:
                    listener(event)
                except Exception as e:
                    # Approval is already applied; subscriber errors are only logged
                    logger.warning(f"TaskApproved subscriber failed for {event.task_id}: {e}")
