"""
APPROVAL PIPELINE - Bottleneck / Escalation Detector
====================================================
Classifies live tasks by schedule risk.

- approaching_sla (medium): in-progress or under-review with
  days_remaining <= threshold
- sla_breached (high): days_elapsed > duration_days and not terminal

A breach supersedes the approaching reason for the same task. The detector
only reads pipeline state; escalations are its only output.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .schema import Escalation, EscalationReason, PipelineState, Severity, TaskStatus
from .tracker import days_elapsed, days_remaining

logger = logging.getLogger("approvals.detector")

DEFAULT_ESCALATION_THRESHOLD_DAYS = 5

EscalationListener = Callable[[Escalation], None]

_ACTIVE = (TaskStatus.IN_PROGRESS, TaskStatus.UNDER_REVIEW)

_SEVERITY = {
    EscalationReason.SLA_BREACHED: Severity.HIGH,
    EscalationReason.APPROACHING_SLA: Severity.MEDIUM,
}


def classify(
    state: PipelineState,
    now: datetime,
    threshold_days: int = DEFAULT_ESCALATION_THRESHOLD_DAYS
) -> List[Escalation]:
    """Every task currently at risk, in blueprint order, without deduplication"""
    found = []
    for scheduled in state.blueprint.tasks:
        task_id = scheduled.id
        instance = state.instances[task_id]
        if instance.status.is_terminal:
            continue

        elapsed = days_elapsed(state, task_id, now)
        remaining = days_remaining(state, task_id, now)

        if instance.started_at is not None and elapsed > scheduled.task.duration_days:
            reason = EscalationReason.SLA_BREACHED
        elif instance.status in _ACTIVE and remaining <= threshold_days:
            reason = EscalationReason.APPROACHING_SLA
        else:
            continue

        found.append(Escalation(
            case_id=state.case_id,
            task_id=task_id,
            reason=reason,
            severity=_SEVERITY[reason],
            days_elapsed=elapsed,
            days_remaining=remaining,
            detected_at=now,
        ))
    return found


def _is_finished(state: PipelineState, task_id: str) -> bool:
    instance = state.instances.get(task_id)
    return instance is None or instance.status.is_terminal


class EscalationDetector:
    """
    Emits each escalation once per task instance and reason.

    A "last escalated" marker is kept per (case, task). A task that was
    reported as approaching and later breaches is reported again; repeated
    sweeps with an unchanged reason are silent, including after the task is
    paused and resumed. The marker is dropped once the task is approved or
    rejected.
    """

    def __init__(
        self,
        threshold_days: int = DEFAULT_ESCALATION_THRESHOLD_DAYS,
        listeners: Optional[Iterable[EscalationListener]] = None
    ):
        self.threshold_days = threshold_days
        self._listeners: List[EscalationListener] = list(listeners or [])
        self._last_escalated: Dict[Tuple[str, str], EscalationReason] = {}
        self._lock = threading.Lock()

    def subscribe(self, listener: EscalationListener) -> None:
        self._listeners.append(listener)

    def detect(
        self,
        state: PipelineState,
        now: datetime,
        threshold_days: Optional[int] = None
    ) -> List[Escalation]:
        threshold = self.threshold_days if threshold_days is None else threshold_days
        current = classify(state, now, threshold)

        emitted = []
        with self._lock:
            for key in [k for k in self._last_escalated if k[0] == state.case_id and _is_finished(state, k[1])]:
                del self._last_escalated[key]

            for escalation in current:
                key = (escalation.case_id, escalation.task_id)
                if self._last_escalated.get(key) == escalation.reason:
                    continue
                self._last_escalated[key] = escalation.reason
                emitted.append(escalation)

        for escalation in emitted:
            logger.warning(
                f"🚨 Escalation [{escalation.severity.value}] case {escalation.case_id} "
                f"task {escalation.task_id}: {escalation.reason.value} "
                f"({escalation.days_elapsed}d elapsed, {escalation.days_remaining}d remaining)"
            )
            for listener in self._listeners:
                try:
                    listener(escalation)
                except Exception as e:
                    # Marker is already recorded; listener errors are only logged
                    logger.warning(f"Escalation listener failed for {escalation.task_id}: {e}")

        return emitted

    def reset(self, case_id: Optional[str] = None) -> None:
        """Forget markers for one case, or for every case"""
        with self._lock:
            if case_id is None:
                self._last_escalated.clear()
            else:
                for key in [k for k in self._last_escalated if k[0] == case_id]:
                    del self._last_escalated[key]


def detect_escalations(
    state: PipelineState,
    now: datetime,
    threshold_days: int = DEFAULT_ESCALATION_THRESHOLD_DAYS
) -> List[Escalation]:
    """One-shot sweep with no memory of earlier sweeps"""
    return EscalationDetector(threshold_days).detect(state, now)
