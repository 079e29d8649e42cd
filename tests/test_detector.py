from approvals.detector import EscalationDetector, classify, detect_escalations
from approvals.schema import EscalationReason, Severity, TaskStatus
from approvals.tracker import days_elapsed, days_remaining, instantiate_pipeline, set_status, start_task

from conftest import T0, days


def test_breached_task_escalates_high(single_state):
    start_task(single_state, "T", T0)
    now = days(12)

    assert days_elapsed(single_state, "T", now) == 12
    assert days_remaining(single_state, "T", now) == 0

    escalations = detect_escalations(single_state, now)
    assert len(escalations) == 1
    e = escalations[0]
    assert (e.case_id, e.task_id) == ("case-t", "T")
    assert e.reason == EscalationReason.SLA_BREACHED
    assert e.severity == Severity.HIGH
    assert e.detected_at == now


def test_approaching_sla_escalates_medium(single_state):
    start_task(single_state, "T", T0)

    assert detect_escalations(single_state, days(4)) == []

    escalations = detect_escalations(single_state, days(5))
    assert [(e.reason, e.severity, e.days_remaining) for e in escalations] == [
        (EscalationReason.APPROACHING_SLA, Severity.MEDIUM, 5)
    ]


def test_threshold_is_configurable(single_state):
    start_task(single_state, "T", T0)
    assert detect_escalations(single_state, days(6), threshold_days=3) == []
    assert len(detect_escalations(single_state, days(7), threshold_days=3)) == 1


def test_under_review_counts_as_active(single_state):
    start_task(single_state, "T", T0)
    set_status(single_state, "T", TaskStatus.UNDER_REVIEW, days(2))
    assert classify(single_state, days(8))[0].reason == EscalationReason.APPROACHING_SLA


def test_on_hold_only_escalates_on_breach(single_state):
    start_task(single_state, "T", T0)
    set_status(single_state, "T", TaskStatus.ON_HOLD, days(1))

    assert classify(single_state, days(8)) == []
    assert classify(single_state, days(11))[0].reason == EscalationReason.SLA_BREACHED


def test_not_started_and_terminal_tasks_ignored(abc_state):
    assert classify(abc_state, days(100)) == []

    start_task(abc_state, "A", T0)
    set_status(abc_state, "A", TaskStatus.UNDER_REVIEW, days(1))
    set_status(abc_state, "A", TaskStatus.APPROVED, days(9))
    assert classify(abc_state, days(100)) == []


def test_detector_does_not_repeat_itself(single_state):
    detector = EscalationDetector()
    start_task(single_state, "T", T0)

    assert len(detector.detect(single_state, days(6))) == 1
    assert detector.detect(single_state, days(7)) == []

    breached = detector.detect(single_state, days(11))
    assert [e.reason for e in breached] == [EscalationReason.SLA_BREACHED]
    assert detector.detect(single_state, days(12)) == []


def test_pause_and_resume_does_not_repeat_escalation(single_state):
    detector = EscalationDetector()
    start_task(single_state, "T", T0)
    assert len(detector.detect(single_state, days(6))) == 1

    set_status(single_state, "T", TaskStatus.ON_HOLD, days(7))
    assert detector.detect(single_state, days(7)) == []

    set_status(single_state, "T", TaskStatus.IN_PROGRESS, days(8))
    assert detector.detect(single_state, days(8)) == []

    breached = detector.detect(single_state, days(11))
    assert [e.reason for e in breached] == [EscalationReason.SLA_BREACHED]


def test_markers_dropped_for_finished_tasks(single_state):
    detector = EscalationDetector()
    start_task(single_state, "T", T0)
    detector.detect(single_state, days(6))

    set_status(single_state, "T", TaskStatus.REJECTED, days(7))
    assert detector.detect(single_state, days(7)) == []
    assert detector._last_escalated == {}


def test_markers_are_per_case(single_state):
    other = instantiate_pipeline(single_state.blueprint, "case-other")
    detector = EscalationDetector()
    start_task(single_state, "T", T0)
    start_task(other, "T", T0)

    assert len(detector.detect(single_state, days(6))) == 1
    assert len(detector.detect(other, days(6))) == 1

    detector.reset("case-t")
    assert len(detector.detect(single_state, days(6))) == 1
    assert detector.detect(other, days(6)) == []


def test_listeners_receive_new_escalations(single_state):
    received = []
    detector = EscalationDetector(threshold_days=5, listeners=[received.append])
    start_task(single_state, "T", T0)

    detector.detect(single_state, days(11))
    detector.detect(single_state, days(12))
    assert [e.task_id for e in received] == ["T"]


def test_failing_listener_does_not_lose_escalations(abc_state):
    received = []

    def flaky(escalation):
        received.append(escalation.task_id)
        if len(received) == 1:
            raise RuntimeError("pager down")

    detector = EscalationDetector(listeners=[flaky])
    start_task(abc_state, "A", T0)
    set_status(abc_state, "A", TaskStatus.UNDER_REVIEW, days(1))
    set_status(abc_state, "A", TaskStatus.APPROVED, days(3))
    start_task(abc_state, "B", days(3))
    start_task(abc_state, "C", days(3))

    emitted = detector.detect(abc_state, days(20))
    assert [e.task_id for e in emitted] == ["B", "C"]
    assert received == ["B", "C"]
    assert detector.detect(abc_state, days(21)) == []


def test_detection_is_read_only(single_state):
    start_task(single_state, "T", T0)
    before = single_state.model_dump()
    EscalationDetector().detect(single_state, days(20))
    assert single_state.model_dump() == before
