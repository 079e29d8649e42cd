import pytest

from approvals.blueprint import build_blueprint
from approvals.reporting import authority_metrics, render_status_report
from approvals.schema import TaskStatus
from approvals.tracker import instantiate_pipeline, record_document, set_status, start_task

from conftest import T0, days, make_task


def approve(state, task_id, started, finished):
    start_task(state, task_id, started)
    set_status(state, task_id, TaskStatus.UNDER_REVIEW, started)
    set_status(state, task_id, TaskStatus.APPROVED, finished)


def test_authority_metrics(abc_blueprint):
    late = instantiate_pipeline(abc_blueprint, "case-late")
    on_time = instantiate_pipeline(abc_blueprint, "case-on-time")
    approve(late, "A", T0, days(5))
    approve(on_time, "A", T0, days(2))

    metrics = {m.authority: m for m in authority_metrics([late, on_time], days(10))}
    assert list(metrics) == ["RJSC", "NBR"]

    rjsc = metrics["RJSC"]
    assert (rjsc.total_tasks, rjsc.completed_tasks, rjsc.sla_breaches) == (2, 2, 1)
    assert rjsc.average_days_to_complete == pytest.approx(3.5)
    assert rjsc.on_time_pct == pytest.approx(50.0)

    nbr = metrics["NBR"]
    assert (nbr.total_tasks, nbr.completed_tasks, nbr.sla_breaches) == (4, 0, 0)
    assert nbr.average_days_to_complete == 0
    assert nbr.on_time_pct == 100


def test_authority_metrics_empty():
    assert authority_metrics([], T0) == []


def test_status_report(abc_state):
    approve(abc_state, "A", T0, days(3))
    start_task(abc_state, "B", days(3))

    report = render_status_report(abc_state, days(5))
    assert "Case case-abc" in report
    assert "33% (1/3 approved)" in report
    assert "Critical path: A -> B" in report
    assert "[B] Service B day 3-8 ★ [2d elapsed, 3d left]" in report
    assert "day 3: B, C" in report


def test_status_report_lists_missing_documents():
    blueprint = build_blueprint([make_task("reg", 7, required_documents=["memorandum", "articles"])])
    state = instantiate_pipeline(blueprint, "case-docs")
    record_document(state, "reg", "articles")

    assert "missing docs: memorandum" in render_status_report(state, T0)
