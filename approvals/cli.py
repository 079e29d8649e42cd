#!/usr/bin/env python3
"""
APPROVAL PIPELINE - CLI Interface
=================================
Command-line tool for planning approval pipelines and tracking cases.

Usage:
    approvals blueprint --investor-type manufacturing
    approvals create case-001 --investor-type services
    approvals start case-001 rjsc-registration
    approvals set case-001 rjsc-registration under-review --officer "M. Rahman"
    approvals status case-001
    approvals escalations case-001 --threshold 3
    approvals list

Every command accepts --now (ISO timestamp) and otherwise uses the current
UTC time.
"""

import argparse
import json
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .blueprint import build_blueprint
from .catalog import INVESTOR_TYPES, build_catalog, load_catalog, select_tasks
from .config import get_settings
from .detector import detect_escalations
from .logging_config import setup_logging
from .reporting import authority_metrics, render_status_report
from .schema import TaskStatus
from .store import CaseStore
from .tracker import (
    drain_events, instantiate_pipeline, next_available_tasks, query, record_document, set_status, start_task
)


def _parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    now = datetime.fromisoformat(value)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


def _load_tasks(args, settings):
    catalog_path = args.catalog or settings.CATALOG_PATH
    tasks = load_catalog(catalog_path) if catalog_path else build_catalog()
    if args.investor_type:
        tasks = select_tasks(tasks, args.investor_type)
    return tasks


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="approvals",
        description="Approval Pipeline Scheduler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  approvals blueprint --investor-type manufacturing   Show order, timings, critical path
  approvals create case-001 -t services               Create a case pipeline
  approvals start case-001 rjsc-registration          Start a task
  approvals set case-001 rjsc-registration approved   Change task status
  approvals doc case-001 rjsc-registration memorandum Record an uploaded document
  approvals status case-001                           Show case status
  approvals escalations case-001                      Show SLA risks
  approvals metrics                                   Per-authority performance
  approvals list                                      List all cases
        """
    )
    parser.add_argument("--dir", help="Cases directory (default: APPROVALS_CASES_DIR)")
    parser.add_argument("--now", help="Current time as ISO timestamp (default: now, UTC)")
    parser.add_argument("--log-level", help="Logging level (default: APPROVALS_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # BLUEPRINT command
    blueprint_parser = subparsers.add_parser("blueprint", help="Compute a pipeline blueprint")
    blueprint_parser.add_argument("--catalog", help="JSON catalog file")
    blueprint_parser.add_argument("-t", "--investor-type", choices=INVESTOR_TYPES, help="Investor type")
    blueprint_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # CREATE command
    create_parser = subparsers.add_parser("create", help="Create a case pipeline")
    create_parser.add_argument("case_id", help="Case ID")
    create_parser.add_argument("--catalog", help="JSON catalog file")
    create_parser.add_argument("-t", "--investor-type", choices=INVESTOR_TYPES, help="Investor type")

    # START command
    start_parser = subparsers.add_parser("start", help="Start a task")
    start_parser.add_argument("case_id", help="Case ID")
    start_parser.add_argument("task_id", help="Task ID to start")

    # SET command
    set_parser = subparsers.add_parser("set", help="Change a task status")
    set_parser.add_argument("case_id", help="Case ID")
    set_parser.add_argument("task_id", help="Task ID")
    set_parser.add_argument("status", choices=[s.value for s in TaskStatus], help="New status")
    set_parser.add_argument("--officer", help="Assigned officer")
    set_parser.add_argument("--notes", help="Notes")

    # DOC command
    doc_parser = subparsers.add_parser("doc", help="Record an uploaded document")
    doc_parser.add_argument("case_id", help="Case ID")
    doc_parser.add_argument("task_id", help="Task ID")
    doc_parser.add_argument("document_id", help="Document ID")

    # STATUS command
    status_parser = subparsers.add_parser("status", help="Show case status")
    status_parser.add_argument("case_id", help="Case ID")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # ESCALATIONS command
    esc_parser = subparsers.add_parser("escalations", help="Show tasks at SLA risk")
    esc_parser.add_argument("case_id", help="Case ID")
    esc_parser.add_argument("--threshold", type=int, help="Days remaining that count as at risk")
    esc_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # METRICS command
    metrics_parser = subparsers.add_parser("metrics", help="Per-authority performance across cases")
    metrics_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # LIST command
    list_parser = subparsers.add_parser("list", help="List all cases")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    setup_logging(level=args.log_level)
    store = CaseStore(args.dir or settings.CASES_DIR)

    try:
        return _run(args, settings, store, _parse_now(args.now))
    except (ValueError, OSError) as e:
        print(f"❌ {e}")
        return 1


def _run(args, settings, store: CaseStore, now: datetime) -> int:
    if args.command == "blueprint":
        blueprint = build_blueprint(_load_tasks(args, settings))
        if args.json:
            print(json.dumps(blueprint.model_dump(mode='json'), indent=2))
            return 0

        print(f"📐 Minimum duration: {blueprint.total_duration_days} days")
        print(f"   Critical path: {' -> '.join(blueprint.critical_path_ids)}")
        print("-" * 60)
        for st in blueprint.tasks:
            marker = "★" if st.is_on_critical_path else " "
            print(f"  {marker} [{st.id}] day {st.earliest_start}-{st.earliest_finish} (slack {st.slack})")
        for group in blueprint.parallel_groups:
            print(f"  ⏩ day {group.earliest_start}: {', '.join(group.task_ids)}")

    elif args.command == "create":
        if store.exists(args.case_id):
            print(f"❌ Case already exists: {args.case_id}")
            return 1
        blueprint = build_blueprint(_load_tasks(args, settings))
        state = instantiate_pipeline(blueprint, args.case_id, now)
        path = store.save(state)
        print(f"✅ Created: {state.case_id}")
        print(f"   Tasks: {len(state.instances)}")
        print(f"   Minimum duration: {blueprint.total_duration_days} days")
        print(f"   File: {path}")

    elif args.command == "start":
        state = store.load(args.case_id)
        instance = start_task(state, args.task_id, now)
        store.save(state)
        print(f"▶️ Started: {instance.task_id}")

    elif args.command == "set":
        state = store.load(args.case_id)
        set_status(state, args.task_id, TaskStatus(args.status), now, officer=args.officer, notes=args.notes)
        # Approval events have no subscribers on the command line
        for event in drain_events(state):
            print(f"📜 Approved: {event.task_id} at {event.approved_at.isoformat()}")
        store.save(state)
        print(f"✅ {args.task_id}: {args.status}")
        ready = next_available_tasks(state)
        if ready:
            print(f"   Ready to start: {', '.join(ready)}")

    elif args.command == "doc":
        state = store.load(args.case_id)
        record_document(state, args.task_id, args.document_id)
        store.save(state)
        print(f"📎 Recorded {args.document_id} for {args.task_id}")

    elif args.command == "status":
        state = store.load(args.case_id)
        if args.json:
            print(json.dumps(query(state, now).model_dump(mode='json'), indent=2))
        else:
            print(render_status_report(state, now))

    elif args.command == "escalations":
        state = store.load(args.case_id)
        threshold = settings.ESCALATION_THRESHOLD_DAYS if args.threshold is None else args.threshold
        escalations = detect_escalations(state, now, threshold)
        if args.json:
            print(json.dumps([e.model_dump(mode='json') for e in escalations], indent=2))
        elif not escalations:
            print("✅ No tasks at risk")
        else:
            for e in escalations:
                print(f"🚨 [{e.severity.value}] {e.task_id}: {e.reason.value} "
                      f"({e.days_elapsed}d elapsed, {e.days_remaining}d remaining)")

    elif args.command == "metrics":
        states = [store.load(c["case_id"]) for c in store.list_cases()]
        metrics = authority_metrics(states, now)
        if args.json:
            print(json.dumps([m.model_dump(mode='json') for m in metrics], indent=2))
        else:
            for m in metrics:
                print(f"  {m.authority}: {m.completed_tasks}/{m.total_tasks} approved, "
                      f"avg {m.average_days_to_complete:.1f}d, {m.sla_breaches} breaches, "
                      f"{m.on_time_pct:.0f}% on time")

    elif args.command == "list":
        cases = store.list_cases()
        if args.json:
            print(json.dumps(cases, indent=2))
        elif not cases:
            print("No cases found")
        else:
            print("📋 Cases:")
            print("-" * 60)
            for c in cases:
                print(f"  [{c['case_id']}] {c['approved']}/{c['tasks']} approved ({c['progress']})")
                print(f"      Minimum duration: {c['total_duration_days']} days | Updated: {c['updated_at']}")
            print("-" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
