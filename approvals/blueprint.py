"""
APPROVAL PIPELINE - Blueprint Builder
=====================================
Task catalog -> ordered graph -> CPM timings -> parallel groups.

A blueprint depends only on the task definitions, so it can be cached and
shared read-only by any number of live pipelines.
"""

import logging
from typing import Sequence

from .critical_path import compute_schedule
from .graph import topological_order
from .grouping import parallel_groups
from .schema import PipelineBlueprint, ScheduledTask, TaskDefinition

logger = logging.getLogger("approvals.blueprint")


def build_blueprint(tasks: Sequence[TaskDefinition]) -> PipelineBlueprint:
    """
    Build the immutable scheduling shape for a task catalog.

    Raises CycleError, DanglingReferenceError or DuplicateTaskError for a
    misconfigured catalog; no partial blueprint is ever returned.
    """
    order = topological_order(tasks)
    cpm = compute_schedule(order)
    on_path = set(cpm.critical_path_ids)

    scheduled = [
        ScheduledTask(
            task=task,
            earliest_start=cpm.earliest_start[task.id],
            earliest_finish=cpm.earliest_finish[task.id],
            latest_start=cpm.latest_start[task.id],
            latest_finish=cpm.latest_finish[task.id],
            is_on_critical_path=task.id in on_path,
        )
        for task in order
    ]

    blueprint = PipelineBlueprint(
        tasks=scheduled,
        critical_path_ids=cpm.critical_path_ids,
        parallel_groups=parallel_groups(scheduled),
        total_duration_days=cpm.total_duration_days,
    )

    logger.info(
        f"🧩 Built blueprint: {len(scheduled)} tasks, "
        f"{len(blueprint.parallel_groups)} parallel groups, "
        f"{blueprint.total_duration_days} days minimum"
    )
    return blueprint
