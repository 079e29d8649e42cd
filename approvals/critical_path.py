"""
APPROVAL PIPELINE - Critical Path Calculator
============================================
Critical Path Method (CPM) over a topologically ordered catalog.

Forward pass:
    earliest_start(t)  = max(0, max(earliest_finish(d) for d in deps(t)))
    earliest_finish(t) = earliest_start(t) + duration_days(t)

Backward pass:
    latest_finish(t) = total duration if t has no dependents,
                       else min(latest_start(s) for s in dependents(t))
    latest_start(t)  = latest_finish(t) - duration_days(t)

The critical path is the predecessor chain ending at the task with the
largest earliest finish. Ties are broken by the smallest task id, both when
picking the final task and when choosing among predecessors, so the result
is reproducible. All values are whole days.
"""

import logging
from typing import Dict, List, Sequence

from pydantic import BaseModel, Field

from .errors import DanglingReferenceError
from .schema import TaskDefinition

logger = logging.getLogger("approvals.critical_path")


class CriticalPathResult(BaseModel):
    earliest_start: Dict[str, int] = Field(default_factory=dict)
    earliest_finish: Dict[str, int] = Field(default_factory=dict)
    latest_start: Dict[str, int] = Field(default_factory=dict)
    latest_finish: Dict[str, int] = Field(default_factory=dict)
    critical_path_ids: List[str] = Field(default_factory=list)
    total_duration_days: int = 0


def compute_schedule(order: Sequence[TaskDefinition]) -> CriticalPathResult:
    """
    Run CPM over tasks already in topological order.

    Tasks are addressed by their position in ``order``; predecessors and
    successors are stored as index lists, and the backward walk that
    extracts the critical path is a plain loop.

    Raises:
        DanglingReferenceError: a dependency is missing from ``order``
        ValueError: a dependency appears after its dependent
    """
    n = len(order)
    if n == 0:
        return CriticalPathResult()

    index = {task.id: i for i, task in enumerate(order)}
    preds: List[List[int]] = []
    succs: List[List[int]] = [[] for _ in range(n)]

    for i, task in enumerate(order):
        task_preds = []
        for dep_id in dict.fromkeys(task.dependencies):
            if dep_id not in index:
                raise DanglingReferenceError(task.id, dep_id)
            p = index[dep_id]
            if p >= i:
                raise ValueError(f"Task {task.id} is ordered before its dependency {dep_id}")
            task_preds.append(p)
            succs[p].append(i)
        preds.append(task_preds)

    # --- Forward pass ---
    es = [0] * n
    ef = [0] * n
    for i, task in enumerate(order):
        es[i] = max((ef[p] for p in preds[i]), default=0)
        ef[i] = es[i] + task.duration_days

    total = max(ef)

    # --- Backward pass ---
    ls = [0] * n
    lf = [0] * n
    for i in reversed(range(n)):
        lf[i] = min((ls[s] for s in succs[i]), default=total)
        ls[i] = lf[i] - order[i].duration_days

    # --- Critical path: walk back from the latest finisher ---
    def rank(i: int):
        return (-ef[i], order[i].id)

    node = min(range(n), key=rank)
    chain = [node]
    while preds[node]:
        node = min(preds[node], key=rank)
        chain.append(node)
    chain.reverse()

    critical_path_ids = [order[i].id for i in chain]
    logger.info(f"📐 Critical path: {' -> '.join(critical_path_ids)} ({total} days)")

    return CriticalPathResult(
        earliest_start={order[i].id: es[i] for i in range(n)},
        earliest_finish={order[i].id: ef[i] for i in range(n)},
        latest_start={order[i].id: ls[i] for i in range(n)},
        latest_finish={order[i].id: lf[i] for i in range(n)},
        critical_path_ids=critical_path_ids,
        total_duration_days=total,
    )
