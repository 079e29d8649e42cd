"""
APPROVAL PIPELINE - Parallelism Grouper
=======================================
Which tasks could be submitted on the same day.
"""

from typing import Dict, List, Sequence

from .schema import ParallelGroup, ScheduledTask


def parallel_groups(scheduled: Sequence[ScheduledTask]) -> List[ParallelGroup]:
    """
    Group tasks by identical earliest start.

    Singletons are dropped. Groups are ordered by earliest start and members
    keep the order of ``scheduled``. Timings are read, never modified.
    """
    by_start: Dict[int, List[str]] = {}
    for st in scheduled:
        by_start.setdefault(st.earliest_start, []).append(st.id)

    return [
        ParallelGroup(earliest_start=start, task_ids=ids)
        for start, ids in sorted(by_start.items())
        if len(ids) >= 2
    ]
