"""
APPROVAL PIPELINE - Graph Builder
=================================
Validates a flat task catalog and orders it so that every dependency
precedes its dependents.
"""

import logging
from typing import Dict, List, Sequence

from .errors import CycleError, DanglingReferenceError, DuplicateTaskError
from .schema import TaskDefinition

logger = logging.getLogger("approvals.graph")

_UNVISITED, _VISITING, _DONE = 0, 1, 2


def index_catalog(tasks: Sequence[TaskDefinition]) -> Dict[str, int]:
    """Map task id -> input position, rejecting duplicates and dangling references"""
    position: Dict[str, int] = {}
    for i, task in enumerate(tasks):
        if task.id in position:
            raise DuplicateTaskError(task.id)
        position[task.id] = i

    for task in tasks:
        for dep_id in task.dependencies:
            if dep_id not in position:
                raise DanglingReferenceError(task.id, dep_id)

    return position


def topological_order(tasks: Sequence[TaskDefinition]) -> List[TaskDefinition]:
    """
    Depth-first topological sort with a "visiting" marker.

    Roots are taken in input order and each task's dependencies are visited
    in input-position order, so a given catalog always yields the same order.
    Uses an explicit stack; deep chains do not hit the recursion limit.

    Raises:
        DuplicateTaskError: two tasks share an id
        DanglingReferenceError: a dependency id is not in the catalog
        CycleError: the dependency graph is not acyclic
    """
    position = index_catalog(tasks)
    deps_by_index = [sorted({position[d] for d in task.dependencies}) for task in tasks]

    marks = [_UNVISITED] * len(tasks)
    ordered: List[TaskDefinition] = []

    for root in range(len(tasks)):
        if marks[root] != _UNVISITED:
            continue

        marks[root] = _VISITING
        stack = [(root, iter(deps_by_index[root]))]

        while stack:
            node, pending = stack[-1]
            for dep in pending:
                if marks[dep] == _VISITING:
                    path = [n for n, _ in stack]
                    cycle = [tasks[n].id for n in path[path.index(dep):]]
                    logger.error(f"⛔ Cycle in task catalog: {cycle}")
                    raise CycleError(cycle)
                if marks[dep] == _UNVISITED:
                    marks[dep] = _VISITING
                    stack.append((dep, iter(deps_by_index[dep])))
                    break
            else:
                # All dependencies finished: post-order emit
                stack.pop()
                marks[node] = _DONE
                ordered.append(tasks[node])

    logger.debug(f"Ordered {len(ordered)} tasks")
    return ordered
