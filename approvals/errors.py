"""
APPROVAL PIPELINE - Errors
==========================
Structural errors raised while building blueprints and mutating pipelines.

Blueprint errors (cycle, dangling, duplicate) abort the build entirely.
State errors (prerequisite, transition, unknown task) leave the pipeline
untouched, so callers can inspect and retry.
"""

from typing import List


class SchedulerError(ValueError):
    """Base class for every scheduler error"""


# ========================================
# BLUEPRINT CONSTRUCTION
# ========================================

class CycleError(SchedulerError):
    def __init__(self, task_ids: List[str]):
        self.task_ids = list(task_ids)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.task_ids)}")


class DanglingReferenceError(SchedulerError):
    def __init__(self, task_id: str, missing_id: str):
        self.task_id = task_id
        self.missing_id = missing_id
        super().__init__(f"Task {task_id} depends on unknown task: {missing_id}")


class DuplicateTaskError(SchedulerError):
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task id declared more than once: {task_id}")


# ========================================
# PIPELINE STATE
# ========================================

class UnknownTaskError(SchedulerError):
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task not found in pipeline: {task_id}")


class PrerequisiteError(SchedulerError):
    """Raised when a task is started before all of its dependencies are approved"""

    def __init__(self, task_id: str, blocking: List[str]):
        self.task_id = task_id
        self.blocking = list(blocking)
        super().__init__(f"Task {task_id} is waiting on unapproved prerequisites: {self.blocking}")


class InvalidTransitionError(SchedulerError):
    def __init__(self, task_id: str, current: str, requested: str, reason: str = ""):
        self.task_id = task_id
        self.current = current
        self.requested = requested
        self.reason = reason
        message = f"Task {task_id} cannot move from {current} to {requested}"
        super().__init__(f"{message}: {reason}" if reason else message)


class CaseNotFoundError(SchedulerError):
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Case not found: {case_id}")
