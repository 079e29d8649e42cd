"""
APPROVAL PIPELINE - Schema Definition
=====================================
Task definitions, derived blueprints and live per-case pipeline state
for government-approval scheduling.

Blueprints are immutable and shareable across cases.
PipelineState is mutable and owned by exactly one case.
"""

from enum import Enum
from typing import Optional, List, Dict
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


class TaskStatus(str, Enum):
    """Task instance lifecycle states"""
    NOT_STARTED = "not-started"     # Waiting to be submitted
    IN_PROGRESS = "in-progress"     # Submitted, agency processing
    UNDER_REVIEW = "under-review"   # Awaiting agency decision
    APPROVED = "approved"           # Terminal, success
    REJECTED = "rejected"           # Terminal, failure
    ON_HOLD = "on-hold"             # Paused by agency or investor
    BLOCKED = "blocked"             # A prerequisite is not approved

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.APPROVED, TaskStatus.REJECTED)


class TaskPriority(str, Enum):
    """Agency-level priority tag (not used in scheduling math)"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EscalationReason(str, Enum):
    APPROACHING_SLA = "approaching_sla"
    SLA_BREACHED = "sla_breached"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


# ============================================================
# CATALOG INPUT
# ============================================================

class TaskDefinition(BaseModel):
    """One approval service from the external catalog"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    authority: str = ""
    description: Optional[str] = None
    duration_days: int = Field(gt=0)                        # Standard SLA, whole days
    dependencies: List[str] = Field(default_factory=list)   # Task IDs that must be approved first

    # Agency criticality tag, unrelated to the computed critical path
    priority: TaskPriority = TaskPriority.MEDIUM
    critical_path: bool = False

    required_documents: List[str] = Field(default_factory=list)
    applicable_for: List[str] = Field(default_factory=lambda: ["all"])
    fee: float = 0
    currency: str = "BDT"


# ============================================================
# DERIVED BLUEPRINT
# ============================================================

class ScheduledTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    task: TaskDefinition
    earliest_start: int
    earliest_finish: int
    latest_start: int
    latest_finish: int
    is_on_critical_path: bool = False

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def slack(self) -> int:
        return self.latest_start - self.earliest_start


class ParallelGroup(BaseModel):
    """Tasks sharing an earliest start offset"""
    model_config = ConfigDict(frozen=True)

    earliest_start: int
    task_ids: List[str]


class PipelineBlueprint(BaseModel):
    """Immutable scheduling shape derived once from a task catalog"""
    model_config = ConfigDict(frozen=True)

    tasks: List[ScheduledTask] = Field(default_factory=list)   # Topological order
    critical_path_ids: List[str] = Field(default_factory=list)
    parallel_groups: List[ParallelGroup] = Field(default_factory=list)
    total_duration_days: int = 0

    _index: Dict[str, ScheduledTask] = PrivateAttr(default_factory=dict)
    _dependents: Dict[str, List[str]] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        self._index = {st.id: st for st in self.tasks}
        self._dependents = {st.id: [] for st in self.tasks}
        for st in self.tasks:
            for dep_id in st.task.dependencies:
                self._dependents.setdefault(dep_id, []).append(st.id)

    @property
    def task_ids(self) -> List[str]:
        return [st.id for st in self.tasks]

    def get(self, task_id: str) -> Optional[ScheduledTask]:
        return self._index.get(task_id)

    def dependents_of(self, task_id: str) -> List[str]:
        """Task IDs that list task_id as a dependency, in blueprint order"""
        return list(self._dependents.get(task_id, []))


# ============================================================
# LIVE PIPELINE STATE
# ============================================================

class TaskInstance(BaseModel):
    """Mutable status of one task within one case"""
    task_id: str
    status: TaskStatus = TaskStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    uploaded_documents: List[str] = Field(default_factory=list)
    assigned_officer: Optional[str] = None
    notes: str = ""


class TaskApproved(BaseModel):
    """Emitted when a task instance reaches approved"""
    model_config = ConfigDict(frozen=True)

    case_id: str
    task_id: str
    approved_at: datetime


class PipelineState(BaseModel):
    """Live approval pipeline for a single investor case"""
    case_id: str
    blueprint: PipelineBlueprint
    instances: Dict[str, TaskInstance] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Undelivered TaskApproved events, see tracker.drain_events
    outbox: List[TaskApproved] = Field(default_factory=list, exclude=True)

    @property
    def completed_count(self) -> int:
        return sum(1 for i in self.instances.values() if i.status == TaskStatus.APPROVED)

    @property
    def overall_progress_pct(self) -> float:
        if not self.instances:
            return 0.0
        return self.completed_count / len(self.instances) * 100

    @property
    def status_summary(self) -> Dict[str, int]:
        summary = {status.value: 0 for status in TaskStatus}
        for instance in self.instances.values():
            summary[instance.status.value] += 1
        return summary


# ============================================================
# QUERY RESULTS
# ============================================================

class TaskSnapshot(BaseModel):
    status: TaskStatus
    days_elapsed: int
    days_remaining: int


class PipelineSnapshot(BaseModel):
    case_id: str
    per_task: Dict[str, TaskSnapshot]
    completed_count: int
    overall_progress_pct: float
    critical_path_ids: List[str]
    total_duration_days: int


class Escalation(BaseModel):
    model_config = ConfigDict(frozen=True)

    case_id: str
    task_id: str
    reason: EscalationReason
    severity: Severity
    days_elapsed: int
    days_remaining: int
    detected_at: datetime


class AuthorityMetrics(BaseModel):
    authority: str
    total_tasks: int = 0
    completed_tasks: int = 0
    average_days_to_complete: float = 0.0
    sla_breaches: int = 0
    on_time_pct: float = 100.0
