from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from datetime import date, datetime, timezone
from enum import Enum
from typing import ClassVar, Optional, List, Set, Tuple
import yaml

from .reconcile import duration_of

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class SprintStatus(Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class TaskStatus(Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"

class TaskPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class BaseYAMLModel(BaseModel):
    """Base model with camelCase wire names and YAML round-tripping."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        """JSON-ready dict using the wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False, indent=2, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str):
        return cls.model_validate(yaml.safe_load(text) or {})

class _DatedEntity(BaseYAMLModel):
    """Fields shared by every entity that carries its own range and duration."""

    id: int = Field(gt=0, description="Unique identifier within the entity's level")
    name: str = Field(min_length=1, description="Display name")
    description: Optional[str] = Field(default=None, description="Free-form description")
    start_date: date = Field(description="First day of the range (inclusive)")
    end_date: date = Field(description="Last day of the range (inclusive)")
    duration: int = Field(ge=1, description="Inclusive day count of the range")
    department: Optional[str] = Field(default=None, description="Owning department name")
    resources: Set[str] = Field(default_factory=set, description="User names of assigned members")
    created_at: datetime = Field(default_factory=utcnow, description="When the entity was created")
    updated_at: datetime = Field(default_factory=utcnow, description="When the entity or a descendant last changed")

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.duration != duration_of(self.start_date, self.end_date):
            raise ValueError(f"duration {self.duration} does not match range {self.start_date}..{self.end_date}")
        return self

    def set_range(self, start: date, end: date):
        self.start_date = start
        self.end_date = end
        self.duration = duration_of(start, end)

class Subtask(_DatedEntity):
    """The finest-grained unit of work, leaf of the hierarchy."""

    task_id: int = Field(description="Id of the owning task")
    status: TaskStatus = Field(default=TaskStatus.NOT_STARTED, description="Current status of the subtask")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Scheduling priority")
    progress: int = Field(default=0, ge=0, le=100, description="Completion percentage")
    notes: Optional[str] = Field(default=None, description="Working notes")

class Task(_DatedEntity):
    """A unit of work under a sprint, owning subtasks."""

    sprint_id: int = Field(description="Id of the owning sprint")
    status: TaskStatus = Field(default=TaskStatus.NOT_STARTED, description="Current status of the task")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Scheduling priority")
    progress: int = Field(default=0, ge=0, le=100, description="Completion percentage")
    notes: Optional[str] = Field(default=None, description="Working notes")
    dependencies: Set[int] = Field(default_factory=set, description="Ids of tasks this one depends on (stored, not enforced)")
    subtasks: List[Subtask] = Field(default_factory=list, description="List of task subtasks")

    @property
    def children(self) -> List[Subtask]:
        return self.subtasks

class Sprint(_DatedEntity):
    """A bounded work period under a timeline, owning tasks."""

    timeline_id: int = Field(description="Id of the owning timeline")
    status: SprintStatus = Field(default=SprintStatus.PLANNING, description="Current status of the sprint")
    tasks: List[Task] = Field(default_factory=list, description="List of sprint tasks")

    @property
    def children(self) -> List[Task]:
        return self.tasks

class Timeline(BaseYAMLModel):
    """Top-level container for a project's planned work."""

    id: int = Field(gt=0, description="Unique timeline identifier")
    project_id: int = Field(description="Id of the project this timeline plans")
    name: str = Field(min_length=1, description="Display name")
    description: Optional[str] = Field(default=None, description="Free-form description")
    start_date: date = Field(description="First day covered by the timeline")
    end_date: date = Field(description="Last day covered by the timeline")
    sprints: List[Sprint] = Field(default_factory=list, description="Ordered list of timeline sprints")
    created_at: datetime = Field(default_factory=utcnow, description="When the timeline was created")
    updated_at: datetime = Field(default_factory=utcnow, description="When the timeline or a descendant last changed")

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def children(self) -> List[Sprint]:
        return self.sprints

    def set_range(self, start: date, end: date):
        self.start_date = start
        self.end_date = end

# --- Input payloads ---

class _Payload(BaseYAMLModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

def _strip_name(cls, v):
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("name must not be blank")
    return v

class _CreatePayload(_Payload):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    start_date: date
    end_date: date

    strip_name = field_validator("name")(_strip_name)

    @model_validator(mode='after')
    def validate_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

class TimelineCreate(_CreatePayload):
    project_id: int

class SprintCreate(_CreatePayload):
    status: SprintStatus = SprintStatus.PLANNING
    department: Optional[str] = None
    resources: Set[str] = Field(default_factory=set)

class SubtaskCreate(_CreatePayload):
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: TaskPriority = TaskPriority.MEDIUM
    progress: int = Field(default=0, ge=0, le=100)
    department: Optional[str] = None
    resources: Set[str] = Field(default_factory=set)
    notes: Optional[str] = None

class TaskCreate(SubtaskCreate):
    dependencies: Set[int] = Field(default_factory=set)

class _UpdatePayload(_Payload):
    """Partial update; only fields the caller actually sent are applied."""

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("name", "start_date", "end_date")

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    strip_name = field_validator("name")(_strip_name)

    @model_validator(mode='after')
    def reject_null_required(self):
        for field_name in self.REQUIRED_FIELDS:
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f"{field_name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)

class TimelineUpdate(_UpdatePayload):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("name", "start_date", "end_date", "project_id")

    project_id: Optional[int] = None

class SprintUpdate(_UpdatePayload):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("name", "start_date", "end_date", "status")

    status: Optional[SprintStatus] = None
    department: Optional[str] = None
    resources: Optional[Set[str]] = None

class SubtaskUpdate(_UpdatePayload):
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = ("name", "start_date", "end_date", "status", "priority", "progress")

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    department: Optional[str] = None
    resources: Optional[Set[str]] = None
    notes: Optional[str] = None

class TaskUpdate(SubtaskUpdate):
    dependencies: Optional[Set[int]] = None

# --- Search records ---

class Member(BaseYAMLModel):
    """An assignable member, referenced from entity resources by user name."""

    id: int = Field(description="Unique member identifier")
    user_name: str = Field(description="Login name, used as the resource id")
    military_number: str = Field(default="", description="Service number")
    full_name: str = Field(description="Display name")
    grade_name: str = Field(default="", description="Rank or grade")
    status_id: int = Field(default=1, description="Employment status code")
    department: str = Field(default="", description="Department name")

class WorkItem(BaseYAMLModel):
    """Flat view of a task for search results and autocomplete."""

    id: int
    sprint_id: int
    name: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    duration: int
    department: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    progress: int
    members: List[Member] = Field(default_factory=list)

class TaskFilters(_Payload):
    """Criteria for filter_tasks; an empty criterion matches everything."""

    departments: List[str] = Field(default_factory=list)
    members: List[str] = Field(default_factory=list, description="User names")
    statuses: List[TaskStatus] = Field(default_factory=list)
    priorities: List[TaskPriority] = Field(default_factory=list)
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @model_validator(mode='after')
    def validate_window(self):
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to must not be before date_from")
        return self

# --- Snapshot document ---

class TimelineSnapshot(BaseYAMLModel):
    """The whole forest plus the assignable member list, as saved on disk."""

    schema_version: str = Field(description="Schema version the snapshot was written with")
    timelines: List[Timeline] = Field(default_factory=list, description="List of timelines")
    members: List[Member] = Field(default_factory=list, description="Assignable members")
