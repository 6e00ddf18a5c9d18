"""
TimelineManager - create, update, move, shift and delete operations over the
Timeline → Sprint → Task → Subtask hierarchy.

After every change the affected parent is reconciled from its children and
the pass repeats one level up until the timeline is reached. An emptied
parent keeps its last range (freeze policy) but is still touched.
"""
import functools
import re
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .lookup import Entity, Lookup, coerce_id
from .models import (
    Member, Sprint, SprintCreate, SprintUpdate, Subtask, SubtaskCreate,
    SubtaskUpdate, Task, TaskCreate, TaskFilters, TaskUpdate, Timeline,
    TimelineCreate, TimelineUpdate, WorkItem, utcnow,
)
from .reconcile import duration_of, reconcile, shift_range
from .recovery import ValidationError
from .store import Level, TimelineStore
from . import search
from .logs import get_logger

log = get_logger("service")

P = TypeVar("P", bound=BaseModel)

_SET_FIELDS = ("resources", "dependencies")
_DAYS = re.compile(r"[+-]?\d+")

def _serialized(method):
    """Run the whole operation under the store lock."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.store.lock:
            return method(self, *args, **kwargs)
    return wrapper

def _describe(error: PydanticValidationError) -> str:
    parts = []
    for err in error.errors():
        where = ".".join(str(part) for part in err["loc"]) or "payload"
        parts.append(f"{where}: {err['msg']}")
    return "; ".join(parts)

def parse_payload(payload_type: Type[P], data: Union[P, Mapping[str, Any], None]) -> P:
    """Validate caller data into a payload model, raising ValidationError on bad input."""
    if isinstance(data, payload_type):
        return data
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValidationError(f"{payload_type.__name__} payload must be a mapping, got {type(data).__name__}")
    try:
        return payload_type.model_validate(dict(data))
    except PydanticValidationError as e:
        raise ValidationError(_describe(e)) from e

def _parse_days(value) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and _DAYS.fullmatch(value.strip()):
        return int(value.strip())
    raise ValidationError(f"moveDays must be an integer, got {value!r}")

def _copy(entity):
    return entity.model_copy(deep=True)

class TimelineManager:
    """Mutation and read operations over one TimelineStore."""

    def __init__(self, store: Optional[TimelineStore] = None, clock: Callable[[], datetime] = utcnow):
        self.store = store if store is not None else TimelineStore()
        self.lookup = Lookup(self.store)
        self._clock = clock

    # --- reconciliation ---

    def _propagate(self, parent: Optional[Entity], now: datetime, reconcile_dates: bool = True):
        """
        Walk from ``parent`` up to its timeline, touching every level.

        When ``reconcile_dates`` is set each level with children is re-derived
        from them; a level with no children keeps its range.
        """
        while parent is not None:
            if reconcile_dates and parent.children:
                enclosing = reconcile(parent.children)
                parent.set_range(enclosing.start_date, enclosing.end_date)
            parent.updated_at = now
            parent = self.lookup.parent_of(parent)

    def _apply_changes(self, entity: Entity, changes: dict, now: datetime) -> bool:
        """Merge a partial update into ``entity``. Returns True when its dates moved."""
        start = changes.pop("start_date", entity.start_date)
        end = changes.pop("end_date", entity.end_date)
        if end < start:
            raise ValidationError(f"end_date {end} is before start_date {start}")

        for field, value in changes.items():
            if value is None and field in _SET_FIELDS:
                value = set()
            setattr(entity, field, value)

        dates_changed = (start, end) != (entity.start_date, entity.end_date)
        entity.set_range(start, end)
        entity.updated_at = now
        return dates_changed

    # --- timelines ---

    @_serialized
    def create_timeline(self, data) -> Timeline:
        payload = parse_payload(TimelineCreate, data)
        now = self._clock()
        timeline = Timeline(
            id=self.store.next_id(Level.TIMELINE),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self.store.add_timeline(timeline)
        log.info(f"Created timeline {timeline.id} for project {timeline.project_id}")
        return _copy(timeline)

    @_serialized
    def update_timeline(self, timeline_id, data) -> Timeline:
        timeline = self.lookup.find_timeline(timeline_id).entity
        changes = parse_payload(TimelineUpdate, data).changes()
        start = changes.pop("start_date", timeline.start_date)
        end = changes.pop("end_date", timeline.end_date)
        if end < start:
            raise ValidationError(f"end_date {end} is before start_date {start}")
        if (start, end) != (timeline.start_date, timeline.end_date) and timeline.sprints:
            raise ValidationError(f"Timeline {timeline.id} dates are derived from its sprints")

        for field, value in changes.items():
            setattr(timeline, field, value)
        timeline.set_range(start, end)
        timeline.updated_at = self._clock()
        log.info(f"Updated timeline {timeline.id}")
        return _copy(timeline)

    @_serialized
    def delete_timeline(self, timeline_id) -> Timeline:
        timeline = self.lookup.find_timeline(timeline_id).entity
        self.store.remove_timeline(timeline)
        log.info(f"Deleted timeline {timeline.id} with {len(timeline.sprints)} sprint(s)")
        return timeline

    @_serialized
    def get_timeline(self, timeline_id) -> Timeline:
        return _copy(self.lookup.find_timeline(timeline_id).entity)

    @_serialized
    def list_timelines(self, project_id=None) -> List[Timeline]:
        if project_id is None:
            return [_copy(t) for t in self.store.timelines]
        wanted = coerce_id(project_id)
        return [_copy(t) for t in self.store.timelines if t.project_id == wanted]

    # --- sprints ---

    @_serialized
    def create_sprint(self, timeline_id, data) -> Sprint:
        timeline = self.lookup.find_timeline(timeline_id).entity
        payload = parse_payload(SprintCreate, data)
        now = self._clock()
        sprint = Sprint(
            id=self.store.next_id(Level.SPRINT),
            timeline_id=timeline.id,
            duration=duration_of(payload.start_date, payload.end_date),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self.store.add_sprint(timeline, sprint)
        self._propagate(timeline, now)
        log.info(f"Created sprint {sprint.id} in timeline {timeline.id}")
        return _copy(sprint)

    @_serialized
    def update_sprint(self, sprint_id, data) -> Sprint:
        location = self.lookup.find_sprint(sprint_id)
        changes = parse_payload(SprintUpdate, data).changes()
        now = self._clock()
        dates_changed = self._apply_changes(location.entity, changes, now)
        self._propagate(location.parent, now, reconcile_dates=dates_changed)
        log.info(f"Updated sprint {location.entity.id}")
        return _copy(location.entity)

    @_serialized
    def delete_sprint(self, sprint_id) -> Sprint:
        location = self.lookup.find_sprint(sprint_id)
        sprint, timeline = location.entity, location.parent
        self.store.remove_sprint(timeline, sprint)
        self._propagate(timeline, self._clock())
        log.info(f"Deleted sprint {sprint.id} with {len(sprint.tasks)} task(s)")
        return sprint

    @_serialized
    def get_sprint(self, sprint_id) -> Sprint:
        return _copy(self.lookup.find_sprint(sprint_id).entity)

    @_serialized
    def get_tasks_by_sprint_id(self, sprint_id) -> List[Task]:
        return [_copy(t) for t in self.lookup.find_tasks_by_sprint_id(sprint_id)]

    # --- tasks ---

    @_serialized
    def create_task(self, sprint_id, data) -> Task:
        sprint = self.lookup.find_sprint(sprint_id).entity
        payload = parse_payload(TaskCreate, data)
        now = self._clock()
        task = Task(
            id=self.store.next_id(Level.TASK),
            sprint_id=sprint.id,
            duration=duration_of(payload.start_date, payload.end_date),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self.store.add_task(sprint, task)
        self._propagate(sprint, now)
        log.info(f"Created task {task.id} in sprint {sprint.id}")
        return _copy(task)

    @_serialized
    def update_task(self, task_id, data) -> Task:
        location = self.lookup.find_task(task_id)
        changes = parse_payload(TaskUpdate, data).changes()
        now = self._clock()
        dates_changed = self._apply_changes(location.entity, changes, now)
        self._propagate(location.parent, now, reconcile_dates=dates_changed)
        log.info(f"Updated task {location.entity.id}")
        return _copy(location.entity)

    @_serialized
    def move_task(self, task_id, target_sprint_id) -> Task:
        """Reassign a task to another sprint and reconcile both sides."""
        location = self.lookup.find_task(task_id)
        target = self.lookup.find_sprint(target_sprint_id).entity
        task, source = location.entity, location.parent

        if source is target:
            log.debug(f"Task {task.id} already in sprint {target.id}; nothing to move")
            return _copy(task)

        now = self._clock()
        self.store.relocate_task(task, source, target)
        task.updated_at = now
        self._propagate(source, now)
        self._propagate(target, now)
        log.info(f"Moved task {task.id} from sprint {source.id} to sprint {target.id}")
        return _copy(task)

    @_serialized
    def shift_task(self, task_id, move_days) -> Task:
        """
        Shift a task, and its subtasks with it, by ``move_days`` days.

        Negative values shift earlier. Dependencies are not consulted.
        """
        location = self.lookup.find_task(task_id)
        days = _parse_days(move_days)

        task = location.entity
        entities = [task, *task.subtasks]
        try:
            ranges = [shift_range(e.start_date, e.end_date, days) for e in entities]
        except OverflowError as e:
            raise ValidationError(f"moveDays {days} shifts task {task.id} out of the supported date range") from e

        now = self._clock()
        for entity, (start, end) in zip(entities, ranges):
            entity.set_range(start, end)
            entity.updated_at = now
        self._propagate(location.parent, now)
        log.info(f"Shifted task {task.id} by {days} day(s)")
        return _copy(task)

    @_serialized
    def delete_task(self, task_id) -> Task:
        location = self.lookup.find_task(task_id)
        task, sprint = location.entity, location.parent
        self.store.remove_task(sprint, task)
        self._propagate(sprint, self._clock())
        log.info(f"Deleted task {task.id} with {len(task.subtasks)} subtask(s)")
        return task

    @_serialized
    def get_task(self, task_id) -> Task:
        return _copy(self.lookup.find_task(task_id).entity)

    # --- subtasks ---

    @_serialized
    def create_subtask(self, task_id, data) -> Subtask:
        task = self.lookup.find_task(task_id).entity
        payload = parse_payload(SubtaskCreate, data)
        now = self._clock()
        subtask = Subtask(
            id=self.store.next_id(Level.SUBTASK),
            task_id=task.id,
            duration=duration_of(payload.start_date, payload.end_date),
            created_at=now,
            updated_at=now,
            **payload.model_dump(),
        )
        self.store.add_subtask(task, subtask)
        self._propagate(task, now)
        log.info(f"Created subtask {subtask.id} in task {task.id}")
        return _copy(subtask)

    @_serialized
    def update_subtask(self, subtask_id, data) -> Subtask:
        location = self.lookup.find_subtask(subtask_id)
        changes = parse_payload(SubtaskUpdate, data).changes()
        now = self._clock()
        dates_changed = self._apply_changes(location.entity, changes, now)
        self._propagate(location.parent, now, reconcile_dates=dates_changed)
        log.info(f"Updated subtask {location.entity.id}")
        return _copy(location.entity)

    @_serialized
    def delete_subtask(self, subtask_id) -> Subtask:
        location = self.lookup.find_subtask(subtask_id)
        subtask, task = location.entity, location.parent
        self.store.remove_subtask(task, subtask)
        self._propagate(task, self._clock())
        log.info(f"Deleted subtask {subtask.id}")
        return subtask

    @_serialized
    def get_subtask(self, subtask_id) -> Subtask:
        return _copy(self.lookup.find_subtask(subtask_id).entity)

    # --- search ---

    @_serialized
    def search_tasks(self, query: Optional[str]) -> List[WorkItem]:
        return search.search_tasks(self.store, query)

    @_serialized
    def search_members(self, query: Optional[str]) -> List[Member]:
        return search.search_members(self.store, query)

    @_serialized
    def filter_tasks(self, filters) -> List[WorkItem]:
        return search.filter_tasks(self.store, parse_payload(TaskFilters, filters))
