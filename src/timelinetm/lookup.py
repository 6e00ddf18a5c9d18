"""
Id-based lookup through the Timeline forest.

Every finder returns the entity together with its direct parent and
grandparent so the mutation service can edit the tree in place.
"""
from dataclasses import dataclass
from typing import Any, List, Optional, Union

from .models import Sprint, Subtask, Task, Timeline
from .recovery import CorruptionError, NotFoundError
from .store import Level, TimelineStore
from .logs import get_logger

log = get_logger("lookup")

Entity = Union[Timeline, Sprint, Task, Subtask]

@dataclass
class Location:
    entity: Entity
    parent: Optional[Entity] = None
    grandparent: Optional[Entity] = None

def coerce_id(value: Any) -> Optional[int]:
    """Accept ints and integer strings; anything else cannot name an entity."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None

class Lookup:
    """Resolves ids to entities using the store's indexes."""

    def __init__(self, store: TimelineStore):
        self.store = store

    def _get(self, level: Level, entity_id):
        key = coerce_id(entity_id)
        entity = self.store.get(level, key) if key is not None else None
        if entity is None:
            log.debug(f"{level.value} {entity_id!r} not found")
            raise NotFoundError(level.value, entity_id)
        return entity

    def _owner(self, level: Level, owner_id: int, child: Entity) -> Entity:
        owner = self.store.get(level, owner_id)
        if owner is None or not any(c is child for c in owner.children):
            raise CorruptionError(f"{type(child).__name__} {child.id} is detached from {level.value} {owner_id}")
        return owner

    def find_timeline(self, timeline_id) -> Location:
        return Location(self._get(Level.TIMELINE, timeline_id))

    def find_sprint(self, sprint_id) -> Location:
        sprint = self._get(Level.SPRINT, sprint_id)
        timeline = self._owner(Level.TIMELINE, sprint.timeline_id, sprint)
        return Location(sprint, timeline)

    def find_task(self, task_id) -> Location:
        task = self._get(Level.TASK, task_id)
        sprint = self._owner(Level.SPRINT, task.sprint_id, task)
        timeline = self._owner(Level.TIMELINE, sprint.timeline_id, sprint)
        return Location(task, sprint, timeline)

    def find_subtask(self, subtask_id) -> Location:
        subtask = self._get(Level.SUBTASK, subtask_id)
        task = self._owner(Level.TASK, subtask.task_id, subtask)
        sprint = self._owner(Level.SPRINT, task.sprint_id, task)
        return Location(subtask, task, sprint)

    def find_tasks_by_sprint_id(self, sprint_id) -> List[Task]:
        """The sprint's task list; an empty list means the sprint exists but has no tasks."""
        return self.find_sprint(sprint_id).entity.tasks

    def parent_of(self, entity: Entity) -> Optional[Entity]:
        """The owning entity one level up, or None for a timeline."""
        if isinstance(entity, Subtask):
            return self._owner(Level.TASK, entity.task_id, entity)
        if isinstance(entity, Task):
            return self._owner(Level.SPRINT, entity.sprint_id, entity)
        if isinstance(entity, Sprint):
            return self._owner(Level.TIMELINE, entity.timeline_id, entity)
        return None
