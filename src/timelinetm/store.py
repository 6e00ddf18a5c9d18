"""
TimelineStore - owner of the in-memory Timeline forest.

The forest is the source of truth; the per-level id indexes are derived from
it and kept in step by the add/remove methods. Callers must hold ``lock`` for
the whole of any read-modify-write sequence.
"""
import threading
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Tuple

from .models import Member, Sprint, Subtask, Task, Timeline, TimelineSnapshot
from .recovery import CorruptionError
from .version import APP_SCHEMA_VERSION
from .logs import get_logger

log = get_logger("store")

class Level(Enum):
    TIMELINE = "Timeline"
    SPRINT = "Sprint"
    TASK = "Task"
    SUBTASK = "Subtask"

def _detach(items: list, entity):
    """Remove an entity from its parent list by identity."""
    for position, item in enumerate(items):
        if item is entity:
            del items[position]
            return
    raise CorruptionError(f"{type(entity).__name__} {entity.id} is indexed but missing from its parent")

class TimelineStore:
    """Explicitly owned forest of timelines plus id indexes for O(1) lookup."""

    def __init__(self, timelines: Iterable[Timeline] = (), members: Iterable[Member] = ()):
        self.lock = threading.RLock()
        self.timelines: List[Timeline] = []
        self.members: List[Member] = []
        self._index: Dict[Level, Dict[int, object]] = {level: {} for level in Level}
        self._last_ids: Dict[Level, int] = {level: 0 for level in Level}
        self.load(timelines, members)

    # --- bulk state ---

    def load(self, timelines: Iterable[Timeline], members: Iterable[Member] = ()):
        """Replace the whole forest and rebuild the indexes."""
        with self.lock:
            self.timelines = list(timelines)
            self.members = list(members)
            self.reindex()

    def reindex(self):
        """
        Rebuild every id index from the forest.

        Raises:
            CorruptionError: on a duplicate id within a level or a
                back-reference that disagrees with the owning parent.
        """
        with self.lock:
            for level in Level:
                self._index[level] = {}
            for timeline in self.timelines:
                self._register(Level.TIMELINE, timeline)
                for sprint in timeline.sprints:
                    self._check_backref(sprint, "timeline_id", timeline)
                    self._register(Level.SPRINT, sprint)
                    for task in sprint.tasks:
                        self._check_backref(task, "sprint_id", sprint)
                        self._register(Level.TASK, task)
                        for subtask in task.subtasks:
                            self._check_backref(subtask, "task_id", task)
                            self._register(Level.SUBTASK, subtask)

            for level in Level:
                self._last_ids[level] = max(self._last_ids[level], max(self._index[level], default=0))
            counts = ", ".join(f"{len(self._index[level])} {level.value.lower()}(s)" for level in Level)
            log.debug(f"Indexed {counts}")

    def _register(self, level: Level, entity):
        bucket = self._index[level]
        if entity.id in bucket:
            raise CorruptionError(f"Duplicate {level.value} id {entity.id}")
        bucket[entity.id] = entity

    @staticmethod
    def _check_backref(entity, field: str, parent):
        if getattr(entity, field) != parent.id:
            raise CorruptionError(
                f"{type(entity).__name__} {entity.id} has {field}={getattr(entity, field)} "
                f"but is owned by {type(parent).__name__} {parent.id}")

    def snapshot(self) -> TimelineSnapshot:
        """Deep copy of the forest and member list, safe to serialize."""
        with self.lock:
            return TimelineSnapshot(
                schema_version=APP_SCHEMA_VERSION,
                timelines=[t.model_copy(deep=True) for t in self.timelines],
                members=[m.model_copy(deep=True) for m in self.members],
            )

    # --- ids and indexes ---

    def next_id(self, level: Level) -> int:
        """Allocate a fresh id one past the highest ever seen at that level."""
        with self.lock:
            self._last_ids[level] += 1
            return self._last_ids[level]

    def get(self, level: Level, entity_id: int):
        return self._index[level].get(entity_id)

    def count(self, level: Level) -> int:
        return len(self._index[level])

    def walk_tasks(self) -> Iterator[Tuple[Timeline, Sprint, Task]]:
        """Every task in forest order, with its owning timeline and sprint."""
        for timeline in self.timelines:
            for sprint in timeline.sprints:
                for task in sprint.tasks:
                    yield timeline, sprint, task

    # --- structural changes ---

    def add_timeline(self, timeline: Timeline):
        self._register(Level.TIMELINE, timeline)
        self.timelines.append(timeline)

    def add_sprint(self, timeline: Timeline, sprint: Sprint):
        self._register(Level.SPRINT, sprint)
        timeline.sprints.append(sprint)

    def add_task(self, sprint: Sprint, task: Task):
        self._register(Level.TASK, task)
        sprint.tasks.append(task)

    def add_subtask(self, task: Task, subtask: Subtask):
        self._register(Level.SUBTASK, subtask)
        task.subtasks.append(subtask)

    def remove_timeline(self, timeline: Timeline):
        _detach(self.timelines, timeline)
        self._unindex_timeline(timeline)

    def remove_sprint(self, timeline: Timeline, sprint: Sprint):
        _detach(timeline.sprints, sprint)
        self._unindex_sprint(sprint)

    def remove_task(self, sprint: Sprint, task: Task):
        _detach(sprint.tasks, task)
        self._unindex_task(task)

    def remove_subtask(self, task: Task, subtask: Subtask):
        _detach(task.subtasks, subtask)
        del self._index[Level.SUBTASK][subtask.id]

    def relocate_task(self, task: Task, source: Sprint, target: Sprint):
        """Move ownership of a task from one sprint to another."""
        _detach(source.tasks, task)
        target.tasks.append(task)
        task.sprint_id = target.id

    def _unindex_timeline(self, timeline: Timeline):
        for sprint in timeline.sprints:
            self._unindex_sprint(sprint)
        del self._index[Level.TIMELINE][timeline.id]

    def _unindex_sprint(self, sprint: Sprint):
        for task in sprint.tasks:
            self._unindex_task(task)
        del self._index[Level.SPRINT][sprint.id]

    def _unindex_task(self, task: Task):
        for subtask in task.subtasks:
            del self._index[Level.SUBTASK][subtask.id]
        del self._index[Level.TASK][task.id]
