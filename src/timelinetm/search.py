"""Read-only text search and filtering over the flattened task list."""
from typing import Dict, Iterable, List, Optional

from .models import Member, Sprint, Task, TaskFilters, WorkItem
from .store import TimelineStore


def _normalize(query: Optional[str]) -> str:
    return (query or "").strip().lower()


def _contains(value: Optional[str], term: str) -> bool:
    return bool(value) and term in value.lower()


def _members_by_user_name(store: TimelineStore) -> Dict[str, Member]:
    return {m.user_name: m for m in store.members}


def to_work_item(sprint: Sprint, task: Task, members: Dict[str, Member]) -> WorkItem:
    assigned = [members[name] for name in sorted(task.resources) if name in members]
    return WorkItem(
        id=task.id,
        sprint_id=sprint.id,
        name=task.name,
        description=task.description,
        start_date=task.start_date,
        end_date=task.end_date,
        duration=task.duration,
        department=task.department,
        status=task.status,
        priority=task.priority,
        progress=task.progress,
        members=[m.model_copy() for m in assigned],
    )


def all_work_items(store: TimelineStore) -> List[WorkItem]:
    members = _members_by_user_name(store)
    return [to_work_item(sprint, task, members) for _, sprint, task in store.walk_tasks()]


def _matches_text(item: WorkItem, term: str) -> bool:
    return (
        _contains(item.name, term)
        or _contains(item.description, term)
        or _contains(item.department, term)
        or any(_contains(m.full_name, term) or _contains(m.user_name, term) for m in item.members)
    )


def search_tasks(store: TimelineStore, query: Optional[str]) -> List[WorkItem]:
    """Tasks whose name, description, department or member names contain ``query``."""
    items = all_work_items(store)
    term = _normalize(query)
    if not term:
        return items
    return [item for item in items if _matches_text(item, term)]


def search_members(store: TimelineStore, query: Optional[str]) -> List[Member]:
    term = _normalize(query)
    if not term:
        return [m.model_copy() for m in store.members]

    def matches(member: Member) -> bool:
        return any(_contains(value, term) for value in (
            member.user_name,
            member.military_number,
            member.full_name,
            member.grade_name,
            member.department,
        ))

    return [m.model_copy() for m in store.members if matches(m)]


def _lowered(values: Iterable[str]) -> set:
    return {v.strip().lower() for v in values if v and v.strip()}


def filter_tasks(store: TimelineStore, filters: TaskFilters) -> List[WorkItem]:
    """
    Apply every non-empty criterion of ``filters``; all of them must match.

    The date window keeps tasks that overlap it, so a task running across
    either edge of the window is included.
    """
    departments = _lowered(filters.departments)
    wanted_members = set(filters.members)
    statuses = set(filters.statuses)
    priorities = set(filters.priorities)
    term = _normalize(filters.search)

    results = []
    for item in all_work_items(store):
        if departments and (item.department or "").lower() not in departments:
            continue
        if wanted_members and not wanted_members.intersection(m.user_name for m in item.members):
            continue
        if statuses and item.status not in statuses:
            continue
        if priorities and item.priority not in priorities:
            continue
        if term and not _matches_text(item, term):
            continue
        if filters.date_from and item.end_date < filters.date_from:
            continue
        if filters.date_to and item.start_date > filters.date_to:
            continue
        results.append(item)
    return results
