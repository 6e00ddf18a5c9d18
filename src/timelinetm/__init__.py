"""
timelinetm - a timeline hierarchy manager for project dashboards.

This package keeps a four-level plan consistent as it changes:
Timeline → Sprint → Task → Subtask
Every parent's date range and duration are derived from its children.
"""

from .version import VERSION, APP_SCHEMA_VERSION
from .models import (
    SprintStatus,
    TaskStatus,
    TaskPriority,
    Timeline,
    Sprint,
    Task,
    Subtask,
    Member,
    WorkItem,
    TaskFilters,
)
from .recovery import NotFoundError, ValidationError
from .store import TimelineStore
from .service import TimelineManager
from .api import TimelineAPI, Result, ErrorCode

__version__ = VERSION

__all__ = [
    "VERSION",
    "APP_SCHEMA_VERSION",
    "SprintStatus",
    "TaskStatus",
    "TaskPriority",
    "Timeline",
    "Sprint",
    "Task",
    "Subtask",
    "Member",
    "WorkItem",
    "TaskFilters",
    "NotFoundError",
    "ValidationError",
    "TimelineStore",
    "TimelineManager",
    "TimelineAPI",
    "Result",
    "ErrorCode",
]
