"""
TimelineAPI - the library boundary used by HTTP controllers and the CLI.

Every call returns a Result instead of raising: NotFound and validation
failures become 404/400 results, anything unexpected is logged and becomes a
500 result carrying the operation's error code.
"""
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from .models import BaseYAMLModel
from .recovery import FatalError, NotFoundError, ValidationError
from .service import TimelineManager
from .logs import get_logger

log = get_logger("api")

class ErrorCode(Enum):
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CREATE_ERROR = "CREATE_ERROR"
    UPDATE_ERROR = "UPDATE_ERROR"
    DELETE_ERROR = "DELETE_ERROR"
    MOVE_ERROR = "MOVE_ERROR"
    FETCH_ERROR = "FETCH_ERROR"
    SEARCH_ERROR = "SEARCH_ERROR"

class ErrorInfo(BaseModel):
    message: str
    code: ErrorCode

class Result(BaseModel):
    """Envelope of the form {success, data?, error?: {message, code}, message?}."""

    success: bool
    data: Any = None
    error: Optional[ErrorInfo] = None
    message: Optional[str] = None
    status_code: int = Field(default=200, exclude=True, description="HTTP status a controller should answer with")

    @classmethod
    def ok(cls, data: Any = None, status_code: int = 200, message: Optional[str] = None) -> 'Result':
        return cls(success=True, data=data, message=message, status_code=status_code)

    @classmethod
    def failure(cls, message: str, code: ErrorCode, status_code: int) -> 'Result':
        return cls(success=False, error=ErrorInfo(message=message, code=code), status_code=status_code)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

def to_wire(value: Any) -> Any:
    """Convert models (and lists of them) to JSON-ready camelCase dicts."""
    if isinstance(value, BaseYAMLModel):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [to_wire(v) for v in value]
    return value

class TimelineAPI:
    """Value-returning facade over a TimelineManager."""

    def __init__(self, manager: Optional[TimelineManager] = None):
        self.manager = manager if manager is not None else TimelineManager()

    def _call(self, action: Callable[[], Any], failure_code: ErrorCode, what: str,
              status_code: int = 200, message: Optional[str] = None) -> Result:
        try:
            value = action()
        except NotFoundError as e:
            log.info(f"{what}: {e}")
            return Result.failure(str(e), ErrorCode.NOT_FOUND, 404)
        except ValidationError as e:
            log.warning(f"{what}: invalid input: {e}")
            return Result.failure(str(e), ErrorCode.VALIDATION_ERROR, 400)
        except FatalError as e:
            log.critical(f"{what} failed, store may be inconsistent: {e}")
            return Result.failure(f"Failed to {what}", failure_code, 500)
        except Exception:
            log.exception(f"Unexpected error while trying to {what}")
            return Result.failure(f"Failed to {what}", failure_code, 500)
        return Result.ok(to_wire(value), status_code, message)

    # --- timelines ---

    def list_timelines(self, project_id=None) -> Result:
        return self._call(lambda: self.manager.list_timelines(project_id), ErrorCode.FETCH_ERROR, "fetch timelines")

    def get_timeline(self, timeline_id) -> Result:
        return self._call(lambda: self.manager.get_timeline(timeline_id), ErrorCode.FETCH_ERROR, "fetch timeline")

    def create_timeline(self, data) -> Result:
        return self._call(lambda: self.manager.create_timeline(data), ErrorCode.CREATE_ERROR, "create timeline",
                          201, "Timeline created successfully")

    def update_timeline(self, timeline_id, data) -> Result:
        return self._call(lambda: self.manager.update_timeline(timeline_id, data), ErrorCode.UPDATE_ERROR,
                          "update timeline", message="Timeline updated successfully")

    def delete_timeline(self, timeline_id) -> Result:
        return self._call(lambda: {"id": self.manager.delete_timeline(timeline_id).id}, ErrorCode.DELETE_ERROR,
                          "delete timeline", message="Timeline deleted successfully")

    # --- sprints ---

    def get_sprint(self, sprint_id) -> Result:
        return self._call(lambda: self.manager.get_sprint(sprint_id), ErrorCode.FETCH_ERROR, "fetch sprint")

    def get_sprint_tasks(self, sprint_id) -> Result:
        return self._call(lambda: self.manager.get_tasks_by_sprint_id(sprint_id), ErrorCode.FETCH_ERROR,
                          "fetch sprint tasks")

    def create_sprint(self, timeline_id, data) -> Result:
        return self._call(lambda: self.manager.create_sprint(timeline_id, data), ErrorCode.CREATE_ERROR,
                          "create sprint", 201, "Sprint created successfully")

    def update_sprint(self, sprint_id, data) -> Result:
        return self._call(lambda: self.manager.update_sprint(sprint_id, data), ErrorCode.UPDATE_ERROR,
                          "update sprint", message="Sprint updated successfully")

    def delete_sprint(self, sprint_id) -> Result:
        return self._call(lambda: {"id": self.manager.delete_sprint(sprint_id).id}, ErrorCode.DELETE_ERROR,
                          "delete sprint", message="Sprint deleted successfully")

    # --- tasks ---

    def get_task(self, task_id) -> Result:
        return self._call(lambda: self.manager.get_task(task_id), ErrorCode.FETCH_ERROR, "fetch task")

    def create_task(self, sprint_id, data) -> Result:
        return self._call(lambda: self.manager.create_task(sprint_id, data), ErrorCode.CREATE_ERROR,
                          "create task", 201, "Task created successfully")

    def update_task(self, task_id, data) -> Result:
        return self._call(lambda: self.manager.update_task(task_id, data), ErrorCode.UPDATE_ERROR,
                          "update task", message="Task updated successfully")

    def move_task_to_sprint(self, task_id, target_sprint_id) -> Result:
        return self._call(lambda: self.manager.move_task(task_id, target_sprint_id), ErrorCode.MOVE_ERROR,
                          "move task", message="Task moved successfully")

    def shift_task(self, task_id, move_days) -> Result:
        return self._call(lambda: self.manager.shift_task(task_id, move_days), ErrorCode.MOVE_ERROR,
                          "shift task", message="Task dates shifted successfully")

    def delete_task(self, task_id) -> Result:
        return self._call(lambda: {"id": self.manager.delete_task(task_id).id}, ErrorCode.DELETE_ERROR,
                          "delete task", message="Task deleted successfully")

    # --- subtasks ---

    def get_subtask(self, subtask_id) -> Result:
        return self._call(lambda: self.manager.get_subtask(subtask_id), ErrorCode.FETCH_ERROR, "fetch subtask")

    def create_subtask(self, task_id, data) -> Result:
        return self._call(lambda: self.manager.create_subtask(task_id, data), ErrorCode.CREATE_ERROR,
                          "create subtask", 201, "Subtask created successfully")

    def update_subtask(self, subtask_id, data) -> Result:
        return self._call(lambda: self.manager.update_subtask(subtask_id, data), ErrorCode.UPDATE_ERROR,
                          "update subtask", message="Subtask updated successfully")

    def delete_subtask(self, subtask_id) -> Result:
        return self._call(lambda: {"id": self.manager.delete_subtask(subtask_id).id}, ErrorCode.DELETE_ERROR,
                          "delete subtask", message="Subtask deleted successfully")

    # --- search ---

    def search_tasks(self, query: Optional[str] = None) -> Result:
        return self._call(lambda: self.manager.search_tasks(query), ErrorCode.SEARCH_ERROR, "search tasks")

    def search_members(self, query: Optional[str] = None) -> Result:
        return self._call(lambda: self.manager.search_members(query), ErrorCode.SEARCH_ERROR, "search members")

    def filter_tasks(self, filters) -> Result:
        return self._call(lambda: self.manager.filter_tasks(filters), ErrorCode.SEARCH_ERROR, "filter tasks")
