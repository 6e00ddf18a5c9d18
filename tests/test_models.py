"""Unit tests for Pydantic models."""

import pytest
from datetime import date

from timelinetm.models import (
    Sprint, SprintStatus, SprintUpdate, Subtask, Task, TaskCreate, TaskFilters, TaskPriority,
    TaskStatus, TaskUpdate, Timeline, TimelineSnapshot, Member,
)


def make_task(**overrides):
    fields = dict(id=1, sprint_id=1, name="Build API", start_date=date(2025, 1, 1),
                  end_date=date(2025, 1, 3), duration=3)
    fields.update(overrides)
    return Task(**fields)


class TestEntities:
    """Test entity validation."""

    def test_defaults(self):
        """Test a task built with only the required fields."""
        task = make_task()
        assert task.status == TaskStatus.NOT_STARTED
        assert task.priority == TaskPriority.MEDIUM
        assert task.progress == 0
        assert task.subtasks == []
        assert task.dependencies == set()

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="end_date must not be before start_date"):
            make_task(start_date=date(2025, 1, 5), end_date=date(2025, 1, 1), duration=1)

    def test_duration_must_match_range(self):
        with pytest.raises(ValueError, match="does not match range"):
            make_task(duration=2)

    def test_progress_bounds(self):
        with pytest.raises(ValueError):
            make_task(progress=101)

    def test_set_range_recomputes_duration(self):
        task = make_task()
        task.set_range(date(2025, 1, 1), date(2025, 1, 31))
        assert task.duration == 31

    def test_children_follow_the_hierarchy(self):
        subtask = Subtask(id=7, task_id=1, name="Write tests", start_date=date(2025, 1, 1),
                          end_date=date(2025, 1, 1), duration=1)
        task = make_task(subtasks=[subtask])
        sprint = Sprint(id=1, timeline_id=1, name="S1", start_date=date(2025, 1, 1),
                        end_date=date(2025, 1, 3), duration=3, tasks=[task])
        timeline = Timeline(id=1, project_id=4, name="T", start_date=date(2025, 1, 1),
                            end_date=date(2025, 1, 3), sprints=[sprint])

        assert timeline.children == [sprint]
        assert sprint.children[0] is task
        assert task.children[0] is subtask
        assert sprint.status == SprintStatus.PLANNING


class TestWireFormat:
    """Test camelCase aliases and YAML serialization."""

    def test_accepts_camel_case_and_snake_case(self):
        camel = TaskCreate.model_validate({"name": "A", "startDate": "2025-01-01", "endDate": "2025-01-02"})
        snake = TaskCreate.model_validate({"name": "A", "start_date": "2025-01-01", "end_date": "2025-01-02"})
        assert camel.start_date == snake.start_date == date(2025, 1, 1)

    def test_to_dict_uses_camel_case(self):
        data = make_task().to_dict()
        assert data["startDate"] == "2025-01-01"
        assert data["sprintId"] == 1
        assert data["status"] == "not-started"
        assert "start_date" not in data

    def test_snapshot_yaml_round_trip(self):
        snapshot = TimelineSnapshot(
            schema_version="0.3.0",
            timelines=[Timeline(id=1, project_id=2, name="T", start_date=date(2025, 1, 1),
                                end_date=date(2025, 2, 1))],
            members=[Member(id=1, user_name="jdoe", full_name="Jane Doe")],
        )
        loaded = TimelineSnapshot.from_yaml(snapshot.to_yaml())
        assert loaded == snapshot


class TestPayloads:
    """Test create/update payload validation."""

    def test_create_requires_name_and_dates(self):
        with pytest.raises(ValueError) as excinfo:
            TaskCreate.model_validate({"name": "A"})
        message = str(excinfo.value)
        assert "startDate" in message
        assert "endDate" in message

    def test_create_rejects_blank_name(self):
        with pytest.raises(ValueError, match="name must not be blank"):
            TaskCreate.model_validate({"name": "   ", "startDate": "2025-01-01", "endDate": "2025-01-02"})

    def test_create_rejects_unparsable_date(self):
        with pytest.raises(ValueError):
            TaskCreate.model_validate({"name": "A", "startDate": "next tuesday", "endDate": "2025-01-02"})

    def test_update_tracks_only_sent_fields(self):
        update = TaskUpdate.model_validate({"progress": 40, "status": "in-progress"})
        assert update.changes() == {"progress": 40, "status": TaskStatus.IN_PROGRESS}

    def test_update_rejects_null_required_field(self):
        with pytest.raises(ValueError, match="name cannot be null"):
            TaskUpdate.model_validate({"name": None})

    def test_update_rejects_blank_name(self):
        with pytest.raises(ValueError, match="name must not be blank"):
            SprintUpdate.model_validate({"name": "   "})
        assert TaskUpdate.model_validate({"name": " Renamed "}).changes() == {"name": "Renamed"}

    def test_update_allows_clearing_optional_field(self):
        update = TaskUpdate.model_validate({"description": None})
        assert update.changes() == {"description": None}

    def test_filter_window_order(self):
        with pytest.raises(ValueError, match="date_to must not be before date_from"):
            TaskFilters(date_from=date(2025, 2, 1), date_to=date(2025, 1, 1))
