"""Shared fixtures for the timelinetm test suite."""

import os
import tempfile

# Keep test runs from writing into the user's log directory
os.environ.setdefault("TIMELINETM_LOG_DIR", tempfile.mkdtemp(prefix="timelinetm-logs-"))

from datetime import datetime, timedelta, timezone

import pytest

from timelinetm.models import Member
from timelinetm.reconcile import duration_of
from timelinetm.service import TimelineManager


class FakeClock:
    """Returns a strictly increasing UTC timestamp on every call."""

    def __init__(self):
        self.now = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


def _assert_range(parent, children):
    if children:
        assert parent.start_date == min(c.start_date for c in children)
        assert parent.end_date == max(c.end_date for c in children)


def check_invariants(store):
    """Duration law and range containment at every level of the forest."""
    for timeline in store.timelines:
        _assert_range(timeline, timeline.sprints)
        for sprint in timeline.sprints:
            assert sprint.timeline_id == timeline.id
            assert sprint.duration == duration_of(sprint.start_date, sprint.end_date)
            _assert_range(sprint, sprint.tasks)
            for task in sprint.tasks:
                assert task.sprint_id == sprint.id
                assert task.duration == duration_of(task.start_date, task.end_date)
                _assert_range(task, task.subtasks)
                for subtask in task.subtasks:
                    assert subtask.task_id == task.id
                    assert subtask.duration == duration_of(subtask.start_date, subtask.end_date)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(clock):
    return TimelineManager(clock=clock)


@pytest.fixture
def invariants(manager):
    return lambda: check_invariants(manager.store)


@pytest.fixture
def timeline(manager):
    return manager.create_timeline({
        "projectId": 1,
        "name": "Release 1",
        "startDate": "2025-01-01",
        "endDate": "2025-12-31",
    })


@pytest.fixture
def members():
    return [
        Member(id=1, user_name="aalharbi", military_number="M-1001", full_name="Ahmed Al-Harbi",
               grade_name="Captain", department="Engineering"),
        Member(id=2, user_name="sqahtani", military_number="M-1002", full_name="Sara Al-Qahtani",
               grade_name="Lieutenant", department="Quality Assurance"),
        Member(id=3, user_name="kdosari", military_number="M-2040", full_name="Khalid Al-Dosari",
               grade_name="Major", department="Operations"),
    ]
