"""Tests for the tltm command line interface."""

import json

import pytest
import yaml
from click.testing import CliRunner

from timelinetm.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tltm(runner, tmp_path):
    """Invoke tltm against a fresh data directory."""
    def invoke(*args):
        return runner.invoke(main, ["--data-dir", str(tmp_path), *args])
    return invoke


@pytest.fixture
def project(tltm):
    """An initialized snapshot holding one timeline with one sprint."""
    assert tltm("init").exit_code == 0
    tltm("timeline", "create", "--project-id", "1", "--name", "Release", "--start", "2025-01-01", "--end", "2025-06-30")
    tltm("sprint", "create", "1", "--name", "S1", "--start", "2025-01-01", "--end", "2025-01-14")
    return tltm


def data_of(result):
    return json.loads(result.output)["data"]


class TestInit:

    def test_init_and_status(self, tltm, tmp_path):
        result = tltm("init")
        assert result.exit_code == 0
        assert (tmp_path / "timelines.yml").exists()

        status = tltm("status")
        assert status.exit_code == 0
        assert "Timelines: 0" in status.output

    def test_init_twice_fails(self, tltm):
        tltm("init")
        result = tltm("init")
        assert result.exit_code != 0
        assert "already exists" in result.output

    def test_init_with_members(self, tltm, tmp_path, members):
        members_file = tmp_path / "members.yml"
        members_file.write_text(yaml.safe_dump([m.to_dict() for m in members]), encoding="utf-8")

        result = tltm("init", "--members", str(members_file))

        assert result.exit_code == 0
        assert "Imported 3 member(s)" in result.output
        found = data_of(tltm("search", "members", "qahtani"))
        assert [m["userName"] for m in found] == ["sqahtani"]

    def test_commands_need_init(self, tltm):
        result = tltm("timeline", "list")
        assert result.exit_code != 0
        assert "tltm init" in result.output


class TestCommands:

    def test_task_changes_are_saved(self, project):
        created = project("task", "create", "1", "--name", "Design", "--start", "2025-01-03", "--end", "2025-01-20",
                          "--priority", "high", "--resource", "aalharbi")
        assert created.exit_code == 0
        assert data_of(created)["priority"] == "high"

        sprint = data_of(project("timeline", "show", "1"))["sprints"][0]
        assert (sprint["startDate"], sprint["endDate"], sprint["duration"]) == ("2025-01-03", "2025-01-20", 18)

    def test_shift_accepts_negative_days(self, project):
        project("task", "create", "1", "--name", "Design", "--start", "2025-01-03", "--end", "2025-01-05")
        result = project("task", "shift", "1", "-2")
        assert result.exit_code == 0
        assert data_of(result)["startDate"] == "2025-01-01"

    def test_move_between_sprints(self, project):
        project("sprint", "create", "1", "--name", "S2", "--start", "2025-02-01", "--end", "2025-02-14")
        project("task", "create", "1", "--name", "Design", "--start", "2025-01-03", "--end", "2025-01-05")

        assert project("task", "move", "1", "2").exit_code == 0
        assert data_of(project("sprint", "tasks", "1")) == []
        assert [t["name"] for t in data_of(project("sprint", "tasks", "2"))] == ["Design"]

    def test_subtask_update(self, project):
        project("task", "create", "1", "--name", "Design", "--start", "2025-01-03", "--end", "2025-01-05")
        project("subtask", "create", "1", "--name", "Sketch", "--start", "2025-01-03", "--end", "2025-01-04")

        result = project("subtask", "update", "1", "--progress", "75", "--status", "in-progress")

        assert data_of(result)["progress"] == 75
        assert data_of(project("task", "show", "1"))["subtasks"][0]["status"] == "in-progress"

    def test_failure_prints_error_and_exits_nonzero(self, project):
        result = project("task", "show", "99")
        assert result.exit_code == 1
        assert json.loads(result.output)["error"] == {"message": "Task not found: 99", "code": "NOT_FOUND"}

    def test_failed_mutation_is_not_saved(self, project):
        result = project("task", "create", "1", "--name", "Bad", "--start", "2025-01-10", "--end", "2025-01-01")
        assert result.exit_code == 1
        assert data_of(project("sprint", "tasks", "1")) == []

    def test_delete_cascades(self, project):
        project("task", "create", "1", "--name", "Design", "--start", "2025-01-03", "--end", "2025-01-05")
        assert data_of(project("sprint", "delete", "1")) == {"id": 1}
        assert project("task", "show", "1").exit_code == 1
        assert data_of(project("timeline", "list", "--project-id", "1"))[0]["sprints"] == []
