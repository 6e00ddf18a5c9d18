"""
Command Line Interface for the timeline hierarchy manager.
"""

import json
from pathlib import Path
from typing import Callable

import click
import yaml

from .version import VERSION
from .api import Result, TimelineAPI
from .data import DataCore
from .models import Member, SprintStatus, TaskPriority, TaskStatus
from .recovery import TimelineError
from .store import Level

SPRINT_STATUSES = click.Choice([s.value for s in SprintStatus])
TASK_STATUSES = click.Choice([s.value for s in TaskStatus])
TASK_PRIORITIES = click.Choice([p.value for p in TaskPriority])


def _payload(**fields) -> dict:
    """Only the options the user actually gave; empty multi-options count as absent."""
    return {k: v for k, v in fields.items() if v is not None and v != ()}


def _run(call: Callable[[TimelineAPI], Result], mutating: bool = False):
    """Open the snapshot, run one API call, print its result and save on success."""
    ctx = click.get_current_context()
    try:
        with DataCore.open(ctx.obj["data_dir"]) as context:
            result = call(context.api)
            if mutating and result.success:
                context.mark_dirty()
    except TimelineError as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    if not result.success:
        ctx.exit(1)


def _dated_options(required: bool):
    def decorate(command):
        options = [
            click.option('--name', required=required, help='Display name'),
            click.option('--start', 'start_date', required=required, help='Start date (YYYY-MM-DD)'),
            click.option('--end', 'end_date', required=required, help='End date (YYYY-MM-DD)'),
            click.option('--description', help='Free-form description'),
        ]
        for option in reversed(options):
            command = option(command)
        return command
    return decorate


def _work_options(command):
    options = [
        click.option('--status', type=TASK_STATUSES, help='Work status'),
        click.option('--priority', type=TASK_PRIORITIES, help='Priority'),
        click.option('--progress', type=click.IntRange(0, 100), help='Completion percentage'),
        click.option('--department', help='Owning department'),
        click.option('--resource', 'resources', multiple=True, help='Assigned member user name (repeatable)'),
        click.option('--notes', help='Working notes'),
    ]
    for option in reversed(options):
        command = option(command)
    return command


@click.group()
@click.version_option(version=VERSION, prog_name="tltm")
@click.option('--data-dir', type=click.Path(file_okay=False, path_type=Path), envvar='TIMELINETM_DATA_DIR',
              default=None, help='Directory holding timelines.yml (default: .tltm)')
@click.pass_context
def main(ctx, data_dir):
    """
    Timeline hierarchy manager.

    Plans are Timeline → Sprint → Task → Subtask; every parent's dates follow its children.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir


@main.command()
@click.option('--members', 'members_file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML list of assignable members to import')
@click.pass_context
def init(ctx, members_file):
    """Initialize an empty timeline snapshot."""
    members = []
    if members_file:
        raw = yaml.safe_load(members_file.read_text(encoding='utf-8')) or []
        try:
            members = [Member.model_validate(m) for m in raw]
        except ValueError as e:
            raise click.ClickException(f"Invalid members file: {e}") from e

    try:
        path = DataCore.init(ctx.obj["data_dir"], members)
    except TimelineError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"📋 Created {path}")
    if members:
        click.echo(f"👥 Imported {len(members)} member(s)")
    click.echo("✅ Timeline snapshot initialized")


@main.command()
@click.pass_context
def status(ctx):
    """Show what the snapshot currently holds."""
    path = DataCore.snapshot_path(ctx.obj["data_dir"])
    click.echo(f"📦 Version: {VERSION}")
    click.echo(f"📍 Snapshot: {path}")
    try:
        store = DataCore.load_store(path)
    except TimelineError as e:
        raise click.ClickException(str(e)) from e

    for level in Level:
        click.echo(f"   {level.value}s: {store.count(level)}")
    click.echo(f"   Members: {len(store.members)}")


# --- timelines ---

@main.group()
def timeline():
    """Manage timelines."""
    pass


@timeline.command('create')
@click.option('--project-id', type=int, required=True, help='Project the timeline plans')
@_dated_options(required=True)
def timeline_create(project_id, name, start_date, end_date, description):
    """Create a timeline."""
    data = _payload(project_id=project_id, name=name, start_date=start_date,
                    end_date=end_date, description=description)
    _run(lambda api: api.create_timeline(data), mutating=True)


@timeline.command('list')
@click.option('--project-id', type=int, help='Only timelines of this project')
def timeline_list(project_id):
    """List timelines."""
    _run(lambda api: api.list_timelines(project_id))


@timeline.command('show')
@click.argument('timeline_id')
def timeline_show(timeline_id):
    """Show one timeline with its whole tree."""
    _run(lambda api: api.get_timeline(timeline_id))


@timeline.command('update')
@click.argument('timeline_id')
@click.option('--project-id', type=int, help='Project the timeline plans')
@_dated_options(required=False)
def timeline_update(timeline_id, project_id, name, start_date, end_date, description):
    """Update a timeline's fields."""
    data = _payload(project_id=project_id, name=name, start_date=start_date,
                    end_date=end_date, description=description)
    _run(lambda api: api.update_timeline(timeline_id, data), mutating=True)


@timeline.command('delete')
@click.argument('timeline_id')
def timeline_delete(timeline_id):
    """Delete a timeline and everything under it."""
    _run(lambda api: api.delete_timeline(timeline_id), mutating=True)


# --- sprints ---

@main.group()
def sprint():
    """Manage sprints."""
    pass


@sprint.command('create')
@click.argument('timeline_id')
@_dated_options(required=True)
@click.option('--status', type=SPRINT_STATUSES, help='Sprint status')
@click.option('--department', help='Owning department')
@click.option('--resource', 'resources', multiple=True, help='Assigned member user name (repeatable)')
def sprint_create(timeline_id, name, start_date, end_date, description, status, department, resources):
    """Create a sprint in a timeline."""
    data = _payload(name=name, start_date=start_date, end_date=end_date, description=description,
                    status=status, department=department, resources=list(resources))
    _run(lambda api: api.create_sprint(timeline_id, data), mutating=True)


@sprint.command('update')
@click.argument('sprint_id')
@_dated_options(required=False)
@click.option('--status', type=SPRINT_STATUSES, help='Sprint status')
@click.option('--department', help='Owning department')
@click.option('--resource', 'resources', multiple=True, help='Assigned member user name (repeatable)')
def sprint_update(sprint_id, name, start_date, end_date, description, status, department, resources):
    """Update a sprint's fields."""
    data = _payload(name=name, start_date=start_date, end_date=end_date, description=description,
                    status=status, department=department, resources=resources or None)
    _run(lambda api: api.update_sprint(sprint_id, data), mutating=True)


@sprint.command('delete')
@click.argument('sprint_id')
def sprint_delete(sprint_id):
    """Delete a sprint with its tasks and subtasks."""
    _run(lambda api: api.delete_sprint(sprint_id), mutating=True)


@sprint.command('tasks')
@click.argument('sprint_id')
def sprint_tasks(sprint_id):
    """List a sprint's tasks."""
    _run(lambda api: api.get_sprint_tasks(sprint_id))


# --- tasks ---

@main.group()
def task():
    """Manage tasks."""
    pass


@task.command('create')
@click.argument('sprint_id')
@_dated_options(required=True)
@_work_options
@click.option('--depends-on', 'dependencies', type=int, multiple=True, help='Id of a task this one depends on (repeatable)')
def task_create(sprint_id, name, start_date, end_date, description, status, priority, progress,
                department, resources, notes, dependencies):
    """Create a task in a sprint."""
    data = _payload(name=name, start_date=start_date, end_date=end_date, description=description,
                    status=status, priority=priority, progress=progress, department=department,
                    resources=list(resources), notes=notes, dependencies=list(dependencies))
    _run(lambda api: api.create_task(sprint_id, data), mutating=True)


@task.command('show')
@click.argument('task_id')
def task_show(task_id):
    """Show one task."""
    _run(lambda api: api.get_task(task_id))


@task.command('update')
@click.argument('task_id')
@_dated_options(required=False)
@_work_options
@click.option('--depends-on', 'dependencies', type=int, multiple=True, help='Id of a task this one depends on (repeatable)')
def task_update(task_id, name, start_date, end_date, description, status, priority, progress,
                department, resources, notes, dependencies):
    """Update a task's fields."""
    data = _payload(name=name, start_date=start_date, end_date=end_date, description=description,
                    status=status, priority=priority, progress=progress, department=department,
                    resources=resources or None, notes=notes, dependencies=dependencies or None)
    _run(lambda api: api.update_task(task_id, data), mutating=True)


@task.command('move')
@click.argument('task_id')
@click.argument('target_sprint_id')
def task_move(task_id, target_sprint_id):
    """Move a task to another sprint."""
    _run(lambda api: api.move_task_to_sprint(task_id, target_sprint_id), mutating=True)


@task.command('shift', context_settings={"ignore_unknown_options": True})
@click.argument('task_id')
@click.argument('days', type=int)
def task_shift(task_id, days):
    """Shift a task's dates by DAYS (negative shifts earlier)."""
    _run(lambda api: api.shift_task(task_id, days), mutating=True)


@task.command('delete')
@click.argument('task_id')
def task_delete(task_id):
    """Delete a task with its subtasks."""
    _run(lambda api: api.delete_task(task_id), mutating=True)


# --- subtasks ---

@main.group()
def subtask():
    """Manage subtasks."""
    pass


@subtask.command('create')
@click.argument('task_id')
@_dated_options(required=True)
@_work_options
def subtask_create(task_id, name, start_date, end_date, description, status, priority, progress,
                   department, resources, notes):
    """Create a subtask in a task."""
    data = _payload(name=name, start_date=start_date, end_date=end_date, description=description,
                    status=status, priority=priority, progress=progress, department=department,
                    resources=list(resources), notes=notes)
    _run(lambda api: api.create_subtask(task_id, data), mutating=True)


@subtask.command('update')
@click.argument('subtask_id')
@_dated_options(required=False)
@_work_options
def subtask_update(subtask_id, name, start_date, end_date, description, status, priority, progress,
                   department, resources, notes):
    """Update a subtask's fields."""
    data = _payload(name=name, start_date=start_date, end_date=end_date, description=description,
                    status=status, priority=priority, progress=progress, department=department,
                    resources=resources or None, notes=notes)
    _run(lambda api: api.update_subtask(subtask_id, data), mutating=True)


@subtask.command('delete')
@click.argument('subtask_id')
def subtask_delete(subtask_id):
    """Delete a subtask."""
    _run(lambda api: api.delete_subtask(subtask_id), mutating=True)


# --- search ---

@main.group()
def search():
    """Search tasks and members."""
    pass


@search.command('tasks')
@click.argument('query', required=False, default="")
def search_tasks(query):
    """Tasks whose name, description, department or members match QUERY."""
    _run(lambda api: api.search_tasks(query))


@search.command('members')
@click.argument('query', required=False, default="")
def search_members(query):
    """Assignable members matching QUERY."""
    _run(lambda api: api.search_members(query))


if __name__ == "__main__":
    main()
