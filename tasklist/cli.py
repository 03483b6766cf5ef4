#!/usr/bin/env python3
"""
Command-line interface for tasklist.
"""
import functools
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import click

from tasklist.config import get_settings
from tasklist.exceptions import InvalidArgumentError, ServiceError
from tasklist.models import Task
from tasklist.services import FILTER_STRATEGIES, SORT_STRATEGIES, TaskService
from tasklist.storage import FileStorage, TaskRepository

SHORT_ID_LENGTH = 8


def build_service(storage_dir: str, storage_key: str, quota_bytes: Optional[int] = None) -> TaskService:
    """Wire a file-backed repository into a TaskService."""
    storage = FileStorage(storage_dir, quota_bytes=quota_bytes)
    return TaskService(TaskRepository(storage, storage_key))


def get_service(ctx: click.Context) -> TaskService:
    """Get (and lazily build) the service for this invocation."""
    if ctx.obj.get('service') is None:
        ctx.obj['service'] = build_service(
            ctx.obj['storage_dir'],
            ctx.obj['storage_key'],
            ctx.obj['quota_bytes'],
        )
    return ctx.obj['service']


def resolve_task_id(service: TaskService, ref: str) -> str:
    """Resolve a full task id or a unique id prefix."""
    if service.get_task_by_id(ref) is not None:
        return ref
    matches = [task.id for task in service.get_tasks() if task.id.startswith(ref)]
    if len(matches) > 1:
        raise InvalidArgumentError(f"Ambiguous task id prefix '{ref}' matches {len(matches)} tasks", argument="id")
    return matches[0] if matches else ref


def handle_errors(func):
    """Report ServiceError as a one-line message and exit with status 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ServiceError as e:
            click.echo(f"Error: {e.message}", err=True)
            sys.exit(1)
    return wrapper


def format_task(task: Task) -> str:
    """Format task for display."""
    mark = "x" if task.completed else " "
    return f"[{mark}] {task.id[:SHORT_ID_LENGTH]}  {task.title}  (order {task.order})"


def format_json(data: Any) -> str:
    """Format data as JSON."""
    return json.dumps(data, indent=2, default=str)


def echo_tasks(tasks: List[Task], output_format: str) -> None:
    if output_format == 'json':
        click.echo(format_json([task.to_dict() for task in tasks]))
        return
    if not tasks:
        click.echo("No tasks found.")
        return
    for task in tasks:
        click.echo(format_task(task))


@click.group()
@click.option('--storage-dir', envvar='TASKLIST_STORAGE_DIR', default=None,
              help='Directory holding task data (default: from settings)')
@click.option('--key', 'storage_key', envvar='TASKLIST_STORAGE_KEY', default=None,
              help='Storage key of the task list (default: todo_tasks)')
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging level (default: from settings)')
@click.pass_context
def cli(ctx, storage_dir, storage_key, log_level):
    """Manage a local task list."""
    settings = get_settings()
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    ctx.ensure_object(dict)
    ctx.obj['storage_dir'] = storage_dir or settings.storage_dir
    ctx.obj['storage_key'] = storage_key or settings.storage_key
    ctx.obj['quota_bytes'] = settings.storage_quota_bytes or None
    ctx.obj.setdefault('service', None)


@cli.command()
@click.argument('title', nargs=-1, required=True)
@click.pass_context
@handle_errors
def add(ctx, title):
    """Add a new task."""
    task = get_service(ctx).create_task(" ".join(title))
    click.echo(f"Created task {task.id[:SHORT_ID_LENGTH]}: {task.title}")


@cli.command(name='list')
@click.option('--filter', 'filter_name', type=click.Choice(list(FILTER_STRATEGIES)), default='all',
              help='Which tasks to show')
@click.option('--sort', 'sort_by', type=click.Choice(list(SORT_STRATEGIES)), default=None,
              help='Sort criterion (default: storage order)')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
@handle_errors
def list_tasks(ctx, filter_name, sort_by, output_format):
    """List tasks with an optional filter and sort."""
    service = get_service(ctx)
    if sort_by:
        tasks = service.get_tasks_sorted(sort_by, filter_name)
    else:
        tasks = service.get_tasks(filter_name)
    echo_tasks(tasks, output_format)


@cli.command()
@click.argument('term')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
@handle_errors
def search(ctx, term, output_format):
    """Search task titles (case-insensitive)."""
    echo_tasks(get_service(ctx).search_tasks(term), output_format)


@cli.command()
@click.argument('task_id')
@click.pass_context
@handle_errors
def show(ctx, task_id):
    """Show one task as JSON."""
    service = get_service(ctx)
    task = service.get_task_by_id(resolve_task_id(service, task_id))
    if task is None:
        click.echo(f"Task {task_id} not found.", err=True)
        sys.exit(1)
    click.echo(format_json(task.to_dict()))


@cli.command()
@click.argument('task_id')
@click.pass_context
@handle_errors
def toggle(ctx, task_id):
    """Toggle completion of a task."""
    service = get_service(ctx)
    task = service.toggle_task_completion(resolve_task_id(service, task_id))
    state = "completed" if task.completed else "pending"
    click.echo(f"Task {task.id[:SHORT_ID_LENGTH]} marked {state}.")


@cli.command()
@click.argument('task_id')
@click.option('--title', default=None, help='New title')
@click.option('--completed/--pending', 'completed', default=None, help='Set completion state')
@click.option('--order', type=int, default=None, help='New sort position')
@click.pass_context
@handle_errors
def update(ctx, task_id, title, completed, order):
    """Update title, completion and/or order of a task."""
    updates: Dict[str, Any] = {}
    if title is not None:
        updates['title'] = title
    if completed is not None:
        updates['completed'] = completed
    if order is not None:
        updates['order'] = order
    if not updates:
        raise click.UsageError("Nothing to update. Pass --title, --completed/--pending or --order.")

    service = get_service(ctx)
    task = service.update_task(resolve_task_id(service, task_id), updates)
    click.echo(format_task(task))


@cli.command()
@click.argument('assignments', nargs=-1, required=True)
@click.pass_context
@handle_errors
def reorder(ctx, assignments):
    """Set the order of several tasks at once (ID=ORDER ...)."""
    service = get_service(ctx)
    items = []
    for assignment in assignments:
        ref, sep, order = assignment.partition('=')
        if not sep:
            raise click.BadParameter(f"Expected ID=ORDER, got '{assignment}'", param_hint='ASSIGNMENTS')
        try:
            order_value = int(order)
        except ValueError:
            raise click.BadParameter(f"Order must be an integer in '{assignment}'", param_hint='ASSIGNMENTS')
        items.append({'id': resolve_task_id(service, ref), 'order': order_value})
    count = service.reorder_tasks(items)
    click.echo(f"Reordered {count} tasks.")


@cli.command()
@click.argument('task_id')
@click.pass_context
@handle_errors
def delete(ctx, task_id):
    """Delete a task."""
    service = get_service(ctx)
    resolved = resolve_task_id(service, task_id)
    service.delete_task(resolved)
    click.echo(f"Task {resolved[:SHORT_ID_LENGTH]} deleted.")


@cli.command(name='clear-completed')
@click.pass_context
@handle_errors
def clear_completed(ctx):
    """Delete every completed task."""
    count = get_service(ctx).clear_completed()
    click.echo(f"Removed {count} completed tasks.")


@cli.command()
@click.confirmation_option(prompt='Delete ALL tasks?')
@click.pass_context
@handle_errors
def clear(ctx):
    """Delete every task."""
    count = get_service(ctx).clear_all()
    click.echo(f"Removed {count} tasks.")


@cli.command()
@click.option('--output', '-o', type=click.File('w', encoding='utf-8'), default='-',
              help='File to write (default: stdout)')
@click.pass_context
@handle_errors
def export(ctx, output):
    """Export all tasks as JSON."""
    output.write(get_service(ctx).export_tasks())
    output.write("\n")


@cli.command(name='import')
@click.argument('source', type=click.File('r', encoding='utf-8'))
@click.pass_context
@handle_errors
def import_tasks(ctx, source):
    """Replace all tasks with the ones in a JSON export."""
    count = get_service(ctx).import_tasks(source.read())
    click.echo(f"Imported {count} tasks.")


@cli.command()
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
@handle_errors
def stats(ctx, output_format):
    """Show task statistics."""
    statistics = get_service(ctx).get_statistics()
    if output_format == 'json':
        click.echo(format_json(statistics))
        return
    click.echo(f"Total:     {statistics['total']}")
    click.echo(f"Completed: {statistics['completed']}")
    click.echo(f"Pending:   {statistics['pending']}")
    click.echo(f"Progress:  {statistics['completion_rate']}%")


if __name__ == '__main__':
    cli()
