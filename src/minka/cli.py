"""Typer CLI for Minka."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from minka.calendar import format_workdays, normalize, parse_workdays
from minka.dashboard import compute_metrics
from minka.export import mermaid_gantt, write_csv, write_dependency_html
from minka.hierarchy import (
    dependency_links,
    describe_dependencies,
    descendant_ids,
    ids_for_rows,
    parse_row_list,
    process_tasks,
    row_numbers,
)
from minka.interaction import Edge, shift_fields
from minka.models import DEFAULT_TASK_COLOR, UNASSIGNED, Project, TimelineView
from minka.persistence import DEFAULT_DB_FILE, Store
from minka.taskstore import DEFAULT_DURATION, InvalidEditError, TaskStore, check_dates
from minka.timeline import compute_window, render_text_chart
from minka.workspace import Workspace

app = typer.Typer(
    name="minka",
    help="Gantt-style project planner for the command line.",
    no_args_is_help=True,
)
project_app = typer.Typer(help="Create, rename, delete and switch projects.", no_args_is_help=True)
user_app = typer.Typer(help="Manage the team members tasks can be assigned to.", no_args_is_help=True)
export_app = typer.Typer(help="Export the visible task list.", no_args_is_help=True)
app.add_typer(project_app, name="project")
app.add_typer(user_app, name="user")
app.add_typer(export_app, name="export")

console = Console()
err_console = Console(stderr=True)

_state = {"db": DEFAULT_DB_FILE}


def _get_store() -> Store:
    return Store(_state["db"])


def _load() -> Workspace:
    workspace = _get_store().load()
    if workspace is None:
        console.print("[red]No workspace found. Run 'minka init' first.[/red]")
        raise typer.Exit(1)
    return workspace


def _save(workspace: Workspace) -> None:
    _get_store().save(workspace)


def _require_project(workspace: Workspace) -> Project:
    project = workspace.active_project
    if project is None:
        console.print("[red]No active project. Create one with 'minka project create NAME'.[/red]")
        raise typer.Exit(1)
    return project


def _require_task(store: TaskStore, task_id: int):
    task = store.get(task_id)
    if task is None:
        console.print(f"[red]Task {task_id} not found.[/red]")
        raise typer.Exit(1)
    return task


def _parse_date(value: str) -> date:
    try:
        return normalize(value)
    except ValueError:
        console.print(f"[red]Invalid date '{value}'. Use YYYY-MM-DD.[/red]")
        raise typer.Exit(1)


def _require_user(workspace: Workspace, name: str) -> None:
    if workspace.is_stale_assignee(name):
        console.print(f"[red]Unknown user '{name}'. Add it with 'minka user add'.[/red]")
        raise typer.Exit(1)


def _fmt(d: date) -> str:
    return d.strftime("%a %b %d, %Y")


@app.callback()
def main(
    db: Annotated[str, typer.Option("--db", envvar="MINKA_DB", help="Workspace file")] = DEFAULT_DB_FILE,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """Plan projects as a tree of tasks and groups on a business-day calendar."""
    _state["db"] = db
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


@app.command()
def init(
    sample: Annotated[bool, typer.Option("--sample", help="Start from the sample projects and team")] = False,
    name: Annotated[str, typer.Option(help="Name of the first project")] = "My Project",
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing workspace")] = False,
) -> None:
    """Create a new workspace file."""
    store = _get_store()
    if store.exists() and not force:
        console.print(f"[red]{store.db_path} already exists. Use --force to overwrite.[/red]")
        raise typer.Exit(1)

    if sample:
        workspace = Workspace.seed()
    else:
        workspace = Workspace()
        workspace.create_project(name)
    store.save(workspace)
    project = workspace.active_project
    console.print(f"[green]Workspace initialized. Active project: {project.name}[/green]")


@app.command()
def workdays(
    days: Annotated[Optional[str], typer.Argument(help="Workdays, e.g. 1,2,3,4,5 or mon,tue,wed (0/sun .. 6/sat)")] = None,
) -> None:
    """Show or change the workday calendar.

    Changing it keeps every task's start and duration and moves its end date.
    """
    workspace = _load()
    if days is None:
        console.print(f"Workdays: {format_workdays(workspace.config.workdays)}")
        return

    try:
        workspace.set_workdays(parse_workdays(days))
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _save(workspace)
    console.print(f"[green]Workdays set to {format_workdays(workspace.config.workdays)}.[/green]")


@app.command()
def view(
    mode: Annotated[TimelineView, typer.Argument(help="Default timeline scale")],
) -> None:
    """Set the default timeline scale for 'minka chart'."""
    workspace = _load()
    workspace.config.timeline_view = mode
    _save(workspace)
    console.print(f"[green]Timeline view set to {mode.value}.[/green]")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@project_app.command("list")
def project_list() -> None:
    """List projects."""
    workspace = _load()
    if not workspace.projects:
        console.print("No projects found.")
        return
    for p in workspace.projects:
        marker = "[bold green]*[/bold green]" if p.id == workspace.active_project_id else " "
        console.print(f" {marker} {p.id}  {p.name}  [dim]({len(p.tasks)} items)[/dim]")


@project_app.command("create")
def project_create(name: str) -> None:
    """Create a project and make it active."""
    workspace = _load()
    try:
        project = workspace.create_project(name)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _save(workspace)
    console.print(f"[green]Created project {project.id}: {project.name}[/green]")


@project_app.command("rename")
def project_rename(project_id: int, name: str) -> None:
    """Rename a project."""
    workspace = _load()
    if not workspace.rename_project(project_id, name):
        console.print(f"[red]Cannot rename project {project_id}.[/red]")
        raise typer.Exit(1)
    _save(workspace)
    console.print(f"[green]Renamed project {project_id}.[/green]")


@project_app.command("delete")
def project_delete(project_id: int) -> None:
    """Delete a project and all of its tasks."""
    workspace = _load()
    if not workspace.delete_project(project_id):
        console.print(f"[red]Project {project_id} not found.[/red]")
        raise typer.Exit(1)
    _save(workspace)
    console.print(f"[green]Deleted project {project_id}.[/green]")
    if workspace.active_project is None:
        console.print("[yellow]No projects left. Create one with 'minka project create NAME'.[/yellow]")


@project_app.command("switch")
def project_switch(project_id: int) -> None:
    """Make another project active."""
    workspace = _load()
    if not workspace.switch_project(project_id):
        console.print(f"[red]Project {project_id} not found.[/red]")
        raise typer.Exit(1)
    _save(workspace)
    console.print(f"[green]Active project: {workspace.active_project.name}[/green]")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@user_app.command("list")
def user_list() -> None:
    """List team members."""
    workspace = _load()
    for name in workspace.users:
        console.print(f"  {name}")


@user_app.command("add")
def user_add(name: str) -> None:
    """Add a team member."""
    workspace = _load()
    try:
        workspace.add_user(name)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _save(workspace)
    console.print(f"[green]Added user {name.strip()}.[/green]")


@user_app.command("delete")
def user_delete(name: str) -> None:
    """Remove a team member; their tasks become Unassigned."""
    workspace = _load()
    try:
        moved = workspace.delete_user(name)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _save(workspace)
    console.print(f"[green]Deleted user {name}. Reassigned {moved} task(s) to {UNASSIGNED}.[/green]")


# ---------------------------------------------------------------------------
# Task edits
# ---------------------------------------------------------------------------


@app.command()
def add(
    name: Annotated[str, typer.Argument(help="Task name")] = "New Task",
    assignee: Annotated[str, typer.Option("--assignee", "-a", help="Team member")] = UNASSIGNED,
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in business days")] = DEFAULT_DURATION,
    parent: Annotated[Optional[int], typer.Option("--parent", "-p", help="Group ID to add the task to")] = None,
    color: Annotated[str, typer.Option(help="Bar color")] = DEFAULT_TASK_COLOR,
) -> None:
    """Add a task after the latest one, starting on the next workday."""
    workspace = _load()
    project = _require_project(workspace)
    _require_user(workspace, assignee)
    store = workspace.store_for(project)
    if parent is not None:
        group = _require_task(store, parent)
        if not group.is_group:
            console.print(f"[red]{parent} is not a group.[/red]")
            raise typer.Exit(1)

    task = store.add_task(name=name, assignee=assignee, duration=duration, color=color, parent_id=parent)
    _save(workspace)
    console.print(
        f"[green]Added '{task.name}' as {task.id}: {_fmt(task.start)} - {_fmt(task.end)} ({task.duration}d)[/green]"
    )


@app.command("add-group")
def add_group(
    name: Annotated[str, typer.Argument(help="Group name")] = "New Group",
    parent: Annotated[Optional[int], typer.Option("--parent", "-p", help="Group ID to nest under")] = None,
) -> None:
    """Add a group. Its dates follow whatever it contains."""
    workspace = _load()
    project = _require_project(workspace)
    store = workspace.store_for(project)
    if parent is not None and not _require_task(store, parent).is_group:
        console.print(f"[red]{parent} is not a group.[/red]")
        raise typer.Exit(1)

    group = store.add_group(name=name, parent_id=parent)
    _save(workspace)
    console.print(f"[green]Added group '{group.name}' as {group.id}[/green]")


@app.command()
def update(
    task_id: int,
    name: Annotated[Optional[str], typer.Option(help="New name")] = None,
    assignee: Annotated[Optional[str], typer.Option("--assignee", "-a", help="New assignee")] = None,
    start: Annotated[Optional[str], typer.Option(help="New start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option(help="New end date (YYYY-MM-DD)")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="New duration in business days")] = None,
    color: Annotated[Optional[str], typer.Option(help="New bar color")] = None,
) -> None:
    """Update fields of a task.

    A new duration moves the end date; new dates recompute the duration.
    """
    workspace = _load()
    project = _require_project(workspace)
    store = workspace.store_for(project)
    task = _require_task(store, task_id)

    fields: dict = {}
    if name is not None:
        fields["name"] = name
    if assignee is not None:
        _require_user(workspace, assignee)
        fields["assignee"] = assignee
    if color is not None:
        fields["color"] = color
    if task.is_group:
        if start or end or duration is not None:
            console.print("[yellow]Group dates follow their children; date options ignored.[/yellow]")
    else:
        if start is not None:
            fields["start"] = _parse_date(start)
        if end is not None:
            fields["end"] = _parse_date(end)
        if duration is not None:
            fields["duration"] = duration

    try:
        if duration is None and ("start" in fields or "end" in fields):
            check_dates(fields.get("start", task.start), fields.get("end", task.end))
        store.update_task(task_id, **fields)
    except InvalidEditError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    _save(workspace)
    if task.is_group:
        console.print(f"[green]Updated {task_id}.[/green]")
    else:
        console.print(
            f"[green]Updated {task_id}: {_fmt(task.start)} - {_fmt(task.end)} ({task.duration}d)[/green]"
        )


@app.command()
def delete(task_id: int) -> None:
    """Delete a task, or a group together with everything inside it."""
    workspace = _load()
    project = _require_project(workspace)
    store = workspace.store_for(project)
    _require_task(store, task_id)

    removed = store.delete_task(task_id)
    _save(workspace)
    if len(removed) > 1:
        console.print(f"[green]Deleted {task_id} and {len(removed) - 1} nested item(s).[/green]")
    else:
        console.print(f"[green]Deleted {task_id}.[/green]")


@app.command()
def move(
    task_id: Annotated[int, typer.Argument(help="Task or group to move")],
    target_id: Annotated[int, typer.Argument(help="Drop target: a group adopts it, a task gets it as sibling")],
) -> None:
    """Reorder/reparent, as when dragging a row onto another row."""
    workspace = _load()
    project = _require_project(workspace)
    store = workspace.store_for(project)
    dragged = _require_task(store, task_id)
    _require_task(store, target_id)
    if task_id == target_id:
        console.print("Nothing to move.")
        return

    if not store.reorder_task(task_id, target_id):
        if dragged.is_group and target_id in descendant_ids(store.tasks, task_id):
            console.print(f"[yellow]Cannot move group {task_id} into one of its own children.[/yellow]")
        else:
            console.print(f"[yellow]Move of {task_id} onto {target_id} was not applied.[/yellow]")
        return

    _save(workspace)
    where = f"in group {dragged.parent_id}" if dragged.parent_id is not None else "at top level"
    console.print(f"[green]Moved {task_id} {where}.[/green]")


@app.command()
def toggle(task_id: int) -> None:
    """Collapse or expand a group."""
    workspace = _load()
    project = _require_project(workspace)
    store = workspace.store_for(project)
    task = _require_task(store, task_id)
    if not store.toggle_collapse(task_id):
        console.print(f"[red]{task_id} is not a group.[/red]")
        raise typer.Exit(1)
    _save(workspace)
    state = "collapsed" if task.is_collapsed else "expanded"
    console.print(f"[green]Group {task_id} {state}.[/green]")


@app.command()
def shift(
    task_id: int,
    days: Annotated[int, typer.Argument(help="Calendar days to move (negative for earlier)")],
    edge: Annotated[Edge, typer.Option(help="Move the start, the end, or both")] = Edge.BOTH,
) -> None:
    """Move a task bar or one of its edges by calendar days."""
    workspace = _load()
    project = _require_project(workspace)
    store = workspace.store_for(project)
    task = _require_task(store, task_id)

    fields = shift_fields(task, edge, days)
    if fields is None:
        console.print(f"[yellow]Nothing changed for {task_id}.[/yellow]")
        return
    store.update_task(task_id, **fields)
    _save(workspace)
    console.print(
        f"[green]{task_id}: {_fmt(task.start)} - {_fmt(task.end)} ({task.duration}d)[/green]"
    )


@app.command()
def deps(
    task_id: int,
    rows: Annotated[str, typer.Argument(help="Row numbers of predecessors, e.g. '1, 3' ('' to clear)")],
) -> None:
    """Set a task's predecessors by their row numbers in 'minka list'."""
    workspace = _load()
    project = _require_project(workspace)
    store = workspace.store_for(project)
    _require_task(store, task_id)

    visible = process_tasks(store.tasks)
    dep_ids = ids_for_rows(visible, parse_row_list(rows))
    store.set_dependencies(task_id, dep_ids)
    _save(workspace)
    shown = describe_dependencies(store.get(task_id).dependencies, row_numbers(visible), store.tasks)
    console.print(f"[green]{task_id} now depends on: {shown or 'nothing'}[/green]")


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


@app.command("list")
def list_tasks(
    show_all: Annotated[bool, typer.Option("--all", help="Show the flat stored sequence, ignoring collapse")] = False,
) -> None:
    """List the task tree as it appears beside the chart."""
    workspace = _load()
    project = _require_project(workspace)
    tasks = project.tasks
    if not tasks:
        console.print("No tasks found.")
        return

    visible = process_tasks(tasks)
    rows = row_numbers(visible)

    if show_all:
        table = Table(title=f"{project.name} (stored order)")
        table.add_column("ID")
        table.add_column("Type")
        table.add_column("Name")
        table.add_column("Parent")
        table.add_column("Start")
        table.add_column("End")
        table.add_column("Days")
        for t in tasks:
            table.add_row(
                str(t.id),
                t.type.value,
                t.name,
                str(t.parent_id) if t.parent_id is not None else "-",
                t.start.isoformat() if not t.is_group else "-",
                t.end.isoformat() if not t.is_group else "-",
                str(t.duration) if t.duration is not None else "-",
            )
        console.print(table)
        return

    table = Table(title=project.name)
    table.add_column("#", justify="right")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Assignee")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Days", justify="right")
    table.add_column("Depends On")

    for t in visible:
        if t.is_group:
            marker = "▸ " if t.is_collapsed else "▾ "
            label = f"{'  ' * t.level}{marker}[bold]{t.name}[/bold]"
        else:
            label = f"{'  ' * t.level}{t.name}"
        who = t.assignee
        if workspace.is_stale_assignee(who):
            who = f"[red]{who} (deleted)[/red]"
        table.add_row(
            str(rows[t.id]) if t.id in rows else "",
            str(t.id),
            label,
            who,
            t.start.strftime("%b %d"),
            t.end.strftime("%b %d"),
            str(t.duration) if not t.is_group and t.duration is not None else "",
            describe_dependencies(t.dependencies, rows, tasks) or "-",
            style="dim" if t.is_group else None,
        )

    console.print(table)
    hidden = len(tasks) - len(visible)
    if hidden:
        console.print(f"[dim]{hidden} item(s) hidden in collapsed groups[/dim]")


@app.command()
def show(task_id: int) -> None:
    """Show all details for a single task or group."""
    workspace = _load()
    project = _require_project(workspace)
    store = workspace.store_for(project)
    t = _require_task(store, task_id)

    visible = process_tasks(store.tasks)
    rows = row_numbers(visible)
    derived = next((v for v in visible if v.id == task_id), None)

    console.print(f"\n[bold]{t.id}[/bold]  {t.name}")
    console.print(f"  Type:       {t.type.value}")
    stale = " [red](deleted)[/red]" if workspace.is_stale_assignee(t.assignee) else ""
    console.print(f"  Assignee:   {t.assignee}{stale}")
    if t.is_group:
        console.print(f"  Collapsed:  {'yes' if t.is_collapsed else 'no'}")
        if derived is not None:
            console.print(f"  Span:       {_fmt(derived.start)} - {_fmt(derived.end)}")
        inside = descendant_ids(store.tasks, t.id)
        console.print(f"  Contains:   {len(inside)} item(s)")
    else:
        console.print(f"  Start:      {_fmt(t.start)}")
        console.print(f"  End:        {_fmt(t.end)}")
        console.print(f"  Duration:   {t.duration} business day(s)")
    if t.parent_id is not None:
        console.print(f"  Group:      {t.parent_id}")
    if t.id in rows:
        console.print(f"  Row:        {rows[t.id]}")
    if derived is None:
        console.print("  [dim]Hidden inside a collapsed group[/dim]")
    console.print(f"  Depends on: {describe_dependencies(t.dependencies, rows, store.tasks) or 'none'}")
    dependents = [str(o.id) for o in store.tasks if t.id in o.dependencies]
    console.print(f"  Blocks:     {', '.join(dependents) or 'none'}")
    console.print()


@app.command()
def chart(
    timeline: Annotated[Optional[TimelineView], typer.Option("--view", help="day or week columns")] = None,
) -> None:
    """Draw the Gantt timeline of the visible rows."""
    workspace = _load()
    project = _require_project(workspace)
    visible = process_tasks(project.tasks)
    if not visible:
        console.print("No tasks to chart.")
        return

    window = compute_window(visible, timeline or workspace.config.timeline_view)
    console.print(
        f"\n[bold underline]{project.name}[/bold underline]  "
        f"[dim]{_fmt(window.start)} - {_fmt(window.end)}[/dim]\n"
    )
    for line in render_text_chart(visible, window, workspace.config.workdays):
        console.print(line, markup=False, highlight=False, soft_wrap=True)

    links = dependency_links(visible, project.tasks)
    if links:
        rows = row_numbers(visible)
        console.print("\n[dim]Dependencies:[/dim]")
        for link in links:
            before = visible[link.predecessor_row]
            after = visible[link.dependent_row]
            left = rows.get(before.id, f"[{before.name}]")
            right = rows.get(after.id, f"[{after.name}]")
            console.print(f"  {left} -> {right}", markup=False, highlight=False)
    console.print()


@app.command()
def dashboard() -> None:
    """Project overview: timeline, progress, status, workload and deadlines."""
    workspace = _load()
    project = _require_project(workspace)
    metrics = compute_metrics(project.tasks, workspace.users)
    if metrics.total_tasks == 0:
        console.print("No task data available. Add some tasks to see the dashboard.")
        return

    bar_width = 30
    filled = int(bar_width * metrics.progress / 100)
    bar = f"[green]{'█' * filled}[/green][dim]{'░' * (bar_width - filled)}[/dim]"

    console.print(f"\n[bold underline]{project.name}[/bold underline]\n")
    console.print(
        f"  Duration:  {metrics.total_duration_days} days (about {metrics.total_duration_weeks} weeks)"
    )
    console.print(f"  Tasks:     {metrics.total_tasks}  ({metrics.total_users} team members)")
    console.print(f"  Start:     {_fmt(metrics.start_date)}")
    console.print(f"  End:       {_fmt(metrics.end_date)}")
    console.print(f"  Progress:  {bar} {metrics.progress}%")

    status_line = "  ".join(f"{label}: {value}" for label, value in metrics.status_data())
    console.print(f"  Status:    {status_line}")

    table = Table(title="Workload (business days)")
    table.add_column("Assignee")
    table.add_column("Days", justify="right")
    for who, total in metrics.workload:
        table.add_row(who, str(total))
    console.print(table)

    console.print("\n[bold]Upcoming deadlines (next 7 days)[/bold]")
    if metrics.upcoming_deadlines:
        for t in metrics.upcoming_deadlines:
            console.print(f"  {t.end.strftime('%b %d')}  {t.name}  [dim]{t.assignee}[/dim]")
    else:
        console.print("  No tasks are due in the next 7 days.")
    console.print()


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


@export_app.command("csv")
def export_csv(
    output: Annotated[Optional[str], typer.Option("-o", "--output", help="Output file path")] = None,
) -> None:
    """Write the visible rows as a spreadsheet-friendly CSV."""
    workspace = _load()
    project = _require_project(workspace)
    path = output or f"{project.name}-Tasks.csv"
    count = write_csv(path, process_tasks(project.tasks))
    console.print(f"[green]Exported {count} rows to {path}[/green]")


@export_app.command("mermaid")
def export_mermaid(
    output: Annotated[str, typer.Option("-o", "--output", help="Output file path")] = "gantt.md",
) -> None:
    """Write a Mermaid gantt chart of the visible rows."""
    workspace = _load()
    project = _require_project(workspace)
    text = mermaid_gantt(project.name, process_tasks(project.tasks), project.tasks)
    Path(output).write_text(text)
    console.print(f"[green]Wrote Mermaid gantt to {output}[/green]")


@export_app.command("html")
def export_html(
    output: Annotated[str, typer.Option("-o", "--output", help="Output file path")] = "dependencies.html",
) -> None:
    """Write an interactive HTML map of rows and dependency links."""
    workspace = _load()
    project = _require_project(workspace)
    write_dependency_html(output, process_tasks(project.tasks), project.tasks)
    console.print(f"[green]Wrote dependency map to {output}[/green]")


if __name__ == "__main__":
    app()
