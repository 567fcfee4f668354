"""MCP server for Minka: exposes the planning tools to AI assistants."""

from __future__ import annotations

import json
import os
from datetime import date

from mcp.server.fastmcp import FastMCP

from minka.calendar import DEFAULT_WORKDAYS, business_days_between, format_workdays, normalize
from minka.dashboard import compute_metrics
from minka.hierarchy import describe_dependencies, process_tasks, row_numbers
from minka.models import UNASSIGNED, ProcessedTask, Task
from minka.persistence import DEFAULT_DB_FILE, Store
from minka.taskstore import DEFAULT_DURATION, InvalidEditError, check_dates

mcp = FastMCP(
    "minka",
    instructions="""\
Minka is a Gantt-style project planner. A project is an ordered list of \
tasks and groups. Groups contain tasks (and other groups) and their dates are \
always the span of what they contain. Tasks have a start date, an end date \
and a duration in business days.

Key concepts:
- **Business days**: Durations count only configured workdays (default \
Mon-Fri). Changing a duration moves the end date; changing dates recomputes \
the duration. A task always lasts at least one business day.
- **Rows**: list_tasks shows the visible tree in display order. Tasks (not \
groups) are numbered 1..N; dependencies are entered by row number.
- **Collapsed groups** hide their contents from list_tasks.
- **Moving**: move_task drops a task onto another row. Dropping onto a group \
puts it inside that group; dropping onto a task makes it a sibling placed \
just before it. A group can never be moved into itself.
- **Dependencies** are informational: they draw connectors, they never move \
dates.

Typical workflow:
1. Use list_tasks to see the current plan
2. Use add_group / add_task to build structure
3. Use move_task to arrange rows into groups
4. Use update_task to adjust names, assignees, dates or durations
5. Use set_dependencies to link rows
6. Use get_dashboard for progress, status and upcoming deadlines
""",
)


def _get_store() -> Store:
    return Store(os.environ.get("MINKA_DB", DEFAULT_DB_FILE))


def _load_active():
    workspace = _get_store().load()
    if workspace is None:
        raise ValueError("Workspace not initialized. Run 'minka init' first.")
    project = workspace.active_project
    if project is None:
        raise ValueError("No active project. Create one with 'minka project create NAME'.")
    return workspace, project


def _row_to_dict(t: ProcessedTask, rows: dict[int, int], tasks: list[Task]) -> dict:
    d = {
        "id": t.id,
        "name": t.name,
        "type": t.type.value,
        "level": t.level,
        "assignee": t.assignee,
        "start": t.start.isoformat(),
        "end": t.end.isoformat(),
    }
    if t.id in rows:
        d["row"] = rows[t.id]
    if not t.is_group:
        d["duration"] = t.duration
    else:
        d["collapsed"] = t.is_collapsed
    if t.dependencies:
        d["depends_on"] = describe_dependencies(t.dependencies, rows, tasks)
    return d


def _task_to_dict(t: Task) -> dict:
    return t.to_dict()


# ---------------------------------------------------------------------------
# Read tools
# ---------------------------------------------------------------------------


@mcp.tool()
def list_tasks(include_hidden: bool = False) -> str:
    """List the active project's visible rows in display order.

    Args:
        include_hidden: Also return the flat stored list, including rows hidden in collapsed groups
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    visible = process_tasks(project.tasks)
    rows = row_numbers(visible)
    result = {
        "project": project.name,
        "workdays": format_workdays(workspace.config.workdays),
        "rows": [_row_to_dict(t, rows, project.tasks) for t in visible],
    }
    if include_hidden:
        result["all_tasks"] = [_task_to_dict(t) for t in project.tasks]
    return json.dumps(result, indent=2)


@mcp.tool()
def get_task(task_id: int) -> str:
    """Get full details for a single task or group.

    Args:
        task_id: Task ID (e.g. 42)
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    store = workspace.store_for(project)
    task = store.get(task_id)
    if task is None:
        return f"Error: task {task_id} not found."
    d = _task_to_dict(task)
    visible = process_tasks(project.tasks)
    derived = next((v for v in visible if v.id == task_id), None)
    d["visible"] = derived is not None
    if derived is not None and derived.is_group:
        d["start"] = derived.start.isoformat()
        d["end"] = derived.end.isoformat()
    if workspace.is_stale_assignee(task.assignee):
        d["assignee_deleted"] = True
    return json.dumps(d, indent=2)


@mcp.tool()
def get_dashboard() -> str:
    """Summary metrics for the active project: span, progress, status, workload, deadlines."""
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    m = compute_metrics(project.tasks, workspace.users)
    return json.dumps(
        {
            "project": project.name,
            "start_date": m.start_date.isoformat() if m.start_date else None,
            "end_date": m.end_date.isoformat() if m.end_date else None,
            "total_duration_days": m.total_duration_days,
            "total_duration_weeks": m.total_duration_weeks,
            "progress_pct": m.progress,
            "total_tasks": m.total_tasks,
            "total_users": m.total_users,
            "status": dict(m.status_data()),
            "workload": [{"assignee": who, "days": days} for who, days in m.workload],
            "upcoming_deadlines": [
                {"id": t.id, "name": t.name, "assignee": t.assignee, "end": t.end.isoformat()}
                for t in m.upcoming_deadlines
            ],
        },
        indent=2,
    )


# ---------------------------------------------------------------------------
# Write tools
# ---------------------------------------------------------------------------


@mcp.tool()
def add_task(
    name: str = "New Task",
    assignee: str = UNASSIGNED,
    duration: int = DEFAULT_DURATION,
    parent_id: int | None = None,
) -> str:
    """Add a task after the latest one, starting on the next workday.

    Args:
        name: Task name
        assignee: Team member name (must exist)
        duration: Duration in business days (default 5)
        parent_id: Optional group ID to place the task in
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"
    if workspace.is_stale_assignee(assignee):
        return f"Error: unknown user '{assignee}'."

    store = workspace.store_for(project)
    if parent_id is not None:
        parent = store.get(parent_id)
        if parent is None or not parent.is_group:
            return f"Error: {parent_id} is not a group."
    task = store.add_task(name=name, assignee=assignee, duration=duration, parent_id=parent_id)
    _get_store().save(workspace)
    return f"Added '{task.name}' as {task.id}: {task.start.isoformat()} - {task.end.isoformat()} ({task.duration}d)"


@mcp.tool()
def add_group(name: str = "New Group", parent_id: int | None = None) -> str:
    """Add a group. Its dates follow the tasks placed inside it.

    Args:
        name: Group name
        parent_id: Optional group ID to nest this group under
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    store = workspace.store_for(project)
    if parent_id is not None:
        parent = store.get(parent_id)
        if parent is None or not parent.is_group:
            return f"Error: {parent_id} is not a group."
    group = store.add_group(name=name, parent_id=parent_id)
    _get_store().save(workspace)
    return f"Added group '{group.name}' as {group.id}"


@mcp.tool()
def update_task(
    task_id: int,
    name: str | None = None,
    assignee: str | None = None,
    start: str | None = None,
    end: str | None = None,
    duration: int | None = None,
    color: str | None = None,
) -> str:
    """Update fields of a task. Only provided fields are changed.

    A new duration moves the end date. New start/end dates recompute the
    duration. Group dates cannot be edited.

    Args:
        task_id: Task ID
        name: New name
        assignee: New assignee (must exist)
        start: New start date (YYYY-MM-DD)
        end: New end date (YYYY-MM-DD)
        duration: New duration in business days
        color: New bar color (e.g. "#10B981")
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    store = workspace.store_for(project)
    task = store.get(task_id)
    if task is None:
        return f"Error: task {task_id} not found."

    fields: dict = {}
    if name is not None:
        fields["name"] = name
    if assignee is not None:
        if workspace.is_stale_assignee(assignee):
            return f"Error: unknown user '{assignee}'."
        fields["assignee"] = assignee
    if color is not None:
        fields["color"] = color
    try:
        if start is not None:
            fields["start"] = normalize(start)
        if end is not None:
            fields["end"] = normalize(end)
    except ValueError:
        return "Error: dates must be in YYYY-MM-DD format."
    if duration is not None:
        fields["duration"] = duration

    try:
        if not task.is_group and duration is None and ("start" in fields or "end" in fields):
            check_dates(fields.get("start", task.start), fields.get("end", task.end))
        store.update_task(task_id, **fields)
    except InvalidEditError as e:
        return f"Error: {e}"

    _get_store().save(workspace)
    if task.is_group:
        return f"Updated {task_id}."
    return f"Updated {task_id}: {task.start.isoformat()} - {task.end.isoformat()} ({task.duration}d)"


@mcp.tool()
def delete_task(task_id: int) -> str:
    """Delete a task, or a group with everything inside it.

    Args:
        task_id: Task or group ID
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    removed = workspace.store_for(project).delete_task(task_id)
    if not removed:
        return f"Error: task {task_id} not found."
    _get_store().save(workspace)
    return f"Deleted {', '.join(str(r) for r in removed)}."


@mcp.tool()
def move_task(task_id: int, target_id: int) -> str:
    """Drop a row onto another row.

    Args:
        task_id: Task or group being moved
        target_id: Drop target. A group adopts the row as its child; a task gets it as sibling just before it.
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    store = workspace.store_for(project)
    if store.get(task_id) is None or store.get(target_id) is None:
        return "Error: both tasks must exist."
    if not store.reorder_task(task_id, target_id):
        return f"Warning: move of {task_id} onto {target_id} was not applied (a group cannot move into itself)."
    _get_store().save(workspace)
    return f"Moved {task_id}."


@mcp.tool()
def toggle_collapse(task_id: int) -> str:
    """Collapse or expand a group.

    Args:
        task_id: Group ID
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    store = workspace.store_for(project)
    if not store.toggle_collapse(task_id):
        return f"Error: {task_id} is not a group."
    _get_store().save(workspace)
    return f"Group {task_id} {'collapsed' if store.get(task_id).is_collapsed else 'expanded'}."


@mcp.tool()
def set_dependencies(task_id: int, predecessor_ids: list[int]) -> str:
    """Replace a task's predecessors.

    Args:
        task_id: Dependent task ID
        predecessor_ids: Task IDs that must come first (e.g. [31, 32])
    """
    try:
        workspace, project = _load_active()
    except ValueError as e:
        return f"Error: {e}"

    store = workspace.store_for(project)
    if not store.set_dependencies(task_id, predecessor_ids):
        return f"Error: task {task_id} not found."
    _get_store().save(workspace)
    return f"{task_id} depends on {store.get(task_id).dependencies or 'nothing'}."


@mcp.tool()
def set_workdays(workdays: list[int]) -> str:
    """Change the workday calendar. Every task keeps its start and duration; end dates move.

    Args:
        workdays: Weekday indices, 0=Sunday .. 6=Saturday (e.g. [1, 2, 3, 4, 5])
    """
    store = _get_store()
    workspace = store.load()
    if workspace is None:
        return "Error: Workspace not initialized. Run 'minka init' first."
    try:
        workspace.set_workdays(workdays)
    except ValueError as e:
        return f"Error: {e}"
    store.save(workspace)
    return f"Workdays set to {format_workdays(workspace.config.workdays)}."


@mcp.tool()
def check_date_range(start: str, end: str) -> str:
    """Business days between two dates under the current workday calendar.

    Args:
        start: Start date (YYYY-MM-DD)
        end: End date (YYYY-MM-DD)
    """
    workspace = _get_store().load()
    workdays = workspace.config.workdays if workspace else DEFAULT_WORKDAYS
    try:
        s: date = normalize(start)
        e: date = normalize(end)
    except ValueError:
        return "Error: dates must be in YYYY-MM-DD format."
    return f"{business_days_between(s, e, workdays)} business day(s)"


def main():
    """Entry point for the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
