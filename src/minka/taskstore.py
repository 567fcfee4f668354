"""Mutation operations over a project's flat, parent-linked task sequence."""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Iterable
from datetime import date, timedelta

from minka.calendar import (
    DEFAULT_WORKDAYS,
    business_days_between,
    end_date_from_duration,
    next_workday,
    normalize,
)
from minka.hierarchy import descendant_ids
from minka.models import DEFAULT_TASK_COLOR, UNASSIGNED, Project, Task, TaskType

logger = logging.getLogger(__name__)

DEFAULT_DURATION = 5

EDITABLE_FIELDS = frozenset(
    {"name", "assignee", "start", "end", "duration", "color", "is_collapsed", "dependencies"}
)
DATE_FIELDS = frozenset({"start", "end", "duration"})


class InvalidEditError(ValueError):
    """A field edit that would break a task invariant."""


def check_dates(start: date, end: date) -> None:
    """Reject a date pair with the end before the start."""
    if normalize(end) < normalize(start):
        raise InvalidEditError(
            f"End date {normalize(end).isoformat()} is before start date {normalize(start).isoformat()}."
        )


class TaskStore:
    """Sole owner of one project's task sequence.

    Every mutation runs under a single-writer lock, so readers working from
    ``snapshot()`` never observe a half-applied edit.
    """

    def __init__(self, project: Project, workdays: Iterable[int] = DEFAULT_WORKDAYS):
        self.project = project
        self.workdays: tuple[int, ...] = tuple(sorted(set(workdays)))
        self._lock = threading.RLock()

    @property
    def tasks(self) -> list[Task]:
        return self.project.tasks

    def get(self, task_id: int) -> Task | None:
        return next((t for t in self.project.tasks if t.id == task_id), None)

    def snapshot(self) -> tuple[Task, ...]:
        with self._lock:
            return tuple(copy.deepcopy(self.project.tasks))

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _mint_id(self) -> int:
        highest = max((t.id for t in self.project.tasks), default=0)
        tid = max(self.project.next_id, highest + 1)
        self.project.next_id = tid + 1
        return tid

    def default_start(self, today: date | None = None) -> date:
        """Next workday after the latest task end, or today for an empty project."""
        ends = [t.end for t in self.project.tasks if t.type == TaskType.TASK]
        if ends:
            candidate = max(ends) + timedelta(days=1)
        else:
            candidate = today or date.today()
        return next_workday(candidate, self.workdays)

    def _valid_parent(self, parent_id: int | None) -> int | None:
        if parent_id is None:
            return None
        parent = self.get(parent_id)
        if parent is None or not parent.is_group:
            logger.warning("Parent %s is not a group in this project; adding at top level.", parent_id)
            return None
        return parent_id

    def add_task(
        self,
        name: str = "New Task",
        assignee: str = UNASSIGNED,
        duration: int = DEFAULT_DURATION,
        color: str = DEFAULT_TASK_COLOR,
        parent_id: int | None = None,
        today: date | None = None,
    ) -> Task:
        with self._lock:
            duration = max(1, int(duration))
            start = self.default_start(today)
            task = Task(
                id=self._mint_id(),
                name=name,
                assignee=assignee,
                start=start,
                end=end_date_from_duration(start, duration, self.workdays),
                duration=duration,
                color=color,
                type=TaskType.TASK,
                parent_id=self._valid_parent(parent_id),
            )
            self.project.tasks.append(task)
            logger.debug("Added task %s (%s) %s..%s", task.id, task.name, task.start, task.end)
            return task

    def add_group(
        self,
        name: str = "New Group",
        assignee: str = UNASSIGNED,
        parent_id: int | None = None,
        today: date | None = None,
    ) -> Task:
        with self._lock:
            placeholder = today or date.today()
            group = Task(
                id=self._mint_id(),
                name=name,
                assignee=assignee,
                start=placeholder,
                end=placeholder,
                type=TaskType.GROUP,
                parent_id=self._valid_parent(parent_id),
                is_collapsed=False,
            )
            self.project.tasks.append(group)
            logger.debug("Added group %s (%s)", group.id, group.name)
            return group

    # ------------------------------------------------------------------
    # Field edits
    # ------------------------------------------------------------------

    def update_task(self, task_id: int, **fields) -> bool:
        """Merge *fields* into a task.

        For tasks, a changed duration drives the end date; otherwise edited
        dates drive the duration. When both arrive together the duration
        wins. Group dates are derived, so date fields on groups are ignored.
        Returns False when no task has *task_id*.
        """
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise InvalidEditError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        with self._lock:
            task = self.get(task_id)
            if task is None:
                return False

            changes = {k: v for k, v in fields.items() if k not in DATE_FIELDS}
            if "dependencies" in changes:
                changes["dependencies"] = self._clean_dependencies(task.id, changes["dependencies"] or [])

            if task.is_group:
                ignored = DATE_FIELDS & set(fields)
                if ignored:
                    logger.debug("Ignoring %s on group %s; group dates are derived.", sorted(ignored), task_id)
            else:
                changes.update(self._resolve_dates(task, fields))

            for key, value in changes.items():
                setattr(task, key, value)
            return True

    def _resolve_dates(self, task: Task, fields: dict) -> dict:
        start = normalize(fields["start"]) if fields.get("start") is not None else task.start
        end = normalize(fields["end"]) if fields.get("end") is not None else task.end
        duration = fields.get("duration")

        if duration is not None and duration != task.duration:
            duration = max(1, int(duration))
            return {
                "start": start,
                "duration": duration,
                "end": end_date_from_duration(start, duration, self.workdays),
            }
        if fields.get("start") is not None or fields.get("end") is not None:
            check_dates(start, end)
            return {
                "start": start,
                "end": end,
                "duration": business_days_between(start, end, self.workdays),
            }
        return {}

    def _clean_dependencies(self, task_id: int, ids: Iterable[int]) -> list[int]:
        cleaned: list[int] = []
        for dep in ids:
            dep = int(dep)
            if dep != task_id and dep not in cleaned:
                cleaned.append(dep)
        return cleaned

    def set_dependencies(self, task_id: int, ids: Iterable[int]) -> bool:
        return self.update_task(task_id, dependencies=list(ids))

    def toggle_collapse(self, task_id: int) -> bool:
        with self._lock:
            task = self.get(task_id)
            if task is None or not task.is_group:
                return False
            task.is_collapsed = not task.is_collapsed
            return True

    def reassign(self, old_assignee: str, new_assignee: str) -> int:
        with self._lock:
            count = 0
            for task in self.project.tasks:
                if task.assignee == old_assignee:
                    task.assignee = new_assignee
                    count += 1
            return count

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def delete_task(self, task_id: int) -> list[int]:
        """Remove a task, and for a group every transitive descendant.

        Collapse state plays no part: hidden children go too. Returns the
        removed ids in sequence order.
        """
        with self._lock:
            if self.get(task_id) is None:
                return []
            doomed = {task_id} | descendant_ids(self.project.tasks, task_id)
            removed = [t.id for t in self.project.tasks if t.id in doomed]
            self.project.tasks = [t for t in self.project.tasks if t.id not in doomed]
            logger.debug("Deleted %s", removed)
            return removed

    def reorder_task(self, dragged_id: int, drop_target_id: int) -> bool:
        """Move *dragged_id* next to *drop_target_id*.

        Dropping onto a group makes the dragged task its child, placed right
        after the group. Dropping onto a task makes it that task's sibling,
        placed right before it. A group can never land inside its own
        subtree; such a move is refused and the sequence is left as it was.
        """
        if dragged_id == drop_target_id:
            return False

        with self._lock:
            dragged = self.get(dragged_id)
            target = self.get(drop_target_id)
            if dragged is None or target is None:
                return False

            if dragged.is_group and drop_target_id in descendant_ids(self.project.tasks, dragged_id):
                logger.warning(
                    "Cannot move group %s into one of its own children (%s).", dragged_id, drop_target_id
                )
                return False

            remaining = [t for t in self.project.tasks if t.id != dragged_id]
            target_index = next(i for i, t in enumerate(remaining) if t.id == drop_target_id)
            if target.is_group:
                dragged.parent_id = target.id
                remaining.insert(target_index + 1, dragged)
            else:
                dragged.parent_id = target.parent_id
                remaining.insert(target_index, dragged)

            self.project.tasks = remaining
            logger.debug("Moved %s onto %s (parent now %s)", dragged_id, drop_target_id, dragged.parent_id)
            return True

    # ------------------------------------------------------------------
    # Calendar changes
    # ------------------------------------------------------------------

    def set_workdays(self, workdays: Iterable[int]) -> None:
        """Adopt a new workday set, re-deriving each end from start + duration."""
        with self._lock:
            self.workdays = tuple(sorted(set(workdays)))
            for task in self.project.tasks:
                if task.type == TaskType.TASK and task.duration:
                    task.end = end_date_from_duration(task.start, task.duration, self.workdays)
