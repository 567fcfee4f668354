"""Task, project and configuration models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date

from minka.calendar import DEFAULT_WORKDAYS, normalize

UNASSIGNED = "Unassigned"
DEFAULT_TASK_COLOR = "#3B82F6"


class TaskType(enum.StrEnum):
    TASK = "task"
    GROUP = "group"


class TimelineView(enum.StrEnum):
    DAY = "day"
    WEEK = "week"


@dataclass
class WorkspaceConfig:
    """Settings stored alongside the projects."""

    workdays: tuple[int, ...] = DEFAULT_WORKDAYS
    timeline_view: TimelineView = TimelineView.DAY

    def to_dict(self) -> dict:
        return {
            "workdays": list(self.workdays),
            "timeline_view": self.timeline_view.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> WorkspaceConfig:
        return cls(
            workdays=tuple(sorted(set(d.get("workdays", DEFAULT_WORKDAYS)))),
            timeline_view=TimelineView(d.get("timeline_view", "day")),
        )


@dataclass
class Task:
    """A schedulable task or an organizational group.

    Only tasks carry a duration. A group's ``start``/``end`` are placeholders
    that the hierarchy derivation replaces with the span of its children.
    """

    id: int
    name: str
    start: date
    end: date
    type: TaskType = TaskType.TASK
    assignee: str = UNASSIGNED
    duration: int | None = None  # business days, tasks only
    color: str | None = None
    parent_id: int | None = None
    is_collapsed: bool = False
    dependencies: list[int] = field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return self.type == TaskType.GROUP

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "name": self.name,
            "assignee": self.assignee,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "type": self.type.value,
        }
        if self.duration is not None:
            d["duration"] = self.duration
        if self.color is not None:
            d["color"] = self.color
        if self.parent_id is not None:
            d["parent_id"] = self.parent_id
        if self.is_group:
            d["is_collapsed"] = self.is_collapsed
        if self.dependencies:
            d["dependencies"] = list(self.dependencies)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Task:
        return cls(
            id=int(d["id"]),
            name=d.get("name", ""),
            start=normalize(d["start"]),
            end=normalize(d["end"]),
            type=TaskType(d.get("type", "task")),
            assignee=d.get("assignee", UNASSIGNED),
            duration=d.get("duration"),
            color=d.get("color"),
            parent_id=d.get("parent_id"),
            is_collapsed=d.get("is_collapsed", False),
            dependencies=[int(x) for x in d.get("dependencies", [])],
        )


@dataclass
class Project:
    """A named, ordered sequence of tasks.

    Sequence order is the display order among siblings and the basis of the
    row numbers users type to reference dependencies.
    """

    id: int
    name: str
    tasks: list[Task] = field(default_factory=list)
    next_id: int = 1

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "next_id": self.next_id,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Project:
        tasks = [Task.from_dict(t) for t in d.get("tasks", [])]
        next_id = d.get("next_id", max((t.id for t in tasks), default=0) + 1)
        return cls(id=int(d["id"]), name=d["name"], tasks=tasks, next_id=next_id)


@dataclass(frozen=True)
class ProcessedTask:
    """Read-only row of the derived, display-ordered hierarchy.

    Group dates here are aggregated from descendants and exist only in this
    view; there is no path to write them back into a project.
    """

    id: int
    name: str
    start: date
    end: date
    type: TaskType
    level: int
    assignee: str = UNASSIGNED
    duration: int | None = None
    color: str | None = None
    parent_id: int | None = None
    is_collapsed: bool = False
    dependencies: tuple[int, ...] = ()

    @property
    def is_group(self) -> bool:
        return self.type == TaskType.GROUP

    @classmethod
    def from_task(cls, task: Task, level: int, start: date, end: date) -> ProcessedTask:
        return cls(
            id=task.id,
            name=task.name,
            start=start,
            end=end,
            type=task.type,
            level=level,
            assignee=task.assignee,
            duration=task.duration,
            color=task.color,
            parent_id=task.parent_id,
            is_collapsed=task.is_collapsed,
            dependencies=tuple(task.dependencies),
        )
