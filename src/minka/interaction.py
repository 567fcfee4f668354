"""Drag and resize state for a single timeline bar.

Pointer movement is turned into whole calendar days here. The resulting
partial edits go through ``TaskStore.update_task``, which keeps duration
and dates consistent.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import timedelta

from minka.models import ProcessedTask, Task, TimelineView
from minka.timeline import DAY_WIDTH, WEEK_COL_WIDTH


class Mode(enum.StrEnum):
    IDLE = "idle"
    DRAGGING = "dragging"
    RESIZING_LEFT = "resizing_left"
    RESIZING_RIGHT = "resizing_right"


class Edge(enum.StrEnum):
    BOTH = "both"
    START = "start"
    END = "end"


_EDGE_FOR_MODE = {
    Mode.DRAGGING: Edge.BOTH,
    Mode.RESIZING_LEFT: Edge.START,
    Mode.RESIZING_RIGHT: Edge.END,
}


def shift_fields(task: Task | ProcessedTask, edge: Edge, days: int) -> dict | None:
    """Update fields for moving one or both edges of *task* by *days*.

    Returns None when nothing should change: a group, a zero shift, or a
    resize that would put the end before the start.
    """
    if task.is_group or days == 0:
        return None
    delta = timedelta(days=days)
    if edge == Edge.BOTH:
        return {"start": task.start + delta, "end": task.end + delta}
    if edge == Edge.START:
        new_start = task.start + delta
        return {"start": new_start} if new_start <= task.end else None
    new_end = task.end + delta
    return {"end": new_end} if new_end >= task.start else None


@dataclass
class BarInteraction:
    """idle -> dragging | resizing_left | resizing_right -> idle"""

    task: Task | ProcessedTask
    view: TimelineView = TimelineView.DAY
    mode: Mode = Mode.IDLE
    anchor_x: float = 0.0

    @property
    def col_width(self) -> int:
        return DAY_WIDTH if self.view == TimelineView.DAY else WEEK_COL_WIDTH

    @property
    def days_per_col(self) -> int:
        return 1 if self.view == TimelineView.DAY else 7

    def begin(self, mode: Mode, x: float) -> bool:
        if mode == Mode.IDLE or self.task.is_group:
            return False
        self.mode = mode
        self.anchor_x = x
        return True

    def move(self, x: float) -> dict | None:
        """Fields to apply for the pointer now at *x*, if a full column was crossed.

        The anchor advances by the columns consumed so deltas never accumulate.
        """
        if self.mode == Mode.IDLE:
            return None
        col_delta = round((x - self.anchor_x) / self.col_width)
        if col_delta == 0:
            return None
        fields = shift_fields(self.task, _EDGE_FOR_MODE[self.mode], col_delta * self.days_per_col)
        self.anchor_x += col_delta * self.col_width
        return fields

    def follow(self, task: Task | ProcessedTask) -> None:
        """Track the task as it stands after the last applied update."""
        self.task = task

    def end(self) -> None:
        self.mode = Mode.IDLE
        self.anchor_x = 0.0
