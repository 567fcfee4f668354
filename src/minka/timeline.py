"""Timeline window and bar geometry for the Gantt view."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from minka.calendar import DAY_NAMES, weekday_index
from minka.hierarchy import DependencyLink
from minka.models import ProcessedTask, TimelineView

DAY_WIDTH = 50  # px per day column
WEEK_COL_WIDTH = 100  # px per week column
ROW_HEIGHT = 48
HEADER_HEIGHT = 64
ARROW_OFFSET = 6

EMPTY_WINDOW_DAYS = 30
DAY_PADDING = 5

TASK_CHAR = "█"
GROUP_CHAR = "▬"
OFF_CHAR = "·"
TODAY_CHAR = "│"


@dataclass(frozen=True)
class TimelineWindow:
    start: date
    end: date
    total_cols: int
    view: TimelineView = TimelineView.DAY

    @property
    def col_width(self) -> int:
        return DAY_WIDTH if self.view == TimelineView.DAY else WEEK_COL_WIDTH

    @property
    def days_per_col(self) -> int:
        return 1 if self.view == TimelineView.DAY else 7

    @property
    def width(self) -> int:
        return self.total_cols * self.col_width

    def column_start(self, col: int) -> date:
        return self.start + timedelta(days=col * self.days_per_col)


@dataclass(frozen=True)
class BarGeometry:
    left: float
    width: float


def start_of_week(d: date) -> date:
    """The Sunday on or before *d*."""
    return d - timedelta(days=weekday_index(d))


def compute_window(
    visible: Sequence[ProcessedTask],
    view: TimelineView = TimelineView.DAY,
    exporting: bool = False,
    today: date | None = None,
) -> TimelineWindow:
    """Columns needed to show every visible row, with padding either side.

    Leading padding is dropped when exporting so the image starts at the
    first bar.
    """
    if not visible:
        start = today or date.today()
        return TimelineWindow(start, start + timedelta(days=EMPTY_WINDOW_DAYS), EMPTY_WINDOW_DAYS + 1, view)

    min_date = min(t.start for t in visible)
    max_date = max(t.end for t in visible)

    if view == TimelineView.DAY:
        start = min_date if exporting else min_date - timedelta(days=DAY_PADDING)
        end = max_date + timedelta(days=DAY_PADDING)
    else:
        start = start_of_week(min_date)
        if not exporting:
            start -= timedelta(days=7)
        end = start_of_week(max_date) + timedelta(days=6 + 7)

    total_days = (end - start).days
    total_cols = total_days if view == TimelineView.DAY else math.ceil(total_days / 7)
    return TimelineWindow(start, end, total_cols, view)


def bar_geometry(task: ProcessedTask, window: TimelineWindow) -> BarGeometry:
    """Horizontal placement in pixels; a bar covers its whole end day."""
    offset_days = (task.start - window.start).days
    span_days = (task.end - task.start).days + 1
    per_col = window.days_per_col
    return BarGeometry(
        left=offset_days / per_col * window.col_width,
        width=span_days / per_col * window.col_width,
    )


def bar_rows(task: ProcessedTask, index: int) -> tuple[float, float]:
    """Top and bottom y of the bar drawn on row *index*."""
    if task.is_group:
        top = index * ROW_HEIGHT + (ROW_HEIGHT - 12) / 2
        return top, top + 12
    top = index * ROW_HEIGHT + 8
    return top, top + 32


def today_marker(window: TimelineWindow, today: date | None = None) -> float | None:
    today = today or date.today()
    if today < window.start or today > window.end:
        return None
    offset_days = (today - window.start).days
    return offset_days / window.days_per_col * window.col_width


def _fmt(value: float) -> str:
    return f"{value:g}"


def connector_path(
    link: DependencyLink,
    visible: Sequence[ProcessedTask],
    window: TimelineWindow,
) -> str:
    """Orthogonal connector from the predecessor bar to the dependent bar.

    The line leaves the bottom of the predecessor when it sits above the
    dependent and its top otherwise, stopping short by the arrowhead.
    """
    prereq = visible[link.predecessor_row]
    dependent = visible[link.dependent_row]
    prereq_x = bar_geometry(prereq, window)
    dependent_x = bar_geometry(dependent, window)
    prereq_top, prereq_bottom = bar_rows(prereq, link.predecessor_row)
    dep_top, dep_bottom = bar_rows(dependent, link.dependent_row)

    start_x = prereq_x.left + prereq_x.width / 2
    end_x = dependent_x.left + dependent_x.width / 2
    if link.predecessor_row < link.dependent_row:
        start_y, end_y = prereq_bottom, dep_top
        tip_y = end_y - ARROW_OFFSET
    else:
        start_y, end_y = prereq_top, dep_bottom
        tip_y = end_y + ARROW_OFFSET
    mid_y = (start_y + end_y) / 2
    return f"M {_fmt(start_x)} {_fmt(start_y)} V {_fmt(mid_y)} H {_fmt(end_x)} V {_fmt(tip_y)}"


def render_text_chart(
    visible: Sequence[ProcessedTask],
    window: TimelineWindow,
    workdays: Iterable[int],
    today: date | None = None,
    label_width: int = 28,
) -> list[str]:
    """One text line per column header and per visible row."""
    today = today or date.today()
    days = set(workdays)
    per_col = window.days_per_col
    columns = [window.column_start(c) for c in range(window.total_cols)]

    if window.view == TimelineView.DAY:
        header = "".join(DAY_NAMES[weekday_index(d)][0] for d in columns)
        dates = "".join(str(d.day % 10) for d in columns)
    else:
        header = "".join("|" if d.day <= 7 else " " for d in columns)
        dates = "".join(str(d.day // 10) for d in columns)
    lines = [" " * label_width + " " + header, " " * label_width + " " + dates]

    for task in visible:
        label = ("  " * task.level + task.name)[:label_width].ljust(label_width)
        cells = []
        for col_start in columns:
            col_end = col_start + timedelta(days=per_col - 1)
            if task.start <= col_end and task.end >= col_start:
                cells.append(GROUP_CHAR if task.is_group else TASK_CHAR)
            elif col_start <= today <= col_end:
                cells.append(TODAY_CHAR)
            elif per_col == 1 and weekday_index(col_start) not in days:
                cells.append(OFF_CHAR)
            else:
                cells.append(" ")
        lines.append(label + " " + "".join(cells))
    return lines
