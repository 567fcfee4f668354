"""Summary metrics over a project's flat task list."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta

from minka.models import UNASSIGNED, Task, TaskType

UPCOMING_WINDOW_DAYS = 7


@dataclass
class StatusCounts:
    completed: int = 0
    in_progress: int = 0
    upcoming: int = 0


@dataclass
class DashboardMetrics:
    start_date: date | None = None
    end_date: date | None = None
    total_duration_days: int = 0
    total_duration_weeks: float = 0.0
    progress: int = 0
    total_tasks: int = 0
    total_users: int = 0
    status: StatusCounts = field(default_factory=StatusCounts)
    workload: list[tuple[str, int]] = field(default_factory=list)
    upcoming_deadlines: list[Task] = field(default_factory=list)

    def status_data(self) -> list[tuple[str, int]]:
        """Non-empty status buckets, in display order."""
        buckets = [
            ("Completed", self.status.completed),
            ("In Progress", self.status.in_progress),
            ("Upcoming", self.status.upcoming),
        ]
        return [(label, value) for label, value in buckets if value > 0]


def classify(task: Task, today: date) -> str:
    if task.end < today:
        return "completed"
    if task.start <= today <= task.end:
        return "in_progress"
    return "upcoming"


def compute_metrics(
    tasks: Sequence[Task],
    users: Sequence[str] = (),
    today: date | None = None,
) -> DashboardMetrics:
    """Aggregate timeline, progress, status, workload and deadline figures.

    Groups are excluded throughout. With no tasks every figure is zero.
    """
    today = today or date.today()
    project_tasks = [t for t in tasks if t.type == TaskType.TASK]
    if not project_tasks:
        return DashboardMetrics(total_users=len(users))

    start = min(t.start for t in project_tasks)
    end = max(t.end for t in project_tasks)
    span_days = (end - start).days
    total_days = max(1, math.ceil(span_days) + 1)

    elapsed = max(0, (today - start).days)
    progress = min(100, math.floor(elapsed / span_days * 100 + 0.5)) if span_days > 0 else 0

    status = StatusCounts()
    for task in project_tasks:
        bucket = classify(task, today)
        setattr(status, bucket, getattr(status, bucket) + 1)

    totals: dict[str, int] = {}
    for task in project_tasks:
        who = task.assignee or UNASSIGNED
        totals[who] = totals.get(who, 0) + (task.duration or 1)
    workload = sorted(totals.items(), key=lambda item: item[1], reverse=True)

    horizon = today + timedelta(days=UPCOMING_WINDOW_DAYS)
    upcoming = sorted(
        (t for t in project_tasks if today <= t.end <= horizon),
        key=lambda t: t.end,
    )

    return DashboardMetrics(
        start_date=start,
        end_date=end,
        total_duration_days=total_days,
        total_duration_weeks=round(total_days / 7, 1),
        progress=progress,
        total_tasks=len(project_tasks),
        total_users=len(users),
        status=status,
        workload=workload,
        upcoming_deadlines=upcoming,
    )
