"""Projects, team members and workday settings for one planning workspace."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from minka.calendar import DEFAULT_WORKDAYS, business_days_between
from minka.models import UNASSIGNED, Project, Task, TaskType, WorkspaceConfig
from minka.taskstore import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_USERS = (
    "Alice",
    "Bob",
    "Charlie",
    "Dev Team",
    "Diana",
    "Eve",
    "Frank",
    "Grace",
    UNASSIGNED,
)


def _sorted_users(users: Iterable[str]) -> list[str]:
    return sorted(users, key=str.casefold)


@dataclass
class Workspace:
    config: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    projects: list[Project] = field(default_factory=list)
    users: list[str] = field(default_factory=lambda: [UNASSIGNED])
    active_project_id: int | None = None

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def get_project(self, project_id: int) -> Project | None:
        return next((p for p in self.projects if p.id == project_id), None)

    @property
    def active_project(self) -> Project | None:
        if self.active_project_id is None:
            return None
        return self.get_project(self.active_project_id)

    def store_for(self, project: Project) -> TaskStore:
        return TaskStore(project, self.config.workdays)

    def create_project(self, name: str) -> Project:
        name = name.strip()
        if not name:
            raise ValueError("Project name cannot be blank.")
        project = Project(id=max((p.id for p in self.projects), default=0) + 1, name=name)
        self.projects.append(project)
        self.active_project_id = project.id
        return project

    def rename_project(self, project_id: int, name: str) -> bool:
        project = self.get_project(project_id)
        if project is None or not name.strip():
            return False
        project.name = name.strip()
        return True

    def delete_project(self, project_id: int) -> bool:
        if self.get_project(project_id) is None:
            return False
        self.projects = [p for p in self.projects if p.id != project_id]
        if self.active_project_id == project_id:
            self.active_project_id = self.projects[0].id if self.projects else None
        return True

    def switch_project(self, project_id: int) -> bool:
        if self.get_project(project_id) is None:
            return False
        self.active_project_id = project_id
        return True

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def add_user(self, name: str) -> None:
        name = name.strip()
        if not name:
            raise ValueError("User name cannot be blank.")
        if name in self.users:
            raise ValueError(f'User "{name}" already exists.')
        self.users = _sorted_users([*self.users, name])

    def delete_user(self, name: str) -> int:
        """Remove a user, handing all of their tasks to Unassigned.

        Returns the number of reassigned tasks across every project.
        """
        if name == UNASSIGNED:
            raise ValueError(f"Cannot delete the '{UNASSIGNED}' user.")
        if name not in self.users:
            raise ValueError(f'User "{name}" not found.')
        self.users = [u for u in self.users if u != name]
        moved = sum(self.store_for(p).reassign(name, UNASSIGNED) for p in self.projects)
        logger.debug("Deleted user %s, reassigned %d task(s)", name, moved)
        return moved

    def is_stale_assignee(self, name: str) -> bool:
        return name not in self.users

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def set_workdays(self, workdays: Iterable[int]) -> None:
        days = tuple(sorted(set(workdays)))
        if not days:
            raise ValueError("At least one workday is required.")
        if any(not 0 <= d <= 6 for d in days):
            raise ValueError("Workdays must be weekday indices 0-6.")
        self.config.workdays = days
        for project in self.projects:
            self.store_for(project).set_workdays(days)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "config": self.config.to_dict(),
            "users": list(self.users),
            "active_project_id": self.active_project_id,
            "projects": [p.to_dict() for p in self.projects],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Workspace:
        users = d.get("users") or [UNASSIGNED]
        if UNASSIGNED not in users:
            users = [*users, UNASSIGNED]
        return cls(
            config=WorkspaceConfig.from_dict(d.get("config", {})),
            projects=[Project.from_dict(p) for p in d.get("projects", [])],
            users=_sorted_users(users),
            active_project_id=d.get("active_project_id"),
        )

    @classmethod
    def seed(cls, today: date | None = None) -> Workspace:
        """A workspace with the sample website project and default team."""
        today = today or date.today()

        def day(offset: int) -> date:
            return today + timedelta(days=offset)

        rows = [
            (1, "Project Kick-off Meeting", "Alice", 0, 0, "#3B82F6", TaskType.TASK, None, False, []),
            (2, "Requirement Gathering", "Bob", 1, 3, "#10B981", TaskType.TASK, None, False, [1]),
            (3, "UI/UX Design Phase", "Charlie", 0, 0, None, TaskType.GROUP, None, False, [2]),
            (31, "Wireframing", "Charlie", 4, 6, "#F59E0B", TaskType.TASK, 3, False, []),
            (32, "High-Fidelity Mockups", "Charlie", 7, 9, "#F59E0B", TaskType.TASK, 3, False, [31]),
            (4, "Development Phase", "Dev Team", 0, 0, None, TaskType.GROUP, None, True, [3]),
            (41, "Frontend Development", "Diana", 10, 20, "#8B5CF6", TaskType.TASK, 4, False, []),
            (42, "Backend Development", "Eve", 10, 22, "#6366F1", TaskType.TASK, 4, False, []),
            (43, "API Integration", "Diana", 21, 24, "#EC4899", TaskType.TASK, 4, False, [41, 42]),
            (5, "Testing & QA", "Frank", 25, 30, "#F97316", TaskType.TASK, None, False, [43]),
            (6, "Deployment to Staging", "Grace", 31, 32, "#06B6D4", TaskType.TASK, None, False, [5]),
        ]
        tasks = []
        for tid, name, who, s, e, color, kind, parent, collapsed, deps in rows:
            task = Task(
                id=tid,
                name=name,
                assignee=who,
                start=day(s),
                end=day(e),
                type=kind,
                color=color,
                parent_id=parent,
                is_collapsed=collapsed,
                dependencies=list(deps),
            )
            if kind == TaskType.TASK:
                task.duration = business_days_between(task.start, task.end, DEFAULT_WORKDAYS)
            tasks.append(task)

        website = Project(id=1, name="Website Redesign", tasks=tasks, next_id=44)
        mobile = Project(id=2, name="Mobile App Launch")
        return cls(
            config=WorkspaceConfig(),
            projects=[website, mobile],
            users=_sorted_users(DEFAULT_USERS),
            active_project_id=website.id,
        )
