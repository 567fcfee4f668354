from datetime import date

import pytest

from minka.calendar import business_days_between
from minka.hierarchy import process_tasks
from minka.models import UNASSIGNED, Project, Task, TaskType
from minka.workspace import Workspace

MON = date(2026, 2, 23)
FRI = date(2026, 2, 27)


def _workspace():
    ws = Workspace(users=["Alice", "Bob", UNASSIGNED])
    first = ws.create_project("Alpha")
    first.tasks.append(Task(id=1, name="A1", start=MON, end=FRI, duration=5, assignee="Alice"))
    second = ws.create_project("Beta")
    second.tasks.append(Task(id=1, name="B1", start=MON, end=FRI, duration=5, assignee="Alice"))
    second.tasks.append(Task(id=2, name="B2", start=MON, end=FRI, duration=5, assignee="Bob"))
    return ws


def test_create_project_becomes_active():
    ws = Workspace()
    project = ws.create_project("  Launch  ")
    assert project.name == "Launch"
    assert ws.active_project is project
    assert ws.create_project("Next").id == 2


def test_blank_project_name_rejected():
    with pytest.raises(ValueError):
        Workspace().create_project("   ")


def test_rename_project():
    ws = _workspace()
    assert ws.rename_project(1, "Gamma")
    assert ws.get_project(1).name == "Gamma"
    assert ws.rename_project(1, " ") is False
    assert ws.rename_project(9, "x") is False


def test_delete_active_project_falls_back_to_first():
    ws = _workspace()
    assert ws.active_project_id == 2
    assert ws.delete_project(2)
    assert ws.active_project_id == 1
    assert ws.delete_project(1)
    assert ws.active_project is None
    assert ws.delete_project(1) is False


def test_switch_project():
    ws = _workspace()
    assert ws.switch_project(1)
    assert ws.active_project.name == "Alpha"
    assert ws.switch_project(42) is False
    assert ws.active_project_id == 1


def test_add_user_keeps_list_sorted():
    ws = _workspace()
    ws.add_user("aaron")
    assert ws.users == ["aaron", "Alice", "Bob", UNASSIGNED]


def test_add_user_rejects_blank_and_duplicates():
    ws = _workspace()
    with pytest.raises(ValueError):
        ws.add_user(" ")
    with pytest.raises(ValueError):
        ws.add_user("Alice")


def test_delete_user_reassigns_across_projects():
    ws = _workspace()
    assert ws.delete_user("Alice") == 2
    assert "Alice" not in ws.users
    assignees = [t.assignee for p in ws.projects for t in p.tasks]
    assert assignees == [UNASSIGNED, UNASSIGNED, "Bob"]


def test_unassigned_cannot_be_deleted():
    ws = _workspace()
    with pytest.raises(ValueError):
        ws.delete_user(UNASSIGNED)
    with pytest.raises(ValueError):
        ws.delete_user("Nobody")


def test_stale_assignee():
    ws = _workspace()
    assert ws.is_stale_assignee("Zed")
    assert not ws.is_stale_assignee("Bob")


def test_set_workdays_applies_to_every_project():
    ws = _workspace()
    ws.set_workdays(range(7))
    assert ws.config.workdays == (0, 1, 2, 3, 4, 5, 6)
    assert all(t.end == FRI for p in ws.projects for t in p.tasks)
    ws.set_workdays([1, 2])
    assert ws.get_project(1).tasks[0].end == date(2026, 3, 9)


def test_set_workdays_rejects_empty_and_out_of_range():
    ws = _workspace()
    with pytest.raises(ValueError):
        ws.set_workdays([])
    with pytest.raises(ValueError):
        ws.set_workdays([1, 7])
    assert ws.config.workdays == (1, 2, 3, 4, 5)


def test_serialization_keeps_unassigned():
    ws = Workspace.from_dict({"users": ["Bob"], "projects": []})
    assert ws.users == ["Bob", UNASSIGNED]


def test_serialization_preserves_workspace():
    ws = _workspace()
    ws.config.workdays = (1, 3, 5)
    restored = Workspace.from_dict(ws.to_dict())
    assert restored.to_dict() == ws.to_dict()
    assert restored.active_project.name == "Beta"


def test_seed_sample_projects():
    ws = Workspace.seed(today=MON)
    assert [p.name for p in ws.projects] == ["Website Redesign", "Mobile App Launch"]
    assert ws.active_project.name == "Website Redesign"
    assert UNASSIGNED in ws.users

    website = ws.projects[0]
    assert len(website.tasks) == 11
    assert website.next_id == 44
    for task in website.tasks:
        if task.type == TaskType.TASK:
            assert task.duration == business_days_between(task.start, task.end, ws.config.workdays)
        else:
            assert task.duration is None


def test_seed_development_phase_starts_collapsed():
    website = Workspace.seed(today=MON).projects[0]
    visible = [t.id for t in process_tasks(website.tasks, MON)]
    assert visible == [1, 2, 3, 31, 32, 4, 5, 6]


def test_store_for_uses_workspace_workdays():
    ws = Workspace()
    ws.config.workdays = (1, 2)
    store = ws.store_for(Project(id=1, name="P"))
    assert store.workdays == (1, 2)
