from datetime import date

from minka.dashboard import classify, compute_metrics
from minka.models import Task, TaskType

MON = date(2026, 2, 23)
TUE = date(2026, 2, 24)
FRI = date(2026, 2, 27)
SUN = date(2026, 3, 1)
NEXT_MON = date(2026, 3, 2)
NEXT_FRI = date(2026, 3, 6)


def _task(tid, start, end, assignee="Alice", duration=5):
    return Task(id=tid, name=f"Task {tid}", start=start, end=end, assignee=assignee, duration=duration)


def _sample():
    return [
        Task(id=10, name="Phase", start=date(2025, 1, 1), end=date(2027, 1, 1), type=TaskType.GROUP),
        _task(1, MON, FRI, "Alice", 5),
        _task(2, NEXT_MON, NEXT_FRI, "Bob", 5),
        _task(3, MON, TUE, "Alice", 2),
    ]


def test_empty_project_is_all_zero():
    m = compute_metrics([], users=["Unassigned", "Alice"], today=SUN)
    assert m.start_date is None
    assert m.end_date is None
    assert m.progress == 0
    assert m.total_tasks == 0
    assert m.total_users == 2
    assert m.workload == []
    assert m.status_data() == []


def test_groups_only_counts_as_empty():
    m = compute_metrics(_sample()[:1], today=SUN)
    assert m.total_tasks == 0
    assert m.start_date is None


def test_timeline_ignores_groups():
    m = compute_metrics(_sample(), today=SUN)
    assert m.start_date == MON
    assert m.end_date == NEXT_FRI
    assert m.total_duration_days == 12
    assert m.total_duration_weeks == 1.7
    assert m.total_tasks == 3


def test_progress_is_rounded_elapsed_share():
    # 6 of 11 days elapsed
    assert compute_metrics(_sample(), today=SUN).progress == 55


def test_progress_rounds_half_up():
    tasks = [_task(1, MON, date(2026, 3, 3))]
    assert compute_metrics(tasks, today=TUE).progress == 13


def test_progress_is_clamped():
    assert compute_metrics(_sample(), today=date(2026, 1, 1)).progress == 0
    assert compute_metrics(_sample(), today=date(2026, 6, 1)).progress == 100


def test_single_day_project():
    m = compute_metrics([_task(1, MON, MON, duration=1)], today=MON)
    assert m.progress == 0
    assert m.total_duration_days == 1


def test_status_buckets():
    m = compute_metrics(_sample(), today=SUN)
    assert (m.status.completed, m.status.in_progress, m.status.upcoming) == (2, 0, 1)
    assert m.status_data() == [("Completed", 2), ("Upcoming", 1)]


def test_classify_boundaries():
    task = _task(1, MON, FRI)
    assert classify(task, MON) == "in_progress"
    assert classify(task, FRI) == "in_progress"
    assert classify(task, SUN) == "completed"
    assert classify(task, date(2026, 2, 22)) == "upcoming"


def test_workload_sums_durations_descending():
    m = compute_metrics(_sample(), today=SUN)
    assert m.workload == [("Alice", 7), ("Bob", 5)]


def test_workload_defaults():
    tasks = [_task(1, MON, FRI, assignee="", duration=None), _task(2, MON, FRI, assignee="Bob", duration=3)]
    m = compute_metrics(tasks, today=MON)
    assert m.workload == [("Bob", 3), ("Unassigned", 1)]


def test_upcoming_deadlines_within_a_week():
    tasks = _sample() + [_task(4, MON, date(2026, 3, 20))]
    m = compute_metrics(tasks, today=SUN)
    assert [t.id for t in m.upcoming_deadlines] == [2]


def test_upcoming_deadlines_sorted_by_end():
    tasks = [_task(1, MON, FRI), _task(2, MON, TUE), _task(3, MON, date(2026, 2, 25))]
    m = compute_metrics(tasks, today=MON)
    assert [t.id for t in m.upcoming_deadlines] == [2, 3, 1]
