from datetime import date

import pytest

from minka.hierarchy import DependencyLink
from minka.models import ProcessedTask, TaskType, TimelineView
from minka.timeline import (
    OFF_CHAR,
    TASK_CHAR,
    TODAY_CHAR,
    bar_geometry,
    bar_rows,
    compute_window,
    connector_path,
    render_text_chart,
    start_of_week,
    today_marker,
)

WEEKDAYS = (1, 2, 3, 4, 5)

MON = date(2026, 2, 23)
TUE = date(2026, 2, 24)
FRI = date(2026, 2, 27)


def _row(tid, start, end, type=TaskType.TASK, level=0):
    return ProcessedTask(id=tid, name=f"Task {tid}", start=start, end=end, type=type, level=level)


def test_empty_window_shows_a_month_from_today():
    w = compute_window([], today=MON)
    assert w.start == MON
    assert w.end == date(2026, 3, 25)
    assert w.total_cols == 31


def test_day_window_pads_both_sides():
    w = compute_window([_row(1, MON, FRI)], TimelineView.DAY)
    assert w.start == date(2026, 2, 18)
    assert w.end == date(2026, 3, 4)
    assert w.total_cols == 14
    assert w.width == 700


def test_exporting_drops_leading_padding():
    w = compute_window([_row(1, MON, FRI)], TimelineView.DAY, exporting=True)
    assert w.start == MON


def test_week_window_aligns_to_sundays():
    assert start_of_week(MON) == date(2026, 2, 22)
    assert start_of_week(date(2026, 2, 22)) == date(2026, 2, 22)

    w = compute_window([_row(1, MON, FRI)], TimelineView.WEEK)
    assert w.start == date(2026, 2, 15)
    assert w.end == date(2026, 3, 7)
    assert w.total_cols == 3
    assert w.col_width == 100

    exported = compute_window([_row(1, MON, FRI)], TimelineView.WEEK, exporting=True)
    assert exported.start == date(2026, 2, 22)
    assert exported.total_cols == 2


def test_day_bar_geometry_includes_end_day():
    w = compute_window([_row(1, MON, FRI)], TimelineView.DAY)
    geo = bar_geometry(_row(1, MON, FRI), w)
    assert geo.left == 250
    assert geo.width == 250


def test_week_bar_geometry_is_fractional():
    w = compute_window([_row(1, MON, FRI)], TimelineView.WEEK)
    geo = bar_geometry(_row(1, MON, FRI), w)
    assert geo.left == pytest.approx(8 / 7 * 100)
    assert geo.width == pytest.approx(5 / 7 * 100)


def test_bar_rows():
    assert bar_rows(_row(1, MON, FRI), 0) == (8, 40)
    assert bar_rows(_row(2, MON, FRI, type=TaskType.GROUP), 1) == (66, 78)


def test_today_marker():
    w = compute_window([_row(1, MON, FRI)], TimelineView.DAY)
    assert today_marker(w, date(2026, 2, 20)) == 100
    assert today_marker(w, date(2026, 1, 1)) is None


def _two_rows():
    visible = [_row(1, MON, MON), _row(2, TUE, TUE)]
    return visible, compute_window(visible, TimelineView.DAY)


def test_connector_downward():
    visible, w = _two_rows()
    link = DependencyLink(1, 2, 1, 2, 0, 1)
    assert connector_path(link, visible, w) == "M 275 40 V 48 H 325 V 50"


def test_connector_upward():
    visible, w = _two_rows()
    link = DependencyLink(2, 1, 2, 1, 1, 0)
    assert connector_path(link, visible, w) == "M 325 56 V 48 H 275 V 46"


def test_text_chart():
    visible = [_row(1, MON, FRI)]
    w = compute_window(visible, TimelineView.DAY)
    lines = render_text_chart(visible, w, WEEKDAYS, today=date(2026, 1, 1))
    assert len(lines) == 3
    # window opens on Wednesday the 18th
    assert lines[0][29] == "W"
    assert lines[1][29] == "8"
    row = lines[2]
    assert row.startswith("Task 1")
    assert row.count(TASK_CHAR) == 5
    assert row.count(OFF_CHAR) == 4
    assert TODAY_CHAR not in row


def test_text_chart_marks_today_and_indents():
    visible = [_row(1, MON, MON, type=TaskType.GROUP), _row(2, MON, MON, level=1)]
    w = compute_window(visible, TimelineView.DAY)
    lines = render_text_chart(visible, w, WEEKDAYS, today=date(2026, 2, 25))
    assert lines[3].startswith("  Task 2")
    assert TODAY_CHAR in lines[3]
