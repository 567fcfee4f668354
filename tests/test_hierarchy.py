from datetime import date

from minka.hierarchy import (
    aggregate_group_dates,
    build_tree,
    dependency_links,
    describe_dependencies,
    descendant_ids,
    ids_for_rows,
    is_descendant,
    parse_row_list,
    process_tasks,
    roots,
    row_numbers,
    visible_representative,
)
from minka.models import Task, TaskType

MON = date(2026, 2, 23)
TUE = date(2026, 2, 24)
THU = date(2026, 2, 26)
FRI = date(2026, 2, 27)
NEXT_WED = date(2026, 3, 4)
TODAY = date(2026, 2, 20)


def _task(tid, start=MON, end=FRI, parent_id=None, deps=None):
    return Task(id=tid, name=f"Task {tid}", start=start, end=end, duration=1,
                parent_id=parent_id, dependencies=list(deps or []))


def _group(tid, parent_id=None, collapsed=False):
    return Task(id=tid, name=f"Group {tid}", start=TODAY, end=TODAY,
                type=TaskType.GROUP, parent_id=parent_id, is_collapsed=collapsed)


def _nested():
    return [
        _group(1),
        _task(2, MON, TUE, parent_id=1),
        _group(3, parent_id=1),
        _task(4, THU, NEXT_WED, parent_id=3),
        _task(5, FRI, FRI),
    ]


def test_roots_keep_sequence_order():
    tasks = [_task(31, parent_id=3), _group(3), _task(1)]
    G = build_tree(tasks)
    assert roots(G) == [3, 1]


def test_child_listed_before_parent_is_still_nested():
    tasks = [_task(31, parent_id=3), _group(3), _task(1)]
    visible = process_tasks(tasks, TODAY)
    assert [(t.id, t.level) for t in visible] == [(3, 0), (31, 1), (1, 0)]


def test_missing_parent_makes_a_root():
    visible = process_tasks([_task(1, parent_id=99)], TODAY)
    assert [(t.id, t.level) for t in visible] == [(1, 0)]


def test_group_span_is_recursive():
    visible = {t.id: t for t in process_tasks(_nested(), TODAY)}
    assert (visible[3].start, visible[3].end) == (THU, NEXT_WED)
    assert (visible[1].start, visible[1].end) == (MON, NEXT_WED)


def test_leaf_edit_moves_every_ancestor():
    tasks = _nested()
    tasks[3].end = date(2026, 3, 20)
    visible = {t.id: t for t in process_tasks(tasks, TODAY)}
    assert visible[3].end == date(2026, 3, 20)
    assert visible[1].end == date(2026, 3, 20)


def test_stored_group_dates_untouched():
    tasks = _nested()
    process_tasks(tasks, TODAY)
    assert tasks[0].start == TODAY and tasks[0].end == TODAY


def test_empty_group_keeps_own_dates():
    spans = aggregate_group_dates(build_tree([_group(1)]), TODAY)
    assert spans[1] == (TODAY, TODAY)


def test_collapsed_group_span_still_includes_hidden_children():
    tasks = _nested()
    tasks[0].is_collapsed = True
    visible = process_tasks(tasks, TODAY)
    assert [t.id for t in visible] == [1, 5]
    assert (visible[0].start, visible[0].end) == (MON, NEXT_WED)


def test_levels_and_order():
    visible = process_tasks(_nested(), TODAY)
    assert [(t.id, t.level) for t in visible] == [(1, 0), (2, 1), (3, 1), (4, 2), (5, 0)]


def test_processing_is_idempotent():
    tasks = _nested()
    assert process_tasks(tasks, TODAY) == process_tasks(tasks, TODAY)


def test_collapse_hides_expanded_descendants():
    tasks = _nested()
    expanded = {t.id for t in process_tasks(tasks, TODAY)}
    tasks[0].is_collapsed = True
    collapsed = {t.id for t in process_tasks(tasks, TODAY)}
    assert collapsed < expanded
    # group 3 is expanded but its ancestor is not
    assert 4 not in collapsed


def test_expanding_restores_the_rows():
    tasks = _nested()
    before = process_tasks(tasks, TODAY)
    tasks[0].is_collapsed = True
    tasks[0].is_collapsed = False
    assert process_tasks(tasks, TODAY) == before


def test_corrupt_cycle_does_not_hang():
    a = _group(1, parent_id=2)
    b = _group(2, parent_id=1)
    # neither is a root, so nothing is displayed, but processing terminates
    assert process_tasks([a, b], TODAY) == []
    spans = aggregate_group_dates(build_tree([a, b]), TODAY)
    assert set(spans) == {1, 2}


def test_descendants():
    tasks = _nested()
    assert descendant_ids(tasks, 1) == {2, 3, 4}
    assert descendant_ids(tasks, 5) == set()
    assert descendant_ids(tasks, 99) == set()
    assert is_descendant(tasks, 1, 4)
    assert not is_descendant(tasks, 3, 2)


def test_row_numbers_count_tasks_only():
    visible = process_tasks(_nested(), TODAY)
    assert row_numbers(visible) == {2: 1, 4: 2, 5: 3}
    assert ids_for_rows(visible, [3, 1, 9, 1]) == [5, 2]


def test_parse_row_list():
    assert parse_row_list("1, x, 3,,") == [1, 3]
    assert parse_row_list("") == []


def test_visible_representative_climbs_to_collapsed_group():
    tasks = _nested()
    tasks[2].is_collapsed = True
    visible = process_tasks(tasks, TODAY)
    assert visible_representative(4, visible, tasks).id == 3
    assert visible_representative(2, visible, tasks).id == 2
    assert visible_representative(99, visible, tasks) is None


def test_links_redirect_to_collapsed_group():
    tasks = _nested()
    tasks[4].dependencies = [4]
    tasks[2].is_collapsed = True
    visible = process_tasks(tasks, TODAY)
    links = dependency_links(visible, tasks)
    assert len(links) == 1
    link = links[0]
    assert (link.source_id, link.target_id) == (4, 5)
    assert (link.predecessor_id, link.dependent_id) == (3, 5)
    assert (link.predecessor_row, link.dependent_row) == (2, 3)


def test_links_inside_one_collapsed_group_are_dropped():
    tasks = [
        _group(1, collapsed=True),
        _task(2, parent_id=1),
        _task(3, parent_id=1, deps=[2]),
    ]
    visible = process_tasks(tasks, TODAY)
    assert dependency_links(visible, tasks) == []


def test_links_to_deleted_tasks_are_dropped():
    tasks = [_task(1, deps=[42])]
    assert dependency_links(process_tasks(tasks, TODAY), tasks) == []


def test_describe_dependencies():
    tasks = _nested()
    tasks[0].is_collapsed = True
    visible = process_tasks(tasks, TODAY)
    rows = row_numbers(visible)
    assert describe_dependencies([5, 2, 42], rows, tasks) == "1, #2, #42 (deleted)"
