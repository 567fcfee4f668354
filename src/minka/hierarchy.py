"""Parent-link hierarchy: tree construction, group date roll-up and the
flattened, collapse-aware display list."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

import networkx as nx

from minka.models import ProcessedTask, Task, TaskType


@dataclass(frozen=True)
class DependencyLink:
    """A connector between the visible rows that stand in for an edge.

    ``predecessor_id``/``dependent_id`` are the ids actually drawn, which
    may be collapsed ancestors of ``source_id``/``target_id``.
    """

    source_id: int
    target_id: int
    predecessor_id: int
    dependent_id: int
    predecessor_row: int
    dependent_row: int


def build_tree(tasks: Sequence[Task]) -> nx.DiGraph:
    """Construct the parent -> child graph.

    Tasks whose parent is absent from the set are roots. Every node keeps its
    position in the flat sequence as ``order``.
    """
    G = nx.DiGraph()
    for idx, task in enumerate(tasks):
        G.add_node(task.id, task=task, order=idx)
    for task in tasks:
        if task.parent_id is not None and task.parent_id != task.id and task.parent_id in G:
            G.add_edge(task.parent_id, task.id)
    return G


def _by_order(G: nx.DiGraph, nodes: Iterable[int]) -> list[int]:
    return sorted(nodes, key=lambda n: G.nodes[n]["order"])


def children(G: nx.DiGraph, node_id: int) -> list[int]:
    return _by_order(G, G.successors(node_id))


def roots(G: nx.DiGraph) -> list[int]:
    return _by_order(G, (n for n in G.nodes if G.in_degree(n) == 0))


def descendant_ids(tasks: Sequence[Task], root_id: int) -> set[int]:
    """Every task reachable from *root_id* through parent links.

    This is the one graph walk behind both the delete cascade and reparent
    cycle prevention.
    """
    G = build_tree(tasks)
    if root_id not in G:
        return set()
    return nx.descendants(G, root_id)


def is_descendant(tasks: Sequence[Task], ancestor_id: int, candidate_id: int) -> bool:
    return candidate_id in descendant_ids(tasks, ancestor_id)


def aggregate_group_dates(
    G: nx.DiGraph,
    today: date | None = None,
) -> dict[int, tuple[date, date]]:
    """Resolve the date span of every node in *G*.

    Leaves keep their own dates. A group with children spans the earliest
    child start to the latest child end, recursively through nested groups.
    A group without children falls back to its literal dates. The memo
    lives for this call only.
    """
    fallback = today or date.today()
    memo: dict[int, tuple[date, date]] = {}

    def span(node_id: int) -> tuple[date, date]:
        if node_id in memo:
            return memo[node_id]
        task: Task = G.nodes[node_id]["task"]
        own = (task.start or fallback, task.end or fallback)
        kids = children(G, node_id)
        if task.type != TaskType.GROUP or not kids:
            memo[node_id] = own
            return own

        # provisional entry stops the recursion on corrupt cyclic data
        memo[node_id] = own
        spans = [span(k) for k in kids]
        result = (min(s for s, _ in spans), max(e for _, e in spans))
        memo[node_id] = result
        return result

    return {node_id: span(node_id) for node_id in G.nodes}


def process_tasks(tasks: Sequence[Task], today: date | None = None) -> list[ProcessedTask]:
    """Derive the ordered, indented, visibility-filtered display list.

    Depth-first pre-order from the roots. Collapsed and empty groups end
    their branch, so descendants of a collapsed group never appear,
    whatever their own collapse state.
    """
    if not tasks:
        return []

    G = build_tree(tasks)
    spans = aggregate_group_dates(G, today)
    visible: list[ProcessedTask] = []

    def visit(node_ids: list[int], level: int) -> None:
        for node_id in node_ids:
            task: Task = G.nodes[node_id]["task"]
            start, end = spans[node_id]
            visible.append(ProcessedTask.from_task(task, level, start, end))
            kids = children(G, node_id)
            if task.type == TaskType.GROUP and not task.is_collapsed and kids:
                visit(kids, level + 1)

    visit(roots(G), 0)
    return visible


def row_numbers(visible: Sequence[ProcessedTask]) -> dict[int, int]:
    """Map task id -> 1-based row number, counting ``task`` rows only."""
    rows: dict[int, int] = {}
    for t in visible:
        if t.type == TaskType.TASK:
            rows[t.id] = len(rows) + 1
    return rows


def ids_for_rows(visible: Sequence[ProcessedTask], rows: Iterable[int]) -> list[int]:
    """Translate row numbers back to task ids, dropping unknown rows."""
    by_row = {row: tid for tid, row in row_numbers(visible).items()}
    result: list[int] = []
    for row in rows:
        tid = by_row.get(row)
        if tid is not None and tid not in result:
            result.append(tid)
    return result


def parse_row_list(text: str) -> list[int]:
    """Parse ``"1, 3,5"`` into row numbers, skipping non-numeric pieces."""
    rows = []
    for part in text.split(","):
        part = part.strip()
        if part.lstrip("-").isdigit():
            rows.append(int(part))
    return rows


def visible_representative(
    task_id: int,
    visible: Sequence[ProcessedTask],
    tasks: Sequence[Task],
) -> ProcessedTask | None:
    """The row that stands in for *task_id*: itself, or its nearest visible ancestor."""
    visible_by_id = {t.id: t for t in visible}
    tasks_by_id = {t.id: t for t in tasks}
    seen: set[int] = set()
    current: int | None = task_id
    while current is not None and current not in seen:
        if current in visible_by_id:
            return visible_by_id[current]
        seen.add(current)
        task = tasks_by_id.get(current)
        current = task.parent_id if task else None
    return None


def dependency_links(
    visible: Sequence[ProcessedTask],
    tasks: Sequence[Task],
) -> list[DependencyLink]:
    """Resolve every dependency edge to a connector between visible rows.

    Edges whose endpoints cannot be traced to a visible row, or that collapse
    onto a single row, are dropped.
    """
    index = {t.id: i for i, t in enumerate(visible)}
    links: list[DependencyLink] = []
    for dependent in tasks:
        if dependent.type != TaskType.TASK or not dependent.dependencies:
            continue
        shown_dependent = visible_representative(dependent.id, visible, tasks)
        if shown_dependent is None:
            continue
        for dep_id in dependent.dependencies:
            shown_prereq = visible_representative(dep_id, visible, tasks)
            if shown_prereq is None or shown_prereq.id == shown_dependent.id:
                continue
            links.append(
                DependencyLink(
                    source_id=dep_id,
                    target_id=dependent.id,
                    predecessor_id=shown_prereq.id,
                    dependent_id=shown_dependent.id,
                    predecessor_row=index[shown_prereq.id],
                    dependent_row=index[shown_dependent.id],
                )
            )
    return links


def describe_dependencies(
    dependencies: Iterable[int],
    rows: dict[int, int],
    tasks: Sequence[Task],
) -> str:
    """Render predecessors as row numbers.

    Predecessors without a row (hidden or groups) show as ``#id``; ids that
    no longer exist are kept and marked as deleted.
    """
    existing = {t.id for t in tasks}
    parts = []
    for dep_id in dependencies:
        if dep_id in rows:
            parts.append(str(rows[dep_id]))
        elif dep_id in existing:
            parts.append(f"#{dep_id}")
        else:
            parts.append(f"#{dep_id} (deleted)")
    return ", ".join(parts)
