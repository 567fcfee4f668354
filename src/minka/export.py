"""Spreadsheet rows, Mermaid gantt text and an interactive dependency map."""

from __future__ import annotations

import csv
from collections.abc import Sequence
from datetime import timedelta
from pathlib import Path

from minka.hierarchy import dependency_links
from minka.models import DEFAULT_TASK_COLOR, ProcessedTask, Task

EXPORT_COLUMNS = [
    "Task Name",
    "Type",
    "Assignee",
    "Start Date",
    "End Date",
    "Duration (workdays)",
    "Color",
]

GROUP_COLOR = "#A8A29E"


def export_rows(visible: Sequence[ProcessedTask]) -> list[dict]:
    """One row per displayed task, indented two spaces per nesting level."""
    rows = []
    for task in visible:
        rows.append({
            "Task Name": f"{'  ' * task.level}{task.name}",
            "Type": task.type.value,
            "Assignee": task.assignee,
            "Start Date": task.start.isoformat(),
            "End Date": task.end.isoformat(),
            "Duration (workdays)": task.duration if not task.is_group and task.duration is not None else "",
            "Color": task.color or "",
        })
    return rows


def write_csv(path: str | Path, visible: Sequence[ProcessedTask]) -> int:
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    rows = export_rows(visible)
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
    return len(rows)


def _mermaid_label(name: str) -> str:
    # ':' and '#' are syntax in gantt task lines
    return name.replace(":", " -").replace("#", "").strip() or "Untitled"


def mermaid_gantt(
    project_name: str,
    visible: Sequence[ProcessedTask],
    tasks: Sequence[Task],
) -> str:
    """A Mermaid ``gantt`` block of the visible rows.

    Each top-level group opens a section. Mermaid end dates are exclusive,
    so one day is added to every end. Dependency connectors are listed as
    comments because ``after`` clauses would move the bars.
    """
    lines = [
        "```mermaid",
        "gantt",
        f"    title {_mermaid_label(project_name)}",
        "    dateFormat YYYY-MM-DD",
    ]
    in_section = False
    for task in visible:
        if task.level == 0 and task.is_group:
            lines.append(f"    section {_mermaid_label(task.name)}")
            in_section = True
            continue
        if not in_section:
            lines.append("    section Tasks")
            in_section = True
        tags = "active, " if task.is_group else ""
        end = task.end + timedelta(days=1)
        lines.append(
            f"    {_mermaid_label(task.name)} :{tags}t{task.id}, {task.start.isoformat()}, {end.isoformat()}"
        )

    for link in dependency_links(visible, tasks):
        lines.append(f"    %% t{link.dependent_id} after t{link.predecessor_id}")

    lines.append("```")
    return "\n".join(lines) + "\n"


def write_dependency_html(
    path: str | Path,
    visible: Sequence[ProcessedTask],
    tasks: Sequence[Task],
) -> None:
    """Interactive PyVis map of the visible rows and their dependency links."""
    from pyvis.network import Network

    net = Network(height="800px", width="100%", directed=True, notebook=False)

    for index, task in enumerate(visible):
        color = GROUP_COLOR if task.is_group else (task.color or DEFAULT_TASK_COLOR)
        span = f"{task.start.isoformat()} - {task.end.isoformat()}"
        net.add_node(
            task.id,
            label=f"{task.name}\n{span}",
            title=f"{task.assignee}: {span}",
            color=color,
            shape="box",
            level=index,
            font={"color": "#ffffff", "face": "Helvetica", "size": 14},
        )

    for link in dependency_links(visible, tasks):
        net.add_edge(link.predecessor_id, link.dependent_id, color="#64748B")

    net.set_options("""
    var options = {
      "nodes": {
        "margin": 10,
        "widthConstraint": {
          "maximum": 220
        }
      },
      "edges": {
        "smooth": {
          "type": "cubicBezier",
          "forceDirection": "vertical",
          "roundness": 0.4
        },
        "arrows": {
          "to": {"enabled": true, "scaleFactor": 0.6}
        }
      },
      "layout": {
        "hierarchical": {
          "enabled": true,
          "direction": "UD",
          "sortMethod": "directed",
          "levelSeparation": 90,
          "nodeSpacing": 160
        }
      },
      "physics": {
        "enabled": false
      },
      "interaction": {
        "navigationButtons": true,
        "dragNodes": true,
        "hover": true
      }
    }
    """)

    net.save_graph(str(path))
