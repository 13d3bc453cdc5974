from __future__ import annotations

import math
from typing import Iterable, Optional

from workgraph_view.core.index.graph_index import GraphIndex, build_index
from workgraph_view.core.model import Node
from workgraph_view.core.status import is_done_status


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_percent(value: Optional[float]) -> int:
    if value is None or not math.isfinite(value):
        return 0
    return max(0, min(100, _round_half_up(value)))


def completion_percent(done_count: int, total_count: int) -> int:
    if total_count <= 0:
        return 0
    return clamp_percent(done_count / total_count * 100)


def completion_from_items(items: Iterable[Node]) -> tuple[int, int, int]:
    """(done, total, percent) over `items`."""
    items = list(items)
    done = sum(1 for n in items if is_done_status(n.status))
    return done, len(items), completion_percent(done, len(items))


def _from_tasks(tasks: list[Node], fallback_status: str) -> int:
    if tasks:
        return completion_from_items(tasks)[2]
    return 100 if is_done_status(fallback_status) else 0


def rollup_progress(
    nodes: Iterable[Node], *, index: Optional[GraphIndex] = None
) -> dict[str, int]:
    """Percent complete for every milestone and workstream.

    Tasks and initiatives get no entry.
    """
    nodes = list(nodes)
    idx = index or build_index(nodes)
    out: dict[str, int] = {}

    for n in nodes:
        if n.type == "milestone":
            out[n.id] = _from_tasks(idx.tasks_of_milestone(n.id), n.status)

    for ws in idx.workstreams:
        tasks = list(idx.direct_tasks_of(ws.id))
        for milestone in idx.milestones_of(ws.id):
            tasks.extend(idx.tasks_of_milestone(milestone.id))
        out[ws.id] = _from_tasks(tasks, ws.status)

    return out


def initiative_progress(nodes: Iterable[Node], health: Optional[float] = None) -> int:
    """Initiative-level percent: tasks, else milestones, else workstreams, else `health`."""
    nodes = list(nodes)
    for level in ("task", "milestone", "workstream"):
        members = [n for n in nodes if n.type == level]
        if members:
            return completion_from_items(members)[2]
    return clamp_percent(health)
