from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from workgraph_view.core.config.view_config import ViewConfig, check_sort
from workgraph_view.core.index.graph_index import UNSCOPED, GraphIndex, build_index
from workgraph_view.core.model import Edge, Node, Row
from workgraph_view.core.reach.reachability import ancestor_ids
from workgraph_view.core.status import normalize_status_key, status_rank


def parse_timestamp(value: Optional[str]) -> Optional[float]:
    """ISO-8601 string -> epoch seconds, or None when missing/unparseable."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).timestamp()
    except ValueError:
        return None


def node_matches(node: Node, query: str, status_filters: frozenset[str]) -> bool:
    if query:
        in_title = query in node.title.lower()
        in_agents = any(query in a.name.lower() for a in node.assigned_agents)
        if not (in_title or in_agents):
            return False
    if status_filters and normalize_status_key(node.status) not in status_filters:
        return False
    return True


def matching_ids(
    nodes: Iterable[Node],
    search_query: str = "",
    status_filters: frozenset[str] | set[str] = frozenset(),
) -> Optional[set[str]]:
    """Direct matches plus their hierarchy ancestors.

    Returns None (meaning "everything") when neither a query nor a status
    filter is active.
    """
    query = search_query.strip().lower()
    filters = frozenset(normalize_status_key(s) for s in status_filters if s.strip())
    if not query and not filters:
        return None

    nodes = list(nodes)
    by_id = {n.id: n for n in nodes}
    direct = [n.id for n in nodes if node_matches(n, query, filters)]

    visible: set[str] = set(direct)
    for nid in direct:
        visible |= ancestor_ids(nid, by_id)
    return visible


def _title_key(n: Node) -> tuple[str, str]:
    return (n.title.casefold(), n.title)


def sort_siblings(
    items: list[Node],
    sort_field: Optional[str],
    sort_direction: str = "asc",
) -> list[Node]:
    """Sort one sibling group. Stable: ties keep the priority/title order."""
    check_sort(sort_field, sort_direction)
    if not sort_field:
        return list(items)
    reverse = sort_direction == "desc"

    if sort_field == "eta":
        dated = [(parse_timestamp(n.eta_end_at), n) for n in items]
        present = [(ts, n) for ts, n in dated if ts is not None]
        missing = [n for ts, n in dated if ts is None]
        present.sort(key=lambda pair: pair[0], reverse=reverse)
        return [n for _, n in present] + missing

    if sort_field == "title":
        return sorted(items, key=_title_key, reverse=reverse)
    if sort_field == "status":
        return sorted(items, key=lambda n: status_rank(n.status), reverse=reverse)
    return sorted(items, key=lambda n: n.priority_num, reverse=reverse)


def default_expanded_ids(nodes: Iterable[Node]) -> frozenset[str]:
    return frozenset(n.id for n in nodes if n.type in ("workstream", "milestone"))


def compute_rows(
    nodes: Iterable[Node],
    edges: Iterable[Edge] = (),
    config: Optional[ViewConfig] = None,
    *,
    index: Optional[GraphIndex] = None,
) -> list[Row]:
    """Flatten the hierarchy into depth-tagged rows.

    Order: each workstream, its milestones (each followed by its tasks),
    then its tasks without a milestone. Milestones and tasks with no
    workstream follow all workstreams at depth 0.

    `edges` is accepted for interface symmetry with the other view
    computations; row order does not depend on it.
    """
    config = config or ViewConfig()
    check_sort(config.sort_field, config.sort_direction)
    nodes = list(nodes)
    idx = index or build_index(nodes)
    visible = matching_ids(nodes, config.search_query, config.status_filters)
    expanded = (
        config.expanded_ids if config.expanded_ids is not None else default_expanded_ids(nodes)
    )

    def is_visible(nid: str) -> bool:
        return visible is None or nid in visible

    def ordered(items: list[Node]) -> list[Node]:
        return sort_siblings(items, config.sort_field, config.sort_direction)

    def has_visible(items: list[Node]) -> bool:
        return any(is_visible(n.id) for n in items)

    rows: list[Row] = []

    def emit_milestone(milestone: Node, depth: int) -> None:
        tasks = ordered(idx.tasks_of_milestone(milestone.id))
        rows.append(Row(node=milestone, depth=depth, can_collapse=has_visible(tasks)))
        if milestone.id not in expanded:
            return
        for task in tasks:
            if is_visible(task.id):
                rows.append(Row(node=task, depth=depth + 1, can_collapse=False))

    for ws in ordered(idx.workstreams):
        if not is_visible(ws.id):
            continue
        milestones = ordered(idx.milestones_of(ws.id))
        direct_tasks = ordered(idx.direct_tasks_of(ws.id))
        rows.append(
            Row(
                node=ws,
                depth=0,
                can_collapse=has_visible(milestones) or has_visible(direct_tasks),
            )
        )
        if ws.id not in expanded:
            continue
        for milestone in milestones:
            if is_visible(milestone.id):
                emit_milestone(milestone, 1)
        for task in direct_tasks:
            if is_visible(task.id):
                rows.append(Row(node=task, depth=1, can_collapse=False))

    for milestone in ordered(idx.milestones_of(UNSCOPED)):
        if is_visible(milestone.id):
            emit_milestone(milestone, 0)
    for task in ordered(idx.direct_tasks_of(UNSCOPED)):
        if is_visible(task.id):
            rows.append(Row(node=task, depth=0, can_collapse=False))

    return rows


def visible_row_ids(rows: Iterable[Row]) -> list[str]:
    return [r.node.id for r in rows]
