from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from workgraph_view.core.model import Edge, Node
from workgraph_view.core.reach.reachability import focus_scope, related_ids


LEVELS: tuple[str, ...] = ("initiative", "workstream", "milestone", "task")


@dataclass(frozen=True)
class DependencyMap:
    visible_ids: set[str]
    nodes_by_level: dict[str, list[Node]]
    edges: list[Edge]
    related_ids: set[str]


def dependency_map(
    nodes: Iterable[Node],
    edges: Iterable[Edge],
    *,
    focused_workstream_id: Optional[str] = None,
    selected_id: Optional[str] = None,
    related_only: bool = False,
    query: str = "",
) -> DependencyMap:
    """Nodes and edges for the dependency map, narrowed by focus, relation and title query."""
    nodes = list(nodes)
    edges = list(edges)
    by_id = {n.id: n for n in nodes}

    scope = focus_scope(focused_workstream_id, nodes, edges)
    scoped_edges = [e for e in edges if e.from_id in scope and e.to_id in scope]
    related = related_ids(selected_id, scoped_edges)

    ids = set(scope)
    if related_only and selected_id:
        ids &= related

    q = query.strip().lower()
    if q:
        ids = {nid for nid in ids if nid in by_id and q in by_id[nid].title.lower()}

    visible_nodes = [n for n in nodes if n.id in ids]
    return DependencyMap(
        visible_ids=ids,
        nodes_by_level={lvl: [n for n in visible_nodes if n.type == lvl] for lvl in LEVELS},
        edges=[e for e in edges if e.from_id in ids and e.to_id in ids],
        related_ids=related,
    )
