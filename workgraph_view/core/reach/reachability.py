from __future__ import annotations

from collections import defaultdict, deque
from typing import Iterable, Mapping, Optional

from workgraph_view.core.model import Edge, Node


def connected_highlight(selected_id: Optional[str], nodes: Iterable[Node]) -> set[str]:
    """Everything linked to `selected_id` through dependency chains, in either direction.

    Ids referenced by `dependency_ids` but absent from `nodes` are included
    once reached, but nothing is expanded from them.
    """
    if not selected_id:
        return set()

    by_id: dict[str, Node] = {}
    # dep -> list of nodes that depend on it
    dependents: dict[str, list[str]] = defaultdict(list)
    for n in nodes:
        by_id[n.id] = n
        for dep in n.dependency_ids:
            dependents[dep].append(n.id)

    q: deque[str] = deque([selected_id])
    seen: set[str] = set()
    while q:
        cur = q.popleft()
        if cur in seen:
            continue
        seen.add(cur)
        node = by_id.get(cur)
        if node is not None:
            for dep in node.dependency_ids:
                if dep not in seen:
                    q.append(dep)
        for nxt in dependents.get(cur, []):
            if nxt not in seen:
                q.append(nxt)
    return seen


def focus_scope(
    focused_workstream_id: Optional[str],
    nodes: Iterable[Node],
    edges: Iterable[Edge],
) -> set[str]:
    """Ids visible while a single workstream is focused.

    Seeds with initiatives, the workstream and its members, then grows over
    edges until a full pass adds nothing, so dependency chains that leave
    and re-enter other workstreams are followed to their end.
    """
    nodes = list(nodes)
    if not focused_workstream_id:
        return {n.id for n in nodes}

    ids: set[str] = {focused_workstream_id}
    for n in nodes:
        if n.type == "initiative" or n.workstream_id == focused_workstream_id:
            ids.add(n.id)

    edge_list = list(edges)
    changed = True
    while changed:
        changed = False
        for e in edge_list:
            has_from = e.from_id in ids
            has_to = e.to_id in ids
            if has_from != has_to:
                ids.add(e.to_id if has_from else e.from_id)
                changed = True
    return ids


def related_ids(
    selected_id: Optional[str],
    edges: Iterable[Edge],
    visible_ids: Optional[set[str]] = None,
) -> set[str]:
    """The selection plus its direct neighbours over visible edges."""
    if not selected_id:
        return set()
    out = {selected_id}
    for e in edges:
        if visible_ids is not None and (e.from_id not in visible_ids or e.to_id not in visible_ids):
            continue
        if e.from_id == selected_id:
            out.add(e.to_id)
        if e.to_id == selected_id:
            out.add(e.from_id)
    return out


def ancestor_ids(node_id: str, by_id: Mapping[str, Node]) -> set[str]:
    """Hierarchy ancestors reached via parent, then workstream, then milestone references."""
    ancestors: set[str] = set()
    q: deque[str] = deque([node_id])
    while q:
        cur = by_id.get(q.popleft())
        if cur is None:
            continue
        for ref in (cur.parent_id, cur.workstream_id, cur.milestone_id):
            if ref and ref != node_id and ref not in ancestors:
                ancestors.add(ref)
                q.append(ref)
    return ancestors
