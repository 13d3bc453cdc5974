from __future__ import annotations

from typing import Optional

from workgraph_view.core.errors import GraphValidationError
from workgraph_view.core.model import GraphSnapshot


# Graph lint rules. The engine tolerates every one of these; lint exists so
# data problems are visible instead of silently shaping the view.
# - L_DANGLING_DEPENDENCY: dependencyIds entry not in the node set
# - L_DANGLING_SCOPE: parentId/workstreamId/milestoneId not in the node set
# - L_DANGLING_EDGE: edge endpoint not in the node set
# - L_CYCLE_DETECTED: dependency cycle exists


def lint_graph(graph: GraphSnapshot, file: Optional[str] = None) -> list[GraphValidationError]:
    ids = set(graph.nodes_by_id.keys())
    errors: list[GraphValidationError] = []

    for i, n in enumerate(graph.nodes):
        for di, dep in enumerate(n.dependency_ids):
            if dep not in ids:
                errors.append(
                    GraphValidationError(
                        code="L_DANGLING_DEPENDENCY",
                        message=f"dependencyIds references unknown id: {dep}",
                        file=file,
                        path=f"nodes[{i}].dependencyIds[{di}]",
                    )
                )
        for wire, ref in (
            ("parentId", n.parent_id),
            ("workstreamId", n.workstream_id),
            ("milestoneId", n.milestone_id),
        ):
            if ref and ref not in ids:
                errors.append(
                    GraphValidationError(
                        code="L_DANGLING_SCOPE",
                        message=f"{wire} references unknown id: {ref}",
                        file=file,
                        path=f"nodes[{i}].{wire}",
                    )
                )

    for ei, e in enumerate(graph.edges):
        for end, ref in (("from", e.from_id), ("to", e.to_id)):
            if ref not in ids:
                errors.append(
                    GraphValidationError(
                        code="L_DANGLING_EDGE",
                        message=f"edge {end} references unknown id: {ref}",
                        file=file,
                        path=f"edges[{ei}].{end}",
                    )
                )

    index_of = {n.id: i for i, n in enumerate(graph.nodes)}
    # Edges are derived from dependencyIds when the document has none.
    id_to_deps: dict[str, list[str]] = {n.id: [] for n in graph.nodes}
    for e in graph.edges:
        if e.from_id in ids and e.to_id in ids and e.to_id not in id_to_deps[e.from_id]:
            id_to_deps[e.from_id].append(e.to_id)
    for nid, msg in detect_cycles(id_to_deps):
        errors.append(
            GraphValidationError(
                code="L_CYCLE_DETECTED",
                message=msg,
                file=file,
                path=f"nodes[{index_of.get(nid, 0)}]",
            )
        )

    return _sorted(errors)


def detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    """Report each distinct back edge as (node_id, message). Iterative DFS."""
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {nid: WHITE for nid in id_to_deps}
    emitted: set[str] = set()
    out: list[tuple[str, str]] = []

    for root in list(state.keys()):
        if state[root] != WHITE:
            continue
        stack: list[str] = [root]
        cursors: list[int] = [0]
        state[root] = GRAY
        while stack:
            u = stack[-1]
            deps = id_to_deps.get(u, [])
            if cursors[-1] >= len(deps):
                state[u] = BLACK
                stack.pop()
                cursors.pop()
                continue
            v = deps[cursors[-1]]
            cursors[-1] += 1
            if v not in state:
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                cycle = stack[stack.index(v) :] + [v]
                key = "->".join(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                state[v] = GRAY
                stack.append(v)
                cursors.append(0)

    return out


def _sorted(errors: list[GraphValidationError]) -> list[GraphValidationError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
