from __future__ import annotations

from typing import Any, Iterable, Optional, cast

from workgraph_view.core.errors import GraphValidationError
from workgraph_view.core.model import (
    DEFAULT_PRIORITY_NUM,
    AssignedAgent,
    Edge,
    GraphSnapshot,
    Node,
    NodeType,
    QueueItem,
)


ALLOWED_NODE_TYPES: set[str] = {"initiative", "workstream", "milestone", "task"}

# wire key -> Node field, for optional string references/timestamps
_OPTIONAL_STR_FIELDS: dict[str, str] = {
    "parentId": "parent_id",
    "initiativeId": "initiative_id",
    "workstreamId": "workstream_id",
    "milestoneId": "milestone_id",
    "priorityLabel": "priority_label",
    "dueDate": "due_date",
    "etaEndAt": "eta_end_at",
    "updatedAt": "updated_at",
    "category": "category",
    "targetDate": "target_date",
    "createdAt": "created_at",
}

_OPTIONAL_NUM_FIELDS: dict[str, str] = {
    "expectedDurationHours": "expected_duration_hours",
    "expectedBudgetUsd": "expected_budget_usd",
}


def _is_list_of_str(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def parse_graph(doc: dict[str, Any]) -> tuple[Optional[GraphSnapshot], list[GraphValidationError]]:
    """Turn a loaded graph document into typed nodes/edges.

    Returns (snapshot, errors). Snapshot is None when errors exist.
    Dangling references (dependencies, parents, scopes, edge endpoints)
    are not errors here; the engine tolerates them and `lint_graph`
    reports them.
    """

    file = cast(Optional[str], doc.get("__file__"))
    errors: list[GraphValidationError] = []

    raw_nodes = doc.get("nodes")
    if not isinstance(raw_nodes, list):
        errors.append(
            GraphValidationError(
                code="E_REQUIRED_FIELD",
                message="nodes is required and must be an array",
                file=file,
                path="nodes",
            )
        )
        return None, _sorted(errors)

    nodes: list[Node] = []
    nodes_by_id: dict[str, Node] = {}

    for i, raw in enumerate(raw_nodes):
        node_path = f"nodes[{i}]"
        node, node_errors = _parse_node(raw, node_path, file)
        errors.extend(node_errors)
        if node is None:
            continue
        if node.id in nodes_by_id:
            errors.append(
                GraphValidationError(
                    code="E_DUPLICATE_ID",
                    message=f"duplicate node id: {node.id}",
                    file=file,
                    path=f"{node_path}.id",
                )
            )
            continue
        nodes_by_id[node.id] = node
        nodes.append(node)

    if "edges" in doc and doc.get("edges") is not None:
        edges, edge_errors = _parse_edges(doc.get("edges"), file)
        errors.extend(edge_errors)
    else:
        edges = edges_from_dependencies(nodes)

    queue: list[QueueItem] = []
    if doc.get("queue") is not None:
        queue, queue_errors = _parse_queue(doc.get("queue"), file)
        errors.extend(queue_errors)

    if errors:
        return None, _sorted(errors)

    return GraphSnapshot(nodes=nodes, edges=edges, nodes_by_id=nodes_by_id, queue=queue), []


def edges_from_dependencies(nodes: Iterable[Node]) -> list[Edge]:
    edges: list[Edge] = []
    for n in nodes:
        for dep in n.dependency_ids:
            edges.append(Edge(from_id=n.id, to_id=dep))
    return edges


def _parse_node(
    raw: Any, node_path: str, file: Optional[str]
) -> tuple[Optional[Node], list[GraphValidationError]]:
    errors: list[GraphValidationError] = []

    def err(code: str, message: str, field: str) -> None:
        errors.append(
            GraphValidationError(code=code, message=message, file=file, path=f"{node_path}.{field}")
        )

    if not isinstance(raw, dict):
        errors.append(
            GraphValidationError(
                code="E_INVALID_TYPE", message="node must be an object", file=file, path=node_path
            )
        )
        return None, errors

    nid = raw.get("id")
    if not isinstance(nid, str) or not nid.strip():
        err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", "id")
        return None, errors

    ntype = raw.get("type")
    if not isinstance(ntype, str) or ntype not in ALLOWED_NODE_TYPES:
        err("E_INVALID_ENUM", f"type must be one of {sorted(ALLOWED_NODE_TYPES)}", "type")
        return None, errors

    title = raw.get("title")
    if not isinstance(title, str):
        err("E_REQUIRED_FIELD", "title is required and must be a string", "title")
        return None, errors

    status = raw.get("status", "")
    if status is None:
        status = ""
    if not isinstance(status, str):
        err("E_INVALID_TYPE", "status must be a string", "status")

    fields: dict[str, Any] = {}
    for wire, attr in _OPTIONAL_STR_FIELDS.items():
        v = raw.get(wire)
        if v is not None and not isinstance(v, str):
            err("E_INVALID_TYPE", f"{wire} must be a string or null", wire)
            continue
        fields[attr] = v or None

    for wire, attr in _OPTIONAL_NUM_FIELDS.items():
        v = raw.get(wire)
        if v is not None and not _is_number(v):
            err("E_INVALID_TYPE", f"{wire} must be a number", wire)
            continue
        fields[attr] = v

    priority = raw.get("priorityNum", DEFAULT_PRIORITY_NUM)
    if priority is None:
        priority = DEFAULT_PRIORITY_NUM
    if not isinstance(priority, int) or isinstance(priority, bool):
        err("E_INVALID_TYPE", "priorityNum must be an integer", "priorityNum")
        priority = DEFAULT_PRIORITY_NUM

    deps = raw.get("dependencyIds", [])
    if deps is None:
        deps = []
    if not _is_list_of_str(deps):
        err("E_INVALID_TYPE", "dependencyIds must be an array of strings", "dependencyIds")
        deps = []

    agents: list[AssignedAgent] = []
    raw_agents = raw.get("assignedAgents", [])
    if raw_agents is None:
        raw_agents = []
    if not isinstance(raw_agents, list):
        err("E_INVALID_TYPE", "assignedAgents must be an array", "assignedAgents")
    else:
        for ai, a in enumerate(raw_agents):
            if not isinstance(a, dict) or not isinstance(a.get("name"), str):
                err("E_INVALID_TYPE", "agent must be an object with a string name", f"assignedAgents[{ai}]")
                continue
            agents.append(AssignedAgent(id=str(a.get("id") or a["name"]), name=a["name"]))

    if errors:
        return None, errors

    return (
        Node(
            id=nid,
            type=cast(NodeType, ntype),
            title=title,
            status=cast(str, status),
            priority_num=priority,
            dependency_ids=tuple(deps),
            assigned_agents=tuple(agents),
            **fields,
        ),
        [],
    )


def _parse_edges(raw: Any, file: Optional[str]) -> tuple[list[Edge], list[GraphValidationError]]:
    errors: list[GraphValidationError] = []
    edges: list[Edge] = []
    if not isinstance(raw, list):
        errors.append(
            GraphValidationError(
                code="E_INVALID_TYPE", message="edges must be an array", file=file, path="edges"
            )
        )
        return edges, errors

    for i, e in enumerate(raw):
        if not isinstance(e, dict) or not isinstance(e.get("from"), str) or not isinstance(e.get("to"), str):
            errors.append(
                GraphValidationError(
                    code="E_INVALID_TYPE",
                    message="edge must be an object with string from/to",
                    file=file,
                    path=f"edges[{i}]",
                )
            )
            continue
        kind = e.get("kind") if isinstance(e.get("kind"), str) else "depends_on"
        edges.append(Edge(from_id=e["from"], to_id=e["to"], kind=kind))
    return edges, errors


def _parse_queue(raw: Any, file: Optional[str]) -> tuple[list[QueueItem], list[GraphValidationError]]:
    errors: list[GraphValidationError] = []
    items: list[QueueItem] = []
    if not isinstance(raw, list):
        errors.append(
            GraphValidationError(
                code="E_INVALID_TYPE", message="queue must be an array", file=file, path="queue"
            )
        )
        return items, errors

    for i, q in enumerate(raw):
        if (
            not isinstance(q, dict)
            or not isinstance(q.get("initiativeId"), str)
            or not isinstance(q.get("workstreamId"), str)
        ):
            errors.append(
                GraphValidationError(
                    code="E_INVALID_TYPE",
                    message="queue item must have string initiativeId/workstreamId",
                    file=file,
                    path=f"queue[{i}]",
                )
            )
            continue
        title = q.get("workstreamTitle") or q.get("title") or ""
        items.append(
            QueueItem(
                initiative_id=q["initiativeId"],
                workstream_id=q["workstreamId"],
                title=title if isinstance(title, str) else "",
                is_pinned=q.get("isPinned") is True,
            )
        )
    return items, errors


def _sorted(errors: Iterable[GraphValidationError]) -> list[GraphValidationError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
