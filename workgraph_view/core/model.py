from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional


NodeType = Literal["initiative", "workstream", "milestone", "task"]
SortField = Literal["title", "status", "priority", "eta"]
SortDirection = Literal["asc", "desc"]
GroupBy = Literal["none", "status", "category", "date"]
BulkMode = Literal["update", "delete"]

DEFAULT_PRIORITY_NUM = 60


@dataclass(frozen=True)
class AssignedAgent:
    id: str
    name: str


@dataclass(frozen=True)
class Node:
    id: str
    type: NodeType
    title: str
    status: str

    parent_id: Optional[str] = None
    initiative_id: Optional[str] = None
    workstream_id: Optional[str] = None
    milestone_id: Optional[str] = None
    priority_num: int = DEFAULT_PRIORITY_NUM
    priority_label: Optional[str] = None
    dependency_ids: tuple[str, ...] = ()
    due_date: Optional[str] = None
    eta_end_at: Optional[str] = None
    expected_duration_hours: Optional[float] = None
    expected_budget_usd: Optional[float] = None
    assigned_agents: tuple[AssignedAgent, ...] = ()
    updated_at: Optional[str] = None

    # Initiative-level fields used by grouping/filtering.
    category: Optional[str] = None
    target_date: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(frozen=True)
class Edge:
    """`from_id` depends on `to_id`."""

    from_id: str
    to_id: str
    kind: str = "depends_on"


@dataclass(frozen=True)
class Row:
    node: Node
    depth: int
    can_collapse: bool


@dataclass(frozen=True)
class Group:
    key: str
    label: str
    count: int
    nodes: list[Node]


@dataclass(frozen=True)
class GraphSnapshot:
    nodes: list[Node]
    edges: list[Edge]
    nodes_by_id: dict[str, Node]
    queue: list["QueueItem"] = field(default_factory=list)


@dataclass(frozen=True)
class QueueItem:
    initiative_id: str
    workstream_id: str
    title: str = ""
    is_pinned: bool = False


@dataclass(frozen=True)
class ReorderIntent:
    order: list[dict[str, str]]
    type: str = "reorder"


@dataclass(frozen=True)
class BulkMutateIntent:
    items: list[dict[str, str]]
    mode: BulkMode
    updates: Optional[dict[str, Any]] = None
    type: str = "bulkMutate"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"items": [dict(i) for i in self.items], "mode": self.mode}
        if self.updates is not None:
            payload["updates"] = dict(self.updates)
        return payload
