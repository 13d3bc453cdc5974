from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from workgraph_view.core.model import Node


UNSCOPED = "unscoped"


@dataclass(frozen=True)
class GraphIndex:
    by_id: dict[str, Node]
    workstreams: list[Node]
    milestones_by_workstream: dict[str, list[Node]]
    tasks_by_milestone: dict[str, list[Node]]
    direct_tasks_by_workstream: dict[str, list[Node]]

    def milestones_of(self, workstream_id: str) -> list[Node]:
        return self.milestones_by_workstream.get(workstream_id, [])

    def tasks_of_milestone(self, milestone_id: str) -> list[Node]:
        return self.tasks_by_milestone.get(milestone_id, [])

    def direct_tasks_of(self, workstream_id: str) -> list[Node]:
        return self.direct_tasks_by_workstream.get(workstream_id, [])


def priority_title_key(node: Node) -> tuple[int, str]:
    return (node.priority_num, node.title)


def build_index(nodes: Iterable[Node]) -> GraphIndex:
    """Index a flat node list.

    Scope references are not checked for existence: a task pointing at a
    milestone id that is not in `nodes` still lands in that id's bucket.
    """

    by_id: dict[str, Node] = {}
    workstreams: list[Node] = []
    milestones_by_ws: dict[str, list[Node]] = {}
    tasks_by_ms: dict[str, list[Node]] = {}
    direct_by_ws: dict[str, list[Node]] = {}

    for n in nodes:
        by_id[n.id] = n
        if n.type == "workstream":
            workstreams.append(n)
        elif n.type == "milestone":
            milestones_by_ws.setdefault(n.workstream_id or UNSCOPED, []).append(n)
        elif n.type == "task":
            if n.milestone_id:
                tasks_by_ms.setdefault(n.milestone_id, []).append(n)
            else:
                direct_by_ws.setdefault(n.workstream_id or UNSCOPED, []).append(n)

    workstreams.sort(key=priority_title_key)
    for groups in (milestones_by_ws, tasks_by_ms, direct_by_ws):
        for members in groups.values():
            members.sort(key=priority_title_key)

    return GraphIndex(
        by_id=by_id,
        workstreams=workstreams,
        milestones_by_workstream=milestones_by_ws,
        tasks_by_milestone=tasks_by_ms,
        direct_tasks_by_workstream=direct_by_ws,
    )
