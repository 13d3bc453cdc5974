from __future__ import annotations

from typing import Any

import pytest

from workgraph_view.core.io.load_graph import load_graph
from workgraph_view.core.model import GraphSnapshot, Node
from workgraph_view.core.validate.parse_graph import parse_graph


def make_node(id: str, type: str = "task", **kw: Any) -> Node:
    kw.setdefault("title", id)
    kw.setdefault("status", "todo")
    if "dependency_ids" in kw:
        kw["dependency_ids"] = tuple(kw["dependency_ids"])
    return Node(id=id, type=type, **kw)  # type: ignore[arg-type]


@pytest.fixture
def basic_graph() -> GraphSnapshot:
    graph, errors = parse_graph(load_graph("examples/basic-graph.yaml"))
    assert errors == []
    assert graph is not None
    return graph
