from workgraph_view.core.io.load_graph import load_graph
from workgraph_view.core.model import Edge
from workgraph_view.core.reach.reachability import (
    ancestor_ids,
    connected_highlight,
    focus_scope,
    related_ids,
)
from workgraph_view.core.validate.parse_graph import parse_graph

from conftest import make_node


def test_highlight_none_selected_is_empty(basic_graph):
    assert connected_highlight(None, basic_graph.nodes) == set()
    assert connected_highlight("", basic_graph.nodes) == set()


def test_highlight_follows_both_directions(basic_graph):
    assert connected_highlight("t-2", basic_graph.nodes) == {"t-1", "t-2", "t-4"}
    assert connected_highlight("t-5", basic_graph.nodes) == {"t-5"}


def test_highlight_is_symmetric(basic_graph):
    for a in ("t-1", "t-2", "t-4"):
        for b in connected_highlight(a, basic_graph.nodes):
            assert a in connected_highlight(b, basic_graph.nodes)


def test_highlight_terminates_on_cycles():
    nodes = [
        make_node("a", dependency_ids=["b"]),
        make_node("b", dependency_ids=["a"]),
        make_node("c", dependency_ids=["c"]),
    ]
    assert connected_highlight("a", nodes) == {"a", "b"}
    assert connected_highlight("c", nodes) == {"c"}


def test_highlight_includes_missing_dependency_ids():
    nodes = [make_node("a", dependency_ids=["ghost"])]
    assert connected_highlight("a", nodes) == {"a", "ghost"}


def test_focus_none_is_everything(basic_graph):
    ids = focus_scope(None, basic_graph.nodes, basic_graph.edges)
    assert ids == set(basic_graph.nodes_by_id)


def test_focus_follows_edge_chains_out_of_workstream():
    graph, errors = parse_graph(load_graph("examples/focus-graph.json"))
    assert errors == []
    assert graph is not None
    ids = focus_scope("W", graph.nodes, graph.edges)
    assert {"init", "W", "M", "T", "T2", "W2"} <= ids
    assert "W3" not in ids
    assert "T3" not in ids


def test_focus_closure_is_multi_hop():
    nodes = [make_node("W", "workstream"), make_node("t", workstream_id="W")]
    edges = [Edge("t", "x1"), Edge("x2", "x1"), Edge("x2", "x3"), Edge("y1", "y2")]
    assert focus_scope("W", nodes, edges) == {"W", "t", "x1", "x2", "x3"}


def test_related_ids():
    edges = [Edge("a", "b"), Edge("c", "a"), Edge("d", "e")]
    assert related_ids("a", edges) == {"a", "b", "c"}
    assert related_ids("a", edges, visible_ids={"a", "b"}) == {"a", "b"}
    assert related_ids(None, edges) == set()


def test_ancestors_walk_all_scope_references(basic_graph):
    assert ancestor_ids("t-1", basic_graph.nodes_by_id) == {"m-1", "ws-a", "init-1"}
    assert ancestor_ids("t-5", basic_graph.nodes_by_id) == set()


def test_ancestors_stop_on_parent_cycle():
    nodes = [make_node("a", parent_id="b"), make_node("b", parent_id="a")]
    by_id = {n.id: n for n in nodes}
    assert ancestor_ids("a", by_id) == {"b"}
