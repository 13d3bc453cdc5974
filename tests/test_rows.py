import pytest

from workgraph_view.core.config.view_config import ViewConfig
from workgraph_view.core.errors import ViewConfigError
from workgraph_view.core.rows.visibility import (
    compute_rows,
    default_expanded_ids,
    matching_ids,
    parse_timestamp,
    sort_siblings,
    visible_row_ids,
)

from conftest import make_node


def _ids(rows):
    return visible_row_ids(rows)


def test_rows_default_order_and_depth(basic_graph):
    rows = compute_rows(basic_graph.nodes, basic_graph.edges)
    assert [(r.node.id, r.depth) for r in rows] == [
        ("ws-a", 0),
        ("m-1", 1),
        ("t-1", 2),
        ("t-2", 2),
        ("t-3", 1),
        ("ws-b", 0),
        ("m-2", 1),
        ("t-4", 2),
        ("t-5", 0),
    ]
    assert "init-1" not in _ids(rows)


def test_rows_can_collapse_only_with_visible_children(basic_graph):
    rows = {r.node.id: r for r in compute_rows(basic_graph.nodes, basic_graph.edges)}
    assert rows["ws-a"].can_collapse
    assert rows["m-1"].can_collapse
    assert not rows["t-1"].can_collapse
    assert not rows["t-5"].can_collapse


def test_rows_search_keeps_ancestors(basic_graph):
    cfg = ViewConfig(search_query="NOVA")
    rows = compute_rows(basic_graph.nodes, basic_graph.edges, cfg)
    assert _ids(rows) == ["ws-a", "t-3"]
    assert rows[0].can_collapse


def test_rows_status_filter_uses_normalized_keys(basic_graph):
    cfg = ViewConfig(status_filters=frozenset({"done"}))
    rows = compute_rows(basic_graph.nodes, basic_graph.edges, cfg)
    assert _ids(rows) == ["ws-a", "m-1", "t-1"]
    assert [r.can_collapse for r in rows] == [True, True, False]


def test_rows_search_and_status_must_both_match(basic_graph):
    cfg = ViewConfig(search_query="implement", status_filters=frozenset({"active"}))
    assert _ids(compute_rows(basic_graph.nodes, basic_graph.edges, cfg)) == ["ws-a", "m-1", "t-2"]
    cfg = ViewConfig(search_query="implement", status_filters=frozenset({"blocked"}))
    assert compute_rows(basic_graph.nodes, basic_graph.edges, cfg) == []


def test_rows_collapsed_parent_hides_children(basic_graph):
    expanded = default_expanded_ids(basic_graph.nodes) - {"m-1", "ws-b"}
    rows = compute_rows(basic_graph.nodes, basic_graph.edges, ViewConfig(expanded_ids=expanded))
    assert _ids(rows) == ["ws-a", "m-1", "t-3", "ws-b", "t-5"]
    by_id = {r.node.id: r for r in rows}
    assert by_id["m-1"].can_collapse
    assert by_id["ws-b"].can_collapse


def test_rows_sort_by_title(basic_graph):
    cfg = ViewConfig(sort_field="title")
    rows = compute_rows(basic_graph.nodes, basic_graph.edges, cfg)
    assert [r.node.id for r in rows if r.depth == 0] == ["ws-b", "ws-a", "t-5"]


def test_rows_sort_by_eta(basic_graph):
    asc = compute_rows(basic_graph.nodes, basic_graph.edges, ViewConfig(sort_field="eta"))
    assert [r.node.id for r in asc if r.node.type == "workstream"] == ["ws-b", "ws-a"]
    desc = compute_rows(
        basic_graph.nodes, basic_graph.edges, ViewConfig(sort_field="eta", sort_direction="desc")
    )
    assert [r.node.id for r in desc if r.node.type == "workstream"] == ["ws-a", "ws-b"]


def test_sort_eta_missing_last_both_directions():
    items = [
        make_node("none"),
        make_node("late", eta_end_at="2026-02-01T00:00:00Z"),
        make_node("early", eta_end_at="2026-01-01T00:00:00Z"),
    ]
    assert [n.id for n in sort_siblings(items, "eta", "asc")] == ["early", "late", "none"]
    assert [n.id for n in sort_siblings(items, "eta", "desc")] == ["late", "early", "none"]


def test_sort_status_and_priority():
    items = [
        make_node("d", status="done", priority_num=1),
        make_node("b", status="blocked", priority_num=3),
        make_node("a", status="in_progress", priority_num=2),
    ]
    assert [n.id for n in sort_siblings(items, "status")] == ["b", "a", "d"]
    assert [n.id for n in sort_siblings(items, "priority", "desc")] == ["b", "a", "d"]
    assert [n.id for n in sort_siblings(items, None)] == ["d", "b", "a"]


def test_sort_rejects_unknown_field():
    with pytest.raises(ViewConfigError):
        sort_siblings([], "deadline")
    with pytest.raises(ViewConfigError):
        sort_siblings([], "title", "sideways")


def test_rows_are_idempotent(basic_graph):
    cfg = ViewConfig(search_query="a", sort_field="status", sort_direction="desc")
    first = compute_rows(basic_graph.nodes, basic_graph.edges, cfg)
    second = compute_rows(basic_graph.nodes, basic_graph.edges, cfg)
    assert first == second


def test_matching_ids_none_when_no_filter(basic_graph):
    assert matching_ids(basic_graph.nodes) is None
    assert matching_ids(basic_graph.nodes, "   ") is None


def test_rows_tolerate_dangling_scope():
    nodes = [make_node("ws", "workstream"), make_node("t", workstream_id="ws", milestone_id="gone")]
    rows = compute_rows(nodes)
    assert _ids(rows) == ["ws"]
    assert not rows[0].can_collapse


def test_parse_timestamp():
    assert parse_timestamp("2026-01-01T00:00:00Z") == parse_timestamp("2026-01-01T00:00:00+00:00")
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None
