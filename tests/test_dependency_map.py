from workgraph_view.core.rows.dependency_map import dependency_map


def test_dependency_map_unfocused(basic_graph):
    dm = dependency_map(basic_graph.nodes, basic_graph.edges)
    assert dm.visible_ids == set(basic_graph.nodes_by_id)
    assert [n.id for n in dm.nodes_by_level["workstream"]] == ["ws-a", "ws-b"]
    assert len(dm.edges) == 2
    assert dm.related_ids == set()


def test_dependency_map_related_only(basic_graph):
    dm = dependency_map(basic_graph.nodes, basic_graph.edges, selected_id="t-2", related_only=True)
    assert dm.visible_ids == {"t-1", "t-2", "t-4"}
    assert {(e.from_id, e.to_id) for e in dm.edges} == {("t-2", "t-1"), ("t-4", "t-2")}


def test_dependency_map_focus_and_query(basic_graph):
    dm = dependency_map(basic_graph.nodes, basic_graph.edges, focused_workstream_id="ws-b")
    assert dm.visible_ids == {"init-1", "ws-b", "m-2", "t-4", "t-2", "t-1"}

    dm = dependency_map(
        basic_graph.nodes, basic_graph.edges, focused_workstream_id="ws-b", query=" checkout "
    )
    assert dm.visible_ids == {"ws-b", "t-4"}
    assert dm.edges == []
