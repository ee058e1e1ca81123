import pytest

from mapleflow.spanning_tree import Adjacency, Edge, NodeInfo, build_tree, route_to

SWITCHES = ["s1", "s2", "s3", "s4"]

LINE = {
    "s1": [Adjacency(2, "s2", 1), Adjacency(9, "h1", 0, is_switch=False)],
    "s2": [Adjacency(1, "s1", 2), Adjacency(2, "s3", 1)],
    "s3": [Adjacency(1, "s2", 2), Adjacency(9, "h3", 0, is_switch=False)],
    "s4": [],
}

TRIANGLE = {
    "s1": [Adjacency(2, "s2", 1), Adjacency(3, "s3", 3)],
    "s2": [Adjacency(1, "s1", 2), Adjacency(2, "s3", 1)],
    "s3": [Adjacency(1, "s2", 2), Adjacency(3, "s1", 3)],
}


def test_route_along_line():
    tree = build_tree("s1", 5, "s3", SWITCHES, LINE)
    assert route_to("s3", 7, tree, SWITCHES) == [
        Edge("s3", 7, None, 0),
        Edge("s2", 2, "s3", 1),
        Edge("s1", 2, "s2", 1),
        Edge(None, 0, "s1", 5),
    ]


def test_root_entry():
    tree = build_tree("s1", 5, None, SWITCHES, LINE)
    assert tree[0] == NodeInfo(None, None, 5)
    assert tree[1] == NodeInfo(0, 2, 1)


def test_unreachable_switch_has_no_route():
    tree = build_tree("s1", 5, None, SWITCHES, LINE)
    assert tree[3] is None
    assert route_to("s4", 1, tree, SWITCHES) == []


def test_route_to_source_itself():
    tree = build_tree("s1", 5, "s1", SWITCHES, LINE)
    assert route_to("s1", 3, tree, SWITCHES) == [
        Edge("s1", 3, None, 0),
        Edge(None, 0, "s1", 5),
    ]


def test_search_stops_at_destination():
    tree = build_tree("s1", 5, "s2", SWITCHES, LINE)
    assert tree[1] is not None
    assert tree[2] is None


def test_hosts_are_not_followed():
    switches = ["s1", "s2", "s3", "s4", "h1"]
    tree = build_tree("s1", 5, None, switches, LINE)
    assert tree[4] is None


def test_shortest_path_in_triangle():
    switches = ["s1", "s2", "s3"]
    tree = build_tree("s1", 4, None, switches, TRIANGLE)
    route = route_to("s3", 6, tree, switches)
    assert len(route) == 3
    assert route[1] == Edge("s1", 3, "s3", 3)


def test_route_edges_chain_together():
    tree = build_tree("s1", 5, None, SWITCHES, LINE)
    route = route_to("s3", 7, tree, SWITCHES)
    for later, earlier in zip(route, route[1:]):
        assert earlier.ent2 == later.ent1


def test_unknown_source_raises():
    with pytest.raises(ValueError):
        build_tree("s9", 1, None, SWITCHES, LINE)


def test_unknown_destination_raises():
    tree = build_tree("s1", 5, None, SWITCHES, LINE)
    with pytest.raises(ValueError):
        route_to("s9", 1, tree, SWITCHES)


def test_unknown_neighbour_switch_raises():
    adjacencies = {"s1": [Adjacency(2, "ghost", 1)]}
    with pytest.raises(ValueError):
        build_tree("s1", 5, None, ["s1"], adjacencies)