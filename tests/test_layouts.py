# test_layouts.py
# Tests for the deterministic layout algorithms

# @see: services/graph/layouts.py - Functions under test

import math

import pytest

from services.graph.layouts import (
    breadthfirst_layout,
    circle_layout,
    grid_layout,
    highest_degree_node,
    radial_layout,
)
from services.graph.models import Entity, GraphData, Relationship


def make_graph(node_ids, edges=()):
    return GraphData(
        nodes=tuple(Entity(id=node_id) for node_id in node_ids),
        edges=tuple(
            Relationship(id=f"{source}-{target}", type="USES", source=source, target=target)
            for source, target in edges
        ),
    )


@pytest.fixture
def star():
    """Hub connected to three leaves, plus one isolated node."""
    return make_graph(["hub", "a", "b", "c", "lonely"], [("hub", "a"), ("hub", "b"), ("c", "hub")])


def distance(point, center=(500.0, 400.0)):
    return math.hypot(point[0] - center[0], point[1] - center[1])


class TestHighestDegreeNode:

    def test_hub_wins(self, star):
        assert highest_degree_node(star) == "hub"

    def test_ties_break_on_smallest_id(self):
        assert highest_degree_node(make_graph(["b", "a"])) == "a"

    def test_empty_graph(self):
        assert highest_degree_node(GraphData.empty()) is None

    def test_dangling_edges_do_not_count(self):
        graph = GraphData(
            nodes=(Entity(id="a"), Entity(id="b")),
            edges=(Relationship(id="x", type="USES", source="b", target="gone"),),
        )
        assert highest_degree_node(graph) == "a"


class TestCircleAndGrid:

    def test_empty(self):
        assert circle_layout(GraphData.empty()) == {}
        assert grid_layout(GraphData.empty()) == {}

    def test_single_node_is_centered(self):
        assert circle_layout(make_graph(["only"])) == {"only": (500.0, 400.0)}

    def test_circle_uses_one_radius(self, star):
        positions = circle_layout(star)

        assert set(positions) == star.node_ids()
        radii = {round(distance(p), 6) for p in positions.values()}
        assert radii == {320.0}

    def test_grid_rows_and_columns(self):
        positions = grid_layout(make_graph(["a", "b", "c", "d"]), width=300.0, height=300.0)

        assert positions == {
            "a": (100.0, 100.0),
            "b": (200.0, 100.0),
            "c": (100.0, 200.0),
            "d": (200.0, 200.0),
        }


class TestRadialLayout:

    def test_center_node_sits_in_the_middle(self, star):
        positions = radial_layout(star)
        assert positions["hub"] == (500.0, 400.0)

    def test_disconnected_nodes_on_outermost_ring(self, star):
        positions = radial_layout(star)

        leaf_radius = distance(positions["a"])
        assert distance(positions["b"]) == pytest.approx(leaf_radius)
        assert distance(positions["c"]) == pytest.approx(leaf_radius)
        assert distance(positions["lonely"]) > leaf_radius

    def test_explicit_center(self, star):
        positions = radial_layout(star, center_node_id="a")
        assert positions["a"] == (500.0, 400.0)

    def test_unknown_center_uses_highest_degree(self, star):
        assert radial_layout(star, center_node_id="nope")["hub"] == (500.0, 400.0)

    def test_deterministic(self, star):
        assert radial_layout(star) == radial_layout(star)


class TestBreadthfirstLayout:

    def test_roots_on_top(self):
        graph = make_graph(["db", "api", "web"], [("web", "api"), ("api", "db")])
        positions = breadthfirst_layout(graph)

        assert positions["web"][1] < positions["api"][1] < positions["db"][1]

    def test_cycle_without_roots(self):
        graph = make_graph(["a", "b"], [("a", "b"), ("b", "a")])
        positions = breadthfirst_layout(graph)

        assert set(positions) == {"a", "b"}
        assert positions["a"][1] != positions["b"][1]

    def test_every_node_is_placed(self, star):
        assert set(breadthfirst_layout(star)) == star.node_ids()
