# test_aggregator.py
# Tests for record aggregation into deduplicated GraphData

# @see: services/graph/aggregator.py - Functions under test
# @note: Records use the projected-map shape returned by api/graph_store.py

import pytest

from services.graph.aggregator import (
    aggregate_records,
    graph_from_payload,
    graph_from_response,
    load_graph,
)


def node_map(identity, label, **properties):
    return {"identity": identity, "labels": [label], "properties": properties}


def rel_map(identity, rel_type, start, end, **properties):
    return {"identity": identity, "type": rel_type, "start": start, "end": end, "properties": properties}


@pytest.fixture
def records():
    """Three records over A -> B -> C where the first is repeated."""
    a = node_map("A", "Application", name="Web")
    b = node_map("B", "Application", name="API")
    c = node_map("C", "Database", name="DB")
    return [
        {"n": a, "r": rel_map("r1", "DEPENDS_ON", "A", "B"), "m": b},
        {"n": b, "r": rel_map("r2", "STORES_DATA_IN", "B", "C"), "m": c},
        {"n": a, "r": rel_map("r1", "DEPENDS_ON", "A", "B"), "m": b},
    ]


class TestAggregateRecords:
    """Deduplication and record accounting."""

    def test_duplicates_are_merged(self, records):
        result = aggregate_records(records)

        assert [node.id for node in result.graph.nodes] == ["A", "B", "C"]
        assert [edge.id for edge in result.graph.edges] == ["r1", "r2"]
        assert result.records_in == 3
        assert result.records_skipped == 0
        assert result.records_used == 3

    def test_last_write_wins_keeps_first_position(self):
        result = aggregate_records([
            {"n": node_map("A", "Application", name="old")},
            {"n": node_map("B", "Application")},
            {"n": node_map("A", "Application", name="new")},
        ])

        assert [node.id for node in result.graph.nodes] == ["A", "B"]
        assert result.graph.get_node("A").properties["name"] == "new"

    def test_malformed_records_are_counted(self, records):
        result = aggregate_records(records + ["garbage", {"n": {"identity": "Z"}}])

        assert len(result.graph.nodes) == 3
        assert result.records_in == 5
        assert result.records_skipped == 2

    def test_dangling_edges_are_retained(self):
        result = aggregate_records([
            {"n": node_map("A", "Application")},
            {"r": rel_map("r9", "USES", "A", "missing")},
        ])

        assert result.graph.node_ids() == {"A"}
        assert result.graph.edge_ids() == {"r9"}
        assert list(result.graph.resolvable_edges()) == []

    def test_reaggregation_is_idempotent(self, records):
        once = aggregate_records(records).graph
        twice = aggregate_records(records + records).graph
        assert once.same_elements(twice)

    def test_empty_input(self):
        result = aggregate_records([])
        assert result.graph.is_empty
        assert result.records_in == 0

    def test_none_input(self):
        assert aggregate_records(None).graph.is_empty


class TestResponseShapes:
    """Both API response shapes reach the same aggregation."""

    def test_raw_results_response(self, records):
        result = graph_from_response({"success": True, "results": records})
        assert len(result.graph.nodes) == 3

    def test_unsuccessful_response_is_empty(self, records):
        assert graph_from_response({"success": False, "results": records}).graph.is_empty

    @pytest.mark.parametrize("response", [None, [], {"success": True}, {"results": "nope"}])
    def test_unusable_response_is_empty(self, response):
        assert graph_from_response(response).graph.is_empty

    def test_graph_payload(self):
        payload = {
            "nodes": [{"id": "a", "labels": ["Application"]}, {"id": "b"}, {"labels": ["X"]}],
            "edges": [
                {"id": "e1", "type": "USES", "source": "a", "target": "b"},
                {"id": "e2", "type": "USES", "source": "a"},
            ],
        }
        result = graph_from_payload(payload)

        assert result.graph.node_ids() == {"a", "b"}
        assert result.graph.edge_ids() == {"e1"}
        assert result.records_in == 5
        assert result.records_skipped == 2

    def test_load_graph_dispatches_on_shape(self, records):
        assert len(load_graph({"results": records}).graph.nodes) == 3
        payload = {"nodes": [{"id": "a"}], "edges": []}
        assert load_graph(payload).graph.node_ids() == {"a"}
        assert load_graph("not json").graph.is_empty
