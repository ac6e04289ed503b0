# test_state.py
# Tests for the console state reducer

# @see: services/graph/state.py - Reducer under test

import pytest

from services.graph.models import Entity, GraphData, Relationship
from services.graph.state import (
    STATUS_EMPTY,
    STATUS_ERROR,
    STATUS_LOADING,
    STATUS_READY,
    ConsoleState,
    EdgeSelected,
    EnvironmentChanged,
    FetchFailed,
    FetchStarted,
    FetchSucceeded,
    FiltersChanged,
    LayoutChanged,
    NodeSelected,
    SearchChanged,
    SelectionCleared,
    reduce,
)
from services.graph.visualization import LayoutName


@pytest.fixture
def graph():
    return GraphData(
        nodes=(
            Entity(id="web", labels=("Application",), properties={"name": "Web", "category": "application"}),
            Entity(id="api", labels=("Application",), properties={"name": "API", "category": "application"}),
            Entity(id="db", labels=("Database",), properties={"name": "DB", "category": "database"}),
            Entity(id="cdn", labels=("Network",), properties={"name": "CDN", "category": "network"}),
        ),
        edges=(
            Relationship(id="e1", type="DEPENDS_ON", source="web", target="api"),
            Relationship(id="e2", type="STORES_DATA_IN", source="api", target="db"),
        ),
    )


@pytest.fixture
def loaded(graph):
    state = reduce(ConsoleState(), FetchStarted(1))
    return reduce(state, FetchSucceeded(1, graph))


class TestFetchLifecycle:

    def test_initial_state(self):
        state = ConsoleState()
        assert state.status == STATUS_EMPTY
        assert state.next_request_id() == 1

    def test_loading(self):
        state = reduce(ConsoleState(), FetchStarted(1))

        assert state.status == STATUS_LOADING
        assert state.pending_request_id == 1
        assert state.next_request_id() == 2

    def test_success(self, loaded, graph):
        assert loaded.status == STATUS_READY
        assert loaded.full_graph is graph
        assert loaded.view.same_elements(graph)

    def test_stale_response_is_ignored(self, graph):
        state = reduce(ConsoleState(), FetchStarted(1))
        state = reduce(state, FetchStarted(2))
        stale = reduce(state, FetchSucceeded(1, graph))

        assert stale is state
        assert stale.status == STATUS_LOADING

        fresh = reduce(state, FetchSucceeded(2, graph))
        assert fresh.status == STATUS_READY

    def test_stale_failure_is_ignored(self):
        state = reduce(reduce(ConsoleState(), FetchStarted(1)), FetchStarted(2))
        assert reduce(state, FetchFailed(1, "timeout")) is state

    def test_failure_keeps_previous_graph(self, loaded, graph):
        state = reduce(loaded, FetchStarted(2))
        state = reduce(state, FetchFailed(2, "Neo4j driver not initialized"))

        assert state.status == STATUS_ERROR
        assert state.error == "Neo4j driver not initialized"
        assert state.full_graph is graph

    def test_new_fetch_clears_selection(self, loaded, graph):
        state = reduce(loaded, NodeSelected("web"))
        state = reduce(state, FetchStarted(2))
        state = reduce(state, FetchSucceeded(2, graph))

        assert state.selected_node_id is None

    def test_empty_result_after_loaded_graph(self, loaded):
        state = reduce(loaded, EdgeSelected("e1"))
        state = reduce(state, FetchStarted(2))
        state = reduce(state, FetchFailed(2, "timeout"))
        state = reduce(state, FetchStarted(3))
        state = reduce(state, FetchSucceeded(3, GraphData.empty()))

        assert state.status == STATUS_EMPTY
        assert state.error is None
        assert state.loading is False
        assert state.full_graph.is_empty
        assert state.view.is_empty
        assert state.selected_node_id is None
        assert state.selected_edge_id is None

    def test_skipped_records_are_kept(self, graph):
        state = reduce(ConsoleState(), FetchStarted(1))
        state = reduce(state, FetchSucceeded(1, graph, records_skipped=3))
        assert state.records_skipped == 3


class TestSelection:

    def test_node_then_edge_is_exclusive(self, loaded):
        state = reduce(loaded, NodeSelected("web"))
        assert state.selected_node.id == "web"

        state = reduce(state, EdgeSelected("e1"))
        assert state.selected_edge.id == "e1"
        assert state.selected_node is None

        state = reduce(state, NodeSelected("db"))
        assert state.selected_edge_id is None

    def test_unknown_ids_are_ignored(self, loaded):
        assert reduce(loaded, NodeSelected("ghost")) is loaded
        assert reduce(loaded, EdgeSelected("ghost")) is loaded

    def test_clear(self, loaded):
        state = reduce(reduce(loaded, NodeSelected("web")), SelectionCleared())
        assert state.selected_node_id is None and state.selected_edge_id is None


class TestViewChanges:

    def test_filters_recompute_view(self, loaded):
        state = reduce(loaded, FiltersChanged(categories=("database",)))

        assert state.view.node_ids() == {"db", "api"}
        assert state.full_graph is loaded.full_graph

    def test_filters_drop_hidden_selection(self, loaded):
        state = reduce(loaded, NodeSelected("cdn"))
        state = reduce(state, FiltersChanged(relationship_types=("DEPENDS_ON",)))

        assert state.selected_node_id is None

    def test_filters_keep_visible_selection(self, loaded):
        state = reduce(loaded, EdgeSelected("e1"))
        state = reduce(state, FiltersChanged(relationship_types=("DEPENDS_ON",)))

        assert state.selected_edge_id == "e1"

    def test_clearing_filters_restores_full_view(self, loaded):
        state = reduce(loaded, FiltersChanged(categories=("network",)))
        state = reduce(state, FiltersChanged())

        assert state.view.same_elements(loaded.full_graph)

    def test_search(self, loaded):
        state = reduce(loaded, SearchChanged("db"))
        assert state.view.node_ids() == {"db"}

        state = reduce(state, SearchChanged(""))
        assert len(state.view.nodes) == 4

    def test_environment_and_layout(self, loaded):
        state = reduce(loaded, EnvironmentChanged("staging"))
        state = reduce(state, LayoutChanged("grid"))

        assert state.environment == "staging"
        assert state.layout is LayoutName.GRID

    def test_unknown_event(self, loaded):
        with pytest.raises(TypeError):
            reduce(loaded, "refresh")
