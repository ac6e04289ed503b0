# test_console_page.py
# Tests for the Streamlit console page

# Runs UI/console.py headless with streamlit's AppTest and checks that the
# selection widgets follow the console state across reloads.

# @see: UI/console.py - Page under test
# @note: ArchViewsClient.fetch_graph_result is patched; no API is needed

from pathlib import Path
from unittest.mock import patch

import pytest
from streamlit.testing.v1 import AppTest

from services.graph.aggregator import AggregationResult
from services.graph.client import ArchViewsClient
from services.graph.models import Entity, GraphData, Relationship

CONSOLE_PAGE = str(Path(__file__).resolve().parents[1] / "UI" / "console.py")


@pytest.fixture
def graph():
    return GraphData(
        nodes=(
            Entity(id="web", labels=("Application",), properties={"name": "Web"}),
            Entity(id="api", labels=("Application",), properties={"name": "Orders API"}),
        ),
        edges=(Relationship(id="e1", type="DEPENDS_ON", source="web", target="api"),),
    )


@pytest.fixture
def app(graph):
    result = AggregationResult(graph=graph, records_in=1)
    with patch.object(ArchViewsClient, "fetch_graph_result", return_value=result):
        at = AppTest.from_file(CONSOLE_PAGE, default_timeout=30)
        at.run()
        yield at


def option_for(selectbox, element_id):
    return next(option for option in selectbox.options if option.endswith(f"[{element_id}]"))


class TestSelectionWidgets:

    def test_pick_node_selects_it(self, app):
        picker = app.selectbox(key="pick_node")
        picker.select(option_for(picker, "api")).run()

        assert app.session_state["console_state"].selected_node_id == "api"

    def test_reload_resets_pickers(self, app):
        picker = app.selectbox(key="pick_node")
        picker.select(option_for(picker, "api")).run()

        reload_button = next(b for b in app.sidebar.button if "Reload" in b.label)
        reload_button.click().run()

        assert app.session_state["console_state"].selected_node_id is None
        assert app.session_state["pick_node"] == ""
        assert app.selectbox(key="pick_node").value == ""

    def test_clear_button_resets_pickers(self, app):
        picker = app.selectbox(key="pick_edge")
        picker.select(option_for(picker, "e1")).run()
        assert app.session_state["console_state"].selected_edge_id == "e1"

        clear_button = next(b for b in app.button if "Clear" in b.label)
        clear_button.click().run()

        assert app.session_state["console_state"].selected_edge_id is None
        assert app.session_state["pick_edge"] == ""


class TestQueryPanel:

    def test_query_result_replaces_graph(self, app):
        queried = GraphData(
            nodes=(
                Entity(id="db", labels=("Database",), properties={"name": "Orders DB"}),
                Entity(id="cache", labels=("Cache",), properties={"name": "Session Cache"}),
            ),
            edges=(Relationship(id="e9", type="REPLICATES_TO", source="db", target="cache"),),
        )
        result = AggregationResult(graph=queried, records_in=2, records_skipped=1)
        cypher = "MATCH (n:Database)-[r]->(m) RETURN n, r, m"

        with patch.object(ArchViewsClient, "run_query", return_value=result) as mock_query:
            app.text_area(key="cypher_query").input(cypher).run()
            next(b for b in app.sidebar.button if "Run query" in b.label).click().run()

        mock_query.assert_called_once_with(cypher)
        state = app.session_state["console_state"]
        assert state.full_graph.node_ids() == {"db", "cache"}
        assert state.records_skipped == 1
        assert state.error is None
