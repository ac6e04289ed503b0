# test_visualization.py
# Tests for the visualization adapter, elements, stylesheet and fallback

# Uses an in-memory FakeEngine implementing the RenderingEngine protocol so
# mounting, events, camera and layout failures can be driven directly.

# @see: services/graph/visualization.py - Adapter under test
# @note: No pyvis dependency; see test_pyvis_engine.py for the real engine

import pytest

from services.graph.formatting import SELECTED_COLOR
from services.graph.models import Entity, GraphData, Relationship
from services.graph.visualization import (
    COLA_LAYOUT,
    EngineEvent,
    LayoutName,
    Viewport,
    VisualizationAdapter,
    build_fallback,
    build_stylesheet,
    layout_config,
    resolve_style,
    to_visualization_elements,
)


class FakeEngine:
    """Records every call made by the adapter."""

    def __init__(self, mount_error=None, failing_layouts=()):
        self.mount_error = mount_error
        self.failing_layouts = set(failing_layouts)
        self.mounted = []
        self.handlers = {}
        self.level = 1.0
        self.zoom_calls = []
        self.layouts = []
        self.fit_calls = 0

    def mount(self, elements, stylesheet, layout):
        if self.mount_error is not None:
            raise self.mount_error
        self.mounted.append((elements, stylesheet, layout))

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event_name, event):
        for handler in self.handlers.get(event_name, []):
            handler(event)

    def zoom(self, level=None, rendered_position=None):
        if level is not None:
            self.level = level
            self.zoom_calls.append((level, rendered_position))
        return self.level

    def pan(self):
        return (0.0, 0.0)

    def fit(self):
        self.fit_calls += 1

    def run_layout(self, config):
        if config["name"] in self.failing_layouts:
            raise RuntimeError(f"{config['name']} unavailable")
        self.layouts.append(config)

    def viewport(self):
        return Viewport(width=800.0, height=600.0)


@pytest.fixture
def graph():
    return GraphData(
        nodes=(
            Entity(id="web", labels=("Application", "Frontend"), properties={"name": "Web", "category": "application"}),
            Entity(id="db", labels=("Database",), properties={"name": "Orders DB"}),
            Entity(id="bare"),
        ),
        edges=(
            Relationship(id="e1", type="STORES_DATA_IN", source="web", target="db", properties={"port": 5432}),
            Relationship(id="e2", type="USES", source="web", target="missing"),
        ),
    )


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def adapter(engine, graph):
    adapter = VisualizationAdapter(engine)
    adapter.render(graph)
    return adapter


class TestElements:
    """GraphData to engine elements."""

    def test_dangling_edges_are_skipped(self, graph):
        elements = to_visualization_elements(graph)

        assert [el["data"]["id"] for el in elements["nodes"]] == ["web", "db", "bare"]
        assert [el["data"]["id"] for el in elements["edges"]] == ["e1"]

    def test_node_element(self, graph):
        web, db, bare = to_visualization_elements(graph)["nodes"]

        assert web["data"]["label"] == "Web"
        assert web["data"]["category"] == "application"
        assert web["classes"] == "application frontend"
        assert db["data"]["category"] == "Database"
        assert bare["data"]["category"] == "NA"
        assert bare["data"]["label"] == "Node bare"

    def test_edge_element(self, graph):
        edge = to_visualization_elements(graph)["edges"][0]

        assert edge["data"] == {
            "id": "e1",
            "source": "web",
            "target": "db",
            "label": "STORES_DATA_IN",
            "properties": {"port": 5432},
        }
        assert edge["classes"] == "stores_data_in"


class TestLayoutConfig:

    def test_cola(self):
        assert layout_config("cola") == COLA_LAYOUT

    def test_fixed_layout(self):
        assert layout_config(LayoutName.GRID) == {"name": "grid", "animate": False}

    def test_randomize(self):
        assert layout_config("circle", randomize=True)["randomize"] is True

    def test_unknown_layout(self):
        with pytest.raises(ValueError):
            layout_config("spiral")


class TestStylesheet:
    """Selector rules resolved against elements."""

    def test_node_style(self, graph):
        elements = to_visualization_elements(graph)
        style = resolve_style(build_stylesheet(), "node", elements["nodes"][1])

        assert style["label"] == "Orders DB"
        assert style["background-color"] == "#0897e9"

    def test_unknown_node_category_uses_default(self, graph):
        bare = to_visualization_elements(graph)["nodes"][2]
        assert resolve_style(build_stylesheet(), "node", bare)["background-color"] == "#6b48ff"

    def test_edge_style(self, graph):
        edge = to_visualization_elements(graph)["edges"][0]
        style = resolve_style(build_stylesheet(), "edge", edge)

        assert style["line-color"] == "#0897e9"
        assert style["target-arrow-shape"] == "triangle"
        assert style["label"] == "STORES_DATA_IN"

    def test_selected_overrides(self, graph):
        edge = to_visualization_elements(graph)["edges"][0]
        style = resolve_style(build_stylesheet(), "edge", edge, selected=True)
        assert style["line-color"] == SELECTED_COLOR


class TestRender:

    def test_mounts_elements(self, adapter, engine):
        elements, stylesheet, layout = engine.mounted[0]

        assert len(elements["nodes"]) == 3
        assert layout["name"] == "cola"
        assert not adapter.using_fallback

    def test_handlers_registered_once(self, adapter, engine, graph):
        adapter.render(graph)

        assert len(engine.mounted) == 2
        assert {name: len(handlers) for name, handlers in engine.handlers.items()} == {
            "tap": 1,
            "mouseover": 1,
            "mouseout": 1,
        }

    def test_no_engine_uses_fallback(self, graph):
        adapter = VisualizationAdapter(None)
        adapter.render(graph)

        assert adapter.using_fallback
        assert adapter.fallback.reason == "No rendering engine configured"

    def test_mount_failure_uses_fallback(self, graph):
        adapter = VisualizationAdapter(FakeEngine(mount_error=ImportError("no pyvis")))
        adapter.render(graph)

        assert adapter.using_fallback
        assert "no pyvis" in adapter.fallback.reason
        assert [row.id for row in adapter.fallback.edges] == ["e1"]

    def test_recovers_after_fallback(self, graph):
        engine = FakeEngine(mount_error=RuntimeError("boom"))
        adapter = VisualizationAdapter(engine)
        adapter.render(graph)
        engine.mount_error = None
        adapter.render(graph)

        assert not adapter.using_fallback


class TestFallback:

    def test_presentation(self, graph):
        fallback = build_fallback(graph, "engine missing")

        # web and db tie on degree; the smaller id wins
        assert fallback.center_id == "db"
        center = next(node for node in fallback.nodes if node.id == "db")
        assert (center.x, center.y) == (500.0, 400.0)

        row = fallback.edges[0]
        assert (row.source_label, row.target_label) == ("Web", "Orders DB")
        assert row.color == "#0897e9"

    def test_empty_graph(self):
        fallback = build_fallback(GraphData.empty())
        assert fallback.nodes == [] and fallback.edges == [] and fallback.center_id is None


class TestInteraction:
    """Tap and hover events relayed from the engine."""

    def test_node_tap(self, adapter, engine):
        selected = []
        adapter.on_node_select(selected.append)
        engine.emit("tap", EngineEvent(kind="node", element_id="db"))

        assert [entity.id for entity in selected] == ["db"]

    def test_edge_tap(self, adapter, engine):
        selected = []
        adapter.on_edge_select(selected.append)
        engine.emit("tap", EngineEvent(kind="edge", element_id="e1"))

        assert [edge.id for edge in selected] == ["e1"]

    def test_background_tap_clears(self, adapter, engine):
        cleared = []
        adapter.on_selection_cleared(lambda: cleared.append(True))
        engine.emit("tap", EngineEvent(kind="background"))

        assert cleared == [True]

    def test_unknown_element_is_ignored(self, adapter, engine):
        selected = []
        adapter.on_node_select(selected.append)
        engine.emit("tap", EngineEvent(kind="node", element_id="ghost"))

        assert selected == []

    def test_hover_tooltip(self, adapter, engine):
        fired = []
        adapter.on_node_select(lambda entity: fired.append(("node", entity.id)))
        adapter.on_edge_select(lambda edge: fired.append(("edge", edge.id)))
        adapter.on_selection_cleared(lambda: fired.append(("cleared", None)))
        graph_before = adapter.graph

        engine.emit("mouseover", EngineEvent(kind="node", element_id="db", rendered_position=(100.0, 50.0)))

        assert adapter.tooltip.lines[0] == "Orders DB"
        assert (adapter.tooltip.x, adapter.tooltip.y) == (110.0, 60.0)

        engine.emit("mouseout", EngineEvent(kind="node", element_id="db"))
        assert adapter.tooltip is None

        engine.emit("mouseover", EngineEvent(kind="edge", element_id="e1", rendered_position=(10.0, 10.0)))
        engine.emit("mouseout", EngineEvent(kind="edge", element_id="e1"))
        engine.emit("mouseover", EngineEvent(kind="background"))

        assert fired == []
        assert adapter.graph is graph_before

    def test_handle_in_fallback(self, graph):
        adapter = VisualizationAdapter(None)
        adapter.render(graph)
        selected = []
        adapter.on_edge_select(selected.append)

        adapter.handle("tap", EngineEvent(kind="edge", element_id="e1"))
        adapter.handle("dbltap", EngineEvent(kind="edge", element_id="e1"))

        assert [edge.id for edge in selected] == ["e1"]


class TestCameraAndLayout:

    def test_zoom_in_and_out_around_viewport_center(self, adapter, engine):
        assert adapter.zoom_in() == pytest.approx(1.2)
        assert engine.zoom_calls[-1][1] == (400.0, 300.0)
        assert adapter.zoom_out() == pytest.approx(1.2 * 0.8)

    def test_camera_ignored_in_fallback(self, graph):
        adapter = VisualizationAdapter(None)
        adapter.render(graph)

        assert adapter.zoom_in() is None
        assert adapter.reset_layout() is None

    def test_fit(self, adapter, engine):
        adapter.fit()
        assert engine.fit_calls == 1

    def test_reset_layout_randomizes(self, adapter, engine):
        assert adapter.reset_layout() is LayoutName.COLA
        assert engine.layouts[-1]["randomize"] is True

    def test_layout_failure_falls_back_to_circle(self, graph):
        engine = FakeEngine(failing_layouts={"cola"})
        adapter = VisualizationAdapter(engine)
        adapter.render(graph)

        assert adapter.reset_layout() is LayoutName.CIRCLE
        assert engine.layouts[-1] == {"name": "circle", "animate": False}

    def test_fallback_layout_failure(self, graph):
        engine = FakeEngine(failing_layouts={"cola", "circle"})
        adapter = VisualizationAdapter(engine)
        adapter.render(graph)

        assert adapter.reset_layout() is None

    def test_set_layout(self, adapter, engine):
        assert adapter.set_layout("grid") is LayoutName.GRID
        assert adapter.layout is LayoutName.GRID
        assert engine.layouts[-1]["name"] == "grid"

        with pytest.raises(ValueError):
            adapter.set_layout("spiral")
