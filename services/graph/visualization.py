# visualization.py
# Visualization adapter between GraphData and a rendering engine

# Maps snapshots onto `{data, classes}` elements plus a selector stylesheet,
# hands them to a RenderingEngine, and wires the engine's tap/hover events to
# node/edge/clear selection callbacks and a transient tooltip. When the engine
# cannot be loaded or refuses the elements, the adapter switches to a
# deterministic fallback presentation (radial positions + edge table).

# @see: services/graph/pyvis_engine.py - Concrete RenderingEngine over pyvis
# @see: services/graph/layouts.py - Radial layout used by the fallback
# @see: UI/console.py - Drives the adapter from Streamlit widgets
# @note: The adapter never mutates GraphData; hover only touches `tooltip`

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from services.graph.formatting import (
    CATEGORY_COLORS,
    DEFAULT_NODE_COLOR,
    SELECTED_COLOR,
    display_label,
    edge_tooltip_lines,
    entity_category,
    entity_color,
    node_tooltip_lines,
    relationship_color,
)
from services.graph.layouts import highest_degree_node, radial_layout
from services.graph.models import Entity, GraphData, Relationship


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

ZOOM_IN_FACTOR = 1.2
ZOOM_OUT_FACTOR = 0.8
TOOLTIP_OFFSET = (10.0, 10.0)

Element = Dict[str, Any]
Elements = Dict[str, List[Element]]
Stylesheet = List[Dict[str, Any]]


class LayoutName(str, Enum):
    """Named layouts understood by the rendering engine."""
    COLA = "cola"
    CIRCLE = "circle"
    GRID = "grid"
    CONCENTRIC = "concentric"
    BREADTHFIRST = "breadthfirst"


# Force-directed layout settings
COLA_LAYOUT: Dict[str, Any] = {
    "name": LayoutName.COLA.value,
    "nodeSpacing": 120,
    "edgeLengthVal": 100,
    "animate": True,
    "maxSimulationTime": 4000,
}

FALLBACK_LAYOUT = LayoutName.CIRCLE


def layout_config(name: Any = LayoutName.COLA, randomize: bool = False) -> Dict[str, Any]:
    """
    Build the layout options passed to RenderingEngine.run_layout().

    Raises:
        ValueError: If the name is not a LayoutName
    """
    layout = LayoutName(name)
    if layout is LayoutName.COLA:
        config = dict(COLA_LAYOUT)
    else:
        config = {"name": layout.value, "animate": False}
    if randomize:
        config["randomize"] = True
    return config


# ============================================================================
# ELEMENTS AND STYLES
# ============================================================================


def node_element(entity: Entity) -> Element:
    return {
        "data": {
            "id": entity.id,
            "label": display_label(entity),
            "properties": dict(entity.properties),
            "category": entity_category(entity) or "NA",
        },
        "classes": " ".join(entity.labels).lower(),
    }


def edge_element(edge: Relationship) -> Element:
    return {
        "data": {
            "id": edge.id,
            "source": edge.source,
            "target": edge.target,
            "label": edge.type,
            "properties": dict(edge.properties),
        },
        "classes": edge.type.lower(),
    }


def to_visualization_elements(graph: GraphData) -> Elements:
    """
    Map a snapshot onto engine elements.

    Edges whose endpoints are not among the nodes are skipped.
    """
    nodes = [node_element(node) for node in graph.nodes]
    edges = [edge_element(edge) for edge in graph.resolvable_edges()]
    skipped = len(graph.edges) - len(edges)
    if skipped:
        logger.debug(f"Skipped {skipped} edges with unresolvable endpoints")
    return {"nodes": nodes, "edges": edges}


def _node_color(element: Element) -> str:
    category = element.get("data", {}).get("category")
    for candidate in [category] + (element.get("classes") or "").split():
        if isinstance(candidate, str) and candidate.lower() in CATEGORY_COLORS:
            return CATEGORY_COLORS[candidate.lower()]
    return DEFAULT_NODE_COLOR


def _edge_color(element: Element) -> str:
    return relationship_color(element.get("data", {}).get("label"))


def build_stylesheet() -> Stylesheet:
    """
    Selector -> style mapping handed to the engine.

    Style values are either static or callables taking the element.
    """
    return [
        {
            "selector": "node",
            "style": {
                "label": "data(label)",
                "background-color": _node_color,
                "width": 50,
                "height": 50,
                "text-valign": "center",
                "text-halign": "center",
                "text-outline-width": 2,
                "text-outline-color": "#ffffff",
                "font-size": 12,
                "color": "#000000",
            },
        },
        {
            "selector": "edge",
            "style": {
                "width": 3,
                "line-color": _edge_color,
                "target-arrow-color": _edge_color,
                "target-arrow-shape": "triangle",
                "curve-style": "bezier",
                "label": "data(label)",
                "font-size": 10,
                "text-outline-width": 2,
                "text-outline-color": "#ffffff",
            },
        },
        {
            "selector": ":selected",
            "style": {
                "background-color": SELECTED_COLOR,
                "line-color": SELECTED_COLOR,
                "target-arrow-color": SELECTED_COLOR,
                "source-arrow-color": SELECTED_COLOR,
                "text-outline-color": SELECTED_COLOR,
            },
        },
    ]


def _selector_matches(selector: str, kind: str, element: Element, selected: bool) -> bool:
    if selector == ":selected":
        return selected
    base, _, cls = selector.partition(".")
    if base != kind:
        return False
    return not cls or cls in (element.get("classes") or "").split()


def resolve_style(
    stylesheet: Stylesheet,
    kind: str,
    element: Element,
    selected: bool = False,
) -> Dict[str, Any]:
    """
    Compute the effective style of one element.

    Matching rules apply in stylesheet order; callables are evaluated with the
    element and `data(field)` references are substituted.
    """
    style: Dict[str, Any] = {}
    for rule in stylesheet:
        if not _selector_matches(rule.get("selector", ""), kind, element, selected):
            continue
        for key, value in rule.get("style", {}).items():
            if callable(value):
                value = value(element)
            elif isinstance(value, str) and value.startswith("data(") and value.endswith(")"):
                value = element.get("data", {}).get(value[5:-1], "")
            style[key] = value
    return style


# ============================================================================
# RENDERING ENGINE INTERFACE
# ============================================================================


@dataclass(frozen=True)
class EngineEvent:
    """Interaction reported by a rendering engine."""
    kind: str  # "node" | "edge" | "background"
    element_id: Optional[str] = None
    rendered_position: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class Viewport:
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2, self.height / 2


EventHandler = Callable[[EngineEvent], None]


class RenderingEngine(Protocol):
    """Narrow interface over an interactive graph-rendering library."""

    def mount(self, elements: Elements, stylesheet: Stylesheet, layout: Dict[str, Any]) -> None:
        ...

    def on(self, event: str, handler: EventHandler) -> None:
        ...

    def zoom(
        self,
        level: Optional[float] = None,
        rendered_position: Optional[Tuple[float, float]] = None,
    ) -> float:
        ...

    def pan(self) -> Tuple[float, float]:
        ...

    def fit(self) -> None:
        ...

    def run_layout(self, config: Dict[str, Any]) -> None:
        ...

    def viewport(self) -> Viewport:
        ...


# ============================================================================
# FALLBACK PRESENTATION
# ============================================================================


@dataclass(frozen=True)
class PositionedNode:
    id: str
    label: str
    category: str
    color: str
    x: float
    y: float


@dataclass(frozen=True)
class EdgeRow:
    id: str
    type: str
    source: str
    target: str
    source_label: str
    target_label: str
    color: str


@dataclass(frozen=True)
class FallbackPresentation:
    """Static radial layout plus relationship table, computed without an engine."""
    reason: str
    nodes: List[PositionedNode] = field(default_factory=list)
    edges: List[EdgeRow] = field(default_factory=list)
    center_id: Optional[str] = None


def build_fallback(graph: GraphData, reason: str = "") -> FallbackPresentation:
    center = highest_degree_node(graph)
    positions = radial_layout(graph, center_node_id=center)

    nodes = [
        PositionedNode(
            id=node.id,
            label=display_label(node),
            category=entity_category(node),
            color=entity_color(node),
            x=positions[node.id][0],
            y=positions[node.id][1],
        )
        for node in graph.nodes
    ]

    edges = []
    for edge in graph.resolvable_edges():
        edges.append(
            EdgeRow(
                id=edge.id,
                type=edge.type,
                source=edge.source,
                target=edge.target,
                source_label=display_label(graph.get_node(edge.source)),
                target_label=display_label(graph.get_node(edge.target)),
                color=relationship_color(edge.type),
            )
        )

    return FallbackPresentation(reason=reason, nodes=nodes, edges=edges, center_id=center)


# ============================================================================
# ADAPTER
# ============================================================================


@dataclass(frozen=True)
class Tooltip:
    element_id: str
    kind: str
    lines: List[str]
    x: float
    y: float


class VisualizationAdapter:
    """
    Renders snapshots through a RenderingEngine and relays interaction.

    Usage:
        adapter = VisualizationAdapter(PyvisEngine())
        adapter.on_node_select(lambda entity: ...)
        adapter.render(filtered_graph)
        if adapter.fallback: show the static presentation instead
    """

    def __init__(self, engine: Optional[RenderingEngine], layout: Any = LayoutName.COLA):
        self.engine = engine
        self.layout = LayoutName(layout)
        self.graph = GraphData.empty()
        self.elements: Elements = {"nodes": [], "edges": []}
        self.fallback: Optional[FallbackPresentation] = None
        self.tooltip: Optional[Tooltip] = None
        self._node_callbacks: List[Callable[[Entity], None]] = []
        self._edge_callbacks: List[Callable[[Relationship], None]] = []
        self._cleared_callbacks: List[Callable[[], None]] = []
        self._handlers_registered = False

    # ------------------------------------------------------------------
    # Callback registration
    # ------------------------------------------------------------------

    def on_node_select(self, callback: Callable[[Entity], None]) -> None:
        self._node_callbacks.append(callback)

    def on_edge_select(self, callback: Callable[[Relationship], None]) -> None:
        self._edge_callbacks.append(callback)

    def on_selection_cleared(self, callback: Callable[[], None]) -> None:
        self._cleared_callbacks.append(callback)

    @property
    def using_fallback(self) -> bool:
        return self.fallback is not None

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, graph: GraphData) -> None:
        """Recompute elements for `graph` and mount them (or fall back)."""
        self.graph = graph
        self.tooltip = None
        self.elements = to_visualization_elements(graph)

        if self.engine is None:
            self._enter_fallback("No rendering engine configured")
            return

        try:
            self.engine.mount(self.elements, build_stylesheet(), layout_config(self.layout))
            if not self._handlers_registered:
                self.engine.on("tap", self._handle_tap)
                self.engine.on("mouseover", self._handle_mouseover)
                self.engine.on("mouseout", self._handle_mouseout)
                self._handlers_registered = True
            self.fallback = None
        except Exception as e:
            logger.warning(f"Rendering engine unavailable, using fallback presentation: {e}")
            self._enter_fallback(str(e))

    def _enter_fallback(self, reason: str) -> None:
        self.fallback = build_fallback(self.graph, reason)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def handle(self, event_name: str, event: EngineEvent) -> None:
        """Route an interaction directly, e.g. while the fallback is shown."""
        handlers = {
            "tap": self._handle_tap,
            "mouseover": self._handle_mouseover,
            "mouseout": self._handle_mouseout,
        }
        handler = handlers.get(event_name)
        if handler is None:
            logger.debug(f"Ignoring unknown event '{event_name}'")
            return
        handler(event)

    def _handle_tap(self, event: EngineEvent) -> None:
        if event.kind == "node":
            entity = self.graph.get_node(event.element_id)
            if entity is None:
                logger.debug(f"Tap on unknown node {event.element_id}")
                return
            for callback in self._node_callbacks:
                callback(entity)
        elif event.kind == "edge":
            edge = self.graph.get_edge(event.element_id)
            if edge is None:
                logger.debug(f"Tap on unknown edge {event.element_id}")
                return
            for callback in self._edge_callbacks:
                callback(edge)
        elif event.kind == "background":
            for callback in self._cleared_callbacks:
                callback()

    def _handle_mouseover(self, event: EngineEvent) -> None:
        if event.kind == "node":
            entity = self.graph.get_node(event.element_id)
            lines = node_tooltip_lines(entity) if entity else None
        elif event.kind == "edge":
            edge = self.graph.get_edge(event.element_id)
            lines = edge_tooltip_lines(edge) if edge else None
        else:
            lines = None

        if not lines:
            self.tooltip = None
            return

        x, y = event.rendered_position or (0.0, 0.0)
        self.tooltip = Tooltip(
            element_id=event.element_id,
            kind=event.kind,
            lines=lines,
            x=x + TOOLTIP_OFFSET[0],
            y=y + TOOLTIP_OFFSET[1],
        )

    def _handle_mouseout(self, event: EngineEvent) -> None:
        self.tooltip = None

    # ------------------------------------------------------------------
    # Camera and layout
    # ------------------------------------------------------------------

    def _live_engine(self) -> Optional[RenderingEngine]:
        if self.engine is None or self.fallback is not None:
            logger.debug("Camera/layout operation ignored in fallback presentation")
            return None
        return self.engine

    def _zoom_by(self, factor: float) -> Optional[float]:
        engine = self._live_engine()
        if engine is None:
            return None
        level = engine.zoom() * factor
        engine.zoom(level=level, rendered_position=engine.viewport().center)
        return level

    def zoom_in(self) -> Optional[float]:
        return self._zoom_by(ZOOM_IN_FACTOR)

    def zoom_out(self) -> Optional[float]:
        return self._zoom_by(ZOOM_OUT_FACTOR)

    def fit(self) -> None:
        engine = self._live_engine()
        if engine is not None:
            engine.fit()

    def _run_layout(self, layout: LayoutName, randomize: bool) -> Optional[LayoutName]:
        engine = self._live_engine()
        if engine is None:
            return None
        try:
            engine.run_layout(layout_config(layout, randomize=randomize))
            return layout
        except Exception as e:
            logger.warning(f"Layout '{layout.value}' failed, falling back to {FALLBACK_LAYOUT.value}: {e}")

        try:
            engine.run_layout(layout_config(FALLBACK_LAYOUT))
            return FALLBACK_LAYOUT
        except Exception as e:
            logger.error(f"Fallback layout '{FALLBACK_LAYOUT.value}' failed: {e}")
            return None

    def reset_layout(self) -> Optional[LayoutName]:
        """Re-run the configured layout randomized; returns the layout that ran."""
        return self._run_layout(self.layout, randomize=True)

    def set_layout(self, name: Any) -> Optional[LayoutName]:
        """
        Switch the configured layout and run it.

        Raises:
            ValueError: If the name is not a LayoutName
        """
        self.layout = LayoutName(name)
        return self._run_layout(self.layout, randomize=False)
