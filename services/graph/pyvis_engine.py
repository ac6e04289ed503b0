# pyvis_engine.py
# RenderingEngine implementation over pyvis / vis.js

# Builds a pyvis Network from adapter elements and resolved styles and
# returns embeddable HTML for the console page. The force-directed "cola"
# layout maps onto vis.js barnesHut physics; the other layouts use fixed
# positions from services/graph/layouts.py with physics disabled.

# Streamlit cannot receive clicks from inside the embedded HTML, so the
# console page turns widget selections into EngineEvents via dispatch().
# Camera state (zoom level, focal point, fit) is kept here and replayed into
# the HTML as a script once the network is drawn.

# @see: services/graph/visualization.py - RenderingEngine protocol, stylesheet
# @see: UI/console.py - Embeds html() with streamlit.components.v1.html
# @note: pyvis is imported lazily in mount(); an ImportError there makes the
#        adapter switch to its fallback presentation

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from services.graph.errors import RenderingEngineError
from services.graph.formatting import format_property_value, sorted_properties
from services.graph.layouts import (
    Positions,
    breadthfirst_layout,
    circle_layout,
    grid_layout,
    radial_layout,
)
from services.graph.models import Entity, GraphData, Relationship
from services.graph.visualization import (
    EngineEvent,
    Elements,
    LayoutName,
    Stylesheet,
    Viewport,
    layout_config,
    resolve_style,
)


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_HEIGHT_PX = 600
DEFAULT_WIDTH_PX = 1000
MIN_ZOOM = 0.1
MAX_ZOOM = 10.0

_FIXED_LAYOUTS: Dict[str, Callable[..., Positions]] = {
    LayoutName.CIRCLE.value: circle_layout,
    LayoutName.GRID.value: grid_layout,
    LayoutName.CONCENTRIC.value: radial_layout,
    LayoutName.BREADTHFIRST.value: breadthfirst_layout,
}

_NETWORK_CREATED = "network = new vis.Network(container, data, options);"


def _node_title(data: Dict[str, Any]) -> str:
    lines = [str(data.get("label", ""))]
    for key, value in sorted_properties(data.get("properties")):
        lines.append(f"{key}: {format_property_value(value)}")
    return "\n".join(lines)


def _skeleton_graph(elements: Elements) -> GraphData:
    """Rebuild a minimal GraphData from elements, for position computation."""
    nodes = tuple(Entity(id=el["data"]["id"]) for el in elements.get("nodes", []))
    edges = tuple(
        Relationship(
            id=el["data"]["id"],
            type=el["data"].get("label") or "RELATED_TO",
            source=el["data"]["source"],
            target=el["data"]["target"],
        )
        for el in elements.get("edges", [])
    )
    return GraphData(nodes=nodes, edges=edges)


class PyvisEngine:
    """
    vis.js rendering engine producing standalone HTML.

    Usage:
        engine = PyvisEngine(height_px=650)
        adapter = VisualizationAdapter(engine)
        adapter.render(graph)
        components.html(engine.html(), height=680)
    """

    def __init__(self, height_px: int = DEFAULT_HEIGHT_PX, width_px: int = DEFAULT_WIDTH_PX):
        self.height_px = height_px
        self.width_px = width_px
        self.selected_id: Optional[str] = None
        self._elements: Elements = {"nodes": [], "edges": []}
        self._stylesheet: Stylesheet = []
        self._layout: Dict[str, Any] = layout_config()
        self._positions: Positions = {}
        self._handlers: Dict[str, List[Callable[[EngineEvent], None]]] = {}
        self._zoom = 1.0
        self._focal: Optional[Tuple[float, float]] = None
        self._pan = (0.0, 0.0)
        self._fit_pending = True
        self._network_cls = None
        self.layout_runs = 0

    # ------------------------------------------------------------------
    # RenderingEngine protocol
    # ------------------------------------------------------------------

    def mount(self, elements: Elements, stylesheet: Stylesheet, layout: Dict[str, Any]) -> None:
        if self._network_cls is None:
            from pyvis.network import Network
            self._network_cls = Network

        self._elements = elements
        self._stylesheet = stylesheet
        self.selected_id = None
        self._fit_pending = True
        self.run_layout(layout)
        # Build once so style or option errors surface at mount time
        self._build_network()
        logger.debug(
            f"Mounted {len(elements.get('nodes', []))} nodes and "
            f"{len(elements.get('edges', []))} edges with layout '{self._layout.get('name')}'"
        )

    def on(self, event: str, handler: Callable[[EngineEvent], None]) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def zoom(
        self,
        level: Optional[float] = None,
        rendered_position: Optional[Tuple[float, float]] = None,
    ) -> float:
        if level is not None:
            self._zoom = max(MIN_ZOOM, min(MAX_ZOOM, float(level)))
            self._focal = rendered_position
            self._fit_pending = False
        return self._zoom

    def pan(self) -> Tuple[float, float]:
        return self._pan

    def fit(self) -> None:
        self._zoom = 1.0
        self._focal = None
        self._pan = (0.0, 0.0)
        self._fit_pending = True

    def run_layout(self, config: Dict[str, Any]) -> None:
        name = config.get("name")
        if name == LayoutName.COLA.value:
            self._positions = {}
        elif name in _FIXED_LAYOUTS:
            graph = _skeleton_graph(self._elements)
            self._positions = _FIXED_LAYOUTS[name](
                graph, width=float(self.width_px), height=float(self.height_px)
            )
        else:
            raise RenderingEngineError(f"Unsupported layout: {name}")
        self._layout = dict(config)
        self._fit_pending = True
        self.layout_runs += 1

    def viewport(self) -> Viewport:
        return Viewport(width=float(self.width_px), height=float(self.height_px))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def dispatch(self, event_name: str, event: EngineEvent) -> None:
        """Deliver an interaction reported by the page to registered handlers."""
        for handler in self._handlers.get(event_name, []):
            handler(event)

    def select(self, element_id: Optional[str]) -> None:
        """Highlight one element with the ':selected' style."""
        self.selected_id = element_id

    # ------------------------------------------------------------------
    # HTML output
    # ------------------------------------------------------------------

    def _physics_options(self) -> Dict[str, Any]:
        if self._positions:
            return {"enabled": False}
        spacing = self._layout.get("nodeSpacing", 120)
        edge_length = self._layout.get("edgeLengthVal", 100)
        # maxSimulationTime (ms) mapped onto stabilization iterations
        iterations = max(100, int(self._layout.get("maxSimulationTime", 4000) / 10))
        return {
            "enabled": True,
            "barnesHut": {
                "gravitationalConstant": -2000 - 10 * spacing,
                "centralGravity": 0.3,
                "springLength": edge_length + spacing,
                "springConstant": 0.04,
                "damping": 0.09,
                "avoidOverlap": 0.5,
            },
            "stabilization": {
                "enabled": True,
                "iterations": iterations,
                "fit": True,
            },
        }

    def _options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "physics": self._physics_options(),
            "interaction": {"hover": True, "tooltipDelay": 150},
            "edges": {"smooth": {"type": "dynamic"}},
        }
        if self._layout.get("randomize"):
            options["layout"] = {"improvedLayout": True}
        else:
            options["layout"] = {"improvedLayout": True, "randomSeed": 42}
        return options

    def _build_network(self):
        if self._network_cls is None:
            raise RenderingEngineError("Engine is not mounted")

        net = self._network_cls(
            height=f"{self.height_px}px",
            width="100%",
            directed=True,
            notebook=False,
            cdn_resources="remote",
        )
        net.set_options(json.dumps(self._options()))

        for element in self._elements.get("nodes", []):
            data = element["data"]
            style = resolve_style(
                self._stylesheet, "node", element, selected=data["id"] == self.selected_id
            )
            kwargs: Dict[str, Any] = {
                "label": str(style.get("label", data.get("label", ""))),
                "title": _node_title(data),
                "color": style.get("background-color"),
                "size": float(style.get("width", 50)) / 2,
                "font": {"size": style.get("font-size", 12), "color": style.get("color", "#000000")},
                "shape": "dot",
                "group": data.get("category"),
            }
            if data["id"] in self._positions:
                x, y = self._positions[data["id"]]
                kwargs.update(x=x, y=y, physics=False)
            net.add_node(data["id"], **kwargs)

        for element in self._elements.get("edges", []):
            data = element["data"]
            style = resolve_style(
                self._stylesheet, "edge", element, selected=data["id"] == self.selected_id
            )
            net.add_edge(
                data["source"],
                data["target"],
                id=data["id"],
                label=str(style.get("label", data.get("label", ""))),
                title=data.get("label", ""),
                color=style.get("line-color"),
                width=style.get("width", 3),
                arrows="to",
                font={"size": style.get("font-size", 10)},
            )

        return net

    def _camera_center(self) -> Tuple[float, float]:
        """Graph-space point the view is centred on; physics layouts settle around the origin."""
        if not self._positions:
            return (0.0, 0.0)
        xs = [x for x, _ in self._positions.values()]
        ys = [y for _, y in self._positions.values()]
        return (sum(xs) / len(xs), sum(ys) / len(ys))

    def camera_options(self) -> Dict[str, Any]:
        """moveTo options for the current zoom; the focal point is relative to the drawing centre."""
        center_x, center_y = self._camera_center()
        if self._focal is not None:
            center_x += (self._focal[0] - self.width_px / 2) / self._zoom
            center_y += (self._focal[1] - self.height_px / 2) / self._zoom
        return {"scale": self._zoom, "position": {"x": center_x, "y": center_y}}

    def _camera_script(self) -> str:
        if self._fit_pending:
            action = "window.network.fit();"
        else:
            action = f"window.network.moveTo({json.dumps(self.camera_options())});"
        return (
            "<script>"
            "(function applyCamera(){"
            "if (!window.network) { setTimeout(applyCamera, 50); return; }"
            f"window.network.once('afterDrawing', function(){{ {action} }});"
            "window.network.redraw();"
            "})();"
            "</script>"
        )

    def html(self) -> str:
        """Standalone HTML document for the mounted elements and camera state."""
        net = self._build_network()
        document = net.generate_html()
        document = document.replace(
            _NETWORK_CREATED, _NETWORK_CREATED + "\n                  window.network = network;"
        )
        return document.replace("</body>", self._camera_script() + "</body>")
