"""
ArchViews Console - Interactive Architecture Graph
Fetch, filter, explore and export the architecture graph
"""
import json
import os
import sys

import streamlit as st
import streamlit.components.v1 as components

# Add parent dir to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.config import DEFAULT_GRAPH_LIMIT, ENVIRONMENTS, LOG_JSON, LOG_LEVEL, MAX_GRAPH_LIMIT
from api.logging_config import get_logger, setup_logging
from services.graph.client import ArchViewsClient
from services.graph.errors import GraphFetchError
from services.graph.export import ExportFormat, export_as_rows, export_graph
from services.graph.filters import available_categories, available_relationship_types
from services.graph.formatting import (
    display_label,
    entity_category,
    format_edge_label,
    format_node_label,
    format_property_value,
    relationship_color,
    sorted_properties,
)
from services.graph.pyvis_engine import PyvisEngine
from services.graph.state import (
    STATUS_EMPTY,
    STATUS_ERROR,
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
from services.graph.visualization import EngineEvent, FallbackPresentation, LayoutName, VisualizationAdapter

setup_logging(level=LOG_LEVEL, production=LOG_JSON)
logger = get_logger("console")

GRAPH_HEIGHT = 650
DEFAULT_QUERY = "MATCH (n)-[r]->(m) RETURN n, r, m LIMIT 50"

st.set_page_config(page_title="ArchViews Console", page_icon="🕸️", layout="wide")

# ========== STATE ==========


def dispatch(event):
    state = reduce(st.session_state['console_state'], event)
    st.session_state['console_state'] = state
    # Selectboxes mirror the selection; dropped selections must not linger in them
    if state.selected_node_id is None and state.selected_edge_id is None:
        st.session_state['pick_node'] = ""
        st.session_state['pick_edge'] = ""


if 'console_state' not in st.session_state:
    st.session_state['console_state'] = ConsoleState()
if 'client' not in st.session_state:
    st.session_state['client'] = ArchViewsClient()
if 'adapter' not in st.session_state:
    engine = PyvisEngine(height_px=GRAPH_HEIGHT)
    adapter = VisualizationAdapter(engine)
    adapter.on_node_select(lambda entity: dispatch(NodeSelected(entity.id)))
    adapter.on_edge_select(lambda edge: dispatch(EdgeSelected(edge.id)))
    adapter.on_selection_cleared(lambda: dispatch(SelectionCleared()))
    st.session_state['engine'] = engine
    st.session_state['adapter'] = adapter
    st.session_state['rendered_view'] = None

client: ArchViewsClient = st.session_state['client']
engine: PyvisEngine = st.session_state['engine']
adapter: VisualizationAdapter = st.session_state['adapter']

# ========== HELPER FUNCTIONS ==========


def apply_fetch(fetch, spinner_text):
    """Run a fetch through the state lifecycle; only the newest request's outcome is applied."""
    request_id = st.session_state['console_state'].next_request_id()
    dispatch(FetchStarted(request_id))
    try:
        with st.spinner(spinner_text):
            result = fetch()
        dispatch(FetchSucceeded(request_id, result.graph, result.records_skipped))
    except GraphFetchError as e:
        logger.warning(f"Graph fetch {request_id} failed: {e.message}")
        dispatch(FetchFailed(request_id, e.message))


def load_graph_data(limit, environment):
    apply_fetch(lambda: client.fetch_graph_result(limit=limit, environment=environment), "Loading graph...")


def run_custom_query(cypher):
    apply_fetch(lambda: client.run_query(cypher), "Running query...")


def send_event(event_name, event):
    if adapter.using_fallback:
        adapter.handle(event_name, event)
    else:
        engine.dispatch(event_name, event)


def pick_element(kind, options):
    """Selectbox callback; runs before the page is redrawn."""
    other_key = "pick_edge" if kind == "node" else "pick_node"
    element_id = options.get(st.session_state[f"pick_{kind}"])
    st.session_state[other_key] = ""
    if element_id is None:
        send_event("tap", EngineEvent(kind="background"))
    else:
        send_event("tap", EngineEvent(kind=kind, element_id=element_id))


def clear_selection():
    st.session_state["pick_node"] = ""
    st.session_state["pick_edge"] = ""
    send_event("tap", EngineEvent(kind="background"))


def fallback_svg(fallback: FallbackPresentation, width=1000, height=GRAPH_HEIGHT):
    positions = {node.id: (node.x, node.y * height / 800) for node in fallback.nodes}
    parts = [f'<svg width="100%" viewBox="0 0 {width} {height}" xmlns="http://www.w3.org/2000/svg">']
    for edge in fallback.edges:
        x1, y1 = positions[edge.source]
        x2, y2 = positions[edge.target]
        parts.append(
            f'<line x1="{x1:.1f}" y1="{y1:.1f}" x2="{x2:.1f}" y2="{y2:.1f}" '
            f'stroke="{edge.color}" stroke-width="2"/>'
        )
    for node in fallback.nodes:
        x, y = positions[node.id]
        label = node.label.replace("&", "&amp;").replace("<", "&lt;")
        parts.append(f'<circle cx="{x:.1f}" cy="{y:.1f}" r="18" fill="{node.color}"/>')
        parts.append(
            f'<text x="{x:.1f}" y="{y + 32:.1f}" font-size="12" text-anchor="middle">{label}</text>'
        )
    parts.append("</svg>")
    return "".join(parts)


def property_rows(properties):
    return [{"Property": k, "Value": format_property_value(v)} for k, v in sorted_properties(properties)]


# ========== SIDEBAR ==========

state: ConsoleState = st.session_state['console_state']

with st.sidebar:
    st.header("🕸️ ArchViews")

    limit = st.number_input("Max records", min_value=1, max_value=MAX_GRAPH_LIMIT, value=DEFAULT_GRAPH_LIMIT, step=50)
    environment = st.selectbox(
        "Environment",
        ENVIRONMENTS,
        index=ENVIRONMENTS.index(state.environment) if state.environment in ENVIRONMENTS else 0,
    )
    if environment != state.environment:
        dispatch(EnvironmentChanged(environment))
        load_graph_data(limit, environment)
    elif st.button("🔄 Reload graph", use_container_width=True) or state.last_request_id == 0:
        load_graph_data(limit, environment)

    with st.expander("Cypher query"):
        cypher = st.text_area("Query", value=DEFAULT_QUERY, height=110, key="cypher_query")
        if st.button("▶ Run query", use_container_width=True) and cypher.strip():
            run_custom_query(cypher)

    state = st.session_state['console_state']

    layout_names = [layout.value for layout in LayoutName]
    layout = st.selectbox("Layout", layout_names, index=layout_names.index(state.layout.value))
    if layout != state.layout.value:
        dispatch(LayoutChanged(LayoutName(layout)))
        adapter.set_layout(layout)

    st.subheader("Filters")
    categories = st.multiselect(
        "Categories",
        available_categories(state.full_graph),
        default=[c for c in state.categories if c in available_categories(state.full_graph)],
    )
    rel_types = st.multiselect(
        "Relationship types",
        available_relationship_types(state.full_graph),
        default=[t for t in state.relationship_types if t in available_relationship_types(state.full_graph)],
    )
    if tuple(categories) != state.categories or tuple(rel_types) != state.relationship_types:
        dispatch(FiltersChanged(tuple(categories), tuple(rel_types)))

    search = st.text_input("🔍 Search", value=state.search_term)
    if search != state.search_term:
        dispatch(SearchChanged(search))

state = st.session_state['console_state']

# ========== STATUS ==========

st.title("Architecture Graph")

if state.status == STATUS_ERROR:
    st.error(f"Could not load graph data: {state.error}")

if state.records_skipped:
    st.caption(f"{state.records_skipped} malformed records were skipped")

col_nodes, col_edges, col_env = st.columns(3)
col_nodes.metric("Nodes", len(state.view.nodes), delta=len(state.view.nodes) - len(state.full_graph.nodes) or None)
col_edges.metric("Relationships", len(state.view.edges))
col_env.metric("Environment", state.environment)

# ========== GRAPH PANEL ==========

if st.session_state['rendered_view'] is not state.view:
    adapter.render(state.view)
    st.session_state['rendered_view'] = state.view

graph_col, detail_col = st.columns([3, 1])

with graph_col:
    tool_cols = st.columns(4)
    if tool_cols[0].button("➕ Zoom in", use_container_width=True):
        adapter.zoom_in()
    if tool_cols[1].button("➖ Zoom out", use_container_width=True):
        adapter.zoom_out()
    if tool_cols[2].button("⛶ Fit", use_container_width=True):
        adapter.fit()
    if tool_cols[3].button("♻️ Reset layout", use_container_width=True):
        adapter.reset_layout()

    if state.status == STATUS_EMPTY:
        st.info("No data to visualize. Adjust the filters or load new data.")
    elif adapter.using_fallback:
        st.caption("Interactive view unavailable; showing a static radial layout.")
        components.html(fallback_svg(adapter.fallback), height=GRAPH_HEIGHT + 20)
    else:
        engine.select(state.selected_node_id or state.selected_edge_id)
        components.html(engine.html(), height=GRAPH_HEIGHT + 30, scrolling=False)

    # Clicks inside the embedded graph do not reach Python; selection goes through these widgets
    sel_col1, sel_col2, sel_col3 = st.columns([2, 2, 1])
    node_options = {"": None}
    node_options.update({f"{format_node_label(n)} [{n.id[-6:]}]": n.id for n in state.view.nodes})
    edge_options = {"": None}
    edge_options.update(
        {
            f"{display_label(state.view.get_node(e.source))} -[{e.type}]-> "
            f"{display_label(state.view.get_node(e.target))} [{e.id[-6:]}]": e.id
            for e in state.view.edges
        }
    )
    sel_col1.selectbox("Select node", list(node_options), key="pick_node", on_change=pick_element, args=("node", node_options))
    sel_col2.selectbox("Select relationship", list(edge_options), key="pick_edge", on_change=pick_element, args=("edge", edge_options))
    sel_col3.button("✖ Clear", use_container_width=True, on_click=clear_selection)

state = st.session_state['console_state']

# ========== DETAIL PANEL ==========

with detail_col:
    node = state.selected_node
    edge = state.selected_edge
    if node is not None:
        st.subheader(display_label(node))
        st.caption(f"{', '.join(node.labels) or 'No labels'} · {entity_category(node) or 'NA'}")
        st.code(node.id, language=None)
        st.dataframe(property_rows(node.properties), hide_index=True, use_container_width=True)
        st.markdown("**Connections**")
        for link in state.view.edges_of(node.id):
            other_id = link.target if link.source == node.id else link.source
            arrow = "→" if link.source == node.id else "←"
            st.markdown(f"- {arrow} `{link.type}` {display_label(state.view.get_node(other_id))}")
        st.button("Close", key="close_node", on_click=clear_selection)
    elif edge is not None:
        st.subheader(format_edge_label(edge))
        st.markdown(
            f"<span style='color:{relationship_color(edge.type)}'>■</span> "
            f"{display_label(state.view.get_node(edge.source))} → "
            f"{display_label(state.view.get_node(edge.target))}",
            unsafe_allow_html=True,
        )
        st.code(edge.id, language=None)
        st.dataframe(property_rows(edge.properties), hide_index=True, use_container_width=True)
        st.button("Close", key="close_edge", on_click=clear_selection)
    else:
        st.caption("Select a node or relationship to see its details.")

# ========== RELATIONSHIP TABLE & EXPORT ==========

st.divider()
rows = export_as_rows(state.view)
with st.expander(f"Relationships ({len(rows.edge_rows)})", expanded=adapter.using_fallback):
    if rows.edge_rows:
        st.dataframe(
            [
                {"Source": r["source_label"], "Type": r["type"], "Target": r["target_label"]}
                for r in rows.edge_rows
            ],
            hide_index=True,
            use_container_width=True,
        )
    else:
        st.caption("No relationships in the current view.")

export_col1, export_col2 = st.columns(2)
csv_document = export_graph(state.view, ExportFormat.CSV) if not state.view.is_empty else None
json_document = export_graph(state.view, ExportFormat.JSON) if not state.view.is_empty else None
export_col1.download_button(
    "⬇️ Export CSV",
    data=csv_document or "",
    file_name="archviews-graph.csv",
    mime="text/csv",
    disabled=csv_document is None,
    use_container_width=True,
)
export_col2.download_button(
    "⬇️ Export JSON",
    data=json_document or json.dumps({"nodes": [], "edges": []}),
    file_name="archviews-graph.json",
    mime="application/json",
    disabled=json_document is None,
    use_container_width=True,
)
