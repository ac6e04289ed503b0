"""
ArchViews Admin - Manage Architecture Components
Create, edit and delete nodes and relationships
"""
import json
import os
import sys

import streamlit as st

# Add parent dir to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.config import ENVIRONMENTS
from services.graph.client import ArchViewsClient
from services.graph.errors import GraphFetchError

st.set_page_config(page_title="ArchViews Admin", page_icon="🛠️", layout="wide")

client = ArchViewsClient()

COMPONENT_FIELDS = ["name", "category", "type", "description", "environment", "status", "owner"]

# ========== HELPER FUNCTIONS ==========


def _call(action, *args, **kwargs):
    """Run a client call, showing the API error instead of raising."""
    try:
        return action(*args, **kwargs)
    except GraphFetchError as e:
        st.error(f"Error: {e.message}")
        return None


def _parse_json(text, field="Extra properties"):
    if not text.strip():
        return {}
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        st.error(f"{field} must be valid JSON: {e}")
        return None
    if not isinstance(value, dict):
        st.error(f"{field} must be a JSON object")
        return None
    return value


def _split_labels(text):
    return [label.strip() for label in text.split(",") if label.strip()]


def _node_title(node):
    name = node["properties"].get("name") or node["id"][-8:]
    return f"{name} ({', '.join(node['labels'])})"


@st.cache_data(ttl=30)
def get_node_options():
    """All nodes for the relationship forms, keyed by display title."""
    payload = _call(client.list_nodes, page=1, limit=100)
    if not payload:
        return {}
    return {_node_title(node): node["id"] for node in payload["nodes"]}


# ========== HEADER ==========

st.title("🛠️ Architecture Admin")

health = _call(client.health)
if health:
    st.caption(f"API: {health['status']} · Neo4j: {health['neo4j']}")

nodes_tab, edges_tab = st.tabs(["Components", "Relationships"])

# ========== NODES ==========

with nodes_tab:
    filter_cols = st.columns([2, 2, 2, 1])
    search = filter_cols[0].text_input("Search name or description", key="node_search")
    label_filter = filter_cols[1].text_input("Labels (comma-separated)", key="node_labels")
    environment = filter_cols[2].selectbox("Environment", ENVIRONMENTS, key="node_env")
    page = filter_cols[3].number_input("Page", min_value=1, value=1, key="node_page")

    listing = _call(
        client.list_nodes,
        page=page,
        limit=20,
        labels=_split_labels(label_filter),
        environment=environment,
        search=search,
    )
    if listing:
        st.caption(f"{listing['total']} components · page {listing['page']} of {max(listing['pages'], 1)}")
        st.dataframe(
            [
                {"id": node["id"], "labels": ", ".join(node["labels"]), **{
                    field: node["properties"].get(field, "") for field in COMPONENT_FIELDS
                }}
                for node in listing["nodes"]
            ],
            hide_index=True,
            use_container_width=True,
        )

    st.divider()
    create_col, edit_col = st.columns(2)

    with create_col:
        st.subheader("➕ New component")
        with st.form("create_node", clear_on_submit=True):
            labels_text = st.text_input("Labels", value="Component")
            values = {field: st.text_input(field.capitalize()) for field in COMPONENT_FIELDS if field != "environment"}
            values["environment"] = st.selectbox("Environment", [e for e in ENVIRONMENTS if e != "all"])
            extra_text = st.text_area("Extra properties (JSON)", value="{}")
            if st.form_submit_button("Create", use_container_width=True):
                extra = _parse_json(extra_text)
                if extra is not None:
                    properties = {k: v for k, v in values.items() if v}
                    properties.update(extra)
                    created = _call(client.create_node, _split_labels(labels_text), properties)
                    if created:
                        st.success(f"Created {created['id']}")
                        get_node_options.clear()

    with edit_col:
        st.subheader("✏️ Edit component")
        node_id = st.text_input("Node id", key="edit_node_id")
        if node_id:
            detail = _call(client.get_node, node_id)
            if detail:
                node = detail["node"]
                st.caption(f"{len(detail['outgoing'])} outgoing · {len(detail['incoming'])} incoming")
                with st.expander("Connections"):
                    links = _call(client.node_relationships, node_id)
                    if links:
                        for link in links["outbound"]:
                            st.markdown(f"- → `{link['relationship']['type']}` {_node_title(link['node'])}")
                        for link in links["inbound"]:
                            st.markdown(f"- ← `{link['relationship']['type']}` {_node_title(link['node'])}")
                        if not links["outbound"] and not links["inbound"]:
                            st.caption("No relationships")
                with st.form("update_node"):
                    props_text = st.text_area(
                        "Properties (JSON)", value=json.dumps(node["properties"], indent=2), height=220
                    )
                    add_text = st.text_input("Add labels")
                    remove_text = st.text_input("Remove labels")
                    if st.form_submit_button("Save", use_container_width=True):
                        properties = _parse_json(props_text, "Properties")
                        if properties is not None:
                            updated = _call(
                                client.update_node,
                                node_id,
                                properties,
                                _split_labels(add_text),
                                _split_labels(remove_text),
                            )
                            if updated:
                                st.success("Component updated")
                                get_node_options.clear()

                detach = st.checkbox("Also delete its relationships", key="detach")
                if st.button("🗑️ Delete component", type="secondary"):
                    deleted = _call(client.delete_node, node_id, detach=detach)
                    if deleted:
                        st.success(deleted["message"])
                        get_node_options.clear()
                        st.rerun()

# ========== RELATIONSHIPS ==========

with edges_tab:
    types = _call(client.relationship_types) or []
    type_names = [t["type"] for t in types]
    if types:
        st.caption(" · ".join(f"{t['type']}: {t['count']}" for t in types))

    type_filter = st.selectbox("Type", [""] + type_names, key="edge_type")
    edge_listing = _call(client.list_edges, rel_type=type_filter or None, limit=200)
    if edge_listing:
        st.dataframe(
            [
                {
                    "id": item["edge"]["id"],
                    "source": item["source"]["properties"].get("name", item["source"]["id"]),
                    "type": item["edge"]["type"],
                    "target": item["target"]["properties"].get("name", item["target"]["id"]),
                    "description": item["edge"]["properties"].get("description", ""),
                }
                for item in edge_listing["edges"]
            ],
            hide_index=True,
            use_container_width=True,
        )

    st.divider()
    create_col, edit_col = st.columns(2)
    node_options = get_node_options()

    with create_col:
        st.subheader("➕ New relationship")
        if len(node_options) < 2:
            st.info("At least two components are needed to create a relationship.")
        else:
            with st.form("create_edge", clear_on_submit=True):
                source = st.selectbox("Source", list(node_options))
                rel_type = st.text_input("Type", value="DEPENDS_ON")
                target = st.selectbox("Target", list(node_options), index=1)
                description = st.text_input("Description")
                extra_text = st.text_area("Extra properties (JSON)", value="{}", key="edge_extra")
                if st.form_submit_button("Create", use_container_width=True):
                    extra = _parse_json(extra_text)
                    if extra is not None:
                        if description:
                            extra["description"] = description
                        created = _call(
                            client.create_edge,
                            node_options[source],
                            node_options[target],
                            rel_type.strip().upper(),
                            extra,
                        )
                        if created:
                            st.success(f"Created {created['type']} ({created['id']})")

    with edit_col:
        st.subheader("✏️ Edit relationship")
        edge_id = st.text_input("Relationship id", key="edit_edge_id")
        if edge_id:
            detail = _call(client.get_edge, edge_id)
            if detail:
                st.caption(
                    f"{_node_title(detail['source'])} -[{detail['edge']['type']}]-> {_node_title(detail['target'])}"
                )
                with st.form("update_edge"):
                    props_text = st.text_area(
                        "Properties (JSON)", value=json.dumps(detail["edge"]["properties"], indent=2)
                    )
                    if st.form_submit_button("Save", use_container_width=True):
                        properties = _parse_json(props_text, "Properties")
                        if properties is not None and _call(client.update_edge, edge_id, properties):
                            st.success("Relationship updated")
                if st.button("🗑️ Delete relationship"):
                    deleted = _call(client.delete_edge, edge_id)
                    if deleted:
                        st.success(deleted["message"])
                        st.rerun()
