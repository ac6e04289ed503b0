# nodes.py
# CRUD endpoints for architecture components (graph nodes)

# List (paginated, with label/environment/search filters), create, read with
# neighbours, update properties and labels, and delete. Used by the admin page.

# @see: api/graph_store.py - Cypher statements
# @see: UI/admin.py - Node forms
# @note: Deleting a node that still has relationships requires
#        detach_delete=true (409 otherwise)

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.config import MAX_NODE_PAGE_SIZE
from api.graph_store import (
    HAS_RELATIONSHIPS,
    NOT_FOUND,
    GraphStore,
    environment_filter,
    validate_identifier,
)
from api.neo4j_config import neo4j_driver
from api.schemas.graph import (
    DeleteResponse,
    EdgeOut,
    NeighbourLink,
    NodeCreate,
    NodeDetailResponse,
    NodeListResponse,
    NodeOut,
    NodeRelationshipsResponse,
    NodeUpdate,
)
from services.graph.normalizer import coerce_properties, normalize_entity, normalize_relationship

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/neo4j/nodes", tags=["Nodes"])


def get_graph_store() -> GraphStore:
    """Dependency injection for GraphStore."""
    if neo4j_driver is None:
        raise HTTPException(status_code=503, detail="Neo4j driver not initialized")
    return GraphStore(neo4j_driver)


def _validate_labels(labels: List[str]) -> List[str]:
    try:
        return [validate_identifier(label) for label in labels]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _links(raw_links: Optional[List[Dict[str, Any]]]) -> List[NeighbourLink]:
    links = []
    for link in raw_links or []:
        relationship = normalize_relationship(link["relationship"])
        links.append(
            NeighbourLink(
                relationship=EdgeOut.from_relationship(relationship),
                node=NodeOut.from_entity(normalize_entity(link["node"])),
            )
        )
    return links


@router.get("", response_model=NodeListResponse, summary="List nodes")
async def list_nodes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_NODE_PAGE_SIZE),
    labels: Optional[str] = Query(None, description="Comma-separated labels"),
    environment: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Matches name or description"),
    store: GraphStore = Depends(get_graph_store),
):
    """
    Paginated node listing.

    Args:
        page: 1-based page number
        limit: Page size (max MAX_NODE_PAGE_SIZE)
        labels: Nodes must carry all of these labels
        environment: Exact match on the environment property ('all' disables it)
        search: Case-insensitive substring of name or description
    """
    label_list = _validate_labels([l.strip() for l in (labels or "").split(",") if l.strip()])

    try:
        raw_nodes, total = store.list_nodes(
            skip=(page - 1) * limit,
            limit=limit,
            labels=label_list,
            environment=environment_filter(environment),
            search=(search or "").strip() or None,
        )
        nodes = [NodeOut.from_entity(normalize_entity(raw)) for raw in raw_nodes]
    except Exception as e:
        logger.error(f"Error listing nodes: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to list nodes: {str(e)}")

    return NodeListResponse(
        nodes=nodes,
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if total else 0,
    )


@router.post("", response_model=NodeOut, status_code=201, summary="Create a node")
async def create_node(request: NodeCreate, store: GraphStore = Depends(get_graph_store)):
    labels = _validate_labels(request.labels)
    properties = coerce_properties(request.properties)
    if not str(properties.get("name") or "").strip():
        raise HTTPException(status_code=400, detail="Property 'name' is required")

    try:
        raw = store.create_node(labels, properties)
        return NodeOut.from_entity(normalize_entity(raw))
    except Exception as e:
        logger.error(f"Error creating node: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create node: {str(e)}")


@router.get("/{node_id}", response_model=NodeDetailResponse, summary="Get a node")
async def get_node(node_id: str, store: GraphStore = Depends(get_graph_store)):
    """Node with its outgoing and incoming relationships."""
    try:
        row = store.get_node(node_id)
        if row is None:
            raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")

        return NodeDetailResponse(
            node=NodeOut.from_entity(normalize_entity(row["node"])),
            outgoing=_links(row.get("outgoing")),
            incoming=_links(row.get("incoming")),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving node {node_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve node: {str(e)}")


@router.get(
    "/{node_id}/relationships",
    response_model=NodeRelationshipsResponse,
    summary="Get a node's relationships",
)
async def get_node_relationships(node_id: str, store: GraphStore = Depends(get_graph_store)):
    try:
        row = store.get_node(node_id)
        if row is None:
            raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")

        return NodeRelationshipsResponse(
            node_id=node_id,
            outbound=_links(row.get("outgoing")),
            inbound=_links(row.get("incoming")),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving relationships of {node_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve relationships: {str(e)}")


@router.put("/{node_id}", response_model=NodeOut, summary="Update a node")
async def update_node(
    node_id: str,
    request: NodeUpdate,
    store: GraphStore = Depends(get_graph_store),
):
    """Replace properties (when given) and add/remove labels."""
    add_labels = _validate_labels(request.add_labels)
    remove_labels = _validate_labels(request.remove_labels)
    properties = coerce_properties(request.properties) if request.properties is not None else None

    try:
        raw = store.update_node(node_id, properties, add_labels, remove_labels)
        if raw is None:
            raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")

        logger.info(f"Updated node {node_id}")
        return NodeOut.from_entity(normalize_entity(raw))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating node {node_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update node: {str(e)}")


@router.delete("/{node_id}", response_model=DeleteResponse, summary="Delete a node")
async def delete_node(
    node_id: str,
    detach_delete: bool = Query(False, description="Also delete the node's relationships"),
    store: GraphStore = Depends(get_graph_store),
):
    try:
        outcome = store.delete_node(node_id, detach=detach_delete)
    except Exception as e:
        logger.error(f"Error deleting node {node_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to delete node: {str(e)}")

    if outcome == NOT_FOUND:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    if outcome == HAS_RELATIONSHIPS:
        raise HTTPException(
            status_code=409,
            detail="Node still has relationships; use detach_delete=true to delete them too",
        )

    return DeleteResponse(id=node_id, message="Node deleted")
