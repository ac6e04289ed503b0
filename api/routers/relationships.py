# relationships.py
# CRUD endpoints for relationships (graph edges) and relationship-type counts

# @see: api/graph_store.py - Cypher statements
# @see: UI/admin.py - Edge forms
# @see: UI/console.py - Relationship-type summary
# @note: Relationship types are validated as plain identifiers (400 otherwise);
#        self-loops are rejected on create

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.config import MAX_GRAPH_LIMIT
from api.graph_store import GraphStore, environment_filter, validate_identifier
from api.neo4j_config import neo4j_driver
from api.schemas.graph import (
    DeleteResponse,
    EdgeCreate,
    EdgeDetail,
    EdgeListResponse,
    EdgeOut,
    EdgeUpdate,
    NodeOut,
    RelationshipTypeCount,
    RelationshipTypesResponse,
)
from services.graph.normalizer import coerce_properties, normalize_entity, normalize_relationship

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/neo4j", tags=["Relationships"])


def get_graph_store() -> GraphStore:
    """Dependency injection for GraphStore."""
    if neo4j_driver is None:
        raise HTTPException(status_code=503, detail="Neo4j driver not initialized")
    return GraphStore(neo4j_driver)


def _edge_detail(row: Dict[str, Any]) -> EdgeDetail:
    return EdgeDetail(
        edge=EdgeOut.from_relationship(normalize_relationship(row["r"])),
        source=NodeOut.from_entity(normalize_entity(row["source"])),
        target=NodeOut.from_entity(normalize_entity(row["target"])),
    )


def _check_type(rel_type: str) -> str:
    try:
        return validate_identifier(rel_type, "relationship type")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/edges", response_model=EdgeListResponse, summary="List relationships")
async def list_edges(
    type: Optional[str] = Query(None, description="Relationship type filter"),
    limit: int = Query(100, ge=1, le=MAX_GRAPH_LIMIT),
    store: GraphStore = Depends(get_graph_store),
):
    rel_type = _check_type(type) if type else None

    try:
        rows = store.list_edges(rel_type, limit)
        edges = [_edge_detail(row) for row in rows]
    except Exception as e:
        logger.error(f"Error listing relationships: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to list relationships: {str(e)}")

    return EdgeListResponse(edges=edges, count=len(edges))


@router.post("/edges", response_model=EdgeOut, status_code=201, summary="Create a relationship")
async def create_edge(request: EdgeCreate, store: GraphStore = Depends(get_graph_store)):
    """
    Create a directed relationship between two existing nodes.

    Raises:
        400 for an invalid type or a self-loop, 404 if an endpoint is missing
    """
    rel_type = _check_type(request.type)
    if request.source == request.target:
        raise HTTPException(status_code=400, detail="Source and target must be different nodes")

    try:
        raw = store.create_edge(
            request.source, request.target, rel_type, coerce_properties(request.properties)
        )
        if raw is None:
            raise HTTPException(status_code=404, detail="Source or target node not found")

        return EdgeOut.from_relationship(normalize_relationship(raw))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating relationship: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create relationship: {str(e)}")


@router.get("/edges/{edge_id}", response_model=EdgeDetail, summary="Get a relationship")
async def get_edge(edge_id: str, store: GraphStore = Depends(get_graph_store)):
    try:
        row = store.get_edge(edge_id)
        if row is None:
            raise HTTPException(status_code=404, detail=f"Relationship not found: {edge_id}")
        return _edge_detail(row)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error retrieving relationship {edge_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve relationship: {str(e)}")


@router.put("/edges/{edge_id}", response_model=EdgeOut, summary="Update a relationship")
async def update_edge(
    edge_id: str,
    request: EdgeUpdate,
    store: GraphStore = Depends(get_graph_store),
):
    try:
        raw = store.update_edge(edge_id, coerce_properties(request.properties))
        if raw is None:
            raise HTTPException(status_code=404, detail=f"Relationship not found: {edge_id}")
        return EdgeOut.from_relationship(normalize_relationship(raw))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating relationship {edge_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update relationship: {str(e)}")


@router.delete("/edges/{edge_id}", response_model=DeleteResponse, summary="Delete a relationship")
async def delete_edge(edge_id: str, store: GraphStore = Depends(get_graph_store)):
    try:
        deleted = store.delete_edge(edge_id)
    except Exception as e:
        logger.error(f"Error deleting relationship {edge_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to delete relationship: {str(e)}")

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Relationship not found: {edge_id}")
    return DeleteResponse(id=edge_id, message="Relationship deleted")


@router.get(
    "/relationship-types",
    response_model=RelationshipTypesResponse,
    summary="Relationship types with counts",
)
async def relationship_types(
    environment: Optional[str] = Query(None),
    store: GraphStore = Depends(get_graph_store),
):
    try:
        rows = store.relationship_types(environment_filter(environment))
    except Exception as e:
        logger.error(f"Error retrieving relationship types: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve relationship types: {str(e)}")

    return RelationshipTypesResponse(
        types=[RelationshipTypeCount(type=row["type"], count=row["count"]) for row in rows]
    )
