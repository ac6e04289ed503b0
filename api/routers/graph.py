# graph.py
# Graph retrieval, export and ad hoc query endpoints for the console

# The /graph endpoint runs the `(n)-[r]->(m)` query, aggregates the records
# with the shared pipeline and returns deduplicated GraphData. /query exposes
# raw `{success, results}` records for ad hoc Cypher.

# @see: api/graph_store.py - Cypher statements
# @see: services/graph/aggregator.py - Record deduplication
# @see: services/graph/export.py - CSV/JSON export rows
# @note: environment=all (or omitted) disables environment filtering

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from neo4j.exceptions import ClientError

from api.config import DEFAULT_GRAPH_LIMIT, MAX_GRAPH_LIMIT
from api.graph_store import GraphStore, environment_filter
from api.neo4j_config import neo4j_driver
from api.schemas.graph import EdgeOut, GraphResponse, NodeOut, QueryRequest, QueryResponse
from services.graph.export import ExportFormat, export_graph

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/neo4j", tags=["Graph"])

EXPORT_MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
}


def get_graph_store() -> GraphStore:
    """Dependency injection for GraphStore."""
    if neo4j_driver is None:
        raise HTTPException(status_code=503, detail="Neo4j driver not initialized")
    return GraphStore(neo4j_driver)


@router.get("/graph", response_model=GraphResponse, summary="Get the architecture graph")
async def get_graph(
    limit: int = Query(DEFAULT_GRAPH_LIMIT, ge=1, le=MAX_GRAPH_LIMIT),
    environment: Optional[str] = Query(None, description="Environment filter ('all' disables it)"),
    store: GraphStore = Depends(get_graph_store),
):
    """
    Retrieve nodes and relationships for visualization.

    Args:
        limit: Maximum number of (n)-[r]->(m) records to read
        environment: Keep records where either endpoint is in this environment

    Returns:
        GraphResponse with unique nodes and edges
    """
    try:
        result = store.get_graph(limit, environment_filter(environment))
    except Exception as e:
        logger.error(f"Error retrieving graph: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to retrieve graph data: {str(e)}")

    graph = result.graph
    return GraphResponse(
        nodes=[NodeOut.from_entity(node) for node in graph.nodes],
        edges=[EdgeOut.from_relationship(edge) for edge in graph.edges],
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
        records_skipped=result.records_skipped,
    )


@router.get("/graph/export", summary="Download the graph as CSV or JSON")
async def export_graph_endpoint(
    format: ExportFormat = Query(ExportFormat.JSON),
    limit: int = Query(DEFAULT_GRAPH_LIMIT, ge=1, le=MAX_GRAPH_LIMIT),
    environment: Optional[str] = Query(None),
    store: GraphStore = Depends(get_graph_store),
):
    """Export flattened node and edge rows; 204 when there is nothing to export."""
    try:
        result = store.get_graph(limit, environment_filter(environment))
    except Exception as e:
        logger.error(f"Error exporting graph: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to export graph: {str(e)}")

    document = export_graph(result.graph, format)
    if document is None:
        return Response(status_code=204)

    filename = f"archviews-graph.{format.value}"
    return Response(
        content=document,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/query", response_model=QueryResponse, summary="Run an ad hoc Cypher query")
async def run_query(
    request: QueryRequest,
    store: GraphStore = Depends(get_graph_store),
):
    """
    Execute Cypher and return its records.

    Nodes, relationships and paths in the records are serialized into
    identity/labels/type/properties maps.
    """
    try:
        results = store.run_query(request.query, request.params)
    except ClientError as e:
        logger.warning(f"Rejected Cypher query: {e}")
        raise HTTPException(status_code=400, detail=f"Invalid query: {e.message or str(e)}")
    except Exception as e:
        logger.error(f"Error executing query: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to execute query: {str(e)}")

    logger.info(f"Query returned {len(results)} records")
    return QueryResponse(success=True, results=results)
