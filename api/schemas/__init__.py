# __init__.py
# Schemas package for the ArchViews API

# Re-exports graph schemas for convenient import.
# @see: api/schemas/graph.py - Node, edge, graph and query schemas

from api.schemas.graph import (
    DeleteResponse,
    EdgeCreate,
    EdgeDetail,
    EdgeListResponse,
    EdgeOut,
    EdgeUpdate,
    GraphResponse,
    NeighbourLink,
    NodeCreate,
    NodeDetailResponse,
    NodeListResponse,
    NodeOut,
    NodeRelationshipsResponse,
    NodeUpdate,
    QueryRequest,
    QueryResponse,
    RelationshipTypeCount,
    RelationshipTypesResponse,
)

__all__ = [
    "DeleteResponse",
    "EdgeCreate",
    "EdgeDetail",
    "EdgeListResponse",
    "EdgeOut",
    "EdgeUpdate",
    "GraphResponse",
    "NeighbourLink",
    "NodeCreate",
    "NodeDetailResponse",
    "NodeListResponse",
    "NodeOut",
    "NodeRelationshipsResponse",
    "NodeUpdate",
    "QueryRequest",
    "QueryResponse",
    "RelationshipTypeCount",
    "RelationshipTypesResponse",
]
