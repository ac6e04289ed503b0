# graph.py
# Request/response schemas for the /api/neo4j endpoints

# Node and edge payloads mirror services.graph.models (id / labels / type /
# source / target / properties) so the console client can feed responses
# straight into the aggregator.

# @see: api/routers/graph.py - Graph, query and export endpoints
# @see: api/routers/nodes.py - Node CRUD endpoints
# @see: api/routers/relationships.py - Edge CRUD and relationship types
# @note: Property values are coerced to scalars or scalar lists before writes

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from services.graph.models import Entity, Relationship


class NodeOut(BaseModel):
    """Single node of the architecture graph."""

    id: str
    labels: List[str] = Field(default_factory=list)
    properties: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_entity(cls, entity: Entity) -> "NodeOut":
        return cls(id=entity.id, labels=list(entity.labels), properties=dict(entity.properties))


class EdgeOut(BaseModel):
    """Single directed relationship."""

    id: str
    type: str
    source: str
    target: str
    properties: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_relationship(cls, edge: Relationship) -> "EdgeOut":
        return cls(
            id=edge.id,
            type=edge.type,
            source=edge.source,
            target=edge.target,
            properties=dict(edge.properties),
        )


class GraphResponse(BaseModel):
    """Deduplicated graph for the console."""

    nodes: List[NodeOut]
    edges: List[EdgeOut]
    node_count: int
    edge_count: int
    records_skipped: int = 0


class QueryRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Cypher statement")
    params: Dict[str, Any] = Field(default_factory=dict)


class QueryResponse(BaseModel):
    success: bool
    results: List[Dict[str, Any]] = Field(default_factory=list)


class NodeCreate(BaseModel):
    labels: List[str] = Field(..., min_length=1)
    properties: Dict[str, Any] = Field(default_factory=dict)


class NodeUpdate(BaseModel):
    properties: Optional[Dict[str, Any]] = None
    add_labels: List[str] = Field(default_factory=list)
    remove_labels: List[str] = Field(default_factory=list)


class NodeListResponse(BaseModel):
    nodes: List[NodeOut]
    total: int
    page: int
    limit: int
    pages: int


class NeighbourLink(BaseModel):
    """A relationship together with the node at its other end."""

    relationship: EdgeOut
    node: NodeOut


class NodeDetailResponse(BaseModel):
    node: NodeOut
    outgoing: List[NeighbourLink] = Field(default_factory=list)
    incoming: List[NeighbourLink] = Field(default_factory=list)


class NodeRelationshipsResponse(BaseModel):
    node_id: str
    outbound: List[NeighbourLink] = Field(default_factory=list)
    inbound: List[NeighbourLink] = Field(default_factory=list)


class EdgeCreate(BaseModel):
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    properties: Dict[str, Any] = Field(default_factory=dict)


class EdgeUpdate(BaseModel):
    properties: Dict[str, Any] = Field(default_factory=dict)


class EdgeDetail(BaseModel):
    edge: EdgeOut
    source: NodeOut
    target: NodeOut


class EdgeListResponse(BaseModel):
    edges: List[EdgeDetail]
    count: int


class RelationshipTypeCount(BaseModel):
    type: str
    count: int


class RelationshipTypesResponse(BaseModel):
    types: List[RelationshipTypeCount]


class DeleteResponse(BaseModel):
    id: str
    message: str
