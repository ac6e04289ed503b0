# models.py
# Canonical in-memory graph model shared by every pipeline stage

# Entities and relationships are frozen pydantic models; a GraphData snapshot
# is never mutated, filtering and fetching always produce a new snapshot.
# Property bags are restricted to a closed set of value types.

# @see: services/graph/normalizer.py - Builds Entity/Relationship from raw records
# @see: services/graph/filters.py - Derives filtered snapshots
# @note: Edge endpoints are NOT validated here; aggregated snapshots may hold
#        dangling edges that downstream stages must skip

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# PROPERTY VALUES
# ============================================================================

Scalar = Union[bool, int, float, str, None]
PropertyValue = Union[Scalar, List[Scalar]]
Properties = Dict[str, PropertyValue]


# ============================================================================
# DATA MODELS
# ============================================================================


class Entity(BaseModel):
    """Graph vertex: one architecture component."""

    model_config = ConfigDict(frozen=True)

    id: str
    labels: Tuple[str, ...] = ()
    properties: Properties = Field(default_factory=dict)

    @property
    def primary_label(self) -> Optional[str]:
        return self.labels[0] if self.labels else None


class Relationship(BaseModel):
    """Directed, typed connection between two entities."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    source: str
    target: str
    properties: Properties = Field(default_factory=dict)

    def endpoints(self) -> Tuple[str, str]:
        return self.source, self.target


class GraphData(BaseModel):
    """
    Immutable snapshot of entities and relationships.

    Node ids are unique among nodes and edge ids among edges. Order carries no
    meaning beyond first-occurrence order from aggregation; compare snapshots
    with same_elements() rather than ==.
    """

    model_config = ConfigDict(frozen=True)

    nodes: Tuple[Entity, ...] = ()
    edges: Tuple[Relationship, ...] = ()

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "GraphData":
        node_ids = [node.id for node in self.nodes]
        if len(node_ids) != len(set(node_ids)):
            raise ValueError("duplicate entity id in GraphData")
        edge_ids = [edge.id for edge in self.edges]
        if len(edge_ids) != len(set(edge_ids)):
            raise ValueError("duplicate relationship id in GraphData")
        return self

    @classmethod
    def empty(cls) -> "GraphData":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges

    def node_ids(self) -> Set[str]:
        return {node.id for node in self.nodes}

    def edge_ids(self) -> Set[str]:
        return {edge.id for edge in self.edges}

    def get_node(self, node_id: Optional[str]) -> Optional[Entity]:
        if node_id is None:
            return None
        return next((node for node in self.nodes if node.id == node_id), None)

    def get_edge(self, edge_id: Optional[str]) -> Optional[Relationship]:
        if edge_id is None:
            return None
        return next((edge for edge in self.edges if edge.id == edge_id), None)

    def resolvable_edges(self) -> Iterator[Relationship]:
        """Edges whose endpoints are both present in this snapshot."""
        ids = self.node_ids()
        return (e for e in self.edges if e.source in ids and e.target in ids)

    def edges_of(self, node_id: str) -> List[Relationship]:
        return [e for e in self.edges if node_id in (e.source, e.target)]

    def same_elements(self, other: "GraphData") -> bool:
        """Order-independent equality of node and edge sets."""
        if len(self.nodes) != len(other.nodes) or len(self.edges) != len(other.edges):
            return False
        mine = {node.id: node for node in self.nodes}
        theirs = {node.id: node for node in other.nodes}
        if mine != theirs:
            return False
        return {e.id: e for e in self.edges} == {e.id: e for e in other.edges}
