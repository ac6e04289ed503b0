# aggregator.py
# Merges normalized records into one deduplicated GraphData snapshot

# The same entity usually appears in many `{n, r, m}` records of one query.
# Entities and relationships are upserted into dicts keyed by id
# (last-write-wins); dict insertion order gives first-occurrence order.

# @see: services/graph/normalizer.py - Per-record normalization
# @see: services/graph/client.py - Feeds API responses through load_graph()
# @note: Dangling edges (endpoint not among the nodes) are retained here;
#        the filter engine and the visualization adapter skip them

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping

from services.graph.models import Entity, GraphData, Relationship
from services.graph.normalizer import (
    entity_from_payload,
    normalize_record,
    relationship_from_payload,
)


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


# ============================================================================
# RESULT
# ============================================================================


@dataclass(frozen=True)
class AggregationResult:
    """Aggregated snapshot plus record accounting."""

    graph: GraphData
    records_in: int = 0
    records_skipped: int = 0

    @property
    def records_used(self) -> int:
        return self.records_in - self.records_skipped

    @classmethod
    def empty(cls) -> "AggregationResult":
        return cls(graph=GraphData.empty())


# ============================================================================
# AGGREGATION
# ============================================================================


def aggregate_records(records: Iterable[Any]) -> AggregationResult:
    """
    Normalize and deduplicate a sequence of raw `{n, r, m}` records.

    Args:
        records: Raw result records (mappings); anything unusable is skipped

    Returns:
        AggregationResult with unique entities and relationships
    """
    entities: Dict[str, Entity] = {}
    relationships: Dict[str, Relationship] = {}
    records_in = 0
    skipped = 0

    for record in records or ():
        records_in += 1
        normalized = normalize_record(record)
        if normalized is None:
            skipped += 1
            continue

        if normalized.source is not None:
            entities[normalized.source.id] = normalized.source
        if normalized.target is not None:
            entities[normalized.target.id] = normalized.target
        if normalized.relationship is not None:
            relationships[normalized.relationship.id] = normalized.relationship

    if skipped:
        logger.debug(f"Aggregation skipped {skipped} of {records_in} records")

    graph = GraphData(
        nodes=tuple(entities.values()),
        edges=tuple(relationships.values()),
    )
    return AggregationResult(graph=graph, records_in=records_in, records_skipped=skipped)


def graph_from_response(response: Any) -> AggregationResult:
    """
    Aggregate a raw query response `{"success": bool, "results": [...]}`.

    An unsuccessful response or one without a results list yields an empty
    result rather than an error.
    """
    if not isinstance(response, Mapping):
        logger.warning("Query response is not a JSON object; using empty graph")
        return AggregationResult.empty()

    if response.get("success") is False:
        logger.warning(f"Query response reported failure: {response.get('error', 'unknown error')}")
        return AggregationResult.empty()

    results = response.get("results")
    if not isinstance(results, list):
        logger.warning("Query response has no results list; using empty graph")
        return AggregationResult.empty()

    return aggregate_records(results)


def graph_from_payload(payload: Any) -> AggregationResult:
    """
    Parse a GraphData-shaped payload `{"nodes": [...], "edges": [...]}`.

    Malformed items are skipped and counted like malformed records; duplicate
    ids are merged last-write-wins.
    """
    if not isinstance(payload, Mapping):
        logger.warning("Graph payload is not a JSON object; using empty graph")
        return AggregationResult.empty()

    raw_nodes = payload.get("nodes") or []
    raw_edges = payload.get("edges") or []
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        logger.warning("Graph payload nodes/edges are not lists; using empty graph")
        return AggregationResult.empty()

    entities: Dict[str, Entity] = {}
    relationships: Dict[str, Relationship] = {}
    skipped = 0

    for item in raw_nodes:
        entity = entity_from_payload(item)
        if entity is None:
            skipped += 1
            continue
        entities[entity.id] = entity

    for item in raw_edges:
        relationship = relationship_from_payload(item)
        if relationship is None:
            skipped += 1
            continue
        relationships[relationship.id] = relationship

    if skipped:
        logger.debug(f"Graph payload skipped {skipped} malformed items")

    graph = GraphData(
        nodes=tuple(entities.values()),
        edges=tuple(relationships.values()),
    )
    return AggregationResult(
        graph=graph,
        records_in=len(raw_nodes) + len(raw_edges),
        records_skipped=skipped,
    )


def load_graph(payload: Any) -> AggregationResult:
    """Aggregate either supported response shape."""
    if isinstance(payload, Mapping) and ("results" in payload or "success" in payload):
        return graph_from_response(payload)
    return graph_from_payload(payload)
