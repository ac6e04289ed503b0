# filters.py
# Category / relationship-type filter engine over GraphData snapshots

# Filtering never mutates its input: each call derives a new snapshot from the
# retained full snapshot. Category filtering pulls in direct neighbours of the
# matched entities (single hop), then relationship-type filtering narrows the
# node set to the endpoints of qualifying edges.

# @see: services/graph/state.py - Recomputes the filtered view on every change
# @see: UI/console.py - Category/relationship multiselects
# @note: The final pass re-includes every edge between surviving nodes, which
#        can bring back a relationship type that was not selected

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from services.graph.formatting import display_label, entity_category, format_property_value
from services.graph.models import Entity, GraphData, Relationship


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


def _normalize_selection(values: Optional[Iterable[str]]) -> Set[str]:
    return {value for value in (values or ()) if value}


def filter_graph(
    full: GraphData,
    selected_categories: Optional[Iterable[str]] = None,
    selected_relationship_types: Optional[Iterable[str]] = None,
) -> GraphData:
    """
    Derive a filtered snapshot from a full one.

    Args:
        full: The retained, unfiltered snapshot
        selected_categories: Categories to keep (case-insensitive); empty keeps all
        selected_relationship_types: Relationship types to keep; empty keeps all

    Returns:
        New GraphData whose edges all have both endpoints among its nodes,
        in the order of the full snapshot
    """
    categories = {c.lower() for c in _normalize_selection(selected_categories)}
    rel_types = _normalize_selection(selected_relationship_types)
    node_ids = full.node_ids()

    # Category pass
    if not categories:
        candidate_ids = set(node_ids)
    else:
        direct_ids = {
            node.id for node in full.nodes if entity_category(node).lower() in categories
        }
        candidate_ids = set(direct_ids)
        for edge in full.edges:
            source_hit = edge.source in direct_ids
            target_hit = edge.target in direct_ids
            if source_hit == target_hit:
                continue
            neighbour = edge.target if source_hit else edge.source
            if neighbour in node_ids:
                candidate_ids.add(neighbour)

    candidate_edges = [
        edge for edge in full.edges
        if edge.source in candidate_ids and edge.target in candidate_ids
    ]

    # Relationship-type pass
    if rel_types:
        kept_ids: Set[str] = set()
        for edge in candidate_edges:
            if edge.type in rel_types:
                kept_ids.add(edge.source)
                kept_ids.add(edge.target)
        final_ids = kept_ids
    else:
        final_ids = candidate_ids

    nodes = tuple(node for node in full.nodes if node.id in final_ids)
    edges = tuple(
        edge for edge in full.edges
        if edge.source in final_ids and edge.target in final_ids
    )

    logger.debug(
        f"Filtered graph {len(full.nodes)}/{len(full.edges)} -> "
        f"{len(nodes)}/{len(edges)} (categories={sorted(categories)}, types={sorted(rel_types)})"
    )
    return GraphData(nodes=nodes, edges=edges)


def available_categories(graph: GraphData) -> List[str]:
    """Distinct non-empty entity categories, sorted."""
    return sorted({entity_category(node) for node in graph.nodes} - {""})


def available_relationship_types(graph: GraphData) -> List[str]:
    """Distinct relationship types, sorted."""
    return sorted({edge.type for edge in graph.edges})


def _matches(entity: Entity, term: str) -> bool:
    if term in display_label(entity).lower() or term in entity.id.lower():
        return True
    if any(term in label.lower() for label in entity.labels):
        return True
    return _properties_match(entity.properties, term)


def _properties_match(properties, term: str) -> bool:
    for key, value in properties.items():
        if term in key.lower() or term in format_property_value(value).lower():
            return True
    return False


def _edge_matches(edge: Relationship, term: str) -> bool:
    if term in edge.type.lower() or term in edge.id.lower():
        return True
    return _properties_match(edge.properties, term)


def search_graph(graph: GraphData, term: Optional[str]) -> GraphData:
    """
    Keep entities and edges whose text contains the search term.

    Entities match on display label, id, labels or properties; edges match on
    type, id or properties and must also connect two surviving entities. A
    blank term returns the snapshot unchanged.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return graph

    nodes = tuple(node for node in graph.nodes if _matches(node, needle))
    ids = {node.id for node in nodes}
    edges = tuple(
        e for e in graph.edges if e.source in ids and e.target in ids and _edge_matches(e, needle)
    )
    return GraphData(nodes=nodes, edges=edges)
