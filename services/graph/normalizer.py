# normalizer.py
# Converts raw graph-query records into canonical Entity/Relationship models

# A raw record carries up to three sub-structures: `n` (source entity), `r`
# (relationship) and `m` (target entity). Each may be a plain mapping, as
# produced by the API's Cypher projections, or a neo4j driver Node /
# Relationship object, as produced by ad hoc queries.

# @see: services/graph/aggregator.py - Deduplicates normalized records
# @see: api/graph_store.py - Produces the mapping form of raw records
# @note: Absent sub-structures contribute nothing; a present but malformed one
#        makes the whole record unusable (silent skip, logged at DEBUG)

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, NamedTuple, Optional

from neo4j.graph import Node as Neo4jNode
from neo4j.graph import Relationship as Neo4jRelationship

from services.graph.models import Entity, Properties, PropertyValue, Relationship


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

# Keys accepted as the store-assigned identity, in order of preference
IDENTITY_KEYS = ("identity", "element_id", "elementId", "id")

SOURCE_KEY = "n"
RELATIONSHIP_KEY = "r"
TARGET_KEY = "m"


class MalformedRecord(ValueError):
    """A sub-structure of a raw record is present but unusable."""


class NormalizedRecord(NamedTuple):
    source: Optional[Entity]
    relationship: Optional[Relationship]
    target: Optional[Entity]


# ============================================================================
# VALUE COERCION
# ============================================================================


def _coerce_scalar(value: Any):
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def coerce_property_value(value: Any) -> PropertyValue:
    """Map any driver value onto the closed PropertyValue type."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_coerce_scalar(item) for item in value]
    if isinstance(value, Mapping):
        try:
            return json.dumps(value, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return str(value)
    # Temporal, spatial and other driver types
    return str(value)


def coerce_properties(raw: Any) -> Properties:
    if not isinstance(raw, Mapping):
        raise MalformedRecord("properties must be a mapping")
    return {str(key): coerce_property_value(value) for key, value in raw.items()}


def _identity(raw: Any, keys=IDENTITY_KEYS) -> str:
    for key in keys:
        if key in raw and raw[key] is not None:
            value = raw[key]
            if isinstance(value, bool) or not isinstance(value, (str, int)):
                raise MalformedRecord(f"identity has unsupported type {type(value).__name__}")
            text = str(value)
            if not text:
                raise MalformedRecord("identity is empty")
            return text
    raise MalformedRecord("identity is missing")


def _optional_identity(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Mapping):
        return _identity(value)
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise MalformedRecord("endpoint reference has unsupported type")
    return str(value) or None


# ============================================================================
# SUB-STRUCTURE NORMALIZATION
# ============================================================================


def normalize_entity(raw: Any) -> Entity:
    """
    Build an Entity from a driver Node or an identity/labels/properties mapping.

    Raises:
        MalformedRecord: If a required part is missing or has the wrong shape
    """
    if isinstance(raw, Neo4jNode):
        return Entity(
            id=raw.element_id,
            # Driver labels are an unordered frozenset
            labels=tuple(sorted(raw.labels)),
            properties=coerce_properties(dict(raw.items())),
        )

    if not isinstance(raw, Mapping):
        raise MalformedRecord("entity must be a mapping")

    labels = raw.get("labels")
    if not isinstance(labels, (list, tuple)) or not all(
        isinstance(label, str) for label in labels
    ):
        raise MalformedRecord("labels must be a list of strings")

    if "properties" not in raw:
        raise MalformedRecord("properties are missing")

    return Entity(
        id=_identity(raw),
        labels=tuple(labels),
        properties=coerce_properties(raw["properties"]),
    )


def normalize_relationship(
    raw: Any,
    source_id: Optional[str] = None,
    target_id: Optional[str] = None,
) -> Relationship:
    """
    Build a Relationship from a driver Relationship or a mapping.

    The relationship's own start/end take precedence over the ids of the
    record's `n` and `m` entities, which are only used as fallbacks.

    Raises:
        MalformedRecord: If identity, type, properties or an endpoint is unusable
    """
    if isinstance(raw, Neo4jRelationship):
        start = raw.start_node.element_id if raw.start_node is not None else source_id
        end = raw.end_node.element_id if raw.end_node is not None else target_id
        if not start or not end:
            raise MalformedRecord("relationship endpoints are unknown")
        return Relationship(
            id=raw.element_id,
            type=raw.type,
            source=start,
            target=end,
            properties=coerce_properties(dict(raw.items())),
        )

    if not isinstance(raw, Mapping):
        raise MalformedRecord("relationship must be a mapping")

    rel_type = raw.get("type")
    if not isinstance(rel_type, str) or not rel_type:
        raise MalformedRecord("relationship type is missing")

    if "properties" not in raw:
        raise MalformedRecord("properties are missing")

    start = _optional_identity(raw.get("start")) or source_id
    end = _optional_identity(raw.get("end")) or target_id
    if not start or not end:
        raise MalformedRecord("relationship endpoints are unknown")

    return Relationship(
        id=_identity(raw),
        type=rel_type,
        source=start,
        target=end,
        properties=coerce_properties(raw["properties"]),
    )


# ============================================================================
# RECORD NORMALIZATION
# ============================================================================


def normalize_record(record: Any) -> Optional[NormalizedRecord]:
    """
    Normalize one `{n, r, m}` record.

    Returns:
        NormalizedRecord with zero or one of each part, or None when the record
        must be skipped (not a mapping, nothing usable, or a malformed part)
    """
    if not isinstance(record, Mapping):
        logger.debug(f"Skipping record of type {type(record).__name__}")
        return None

    raw_source = record.get(SOURCE_KEY)
    raw_rel = record.get(RELATIONSHIP_KEY)
    raw_target = record.get(TARGET_KEY)

    if raw_source is None and raw_rel is None and raw_target is None:
        logger.debug("Skipping record without n/r/m")
        return None

    try:
        source = normalize_entity(raw_source) if raw_source is not None else None
        target = normalize_entity(raw_target) if raw_target is not None else None
        relationship = None
        if raw_rel is not None:
            relationship = normalize_relationship(
                raw_rel,
                source_id=source.id if source else None,
                target_id=target.id if target else None,
            )
    except (MalformedRecord, ValueError) as e:
        logger.debug(f"Skipping malformed record: {e}")
        return None

    return NormalizedRecord(source=source, relationship=relationship, target=target)


# ============================================================================
# GRAPHDATA PAYLOAD ITEMS
# ============================================================================


def entity_from_payload(item: Any) -> Optional[Entity]:
    """Parse one node of a `{nodes, edges}` payload; None if unusable."""
    if not isinstance(item, Mapping):
        return None
    try:
        labels = item.get("labels") or ()
        if not isinstance(labels, (list, tuple)):
            raise MalformedRecord("labels must be a list")
        return Entity(
            id=_identity(item, keys=("id",)),
            labels=tuple(str(label) for label in labels),
            properties=coerce_properties(item.get("properties") or {}),
        )
    except (MalformedRecord, ValueError) as e:
        logger.debug(f"Skipping malformed node payload: {e}")
        return None


def relationship_from_payload(item: Any) -> Optional[Relationship]:
    """Parse one edge of a `{nodes, edges}` payload; None if unusable."""
    if not isinstance(item, Mapping):
        return None
    try:
        rel_type = item.get("type")
        if not isinstance(rel_type, str) or not rel_type:
            raise MalformedRecord("relationship type is missing")
        source = _optional_identity(item.get("source"))
        target = _optional_identity(item.get("target"))
        if not source or not target:
            raise MalformedRecord("relationship endpoints are unknown")
        return Relationship(
            id=_identity(item, keys=("id",)),
            type=rel_type,
            source=source,
            target=target,
            properties=coerce_properties(item.get("properties") or {}),
        )
    except (MalformedRecord, ValueError) as e:
        logger.debug(f"Skipping malformed edge payload: {e}")
        return None
