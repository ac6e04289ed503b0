# graph_store.py
# Neo4j access layer for architecture nodes and relationships

# Owns every Cypher statement the API runs. Nodes and relationships are
# projected into explicit maps (identity / labels / type / start / end /
# properties) so the normalizer sees the same shape for every endpoint and
# label order is preserved.

# @see: api/neo4j_config.py - Driver singleton
# @see: api/routers/ - HTTP endpoints built on GraphStore
# @see: services/graph/normalizer.py - Consumes the projected maps
# @note: Labels and relationship types cannot be Cypher parameters; they are
#        validated against IDENTIFIER_PATTERN before interpolation

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from neo4j.graph import Node as Neo4jNode
from neo4j.graph import Path as Neo4jPath
from neo4j.graph import Relationship as Neo4jRelationship

from api.config import NEO4J_DATABASE
from services.graph.aggregator import AggregationResult, aggregate_records
from services.graph.normalizer import coerce_properties, coerce_property_value


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DELETED = "deleted"
NOT_FOUND = "not_found"
HAS_RELATIONSHIPS = "has_relationships"


def _node_map(var: str) -> str:
    return f"{{identity: elementId({var}), labels: labels({var}), properties: properties({var})}}"


def _rel_map(var: str) -> str:
    return (
        f"{{identity: elementId({var}), type: type({var}), "
        f"start: elementId(startNode({var})), end: elementId(endNode({var})), "
        f"properties: properties({var})}}"
    )


ENVIRONMENT_FILTER = "($environment IS NULL OR n.environment = $environment OR m.environment = $environment)"


# ============================================================================
# VALIDATION AND SERIALIZATION
# ============================================================================


def validate_identifier(name: str, kind: str = "label") -> str:
    """
    Check a label or relationship type before it is interpolated into Cypher.

    Raises:
        ValueError: If the name is not a plain identifier
    """
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
        raise ValueError(f"Invalid {kind}: {name!r}")
    return name


def environment_filter(environment: Optional[str]) -> Optional[str]:
    """None (no filtering) for a missing or "all" environment."""
    if not environment or environment.strip().lower() == "all":
        return None
    return environment.strip()


def label_clause(labels: Sequence[str]) -> str:
    """':A:B' for validated labels, '' for none."""
    return "".join(f":{validate_identifier(label)}" for label in labels)


def serialize_graph_value(value: Any) -> Any:
    """Convert driver values (nodes, relationships, paths) into JSON-safe maps."""
    if isinstance(value, Neo4jNode):
        return {
            "identity": value.element_id,
            "labels": sorted(value.labels),
            "properties": coerce_properties(dict(value.items())),
        }
    if isinstance(value, Neo4jRelationship):
        return {
            "identity": value.element_id,
            "type": value.type,
            "start": value.start_node.element_id if value.start_node is not None else None,
            "end": value.end_node.element_id if value.end_node is not None else None,
            "properties": coerce_properties(dict(value.items())),
        }
    if isinstance(value, Neo4jPath):
        return {
            "nodes": [serialize_graph_value(node) for node in value.nodes],
            "relationships": [serialize_graph_value(rel) for rel in value.relationships],
        }
    if isinstance(value, dict):
        return {str(k): serialize_graph_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_graph_value(item) for item in value]
    return coerce_property_value(value)


# ============================================================================
# GRAPH STORE
# ============================================================================


class GraphStore:
    """
    Cypher operations over the architecture graph.

    Usage:
        store = GraphStore(neo4j_driver)
        result = store.get_graph(limit=100, environment="production")
    """

    def __init__(self, driver, database: str = NEO4J_DATABASE):
        self.driver = driver
        self.database = database

    def _run(self, cypher: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with self.driver.session(database=self.database) as session:
            result = session.run(cypher, params or {})
            return [dict(record.items()) for record in result]

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def get_graph_records(self, limit: int, environment: Optional[str] = None) -> List[Dict[str, Any]]:
        cypher = f"""
        MATCH (n)-[r]->(m)
        WHERE {ENVIRONMENT_FILTER}
        RETURN {_node_map('n')} AS n, {_rel_map('r')} AS r, {_node_map('m')} AS m
        LIMIT $limit
        """
        return self._run(cypher, {"limit": limit, "environment": environment})

    def get_graph(self, limit: int, environment: Optional[str] = None) -> AggregationResult:
        records = self.get_graph_records(limit, environment)
        result = aggregate_records(records)
        logger.info(
            f"Graph fetch (limit={limit}, environment={environment or 'all'}): "
            f"{result.records_in} records, {len(result.graph.nodes)} nodes, "
            f"{len(result.graph.edges)} edges"
        )
        return result

    def run_query(self, cypher: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run ad hoc Cypher; driver values are serialized into maps."""
        rows = self._run(cypher, params)
        return [{key: serialize_graph_value(value) for key, value in row.items()} for row in rows]

    def relationship_types(self, environment: Optional[str] = None) -> List[Dict[str, Any]]:
        cypher = f"""
        MATCH (n)-[r]->(m)
        WHERE {ENVIRONMENT_FILTER}
        RETURN type(r) AS type, count(r) AS count
        ORDER BY type
        """
        return self._run(cypher, {"environment": environment})

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def list_nodes(
        self,
        skip: int,
        limit: int,
        labels: Sequence[str] = (),
        environment: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """One page of nodes ordered by name, plus the total match count."""
        cypher = f"""
        MATCH (x{label_clause(labels)})
        WHERE ($environment IS NULL OR x.environment = $environment)
          AND ($search IS NULL
               OR toLower(coalesce(toString(x.name), '')) CONTAINS toLower($search)
               OR toLower(coalesce(toString(x.description), '')) CONTAINS toLower($search))
        WITH x ORDER BY toLower(coalesce(toString(x.name), '')), elementId(x)
        WITH collect(x) AS matched
        RETURN size(matched) AS total,
               [x IN matched[$skip..($skip + $limit)] | {_node_map('x')}] AS nodes
        """
        rows = self._run(
            cypher,
            {"skip": skip, "limit": limit, "environment": environment, "search": search},
        )
        if not rows:
            return [], 0
        return rows[0].get("nodes") or [], int(rows[0].get("total") or 0)

    def get_node(self, node_id: str) -> Optional[Dict[str, Any]]:
        """Node plus its outgoing and incoming (relationship, node) pairs."""
        cypher = f"""
        MATCH (n) WHERE elementId(n) = $id
        OPTIONAL MATCH (n)-[out]->(target)
        WITH n, collect(CASE WHEN out IS NULL THEN NULL
                        ELSE {{relationship: {_rel_map('out')}, node: {_node_map('target')}}} END) AS outgoing
        OPTIONAL MATCH (source)-[inc]->(n)
        RETURN {_node_map('n')} AS node,
               outgoing,
               collect(CASE WHEN inc IS NULL THEN NULL
                       ELSE {{relationship: {_rel_map('inc')}, node: {_node_map('source')}}} END) AS incoming
        """
        rows = self._run(cypher, {"id": node_id})
        return rows[0] if rows else None

    def create_node(self, labels: Sequence[str], properties: Dict[str, Any]) -> Dict[str, Any]:
        cypher = f"""
        CREATE (n{label_clause(labels)})
        SET n = $properties
        RETURN {_node_map('n')} AS node
        """
        rows = self._run(cypher, {"properties": properties})
        logger.info(f"Created node with labels {list(labels)}")
        return rows[0]["node"]

    def update_node(
        self,
        node_id: str,
        properties: Optional[Dict[str, Any]] = None,
        add_labels: Sequence[str] = (),
        remove_labels: Sequence[str] = (),
    ) -> Optional[Dict[str, Any]]:
        """Replace properties and add/remove labels; None if the node does not exist."""
        statements = ["MATCH (n) WHERE elementId(n) = $id"]
        if properties is not None:
            statements.append("SET n = $properties")
        if add_labels:
            statements.append(f"SET n{label_clause(add_labels)}")
        if remove_labels:
            statements.append(f"REMOVE n{label_clause(remove_labels)}")
        statements.append(f"RETURN {_node_map('n')} AS node")

        rows = self._run("\n".join(statements), {"id": node_id, "properties": properties})
        return rows[0]["node"] if rows else None

    def delete_node(self, node_id: str, detach: bool = False) -> str:
        """
        Delete a node.

        Returns:
            DELETED, NOT_FOUND, or HAS_RELATIONSHIPS when relationships remain
            and detach is False
        """
        rows = self._run(
            """
            MATCH (n) WHERE elementId(n) = $id
            OPTIONAL MATCH (n)-[r]-()
            RETURN elementId(n) AS id, count(r) AS rel_count
            """,
            {"id": node_id},
        )
        if not rows:
            return NOT_FOUND
        if rows[0].get("rel_count", 0) and not detach:
            return HAS_RELATIONSHIPS

        self._run(
            "MATCH (n) WHERE elementId(n) = $id DETACH DELETE n"
            if detach
            else "MATCH (n) WHERE elementId(n) = $id DELETE n",
            {"id": node_id},
        )
        logger.info(f"Deleted node {node_id} (detach={detach})")
        return DELETED

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def list_edges(self, rel_type: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        type_clause = f":{validate_identifier(rel_type, 'relationship type')}" if rel_type else ""
        cypher = f"""
        MATCH (a)-[r{type_clause}]->(b)
        RETURN {_rel_map('r')} AS r, {_node_map('a')} AS source, {_node_map('b')} AS target
        LIMIT $limit
        """
        return self._run(cypher, {"limit": limit})

    def get_edge(self, edge_id: str) -> Optional[Dict[str, Any]]:
        cypher = f"""
        MATCH (a)-[r]->(b) WHERE elementId(r) = $id
        RETURN {_rel_map('r')} AS r, {_node_map('a')} AS source, {_node_map('b')} AS target
        """
        rows = self._run(cypher, {"id": edge_id})
        return rows[0] if rows else None

    def create_edge(
        self,
        source: str,
        target: str,
        rel_type: str,
        properties: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        """Create a relationship; None if either endpoint is missing."""
        cypher = f"""
        MATCH (a) WHERE elementId(a) = $source
        MATCH (b) WHERE elementId(b) = $target
        CREATE (a)-[r:{validate_identifier(rel_type, 'relationship type')}]->(b)
        SET r = $properties
        RETURN {_rel_map('r')} AS r
        """
        rows = self._run(cypher, {"source": source, "target": target, "properties": properties})
        if not rows:
            return None
        logger.info(f"Created {rel_type} relationship {source} -> {target}")
        return rows[0]["r"]

    def update_edge(self, edge_id: str, properties: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        cypher = f"""
        MATCH ()-[r]->() WHERE elementId(r) = $id
        SET r = $properties
        RETURN {_rel_map('r')} AS r
        """
        rows = self._run(cypher, {"id": edge_id, "properties": properties})
        return rows[0]["r"] if rows else None

    def delete_edge(self, edge_id: str) -> bool:
        rows = self._run(
            """
            MATCH ()-[r]->() WHERE elementId(r) = $id
            DELETE r
            RETURN count(*) AS deleted
            """,
            {"id": edge_id},
        )
        deleted = bool(rows and rows[0].get("deleted"))
        if deleted:
            logger.info(f"Deleted relationship {edge_id}")
        return deleted
