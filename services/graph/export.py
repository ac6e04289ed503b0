# export.py
# Flattens GraphData into tabular rows and serializes them as CSV or JSON

# Node rows carry a display label, the category, the joined labels and every
# property as formatted text. Edge rows substitute endpoint display labels for
# raw ids where the endpoint is present in the snapshot.

# @see: api/routers/graph.py - /api/neo4j/graph/export download endpoint
# @see: UI/console.py - Download buttons
# @note: Exporting an empty snapshot is a logged no-op (None), not an error

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from services.graph.formatting import (
    display_label,
    entity_category,
    format_property_value,
    sorted_properties,
)
from services.graph.models import GraphData


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


NODE_COLUMNS = ["id", "label", "category", "labels"]
EDGE_COLUMNS = ["id", "type", "source", "target", "source_label", "target_label"]


class ExportFormat(str, Enum):
    """Available graph export formats."""
    CSV = "csv"
    JSON = "json"


@dataclass(frozen=True)
class ExportRows:
    node_rows: List[Dict[str, str]] = field(default_factory=list)
    edge_rows: List[Dict[str, str]] = field(default_factory=list)


def export_as_rows(graph: GraphData) -> ExportRows:
    """Flatten entities and relationships into string-valued rows."""
    node_rows = []
    for node in graph.nodes:
        row = {
            "id": node.id,
            "label": display_label(node),
            "category": entity_category(node),
            "labels": ", ".join(node.labels),
        }
        for key, value in sorted_properties(node.properties):
            row.setdefault(key, format_property_value(value))
        node_rows.append(row)

    edge_rows = []
    for edge in graph.edges:
        source = graph.get_node(edge.source)
        target = graph.get_node(edge.target)
        row = {
            "id": edge.id,
            "type": edge.type,
            "source": edge.source,
            "target": edge.target,
            "source_label": display_label(source) if source else edge.source,
            "target_label": display_label(target) if target else edge.target,
        }
        for key, value in sorted_properties(edge.properties):
            row.setdefault(key, format_property_value(value))
        edge_rows.append(row)

    return ExportRows(node_rows=node_rows, edge_rows=edge_rows)


def _columns(rows: List[Dict[str, str]], fixed: List[str]) -> List[str]:
    extra = sorted({key for row in rows for key in row} - set(fixed))
    return fixed + extra


def rows_to_csv(rows: ExportRows) -> str:
    """Nodes and edges as two CSV sections headed '# NODES' and '# EDGES'."""
    output = io.StringIO()

    output.write("# NODES\n")
    writer = csv.DictWriter(
        output, fieldnames=_columns(rows.node_rows, NODE_COLUMNS), restval="", lineterminator="\n"
    )
    writer.writeheader()
    writer.writerows(rows.node_rows)

    output.write("\n# EDGES\n")
    writer = csv.DictWriter(
        output, fieldnames=_columns(rows.edge_rows, EDGE_COLUMNS), restval="", lineterminator="\n"
    )
    writer.writeheader()
    writer.writerows(rows.edge_rows)

    return output.getvalue()


def rows_to_json(rows: ExportRows) -> str:
    payload: Dict[str, Any] = {"nodes": rows.node_rows, "edges": rows.edge_rows}
    return json.dumps(payload, indent=2, ensure_ascii=False)


def export_graph(graph: GraphData, export_format: Any = ExportFormat.JSON) -> Optional[str]:
    """
    Export a snapshot in the requested format.

    Returns:
        The serialized document, or None when the snapshot is empty

    Raises:
        ValueError: If the format is not an ExportFormat
    """
    fmt = ExportFormat(export_format)
    if graph.is_empty:
        logger.warning("Export requested for an empty graph; nothing to export")
        return None

    rows = export_as_rows(graph)
    logger.info(f"Exporting {len(rows.node_rows)} nodes and {len(rows.edge_rows)} edges as {fmt.value}")
    if fmt is ExportFormat.CSV:
        return rows_to_csv(rows)
    return rows_to_json(rows)
