# formatting.py
# Display helpers: labels, property values, property ordering and colors

# Every function here is total and deterministic: any Entity, Relationship or
# PropertyValue produces a string (or list of pairs) without raising. Used by
# the visualization adapter for element labels/styles and by the console
# detail panels.

# @see: services/graph/visualization.py - Element labels and stylesheet colors
# @see: services/graph/export.py - Human-readable export rows
# @note: Color lookups upper-case the relationship type, then match exactly

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Tuple

from services.graph.models import Entity, Properties, Relationship


# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_RELATIONSHIP_COLOR = "#000000"
DEFAULT_NODE_COLOR = "#6b48ff"
SELECTED_COLOR = "#feac0e"
NEUTRAL_GRAY = "#363636"

# Relationship colors (architecture palette)
RELATIONSHIP_COLORS: Dict[str, str] = {
    "NETWORK": "#0adbe3",
    "COMPUTING": "#6b48ff",
    "STORAGE": "#0897e9",
    "USES": "#0897e9",
    "DEPENDS_ON": "#feac0e",
    "COMMUNICATES_WITH": "#0adbe3",
    "STORES_DATA_IN": "#0897e9",
    "CONTAINS": NEUTRAL_GRAY,
    "SERVES": NEUTRAL_GRAY,
    "SECURES": NEUTRAL_GRAY,
}

# Node colors keyed by lower-cased category or label
CATEGORY_COLORS: Dict[str, str] = {
    "ic": "#6b48ff",
    "application": "#6b48ff",
    "computing": "#6b48ff",
    "database": "#0897e9",
    "storage": "#0897e9",
    "network": "#0adbe3",
}

PRIORITY_PROPERTIES = ("name", "type", "category", "description", "status", "environment")
HIDDEN_PROPERTIES = frozenset({"id", "labels", "identity", "elementId", "element_id"})

COMPLEX_PLACEHOLDER = "[Complex object]"
EMPTY_VALUE = "-"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


# ============================================================================
# LABELS
# ============================================================================


def format_label_text(text: Optional[str]) -> str:
    """
    Turn SNAKE_CASE or CamelCase identifiers into readable words.

    Examples:
        "DEPENDS_ON"   -> "Depends On"
        "LoadBalancer" -> "Load Balancer"
    """
    if not text:
        return ""
    spaced = _CAMEL_BOUNDARY.sub(" ", str(text).replace("_", " "))
    return " ".join(word[:1].upper() + word[1:].lower() for word in spaced.split())


def entity_category(entity: Entity) -> str:
    """Category of an entity: properties.category, else the primary label."""
    category = entity.properties.get("category")
    if isinstance(category, str) and category.strip():
        return category
    return entity.labels[0] if entity.labels else ""


def display_label(entity: Optional[Entity]) -> str:
    """Human-readable name of an entity; never empty."""
    if entity is None:
        return "Unknown Node"

    name = entity.properties.get("name")
    if name is not None and not isinstance(name, bool):
        text = format_property_value(name)
        if text.strip() and text != EMPTY_VALUE:
            return text

    if entity.labels:
        formatted = format_label_text(entity.labels[0])
        if formatted:
            return formatted

    if entity.id:
        return f"Node {entity.id[:8]}"
    return "Unknown Node"


def format_node_label(entity: Entity) -> str:
    """'name (category) - type' summary used in selectors and tables."""
    name = entity.properties.get("name")
    label = format_property_value(name) if name not in (None, "") else "Unknown"

    category = entity.properties.get("category")
    node_type = entity.properties.get("type")
    if category:
        label += f" ({format_property_value(category)})"
    if node_type and node_type != category:
        label += f" - {format_property_value(node_type)}"
    return label


def format_edge_label(edge: Relationship) -> str:
    """'TYPE: description' summary of a relationship."""
    label = edge.type or "Relationship"
    description = edge.properties.get("description")
    if description:
        label += f": {format_property_value(description)}"
    return label


# ============================================================================
# PROPERTY VALUES
# ============================================================================


def _format_number(value: float) -> str:
    if value != value or value in (float("inf"), float("-inf")):
        return str(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_property_value(value: Any) -> str:
    """Render any property value as a display string."""
    if value is None:
        return EMPTY_VALUE
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, (str, int)):
        return str(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return EMPTY_VALUE
        return ", ".join(format_property_value(item) for item in value)
    try:
        return json.dumps(value, sort_keys=True)
    except (TypeError, ValueError):
        return COMPLEX_PLACEHOLDER


def sorted_properties(properties: Optional[Properties]) -> List[Tuple[str, Any]]:
    """
    Order properties for display.

    Bookkeeping keys are dropped; priority keys come first in fixed order,
    then the remaining keys alphabetically.
    """
    if not properties:
        return []

    visible = [(k, v) for k, v in properties.items() if k not in HIDDEN_PROPERTIES]
    priority = sorted(
        (item for item in visible if item[0] in PRIORITY_PROPERTIES),
        key=lambda item: PRIORITY_PROPERTIES.index(item[0]),
    )
    regular = sorted(
        (item for item in visible if item[0] not in PRIORITY_PROPERTIES),
        key=lambda item: item[0],
    )
    return priority + regular


def node_tooltip_lines(entity: Entity, max_properties: int = 5) -> List[str]:
    """Short text lines shown while hovering an entity."""
    lines = [display_label(entity)]
    if entity.labels:
        lines.append(f"Labels: {', '.join(entity.labels)}")
    shown = 0
    for key, value in sorted_properties(entity.properties):
        if key == "name":
            continue
        if shown >= max_properties:
            break
        lines.append(f"{key}: {format_property_value(value)}")
        shown += 1
    return lines


def edge_tooltip_lines(edge: Relationship) -> List[str]:
    lines = [format_edge_label(edge)]
    for key, value in sorted_properties(edge.properties):
        if key == "description":
            continue
        lines.append(f"{key}: {format_property_value(value)}")
    return lines


# ============================================================================
# COLORS
# ============================================================================


def relationship_color(rel_type: Optional[str]) -> str:
    """Color token for a relationship type; DEFAULT_RELATIONSHIP_COLOR if unknown."""
    if not rel_type:
        return DEFAULT_RELATIONSHIP_COLOR
    return RELATIONSHIP_COLORS.get(str(rel_type).upper(), DEFAULT_RELATIONSHIP_COLOR)


def category_color(category: Optional[str]) -> str:
    """Color token for an entity category or label; DEFAULT_NODE_COLOR if unknown."""
    if not category:
        return DEFAULT_NODE_COLOR
    return CATEGORY_COLORS.get(str(category).lower(), DEFAULT_NODE_COLOR)


def entity_color(entity: Entity) -> str:
    """Color of the first label or category with a known color."""
    for candidate in (entity_category(entity),) + tuple(entity.labels):
        if candidate and candidate.lower() in CATEGORY_COLORS:
            return CATEGORY_COLORS[candidate.lower()]
    return DEFAULT_NODE_COLOR
