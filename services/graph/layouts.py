# layouts.py
# Deterministic layout algorithms for graph snapshots

# Computes x/y positions for the named non-physics layouts. Used by the pyvis
# engine for circle/grid/concentric/breadthfirst (physics disabled) and by the
# fallback presentation when no rendering engine is available.

# @see: services/graph/pyvis_engine.py - Fixed-position layouts
# @see: services/graph/visualization.py - Fallback presentation (radial)
# @note: Only resolvable edges count towards adjacency; identical input
#        always yields identical positions

from __future__ import annotations

import math
from collections import deque
from typing import Dict, List, Optional, Set, Tuple

from services.graph.models import GraphData


Position = Tuple[float, float]
Positions = Dict[str, Position]

DEFAULT_WIDTH = 1000.0
DEFAULT_HEIGHT = 800.0


# ============================================================================
# HELPERS
# ============================================================================


def _adjacency(graph: GraphData) -> Dict[str, Set[str]]:
    neighbors: Dict[str, Set[str]] = {node.id: set() for node in graph.nodes}
    for edge in graph.resolvable_edges():
        if edge.source == edge.target:
            continue
        neighbors[edge.source].add(edge.target)
        neighbors[edge.target].add(edge.source)
    return neighbors


def highest_degree_node(graph: GraphData) -> Optional[str]:
    """Id of the best-connected node (ties broken by smallest id)."""
    if not graph.nodes:
        return None
    neighbors = _adjacency(graph)
    return min(neighbors, key=lambda node_id: (-len(neighbors[node_id]), node_id))


def _bfs_levels(neighbors: Dict[str, Set[str]], roots: List[str]) -> Dict[str, int]:
    levels: Dict[str, int] = {}
    queue = deque()
    for root in roots:
        if root in neighbors and root not in levels:
            levels[root] = 0
            queue.append(root)
    while queue:
        current = queue.popleft()
        for neighbor in sorted(neighbors[current]):
            if neighbor not in levels:
                levels[neighbor] = levels[current] + 1
                queue.append(neighbor)
    return levels


# ============================================================================
# LAYOUT ALGORITHMS
# ============================================================================


def circle_layout(
    graph: GraphData,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
) -> Positions:
    """All nodes on one circle, in snapshot order."""
    nodes = graph.nodes
    if not nodes:
        return {}

    center_x = width / 2
    center_y = height / 2
    if len(nodes) == 1:
        return {nodes[0].id: (center_x, center_y)}

    radius = min(width, height) * 0.4
    positions: Positions = {}
    for i, node in enumerate(nodes):
        angle = (2 * math.pi * i) / len(nodes)
        positions[node.id] = (
            center_x + radius * math.cos(angle),
            center_y + radius * math.sin(angle),
        )
    return positions


def grid_layout(
    graph: GraphData,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
) -> Positions:
    """Nodes on a near-square grid, row by row."""
    nodes = graph.nodes
    if not nodes:
        return {}

    columns = math.ceil(math.sqrt(len(nodes)))
    rows = math.ceil(len(nodes) / columns)
    cell_w = width / (columns + 1)
    cell_h = height / (rows + 1)

    return {
        node.id: (cell_w * (i % columns + 1), cell_h * (i // columns + 1))
        for i, node in enumerate(nodes)
    }


def radial_layout(
    graph: GraphData,
    center_node_id: Optional[str] = None,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
) -> Positions:
    """
    Concentric circles around a center node.

    The center defaults to the highest-degree node. Rings follow BFS distance
    from the center; nodes not connected to it share the outermost ring.
    """
    nodes = graph.nodes
    if not nodes:
        return {}

    center_x = width / 2
    center_y = height / 2
    neighbors = _adjacency(graph)

    center = center_node_id if center_node_id in neighbors else highest_degree_node(graph)
    levels = _bfs_levels(neighbors, [center])

    max_level = max(levels.values()) if levels else 0
    for node in nodes:
        if node.id not in levels:
            levels[node.id] = max_level + 1

    # Group by level, keeping snapshot order within a ring
    rings: Dict[int, List[str]] = {}
    for node in nodes:
        rings.setdefault(levels[node.id], []).append(node.id)

    outermost = max(rings) or 1
    max_radius = min(width, height) * 0.4
    positions: Positions = {}

    for level, ring in rings.items():
        if level == 0:
            for node_id in ring:
                positions[node_id] = (center_x, center_y)
            continue
        radius = (level / outermost) * max_radius
        for i, node_id in enumerate(ring):
            angle = (2 * math.pi * i) / len(ring)
            positions[node_id] = (
                center_x + radius * math.cos(angle),
                center_y + radius * math.sin(angle),
            )

    return positions


def breadthfirst_layout(
    graph: GraphData,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
) -> Positions:
    """
    Layered top-down layout.

    Roots are nodes without incoming resolvable edges (or the highest-degree
    node when every node has one); each BFS level becomes a row.
    """
    nodes = graph.nodes
    if not nodes:
        return {}

    neighbors = _adjacency(graph)
    has_incoming = {edge.target for edge in graph.resolvable_edges() if edge.source != edge.target}
    roots = [node.id for node in nodes if node.id not in has_incoming]
    if not roots:
        roots = [highest_degree_node(graph)]

    levels = _bfs_levels(neighbors, roots)
    # Disconnected cycles without a root start their own tree
    for node in nodes:
        if node.id not in levels:
            levels.update(
                {k: v for k, v in _bfs_levels(neighbors, [node.id]).items() if k not in levels}
            )

    layers: Dict[int, List[str]] = {}
    for node in nodes:
        layers.setdefault(levels[node.id], []).append(node.id)

    layer_height = height / (len(layers) + 1)
    positions: Positions = {}
    for layer_idx in sorted(layers):
        layer_nodes = layers[layer_idx]
        node_width = width / (len(layer_nodes) + 1)
        for i, node_id in enumerate(layer_nodes):
            positions[node_id] = (node_width * (i + 1), layer_height * (layer_idx + 1))
    return positions
