# __init__.py
# Graph pipeline package: normalize -> aggregate -> filter -> format -> visualize

# @see: services/graph/models.py - Entity, Relationship, GraphData
# @see: services/graph/visualization.py - VisualizationAdapter
# @see: services/graph/state.py - ConsoleState reducer

from services.graph.aggregator import AggregationResult, aggregate_records, load_graph
from services.graph.errors import GraphError, GraphFetchError, RenderingEngineError
from services.graph.filters import filter_graph
from services.graph.models import Entity, GraphData, Relationship

__all__ = [
    "AggregationResult",
    "Entity",
    "GraphData",
    "GraphError",
    "GraphFetchError",
    "Relationship",
    "RenderingEngineError",
    "aggregate_records",
    "filter_graph",
    "load_graph",
]
