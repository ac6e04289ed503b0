# errors.py
# Exception hierarchy for the graph pipeline and console

# Failures that cross a component boundary are raised as one of these so the
# console can map them onto a degraded-but-functional display state.

# @see: services/graph/client.py - Raises GraphFetchError
# @see: services/graph/visualization.py - Catches RenderingEngineError

from typing import Optional


class GraphError(Exception):
    """Base class for graph pipeline errors."""


class GraphFetchError(GraphError):
    """The REST API could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RenderingEngineError(GraphError):
    """The rendering engine could not be loaded or refused the elements."""
