# state.py
# Console UI state and its pure reducer

# All mutable console state (fetched snapshot, filters, environment, layout,
# selection, fetch lifecycle) lives in one frozen ConsoleState. Every user or
# network event is a small event object; reduce(state, event) returns a new
# state and never mutates the old one.

# @see: UI/console.py - Keeps the current ConsoleState in st.session_state
# @see: services/graph/filters.py - Filtered view recomputation
# @note: Fetch results carry the request id of their FetchStarted; only the
#        most recently started request is applied (last response wins)

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Tuple, Union

from services.graph.filters import filter_graph, search_graph
from services.graph.models import Entity, GraphData, Relationship
from services.graph.visualization import LayoutName


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


STATUS_LOADING = "loading"
STATUS_ERROR = "error"
STATUS_EMPTY = "empty"
STATUS_READY = "ready"


# ============================================================================
# EVENTS
# ============================================================================


@dataclass(frozen=True)
class FetchStarted:
    request_id: int


@dataclass(frozen=True)
class FetchSucceeded:
    request_id: int
    graph: GraphData
    records_skipped: int = 0


@dataclass(frozen=True)
class FetchFailed:
    request_id: int
    message: str


@dataclass(frozen=True)
class NodeSelected:
    node_id: str


@dataclass(frozen=True)
class EdgeSelected:
    edge_id: str


@dataclass(frozen=True)
class SelectionCleared:
    pass


@dataclass(frozen=True)
class FiltersChanged:
    categories: Tuple[str, ...] = ()
    relationship_types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EnvironmentChanged:
    environment: str


@dataclass(frozen=True)
class LayoutChanged:
    layout: LayoutName


@dataclass(frozen=True)
class SearchChanged:
    term: str


ConsoleEvent = Union[
    FetchStarted,
    FetchSucceeded,
    FetchFailed,
    NodeSelected,
    EdgeSelected,
    SelectionCleared,
    FiltersChanged,
    EnvironmentChanged,
    LayoutChanged,
    SearchChanged,
]


# ============================================================================
# STATE
# ============================================================================


@dataclass(frozen=True)
class ConsoleState:
    """Everything the console page renders from."""

    full_graph: GraphData = field(default_factory=GraphData.empty)
    view: GraphData = field(default_factory=GraphData.empty)
    categories: Tuple[str, ...] = ()
    relationship_types: Tuple[str, ...] = ()
    search_term: str = ""
    environment: str = "all"
    layout: LayoutName = LayoutName.COLA
    selected_node_id: Optional[str] = None
    selected_edge_id: Optional[str] = None
    loading: bool = False
    error: Optional[str] = None
    pending_request_id: Optional[int] = None
    last_request_id: int = 0
    records_skipped: int = 0

    @property
    def status(self) -> str:
        if self.loading:
            return STATUS_LOADING
        if self.error:
            return STATUS_ERROR
        if self.view.is_empty:
            return STATUS_EMPTY
        return STATUS_READY

    @property
    def selected_node(self) -> Optional[Entity]:
        return self.view.get_node(self.selected_node_id)

    @property
    def selected_edge(self) -> Optional[Relationship]:
        return self.view.get_edge(self.selected_edge_id)

    def next_request_id(self) -> int:
        return self.last_request_id + 1


def compute_view(
    full: GraphData,
    categories: Iterable[str] = (),
    relationship_types: Iterable[str] = (),
    search_term: str = "",
) -> GraphData:
    """Filtered, then searched, view of the full snapshot."""
    return search_graph(filter_graph(full, categories, relationship_types), search_term)


def _with_view(state: ConsoleState, **changes) -> ConsoleState:
    updated = replace(state, **changes)
    view = compute_view(
        updated.full_graph,
        updated.categories,
        updated.relationship_types,
        updated.search_term,
    )
    node_id = updated.selected_node_id if view.get_node(updated.selected_node_id) else None
    edge_id = updated.selected_edge_id if view.get_edge(updated.selected_edge_id) else None
    return replace(updated, view=view, selected_node_id=node_id, selected_edge_id=edge_id)


# ============================================================================
# REDUCER
# ============================================================================


def reduce(state: ConsoleState, event: ConsoleEvent) -> ConsoleState:
    """
    Apply one event and return the next state.

    Raises:
        TypeError: If the event type is unknown
    """
    if isinstance(event, FetchStarted):
        return replace(
            state,
            loading=True,
            error=None,
            pending_request_id=event.request_id,
            last_request_id=max(state.last_request_id, event.request_id),
        )

    if isinstance(event, FetchSucceeded):
        if event.request_id != state.pending_request_id:
            logger.debug(f"Ignoring stale response for request {event.request_id}")
            return state
        return _with_view(
            state,
            full_graph=event.graph,
            loading=False,
            error=None,
            pending_request_id=None,
            records_skipped=event.records_skipped,
            selected_node_id=None,
            selected_edge_id=None,
        )

    if isinstance(event, FetchFailed):
        if event.request_id != state.pending_request_id:
            logger.debug(f"Ignoring stale failure for request {event.request_id}")
            return state
        # Previous snapshot stays on screen
        return replace(state, loading=False, error=event.message, pending_request_id=None)

    if isinstance(event, NodeSelected):
        if state.view.get_node(event.node_id) is None:
            return state
        return replace(state, selected_node_id=event.node_id, selected_edge_id=None)

    if isinstance(event, EdgeSelected):
        if state.view.get_edge(event.edge_id) is None:
            return state
        return replace(state, selected_edge_id=event.edge_id, selected_node_id=None)

    if isinstance(event, SelectionCleared):
        return replace(state, selected_node_id=None, selected_edge_id=None)

    if isinstance(event, FiltersChanged):
        return _with_view(
            state,
            categories=tuple(event.categories),
            relationship_types=tuple(event.relationship_types),
        )

    if isinstance(event, SearchChanged):
        return _with_view(state, search_term=event.term or "")

    if isinstance(event, EnvironmentChanged):
        return replace(state, environment=event.environment or "all")

    if isinstance(event, LayoutChanged):
        return replace(state, layout=LayoutName(event.layout))

    raise TypeError(f"Unknown console event: {type(event).__name__}")
