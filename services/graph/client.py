# client.py
# HTTP client for the ArchViews REST API, used by the Streamlit pages

# Wraps every /api/neo4j endpoint with requests and converts responses into
# pipeline types: graph fetches go through the aggregator so both the
# GraphData shape and the raw `{success, results}` shape are accepted.

# @see: api/routers/graph.py - Graph, query and export endpoints
# @see: api/routers/nodes.py - Node CRUD endpoints
# @see: api/routers/relationships.py - Edge CRUD and relationship types
# @note: Network errors and non-2xx answers raise GraphFetchError carrying the
#        backend's `detail` message; timeouts/retries are left to requests

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from api.config import API_BASE_URL, API_TIMEOUT, DEFAULT_GRAPH_LIMIT
from services.graph.aggregator import AggregationResult, graph_from_response, load_graph
from services.graph.errors import GraphFetchError
from services.graph.models import GraphData


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


API_PREFIX = "/api/neo4j"


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error") or body.get("message")
        if detail:
            return detail if isinstance(detail, str) else str(detail)
    return f"HTTP {response.status_code}"


class ArchViewsClient:
    """
    Thin requests wrapper around the REST API.

    Usage:
        client = ArchViewsClient()
        graph = client.fetch_graph(limit=200, environment="production")
    """

    def __init__(self, base_url: str = API_BASE_URL, timeout: float = API_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        expect_json: bool = True,
    ) -> Any:
        url = f"{self.base_url}{path}"
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        try:
            response = requests.request(method, url, params=params, json=json, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise GraphFetchError(f"Could not reach the API at {self.base_url}: {e}")

        if not response.ok:
            detail = _error_detail(response)
            logger.warning(f"{method} {url} returned {response.status_code}: {detail}")
            raise GraphFetchError(detail, status_code=response.status_code)

        if not expect_json:
            return response.text
        try:
            return response.json()
        except ValueError:
            raise GraphFetchError(f"Invalid JSON from {url}", status_code=response.status_code)

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def fetch_graph_result(
        self,
        limit: int = DEFAULT_GRAPH_LIMIT,
        environment: Optional[str] = None,
    ) -> AggregationResult:
        payload = self._request(
            "GET",
            f"{API_PREFIX}/graph",
            params={"limit": limit, "environment": environment},
        )
        result = load_graph(payload)
        logger.info(
            f"Fetched graph: {len(result.graph.nodes)} nodes, {len(result.graph.edges)} edges "
            f"({result.records_skipped} skipped)"
        )
        return result

    def fetch_graph(
        self,
        limit: int = DEFAULT_GRAPH_LIMIT,
        environment: Optional[str] = None,
    ) -> GraphData:
        """Fetch the graph for the console; environment 'all' or None disables filtering."""
        return self.fetch_graph_result(limit=limit, environment=environment).graph

    def run_query(self, cypher: str, params: Optional[Dict[str, Any]] = None) -> AggregationResult:
        """Run ad hoc Cypher and aggregate its `{n, r, m}` records."""
        payload = self._request(
            "POST",
            f"{API_PREFIX}/query",
            json={"query": cypher, "params": params or {}},
        )
        return graph_from_response(payload)

    def export_graph(
        self,
        export_format: str = "json",
        limit: int = DEFAULT_GRAPH_LIMIT,
        environment: Optional[str] = None,
    ) -> str:
        return self._request(
            "GET",
            f"{API_PREFIX}/graph/export",
            params={"format": export_format, "limit": limit, "environment": environment},
            expect_json=False,
        )

    def relationship_types(self, environment: Optional[str] = None) -> List[Dict[str, Any]]:
        payload = self._request(
            "GET", f"{API_PREFIX}/relationship-types", params={"environment": environment}
        )
        return payload.get("types", [])

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def list_nodes(
        self,
        page: int = 1,
        limit: int = 50,
        labels: Optional[List[str]] = None,
        environment: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {
            "page": page,
            "limit": limit,
            "labels": ",".join(labels) if labels else None,
            "environment": environment,
            "search": search or None,
        }
        return self._request("GET", f"{API_PREFIX}/nodes", params=params)

    def get_node(self, node_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{API_PREFIX}/nodes/{node_id}")

    def create_node(self, labels: List[str], properties: Dict[str, Any]) -> Dict[str, Any]:
        return self._request(
            "POST", f"{API_PREFIX}/nodes", json={"labels": labels, "properties": properties}
        )

    def update_node(
        self,
        node_id: str,
        properties: Optional[Dict[str, Any]] = None,
        add_labels: Optional[List[str]] = None,
        remove_labels: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        body = {
            "properties": properties,
            "add_labels": add_labels or [],
            "remove_labels": remove_labels or [],
        }
        return self._request("PUT", f"{API_PREFIX}/nodes/{node_id}", json=body)

    def delete_node(self, node_id: str, detach: bool = False) -> Dict[str, Any]:
        return self._request(
            "DELETE", f"{API_PREFIX}/nodes/{node_id}", params={"detach_delete": str(detach).lower()}
        )

    def node_relationships(self, node_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{API_PREFIX}/nodes/{node_id}/relationships")

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def list_edges(self, rel_type: Optional[str] = None, limit: int = 100) -> Dict[str, Any]:
        return self._request(
            "GET", f"{API_PREFIX}/edges", params={"type": rel_type or None, "limit": limit}
        )

    def get_edge(self, edge_id: str) -> Dict[str, Any]:
        return self._request("GET", f"{API_PREFIX}/edges/{edge_id}")

    def create_edge(
        self,
        source: str,
        target: str,
        rel_type: str,
        properties: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        body = {
            "source": source,
            "target": target,
            "type": rel_type,
            "properties": properties or {},
        }
        return self._request("POST", f"{API_PREFIX}/edges", json=body)

    def update_edge(self, edge_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        return self._request(
            "PUT", f"{API_PREFIX}/edges/{edge_id}", json={"properties": properties}
        )

    def delete_edge(self, edge_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"{API_PREFIX}/edges/{edge_id}")
