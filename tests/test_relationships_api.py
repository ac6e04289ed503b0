# test_relationships_api.py
# Tests for the relationship CRUD and relationship-type endpoints

# @see: api/routers/relationships.py - Endpoints under test
# @note: Uses mocking for neo4j_driver to avoid a Neo4j dependency

from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from api.main import app

client = TestClient(app)


def node_map(identity, label, **properties):
    return {"identity": identity, "labels": [label], "properties": properties}


def rel_map(identity, rel_type, start, end, **properties):
    return {"identity": identity, "type": rel_type, "start": start, "end": end, "properties": properties}


@pytest.fixture
def mock_neo4j_session():
    """Mock Neo4j session with query results."""
    mock_session = Mock()
    mock_session.__enter__ = Mock(return_value=mock_session)
    mock_session.__exit__ = Mock(return_value=None)
    return mock_session


@pytest.fixture
def driver(mock_neo4j_session):
    with patch("api.routers.relationships.neo4j_driver") as mock_driver:
        mock_driver.session = Mock(return_value=mock_neo4j_session)
        yield mock_driver


@pytest.fixture
def edge_row():
    return {
        "r": rel_map("5:r:1", "DEPENDS_ON", "4:n:1", "4:n:2", description="checkout calls"),
        "source": node_map("4:n:1", "Application", name="Web"),
        "target": node_map("4:n:2", "Application", name="Orders API"),
    }


class TestListEdges:
    """Tests for GET /api/neo4j/edges."""

    def test_list_edges(self, driver, mock_neo4j_session, edge_row):
        mock_neo4j_session.run = Mock(return_value=[edge_row])

        response = client.get("/api/neo4j/edges?type=DEPENDS_ON")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["edges"][0]["edge"]["properties"]["description"] == "checkout calls"
        assert data["edges"][0]["target"]["properties"]["name"] == "Orders API"
        assert "[r:DEPENDS_ON]" in mock_neo4j_session.run.call_args.args[0]

    def test_invalid_type(self, driver):
        response = client.get("/api/neo4j/edges?type=DEPENDS ON")

        assert response.status_code == 400
        assert "Invalid relationship type" in response.json()["detail"]


class TestCreateEdge:
    """Tests for POST /api/neo4j/edges."""

    def test_create_edge(self, driver, mock_neo4j_session):
        mock_neo4j_session.run = Mock(return_value=[{"r": rel_map("5:r:7", "USES", "4:n:1", "4:n:3")}])

        response = client.post(
            "/api/neo4j/edges",
            json={"source": "4:n:1", "target": "4:n:3", "type": "USES", "properties": {"port": 443}},
        )

        assert response.status_code == 201
        assert response.json()["id"] == "5:r:7"
        params = mock_neo4j_session.run.call_args.args[1]
        assert params == {"source": "4:n:1", "target": "4:n:3", "properties": {"port": 443}}

    def test_self_loop_is_rejected(self, driver):
        response = client.post(
            "/api/neo4j/edges", json={"source": "4:n:1", "target": "4:n:1", "type": "USES"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Source and target must be different nodes"

    def test_missing_endpoint(self, driver, mock_neo4j_session):
        mock_neo4j_session.run = Mock(return_value=[])

        response = client.post(
            "/api/neo4j/edges", json={"source": "4:n:1", "target": "4:n:404", "type": "USES"}
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Source or target node not found"

    def test_invalid_type(self, driver):
        response = client.post(
            "/api/neo4j/edges", json={"source": "a", "target": "b", "type": "USES]->(x"}
        )
        assert response.status_code == 400


class TestSingleEdge:
    """Tests for GET/PUT/DELETE /api/neo4j/edges/{id}."""

    def test_get_edge(self, driver, mock_neo4j_session, edge_row):
        mock_neo4j_session.run = Mock(return_value=[edge_row])

        response = client.get("/api/neo4j/edges/5:r:1")

        assert response.status_code == 200
        data = response.json()
        assert data["edge"]["type"] == "DEPENDS_ON"
        assert data["source"]["id"] == "4:n:1"

    def test_get_missing_edge(self, driver, mock_neo4j_session):
        mock_neo4j_session.run = Mock(return_value=[])
        assert client.get("/api/neo4j/edges/missing").status_code == 404

    def test_malformed_endpoint_returns_detail(self, driver, mock_neo4j_session, edge_row):
        edge_row["source"] = {"labels": ["Application"], "properties": {}}
        mock_neo4j_session.run = Mock(return_value=[edge_row])

        response = client.get("/api/neo4j/edges/5:r:1")

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Failed to retrieve relationship")

    def test_update_edge(self, driver, mock_neo4j_session):
        mock_neo4j_session.run = Mock(return_value=[
            {"r": rel_map("5:r:1", "DEPENDS_ON", "4:n:1", "4:n:2", description="async")}
        ])

        response = client.put("/api/neo4j/edges/5:r:1", json={"properties": {"description": "async"}})

        assert response.status_code == 200
        assert response.json()["properties"] == {"description": "async"}

    def test_update_missing_edge(self, driver, mock_neo4j_session):
        mock_neo4j_session.run = Mock(return_value=[])
        assert client.put("/api/neo4j/edges/missing", json={"properties": {}}).status_code == 404

    def test_delete_edge(self, driver, mock_neo4j_session):
        mock_neo4j_session.run = Mock(return_value=[{"deleted": 1}])

        response = client.delete("/api/neo4j/edges/5:r:1")

        assert response.status_code == 200
        assert response.json()["message"] == "Relationship deleted"

    def test_delete_missing_edge(self, driver, mock_neo4j_session):
        mock_neo4j_session.run = Mock(return_value=[{"deleted": 0}])
        assert client.delete("/api/neo4j/edges/missing").status_code == 404


class TestRelationshipTypes:
    """Tests for GET /api/neo4j/relationship-types."""

    def test_relationship_types(self, driver, mock_neo4j_session):
        mock_neo4j_session.run = Mock(return_value=[
            {"type": "DEPENDS_ON", "count": 4},
            {"type": "USES", "count": 9},
        ])

        response = client.get("/api/neo4j/relationship-types?environment=production")

        assert response.status_code == 200
        assert response.json()["types"] == [
            {"type": "DEPENDS_ON", "count": 4},
            {"type": "USES", "count": 9},
        ]
        assert mock_neo4j_session.run.call_args.args[1] == {"environment": "production"}

    def test_driver_not_initialized(self):
        with patch("api.routers.relationships.neo4j_driver", None):
            assert client.get("/api/neo4j/relationship-types").status_code == 503
