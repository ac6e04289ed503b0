"""
============================================================================
FILE: neo4j_config.py
LOCATION: api/neo4j_config.py
============================================================================

PURPOSE:
    Handles Neo4j driver initialization and provides the graph database
    client instance for the API.

ROLE IN PROJECT:
    This is the Neo4j configuration layer. Routers reach the driver through
    `neo4j_driver` from this module (patched in tests). The driver is
    initialized only once (singleton pattern) from the settings in
    api/config.py.

KEY COMPONENTS:
    - init_neo4j(): Initializes Neo4j driver with connection pooling
    - test_connection(): Verifies connectivity to Neo4j instance
    - close_neo4j(): Cleanup function to close driver
    - neo4j_driver: Global Neo4j driver instance (None in test mode)

DEPENDENCIES:
    - External: neo4j (official Python driver)
    - Internal: api.config for NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD

USAGE:
    from api.neo4j_config import neo4j_driver

    with neo4j_driver.session() as session:
        result = session.run("MATCH (n) RETURN count(n)")
        print(result.single()[0])
============================================================================
"""

import logging
from typing import Optional

from neo4j import Driver, GraphDatabase

from api.config import (
    ARCHVIEWS_TEST_MODE,
    NEO4J_PASSWORD,
    NEO4J_URI,
    NEO4J_USER,
)


logger = logging.getLogger(__name__)

# Global driver instance
_neo4j_driver: Optional[Driver] = None


def init_neo4j() -> Driver:
    """
    Initializes Neo4j driver and returns it.
    Uses singleton pattern to prevent multiple driver instances.

    Returns:
        Driver: Configured Neo4j driver instance with connection pooling

    Raises:
        ValueError: If the connection URI is empty
        Exception: If connection to Neo4j fails
    """
    global _neo4j_driver

    if _neo4j_driver is not None:
        return _neo4j_driver

    if not NEO4J_URI:
        raise ValueError(
            "NEO4J_URI environment variable is required. "
            "Example: NEO4J_URI=neo4j://localhost:7687"
        )

    try:
        _neo4j_driver = GraphDatabase.driver(
            NEO4J_URI,
            auth=(NEO4J_USER, NEO4J_PASSWORD),
            keep_alive=True,
            connection_timeout=30,
            max_connection_lifetime=300,
            max_connection_pool_size=50,
        )
        _neo4j_driver.verify_connectivity()
        logger.info(f"Connected to Neo4j at {NEO4J_URI}")
        return _neo4j_driver

    except Exception as e:
        logger.error(f"Failed to connect to Neo4j at {NEO4J_URI}: {e}")
        _neo4j_driver = None
        raise


def test_connection() -> bool:
    """
    Test Neo4j connection health.

    Returns:
        bool: True if connection is healthy, False otherwise
    """
    try:
        driver = init_neo4j()
        with driver.session() as session:
            record = session.run("RETURN 1 AS test").single()
            return record is not None and record["test"] == 1
    except Exception as e:
        logger.warning(f"Neo4j connection test failed: {e}")
        return False


def close_neo4j():
    """
    Close the Neo4j driver and clean up connections.
    Should be called during application shutdown.
    """
    global _neo4j_driver

    if _neo4j_driver is not None:
        _neo4j_driver.close()
        logger.info("Neo4j driver closed")
        _neo4j_driver = None


# Initialize driver on module import
if ARCHVIEWS_TEST_MODE:
    neo4j_driver = None
else:
    try:
        neo4j_driver = init_neo4j()
    except Exception as e:
        logger.warning(f"Neo4j driver initialization failed: {e}")
        neo4j_driver = None
