"""
============================================================================
FILE: config.py
LOCATION: api/config.py
============================================================================

PURPOSE:
    Centralized configuration for the ArchViews API and console.

ROLE IN PROJECT:
    Loads environment variables (optionally from a .env file at the project
    root) and exposes them as module-level constants. The Neo4j driver
    factory, the logging setup and the Streamlit pages all read from here.

KEY COMPONENTS:
    - NEO4J_*: Connection settings for the graph store
    - ARCHVIEWS_TEST_MODE: Skips driver initialization for hermetic tests
    - DEFAULT_GRAPH_LIMIT / MAX_GRAPH_LIMIT: Bounds for graph fetches
    - API_BASE_URL / API_TIMEOUT: Where the console reaches the REST API
    - LOG_LEVEL / LOG_JSON: Logging configuration

DEPENDENCIES:
    - External: python-dotenv
    - Internal: None

USAGE:
    from api.config import NEO4J_URI, DEFAULT_GRAPH_LIMIT
============================================================================
"""

import os
from pathlib import Path

import dotenv


# Load environment variables from .env
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DOTENV_PATH = PROJECT_ROOT / ".env"
if DOTENV_PATH.exists():
    dotenv.load_dotenv(DOTENV_PATH, override=False)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Test Mode (set to True to skip Neo4j driver initialization)
ARCHVIEWS_TEST_MODE = _env_flag("ARCHVIEWS_TEST_MODE")

# Neo4j Configuration
NEO4J_URI = os.getenv("NEO4J_URI", "neo4j://localhost:7687")
NEO4J_USER = os.getenv("NEO4J_USER", os.getenv("NEO4J_USERNAME", "neo4j"))
NEO4J_PASSWORD = os.getenv("NEO4J_PASSWORD", "password")
NEO4J_DATABASE = os.getenv("NEO4J_DATABASE", "neo4j")

# Graph fetch bounds
DEFAULT_GRAPH_LIMIT = int(os.getenv("DEFAULT_GRAPH_LIMIT", "100"))
MAX_GRAPH_LIMIT = int(os.getenv("MAX_GRAPH_LIMIT", "1000"))
MAX_NODE_PAGE_SIZE = 100

# Environments offered by the console selector ("all" disables the filter)
ENVIRONMENTS = [
    env.strip()
    for env in os.getenv(
        "ARCHVIEWS_ENVIRONMENTS", "all,production,staging,development"
    ).split(",")
    if env.strip()
]

# Console -> API
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
API_TIMEOUT = float(os.getenv("API_TIMEOUT", "10"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = _env_flag("LOG_JSON")
