"""
FastAPI app for the ArchViews architecture graph
Run with: uvicorn api.main:app --reload
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api import neo4j_config
from api.config import LOG_JSON, LOG_LEVEL
from api.logging_config import setup_logging
from api.routers import graph_router, nodes_router, relationships_router

setup_logging(level=LOG_LEVEL, production=LOG_JSON)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("ArchViews API starting")
    yield
    neo4j_config.close_neo4j()
    logger.info("ArchViews API stopped")


app = FastAPI(title="ArchViews", version="1.0.0", lifespan=lifespan)
app.include_router(graph_router)
app.include_router(nodes_router)
app.include_router(relationships_router)


@app.get("/")
def root():
    return {
        "service": "ArchViews API",
        "docs": "/docs",
        "graph": "/api/neo4j/graph",
    }


@app.get("/health")
def health():
    """Liveness plus Neo4j driver state."""
    driver_ready = neo4j_config.neo4j_driver is not None
    return {
        "status": "ok",
        "neo4j": "connected" if driver_ready else "unavailable",
    }
