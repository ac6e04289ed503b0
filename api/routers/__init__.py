# __init__.py
# Routers package for the ArchViews API

# Re-exports router instances for convenient import in main.py.
# Each router handles a specific domain of the API.

# @see: api/routers/graph.py - Graph, export and ad hoc query endpoints
# @see: api/routers/nodes.py - Node CRUD endpoints
# @see: api/routers/relationships.py - Edge CRUD and relationship-type endpoints
# @see: api/main.py - Router registration

from api.routers.graph import router as graph_router
from api.routers.nodes import router as nodes_router
from api.routers.relationships import router as relationships_router

__all__ = ["graph_router", "nodes_router", "relationships_router"]
