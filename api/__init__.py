"""
============================================================================
FILE: __init__.py
LOCATION: api/__init__.py
============================================================================

PURPOSE:
    Package initialization for the ArchViews REST API.

USAGE:
    uvicorn api.main:app --reload
============================================================================
"""
