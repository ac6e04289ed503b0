# conftest.py
# Pytest configuration for the ArchViews test environment
#
# Sets test-mode environment flags to avoid external service initialization.
#
# @see: api/neo4j_config.py - Skips Neo4j init in test mode
# @note: Uses ARCHVIEWS_TEST_MODE=true for hermetic tests

import os

os.environ.setdefault("ARCHVIEWS_TEST_MODE", "true")
