"""
API package for the dmp webapp FastAPI backend.

This package provides the REST API endpoints for:
- Space flow graphs: nodes, edges, actions, canvas gestures (spaces.py)
- Database and ETL action vocabularies, connections (catalog.py)
- Workspace drafts (workspace.py)
- System health and info (system.py)
- The flow-graph editing model itself (flow/)
"""

from .flow import GraphStore, connections_catalog, get_space_manager

__all__ = [
    "GraphStore",
    "connections_catalog",
    "get_space_manager",
]
