"""
Root conftest.py for dmp webapp tests.

This file contains shared fixtures and pytest configuration
that applies to all test modules.
"""

import sys
from pathlib import Path

import pytest

# Ensure the webapp root is in the path
webapp_root = Path(__file__).parent.parent
if str(webapp_root) not in sys.path:
    sys.path.insert(0, str(webapp_root))

from api.flow.connections import ConnectionsCatalog
from api.flow.models import NodeRole, Position
from api.flow.store import GraphStore


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "api: mark test as going through the HTTP layer",
    )


def pytest_collection_modifyitems(config, items):
    """Mark every test in an *_api module with 'api'."""
    for item in items:
        if str(item.fspath).endswith("_api.py"):
            item.add_marker(pytest.mark.api)


# ============================================================================
# Shared fixtures
# ============================================================================


@pytest.fixture
def connections():
    """A private catalog with one PostgreSQL and one MySQL connection."""
    catalog = ConnectionsCatalog()
    catalog.register("CRM main", "PostgreSQL", connection_id="pg-crm")
    catalog.register("Shop", "MySQL", connection_id="my-shop")
    return catalog


@pytest.fixture
def store(connections):
    return GraphStore(connections=connections, space="test-space")


@pytest.fixture
def configured_source(store):
    """A configured PostgreSQL source node with the default mapping."""
    from api.flow.mapping import default_source_mapping

    node_id = store.create_node(
        NodeRole.SOURCE,
        connection_id="pg-crm",
        position=Position(0, 0),
        schema="public",
        table="customers",
    )
    store.get_node(node_id).source_mapping = default_source_mapping()
    return node_id
