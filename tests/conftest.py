"""
Pytest configuration and fixtures
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from engine.dag import Deferred, LookupRegistry, ResourceGraph, ResourceNode


REPO_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


@pytest.fixture
def graph():
    """Empty resource graph"""
    return ResourceGraph()


@pytest.fixture
def lookups():
    """Lookup registry with a network and a DNS zone provider"""
    registry = LookupRegistry()
    calls = []

    def find_network(query):
        calls.append(("network", query))
        return {"vpc_id": query["vpc_id"], "cidr": "10.0.0.0/16"}

    def find_zone(query):
        calls.append(("dns_zone", query))
        if query["domain_name"] != "example.com":
            raise KeyError(query["domain_name"])
        return {"zone_id": "Z123", "domain_name": "example.com"}

    registry.register("network", find_network)
    registry.register("dns_zone", find_zone)
    registry.calls = calls
    return registry


@pytest.fixture
def database_graph(graph):
    """Graph with a database and a service consuming its endpoint and password"""
    ResourceNode(
        graph, "Instance", "database",
        inputs={"database_name": "sonarqube"},
        outputs={"endpoint": "db.internal:5432", "password": Deferred()},
    )
    ResourceNode(
        graph, "AdminService", "container_service",
        inputs={
            "db_endpoint": graph.get("Instance").ref("endpoint"),
            "db_password": graph.get("Instance").ref("password"),
        },
    )
    return graph


@pytest.fixture
def repo_config_dir():
    """Bundled config directory with the sonarqube stack"""
    return REPO_CONFIG_DIR


@pytest.fixture
def stack_dir(tmp_path):
    """Temporary config dir with an empty stacks/demo directory"""
    path = tmp_path / "stacks" / "demo"
    path.mkdir(parents=True)
    return path


class FakeAcquire:
    """Async context manager standing in for pool.acquire()"""

    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, exc_type, exc, tb):
        return False


def make_fake_pool():
    """Pool whose acquire() yields an AsyncMock connection"""
    conn = MagicMock()
    conn.fetch = AsyncMock()
    conn.fetchrow = AsyncMock()
    conn.execute = AsyncMock()
    conn.executemany = AsyncMock()

    pool = MagicMock()
    pool.acquire = MagicMock(return_value=FakeAcquire(conn))
    pool.close = AsyncMock()
    return pool, conn


@pytest.fixture
def fake_pool():
    """(pool, conn) pair with async connection methods mocked"""
    return make_fake_pool()
