"""Shared fixtures for adapter tests."""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from rag_integrations.common.metrics import MetricsCollector


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep host RAG_* variables and ``.env`` files out of the settings."""
    for key in list(os.environ):
        if key.startswith("RAG_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    return MetricsCollector("test-service", registry=registry)


@pytest.fixture
def pg_conn():
    """A mocked asyncpg connection."""
    conn = MagicMock()
    conn.execute = AsyncMock(return_value="OK")
    conn.executemany = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock(return_value=None)
    conn.close = AsyncMock()
    conn.set_type_codec = AsyncMock()
    return conn


@pytest.fixture
def pg_pool(pg_conn):
    """A mocked asyncpg pool handing out ``pg_conn``."""
    acquire = MagicMock()
    acquire.__aenter__ = AsyncMock(return_value=pg_conn)
    acquire.__aexit__ = AsyncMock(return_value=False)

    pool = MagicMock()
    pool.acquire.return_value = acquire
    pool.close = AsyncMock()
    return pool
