"""Global pytest configuration and fixtures.

Redis is replaced by fakeredis so tests run without a server.
"""

from __future__ import annotations

import fakeredis
import pytest


@pytest.fixture
def client() -> fakeredis.aioredis.FakeRedis:
    """Fresh in-memory Redis per test."""
    return fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer())
