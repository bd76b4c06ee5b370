"""Pytest fixtures and config."""

from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def env_cleanup(monkeypatch):
    """Keep real credentials and endpoints out of tests."""
    for name in ("LLM_API_KEY", "LLM_BASE_URL", "LLM_MODEL", "LOG_LEVEL", "LOG_JSON", "PAPER_ARCHITECT_ENV"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/1")
    yield


@pytest.fixture
def redis_mock():
    """Mock Redis: dict-backed get/set/delete and sorted sets (zadd/zrange/zrem)."""
    data = {}
    zsets = {}

    class Client:
        async def ping(self):
            pass

        async def get(self, key):
            return data.get(key)

        async def set(self, key, value, ex=None):
            data[key] = value

        async def delete(self, *keys):
            for k in keys:
                data.pop(k, None)
                zsets.pop(k, None)

        async def zadd(self, key, mapping):
            zsets.setdefault(key, {}).update(mapping)

        async def zrange(self, key, start, end):
            members = sorted(zsets.get(key, {}).items(), key=lambda kv: (kv[1], kv[0]))
            names = [m for m, _ in members]
            return names[start:] if end == -1 else names[start : end + 1]

        async def zrem(self, key, *members):
            for m in members:
                zsets.get(key, {}).pop(m, None)

        async def aclose(self):
            pass

    client = Client()
    client._data = data
    client._zsets = zsets
    return client


@pytest.fixture
def patched_redis(redis_mock):
    with patch("paper_architect.storage.records.aioredis") as m:
        m.from_url = MagicMock(return_value=redis_mock)
        yield redis_mock
