"""Local record store in Redis: provider settings, blueprints and compositions.

Layout (all keys under ``paper_architect:``):

- ``settings:user-settings``            JSON {api_key, base_url, model}
- ``blueprint:<id>``                    JSON blueprint record
- ``blueprints:by_date``                sorted set id -> updated_at (chronological listing)
- ``composition:<id>``                  JSON composition record
- ``compositions:by_blueprint:<bp_id>`` sorted set id -> created_at
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import redis.asyncio as aioredis
from pydantic import BaseModel, ValidationError
from redis.exceptions import RedisError

from paper_architect.core.errors import StorageError
from paper_architect.models.types import ProviderConfig

logger = logging.getLogger(__name__)

KEY_PREFIX = "paper_architect:"
SETTINGS_KEY = f"{KEY_PREFIX}settings:user-settings"
BLUEPRINTS_BY_DATE_KEY = f"{KEY_PREFIX}blueprints:by_date"


def _now_ms() -> int:
    return int(time.time() * 1000)


class Blueprint(BaseModel):
    id: str
    title: str
    content: str
    created_at: int
    updated_at: int


class Composition(BaseModel):
    id: str
    blueprint_id: str
    content: str
    created_at: int
    updated_at: int


class RecordStore:
    """Settings, blueprints and compositions. One instance may serve many concurrent calls.

    Every Redis failure surfaces as StorageError.
    """

    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._client: aioredis.Redis | None = None

    @contextmanager
    def _redis_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except RedisError as e:
            raise StorageError(f"Record store failed to {action}: {e}") from e

    async def connect(self) -> None:
        if self._client is None:
            client = aioredis.from_url(self._redis_url, decode_responses=True)
            try:
                await client.ping()
            except RedisError as e:
                await client.aclose()
                raise StorageError(f"Record store unreachable at {self._redis_url}: {e}") from e
            self._client = client

    async def close(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            with self._redis_errors("close"):
                await client.aclose()

    def _blueprint_key(self, blueprint_id: str) -> str:
        return f"{KEY_PREFIX}blueprint:{blueprint_id}"

    def _composition_key(self, composition_id: str) -> str:
        return f"{KEY_PREFIX}composition:{composition_id}"

    def _by_blueprint_key(self, blueprint_id: str) -> str:
        return f"{KEY_PREFIX}compositions:by_blueprint:{blueprint_id}"

    async def _load(self, key: str) -> dict[str, Any] | None:
        await self.connect()
        with self._redis_errors(f"read {key}"):
            raw = await self._client.get(key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Unreadable record at %s", key)
            return None
        return data if isinstance(data, dict) else None

    async def _store(self, key: str, value: str) -> None:
        await self.connect()
        with self._redis_errors(f"write {key}"):
            await self._client.set(key, value)

    async def _index_ids(self, index_key: str) -> list[str]:
        await self.connect()
        with self._redis_errors(f"read index {index_key}"):
            return await self._client.zrange(index_key, 0, -1)

    # Settings

    async def save_settings(self, settings: ProviderConfig) -> None:
        await self._store(SETTINGS_KEY, json.dumps(settings.model_dump()))
        logger.info("Settings saved: base_url=%s model=%s", settings.base_url, settings.model)

    async def get_settings(self) -> Optional[ProviderConfig]:
        data = await self._load(SETTINGS_KEY)
        if data is None:
            return None
        try:
            return ProviderConfig(**data)
        except ValidationError:
            logger.warning("Stored settings are incomplete; ignoring")
            return None

    # Blueprints

    async def save_blueprint(self, blueprint_id: str, title: str, content: str) -> Blueprint:
        """Create or replace; an existing record keeps its created_at."""
        now = _now_ms()
        existing = await self.get_blueprint(blueprint_id)
        record = Blueprint(
            id=blueprint_id,
            title=title,
            content=content,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self._store(self._blueprint_key(blueprint_id), record.model_dump_json())
        with self._redis_errors("index blueprint"):
            await self._client.zadd(BLUEPRINTS_BY_DATE_KEY, {blueprint_id: record.updated_at})
        return record

    async def get_blueprint(self, blueprint_id: str) -> Optional[Blueprint]:
        data = await self._load(self._blueprint_key(blueprint_id))
        return Blueprint(**data) if data else None

    async def list_blueprints(self) -> list[Blueprint]:
        """Oldest update first."""
        out: list[Blueprint] = []
        for blueprint_id in await self._index_ids(BLUEPRINTS_BY_DATE_KEY):
            record = await self.get_blueprint(blueprint_id)
            if record is not None:
                out.append(record)
        return out

    async def delete_blueprint(self, blueprint_id: str) -> None:
        await self.connect()
        with self._redis_errors(f"delete blueprint {blueprint_id}"):
            await self._client.delete(self._blueprint_key(blueprint_id))
            await self._client.zrem(BLUEPRINTS_BY_DATE_KEY, blueprint_id)
        logger.info("Blueprint deleted: id=%s", blueprint_id)

    # Compositions

    async def save_composition(
        self, composition_id: str, blueprint_id: str, content: str
    ) -> Composition:
        now = _now_ms()
        existing = await self.get_composition(composition_id)
        record = Composition(
            id=composition_id,
            blueprint_id=blueprint_id,
            content=content,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        await self._store(self._composition_key(composition_id), record.model_dump_json())
        with self._redis_errors("index composition"):
            if existing and existing.blueprint_id != blueprint_id:
                await self._client.zrem(self._by_blueprint_key(existing.blueprint_id), composition_id)
            await self._client.zadd(
                self._by_blueprint_key(blueprint_id), {composition_id: record.created_at}
            )
        return record

    async def get_composition(self, composition_id: str) -> Optional[Composition]:
        data = await self._load(self._composition_key(composition_id))
        return Composition(**data) if data else None

    async def get_compositions_by_blueprint(self, blueprint_id: str) -> list[Composition]:
        out: list[Composition] = []
        for composition_id in await self._index_ids(self._by_blueprint_key(blueprint_id)):
            record = await self.get_composition(composition_id)
            if record is not None:
                out.append(record)
        return out
