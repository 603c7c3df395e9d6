# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""MongoDB-backed session store."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pymongo
import structlog

from mongosession.kernel.exceptions import ConfigurationError
from mongosession.session.cleanup import (
    DEFAULT_CLEANUP_INTERVAL_MS,
    CleanupStrategy,
    IntervalCleanup,
)
from mongosession.session.record import (
    DATA_FIELD,
    EXPIRES_FIELD,
    SESSION_EXPIRES_INDEX,
    SESSION_ID_FIELD,
    SESSION_ID_INDEX,
    UPDATED_AT_FIELD,
    UPDATED_AT_TTL_INDEX,
    SessionRecord,
)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class MongoSessionStore:
    """Session store backed by a MongoDB collection through Motor.

    Each session is one document ``{sessionId, data, expiresAtMs, updatedAt}``.
    Session ids are namespaced with ``prefix``; payloads are stored verbatim.
    A session is live while ``expiresAtMs`` is greater than now, and reads
    never return anything else, whether or not the document still exists.

    Indexes are created lazily by the first operation, once per instance,
    even when many operations start concurrently. The client handle is shared
    and never opened or closed here.

    With ``CleanupStrategy.INTERVAL`` a sweep loop is exposed as
    :attr:`cleanup_task`. The store never stops it; the owner calls
    ``store.cleanup_task.cancel()`` at shutdown.

    Usage::

        client = AsyncIOMotorClient("mongodb://localhost:27017")
        store = MongoSessionStore(
            client=client, db_name="app", collection="sessions", ttl_ms=3_600_000
        )
        await store.set("abc", {"user": 42})
        await store.get("abc")
    """

    def __init__(
        self,
        client: Any,
        db_name: str | None,
        collection: str | None,
        ttl_ms: int,
        prefix: str | None = "",
        cleanup_strategy: CleanupStrategy | str | None = CleanupStrategy.NATIVE,
        cleanup_interval_ms: int | None = DEFAULT_CLEANUP_INTERVAL_MS,
        logger: Any = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        if not isinstance(ttl_ms, int) or isinstance(ttl_ms, bool) or ttl_ms < 0:
            raise ConfigurationError(
                "ttlMs must be a non-negative number of milliseconds",
                code="CONFIG_TTL",
                context={"ttl_ms": ttl_ms},
            )
        if cleanup_interval_ms is not None and (
            not isinstance(cleanup_interval_ms, int) or isinstance(cleanup_interval_ms, bool) or cleanup_interval_ms < 0
        ):
            raise ConfigurationError(
                "cleanupInterval must be a non-negative number of milliseconds",
                code="CONFIG_INTERVAL",
                context={"cleanup_interval_ms": cleanup_interval_ms},
            )

        self._client = client
        self._db_name = db_name
        self._collection_name = collection
        self._ttl_ms = int(ttl_ms)
        self._prefix = prefix or ""
        self._strategy = CleanupStrategy.parse(cleanup_strategy)
        self._logger = logger if logger is not None else structlog.get_logger("mongosession.session")
        self._clock = clock or _wall_clock_ms

        self._collection: Any = None
        self._init_task: asyncio.Future[None] | None = None
        self._initialized = False

        self._cleanup: IntervalCleanup | None = None
        if self._strategy is CleanupStrategy.INTERVAL:
            self._logger.debug("session_cleanup_strategy", strategy=self._strategy.value)
            self._cleanup = IntervalCleanup(
                self.remove_expired_sessions,
                cleanup_interval_ms or DEFAULT_CLEANUP_INTERVAL_MS,
                logger=self._logger,
            )
            # Without a running loop the task starts on the first operation.
            self._cleanup.start()

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    @property
    def cleanup_strategy(self) -> CleanupStrategy:
        return self._strategy

    @property
    def cleanup_task(self) -> IntervalCleanup | None:
        """The interval sweep handle, or ``None`` for the native strategy."""
        return self._cleanup

    @property
    def initialized(self) -> bool:
        return self._initialized

    def format_key(self, session_id: str) -> str:
        """Return the stored key for a caller-supplied session id."""
        return f"{self._prefix}{session_id}"

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Validate configuration and create indexes, once.

        Concurrent callers share a single in-flight setup. A
        :class:`ConfigurationError` is remembered and re-raised on every
        later call; a driver failure clears the attempt so the next
        operation tries again.
        """
        if self._cleanup is not None and not self._cleanup.started:
            self._cleanup.start()
        if self._initialized:
            return

        if self._init_task is None:
            task = asyncio.ensure_future(self._setup())
            task.add_done_callback(self._init_done_callback)
            self._init_task = task
        # Callers may be cancelled; the shared setup keeps running.
        await asyncio.shield(self._init_task)

    def _init_done_callback(self, task: asyncio.Future[None]) -> None:
        if self._init_task is not task:
            return
        if task.cancelled():
            self._init_task = None
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, ConfigurationError):
            self._init_task = None

    async def _setup(self) -> None:
        if self._client is None:
            raise ConfigurationError("client not defined", code="CONFIG_CLIENT")
        if not self._db_name:
            raise ConfigurationError("dbName not defined", code="CONFIG_DB_NAME")
        if not self._collection_name:
            raise ConfigurationError("collection not defined", code="CONFIG_COLLECTION")

        collection = self._client[self._db_name][self._collection_name]

        await collection.create_index(
            [(SESSION_ID_FIELD, pymongo.ASCENDING)],
            unique=True,
            name=SESSION_ID_INDEX,
        )
        await collection.create_index(
            [(EXPIRES_FIELD, pymongo.ASCENDING), (SESSION_ID_FIELD, pymongo.ASCENDING)],
            name=SESSION_EXPIRES_INDEX,
        )
        if self._strategy is CleanupStrategy.NATIVE:
            await collection.create_index(
                [(UPDATED_AT_FIELD, pymongo.ASCENDING)],
                name=UPDATED_AT_TTL_INDEX,
                expireAfterSeconds=self._ttl_ms // 1000,
            )

        self._collection = collection
        self._initialized = True
        self._logger.debug(
            "session_indexes_created",
            database=self._db_name,
            collection=self._collection_name,
            strategy=self._strategy.value,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get(self, session_id: str) -> Any | None:
        """Return the payload of a live session, or ``None``."""
        record = await self.get_record(session_id)
        return record.data if record is not None else None

    async def get_record(self, session_id: str) -> SessionRecord | None:
        """Return the live :class:`SessionRecord` for *session_id*, or ``None``."""
        await self.init()
        key = self.format_key(session_id)
        now = self._clock()
        self._logger.debug("session_get", session_id=key)

        doc = await self._collection.find_one(
            {SESSION_ID_FIELD: key, EXPIRES_FIELD: {"$gt": now}}
        )
        if doc is None:
            return None
        self._logger.debug("session_found", session_id=key)
        return SessionRecord.from_document(doc)

    async def set(self, session_id: str, data: Any) -> None:
        """Upsert a session and push its expiry to now + ``ttl_ms``."""
        await self.init()
        key = self.format_key(session_id)
        now = self._clock()
        record = SessionRecord(
            session_id=key,
            data=data,
            expires_at_ms=now + self._ttl_ms,
            updated_at=datetime.fromtimestamp(now / 1000, tz=timezone.utc),
        )
        self._logger.debug("session_set", session_id=key, expires_at_ms=record.expires_at_ms)

        await self._collection.update_one(
            {SESSION_ID_FIELD: key},
            {"$set": record.to_document()},
            upsert=True,
        )

    async def destroy(self, session_id: str) -> None:
        """Remove a session, live or expired."""
        await self.init()
        key = self.format_key(session_id)
        self._logger.debug("session_destroy", session_id=key)
        await self._collection.delete_one({SESSION_ID_FIELD: key})

    async def all(self) -> list[Any]:
        """Return the payloads of every live session, in no particular order."""
        await self.init()
        now = self._clock()
        self._logger.debug("session_all")
        cursor = self._collection.find({EXPIRES_FIELD: {"$gt": now}})
        return [doc.get(DATA_FIELD) async for doc in cursor]

    async def length(self) -> int:
        """Count live sessions."""
        await self.init()
        now = self._clock()
        self._logger.debug("session_length")
        return int(await self._collection.count_documents({EXPIRES_FIELD: {"$gt": now}}))

    async def clear(self) -> None:
        """Remove every session document, expired or not."""
        await self.init()
        self._logger.debug("session_clear")
        await self._collection.delete_many({})

    async def touch(self, session_id: str, data: Any) -> None:
        """Refresh a session's payload and expiry together."""
        self._logger.debug("session_touch", session_id=self.format_key(session_id))
        await self.set(session_id, data)

    async def remove_expired_sessions(self) -> int:
        """Delete documents whose ``expiresAtMs`` is strictly before now.

        A document expiring exactly now is already dead for reads but is left
        for the next sweep. Returns the number of documents deleted.
        """
        await self.init()
        now = self._clock()
        result = await self._collection.delete_many({EXPIRES_FIELD: {"$lt": now}})
        deleted = int(getattr(result, "deleted_count", 0) or 0)
        self._logger.debug("sessions_expired_removed", deleted=deleted)
        return deleted
