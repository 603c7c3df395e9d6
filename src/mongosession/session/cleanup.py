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
"""Expired-session cleanup strategies and the interval sweep loop."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import structlog

from mongosession.kernel.exceptions import ConfigurationError

_default_logger = structlog.get_logger("mongosession.session.cleanup")

DEFAULT_CLEANUP_INTERVAL_MS = 300_000


class CleanupStrategy(str, Enum):
    """How expired session documents are physically removed.

    ``NATIVE`` creates a MongoDB TTL index on ``updatedAt``; the server's TTL
    monitor deletes documents eventually (roughly once a minute), not at the
    exact expiry instant. Once the index exists, switching a collection to
    ``INTERVAL`` requires dropping ``updated_at_ttl_idx`` by hand.

    ``INTERVAL`` runs :class:`IntervalCleanup` in the application, deleting
    every document whose ``expiresAtMs`` has passed on each firing.
    """

    NATIVE = "native"
    INTERVAL = "interval"

    @classmethod
    def parse(cls, value: CleanupStrategy | str | None) -> CleanupStrategy:
        if value is None or value == "":
            return cls.NATIVE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(
                f"unknown cleanupStrategy '{value}'",
                code="CONFIG_STRATEGY",
                context={"cleanup_strategy": value},
            ) from None


class IntervalCleanup:
    """Cancellable repeating task that sweeps expired sessions.

    Fires every ``interval_ms`` milliseconds, the first firing one interval
    after :meth:`start`. A failing sweep is logged and dropped; the loop keeps
    its schedule. The owner stops the loop with :meth:`cancel`.
    """

    def __init__(
        self,
        sweep: Callable[[], Awaitable[Any]],
        interval_ms: int = DEFAULT_CLEANUP_INTERVAL_MS,
        logger: Any = None,
    ) -> None:
        self._sweep = sweep
        self._interval_ms = interval_ms
        self._logger = logger if logger is not None else _default_logger
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False
        self.runs = 0
        self.failures = 0

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self._task

    def start(self) -> bool:
        """Schedule the loop on the running event loop.

        Returns ``False`` without scheduling when there is no running loop,
        when the loop was already started, or after :meth:`cancel`.
        """
        if self._task is not None or self._cancelled:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self._task = loop.create_task(self._run())
        self._task.add_done_callback(self._loop_done_callback)
        self._logger.debug("session_cleanup_started", interval_ms=self._interval_ms)
        return True

    def cancel(self) -> None:
        """Stop the loop. Safe to call more than once or before start."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        delay = self._interval_ms / 1000
        while True:
            await asyncio.sleep(delay)
            await self.run_once()

    async def run_once(self) -> None:
        """Invoke one sweep, swallowing any failure."""
        self.runs += 1
        try:
            await self._sweep()
        except Exception as exc:  # noqa: BLE001
            self.failures += 1
            self._logger.warning(
                "session_cleanup_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )

    def _loop_done_callback(self, task: asyncio.Task[None]) -> None:
        if not task.cancelled():
            exc = task.exception()
            if exc is not None:
                self._logger.error("session_cleanup_loop_died", error=str(exc), exc_info=exc)
