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
"""Tests for building a MongoSessionStore from Config."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from mongosession.core.config import Config
from mongosession.session import factory
from mongosession.session.adapters.mongodb import MongoSessionStore
from mongosession.session.cleanup import CleanupStrategy
from mongosession.session.factory import session_store_from_config


class TestSessionStoreFromConfig:
    def test_uses_given_client_and_properties(self, client):
        config = Config(
            {
                "mongosession": {
                    "session": {
                        "database": "app",
                        "collection": "web_sessions",
                        "ttl-ms": 60_000,
                        "prefix": "sess:",
                    }
                }
            }
        )
        store = session_store_from_config(config, client=client)

        assert isinstance(store, MongoSessionStore)
        assert store.ttl_ms == 60_000
        assert store.prefix == "sess:"
        assert store.cleanup_strategy is CleanupStrategy.NATIVE

    def test_creates_motor_client_from_uri(self, monkeypatch):
        motor_client = MagicMock(name="AsyncIOMotorClient")
        monkeypatch.setattr(factory, "AsyncIOMotorClient", motor_client)
        config = Config({"mongosession": {"session": {"uri": "mongodb://db.internal:27017"}}})

        session_store_from_config(config)

        motor_client.assert_called_once_with("mongodb://db.internal:27017")

    @pytest.mark.asyncio
    async def test_store_round_trip(self, client, collection):
        config = Config({"mongosession": {"session": {"database": "app", "collection": "sessions"}}})
        store = session_store_from_config(config, client=client)

        await store.set("abc", {"n": 1})

        assert await store.get("abc") == {"n": 1}
        assert collection.docs[0]["sessionId"] == "abc"

    @pytest.mark.asyncio
    async def test_interval_strategy_from_env(self, client, monkeypatch):
        monkeypatch.setenv("MONGOSESSION_SESSION_CLEANUP_STRATEGY", "interval")
        monkeypatch.setenv("MONGOSESSION_SESSION_CLEANUP_INTERVAL_MS", "2000")
        store = session_store_from_config(Config({}), client=client)
        try:
            assert store.cleanup_strategy is CleanupStrategy.INTERVAL
            assert store.cleanup_task.interval_ms == 2000
        finally:
            store.cleanup_task.cancel()
