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
"""Build a MongoSessionStore from configuration."""

from __future__ import annotations

from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient

from mongosession.config.properties.session import MongoSessionProperties
from mongosession.core.config import Config
from mongosession.session.adapters.mongodb import MongoSessionStore


def session_store_from_config(
    config: Config,
    client: Any = None,
    logger: Any = None,
) -> MongoSessionStore:
    """Create a store from the ``mongosession.session`` section of *config*.

    When *client* is omitted a Motor client is created from
    ``mongosession.session.uri``. The caller owns that client and closes it
    at shutdown, along with ``store.cleanup_task`` if one was started.
    """
    props = config.bind(MongoSessionProperties)
    if client is None:
        client = AsyncIOMotorClient(props.uri)

    return MongoSessionStore(
        client=client,
        db_name=props.database,
        collection=props.collection,
        ttl_ms=props.ttl_ms,
        prefix=props.prefix,
        cleanup_strategy=props.cleanup_strategy,
        cleanup_interval_ms=props.cleanup_interval_ms,
        logger=logger,
    )
