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
"""In-memory stand-ins for the Motor objects the session store talks to."""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any

import pytest

from mongosession.session.adapters.mongodb import MongoSessionStore


@dataclass
class FakeDeleteResult:
    deleted_count: int


@dataclass
class FakeUpdateResult:
    matched_count: int
    upserted_id: Any = None


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for field, cond in query.items():
        if field not in doc:
            return False
        value = doc[field]
        if isinstance(cond, dict):
            for op, operand in cond.items():
                if op == "$gt" and not value > operand:
                    return False
                if op == "$lt" and not value < operand:
                    return False
                if op == "$gte" and not value >= operand:
                    return False
                if op == "$lte" and not value <= operand:
                    return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def __aiter__(self) -> FakeCursor:
        self._iter = iter(self._docs)
        return self

    async def __anext__(self) -> dict[str, Any]:
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration from None


class FakeCollection:
    """Minimal in-memory stub matching the AsyncIOMotorCollection calls used."""

    def __init__(self) -> None:
        self.docs: list[dict[str, Any]] = []
        self.index_calls: list[tuple[list[tuple[str, int]], dict[str, Any]]] = []

    @property
    def index_names(self) -> list[str]:
        return [kwargs["name"] for _, kwargs in self.index_calls]

    async def create_index(self, keys: list[tuple[str, int]], **kwargs: Any) -> str:
        # Yield so concurrent initializers get a chance to interleave.
        await asyncio.sleep(0)
        self.index_calls.append((keys, kwargs))
        return kwargs["name"]

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def update_one(
        self, query: dict[str, Any], update: dict[str, Any], upsert: bool = False
    ) -> FakeUpdateResult:
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(copy.deepcopy(update["$set"]))
                return FakeUpdateResult(matched_count=1)
        if upsert:
            new_doc = dict(query)
            new_doc.update(copy.deepcopy(update["$set"]))
            self.docs.append(new_doc)
            return FakeUpdateResult(matched_count=0, upserted_id=len(self.docs))
        return FakeUpdateResult(matched_count=0)

    async def delete_one(self, query: dict[str, Any]) -> FakeDeleteResult:
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return FakeDeleteResult(deleted_count=1)
        return FakeDeleteResult(deleted_count=0)

    async def delete_many(self, query: dict[str, Any]) -> FakeDeleteResult:
        keep = [doc for doc in self.docs if not _matches(doc, query)]
        deleted = len(self.docs) - len(keep)
        self.docs = keep
        return FakeDeleteResult(deleted_count=deleted)

    def find(self, query: dict[str, Any]) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query)])

    async def count_documents(self, query: dict[str, Any]) -> int:
        return sum(1 for doc in self.docs if _matches(doc, query))


class FakeDatabase:
    def __init__(self) -> None:
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self._collections.setdefault(name, FakeCollection())


class FakeMotorClient:
    def __init__(self) -> None:
        self._databases: dict[str, FakeDatabase] = {}

    def __getitem__(self, name: str) -> FakeDatabase:
        return self._databases.setdefault(name, FakeDatabase())


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def client() -> FakeMotorClient:
    return FakeMotorClient()


@pytest.fixture
def collection(client: FakeMotorClient) -> FakeCollection:
    return client["app"]["sessions"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_store(client: FakeMotorClient, clock: FakeClock):
    """Build a store over the fake client; keyword arguments override defaults."""

    def _make(**overrides: Any) -> MongoSessionStore:
        kwargs: dict[str, Any] = {
            "client": client,
            "db_name": "app",
            "collection": "sessions",
            "ttl_ms": 10_000,
            "clock": clock,
        }
        kwargs.update(overrides)
        return MongoSessionStore(**kwargs)

    return _make
