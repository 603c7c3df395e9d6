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
"""Session store protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """Capability interface expected by session middleware providers.

    Payloads are opaque to the store. Expired sessions are never returned.
    A provider adapter wraps an implementation by composition and translates
    each coroutine into whatever calling convention its host requires.
    """

    async def get(self, session_id: str) -> Any | None: ...

    async def set(self, session_id: str, data: Any) -> None: ...

    async def destroy(self, session_id: str) -> None: ...

    async def all(self) -> list[Any]: ...

    async def length(self) -> int: ...

    async def clear(self) -> None: ...

    async def touch(self, session_id: str, data: Any) -> None: ...
