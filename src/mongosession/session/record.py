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
"""SessionRecord — the persisted unit of the MongoDB session store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

SESSION_ID_FIELD = "sessionId"
DATA_FIELD = "data"
EXPIRES_FIELD = "expiresAtMs"
UPDATED_AT_FIELD = "updatedAt"

SESSION_ID_INDEX = "session_id_idx"
SESSION_EXPIRES_INDEX = "session_id_expires_idx"
UPDATED_AT_TTL_INDEX = "updated_at_ttl_idx"


@dataclass(frozen=True)
class SessionRecord:
    """A stored session: namespaced id, opaque payload, and expiry.

    Attributes:
        session_id: Prefixed session identifier, unique within the collection.
        data: Caller-owned payload, stored verbatim.
        expires_at_ms: Absolute epoch milliseconds; the record is live while
            this is greater than now.
        updated_at: UTC time of the last write, indexed by the native TTL index.
    """

    session_id: str
    data: Any
    expires_at_ms: int
    updated_at: datetime

    def is_live(self, now_ms: int) -> bool:
        return self.expires_at_ms > now_ms

    def to_document(self) -> dict[str, Any]:
        return {
            SESSION_ID_FIELD: self.session_id,
            DATA_FIELD: self.data,
            EXPIRES_FIELD: self.expires_at_ms,
            UPDATED_AT_FIELD: self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> SessionRecord:
        updated_at = doc.get(UPDATED_AT_FIELD) or datetime.fromtimestamp(0, tz=timezone.utc)
        # PyMongo decodes BSON dates as naive UTC unless the client is tz_aware.
        if updated_at.tzinfo is None:
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return cls(
            session_id=doc[SESSION_ID_FIELD],
            data=doc.get(DATA_FIELD),
            expires_at_ms=int(doc[EXPIRES_FIELD]),
            updated_at=updated_at,
        )
