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
"""Exception hierarchy for mongosession.

All library exceptions inherit from MongoSessionException, so callers can
catch one base type. Driver failures are not wrapped: they surface as
``StorageError`` (pymongo's ``PyMongoError``) exactly as the driver raised them.

Categories:
- ConfigurationError: missing or invalid store configuration
- StorageError: any failure reported by the MongoDB driver
"""

from __future__ import annotations

from pymongo.errors import PyMongoError as StorageError


class MongoSessionException(Exception):
    """Base exception for all mongosession errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CONFIG_CLIENT").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


class ConfigurationError(MongoSessionException):
    """A required store setting is missing or invalid.

    Raised by the first operation that triggers initialization. The failure
    is remembered: the store must be rebuilt with a corrected configuration.
    """


__all__ = ["ConfigurationError", "MongoSessionException", "StorageError"]
