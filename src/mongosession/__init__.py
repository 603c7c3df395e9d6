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
"""mongosession — a MongoDB session store for asyncio web applications."""

from mongosession.core.config import Config
from mongosession.kernel.exceptions import (
    ConfigurationError,
    MongoSessionException,
    StorageError,
)
from mongosession.session.adapters.mongodb import MongoSessionStore
from mongosession.session.cleanup import CleanupStrategy, IntervalCleanup
from mongosession.session.factory import session_store_from_config
from mongosession.session.ports.outbound import SessionStore
from mongosession.session.record import SessionRecord

__version__ = "0.1.0"

__all__ = [
    "CleanupStrategy",
    "Config",
    "ConfigurationError",
    "IntervalCleanup",
    "MongoSessionException",
    "MongoSessionStore",
    "SessionRecord",
    "SessionStore",
    "StorageError",
    "session_store_from_config",
]
