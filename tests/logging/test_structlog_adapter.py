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
"""Tests for StructlogAdapter."""

import logging

from mongosession.core.config import Config
from mongosession.logging.structlog_adapter import StructlogAdapter


class TestStructlogAdapterConfigure:
    def test_configure_with_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter._root_level == "INFO"
        assert adapter._format == "console"
        assert adapter._module_levels == {}

    def test_configure_reads_root_level(self):
        adapter = StructlogAdapter()
        config = Config({"mongosession": {"logging": {"level": {"root": "debug"}}}})
        adapter.configure(config)
        assert adapter._root_level == "DEBUG"

    def test_configure_reads_format(self):
        adapter = StructlogAdapter()
        config = Config({"mongosession": {"logging": {"format": "JSON"}}})
        adapter.configure(config)
        assert adapter._format == "json"

    def test_configure_applies_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config(
            {"mongosession": {"logging": {"level": {"root": "INFO", "mongosession.session": "DEBUG"}}}}
        )
        adapter.configure(config)
        assert adapter._module_levels == {"mongosession.session": "DEBUG"}
        assert logging.getLogger("mongosession.session").level == logging.DEBUG


class TestStructlogAdapterGetLogger:
    def test_get_logger_returns_bound_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        logger = adapter.get_logger("mongosession.test")
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "debug", None))


class TestStructlogAdapterSetLevel:
    def test_set_level_updates_module_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        adapter.set_level("mongosession.session.cleanup", "WARNING")
        assert logging.getLogger("mongosession.session.cleanup").level == logging.WARNING
