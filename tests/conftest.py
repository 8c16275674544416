"""
Pytest configuration and shared fixtures for qa-verify tests.

Provides recording plugins, registries and configuration objects shared
by all test modules.
"""

import asyncio

import pytest

from qa_verify.core.config import Config
from qa_verify.core.registry import PluginRegistry


ENV_VARS = [
    "CI",
    "QA_VERIFY_LOG_LEVEL",
    "QA_VERIFY_LOG_FORMAT",
    "QA_VERIFY_REPORT_LEVEL",
    "QA_VERIFY_POLICY_ENGINE_ENABLED",
    "QA_VERIFY_HALT_ON_VERIFY_FAILURE",
    "QA_VERIFY_PLUGIN_TIMEOUT",
]


class RecordingPlugin:
    """Reporting plugin that keeps everything it receives."""

    def __init__(self):
        self.events = []
        self.passed = []
        self.failed = []
        self.calls = []

    def log(self, level, event):
        self.events.append(event)
        self.calls.append(("log", event.level.value, event.text))

    def on_pass(self, test_id, event):
        self.passed.append(test_id)
        self.calls.append(("pass", test_id))

    def on_fail(self, test_id, message, event):
        self.failed.append((test_id, message))
        self.calls.append(("fail", test_id, message))

    @property
    def steps(self):
        return [e for e in self.events if e.level.value == "step"]

    @property
    def texts(self):
        return [e.text for e in self.events]


class AsyncRecordingPlugin(RecordingPlugin):
    """Same as RecordingPlugin with coroutine handlers."""

    async def log(self, level, event):
        await asyncio.sleep(0)
        super().log(level, event)

    async def on_pass(self, test_id, event):
        await asyncio.sleep(0)
        super().on_pass(test_id, event)

    async def on_fail(self, test_id, message, event):
        await asyncio.sleep(0)
        super().on_fail(test_id, message, event)


class ExplodingPlugin:
    """Reporting plugin that raises on every call."""

    def __init__(self):
        self.attempts = 0

    def log(self, level, event):
        self.attempts += 1
        raise RuntimeError("log exploded")

    def on_pass(self, test_id, event):
        self.attempts += 1
        raise RuntimeError("on_pass exploded")

    def on_fail(self, test_id, message, event):
        self.attempts += 1
        raise RuntimeError("on_fail exploded")


class HangingPlugin:
    """Reporting plugin whose calls never finish on their own."""

    async def log(self, level, event):
        await asyncio.sleep(60)

    async def on_pass(self, test_id, event):
        await asyncio.sleep(60)

    async def on_fail(self, test_id, message, event):
        await asyncio.sleep(60)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove environment overrides so Config defaults are deterministic."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config():
    """Default configuration with a short plugin timeout."""
    return Config(plugin_timeout=0.5)


@pytest.fixture
def recorder():
    return RecordingPlugin()


@pytest.fixture
def registry(recorder):
    """Registry with a single recording reporter, not yet frozen."""
    registry = PluginRegistry()
    registry.register_reporter("recorder", recorder)
    return registry


@pytest.fixture
def empty_registry():
    return PluginRegistry()


@pytest.fixture
def async_recorder():
    return AsyncRecordingPlugin()


@pytest.fixture
def exploding_plugin():
    return ExplodingPlugin()


@pytest.fixture
def hanging_plugin():
    return HangingPlugin()


@pytest.fixture
def recording_plugin_factory():
    """Build additional independent recording plugins."""
    return RecordingPlugin
