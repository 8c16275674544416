"""
Unit tests for the Reporter facade.

Tests level filtering, step numbering, fan-out order and plugin isolation.
"""

import logging

import pytest

from qa_verify.core.registry import PluginRegistry
from qa_verify.execution.models import LogLevel
from qa_verify.reporting.reporter import Reporter


@pytest.fixture
def reporter(registry):
    return Reporter(registry.freeze(), "[C1] reporter test", log_level="info", plugin_timeout=0.5)


class TestLevelFiltering:
    """Test cases for threshold handling."""

    async def test_events_above_threshold_are_dropped(self, reporter, recorder):
        """Test trace and debug are suppressed at info."""
        await reporter.trace("t")
        await reporter.debug("d")
        await reporter.info("i")
        await reporter.warn("w")
        await reporter.error("e")

        assert recorder.texts == ["i", "w", "e"]

    async def test_trace_threshold_lets_everything_through(self, registry, recorder):
        """Test the most verbose threshold."""
        reporter = Reporter(registry, "desc", log_level=LogLevel.TRACE)

        await reporter.trace("t")
        await reporter.debug("d")

        assert recorder.texts == ["t", "d"]

    async def test_none_threshold_still_passes_steps_and_results(self, registry, recorder):
        """Test steps and pass/fail bypass the threshold."""
        reporter = Reporter(registry, "desc", log_level="none")

        await reporter.error("dropped")
        await reporter.step("kept")
        await reporter.pass_("C1")
        await reporter.fail("C2", "broken")

        assert recorder.texts == ["kept"]
        assert recorder.passed == ["C1"]
        assert recorder.failed == [("C2", "broken")]

    async def test_plugin_log_level_override(self, recording_plugin_factory):
        """Test a per-plugin logLevel option replaces the reporter threshold."""
        verbose = recording_plugin_factory()
        quiet = recording_plugin_factory()
        registry = PluginRegistry()
        registry.register_reporter("verbose", verbose, logLevel="trace")
        registry.register_reporter("quiet", quiet, logLevel="error")
        reporter = Reporter(registry, "desc", log_level="info")

        await reporter.trace("t")
        await reporter.info("i")
        await reporter.error("e")

        assert verbose.texts == ["t", "i", "e"]
        assert quiet.texts == ["e"]

    async def test_result_levels_cannot_be_logged_directly(self, reporter):
        """Test log() rejects pass and fail levels."""
        with pytest.raises(ValueError):
            await reporter.log("pass", "nope")


class TestEvents:
    """Test cases for event contents."""

    async def test_step_sequence_numbers(self, reporter, recorder):
        """Test steps are numbered from 1 and other events are not."""
        await reporter.step("one")
        await reporter.info("note")
        await reporter.step("two")

        assert [e.sequence_number for e in recorder.events] == [1, None, 2]
        assert reporter.step_count == 2

    async def test_event_carries_description(self, reporter, recorder):
        """Test events identify their test."""
        event = await reporter.info("hello")

        assert event.test_description == "[C1] reporter test"
        assert event.level == LogLevel.INFO
        assert recorder.events == [event]

    async def test_untracked_results(self, reporter, recorder):
        """Test results without an id."""
        event = await reporter.pass_(None)

        assert event.text == "untracked passed"
        assert recorder.passed == [None]

    async def test_async_plugins_are_awaited(self, async_recorder):
        """Test coroutine handlers complete before the call returns."""
        registry = PluginRegistry()
        registry.register_reporter("async", async_recorder)
        reporter = Reporter(registry, "desc")

        await reporter.step("s")
        await reporter.fail("C1", "m")

        assert async_recorder.texts == ["s"]
        assert async_recorder.failed == [("C1", "m")]


class TestPluginIsolation:
    """Test cases for plugin fault handling."""

    async def test_failing_plugin_does_not_block_others(
        self, exploding_plugin, recorder, caplog
    ):
        """Test later plugins still receive events and the fault is logged."""
        registry = PluginRegistry()
        registry.register_reporter("exploding", exploding_plugin)
        registry.register_reporter("recorder", recorder)
        reporter = Reporter(registry, "desc")

        with caplog.at_level(logging.WARNING, logger="qa_verify.reporting"):
            await reporter.info("i")
            await reporter.pass_("C1")

        assert recorder.texts == ["i"]
        assert recorder.passed == ["C1"]
        assert reporter.plugin_faults == 2
        assert "exploding.log failed" in caplog.text
        assert "exploding.on_pass failed" in caplog.text

    async def test_plugin_without_handler_is_isolated(self, recorder):
        """Test a plugin missing a capability counts as a fault."""
        registry = PluginRegistry()
        registry.register_reporter("partial", object())
        registry.register_reporter("recorder", recorder)
        reporter = Reporter(registry, "desc")

        await reporter.warn("w")

        assert recorder.texts == ["w"]
        assert reporter.plugin_faults == 1

    async def test_hanging_plugin_times_out(self, hanging_plugin, recorder):
        """Test a plugin call is bounded by the plugin timeout."""
        registry = PluginRegistry()
        registry.register_reporter("hanging", hanging_plugin)
        registry.register_reporter("recorder", recorder)
        reporter = Reporter(registry, "desc", plugin_timeout=0.05)

        await reporter.error("e")

        assert recorder.texts == ["e"]
        assert reporter.plugin_faults == 1
