"""
Unit tests for the built-in reporting plugins.
"""

import json
import logging

from qa_verify.core.registry import PluginRegistry
from qa_verify.execution.engine import run_test
from qa_verify.execution.models import LogLevel, ReportingEvent
from qa_verify.policy.plugins import StaticPolicyPlugin
from qa_verify.reporting.plugins import (
    FileSystemReportingPlugin,
    HtmlReportingPlugin,
    LoggingReportingPlugin,
    ReportingPlugin,
)


def result_event(level, test_id, description="[C1] demo"):
    return ReportingEvent(
        level=level,
        test_description=description,
        text=f"{test_id} {level.value}",
        test_id=test_id,
    )


class TestPluginContract:
    def test_builtins_satisfy_protocol(self, tmp_path):
        assert isinstance(LoggingReportingPlugin(), ReportingPlugin)
        assert isinstance(FileSystemReportingPlugin(tmp_path), ReportingPlugin)
        assert isinstance(HtmlReportingPlugin(tmp_path), ReportingPlugin)


class TestLoggingReportingPlugin:
    """Test cases for LoggingReportingPlugin."""

    async def test_events_reach_python_logging(self, config, caplog):
        registry = PluginRegistry()
        registry.register_reporter("logging", LoggingReportingPlugin.from_options({}))

        async def body(t):
            await t.step("open page")
            await t.verify(1, 2)

        with caplog.at_level(logging.DEBUG, logger="qa_verify.tests"):
            await run_test("[C1] demo", body, registry=registry, config=config)

        messages = [r.getMessage() for r in caplog.records if r.name == "qa_verify.tests"]
        assert messages[0] == "[C1] demo - STEP 1: open page"
        assert messages[-1].startswith("[C1] demo - C1 failed: ")

        failed = [r for r in caplog.records if r.name == "qa_verify.tests"][-1]
        assert failed.levelno == logging.WARNING
        assert failed.test_id == "C1"
        assert failed.status == "fail"

    def test_custom_logger_name(self):
        plugin = LoggingReportingPlugin.from_options({"loggerName": "suite"})

        assert plugin.logger.name == "suite"


class TestFileSystemReportingPlugin:
    """Test cases for FileSystemReportingPlugin."""

    async def test_writes_json_lines(self, config, tmp_path):
        """Test steps and per-id results are appended to one file."""
        plugin = FileSystemReportingPlugin.from_options({"outputDir": str(tmp_path)})
        registry = PluginRegistry()
        registry.register_reporter("filesystem", plugin)

        async def body(t):
            await t.step("open page")
            t.fail("bad total", test_id="C2")

        await run_test("[C1][C2] checkout", body, registry=registry, config=config)

        path = plugin.path_for("[C1][C2] checkout")
        assert path == tmp_path / "C1_C2_checkout.jsonl"
        records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]

        assert records[0]["level"] == "step"
        assert records[0]["sequence_number"] == 1
        assert records[0]["text"] == "open page"
        results = [r for r in records if "status" in r]
        assert [(r["test_id"], r["status"]) for r in results] == [("C1", "passed"), ("C2", "failed")]
        assert results[1]["message"] == "bad total"

    def test_unsafe_description_characters(self, tmp_path):
        plugin = FileSystemReportingPlugin(tmp_path)

        assert plugin.path_for("a/b: c?").name == "a_b_c.jsonl"
        assert plugin.path_for("[]").name == "untitled.jsonl"


class TestHtmlReportingPlugin:
    """Test cases for HtmlReportingPlugin."""

    def test_collects_results_only(self, tmp_path):
        plugin = HtmlReportingPlugin(tmp_path)

        plugin.log(LogLevel.INFO, result_event(LogLevel.INFO, "C1"))
        plugin.on_pass("C1", result_event(LogLevel.PASS, "C1"))
        plugin.on_fail("C2", "boom", result_event(LogLevel.FAIL, "C2"))

        assert [(r["test_id"], r["status"], r["message"]) for r in plugin.results] == [
            ("C1", "passed", None),
            ("C2", "failed", "boom"),
        ]

    def test_render_escapes_content(self, tmp_path):
        """Test messages are HTML escaped."""
        plugin = HtmlReportingPlugin(tmp_path, title="Nightly")
        plugin.on_fail("C2", "<script>alert(1)</script>", result_event(LogLevel.FAIL, "C2"))

        html = plugin.render()

        assert "<title>Nightly</title>" in html
        assert "&lt;script&gt;" in html
        assert "<script>" not in html
        assert "1 results" in html
        assert "0 passed" in html

    async def test_dispose_writes_report(self, config, tmp_path):
        """Test registry disposal writes the HTML file."""
        plugin = HtmlReportingPlugin.from_options(
            {"outputDir": str(tmp_path / "html"), "fileName": "index.html"}
        )
        registry = PluginRegistry()
        registry.register_reporter("html", plugin)
        registry.register_policy("static", StaticPolicyPlugin(denied_ids=["C9"]))

        await run_test("[C1] passes", lambda t: None, registry=registry, config=config)
        await run_test("[C9] denied", lambda t: None, registry=registry, config=config)
        await registry.dispose()

        html = (tmp_path / "html" / "index.html").read_text(encoding="utf-8")
        assert "passes" in html
        # skipped tests produce no pass or fail result
        assert "denied" not in html
        assert plugin.report_path == tmp_path / "html" / "index.html"
