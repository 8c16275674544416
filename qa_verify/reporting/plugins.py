"""
Reporting plugin contract and built-in reporting plugins.

Plugins are duck-typed against ``ReportingPlugin``; every method may be a
plain function or a coroutine function.
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from jinja2 import Environment, FileSystemLoader

from ..core.logging_config import get_logger
from ..execution.models import LogLevel, ReportingEvent


@runtime_checkable
class ReportingPlugin(Protocol):
    """Receives log events and per-id results for every test."""

    def log(self, level: LogLevel, event: ReportingEvent) -> Any:
        ...

    def on_pass(self, test_id: Optional[str], event: ReportingEvent) -> Any:
        ...

    def on_fail(self, test_id: Optional[str], message: Optional[str], event: ReportingEvent) -> Any:
        ...


def _option(options: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in options:
            return options[key]
    return default


_PYTHON_LEVELS = {
    LogLevel.TRACE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.STEP: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.PASS: logging.INFO,
    LogLevel.FAIL: logging.WARNING,
}


class LoggingReportingPlugin:
    """Forwards test events to the standard ``logging`` module."""

    def __init__(self, logger_name: str = "qa_verify.tests"):
        self.logger = get_logger(logger_name)

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "LoggingReportingPlugin":
        return cls(logger_name=_option(options, "loggerName", "logger_name", default="qa_verify.tests"))

    def _emit(self, event: ReportingEvent) -> None:
        prefix = f"STEP {event.sequence_number}: " if event.sequence_number else ""
        self.logger.log(
            _PYTHON_LEVELS[event.level],
            f"{event.test_description} - {prefix}{event.text}",
            extra={
                "test_description": event.test_description,
                "test_id": event.test_id,
                "status": event.level.value,
            },
        )

    def log(self, level: LogLevel, event: ReportingEvent) -> None:
        self._emit(event)

    def on_pass(self, test_id: Optional[str], event: ReportingEvent) -> None:
        self._emit(event)

    def on_fail(self, test_id: Optional[str], message: Optional[str], event: ReportingEvent) -> None:
        self._emit(event)


def _safe_file_name(description: str, max_length: int = 100) -> str:
    name = re.sub(r"[^A-Za-z0-9_.-]+", "_", description).strip("_")
    return (name or "untitled")[:max_length]


class FileSystemReportingPlugin:
    """
    Appends events and results as JSON lines.

    One file per test description: ``<output_dir>/<description>.jsonl``.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "FileSystemReportingPlugin":
        return cls(output_dir=Path(_option(options, "outputDir", "output_dir", default="logs")))

    def path_for(self, test_description: str) -> Path:
        return self.output_dir / f"{_safe_file_name(test_description)}.jsonl"

    def _append(self, event: ReportingEvent, **fields) -> None:
        record = {**event.to_dict(), **fields}
        with open(self.path_for(event.test_description), "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")

    def log(self, level: LogLevel, event: ReportingEvent) -> None:
        self._append(event)

    def on_pass(self, test_id: Optional[str], event: ReportingEvent) -> None:
        self._append(event, status="passed")

    def on_fail(self, test_id: Optional[str], message: Optional[str], event: ReportingEvent) -> None:
        self._append(event, status="failed", message=message)


class HtmlReportingPlugin:
    """
    Collects per-id results and renders an HTML summary on ``dispose``.

    Log events are ignored; only pass and fail results appear in the report.
    """

    def __init__(
        self,
        output_dir: Path,
        file_name: str = "report.html",
        title: str = "Test Results",
        template_dir: Optional[Path] = None,
    ):
        self.output_dir = Path(output_dir)
        self.file_name = file_name
        self.title = title
        self.template_dir = template_dir or (Path(__file__).parent / "templates")
        self.results: List[Dict[str, Any]] = []

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=True,
        )

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "HtmlReportingPlugin":
        return cls(
            output_dir=Path(_option(options, "outputDir", "output_dir", default="logs")),
            file_name=_option(options, "fileName", "file_name", default="report.html"),
            title=_option(options, "title", default="Test Results"),
        )

    @property
    def report_path(self) -> Path:
        return self.output_dir / self.file_name

    def log(self, level: LogLevel, event: ReportingEvent) -> None:
        pass

    def on_pass(self, test_id: Optional[str], event: ReportingEvent) -> None:
        self._record(event, "passed", None)

    def on_fail(self, test_id: Optional[str], message: Optional[str], event: ReportingEvent) -> None:
        self._record(event, "failed", message)

    def _record(self, event: ReportingEvent, status: str, message: Optional[str]) -> None:
        self.results.append(
            {
                "test_id": event.test_id or "untracked",
                "description": event.test_description,
                "status": status,
                "message": message,
                "timestamp": event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            }
        )

    def render(self) -> str:
        """Render the collected results as an HTML document."""
        passed = sum(1 for r in self.results if r["status"] == "passed")
        template = self.jinja_env.get_template("report.html.j2")
        return template.render(
            title=self.title,
            generated_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
            results=self.results,
            total=len(self.results),
            passed=passed,
            failed=len(self.results) - passed,
        )

    def dispose(self) -> Path:
        """Write the report file and return its path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.report_path.write_text(self.render(), encoding="utf-8")
        return self.report_path


BUILTIN_REPORTING_PLUGINS = {
    "logging": LoggingReportingPlugin.from_options,
    "filesystem": FileSystemReportingPlugin.from_options,
    "html": HtmlReportingPlugin.from_options,
}
