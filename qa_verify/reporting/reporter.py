"""
Reporter facade.

One Reporter is created per test invocation. It formats ReportingEvents and
fans them out, in registration order, to the reporting plugins of a shared
PluginRegistry. Plugin failures are isolated and logged on the
``qa_verify.reporting`` logger.
"""

from typing import Optional, Union

from ..core.exceptions import PluginError
from ..core.logging_config import get_logger, log_plugin_fault
from ..core.registry import PluginRegistration, PluginRegistry, invoke_plugin
from ..execution.models import LogLevel, ReportingEvent


class Reporter:
    """Leveled logging facade over the registered reporting plugins."""

    def __init__(
        self,
        registry: PluginRegistry,
        test_description: str,
        log_level: Union[LogLevel, str] = LogLevel.INFO,
        plugin_timeout: Optional[float] = None,
    ):
        """
        Initialize the reporter.

        Args:
            registry: Shared plugin registry
            test_description: Description of the test this reporter serves
            log_level: Threshold; events more verbose than this are dropped
            plugin_timeout: Upper bound in seconds for each plugin call
        """
        self.registry = registry
        self.test_description = test_description
        self.log_level = LogLevel(log_level)
        self.plugin_timeout = plugin_timeout
        self.logger = get_logger("qa_verify.reporting")
        self.plugin_faults = 0
        self._sequence = 0

    @property
    def step_count(self) -> int:
        return self._sequence

    def threshold_for(self, registration: PluginRegistration) -> LogLevel:
        """Per-plugin ``logLevel`` option overrides the reporter threshold."""
        override = registration.option("logLevel") or registration.option("log_level")
        return LogLevel(override) if override else self.log_level

    async def log(self, level: Union[LogLevel, str], text: str) -> ReportingEvent:
        """Emit a leveled event to every plugin whose threshold it clears."""
        level = LogLevel(level)
        if level in (LogLevel.PASS, LogLevel.FAIL, LogLevel.NONE):
            raise ValueError(f"'{level.value}' cannot be logged directly")

        sequence = None
        if level is LogLevel.STEP:
            self._sequence += 1
            sequence = self._sequence

        event = ReportingEvent(
            level=level,
            test_description=self.test_description,
            text=str(text),
            sequence_number=sequence,
        )

        for registration in self.registry.reporters:
            if level.passes(self.threshold_for(registration)):
                await self._invoke(registration, "log", level, event)
        return event

    async def trace(self, text: str) -> ReportingEvent:
        return await self.log(LogLevel.TRACE, text)

    async def debug(self, text: str) -> ReportingEvent:
        return await self.log(LogLevel.DEBUG, text)

    async def info(self, text: str) -> ReportingEvent:
        return await self.log(LogLevel.INFO, text)

    async def step(self, text: str) -> ReportingEvent:
        return await self.log(LogLevel.STEP, text)

    async def warn(self, text: str) -> ReportingEvent:
        return await self.log(LogLevel.WARN, text)

    async def error(self, text: str) -> ReportingEvent:
        return await self.log(LogLevel.ERROR, text)

    async def pass_(self, test_id: Optional[str]) -> ReportingEvent:
        """Report a passed test id. Always emitted."""
        event = ReportingEvent(
            level=LogLevel.PASS,
            test_description=self.test_description,
            text=f"{test_id or 'untracked'} passed",
            test_id=test_id,
        )
        for registration in self.registry.reporters:
            await self._invoke(registration, "on_pass", test_id, event)
        return event

    async def fail(self, test_id: Optional[str], message: Optional[str]) -> ReportingEvent:
        """Report a failed test id. Always emitted."""
        event = ReportingEvent(
            level=LogLevel.FAIL,
            test_description=self.test_description,
            text=f"{test_id or 'untracked'} failed: {message}",
            test_id=test_id,
        )
        for registration in self.registry.reporters:
            await self._invoke(registration, "on_fail", test_id, message, event)
        return event

    async def _invoke(self, registration: PluginRegistration, operation: str, *args) -> None:
        try:
            await invoke_plugin(registration, operation, *args, timeout=self.plugin_timeout)
        except PluginError as e:
            self.plugin_faults += 1
            log_plugin_fault(
                self.logger,
                registration.name,
                operation,
                e,
                test_description=self.test_description,
            )
