"""
Reporting components for qa-verify.

This module provides the per-test Reporter facade, the reporting plugin
contract and the built-in logging, filesystem and HTML plugins.
"""

from .reporter import Reporter
from .plugins import (
    ReportingPlugin,
    LoggingReportingPlugin,
    FileSystemReportingPlugin,
    HtmlReportingPlugin,
    BUILTIN_REPORTING_PLUGINS,
)

__all__ = [
    "Reporter",
    "ReportingPlugin",
    "LoggingReportingPlugin",
    "FileSystemReportingPlugin",
    "HtmlReportingPlugin",
    "BUILTIN_REPORTING_PLUGINS",
]
