"""
qa-verify - Test execution orchestration

Wraps test bodies with policy gating, verification handling, plugin-based
reporting and lifecycle hooks, resolving each to per-test-id outcomes.
"""

__version__ = "0.1.0"
__author__ = "QA Verify Team"

from .core.config import Config
from .core.exceptions import QAVerifyError
from .core.logging_config import setup_logging
from .core.registry import PluginRegistry
from .execution.engine import TestExecutionEngine, run_test
from .execution.models import OutcomeStatus, TestOptions, TestOutcome

__all__ = [
    "Config",
    "QAVerifyError",
    "setup_logging",
    "PluginRegistry",
    "TestExecutionEngine",
    "run_test",
    "OutcomeStatus",
    "TestOptions",
    "TestOutcome",
]
