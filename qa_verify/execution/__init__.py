"""
Test execution components for qa-verify.

This module provides the test execution engine, verification matchers,
lifecycle event dispatching and the data models they exchange.
"""

from .models import (
    OutcomeStatus,
    LogLevel,
    LifecycleEvent,
    FailureKind,
    TestOptions,
    VerificationResult,
    TestOutcome,
    ReportingEvent,
)
from .description import TestDescription, extract_test_ids
from .matchers import evaluate
from .signals import AbortSignal, VerificationFailure, ExplicitFailure, SkipSignal
from .events import EventDispatcher
from .engine import EngineState, TestExecutionEngine, VerificationHandle, run_test

__all__ = [
    "OutcomeStatus",
    "LogLevel",
    "LifecycleEvent",
    "FailureKind",
    "TestOptions",
    "VerificationResult",
    "TestOutcome",
    "ReportingEvent",
    "TestDescription",
    "extract_test_ids",
    "evaluate",
    "AbortSignal",
    "VerificationFailure",
    "ExplicitFailure",
    "SkipSignal",
    "EventDispatcher",
    "EngineState",
    "TestExecutionEngine",
    "VerificationHandle",
    "run_test",
]
