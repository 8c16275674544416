"""
Data models for test execution and reporting.

Defines Pydantic models for test options, verification results, test
outcomes and reporting events, plus the enums they share.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OutcomeStatus(Enum):
    """Final status of one test id."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class LogLevel(Enum):
    """Reporting levels. PASS and FAIL are result levels, not thresholds."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    STEP = "step"
    WARN = "warn"
    ERROR = "error"
    PASS = "pass"
    FAIL = "fail"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]

    @property
    def always_emitted(self) -> bool:
        return self in (LogLevel.STEP, LogLevel.PASS, LogLevel.FAIL)

    def passes(self, threshold: "LogLevel") -> bool:
        """Check if an event at this level clears ``threshold``."""
        if self.always_emitted:
            return True
        if threshold is LogLevel.NONE:
            return False
        return self.rank <= threshold.rank


# none < error < warn < info < debug < trace
_LEVEL_RANKS = {
    LogLevel.NONE: 0,
    LogLevel.ERROR: 1,
    LogLevel.WARN: 2,
    LogLevel.INFO: 3,
    LogLevel.STEP: 3,
    LogLevel.DEBUG: 4,
    LogLevel.TRACE: 5,
    LogLevel.PASS: 0,
    LogLevel.FAIL: 0,
}


class LifecycleEvent(Enum):
    """Events fired by the engine once outcomes are known."""

    DONE = "done"
    FAIL = "fail"
    SKIP = "skip"


class FailureKind(Enum):
    """Internal classification of why a test failed."""

    VERIFICATION = "verification"
    EXPLICIT = "explicit"
    BODY_ERROR = "body_error"
    TIMEOUT = "timeout"


class TestOptions(BaseModel):
    """Options for a single test execution. Unset fields fall back to Config."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    halt_on_verify_failure: Optional[bool] = Field(
        None,
        alias="haltOnVerifyFailure",
        description="Abort the test body on the first failed verification",
    )
    log_level: Optional[LogLevel] = Field(
        None, alias="logLevel", description="Reporter threshold for this test"
    )
    on_events: Dict[LifecycleEvent, List[Callable[[], Any]]] = Field(
        default_factory=dict,
        alias="onEventsMap",
        description="Zero-arg callbacks per lifecycle event, in call order",
    )
    policy_engine_enabled: Optional[bool] = Field(
        None, alias="policyEngineEnabled", description="Consult policy plugins"
    )
    timeout_ms: Optional[int] = Field(
        None, alias="timeoutMs", gt=0, description="Deadline for the test body"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        if v in (LogLevel.PASS, LogLevel.FAIL):
            raise ValueError(f"'{v.value}' is not a log level threshold")
        return v


class VerificationResult(BaseModel):
    """Outcome of one verify call."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    passed: bool = Field(..., description="Whether the check succeeded")
    message: Optional[str] = Field(None, description="Failure description")
    actual: Any = Field(None, description="Value under test")
    expected: Any = Field(None, description="Expected value or matcher")


class TestOutcome(BaseModel):
    """Final result for one test id."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    test_id: Optional[str] = Field(None, description="External test id, None if untracked")
    status: OutcomeStatus = Field(..., description="Final status")
    message: Optional[str] = Field(None, description="Failure or skip reason")
    duration_ms: float = Field(0.0, ge=0, description="Execution duration in milliseconds")

    @property
    def passed(self) -> bool:
        return self.status == OutcomeStatus.PASSED

    @property
    def failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED

    @property
    def skipped(self) -> bool:
        return self.status == OutcomeStatus.SKIPPED

    def to_summary(self) -> Dict[str, Any]:
        """Create a summary dictionary for logging."""
        return {
            "test_id": self.test_id,
            "status": self.status.value,
            "message": self.message,
            "duration_ms": self.duration_ms,
        }


class ReportingEvent(BaseModel):
    """A single event sent to reporting plugins."""

    model_config = ConfigDict(frozen=True)

    level: LogLevel = Field(..., description="Event level")
    test_description: str = Field(..., description="Description of the emitting test")
    text: str = Field("", description="Event text")
    sequence_number: Optional[int] = Field(
        None, ge=1, description="Per-test step counter, step events only"
    )
    test_id: Optional[str] = Field(None, description="Test id for pass/fail events")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp",
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "test_description": self.test_description,
            "text": self.text,
            "sequence_number": self.sequence_number,
            "test_id": self.test_id,
            "timestamp": self.timestamp.isoformat(),
        }
