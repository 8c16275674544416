"""
Signals that unwind a running test body.

These derive from BaseException, like pytest's own outcome exceptions, so a
body's ``except Exception`` handler cannot swallow them. Only the engine
catches them.
"""

from typing import Optional

from .models import FailureKind, VerificationResult


class AbortSignal(BaseException):
    """Base class for body-unwinding signals."""

    kind = FailureKind.BODY_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class VerificationFailure(AbortSignal):
    """A halting verify call failed."""

    kind = FailureKind.VERIFICATION

    def __init__(self, result: VerificationResult):
        super().__init__(result.message or "verification failed")
        self.result = result


class ExplicitFailure(AbortSignal):
    """The body called ``fail`` with halting enabled."""

    kind = FailureKind.EXPLICIT

    def __init__(self, message: str, test_id: Optional[str] = None):
        super().__init__(message)
        self.test_id = test_id


class SkipSignal(AbortSignal):
    """The body asked for the test to be skipped."""
