"""
Base exception classes for qa-verify.

Provides a hierarchy of exceptions for the error types that can surface
around test execution, plugin invocation and configuration.
"""

from typing import Optional, Dict, Any


class QAVerifyError(Exception):
    """Base exception class for all qa-verify errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class PluginError(QAVerifyError):
    """Raised when a reporting or policy plugin call fails."""

    def __init__(
        self,
        message: str,
        plugin_name: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message, "PLUGIN_FAILED")
        self.plugin_name = plugin_name
        self.operation = operation
        self.context.update(
            {
                "plugin_name": plugin_name,
                "operation": operation,
            }
        )


class TestTimeoutError(QAVerifyError):
    """Raised when a test body does not finish within its deadline."""

    def __init__(
        self,
        message: str,
        test_description: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ):
        super().__init__(message, "TEST_TIMEOUT")
        self.test_description = test_description
        self.timeout_ms = timeout_ms
        self.context.update(
            {
                "test_description": test_description,
                "timeout_ms": timeout_ms,
            }
        )


class ValidationError(QAVerifyError):
    """Raised when configuration or test options are malformed."""

    def __init__(
        self,
        message: str,
        validation_type: Optional[str] = None,
        violations: Optional[list] = None,
    ):
        super().__init__(message, "VALIDATION_FAILED")
        self.validation_type = validation_type
        self.violations = violations or []
        self.context.update(
            {
                "validation_type": validation_type,
                "violations": violations,
            }
        )


class EngineStateError(QAVerifyError):
    """Raised on an illegal lifecycle transition (re-running an engine, late plugin registration)."""

    def __init__(
        self,
        message: str,
        state: Optional[str] = None,
    ):
        super().__init__(message, "ILLEGAL_STATE")
        self.state = state
        self.context.update({"state": state})
