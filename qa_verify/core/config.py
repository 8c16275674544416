"""
Configuration management for qa-verify.

Handles environment variables, defaults, and configuration validation
for the execution engine, reporter and policy engine.
"""

import os
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from pathlib import Path


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARN", "ERROR"]
VALID_LOG_FORMATS = ["text", "json"]
VALID_REPORT_LEVELS = ["trace", "debug", "info", "step", "warn", "error", "none"]
VALID_FAULT_MODES = ["abstain", "deny"]
VALID_PLUGIN_KINDS = ["reporting", "policy"]


def _env_flag(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PluginConfig:
    """A plugin entry as resolved from the host configuration."""

    name: str
    kind: str = "reporting"
    options: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "options": dict(self.options),
            "enabled": self.enabled,
        }


@dataclass
class Config:
    """Configuration class for qa-verify with environment variable support."""

    # Python logging for the library itself
    log_level: str = field(default="INFO")
    log_format: str = field(default="text")
    logs_dir: Optional[Path] = field(default=None)

    # Reporter threshold applied to test events
    report_log_level: str = field(default="info")

    # Execution defaults
    halt_on_verify_failure: bool = field(default=True)
    test_timeout_ms: Optional[int] = field(default=None)

    # Policy engine
    policy_engine_enabled: bool = field(default=True)
    policy_fault_mode: str = field(default="abstain")

    # Upper bound for any single plugin call, in seconds
    plugin_timeout: float = field(default=10.0)

    plugins: List[PluginConfig] = field(default_factory=list)

    def __post_init__(self):
        """Apply environment overrides and normalise values."""
        log_env = os.getenv("QA_VERIFY_LOG_LEVEL")
        if log_env:
            self.log_level = log_env
        self.log_level = self.log_level.upper()
        if self.log_level == "WARNING":
            self.log_level = "WARN"

        format_env = os.getenv("QA_VERIFY_LOG_FORMAT")
        if format_env:
            self.log_format = format_env.lower()
        elif os.getenv("CI", "").lower() == "true" and self.log_format == "text":
            self.log_format = "json"

        report_env = os.getenv("QA_VERIFY_REPORT_LEVEL")
        if report_env:
            self.report_log_level = report_env
        self.report_log_level = self.report_log_level.lower()

        policy_env = _env_flag("QA_VERIFY_POLICY_ENGINE_ENABLED")
        if policy_env is not None:
            self.policy_engine_enabled = policy_env

        halt_env = _env_flag("QA_VERIFY_HALT_ON_VERIFY_FAILURE")
        if halt_env is not None:
            self.halt_on_verify_failure = halt_env

        timeout_env = os.getenv("QA_VERIFY_PLUGIN_TIMEOUT")
        if timeout_env is not None:
            try:
                self.plugin_timeout = float(timeout_env)
            except ValueError:
                pass

        self.policy_fault_mode = self.policy_fault_mode.lower()

        if self.logs_dir is not None:
            self.logs_dir = Path(self.logs_dir)

        self.plugins = [
            p if isinstance(p, PluginConfig) else PluginConfig(**p)
            for p in self.plugins
        ]

    @property
    def debug_enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"

    @property
    def file_logging_enabled(self) -> bool:
        return self.logs_dir is not None

    def get_log_file_path(self) -> Path:
        """Get the main log file path."""
        self.logs_dir.mkdir(parents=True, exist_ok=True)
        return self.logs_dir / "qa-verify.log"

    def plugins_of_kind(self, kind: str) -> List[PluginConfig]:
        return [p for p in self.plugins if p.kind == kind and p.enabled]

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging."""
        return {
            "log_level": self.log_level,
            "log_format": self.log_format,
            "logs_dir": str(self.logs_dir) if self.logs_dir else None,
            "report_log_level": self.report_log_level,
            "halt_on_verify_failure": self.halt_on_verify_failure,
            "test_timeout_ms": self.test_timeout_ms,
            "policy_engine_enabled": self.policy_engine_enabled,
            "policy_fault_mode": self.policy_fault_mode,
            "plugin_timeout": self.plugin_timeout,
            "plugins": [p.to_dict() for p in self.plugins],
        }

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        return cls()

    def validate(self) -> None:
        """Validate configuration and raise ValidationError if invalid."""
        from .exceptions import ValidationError

        errors = []

        if self.log_level not in VALID_LOG_LEVELS:
            errors.append(
                f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}"
            )

        if self.log_format not in VALID_LOG_FORMATS:
            errors.append(
                f"Invalid log format: {self.log_format}. Must be one of {VALID_LOG_FORMATS}"
            )

        if self.report_log_level not in VALID_REPORT_LEVELS:
            errors.append(
                f"Invalid report log level: {self.report_log_level}. "
                f"Must be one of {VALID_REPORT_LEVELS}"
            )

        if self.policy_fault_mode not in VALID_FAULT_MODES:
            errors.append(
                f"Invalid policy fault mode: {self.policy_fault_mode}. "
                f"Must be one of {VALID_FAULT_MODES}"
            )

        if self.plugin_timeout <= 0:
            errors.append("Plugin timeout must be greater than zero")

        if self.test_timeout_ms is not None and self.test_timeout_ms <= 0:
            errors.append("Test timeout must be greater than zero")

        seen = set()
        for plugin in self.plugins:
            if not plugin.name:
                errors.append("Plugin entries require a name")
            if plugin.kind not in VALID_PLUGIN_KINDS:
                errors.append(
                    f"Invalid plugin kind for {plugin.name}: {plugin.kind}. "
                    f"Must be one of {VALID_PLUGIN_KINDS}"
                )
            key = (plugin.kind, plugin.name)
            if key in seen:
                errors.append(f"Duplicate {plugin.kind} plugin: {plugin.name}")
            seen.add(key)

        if errors:
            message = "Configuration validation failed: " + "; ".join(errors)
            raise ValidationError(
                message,
                validation_type="config",
                violations=errors,
            )
