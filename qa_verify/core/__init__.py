"""Core components for qa-verify."""

from .config import Config, PluginConfig
from .config_manager import ConfigManager
from .exceptions import (
    QAVerifyError,
    PluginError,
    TestTimeoutError,
    ValidationError,
    EngineStateError,
)
from .logging_config import setup_logging, get_logger
from .registry import PluginRegistry, PluginRegistration

__all__ = [
    "Config",
    "PluginConfig",
    "ConfigManager",
    "QAVerifyError",
    "PluginError",
    "TestTimeoutError",
    "ValidationError",
    "EngineStateError",
    "setup_logging",
    "get_logger",
    "PluginRegistry",
    "PluginRegistration",
]
