"""
Configuration file loading for qa-verify.

Reads a YAML or JSON configuration file, accepts the camelCase keys used by
host test-runner configuration, and produces a validated Config.
"""

import json
import threading
from pathlib import Path
from typing import Dict, Any, Optional, List

import yaml

from .config import Config, PluginConfig
from .exceptions import ValidationError
from .logging_config import get_logger


DEFAULT_CONFIG_FILES = ["qa-verify.config.yaml", "qa-verify.config.yml", "qa-verify.config.json"]

# host configuration key -> Config field
KEY_ALIASES = {
    "logLevel": "report_log_level",
    "reportLogLevel": "report_log_level",
    "libraryLogLevel": "log_level",
    "logFormat": "log_format",
    "logsDir": "logs_dir",
    "haltOnVerifyFailure": "halt_on_verify_failure",
    "testTimeoutMs": "test_timeout_ms",
    "policyEngineEnabled": "policy_engine_enabled",
    "policyFaultMode": "policy_fault_mode",
    "pluginTimeout": "plugin_timeout",
}

PLUGIN_KEY_ALIASES = {
    "pluginName": "name",
    "type": "kind",
}


class ConfigManager:
    """
    Loads and caches configuration from a file.

    The file may be YAML or JSON. Unknown keys are rejected so that typos in
    option names surface as validation errors instead of silent defaults.
    """

    def __init__(self, config_file_path: Optional[Path] = None):
        self.config_file_path = config_file_path or self._find_default_file()
        self.logger = get_logger("qa_verify.config")
        self._config: Optional[Config] = None
        self._lock = threading.RLock()

    @staticmethod
    def _find_default_file() -> Optional[Path]:
        for name in DEFAULT_CONFIG_FILES:
            candidate = Path.cwd() / name
            if candidate.exists():
                return candidate
        return None

    def get_config(self) -> Config:
        """Get current configuration, loading if necessary."""
        with self._lock:
            if self._config is None:
                self._config = self._load_config()
            return self._config

    def reload_config(self) -> Config:
        """Force reload configuration from file."""
        with self._lock:
            self._config = self._load_config()
            return self._config

    def validate_config(self, config: Optional[Config] = None) -> List[str]:
        """
        Validate configuration and return list of validation error messages.

        Args:
            config: Configuration to validate. If None, uses current config.

        Returns:
            List of validation error messages. Empty list if valid.
        """
        if config is None:
            config = self.get_config()

        try:
            config.validate()
        except ValidationError as e:
            return list(e.violations) or [str(e)]
        return []

    def _load_config(self) -> Config:
        if self.config_file_path is None:
            self.logger.debug("No configuration file found, using defaults")
            config = Config()
        else:
            data = self._read_file(Path(self.config_file_path))
            config = Config(**self._normalise(data))
            self.logger.info(
                f"Loaded configuration from {self.config_file_path}",
                extra={"metadata": {"plugins": len(config.plugins)}},
            )

        config.validate()
        return config

    def _read_file(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ValidationError(
                f"Configuration file not found: {path}",
                validation_type="config_file",
            )

        text = path.read_text(encoding="utf-8")
        try:
            if path.suffix == ".json":
                data = json.loads(text) if text.strip() else {}
            else:
                data = yaml.safe_load(text) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ValidationError(
                f"Configuration file could not be parsed: {path} - {e}",
                validation_type="config_file",
            )

        if not isinstance(data, dict):
            raise ValidationError(
                f"Configuration file must contain a mapping: {path}",
                validation_type="config_file",
            )
        return data

    def _normalise(self, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = set(Config.__dataclass_fields__)
        normalised: Dict[str, Any] = {}
        unknown = []

        for key, value in data.items():
            target = KEY_ALIASES.get(key, key)
            if target == "plugins":
                normalised["plugins"] = [self._normalise_plugin(p) for p in value or []]
            elif target in fields:
                normalised[target] = value
            else:
                unknown.append(key)

        if unknown:
            raise ValidationError(
                f"Unknown configuration keys: {', '.join(sorted(unknown))}",
                validation_type="config_file",
                violations=[f"Unknown key: {k}" for k in sorted(unknown)],
            )
        return normalised

    def _normalise_plugin(self, entry: Any) -> PluginConfig:
        if isinstance(entry, str):
            return PluginConfig(name=entry)
        if not isinstance(entry, dict):
            raise ValidationError(
                f"Plugin entry must be a name or a mapping: {entry!r}",
                validation_type="config_file",
            )

        values = {PLUGIN_KEY_ALIASES.get(k, k): v for k, v in entry.items()}
        # everything that is not a known plugin field is a plugin option
        options = dict(values.pop("options", None) or {})
        known = {k: values.pop(k) for k in ("name", "kind", "enabled") if k in values}
        if not known.get("name"):
            raise ValidationError(
                f"Plugin entry is missing a name: {entry!r}",
                validation_type="config_file",
            )
        options.update(values)
        return PluginConfig(options=options, **known)
