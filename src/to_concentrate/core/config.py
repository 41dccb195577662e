"""Configuration management for To Concentrate."""

import copy
import os
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

_MESSAGE_SCHEMA = {
    "type": "object",
    "properties": {
        "summary": {"type": "string", "minLength": 1},
        "body": {"type": ["string", "null"]},
    },
    "required": ["summary"],
    "additionalProperties": False,
}

_STAGES = ("preparation", "concentration", "relaxation")


def default_config_path() -> Path:
    """Get the default configuration file path.

    Returns:
        ``$XDG_CONFIG_HOME/to-concentrate/config.yml``
    """
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "to-concentrate" / "config.yml"


class ConfigManager:
    """Load, validate and generate the daemon configuration."""

    DEFAULT_CONFIG = {
        "duration": {
            "preparation": 900,
            "concentration": 2400,
            "relaxation": 600,
        },
        "notification": {
            "preparation": {
                "summary": "Preparation Stage End",
                "body": "It's time to start concentrating on learning.",
            },
            "concentration": {
                "summary": "Concentration Stage End",
                "body": "Well done! Remember to have a rest.",
            },
            "relaxation": {
                "summary": "Relaxation Stage End",
                "body": "Feel energetic now? Let's continue.",
            },
        },
        "notifications": {
            "enabled": True,
            "app_name": "To Concentrate",
        },
        "runtime": {
            "socket": None,
            "pid_file": None,
        },
        "advanced": {
            "log_level": "INFO",
        },
    }

    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "duration": {
                "type": "object",
                "properties": {
                    stage: {"type": "integer", "minimum": 1} for stage in _STAGES
                },
                "required": list(_STAGES),
                "additionalProperties": False,
            },
            "notification": {
                "type": "object",
                "properties": {stage: _MESSAGE_SCHEMA for stage in _STAGES},
                "required": list(_STAGES),
                "additionalProperties": False,
            },
            "notifications": {
                "type": "object",
                "properties": {
                    "enabled": {"type": "boolean"},
                    "app_name": {"type": "string"},
                },
            },
            "runtime": {
                "type": "object",
                "properties": {
                    "socket": {"type": ["string", "null"]},
                    "pid_file": {"type": ["string", "null"]},
                },
            },
            "advanced": {
                "type": "object",
                "properties": {
                    "log_level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR"],
                    },
                },
            },
        },
        "required": ["duration", "notification"],
    }

    def __init__(self, config_path: Optional[Path] = None, create: bool = True):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file. Defaults to the XDG config directory
            create: Write a default config file when none exists

        Raises:
            FileNotFoundError: If the file is missing and ``create`` is False
            ValueError: If the configuration is invalid
        """
        self.config_path = config_path or default_config_path()
        self._config: dict[str, Any] = {}
        self._load_or_create(create)

    def _load_or_create(self, create: bool) -> None:
        """Load existing config or create default."""
        if self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                try:
                    loaded_config = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ValueError(f"Could not parse {self.config_path}: {e}")
            if not isinstance(loaded_config, dict):
                raise ValueError(f"Configuration in {self.config_path} must be a mapping")
            # Merge with defaults to ensure all keys exist
            self._config = self._merge_with_defaults(loaded_config)
            self.validate()
        elif create:
            self._config = copy.deepcopy(self.DEFAULT_CONFIG)
            self.save()
        else:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

    def _merge_with_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """Merge config with defaults to ensure all keys exist.

        Args:
            config: User configuration

        Returns:
            Merged configuration with all default keys
        """
        result = copy.deepcopy(self.DEFAULT_CONFIG)
        self._deep_merge(result, config)
        return result

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> None:
        """Deep merge override into base dictionary (in-place)."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            key: Configuration key in dot notation (e.g., 'duration.preparation')
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get('duration.relaxation')
            600
            >>> config.get('notification.relaxation.body', '')
            "Feel energetic now? Let's continue."
        """
        keys = key.split(".")
        value: Any = self._config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
            if value is None:
                return default
        return value

    def validate(self) -> bool:
        """Validate configuration against schema.

        Returns:
            True if valid

        Raises:
            ValueError: If configuration is invalid
        """
        try:
            validate(instance=self._config, schema=self.CONFIG_SCHEMA)
            return True
        except ValidationError as e:
            path = ".".join(str(part) for part in e.absolute_path)
            location = f" at '{path}'" if path else ""
            raise ValueError(f"Invalid configuration{location}: {e.message}")

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    def to_dict(self) -> dict[str, Any]:
        """Get full configuration as dictionary.

        Returns:
            Copy of configuration dictionary
        """
        return copy.deepcopy(self._config)
