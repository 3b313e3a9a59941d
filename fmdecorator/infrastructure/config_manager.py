#!/usr/bin/env python3
"""Configuration and rule settings for fmdecorator.

This module provides configuration management with:
- Source precedence (defaults < user file < environment < CLI < runtime)
- YAML settings files
- FMDECORATOR_* environment variable overrides
- Change watchers
- Parsing of the persisted rule list into Rule objects
- Parsing of the criteria text users type into rule settings

Example:
    >>> config = ConfigManager()
    >>> config.load_file("fmdecorator.yaml")
    >>> rules = config.load_rules()
    >>> config.get("fmdecorator.logging.level", default="INFO")
"""

import copy
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import yaml

from fmdecorator.core.constants import ENV_PREFIX, ErrorCode, RuleInputType
from fmdecorator.rules.frontmatter import to_comparable
from fmdecorator.rules.models import (
    FileFunctionConfig,
    IndividualConfig,
    Rule,
    RuleConfig,
    UnrecognizedConfig,
)


class ConfigSource(Enum):
    """Configuration source precedence levels."""

    COMPILED_DEFAULTS = 1  # Lowest precedence
    USER_CONFIG = 2
    ENVIRONMENT = 3
    CLI_ARGS = 4
    RUNTIME = 5  # Highest precedence


class ConfigurationError(Exception):
    """Malformed settings or criteria."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


def parse_match_tokens(text: str) -> Tuple[str, ...]:
    """Parse one-token-per-line criteria text, dropping blank lines."""
    return tuple(line for line in text.split("\n") if line)


def _check_criteria_value(key: str, value: Any) -> None:
    if isinstance(value, (list, tuple)):
        for item in value:
            if to_comparable(item) is None:
                raise ConfigurationError(
                    f"Frontmatter criterion '{key}' may only list scalars, got {item!r}"
                )
    elif to_comparable(value) is None:
        raise ConfigurationError(
            f"Frontmatter criterion '{key}' must be a scalar or list of scalars, got {value!r}"
        )


def validate_frontmatter_criteria(criteria: Any) -> Dict[str, Any]:
    """Check a frontmatter criteria mapping.

    Args:
        criteria: Parsed criteria

    Returns:
        The criteria as a plain dict

    Raises:
        ConfigurationError: If it is not a mapping of key -> scalar | list of scalars
    """
    if not isinstance(criteria, Mapping):
        raise ConfigurationError(
            f"Frontmatter criteria must be a mapping, got {type(criteria).__name__}"
        )
    for key, value in criteria.items():
        if not isinstance(key, str):
            raise ConfigurationError(f"Frontmatter key must be a string: {key!r}")
        _check_criteria_value(key, value)
    return dict(criteria)


def parse_frontmatter_criteria(text: str) -> Dict[str, Any]:
    """Parse frontmatter criteria typed as JSON (or YAML).

    Blank text means no criteria.

    Raises:
        ConfigurationError: If the text is invalid or not a criteria mapping
    """
    if not text.strip():
        return {}
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid JSON: {e}")
    return validate_frontmatter_criteria(parsed)


def update_frontmatter_criteria(config: IndividualConfig, text: str) -> IndividualConfig:
    """Return a copy of ``config`` with new frontmatter criteria.

    On error nothing is returned, so the caller keeps the last valid config.

    Raises:
        ConfigurationError: If the text cannot be parsed
    """
    return IndividualConfig(
        tags=config.tags,
        paths=config.paths,
        titles=config.titles,
        frontmatter=parse_frontmatter_criteria(text),
    )


def _token_list(data: Mapping[str, Any], key: str) -> Tuple[str, ...]:
    value = data.get(key) or []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"Rule config '{key}' must be a list of strings")
    if not all(isinstance(token, str) for token in value):
        raise ConfigurationError(f"Rule config '{key}' must only contain strings")
    return tuple(value)


def rule_config_from_dict(data: Mapping[str, Any]) -> RuleConfig:
    """Build a rule config variant from persisted settings.

    Unknown ``type`` values produce an UnrecognizedConfig rather than an error.

    Raises:
        ConfigurationError: If a known variant is malformed
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError("Rule 'config' must be a mapping")

    config_type = data.get("type")
    if config_type == RuleInputType.INDIVIDUAL.value:
        return IndividualConfig(
            tags=_token_list(data, "tags"),
            paths=_token_list(data, "paths"),
            titles=_token_list(data, "titles"),
            frontmatter=validate_frontmatter_criteria(data.get("frontmatter") or {}),
        )
    elif config_type == RuleInputType.FUNCTION_FILE.value:
        file_path = data.get("filePath", data.get("file_path", ""))
        if not isinstance(file_path, str):
            raise ConfigurationError("Rule config 'filePath' must be a string")
        return FileFunctionConfig(file_path=file_path)

    options = {k: v for k, v in data.items() if k != "type"}
    return UnrecognizedConfig(type=str(config_type), options=options)


def rule_from_dict(data: Mapping[str, Any]) -> Rule:
    """Build a Rule from one persisted settings entry.

    Raises:
        ConfigurationError: If the entry is malformed
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Rule entry must be a mapping, got {type(data).__name__}")

    rule_id = data.get("id")
    if rule_id is None or rule_id == "":
        raise ConfigurationError("Rule entry requires an 'id'")

    class_name = data.get("className", data.get("class_name", ""))
    if not isinstance(class_name, str):
        raise ConfigurationError(f"Rule {rule_id}: 'className' must be a string")

    enabled = data.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigurationError(f"Rule {rule_id}: 'enabled' must be true or false")

    return Rule(
        id=str(rule_id),
        name=str(data.get("name", "")),
        enabled=enabled,
        class_name=class_name,
        config=rule_config_from_dict(data.get("config") or {}),
    )


def rules_from_list(entries: Any) -> List[Rule]:
    """Build the ordered rule list, rejecting duplicate ids.

    Raises:
        ConfigurationError: If the list or any entry is malformed
    """
    if entries is None:
        return []
    if not isinstance(entries, (list, tuple)):
        raise ConfigurationError("'rules' must be a list")

    rules = []
    seen = set()
    for entry in entries:
        rule = rule_from_dict(entry)
        if rule.id in seen:
            raise ConfigurationError(f"Duplicate rule id: {rule.id}")
        seen.add(rule.id)
        rules.append(rule)
    return rules


class ConfigManager:
    """Thread-safe layered configuration.

    Precedence, lowest first:
    1. Compiled defaults
    2. User settings file (YAML)
    3. Environment variables (FMDECORATOR_*)
    4. CLI arguments
    5. Runtime updates
    """

    DEFAULT_CONFIG = {
        "fmdecorator": {
            "vault": ".",
            "rules": [],
            "logging": {
                "level": "INFO",
                "file": None,
            },
            "loader": {
                "background": True,
            },
        }
    }

    def __init__(self, config_file: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_file: Optional settings file to load
        """
        self._config: Dict[ConfigSource, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self._watchers: List[Callable[[Dict[str, Any]], None]] = []
        self._files: Dict[str, ConfigSource] = {}

        self._config[ConfigSource.COMPILED_DEFAULTS] = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file:
            self.load_file(config_file)

        self._load_environment()

    def load_file(self, file_path: str, source: ConfigSource = ConfigSource.USER_CONFIG) -> None:
        """Load configuration from a YAML file.

        Args:
            file_path: Path to YAML settings file
            source: Configuration source level

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        path = Path(file_path).expanduser().resolve()

        if not path.exists():
            raise ConfigurationError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"YAML parse error in {file_path}: {e}")
        except OSError as e:
            raise ConfigurationError(
                f"Error loading config {file_path}: {e}", ErrorCode.INTERNAL_ERROR
            )

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Invalid config format in {file_path}")

        # Bare settings files (only "rules", "vault", ...) are scoped for convenience
        if "fmdecorator" not in config_data:
            config_data = {"fmdecorator": config_data}

        with self._lock:
            self._config[source] = config_data
            self._files[str(path)] = source

    def load_dict(self, config_data: Dict[str, Any], source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Load configuration from a dictionary."""
        with self._lock:
            self._config[source] = copy.deepcopy(config_data)
        self._notify_watchers()

    def _load_environment(self) -> None:
        """Load configuration from environment variables.

        Format: FMDECORATOR_SECTION_KEY=value, e.g. FMDECORATOR_LOGGING_LEVEL=DEBUG
        """
        env_config: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_")

            current = env_config
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = self._parse_env_value(value)

        if env_config:
            with self._lock:
                self._config[ConfigSource.ENVIRONMENT] = {"fmdecorator": env_config}

    def _parse_env_value(self, value: str) -> Any:
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-separated key.

        Args:
            key: Key path (e.g., "fmdecorator.logging.level")
            default: Default value if key not found

        Returns:
            Value from the highest-precedence source that defines it
        """
        with self._lock:
            for source in sorted(self._config.keys(), key=lambda s: s.value, reverse=True):
                value = self._get_nested(self._config[source], key)
                if value is not None:
                    return value

            return default

    def _get_nested(self, config: Dict[str, Any], key: str) -> Optional[Any]:
        current: Any = config
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set configuration value.

        Args:
            key: Dot-separated key path
            value: Value to set
            source: Configuration source level
        """
        with self._lock:
            current = self._config.setdefault(source, {})
            parts = key.split(".")
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

        self._notify_watchers()

    def get_all(self) -> Dict[str, Any]:
        """Get merged configuration from all sources."""
        with self._lock:
            merged: Dict[str, Any] = {}
            for source in sorted(self._config.keys(), key=lambda s: s.value):
                merged = self._deep_merge(merged, self._config[source])
            return merged

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def load_rules(self) -> List[Rule]:
        """Parse the configured rule list.

        Raises:
            ConfigurationError: If the rule list is malformed
        """
        return rules_from_list(self.get("fmdecorator.rules", []))

    def reload(self) -> None:
        """Reload all file-based configuration.

        Raises:
            ConfigurationError: If a file no longer parses (earlier values are kept)
        """
        with self._lock:
            files = list(self._files.items())

        for file_path, source in files:
            self.load_file(file_path, source)

        self._notify_watchers()

    def add_watcher(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Add a callback invoked with the merged config on changes."""
        with self._lock:
            self._watchers.append(callback)

    def remove_watcher(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Remove a configuration change watcher."""
        with self._lock:
            if callback in self._watchers:
                self._watchers.remove(callback)

    def _notify_watchers(self) -> None:
        merged = self.get_all()
        with self._lock:
            watchers = list(self._watchers)

        for watcher in watchers:
            watcher(merged)
