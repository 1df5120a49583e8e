"""Server configuration loaded from YAML with environment expansion."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .sweeper import DEFAULT_LIVENESS_WINDOW_MS, DEFAULT_SWEEP_INTERVAL_MS

CONFIG_ENV_VAR = "PRESENCE_CONFIG_FILE"


class ConfigError(Exception):
    """Configuration error with helpful message."""

    def __init__(self, field: str, message: str, hint: Optional[str] = None):
        self.field = field
        self.hint = hint
        full_msg = f"Config error in '{field}': {message}"
        if hint:
            full_msg += f"\n  Hint: {hint}"
        super().__init__(full_msg)


@dataclass
class ServerSettings:
    """Tunables for the presence server."""
    host: str = "0.0.0.0"
    port: int = 8765
    liveness_window_ms: int = DEFAULT_LIVENESS_WINDOW_MS
    sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS
    default_attribute: int = 0
    adjectives_file: Optional[str] = None
    nouns_file: Optional[str] = None
    log_level: str = "INFO"


_POSITIVE_INTS = {
    "port": "Port to bind, e.g. 8765",
    "liveness_window_ms": "Milliseconds without calls before a client is evicted",
    "sweep_interval_ms": "Minimum milliseconds between eviction sweeps",
}


def validate_config(config: Dict[str, Any]) -> List[ConfigError]:
    """Validate configuration and return list of errors.

    Returns:
        List of ConfigError objects (empty if valid)
    """
    errors = []
    known = {f.name for f in fields(ServerSettings)}

    for field in config:
        if field not in known:
            errors.append(ConfigError(
                field,
                "Unknown setting",
                f"Valid settings: {', '.join(sorted(known))}",
            ))

    for field, description in _POSITIVE_INTS.items():
        if field not in config:
            continue
        value = config[field]
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            errors.append(ConfigError(
                field,
                f"Must be a positive integer, got {value!r}",
                description,
            ))

    if "default_attribute" in config:
        value = config["default_attribute"]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            errors.append(ConfigError(
                "default_attribute",
                f"Must be a non-negative integer, got {value!r}",
            ))

    for field in ("adjectives_file", "nouns_file"):
        value = config.get(field)
        if value is not None and not isinstance(value, str):
            errors.append(ConfigError(
                field,
                "Must be a file path",
                f"{field}: /path/to/words.txt",
            ))

    return errors


def expand_env_vars(obj: Any) -> Any:
    """Recursively expand ${VAR} patterns in strings."""
    if isinstance(obj, str):
        if obj.startswith("${") and obj.endswith("}"):
            var_name = obj[2:-1]
            return os.environ.get(var_name, obj)
        return obj
    elif isinstance(obj, dict):
        return {k: expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [expand_env_vars(item) for item in obj]
    return obj


def _coerce_ints(config: Dict[str, Any]) -> Dict[str, Any]:
    """Turn numeric strings (typically from ${VAR} expansion) into ints."""
    int_fields = set(_POSITIVE_INTS) | {"default_attribute"}
    return {
        k: int(v) if k in int_fields and isinstance(v, str) and v.strip().isdigit() else v
        for k, v in config.items()
    }


def load_settings(config_path: Optional[str] = None) -> ServerSettings:
    """Load server settings from a YAML file.

    The path comes from the argument, else from PRESENCE_CONFIG_FILE. With
    neither set, built-in defaults are used.

    Raises:
        FileNotFoundError: If an explicitly named file does not exist
        ConfigError: If validation fails
    """
    config_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if not config_path:
        return ServerSettings()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ConfigError("<root>", "Config must be a mapping of settings")

    config = _coerce_ints(expand_env_vars(config))

    errors = validate_config(config)
    if errors:
        raise errors[0]

    return ServerSettings(**config)
