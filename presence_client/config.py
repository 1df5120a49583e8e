"""Client configuration with auto-generation and validation."""

import os
import platform
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from presence_server.config import ConfigError, expand_env_vars

DEFAULT_SERVER_URL = "ws://localhost:8765/ws"
DEFAULT_POLL_INTERVAL_MS = 35
DEFAULT_REQUEST_TIMEOUT_MS = 2000
MAX_HUE = 359


def get_config_dir() -> Path:
    """Get platform-appropriate config directory."""
    system = platform.system()

    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "PresenceNode"
    elif system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "PresenceNode"
    else:
        # Linux/Unix - use XDG
        xdg_config = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
        return Path(xdg_config) / "presence-node"


def get_default_config_path() -> Path:
    """Get default config file path."""
    return get_config_dir() / "client_config.yaml"


def generate_default_config() -> Dict[str, Any]:
    """Generate a default configuration."""
    return {
        "server_url": DEFAULT_SERVER_URL,
        "poll_interval_ms": DEFAULT_POLL_INTERVAL_MS,
        "request_timeout_ms": DEFAULT_REQUEST_TIMEOUT_MS,
        "color": 0,
    }


def create_config_file(path: Path, config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Create a new config file with defaults.

    Args:
        path: Where to write the config
        config: Optional config dict, uses defaults if not provided

    Returns:
        The config dict that was written
    """
    if config is None:
        config = generate_default_config()

    path.parent.mkdir(parents=True, exist_ok=True)

    content = f"""# Presence Node Client Configuration
# Generated automatically - customize as needed

# WebSocket endpoint of the presence server
server_url: {config['server_url']}

# How often to poll for state changes (milliseconds)
poll_interval_ms: {config['poll_interval_ms']}

# Give up on a request after this long and retry (milliseconds)
request_timeout_ms: {config['request_timeout_ms']}

# Initial color hue (0-{MAX_HUE})
color: {config['color']}
"""

    with open(path, "w") as f:
        f.write(content)

    return config


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> List[ConfigError]:
    """Validate configuration and return list of errors.

    Returns:
        List of ConfigError objects (empty if valid)
    """
    errors = []

    if not config.get("server_url"):
        errors.append(ConfigError(
            "server_url",
            "Missing required field",
            "Add 'server_url' to your config (WebSocket server URL)",
        ))
    else:
        url = config["server_url"]
        if not (url.startswith("ws://") or url.startswith("wss://")):
            errors.append(ConfigError(
                "server_url",
                "Must start with ws:// or wss://",
                f"Example: {DEFAULT_SERVER_URL}",
            ))

    for field in ("poll_interval_ms", "request_timeout_ms"):
        if field in config:
            value = config[field]
            if not _is_int(value) or value <= 0:
                errors.append(ConfigError(
                    field,
                    f"Must be a positive integer, got {value!r}",
                ))

    if "color" in config:
        value = config["color"]
        if not _is_int(value) or not 0 <= value <= MAX_HUE:
            errors.append(ConfigError(
                "color",
                f"Must be a hue between 0 and {MAX_HUE}, got {value!r}",
            ))

    return errors


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file.

    If config doesn't exist and path is the default location,
    creates a new config with defaults.

    Args:
        config_path: Path to config file, or None for default

    Returns:
        Validated configuration dict

    Raises:
        FileNotFoundError: If config file not found (non-default path)
        ConfigError: If validation fails
    """
    if config_path:
        path = Path(config_path)
    else:
        path = get_default_config_path()

    if not path.exists():
        if config_path:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            return create_config_file(path)

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    config = expand_env_vars(config)

    errors = validate_config(config)
    if errors:
        raise errors[0]

    for key, value in generate_default_config().items():
        config.setdefault(key, value)

    return config
