"""
Default values and environment overrides.

Settings file location comes from LOGGEN_HOME (default ~/.loggen). The
LOGGEN_URL, LOGGEN_API_KEY, LOGGEN_API_SECRET and LOGGEN_RATE variables
override the matching keys of the settings file.
"""

import os
from pathlib import Path

DEFAULT_URL = "https://qryn.gigapipe.com"
DEFAULT_RATE = 100
DEFAULT_TIMEOUT_SECONDS = 30.0

# Pipeline shape
DEFAULT_QUEUE_SIZE = 5
DEFAULT_SEND_INTERVAL_SECONDS = 1.0

SERVICE_NAME = "loggen"

_ENV_OVERRIDES = {
    "LOGGEN_URL": "url",
    "LOGGEN_API_KEY": "api_key",
    "LOGGEN_API_SECRET": "api_secret",
    "LOGGEN_RATE": "rate",
}


def get_config_home() -> Path:
    """Directory holding config.yaml: LOGGEN_HOME env or ~/.loggen."""
    raw = os.environ.get("LOGGEN_HOME", "").strip()
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".loggen"


def get_config_path() -> Path:
    return get_config_home() / "config.yaml"


def get_env_overrides() -> dict[str, str]:
    """Config keys set through the environment (raw strings, validated by config)."""
    result: dict[str, str] = {}
    for env_name, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name, "").strip()
        if value:
            result[key] = value
    return result
