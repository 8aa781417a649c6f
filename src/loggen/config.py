"""
Configuration for the generator.

Settings live in a YAML file (default ~/.loggen/config.yaml, see defaults.py).
When the file does not exist it is created with default values. The
configuration is read once before a run starts and is immutable afterwards;
command-line overrides produce a new Config via dataclasses.replace.

Example config.yaml:

    url: https://qryn.gigapipe.com
    api_key: my-key
    api_secret: my-secret
    labels:
      job: loggen
      env: demo
    rate: 100
    timeout: 30s
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .defaults import (
    DEFAULT_RATE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_URL,
    get_config_path,
    get_env_overrides,
)

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


class ConfigError(Exception):
    """Raised when the settings file holds an invalid value."""

    pass


@dataclass(frozen=True)
class Config:
    """Settings consumed by a run; treated as immutable once loaded."""

    url: str = DEFAULT_URL
    api_key: str = ""
    api_secret: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    rate: int = DEFAULT_RATE
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def auth_headers(self) -> dict[str, str]:
        """Credential headers expected by the ingestion endpoint."""
        headers: dict[str, str] = {}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        if self.api_secret:
            headers["X-API-Secret"] = self.api_secret
        return headers

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timeout"] = format_duration(self.timeout)
        return data


def parse_duration(value: Any) -> float:
    """
    Parse a timeout into seconds.

    Accepts plain numbers (seconds) and Go-style duration strings such as
    "30s", "500ms" or "1m30s".
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid duration: {value!r}")
    text = value.strip()
    try:
        return float(text)
    except ValueError:
        pass
    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ConfigError(f"Invalid duration: {value!r}")
    return total


def format_duration(seconds: float) -> str:
    """Render seconds as a duration string ("30s", "1.5s", "250ms")."""
    if seconds < 1 and seconds > 0:
        return f"{seconds * 1000:g}ms"
    return f"{seconds:g}s"


def load_yaml(path: Path, default: Any = None) -> Any:
    """Load YAML file; return default on missing file or parse error."""
    if default is None:
        default = {}
    if not path.exists():
        return default
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Unable to read config %s: %s", path, e)
        return default
    return data if isinstance(data, dict) else default


def config_from_dict(data: dict[str, Any]) -> Config:
    """Build a Config from a mapping, validating every known key."""
    kwargs: dict[str, Any] = {}
    if data.get("url") is not None:
        url = str(data["url"]).strip()
        if not url:
            raise ConfigError("url must not be empty")
        kwargs["url"] = url.rstrip("/")
    for key in ("api_key", "api_secret"):
        if data.get(key) is not None:
            kwargs[key] = str(data[key])
    labels = data.get("labels")
    if labels is not None:
        if not isinstance(labels, dict):
            raise ConfigError("labels must be a mapping of label name to value")
        kwargs["labels"] = {str(k): str(v) for k, v in labels.items()}
    if data.get("rate") is not None:
        try:
            rate = int(data["rate"])
        except (TypeError, ValueError):
            raise ConfigError(f"rate must be an integer, got {data['rate']!r}") from None
        if rate <= 0:
            raise ConfigError("rate must be positive")
        kwargs["rate"] = rate
    if data.get("timeout") is not None:
        timeout = parse_duration(data["timeout"])
        if timeout <= 0:
            raise ConfigError("timeout must be positive")
        kwargs["timeout"] = timeout
    return Config(**kwargs)


def save_config(config: Config, path: Path | None = None) -> Path:
    """Write config as YAML, creating the parent directory."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
    return path


def load_config(path: Path | None = None, apply_env: bool = True) -> Config:
    """
    Load settings from path (default: settings file under LOGGEN_HOME).

    A missing file is created with default values. Environment overrides are
    applied on top of the file unless apply_env is False.
    """
    path = path or get_config_path()
    if not path.exists():
        print("Creating default config...")
        data: dict[str, Any] = {}
        try:
            save_config(Config(), path)
        except OSError as e:
            logger.warning("Unable to create config file %s: %s", path, e)
    else:
        data = load_yaml(path)
    if apply_env:
        data = {**data, **get_env_overrides()}
    return config_from_dict(data)
