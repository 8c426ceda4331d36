"""Bot configuration, built once at startup from CLI flags or a YAML file.

The value is passed explicitly to the components that need it: the HTTP
client gets endpoint and credentials, the command router gets the third-party
API keys, the webhook gets its address and target stream.

With the rocket backend, endpoint is the websocket URL, bot_email the bot's
username and the key file holds the SHA-256 digest of its password.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from tiny_robots.errors import ConfigError

# YAML keys that do not follow the field name with dashes.
KEY_ALIASES: dict[str, str] = {
    "bot": "bot_email",
    "giphy": "giphy_api_key",
    "gitlab": "gitlab_api_key",
    "room": "room_id",
}

DISPATCH_MODES = ("sync", "task")
BACKENDS = ("zulip", "rocket")


@dataclass(frozen=True)
class Config:
    endpoint: str = "https://chat.zulip.org"
    bot_email: str = "tiny-bot@chat.zulip.org"
    key_file: str = "api_key.txt"
    giphy_api_key: str = ""
    gitlab_api_key: str = ""
    gitlab_url: str = "https://gitlab.com"
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 12001
    webhook_stream: str = "platform"
    projects_dir: str = "projects"
    poll_interval: float = 0.5
    request_timeout: float = 30.0
    dispatch: str = "sync"
    backend: str = "zulip"
    room_id: str = ""
    debug: bool = False

    def __post_init__(self) -> None:
        if self.dispatch not in DISPATCH_MODES:
            raise ConfigError(f"dispatch must be one of {DISPATCH_MODES}, got {self.dispatch!r}")
        if self.poll_interval < 0:
            raise ConfigError("poll-interval must not be negative")
        if self.backend not in BACKENDS:
            raise ConfigError(f"backend must be one of {BACKENDS}, got {self.backend!r}")
        if self.backend == "rocket" and not self.room_id:
            raise ConfigError("the rocket backend needs a room id")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Config:
        """Build a config from YAML-style keys (``bot-email``, ``gitlab-url``...).

        Unknown keys are ignored.
        """
        types = {f.name: f.type for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = KEY_ALIASES.get(key, str(key).replace("-", "_"))
            if name not in types or value is None:
                continue
            values[name] = _coerce(name, types[name], value)
        return cls(**values)

    def merged(self, **overrides: Any) -> Config:
        """Copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _coerce(name: str, type_name: Any, value: Any) -> Any:
    try:
        if type_name == "int":
            return int(value)
        if type_name == "float":
            return float(value)
        if type_name == "bool":
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        return str(value)
    except (TypeError, ValueError):
        raise ConfigError(f"invalid value for {name}: {value!r}")


def load_config(config_path: Path | str) -> Config:
    """Load the bot configuration from a YAML file.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping.
    """
    path = Path(config_path)
    try:
        raw = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"reading config {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"parsing config {path}: {e}")
    if raw is None:
        return Config()
    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must be a mapping, got {type(raw).__name__}")
    return Config.from_mapping(raw)
