"""
Static credentials for the chat platform.

The bot's API key (or, for Rocket.Chat, its password digest) lives in a
local file and is read once at startup.
"""

import base64
import hashlib
from pathlib import Path
from typing import Union

from tiny_robots.errors import ConfigError


def read_key_file(path: Union[str, Path]) -> str:
    """Read the pre-shared API key, stripping surrounding whitespace."""
    try:
        key = Path(path).read_text().strip()
    except OSError as e:
        raise ConfigError(f"Failed to read key file {path}: {e}")
    if not key:
        raise ConfigError(f"Key file {path} is empty")
    return key


def basic_credentials(username: str, secret: str) -> str:
    return base64.b64encode(f"{username}:{secret}".encode()).decode("ascii")


def authorization_header(username: str, secret: str) -> str:
    return f"Basic {basic_credentials(username, secret)}"


def password_digest(password: str) -> str:
    """SHA-256 hex digest, the form Rocket.Chat accepts for DDP login."""
    return hashlib.sha256(password.encode()).hexdigest()
