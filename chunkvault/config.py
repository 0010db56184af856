"""Configuration management for chunkvault."""

from __future__ import annotations

import os
import re
import secrets
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Optional

from dotenv import load_dotenv

from .common.constants import (
    DEFAULT_API_BASE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_WINDOW_SIZE,
    MAX_CHUNK_SIZE_CAP,
    MAX_RETRY_ATTEMPTS,
    RETRY_BACKOFF_SECONDS,
)
from .utils import ConfigError, atomic_write


ENV_TOKEN = "DISCORD_BOT_TOKEN"
ENV_CHANNEL = "STORAGE_CHANNEL_ID"
ENV_KEY = "ENCRYPTION_KEY"
ENV_CHUNK_SIZE = "MAX_CHUNK_SIZE"
ENV_WINDOW_SIZE = "ENCRYPTION_WINDOW_SIZE"
ENV_RETRIES = "MAX_RETRY_ATTEMPTS"
ENV_BACKOFF = "RETRY_BACKOFF"
ENV_API_BASE = "DISCORD_API_BASE"


def _base_dir() -> Path:
    return Path(__file__).resolve().parents[1]


def _env_path() -> Path:
    return _base_dir() / ".env"


def validate_token(token: str) -> bool:
    """
    Validate Discord bot token format.

    Args:
        token: Bot token string.

    Returns:
        True if the token looks valid.
    """
    if not token or token.count(".") != 2:
        return False
    pattern = re.compile(
        r"^[A-Za-z0-9_\-]{20,}\.[A-Za-z0-9_\-]{6,}\.[A-Za-z0-9_\-]{20,}$")
    return bool(pattern.match(token))


def validate_channel_id(channel_id: str) -> bool:
    return channel_id.isdigit()


def generate_encryption_key() -> str:
    """
    Generate a random passphrase suitable as ENCRYPTION_KEY.

    Returns:
        URL-safe random string.
    """
    return secrets.token_urlsafe(32)


def save_config(config: "Config", env_file: Optional[Path] = None) -> None:
    """
    Persist configuration to the .env file.

    Args:
        config: Config instance to save.
        env_file: Destination, defaults to the project's .env.
    """
    lines = [
        f"{ENV_TOKEN}={config.discord_bot_token}",
        f"{ENV_CHANNEL}={config.storage_channel_id or ''}",
        f"{ENV_KEY}={config.encryption_key}",
        f"{ENV_CHUNK_SIZE}={config.max_chunk_size}",
        f"{ENV_WINDOW_SIZE}={config.window_size}",
        f"{ENV_RETRIES}={config.max_retry_attempts}",
        f"{ENV_BACKOFF}={config.retry_backoff}",
        f"{ENV_API_BASE}={config.api_base}",
    ]
    data = "\n".join(lines) + "\n"
    env_file = env_file or _env_path()
    atomic_write(env_file, data)
    os.chmod(env_file, 0o600)


@dataclass(frozen=True)
class Config:
    """Singleton configuration object."""

    discord_bot_token: str
    storage_channel_id: Optional[str]
    encryption_key: str
    max_chunk_size: int = DEFAULT_CHUNK_SIZE
    window_size: int = DEFAULT_WINDOW_SIZE
    max_retry_attempts: int = MAX_RETRY_ATTEMPTS
    retry_backoff: float = RETRY_BACKOFF_SECONDS
    api_base: str = DEFAULT_API_BASE

    _instance: ClassVar[Optional["Config"]] = None

    @classmethod
    def get_instance(cls) -> "Config":
        """
        Retrieve a singleton instance of Config.

        Returns:
            Config singleton instance.
        """
        if cls._instance is None:
            cls._instance = load_config()
        return cls._instance


def _parse_int(value: str, name: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ConfigError(f"Invalid integer for {name}.") from exc
    if parsed <= 0:
        raise ConfigError(f"{name} must be greater than 0.")
    return parsed


def _parse_float(value: str, name: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ConfigError(f"Invalid number for {name}.") from exc
    if parsed < 0:
        raise ConfigError(f"{name} must not be negative.")
    return parsed


def _parse_chunk_size(value: str) -> int:
    parsed = _parse_int(value, ENV_CHUNK_SIZE)
    if parsed > MAX_CHUNK_SIZE_CAP:
        warnings.warn(
            f"{ENV_CHUNK_SIZE} capped at {MAX_CHUNK_SIZE_CAP} bytes "
            f"(25 MiB).",
            RuntimeWarning,
        )
        return MAX_CHUNK_SIZE_CAP
    return parsed


def load_config(env_file: Optional[Path] = None) -> Config:
    """
    Load and validate configuration from the .env file.

    Args:
        env_file: Optional path to an alternative .env file.

    Returns:
        Config instance.
    """
    env_file = env_file or _env_path()
    if env_file.exists():
        load_dotenv(env_file)

    token = os.getenv(ENV_TOKEN, "").strip()
    channel_id = os.getenv(ENV_CHANNEL, "").strip()
    encryption_key = os.getenv(ENV_KEY, "").strip()
    max_chunk = os.getenv(ENV_CHUNK_SIZE, str(DEFAULT_CHUNK_SIZE)).strip()
    window = os.getenv(ENV_WINDOW_SIZE, str(DEFAULT_WINDOW_SIZE)).strip()
    retries = os.getenv(ENV_RETRIES, str(MAX_RETRY_ATTEMPTS)).strip()
    backoff = os.getenv(ENV_BACKOFF, str(RETRY_BACKOFF_SECONDS)).strip()
    api_base = os.getenv(ENV_API_BASE, DEFAULT_API_BASE).strip()

    if not token:
        raise ConfigError(f"{ENV_TOKEN} is required. Add it to {env_file}.")
    if not validate_token(token):
        raise ConfigError(f"{ENV_TOKEN} format is invalid.")
    if channel_id and not validate_channel_id(channel_id):
        raise ConfigError(f"{ENV_CHANNEL} must be a numeric channel id.")
    generated_key = False
    if not encryption_key:
        encryption_key = generate_encryption_key()
        generated_key = True

    config = Config(
        discord_bot_token=token,
        storage_channel_id=channel_id or None,
        encryption_key=encryption_key,
        max_chunk_size=_parse_chunk_size(max_chunk),
        window_size=_parse_int(window, ENV_WINDOW_SIZE),
        max_retry_attempts=_parse_int(retries, ENV_RETRIES),
        retry_backoff=_parse_float(backoff, ENV_BACKOFF),
        api_base=api_base or DEFAULT_API_BASE,
    )

    if generated_key or not env_file.exists():
        save_config(config, env_file)

    return config
