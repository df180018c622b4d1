"""Environment driven settings for walletkeys.

Values are read with :func:`os.getenv` when :func:`load_settings` is called:

- ``WALLETKEYS_LOG_LEVEL``: logging level name (default ``WARNING``)
- ``WALLETKEYS_SCRYPT_MAX_MEMORY``: memory ceiling for scrypt in bytes (default 1 GiB)
- ``WALLETKEYS_KDF_LEVEL``: preset used for new scrypt parameters (``normal``, ``high``, ``ultra``)
- ``WALLETKEYS_PASSPHRASE``: optional passphrase so the CLI can run without a prompt
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import logging
import os

from walletkeys.core.exceptions import ConfigError

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_SCRYPT_MAX_MEMORY = 1024 * 1024 * 1024
DEFAULT_KDF_LEVEL = "normal"
KDF_LEVEL_NAMES = ("normal", "high", "ultra")


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by the CLI and the KDF layer."""

    log_level: int = logging.WARNING
    scrypt_max_memory: int = DEFAULT_SCRYPT_MAX_MEMORY
    kdf_level: str = DEFAULT_KDF_LEVEL
    passphrase: Optional[str] = None


def _parse_log_level(raw: str) -> int:
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"WALLETKEYS_LOG_LEVEL: unknown level {raw!r}")
    return level


def _parse_max_memory(raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise ConfigError(f"WALLETKEYS_SCRYPT_MAX_MEMORY: not an integer: {raw!r}") from e
    if value <= 0:
        raise ConfigError("WALLETKEYS_SCRYPT_MAX_MEMORY must be positive")
    return value


def _parse_kdf_level(raw: str) -> str:
    level = raw.strip().lower()
    if level not in KDF_LEVEL_NAMES:
        raise ConfigError(
            f"WALLETKEYS_KDF_LEVEL must be one of {', '.join(KDF_LEVEL_NAMES)}, got {raw!r}"
        )
    return level


def load_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""
    return Settings(
        log_level=_parse_log_level(os.getenv("WALLETKEYS_LOG_LEVEL", DEFAULT_LOG_LEVEL)),
        scrypt_max_memory=_parse_max_memory(
            os.getenv("WALLETKEYS_SCRYPT_MAX_MEMORY", str(DEFAULT_SCRYPT_MAX_MEMORY))
        ),
        kdf_level=_parse_kdf_level(os.getenv("WALLETKEYS_KDF_LEVEL", DEFAULT_KDF_LEVEL)),
        passphrase=os.getenv("WALLETKEYS_PASSPHRASE") or None,
    )
