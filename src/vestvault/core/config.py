"""
vestvault configuration

Settings are read from environment variables with the VESTVAULT_ prefix.
Invalid values raise ConfigurationError at import time so a misconfigured
process fails before it touches any schedule.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Final

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_int_env(env_var: str, default: int, minimum: int = 0) -> int:
    """Read a non-negative integer setting, falling back to ``default`` when unset."""
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{env_var} must be >= {minimum}, got {value}")
    return value


def _get_network(env_var: str) -> NetworkType:
    raw = os.getenv(env_var, NetworkType.TESTNET.value).strip().lower()
    try:
        return NetworkType(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{env_var} must be one of {[n.value for n in NetworkType]}, got {raw!r}"
        ) from exc


ZERO_ADDRESS: Final[str] = "0x" + "0" * 40

SECONDS_PER_DAY: Final[int] = 86400

# Default to testnet for safety
NETWORK = _get_network("VESTVAULT_NETWORK")

LOG_LEVEL = os.getenv("VESTVAULT_LOG_LEVEL", "INFO").strip().upper()
LOG_FILE = os.getenv("VESTVAULT_LOG_FILE", "").strip() or None
LOG_ENVIRONMENT = os.getenv("VESTVAULT_LOG_ENVIRONMENT", NETWORK.value).strip()

# Delay between unlock() and the moment a pending withdrawal can be claimed
UNLOCKING_PERIOD_SECONDS = _get_int_env(
    "VESTVAULT_UNLOCKING_PERIOD", 3 * SECONDS_PER_DAY, minimum=0
)

LOG_LEVELS: Final = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
if LOG_LEVEL not in LOG_LEVELS:
    raise ConfigurationError(f"VESTVAULT_LOG_LEVEL is not a logging level: {LOG_LEVEL!r}")
