"""
Configuration settings for stressedout.

Everything is read once from the environment at startup and handed to the
components that need it. A missing required key is fatal.

Environment:
    STRESSEDOUT_BACKEND   "postgres" (default) or "sqlite"
    POSTGRES_ADDR         host:port            (postgres backend)
    POSTGRES_USER                              (postgres backend)
    POSTGRES_PASSWORD                          (postgres backend)
    POSTGRES_DB                                (postgres backend)
    SQLITE_PATH           database file        (sqlite backend)
    POOL_SIZE             max connections, default 100
    POOL_TIMEOUT          seconds to wait for a connection, unset = forever
    LISTEN_ADDR           default ":8080"
    LOG_LEVEL             DEBUG, INFO, WARNING, ERROR (default INFO)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from stressedout.errors import ConfigMissingError


# =============================================================================
# Defaults
# =============================================================================

BACKEND_POSTGRES = "postgres"
BACKEND_SQLITE = "sqlite"

DEFAULT_POOL_SIZE = 100
DEFAULT_LISTEN_ADDR = ":8080"
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

POSTGRES_KEYS = ("POSTGRES_ADDR", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB")
SQLITE_KEYS = ("SQLITE_PATH",)


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once by load_settings()."""
    backend: str
    postgres_addr: str | None = None
    postgres_user: str | None = None
    postgres_password: str | None = None
    postgres_db: str | None = None
    sqlite_path: str | None = None
    pool_size: int = DEFAULT_POOL_SIZE
    pool_timeout: float | None = None
    listen_addr: str = DEFAULT_LISTEN_ADDR
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def listen_host_port(self) -> tuple[str, int]:
        host, _, port = self.listen_addr.rpartition(":")
        return host, int(port)


def _require(environ: Mapping[str, str], keys: tuple[str, ...]) -> dict[str, str]:
    missing = [key for key in keys if not environ.get(key)]
    if missing:
        raise ConfigMissingError(missing)
    return {key: environ[key] for key in keys}


def _number(environ: Mapping[str, str], key: str, parse, default):
    raw = environ.get(key)
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from the environment.

    Raises:
        ConfigMissingError: a key required by the selected backend is unset
        ValueError: a numeric setting does not parse
    """
    if environ is None:
        environ = os.environ

    backend = environ.get("STRESSEDOUT_BACKEND", BACKEND_POSTGRES).lower()
    if backend not in (BACKEND_POSTGRES, BACKEND_SQLITE):
        raise ValueError(f"unknown STRESSEDOUT_BACKEND: {backend!r}")

    pool_size = _number(environ, "POOL_SIZE", int, DEFAULT_POOL_SIZE)
    if pool_size < 1:
        raise ValueError(f"POOL_SIZE must be >= 1, got {pool_size}")
    pool_timeout = _number(environ, "POOL_TIMEOUT", float, None)

    common = dict(
        backend=backend,
        pool_size=pool_size,
        pool_timeout=pool_timeout,
        listen_addr=environ.get("LISTEN_ADDR", DEFAULT_LISTEN_ADDR),
        log_level=environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
    )

    if backend == BACKEND_SQLITE:
        values = _require(environ, SQLITE_KEYS)
        return Settings(sqlite_path=values["SQLITE_PATH"], **common)

    values = _require(environ, POSTGRES_KEYS)
    return Settings(
        postgres_addr=values["POSTGRES_ADDR"],
        postgres_user=values["POSTGRES_USER"],
        postgres_password=values["POSTGRES_PASSWORD"],
        postgres_db=values["POSTGRES_DB"],
        **common,
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure root logging for the server and CLI tools."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
