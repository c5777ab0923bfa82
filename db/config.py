"""
db/config.py

Database configuration for the enforcement scraper.

Environment
-----------
  DATABASE_URL                    primary connection URL
  LOCAL_DATABASE_URL              fallback for development checkouts
  DATABASE_POOL_SIZE              default 5
  DATABASE_MAX_OVERFLOW           default 10
  DATABASE_POOL_RECYCLE_SECONDS   default 1800
  DATABASE_ECHO                   default false

Only PostgreSQL is supported: the schema relies on UUID and JSONB columns
and on INSERT ... ON CONFLICT.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILENAMES = (".env", ".env.local")
POSTGRES_SCHEMES = ("postgres://", "postgresql://")
DRIVER_SCHEME = "postgresql+psycopg://"


def load_env_files(root: Path | None = None) -> None:
    """
    Load KEY=VALUE pairs from `.env` and `.env.local` under the project root.

    Existing process variables win. Blank lines, comments and an optional
    leading `export ` are accepted.
    """

    base = root or PROJECT_ROOT
    for filename in ENV_FILENAMES:
        env_path = base / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export ") :].lstrip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite plain postgres URLs to the psycopg (v3) driver form.

    >>> normalize_postgres_url("postgres://scraper@db/enforcement")
    'postgresql+psycopg://scraper@db/enforcement'
    """

    url = url.strip()
    for scheme in POSTGRES_SCHEMES:
        if url.startswith(scheme):
            return DRIVER_SCHEME + url[len(scheme) :]
    return url


def resolve_database_url() -> str:
    """
    Return the enforcement database URL: DATABASE_URL, else LOCAL_DATABASE_URL.

    Raises RuntimeError when neither is set or the URL is not PostgreSQL.
    """

    load_env_files()

    for name in ("DATABASE_URL", "LOCAL_DATABASE_URL"):
        raw_url = (os.getenv(name) or "").strip()
        if not raw_url:
            continue
        url = normalize_postgres_url(raw_url)
        if not url.startswith("postgresql"):
            raise RuntimeError(f"{name} must be a PostgreSQL URL for the enforcement store.")
        return url

    raise RuntimeError("No enforcement database configured. Set DATABASE_URL or LOCAL_DATABASE_URL.")


def _get_int_env(name: str, default: int, *, minimum: int = 0) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return max(minimum, int(raw_value))
    except ValueError:
        return default


def _get_bool_env(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle_seconds: int = 1800
    echo: bool = False


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
    url = resolve_database_url()
    return DatabaseSettings(
        url=url,
        pool_size=_get_int_env("DATABASE_POOL_SIZE", 5, minimum=1),
        max_overflow=_get_int_env("DATABASE_MAX_OVERFLOW", 10),
        pool_recycle_seconds=_get_int_env("DATABASE_POOL_RECYCLE_SECONDS", 1800, minimum=-1),
        echo=_get_bool_env("DATABASE_ECHO", False),
    )
