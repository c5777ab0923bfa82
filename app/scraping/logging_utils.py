"""
Structured logging helpers for scraping workflows.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


def describe_error(exc: BaseException) -> str:
    """
    Render an exception as `Type: message` for error lists and log fields.
    """

    message = str(exc).strip()
    name = type(exc).__name__
    return f"{name}: {message}" if message else name
