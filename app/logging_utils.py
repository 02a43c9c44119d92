"""
Logging setup and structured event helpers.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level_name: str | None = None) -> None:
    """
    Configure root logging once for the process.
    """

    raw_level = (level_name or os.getenv("LOG_LEVEL", "INFO")).strip().upper()
    logging.basicConfig(
        level=getattr(logging, raw_level, logging.INFO),
        format=LOG_FORMAT,
    )
    # urllib3 logs every connection at DEBUG; scrape events already cover it.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


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
