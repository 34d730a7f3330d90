"""Logging setup.

Installs a single stdout handler on the root logger with a structured text
format.  The level comes from ``settings.LOG_LEVEL``.
"""
from __future__ import annotations

import logging
import sys

from playpartner.config import settings


def setup_logging(level: str | None = None) -> None:
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    # Replace rather than stack handlers on repeated calls (reload, tests)
    root.handlers.clear()
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
