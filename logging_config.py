"""
logging_config.py  —  Structured logging for the playlog dashboard

Every module logs JSON events through structlog:

    log = get_logger(__name__)
    log.info("feed_fetched", url=url, bytes=len(text))
"""

from __future__ import annotations

from typing import Any

import structlog

_configured = False


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to *name*, configuring structlog once."""
    global _configured
    if not _configured:
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(),
            ],
            cache_logger_on_first_use=True,
        )
        _configured = True
    return structlog.get_logger(name)
