"""Failure reporting for the avatar relay and the delivery client."""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Reporter(Protocol):
    """
    Receives degraded-path events such as ``avatar_fetch_failed`` or
    ``delivery_failed``, with keyword details.
    """

    def __call__(self, event: str, **details: Any) -> None:
        ...


def log_reporter(event: str, **details: Any) -> None:
    """Default reporter: one warning line per failure."""
    detail = " ".join(f"{k}={v}" for k, v in details.items())
    logger.warning("%s %s", event, detail)
