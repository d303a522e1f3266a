"""Single-attempt delivery of a formatted Matrix message."""

import logging
from typing import Optional

import httpx

from notifier.channels import ChannelPayload
from notifier.reporting import Reporter, log_reporter

logger = logging.getLogger(__name__)


async def deliver(
    client: httpx.AsyncClient,
    payload: ChannelPayload,
    reporter: Reporter = log_reporter,
) -> Optional[httpx.Response]:
    """
    Send a single notification via HTTP.

    Returns the response on success. Error statuses and transport errors are
    reported and return None; nothing is retried.
    """
    try:
        response = await client.request(
            method=payload.method,
            url=payload.url,
            headers=payload.headers,
            content=payload.body,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        reporter("delivery_failed", error=repr(e))
        return None

    if not response.is_success:
        reporter("delivery_failed", status=response.status_code, body=response.text[:200])
        return None

    logger.debug("Delivered Matrix message, status %s", response.status_code)
    return response
