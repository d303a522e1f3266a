"""Best-effort relay of actor avatars into the Matrix media repository."""

import asyncio
import logging
from typing import Optional

import httpx

from notifier.channels.endpoint import DEFAULT_HOSTNAME
from notifier.reporting import Reporter, log_reporter

logger = logging.getLogger(__name__)

MATRIX_UPLOAD_PATH = "/_matrix/media/r0/upload"


def upload_url(hostname: Optional[str]) -> str:
    hostname = hostname if hostname and hostname.strip() else DEFAULT_HOSTNAME
    return f"{hostname}{MATRIX_UPLOAD_PATH}"


async def _download(fetch_client: httpx.AsyncClient, avatar_url: str, timeout: float) -> bytes:
    response = await fetch_client.get(avatar_url, timeout=timeout)
    response.raise_for_status()
    return response.content


async def relay_avatar(
    avatar_url: Optional[str],
    *,
    hostname: Optional[str],
    token: str,
    client: httpx.AsyncClient,
    fetch_client: httpx.AsyncClient,
    timeout: float = 5,
    reporter: Reporter = log_reporter,
) -> Optional[str]:
    """
    Fetch an avatar and upload it to Matrix.

    Args:
        avatar_url: Image URL from the event, may be empty
        hostname: Matrix homeserver base URL
        token: Matrix access token
        client: Client used for the upload to the homeserver
        fetch_client: Client used to download the image (SSRF protected)
        timeout: Upper bound in seconds for the whole image download,
            resolution and body included
        reporter: Receives failure events

    Returns:
        The ``mxc://`` content URI, or None when no avatar is available.
        Never raises.
    """
    if not avatar_url:
        return None

    try:
        image_data = await asyncio.wait_for(
            _download(fetch_client, avatar_url, timeout), timeout
        )
    except asyncio.TimeoutError:
        reporter(
            "avatar_fetch_failed", avatar_url=avatar_url, error=f"timed out after {timeout}s"
        )
        return None
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        reporter("avatar_fetch_failed", avatar_url=avatar_url, error=repr(e))
        return None

    try:
        response = await client.post(
            upload_url(hostname),
            params={"access_token": token},
            headers={"Content-Type": "image/png"},
            content=image_data,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        reporter("avatar_upload_failed", avatar_url=avatar_url, error=repr(e))
        return None

    if response.status_code >= 400:
        reporter(
            "avatar_upload_failed",
            avatar_url=avatar_url,
            status=response.status_code,
            body=response.text[:200],
        )
        return None

    try:
        content_uri = response.json().get("content_uri")
    except (ValueError, AttributeError) as e:
        reporter("avatar_upload_malformed", avatar_url=avatar_url, error=repr(e))
        return None

    if not isinstance(content_uri, str) or not content_uri:
        reporter("avatar_upload_malformed", avatar_url=avatar_url, error="missing content_uri")
        return None

    logger.debug("Relayed avatar %s as %s", avatar_url, content_uri)
    return content_uri
