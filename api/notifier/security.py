"""SSRF protection for avatar fetches.

Avatar URLs arrive inside webhook payloads, so the notifier must not be
usable to reach hosts on the private network it runs in.
"""

import asyncio
import ipaddress
import logging
import socket
from typing import Iterable

import httpx

logger = logging.getLogger(__name__)

_BLOCKED_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("100.64.0.0/10"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]

_BLOCKED_HOSTNAMES = {
    "localhost",
    "metadata",
    "metadata.google.internal",
}


def is_ip_blocked(ip_str: str) -> bool:
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return True
    return any(ip in network for network in _BLOCKED_NETWORKS)


class SSRFSafeTransport(httpx.AsyncHTTPTransport):
    """
    Refuses requests whose host resolves to a blocked address.

    Hostnames in ``allowed_hosts`` skip the check, for avatars served from a
    self-hosted GitLab on the private network.
    """

    def __init__(self, *, allowed_hosts: Iterable[str] = (), **kwargs):
        super().__init__(**kwargs)
        self.allowed_hosts = {h.strip().lower() for h in allowed_hosts if h.strip()}

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        hostname = request.url.host
        if hostname and hostname.lower() not in self.allowed_hosts:
            if hostname.lower() in _BLOCKED_HOSTNAMES:
                logger.warning("Refusing avatar fetch from blocked host %s", hostname)
                raise httpx.ConnectError(f"Blocked hostname: {hostname}", request=request)
            loop = asyncio.get_running_loop()
            try:
                addr_infos = await loop.getaddrinfo(
                    hostname, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM
                )
            except socket.gaierror:
                raise httpx.ConnectError(f"Cannot resolve hostname: {hostname}", request=request)
            for _, _, _, _, sockaddr in addr_infos:
                if is_ip_blocked(sockaddr[0]):
                    logger.warning("Refusing avatar fetch from %s: private address", hostname)
                    raise httpx.ConnectError(
                        f"DNS resolved to blocked IP for {hostname}", request=request
                    )
        return await super().handle_async_request(request)


def safe_http_client(
    timeout: float = 15,
    follow_redirects: bool = True,
    allowed_hosts: Iterable[str] = (),
    **kwargs,
) -> httpx.AsyncClient:
    transport = SSRFSafeTransport(allowed_hosts=allowed_hosts)
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=follow_redirects,
        transport=transport,
        **kwargs,
    )
