"""Base types for the Matrix notification channel."""

from dataclasses import dataclass


@dataclass
class ChannelPayload:
    """Represents the HTTP request payload for a Matrix message send."""
    method: str
    url: str
    headers: dict[str, str]
    body: str  # JSON string


@dataclass(frozen=True)
class RenderedMessage:
    """Rich (HTML subset) body and the plain body derived from it."""
    rich_body: str
    plain_body: str
