"""Matrix send endpoint and per-message transaction ids."""

import itertools
import time
import uuid
from typing import Callable, Optional

DEFAULT_HOSTNAME = "https://matrix-client.matrix.org"
MATRIX_SEND_URL = "{hostname}/_matrix/client/v3/rooms/{room_id}/send/m.room.message/"

MESSAGE_ID_STRATEGIES = ("timestamp", "counter", "random")

MessageIdFactory = Callable[[], str]


def build_base_url(hostname: Optional[str], token: Optional[str], room: Optional[str]) -> Optional[str]:
    """
    Build the message send URL for a room, without the transaction id.

    Returns None unless both a token and a room are configured. A blank
    hostname falls back to the public matrix.org client host.
    """
    hostname = hostname if hostname and hostname.strip() else DEFAULT_HOSTNAME

    if not (token and token.strip() and room and room.strip()):
        return None

    return MATRIX_SEND_URL.format(hostname=hostname, room_id=room)


def timestamp_message_id() -> str:
    """Current time in milliseconds. Two calls in the same millisecond collide."""
    return str(round(time.time() * 1000))


def random_message_id() -> str:
    return uuid.uuid4().hex


def counter_message_ids() -> MessageIdFactory:
    """
    Monotonic ids seeded from the current millisecond timestamp, so ids keep
    increasing across restarts at event rates below one per millisecond.
    """
    counter = itertools.count(round(time.time() * 1000))
    return lambda: str(next(counter))


def message_id_factory(strategy: str) -> MessageIdFactory:
    if strategy == "timestamp":
        return timestamp_message_id
    if strategy == "counter":
        return counter_message_ids()
    if strategy == "random":
        return random_message_id
    raise ValueError(f"Unknown message id strategy: {strategy}")


def final_url(base_url: str, next_id: MessageIdFactory = timestamp_message_id) -> str:
    """Append a fresh transaction id to the cached base URL."""
    return f"{base_url}{next_id()}"
