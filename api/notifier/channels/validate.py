"""Config validation for the Matrix integration."""

import re
from typing import Optional
from urllib.parse import urlparse

from notifier.channels.endpoint import MESSAGE_ID_STRATEGIES
from notifier.channels.filters import BRANCH_CHOICES

# !opaque_id:server.name
_ROOM_ID_RE = re.compile(r"^![^:\s]+:\S+$")

# Common typos -> correct branch scope
_BRANCH_SUGGESTIONS: dict[str, str] = {
    "default-and-protected": "default_and_protected",
    "default+protected": "default_and_protected",
    "both": "default_and_protected",
    "any": "all",
    "protect": "protected",
}


def suggest_branch_scope(value: str) -> Optional[str]:
    """Return a suggestion if the input looks like a typo of a valid scope."""
    if value in BRANCH_CHOICES:
        return None
    return _BRANCH_SUGGESTIONS.get(value.lower())


def validate_matrix_config(config: dict) -> Optional[str]:
    """
    Validate Matrix integration config.
    Returns None if valid, or an error message string if invalid.
    """
    for field in ("token", "room"):
        if not config.get(field):
            return f"Missing required field: {field}"

    hostname = config.get("hostname")
    if hostname:
        err = _validate_url(hostname, "hostname")
        if err:
            return err

    room = config["room"]
    if not isinstance(room, str) or not _ROOM_ID_RE.match(room):
        return "room must be a room identifier like !qPKKM111FFKKsfoCVy:matrix.org"

    scope = config.get("branches_to_be_notified", "default")
    if scope not in BRANCH_CHOICES:
        message = f"branches_to_be_notified must be one of: {', '.join(BRANCH_CHOICES)}"
        suggestion = suggest_branch_scope(scope)
        if suggestion:
            message += f" (did you mean '{suggestion}'?)"
        return message

    strategy = config.get("message_id_strategy", "timestamp")
    if strategy not in MESSAGE_ID_STRATEGIES:
        return f"message_id_strategy must be one of: {', '.join(MESSAGE_ID_STRATEGIES)}"

    return None


def _validate_url(value, field_name: str) -> Optional[str]:
    if not isinstance(value, str):
        return f"{field_name} is not a valid URL"
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        return f"{field_name} must use http or https protocol"
    if not parsed.netloc:
        return f"{field_name} is not a valid URL"
    return None
