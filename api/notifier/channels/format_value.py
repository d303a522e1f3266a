"""
Value formatting helpers for Matrix message templates.

Everything returned here is already HTML-escaped and safe to interpolate
into a ``formatted_body``.
"""

import html
import json
from typing import Any, Iterable, Optional


def escape(val: Any) -> str:
    """Escape a template value; ``None`` renders as an empty string."""
    if val is None:
        return ""
    return html.escape(str(val), quote=True)


def format_paths(paths: Iterable[str]) -> str:
    """Join a commit's file list with ", "."""
    return ", ".join(escape(p) for p in paths)


def link(url: Optional[str], text: Any) -> str:
    """
    Build an anchor tag.

    Without a URL only the escaped text is returned so a missing link never
    produces an empty ``href``.
    """
    if not url:
        return escape(text)
    return f'<a href="{escape(url)}">{escape(text)}</a>'


def pretty_dump(val: Any) -> str:
    """
    Pretty-print a raw event record for diagnostics.

    - Mappings and lists are dumped as indented JSON.
    - Anything JSON cannot encode falls back to ``repr()``.
    """
    try:
        dumped = json.dumps(val, indent=2, ensure_ascii=False, default=str, sort_keys=True)
    except (TypeError, ValueError):
        dumped = repr(val)
    return escape(dumped)
