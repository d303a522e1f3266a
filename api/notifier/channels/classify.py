"""Classification of GitLab webhook records into event variants."""

import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from pydantic import ValidationError

from notifier.schemas.event import (
    EventPayload,
    IssueOpenEvent,
    IssueStateChangeEvent,
    MergeRequestEvent,
    NoteEvent,
    PipelineStatusEvent,
    PushEvent,
    UnhandledEvent,
    WikiPageEvent,
)

logger = logging.getLogger(__name__)

# GitLab reports wiki actions in the present tense
_WIKI_ACTIONS = {
    "create": "created",
    "update": "edited",
    "delete": "deleted",
}


def _dig(data: Any, path: Sequence[str]) -> Any:
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _strip_ref(ref: Any) -> tuple[str, bool]:
    """Return the short ref name and whether it names a tag."""
    ref = _text(ref)
    if ref.startswith("refs/tags/"):
        return ref[len("refs/tags/"):], True
    if ref.startswith("refs/heads/"):
        return ref[len("refs/heads/"):], False
    return ref, False


def _actor(record: Mapping) -> dict:
    """Actor and project fields shared by every variant."""
    return {
        "user_name": _text(_dig(record, ["user", "name"]) or record.get("user_name") or "Unknown"),
        "user_avatar": _dig(record, ["user", "avatar_url"]) or record.get("user_avatar") or None,
        "project_name": _text(_dig(record, ["project", "name"])),
        "project_url": _text(_dig(record, ["project", "web_url"])).rstrip("/"),
    }


def _note_target(record: Mapping) -> str:
    noteable_type = _text(_dig(record, ["object_attributes", "noteable_type"]))
    if noteable_type == "Commit":
        return f"commit {_text(_dig(record, ['commit', 'id']))[:8]}"
    if noteable_type == "MergeRequest":
        return f"merge request !{_text(_dig(record, ['merge_request', 'iid']))}"
    if noteable_type == "Issue":
        return f"issue #{_text(_dig(record, ['issue', 'iid']))}"
    if noteable_type == "Snippet":
        return f"snippet ${_text(_dig(record, ['snippet', 'id']))}"
    return noteable_type.lower() or "unknown target"


def _classify_note(record: Mapping) -> EventPayload:
    attrs = record.get("object_attributes") or {}
    return NoteEvent(
        **_actor(record),
        target=_note_target(record),
        note=_text(attrs.get("note")),
        note_url=_text(attrs.get("url")),
    )


def _commit(commit: Mapping) -> dict:
    title = commit.get("title")
    if not title:
        title = _text(commit.get("message")).split("\n", 1)[0]
    return {
        "id": _text(commit.get("id")),
        "title": title,
        "url": _text(commit.get("url")),
        "timestamp": _text(commit.get("timestamp")),
        "author_name": _text(_dig(commit, ["author", "name"])),
        "added": commit.get("added") or [],
        "modified": commit.get("modified") or [],
        "removed": commit.get("removed") or [],
    }


def _classify_push(record: Mapping) -> EventPayload:
    ref, is_tag = _strip_ref(record.get("ref"))
    return PushEvent(
        **_actor(record),
        ref=ref,
        is_tag=is_tag or record.get("object_kind") == "tag_push",
        before=_text(record.get("before")),
        after=_text(record.get("after")),
        commits=[_commit(c) for c in record.get("commits") or [] if isinstance(c, Mapping)],
        default_branch=_dig(record, ["project", "default_branch"]),
    )


def _classify_merge_request(record: Mapping) -> EventPayload:
    attrs = record.get("object_attributes") or {}
    return MergeRequestEvent(
        **_actor(record),
        action=attrs.get("action"),
        merge_request_iid=attrs.get("iid"),
        title=_text(attrs.get("title")),
        source_branch=_text(attrs.get("source_branch")),
        target_branch=_text(attrs.get("target_branch")),
    )


def _classify_pipeline(record: Mapping) -> EventPayload:
    attrs = record.get("object_attributes") or {}
    actor = _actor(record)
    pipeline_id = attrs.get("id")
    ref, _ = _strip_ref(attrs.get("ref"))
    return PipelineStatusEvent(
        **actor,
        pipeline_id=pipeline_id,
        status=_text(attrs.get("status")),
        pipeline_url=attrs.get("url") or f"{actor['project_url']}/-/pipelines/{pipeline_id}",
        ref=ref or None,
        is_tag=bool(attrs.get("tag")),
        default_branch=_dig(record, ["project", "default_branch"]),
    )


def _classify_wiki_page(record: Mapping) -> EventPayload:
    attrs = record.get("object_attributes") or {}
    action = attrs.get("action")
    return WikiPageEvent(
        **_actor(record),
        action=_WIKI_ACTIONS.get(action, action),
        title=_text(attrs.get("title")),
        wiki_page_url=_text(attrs.get("url")),
        description=attrs.get("message") or None,
        diff_url=attrs.get("diff_url") or None,
    )


def _classify_issue(record: Mapping) -> Optional[EventPayload]:
    attrs = record.get("object_attributes") or {}
    action = attrs.get("action")
    actor = _actor(record)
    issue_url = attrs.get("url") or f"{actor['project_url']}/-/issues/{_text(attrs.get('iid'))}"
    fields = {
        **actor,
        "title": _text(attrs.get("title")),
        "description": attrs.get("description") or None,
        "issue_url": issue_url,
    }
    if action == "open":
        return IssueOpenEvent(**fields)
    if action in ("close", "reopen"):
        return IssueStateChangeEvent(action=action, **fields)
    return None


_CLASSIFIERS: dict[str, Callable[[Mapping], Optional[EventPayload]]] = {
    "note": _classify_note,
    "push": _classify_push,
    "tag_push": _classify_push,
    "merge_request": _classify_merge_request,
    "pipeline": _classify_pipeline,
    "wiki_page": _classify_wiki_page,
    "issue": _classify_issue,
}


def _unhandled(record: Any) -> UnhandledEvent:
    if not isinstance(record, Mapping):
        return UnhandledEvent(raw=record)
    object_kind = record.get("object_kind")
    try:
        return UnhandledEvent(
            **_actor(record),
            object_kind=_text(object_kind) if object_kind is not None else None,
            raw=record,
        )
    except ValidationError:
        # Actor fields of an unknown shape are dropped, the raw dump stays
        return UnhandledEvent(raw=record)


def classify(record: Any) -> EventPayload:
    """
    Select the event variant for a webhook record.

    Records that match no known shape, or whose fields do not validate,
    become an ``UnhandledEvent`` carrying the original record.
    """
    if not isinstance(record, Mapping):
        return _unhandled(record)

    object_kind = record.get("object_kind")
    classifier = _CLASSIFIERS.get(object_kind) if isinstance(object_kind, str) else None
    if classifier is None:
        return _unhandled(record)

    try:
        event = classifier(record)
    except (ValidationError, TypeError, AttributeError) as e:
        logger.warning("Could not classify %s event: %s", record.get("object_kind"), e)
        event = None

    return event if event is not None else _unhandled(record)
