"""Matrix message templates and envelope."""

import json
import re
from typing import Callable, Optional

from notifier.channels import ChannelPayload, RenderedMessage
from notifier.channels.format_value import escape, format_paths, link, pretty_dump
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

MATRIX_MSGTYPE = "m.notice"
MATRIX_HTML_FORMAT = "org.matrix.custom.html"

_TAG_RE = re.compile(r"</?[^>]*>")

_MERGE_REQUEST_ACTIONS = {
    "open": "🆕 Opened",
    "close": "🔴 Closed",
    "reopen": "🟢 Reopened",
    "merge": "🟣 Merged",
    "update": "✏️ Updated",
}


def strip_tags(rich_body: str) -> str:
    """Remove every open or close tag, keeping all other characters."""
    return _TAG_RE.sub("", rich_body)


def _avatar_tag(avatar_ref: Optional[str]) -> str:
    if not avatar_ref:
        return ""
    return (
        f"<img src='{escape(avatar_ref)}' width='32' height='32' "
        f"style='border-radius: 50%;'> "
    )


def _message(avatar_ref: Optional[str], headline: str, lines: list[str]) -> RenderedMessage:
    rich_body = "<br>\n".join([_avatar_tag(avatar_ref) + headline, *lines]).strip()
    return RenderedMessage(rich_body=rich_body, plain_body=strip_tags(rich_body))


def _header_lines(event: EventPayload) -> list[str]:
    return [
        f"<b>Project:</b> {link(event.project_url, event.project_name)}",
        f"<b>Author:</b> {escape(event.user_name)}",
    ]


def _description(text: Optional[str]) -> str:
    return f"<b>📝 Description:</b> {escape(text or 'No description')}"


def _render_note(event: NoteEvent, avatar_ref: Optional[str]) -> RenderedMessage:
    return _message(
        avatar_ref,
        f"<b>📌 New comment on {escape(event.target)}</b>",
        [
            *_header_lines(event),
            f"<b>📝 Comment:</b> {escape(event.note)}",
            f"🔗 {link(event.note_url, 'View on GitLab')}",
        ],
    )


def _commit_lines(event: PushEvent) -> list[str]:
    if not event.commits:
        return ["<i>No commits</i>"]

    lines = []
    for commit in event.commits:
        title = f"<b>{escape(commit.title)}</b>"
        if commit.url:
            title = f'<a href="{escape(commit.url)}">{title}</a>'
        line = f"🔹 {title} by {escape(commit.author_name)}"
        if commit.timestamp:
            line += f" <i>({escape(commit.timestamp)})</i>"
        lines.append(line)
        if commit.added:
            lines.append(f"➕ {format_paths(commit.added)}")
        if commit.modified:
            lines.append(f"✏️ {format_paths(commit.modified)}")
        if commit.removed:
            lines.append(f"❌ {format_paths(commit.removed)}")
    return lines


def _render_push(event: PushEvent, avatar_ref: Optional[str]) -> RenderedMessage:
    compare_url = f"{event.project_url}/-/compare/{event.before}...{event.after}"
    return _message(
        avatar_ref,
        f"<b>🚀 New push on {escape(event.ref)}</b>",
        [
            *_header_lines(event),
            "<b>📜 Commits:</b>",
            *_commit_lines(event),
            f"🔗 {link(compare_url, 'View the difference')}",
        ],
    )


def _render_merge_request(event: MergeRequestEvent, avatar_ref: Optional[str]) -> RenderedMessage:
    url = f"{event.project_url}/-/merge_requests/{event.merge_request_iid}"
    action = _MERGE_REQUEST_ACTIONS.get(event.action or "", (event.action or "updated").capitalize())
    return _message(
        avatar_ref,
        f"<b>🔄 Merge Request {escape(action)}:</b> {link(url, event.title)}",
        [
            *_header_lines(event),
            f"<b>🔀 From:</b> {escape(event.source_branch)} → {escape(event.target_branch)}",
            f"🔗 {link(url, 'View Merge Request')}",
        ],
    )


def _render_pipeline(event: PipelineStatusEvent, avatar_ref: Optional[str]) -> RenderedMessage:
    emoji = "✅" if event.status == "success" else "❌"
    return _message(
        avatar_ref,
        f"<b>{emoji} Pipeline {escape(event.status.capitalize())}:</b> "
        f"{link(event.pipeline_url, f'#{event.pipeline_id}')}",
        [
            *_header_lines(event),
            f"🔗 {link(event.pipeline_url, 'View Pipeline')}",
        ],
    )


def _render_wiki_page(event: WikiPageEvent, avatar_ref: Optional[str]) -> RenderedMessage:
    page = link(event.wiki_page_url, event.title)

    if event.action == "created":
        headline = f"<b>📖 New Wiki Page Created:</b> {page}"
        lines = [_description(event.description), f"🔗 {link(event.wiki_page_url, 'View Wiki Page')}"]
    elif event.action == "edited":
        headline = f"<b>📖 Wiki Page Updated:</b> {page}"
        lines = [_description(event.description), f"🔗 {link(event.wiki_page_url, 'View Wiki Page')}"]
        if event.diff_url:
            lines.append(f"🔄 {link(event.diff_url, 'View Changes')}")
    elif event.action in ("deleted", None):
        headline = f"<b>❌ Wiki Page Deleted:</b> {escape(event.title)}"
        lines = [f"🔗 {link(event.wiki_page_url, '(Residual link to the page)')}"]
        if event.diff_url:
            lines.append(f"🔄 {link(event.diff_url, 'View changes before deletion')}")
    else:
        headline = f"<b>📖 Unknown Activity on a Wiki Page:</b> {page}"
        lines = [_description(event.description), f"🔗 {link(event.wiki_page_url, 'View Wiki Page')}"]

    return _message(avatar_ref, headline, [*_header_lines(event), *lines])


def _render_issue_open(event: IssueOpenEvent, avatar_ref: Optional[str]) -> RenderedMessage:
    return _message(
        avatar_ref,
        f"<b>🆕 New Issue Opened:</b> {link(event.issue_url, event.title)}",
        [
            *_header_lines(event),
            _description(event.description),
            f"🔗 {link(event.issue_url, 'View Issue')}",
        ],
    )


def _render_issue_state_change(
    event: IssueStateChangeEvent, avatar_ref: Optional[str]
) -> RenderedMessage:
    if event.action == "close":
        headline = "🔒 Issue closed"
    else:
        headline = "🔓 Issue reopened"
    return _message(
        avatar_ref,
        f"<b>{headline}:</b> {link(event.issue_url, event.title)}",
        [
            *_header_lines(event),
            _description(event.description),
            f"🔗 {link(event.issue_url, 'View Issue')}",
        ],
    )


def _render_unhandled(event: UnhandledEvent, avatar_ref: Optional[str]) -> RenderedMessage:
    project = event.project_name or "an unknown project"
    lines = []
    if event.project_url:
        lines.append(f"🔗 {link(event.project_url, 'View on GitLab')}")
    lines.append(f"<pre>{pretty_dump(event.raw)}</pre>")
    return _message(avatar_ref, f"<b>🚀 New Unhandled Activity in {escape(project)}</b>", lines)


_RENDERERS: dict[str, Callable[..., RenderedMessage]] = {
    "note": _render_note,
    "push": _render_push,
    "merge_request": _render_merge_request,
    "pipeline": _render_pipeline,
    "wiki_page": _render_wiki_page,
    "issue_open": _render_issue_open,
    "issue_state_change": _render_issue_state_change,
    "unhandled": _render_unhandled,
}


def render(event: EventPayload, avatar_ref: Optional[str] = None) -> RenderedMessage:
    """Render an event variant into its rich and plain bodies."""
    return _RENDERERS[event.kind](event, avatar_ref)


def build_envelope(rendered: RenderedMessage) -> dict[str, str]:
    """Build the ``m.room.message`` content, leaving out blank values."""
    envelope = {
        "body": rendered.plain_body,
        "msgtype": MATRIX_MSGTYPE,
        "format": MATRIX_HTML_FORMAT,
        "formatted_body": rendered.rich_body,
    }
    return {k: v for k, v in envelope.items() if v and v.strip()}


def format_matrix(url: str, rendered: RenderedMessage, token: str) -> ChannelPayload:
    """
    Format a rendered message as a Matrix room message send.

    The URL must already carry the per-message transaction id.
    """
    return ChannelPayload(
        method="PUT",
        url=url,
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        },
        body=json.dumps(build_envelope(rendered)),
    )
