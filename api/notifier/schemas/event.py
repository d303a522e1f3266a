"""Pydantic schemas for classified project events.

Every variant is a frozen snapshot of the fields its message template needs.
The ``kind`` field is the discriminant of the ``EventPayload`` union.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_name: str = Field("Unknown", description="Display name of the actor")
    user_avatar: Optional[str] = Field(None, description="Absolute URL of the actor's avatar")
    project_name: str = ""
    project_url: str = ""


class Commit(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    title: str = ""
    url: str = ""
    timestamp: str = ""
    author_name: str = ""
    added: tuple[str, ...] = ()
    modified: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()


class NoteEvent(_EventBase):
    kind: Literal["note"] = "note"
    target: str = Field(..., description="What was commented on, e.g. 'issue #5'")
    note: str = ""
    note_url: str = ""


class PushEvent(_EventBase):
    kind: Literal["push"] = "push"
    ref: str = Field(..., description="Branch or tag name without the refs/ prefix")
    before: str = ""
    after: str = ""
    commits: tuple[Commit, ...] = ()
    default_branch: Optional[str] = None
    is_tag: bool = False


class MergeRequestEvent(_EventBase):
    kind: Literal["merge_request"] = "merge_request"
    action: Optional[str] = None
    merge_request_iid: int
    title: str = ""
    source_branch: str = ""
    target_branch: str = ""


class PipelineStatusEvent(_EventBase):
    kind: Literal["pipeline"] = "pipeline"
    pipeline_id: int
    status: str
    pipeline_url: str = ""
    ref: Optional[str] = None
    default_branch: Optional[str] = None
    is_tag: bool = False


class WikiPageEvent(_EventBase):
    kind: Literal["wiki_page"] = "wiki_page"
    action: Optional[str] = Field(None, description="created, edited, deleted or anything else")
    title: str = ""
    wiki_page_url: str = ""
    description: Optional[str] = None
    diff_url: Optional[str] = None


class IssueOpenEvent(_EventBase):
    kind: Literal["issue_open"] = "issue_open"
    action: Literal["open"] = "open"
    title: str = ""
    description: Optional[str] = None
    issue_url: str = ""


class IssueStateChangeEvent(_EventBase):
    kind: Literal["issue_state_change"] = "issue_state_change"
    action: Literal["close", "reopen"]
    title: str = ""
    description: Optional[str] = None
    issue_url: str = ""


class UnhandledEvent(_EventBase):
    kind: Literal["unhandled"] = "unhandled"
    object_kind: Optional[str] = None
    raw: Any = None


EventPayload = Union[
    NoteEvent,
    PushEvent,
    MergeRequestEvent,
    PipelineStatusEvent,
    WikiPageEvent,
    IssueOpenEvent,
    IssueStateChangeEvent,
    UnhandledEvent,
]
