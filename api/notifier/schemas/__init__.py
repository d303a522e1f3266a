from notifier.schemas.event import (
    Commit,
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

__all__ = [
    "Commit",
    "EventPayload",
    "IssueOpenEvent",
    "IssueStateChangeEvent",
    "MergeRequestEvent",
    "NoteEvent",
    "PipelineStatusEvent",
    "PushEvent",
    "UnhandledEvent",
    "WikiPageEvent",
]
