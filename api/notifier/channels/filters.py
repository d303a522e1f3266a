"""Decide whether a classified event should be sent at all."""

from fnmatch import fnmatchcase
from typing import Iterable, Optional

from notifier.schemas.event import EventPayload, PipelineStatusEvent, PushEvent, UnhandledEvent

BRANCH_CHOICES = ("all", "default", "protected", "default_and_protected")

# Object kinds the integration never announces
UNSUPPORTED_KINDS = {"deployment"}


def is_protected(branch: str, protected_branches: Iterable[str]) -> bool:
    """Protected branch entries may be exact names or wildcards like ``release/*``."""
    return any(fnmatchcase(branch, pattern) for pattern in protected_branches)


def notify_for_branch(
    branch: Optional[str],
    default_branch: Optional[str],
    branches_to_be_notified: str,
    protected_branches: Iterable[str] = (),
) -> bool:
    if branches_to_be_notified == "all":
        return True
    if not branch:
        return False

    is_default = default_branch is not None and branch == default_branch
    if branches_to_be_notified == "default":
        return is_default
    if branches_to_be_notified == "protected":
        return is_protected(branch, protected_branches)
    if branches_to_be_notified == "default_and_protected":
        return is_default or is_protected(branch, protected_branches)
    return False


def notify_for_pipeline_status(status: str, notify_only_broken_pipelines: bool) -> bool:
    if status == "failed":
        return True
    if status == "success":
        return not notify_only_broken_pipelines
    return False


def should_notify(
    event: EventPayload,
    *,
    notify_only_broken_pipelines: bool = True,
    branches_to_be_notified: str = "default",
    protected_branches: Iterable[str] = (),
) -> bool:
    """
    Apply the integration's event settings.

    Pushes and pipelines are limited to the configured branch scope (tags
    always pass); pipelines are further limited by status.
    """
    if isinstance(event, UnhandledEvent):
        return event.object_kind not in UNSUPPORTED_KINDS

    if isinstance(event, PushEvent):
        if event.is_tag:
            return True
        return notify_for_branch(
            event.ref, event.default_branch, branches_to_be_notified, protected_branches
        )

    if isinstance(event, PipelineStatusEvent):
        if not notify_for_pipeline_status(event.status, notify_only_broken_pipelines):
            return False
        if event.is_tag:
            return True
        return notify_for_branch(
            event.ref, event.default_branch, branches_to_be_notified, protected_branches
        )

    return True
