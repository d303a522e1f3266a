import json
import os

import httpx
import pytest

# Settings are read at import time
os.environ.setdefault("MATRIX_TOKEN", "syt-test-token")
os.environ.setdefault("MATRIX_ROOM", "!room:matrix.org")

PROJECT = {
    "name": "Website",
    "web_url": "https://gitlab.example.com/acme/website",
    "default_branch": "main",
}
USER = {
    "name": "Ada Lovelace",
    "avatar_url": "https://gitlab.example.com/uploads/ada.png",
}


@pytest.fixture
def note_record():
    return {
        "object_kind": "note",
        "user": USER,
        "project": PROJECT,
        "object_attributes": {
            "note": "Looks good to me",
            "noteable_type": "Issue",
            "url": "https://gitlab.example.com/acme/website/-/issues/5#note_1",
        },
        "issue": {"iid": 5, "title": "Broken footer"},
    }


@pytest.fixture
def push_record():
    return {
        "object_kind": "push",
        "ref": "refs/heads/main",
        "before": "aaa111",
        "after": "bbb222",
        "user_name": "Ada Lovelace",
        "user_avatar": "https://gitlab.example.com/uploads/ada.png",
        "project": PROJECT,
        "commits": [
            {
                "id": "c1",
                "title": "Add footer",
                "message": "Add footer\n\nLong text",
                "url": "https://gitlab.example.com/acme/website/-/commit/c1",
                "timestamp": "2024-05-01T10:00:00+00:00",
                "author": {"name": "Ada Lovelace"},
                "added": ["footer.html"],
                "modified": [],
                "removed": [],
            },
            {
                "id": "c2",
                "title": "Tweak styles",
                "url": "https://gitlab.example.com/acme/website/-/commit/c2",
                "timestamp": "2024-05-01T10:05:00+00:00",
                "author": {"name": "Charles Babbage"},
                "added": [],
                "modified": ["style.css"],
                "removed": [],
            },
        ],
    }


@pytest.fixture
def merge_request_record():
    return {
        "object_kind": "merge_request",
        "user": USER,
        "project": PROJECT,
        "object_attributes": {
            "iid": 12,
            "title": "Redesign footer",
            "action": "close",
            "source_branch": "feature/footer",
            "target_branch": "main",
        },
    }


@pytest.fixture
def pipeline_record():
    return {
        "object_kind": "pipeline",
        "user": USER,
        "project": PROJECT,
        "object_attributes": {
            "id": 301,
            "status": "failed",
            "ref": "main",
            "tag": False,
        },
    }


@pytest.fixture
def wiki_record():
    return {
        "object_kind": "wiki_page",
        "user": USER,
        "project": PROJECT,
        "object_attributes": {
            "title": "Onboarding",
            "action": "create",
            "message": "First draft",
            "url": "https://gitlab.example.com/acme/website/-/wikis/onboarding",
            "diff_url": "https://gitlab.example.com/acme/website/-/wikis/onboarding/diff",
        },
    }


@pytest.fixture
def issue_record():
    return {
        "object_kind": "issue",
        "user": USER,
        "project": PROJECT,
        "object_attributes": {
            "iid": 5,
            "title": "Broken footer",
            "description": "The footer overlaps the content",
            "action": "open",
            "url": "https://gitlab.example.com/acme/website/-/issues/5",
        },
    }


class FakeHomeserver:
    """Records requests and answers like a Matrix homeserver."""

    def __init__(self, *, send_status=200, upload_status=200, upload_body=None):
        self.send_status = send_status
        self.upload_status = upload_status
        self.upload_body = (
            upload_body
            if upload_body is not None
            else json.dumps({"content_uri": "mxc://matrix.org/avatar123"})
        )
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/_matrix/media/r0/upload"):
            return httpx.Response(self.upload_status, text=self.upload_body)
        if "/send/m.room.message/" in request.url.path:
            return httpx.Response(self.send_status, json={"event_id": "$evt"})
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def sent(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]


class FakeImageHost:
    def __init__(self, *, status=200, content=b"\x89PNG\r\n", exc=None):
        self.status = status
        self.content = content
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status, content=self.content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def homeserver():
    return FakeHomeserver()


@pytest.fixture
def image_host():
    return FakeImageHost()


class RecordingReporter:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event, **details):
        self.events.append((event, details))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def make_homeserver():
    return FakeHomeserver


@pytest.fixture
def make_image_host():
    return FakeImageHost
