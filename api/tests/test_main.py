import pytest
from fastapi.testclient import TestClient

from notifier import main
from notifier.config import settings


class RecordingNotifier:
    is_configured = True

    def __init__(self):
        self.events = []

    async def notify(self, event):
        self.events.append(event)


@pytest.fixture
def recording(monkeypatch):
    notifier = RecordingNotifier()
    monkeypatch.setattr(main, "notifier", notifier)
    return notifier


@pytest.fixture
def client():
    return TestClient(main.app)


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health_reports_configuration(client, recording, monkeypatch):
    assert client.get("/health").json()["checks"] == {"matrix": "configured"}

    monkeypatch.setattr(RecordingNotifier, "is_configured", False)
    body = client.get("/health").json()
    assert body["status"] == "degraded"
    assert body["checks"] == {"matrix": "unconfigured"}


def test_accepts_event_and_notifies(client, recording, note_record):
    response = client.post(
        "/hooks/gitlab", json=note_record, headers={"X-Gitlab-Event": "Note Hook"}
    )

    assert response.status_code == 202
    assert response.json() == {"data": {"accepted": True}}
    assert recording.events == [note_record]


def test_rejects_wrong_token(client, recording, monkeypatch, note_record):
    monkeypatch.setattr(settings, "webhook_secret", "s3cret")

    response = client.post("/hooks/gitlab", json=note_record, headers={"X-Gitlab-Token": "nope"})

    assert response.status_code == 401
    assert response.json() == {"error": {"code": 401, "message": "Invalid webhook token"}}
    assert recording.events == []


def test_accepts_matching_token(client, recording, monkeypatch, note_record):
    monkeypatch.setattr(settings, "webhook_secret", "s3cret")

    response = client.post("/hooks/gitlab", json=note_record, headers={"X-Gitlab-Token": "s3cret"})

    assert response.status_code == 202
    assert len(recording.events) == 1


def test_rejects_non_json_body(client, recording):
    response = client.post(
        "/hooks/gitlab", content=b"not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert recording.events == []
