import json

import httpx
import pytest

from notifier.channels import ChannelPayload, RenderedMessage
from notifier.channels.delivery import deliver
from notifier.channels.matrix import format_matrix

URL = "https://chat.example.org/_matrix/client/v3/rooms/!abc:example.org/send/m.room.message/1700000000001"


def _payload():
    return format_matrix(URL, RenderedMessage(rich_body="<b>hi</b>", plain_body="hi"), "syt-secret")


@pytest.mark.asyncio
async def test_success_returns_response(homeserver, reporter):
    async with homeserver.client() as client:
        response = await deliver(client, _payload(), reporter)

    assert response is not None
    assert response.status_code == 200

    sent = homeserver.sent()[0]
    assert str(sent.url) == URL
    assert sent.headers["Authorization"] == "Bearer syt-secret"
    assert sent.headers["Content-Type"] == "application/json"
    assert json.loads(sent.content) == {
        "body": "hi",
        "msgtype": "m.notice",
        "format": "org.matrix.custom.html",
        "formatted_body": "<b>hi</b>",
    }
    assert reporter.events == []


@pytest.mark.asyncio
async def test_server_error_returns_none(make_homeserver, reporter):
    homeserver = make_homeserver(send_status=500)

    async with homeserver.client() as client:
        assert await deliver(client, _payload(), reporter) is None

    # Single attempt, no retry
    assert len(homeserver.sent()) == 1
    assert reporter.names == ["delivery_failed"]
    assert reporter.events[0][1]["status"] == 500


@pytest.mark.asyncio
async def test_transport_error_returns_none(reporter):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        assert await deliver(client, _payload(), reporter) is None

    assert reporter.names == ["delivery_failed"]


@pytest.mark.asyncio
async def test_uses_payload_method(homeserver, reporter):
    payload = ChannelPayload(method="PUT", url=URL, headers={}, body="{}")

    async with homeserver.client() as client:
        await deliver(client, payload, reporter)

    assert homeserver.requests[0].method == "PUT"
