import pytest

from notifier.channels import endpoint
from notifier.channels.endpoint import (
    build_base_url,
    counter_message_ids,
    final_url,
    message_id_factory,
    random_message_id,
)


@pytest.mark.parametrize("hostname", [None, "", "   "])
def test_blank_hostname_uses_matrix_org(hostname):
    assert build_base_url(hostname, "tok", "!room:matrix.org") == (
        "https://matrix-client.matrix.org/_matrix/client/v3/rooms/"
        "!room:matrix.org/send/m.room.message/"
    )


def test_hostname_is_used_verbatim():
    assert build_base_url("https://chat.example.org", "tok", "!abc:example.org") == (
        "https://chat.example.org/_matrix/client/v3/rooms/!abc:example.org/send/m.room.message/"
    )


@pytest.mark.parametrize(
    "token,room",
    [(None, "!room:matrix.org"), ("", "!room:matrix.org"), ("tok", None), ("tok", ""), (None, None)],
)
def test_no_url_without_token_and_room(token, room):
    assert build_base_url("https://chat.example.org", token, room) is None


def test_timestamp_ids_differ_across_milliseconds(monkeypatch):
    base = "https://chat.example.org/send/"
    times = iter([1700000000.001, 1700000000.002])
    monkeypatch.setattr(endpoint.time, "time", lambda: next(times))

    first = final_url(base)
    second = final_url(base)

    assert first == base + "1700000000001"
    assert second == base + "1700000000002"


def test_timestamp_ids_may_collide_within_a_millisecond(monkeypatch):
    monkeypatch.setattr(endpoint.time, "time", lambda: 1700000000.001)
    assert final_url("b/") == final_url("b/")


def test_counter_ids_are_monotonic(monkeypatch):
    monkeypatch.setattr(endpoint.time, "time", lambda: 1700000000.0)
    next_id = counter_message_ids()

    assert [next_id(), next_id(), next_id()] == ["1700000000000", "1700000000001", "1700000000002"]


def test_random_ids_are_unique():
    assert random_message_id() != random_message_id()


def test_message_id_factory():
    assert message_id_factory("timestamp") is endpoint.timestamp_message_id
    assert message_id_factory("random") is random_message_id
    assert callable(message_id_factory("counter"))
    with pytest.raises(ValueError):
        message_id_factory("sequence")
