"""End-to-end tests for the plain WebSocket transport through FastAPI's TestClient."""

import pytest
from fastapi.testclient import TestClient

from app import create_app
from coordinator import Delivery, Scope
from transports.websocket_transport import WebSocketTransport


def send(ws, event: str, data=None) -> None:
    frame = {"event": event}
    if data is not None:
        frame["data"] = data
    ws.send_json(frame)


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


def test_alice_and_bob_over_websocket(client: TestClient) -> None:
    with client.websocket_connect("/ws") as alice:
        send(alice, "join-channel", {"nickname": "Alice", "channelCode": "ABC"})
        welcome_a = alice.receive_json()
        assert welcome_a["event"] == "welcome"
        assert welcome_a["data"]["users"] == []
        assert welcome_a["data"]["channelCode"] == "ABC"
        alice_id = welcome_a["data"]["userId"]

        with client.websocket_connect("/ws") as bob:
            send(bob, "join-channel", {"nickname": "Bob", "channelCode": "ABC"})
            welcome_b = bob.receive_json()
            bob_id = welcome_b["data"]["userId"]
            assert welcome_b["data"]["users"] == [{"id": alice_id, "nickname": "Alice"}]
            assert alice.receive_json() == {"event": "user-joined", "data": {"userId": bob_id, "nickname": "Bob"}}

            send(alice, "request-speak")
            granted = {"event": "speaker-changed", "data": {"speakerId": alice_id, "nickname": "Alice"}}
            assert alice.receive_json() == granted
            assert bob.receive_json() == granted

            offer = {"type": "offer", "sdp": "v=0\r\n"}
            send(alice, "offer", {"toUserId": bob_id, "offer": offer})
            assert bob.receive_json() == {"event": "offer", "data": {"fromUserId": alice_id, "offer": offer}}

            send(bob, "answer", {"toUserId": alice_id, "answer": {"type": "answer"}})
            assert alice.receive_json() == {"event": "answer", "data": {"fromUserId": bob_id, "answer": {"type": "answer"}}}

            send(alice, "release-speak")
            released = {"event": "speaker-changed", "data": {"speakerId": None, "nickname": None}}
            assert alice.receive_json() == released
            assert bob.receive_json() == released

            alice.close()
            assert bob.receive_json() == {"event": "user-left", "data": {"userId": alice_id}}

            details = client.get("/channels/ABC").json()
            assert details["member_count"] == 1
            assert details["members"] == [{"connection_id": bob_id, "nickname": "Bob"}]

def test_garbage_frames_are_ignored(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_json(["no", "event"])
        ws.send_json({"event": "join-channel", "data": {"nickname": 7}})
        send(ws, "join-channel", {"nickname": "Alice"})

        welcome = ws.receive_json()
        assert welcome["event"] == "welcome"
        assert welcome["data"]["channelCode"] == "DEFAULT"


@pytest.mark.asyncio
async def test_emit_resolves_rooms_and_skips_sender() -> None:
    transport = WebSocketTransport()
    sent = {}

    class FakeSocket:
        def __init__(self, name):
            self.name = name

        async def send_text(self, text):
            sent.setdefault(self.name, []).append(text)

    transport.connections = {"a": FakeSocket("a"), "b": FakeSocket("b"), "c": FakeSocket("c")}
    await transport.enter_room("a", "ABC")
    await transport.enter_room("b", "ABC")
    await transport.enter_room("c", "XYZ")

    await transport.emit(Delivery("user-left", {"userId": "a"}, Scope.channel_except("ABC", "a")))

    assert sent == {"b": ['{"event": "user-left", "data": {"userId": "a"}}']}


@pytest.mark.asyncio
async def test_unregister_drops_empty_rooms() -> None:
    transport = WebSocketTransport()
    transport.connections["a"] = object()
    await transport.enter_room("a", "ABC")

    transport.unregister("a")

    assert transport.rooms == {}
    assert not transport.owns("a")
