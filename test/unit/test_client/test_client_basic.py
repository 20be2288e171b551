"""
Basic client tests.
"""

from kaali_tilli.client.network import NetworkClient
from kaali_tilli.shared.protocols import Message


def test_client_defaults():
    client = NetworkClient(port=1)
    assert not client.connected
    assert client.player_id is None
    assert client.drain_events() == []


def test_connect_failure_returns_false():
    # nothing listens on port 1
    client = NetworkClient(host="127.0.0.1", port=1)
    assert client.connect(timeout=0.5) is False
    assert not client.connected


def test_wait_for_remembers_room_code():
    client = NetworkClient()
    client.events.put(Message("update-players", []))
    client.events.put(Message("room-created", {"roomCode": "AB12"}))
    msg = client.wait_for("room-created", timeout=0.5)
    assert msg.data == {"roomCode": "AB12"}
    assert client.room_code == "AB12"


def test_wait_for_times_out():
    assert NetworkClient().wait_for("game-state", timeout=0.05) is None
