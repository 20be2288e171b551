"""
Tests for the JSON line message format.
"""

import json

import pytest

from kaali_tilli.shared.protocols import Message


def test_to_json_shape():
    text = Message("room-created", {"roomCode": "AB12"}).to_json()
    assert json.loads(text) == {"type": "room-created", "data": {"roomCode": "AB12"}}
    assert "\n" not in text


def test_from_json():
    msg = Message.from_json('{"type": "join-room", "data": {"roomCode": "AB12"}}')
    assert msg == Message("join-room", {"roomCode": "AB12"})


def test_list_payload_is_kept():
    msg = Message.from_json(Message("update-players", [{"id": "a", "name": "Avi"}]).to_json())
    assert msg.data == [{"id": "a", "name": "Avi"}]


def test_missing_data_defaults_to_empty():
    assert Message.from_json('{"type": "disconnect"}').data == {}


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"data": {}}', '{"type": 5}'])
def test_malformed(text):
    with pytest.raises(ValueError):
        Message.from_json(text)
