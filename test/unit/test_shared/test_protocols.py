"""
Tests for the message envelope and inbound message decoding.
"""

import json

import pytest

from cardtable.shared.protocols import (
    DEAL_MODE_REDUCED,
    DEAL_MODE_STANDARD,
    Deal,
    DrawCard,
    Heartbeat,
    Init,
    Message,
    MoveTurn,
    NewRound,
    Pickup,
    PlayTurn,
    ProtocolError,
    Rearrange,
    Sit,
    Undo,
    decode_client_message,
)


def decode(msg_type, data=None):
    return decode_client_message(Message(msg_type, data))


def test_envelope_to_json_omits_missing_data():
    assert json.loads(Message("undo").to_json()) == {"type": "undo"}
    assert json.loads(Message("init", "Ann").to_json()) == {"type": "init", "data": "Ann"}


DEEPLY_NESTED = "[" * 100000 + "]" * 100000
HUGE_TYPE = '{"type": ' + "1" * 5000 + "}"


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2]",
        '"init"',
        '{"data": 1}',
        '{"type": 5}',
        pytest.param(DEEPLY_NESTED, id="deeply-nested"),
        pytest.param(HUGE_TYPE, id="huge-integer"),
    ],
)
def test_malformed_envelopes_raise(text):
    with pytest.raises(ProtocolError):
        Message.from_json(text)


def test_protocol_error_is_value_error():
    assert issubclass(ProtocolError, ValueError)


def test_simple_messages_ignore_payload():
    assert decode("hb") == Heartbeat()
    assert decode("draw", {"junk": 1}) == DrawCard()
    assert decode("undo") == Undo()
    assert decode("newround") == NewRound()


def test_init_requires_string_name():
    assert decode("init", "Ann") == Init("Ann")
    with pytest.raises(ProtocolError):
        decode("init", {"name": "Ann"})


def test_sit_target_optional():
    assert decode("sit") == Sit(None)
    assert decode("sit", "") == Sit(None)
    assert decode("sit", "abc") == Sit("abc")
    with pytest.raises(ProtocolError):
        decode("sit", 3)


@pytest.mark.parametrize("token", [13, "13", "standard"])
def test_deal_standard_tokens(token):
    assert decode("deal", token) == Deal(DEAL_MODE_STANDARD)


@pytest.mark.parametrize("token", ["д", 6, "reduced"])
def test_deal_reduced_tokens(token):
    assert decode("deal", token) == Deal(DEAL_MODE_REDUCED)


@pytest.mark.parametrize("token", [None, True, 7, "poker"])
def test_deal_rejects_unknown_modes(token):
    with pytest.raises(ProtocolError):
        decode("deal", token)


def test_turn_with_and_without_placement():
    assert decode("turn", {"cards": ["C5", "C6"]}) == PlayTurn(("C5", "C6"))
    assert decode("turn", {"cards": ["C5"], "x": 0.5, "y": 1}) == PlayTurn(("C5",), 0.5, 1.0)
    assert decode("turn", ["H1"]) == PlayTurn(("H1",))


@pytest.mark.parametrize(
    "data",
    [
        None,
        {"cards": "C5"},
        {"cards": [5]},
        {"cards": ["C5"], "x": 1},
        {"cards": ["C5"], "x": True, "y": 0.2},
    ],
)
def test_turn_rejects_bad_payloads(data):
    with pytest.raises(ProtocolError):
        decode("turn", data)


def test_move_turn():
    assert decode("rearrangesurface", {"turnId": "C5-C6", "x": 0.1, "y": 0.2}) == MoveTurn("C5-C6", 0.1, 0.2)
    with pytest.raises(ProtocolError):
        decode("rearrangesurface", {"turnId": "C5-C6", "x": "a", "y": 0.2})


def test_pickup():
    assert decode("pickup", {"turnIds": ["C5"], "index": 2}) == Pickup(("C5",), 2)
    with pytest.raises(ProtocolError):
        decode("pickup", {"turnIds": ["C5"], "index": 1.5})
    with pytest.raises(ProtocolError):
        decode("pickup", {"turnIds": ["C5"], "index": False})


def test_rearrange():
    assert decode("rearrange", ["C1", "C2"]) == Rearrange(("C1", "C2"))
    with pytest.raises(ProtocolError):
        decode("rearrange", "C1")


def test_unknown_type():
    with pytest.raises(ProtocolError):
        decode("shuffle")
