import json

import pytest

from tunebacker.core import FlowType, InvalidFlowError, InvalidStateError
from tunebacker.flows import (
    FileRestoreState,
    LinkState,
    LoginState,
    RestoreState,
    decode_state,
    encode_state,
    parse_flow,
)


def test_restore_state_wire_format() -> None:
    raw = encode_state(RestoreState(nonce="n1", playlist_id="p1"))

    assert json.loads(raw) == {"flow": "restore", "nonce": "n1", "playlistId": "p1"}
    assert decode_state(raw) == RestoreState(nonce="n1", playlist_id="p1")


def test_decode_each_flow() -> None:
    assert decode_state('{"flow":"login"}') == LoginState()
    assert decode_state('{"flow":"link","nonce":"n"}') == LinkState(nonce="n")
    assert decode_state('{"flow":"fileRestore","nonce":"n"}') == FileRestoreState(nonce="n")


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2]",
        '"login"',
        "{}",
        '{"flow":"unknown"}',
        '{"flow":"link"}',
        '{"flow":"link","nonce":""}',
        '{"flow":"link","nonce":42}',
        '{"flow":"restore","nonce":"n"}',
        '{"flow":"login","nonce":"n"}',
        '{"flow":"fileRestore","nonce":"n","storagePath":"../x"}',
    ],
)
def test_decode_rejects_malformed_state(raw: str) -> None:
    with pytest.raises(InvalidStateError):
        decode_state(raw)


def test_parse_flow() -> None:
    assert parse_flow("fileRestore") is FlowType.FILE_RESTORE
    assert parse_flow(FlowType.LINK) is FlowType.LINK
    with pytest.raises(InvalidFlowError):
        parse_flow("file_restore")
