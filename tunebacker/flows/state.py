"""OAuth `state` payloads.

The state travels through the user's browser and back, so decoding treats
it as untrusted input: it must be a JSON object whose `flow` tag is known and
whose fields match that flow exactly.
"""

import json
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Union

from tunebacker.core import FlowType, InvalidFlowError, InvalidStateError


@dataclass(frozen=True)
class LoginState:
    flow: ClassVar[FlowType] = FlowType.LOGIN


@dataclass(frozen=True)
class LinkState:
    nonce: str
    flow: ClassVar[FlowType] = FlowType.LINK


@dataclass(frozen=True)
class RestoreState:
    nonce: str
    playlist_id: str
    flow: ClassVar[FlowType] = FlowType.RESTORE


@dataclass(frozen=True)
class FileRestoreState:
    nonce: str
    flow: ClassVar[FlowType] = FlowType.FILE_RESTORE


OAuthState = Union[LoginState, LinkState, RestoreState, FileRestoreState]

# Allowed keys on the wire for each flow
_WIRE_KEYS = {
    FlowType.LOGIN: {"flow"},
    FlowType.LINK: {"flow", "nonce"},
    FlowType.RESTORE: {"flow", "nonce", "playlistId"},
    FlowType.FILE_RESTORE: {"flow", "nonce"},
}


def parse_flow(value: Any) -> FlowType:
    """Map a flow tag to FlowType, raising InvalidFlowError if unknown."""
    if isinstance(value, FlowType):
        return value
    try:
        return FlowType(value)
    except ValueError:
        raise InvalidFlowError(f"Invalid flow: {value!r}") from None


def encode_state(state: OAuthState) -> str:
    payload: Dict[str, str] = {"flow": state.flow.value}
    if isinstance(state, (LinkState, RestoreState, FileRestoreState)):
        payload["nonce"] = state.nonce
    if isinstance(state, RestoreState):
        payload["playlistId"] = state.playlist_id
    return json.dumps(payload, separators=(",", ":"))


def _required_str(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise InvalidStateError(f"State field {key!r} missing or not a string")
    return value


def decode_state(raw: str) -> OAuthState:
    """Parse and validate the state echoed back by the provider."""
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        raise InvalidStateError("State is not valid JSON") from None

    if not isinstance(payload, dict):
        raise InvalidStateError("State must be a JSON object")

    try:
        flow = parse_flow(payload.get("flow"))
    except InvalidFlowError:
        raise InvalidStateError(f"Unknown flow in state: {payload.get('flow')!r}") from None

    unexpected = set(payload) - _WIRE_KEYS[flow]
    if unexpected:
        raise InvalidStateError(f"Unexpected state fields: {sorted(unexpected)}")

    if flow is FlowType.LOGIN:
        return LoginState()
    if flow is FlowType.LINK:
        return LinkState(nonce=_required_str(payload, "nonce"))
    if flow is FlowType.RESTORE:
        return RestoreState(
            nonce=_required_str(payload, "nonce"),
            playlist_id=_required_str(payload, "playlistId"),
        )
    if flow is FlowType.FILE_RESTORE:
        return FileRestoreState(nonce=_required_str(payload, "nonce"))

    raise InvalidStateError(f"Unhandled flow: {flow!r}")
