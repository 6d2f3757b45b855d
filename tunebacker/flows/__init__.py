"""Public façade for the tunebacker.flows package.

This module exposes the OAuth flow engine, the state codec and playlist
restoration. Callers should import these symbols from this façade instead of
the internal engine, state or restoration modules.
"""

from .engine import OAuthFlowEngine, restore_blob_path
from .restoration import PlaylistRestorer
from .state import (
    FileRestoreState,
    LinkState,
    LoginState,
    OAuthState,
    RestoreState,
    decode_state,
    encode_state,
    parse_flow,
)

__all__ = [
    "OAuthFlowEngine",
    "restore_blob_path",
    "PlaylistRestorer",
    "OAuthState",
    "LoginState",
    "LinkState",
    "RestoreState",
    "FileRestoreState",
    "encode_state",
    "decode_state",
    "parse_flow",
]
