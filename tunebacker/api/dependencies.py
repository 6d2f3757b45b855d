from functools import lru_cache
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException

from tunebacker.config import Settings, load_settings
from tunebacker.core import (
    FernetTokenCipher,
    FileRestoreNonceRecord,
    NonceRecord,
    SessionIssuer,
)
from tunebacker.data import (
    JsonBackupStore,
    JsonLinkedAccountStore,
    JsonNonceStore,
    LocalBlobStore,
    default_paths,
)
from tunebacker.flows import OAuthFlowEngine
from tunebacker.spotify import SpotifyClient


def build_engine(settings: Settings) -> OAuthFlowEngine:
    """Wire the flow engine with file-backed stores under settings.data_dir."""
    paths = default_paths(settings.data_dir)
    return OAuthFlowEngine(
        settings=settings,
        spotify=SpotifyClient(settings),
        nonces=JsonNonceStore(paths["nonces"], NonceRecord),
        file_nonces=JsonNonceStore(paths["file_nonces"], FileRestoreNonceRecord),
        blobs=LocalBlobStore(paths["blobs"]),
        accounts=JsonLinkedAccountStore(paths["accounts"]),
        backups=JsonBackupStore(paths["backups"]),
        cipher=FernetTokenCipher(settings.token_encryption_key),
        sessions=SessionIssuer(settings.jwt_secret),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_engine() -> OAuthFlowEngine:
    return build_engine(get_settings())


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    authorization: Optional[str] = Header(default=None),
    access_token: Optional[str] = Cookie(default=None),
    engine: OAuthFlowEngine = Depends(get_engine),
) -> str:
    """
    Resolve the application user.

    X-User-Id is set by the upstream auth provider for users who are signed
    in to the application but have never linked Spotify. Without it, fall
    back to the session token from the Authorization header, then the
    access_token cookie.
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()

    token = access_token
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()

    payload = engine.sessions.verify(token) if token else None
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Unauthorized: missing or invalid session")
    return payload["sub"]
