from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from tunebacker.config import Settings
from tunebacker.core import (
    FileRestoreNonceRecord,
    IdentityCipher,
    NonceRecord,
    ProviderError,
    SessionIssuer,
    TokenSet,
)
from tunebacker.data import (
    JsonBackupStore,
    JsonLinkedAccountStore,
    JsonNonceStore,
    LocalBlobStore,
)
from tunebacker.flows import OAuthFlowEngine


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        text: str = "",
    ) -> None:
        self.status_code = status_code
        self._json = json_data
        self.headers = headers or {}
        self.text = text

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json


class FakeSession:
    """
    Stand-in for requests.Session: records every call and answers through
    `handler(method, url, kwargs)`.
    """

    def __init__(self, handler: Callable[[str, str, Dict[str, Any]], FakeResponse]) -> None:
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        return self.handler(method, url, kwargs)


class Clock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class FakeSpotify:
    """Spotify client double used by the flow engine tests."""

    def __init__(self, spotify_user_id: str = "spotify-alice") -> None:
        self.spotify_user_id = spotify_user_id
        self.exchanged: List[str] = []
        self.created: List[Dict[str, str]] = []
        self.added: List[Dict[str, Any]] = []
        self.fail_add = False

    def exchange_code_for_token(self, code: str) -> TokenSet:
        self.exchanged.append(code)
        return TokenSet(
            access_token=f"access-{code}",
            refresh_token=f"refresh-{code}",
            spotify_user_id=self.spotify_user_id,
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )

    def create_playlist(self, access_token: str, spotify_user_id: str, name: str) -> str:
        self.created.append(
            {"access_token": access_token, "user": spotify_user_id, "name": name}
        )
        return f"new-playlist-{len(self.created)}"

    def add_tracks(self, access_token: str, playlist_id: str, track_ids: List[str]) -> None:
        if self.fail_add:
            raise ProviderError("add failed", provider_status=500)
        self.added.append({"playlist_id": playlist_id, "track_ids": list(track_ids)})


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        spotify_client_id="client-id",
        spotify_client_secret="client-secret",
        spotify_redirect_uri="http://127.0.0.1:8888/spotify/callback",
        scopes=["playlist-read-private", "playlist-modify-private"],
        spotify_api_base="https://api.spotify.test/v1",
        spotify_token_url="https://accounts.spotify.test/api/token",
        token_encryption_key="test-key",
        jwt_secret="test-jwt-secret-0123456789abcdef0123",
        client_url="http://client.test",
        data_dir=str(tmp_path / "data"),
    )


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime(2024, 3, 5, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def fake_spotify() -> FakeSpotify:
    return FakeSpotify()


@pytest.fixture
def engine(settings: Settings, clock: Clock, fake_spotify: FakeSpotify, tmp_path: Path) -> OAuthFlowEngine:
    data_dir = tmp_path / "data"
    return OAuthFlowEngine(
        settings=settings,
        spotify=fake_spotify,
        nonces=JsonNonceStore(str(data_dir / "nonces.json"), NonceRecord),
        file_nonces=JsonNonceStore(str(data_dir / "file_nonces.json"), FileRestoreNonceRecord),
        blobs=LocalBlobStore(str(data_dir / "blobs")),
        accounts=JsonLinkedAccountStore(str(data_dir / "accounts.json")),
        backups=JsonBackupStore(str(data_dir / "backups.json")),
        cipher=IdentityCipher(),
        sessions=SessionIssuer(settings.jwt_secret),
        now=clock,
    )
