import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from dotenv import load_dotenv

# Spotify API constants
SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"

DEFAULT_SCOPES = [
    "user-read-private",
    "user-read-email",
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-private",
    "playlist-modify-public",
]

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@dataclass(frozen=True)
class Settings:
    """
    Process configuration, built once at startup and passed explicitly to the
    Spotify client, the flow engine and the stores.
    """

    spotify_client_id: str
    spotify_client_secret: str
    spotify_redirect_uri: str
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    spotify_auth_url: str = SPOTIFY_AUTH_URL
    spotify_token_url: str = SPOTIFY_TOKEN_URL
    spotify_api_base: str = SPOTIFY_API_BASE
    token_encryption_key: str = ""
    jwt_secret: str = ""
    client_url: str = "http://localhost:3000"
    data_dir: str = os.path.join(BASE_DIR, "data")
    http_timeout: float = 15.0
    nonce_ttl_seconds: int = 5 * 60
    log_level: str = "INFO"

    @property
    def scope(self) -> str:
        return " ".join(self.scopes)


def _split_scopes(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(DEFAULT_SCOPES)
    # Accept both space- and comma-separated lists
    return [s for s in raw.replace(",", " ").split() if s]


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment (after loading a local .env file).

    `env` can be passed explicitly in tests to avoid touching os.environ.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    return Settings(
        spotify_client_id=env.get("SPOTIFY_CLIENT_ID", ""),
        spotify_client_secret=env.get("SPOTIFY_CLIENT_SECRET", ""),
        spotify_redirect_uri=env.get(
            "SPOTIFY_REDIRECT_URI", "http://127.0.0.1:8888/spotify/callback"
        ),
        scopes=_split_scopes(env.get("SPOTIFY_OAUTH_SCOPES")),
        spotify_auth_url=env.get("SPOTIFY_AUTH_URL", SPOTIFY_AUTH_URL),
        spotify_token_url=env.get("SPOTIFY_TOKEN_URL", SPOTIFY_TOKEN_URL),
        spotify_api_base=env.get("SPOTIFY_API_BASE_URL", SPOTIFY_API_BASE).rstrip("/"),
        token_encryption_key=env.get("TOKEN_ENCRYPTION_KEY", ""),
        jwt_secret=env.get("JWT_SECRET", ""),
        client_url=env.get("CLIENT_URL", "http://localhost:3000").rstrip("/"),
        data_dir=env.get("DATA_DIR", os.path.join(BASE_DIR, "data")),
        http_timeout=float(env.get("SPOTIFY_HTTP_TIMEOUT", "15")),
        log_level=env.get("LOG_LEVEL", "INFO"),
    )
