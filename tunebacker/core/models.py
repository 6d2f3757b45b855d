from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class FlowType(str, Enum):
    LOGIN = "login"
    LINK = "link"
    RESTORE = "restore"
    FILE_RESTORE = "fileRestore"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_dt(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO datetime string and normalize it to UTC-aware."""
    if not value:
        return None

    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class TokenSet:
    access_token: str
    refresh_token: str
    spotify_user_id: str
    expires_at: datetime


@dataclass
class PlaylistTrack:
    id: str
    name: str
    artist: str
    album: str
    added_at: Optional[str]


@dataclass
class NonceRecord:
    """
    Correlates an authorization URL with its callback for link/restore.
    """

    nonce: str
    user_id: str
    expires_at: datetime

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) < self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nonce": self.nonce,
            "user_id": self.user_id,
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NonceRecord":
        return cls(
            nonce=data["nonce"],
            user_id=data["user_id"],
            expires_at=parse_dt(data["expires_at"]),
        )


@dataclass
class FileRestoreNonceRecord(NonceRecord):
    """
    Nonce for the file-restore flow; the track list itself lives in the
    blob store at `storage_path`.
    """

    storage_path: str = ""
    playlist_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["storage_path"] = self.storage_path
        data["playlist_name"] = self.playlist_name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRestoreNonceRecord":
        return cls(
            nonce=data["nonce"],
            user_id=data["user_id"],
            expires_at=parse_dt(data["expires_at"]),
            storage_path=data.get("storage_path", ""),
            playlist_name=data.get("playlist_name", ""),
        )


@dataclass
class LinkedAccount:
    app_user_id: str
    spotify_user_id: str
    encrypted_access_token: str
    encrypted_refresh_token: str
    expires_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "app_user_id": self.app_user_id,
            "spotify_user_id": self.spotify_user_id,
            "encrypted_access_token": self.encrypted_access_token,
            "encrypted_refresh_token": self.encrypted_refresh_token,
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinkedAccount":
        return cls(
            app_user_id=data["app_user_id"],
            spotify_user_id=data["spotify_user_id"],
            encrypted_access_token=data["encrypted_access_token"],
            encrypted_refresh_token=data["encrypted_refresh_token"],
            expires_at=parse_dt(data["expires_at"]),
        )


@dataclass
class BackupSnapshot:
    """
    Last known contents of a tracked playlist, written by the backup job.

    `track_list` holds plain track dicts; only their "id" matters here.
    """

    user_id: str
    playlist_id: str
    playlist_name: str
    track_list: List[Dict[str, Any]] = field(default_factory=list)
    active: bool = True

    @property
    def track_ids(self) -> List[str]:
        return [t["id"] for t in self.track_list if isinstance(t, dict) and t.get("id")]


@dataclass
class Session:
    access_token: str
    refresh_token: str


@dataclass
class CallbackResult:
    """
    Disposition of a completed callback; the caller picks the follow-up
    (issue cookies, redirect with a flag) from `flow`.
    """

    flow: FlowType
    app_user_id: str
    session: Optional[Session] = None
    playlist_id: Optional[str] = None
