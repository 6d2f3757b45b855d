"""JSON-file-backed implementations of the store interfaces.

Each store keeps one JSON document on disk, rewritten atomically on every
change. A per-instance lock serializes read-modify-write cycles, which is
what makes `consume` single-use within one process.
"""

import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

from tunebacker.core import (
    BackupSnapshot,
    LinkedAccount,
    NotFoundError,
    log_warning,
    mask,
    read_json,
    write_bytes_atomic,
    write_json,
)

from .stores import BackupStore, BlobStore, LinkedAccountStore, NonceStore, R


def _on_corrupted(path: str):
    def _handler(e: Exception) -> None:
        log_warning(f"Store file {path} is corrupted; starting from an empty table.")

    return _handler


class JsonNonceStore(NonceStore[R]):
    def __init__(self, path: str, record_cls: Type[R]) -> None:
        self.path = path
        self.record_cls = record_cls
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        raw = read_json(self.path, default={}, on_error=_on_corrupted(self.path))
        if not isinstance(raw, dict):
            return {}
        return {k: v for k, v in raw.items() if isinstance(v, dict)}

    def _parse(self, payload: Dict[str, Any]) -> Optional[R]:
        try:
            return self.record_cls.from_dict(payload)
        except (KeyError, TypeError, ValueError):
            # Ignore malformed rows
            return None

    def put(self, record: R) -> None:
        with self._lock:
            rows = self._load()
            rows[record.nonce] = record.to_dict()
            write_json(self.path, rows)

    def get(self, nonce: str) -> Optional[R]:
        with self._lock:
            payload = self._load().get(nonce)
        return self._parse(payload) if payload else None

    def delete(self, nonce: str) -> None:
        with self._lock:
            rows = self._load()
            if rows.pop(nonce, None) is not None:
                write_json(self.path, rows)

    def consume(self, nonce: str) -> Optional[R]:
        with self._lock:
            rows = self._load()
            payload = rows.pop(nonce, None)
            if payload is None:
                return None
            write_json(self.path, rows)
        return self._parse(payload)

    def purge_expired(self, now: datetime) -> List[R]:
        with self._lock:
            rows = self._load()
            kept = {}
            removed: List[R] = []
            for nonce, payload in rows.items():
                record = self._parse(payload)
                if record is not None and record.is_valid(now):
                    kept[nonce] = payload
                elif record is not None:
                    removed.append(record)
            if len(kept) != len(rows):
                write_json(self.path, kept)
        return removed


class LocalBlobStore(BlobStore):
    """
    Path-addressed blobs under `base_dir`, e.g. base_dir/restores/<nonce>.json.
    """

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.base_dir / path).resolve()
        if self.base_dir not in target.parents:
            raise NotFoundError(f"Blob path outside of storage root: {path!r}")
        return target

    def upload(
        self, path: str, data: bytes, content_type: str = "application/json"
    ) -> None:
        # Content type is implied by the extension on a local filesystem
        write_bytes_atomic(self._resolve(path), data)

    def download(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"No blob stored at {path!r}") from e

    def delete(self, path: str) -> None:
        self._resolve(path).unlink(missing_ok=True)


class JsonLinkedAccountStore(LinkedAccountStore):
    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, LinkedAccount]:
        raw = read_json(self.path, default={}, on_error=_on_corrupted(self.path))
        if not isinstance(raw, dict):
            return {}

        accounts: Dict[str, LinkedAccount] = {}
        for user_id, payload in raw.items():
            if not isinstance(payload, dict):
                continue
            payload = dict(payload)
            payload.setdefault("app_user_id", user_id)
            try:
                account = LinkedAccount.from_dict(payload)
            except (KeyError, TypeError, ValueError):
                continue
            accounts[account.app_user_id] = account
        return accounts

    def _save(self, accounts: Dict[str, LinkedAccount]) -> None:
        write_json(self.path, {uid: a.to_dict() for uid, a in accounts.items()})

    def upsert(self, account: LinkedAccount) -> None:
        with self._lock:
            accounts = self._load()
            accounts[account.app_user_id] = account
            self._save(accounts)

    def get(self, app_user_id: str) -> Optional[LinkedAccount]:
        with self._lock:
            return self._load().get(app_user_id)

    def find_by_spotify_user(self, spotify_user_id: str) -> Optional[LinkedAccount]:
        with self._lock:
            matches = [
                a for a in self._load().values() if a.spotify_user_id == spotify_user_id
            ]
        if len(matches) > 1:
            log_warning(
                f"Spotify user {mask(spotify_user_id)} is linked to "
                f"{len(matches)} application users; using the first one."
            )
        return matches[0] if matches else None

    def delete(self, app_user_id: str) -> None:
        with self._lock:
            accounts = self._load()
            if accounts.pop(app_user_id, None) is not None:
                self._save(accounts)


class JsonBackupStore(BackupStore):
    """
    Backup trackers stored as a list of rows:
      {"user_id", "playlist_id", "playlist_name", "backup_data", "active"}
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> list:
        raw = read_json(self.path, default=[], on_error=_on_corrupted(self.path))
        if not isinstance(raw, list):
            return []
        return [row for row in raw if isinstance(row, dict)]

    @staticmethod
    def _to_snapshot(row: Dict[str, Any]) -> BackupSnapshot:
        return BackupSnapshot(
            user_id=row["user_id"],
            playlist_id=row["playlist_id"],
            playlist_name=row.get("playlist_name", ""),
            track_list=list(row.get("backup_data") or []),
            active=bool(row.get("active", True)),
        )

    def get(self, user_id: str, playlist_id: str) -> Optional[BackupSnapshot]:
        with self._lock:
            rows = self._load()
        for row in rows:
            if row.get("user_id") == user_id and row.get("playlist_id") == playlist_id:
                return self._to_snapshot(row)
        return None

    def save(self, snapshot: BackupSnapshot) -> None:
        row = {
            "user_id": snapshot.user_id,
            "playlist_id": snapshot.playlist_id,
            "playlist_name": snapshot.playlist_name,
            "backup_data": snapshot.track_list,
            "active": snapshot.active,
        }
        with self._lock:
            rows = [
                r
                for r in self._load()
                if not (
                    r.get("user_id") == snapshot.user_id
                    and r.get("playlist_id") == snapshot.playlist_id
                )
            ]
            rows.append(row)
            write_json(self.path, rows)

    def deactivate_all(self, user_id: str) -> int:
        with self._lock:
            rows = self._load()
            changed = 0
            for row in rows:
                if row.get("user_id") == user_id and row.get("active", True):
                    row["active"] = False
                    changed += 1
            if changed:
                write_json(self.path, rows)
        return changed


def default_paths(data_dir: str) -> Dict[str, str]:
    return {
        "nonces": os.path.join(data_dir, "spotify_nonces.json"),
        "file_nonces": os.path.join(data_dir, "file_restore_nonces.json"),
        "accounts": os.path.join(data_dir, "spotify_users.json"),
        "backups": os.path.join(data_dir, "weekly_backups.json"),
        "blobs": os.path.join(data_dir, "playlist_files"),
    }
