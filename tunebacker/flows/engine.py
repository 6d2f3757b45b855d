import json
from datetime import datetime, timedelta
from typing import Callable, List, Optional
from urllib.parse import urlencode

from tunebacker.config import Settings
from tunebacker.core import (
    AccountAlreadyLinkedError,
    AccountNotLinkedError,
    CallbackResult,
    FileRestoreNonceRecord,
    FlowType,
    InvalidOrExpiredNonceError,
    InvalidStateError,
    LinkedAccount,
    MissingParametersError,
    NonceRecord,
    NotFoundError,
    SessionIssuer,
    TokenCipher,
    TokenSet,
    generate_nonce,
    log_info,
    log_step,
    log_success,
    log_warning,
    mask,
    utcnow,
)
from tunebacker.data import BackupStore, BlobStore, LinkedAccountStore, NonceStore
from tunebacker.spotify import SpotifyClient

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

RESTORE_BLOB_PREFIX = "restores"


def restore_blob_path(nonce: str) -> str:
    return f"{RESTORE_BLOB_PREFIX}/{nonce}.json"


class OAuthFlowEngine:
    """
    Single redirect callback shared by four flows.

    `build_authorization_url` records whatever server-side context a flow
    needs under a fresh nonce and tags the outgoing `state`.
    `handle_callback` decodes that state, exchanges the code, and dispatches
    to the matching handler.
    """

    def __init__(
        self,
        settings: Settings,
        spotify: SpotifyClient,
        nonces: NonceStore[NonceRecord],
        file_nonces: NonceStore[FileRestoreNonceRecord],
        blobs: BlobStore,
        accounts: LinkedAccountStore,
        backups: BackupStore,
        cipher: TokenCipher,
        sessions: SessionIssuer,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self.spotify = spotify
        self.nonces = nonces
        self.file_nonces = file_nonces
        self.blobs = blobs
        self.accounts = accounts
        self.backups = backups
        self.cipher = cipher
        self.sessions = sessions
        self.restorer = PlaylistRestorer(spotify)
        self._now = now

    # ---------- outbound ----------

    def _expiry(self) -> datetime:
        return self._now() + timedelta(seconds=self.settings.nonce_ttl_seconds)

    def build_authorization_url(
        self,
        flow: str | FlowType,
        user_id: Optional[str] = None,
        playlist_id: Optional[str] = None,
        playlist_name: Optional[str] = None,
        track_ids: Optional[List[str]] = None,
    ) -> str:
        flow = parse_flow(flow)
        log_step(f"Building Spotify authorization URL for flow '{flow.value}'...")

        if flow is FlowType.LOGIN:
            state: OAuthState = LoginState()

        elif flow is FlowType.LINK:
            if not user_id:
                raise MissingParametersError("User id is required to link an account")
            nonce = generate_nonce()
            self.nonces.put(NonceRecord(nonce=nonce, user_id=user_id, expires_at=self._expiry()))
            state = LinkState(nonce=nonce)

        elif flow is FlowType.RESTORE:
            if not user_id or not playlist_id:
                raise MissingParametersError("User id and playlist id are required to restore")
            nonce = generate_nonce()
            self.nonces.put(NonceRecord(nonce=nonce, user_id=user_id, expires_at=self._expiry()))
            state = RestoreState(nonce=nonce, playlist_id=playlist_id)

        elif flow is FlowType.FILE_RESTORE:
            if not user_id or not playlist_name or not track_ids:
                raise MissingParametersError(
                    "User id, playlist name and track ids are required for a file restore"
                )
            if not isinstance(track_ids, list) or not all(
                isinstance(t, str) and t for t in track_ids
            ):
                raise MissingParametersError("Track ids must be a list of non-empty strings")

            nonce = generate_nonce()
            path = restore_blob_path(nonce)
            self.blobs.upload(
                path,
                json.dumps({"trackIds": list(track_ids)}).encode("utf-8"),
                content_type="application/json",
            )
            self.file_nonces.put(
                FileRestoreNonceRecord(
                    nonce=nonce,
                    user_id=user_id,
                    expires_at=self._expiry(),
                    storage_path=path,
                    playlist_name=playlist_name,
                )
            )
            state = FileRestoreState(nonce=nonce)

        query = urlencode(
            {
                "response_type": "code",
                "scope": self.settings.scope,
                "redirect_uri": self.settings.spotify_redirect_uri,
                "client_id": self.settings.spotify_client_id,
                "show_dialog": "true",
                "state": encode_state(state),
            }
        )
        return f"{self.settings.spotify_auth_url}?{query}"

    # ---------- inbound ----------

    def handle_callback(self, code: Optional[str], state: Optional[str]) -> CallbackResult:
        if not code or not state:
            raise MissingParametersError("Missing authorization code or state in callback")

        parsed = decode_state(state)
        tokens = self.spotify.exchange_code_for_token(code)
        log_info(f"Handling '{parsed.flow.value}' callback for {mask(tokens.spotify_user_id)}.")

        if isinstance(parsed, LoginState):
            return self._handle_login(tokens)
        if isinstance(parsed, LinkState):
            return self._handle_link(parsed, tokens)
        if isinstance(parsed, RestoreState):
            return self._handle_restore(parsed, tokens)
        if isinstance(parsed, FileRestoreState):
            return self._handle_file_restore(parsed, tokens)

        raise InvalidStateError(f"Unhandled flow: {parsed!r}")

    def _consume(self, store: NonceStore, nonce: str):
        """
        Take the nonce out of the store, then check its expiry. An expired
        nonce is removed as well.
        """
        record = store.consume(nonce)
        if record is None:
            log_warning(f"Nonce {mask(nonce)} unknown or already used.")
            raise InvalidOrExpiredNonceError("Invalid or expired authorization request")
        if not record.is_valid(self._now()):
            log_warning(f"Nonce {mask(nonce)} expired at {record.expires_at.isoformat()}.")
            if isinstance(record, FileRestoreNonceRecord) and record.storage_path:
                self.blobs.delete(record.storage_path)
            raise InvalidOrExpiredNonceError("Authorization request has expired")
        return record

    def _store_tokens(self, app_user_id: str, tokens: TokenSet) -> None:
        self.accounts.upsert(
            LinkedAccount(
                app_user_id=app_user_id,
                spotify_user_id=tokens.spotify_user_id,
                encrypted_access_token=self.cipher.encrypt(tokens.access_token),
                encrypted_refresh_token=self.cipher.encrypt(tokens.refresh_token),
                expires_at=tokens.expires_at,
            )
        )

    def _handle_login(self, tokens: TokenSet) -> CallbackResult:
        existing = self.accounts.find_by_spotify_user(tokens.spotify_user_id)
        if existing is None:
            raise AccountNotLinkedError("No application user is linked to this Spotify account")

        self._store_tokens(existing.app_user_id, tokens)
        session = self.sessions.issue(existing.app_user_id)
        log_success(f"Login completed for user {mask(existing.app_user_id)}.")
        return CallbackResult(
            flow=FlowType.LOGIN, app_user_id=existing.app_user_id, session=session
        )

    def _handle_link(self, state: LinkState, tokens: TokenSet) -> CallbackResult:
        record = self._consume(self.nonces, state.nonce)
        owner = self.accounts.find_by_spotify_user(tokens.spotify_user_id)
        if owner is not None and owner.app_user_id != record.user_id:
            log_warning(
                f"Spotify account {mask(tokens.spotify_user_id)} is already linked "
                f"to user {mask(owner.app_user_id)}."
            )
            raise AccountAlreadyLinkedError(
                "This Spotify account is already linked to another user"
            )
        self._store_tokens(record.user_id, tokens)
        log_success(f"Spotify account linked to user {mask(record.user_id)}.")
        return CallbackResult(flow=FlowType.LINK, app_user_id=record.user_id)

    def _handle_restore(self, state: RestoreState, tokens: TokenSet) -> CallbackResult:
        record = self._consume(self.nonces, state.nonce)

        snapshot = self.backups.get(record.user_id, state.playlist_id)
        if snapshot is None:
            raise NotFoundError(f"No backup found for playlist {state.playlist_id}")

        new_id = self.restorer.restore(
            tokens.access_token,
            tokens.spotify_user_id,
            snapshot.playlist_name,
            snapshot.track_ids,
        )
        return CallbackResult(
            flow=FlowType.RESTORE, app_user_id=record.user_id, playlist_id=new_id
        )

    def _load_uploaded_track_ids(self, path: str) -> List[str]:
        try:
            raw = self.blobs.download(path)
        finally:
            self.blobs.delete(path)

        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            raise InvalidStateError("Uploaded track list is not valid JSON") from None

        track_ids = payload.get("trackIds") if isinstance(payload, dict) else None
        if not isinstance(track_ids, list) or not all(isinstance(t, str) for t in track_ids):
            raise InvalidStateError("Uploaded track list has no 'trackIds' array")
        return track_ids

    def _handle_file_restore(self, state: FileRestoreState, tokens: TokenSet) -> CallbackResult:
        record = self._consume(self.file_nonces, state.nonce)
        track_ids = self._load_uploaded_track_ids(record.storage_path)

        new_id = self.restorer.restore(
            tokens.access_token,
            tokens.spotify_user_id,
            record.playlist_name,
            track_ids,
        )
        return CallbackResult(
            flow=FlowType.FILE_RESTORE, app_user_id=record.user_id, playlist_id=new_id
        )

    def purge_expired(self) -> int:
        """Drop nonces nobody came back for, with their staged uploads."""
        now = self._now()
        removed = len(self.nonces.purge_expired(now))
        for record in self.file_nonces.purge_expired(now):
            if record.storage_path:
                self.blobs.delete(record.storage_path)
            removed += 1
        if removed:
            log_info(f"Purged {removed} expired authorization requests.")
        return removed

    # ---------- account management ----------

    def unlink(self, app_user_id: str) -> None:
        """
        Drop the Spotify link of a user and stop all their backup trackers.
        """
        if not app_user_id:
            raise MissingParametersError("Missing user id for unlinking Spotify account")

        self.accounts.delete(app_user_id)
        deactivated = self.backups.deactivate_all(app_user_id)
        log_success(
            f"Unlinked Spotify for user {mask(app_user_id)}; "
            f"{deactivated} backup trackers deactivated."
        )
