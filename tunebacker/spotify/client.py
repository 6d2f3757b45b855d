from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

import requests

from tunebacker.config import Settings
from tunebacker.core import (
    MissingParametersError,
    PlaylistTrack,
    ProviderError,
    TokenExchangeError,
    TokenSet,
    log_error,
    log_info,
    log_step,
    log_warning,
    mask,
    utcnow,
)

PAGE_SIZE = 100  # max items per playlist-tracks page
ADD_TRACKS_BATCH_SIZE = 100  # max URIs per insertion call
RESTORED_DESCRIPTION = "Restored by TuneBacker"


def _response_body(r: requests.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return r.text


def _retry_after(r: requests.Response) -> Optional[int]:
    value = r.headers.get("Retry-After")
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def restored_playlist_name(name: str, today: date) -> str:
    """
    "My Mix" restored on 2024-03-05 -> "My Mix - Restored 03/05/2024"
    """
    return f"{name} - Restored {today.strftime('%m/%d/%Y')}"


class SpotifyClient:
    """
    Thin wrapper around the Spotify Web API endpoints used for backups and
    restores.

    Every non-2xx answer raises ProviderError with the provider's status and
    body. Network failures raise ProviderError with no status. Nothing is
    retried here: HTTP 429 surfaces with `retry_after` set, and expired
    access tokens surface as 401.
    """

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self._today = today

    # ---------- plumbing ----------

    def _request(
        self,
        method: str,
        url: str,
        access_token: Optional[str] = None,
        **kwargs,
    ) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if access_token is not None:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            r = self.session.request(
                method,
                url,
                headers=headers,
                timeout=self.settings.http_timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            log_error(f"Spotify unreachable on {method} {url}: {e}")
            raise ProviderError(
                f"Spotify API {method} {url} failed: {e}",
                provider_status=None,
            ) from e
        if r.status_code >= 400:
            body = _response_body(r)
            retry_after = _retry_after(r)
            if r.status_code == 429:
                log_warning(
                    f"Spotify rate limit hit on {method} {url} "
                    f"(retry after {retry_after}s)"
                )
            else:
                log_error(f"Spotify API error {r.status_code} on {method} {url}: {body}")
            raise ProviderError(
                f"Spotify API {method} {url} failed with {r.status_code}",
                provider_status=r.status_code,
                body=body,
                retry_after=retry_after,
            )
        return r

    def _api(self, path: str) -> str:
        return f"{self.settings.spotify_api_base}{path}"

    # ---------- tokens ----------

    def exchange_code_for_token(self, code: str) -> TokenSet:
        """
        Trade an authorization code for tokens, then resolve the Spotify user
        id behind them.
        """
        if not code:
            raise MissingParametersError("Missing authorization code")

        log_step("Exchanging authorization code for Spotify tokens...")
        r = self._request(
            "POST",
            self.settings.spotify_token_url,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.spotify_redirect_uri,
            },
            auth=(self.settings.spotify_client_id, self.settings.spotify_client_secret),
        )
        token_info = _response_body(r)
        if not isinstance(token_info, dict):
            raise TokenExchangeError("Token endpoint returned a non-JSON body")

        access_token = token_info.get("access_token")
        refresh_token = token_info.get("refresh_token")
        if not access_token or not refresh_token:
            raise TokenExchangeError("Tokens came back empty from Spotify")

        try:
            profile = self.fetch_profile(access_token)
        except ProviderError as e:
            raise TokenExchangeError(
                "Failed to fetch Spotify profile after token exchange",
                identity_resolution=True,
            ) from e

        spotify_user_id = profile.get("id") if isinstance(profile, dict) else None
        if not spotify_user_id:
            raise TokenExchangeError(
                "Spotify profile has no user id", identity_resolution=True
            )

        expires_in = int(token_info.get("expires_in") or 3600)
        log_info(f"Spotify tokens issued for user {mask(spotify_user_id)}.")
        return TokenSet(
            access_token=access_token,
            refresh_token=refresh_token,
            spotify_user_id=spotify_user_id,
            expires_at=utcnow() + timedelta(seconds=expires_in),
        )

    def refresh_token(
        self,
        refresh_token: str,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Get a new access token. The returned dict always carries a
        refresh_token: Spotify only sends one when it rotates it.
        """
        client_id = client_id or self.settings.spotify_client_id
        client_secret = client_secret or self.settings.spotify_client_secret
        if not refresh_token or not client_id or not client_secret:
            raise MissingParametersError("Missing refresh token or client credentials")

        r = self._request(
            "POST",
            self.settings.spotify_token_url,
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            auth=(client_id, client_secret),
        )
        token_info = _response_body(r)
        if not isinstance(token_info, dict):
            raise ProviderError(
                "Token endpoint returned a non-JSON body on refresh",
                provider_status=r.status_code,
                body=token_info,
            )
        token_info = dict(token_info)
        token_info.setdefault("refresh_token", refresh_token)
        return token_info

    # ---------- reads ----------

    def fetch_profile(self, access_token: str) -> Dict[str, Any]:
        if not access_token:
            raise MissingParametersError("Missing access token")
        return _response_body(self._request("GET", self._api("/me"), access_token))

    def fetch_playlists(
        self, access_token: str, offset: int = 0, limit: int = 50
    ) -> Dict[str, Any]:
        """One page of the current user's playlists, as Spotify returns it."""
        r = self._request(
            "GET",
            self._api("/me/playlists"),
            access_token,
            params={"offset": offset, "limit": limit},
        )
        return _response_body(r)

    def fetch_playlist_tracks(
        self, playlist_id: str, access_token: str
    ) -> List[PlaylistTrack]:
        log_step(f"Fetching tracks of playlist {playlist_id}...")
        tracks: List[PlaylistTrack] = []
        offset = 0

        while True:
            r = self._request(
                "GET",
                self._api(f"/playlists/{playlist_id}/tracks"),
                access_token,
                params={"limit": PAGE_SIZE, "offset": offset},
            )
            items = _response_body(r).get("items", [])
            for item in items:
                t = item.get("track")
                if not t:
                    # Removed/local tracks come back as null
                    continue
                tracks.append(
                    PlaylistTrack(
                        id=t["id"],
                        name=t["name"],
                        artist=", ".join(a["name"] for a in t.get("artists", [])),
                        album=(t.get("album") or {}).get("name", ""),
                        added_at=item.get("added_at"),
                    )
                )

            if len(items) < PAGE_SIZE:
                break
            offset += PAGE_SIZE

        log_info(f"{len(tracks)} tracks fetched from playlist {playlist_id}.")
        return tracks

    # ---------- writes ----------

    def create_playlist(
        self, access_token: str, spotify_user_id: str, name: str
    ) -> str:
        """Create a private "<name> - Restored MM/DD/YYYY" playlist; return its id."""
        if not access_token or not spotify_user_id or not name:
            raise MissingParametersError("Missing playlist name, user or token")

        full_name = restored_playlist_name(name, self._today())
        log_step(f"Creating playlist '{full_name}'...")
        r = self._request(
            "POST",
            self._api(f"/users/{spotify_user_id}/playlists"),
            access_token,
            json={
                "name": full_name,
                "description": RESTORED_DESCRIPTION,
                "public": False,
            },
        )
        return _response_body(r)["id"]

    def add_tracks(
        self, access_token: str, playlist_id: str, track_ids: List[str]
    ) -> None:
        """
        Insert tracks in order, one call per batch of at most 100 URIs.

        Batches already inserted stay when a later one fails.
        """
        if not access_token or not playlist_id or track_ids is None:
            raise MissingParametersError("Missing playlist id, tracks or token")

        total_batches = (len(track_ids) + ADD_TRACKS_BATCH_SIZE - 1) // ADD_TRACKS_BATCH_SIZE
        for i in range(0, len(track_ids), ADD_TRACKS_BATCH_SIZE):
            batch = track_ids[i : i + ADD_TRACKS_BATCH_SIZE]
            uris = [f"spotify:track:{track_id}" for track_id in batch]
            self._request(
                "POST",
                self._api(f"/playlists/{playlist_id}/tracks"),
                access_token,
                json={"uris": uris},
            )
            log_info(
                f"Added batch {i // ADD_TRACKS_BATCH_SIZE + 1}/{total_batches} "
                f"({len(batch)} tracks) to playlist {playlist_id}."
            )
