from typing import List

from tunebacker.core import MissingParametersError, log_step, log_success
from tunebacker.spotify import SpotifyClient


class PlaylistRestorer:
    """
    Recreate a playlist from a list of track ids: create a new dated
    playlist, then fill it batch by batch.

    There is no transaction across the two Spotify calls; a failed insertion
    leaves the created playlist empty or partially filled.
    """

    def __init__(self, spotify: SpotifyClient) -> None:
        self.spotify = spotify

    def restore(
        self,
        access_token: str,
        spotify_user_id: str,
        playlist_name: str,
        track_ids: List[str],
    ) -> str:
        if not access_token or not spotify_user_id or not playlist_name or not track_ids:
            raise MissingParametersError("Missing parameters to restore playlist")

        log_step(f"Restoring '{playlist_name}' with {len(track_ids)} tracks...")
        playlist_id = self.spotify.create_playlist(
            access_token, spotify_user_id, playlist_name
        )
        self.spotify.add_tracks(access_token, playlist_id, track_ids)
        log_success(f"Playlist restored as {playlist_id}.")
        return playlist_id
