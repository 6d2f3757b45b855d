"""Public façade for the tunebacker.spotify package.

This module exposes the Spotify Web API client used by the OAuth flows and
playlist restoration. Callers should import these symbols from this façade
instead of the internal client module.
"""

from .client import (
    ADD_TRACKS_BATCH_SIZE,
    PAGE_SIZE,
    SpotifyClient,
    restored_playlist_name,
)

__all__ = [
    "SpotifyClient",
    "restored_playlist_name",
    "PAGE_SIZE",
    "ADD_TRACKS_BATCH_SIZE",
]
