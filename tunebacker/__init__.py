"""TuneBacker: back up and restore Spotify playlists."""

__version__ = "0.1.0"
