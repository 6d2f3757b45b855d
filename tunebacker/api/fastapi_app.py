from fastapi import FastAPI

from tunebacker import __version__
from tunebacker.api.dependencies import get_settings
from tunebacker.api.spotify.routes import router as spotify_router
from tunebacker.core import configure_logging

configure_logging(get_settings().log_level)

app = FastAPI(
    title="TuneBacker API",
    version=__version__,
    description="Link Spotify accounts and restore backed-up playlists.",
)

app.include_router(spotify_router, prefix="/spotify", tags=["spotify"])
