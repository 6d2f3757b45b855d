import sys

import uvicorn

from tunebacker.api.dependencies import build_engine
from tunebacker.config import load_settings
from tunebacker.core import configure_logging, log_error, log_step, log_success


def main(purge_only: bool = False) -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    # Basic config check
    if not (settings.spotify_client_id and settings.spotify_client_secret):
        log_error("Please set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET in the .env file.")
        return
    if not (settings.token_encryption_key and settings.jwt_secret):
        log_error("Please set TOKEN_ENCRYPTION_KEY and JWT_SECRET in the .env file.")
        return

    engine = build_engine(settings)

    log_step("Purging expired authorization requests...")
    removed = engine.purge_expired()
    log_success(f"{removed} expired authorization requests removed.")

    if purge_only:
        return

    uvicorn.run("api_main:app", host="127.0.0.1", port=8888)


if __name__ == "__main__":
    main(purge_only="--purge-only" in sys.argv)
