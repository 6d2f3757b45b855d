from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse

from tunebacker.config import Settings
from tunebacker.core import FlowType, TuneBackerError, log_error, log_warning
from tunebacker.flows import OAuthFlowEngine

from ..dependencies import get_current_user, get_engine, get_settings
from .schemas import AuthUrlResponse, FileRestoreRequest, MessageResponse

router = APIRouter()

# Query flag appended to CLIENT_URL/home after each non-login flow
_REDIRECT_FLAGS = {
    FlowType.LINK: "firstTimeUser",
    FlowType.RESTORE: "playlistRestored",
    FlowType.FILE_RESTORE: "fileRestored",
}


def _raise_http(e: TuneBackerError) -> NoReturn:
    raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/login", response_model=AuthUrlResponse)
def login_with_spotify(engine: OAuthFlowEngine = Depends(get_engine)) -> AuthUrlResponse:
    """
    Authorization URL for signing in with an already linked Spotify account.
    """
    return AuthUrlResponse(url=engine.build_authorization_url(FlowType.LOGIN))


@router.post("/link", response_model=AuthUrlResponse)
def link_spotify(
    user_id: str = Depends(get_current_user),
    engine: OAuthFlowEngine = Depends(get_engine),
) -> AuthUrlResponse:
    try:
        url = engine.build_authorization_url(FlowType.LINK, user_id=user_id)
    except TuneBackerError as e:
        _raise_http(e)
    return AuthUrlResponse(url=url)


@router.post("/restore/{playlist_id}", response_model=AuthUrlResponse)
def restore_playlist(
    playlist_id: str,
    user_id: str = Depends(get_current_user),
    engine: OAuthFlowEngine = Depends(get_engine),
) -> AuthUrlResponse:
    try:
        url = engine.build_authorization_url(
            FlowType.RESTORE, user_id=user_id, playlist_id=playlist_id
        )
    except TuneBackerError as e:
        _raise_http(e)
    return AuthUrlResponse(url=url)


@router.post("/file-restore", response_model=AuthUrlResponse)
def file_restore(
    body: FileRestoreRequest,
    user_id: str = Depends(get_current_user),
    engine: OAuthFlowEngine = Depends(get_engine),
) -> AuthUrlResponse:
    """
    Stage an uploaded track list and return the authorization URL that will
    recreate it once the user approves.
    """
    try:
        url = engine.build_authorization_url(
            FlowType.FILE_RESTORE,
            user_id=user_id,
            playlist_name=body.playlistName,
            track_ids=body.trackIds,
        )
    except TuneBackerError as e:
        _raise_http(e)
    return AuthUrlResponse(url=url)


@router.get("/callback")
def spotify_callback(
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    engine: OAuthFlowEngine = Depends(get_engine),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """
    Spotify redirect target shared by all flows.

    Examples:
      - /spotify/callback?code=...&state={"flow":"login"}
      - /spotify/callback?error=access_denied&state=...
    """
    if error:
        log_warning(f"Spotify authorization denied: {error}")
        raise HTTPException(status_code=400, detail=f"Spotify authorization failed: {error}")

    try:
        result = engine.handle_callback(code, state)
    except TuneBackerError as e:
        log_error(f"Spotify callback failed: {e.message}")
        _raise_http(e)

    home = f"{settings.client_url}/home"
    if result.flow is FlowType.LOGIN:
        response = RedirectResponse(home, status_code=302)
        secure = settings.client_url.startswith("https://")
        for name, value in (
            ("access_token", result.session.access_token),
            ("refresh_token", result.session.refresh_token),
        ):
            response.set_cookie(name, value, httponly=True, secure=secure, samesite="lax")
        return response

    return RedirectResponse(f"{home}?{_REDIRECT_FLAGS[result.flow]}=true", status_code=302)


@router.delete("/link", response_model=MessageResponse)
def unlink_spotify(
    user_id: str = Depends(get_current_user),
    engine: OAuthFlowEngine = Depends(get_engine),
) -> MessageResponse:
    try:
        engine.unlink(user_id)
    except TuneBackerError as e:
        _raise_http(e)
    return MessageResponse(message="Account has been unlinked!")
