from typing import List

from pydantic import BaseModel, Field


class AuthUrlResponse(BaseModel):
    url: str


class FileRestoreRequest(BaseModel):
    """Track list uploaded by the user, staged until the OAuth round trip ends."""

    playlistName: str = Field(min_length=1)
    trackIds: List[str] = Field(min_length=1)


class MessageResponse(BaseModel):
    message: str
