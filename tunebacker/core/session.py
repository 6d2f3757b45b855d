"""Application session tokens issued after a Spotify login.

The login flow ends with a pair of signed JWTs for the linked application
user. The payload only carries the app user id and the token type; Spotify
tokens never leave the linked-account store.
"""

import time
from typing import Optional

import jwt  # PyJWT

from .errors import TuneBackerError
from .models import Session

_ALGORITHM = "HS256"


class SessionIssuer:
    def __init__(
        self,
        secret: str,
        access_ttl: int = 60 * 60,
        refresh_ttl: int = 60 * 60 * 24 * 7,
    ) -> None:
        if not secret:
            raise TuneBackerError("JWT_SECRET not configured")
        self._secret = secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def _encode(self, user_id: str, token_type: str, ttl: int) -> str:
        now = int(time.time())
        payload = {
            "sub": user_id,
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def issue(self, user_id: str) -> Session:
        """Create an access/refresh pair for the given app user."""
        return Session(
            access_token=self._encode(user_id, "access", self.access_ttl),
            refresh_token=self._encode(user_id, "refresh", self.refresh_ttl),
        )

    def verify(self, token: str, expected_type: str = "access") -> Optional[dict]:
        """Decode a token; None if invalid, expired or of the wrong type."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[_ALGORITHM])
        except jwt.InvalidTokenError:
            return None
        if payload.get("type") != expected_type:
            return None
        return payload
