"""Error taxonomy for the OAuth flows and the Spotify client.

Every error carries a default HTTP status so the API layer can translate it
without a lookup table of its own.
"""

from typing import Any, Optional


class TuneBackerError(Exception):
    """Base class for all errors raised by the core."""

    status_code: int = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__doc__ or "")
        self.message = message or (self.__class__.__doc__ or "").strip()


class MissingParametersError(TuneBackerError):
    """A required input was absent or empty."""

    status_code = 400


class InvalidFlowError(TuneBackerError):
    """Unknown OAuth flow tag."""

    status_code = 400


class InvalidStateError(TuneBackerError):
    """OAuth state payload is malformed."""

    status_code = 400


class InvalidOrExpiredNonceError(TuneBackerError):
    """Nonce is unknown, already consumed, or past its expiry."""

    status_code = 400


class AccountNotLinkedError(TuneBackerError):
    """No application user is linked to this Spotify account."""

    status_code = 404


class NotFoundError(TuneBackerError):
    """Requested record does not exist."""

    status_code = 404


class AccountAlreadyLinkedError(TuneBackerError):
    """This Spotify account is already linked to another application user."""

    status_code = 409


class ProviderError(TuneBackerError):
    """Spotify answered with a non-success status, or could not be reached.

    provider_status is None for network failures (DNS, refused connection,
    timeout).
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        provider_status: Optional[int],
        body: Any = None,
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.provider_status = provider_status
        self.body = body
        self.retry_after = retry_after

    @property
    def rate_limited(self) -> bool:
        return self.provider_status == 429


class TokenExchangeError(TuneBackerError):
    """Authorization code exchange did not yield a usable token set."""

    status_code = 502

    def __init__(self, message: str = "", *, identity_resolution: bool = False) -> None:
        super().__init__(message)
        # True when tokens were issued but the profile lookup failed
        self.identity_resolution = identity_resolution


__all__ = [
    "TuneBackerError",
    "MissingParametersError",
    "InvalidFlowError",
    "InvalidStateError",
    "InvalidOrExpiredNonceError",
    "AccountNotLinkedError",
    "NotFoundError",
    "AccountAlreadyLinkedError",
    "ProviderError",
    "TokenExchangeError",
]
