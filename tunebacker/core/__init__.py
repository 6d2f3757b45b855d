"""Public façade for the tunebacker.core package.

This module exposes logging helpers, filesystem utilities, the error
taxonomy, domain models, the token cipher and session issuance. Callers
should import these cross-cutting concerns from this façade instead of the
internal submodules.
"""

from .crypto import FernetTokenCipher, IdentityCipher, TokenCipher, generate_nonce
from .errors import (
    AccountAlreadyLinkedError,
    AccountNotLinkedError,
    InvalidFlowError,
    InvalidOrExpiredNonceError,
    InvalidStateError,
    MissingParametersError,
    NotFoundError,
    ProviderError,
    TokenExchangeError,
    TuneBackerError,
)
from .fs_utils import ensure_parent_dir, read_json, write_bytes_atomic, write_json
from .logging_config import configure_logging
from .logging_utils import (
    log_error,
    log_info,
    log_step,
    log_success,
    log_warning,
    mask,
)
from .models import (
    BackupSnapshot,
    CallbackResult,
    FileRestoreNonceRecord,
    FlowType,
    LinkedAccount,
    NonceRecord,
    PlaylistTrack,
    Session,
    TokenSet,
    parse_dt,
    utcnow,
)
from .session import SessionIssuer

__all__ = [
    "configure_logging",
    "log_info",
    "log_step",
    "log_success",
    "log_warning",
    "log_error",
    "mask",
    "ensure_parent_dir",
    "write_bytes_atomic",
    "write_json",
    "read_json",
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
    "FlowType",
    "TokenSet",
    "PlaylistTrack",
    "NonceRecord",
    "FileRestoreNonceRecord",
    "LinkedAccount",
    "BackupSnapshot",
    "Session",
    "CallbackResult",
    "parse_dt",
    "utcnow",
    "TokenCipher",
    "FernetTokenCipher",
    "IdentityCipher",
    "generate_nonce",
    "SessionIssuer",
]
