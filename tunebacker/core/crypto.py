import base64
import hashlib
import secrets
from abc import ABC, abstractmethod

from cryptography.fernet import Fernet, InvalidToken

from .errors import TuneBackerError


class TokenCipher(ABC):
    """
    Symmetric cipher applied to Spotify tokens before they are persisted.
    """

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def decrypt(self, ciphertext: str) -> str:
        raise NotImplementedError


def _derive_fernet_key(secret: str) -> bytes:
    # Fernet wants 32 urlsafe-base64 bytes; accept any passphrase
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class FernetTokenCipher(TokenCipher):
    def __init__(self, secret: str) -> None:
        if not secret:
            raise TuneBackerError("TOKEN_ENCRYPTION_KEY not configured")
        self._fernet = Fernet(_derive_fernet_key(secret))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """
        Raises TuneBackerError when the ciphertext was produced with another
        key or has been tampered with.
        """
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise TuneBackerError("Stored token could not be decrypted") from e


class IdentityCipher(TokenCipher):
    """No-op cipher for tests and local fixtures."""

    def encrypt(self, plaintext: str) -> str:
        return plaintext

    def decrypt(self, ciphertext: str) -> str:
        return ciphertext


def generate_nonce(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)
