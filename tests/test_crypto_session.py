import pytest

from tunebacker.core import (
    FernetTokenCipher,
    IdentityCipher,
    SessionIssuer,
    TuneBackerError,
    generate_nonce,
)


def test_fernet_cipher_roundtrip_hides_plaintext() -> None:
    cipher = FernetTokenCipher("some passphrase")

    ciphertext = cipher.encrypt("BQD-access-token")

    assert "BQD-access-token" not in ciphertext
    assert cipher.decrypt(ciphertext) == "BQD-access-token"


def test_fernet_cipher_rejects_foreign_key() -> None:
    ciphertext = FernetTokenCipher("key-one").encrypt("secret")

    with pytest.raises(TuneBackerError):
        FernetTokenCipher("key-two").decrypt(ciphertext)


def test_fernet_cipher_requires_key() -> None:
    with pytest.raises(TuneBackerError):
        FernetTokenCipher("")


def test_identity_cipher() -> None:
    cipher = IdentityCipher()
    assert cipher.decrypt(cipher.encrypt("x")) == "x"


def test_generate_nonce_is_unique() -> None:
    nonces = {generate_nonce() for _ in range(50)}
    assert len(nonces) == 50


def test_session_issuer_types_are_not_interchangeable() -> None:
    issuer = SessionIssuer("jwt-secret-0123456789abcdef0123456789")

    session = issuer.issue("app-user-1")

    assert issuer.verify(session.access_token)["sub"] == "app-user-1"
    assert issuer.verify(session.refresh_token, "refresh")["sub"] == "app-user-1"
    assert issuer.verify(session.refresh_token) is None
    assert SessionIssuer("other-secret-0123456789abcdef01234567").verify(session.access_token) is None


def test_session_issuer_rejects_expired_tokens() -> None:
    issuer = SessionIssuer("jwt-secret-0123456789abcdef0123456789", access_ttl=-10)

    session = issuer.issue("app-user-1")

    assert issuer.verify(session.access_token) is None
