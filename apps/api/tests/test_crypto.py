from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from envvault.crypto import SecretCipher, SecretDecryptError
from envvault.errors import ErrorKind


@pytest.mark.parametrize("value", ["postgres://x", "", "päss wörd ✓", "a" * 10_000, "line1\nline2"])
def test_decrypt_inverts_encrypt(value: str) -> None:
  cipher = SecretCipher(Fernet.generate_key().decode("utf-8"))
  assert cipher.decrypt(cipher.encrypt(value)) == value


def test_encrypt_is_randomized_and_never_plaintext() -> None:
  cipher = SecretCipher(Fernet.generate_key().decode("utf-8"))
  a = cipher.encrypt("postgres://x")
  b = cipher.encrypt("postgres://x")
  assert a != b
  assert "postgres://x" not in a


def test_non_fernet_key_is_stretched() -> None:
  cipher = SecretCipher("not a fernet key")
  assert cipher.decrypt(cipher.encrypt("v")) == "v"
  # same passphrase, same derived key
  assert SecretCipher("not a fernet key").decrypt(cipher.encrypt("v")) == "v"


def test_wrong_key_fails_loudly() -> None:
  a = SecretCipher(Fernet.generate_key().decode("utf-8"))
  b = SecretCipher(Fernet.generate_key().decode("utf-8"))
  with pytest.raises(SecretDecryptError) as exc:
    b.decrypt(a.encrypt("postgres://x"))
  assert exc.value.kind is ErrorKind.internal
  assert "postgres://x" not in str(exc.value)


@pytest.mark.parametrize("garbage", ["", "not-a-valid-fernet-token", "gAAAAAB" + "A" * 40])
def test_garbage_ciphertext_is_internal_error(garbage: str) -> None:
  cipher = SecretCipher(Fernet.generate_key().decode("utf-8"))
  with pytest.raises(SecretDecryptError):
    cipher.decrypt(garbage)


def test_tampered_ciphertext_is_rejected() -> None:
  cipher = SecretCipher(Fernet.generate_key().decode("utf-8"))
  token = cipher.encrypt("postgres://x")
  flipped = token[:-5] + ("A" if token[-5] != "A" else "B") + token[-4:]
  with pytest.raises(SecretDecryptError):
    cipher.decrypt(flipped)


def test_empty_key_is_refused() -> None:
  with pytest.raises(ValueError):
    SecretCipher("  ")
