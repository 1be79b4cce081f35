from __future__ import annotations

import base64
import binascii
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from envvault.errors import InternalError


class SecretDecryptError(InternalError):
  pass


def _fernet_key(key: str) -> bytes:
  raw = key.strip().encode("utf-8")
  try:
    if len(base64.urlsafe_b64decode(raw)) == 32:
      return raw
  except (binascii.Error, ValueError):
    pass
  # not a Fernet key: stretch whatever was configured
  return base64.urlsafe_b64encode(hashlib.sha256(raw).digest())


class SecretCipher:
  """
  Symmetric encryption for secret values, bound to one process-wide key.

  Fernet uses a random IV per call, so encrypting the same value twice gives
  different ciphertexts. Ciphertexts are authenticated: anything that was not
  produced by this key fails to decrypt instead of yielding garbage.
  """

  def __init__(self, key: str) -> None:
    if not key or not key.strip():
      raise ValueError("encryption key is required")
    self._fernet = Fernet(_fernet_key(key))

  def encrypt(self, plaintext: str) -> str:
    return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

  def decrypt(self, ciphertext: str) -> str:
    try:
      return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
    except (InvalidToken, UnicodeDecodeError) as exc:
      raise SecretDecryptError("Stored secret cannot be decrypted with the current key") from exc
