#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Password-based AES encryption/decryption and keyed hashing"""

from typing import Optional, Type
from types import TracebackType

import logging

from .exceptions import PasswordCipherClosedError
from .constants import (
    KEY_SIZE_BYTES,
    IV_SIZE_BYTES,
    BLOCK_SIZE_BYTES,
  )
from .util import (
    BytesLike,
    derive_key_material,
    sha256_hex,
    hmac_sha256_hex,
    hmac_sha3_256_hex,
    encrypt_bytes,
    decrypt_bytes,
    encrypt_text,
    decrypt_text,
    encrypt_bytes_random_iv,
    decrypt_bytes_random_iv,
    encrypt_text_random_iv,
    decrypt_text_random_iv,
    KEY_HASH_MODULE,
  )

logger = logging.getLogger(__name__)

class CipherManager:
  """An encrypter/decrypter and keyed hasher derived from a password and an optional salt

  Class CipherManager performs symmetric 256-bit AES encryption in CBC mode with PKCS#7
  padding, and computes HMAC-SHA256 and HMAC-SHA3-256 digests, all keyed by material that
  is derived exactly once, at construction time:

      key  = SHA256(utf8(password))
      salt = salt if provided, else hex(key[:16])
      iv   = SHA256(utf8(salt))[16:32]

  The same IV is used for every encryption performed by an instance, so encryption is
  deterministic: equal plaintexts always produce equal ciphertexts under the same
  password and salt. Existing ciphertext and stored digests depend on this, so it is the
  default behavior. Callers that do not need deterministic output can use the
  *_random_iv methods instead, which generate a fresh IV per call and prepend it to the
  ciphertext; the two formats are not interchangeable.

  Text ciphertext is standard (not URL-safe) padded base64. Digests are lowercase hex,
  64 characters. Empty text encrypts to, and decrypts from, an empty string.

  An instance only reads its key material after construction, so it may be shared between
  threads. It should be closed when no longer needed, which overwrites the key material
  with zeros; it is also a context manager:

      with CipherManager("my password") as cm:
          ciphertext = cm.encrypt_text("Paul is alive")

  For example:
      >>> cm = CipherManager("pw")
      >>> cm.decrypt_text(cm.encrypt_text("John is the Walrus"))
      'John is the Walrus'
      >>> CipherManager.sha256("abc")
      'ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad'
  """

  # ==========
  # The following parameters cannot be changed without breaking compatibility with existing ciphertext
  KEY_SIZE_BYTES = KEY_SIZE_BYTES
  """Number of bytes in the derived symmetric AES encryption key"""

  IV_SIZE_BYTES = IV_SIZE_BYTES
  """Number of bytes in the derived CBC initialization vector"""

  BLOCK_SIZE_BYTES = BLOCK_SIZE_BYTES
  """AES block size; ciphertext is always a multiple of this length"""

  KEY_HASH_MODULE = KEY_HASH_MODULE
  """Type of hash used to generate the AES key from the password and the IV from the salt"""

  # ===========

  _key: bytearray
  """AES 256-bit symmetric key deterministically derived from the password; also the HMAC key"""

  _iv: bytearray
  """128-bit CBC initialization vector deterministically derived from the salt"""

  _salt: str
  """The salt used to derive the IV; either provided by the caller or derived from the key"""

  _closed: bool = False

  def __init__(self, password: str, salt: Optional[str]=None):
    """Create a password-based encrypter/decrypter.

    Args:
        password (str):       The password to be used for encryption/decryption and keyed hashing.
                              Must be a non-empty string.
        salt (Optional[str], optional):
                              An arbitrary string used to derive the IV. The same salt must be
                              provided to decrypt ciphertext produced with it. If None, the salt
                              is the lowercase hex of the first 16 bytes of the key. Defaults to None.

    Raises:
        PasswordCipherInvalidArgumentError: The password is empty or missing
    """
    key, iv, used_salt = derive_key_material(password, salt)
    self._key = bytearray(key)
    self._iv = bytearray(iv)
    self._salt = used_salt
    logger.debug("Created CipherManager (salt %s)", "provided" if not salt is None else "derived from key")

  def _check_open(self) -> None:
    if self._closed:
      raise PasswordCipherClosedError("CipherManager has been closed")

  @property
  def key(self) -> bytes:
    """The 256-bit AES key derived from the password"""
    self._check_open()
    return bytes(self._key)

  @property
  def iv(self) -> bytes:
    """The 128-bit initialization vector derived from the salt"""
    self._check_open()
    return bytes(self._iv)

  @property
  def salt(self) -> str:
    """The salt string used to derive the IV"""
    self._check_open()
    return self._salt

  @property
  def closed(self) -> bool:
    """True if close() has been called"""
    return self._closed

  def close(self) -> None:
    """Overwrite the key material with zeros and disable further use.

    Calling close() more than once has no effect.
    """
    if not self._closed:
      self._closed = True
      for buf in (self._key, self._iv):
        buf[:] = bytes(len(buf))
      self._salt = ''
      logger.debug("Closed CipherManager")

  def __enter__(self) -> 'CipherManager':
    self._check_open()
    return self

  def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
      ) -> None:
    self.close()

  def __repr__(self) -> str:
    return f"<CipherManager{' closed' if self._closed else ''}>"

  def encrypt_bytes(self, plaintext: BytesLike) -> bytes:
    """Encrypt binary data with the fixed key and IV.

    Args:
        plaintext (BytesLike): The data to be encrypted.

    Returns:
        bytes: The ciphertext; its length is len(plaintext) rounded up to the next
               multiple of 16 (16 bytes for empty input).
    """
    self._check_open()
    return encrypt_bytes(plaintext, self._key, self._iv)

  def decrypt_bytes(self, ciphertext: BytesLike) -> bytes:
    """Decrypt binary data previously encrypted with encrypt_bytes().

    Raises:
        PasswordCipherDecryptionError: The ciphertext length is not a multiple of 16, or
                                       the padding is invalid
    """
    self._check_open()
    return decrypt_bytes(ciphertext, self._key, self._iv)

  def encrypt_text(self, plaintext: str) -> str:
    """Encrypt a string into standard base64 ciphertext.

    Args:
        plaintext (str): The text to be encrypted. It is encoded as UTF-8.

    Returns:
        str: base64(aes_cbc_encrypt(plaintext.encode('utf-8'))), or '' if plaintext is ''
    """
    self._check_open()
    return encrypt_text(plaintext, self._key, self._iv)

  def decrypt_text(self, ciphertext: str) -> str:
    """Decrypt base64 ciphertext produced by encrypt_text().

    Args:
        ciphertext (str): Standard base64 ciphertext, or ''.

    Raises:
        PasswordCipherDecryptionError: The ciphertext is not valid base64, is not a multiple
                                       of the block size, has invalid padding, or does not
                                       decrypt to valid UTF-8

    Returns:
        str: The original plaintext, or '' if ciphertext is ''
    """
    self._check_open()
    return decrypt_text(ciphertext, self._key, self._iv)

  def encrypt_bytes_random_iv(self, plaintext: BytesLike, iv: Optional[BytesLike]=None) -> bytes:
    """Encrypt binary data with the fixed key and a fresh random IV, prepended to the ciphertext.

    The derived IV is not used. The output cannot be decrypted with decrypt_bytes().
    """
    self._check_open()
    return encrypt_bytes_random_iv(plaintext, self._key, iv=iv)

  def decrypt_bytes_random_iv(self, data: BytesLike) -> bytes:
    """Decrypt data produced by encrypt_bytes_random_iv()"""
    self._check_open()
    return decrypt_bytes_random_iv(data, self._key)

  def encrypt_text_random_iv(self, plaintext: str, iv: Optional[BytesLike]=None) -> str:
    """Encrypt a string with a fresh random IV; returns base64 of the IV followed by the ciphertext"""
    self._check_open()
    return encrypt_text_random_iv(plaintext, self._key, iv=iv)

  def decrypt_text_random_iv(self, ciphertext: str) -> str:
    """Decrypt base64 ciphertext produced by encrypt_text_random_iv()"""
    self._check_open()
    return decrypt_text_random_iv(ciphertext, self._key)

  def hmac_sha256(self, text: str) -> str:
    """Compute HMAC-SHA256 of a string, keyed with the derived AES key.

    Returns:
        str: 64 lowercase hex characters
    """
    self._check_open()
    return hmac_sha256_hex(self._key, text)

  def hmac_sha3_256(self, text: str) -> str:
    """Compute HMAC-SHA3-256 of a string, keyed with the derived AES key.

    Returns:
        str: 64 lowercase hex characters
    """
    self._check_open()
    return hmac_sha3_256_hex(self._key, text)

  @staticmethod
  def sha256(text: str) -> str:
    """Compute an unkeyed SHA-256 digest of a string. Does not depend on any instance.

    Returns:
        str: 64 lowercase hex characters
    """
    return sha256_hex(text)
