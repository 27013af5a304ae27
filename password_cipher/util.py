#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Password-derived key material, AES-256 CBC encryption/decryption, and HMAC/SHA digests"""

from typing import Optional, Tuple, Union
from types import ModuleType

from Cryptodome.Hash import SHA256, SHA3_256, HMAC
from Cryptodome.Cipher import AES
from Cryptodome.Util.Padding import pad, unpad
from Cryptodome.Random import get_random_bytes
from base64 import b64encode, b64decode

from .exceptions import (
    PasswordCipherInvalidArgumentError,
    PasswordCipherDecryptionError,
    PasswordCipherUnexpectedError,
  )

from .constants import (
    KEY_SIZE_BYTES,
    IV_SIZE_BYTES,
    BLOCK_SIZE_BYTES,
    DEFAULT_SALT_KEY_BYTES,
    TEXT_ENCODING,
  )

BytesLike = Union[bytes, bytearray, memoryview]

KEY_HASH_MODULE: ModuleType = SHA256
"""Type of hash used to generate the AES key from the password, and the IV from the salt"""

def _check_key_and_iv(key: BytesLike, iv: Optional[BytesLike]=None) -> None:
  if len(key) != KEY_SIZE_BYTES:
    raise PasswordCipherInvalidArgumentError(f"Wrong key size for AES-256, expected {KEY_SIZE_BYTES} bytes, got {len(key)}")
  if not iv is None and len(iv) != IV_SIZE_BYTES:
    raise PasswordCipherInvalidArgumentError(f"Wrong IV size for AES-CBC, expected {IV_SIZE_BYTES} bytes, got {len(iv)}")

def _check_bytes(data: BytesLike, name: str) -> None:
  if not isinstance(data, (bytes, bytearray, memoryview)):
    raise PasswordCipherInvalidArgumentError(f"{name} must be bytes, got {type(data).__name__}")

def _encode_text(text: str, name: str='Text') -> bytes:
  if not isinstance(text, str):
    raise PasswordCipherInvalidArgumentError(f"{name} must be a string, got {type(text).__name__}")
  try:
    return text.encode(TEXT_ENCODING)
  except UnicodeEncodeError as e:
    raise PasswordCipherInvalidArgumentError(f"{name} cannot be encoded as {TEXT_ENCODING}") from e

def generate_iv() -> bytes:
  """Generate a cryptographically random 16-byte initialization vector.

  Returns:
      bytes: a cryptographically random 128-bit (16-byte) IV
  """
  return get_random_bytes(IV_SIZE_BYTES)

def derive_key_material(password: str, salt: Optional[str]=None) -> Tuple[bytes, bytes, str]:
  """Deterministically derive an AES-256 key and a CBC IV from a password and an optional salt.

  The key is SHA-256(password). If no salt is provided, the salt is the lowercase hex
  representation of the first 16 bytes of the key. The IV is the last 16 bytes of
  SHA-256(salt). All strings are encoded as UTF-8 before hashing.

  There is no randomness and no work factor; the same (password, salt) pair always
  yields the same key and IV.

  Args:
      password (str):       The password to derive the key from. Must be non-empty.
      salt (Optional[str], optional):
                            An arbitrary string used to derive the IV. An empty string is a
                            valid salt; only None selects the key-derived default. Defaults to None.

  Raises:
      PasswordCipherInvalidArgumentError: The password is empty or not a string
      PasswordCipherInvalidArgumentError: The salt is not a string

  Returns:
      Tuple[bytes, bytes, str]: The 32-byte key, the 16-byte IV, and the salt that was used
  """
  if password is None or password == '':
    raise PasswordCipherInvalidArgumentError("A non-empty password is required")
  key = KEY_HASH_MODULE.new(_encode_text(password, 'Password')).digest()
  if salt is None:
    salt = key[:DEFAULT_SALT_KEY_BYTES].hex()
  iv = KEY_HASH_MODULE.new(_encode_text(salt, 'Salt')).digest()[-IV_SIZE_BYTES:]
  return key, iv, salt

def sha256_hex(text: str) -> str:
  """Compute an unkeyed SHA-256 digest of a string.

  Args:
      text (str): The text to hash. It is encoded as UTF-8.

  Returns:
      str: 64 lowercase hex characters
  """
  return SHA256.new(_encode_text(text)).hexdigest()

def _hmac_hex(key: BytesLike, text: str, digestmod: ModuleType) -> str:
  return HMAC.new(bytes(key), _encode_text(text), digestmod=digestmod).hexdigest()

def hmac_sha256_hex(key: BytesLike, text: str) -> str:
  """Compute HMAC-SHA256 of a string under a key.

  Args:
      key (BytesLike): The HMAC key
      text (str): The message. It is encoded as UTF-8.

  Returns:
      str: 64 lowercase hex characters
  """
  return _hmac_hex(key, text, SHA256)

def hmac_sha3_256_hex(key: BytesLike, text: str) -> str:
  """Compute HMAC-SHA3-256 of a string under a key.

  Args:
      key (BytesLike): The HMAC key
      text (str): The message. It is encoded as UTF-8.

  Returns:
      str: 64 lowercase hex characters
  """
  return _hmac_hex(key, text, SHA3_256)

def encrypt_bytes(plaintext: BytesLike, key: BytesLike, iv: BytesLike) -> bytes:
  """Encrypt binary data using AES-256 CBC mode with PKCS#7 padding.

  The result is deterministic: the same plaintext, key and IV always produce the
  same ciphertext. Its length is the plaintext length rounded up to the next
  multiple of 16 (an empty plaintext produces one block of padding).

  Args:
      plaintext (BytesLike): The data to be encrypted
      key (BytesLike): A 256-bit (32-byte) symmetric AES key
      iv (BytesLike): A 128-bit (16-byte) initialization vector

  Raises:
      PasswordCipherInvalidArgumentError: Wrong size key or IV
      PasswordCipherUnexpectedError: The cipher failed

  Returns:
      bytes: The ciphertext
  """
  _check_key_and_iv(key, iv)
  _check_bytes(plaintext, 'Plaintext')
  try:
    cipher = AES.new(bytes(key), AES.MODE_CBC, iv=bytes(iv))
    return cipher.encrypt(pad(bytes(plaintext), BLOCK_SIZE_BYTES, style='pkcs7'))
  except Exception as e:
    raise PasswordCipherUnexpectedError("AES encryption failed") from e

def decrypt_bytes(ciphertext: BytesLike, key: BytesLike, iv: BytesLike) -> bytes:
  """Decrypt binary data previously encrypted with encrypt_bytes()

  Args:
      ciphertext (BytesLike): The encrypted data
      key (BytesLike): A 256-bit (32-byte) symmetric AES key
      iv (BytesLike): The 128-bit (16-byte) initialization vector used for encryption

  Raises:
      PasswordCipherInvalidArgumentError: Wrong size key or IV
      PasswordCipherDecryptionError: Ciphertext length is not a positive multiple of 16
      PasswordCipherDecryptionError: Padding is invalid (typically the wrong key, IV, or corrupt data)
      PasswordCipherUnexpectedError: The cipher failed for some other reason

  Returns:
      bytes: The original plaintext
  """
  _check_key_and_iv(key, iv)
  _check_bytes(ciphertext, 'Ciphertext')
  n = len(ciphertext)
  if n == 0 or n % BLOCK_SIZE_BYTES != 0:
    raise PasswordCipherDecryptionError(f"Ciphertext length must be a positive multiple of {BLOCK_SIZE_BYTES} bytes, got {n}")
  try:
    cipher = AES.new(bytes(key), AES.MODE_CBC, iv=bytes(iv))
    padded = cipher.decrypt(bytes(ciphertext))
  except Exception as e:
    raise PasswordCipherUnexpectedError("AES decryption failed") from e
  try:
    plaintext = unpad(padded, BLOCK_SIZE_BYTES, style='pkcs7')
  except ValueError as e:
    raise PasswordCipherDecryptionError("Ciphertext cannot be decrypted with the given key: invalid padding") from e
  return plaintext

def encrypt_text(plaintext: str, key: BytesLike, iv: BytesLike) -> str:
  """Encrypt a string using AES-256 CBC mode, returning standard base64.

  The plaintext is encoded as UTF-8, encrypted with encrypt_bytes(), and the ciphertext
  is returned as padded, standard-alphabet base64. An empty plaintext is returned
  unchanged as an empty string without invoking the cipher.

  Args:
      plaintext (str): A plaintext string to be encrypted
      key (BytesLike): A 256-bit (32-byte) symmetric AES key
      iv (BytesLike): A 128-bit (16-byte) initialization vector

  Returns:
      str: The base64 ciphertext, or '' if plaintext is ''
  """
  if plaintext == '':
    return ''
  ciphertext = encrypt_bytes(_encode_text(plaintext, 'Plaintext'), key, iv)
  return b64encode(ciphertext).decode('ascii')

def _b64decode_strict(ciphertext: str) -> bytes:
  try:
    return b64decode(ciphertext, validate=True)
  except ValueError as e:
    raise PasswordCipherDecryptionError("Badly formed ciphertext value: not valid base64") from e

def _decode_text(data: bytes) -> str:
  try:
    return data.decode(TEXT_ENCODING)
  except UnicodeDecodeError as e:
    raise PasswordCipherDecryptionError("Decrypted data is not valid UTF-8 text") from e

def decrypt_text(ciphertext: str, key: BytesLike, iv: BytesLike) -> str:
  """Decrypt a base64 string previously encrypted with encrypt_text()

  Args:
      ciphertext (str): Standard base64 ciphertext. An empty string decrypts to an empty string.
      key (BytesLike): A 256-bit (32-byte) symmetric AES key
      iv (BytesLike): The 128-bit (16-byte) initialization vector used for encryption

  Raises:
      PasswordCipherDecryptionError: Invalid base64, bad ciphertext length or padding, or invalid UTF-8

  Returns:
      str: The original plaintext
  """
  if ciphertext == '':
    return ''
  data = _b64decode_strict(ciphertext)
  return _decode_text(decrypt_bytes(data, key, iv))

def encrypt_bytes_random_iv(plaintext: BytesLike, key: BytesLike, iv: Optional[BytesLike]=None) -> bytes:
  """Encrypt binary data using AES-256 CBC mode with a fresh IV, prepended to the result.

  Unlike encrypt_bytes(), equal plaintexts produce unrelated ciphertexts. The result
  has the form:

    iv (16 bytes) + aes_cbc_encrypt(pkcs7_pad(plaintext))

  Args:
      plaintext (BytesLike): The data to be encrypted
      key (BytesLike): A 256-bit (32-byte) symmetric AES key
      iv (Optional[BytesLike], optional): An optional IV, to force the use of a specific IV.
                                          If None, a random 16-byte IV will be generated. Defaults to None.

  Returns:
      bytes: The IV followed by the ciphertext
  """
  if iv is None:
    iv = generate_iv()
  return bytes(iv) + encrypt_bytes(plaintext, key, iv)

def decrypt_bytes_random_iv(data: BytesLike, key: BytesLike) -> bytes:
  """Decrypt binary data previously encrypted with encrypt_bytes_random_iv()

  Args:
      data (BytesLike): The IV followed by the ciphertext
      key (BytesLike): A 256-bit (32-byte) symmetric AES key

  Raises:
      PasswordCipherDecryptionError: The data is too short to contain an IV and a ciphertext block
      PasswordCipherDecryptionError: Bad ciphertext length or padding

  Returns:
      bytes: The original plaintext
  """
  _check_bytes(data, 'Ciphertext')
  if len(data) < IV_SIZE_BYTES + BLOCK_SIZE_BYTES:
    raise PasswordCipherDecryptionError(f"Ciphertext not long enough to include a {IV_SIZE_BYTES}-byte IV and one cipher block")
  data = bytes(data)
  return decrypt_bytes(data[IV_SIZE_BYTES:], key, data[:IV_SIZE_BYTES])

def encrypt_text_random_iv(plaintext: str, key: BytesLike, iv: Optional[BytesLike]=None) -> str:
  """Encrypt a string with a fresh IV, returning standard base64 of the IV followed by the ciphertext.

  An empty plaintext is returned unchanged as an empty string.
  """
  if plaintext == '':
    return ''
  data = encrypt_bytes_random_iv(_encode_text(plaintext, 'Plaintext'), key, iv=iv)
  return b64encode(data).decode('ascii')

def decrypt_text_random_iv(ciphertext: str, key: BytesLike) -> str:
  """Decrypt a string previously encrypted with encrypt_text_random_iv()"""
  if ciphertext == '':
    return ''
  data = _b64decode_strict(ciphertext)
  return _decode_text(decrypt_bytes_random_iv(data, key))
