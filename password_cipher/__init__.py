#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package password_cipher provides a command-line tool as well as a runtime API for deterministic password-based
AES encryption and decryption of bytes and strings, and for keyed (HMAC) and unkeyed digests of strings.
"""

from .version import __version__

from .constants import (
    KEY_SIZE_BITS,
    KEY_SIZE_BYTES,
    IV_SIZE_BYTES,
    BLOCK_SIZE_BYTES,
    DEFAULT_SALT_KEY_BYTES,
    TEXT_ENCODING,
    DIGEST_HEX_LENGTH,
  )

from .util import (
    derive_key_material,
    generate_iv,
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
  )

from .cipher_manager import CipherManager
from .generator import random_text, uid, default_guid
from .internal_types import Jsonable
from .exceptions import (
    PasswordCipherError,
    PasswordCipherInvalidArgumentError,
    PasswordCipherDecryptionError,
    PasswordCipherUnexpectedError,
    PasswordCipherClosedError,
  )
