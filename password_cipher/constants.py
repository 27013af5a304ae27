#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants defined by this package"""

KEY_SIZE_BITS = 256
"""Size of symmetric AES encryption key in bits"""

KEY_SIZE_BYTES = KEY_SIZE_BITS // 8
"""Size of symmetric AES encryption key in bytes. Equal to the SHA-256 digest size, since the key is a password digest"""

BLOCK_SIZE_BYTES = 16
"""AES block size. Ciphertext lengths are always a multiple of this"""

IV_SIZE_BYTES = BLOCK_SIZE_BYTES
"""Size of the CBC initialization vector; the upper half of the SHA-256 digest of the salt"""

DEFAULT_SALT_KEY_BYTES = 16
"""Number of leading key bytes that are hex-encoded to form the salt when none is provided"""

TEXT_ENCODING = 'utf-8'
"""Encoding used for every string-to-bytes conversion (hashing, HMAC, and text encryption)"""

DIGEST_HEX_LENGTH = 64
"""Length of the lowercase hex representation of a 256-bit digest"""
