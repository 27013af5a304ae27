#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

class PasswordCipherError(Exception):
  """Base class for all error exceptions defined by this package."""
  #pass

class PasswordCipherInvalidArgumentError(PasswordCipherError, ValueError):
  """Exception indicating failure because an argument was missing or invalid (e.g., an empty password)."""
  #pass

class PasswordCipherDecryptionError(PasswordCipherError):
  """Exception indicating that ciphertext is malformed, has bad padding, or does not decode to valid text."""
  #pass

class PasswordCipherUnexpectedError(PasswordCipherError):
  """Exception indicating an unclassified failure in an underlying cipher or hash primitive."""
  #pass

class PasswordCipherClosedError(PasswordCipherError):
  """Exception indicating that a CipherManager was used after it was closed."""
  #pass
