#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Random text, unique identifiers, and GUIDs"""

import uuid

from Cryptodome.Random import random

from .exceptions import PasswordCipherInvalidArgumentError

ALPHANUMERIC_CHARACTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
"""Characters used by random_text()"""

SPECIAL_CHARACTERS = "!@#$%^&*"
"""Additional characters used by random_text() when special characters are requested"""

UID_GROUP_LENGTHS = (3, 5, 5, 4)
"""Lengths of the hyphen-separated groups in a uid()"""

def random_text(length: int, include_special_characters: bool=False) -> str:
  """Generate a cryptographically random string.

  Args:
      length (int): The number of characters to generate.
      include_special_characters (bool, optional):
                    If True, characters from "!@#$%^&*" may appear in addition to
                    letters and digits. Defaults to False.

  Raises:
      PasswordCipherInvalidArgumentError: length is negative

  Returns:
      str: A random string of the requested length
  """
  if length < 0:
    raise PasswordCipherInvalidArgumentError(f"Random text length must not be negative, got {length}")
  alphabet = ALPHANUMERIC_CHARACTERS
  if include_special_characters:
    alphabet += SPECIAL_CHARACTERS
  return ''.join(random.choice(alphabet) for _ in range(length))

def uid() -> str:
  """Generate an upper-case identifier of the form "XXX-XXXXX-XXXXX-XXXX"."""
  return '-'.join(random_text(n) for n in UID_GROUP_LENGTHS).upper()

def default_guid(include_special_characters: bool=True) -> str:
  """Generate a random (version 4) GUID.

  Args:
      include_special_characters (bool, optional):
                    If True, the GUID is in hyphenated 8-4-4-4-12 form; otherwise it
                    is 32 hex digits with no hyphens. Defaults to True.
  """
  guid = uuid.uuid4()
  return str(guid) if include_special_characters else guid.hex
