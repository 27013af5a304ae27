#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Tests for random text and identifier generation"""

import re
import uuid

import pytest

from password_cipher import random_text, uid, default_guid, PasswordCipherInvalidArgumentError
from password_cipher.generator import ALPHANUMERIC_CHARACTERS, SPECIAL_CHARACTERS

@pytest.mark.parametrize("length", [0, 1, 16, 100])
def test_random_text_length(length):
  assert len(random_text(length)) == length

def test_random_text_alphabet():
  text = random_text(2000)
  assert set(text) <= set(ALPHANUMERIC_CHARACTERS)

def test_random_text_with_special_characters():
  text = random_text(2000, include_special_characters=True)
  assert set(text) <= set(ALPHANUMERIC_CHARACTERS + SPECIAL_CHARACTERS)
  assert set(text) & set(SPECIAL_CHARACTERS)

def test_random_text_rejects_negative_length():
  with pytest.raises(PasswordCipherInvalidArgumentError):
    random_text(-1)

def test_uid_format():
  for _ in range(20):
    assert re.fullmatch(r"[A-Z0-9]{3}-[A-Z0-9]{5}-[A-Z0-9]{5}-[A-Z0-9]{4}", uid())

def test_uids_are_unique():
  assert len({uid() for _ in range(100)}) == 100

def test_default_guid_with_hyphens():
  guid = default_guid()
  assert len(guid) == 36
  assert uuid.UUID(guid).version == 4

def test_default_guid_without_hyphens():
  guid = default_guid(include_special_characters=False)
  assert re.fullmatch(r"[0-9a-f]{32}", guid)
