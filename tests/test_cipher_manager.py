#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Tests for CipherManager"""

import hashlib
import hmac
from concurrent.futures import ThreadPoolExecutor

import pytest
from hypothesis import given, strategies as st

from password_cipher import (
    CipherManager,
    derive_key_material,
    PasswordCipherInvalidArgumentError,
    PasswordCipherDecryptionError,
    PasswordCipherClosedError,
  )

cm = CipherManager("pw")

def test_key_material_is_derived_from_password():
  key = hashlib.sha256(b"pw").digest()
  assert cm.key == key
  assert cm.salt == key[:16].hex()
  assert cm.iv == hashlib.sha256(cm.salt.encode('utf-8')).digest()[16:]

@given(st.text(min_size=1), st.one_of(st.none(), st.text()))
def test_same_inputs_give_same_key_material(password, salt):
  a = CipherManager(password, salt=salt)
  b = CipherManager(password, salt=salt)
  assert (a.key, a.iv) == (b.key, b.iv)

@pytest.mark.parametrize("password", ["", None])
def test_missing_password_fails_construction(password):
  with pytest.raises(PasswordCipherInvalidArgumentError):
    CipherManager(password)

@given(st.binary())
def test_bytes_round_trip(data):
  assert cm.decrypt_bytes(cm.encrypt_bytes(data)) == data

@given(st.text())
def test_text_round_trip(text):
  assert cm.decrypt_text(cm.encrypt_text(text)) == text

def test_empty_text_short_circuits():
  assert cm.encrypt_text("") == ""
  assert cm.decrypt_text("") == ""

def test_encryption_is_deterministic_per_instance():
  assert cm.encrypt_bytes(b"repeat me") == cm.encrypt_bytes(b"repeat me")
  assert cm.encrypt_text("repeat me") == cm.encrypt_text("repeat me")

def test_instances_with_same_password_interoperate():
  other = CipherManager("pw")
  assert other.decrypt_text(cm.encrypt_text("shared")) == "shared"

def test_salt_must_match_to_decrypt():
  salted = CipherManager("pw", salt="NaCl")
  ciphertext = salted.encrypt_bytes(b"sixteen byte msg" * 2)
  assert CipherManager("pw", salt="NaCl").decrypt_bytes(ciphertext) == b"sixteen byte msg" * 2
  # CBC with the wrong IV only garbles the first block
  wrong_iv_plaintext = cm.decrypt_bytes(ciphertext)
  assert wrong_iv_plaintext[:16] != b"sixteen byte msg"
  assert wrong_iv_plaintext[16:] == b"sixteen byte msg"
  assert cm.encrypt_bytes(b"x") != salted.encrypt_bytes(b"x")

def test_truncated_ciphertext_fails():
  ciphertext = cm.encrypt_bytes(b"some data to encrypt")
  with pytest.raises(PasswordCipherDecryptionError):
    cm.decrypt_bytes(ciphertext[:-3])

def test_invalid_text_ciphertext_fails():
  with pytest.raises(PasswordCipherDecryptionError):
    cm.decrypt_text("this is not base64")
  with pytest.raises(PasswordCipherDecryptionError):
    cm.decrypt_text("AAAAAAAAAAAAAAAAAAAA")

def test_hmac_sha256_matches_independent_computation():
  key = hashlib.sha256("pw".encode('utf-8')).digest()
  expected = hmac.new(key, "the text".encode('utf-8'), hashlib.sha256).hexdigest()
  assert cm.hmac_sha256("the text") == expected

def test_hmac_sha3_256_matches_independent_computation():
  key, _, _ = derive_key_material("pw")
  expected = hmac.new(key, "the text".encode('utf-8'), hashlib.sha3_256).hexdigest()
  assert cm.hmac_sha3_256("the text") == expected

def test_keyed_digests_depend_on_password():
  assert CipherManager("other").hmac_sha256("the text") != cm.hmac_sha256("the text")

def test_keyed_digests_do_not_depend_on_salt():
  assert CipherManager("pw", salt="NaCl").hmac_sha256("the text") == cm.hmac_sha256("the text")

def test_sha256_is_static():
  assert CipherManager.sha256("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
  assert cm.sha256("abc") == CipherManager.sha256("abc")

def test_random_iv_mode_is_separate_from_default():
  ciphertext = cm.encrypt_text_random_iv("hello")
  assert ciphertext != cm.encrypt_text_random_iv("hello")
  assert cm.decrypt_text_random_iv(ciphertext) == "hello"
  data = cm.encrypt_bytes_random_iv(b"hello")
  assert cm.decrypt_bytes_random_iv(data) == b"hello"
  assert cm.encrypt_bytes_random_iv(b"hello", iv=cm.iv) == cm.iv + cm.encrypt_bytes(b"hello")

def test_close_wipes_key_material():
  manager = CipherManager("secret")
  key_buffer = manager._key
  iv_buffer = manager._iv
  manager.close()
  assert manager.closed
  assert key_buffer == bytearray(32)
  assert iv_buffer == bytearray(16)
  manager.close()
  assert manager.closed

@pytest.mark.parametrize("operation", [
    lambda m: m.encrypt_bytes(b"x"),
    lambda m: m.decrypt_bytes(bytes(16)),
    lambda m: m.encrypt_text("x"),
    lambda m: m.decrypt_text("AAAAAAAAAAAAAAAAAAAAAA=="),
    lambda m: m.encrypt_bytes_random_iv(b"x"),
    lambda m: m.decrypt_text_random_iv("x"),
    lambda m: m.hmac_sha256("x"),
    lambda m: m.hmac_sha3_256("x"),
    lambda m: m.key,
    lambda m: m.iv,
    lambda m: m.salt,
  ])
def test_use_after_close_fails(operation):
  manager = CipherManager("secret")
  manager.close()
  with pytest.raises(PasswordCipherClosedError):
    operation(manager)

def test_static_digest_still_works_after_close():
  manager = CipherManager("secret")
  manager.close()
  assert manager.sha256("abc") == CipherManager.sha256("abc")

def test_context_manager_closes():
  with CipherManager("secret") as manager:
    assert manager.decrypt_text(manager.encrypt_text("scoped")) == "scoped"
  assert manager.closed

def test_context_manager_closes_on_error():
  with pytest.raises(RuntimeError):
    with CipherManager("secret") as manager:
      raise RuntimeError("boom")
  assert manager.closed

def test_closed_manager_cannot_be_entered():
  manager = CipherManager("secret")
  manager.close()
  with pytest.raises(PasswordCipherClosedError):
    with manager:
      pass

def test_repr_does_not_reveal_key_material():
  text = repr(cm)
  assert cm.key.hex() not in text
  assert cm.salt not in text
  assert "closed" not in text

def test_shared_instance_across_threads():
  expected = cm.encrypt_text("concurrent")
  def work(i: int) -> str:
    assert cm.decrypt_text(cm.encrypt_text(f"value {i}")) == f"value {i}"
    return cm.encrypt_text("concurrent")
  with ThreadPoolExecutor(max_workers=8) as executor:
    results = list(executor.map(work, range(64)))
  assert results == [expected] * 64
