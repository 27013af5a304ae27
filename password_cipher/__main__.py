#!/usr/bin/env python3
#
# Copyright (c) 2022 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Command-line interface for password_cipher package"""


from typing import Optional, Sequence, Union, Dict, TextIO, cast

import os
import sys
import argparse
import json
import logging
import yaml
from base64 import b64encode, b64decode
import colorama # type: ignore[import]
from colorama import Fore, Style
from pygments import highlight, lexers, formatters

# NOTE: this module runs with -m; do not use relative imports
from password_cipher import (
    CipherManager,
    Jsonable,
    PasswordCipherError,
    PasswordCipherDecryptionError,
    PasswordCipherInvalidArgumentError,
    random_text,
    uid,
    default_guid,
    __version__ as pkg_version,
  )

logger = logging.getLogger(__name__)

PASSWORD_ENV_VAR = 'PASSWORD_CIPHER_PASSWORD'
SALT_ENV_VAR = 'PASSWORD_CIPHER_SALT'

def is_colorizable(stream: TextIO) -> bool:
  is_a_tty = hasattr(stream, 'isatty') and stream.isatty()
  return is_a_tty

class CmdExitError(RuntimeError):
  exit_code: int

  def __init__(self, exit_code: int, msg: Optional[str]=None):
    if msg is None:
      msg = f"Command exited with return code {exit_code}"
    super().__init__(msg)
    self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
  pass

class NoExitArgumentParser(argparse.ArgumentParser):
  def exit(self, status=0, message=None):
    if message:
      self._print_message(message, sys.stderr)
    raise ArgparseExitError(status, message)

class CommandHandler:
  _argv: Optional[Sequence[str]]
  _parser: argparse.ArgumentParser
  _args: argparse.Namespace
  _password: Optional[str] = None
  _raw_stdout: TextIO = sys.stdout
  _raw_stderr: TextIO = sys.stderr
  _colorize_stdout: bool = False
  _colorize_stderr: bool = False
  _compact: bool = False
  _raw: bool = False
  _encoding: str
  _output_file: Optional[str] = None
  _cipher: Optional[CipherManager] = None
  _salt: Optional[str] = None
  _have_salt: bool = False

  def __init__(self, argv: Optional[Sequence[str]]=None):
    self._argv = argv

  def ecolor(self, codes: str) -> str:
    return codes if self._colorize_stderr else ""

  def pretty_print(
        self,
        any_value: Union[Jsonable, bytes],
        compact: Optional[bool]=None,
        colorize: Optional[bool]=None,
        raw: Optional[bool]=None,
      ):
    if raw is None:
      raw = self._raw
    raw = raw or isinstance(any_value, (bytes, bytearray))
    output_file = self._output_file
    if raw:
      if isinstance(any_value, str):
        if output_file is None:
          self._raw_stdout.write(any_value)
        else:
          with open(output_file, "w", encoding=self._encoding) as f:
            f.write(any_value)
        return
      if isinstance(any_value, (bytes, bytearray)):
        if output_file is None:
          self._raw_stdout.flush()
          with os.fdopen(self._raw_stdout.fileno(), "wb", closefd=False) as bin_stdout:
            bin_stdout.write(any_value)
            bin_stdout.flush()
        else:
          with open(output_file, "wb") as f:
            f.write(any_value)
        return
    value = cast(Jsonable, any_value)

    if compact is None:
      compact = self._compact
    if colorize is None:
      colorize = True

    def emit_to(f: TextIO):
      final_colorize = colorize and ((f is sys.stdout and self._colorize_stdout) or (f is sys.stderr and self._colorize_stderr))

      if compact:
        json_text = json.dumps(value, separators=(',', ':'), sort_keys=True)
      else:
        json_text = json.dumps(value, indent=2, sort_keys=True)
      if final_colorize:
        json_text = highlight(json_text, lexers.JsonLexer(), formatters.TerminalFormatter())  # pylint: disable=no-member
      else:
        json_text += '\n'
      f.write(json_text)

    if output_file is None:
      emit_to(sys.stdout)
    else:
      with open(output_file, "w", encoding=self._encoding) as f:
        emit_to(f)

  def write_text_output(self, text: str) -> None:
    output_file = self._output_file
    if output_file is None:
      sys.stdout.write(text)
    else:
      with open(output_file, 'w', encoding='utf-8') as f:
        f.write(text)

  def get_password(self) -> str:
    if self._password is None:
      password: str = self._args.password or ''
      if password == '':
        password = os.environ.get(PASSWORD_ENV_VAR, '')
        if password == '':
          raise PasswordCipherInvalidArgumentError(f'A password must be provided with --password or in environment variable {PASSWORD_ENV_VAR}')
      self._password = password

    return self._password

  def get_salt(self) -> Optional[str]:
    if not self._have_salt:
      salt: Optional[str] = self._args.salt
      config_file: Optional[str] = self._args.config_file
      if salt is None and not config_file is None:
        with open(config_file, encoding='utf-8') as f:
          config_obj = yaml.safe_load(f)
        if config_obj is None:
          config_obj = {}
        if not isinstance(config_obj, dict):
          raise PasswordCipherError(f"Config file {config_file} must contain a YAML mapping")
        config_salt = config_obj.get('salt', None)
        if not config_salt is None:
          if not isinstance(config_salt, str):
            raise PasswordCipherError(f"'salt' property in config file {config_file} must be a string")
          logger.debug("Using salt from config file %s", config_file)
          salt = config_salt
      if salt is None:
        env_salt = os.environ.get(SALT_ENV_VAR, '')
        if env_salt != '':
          logger.debug("Using salt from environment variable %s", SALT_ENV_VAR)
          salt = env_salt
      self._salt = salt
      self._have_salt = True
    return self._salt

  def get_cipher(self) -> CipherManager:
    if self._cipher is None:
      password = self.get_password()
      salt = self.get_salt()
      self._cipher = CipherManager(password, salt=salt)

    return self._cipher

  def close_cipher(self) -> None:
    if not self._cipher is None:
      self._cipher.close()
      self._cipher = None

  def get_input_text(self, value: Optional[str], name: str='value') -> str:
    args = self._args
    use_stdin: bool = args.use_stdin
    input_file: Optional[str] = args.input_file
    if use_stdin:
      if input_file is None:
        input_file = '/dev/stdin'
      else:
        raise PasswordCipherError("Only one of --stdin and --input can be provided")
    if value is None:
      if input_file is None:
        raise PasswordCipherError(f"One of {name} parameter, --stdin, or --input must be provided")
      with open(input_file, 'rb') as f:
        value = f.read().decode(self._encoding)
    else:
      if not input_file is None:
        raise PasswordCipherError(f"Only one of {name} parameter, --stdin, and --input can be provided")
    return value

  def get_input_bytes(self, value: Optional[str]) -> bytes:
    args = self._args
    input_file: Optional[str] = args.input_file
    if args.use_stdin:
      if input_file is None:
        input_file = '/dev/stdin'
      else:
        raise PasswordCipherError("Only one of --stdin and --input can be provided")
    if value is None:
      if input_file is None:
        raise PasswordCipherError("One of value parameter, --stdin, or --input must be provided")
      with open(input_file, 'rb') as f:
        return f.read()
    if not input_file is None:
      raise PasswordCipherError("Only one of value parameter, --stdin, and --input can be provided")
    return value.encode(self._encoding)

  def cmd_bare(self) -> int:
    print("A command is required", file=sys.stderr)
    return 1

  def cmd_version(self) -> int:
    self.pretty_print(pkg_version)
    return 0

  def cmd_derive(self) -> int:
    args = self._args
    cipher = self.get_cipher()
    result: Dict[str, str] = dict(salt=cipher.salt, iv=cipher.iv.hex())
    if args.show_key:
      result['key'] = cipher.key.hex()
    self.pretty_print(cast(Jsonable, result))
    return 0

  def cmd_encrypt(self) -> int:
    args = self._args
    binary: bool = args.binary
    random_iv: bool = args.random_iv
    cipher = self.get_cipher()
    ciphertext: str
    if binary:
      data = self.get_input_bytes(args.value)
      if random_iv:
        encrypted = cipher.encrypt_bytes_random_iv(data)
      else:
        encrypted = cipher.encrypt_bytes(data)
      ciphertext = b64encode(encrypted).decode('utf-8')
    else:
      plaintext = self.get_input_text(args.value)
      if random_iv:
        ciphertext = cipher.encrypt_text_random_iv(plaintext)
      else:
        ciphertext = cipher.encrypt_text(plaintext)
    self.write_text_output(ciphertext)
    return 0

  def cmd_decrypt(self) -> int:
    args = self._args
    binary: bool = args.binary
    random_iv: bool = args.random_iv
    ciphertext = self.get_input_text(args.ciphertext, name='ciphertext').strip()
    cipher = self.get_cipher()
    value: Union[bytes, str]
    if binary:
      try:
        encrypted = b64decode(ciphertext, validate=True)
      except ValueError as e:
        raise PasswordCipherDecryptionError("Badly formed ciphertext value: not valid base64") from e
      if random_iv:
        value = cipher.decrypt_bytes_random_iv(encrypted)
      else:
        value = cipher.decrypt_bytes(encrypted)
    else:
      if random_iv:
        value = cipher.decrypt_text_random_iv(ciphertext)
      else:
        value = cipher.decrypt_text(ciphertext)
    self.pretty_print(value)
    return 0

  def cmd_hmac_sha256(self) -> int:
    text = self.get_input_text(self._args.text, name='text')
    self.pretty_print(self.get_cipher().hmac_sha256(text))
    return 0

  def cmd_hmac_sha3_256(self) -> int:
    text = self.get_input_text(self._args.text, name='text')
    self.pretty_print(self.get_cipher().hmac_sha3_256(text))
    return 0

  def cmd_sha256(self) -> int:
    text = self.get_input_text(self._args.text, name='text')
    self.pretty_print(CipherManager.sha256(text))
    return 0

  def cmd_random_text(self) -> int:
    args = self._args
    self.pretty_print(random_text(args.length, include_special_characters=args.special))
    return 0

  def cmd_uid(self) -> int:
    self.pretty_print(uid())
    return 0

  def cmd_guid(self) -> int:
    self.pretty_print(default_guid(include_special_characters=not self._args.no_hyphens))
    return 0

  def add_input_arguments(self, parser: argparse.ArgumentParser, positional: str, help_text: str) -> None:
    parser.add_argument('--stdin', dest="use_stdin", action='store_true', default=False,
                        help=f'Read the {positional} from stdin instead of the commandline')
    parser.add_argument('-i', '--input', dest="input_file", default=None,
                        help=f'Read the {positional} from the specified file instead of the commandline')
    parser.add_argument(positional,
                        nargs='?',
                        default=None,
                        help=help_text)

  def run(self) -> int:
    """Run the password-cipher command-line tool with provided arguments

    Args:
        argv (Optional[Sequence[str]], optional):
            A list of commandline arguments (NOT including the program as argv[0]!),
            or None to use sys.argv[1:]. Defaults to None.

    Returns:
        int: The exit code that would be returned if this were run as a standalone command.
    """
    parser = NoExitArgumentParser(description="Encrypt, decrypt, and hash values with a password-derived key.")


    # ======================= Main command

    self._parser = parser
    parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                        help='Display detailed exception information')
    parser.add_argument('-M', '--monochrome', action='store_true', default=False,
                        help='Output to stdout/stderr in monochrome. Default is to colorize if stream is a compatible terminal')
    parser.add_argument('-c', '--compact', action='store_true', default=False,
                        help='Compact instead of pretty-printed output')
    parser.add_argument('-r', '--raw', action='store_true', default=False,
                        help='''Output raw strings and binary content directly, not json-encoded.
                                Values embedded in structured results are not affected.''')
    parser.add_argument('-o', '--output', dest="output_file", default=None,
                        help='Write output value to the specified file instead of stdout')
    parser.add_argument('--text-encoding', default='utf-8',
                        help='The encoding used for text input and output files. Default is utf-8')
    parser.add_argument('--log-level', default='warning',
                        choices=['debug', 'info', 'warning', 'error', 'critical'],
                        help='Level of log messages written to stderr. Default is warning')
    parser.add_argument('-p', '--password', default=None,
                        help=f'''The password to be used for encryption/decryption and keyed hashing. By default,
                                environment variable {PASSWORD_ENV_VAR} is used''')
    parser.add_argument('--salt', default=None,
                        help=f'''The salt string used to derive the initialization vector. By default, the "salt"
                                property of --config-file is used, then environment variable {SALT_ENV_VAR}, and
                                finally a salt derived from the password''')
    parser.add_argument('--config-file', '-C', default=None,
                        help='''A YAML document whose top level dict may have a "salt" string property. The
                                password is never read from this file.''')
    parser.set_defaults(func=self.cmd_bare)

    subparsers = parser.add_subparsers(
                        title='Commands',
                        description='Valid commands',
                        help='Additional help available with "<command-name> -h"')


    # ======================= version

    parser_version = subparsers.add_parser('version',
                            description='''Display version information. JSON-quoted string. If a raw string is desired, use -r.''')
    parser_version.set_defaults(func=self.cmd_version)

    # ======================= derive

    parser_derive = subparsers.add_parser('derive',
                            description='Display the salt and hex initialization vector derived from the password and salt')
    parser_derive.add_argument('--show-key', action='store_true', default=False,
                        help='Also display the hex AES key. The key is as sensitive as the password.')
    parser_derive.set_defaults(func=self.cmd_derive)

    # ======================= encrypt

    parser_encrypt = subparsers.add_parser('encrypt', description="Encrypt a value; the output is base64 ciphertext")
    parser_encrypt.add_argument('--binary', '-b', action='store_true', default=False,
                        help='Encrypt the input as raw bytes rather than as text.')
    parser_encrypt.add_argument('--random-iv', action='store_true', default=False,
                        help='''Use a fresh random IV, prepended to the ciphertext, instead of the IV derived from the
                                salt. Such ciphertext must be decrypted with --random-iv.''')
    self.add_input_arguments(parser_encrypt, 'value',
                        """The value to be encrypted. Omit this parameter if --input or --stdin is provided.""")
    parser_encrypt.set_defaults(func=self.cmd_encrypt)

    # ======================= decrypt

    parser_decrypt = subparsers.add_parser('decrypt', description="Get the plaintext value associated with base64 ciphertext")
    parser_decrypt.add_argument('--binary', '-b', action='store_true', default=False,
                        help='Output the decrypted raw bytes rather than text.')
    parser_decrypt.add_argument('--random-iv', action='store_true', default=False,
                        help='The ciphertext was produced with encrypt --random-iv.')
    self.add_input_arguments(parser_decrypt, 'ciphertext',
                        """The base64 ciphertext to be decrypted. Omit this parameter if --input or --stdin is provided.""")
    parser_decrypt.set_defaults(func=self.cmd_decrypt)

    # ======================= hmac-sha256

    parser_hmac_sha256 = subparsers.add_parser('hmac-sha256', description="Compute the HMAC-SHA256 of text, keyed by the password")
    self.add_input_arguments(parser_hmac_sha256, 'text', "The text to be hashed.")
    parser_hmac_sha256.set_defaults(func=self.cmd_hmac_sha256)

    # ======================= hmac-sha3-256

    parser_hmac_sha3_256 = subparsers.add_parser('hmac-sha3-256', description="Compute the HMAC-SHA3-256 of text, keyed by the password")
    self.add_input_arguments(parser_hmac_sha3_256, 'text', "The text to be hashed.")
    parser_hmac_sha3_256.set_defaults(func=self.cmd_hmac_sha3_256)

    # ======================= sha256

    parser_sha256 = subparsers.add_parser('sha256', description="Compute the unkeyed SHA-256 of text. No password is needed.")
    self.add_input_arguments(parser_sha256, 'text', "The text to be hashed.")
    parser_sha256.set_defaults(func=self.cmd_sha256)

    # ======================= random-text

    parser_random_text = subparsers.add_parser('random-text', description="Generate cryptographically random text")
    parser_random_text.add_argument('--special', action='store_true', default=False,
                        help='Include the characters "!@#$%%^&*" in addition to letters and digits')
    parser_random_text.add_argument('length', type=int, help='The number of characters to generate')
    parser_random_text.set_defaults(func=self.cmd_random_text)

    # ======================= uid

    parser_uid = subparsers.add_parser('uid', description='Generate an identifier of the form "XXX-XXXXX-XXXXX-XXXX"')
    parser_uid.set_defaults(func=self.cmd_uid)

    # ======================= guid

    parser_guid = subparsers.add_parser('guid', description="Generate a random GUID")
    parser_guid.add_argument('--no-hyphens', action='store_true', default=False,
                        help='Output 32 hex digits without hyphens')
    parser_guid.set_defaults(func=self.cmd_guid)

    # =========================================================

    try:
      args = parser.parse_args(self._argv)
    except ArgparseExitError as ex:
      return ex.exit_code
    traceback: bool = args.traceback
    try:
      self._args = args
      self._raw_stdout = sys.stdout
      self._raw_stderr = sys.stderr
      self._raw = args.raw
      self._compact = args.compact
      self._output_file = args.output_file
      self._encoding = args.text_encoding
      logging.basicConfig(
          level=getattr(logging, args.log_level.upper()),
          format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
          stream=sys.stderr,
        )
      monochrome: bool = args.monochrome
      if not monochrome:
        self._colorize_stdout = is_colorizable(sys.stdout)
        self._colorize_stderr = is_colorizable(sys.stderr)
        if self._colorize_stdout or self._colorize_stderr:
          colorama.init(wrap=False)
          if self._colorize_stdout:
            new_stream = colorama.AnsiToWin32(sys.stdout)
            if new_stream.should_wrap():
              sys.stdout = new_stream
          if self._colorize_stderr:
            new_stream = colorama.AnsiToWin32(sys.stderr)
            if new_stream.should_wrap():
              sys.stderr = new_stream
      try:
        rc = args.func()
      finally:
        self.close_cipher()
    except Exception as ex:
      if isinstance(ex, CmdExitError):
        rc = ex.exit_code
      else:
        rc = 1
      if rc != 0:
        if traceback:
          raise

        print(f"{self.ecolor(Fore.RED)}password-cipher: error: {ex}{self.ecolor(Style.RESET_ALL)}", file=sys.stderr)
    return rc

def run(argv: Optional[Sequence[str]]=None) -> int:
  try:
    rc = CommandHandler(argv).run()
  except CmdExitError as ex:
    rc = ex.exit_code
  return rc

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
  sys.exit(run())
