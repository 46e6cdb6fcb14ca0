"""
EhViewer spider-info codec.

Reads and writes the per-gallery ``.ehviewer`` metadata file in both of the
encodings EhViewer has used over time: the legacy ``VERSION2`` line-oriented
text file and the compact CBOR map written by newer builds.

Usage:
    from spider_info import decode, encode_text, encode_binary

    with open("gallery/.ehviewer", "rb") as fh:
        info = decode(fh)          # format is sniffed from the first byte
    print(info.gid, info.pages, len(info.page_tokens))

    data = encode_binary(info)     # or encode_text(info)
"""

from __future__ import annotations

import enum
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

import cbor2

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TEXT_HEADER = "VERSION2"
LEGACY_MODE = "1"
UINT64_MAX = 2**64 - 1

INFO_FILE_NAME = ".ehviewer"

# (attribute, CBOR key) for the scalar fields, in encoding order
_CBOR_FIELDS = (
  ("start_page", "startPage"),
  ("gid", "gid"),
  ("token", "token"),
  ("preview_pages", "previewPages"),
  ("preview_per_page", "previewPerPage"),
  ("pages", "pages"),
)
_CBOR_TOKEN_MAP = "pTokenMap"

_UINT_FIELDS = ("start_page", "gid", "preview_pages", "preview_per_page", "pages")

_DIGITS = {
  10: re.compile(r"[0-9]+"),
  16: re.compile(r"[0-9a-fA-F]+"),
}


class InfoFormat(enum.IntEnum):
  """On-disk encodings of the metadata file (values match ``--format``)."""
  TEXT = 1
  BINARY = 2


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class SpiderInfoError(Exception):
  """Base class for every codec failure."""


class UnrecognizedFormat(SpiderInfoError):
  """The first byte matches neither the text nor the binary marker."""


class InvalidFormat(SpiderInfoError):
  """The text file does not follow the ``VERSION2`` grammar."""

  def __init__(self, message: str, line: int | None = None) -> None:
    self.line = line
    if line is not None:
      message = f"line {line}: {message}"
    super().__init__(message)


class InvalidNumber(SpiderInfoError, ValueError):
  """An integer field is not valid unsigned 64-bit digits."""

  def __init__(self, field_name: str, text: str, line: int | None = None) -> None:
    self.field = field_name
    self.text = text
    self.line = line
    where = f" on line {line}" if line is not None else ""
    super().__init__(f"invalid number for {field_name}{where}: {text!r}")


class DecodeError(SpiderInfoError):
  """The binary payload is not a well-formed CBOR metadata map."""


# ---------------------------------------------------------------------------
# Dataclass
# ---------------------------------------------------------------------------

@dataclass
class SpiderInfo:
  """Download metadata for one gallery."""
  start_page: int = 0
  gid: int = 0
  token: str = ""
  preview_pages: int = 0
  preview_per_page: int = 0
  pages: int = 0
  page_tokens: dict[int, str] = field(default_factory=dict)

  @property
  def token_count(self) -> int:
    return len(self.page_tokens)

  def validate(self) -> None:
    """Raise if the record cannot be written in either encoding."""
    for name in _UINT_FIELDS:
      _check_uint(name, getattr(self, name))
    _check_text("token", self.token)
    if _has_line_break(self.token):
      raise InvalidFormat("token must not contain a line break")
    for index, token in self.page_tokens.items():
      _check_uint("page index", index)
      _check_text(f"page {index} token", token)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def parse_uint(text: str, base: int = 10) -> int:
  """Parse bare *base* digits into an unsigned 64-bit integer.

  Unlike ``int()``, signs, ``0x`` prefixes, underscores and surrounding
  whitespace are all rejected.
  """
  if not _DIGITS[base].fullmatch(text):
    raise ValueError(f"invalid base-{base} digits: {text!r}")
  value = int(text, base)
  if value > UINT64_MAX:
    raise ValueError(f"value out of range for uint64: {text!r}")
  return value


def _is_uint(value: object) -> bool:
  return type(value) is int and 0 <= value <= UINT64_MAX


def _check_uint(field_name: str, value: object) -> None:
  if not _is_uint(value):
    raise InvalidNumber(field_name, repr(value))


def _check_text(field_name: str, value: object) -> None:
  if not isinstance(value, str):
    raise InvalidFormat(f"{field_name} must be a string, got {type(value).__name__}")
  try:
    value.encode("utf-8")
  except UnicodeEncodeError as exc:
    raise InvalidFormat(f"{field_name} is not encodable as UTF-8") from exc


def _has_line_break(text: str) -> bool:
  return "\n" in text or "\r" in text


def _split_lines(text: str) -> list[str]:
  """Split on ``\\n`` the way a line scanner does.

  A final newline does not start another line and one trailing ``\\r`` is
  dropped from each line.
  """
  lines = text.split("\n")
  if lines[-1] == "":
    lines.pop()
  return [ln[:-1] if ln.endswith("\r") else ln for ln in lines]


class _LineReader:
  """Hands out the lines of a text file one grammar step at a time."""

  def __init__(self, lines: list[str]) -> None:
    self._lines = lines
    self.line = 0  # 1-based number of the line last returned

  def has_next(self) -> bool:
    return self.line < len(self._lines)

  def next(self, field_name: str) -> str:
    if not self.has_next():
      raise InvalidFormat(f"unexpected end of input, expected {field_name}", line=self.line + 1)
    self.line += 1
    return self._lines[self.line - 1]

  def next_uint(self, field_name: str, base: int = 10) -> int:
    return self.uint(field_name, self.next(field_name), base)

  def uint(self, field_name: str, text: str, base: int = 10) -> int:
    try:
      return parse_uint(text, base)
    except ValueError as exc:
      raise InvalidNumber(field_name, text, line=self.line) from exc


def _peek_byte(stream: BinaryIO) -> bytes:
  """Return the first unread byte of *stream* without consuming it."""
  seekable = getattr(stream, "seekable", None)
  if seekable is not None and seekable():
    pos = stream.tell()
    head = stream.read(1)
    stream.seek(pos)
    return head
  peek = getattr(stream, "peek", None)
  if peek is None:
    raise io.UnsupportedOperation("metadata stream must be seekable or support peek()")
  return peek(1)[:1]


def _cbor_uint(key: str, value: object) -> int:
  if not _is_uint(value):
    raise DecodeError(f"{key}: expected unsigned integer, got {value!r}")
  return value  # type: ignore[return-value]


def _cbor_str(key: str, value: object) -> str:
  if not isinstance(value, str):
    raise DecodeError(f"{key}: expected text string, got {type(value).__name__}")
  return value


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def detect_format(head: bytes) -> InfoFormat:
  """Classify a metadata file by its first byte."""
  if not head:
    raise UnrecognizedFormat("empty input")
  first = head[0]
  if first == ord("V"):
    return InfoFormat.TEXT
  # CBOR major type 5 (map)
  if first & 0xE0 == 0xA0:
    return InfoFormat.BINARY
  raise UnrecognizedFormat(f"unrecognized first byte 0x{first:02x}")


def decode_text(stream: BinaryIO) -> SpiderInfo:
  """Parse a ``VERSION2`` text metadata file."""
  data = stream.read()
  try:
    text = data.decode("utf-8")
  except UnicodeDecodeError as exc:
    raise InvalidFormat("text metadata is not valid UTF-8") from exc

  rd = _LineReader(_split_lines(text))
  if rd.next("header") != TEXT_HEADER:
    raise InvalidFormat(f"expected {TEXT_HEADER} header", line=rd.line)

  info = SpiderInfo()
  info.start_page = rd.next_uint("start_page", 16)
  info.gid = rd.next_uint("gid")
  info.token = rd.next("token")
  rd.next("mode")  # deprecated; always written back as 1
  info.preview_pages = rd.next_uint("preview_pages")
  info.preview_per_page = rd.next_uint("preview_per_page")
  info.pages = rd.next_uint("pages")

  while rd.has_next():
    entry = rd.next("page token")
    parts = entry.split(" ")
    if len(parts) != 2:
      raise InvalidFormat(f"expected '<index> <token>', got {entry!r}", line=rd.line)
    index = rd.uint("page index", parts[0])
    info.page_tokens[index] = parts[1]

  log.debug("decoded text metadata: gid=%s pages=%s tokens=%s", info.gid, info.pages, info.token_count)
  return info


def decode_binary(stream: BinaryIO) -> SpiderInfo:
  """Parse the first CBOR item in *stream*; trailing bytes are left unread."""
  try:
    obj = cbor2.CBORDecoder(stream).decode()
  except cbor2.CBORDecodeError as exc:
    raise DecodeError(f"malformed CBOR payload: {exc}") from exc
  if not isinstance(obj, dict):
    raise DecodeError(f"expected a CBOR map, got {type(obj).__name__}")

  info = SpiderInfo()
  for attr, key in _CBOR_FIELDS:
    value = obj.get(key)
    if value is None:
      continue
    if attr == "token":
      info.token = _cbor_str(key, value)
    else:
      setattr(info, attr, _cbor_uint(key, value))

  token_map = obj.get(_CBOR_TOKEN_MAP)
  if token_map is not None:
    if not isinstance(token_map, dict):
      raise DecodeError(f"{_CBOR_TOKEN_MAP}: expected a map, got {type(token_map).__name__}")
    for index, token in token_map.items():
      info.page_tokens[_cbor_uint(_CBOR_TOKEN_MAP, index)] = _cbor_str(_CBOR_TOKEN_MAP, token)

  log.debug("decoded binary metadata: gid=%s pages=%s tokens=%s", info.gid, info.pages, info.token_count)
  return info


def sniff_and_decode(stream: BinaryIO) -> tuple[SpiderInfo, InfoFormat]:
  """Detect the encoding of *stream*, decode it, and report which one it was."""
  fmt = detect_format(_peek_byte(stream))
  if fmt is InfoFormat.TEXT:
    return decode_text(stream), fmt
  return decode_binary(stream), fmt


def decode(stream: BinaryIO) -> SpiderInfo:
  """Decode *stream* in whichever encoding its first byte announces."""
  info, _ = sniff_and_decode(stream)
  return info


def decode_bytes(data: bytes) -> SpiderInfo:
  return decode(io.BytesIO(data))


def read_info(path: str | Path) -> tuple[SpiderInfo, InfoFormat]:
  """Decode the metadata file at *path*."""
  with open(path, "rb") as fh:
    return sniff_and_decode(fh)


def encode_text(info: SpiderInfo) -> bytes:
  """Serialize *info* as a ``VERSION2`` text file, page tokens in index order."""
  info.validate()
  lines = [
    TEXT_HEADER,
    f"{info.start_page:08x}",
    str(info.gid),
    info.token,
    LEGACY_MODE,
    str(info.preview_pages),
    str(info.preview_per_page),
    str(info.pages),
  ]
  for index in sorted(info.page_tokens):
    token = info.page_tokens[index]
    if " " in token or _has_line_break(token):
      raise InvalidFormat(f"page {index} token {token!r} cannot be stored as text")
    lines.append(f"{index} {token}")
  return ("\n".join(lines) + "\n").encode("utf-8")


def encode_binary(info: SpiderInfo) -> bytes:
  """Serialize *info* as a single CBOR map."""
  info.validate()
  payload: dict[str, object] = {key: getattr(info, attr) for attr, key in _CBOR_FIELDS}
  payload[_CBOR_TOKEN_MAP] = {index: info.page_tokens[index] for index in sorted(info.page_tokens)}
  return cbor2.dumps(payload)


def encode(info: SpiderInfo, fmt: InfoFormat) -> bytes:
  if fmt == InfoFormat.TEXT:
    return encode_text(info)
  if fmt == InfoFormat.BINARY:
    return encode_binary(info)
  raise ValueError(f"unknown metadata format: {fmt!r}")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def _cli() -> None:
  """Summarize metadata files: ``python spider_info.py PATH [PATH ...]``.

  A directory argument means the ``.ehviewer`` file inside it.
  """
  import sys

  targets = sys.argv[1:]
  if not targets:
    print("Usage: python spider_info.py PATH [PATH ...]", file=sys.stderr)
    sys.exit(2)

  failed = 0
  for target in targets:
    path = Path(target)
    if path.is_dir():
      path = path / INFO_FILE_NAME

    print(f"\n{'─' * 60}")
    print(f"  File:       {path}")
    try:
      info, fmt = read_info(path)
    except (OSError, SpiderInfoError) as exc:
      failed += 1
      print(f"  Error:      {exc}")
      continue

    print(f"  Format:     {fmt.name.lower()}")
    print(f"  Gallery:    {info.gid} / {info.token}")
    print(f"  Pages:      {info.pages}  (resume at {info.start_page})")
    print(f"  Previews:   {info.preview_pages} x {info.preview_per_page}")
    print(f"  Tokens:     {info.token_count}")
    for index in sorted(info.page_tokens)[:5]:
      print(f"    {index}: {info.page_tokens[index]}")
    if info.token_count > 5:
      print(f"    ... and {info.token_count - 5} more")

  print(f"\n{'═' * 60}")
  print(f"  TOTAL: {len(targets) - failed} decoded, {failed} failed")
  print(f"{'═' * 60}\n")
  if failed:
    sys.exit(1)


if __name__ == "__main__":
  _cli()
