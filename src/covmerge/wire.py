"""Decoders and encoders for the run-file wire format.

A run file is the magic number, one delimiter byte, then a single structural
value. The format only knows three shapes and pairs of them:

- integers: ASCII decimal digits followed by one space;
- strings: an integer byte length, the raw bytes, then one junk byte;
- arrays: an integer element count followed by that many elements.

Every decoder returns either its value or a ``DecodeFailure``; combinators stop
at the first failure. ``read`` and ``decode`` are the only places that raise,
and they raise ``MalformedInput`` for anything that goes wrong after the file
was opened.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
import re
from typing import BinaryIO, Callable, Sequence, TypeAlias, TypeVar

from covmerge.exceptions import InputIOFailure, MalformedInput
from covmerge.saturating import MAX_INT, MIN_INT

T = TypeVar("T")
U = TypeVar("U")

MAGIC_NUMBER = b"BISECT-COVERAGE-4"

_DELIMITER = ord(" ")
_READ_CHUNK_SIZE = 1 << 16
_INTEGER_RE = re.compile(rb"[+-]?[0-9]+")


@dataclass(frozen=True)
class DecodeFailure:
    reason: str


class ByteSource:
    """Byte-oriented reader over an open binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def read_byte(self) -> int | None:
        chunk = self._stream.read(1)
        if not chunk:
            return None
        return chunk[0]

    def read_exact(self, size: int) -> bytes | None:
        """Return exactly ``size`` bytes, or None when the stream ends first."""
        chunks: list[bytes] = []
        remaining = size
        while remaining > 0:
            chunk = self._stream.read(min(remaining, _READ_CHUNK_SIZE))
            if not chunk:
                return None
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def junk(self) -> None:
        # End of input is fine here.
        self._stream.read(1)


Decoder: TypeAlias = Callable[[ByteSource, bytearray], T | DecodeFailure]
Encoder: TypeAlias = Callable[[T], bytes]


def integer(source: ByteSource, scratch: bytearray) -> int | DecodeFailure:
    scratch.clear()
    while True:
        byte = source.read_byte()
        if byte is None or byte == _DELIMITER:
            break
        scratch.append(byte)
    token = bytes(scratch)
    if _INTEGER_RE.fullmatch(token) is None:
        return DecodeFailure(f"invalid integer token {token!r}")
    value = int(token)
    if not MIN_INT <= value <= MAX_INT:
        return DecodeFailure(f"integer out of range {token!r}")
    return value


def string(source: ByteSource, scratch: bytearray) -> bytes | DecodeFailure:
    length = integer(source, scratch)
    match length:
        case DecodeFailure() as failure:
            return failure
        case int() if length < 0:
            return DecodeFailure(f"negative string length {length}")
    data = source.read_exact(length)
    if data is None:
        return DecodeFailure(
            f"unexpected end of file while reading string of length {length}"
        )
    source.junk()
    return data


def pair(left: Decoder[T], right: Decoder[U]) -> Decoder[tuple[T, U]]:
    def _decode(source: ByteSource, scratch: bytearray):
        first = left(source, scratch)
        match first:
            case DecodeFailure() as failure:
                return failure
        second = right(source, scratch)
        match second:
            case DecodeFailure() as failure:
                return failure
        return first, second

    return _decode


def array(element: Decoder[T]) -> Decoder[list[T]]:
    def _decode(source: ByteSource, scratch: bytearray):
        length = integer(source, scratch)
        match length:
            case DecodeFailure() as failure:
                return failure
            case int() if length < 0:
                return DecodeFailure(f"negative array length {length}")
        values: list[T] = []
        for index in range(length):
            value = element(source, scratch)
            match value:
                case DecodeFailure(reason=reason):
                    return DecodeFailure(f"array element {index}: {reason}")
            values.append(value)
        return values

    return _decode


def decode(decoder: Decoder[T], stream: BinaryIO, *, filename: str) -> T:
    """Check the magic number on ``stream`` and decode one value after it."""
    source = ByteSource(stream)
    try:
        magic_number = source.read_exact(len(MAGIC_NUMBER))
    except OSError as exc:
        raise InputIOFailure(filename, exc.strerror or str(exc)) from exc
    if magic_number is None:
        raise MalformedInput(
            filename, "unexpected end of file while reading magic number"
        )
    if magic_number != MAGIC_NUMBER:
        raise MalformedInput(filename, "bad magic number")
    source.junk()

    scratch = bytearray()
    try:
        result = decoder(source, scratch)
    except Exception as exc:
        raise MalformedInput(filename, f"exception reading data: {exc!r}") from exc
    match result:
        case DecodeFailure(reason=reason):
            raise MalformedInput(filename, reason)
    return result


def read(decoder: Decoder[T], *, filename: str | os.PathLike[str]) -> T:
    name = os.fspath(filename)
    try:
        stream = open(name, "rb")
    except OSError as exc:
        raise InputIOFailure(name, exc.strerror or str(exc)) from exc
    with stream:
        return decode(decoder, stream, filename=name)


def encode_integer(value: int) -> bytes:
    return b"%d " % value


def encode_string(value: bytes) -> bytes:
    return encode_integer(len(value)) + value + b" "


def encode_pair(left: Encoder[T], right: Encoder[U]) -> Encoder[tuple[T, U]]:
    def _encode(value: tuple[T, U]) -> bytes:
        first, second = value
        return left(first) + right(second)

    return _encode


def encode_array(element: Encoder[T]) -> Encoder[Sequence[T]]:
    def _encode(values: Sequence[T]) -> bytes:
        return encode_integer(len(values)) + b"".join(
            element(value) for value in values
        )

    return _encode


def encode(encoder: Encoder[T], value: T) -> bytes:
    return MAGIC_NUMBER + b" " + encoder(value)


def write(encoder: Encoder[T], value: T, *, filename: str | os.PathLike[str]) -> None:
    name = os.fspath(filename)
    payload = encode(encoder, value)
    try:
        with open(name, "wb") as stream:
            stream.write(payload)
    except OSError as exc:
        raise InputIOFailure(name, exc.strerror or str(exc)) from exc
