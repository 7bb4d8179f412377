# Copyright (C) 2025 The bsv-wallet-utils developers
#
# This file is part of bsv-wallet-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of bsv-wallet-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

import re
import struct
from typing import Union

from bsvutils.errors import InvalidTypeError, InvalidUtf8Error


_HEX_RE = re.compile(r"^(?:[0-9a-fA-F]{2})*$")


def encode_varint(i: int) -> bytes:
    """
    Encode a potentially very large integer into varint bytes. The length should be
    specified in little-endian.

    https://bitcoin.org/en/developer-reference#compactsize-unsigned-integers
    """
    if i < 0:
        raise ValueError("Integer cannot be negative: %d" % i)
    if i < 253:
        return bytes([i])
    elif i < 0x10000:
        return b"\xfd" + i.to_bytes(2, "little")
    elif i < 0x100000000:
        return b"\xfe" + i.to_bytes(4, "little")
    elif i < 0x10000000000000000:
        return b"\xff" + i.to_bytes(8, "little")
    else:
        raise ValueError("Integer is too large: %d" % i)


def parse_compact_size(data: bytes, cursor: int = 0) -> tuple[int, int]:
    """
    Parse variable integer starting at cursor. Returns (value, size)
    """
    if cursor >= len(data):
        raise ValueError("Cannot read compact size: out of data")
    first_byte = data[cursor]
    if first_byte < 0xFD:
        return (first_byte, 1)
    elif first_byte == 0xFD:
        fmt, size = "<H", 3
    elif first_byte == 0xFE:
        fmt, size = "<I", 5
    else:
        fmt, size = "<Q", 9
    if cursor + size > len(data):
        raise ValueError("Cannot read compact size: out of data")
    return (struct.unpack_from(fmt, data, cursor + 1)[0], size)


def is_hex(value: str) -> bool:
    """True for an even-length hexadecimal string (any case)"""
    return isinstance(value, str) and _HEX_RE.match(value) is not None


def to_script_bytes(script_or_hex, field: str = "script") -> bytes:
    """Accepts a Script, bytes or a hex string and returns the raw bytes"""
    # local import; script imports this module
    from bsvutils.script import Script

    if isinstance(script_or_hex, Script):
        return script_or_hex.to_bytes()
    if isinstance(script_or_hex, (bytes, bytearray)):
        return bytes(script_or_hex)
    if isinstance(script_or_hex, str):
        if not is_hex(script_or_hex):
            raise InvalidTypeError(f"{field} must be a valid hex string")
        return h_to_b(script_or_hex)
    raise InvalidTypeError(
        f"{field} must be a Script, bytes or hex string, "
        f"not {type(script_or_hex).__name__}"
    )


def decode_utf8(data: bytes, what: str = "data") -> str:
    """Strict UTF-8 decoding; invalid sequences are a decode error"""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidUtf8Error(f"Invalid UTF-8 in {what}") from e


#
# Basic conversions between bytes (b) and hexadecimal (h)
#
def b_to_h(b: bytes) -> str:
    """Converts bytes to hexadecimal string"""
    return b.hex()


def h_to_b(h: str) -> bytes:
    """Converts hexadecimal string to bytes"""
    return bytes.fromhex(h)


def bytes_like(value: Union[bytes, bytearray, list, str], field: str) -> bytes:
    """Normalizes a byte sequence given as bytes, a list of ints or hex"""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, list):
        if not all(isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 255 for v in value):
            raise InvalidTypeError(f"{field} must contain only byte values (0-255)")
        return bytes(value)
    if isinstance(value, str):
        if not is_hex(value):
            raise InvalidTypeError(f"{field} must be a valid hex string")
        return h_to_b(value)
    raise InvalidTypeError(f"{field} must be bytes, a list of ints or hex")
