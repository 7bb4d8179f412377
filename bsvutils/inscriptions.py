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

"""Ordinal inscriptions (BSV-20 envelope) and MAP metadata

An inscribed P2PKH output looks like:

    OP_0 OP_IF <"ord"> OP_1 <"application/bsv-20"> OP_0 [<content type> OP_0]
    <payload> OP_ENDIF <P2PKH lock> [OP_RETURN <MAP prefix> <"SET"> <k> <v> ...]

The envelope is never executed when the output is spent. Its OP_ENDIF sits at
chunk 9 when a content type is present and at chunk 7 when it is not.
"""

import base64
import binascii
from typing import Mapping, Optional, Union

from bsvutils.constants import (
    BSV20_CONTENT_TAG,
    DEFAULT_INSCRIPTION_CONTENT_TYPE,
    ENVELOPE_ENDIF_INDEX_WITH_CONTENT_TYPE,
    ENVELOPE_ENDIF_INDEX_WITHOUT_CONTENT_TYPE,
    MAP_PREFIX,
    MAP_RESERVED_KEY,
    MAP_SET_COMMAND,
    ORD_PROTOCOL_TAG,
)
from bsvutils.errors import (
    ConfigurationError,
    InvalidTypeError,
    MalformedEnvelopeError,
    UnexpectedEndifPositionError,
)
from bsvutils.script import OP_0, OP_ENDIF, OP_RETURN, Script, ScriptChunk
from bsvutils.utils import decode_utf8, to_script_bytes
from bsvutils.validation import has_ord


class Inscription:
    """Data inscribed in an ordinal envelope

    Attributes
    ----------
    content_type : str or None
        the MIME type of the payload; optional on the wire
    payload : bytes
        the inscribed data
    """

    def __init__(self, content_type: Optional[str], payload: bytes) -> None:
        if content_type is not None and not isinstance(content_type, str):
            raise InvalidTypeError("content_type must be a string")
        if not isinstance(payload, (bytes, bytearray)):
            raise InvalidTypeError("payload must be bytes")
        self.content_type = content_type
        self.payload = bytes(payload)

    @classmethod
    def from_base64(cls, data_b64: str, content_type: Optional[str]) -> "Inscription":
        """Creates an inscription from base64 data, as wallets exchange it"""
        if not isinstance(data_b64, str) or not data_b64:
            raise ConfigurationError("data_b64 is required and must be a base64 string")
        try:
            payload = base64.b64decode(data_b64, validate=True)
        except binascii.Error as e:
            raise ConfigurationError("data_b64 is not valid base64") from e
        return cls(content_type, payload)

    @property
    def data_b64(self) -> str:
        return base64.b64encode(self.payload).decode("ascii")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Inscription):
            return False
        return self.content_type == other.content_type and self.payload == other.payload

    def __repr__(self) -> str:
        return f"Inscription({self.content_type!r}, {len(self.payload)} bytes)"


def encode_ordinal_envelope(
    content_type: Optional[str], payload: bytes, inner_script: Script
) -> Script:
    """Wraps inner_script with a BSV-20 ordinal envelope"""
    if not isinstance(inner_script, Script):
        raise InvalidTypeError("inner_script must be a Script instance")
    if not isinstance(payload, (bytes, bytearray)) or len(payload) == 0:
        raise ConfigurationError("Inscription payload must be non-empty bytes")

    tokens = ["OP_0", "OP_IF", ORD_PROTOCOL_TAG, "OP_1", BSV20_CONTENT_TAG, "OP_0"]
    if content_type is not None:
        if not isinstance(content_type, str) or not content_type:
            raise ConfigurationError("Inscription content type must be a non-empty string")
        tokens += [content_type.encode("utf-8"), "OP_0"]
    tokens += [bytes(payload), "OP_ENDIF"]

    return Script(tokens) + inner_script


def _envelope_chunk(chunks: list[ScriptChunk], index: int, what: str) -> bytes:
    if index >= len(chunks) or not chunks[index].data:
        raise MalformedEnvelopeError(f"Ordinal envelope has no {what} at chunk {index}")
    return chunks[index].data


def decode_inscription(script: Union[Script, bytes, str]) -> Optional[Inscription]:
    """Extracts the inscription of an ordinal envelope

    Returns None if the script has no envelope at all.

    Raises
    ------
    MalformedEnvelopeError
        no OP_ENDIF or an empty content type / payload chunk
    UnexpectedEndifPositionError
        OP_ENDIF is neither at chunk 7 nor 9
    InvalidUtf8Error
        the content type is not valid UTF-8
    """
    if not has_ord(script):
        return None
    if not isinstance(script, Script):
        script = Script.from_raw(to_script_bytes(script))

    endif = script.find_op(OP_ENDIF)
    if endif == -1:
        raise MalformedEnvelopeError("Ordinal envelope has no OP_ENDIF")

    chunks = script.chunks
    if endif == ENVELOPE_ENDIF_INDEX_WITH_CONTENT_TYPE:
        content_type = decode_utf8(
            _envelope_chunk(chunks, 6, "content type"), "inscription content type"
        )
        payload = _envelope_chunk(chunks, 8, "payload")
    elif endif == ENVELOPE_ENDIF_INDEX_WITHOUT_CONTENT_TYPE:
        content_type = DEFAULT_INSCRIPTION_CONTENT_TYPE
        payload = _envelope_chunk(chunks, 6, "payload")
    else:
        raise UnexpectedEndifPositionError(endif)

    return Inscription(content_type, payload)


def _validate_map(fields: Mapping[str, str]) -> None:
    if not isinstance(fields, Mapping):
        raise InvalidTypeError("metadata must be a mapping of strings")
    for key in ("app", "type"):
        value = fields.get(key)
        if not isinstance(value, str) or not value:
            raise ConfigurationError(f"metadata.{key} is required and must be a string")
    for key, value in fields.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise InvalidTypeError("metadata keys and values must be strings")


def encode_map_metadata(fields: Mapping[str, str]) -> Script:
    """OP_RETURN <MAP prefix> <"SET"> <key> <value> ... in iteration order

    The reserved "cmd" key is never written.
    """
    _validate_map(fields)

    tokens = ["OP_RETURN", MAP_PREFIX.encode("utf-8"), MAP_SET_COMMAND.encode("utf-8")]
    for key, value in fields.items():
        if key == MAP_RESERVED_KEY:
            continue
        tokens += [ScriptChunk.push(key.encode("utf-8")), ScriptChunk.push(value.encode("utf-8"))]
    return Script(tokens)


def _push_data(chunk: ScriptChunk) -> Optional[bytes]:
    if chunk.is_push():
        return chunk.data
    if chunk.op == OP_0:
        return b""
    return None


def decode_map_metadata(script: Union[Script, bytes, str]) -> Optional[dict]:
    """Reads MAP SET metadata following the first OP_RETURN

    Returns None when there is no MAP data or when app or type are missing.
    Invalid UTF-8 in the prefix, the command, a key or a value raises
    InvalidUtf8Error.
    """
    if not isinstance(script, Script):
        script = Script.from_raw(to_script_bytes(script))

    position = script.find_op(OP_RETURN)
    if position == -1:
        return None

    rest = script.chunks[position + 1 :]
    if len(rest) < 2:
        return None
    prefix = _push_data(rest[0])
    if not prefix or decode_utf8(prefix, "MAP prefix") != MAP_PREFIX:
        return None
    command = _push_data(rest[1])
    if not command or decode_utf8(command, "MAP command") != MAP_SET_COMMAND:
        return None

    metadata = {}
    pairs = rest[2:]
    for i in range(0, len(pairs) - 1, 2):
        key = _push_data(pairs[i])
        value = _push_data(pairs[i + 1])
        if key is None or value is None:
            break
        metadata[decode_utf8(key, "MAP key")] = decode_utf8(value, "MAP value")

    if not metadata.get("app") or not metadata.get("type"):
        return None
    return metadata


def apply_inscription(
    locking_script: Script,
    inscription: Optional[Inscription] = None,
    metadata: Optional[Mapping[str, str]] = None,
    with_separator: bool = False,
) -> Script:
    """Adds an ordinal envelope before and MAP metadata after a locking script

    with_separator places an OP_CODESEPARATOR between the envelope and the
    lock so that signatures do not commit to the inscription.
    """
    if metadata is not None:
        _validate_map(metadata)

    script = locking_script
    if inscription is not None:
        script = encode_ordinal_envelope(
            inscription.content_type, inscription.payload, Script([])
        )
        if with_separator:
            script = script + Script(["OP_CODESEPARATOR"])
        script = script + locking_script

    if metadata is not None:
        script = script + encode_map_metadata(metadata)

    return script
