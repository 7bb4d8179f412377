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

from typing import Optional, Union

from bsvutils.errors import ConfigurationError, InvalidTypeError
from bsvutils.script import OP_RETURN, Script, ScriptChunk
from bsvutils.utils import h_to_b, is_hex, to_script_bytes

OpReturnField = Union[str, bytes, bytearray, list]


def op_return_field_to_bytes(field: OpReturnField, index: int = 0) -> bytes:
    """Converts one OP_RETURN field to the bytes that get pushed

    Byte sequences pass through. A string that is valid even-length hex
    (any case) is used verbatim as the bytes it encodes; any other string
    is UTF-8 encoded. So "deadbeef" pushes de ad be ef while "hello" pushes
    68 65 6c 6c 6f.
    """
    if isinstance(field, (bytes, bytearray)):
        return bytes(field)
    if isinstance(field, list):
        for position, value in enumerate(field):
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
                raise InvalidTypeError(
                    f"Invalid field at index {index}: element at position "
                    f"{position} is not a byte value"
                )
        return bytes(field)
    if isinstance(field, str):
        if is_hex(field):
            return h_to_b(field)
        return field.encode("utf-8")
    raise InvalidTypeError(
        f"Invalid field at index {index}: must be a string or byte sequence, "
        f"got {type(field).__name__}"
    )


def encode_op_return(script: Script, fields: list[OpReturnField]) -> Script:
    """Appends OP_RETURN and one data push per field to a copy of script

    Raises
    ------
    ConfigurationError
        if the script already has an OP_RETURN or fields is empty
    InvalidTypeError
        if script is not a Script or a field is not text or bytes
    """
    if not isinstance(script, Script):
        raise InvalidTypeError("script must be a Script instance")
    if script.find_op(OP_RETURN) != -1:
        raise ConfigurationError(
            "Script already contains OP_RETURN. Cannot add multiple OP_RETURN "
            "statements to the same script."
        )
    if not isinstance(fields, (list, tuple)):
        raise InvalidTypeError("fields must be a list of strings or byte sequences")
    if len(fields) == 0:
        raise ConfigurationError("At least one data field is required for OP_RETURN")

    # validate everything before building
    data = [op_return_field_to_bytes(field, i) for i, field in enumerate(fields)]

    return script + Script(["OP_RETURN"] + [ScriptChunk.push(d) for d in data])


def decode_op_return(script: Union[Script, bytes, str]) -> Optional[list[bytes]]:
    """Returns the data pushed after the first OP_RETURN

    Empty pushes are skipped. None when there is no OP_RETURN or nothing
    follows it.
    """
    if not isinstance(script, Script):
        script = Script.from_raw(to_script_bytes(script))

    position = script.find_op(OP_RETURN)
    if position == -1:
        return None

    fields = [
        chunk.data for chunk in script.chunks[position + 1 :] if chunk.data
    ]
    return fields or None
