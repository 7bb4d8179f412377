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

import copy
import struct
from typing import Any, Optional, Union

from bsvutils.errors import ScriptDecodeError
from bsvutils.utils import b_to_h, h_to_b, is_hex


# BSV op codes. Opcodes disabled on BTC (OP_CAT, OP_SPLIT, OP_MUL, ...) are
# re-enabled on BSV
OP_CODES = {
    # constants
    "OP_0": b"\x00",
    "OP_FALSE": b"\x00",
    "OP_PUSHDATA1": b"\x4c",
    "OP_PUSHDATA2": b"\x4d",
    "OP_PUSHDATA4": b"\x4e",
    "OP_1NEGATE": b"\x4f",
    "OP_1": b"\x51",
    "OP_TRUE": b"\x51",
    "OP_2": b"\x52",
    "OP_3": b"\x53",
    "OP_4": b"\x54",
    "OP_5": b"\x55",
    "OP_6": b"\x56",
    "OP_7": b"\x57",
    "OP_8": b"\x58",
    "OP_9": b"\x59",
    "OP_10": b"\x5a",
    "OP_11": b"\x5b",
    "OP_12": b"\x5c",
    "OP_13": b"\x5d",
    "OP_14": b"\x5e",
    "OP_15": b"\x5f",
    "OP_16": b"\x60",
    # flow control
    "OP_NOP": b"\x61",
    "OP_VER": b"\x62",
    "OP_IF": b"\x63",
    "OP_NOTIF": b"\x64",
    "OP_VERIF": b"\x65",
    "OP_VERNOTIF": b"\x66",
    "OP_ELSE": b"\x67",
    "OP_ENDIF": b"\x68",
    "OP_VERIFY": b"\x69",
    "OP_RETURN": b"\x6a",
    # stack
    "OP_TOALTSTACK": b"\x6b",
    "OP_FROMALTSTACK": b"\x6c",
    "OP_2DROP": b"\x6d",
    "OP_2DUP": b"\x6e",
    "OP_3DUP": b"\x6f",
    "OP_2OVER": b"\x70",
    "OP_2ROT": b"\x71",
    "OP_2SWAP": b"\x72",
    "OP_IFDUP": b"\x73",
    "OP_DEPTH": b"\x74",
    "OP_DROP": b"\x75",
    "OP_DUP": b"\x76",
    "OP_NIP": b"\x77",
    "OP_OVER": b"\x78",
    "OP_PICK": b"\x79",
    "OP_ROLL": b"\x7a",
    "OP_ROT": b"\x7b",
    "OP_SWAP": b"\x7c",
    "OP_TUCK": b"\x7d",
    # splice
    "OP_CAT": b"\x7e",
    "OP_SPLIT": b"\x7f",
    "OP_NUM2BIN": b"\x80",
    "OP_BIN2NUM": b"\x81",
    "OP_SIZE": b"\x82",
    # bitwise logic
    "OP_INVERT": b"\x83",
    "OP_AND": b"\x84",
    "OP_OR": b"\x85",
    "OP_XOR": b"\x86",
    "OP_EQUAL": b"\x87",
    "OP_EQUALVERIFY": b"\x88",
    # arithmetic
    "OP_1ADD": b"\x8b",
    "OP_1SUB": b"\x8c",
    "OP_2MUL": b"\x8d",
    "OP_2DIV": b"\x8e",
    "OP_NEGATE": b"\x8f",
    "OP_ABS": b"\x90",
    "OP_NOT": b"\x91",
    "OP_0NOTEQUAL": b"\x92",
    "OP_ADD": b"\x93",
    "OP_SUB": b"\x94",
    "OP_MUL": b"\x95",
    "OP_DIV": b"\x96",
    "OP_MOD": b"\x97",
    "OP_LSHIFT": b"\x98",
    "OP_RSHIFT": b"\x99",
    "OP_BOOLAND": b"\x9a",
    "OP_BOOLOR": b"\x9b",
    "OP_NUMEQUAL": b"\x9c",
    "OP_NUMEQUALVERIFY": b"\x9d",
    "OP_NUMNOTEQUAL": b"\x9e",
    "OP_LESSTHAN": b"\x9f",
    "OP_GREATERTHAN": b"\xa0",
    "OP_LESSTHANOREQUAL": b"\xa1",
    "OP_GREATERTHANOREQUAL": b"\xa2",
    "OP_MIN": b"\xa3",
    "OP_MAX": b"\xa4",
    "OP_WITHIN": b"\xa5",
    # crypto
    "OP_RIPEMD160": b"\xa6",
    "OP_SHA1": b"\xa7",
    "OP_SHA256": b"\xa8",
    "OP_HASH160": b"\xa9",
    "OP_HASH256": b"\xaa",
    "OP_CODESEPARATOR": b"\xab",
    "OP_CHECKSIG": b"\xac",
    "OP_CHECKSIGVERIFY": b"\xad",
    "OP_CHECKMULTISIG": b"\xae",
    "OP_CHECKMULTISIGVERIFY": b"\xaf",
    # expansion
    "OP_NOP1": b"\xb0",
    "OP_NOP2": b"\xb1",
    "OP_NOP3": b"\xb2",
    "OP_NOP4": b"\xb3",
    "OP_NOP5": b"\xb4",
    "OP_NOP6": b"\xb5",
    "OP_NOP7": b"\xb6",
    "OP_NOP8": b"\xb7",
    "OP_NOP9": b"\xb8",
    "OP_NOP10": b"\xb9",
}

# reverse map; aliases (OP_FALSE, OP_TRUE) resolve to their canonical name
CODE_OPS = {}
for _name, _code in OP_CODES.items():
    if _name not in ("OP_FALSE", "OP_TRUE"):
        CODE_OPS.setdefault(_code, _name)


OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1 = 0x51
OP_ENDIF = 0x68
OP_RETURN = 0x6A


def op_name(op: int) -> str:
    """Returns the opcode name or OP_UNKNOWN<n> for undefined codes"""
    return CODE_OPS.get(bytes([op]), f"OP_UNKNOWN{op}")


class ScriptChunk:
    """One element of a script: an opcode with an optional data payload

    Data pushes keep the opcode they were pushed with (the direct length
    byte or one of the OP_PUSHDATA codes) so that parsing and re-serializing
    a script is lossless.

    Attributes
    ----------
    op : int
        the opcode byte
    data : bytes or None
        the pushed data; None for non-push opcodes
    """

    __slots__ = ("op", "data")

    def __init__(self, op: int, data: Optional[bytes] = None) -> None:
        if not 0 <= op <= 0xFF:
            raise ValueError(f"Opcode out of range: {op}")
        self.op = op
        self.data = data

    @classmethod
    def push(cls, data: bytes) -> "ScriptChunk":
        """Creates the minimal push chunk for data"""
        length = len(data)
        if length == 0:
            return cls(OP_0)
        if length < OP_PUSHDATA1:
            return cls(length, bytes(data))
        if length <= 0xFF:
            return cls(OP_PUSHDATA1, bytes(data))
        if length <= 0xFFFF:
            return cls(OP_PUSHDATA2, bytes(data))
        if length <= 0xFFFFFFFF:
            return cls(OP_PUSHDATA4, bytes(data))
        raise ValueError("Data too large. Cannot push into script")

    def is_push(self) -> bool:
        return self.data is not None

    def to_bytes(self) -> bytes:
        if self.data is None:
            return bytes([self.op])
        if self.op < OP_PUSHDATA1:
            return bytes([self.op]) + self.data
        if self.op == OP_PUSHDATA1:
            return bytes([self.op, len(self.data)]) + self.data
        if self.op == OP_PUSHDATA2:
            return bytes([self.op]) + struct.pack("<H", len(self.data)) + self.data
        return bytes([self.op]) + struct.pack("<I", len(self.data)) + self.data

    def to_asm(self) -> str:
        if self.data is not None:
            return b_to_h(self.data)
        if self.op == OP_0:
            return "0"
        return op_name(self.op)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScriptChunk):
            return False
        return self.op == other.op and self.data == other.data

    def __hash__(self) -> int:
        return hash((self.op, self.data))

    def __repr__(self) -> str:
        if self.data is None:
            return f"ScriptChunk({op_name(self.op)})"
        return f"ScriptChunk({self.op:#04x}, {b_to_h(self.data)})"


class Script:
    """Represents any script in Bitcoin SV

    A Script is an ordered list of chunks and knows how to serialize into
    bytes. It is created from a list of tokens, each one of:

    - an opcode name, e.g. "OP_DUP"
    - an int from 0 to 16 (mapped to OP_0 .. OP_16); other non-negative
      ints are pushed as little-endian script numbers
    - a hex string, pushed as data
    - bytes, pushed as data
    - a ScriptChunk, used as is

    Attributes
    ----------
    chunks : list (ScriptChunk)
        the opcodes and data of the script

    Methods
    -------
    to_bytes()
        returns a serialized byte version of the script
    to_hex()
        returns a serialized version of the script in hex
    to_asm()
        returns the script as space separated opcodes and hex data
    get_script()
        returns the list of strings that makes up this script
    copy()
        creates a copy of the object (classmethod)
    from_raw()
        parses a script from raw bytes or hex (staticmethod)
    from_asm()
        parses a script from its asm representation (staticmethod)
    find_op(op)
        returns the index of the first chunk with that opcode or -1
    is_p2pkh()
        checks if script is P2PKH (Pay-to-Public-Key-Hash)
    get_script_type()
        determines the type of script

    Raises
    ------
    ValueError
        If a token cannot be interpreted or data is too large
    """

    def __init__(self, script: Optional[list[Any]] = None) -> None:
        """See Script description"""
        if script is None:
            script = []
        self.chunks: list[ScriptChunk] = [self._to_chunk(t) for t in script]

    @staticmethod
    def _to_chunk(token: Any) -> ScriptChunk:
        if isinstance(token, ScriptChunk):
            return ScriptChunk(token.op, token.data)
        if isinstance(token, bool):
            raise ValueError("Boolean is not a valid script token")
        if isinstance(token, int):
            if 0 <= token <= 16:
                return ScriptChunk(OP_0 if token == 0 else OP_1 + token - 1)
            return ScriptChunk.push(Script._encode_number(token))
        if isinstance(token, (bytes, bytearray)):
            return ScriptChunk.push(bytes(token))
        if isinstance(token, str):
            if token in OP_CODES:
                return ScriptChunk(OP_CODES[token][0])
            if is_hex(token):
                return ScriptChunk.push(h_to_b(token))
            raise ValueError(f"Unknown script token: {token!r}")
        raise ValueError(f"Unsupported script token type: {type(token).__name__}")

    @staticmethod
    def _encode_number(integer: int) -> bytes:
        """Converts integer to bytes; as signed little-endian script number"""
        if integer < 0:
            raise ValueError("Integer is currently required to be positive.")

        number_of_bytes = (integer.bit_length() + 7) // 8
        integer_bytes = integer.to_bytes(number_of_bytes, byteorder="little")

        # keep the number positive if the high bit would flag it as negative
        if integer & (1 << number_of_bytes * 8 - 1):
            integer_bytes += b"\x00"

        return integer_bytes

    @classmethod
    def copy(cls, script: "Script") -> "Script":
        """Deep copy of Script"""
        new = cls()
        new.chunks = copy.deepcopy(script.chunks)
        return new

    def to_bytes(self) -> bytes:
        """Converts the script to bytes"""
        return b"".join(chunk.to_bytes() for chunk in self.chunks)

    def to_hex(self) -> str:
        """Converts the script to hexadecimal"""
        return b_to_h(self.to_bytes())

    def to_asm(self) -> str:
        return " ".join(chunk.to_asm() for chunk in self.chunks)

    def get_script(self) -> list[str]:
        """Returns script as array of strings"""
        return [chunk.to_asm() for chunk in self.chunks]

    @staticmethod
    def from_raw(scriptraw: Union[str, bytes]) -> "Script":
        """
        Imports a Script from raw hexadecimal or bytes data. Truncated data
        pushes raise a ScriptDecodeError.
        """
        if isinstance(scriptraw, str):
            if not is_hex(scriptraw):
                raise ValueError("Script hex must be an even-length hex string")
            raw = h_to_b(scriptraw)
        elif isinstance(scriptraw, (bytes, bytearray)):
            raw = bytes(scriptraw)
        else:
            raise TypeError("Input must be a hexadecimal string or bytes")

        chunks = []
        index = 0
        while index < len(raw):
            op = raw[index]
            index += 1
            if 0 < op < OP_PUSHDATA1:
                length = op
            elif op in (OP_PUSHDATA1, OP_PUSHDATA2, OP_PUSHDATA4):
                size = {OP_PUSHDATA1: 1, OP_PUSHDATA2: 2, OP_PUSHDATA4: 4}[op]
                if index + size > len(raw):
                    raise ScriptDecodeError(
                        f"Truncated push length at byte {index - 1}"
                    )
                length = int.from_bytes(raw[index : index + size], "little")
                index += size
            else:
                chunks.append(ScriptChunk(op))
                continue

            if index + length > len(raw):
                raise ScriptDecodeError(
                    f"Push of {length} bytes at byte {index} exceeds script length"
                )
            chunks.append(ScriptChunk(op, raw[index : index + length]))
            index += length

        script = Script()
        script.chunks = chunks
        return script

    @staticmethod
    def from_asm(asm: str) -> "Script":
        """Imports a Script from its asm representation"""
        tokens: list[Any] = []
        for token in asm.split():
            if token == "0":
                tokens.append(0)
            elif token == "-1":
                tokens.append("OP_1NEGATE")
            else:
                tokens.append(token)
        return Script(tokens)

    def find_op(self, op: int, start: int = 0) -> int:
        """Index of the first non-push chunk with opcode op, or -1"""
        for index in range(start, len(self.chunks)):
            chunk = self.chunks[index]
            if chunk.op == op and chunk.data is None:
                return index
        return -1

    def is_p2pkh(self) -> bool:
        """Checks if script is P2PKH (Pay-to-Public-Key-Hash)"""
        # local import; validation depends on this module
        from bsvutils.validation import is_p2pkh

        return is_p2pkh(self)

    def get_script_type(self) -> str:
        """Classifies the script as Ordinal, P2PKH, OpReturn or Custom"""
        # local import; validation depends on this module
        from bsvutils.validation import classify

        return classify(self)

    def __add__(self, other: "Script") -> "Script":
        if not isinstance(other, Script):
            return NotImplemented
        combined = Script()
        combined.chunks = copy.deepcopy(self.chunks) + copy.deepcopy(other.chunks)
        return combined

    def __len__(self) -> int:
        return len(self.chunks)

    def __str__(self) -> str:
        return self.to_asm()

    def __repr__(self) -> str:
        return f"Script({self.to_asm()!r})"

    def __eq__(self, _other: object) -> bool:
        if not isinstance(_other, Script):
            return False
        return self.chunks == _other.chunks
