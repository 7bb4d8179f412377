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

"""Pattern checks over locking scripts

All the checks accept a Script, raw bytes or a hex string. Data that merely
does not match a pattern gives False; only an input of the wrong type (or a
string that is not hex) raises.
"""

import re
from typing import Union

from bsvutils.constants import (
    ORDINAL_ENVELOPE_PREFIX_HEX,
    SCRIPT_TYPE_CUSTOM,
    SCRIPT_TYPE_OP_RETURN,
    SCRIPT_TYPE_ORDINAL,
    SCRIPT_TYPE_P2PKH,
)
from bsvutils.errors import ConfigurationError, InvalidTypeError
from bsvutils.script import OP_RETURN, Script, ScriptChunk
from bsvutils.utils import b_to_h, to_script_bytes

ScriptLike = Union[Script, bytes, str]

_P2PKH_PATTERN = re.compile(r"76a914[0-9a-f]{40}88ac")


def _script_hex(script: ScriptLike, func: str) -> str:
    if script is None:
        raise InvalidTypeError(f"{func}: input cannot be None")
    return b_to_h(to_script_bytes(script, field=f"{func} input"))


def encode_p2pkh(pubkey_hash: Union[bytes, str]) -> Script:
    """Creates the P2PKH locking script for a 20-byte public key hash

    OP_DUP OP_HASH160 <20 bytes> OP_EQUALVERIFY OP_CHECKSIG
    """
    if isinstance(pubkey_hash, str):
        hash_bytes = bytes.fromhex(pubkey_hash)
    elif isinstance(pubkey_hash, (bytes, bytearray)):
        hash_bytes = bytes(pubkey_hash)
    else:
        raise InvalidTypeError("pubkey_hash must be bytes or a hex string")

    if len(hash_bytes) != 20:
        raise ConfigurationError(
            f"pubkey_hash must be 20 bytes, got {len(hash_bytes)}"
        )

    return Script(
        ["OP_DUP", "OP_HASH160", ScriptChunk(20, hash_bytes), "OP_EQUALVERIFY", "OP_CHECKSIG"]
    )


def is_p2pkh(script: ScriptLike) -> bool:
    """True iff the script is exactly 76 a9 14 <20 bytes> 88 ac"""
    hex_script = _script_hex(script, "is_p2pkh")
    return (
        len(hex_script) == 50
        and hex_script.startswith("76a9")
        and hex_script[4:6] == "14"
        and hex_script.endswith("88ac")
    )


def has_ord(script: ScriptLike) -> bool:
    """True if the script contains the BSV-20 ordinal envelope prefix"""
    return ORDINAL_ENVELOPE_PREFIX_HEX in _script_hex(script, "has_ord")


def is_ordinal(script: ScriptLike) -> bool:
    """True for an ordinal envelope followed by a P2PKH lock"""
    hex_script = _script_hex(script, "is_ordinal")
    if ORDINAL_ENVELOPE_PREFIX_HEX not in hex_script:
        return False
    # only byte aligned matches count
    pos = hex_script.find("76a914", hex_script.index(ORDINAL_ENVELOPE_PREFIX_HEX))
    while pos != -1:
        if pos % 2 == 0 and _P2PKH_PATTERN.match(hex_script, pos):
            return True
        pos = hex_script.find("76a914", pos + 1)
    return False


def has_op_return_data(script: ScriptLike) -> bool:
    """True if any chunk of the script is OP_RETURN"""
    if isinstance(script, Script):
        parsed = script
    else:
        parsed = Script.from_raw(to_script_bytes(script, field="has_op_return_data input"))
    return parsed.find_op(OP_RETURN) != -1


def classify(script: ScriptLike) -> str:
    """Classifies a locking script

    Ordinal is tested before P2PKH so an inscribed P2PKH is always an
    Ordinal. OpReturn means the very first opcode is OP_RETURN.
    """
    if is_ordinal(script):
        return SCRIPT_TYPE_ORDINAL
    if is_p2pkh(script):
        return SCRIPT_TYPE_P2PKH
    raw = to_script_bytes(script)
    if raw[:1] == bytes([OP_RETURN]):
        return SCRIPT_TYPE_OP_RETURN
    return SCRIPT_TYPE_CUSTOM
