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

"""Signature preimages (BIP143 serialization with SIGHASH_FORKID)

|  Signature scopes (see constants.py):
|      SIGHASH_ALL - signs all inputs and outputs (default)
|      SIGHASH_NONE - signs all of the inputs
|      SIGHASH_SINGLE - signs all inputs but only the output at the
|      signed input's index
|      SIGHASH_ANYONECANPAY (only combined with one of the above)
|      - with ALL - signs all outputs but only the signed input
|      - with NONE - signs only the signed input
|      - with SINGLE - signs the input and the output at its index
|  SIGHASH_FORKID is always set.
"""

import struct
from typing import Optional

from bsvutils.constants import (
    DEFAULT_TX_SEQUENCE,
    SIGHASH_ALL,
    SIGHASH_ANYONECANPAY,
    SIGHASH_FORKID,
    SIGHASH_SINGLE,
    SIGN_OUTPUTS,
)
from bsvutils.errors import (
    ConfigurationError,
    InvalidTypeError,
    MissingOutputForSingleError,
    MissingSourceDataError,
)
from bsvutils.hashfunctions import hash256
from bsvutils.script import Script
from bsvutils.transactions import Transaction, TxInput, TxOutput
from bsvutils.utils import encode_varint, h_to_b

ZERO_HASH = b"\x00" * 32


def _serialize_output(txout: TxOutput) -> bytes:
    script_bytes = txout.locking_script.to_bytes()
    return struct.pack("<Q", txout.satoshis) + encode_varint(len(script_bytes)) + script_bytes


def format_preimage(
    source_txid: str,
    source_output_index: int,
    source_satoshis: int,
    transaction_version: int,
    other_inputs: list[TxInput],
    input_index: int,
    outputs: list[TxOutput],
    input_sequence: int,
    subscript: Script,
    locktime: int,
    scope: int,
) -> bytes:
    """Serializes the preimage of one input for the given scope

    The signed input is placed back at input_index among other_inputs when
    the outpoints and sequences are committed.
    """
    base_type = scope & 0x1F
    anyone_can_pay = bool(scope & SIGHASH_ANYONECANPAY)

    # outpoint of the signed input
    outpoint = h_to_b(source_txid)[::-1] + struct.pack("<I", source_output_index)

    # defaults for BIP143
    hash_prevouts = ZERO_HASH
    hash_sequence = ZERO_HASH
    hash_outputs = ZERO_HASH

    if not anyone_can_pay:
        all_outpoints = [txin.outpoint_bytes() for txin in other_inputs]
        all_outpoints.insert(input_index, outpoint)
        hash_prevouts = hash256(b"".join(all_outpoints))

        if base_type == SIGHASH_ALL:
            sequences = [struct.pack("<I", txin.sequence) for txin in other_inputs]
            sequences.insert(input_index, struct.pack("<I", input_sequence))
            hash_sequence = hash256(b"".join(sequences))

    if base_type == SIGHASH_ALL:
        hash_outputs = hash256(b"".join(_serialize_output(txout) for txout in outputs))
    elif base_type == SIGHASH_SINGLE and input_index < len(outputs):
        hash_outputs = hash256(_serialize_output(outputs[input_index]))

    subscript_bytes = subscript.to_bytes()

    return (
        struct.pack("<I", transaction_version)
        + hash_prevouts
        + hash_sequence
        + outpoint
        + encode_varint(len(subscript_bytes))
        + subscript_bytes
        + struct.pack("<Q", source_satoshis)
        + struct.pack("<I", input_sequence)
        + hash_outputs
        + struct.pack("<I", locktime)
        + struct.pack("<I", scope)
    )


def signature_scope(sign_outputs: str = "all", anyone_can_pay: bool = False) -> int:
    """The scope bitmask for a scope selector"""
    if sign_outputs not in SIGN_OUTPUTS:
        raise ConfigurationError(
            f'Invalid sign_outputs "{sign_outputs}". Must be "all", "none", or "single"'
        )
    scope = SIGHASH_FORKID | SIGN_OUTPUTS[sign_outputs]
    if anyone_can_pay:
        scope |= SIGHASH_ANYONECANPAY
    return scope


def calculate_preimage(
    tx: Transaction,
    input_index: int,
    sign_outputs: str = "all",
    anyone_can_pay: bool = False,
    source_satoshis: Optional[int] = None,
    locking_script: Optional[Script] = None,
) -> tuple[bytes, int]:
    """Computes the preimage that is double hashed and signed for an input

    source_satoshis and locking_script describe the UTXO being spent; when
    not given they are taken from the input's source transaction.

    Returns the preimage and the signature scope.

    Raises
    ------
    ConfigurationError
        no inputs, input_index out of range or an unknown sign_outputs
    MissingOutputForSingleError
        SIGHASH_SINGLE without an output at input_index
    MissingSourceDataError
        the UTXO value or locking script cannot be resolved
    """
    if not isinstance(tx, Transaction):
        raise InvalidTypeError("tx must be a Transaction")
    if not tx.inputs:
        raise ConfigurationError("Transaction must have at least one input")
    if (
        isinstance(input_index, bool)
        or not isinstance(input_index, int)
        or not 0 <= input_index < len(tx.inputs)
    ):
        raise ConfigurationError(
            f"Invalid input_index {input_index}. Transaction has "
            f"{len(tx.inputs)} input(s)"
        )

    scope = signature_scope(sign_outputs, anyone_can_pay)
    if sign_outputs == "single" and input_index >= len(tx.outputs):
        raise MissingOutputForSingleError(
            f"SIGHASH_SINGLE requires output at index {input_index}, but "
            f"transaction only has {len(tx.outputs)} output(s)"
        )

    txin = tx.inputs[input_index]
    if anyone_can_pay:
        other_inputs = []
    else:
        other_inputs = [other for i, other in enumerate(tx.inputs) if i != input_index]

    if not txin.source_txid:
        raise MissingSourceDataError("source txid", input_index)
    if source_satoshis is None:
        source_satoshis = txin.get_source_satoshis()
    if source_satoshis is None:
        raise MissingSourceDataError("source satoshis", input_index)
    if locking_script is None:
        locking_script = txin.get_source_locking_script()
    if locking_script is None:
        raise MissingSourceDataError("locking script", input_index)

    sequence = txin.sequence if txin.sequence is not None else DEFAULT_TX_SEQUENCE

    preimage = format_preimage(
        source_txid=txin.source_txid,
        source_output_index=txin.source_output_index,
        source_satoshis=source_satoshis,
        transaction_version=tx.version,
        other_inputs=other_inputs,
        input_index=input_index,
        outputs=tx.outputs,
        input_sequence=sequence,
        subscript=locking_script,
        locktime=tx.locktime,
        scope=scope,
    )
    return preimage, scope
