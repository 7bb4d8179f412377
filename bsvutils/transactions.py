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

import logging
import struct
from typing import Optional, Union

from bsvutils.constants import (
    DEFAULT_TX_LOCKTIME,
    DEFAULT_TX_SEQUENCE,
    DEFAULT_TX_VERSION,
)
from bsvutils.errors import (
    ChangeComputationError,
    ConfigurationError,
    InvalidTypeError,
    MissingSourceDataError,
    UnlockingScriptError,
)
from bsvutils.hashfunctions import hash256
from bsvutils.script import Script
from bsvutils.setup import get_sat_per_kb
from bsvutils.utils import b_to_h, encode_varint, h_to_b, is_hex, parse_compact_size

logger = logging.getLogger(__name__)


class TxInput:
    """Represents a transaction input.

    A transaction input requires the transaction id of a UTXO and the index of
    that UTXO. The id is either given directly or taken from the linked
    source transaction, which also provides the UTXO's value and locking
    script when signing.

    Attributes
    ----------
    source_txid : str
        the transaction id as a hex string (as displayed by tools)
    source_output_index : int
        the index of the UTXO that we want to spend
    unlocking_script : Script or None
        the script that satisfies the locking conditions
    sequence : int
        the input sequence number
    source_transaction : Transaction or None
        the transaction that created the UTXO
    unlocking_script_template : object or None
        anything with sign(tx, input_index) -> Script and
        estimate_length() -> int; fills unlocking_script when signing
    source_satoshis : int or None
        the UTXO value, when there is no source transaction

    Methods
    -------
    to_bytes()
        serializes TxInput to bytes
    copy()
        creates a copy of the object (classmethod)
    from_raw()
        instantiates object from raw input data (staticmethod)
    get_source_satoshis()
        value of the spent UTXO, if known
    get_source_locking_script()
        locking script of the spent UTXO, if known
    """

    def __init__(
        self,
        source_txid: Optional[str] = None,
        source_output_index: int = 0,
        unlocking_script: Optional[Script] = None,
        sequence: int = DEFAULT_TX_SEQUENCE,
        source_transaction: Optional["Transaction"] = None,
        unlocking_script_template=None,
        source_satoshis: Optional[int] = None,
    ) -> None:
        """See TxInput description"""
        if source_txid is None and source_transaction is None:
            raise ConfigurationError("Input requires a source_txid or a source_transaction")
        if source_txid is None:
            source_txid = source_transaction.get_txid()
        if not is_hex(source_txid) or len(source_txid) != 64:
            raise ConfigurationError("source_txid must be a 64 character hex string")
        if (
            isinstance(source_output_index, bool)
            or not isinstance(source_output_index, int)
            or source_output_index < 0
        ):
            raise ConfigurationError("source_output_index must be a non-negative integer")
        if not isinstance(sequence, int) or not 0 <= sequence <= 0xFFFFFFFF:
            raise ConfigurationError("sequence must be a 32-bit unsigned integer")

        self.source_txid = source_txid.lower()
        self.source_output_index = source_output_index
        self.unlocking_script = unlocking_script
        self.sequence = sequence
        self.source_transaction = source_transaction
        self.unlocking_script_template = unlocking_script_template
        self.source_satoshis = source_satoshis

    def outpoint_bytes(self) -> bytes:
        """The txid (internal byte order) and the output index"""
        # txids are displayed in reverse byte order
        return h_to_b(self.source_txid)[::-1] + struct.pack("<I", self.source_output_index)

    def to_bytes(self) -> bytes:
        """Serializes to bytes"""
        script_bytes = self.unlocking_script.to_bytes() if self.unlocking_script else b""
        return (
            self.outpoint_bytes()
            + encode_varint(len(script_bytes))
            + script_bytes
            + struct.pack("<I", self.sequence)
        )

    def _source_output(self) -> Optional["TxOutput"]:
        if self.source_transaction is None:
            return None
        if self.source_output_index >= len(self.source_transaction.outputs):
            return None
        return self.source_transaction.outputs[self.source_output_index]

    def get_source_satoshis(self) -> Optional[int]:
        if self.source_satoshis is not None:
            return self.source_satoshis
        output = self._source_output()
        return output.satoshis if output is not None else None

    def get_source_locking_script(self) -> Optional[Script]:
        output = self._source_output()
        return output.locking_script if output is not None else None

    def estimated_unlocking_length(self) -> int:
        if self.unlocking_script is not None:
            return len(self.unlocking_script.to_bytes())
        if self.unlocking_script_template is not None:
            return self.unlocking_script_template.estimate_length()
        raise UnlockingScriptError(
            f"Input {self.source_txid}.{self.source_output_index} has no "
            "unlocking script or template"
        )

    @staticmethod
    def from_raw(raw: bytes, cursor: int = 0) -> tuple["TxInput", int]:
        """
        Parses a TxInput from a transaction's raw bytes starting at cursor.
        Returns the input and the cursor after it.
        """
        if cursor + 36 > len(raw):
            raise ValueError("Truncated transaction input")
        txid = b_to_h(raw[cursor : cursor + 32][::-1])
        (index,) = struct.unpack_from("<I", raw, cursor + 32)
        cursor += 36

        script_size, size = parse_compact_size(raw, cursor)
        cursor += size
        if cursor + script_size + 4 > len(raw):
            raise ValueError("Truncated transaction input")
        script = Script.from_raw(raw[cursor : cursor + script_size])
        cursor += script_size

        (sequence,) = struct.unpack_from("<I", raw, cursor)
        cursor += 4

        return TxInput(txid, index, script, sequence), cursor

    @classmethod
    def copy(cls, txin: "TxInput") -> "TxInput":
        """Copy of TxInput; the source transaction and template are shared"""
        return cls(
            txin.source_txid,
            txin.source_output_index,
            Script.copy(txin.unlocking_script) if txin.unlocking_script else None,
            txin.sequence,
            txin.source_transaction,
            txin.unlocking_script_template,
            txin.source_satoshis,
        )

    def __str__(self) -> str:
        return str(
            {
                "source_txid": self.source_txid,
                "source_output_index": self.source_output_index,
                "unlocking_script": self.unlocking_script,
                "sequence": self.sequence,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


class TxOutput:
    """Represents a transaction output

    Attributes
    ----------
    satoshis : int or None
        the value of this output in satoshis; None for a change output
        whose amount is not computed yet
    locking_script : Script
        the script that will lock this amount
    change : bool
        the output receives whatever is left after the other outputs and
        the fee

    Methods
    -------
    to_bytes()
        serializes TxOutput to bytes
    copy()
        creates a copy of the object (classmethod)
    from_raw()
        instantiates object from raw output data (staticmethod)
    """

    def __init__(
        self,
        satoshis: Optional[int],
        locking_script: Script,
        change: bool = False,
    ) -> None:
        """See TxOutput description"""
        if satoshis is None:
            if not change:
                raise ConfigurationError("Only change outputs may omit satoshis")
        elif isinstance(satoshis, bool) or not isinstance(satoshis, int):
            raise InvalidTypeError("Amount needs to be in satoshis as an integer")
        elif satoshis < 0:
            raise ConfigurationError("Amount cannot be negative")
        if not isinstance(locking_script, Script):
            raise InvalidTypeError("locking_script must be a Script instance")

        self.satoshis = satoshis
        self.locking_script = locking_script
        self.change = change

    def to_bytes(self) -> bytes:
        """Serializes to bytes"""
        if self.satoshis is None:
            raise ChangeComputationError("Change output amount is not computed yet")
        script_bytes = self.locking_script.to_bytes()
        return struct.pack("<Q", self.satoshis) + encode_varint(len(script_bytes)) + script_bytes

    @staticmethod
    def from_raw(raw: bytes, cursor: int = 0) -> tuple["TxOutput", int]:
        """
        Parses a TxOutput from a transaction's raw bytes starting at cursor.
        Returns the output and the cursor after it.
        """
        if cursor + 8 > len(raw):
            raise ValueError("Truncated transaction output")
        (satoshis,) = struct.unpack_from("<Q", raw, cursor)
        cursor += 8

        script_size, size = parse_compact_size(raw, cursor)
        cursor += size
        if cursor + script_size > len(raw):
            raise ValueError("Truncated transaction output")
        script = Script.from_raw(raw[cursor : cursor + script_size])
        cursor += script_size

        return TxOutput(satoshis, script), cursor

    @classmethod
    def copy(cls, txout: "TxOutput") -> "TxOutput":
        """Deep copy of TxOutput"""
        return cls(txout.satoshis, Script.copy(txout.locking_script), txout.change)

    def __str__(self) -> str:
        return str(
            {
                "satoshis": self.satoshis,
                "locking_script": self.locking_script,
                "change": self.change,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()


class Transaction:
    """Represents a Bitcoin SV transaction

    Attributes
    ----------
    inputs : list (TxInput)
        A list of all the transaction inputs
    outputs : list (TxOutput)
        A list of all the transaction outputs
    version : int
        The transaction version
    locktime : int
        The transaction's locktime parameter
    merkle_path : bytes or None
        The serialized BUMP proving the transaction is mined, if it is

    Methods
    -------
    to_bytes()
        Serializes Transaction to bytes
    to_hex()
        converts result of to_bytes to hexadecimal string
    from_raw()
        Instantiates a Transaction from serialized raw data (staticmethod)
    get_txid()
        Calculates txid and returns it
    get_size()
        Calculates the tx size
    estimate_size()
        Estimates the size after signing, using template estimates for
        unsigned inputs
    fee(sat_per_kb)
        Computes the fee and distributes the remainder to change outputs
    sign()
        Creates every templated input's unlocking script
    to_beef()
        Serializes the transaction and its unproven ancestors as BEEF
    copy()
        creates a copy of the object (classmethod)
    """

    def __init__(
        self,
        inputs: Optional[list[TxInput]] = None,
        outputs: Optional[list[TxOutput]] = None,
        version: int = DEFAULT_TX_VERSION,
        locktime: int = DEFAULT_TX_LOCKTIME,
        merkle_path: Optional[bytes] = None,
    ) -> None:
        """See Transaction description"""

        # make sure default argument for inputs and outputs is an empty list
        if inputs is None:
            inputs = []
        if outputs is None:
            outputs = []

        self.inputs = inputs
        self.outputs = outputs
        self.version = version
        self.locktime = locktime
        self.merkle_path = merkle_path

    def add_input(self, txin: TxInput) -> None:
        self.inputs.append(txin)

    def add_output(self, txout: TxOutput) -> None:
        self.outputs.append(txout)

    def to_bytes(self) -> bytes:
        """Serializes transaction to bytes following the Bitcoin protocol serialization"""
        data = struct.pack("<I", self.version)
        data += encode_varint(len(self.inputs))
        for txin in self.inputs:
            data += txin.to_bytes()
        data += encode_varint(len(self.outputs))
        for txout in self.outputs:
            data += txout.to_bytes()
        data += struct.pack("<I", self.locktime)
        return data

    def to_hex(self) -> str:
        """Serializes transaction to hex string"""
        return b_to_h(self.to_bytes())

    def get_txid(self) -> str:
        """Calculates the transaction id (txid) and returns it"""
        # double hash and display in reverse byte order
        return b_to_h(hash256(self.to_bytes())[::-1])

    def get_size(self) -> int:
        return len(self.to_bytes())

    @staticmethod
    def from_raw(rawtx: Union[str, bytes]) -> "Transaction":
        """
        Imports a Transaction from raw hexadecimal or bytes data.
        """
        if isinstance(rawtx, str):
            rawtx = h_to_b(rawtx)
        tx, cursor = Transaction.parse(rawtx, 0)
        if cursor != len(rawtx):
            raise ValueError("Unexpected trailing data after transaction")
        return tx

    @staticmethod
    def parse(raw: bytes, cursor: int = 0) -> tuple["Transaction", int]:
        """Parses a transaction at cursor; returns it and the cursor after it"""
        if cursor + 4 > len(raw):
            raise ValueError("Truncated transaction")
        (version,) = struct.unpack_from("<I", raw, cursor)
        cursor += 4

        n_inputs, size = parse_compact_size(raw, cursor)
        cursor += size
        inputs = []
        for _ in range(n_inputs):
            txin, cursor = TxInput.from_raw(raw, cursor)
            inputs.append(txin)

        n_outputs, size = parse_compact_size(raw, cursor)
        cursor += size
        outputs = []
        for _ in range(n_outputs):
            txout, cursor = TxOutput.from_raw(raw, cursor)
            outputs.append(txout)

        if cursor + 4 > len(raw):
            raise ValueError("Truncated transaction")
        (locktime,) = struct.unpack_from("<I", raw, cursor)
        cursor += 4

        return Transaction(inputs, outputs, version, locktime), cursor

    def estimate_size(self) -> int:
        """Size in bytes once every input is signed

        Inputs that are not signed yet count with their template's
        estimate_length(). Change outputs count even if their amount is not
        known yet (amounts are always 8 bytes).
        """
        size = 4 + len(encode_varint(len(self.inputs)))
        for txin in self.inputs:
            script_length = txin.estimated_unlocking_length()
            size += 36 + len(encode_varint(script_length)) + script_length + 4
        size += len(encode_varint(len(self.outputs)))
        for txout in self.outputs:
            script_length = len(txout.locking_script.to_bytes())
            size += 8 + len(encode_varint(script_length)) + script_length
        return size + 4

    def total_input_satoshis(self) -> int:
        total = 0
        for index, txin in enumerate(self.inputs):
            satoshis = txin.get_source_satoshis()
            if satoshis is None:
                raise MissingSourceDataError("source satoshis", index)
            total += satoshis
        return total

    def fee(self, sat_per_kb: Optional[int] = None) -> int:
        """Computes the fee at a linear rate and sets the change amounts

        fee = ceil(estimated size * sat_per_kb / 1000). What remains after
        the non-change outputs and the fee is split evenly between the
        change outputs, the first one receiving the remainder of the
        division. When there is less change than change outputs their
        amounts stay undetermined (None) and sign() refuses to proceed.

        Returns the fee in satoshis.
        """
        if sat_per_kb is None:
            sat_per_kb = get_sat_per_kb()

        size = self.estimate_size()
        fee = (size * sat_per_kb + 999) // 1000
        logger.debug("Estimated size %d bytes, fee %d sat at %d sat/kB", size, fee, sat_per_kb)

        change_outputs = [txout for txout in self.outputs if txout.change]
        if not change_outputs:
            return fee

        spent = sum(txout.satoshis for txout in self.outputs if not txout.change)
        change = self.total_input_satoshis() - spent - fee

        if change < len(change_outputs):
            logger.warning(
                "Not enough change (%d sat) for %d change outputs", change, len(change_outputs)
            )
            for txout in change_outputs:
                txout.satoshis = None
            return fee

        share, remainder = divmod(change, len(change_outputs))
        for txout in change_outputs:
            txout.satoshis = share
        change_outputs[0].satoshis += remainder
        logger.debug("Distributed %d sat of change over %d outputs", change, len(change_outputs))
        return fee

    def sign(self) -> None:
        """Fills every input's unlocking script from its template

        Inputs are signed in order, after outputs and fee are final.
        """
        for index, txout in enumerate(self.outputs):
            if txout.change and txout.satoshis is None:
                raise ChangeComputationError(
                    f"Change output {index} has no amount; call fee() first "
                    "or add more inputs"
                )

        for index, txin in enumerate(self.inputs):
            if txin.unlocking_script_template is None:
                if txin.unlocking_script is None:
                    raise UnlockingScriptError(
                        f"Input {index} has no unlocking script or template"
                    )
                continue
            txin.unlocking_script = txin.unlocking_script_template.sign(self, index)
            logger.debug("Signed input %d", index)

    def to_beef(self) -> bytes:
        """BEEF of this transaction with every unproven ancestor"""
        # local import; beef parses transactions
        from bsvutils.beef import Beef

        beef = Beef()
        beef.merge_transaction(self)
        return beef.to_bytes()

    @classmethod
    def copy(cls, tx: "Transaction") -> "Transaction":
        """Copy of Transaction"""
        ins = [TxInput.copy(txin) for txin in tx.inputs]
        outs = [TxOutput.copy(txout) for txout in tx.outputs]
        return cls(ins, outs, tx.version, tx.locktime, tx.merkle_path)

    def __str__(self) -> str:
        return str(
            {
                "inputs": self.inputs,
                "outputs": self.outputs,
                "version": self.version,
                "locktime": self.locktime,
            }
        )

    def __repr__(self) -> str:
        return self.__str__()
