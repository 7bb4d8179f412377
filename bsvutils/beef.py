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

"""BEEF (BRC-62): transactions bundled with the proofs of their ancestry

Layout of version 1:

    version (uint32 LE, bytes 01 00 be ef)
    varint number of BUMPs, followed by the BUMPs (BRC-74 merkle paths)
    varint number of transactions, followed by, for each transaction:
        raw transaction
        00, or 01 <varint index of the BUMP proving it>

Transactions are ordered so that parents come before the children that
spend them.
"""

import logging
import struct
from typing import Optional, Union

from bsvutils.constants import BEEF_V1
from bsvutils.errors import BeefDecodeError
from bsvutils.hashfunctions import hash256
from bsvutils.transactions import Transaction
from bsvutils.utils import b_to_h, encode_varint, parse_compact_size

logger = logging.getLogger(__name__)


def _bump_length(data: bytes, cursor: int) -> int:
    """Length of the BUMP that starts at cursor"""
    start = cursor
    _, size = parse_compact_size(data, cursor)  # block height
    cursor += size
    if cursor >= len(data):
        raise BeefDecodeError("Truncated BUMP")
    tree_height = data[cursor]
    cursor += 1
    for _ in range(tree_height):
        n_leaves, size = parse_compact_size(data, cursor)
        cursor += size
        for _ in range(n_leaves):
            _, size = parse_compact_size(data, cursor)  # offset
            cursor += size
            if cursor >= len(data):
                raise BeefDecodeError("Truncated BUMP")
            flags = data[cursor]
            cursor += 1
            # duplicate leaves carry no hash
            if not flags & 0x01:
                cursor += 32
            if cursor > len(data):
                raise BeefDecodeError("Truncated BUMP")
    return cursor - start


class Beef:
    """A mergeable set of transactions and merkle proofs

    Attributes
    ----------
    bumps : list (bytes)
        serialized BUMPs
    txs : list (tuple)
        (txid, raw transaction, BUMP index or None), parents first

    Methods
    -------
    merge_transaction(tx)
        adds a transaction and its unproven ancestors
    merge_raw_tx(raw, bump_index)
        adds a serialized transaction
    merge_bump(bump)
        adds a BUMP, returning its index
    merge_beef(beef)
        adds everything from another BEEF (bytes or Beef)
    to_bytes()
        serializes as BEEF V1
    from_bytes(data)
        parses BEEF V1 (classmethod)
    """

    def __init__(self) -> None:
        self.bumps: list[bytes] = []
        self.txs: list[tuple[str, bytes, Optional[int]]] = []
        self._positions: dict[str, int] = {}

    @property
    def txids(self) -> list[str]:
        return [txid for txid, _, _ in self.txs]

    def __contains__(self, txid: str) -> bool:
        return txid in self._positions

    def __len__(self) -> int:
        return len(self.txs)

    def merge_bump(self, bump: bytes) -> int:
        for index, existing in enumerate(self.bumps):
            if existing == bump:
                return index
        self.bumps.append(bytes(bump))
        return len(self.bumps) - 1

    def merge_raw_tx(self, raw: bytes, bump_index: Optional[int] = None) -> str:
        txid = b_to_h(hash256(raw)[::-1])
        position = self._positions.get(txid)
        if position is not None:
            # a proof supersedes an unproven copy
            if bump_index is not None and self.txs[position][2] is None:
                self.txs[position] = (txid, self.txs[position][1], bump_index)
            return txid
        self._positions[txid] = len(self.txs)
        self.txs.append((txid, bytes(raw), bump_index))
        return txid

    def merge_transaction(self, tx: Transaction) -> str:
        """Adds tx after its ancestors; a mined tx (with merkle_path) ends
        the walk up its ancestry"""
        txid = tx.get_txid()
        if txid in self._positions:
            return txid
        if tx.merkle_path is not None:
            return self.merge_raw_tx(tx.to_bytes(), self.merge_bump(tx.merkle_path))

        for txin in tx.inputs:
            if txin.source_transaction is not None:
                self.merge_transaction(txin.source_transaction)
        return self.merge_raw_tx(tx.to_bytes())

    def merge_beef(self, other: Union[bytes, "Beef"]) -> None:
        if isinstance(other, (bytes, bytearray)):
            other = Beef.from_bytes(bytes(other))
        bump_map = [self.merge_bump(bump) for bump in other.bumps]
        for _, raw, bump_index in other.txs:
            self.merge_raw_tx(raw, None if bump_index is None else bump_map[bump_index])
        logger.debug("Merged BEEF; now %d transactions, %d BUMPs", len(self.txs), len(self.bumps))

    def get_transaction(self, txid: str) -> Optional[Transaction]:
        position = self._positions.get(txid)
        if position is None:
            return None
        _, raw, bump_index = self.txs[position]
        tx = Transaction.from_raw(raw)
        if bump_index is not None:
            tx.merkle_path = self.bumps[bump_index]
        return tx

    def to_bytes(self) -> bytes:
        data = struct.pack("<I", BEEF_V1)
        data += encode_varint(len(self.bumps))
        for bump in self.bumps:
            data += bump
        data += encode_varint(len(self.txs))
        for _, raw, bump_index in self.txs:
            data += raw
            if bump_index is None:
                data += b"\x00"
            else:
                data += b"\x01" + encode_varint(bump_index)
        return data

    def to_hex(self) -> str:
        return b_to_h(self.to_bytes())

    @classmethod
    def from_bytes(cls, data: bytes) -> "Beef":
        if len(data) < 4:
            raise BeefDecodeError("Truncated BEEF")
        (version,) = struct.unpack_from("<I", data, 0)
        if version != BEEF_V1:
            raise BeefDecodeError(f"Unsupported BEEF version {version:#010x}")
        cursor = 4

        beef = cls()
        try:
            n_bumps, size = parse_compact_size(data, cursor)
            cursor += size
            for _ in range(n_bumps):
                length = _bump_length(data, cursor)
                beef.bumps.append(data[cursor : cursor + length])
                cursor += length

            n_txs, size = parse_compact_size(data, cursor)
            cursor += size
            for _ in range(n_txs):
                start = cursor
                _, cursor = Transaction.parse(data, cursor)
                raw = data[start:cursor]
                if cursor >= len(data):
                    raise BeefDecodeError("Truncated BEEF")
                has_bump = data[cursor]
                cursor += 1
                bump_index = None
                if has_bump:
                    bump_index, size = parse_compact_size(data, cursor)
                    cursor += size
                    if bump_index >= len(beef.bumps):
                        raise BeefDecodeError(f"BUMP index {bump_index} out of range")
                beef.merge_raw_tx(raw, bump_index)
        except BeefDecodeError:
            raise
        except ValueError as e:
            raise BeefDecodeError(f"Malformed BEEF: {e}") from e

        return beef
