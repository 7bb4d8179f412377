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


import unittest

from bsvutils.beef import Beef
from bsvutils.errors import BeefDecodeError
from bsvutils.validation import encode_p2pkh

from tests.wallet_helper import make_funding_tx


def make_bump(txid_hex):
    # block height 800000, one level, the tx and its sibling
    return (
        b"\xfe\x00\x35\x0c\x00"
        + b"\x01"
        + b"\x02"
        + b"\x00\x02"
        + bytes.fromhex(txid_hex)[::-1]
        + b"\x01\x00"
        + b"\x55" * 32
    )


class TestBeef(unittest.TestCase):
    def setUp(self):
        self.lock = encode_p2pkh("751e76e8199196d454941c45d1b3a323f1433bd6")
        self.grandparent = make_funding_tx([(5000, self.lock)])
        self.parent = make_funding_tx([(3000, self.lock), (1900, self.lock)], self.grandparent)
        self.child_a = make_funding_tx([(2900, self.lock)], self.parent, 0)
        self.child_b = make_funding_tx([(1800, self.lock)], self.parent, 1)

    def test_version_prefix(self):
        self.assertEqual(self.grandparent.to_beef()[:4], bytes.fromhex("0100beef"))

    def test_ancestors_first(self):
        beef = Beef.from_bytes(self.child_a.to_beef())
        self.assertEqual(
            beef.txids,
            [self.grandparent.get_txid(), self.parent.get_txid(), self.child_a.get_txid()],
        )
        self.assertEqual(beef.get_transaction(self.child_a.get_txid()).to_hex(), self.child_a.to_hex())

    def test_merge_dedupes_shared_ancestors(self):
        merged = Beef()
        merged.merge_beef(self.child_a.to_beef())
        merged.merge_beef(self.child_b.to_beef())
        self.assertEqual(len(merged), 4)
        self.assertEqual(merged.txids[-1], self.child_b.get_txid())
        self.assertIn(self.parent.get_txid(), merged)

        reparsed = Beef.from_bytes(merged.to_bytes())
        self.assertEqual(reparsed.txids, merged.txids)

    def test_proven_ancestor_ends_walk(self):
        self.parent.merkle_path = make_bump(self.parent.get_txid())
        beef = Beef.from_bytes(self.child_a.to_beef())
        self.assertEqual(beef.txids, [self.parent.get_txid(), self.child_a.get_txid()])
        self.assertEqual(len(beef.bumps), 1)
        proven = beef.get_transaction(self.parent.get_txid())
        self.assertEqual(proven.merkle_path, self.parent.merkle_path)
        self.assertIsNone(beef.get_transaction(self.child_a.get_txid()).merkle_path)

    def test_merge_dedupes_bumps(self):
        self.parent.merkle_path = make_bump(self.parent.get_txid())
        merged = Beef()
        merged.merge_beef(self.child_a.to_beef())
        merged.merge_beef(Beef.from_bytes(self.child_b.to_beef()))
        self.assertEqual(len(merged.bumps), 1)
        self.assertEqual(len(merged), 3)

    def test_proof_upgrades_unproven_copy(self):
        beef = Beef()
        beef.merge_raw_tx(self.parent.to_bytes())
        index = beef.merge_bump(make_bump(self.parent.get_txid()))
        beef.merge_raw_tx(self.parent.to_bytes(), index)
        self.assertEqual(beef.txs[0][2], index)

    def test_decode_errors(self):
        self.assertRaises(BeefDecodeError, Beef.from_bytes, b"\x01\x00")
        self.assertRaises(BeefDecodeError, Beef.from_bytes, bytes.fromhex("0200beef0000"))
        truncated = self.child_a.to_beef()[:-8]
        self.assertRaises(BeefDecodeError, Beef.from_bytes, truncated)
        self.assertRaises(BeefDecodeError, Beef.from_bytes, bytes.fromhex("0100beef00") + b"\x05")


if __name__ == "__main__":
    unittest.main()
