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

from bsvutils.errors import (
    ChangeComputationError,
    ConfigurationError,
    InvalidTypeError,
    MissingSourceDataError,
    UnlockingScriptError,
)
from bsvutils.script import Script
from bsvutils.setup import get_sat_per_kb, setup
from bsvutils.transactions import Transaction, TxInput, TxOutput
from bsvutils.validation import encode_p2pkh


class FixedTemplate:
    """Unlocking template that pushes fixed data"""

    def __init__(self, length=108):
        self.length = length
        self.signed = []

    def sign(self, tx, input_index):
        self.signed.append(input_index)
        return Script([b"\x30" * 73, b"\x02" * 33])

    def estimate_length(self):
        return self.length


class TestSerialization(unittest.TestCase):
    def setUp(self):
        self.genesis_coinbase = (
            "01000000010000000000000000000000000000000000000000000000000000000000000000"
            "ffffffff4d04ffff001d0104455468652054696d65732030332f4a616e2f32303039204368"
            "616e63656c6c6f72206f6e206272696e6b206f66207365636f6e64206261696c6f757420"
            "666f722062616e6b73ffffffff0100f2052a01000000434104678afdb0fe5548271967f1"
            "a67130b7105cd6a828e03909a67962e0ea1f61deb649f6bc3f4cef38c4f35504e51ec112"
            "de5c384df7ba0b8d578a4c702b6bf11d5fac00000000"
        )
        self.genesis_txid = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"

    def test_from_raw_and_back(self):
        tx = Transaction.from_raw(self.genesis_coinbase)
        self.assertEqual(tx.to_hex(), self.genesis_coinbase)
        self.assertEqual(tx.get_txid(), self.genesis_txid)
        self.assertEqual(tx.outputs[0].satoshis, 5000000000)
        self.assertEqual(tx.inputs[0].source_output_index, 0xFFFFFFFF)

    def test_trailing_data(self):
        self.assertRaises(ValueError, Transaction.from_raw, self.genesis_coinbase + "00")

    def test_truncated(self):
        self.assertRaises(ValueError, Transaction.from_raw, self.genesis_coinbase[:-10])

    def test_outpoint_byte_order(self):
        txin = TxInput("00" * 31 + "01", 2)
        self.assertEqual(txin.outpoint_bytes(), b"\x01" + b"\x00" * 31 + b"\x02\x00\x00\x00")

    def test_input_from_source_transaction(self):
        source = Transaction.from_raw(self.genesis_coinbase)
        txin = TxInput(source_transaction=source, source_output_index=0)
        self.assertEqual(txin.source_txid, self.genesis_txid)
        self.assertEqual(txin.get_source_satoshis(), 5000000000)
        self.assertEqual(txin.get_source_locking_script(), source.outputs[0].locking_script)

    def test_invalid_input(self):
        self.assertRaises(ConfigurationError, TxInput)
        self.assertRaises(ConfigurationError, TxInput, "abcd", 0)
        self.assertRaises(ConfigurationError, TxInput, "00" * 32, -1)
        self.assertRaises(ConfigurationError, TxInput, "00" * 32, 0, None, 2**32)

    def test_invalid_output(self):
        script = Script(["OP_1"])
        self.assertRaises(ConfigurationError, TxOutput, None, script)
        self.assertRaises(ConfigurationError, TxOutput, -1, script)
        self.assertRaises(InvalidTypeError, TxOutput, 1.5, script)
        self.assertRaises(InvalidTypeError, TxOutput, 1, "51")

    def test_undetermined_change_does_not_serialize(self):
        tx = Transaction([TxInput("00" * 32, 0)], [TxOutput(None, Script(["OP_1"]), change=True)])
        self.assertRaises(ChangeComputationError, tx.to_bytes)


class TestFeeAndChange(unittest.TestCase):
    def setUp(self):
        self.lock = encode_p2pkh("751e76e8199196d454941c45d1b3a323f1433bd6")

    def _tx(self, input_satoshis, outputs, template=None):
        tx = Transaction()
        for satoshis in input_satoshis:
            tx.add_input(
                TxInput(
                    "22" * 32,
                    len(tx.inputs),
                    unlocking_script_template=template or FixedTemplate(),
                    source_satoshis=satoshis,
                )
            )
        for satoshis in outputs:
            tx.add_output(TxOutput(satoshis, self.lock, change=satoshis is None))
        return tx

    def test_estimate_size(self):
        tx = self._tx([1000], [500, None])
        # 4 + 1 + (36 + 1 + 108 + 4) + 1 + 2 * (8 + 1 + 25) + 4
        self.assertEqual(tx.estimate_size(), 227)

    def test_fee_rounds_up(self):
        tx = self._tx([1000], [500])
        self.assertEqual(tx.fee(100), 20)
        self.assertEqual(tx.fee(1000), 193)
        self.assertEqual(tx.fee(0), 0)

    def test_change(self):
        tx = self._tx([1000, 2000], [500, None])
        fee = tx.fee(500)
        self.assertEqual(tx.outputs[1].satoshis, 3000 - 500 - fee)

    def test_change_split_remainder_to_first(self):
        tx = self._tx([1001], [None, 100, None])
        tx.fee(0)
        self.assertEqual([o.satoshis for o in tx.outputs], [451, 100, 450])

    def test_insufficient_change(self):
        tx = self._tx([101], [100, None, None])
        tx.fee(0)
        self.assertIsNone(tx.outputs[1].satoshis)
        self.assertRaises(ChangeComputationError, tx.sign)

    def test_missing_source_satoshis(self):
        tx = Transaction(
            [TxInput("22" * 32, 0, unlocking_script_template=FixedTemplate())],
            [TxOutput(None, self.lock, change=True)],
        )
        self.assertRaises(MissingSourceDataError, tx.fee, 0)

    def test_default_rate(self):
        tx = self._tx([1000], [500])
        try:
            setup(1000)
            self.assertEqual(get_sat_per_kb(), 1000)
            self.assertEqual(tx.fee(), 193)
        finally:
            setup()
        self.assertRaises(ConfigurationError, setup, -1)
        self.assertRaises(ConfigurationError, setup, True)

    def test_sign_in_order(self):
        template = FixedTemplate()
        tx = self._tx([1000, 1000], [1500, None], template)
        tx.fee(0)
        tx.sign()
        self.assertEqual(template.signed, [0, 1])
        self.assertEqual(len(tx.inputs[0].unlocking_script.to_bytes()), 108)
        self.assertEqual(tx.get_size(), tx.estimate_size())

    def test_sign_without_template(self):
        tx = Transaction([TxInput("22" * 32, 0)], [TxOutput(1, self.lock)])
        self.assertRaises(UnlockingScriptError, tx.sign)
        self.assertRaises(UnlockingScriptError, tx.estimate_size)


if __name__ == "__main__":
    unittest.main()
