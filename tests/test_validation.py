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

from bsvutils.errors import ConfigurationError, InvalidTypeError
from bsvutils.inscriptions import apply_inscription, Inscription
from bsvutils.script import Script
from bsvutils.validation import (
    classify,
    encode_p2pkh,
    has_op_return_data,
    has_ord,
    is_ordinal,
    is_p2pkh,
)


class TestValidation(unittest.TestCase):
    def setUp(self):
        self.pkh = "751e76e8199196d454941c45d1b3a323f1433bd6"
        self.p2pkh = encode_p2pkh(self.pkh)
        self.inscribed = apply_inscription(
            self.p2pkh, Inscription("text/plain", b"hello world")
        )

    def test_encode_p2pkh(self):
        self.assertEqual(self.p2pkh.to_hex(), "76a914" + self.pkh + "88ac")
        self.assertEqual(encode_p2pkh(bytes.fromhex(self.pkh)), self.p2pkh)

    def test_encode_p2pkh_invalid(self):
        self.assertRaises(ConfigurationError, encode_p2pkh, "abcd")
        self.assertRaises(InvalidTypeError, encode_p2pkh, 1234)

    def test_is_p2pkh(self):
        self.assertTrue(is_p2pkh(self.p2pkh))
        self.assertTrue(is_p2pkh(self.p2pkh.to_hex()))
        self.assertTrue(is_p2pkh(self.p2pkh.to_bytes()))
        self.assertFalse(is_p2pkh(self.inscribed))
        self.assertFalse(is_p2pkh("76a914" + self.pkh + "88"))

    def test_ordinal_checks(self):
        self.assertTrue(has_ord(self.inscribed))
        self.assertTrue(is_ordinal(self.inscribed))
        self.assertFalse(has_ord(self.p2pkh))
        self.assertFalse(is_ordinal(self.p2pkh))

    def test_envelope_without_lock_is_not_ordinal(self):
        envelope_only = apply_inscription(Script(["OP_1"]), Inscription("text/plain", b"x"))
        self.assertTrue(has_ord(envelope_only))
        self.assertFalse(is_ordinal(envelope_only))
        self.assertEqual(classify(envelope_only), "Custom")

    def test_op_return_data(self):
        self.assertTrue(has_op_return_data(Script(["OP_RETURN", "aabb"])))
        self.assertTrue(has_op_return_data(self.p2pkh.to_hex() + "6a02aabb"))
        self.assertFalse(has_op_return_data(self.p2pkh))

    def test_classify(self):
        self.assertEqual(classify(self.inscribed), "Ordinal")
        self.assertEqual(classify(self.p2pkh), "P2PKH")
        self.assertEqual(classify("6a0568656c6c6f"), "OpReturn")
        self.assertEqual(classify("006a0568656c6c6f"), "Custom")
        self.assertEqual(classify(b""), "Custom")

    def test_invalid_input(self):
        self.assertRaises(InvalidTypeError, is_p2pkh, None)
        self.assertRaises(InvalidTypeError, has_ord, "not hex")
        self.assertRaises(InvalidTypeError, classify, 42)


if __name__ == "__main__":
    unittest.main()
