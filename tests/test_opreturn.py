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
from bsvutils.opreturn import decode_op_return, encode_op_return
from bsvutils.script import Script
from bsvutils.validation import encode_p2pkh


class TestOpReturn(unittest.TestCase):
    def setUp(self):
        self.p2pkh = encode_p2pkh("751e76e8199196d454941c45d1b3a323f1433bd6")

    def test_hex_and_text_fields(self):
        script = encode_op_return(Script([]), ["deadbeef", "hello"])
        self.assertEqual(script.to_hex(), "6a04deadbeef0568656c6c6f")
        self.assertEqual(decode_op_return(script), [b"\xde\xad\xbe\xef", b"hello"])

    def test_uppercase_hex_and_odd_length(self):
        # odd length is text, not hex
        script = encode_op_return(Script([]), ["DEADBEEF", "abc"])
        self.assertEqual(decode_op_return(script), [b"\xde\xad\xbe\xef", b"abc"])

    def test_bytes_and_byte_lists(self):
        script = encode_op_return(self.p2pkh, [b"\x01\x02", [3, 4, 255]])
        self.assertEqual(script.to_hex(), self.p2pkh.to_hex() + "6a020102030304ff")
        self.assertEqual(decode_op_return(script.to_hex()), [b"\x01\x02", b"\x03\x04\xff"])

    def test_original_script_unchanged(self):
        before = self.p2pkh.to_hex()
        encode_op_return(self.p2pkh, ["aa"])
        self.assertEqual(self.p2pkh.to_hex(), before)

    def test_second_op_return_rejected(self):
        script = encode_op_return(self.p2pkh, ["aa"])
        self.assertRaises(ConfigurationError, encode_op_return, script, ["bb"])

    def test_invalid_fields(self):
        self.assertRaises(ConfigurationError, encode_op_return, self.p2pkh, [])
        self.assertRaises(InvalidTypeError, encode_op_return, self.p2pkh, [42])
        self.assertRaises(InvalidTypeError, encode_op_return, self.p2pkh, [[1, 256]])
        self.assertRaises(InvalidTypeError, encode_op_return, self.p2pkh, [[1, "a"]])
        self.assertRaises(InvalidTypeError, encode_op_return, self.p2pkh.to_hex(), ["aa"])

    def test_decode_without_data(self):
        self.assertIsNone(decode_op_return(self.p2pkh))
        self.assertIsNone(decode_op_return(Script(["OP_RETURN"])))

    def test_decode_skips_empty_pushes(self):
        self.assertEqual(decode_op_return("6a0002aabb"), [b"\xaa\xbb"])


if __name__ == "__main__":
    unittest.main()
