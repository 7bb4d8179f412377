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


import base64
import json
import unittest

from bsvutils.errors import ConfigurationError, InvalidTypeError
from bsvutils.wallet import (
    DEFAULT_P2PKH_PARAMS,
    DerivationParams,
    DerivationRecord,
    get_derivation,
    split_key_id,
    to_derivation_params,
)


class TestDerivationParams(unittest.TestCase):
    def test_to_args(self):
        self.assertEqual(
            DEFAULT_P2PKH_PARAMS.to_args(),
            {"protocolID": [2, "p2pkh"], "keyID": "0", "counterparty": "self"},
        )

    def test_from_dict(self):
        params = to_derivation_params({"protocolID": [1, "app"], "keyID": "42"})
        self.assertEqual(params, DerivationParams((1, "app"), "42", "self"))
        self.assertIsInstance(params.protocol_id, tuple)
        self.assertRaises(ConfigurationError, to_derivation_params, {"keyID": "1"})
        self.assertRaises(InvalidTypeError, to_derivation_params, "p2pkh")

    def test_from_dict_with_defaults(self):
        params = to_derivation_params({"keyID": "1"}, DEFAULT_P2PKH_PARAMS)
        self.assertEqual(params, DerivationParams((2, "p2pkh"), "1", "self"))
        params = to_derivation_params({"protocolID": [0, "app"]}, DEFAULT_P2PKH_PARAMS)
        self.assertEqual(params, DerivationParams((0, "app"), "0", "self"))
        self.assertEqual(to_derivation_params({}, DEFAULT_P2PKH_PARAMS), DEFAULT_P2PKH_PARAMS)

    def test_validation(self):
        self.assertRaises(ConfigurationError, DerivationParams, (3, "app"), "1")
        self.assertRaises(ConfigurationError, DerivationParams, (2, ""), "1")
        self.assertRaises(ConfigurationError, DerivationParams, (2, "app"), "")
        self.assertRaises(InvalidTypeError, DerivationParams, "app", "1")


class TestDerivation(unittest.TestCase):
    def test_generated_params(self):
        params = get_derivation()
        self.assertEqual(params.protocol_id, (2, "3241645161d8"))
        self.assertEqual(params.counterparty, "self")
        prefix, suffix = split_key_id(params)
        self.assertEqual(len(base64.b64decode(prefix)), 8)
        self.assertEqual(len(base64.b64decode(suffix)), 8)

    def test_unique(self):
        self.assertNotEqual(get_derivation().key_id, get_derivation().key_id)

    def test_custom_instructions(self):
        record = DerivationRecord(1, "cHJlZml4", "c3VmZml4")
        text = record.to_custom_instructions()
        self.assertEqual(text, '{"derivationPrefix":"cHJlZml4","derivationSuffix":"c3VmZml4"}')
        self.assertEqual(json.loads(text)["derivationSuffix"], "c3VmZml4")


if __name__ == "__main__":
    unittest.main()
