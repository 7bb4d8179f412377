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
    ConfigurationError,
    InvalidUtf8Error,
    MalformedEnvelopeError,
    UnexpectedEndifPositionError,
)
from bsvutils.inscriptions import (
    Inscription,
    apply_inscription,
    decode_inscription,
    decode_map_metadata,
    encode_map_metadata,
    encode_ordinal_envelope,
)
from bsvutils.opreturn import encode_op_return
from bsvutils.script import OP_ENDIF, Script
from bsvutils.validation import encode_p2pkh

ENVELOPE_HEAD = ["OP_0", "OP_IF", b"ord", "OP_1", b"application/bsv-20", "OP_0"]


class TestOrdinalEnvelope(unittest.TestCase):
    def setUp(self):
        self.p2pkh = encode_p2pkh("751e76e8199196d454941c45d1b3a323f1433bd6")

    def test_envelope_layout_with_content_type(self):
        script = encode_ordinal_envelope("text/plain", b"hello", self.p2pkh)
        self.assertEqual(script.find_op(OP_ENDIF), 9)
        self.assertEqual(script.chunks[6].data, b"text/plain")
        self.assertEqual(script.chunks[8].data, b"hello")
        self.assertEqual(script.to_hex()[-50:], self.p2pkh.to_hex())

    def test_decode_with_content_type(self):
        script = encode_ordinal_envelope("application/json", b'{"p":"bsv-20"}', self.p2pkh)
        self.assertEqual(
            decode_inscription(script),
            Inscription("application/json", b'{"p":"bsv-20"}'),
        )

    def test_decode_without_content_type(self):
        script = encode_ordinal_envelope(None, b"\x00\x01\x02", self.p2pkh)
        self.assertEqual(script.find_op(OP_ENDIF), 7)
        inscription = decode_inscription(script.to_hex())
        self.assertEqual(inscription.content_type, "application/octet-stream")
        self.assertEqual(inscription.payload, b"\x00\x01\x02")

    def test_no_envelope(self):
        self.assertIsNone(decode_inscription(self.p2pkh))

    def test_unexpected_endif_position(self):
        script = Script(ENVELOPE_HEAD + ["OP_ENDIF"]) + self.p2pkh
        with self.assertRaises(UnexpectedEndifPositionError) as cm:
            decode_inscription(script)
        self.assertEqual(cm.exception.position, 6)

    def test_missing_endif(self):
        script = Script(ENVELOPE_HEAD + [b"payload"]) + self.p2pkh
        self.assertRaises(MalformedEnvelopeError, decode_inscription, script)

    def test_empty_payload_chunk(self):
        script = Script(ENVELOPE_HEAD + ["OP_0", "OP_ENDIF"]) + self.p2pkh
        self.assertRaises(MalformedEnvelopeError, decode_inscription, script)

    def test_invalid_utf8_content_type(self):
        script = Script(ENVELOPE_HEAD + [b"\xff\xfe", "OP_0", b"data", "OP_ENDIF"])
        self.assertRaises(InvalidUtf8Error, decode_inscription, script + self.p2pkh)

    def test_encode_validation(self):
        self.assertRaises(ConfigurationError, encode_ordinal_envelope, "text/plain", b"", self.p2pkh)
        self.assertRaises(ConfigurationError, encode_ordinal_envelope, "", b"x", self.p2pkh)

    def test_base64_inscription(self):
        inscription = Inscription.from_base64("aGVsbG8=", "text/plain")
        self.assertEqual(inscription.payload, b"hello")
        self.assertEqual(inscription.data_b64, "aGVsbG8=")
        self.assertRaises(ConfigurationError, Inscription.from_base64, "not base64!", "text/plain")


class TestMapMetadata(unittest.TestCase):
    def setUp(self):
        self.p2pkh = encode_p2pkh("751e76e8199196d454941c45d1b3a323f1433bd6")
        self.fields = {"app": "myapp", "type": "token", "name": "Gold"}

    def test_encode_layout(self):
        script = encode_map_metadata(self.fields)
        self.assertEqual(
            script.get_script()[:3],
            ["OP_RETURN", b"1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5".hex(), b"SET".hex()],
        )
        self.assertEqual(
            [chunk.data for chunk in script.chunks[3:]],
            [b"app", b"myapp", b"type", b"token", b"name", b"Gold"],
        )

    def test_decode(self):
        script = self.p2pkh + encode_map_metadata(self.fields)
        self.assertEqual(decode_map_metadata(script), self.fields)

    def test_reserved_cmd_key_skipped(self):
        fields = dict(self.fields, cmd="DEL")
        self.assertEqual(decode_map_metadata(encode_map_metadata(fields)), self.fields)

    def test_required_keys(self):
        self.assertRaises(ConfigurationError, encode_map_metadata, {"app": "myapp"})
        self.assertRaises(ConfigurationError, encode_map_metadata, {"app": "", "type": "t"})

    def test_decode_non_map(self):
        self.assertIsNone(decode_map_metadata(self.p2pkh))
        self.assertIsNone(decode_map_metadata(encode_op_return(self.p2pkh, ["hello", "SET"])))

    def test_decode_missing_type(self):
        script = Script(["OP_RETURN", b"1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5", b"SET", b"app", b"x"])
        self.assertIsNone(decode_map_metadata(script))

    def test_decode_invalid_utf8(self):
        script = Script(
            ["OP_RETURN", b"1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5", b"SET", b"app", b"\xff"]
        )
        self.assertRaises(InvalidUtf8Error, decode_map_metadata, script)

    def test_decode_invalid_utf8_prefix(self):
        script = Script(
            ["OP_RETURN", b"\xff\xfe\xfd", b"SET", b"app", b"myapp", b"type", b"token"]
        )
        self.assertRaises(InvalidUtf8Error, decode_map_metadata, script)

    def test_decode_invalid_utf8_command(self):
        script = Script(["OP_RETURN", b"1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5", b"\xc3\x28"])
        self.assertRaises(InvalidUtf8Error, decode_map_metadata, script)


class TestApplyInscription(unittest.TestCase):
    def setUp(self):
        self.p2pkh = encode_p2pkh("751e76e8199196d454941c45d1b3a323f1433bd6")
        self.inscription = Inscription("text/plain", b"hi")
        self.metadata = {"app": "myapp", "type": "note"}

    def test_inscription_and_metadata(self):
        script = apply_inscription(self.p2pkh, self.inscription, self.metadata)
        self.assertEqual(decode_inscription(script), self.inscription)
        self.assertEqual(decode_map_metadata(script), self.metadata)
        self.assertEqual(script.get_script_type(), "Ordinal")

    def test_separator(self):
        script = apply_inscription(self.p2pkh, self.inscription, with_separator=True)
        self.assertEqual(script.get_script()[10], "OP_CODESEPARATOR")
        self.assertEqual(decode_inscription(script), self.inscription)

    def test_nothing_to_apply(self):
        self.assertEqual(apply_inscription(self.p2pkh), self.p2pkh)


if __name__ == "__main__":
    unittest.main()
