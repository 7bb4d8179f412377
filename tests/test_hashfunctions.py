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

from bsvutils.hashfunctions import hash160, hash256, ripemd160, sha256
from bsvutils.utils import b_to_h


class TestRipemd160(unittest.TestCase):
    def test_known_digests(self):
        self.assertEqual(b_to_h(ripemd160(b"")), "9c1185a5c5e9fc54612808977ee8f548b2258d31")
        self.assertEqual(b_to_h(ripemd160(b"abc")), "8eb208f7e05d987a9b044a8e98c6b087f15a0bfc")
        self.assertEqual(
            b_to_h(ripemd160(b"message digest")), "5d0689ef49d2fae572b881b123a85ffa21595f36"
        )
        self.assertEqual(b_to_h(ripemd160(b"hello")), "108f07b8382412612c048d07d13f814118445acd")

    def test_multiblock_message(self):
        self.assertEqual(
            b_to_h(ripemd160(b"1234567890" * 8)), "9b752e45573d4b39f4dbd3323cab82bf63326bfb"
        )


class TestHashes(unittest.TestCase):
    def test_sha256(self):
        self.assertEqual(
            b_to_h(sha256(b"abc")),
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad",
        )

    def test_hash256(self):
        self.assertEqual(
            b_to_h(hash256(b"")),
            "5df6e0e2761359d30a8275058e299fcc0381534545f55cf43e41983f5d4c9456",
        )

    def test_hash160_of_generator(self):
        pubkey = bytes.fromhex(
            "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
        )
        self.assertEqual(b_to_h(hash160(pubkey)), "751e76e8199196d454941c45d1b3a323f1433bd6")


if __name__ == "__main__":
    unittest.main()
