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

"""A deterministic in-memory wallet for the tests

Child keys are root + sha256(protocol, key id, counterparty) modulo the curve
order, so the same derivation always yields the same key.
"""

import hashlib

from coincurve import PrivateKey as CurvePrivateKey
from ecdsa import SECP256k1  # type: ignore

from bsvutils.script import Script
from bsvutils.transactions import Transaction, TxInput, TxOutput
from bsvutils.validation import encode_p2pkh
from bsvutils.hashfunctions import hash160
from bsvutils.wallet import DEFAULT_P2PKH_PARAMS, to_derivation_params


ROOT_SECRET = 0x4C8F2A1D9E6B3C7F5A0E2D4B6C8A1F3E5D7C9B0A2E4F6A8C1D3B5E7F9A0C2E4


class FakeWallet:
    def __init__(self, root_secret=ROOT_SECRET, txid="ab" * 32):
        self.root_secret = root_secret
        self.txid = txid
        self.calls = []
        self.actions = []

    def private_key(self, args):
        level, name = args["protocolID"]
        info = f"{level}-{name}-{args['keyID']}-{args['counterparty']}"
        tweak = int.from_bytes(hashlib.sha256(info.encode("utf-8")).digest(), "big")
        secret = (self.root_secret + tweak) % SECP256k1.order
        return CurvePrivateKey(secret.to_bytes(32, "big"))

    def public_key_bytes(self, params=DEFAULT_P2PKH_PARAMS):
        args = to_derivation_params(params).to_args()
        return self.private_key(args).public_key.format(compressed=True)

    def get_public_key(self, args):
        self.calls.append(("get_public_key", dict(args)))
        return {"publicKey": self.private_key(args).public_key.format(compressed=True).hex()}

    def create_signature(self, args):
        self.calls.append(("create_signature", dict(args)))
        digest = bytes(args["hashToDirectlySign"])
        der = self.private_key(args).sign(digest, hasher=None)
        # wallets answer with a list of byte values
        return {"signature": list(der)}

    def create_action(self, args):
        self.calls.append(("create_action", args))
        self.actions.append(args)
        return {"txid": self.txid, "tx": [1, 2, 3]}

    def count(self, method):
        return len([call for call in self.calls if call[0] == method])


def make_funding_tx(outputs, parent=None, parent_index=0):
    """A transaction paying the given (satoshis, locking script) pairs

    Spends output parent_index of parent when given, otherwise an arbitrary
    outpoint.
    """
    if parent is not None:
        txin = TxInput(source_transaction=parent, source_output_index=parent_index)
    else:
        txin = TxInput("11" * 32, 0, Script([]))
    return Transaction([txin], [TxOutput(sats, script) for sats, script in outputs])


def wallet_lock(wallet, params=DEFAULT_P2PKH_PARAMS):
    """The P2PKH locking script of a wallet key"""
    return encode_p2pkh(hash160(wallet.public_key_bytes(params)))
