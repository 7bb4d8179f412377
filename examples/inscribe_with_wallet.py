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


import hashlib
import json

from coincurve import PrivateKey as CurvePrivateKey

from bsvutils.setup import setup
from bsvutils.builder import TransactionBuilder
from bsvutils.hashfunctions import hash160
from bsvutils.inscriptions import Inscription
from bsvutils.script import Script
from bsvutils.transactions import Transaction, TxInput, TxOutput
from bsvutils.validation import encode_p2pkh


class DemoWallet:
    """Derives every key from one secret; for demonstration only"""

    def __init__(self, secret):
        self.secret = secret

    def _key(self, args):
        level, name = args["protocolID"]
        info = f"{self.secret}-{level}-{name}-{args['keyID']}-{args['counterparty']}"
        return CurvePrivateKey(hashlib.sha256(info.encode()).digest())

    def get_public_key(self, args):
        return {"publicKey": self._key(args).public_key.format().hex()}

    def create_signature(self, args):
        return {"signature": self._key(args).sign(args["hashToDirectlySign"], hasher=None)}

    def create_action(self, args):
        raise NotImplementedError("DemoWallet does not broadcast")


def main():
    # fee rate used when the builder is not given one
    setup(sat_per_kb=100)

    wallet = DemoWallet("correct horse battery staple")

    # the UTXO we spend is locked to the wallet's default P2PKH key
    pubkey = wallet.get_public_key(
        {"protocolID": [2, "p2pkh"], "keyID": "0", "counterparty": "self"}
    )["publicKey"]
    funding = Transaction(
        [TxInput("fb48f4e23bf6ddf606714141ac78c3e921c8c0bebeb7c8abb2c799e9ff96ce6c", 0, Script([]))],
        [TxOutput(20000, encode_p2pkh(hash160(bytes.fromhex(pubkey))))],
    )

    # inscribe a text file into a 1 satoshi output, record a note in an
    # OP_RETURN output and send the rest back as change; outputs without a
    # key get a fresh one-time key
    builder = TransactionBuilder(wallet, "Inscribe a greeting")
    (
        builder.add_p2pkh_input(funding, 0)
        .add_ordinal_p2pkh_output(
            1,
            inscription=Inscription("text/plain", b"gm from bsvutils"),
            metadata={"app": "bsvutils-example", "type": "greeting"},
        )
        .basket("inscriptions")
        .add_custom_output(Script([]), 0)
        .add_op_return(["greeting", "gm"])
        .add_change_output()
    )

    # preview returns the createAction payload without submitting it
    payload = builder.preview()
    payload["inputBEEF"] = payload["inputBEEF"].hex()
    print("\ncreateAction payload:\n" + json.dumps(payload, indent=2))

    tx = builder.signed_transaction
    print("\nRaw signed transaction:\n" + tx.to_hex())
    print("\nSigned transaction size (in bytes):\n" + str(tx.get_size()))


if __name__ == "__main__":
    main()
