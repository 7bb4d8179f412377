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


from bsvutils.errors import InvalidUtf8Error
from bsvutils.inscriptions import decode_inscription, decode_map_metadata
from bsvutils.opreturn import decode_op_return
from bsvutils.script import Script
from bsvutils.validation import classify


def main():
    scripts = [
        # P2PKH
        "76a914751e76e8199196d454941c45d1b3a323f1433bd688ac",
        # OP_RETURN with a hex and a text field
        "6a04deadbeef0568656c6c6f",
        # inscribed P2PKH with MAP metadata
        "0063036f726451126170706c69636174696f6e2f6273762d3230000a746578742f706c61696e"
        "0002676d6876a914751e76e8199196d454941c45d1b3a323f1433bd688ac6a22315075516137"
        "4b36324d694b43747373534c4b79316b683536575755374d74555235035345540361707007"
        "6578616d706c650474797065046e6f7465",
    ]

    for raw in scripts:
        script = Script.from_raw(raw)
        print("\nScript: " + script.to_asm())
        print("Type: " + classify(script))

        inscription = decode_inscription(script)
        if inscription is not None:
            print("Inscription: " + repr(inscription))
        try:
            metadata = decode_map_metadata(script)
        except InvalidUtf8Error:
            # binary OP_RETURN data is not MAP
            metadata = None
        if metadata is not None:
            print("MAP metadata: " + str(metadata))
        elif decode_op_return(script) is not None:
            print("OP_RETURN data: " + str(decode_op_return(script)))


if __name__ == "__main__":
    main()
