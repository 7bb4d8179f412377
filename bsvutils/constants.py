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

# Constants related to transaction signature types (BIP143 with FORKID)
SIGHASH_ALL = 0x01
SIGHASH_NONE = 0x02
SIGHASH_SINGLE = 0x03
SIGHASH_FORKID = 0x40
SIGHASH_ANYONECANPAY = 0x80

# signing scope selectors accepted by the unlocking templates
SIGN_OUTPUTS = {
    "all": SIGHASH_ALL,
    "none": SIGHASH_NONE,
    "single": SIGHASH_SINGLE,
}


# Transaction defaults
DEFAULT_TX_VERSION = 1
DEFAULT_TX_LOCKTIME = 0
DEFAULT_TX_SEQUENCE = 0xFFFFFFFF


# Fees -- a fixed linear rate
DEFAULT_SAT_PER_KB = 100


# length in bytes of a P2PKH unlocking script (push sig+scope, push pubkey)
# used for fee estimation before signing
P2PKH_UNLOCKING_SCRIPT_LENGTH = 108


# Wallet derivation defaults
BRC29_PROTOCOL_ID = (2, "3241645161d8")
P2PKH_PROTOCOL_ID = (2, "p2pkh")
DEFAULT_KEY_ID = "0"
DEFAULT_COUNTERPARTY = "self"
DERIVATION_RANDOM_BYTES = 8


# Ordinal inscriptions -- BSV-20 envelope
ORD_PROTOCOL_TAG = b"ord"
BSV20_CONTENT_TAG = b"application/bsv-20"
DEFAULT_INSCRIPTION_CONTENT_TYPE = "application/octet-stream"
# OP_0 OP_IF <"ord"> OP_1 <"application/bsv-20"> OP_0
ORDINAL_ENVELOPE_PREFIX_HEX = "0063036f726451126170706c69636174696f6e2f6273762d323000"
ENVELOPE_ENDIF_INDEX_WITH_CONTENT_TYPE = 9
ENVELOPE_ENDIF_INDEX_WITHOUT_CONTENT_TYPE = 7


# MAP metadata protocol
MAP_PREFIX = "1PuQa7K62MiKCtssSLKy1kh56WWU7MtUR5"
MAP_SET_COMMAND = "SET"
MAP_RESERVED_KEY = "cmd"


# Script classification results
SCRIPT_TYPE_ORDINAL = "Ordinal"
SCRIPT_TYPE_P2PKH = "P2PKH"
SCRIPT_TYPE_OP_RETURN = "OpReturn"
SCRIPT_TYPE_CUSTOM = "Custom"


# BEEF (BRC-62) envelope version, serialized little-endian as 01 00 be ef
BEEF_V1 = 4022206465


# createAction default descriptions
DEFAULT_TX_DESCRIPTION = "Transaction"
DEFAULT_INPUT_DESCRIPTION = "Transaction input"
DEFAULT_OUTPUT_DESCRIPTION = "Transaction output"
DEFAULT_CHANGE_DESCRIPTION = "Change"


# createAction options and their expected value types
BOOLEAN_ACTION_OPTIONS = (
    "signAndProcess",
    "acceptDelayedBroadcast",
    "returnTXIDOnly",
    "noSend",
    "randomizeOutputs",
)
STRING_LIST_ACTION_OPTIONS = ("knownTxids", "noSendChange", "sendWith")
TRUST_SELF_VALUES = ("known", "all")
