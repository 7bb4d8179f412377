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

__version__ = "0.1.0"

from bsvutils.setup import setup, get_sat_per_kb

from bsvutils.errors import (
    BsvUtilsError,
    ConfigurationError,
    InvalidTypeError,
    ScriptDecodeError,
    MalformedEnvelopeError,
    UnexpectedEndifPositionError,
    InvalidUtf8Error,
    PreimageError,
    MissingOutputForSingleError,
    MissingSourceDataError,
    TransactionBuildError,
    UnlockingScriptError,
    ChangeComputationError,
    BuilderStateError,
    BeefDecodeError,
)

from bsvutils.script import Script, ScriptChunk

from bsvutils.keys import PublicKey

from bsvutils.transactions import Transaction, TxInput, TxOutput

from bsvutils.beef import Beef

from bsvutils.validation import (
    encode_p2pkh,
    is_p2pkh,
    has_ord,
    is_ordinal,
    has_op_return_data,
    classify,
)

from bsvutils.opreturn import encode_op_return, decode_op_return

from bsvutils.inscriptions import (
    Inscription,
    encode_ordinal_envelope,
    decode_inscription,
    encode_map_metadata,
    decode_map_metadata,
    apply_inscription,
)

from bsvutils.preimage import calculate_preimage, format_preimage, signature_scope

from bsvutils.wallet import DerivationParams, WalletInterface, get_derivation

from bsvutils.templates import WalletP2PKH, WalletOrdP2PKH

from bsvutils.builder import TransactionBuilder, BuilderPhase

__all__ = [
    'setup',
    'get_sat_per_kb',
    'BsvUtilsError',
    'ConfigurationError',
    'InvalidTypeError',
    'ScriptDecodeError',
    'MalformedEnvelopeError',
    'UnexpectedEndifPositionError',
    'InvalidUtf8Error',
    'PreimageError',
    'MissingOutputForSingleError',
    'MissingSourceDataError',
    'TransactionBuildError',
    'UnlockingScriptError',
    'ChangeComputationError',
    'BuilderStateError',
    'BeefDecodeError',
    'Script',
    'ScriptChunk',
    'PublicKey',
    'Transaction',
    'TxInput',
    'TxOutput',
    'Beef',
    'encode_p2pkh',
    'is_p2pkh',
    'has_ord',
    'is_ordinal',
    'has_op_return_data',
    'classify',
    'encode_op_return',
    'decode_op_return',
    'Inscription',
    'encode_ordinal_envelope',
    'decode_inscription',
    'encode_map_metadata',
    'decode_map_metadata',
    'apply_inscription',
    'calculate_preimage',
    'format_preimage',
    'signature_scope',
    'DerivationParams',
    'WalletInterface',
    'get_derivation',
    'WalletP2PKH',
    'WalletOrdP2PKH',
    'TransactionBuilder',
    'BuilderPhase',
]
