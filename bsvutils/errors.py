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


class BsvUtilsError(Exception):
    """Base class for all errors raised by bsvutils"""


#
# Caller / configuration errors -- raised before any wallet call
#
class ConfigurationError(BsvUtilsError, ValueError):
    """Invalid, missing or mutually exclusive parameters"""


class InvalidTypeError(ConfigurationError, TypeError):
    """A parameter has the wrong type"""


#
# Structural decode errors -- the data claims a known protocol shape but is
# malformed
#
class ScriptDecodeError(BsvUtilsError, ValueError):
    """A script could not be decoded"""


class MalformedEnvelopeError(ScriptDecodeError):
    """An ordinal envelope is missing its terminator or a required chunk"""


class UnexpectedEndifPositionError(ScriptDecodeError):
    """The OP_ENDIF of an ordinal envelope is not at chunk 7 or 9"""

    def __init__(self, position: int) -> None:
        super().__init__(
            f"Unexpected OP_ENDIF position {position} in ordinal envelope "
            "(expected 7 or 9)"
        )
        self.position = position


class InvalidUtf8Error(ScriptDecodeError):
    """A chunk that must be text is not valid UTF-8"""


#
# Preimage errors
#
class PreimageError(BsvUtilsError, ValueError):
    """The signature preimage cannot be computed"""


class MissingOutputForSingleError(PreimageError):
    """SIGHASH_SINGLE requires an output at the signed input's index"""


class MissingSourceDataError(PreimageError):
    """Source txid, satoshis or locking script could not be resolved"""

    def __init__(self, field: str, input_index: int) -> None:
        super().__init__(
            f"Missing {field} for input {input_index}: provide it explicitly "
            "or link the source transaction"
        )
        self.field = field
        self.input_index = input_index


#
# Transaction building errors
#
class TransactionBuildError(BsvUtilsError):
    """A transaction could not be drafted, signed or packaged"""


class UnlockingScriptError(TransactionBuildError):
    """An input has neither an unlocking script nor a template to create it"""


class ChangeComputationError(TransactionBuildError):
    """A change output amount could not be determined after fees"""


class BuilderStateError(TransactionBuildError):
    """A builder operation was called in the wrong phase"""


class BeefDecodeError(BsvUtilsError, ValueError):
    """BEEF data is malformed"""
