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

"""Locking and unlocking script templates backed by a wallet"""

import logging
from typing import Mapping, Optional, Union

from bsvutils.constants import P2PKH_UNLOCKING_SCRIPT_LENGTH
from bsvutils.errors import ConfigurationError, InvalidTypeError
from bsvutils.hashfunctions import hash256
from bsvutils.inscriptions import Inscription, apply_inscription
from bsvutils.keys import PublicKey, to_checksig_format, to_public_key
from bsvutils.preimage import calculate_preimage, signature_scope
from bsvutils.script import Script, ScriptChunk
from bsvutils.transactions import Transaction
from bsvutils.utils import h_to_b
from bsvutils.validation import encode_p2pkh
from bsvutils.wallet import (
    DEFAULT_P2PKH_PARAMS,
    DerivationParams,
    WalletInterface,
    to_derivation_params,
)

logger = logging.getLogger(__name__)


def _wallet_public_key(wallet: WalletInterface, params: DerivationParams) -> PublicKey:
    result = wallet.get_public_key(params.to_args())
    return to_public_key(result["publicKey"])


class P2PKHUnlocker:
    """Signs a P2PKH input with a wallet key

    Methods
    -------
    sign(tx, input_index)
        returns the unlocking script <signature+scope> <compressed public key>
    estimate_length()
        the unlocking script length used for fees before signing
    """

    def __init__(
        self,
        wallet: WalletInterface,
        wallet_params: DerivationParams,
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None,
    ) -> None:
        self.wallet = wallet
        self.wallet_params = wallet_params
        self.sign_outputs = sign_outputs
        self.anyone_can_pay = anyone_can_pay
        self.source_satoshis = source_satoshis
        self.locking_script = locking_script

    def sign(self, tx: Transaction, input_index: int) -> Script:
        preimage, scope = calculate_preimage(
            tx,
            input_index,
            self.sign_outputs,
            self.anyone_can_pay,
            self.source_satoshis,
            self.locking_script,
        )

        args = self.wallet_params.to_args()
        args["hashToDirectlySign"] = hash256(preimage)
        signature = self.wallet.create_signature(args)["signature"]

        public_key = _wallet_public_key(self.wallet, self.wallet_params)

        checksig = to_checksig_format(signature, scope)
        logger.debug("Input %d signed with scope %#04x", input_index, scope)
        return Script([ScriptChunk.push(checksig), ScriptChunk.push(public_key.to_bytes())])

    def estimate_length(self) -> int:
        # push + signature (up to 73 with the scope byte) and
        # push + compressed public key (33)
        return P2PKH_UNLOCKING_SCRIPT_LENGTH


class WalletP2PKH:
    """P2PKH locking and unlocking with keys held by a wallet

    Methods
    -------
    lock(pubkeyhash=None, public_key=None, wallet_params=None)
        the P2PKH locking script for exactly one key source
    unlock(wallet_params=None, sign_outputs="all", anyone_can_pay=False,
           source_satoshis=None, locking_script=None)
        a P2PKHUnlocker for an input locked to a wallet key
    """

    def __init__(self, wallet: Optional[WalletInterface] = None) -> None:
        self.wallet = wallet

    def _pubkey_hash(
        self,
        pubkeyhash: Union[bytes, str, None],
        public_key: Union[PublicKey, bytes, str, None],
        wallet_params: Union[DerivationParams, Mapping, None],
    ) -> bytes:
        given = [v is not None for v in (pubkeyhash, public_key, wallet_params)]
        if sum(given) != 1:
            raise ConfigurationError(
                "Exactly one of pubkeyhash, public_key or wallet_params is required"
            )

        if pubkeyhash is not None:
            if isinstance(pubkeyhash, str):
                try:
                    return h_to_b(pubkeyhash)
                except ValueError as e:
                    raise ConfigurationError("pubkeyhash is not valid hex") from e
            if isinstance(pubkeyhash, (bytes, bytearray)):
                return bytes(pubkeyhash)
            raise InvalidTypeError("pubkeyhash must be bytes or a hex string")

        if public_key is not None:
            return h_to_b(to_public_key(public_key).to_hash160())

        if self.wallet is None:
            raise ConfigurationError("A wallet is required to derive keys from wallet_params")
        params = to_derivation_params(wallet_params)
        return h_to_b(_wallet_public_key(self.wallet, params).to_hash160())

    def lock(
        self,
        pubkeyhash: Union[bytes, str, None] = None,
        public_key: Union[PublicKey, bytes, str, None] = None,
        wallet_params: Union[DerivationParams, Mapping, None] = None,
    ) -> Script:
        """Creates a P2PKH locking script

        Raises
        ------
        ConfigurationError
            if zero or more than one key source is given or the hash is
            not 20 bytes
        """
        hash_bytes = self._pubkey_hash(pubkeyhash, public_key, wallet_params)
        if len(hash_bytes) != 20:
            raise ConfigurationError("P2PKH hash length must be 20 bytes")
        return encode_p2pkh(hash_bytes)

    def unlock(
        self,
        wallet_params: Union[DerivationParams, Mapping, None] = None,
        sign_outputs: str = "all",
        anyone_can_pay: bool = False,
        source_satoshis: Optional[int] = None,
        locking_script: Optional[Script] = None,
    ) -> P2PKHUnlocker:
        """Creates the signer for an input

        Missing wallet_params fields default to protocol (2, "p2pkh"),
        key id "0" and counterparty "self".
        """
        if self.wallet is None:
            raise ConfigurationError("Wallet is required for unlocking")
        params = (
            DEFAULT_P2PKH_PARAMS
            if wallet_params is None
            else to_derivation_params(wallet_params, DEFAULT_P2PKH_PARAMS)
        )
        # validates sign_outputs
        signature_scope(sign_outputs, anyone_can_pay)
        if not isinstance(anyone_can_pay, bool):
            raise InvalidTypeError("anyone_can_pay must be a boolean")
        if source_satoshis is not None and (
            isinstance(source_satoshis, bool)
            or not isinstance(source_satoshis, int)
            or source_satoshis < 0
        ):
            raise ConfigurationError("source_satoshis must be a non-negative integer")
        if locking_script is not None and not isinstance(locking_script, Script):
            raise InvalidTypeError("locking_script must be a Script instance")

        return P2PKHUnlocker(
            self.wallet, params, sign_outputs, anyone_can_pay, source_satoshis, locking_script
        )


class WalletOrdP2PKH(WalletP2PKH):
    """P2PKH with an optional ordinal inscription and MAP metadata

    Spending an inscribed output is a plain P2PKH spend, so unlock() is
    inherited.
    """

    def lock(
        self,
        pubkeyhash: Union[bytes, str, None] = None,
        public_key: Union[PublicKey, bytes, str, None] = None,
        wallet_params: Union[DerivationParams, Mapping, None] = None,
        inscription: Optional[Inscription] = None,
        metadata: Optional[Mapping[str, str]] = None,
        with_separator: bool = False,
    ) -> Script:
        """Creates an inscribed P2PKH locking script

        Raises
        ------
        ConfigurationError
            as WalletP2PKH.lock, or if the inscription lacks a content type
            or payload, or the metadata lacks app or type
        """
        if inscription is not None:
            if not isinstance(inscription, Inscription):
                raise InvalidTypeError("inscription must be an Inscription")
            if not inscription.payload:
                raise ConfigurationError("inscription payload is required")
            if not inscription.content_type:
                raise ConfigurationError("inscription content type is required (MIME type)")

        if metadata is not None:
            if not isinstance(metadata, Mapping):
                raise InvalidTypeError("metadata must be a mapping")
            for key in ("app", "type"):
                if not isinstance(metadata.get(key), str) or not metadata.get(key):
                    raise ConfigurationError(f"metadata.{key} is required and must be a string")

        locking_script = super().lock(pubkeyhash, public_key, wallet_params)
        return apply_inscription(locking_script, inscription, metadata, with_separator)
