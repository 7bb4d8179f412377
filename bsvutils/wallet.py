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

"""The wallet capability surface

Keys never leave the wallet: bsvutils asks it for public keys and for
signatures over digests it computed, and hands it the finished action. The
argument dictionaries follow the BRC-100 wallet interface naming.
"""

import base64
import json
import secrets
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Union

from bsvutils.constants import (
    BRC29_PROTOCOL_ID,
    DEFAULT_COUNTERPARTY,
    DEFAULT_KEY_ID,
    DERIVATION_RANDOM_BYTES,
    P2PKH_PROTOCOL_ID,
)
from bsvutils.errors import ConfigurationError, InvalidTypeError


class WalletInterface(Protocol):
    """What bsvutils needs from a wallet"""

    def get_public_key(self, args: dict) -> dict:
        """args: protocolID, keyID, counterparty -> {"publicKey": hex}"""
        ...

    def create_signature(self, args: dict) -> dict:
        """args: hashToDirectlySign, protocolID, keyID, counterparty
        -> {"signature": DER as bytes, list of ints or hex}"""
        ...

    def create_action(self, args: dict) -> dict:
        """args: the action payload -> {"txid": ..., "tx": ...}"""
        ...


@dataclass(frozen=True)
class DerivationParams:
    """Identifies a wallet key: protocol id, key id and counterparty

    Attributes
    ----------
    protocol_id : tuple (int, str)
        security level (0-2) and protocol name
    key_id : str
        the key identifier within the protocol
    counterparty : str
        "self", "anyone" or a counterparty public key in hex
    """

    protocol_id: tuple
    key_id: str
    counterparty: str = DEFAULT_COUNTERPARTY

    def __post_init__(self) -> None:
        protocol_id = self.protocol_id
        if (
            not isinstance(protocol_id, (tuple, list))
            or len(protocol_id) != 2
            or isinstance(protocol_id[0], bool)
            or not isinstance(protocol_id[0], int)
            or not isinstance(protocol_id[1], str)
        ):
            raise InvalidTypeError("protocol_id must be a (security level, name) pair")
        if protocol_id[0] not in (0, 1, 2):
            raise ConfigurationError("protocol_id security level must be 0, 1 or 2")
        if not protocol_id[1]:
            raise ConfigurationError("protocol_id name cannot be empty")
        if not isinstance(self.key_id, str) or not self.key_id:
            raise ConfigurationError("key_id must be a non-empty string")
        if not isinstance(self.counterparty, str) or not self.counterparty:
            raise ConfigurationError("counterparty must be a non-empty string")
        # frozen -- normalize lists to tuples
        object.__setattr__(self, "protocol_id", tuple(protocol_id))

    @classmethod
    def from_dict(
        cls,
        params: Mapping[str, Any],
        defaults: Optional["DerivationParams"] = None,
    ) -> "DerivationParams":
        """Creates params from a wallet style dictionary
        (protocolID, keyID, counterparty)

        Fields missing from params are taken from defaults when given.
        """
        if defaults is not None:
            params = {**defaults.to_args(), **params}
        try:
            return cls(
                tuple(params["protocolID"]),
                params["keyID"],
                params.get("counterparty", DEFAULT_COUNTERPARTY),
            )
        except KeyError as e:
            raise ConfigurationError(f"Derivation params require {e.args[0]}") from e

    def to_args(self) -> dict:
        """The wallet call arguments for this key"""
        return {
            "protocolID": [self.protocol_id[0], self.protocol_id[1]],
            "keyID": self.key_id,
            "counterparty": self.counterparty,
        }


DEFAULT_P2PKH_PARAMS = DerivationParams(P2PKH_PROTOCOL_ID, DEFAULT_KEY_ID)


def to_derivation_params(
    params: Union[DerivationParams, Mapping[str, Any]],
    defaults: Optional[DerivationParams] = None,
) -> DerivationParams:
    if isinstance(params, DerivationParams):
        return params
    if isinstance(params, Mapping):
        return DerivationParams.from_dict(params, defaults)
    raise InvalidTypeError("wallet_params must be DerivationParams or a mapping")


@dataclass(frozen=True)
class DerivationRecord:
    """A one-time key generated for an output, kept so that the wallet can
    re-derive the key when the output is spent"""

    output_index: int
    derivation_prefix: str
    derivation_suffix: str

    def to_custom_instructions(self) -> str:
        return json.dumps(
            {
                "derivationPrefix": self.derivation_prefix,
                "derivationSuffix": self.derivation_suffix,
            },
            separators=(",", ":"),
        )


def get_derivation() -> DerivationParams:
    """Generates BRC-29 derivation params with a random key id

    The key id is "<prefix> <suffix>", each the base64 of 8 random bytes.
    """
    prefix = base64.b64encode(secrets.token_bytes(DERIVATION_RANDOM_BYTES)).decode("ascii")
    suffix = base64.b64encode(secrets.token_bytes(DERIVATION_RANDOM_BYTES)).decode("ascii")
    return DerivationParams(BRC29_PROTOCOL_ID, f"{prefix} {suffix}", DEFAULT_COUNTERPARTY)


def split_key_id(params: DerivationParams) -> tuple[str, str]:
    """Splits a generated key id back into its prefix and suffix"""
    prefix, _, suffix = params.key_id.partition(" ")
    return prefix, suffix
