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

from typing import Union

from coincurve import PublicKey as CurvePublicKey
from ecdsa import SECP256k1  # type: ignore
from ecdsa.der import UnexpectedDER  # type: ignore
from ecdsa.util import sigdecode_der, sigencode_der  # type: ignore

from bsvutils.errors import ConfigurationError, InvalidTypeError
from bsvutils.hashfunctions import hash160
from bsvutils.utils import b_to_h, bytes_like, h_to_b

# prime number of points in the group (the order)
CURVE_ORDER = SECP256k1.order


class PublicKey:
    """Represents an ECDSA public key on secp256k1.

    Attributes
    ----------
    key : coincurve.PublicKey
        the parsed public key

    Methods
    -------
    from_hex(hex_str)
        creates an object from a hex string in SEC format (classmethod)
    to_bytes(compressed=True)
        returns the key in SEC format
    to_hex(compressed=True)
        returns the key as hex string (in SEC format - compressed by default)
    to_hash160(compressed=True)
        returns the hash160 hex string of the public key
    verify(signature, digest)
        returns true if the 32-byte digest was signed with this public key's
        corresponding private key
    """

    def __init__(self, key: Union[str, bytes]) -> None:
        """
        Parameters
        ----------
        key : str or bytes
            the public key in SEC format, compressed or uncompressed

        Raises
        ------
        ConfigurationError
            if the key is not a valid secp256k1 point
        """
        if isinstance(key, str):
            key = key.strip()
            if key.lower().startswith("0x"):
                key = key[2:]
            try:
                key = h_to_b(key)
            except ValueError as e:
                raise ConfigurationError("Public key is not valid hex") from e
        elif not isinstance(key, (bytes, bytearray)):
            raise InvalidTypeError("Public key must be a hex string or bytes")

        if len(key) not in (33, 65):
            raise ConfigurationError(
                f"Public key must be 33 or 65 bytes in SEC format, got {len(key)}"
            )
        try:
            self.key = CurvePublicKey(bytes(key))
        except ValueError as e:
            raise ConfigurationError("Invalid secp256k1 public key") from e

    @classmethod
    def from_hex(cls, hex_str: str) -> "PublicKey":
        return cls(hex_str)

    def to_bytes(self, compressed: bool = True) -> bytes:
        return self.key.format(compressed=compressed)

    def to_hex(self, compressed: bool = True) -> str:
        return b_to_h(self.to_bytes(compressed))

    def to_hash160(self, compressed: bool = True) -> str:
        """Returns the RIPEMD160(SHA256()) of the public key in hex"""
        return b_to_h(hash160(self.to_bytes(compressed)))

    def verify(self, signature: bytes, digest: bytes) -> bool:
        """Verifies a DER signature (optionally followed by the scope byte)
        over a 32-byte digest"""
        if len(digest) != 32:
            raise ConfigurationError("Digest must be 32 bytes")
        der = _strip_scope_byte(signature)
        try:
            return self.key.verify(der, digest, hasher=None)
        except ValueError:
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return False
        return self.to_bytes() == other.to_bytes()

    def __repr__(self) -> str:
        return f"PublicKey({self.to_hex()})"


def _strip_scope_byte(signature: bytes) -> bytes:
    # DER is 0x30 <total length> ...; anything past that is the scope byte
    if len(signature) >= 2 and len(signature) == signature[1] + 3:
        return signature[:-1]
    return signature


def to_public_key(value) -> PublicKey:
    """Accepts a PublicKey, SEC bytes or a SEC hex string"""
    if isinstance(value, PublicKey):
        return value
    return PublicKey(value)


def to_checksig_format(signature, scope: int) -> bytes:
    """Formats a wallet DER signature as it is pushed in an unlocking script

    The signature is normalized to a low S value (BIP62); high S
    signatures are malleable since (order - S) is also valid. The one-byte
    signature scope is appended.

    Parameters
    ----------
    signature : bytes, list (int) or str (hex)
        the DER encoded signature
    scope : int
        the sighash flags the signature commits to
    """
    der = bytes_like(signature, "signature")
    if not 0 <= scope <= 0xFF:
        raise ConfigurationError(f"Signature scope must fit in one byte: {scope}")

    try:
        r, s = sigdecode_der(der, CURVE_ORDER)
    except (UnexpectedDER, ValueError) as e:
        raise ConfigurationError("Signature is not valid DER") from e

    # Low S standardness rule
    if s > CURVE_ORDER // 2:
        s = CURVE_ORDER - s

    return sigencode_der(r, s, CURVE_ORDER) + bytes([scope])
