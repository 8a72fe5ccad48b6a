"""
Key Management for Fungible Token Governance

This module wraps secp256k1 private/public keys (via coincurve) and derives
the ledger address that identifies a principal. Signatures are produced over
the 32-byte digest of a transaction's canonical bytes; the digest is never
hashed a second time.
"""

import hashlib
from typing import Union

from coincurve import PrivateKey as CoinCurvePrivateKey, PublicKey as CoinCurvePublicKey

from .exceptions import InvalidKeyError, InvalidSignatureError


CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# Human-readable prefix of ledger addresses
ADDRESS_PREFIX = "ftg1"


def address_from_public_key(public_key_bytes: bytes, prefix: str = ADDRESS_PREFIX) -> str:
    """
    Derive a ledger address from a compressed public key.

    Args:
        public_key_bytes: 33-byte compressed public key
        prefix: Address prefix

    Returns:
        Prefix followed by the hex of the first 20 bytes of SHA256(pubkey)
    """
    return prefix + hashlib.sha256(public_key_bytes).digest()[:20].hex()


class PrivateKey:
    """A principal's secp256k1 signing key; random when no bytes are given."""

    def __init__(self, key_bytes: Union[bytes, None] = None):
        if key_bytes is None:
            self._key = CoinCurvePrivateKey()
            return

        if not isinstance(key_bytes, bytes) or len(key_bytes) != 32:
            raise InvalidKeyError("Private key must be 32 bytes")

        key_int = int.from_bytes(key_bytes, 'big')
        if key_int == 0 or key_int >= CURVE_ORDER:
            raise InvalidKeyError("Private key out of valid range")

        try:
            self._key = CoinCurvePrivateKey(key_bytes)
        except ValueError as e:
            raise InvalidKeyError(f"Failed to create private key: {e}")

    @classmethod
    def from_hex(cls, hex_key: str) -> 'PrivateKey':
        if hex_key.startswith("0x"):
            hex_key = hex_key[2:]
        try:
            return cls(bytes.fromhex(hex_key))
        except ValueError as e:
            raise InvalidKeyError(f"Invalid private key hex: {e}")

    @property
    def bytes(self) -> bytes:
        return self._key.secret

    @property
    def hex(self) -> str:
        return self._key.secret.hex()

    def public_key(self) -> 'PublicKey':
        return PublicKey(self._key.public_key)

    def sign(self, digest: bytes) -> bytes:
        """
        Sign a 32-byte digest.

        Args:
            digest: 32-byte digest to sign

        Returns:
            DER-encoded signature
        """
        if len(digest) != 32:
            raise InvalidKeyError("Digest must be 32 bytes")
        return self._key.sign(digest, hasher=None)


class PublicKey:
    """A verifying key; accepts 33 or 65 byte encodings, always exports compressed."""

    def __init__(self, key_data: Union[bytes, CoinCurvePublicKey]):
        if isinstance(key_data, CoinCurvePublicKey):
            self._key = key_data
            return

        if not isinstance(key_data, bytes):
            raise InvalidKeyError("Public key data must be bytes")
        if len(key_data) not in [33, 65]:
            raise InvalidKeyError("Public key must be 33 or 65 bytes")
        try:
            self._key = CoinCurvePublicKey(key_data)
        except ValueError as e:
            raise InvalidKeyError(f"Failed to create public key: {e}")

    @classmethod
    def from_hex(cls, hex_key: str) -> 'PublicKey':
        try:
            return cls(bytes.fromhex(hex_key))
        except ValueError as e:
            raise InvalidKeyError(f"Invalid public key hex: {e}")

    @property
    def bytes(self) -> bytes:
        return self._key.format(compressed=True)

    @property
    def hex(self) -> str:
        return self.bytes.hex()

    def address(self, prefix: str = ADDRESS_PREFIX) -> str:
        return address_from_public_key(self.bytes, prefix)

    def verify(self, signature: bytes, digest: bytes) -> bool:
        """
        Verify a DER signature against a 32-byte digest.

        Returns:
            True if the signature is valid
        """
        if len(digest) != 32:
            raise InvalidSignatureError("Digest must be 32 bytes")
        try:
            return self._key.verify(signature, digest, hasher=None)
        except ValueError:
            return False
