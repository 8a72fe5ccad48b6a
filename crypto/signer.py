"""
Transaction Signers for Fungible Token Governance

A ``Signer`` is the capability that commits a principal to a transaction.
Signers never see a mutable intent: they sign the 32-byte digest of the
transaction's canonical bytes, so any later change to the payload breaks
every signature collected so far.
"""

import logging
from abc import ABC, abstractmethod
from typing import Union

from transaction.builder import Signature, SignedTransaction, Transaction

from .exceptions import InvalidKeyError, InvalidSignatureError, SigningError
from .keys import ADDRESS_PREFIX, PrivateKey, PublicKey


TransactionLike = Union[Transaction, SignedTransaction]


def as_signed(transaction: TransactionLike) -> SignedTransaction:
    """Wrap a bare transaction so signatures can be appended."""
    if isinstance(transaction, SignedTransaction):
        return transaction
    return SignedTransaction(transaction)


class Signer(ABC):
    """Abstract signing capability held by one principal."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Ledger address of the principal."""

    @abstractmethod
    async def sign(self, transaction: TransactionLike) -> SignedTransaction:
        """
        Sign a transaction.

        Args:
            transaction: Unsigned transaction, or one already carrying signatures

        Returns:
            SignedTransaction with this signer's signature appended
        """


class LocalSigner(Signer):
    """Signer backed by an in-process secp256k1 private key."""

    def __init__(self, private_key: Union[PrivateKey, None] = None,
                 address_prefix: str = ADDRESS_PREFIX):
        self.logger = logging.getLogger(__name__)
        self._private_key = private_key or PrivateKey()
        self._public_key = self._private_key.public_key()
        self._address = self._public_key.address(address_prefix)

    @classmethod
    def from_hex(cls, hex_key: str, address_prefix: str = ADDRESS_PREFIX) -> 'LocalSigner':
        return cls(PrivateKey.from_hex(hex_key), address_prefix)

    @property
    def address(self) -> str:
        return self._address

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    def sign_digest(self, digest: bytes) -> Signature:
        try:
            der = self._private_key.sign(digest)
        except InvalidKeyError as e:
            raise SigningError(f"Failed to sign digest: {e}")
        return Signature(
            signer=self._address,
            public_key=self._public_key.hex,
            signature=der.hex(),
        )

    async def sign(self, transaction: TransactionLike) -> SignedTransaction:
        signed = as_signed(transaction)
        if self._address in signed.signers:
            raise SigningError(f"{self._address} has already signed this transaction")

        signature = self.sign_digest(signed.transaction.digest())
        self.logger.debug(
            f"{self._address} signed {signed.transaction.kind} "
            f"{signed.transaction.payload_hash}"
        )
        return signed.with_signature(signature)


def verify_signature(transaction: Transaction, signature: Signature,
                     address_prefix: str = ADDRESS_PREFIX) -> bool:
    """
    Check one signature against a transaction.

    The public key must derive to the claimed signer address and the
    signature must verify against the transaction digest.
    """
    try:
        public_key = PublicKey.from_hex(signature.public_key)
        der = bytes.fromhex(signature.signature)
    except (InvalidKeyError, ValueError):
        return False

    if public_key.address(address_prefix) != signature.signer:
        return False

    try:
        return public_key.verify(der, transaction.digest())
    except InvalidSignatureError:
        return False
