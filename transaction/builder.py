"""
Fungible Token Governance - Transaction Construction

This module defines the transient, single-use transaction types that flow
through the authorization relay:

- ``Transaction``: a validated, canonicalized, unsigned intent
- ``SignedTransaction``: a transaction plus one or more signatures
- ``Receipt``: the Provider's confirmation of a submitted transaction

``TransactionBuilder`` turns an intent into a ``Transaction`` by running it
through the format validator and the canonicalizer, then stamping it with
the hash of its signing document.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from validator.core import Schema, check_format
from validator.schemas import (
    RECEIPT_SCHEMA,
    TRANSACTION_ENVELOPE_SCHEMA,
    TRANSACTION_FEE_SCHEMA,
)

from .canonical import canonicalize, payload_digest, payload_hash
from .exceptions import TransactionBuildError


RECEIPT_STATUS_SUCCESS = 1
RECEIPT_STATUS_FAILURE = 0


@dataclass(frozen=True)
class Transaction:
    """Canonicalized, unsigned transaction intent."""
    kind: str
    payload: Dict[str, Any]
    payload_hash: str
    proposer: str
    fee: Optional[Dict[str, Any]] = None
    created_at: float = field(default_factory=time.time, compare=False)

    def signing_document(self) -> Dict[str, Any]:
        """Return the structure whose canonical bytes are hashed and signed."""
        return {
            "kind": self.kind,
            "payload": self.payload,
            "proposer": self.proposer,
            "fee": self.fee,
        }

    def compute_hash(self) -> str:
        """Recompute the canonical hash from the current contents."""
        return payload_hash(self.signing_document())

    def digest(self) -> bytes:
        """Raw 32-byte digest of the signing document."""
        return payload_digest(self.signing_document())

    @property
    def symbol(self) -> Optional[str]:
        return self.payload.get("symbol")

    def to_dict(self) -> Dict[str, Any]:
        """Wire envelope for handing the transaction to another principal."""
        envelope = {
            "kind": self.kind,
            "payload": self.payload,
            "payloadHash": self.payload_hash,
            "proposer": self.proposer,
        }
        if self.fee is not None:
            envelope["fee"] = self.fee
        return envelope

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """
        Rebuild a transaction received from another principal.

        The envelope is validated but the hash is not recomputed here;
        the authorize step checks it against the payload.
        """
        envelope = check_format(TRANSACTION_ENVELOPE_SCHEMA, data)
        payload = envelope["payload"]
        if not isinstance(payload, dict):
            raise TransactionBuildError("transaction payload must be an object")
        fee = envelope.get("fee")
        return cls(
            kind=envelope["kind"],
            payload=canonicalize(payload),
            payload_hash=envelope["payloadHash"],
            proposer=envelope["proposer"],
            fee=canonicalize(fee) if fee is not None else None,
        )


@dataclass(frozen=True)
class Signature:
    """A single signature over a transaction digest."""
    signer: str
    public_key: str
    signature: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "signer": self.signer,
            "publicKey": self.public_key,
            "signature": self.signature,
        }


@dataclass(frozen=True)
class SignedTransaction:
    """Transaction with the signatures collected so far."""
    transaction: Transaction
    signatures: Tuple[Signature, ...] = ()

    @property
    def signers(self) -> List[str]:
        return [signature.signer for signature in self.signatures]

    def with_signature(self, signature: Signature) -> "SignedTransaction":
        return SignedTransaction(self.transaction, self.signatures + (signature,))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction": self.transaction.to_dict(),
            "signatures": [signature.to_dict() for signature in self.signatures],
        }


@dataclass(frozen=True)
class Receipt:
    """Provider confirmation of a submitted transaction."""
    hash: str
    status: int
    block_number: Optional[int] = None
    logs: List[Any] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status == RECEIPT_STATUS_SUCCESS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Receipt":
        """Validate a raw receipt returned by the node."""
        receipt = check_format(RECEIPT_SCHEMA, data)
        return cls(
            hash=receipt["hash"],
            status=receipt["status"],
            block_number=receipt.get("blockNumber"),
            logs=receipt.get("logs") or [],
        )


class TransactionBuilder:
    """
    Builds canonical unsigned transactions from intents.

    The builder validates the intent against the schema registered for its
    kind, canonicalizes the sanitized result and computes the hash that
    every later signature commits to.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def build(self,
              kind: str,
              intent: Dict[str, Any],
              schema: Schema,
              proposer: str,
              fee: Optional[Dict[str, Any]] = None) -> Transaction:
        """
        Build a transaction.

        Args:
            kind: Transaction kind (action name)
            intent: Raw intent fields
            schema: Schema the intent must satisfy
            proposer: Address of the proposing principal
            fee: Optional ``{denom, amount}`` fee descriptor

        Returns:
            Unsigned Transaction

        Raises:
            InvalidFormatError: If the intent or fee fails validation
        """
        payload = canonicalize(check_format(schema, intent))
        fee_payload = None
        if fee is not None:
            fee_payload = canonicalize(check_format(TRANSACTION_FEE_SCHEMA, fee))

        draft = Transaction(
            kind=kind,
            payload=payload,
            payload_hash="",
            proposer=proposer,
            fee=fee_payload,
        )
        transaction = Transaction(
            kind=kind,
            payload=payload,
            payload_hash=draft.compute_hash(),
            proposer=proposer,
            fee=fee_payload,
            created_at=draft.created_at,
        )

        self.logger.debug(f"Built {kind} transaction {transaction.payload_hash}")
        return transaction
