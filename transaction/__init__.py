"""
Fungible Token Governance - Transactions

Canonicalization of payloads and the transient transaction types that move
through the propose / authorize / relay pipeline.
"""

from .canonical import (
    ValueKind,
    CanonicalValue,
    canonical_key_order,
    tag_value,
    render_number,
    render_leaf,
    canonical_json,
    canonical_bytes,
    canonicalize,
    payload_hash,
    payload_digest,
)
from .builder import (
    RECEIPT_STATUS_SUCCESS,
    RECEIPT_STATUS_FAILURE,
    Transaction,
    Signature,
    SignedTransaction,
    Receipt,
    TransactionBuilder,
)
from .exceptions import CanonicalizationError, TransactionBuildError

__all__ = [
    "ValueKind",
    "CanonicalValue",
    "canonical_key_order",
    "tag_value",
    "render_number",
    "render_leaf",
    "canonical_json",
    "canonical_bytes",
    "canonicalize",
    "payload_hash",
    "payload_digest",
    "RECEIPT_STATUS_SUCCESS",
    "RECEIPT_STATUS_FAILURE",
    "Transaction",
    "Signature",
    "SignedTransaction",
    "Receipt",
    "TransactionBuilder",
    "CanonicalizationError",
    "TransactionBuildError",
]
