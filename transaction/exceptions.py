"""
Fungible Token Governance - Transaction Exceptions

This module defines exceptions raised while canonicalizing and assembling
transactions.
"""


class CanonicalizationError(ValueError):
    """Raised when a value has no canonical representation."""
    pass


class TransactionBuildError(Exception):
    """Raised when a transaction cannot be assembled from an intent."""
    pass
