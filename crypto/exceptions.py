"""
Signing Exceptions for Fungible Token Governance

This module defines custom exceptions for key handling and transaction signing.
"""


class CryptoError(Exception):
    """Base exception for all cryptographic errors."""
    pass


class InvalidKeyError(CryptoError):
    """Raised when a key is invalid or malformed."""
    pass


class InvalidSignatureError(CryptoError):
    """Raised when a signature is invalid or verification fails."""
    pass


class SigningError(CryptoError):
    """Raised when a signer cannot produce a signature for a transaction."""
    pass
