"""
Fungible Token Governance - Errors

Error kinds shared across validation, governance and relay layers.
"""

from .exceptions import (
    INVALID_FORMAT,
    NOT_ALLOWED,
    EXISTS,
    MISSING_FEES,
    INSUFFICIENT_FUNDS,
    INVALID_ADDRESS,
    UNEXPECTED_RESULT,
    TokenError,
    InvalidFormatError,
    NotAllowedError,
    PayloadMismatchError,
    ExistsError,
    MissingFeesError,
    InsufficientFundsError,
    InvalidAddressError,
    UnexpectedResultError,
    error_from_code,
    ERROR_CODES,
    is_error_code,
)

__all__ = [
    "INVALID_FORMAT",
    "NOT_ALLOWED",
    "EXISTS",
    "MISSING_FEES",
    "INSUFFICIENT_FUNDS",
    "INVALID_ADDRESS",
    "UNEXPECTED_RESULT",
    "TokenError",
    "InvalidFormatError",
    "NotAllowedError",
    "PayloadMismatchError",
    "ExistsError",
    "MissingFeesError",
    "InsufficientFundsError",
    "InvalidAddressError",
    "UnexpectedResultError",
    "error_from_code",
    "ERROR_CODES",
    "is_error_code",
]
