"""
Fungible Token Governance - Error Taxonomy

This module defines the error kinds shared by every layer of the client:
schema validation, governance guards, the authorization relay and the
Provider pass-through. Each error carries a stable string code so that
failures reported by the ledger node can be mapped back onto the same
exception classes the client raises locally.
"""

from typing import Any, Dict, Optional, Type


INVALID_FORMAT = "INVALID_FORMAT"
NOT_ALLOWED = "NOT_ALLOWED"
EXISTS = "EXISTS"
MISSING_FEES = "MISSING_FEES"
INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
INVALID_ADDRESS = "INVALID_ADDRESS"
UNEXPECTED_RESULT = "UNEXPECTED_RESULT"


class TokenError(Exception):
    """Base exception for all token governance errors."""

    code: str = UNEXPECTED_RESULT

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details: Dict[str, Any] = details
        super().__init__(f"{self.code}: {message}")


class InvalidFormatError(TokenError):
    """
    Raised when a value fails schema validation.

    Always attributable to exactly one field: ``key`` is the dotted path of
    the failing field, ``value`` the raw offending value and ``obj`` the
    enclosing object it was read from.
    """

    code = INVALID_FORMAT

    def __init__(self, message: str, key: Optional[str] = None,
                 value: Any = None, obj: Any = None, **details: Any):
        super().__init__(message, key=key, value=value, **details)
        self.key = key
        self.value = value
        self.obj = obj


class NotAllowedError(TokenError):
    """Raised when an authorization, idempotency or policy guard rejects an action."""

    code = NOT_ALLOWED


class PayloadMismatchError(NotAllowedError):
    """Raised when a transaction payload changed between proposal and signing."""

    def __init__(self, expected_hash: str, actual_hash: str):
        super().__init__(
            f"payload hash mismatch: proposed {expected_hash}, found {actual_hash}",
            expected_hash=expected_hash,
            actual_hash=actual_hash,
        )
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash


class ExistsError(TokenError):
    """Raised on duplicate creation or duplicate approval."""

    code = EXISTS


class MissingFeesError(TokenError):
    """Raised when a required action-to-fee mapping is absent or unknown."""

    code = MISSING_FEES


class InsufficientFundsError(TokenError):
    """Raised when an amount exceeds the available balance."""

    code = INSUFFICIENT_FUNDS

    def __init__(self, message: str, required: Optional[int] = None,
                 available: Optional[int] = None, **details: Any):
        super().__init__(message, required=required, available=available, **details)
        self.required = required
        self.available = available


class InvalidAddressError(TokenError):
    """Raised by the Provider when an address cannot be decoded."""

    code = INVALID_ADDRESS


class UnexpectedResultError(TokenError):
    """
    Raised when the ledger returns a failure the client cannot classify,
    including receipts with a failure status.
    """

    code = UNEXPECTED_RESULT

    def __init__(self, message: str, receipt: Any = None, **details: Any):
        super().__init__(message, **details)
        self.receipt = receipt


_ERRORS_BY_CODE: Dict[str, Type[TokenError]] = {
    INVALID_FORMAT: InvalidFormatError,
    NOT_ALLOWED: NotAllowedError,
    EXISTS: ExistsError,
    MISSING_FEES: MissingFeesError,
    INSUFFICIENT_FUNDS: InsufficientFundsError,
    INVALID_ADDRESS: InvalidAddressError,
    UNEXPECTED_RESULT: UnexpectedResultError,
}


def error_from_code(code: Optional[str], message: str, **details: Any) -> TokenError:
    """
    Build the taxonomy error matching a code reported by the ledger node.

    Args:
        code: Error code string (e.g. ``"NOT_ALLOWED"``)
        message: Human readable message from the node
        **details: Extra context attached to the error

    Returns:
        TokenError subclass instance; unknown codes map to UnexpectedResultError
    """
    error_class = _ERRORS_BY_CODE.get((code or "").upper(), UnexpectedResultError)
    return error_class(message, **details)


ERROR_CODES = frozenset(_ERRORS_BY_CODE)


def is_error_code(code: Any) -> bool:
    """Check whether ``code`` names a kind in the token error taxonomy."""
    return isinstance(code, str) and code.upper() in ERROR_CODES
