"""
Fungible Token Governance - Checker Combinators

Checkers are plain functions ``value -> validated value`` that raise on a
violation. The combinators in this module wrap checkers with null tolerance
or array semantics; the leaf checkers coerce hashes, hex strings, numbers,
booleans and strings. Every schema in ``validator.schemas`` is assembled
from these building blocks.
"""

import re
from collections.abc import Mapping, Sequence
from typing import Any, Callable, List, Optional

from errors import InvalidFormatError

from .core import Checker


HEX_PATTERN = re.compile(r"^0x[0-9a-fA-F]*$")
DECIMAL_PATTERN = re.compile(r"^-?[0-9]+$")
SIGNED_HEX_PATTERN = re.compile(r"^(-?)0x([0-9a-fA-F]+)$")

# Largest integer a JSON number can carry without losing precision.
MAX_SAFE_INTEGER = 2 ** 53 - 1


class BigNumber(int):
    """
    Arbitrary-precision integer tagged as a ledger amount.

    Behaves exactly like ``int``; the subclass only records that the value
    was produced by ``check_big_number`` so the canonicalizer renders it as
    a decimal string.
    """

    def __repr__(self) -> str:
        return f"BigNumber({int(self)})"


def parse_big_number(value: Any) -> BigNumber:
    """
    Parse a value into a BigNumber.

    Accepts integers, integral floats, decimal strings and ``0x`` hex
    strings (optionally negative). Booleans are rejected.

    Raises:
        ValueError: If the value is not parsable as an integer
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid BigNumber value - {value!r}")
    if isinstance(value, int):
        return BigNumber(value)
    if isinstance(value, float):
        if value.is_integer():
            return BigNumber(int(value))
        raise ValueError(f"underflow - {value!r}")
    if isinstance(value, str):
        if DECIMAL_PATTERN.match(value):
            return BigNumber(int(value, 10))
        match = SIGNED_HEX_PATTERN.match(value)
        if match:
            magnitude = int(match.group(2), 16)
            return BigNumber(-magnitude if match.group(1) else magnitude)
    raise ValueError(f"invalid BigNumber value - {value!r}")


def is_hex_string(value: Any, length: Optional[int] = None) -> bool:
    """Check for a ``0x``-prefixed hex string, optionally of ``length`` bytes."""
    if not isinstance(value, str) or not HEX_PATTERN.match(value):
        return False
    if length is not None and len(value) != 2 + 2 * length:
        return False
    return True


def hex_data_length(value: str) -> Optional[int]:
    """Return the byte length of a hex string, or None if it is not whole bytes."""
    if not is_hex_string(value) or len(value) % 2:
        return None
    return (len(value) - 2) // 2


# Combinators

def allow_null(check: Checker, null_value: Any = None) -> Checker:
    """Return ``null_value`` for None without invoking ``check``."""
    def checker(value: Any) -> Any:
        if value is None:
            return null_value
        return check(value)
    return checker


def allow_null_or_empty(check: Checker, null_value: Any = None) -> Checker:
    """Like ``allow_null`` but also treats the empty string as null."""
    def checker(value: Any) -> Any:
        if value is None or value == "":
            return null_value
        return check(value)
    return checker


def array_of(check: Checker) -> Callable[[Any], List[Any]]:
    """
    Require a sequence and apply ``check`` to every element, keeping order.

    Strings, bytes and mappings are not treated as sequences. A failing
    element is reported under its index, so a schema error inside the
    third entry surfaces as ``<field>.2.<key>``.
    """
    def checker(array: Any) -> List[Any]:
        if (not isinstance(array, Sequence)
                or isinstance(array, (str, bytes, bytearray))
                or isinstance(array, Mapping)):
            raise ValueError("not an array")

        result = []
        for index, value in enumerate(array):
            try:
                result.append(check(value))
            except InvalidFormatError as e:
                key = f"{index}.{e.key}" if e.key else str(index)
                raise InvalidFormatError(e.message, key=key, value=value,
                                         reason=e.details.get("reason", e.message))
            except (TypeError, ValueError) as e:
                raise InvalidFormatError(str(e), key=str(index), value=value, reason=str(e))
        return result
    return checker


# Leaf checkers

def check_hash(value: Any, require_prefix: bool = False) -> str:
    """Validate a 32-byte hex hash; the result is lower-cased."""
    if isinstance(value, str):
        # some nodes omit the prefix on receipt roots
        if not require_prefix and not value.startswith("0x"):
            value = "0x" + value
        if hex_data_length(value) == 32:
            return value.lower()
    raise ValueError(f"invalid hash - {value}")


def check_hex(value: Any) -> str:
    """Validate a hex string, synthesizing a missing ``0x`` prefix."""
    if isinstance(value, str):
        if not value.startswith("0x"):
            value = "0x" + value
        if is_hex_string(value):
            return value
    raise ValueError(f"invalid hex - {value}")


def check_hex_address(value: Any) -> str:
    """Validate a hex address, synthesizing a missing ``0x`` prefix."""
    if isinstance(value, str):
        if not value.startswith("0x"):
            value = "0x" + value
        if is_hex_string(value):
            return value
    raise ValueError(f"invalid hex address - {value}")


def check_number(value: Any) -> int:
    """Parse through the BigNumber parser and narrow to a plain int."""
    number = parse_big_number(value)
    if abs(number) > MAX_SAFE_INTEGER:
        raise ValueError(f"overflow - {value!r}")
    return int(number)


def check_big_number(value: Any) -> BigNumber:
    return parse_big_number(value)


def check_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value == "true":
            return True
        if value == "false":
            return False
    raise ValueError(f"invalid boolean - {value}")


def check_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("invalid string")
    return value


def check_timestamp(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("invalid timestamp")
    return value


def check_address(value: Any) -> str:
    # address syntax is the ledger's concern, only the type is checked here
    if not isinstance(value, str):
        raise ValueError("invalid address")
    return value


def check_any(value: Any) -> Any:
    return value
