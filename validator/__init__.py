"""
Fungible Token Governance - Validator Module

This module provides the declarative, schema-driven validation pipeline that
guards every value crossing the wire boundary, including the composable
checker combinators schemas are built from.
"""

from .core import (
    Checker,
    Leaf,
    Nested,
    Schema,
    SchemaNode,
    ValidationOutcome,
    validate,
    check_format,
)

from .checkers import (
    BigNumber,
    parse_big_number,
    allow_null,
    allow_null_or_empty,
    array_of,
    check_hash,
    check_hex,
    check_hex_address,
    check_number,
    check_big_number,
    check_boolean,
    check_string,
    check_timestamp,
    check_address,
    check_any,
)

__all__ = [
    "Checker",
    "Leaf",
    "Nested",
    "Schema",
    "SchemaNode",
    "ValidationOutcome",
    "validate",
    "check_format",
    "BigNumber",
    "parse_big_number",
    "allow_null",
    "allow_null_or_empty",
    "array_of",
    "check_hash",
    "check_hex",
    "check_hex_address",
    "check_number",
    "check_big_number",
    "check_boolean",
    "check_string",
    "check_timestamp",
    "check_address",
    "check_any",
]
