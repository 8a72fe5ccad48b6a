"""
Fungible Token Governance - Payload Canonicalization

This module produces the canonical form of transaction payloads: the unique
deterministic serialization used as the pre-image for hashing and signing.
Two logically identical payloads always canonicalize to the same bytes,
whatever their key insertion order.

Canonicalization happens in two explicit steps:

1. ``tag_value`` converts a nested structure into a tree of
   ``CanonicalValue`` nodes. Each node carries a ``ValueKind`` chosen when
   the node is built.
2. ``canonical_json`` / ``canonical_bytes`` serialize that tree with a fixed
   rule per kind.

Ordering rules:

- Mapping keys must be strings and are ordered by ``canonical_key_order``
  (Unicode code point order, shorter prefix first).
- Sequences keep their positional order. Elements are never re-sorted, so
  index 10 always follows index 9.
- ``None`` values inside mappings are omitted; ``None`` inside a sequence
  has no canonical form and is rejected.
"""

import hashlib
import json
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from validator.checkers import BigNumber

from .exceptions import CanonicalizationError


class ValueKind(str, Enum):
    """Kind tag attached to every canonical node."""
    BIG_INTEGER = "big_integer"
    PLAIN_STRING = "plain_string"
    PLAIN_NUMBER = "plain_number"
    PLAIN_BOOLEAN = "plain_boolean"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class CanonicalValue:
    """
    Node of a canonical payload tree.

    Leaf nodes hold their Python value in ``value``. Composite nodes hold
    either ordered ``(key, node)`` pairs (``is_mapping=True``) or a tuple of
    nodes in positional order.
    """
    kind: ValueKind
    value: Any
    is_mapping: bool = False

    @classmethod
    def big_integer(cls, value: int) -> "CanonicalValue":
        return cls(ValueKind.BIG_INTEGER, int(value))

    @classmethod
    def string(cls, value: str) -> "CanonicalValue":
        return cls(ValueKind.PLAIN_STRING, value)

    @classmethod
    def number(cls, value: Any) -> "CanonicalValue":
        if isinstance(value, float) and not math.isfinite(value):
            raise CanonicalizationError(f"non-finite number has no canonical form: {value!r}")
        return cls(ValueKind.PLAIN_NUMBER, value)

    @classmethod
    def boolean(cls, value: bool) -> "CanonicalValue":
        return cls(ValueKind.PLAIN_BOOLEAN, bool(value))

    @classmethod
    def mapping(cls, items: List[Tuple[str, "CanonicalValue"]]) -> "CanonicalValue":
        ordered = sorted(items, key=lambda item: canonical_key_order(item[0]))
        for previous, current in zip(ordered, ordered[1:]):
            if previous[0] == current[0]:
                raise CanonicalizationError(f"duplicate key: {current[0]!r}")
        return cls(ValueKind.COMPOSITE, tuple(ordered), is_mapping=True)

    @classmethod
    def sequence(cls, items: List["CanonicalValue"]) -> "CanonicalValue":
        return cls(ValueKind.COMPOSITE, tuple(items), is_mapping=False)


def canonical_key_order(key: str) -> Tuple[int, ...]:
    """Sort key for mapping keys: code points, compared element by element."""
    return tuple(ord(char) for char in key)


def tag_value(value: Any, path: str = "$") -> CanonicalValue:
    """
    Build the canonical tree for a nested structure.

    Args:
        value: Mapping, sequence or leaf value
        path: Location used in error messages

    Returns:
        CanonicalValue tree

    Raises:
        CanonicalizationError: If any part of the value has no canonical form
    """
    if isinstance(value, CanonicalValue):
        return value
    if isinstance(value, BigNumber):
        return CanonicalValue.big_integer(value)
    if isinstance(value, bool):
        return CanonicalValue.boolean(value)
    if isinstance(value, (int, float)):
        return CanonicalValue.number(value)
    if isinstance(value, str):
        return CanonicalValue.string(value)

    if isinstance(value, Mapping):
        items = []
        for key, item in value.items():
            if not isinstance(key, str):
                raise CanonicalizationError(f"{path}: mapping keys must be strings, got {key!r}")
            if item is None:
                continue
            items.append((key, tag_value(item, f"{path}.{key}")))
        return CanonicalValue.mapping(items)

    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        elements = []
        for index, item in enumerate(value):
            if item is None:
                raise CanonicalizationError(f"{path}[{index}]: null has no canonical form in a sequence")
            elements.append(tag_value(item, f"{path}[{index}]"))
        return CanonicalValue.sequence(elements)

    raise CanonicalizationError(f"{path}: unsupported value type {type(value).__name__}")


def render_number(value: Any) -> str:
    """
    Render a plain number with one fixed rule.

    Integral values render as integers, so ``1`` and ``1.0`` are identical.
    Other floats use the shortest representation that round-trips.
    """
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationError(f"non-finite number has no canonical form: {value!r}")
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(int(value))


def render_leaf(node: CanonicalValue) -> str:
    """Render a leaf node to its canonical string representation."""
    if node.kind == ValueKind.BIG_INTEGER:
        return str(node.value)
    if node.kind == ValueKind.PLAIN_NUMBER:
        return render_number(node.value)
    if node.kind == ValueKind.PLAIN_BOOLEAN:
        return "true" if node.value else "false"
    if node.kind == ValueKind.PLAIN_STRING:
        return node.value
    raise CanonicalizationError("composite values are not leaves")


def _emit(node: CanonicalValue, parts: List[str]) -> None:
    if node.kind == ValueKind.COMPOSITE:
        if node.is_mapping:
            parts.append("{")
            for index, (key, child) in enumerate(node.value):
                if index:
                    parts.append(",")
                parts.append(json.dumps(key, ensure_ascii=False))
                parts.append(":")
                _emit(child, parts)
            parts.append("}")
        else:
            parts.append("[")
            for index, child in enumerate(node.value):
                if index:
                    parts.append(",")
                _emit(child, parts)
            parts.append("]")
    elif node.kind in (ValueKind.BIG_INTEGER, ValueKind.PLAIN_STRING):
        # amounts travel as decimal strings
        parts.append(json.dumps(render_leaf(node), ensure_ascii=False))
    else:
        parts.append(render_leaf(node))


def canonical_json(value: Any) -> str:
    """Serialize a value to its canonical compact JSON text."""
    parts: List[str] = []
    _emit(tag_value(value), parts)
    return "".join(parts)


def canonical_bytes(value: Any) -> bytes:
    """Serialize a value to its canonical UTF-8 bytes."""
    return canonical_json(value).encode("utf-8")


def payload_hash(value: Any) -> str:
    """Return the ``0x``-prefixed SHA-256 hex digest of the canonical bytes."""
    return "0x" + hashlib.sha256(canonical_bytes(value)).hexdigest()


def payload_digest(value: Any) -> bytes:
    """Return the raw 32-byte SHA-256 digest of the canonical bytes."""
    return hashlib.sha256(canonical_bytes(value)).digest()


def _plain(node: CanonicalValue) -> Any:
    if node.kind == ValueKind.COMPOSITE:
        if node.is_mapping:
            return {key: _plain(child) for key, child in node.value}
        return [_plain(child) for child in node.value]
    if node.kind == ValueKind.BIG_INTEGER:
        return str(node.value)
    if node.kind == ValueKind.PLAIN_NUMBER:
        number = node.value
        if isinstance(number, float) and number.is_integer():
            return int(number)
        return number
    return node.value


def canonicalize(value: Any, path: Optional[str] = None) -> Any:
    """
    Return the canonical plain-Python form of a value.

    Mappings come back as dicts whose insertion order is the canonical key
    order, BigNumbers as decimal strings and integral floats as ints.
    ``canonical_json`` of the result equals ``canonical_json`` of the input.
    """
    return _plain(tag_value(value, path or "$"))
