"""
Fungible Token Governance - Format Validator Core

This module provides the schema-driven validator that guards every value
crossing the wire boundary: ledger state coming back from the Provider and
transaction intents going out to it.

A schema is a mapping from field name to a schema node. A node is either a
``Leaf`` wrapping a checker function or a ``Nested`` wrapping another schema.
Validation walks the schema (never the object), so fields absent from the
schema are dropped from the result: the validator is a strict allow-list.

Failures are threaded back through the recursion as ``ValidationOutcome``
values. Only ``check_format`` converts a failed outcome into a raised
``InvalidFormatError``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, Union

from errors import InvalidFormatError


logger = logging.getLogger(__name__)

# A checker maps a raw value to a validated value. Returning None omits the key.
Checker = Callable[[Any], Any]


@dataclass(frozen=True)
class Leaf:
    """Schema node validating a single value with a checker."""
    checker: Checker


@dataclass(frozen=True)
class Nested:
    """
    Schema node validating a nested object against another schema.

    When ``allow_null`` is set, a missing or null nested object is omitted
    from the result instead of failing.
    """
    schema: "Schema"
    allow_null: bool = False


SchemaNode = Union[Leaf, Nested]


class Schema:
    """
    Ordered mapping from field name to schema node.

    Raw definitions are normalized once, at construction time: a ``Schema``
    or plain mapping becomes ``Nested``, a callable becomes ``Leaf``. The
    validator itself only ever dispatches on the node type.
    """

    def __init__(self, fields: Mapping[str, Any]):
        self._nodes: Dict[str, SchemaNode] = {}
        for key, definition in fields.items():
            if not isinstance(key, str):
                raise TypeError(f"schema keys must be strings, got {key!r}")
            self._nodes[key] = self._normalize(key, definition)

    @staticmethod
    def _normalize(key: str, definition: Any) -> SchemaNode:
        if isinstance(definition, (Leaf, Nested)):
            return definition
        if isinstance(definition, Schema):
            return Nested(definition)
        if isinstance(definition, Mapping):
            return Nested(Schema(definition))
        if callable(definition):
            return Leaf(definition)
        raise TypeError(f"invalid schema definition for key {key!r}: {definition!r}")

    def items(self) -> Iterator[Tuple[str, SchemaNode]]:
        return iter(self._nodes.items())

    def keys(self):
        return self._nodes.keys()

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def validate(self, obj: Any) -> "ValidationOutcome":
        """Validate ``obj`` against this schema without raising."""
        return validate(self, obj)

    def check(self, obj: Any) -> Dict[str, Any]:
        """Validate ``obj`` against this schema, raising on failure."""
        return check_format(self, obj)

    def as_checker(self) -> Checker:
        """Expose this schema as a checker, e.g. for ``array_of``."""
        def check(value: Any) -> Dict[str, Any]:
            return check_format(self, value)
        return check


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a validation pass: either a validated value or one error."""
    value: Any = None
    error: Optional[InvalidFormatError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the validated value or raise the recorded error."""
        if self.error is not None:
            raise self.error
        return self.value


def _join_path(parent: str, key: str) -> str:
    return f"{parent}.{key}" if parent else key


def _failure(path: str, message: str, value: Any, obj: Any) -> ValidationOutcome:
    where = path or "<root>"
    return ValidationOutcome(error=InvalidFormatError(
        f"invalid format object key {where}: {message}",
        key=path or None,
        value=value,
        obj=obj,
        reason=message,
    ))


def _validate_object(schema: Schema, obj: Any, path: str) -> ValidationOutcome:
    if not isinstance(obj, Mapping):
        return _failure(path, "expected an object", obj, obj)

    result: Dict[str, Any] = {}
    for key, node in schema.items():
        key_path = _join_path(path, key)
        raw = obj.get(key)

        if isinstance(node, Nested):
            if raw is None and node.allow_null:
                continue
            if not isinstance(raw, Mapping):
                return _failure(key_path, "expected an object", raw, obj)
            outcome = _validate_object(node.schema, raw, key_path)
            if not outcome.ok:
                return outcome
            result[key] = outcome.value
            continue

        try:
            value = node.checker(raw)
        except InvalidFormatError as e:
            inner = _join_path(key_path, e.key) if e.key else key_path
            return _failure(inner, e.details.get("reason", e.message), raw, obj)
        except Exception as e:
            return _failure(key_path, str(e), raw, obj)

        if value is not None:
            result[key] = value

    return ValidationOutcome(value=result)


def validate(schema: Union[Schema, Mapping[str, Any]], obj: Any) -> ValidationOutcome:
    """
    Validate an object against a schema.

    Walks the schema in key order and stops at the first failing field.

    Args:
        schema: Schema (or raw mapping definition) to validate against
        obj: Untrusted object, typically a decoded JSON payload

    Returns:
        ValidationOutcome holding either the sanitized object or the error
    """
    if not isinstance(schema, Schema):
        schema = Schema(schema)

    outcome = _validate_object(schema, obj, "")
    if not outcome.ok:
        logger.debug(f"Format validation failed: {outcome.error.message}")
    return outcome


def check_format(schema: Union[Schema, Mapping[str, Any]], obj: Any) -> Dict[str, Any]:
    """
    Validate an object against a schema, raising on failure.

    Args:
        schema: Schema (or raw mapping definition) to validate against
        obj: Untrusted object

    Returns:
        Sanitized object containing only schema keys

    Raises:
        InvalidFormatError: If any field fails its checker
    """
    return validate(schema, obj).unwrap()
