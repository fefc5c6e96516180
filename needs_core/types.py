"""Needs Types - Parameter types, coercion and validation errors.

Provides the type system used by compiled schemas:
- Scalar types (int, bool, str, float)
- Temporal types (datetime and its aliases)
- Special types (null, obj)
- The runtime error model (ErrorKind, ValidationError)

Every type is a coercion function with the signature::

    coerce(value, length=None) -> coerced value | ValidationError

A coercion function never raises for bad input. It returns a
ValidationError without a field path; the engine attaches the path of the
field being validated.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

Coercer = Callable[..., Any]


class ErrorKind(Enum):
    """Categories of runtime validation errors."""

    MISSING_REQUIRED_PARAMETER = "MissingRequiredParameter"
    UNEXPECTED_PARAMETER = "UnexpectedParameter"
    INVALID_VALUE = "InvalidValue"
    INVALID_LENGTH = "InvalidLength"


@dataclass
class ValidationError:
    """Validation error details."""

    kind: ErrorKind
    message: str
    field: str = ""
    value: Any = None
    expected: bool = True
    request: Any = dataclass_field(default=None, repr=False, compare=False)

    def at(self, path: str) -> ValidationError:
        """Attach a field path unless a deeper level already did."""
        if not self.field:
            self.field = path
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "field": self.field,
            "value": self.value,
            "expected": self.expected,
        }

    def __str__(self) -> str:
        if self.field:
            return f"{self.message}: {self.field}"
        return self.message


def invalid(value: Any, message: str = "Invalid parameter value") -> ValidationError:
    """Build an INVALID_VALUE error for a raw value."""
    return ValidationError(ErrorKind.INVALID_VALUE, message, value=value)


# =============================================================================
# Numeric Types
# =============================================================================


def coerce_int(value: Any, length: Optional[int] = None) -> Any:
    """Coerce to int.

    Floats and numeric strings are accepted only when they carry no
    fractional part: ``"3.5"`` is rejected, not truncated to 3 the way
    JavaScript's ``parseInt`` would.
    """
    if isinstance(value, bool):
        return invalid(value, "Expected integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            return invalid(value, "Float value has fractional part")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 10)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return invalid(value, f"Expected integer, got '{value}'")
        if not number.is_integer():
            return invalid(value, "Float value has fractional part")
        return int(number)
    return invalid(value, f"Expected integer, got {type(value).__name__}")


def coerce_float(value: Any, length: Optional[int] = None) -> Any:
    if isinstance(value, bool):
        return invalid(value, "Expected number, got bool")
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return invalid(value, "Number too large")
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return invalid(value, f"Expected number, got '{value}'")
    else:
        return invalid(value, f"Expected number, got {type(value).__name__}")

    if math.isnan(number):
        return invalid(value, "NaN is not a number")
    return number


# =============================================================================
# Boolean Type
# =============================================================================

TRUE_VALUES = frozenset({"t", "true", "1"})
FALSE_VALUES = frozenset({"f", "false", "0", "-1"})


def coerce_bool(value: Any, length: Optional[int] = None) -> Any:
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return invalid(value, f"Expected boolean, got '{value}'")


# =============================================================================
# String Type
# =============================================================================


def coerce_str(value: Any, length: Optional[int] = None) -> Any:
    """Coerce to str, enforcing an optional maximum length.

    Containers and None are rejected rather than stringified.
    """
    if value is None or isinstance(value, (Mapping, list, tuple, set, bytes)):
        return invalid(value, f"Expected string, got {type(value).__name__}")

    text = value if isinstance(value, str) else str(value)
    if length is not None and len(text) > length:
        return ValidationError(
            ErrorKind.INVALID_LENGTH,
            f"String too long (max {length})",
            value=value,
        )
    return text


# =============================================================================
# Temporal Types
# =============================================================================


def coerce_datetime(value: Any, length: Optional[int] = None) -> Any:
    """Coerce to datetime.

    Accepts ISO-8601 strings (a trailing ``Z`` means UTC), non-negative
    epoch milliseconds and datetime instances.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return invalid(value, f"Invalid datetime string: {value}")
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return invalid(value, f"Timestamp out of range: {value}")
    return invalid(value, f"Expected datetime, got {type(value).__name__}")


# =============================================================================
# Special Types
# =============================================================================


def coerce_null(value: Any, length: Optional[int] = None) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() == "null":
        return None
    return invalid(value, "Expected null")


def coerce_obj(value: Any, length: Optional[int] = None) -> Any:
    if isinstance(value, Mapping):
        return value
    return invalid(value, f"Expected object, got {type(value).__name__}")


# =============================================================================
# Type Registry
# =============================================================================


class TypeRegistry:
    """Registry of all available parameter types, keyed by name and alias."""

    _types: Dict[str, Coercer] = {
        "int": coerce_int,
        "integer": coerce_int,
        "bool": coerce_bool,
        "boolean": coerce_bool,
        "str": coerce_str,
        "string": coerce_str,
        "float": coerce_float,
        "number": coerce_float,
        "numeric": coerce_float,
        "num": coerce_float,
        "datetime": coerce_datetime,
        "date": coerce_datetime,
        "time": coerce_datetime,
        "timestamp": coerce_datetime,
        "null": coerce_null,
        "none": coerce_null,
        "obj": coerce_obj,
        "object": coerce_obj,
    }

    @classmethod
    def get(cls, type_name: str) -> Optional[Coercer]:
        """Get a coercion function by type name or alias."""
        return cls._types.get(type_name.lower())

    @classmethod
    def register(cls, name: str, coercer: Coercer) -> None:
        """Register a new type.

        The coercion function must accept ``(value, length=None)`` and return
        either the coerced value or a ValidationError.
        """
        cls._types[name.lower()] = coercer

    @classmethod
    def all_types(cls) -> Dict[str, Coercer]:
        """Get all registered types."""
        return cls._types.copy()


__all__ = [
    # Errors
    "ErrorKind",
    "ValidationError",
    "invalid",
    # Coercion
    "coerce_int",
    "coerce_float",
    "coerce_bool",
    "coerce_str",
    "coerce_datetime",
    "coerce_null",
    "coerce_obj",
    # Registry
    "TypeRegistry",
]
