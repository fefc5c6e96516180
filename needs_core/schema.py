"""Needs Schema - Schema compilation and composition.

Turns a terse, user-authored schema description into a compiled tree of
field descriptors:

    {
        "id": "int",                      # required integer
        "tags_": "str[]",                 # optional array of strings
        "point": "float[2]",              # array of exactly two floats
        "name": "string32",               # string of at most 32 characters
        "ratio": "[0,1)",                 # number in the half-open range
        "order_": ["asc", "desc"],        # one of a set of literals
        "slug": re.compile(r"^[a-z-]+$"), # regular expression match
        "limit": [["int", "null"]],       # any one of several alternatives
        "owner": {"id": "int"},           # nested object
        "page_": pagination,              # a previously compiled scheme
        "token": check_token,             # custom mutator
    }

Architecture:
    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Schema Compiler                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐                 │
    │  │    Raw      │  │ Type String │  │   Type      │                 │
    │  │   Schema    │──│   Parser    │──│  Registry   │                 │
    │  └─────────────┘  └─────────────┘  └─────────────┘                 │
    │         │               │               │                           │
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐                 │
    │  │   Field     │  │  Compiled   │  │   Schema    │                 │
    │  │ Descriptor  │──│   Schema    │──│   Merger    │                 │
    │  └─────────────┘  └─────────────┘  └─────────────┘                 │
    └─────────────────────────────────────────────────────────────────────┘

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum, auto
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union

import yaml

from needs_core.types import Coercer, TypeRegistry, ValidationError, coerce_bool, invalid

logger = logging.getLogger(__name__)

# Trailing character marking a field as optional
OPTIONAL_MARKER = "_"

_DIGITS = re.compile(r"\d+")


class SchemaError(ValueError):
    """Raised when a schema description itself is malformed."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(f"{message} (key: {key})" if key else message)
        self.key = key


class FieldKind(Enum):
    """How a compiled field is validated."""

    SCALAR = auto()
    NESTED_SCHEMA = auto()
    SET = auto()
    OR = auto()
    MUTATOR_FN = auto()
    RANGE_FN = auto()
    REGEX_FN = auto()


# =============================================================================
# Field Descriptor
# =============================================================================


@dataclass(frozen=True)
class FieldDescriptor:
    """Compiled description of a single schema key.

    Exactly one of ``coerce``, ``subschemas`` and ``nested`` is set,
    depending on ``kind``.
    """

    kind: FieldKind
    coerce: Optional[Coercer] = None
    type_name: Optional[str] = None
    is_array: bool = False
    fixed_length: Optional[int] = None
    length: Optional[int] = None  # max string length
    required: bool = True
    subschemas: Optional[Tuple[Schema, ...]] = None
    nested: Optional[Schema] = None


# =============================================================================
# Compiled Schema
# =============================================================================


class Schema(Mapping):
    """Compiled schema: an ordered, read-only mapping of field name to descriptor."""

    def __init__(self, fields: Optional[Dict[str, FieldDescriptor]] = None):
        self._fields: Dict[str, FieldDescriptor] = dict(fields or {})

    def __getitem__(self, name: str) -> FieldDescriptor:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def merge(self, other: Schema) -> Schema:
        return merge_schemas(self, other)

    def describe(self) -> Dict[str, Any]:
        """Readable summary of the compiled tree, mostly for debugging."""
        summary: Dict[str, Any] = {}
        for name, desc in self._fields.items():
            if desc.kind is FieldKind.NESTED_SCHEMA:
                entry: Any = desc.nested.describe()
            elif desc.kind is FieldKind.OR:
                entry = [sub.describe()[name] for sub in desc.subschemas]
            else:
                entry = desc.type_name
                if desc.is_array:
                    entry = f"{entry}[{desc.fixed_length or ''}]"
            summary[name if desc.required else name + OPTIONAL_MARKER] = entry
        return summary

    def __repr__(self) -> str:
        return f"Schema({', '.join(self._fields)})"


class SchemaBearer(ABC):
    """Anything carrying a compiled schema that can be reused as a field type."""

    @property
    @abstractmethod
    def schema(self) -> Schema:
        """The compiled schema."""


# =============================================================================
# Type String Parser
# =============================================================================


@dataclass
class TypeSpec:
    """Result of parsing a type string."""

    kind: FieldKind
    coerce: Coercer
    type_name: str
    is_array: bool = False
    fixed_length: Optional[int] = None
    length: Optional[int] = None


def _format_bound(bound: float) -> str:
    return str(int(bound)) if bound.is_integer() else str(bound)


def _range_coercer(low: float, high: float, low_inclusive: bool, high_inclusive: bool) -> Coercer:
    label = (
        f"{'[' if low_inclusive else '('}{_format_bound(low)},"
        f"{_format_bound(high)}{']' if high_inclusive else ')'}"
    )

    def coerce_range(value: Any, length: Optional[int] = None) -> Any:
        if isinstance(value, bool):
            return invalid(value, f"Expected number in range {label}")
        try:
            number = float(value.strip() if isinstance(value, str) else value)
        except (TypeError, ValueError, OverflowError):
            return invalid(value, f"Expected number in range {label}")
        if math.isnan(number):
            return invalid(value, f"Expected number in range {label}")

        above_low = number >= low if low_inclusive else number > low
        below_high = number <= high if high_inclusive else number < high
        if not (above_low and below_high):
            return invalid(value, f"Value {value} outside range {label}")
        return number

    coerce_range.__name__ = f"range{label}"
    return coerce_range


def _parse_range(text: str, key: Optional[str]) -> TypeSpec:
    if text[-1] not in "])":
        raise SchemaError(f"Malformed range '{text}'", key)
    bounds = text[1:-1].split(",")
    if len(bounds) != 2:
        raise SchemaError(f"Malformed range '{text}'", key)
    try:
        low, high = float(bounds[0]), float(bounds[1])
    except ValueError:
        raise SchemaError(f"Malformed range bounds '{text}'", key) from None
    if math.isnan(low) or math.isnan(high) or not low < high:
        raise SchemaError(f"Range minimum must be below maximum in '{text}'", key)

    return TypeSpec(
        kind=FieldKind.RANGE_FN,
        coerce=_range_coercer(low, high, text[0] == "[", text[-1] == "]"),
        type_name=text,
    )


def _parse_array_suffix(suffix: str, key: Optional[str]) -> Optional[int]:
    """Parse ``[]`` / ``[n]``; returns the fixed length, if any."""
    inner = suffix[1:-1].strip()
    if not inner:
        return None
    if not inner.isdigit() or int(inner) <= 0:
        raise SchemaError(f"Invalid array length '{inner}'", key)
    return int(inner)


def parse_type_string(definition: str, key: Optional[str] = None) -> TypeSpec:
    """Parse a type string from the schema mini-language.

    Args:
        definition: Type string, e.g. ``int``, ``str[]``, ``bool[3]``,
            ``string10`` or ``(0,1]``
        key: Field path, used in error messages

    Returns:
        Parsed type specification

    Raises:
        SchemaError: If the type string is malformed or names an unknown type
    """
    text = definition.strip()
    if not text:
        raise SchemaError("Empty parameter type", key)

    # Numeric range, optionally followed by an array suffix
    if text[0] in "[(":
        close = min((i for i in (text.find("]"), text.find(")")) if i >= 0), default=-1)
        if close < 0:
            raise SchemaError(f"Malformed range '{text}'", key)
        spec = _parse_range(text[: close + 1], key)
        rest = text[close + 1 :]
        if rest:
            if not (rest[0] == "[" and rest[-1] == "]"):
                raise SchemaError(f"Malformed range '{text}'", key)
            spec.is_array = True
            spec.fixed_length = _parse_array_suffix(rest, key)
        return spec

    is_array = False
    fixed_length = None
    if text[-1] == "]":
        open_at = text.rfind("[")
        if open_at <= 0:
            raise SchemaError(f"Malformed array type '{text}'", key)
        is_array = True
        fixed_length = _parse_array_suffix(text[open_at:], key)
        text = text[:open_at].strip()

    length = None
    digits = _DIGITS.search(text)
    if digits:
        length = int(digits.group())
        text = _DIGITS.sub("", text)

    coerce = TypeRegistry.get(text)
    if coerce is None:
        raise SchemaError(f"Invalid parameter type '{text}'", key)

    return TypeSpec(
        kind=FieldKind.SCALAR,
        coerce=coerce,
        type_name=text.lower(),
        is_array=is_array,
        fixed_length=fixed_length,
        length=length,
    )


# =============================================================================
# Literal Sets, Regular Expressions and Custom Mutators
# =============================================================================


def _loosely_equal(literal: Any, value: Any) -> bool:
    if literal is None:
        return value is None or (isinstance(value, str) and value.strip().lower() == "null")
    if isinstance(literal, bool) or isinstance(value, bool):
        if isinstance(literal, bool) and isinstance(value, bool):
            return literal is value
        flag = value if isinstance(value, bool) else literal
        other = literal if isinstance(value, bool) else value
        return coerce_bool(other) is flag
    if isinstance(literal, (int, float)):
        if isinstance(value, (int, float)):
            return literal == value
        if isinstance(value, str):
            try:
                return float(value.strip()) == literal
            except ValueError:
                return False
        return False
    if isinstance(literal, str) and isinstance(value, (int, float)):
        try:
            return float(literal.strip()) == value
        except ValueError:
            return False
    return literal == value


def _set_coercer(literals: Tuple[Any, ...]) -> Coercer:
    options = "/".join(str(literal) for literal in literals)

    def coerce_set(value: Any, length: Optional[int] = None) -> Any:
        for literal in literals:
            if _loosely_equal(literal, value):
                return literal
        return invalid(value, f"Invalid parameter value, expected {options}")

    return coerce_set


def _regex_coercer(pattern: re.Pattern) -> Coercer:
    def coerce_regex(value: Any, length: Optional[int] = None) -> Any:
        if pattern.search(str(value)):
            return value
        return invalid(value, f"Value does not match pattern '{pattern.pattern}'")

    return coerce_regex


def _mutator_coercer(func: Callable[[Any], Any]) -> Coercer:
    """Wrap a user function so it follows the coercion contract.

    The function may signal an invalid value by returning a ValidationError
    or an Exception instance, or by raising ValueError or TypeError.
    """

    def coerce_custom(value: Any, length: Optional[int] = None) -> Any:
        try:
            result = func(value)
        except (TypeError, ValueError) as e:
            return invalid(value, str(e) or "Invalid parameter value")
        if isinstance(result, ValidationError):
            return result
        if isinstance(result, Exception):
            return invalid(value, str(result) or "Invalid parameter value")
        return result

    coerce_custom.__name__ = getattr(func, "__name__", "mutator")
    return coerce_custom


# =============================================================================
# Compiler
# =============================================================================


def _child_path(parent: Optional[str], key: str) -> str:
    return f"{parent}[{key}]" if parent else key


def _compile_field(name: str, definition: Any, parent: Optional[str], required: bool) -> FieldDescriptor:
    path = _child_path(parent, name)

    if isinstance(definition, (SchemaBearer, Schema)):
        nested = definition.schema if isinstance(definition, SchemaBearer) else definition
        return FieldDescriptor(FieldKind.NESTED_SCHEMA, nested=nested, required=required)

    if callable(definition):
        return FieldDescriptor(
            FieldKind.MUTATOR_FN,
            coerce=_mutator_coercer(definition),
            type_name=getattr(definition, "__name__", "mutator"),
            required=required,
        )

    if isinstance(definition, (list, tuple)):
        if len(definition) == 1 and isinstance(definition[0], (list, tuple)):
            alternatives = definition[0]
            if not alternatives:
                raise SchemaError("Empty list of alternatives", path)
            subschemas = tuple(compile_schema({name: alt}, parent) for alt in alternatives)
            return FieldDescriptor(FieldKind.OR, subschemas=subschemas, type_name="or", required=required)
        if not definition:
            raise SchemaError("Empty set of values", path)
        literals = tuple(definition)
        return FieldDescriptor(
            FieldKind.SET,
            coerce=_set_coercer(literals),
            type_name="/".join(str(literal) for literal in literals),
            required=required,
        )

    if isinstance(definition, re.Pattern):
        return FieldDescriptor(
            FieldKind.REGEX_FN,
            coerce=_regex_coercer(definition),
            type_name=f"/{definition.pattern}/",
            required=required,
        )

    if isinstance(definition, Mapping):
        return FieldDescriptor(
            FieldKind.NESTED_SCHEMA,
            nested=compile_schema(definition, path),
            required=required,
        )

    if isinstance(definition, str):
        spec = parse_type_string(definition, path)
        return FieldDescriptor(
            spec.kind,
            coerce=spec.coerce,
            type_name=spec.type_name,
            is_array=spec.is_array,
            fixed_length=spec.fixed_length,
            length=spec.length,
            required=required,
        )

    raise SchemaError(f"Invalid parameter scheme of type {type(definition).__name__}", path)


def compile_schema(raw: Union[Mapping, Schema, SchemaBearer], parent: Optional[str] = None) -> Schema:
    """Compile a schema description.

    Args:
        raw: Mapping of field name to type descriptor, or an already
            compiled schema
        parent: Path of the enclosing field, used in error messages

    Returns:
        Compiled schema

    Raises:
        SchemaError: If the description is malformed
    """
    if isinstance(raw, SchemaBearer):
        return raw.schema
    if isinstance(raw, Schema):
        return raw
    if not isinstance(raw, Mapping):
        raise SchemaError(f"Schema must be a mapping, got {type(raw).__name__}", parent)

    fields: Dict[str, FieldDescriptor] = {}
    for key, definition in raw.items():
        key = str(key)
        required = True
        name = key
        if len(key) > 1 and key.endswith(OPTIONAL_MARKER):
            name = key[: -len(OPTIONAL_MARKER)]
            required = False
        fields[name] = _compile_field(name, definition, parent, required)

    schema = Schema(fields)
    if parent is None:
        logger.debug(f"Compiled schema with fields: {', '.join(fields) or '(none)'}")
    return schema


# =============================================================================
# Composition
# =============================================================================


def merge_schemas(receiver: Schema, other: Schema, _parent: Optional[str] = None) -> Schema:
    """Merge ``other`` into a copy of ``receiver``.

    Keys missing from the receiver are added. Keys holding nested schemas on
    both sides are merged recursively. Any other collision keeps the
    receiver's field. Neither input is modified.
    """
    fields = dict(receiver.items())
    for name, desc in other.items():
        path = _child_path(_parent, name)
        current = fields.get(name)
        if current is None:
            fields[name] = desc
        elif current.kind is FieldKind.NESTED_SCHEMA and desc.kind is FieldKind.NESTED_SCHEMA:
            fields[name] = replace(current, nested=merge_schemas(current.nested, desc.nested, path))
        elif current != desc:
            logger.warning(f"Conflicting definitions for '{path}' while merging schemas, keeping the first")

    logger.debug(f"Merged schema fields: {', '.join(fields)}")
    return Schema(fields)


# =============================================================================
# Schema Files
# =============================================================================


def load_schemas(path: Path) -> Dict[str, Schema]:
    """Load named schemas from a YAML file.

    The top level of the document maps schema names to raw schemas.

    Args:
        path: YAML file path

    Returns:
        Compiled schemas by name
    """
    with Path(path).open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, Mapping):
        raise SchemaError(f"Schema file {path} must contain a mapping at the top level")

    schemas = {}
    for name, raw in data.items():
        schemas[str(name)] = compile_schema(raw or {})
    logger.info(f"Loaded {len(schemas)} schemas from {path}")
    return schemas


__all__ = [
    "OPTIONAL_MARKER",
    "SchemaError",
    "FieldKind",
    "FieldDescriptor",
    "Schema",
    "SchemaBearer",
    "TypeSpec",
    "parse_type_string",
    "compile_schema",
    "merge_schemas",
    "load_schemas",
]
