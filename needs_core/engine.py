"""Needs Engine - Validation and coercion of data bags against compiled schemas.

The engine walks a data bag depth-first alongside its compiled schema,
coercing every field in place and stopping at the first error.

Architecture:
    ValidationEngine
    ├── Strict Check (unexpected keys, every nesting level)
    ├── Field Dispatch
    │   ├── Nested Schema → recurse
    │   ├── OR → probe alternatives on copies
    │   ├── Array → wrap, length check, coerce elements
    │   └── Scalar / Set / Range / Regex / Mutator → coerce
    └── Error Reporting
        └── on_error hook (transform or suppress)

Data bags are mutated in place: on success every validated field holds its
coerced value. Runtime errors are returned, never raised.
"""

from __future__ import annotations

import copy
import logging
import os
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from needs_core.schema import FieldDescriptor, FieldKind, Schema
from needs_core.types import ErrorKind, ValidationError

logger = logging.getLogger(__name__)

ErrorHook = Callable[[ValidationError], Any]

_ENV_TRUE = {"1", "true", "yes", "on"}


@dataclass
class NeedsConfig:
    """Configuration for validators."""
    strict: bool = True
    on_error: Optional[ErrorHook] = None

    @classmethod
    def from_yaml(cls, path: Path, **overrides: Any) -> "NeedsConfig":
        """Load configuration from YAML file."""
        with Path(path).open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        data.update(overrides)
        return cls(**data)

    @classmethod
    def from_env(cls, **overrides: Any) -> "NeedsConfig":
        """Load configuration from environment variables."""
        data: Dict[str, Any] = {
            "strict": os.getenv("NEEDS_STRICT", "true").strip().lower() in _ENV_TRUE,
        }
        data.update(overrides)
        return cls(**data)


@dataclass(frozen=True)
class _Walk:
    """Per-call state shared by every level of one validation."""
    request: Any = None
    strict: bool = True
    hooked: bool = True


def _child_path(parent: Optional[str], key: Any) -> str:
    return f"{parent}[{key}]" if parent else str(key)


class ValidationEngine:
    """Validates and coerces data bags against compiled schemas."""

    def __init__(self, config: Optional[NeedsConfig] = None):
        self.config = config or NeedsConfig()

    def validate(
        self,
        schema: Schema,
        data: Optional[Mapping],
        request: Any = None,
        parent: Optional[str] = None,
        strict: Optional[bool] = None,
    ) -> Optional[ValidationError]:
        """Validate a data bag, coercing its fields in place.

        Args:
            schema: Compiled schema
            data: Data bag to validate; mutated on success
            request: Request the data bag came from, attached to errors
            parent: Path of the enclosing field, when validating a sub-bag
            strict: Override the configured strict mode

        Returns:
            The first error found, or None if the data bag is valid
        """
        walk = _Walk(request=request, strict=self.config.strict if strict is None else strict)

        if data is None:
            data = {}
        if not isinstance(data, MutableMapping):
            return self._fail(
                ValidationError(
                    ErrorKind.INVALID_VALUE,
                    "Invalid parameter type, object expected",
                    parent or "",
                    data,
                ),
                walk,
            )
        return self._walk(schema, data, parent, walk)

    def _fail(self, error: ValidationError, walk: _Walk) -> Any:
        if error.request is None:
            error.request = walk.request
        if not walk.hooked:
            return error

        logger.debug(f"Validation failed: {error}")
        if self.config.on_error is None:
            return error

        result = self.config.on_error(error)
        if not result:
            logger.info(f"Validation error suppressed by on_error hook: {error}")
            return None
        return result

    def _walk(self, schema: Schema, data: MutableMapping, parent: Optional[str], walk: _Walk) -> Any:
        if walk.strict:
            unexpected = [key for key in data if key not in schema]
            if unexpected:
                error = self._fail(
                    ValidationError(
                        ErrorKind.UNEXPECTED_PARAMETER,
                        f"Unexpected parameter(s): {', '.join(str(key) for key in unexpected)}",
                        _child_path(parent, unexpected[0]),
                        data[unexpected[0]],
                        expected=False,
                    ),
                    walk,
                )
                if error:
                    return error

        for name, desc in schema.items():
            if name not in data:
                if not desc.required:
                    continue
                error = self._fail(
                    ValidationError(
                        ErrorKind.MISSING_REQUIRED_PARAMETER,
                        "Missing expected parameter",
                        _child_path(parent, name),
                    ),
                    walk,
                )
            else:
                error = self._check_field(desc, data, name, parent, walk)
            if error:
                return error

        return None

    def _check_field(
        self,
        desc: FieldDescriptor,
        data: MutableMapping,
        name: str,
        parent: Optional[str],
        walk: _Walk,
    ) -> Any:
        path = _child_path(parent, name)
        value = data[name]

        if desc.kind is FieldKind.NESTED_SCHEMA:
            if not isinstance(value, MutableMapping):
                return self._fail(
                    ValidationError(ErrorKind.INVALID_VALUE, "Invalid parameter type, object expected", path, value),
                    walk,
                )
            return self._walk(desc.nested, value, path, walk)

        if desc.kind is FieldKind.OR:
            return self._check_alternatives(desc, data, name, parent, walk)

        if desc.is_array:
            return self._check_array(desc, data, name, path, walk)

        result = desc.coerce(value, desc.length)
        if isinstance(result, ValidationError):
            return self._fail(result.at(path), walk)
        data[name] = result
        return None

    def _check_alternatives(
        self,
        desc: FieldDescriptor,
        data: MutableMapping,
        name: str,
        parent: Optional[str],
        walk: _Walk,
    ) -> Any:
        # Probe on copies so a failed alternative leaves no partial coercion behind
        probe_walk = replace(walk, hooked=False)
        for subschema in desc.subschemas:
            probe = {name: copy.deepcopy(data[name])}
            if self._walk(subschema, probe, parent, probe_walk) is None:
                data[name] = probe[name]
                return None

        return self._fail(
            ValidationError(ErrorKind.INVALID_VALUE, "Invalid parameter value", _child_path(parent, name), data[name]),
            walk,
        )

    def _check_array(
        self,
        desc: FieldDescriptor,
        data: MutableMapping,
        name: str,
        path: str,
        walk: _Walk,
    ) -> Any:
        value = data[name]
        if isinstance(value, list):
            items = value
        elif isinstance(value, tuple):
            items = list(value)
        else:
            items = [value]

        if desc.fixed_length is not None and len(items) != desc.fixed_length:
            return self._fail(
                ValidationError(
                    ErrorKind.INVALID_LENGTH,
                    f"Array length must be {desc.fixed_length}",
                    path,
                    len(items),
                ),
                walk,
            )

        for index, item in enumerate(items):
            result = desc.coerce(item, desc.length)
            if isinstance(result, ValidationError):
                error = self._fail(result.at(f"{path}[{index}]"), walk)
                if error:
                    return error
                continue
            items[index] = result

        data[name] = items
        return None


__all__ = [
    "NeedsConfig",
    "ValidationEngine",
]
