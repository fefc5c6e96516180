"""Needs - Declarative request parameter validation and coercion.

Needs checks the data bags of incoming requests (headers, query string, path
parameters or body) against compact schemas:
- Typed fields with coercion of raw string input (int, bool, str, float, datetime, null, obj)
- Optional fields, arrays and fixed-length arrays
- Numeric ranges, literal sets, regular expressions and custom mutators
- Alternatives ("OR") and nested objects
- Composition of schemas with ``including``
- Strict rejection of unexpected parameters at every nesting level

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                             Needs                               │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │   Schema    │  │  Compiled   │  │ Validation  │             │
    │  │  Compiler   │──│   Schema    │──│   Engine    │             │
    │  └─────────────┘  └─────────────┘  └─────────────┘             │
    │         │               │               │                       │
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐             │
    │  │    Type     │  │   Scheme    │  │  on_error   │             │
    │  │  Registry   │──│   Handles   │──│    Hook     │             │
    │  └─────────────┘  └─────────────┘  └─────────────┘             │
    └─────────────────────────────────────────────────────────────────┘

Usage:
    from needs_core import needs

    check = needs(strict=True)
    validate = check.data({
        "id": "int",
        "tags_": "str[]",
        "ratio": "[0,1]",
    })

    data = {"id": "42", "tags": "a", "ratio": "0.5"}
    error = validate(data)
    # error is None, data == {"id": 42, "tags": ["a"], "ratio": 0.5}

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

__version__ = "1.0.0"
__author__ = "BlackRoad OS, Inc."
__email__ = "engineering@blackroad.io"

# Core exports
from needs_core.engine import NeedsConfig, ValidationEngine
from needs_core.needs import DataSource, Needs, SchemeHandle, needs
from needs_core.schema import (
    FieldDescriptor, FieldKind, Schema, SchemaBearer, SchemaError,
    compile_schema, load_schemas, merge_schemas, parse_type_string
)
from needs_core.types import ErrorKind, TypeRegistry, ValidationError

__all__ = [
    # Version
    "__version__",

    # Facade
    "needs",
    "Needs",
    "SchemeHandle",
    "DataSource",

    # Engine
    "NeedsConfig",
    "ValidationEngine",

    # Schema
    "Schema",
    "SchemaBearer",
    "SchemaError",
    "FieldDescriptor",
    "FieldKind",
    "compile_schema",
    "merge_schemas",
    "parse_type_string",
    "load_schemas",

    # Types
    "ErrorKind",
    "ValidationError",
    "TypeRegistry",
]
