"""Needs - Declarative parameter validators.

Compiles schemas into reusable validators bound to a data source:

    from needs_core import needs

    check = needs(strict=True)

    pagination = check.query({"limit": "int", "last_": "int", "order_": ["asc", "desc"]})
    search = check.query({"q": "string64", "page_": pagination})

    error = search(request)                 # validates request.query in place
    search(request, response, next)         # middleware style, calls next(error)

    merged = search.including({"lang_": ["en", "de"]})

Each variant differs only in where the data bag is read from:

    headers      request.headers
    querystring  request.query (or request.query_params)
    params       request.params (or request.path_params)
    body         request.body, falling back to the query string when empty
    data         the plain data bag passed in
    format       a deep copy of the data bag, returned with the error

Decoding raw request bodies is left to the caller: the body variant expects
an already parsed mapping.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from needs_core.engine import NeedsConfig, ValidationEngine
from needs_core.schema import Schema, SchemaBearer, compile_schema, merge_schemas
from needs_core.types import ValidationError

logger = logging.getLogger(__name__)


class DataSource(str, Enum):
    """Where a validator reads its data bag from."""

    HEADERS = "headers"
    QUERY = "query"
    PARAMS = "params"
    BODY = "body"
    DATA = "data"
    FORMAT = "format"

    @classmethod
    def _missing_(cls, value: object) -> Optional["DataSource"]:
        if isinstance(value, str):
            for member in cls:
                if member.value == value.lower():
                    return member
        return None


# Request keys/attributes tried in order for each request-bound source
REQUEST_KEYS: Dict[DataSource, Tuple[str, ...]] = {
    DataSource.HEADERS: ("headers",),
    DataSource.QUERY: ("query", "query_params"),
    DataSource.PARAMS: ("params", "path_params"),
    DataSource.BODY: ("body",),
}


def _read(request: Any, names: Tuple[str, ...]) -> Any:
    for name in names:
        if isinstance(request, Mapping):
            value = request.get(name)
        else:
            value = getattr(request, name, None)
        if value is not None:
            return value
    return None


def request_data(request: Any, source: DataSource) -> Any:
    """Get the data bag of a request for a request-bound source.

    Args:
        request: Request object or mapping
        source: Data source to read

    Returns:
        The data bag, or an empty dict when the request has none
    """
    bag = _read(request, REQUEST_KEYS[source])
    if source is DataSource.BODY and not bag:
        bag = _read(request, REQUEST_KEYS[DataSource.QUERY])
    return {} if bag is None else bag


# =============================================================================
# Scheme Handle
# =============================================================================


class SchemeHandle(SchemaBearer):
    """A compiled schema paired with the validator that applies it.

    Handles are callable and can be nested inside other schemas, where they
    are reused without being compiled again.
    """

    def __init__(
        self,
        schema: Schema,
        engine: ValidationEngine,
        source: Union[DataSource, str] = DataSource.DATA,
        strict: Optional[bool] = None,
    ):
        self._schema = schema
        self.engine = engine
        self.source = DataSource(source)
        self.strict = strict

    @property
    def schema(self) -> Schema:
        return self._schema

    def validate(self, data: Any, request: Any = None) -> Optional[ValidationError]:
        """Validate a data bag in place."""
        return self.engine.validate(self._schema, data, request=request, strict=self.strict)

    def __call__(self, target: Any, response: Any = None, next: Optional[Callable] = None) -> Any:
        """Run the validator.

        For ``data`` handles ``target`` is the data bag and the error (or
        None) is returned. ``format`` handles validate a deep copy and
        return ``(error, copy)``. Every other handle treats ``target`` as a
        request. When ``next`` is callable it receives the result instead.
        """
        if self.source is DataSource.FORMAT:
            clone = copy.deepcopy(target) if target is not None else {}
            error = self.validate(clone)
            if callable(next):
                return next(error, clone)
            return error, clone

        if self.source is DataSource.DATA:
            error = self.validate(target)
        else:
            error = self.validate(request_data(target, self.source), request=target)

        if callable(next):
            return next(error)
        return error

    def including(self, other: Union[SchemaBearer, Schema, Mapping]) -> SchemeHandle:
        """Return a new handle whose schema also includes ``other``.

        Args:
            other: Another handle, a compiled schema or a raw schema

        Returns:
            New handle bound to the same engine and data source
        """
        merged = merge_schemas(self._schema, compile_schema(other))
        return SchemeHandle(merged, self.engine, self.source, self.strict)

    def __repr__(self) -> str:
        return f"SchemeHandle(source={self.source.value}, fields=[{', '.join(self._schema)}])"


class ZeroSchema:
    """Validators accepting only an empty data bag, regardless of strict mode."""

    def __init__(self, engine: ValidationEngine):
        empty = Schema()
        self.headers = SchemeHandle(empty, engine, DataSource.HEADERS, strict=True)
        self.querystring = SchemeHandle(empty, engine, DataSource.QUERY, strict=True)
        self.query = self.querystring
        self.params = SchemeHandle(empty, engine, DataSource.PARAMS, strict=True)
        self.body = SchemeHandle(empty, engine, DataSource.BODY, strict=True)
        self.data = SchemeHandle(empty, engine, DataSource.DATA, strict=True)


# =============================================================================
# Needs
# =============================================================================


class Needs:
    """Factory for schema-bound validators sharing one configuration.

    Args:
        config: Validator configuration
        **options: Configuration fields (``strict``, ``on_error``),
            overriding ``config``
    """

    def __init__(self, config: Optional[NeedsConfig] = None, **options: Any):
        if config is None:
            config = NeedsConfig(**options)
        elif options:
            config = replace(config, **options)
        self.config = config
        self.engine = ValidationEngine(config)
        self.no = ZeroSchema(self.engine)

    def _handle(self, raw: Any, source: DataSource) -> SchemeHandle:
        handle = SchemeHandle(compile_schema(raw), self.engine, source)
        logger.debug(f"Created {source.value} validator: {handle}")
        return handle

    def headers(self, raw: Any) -> SchemeHandle:
        return self._handle(raw, DataSource.HEADERS)

    def querystring(self, raw: Any) -> SchemeHandle:
        return self._handle(raw, DataSource.QUERY)

    query = querystring

    def params(self, raw: Any) -> SchemeHandle:
        """Validator for path parameters."""
        return self._handle(raw, DataSource.PARAMS)

    def body(self, raw: Any) -> SchemeHandle:
        return self._handle(raw, DataSource.BODY)

    def data(self, raw: Any) -> SchemeHandle:
        """Validator for plain data bags."""
        return self._handle(raw, DataSource.DATA)

    def format(self, raw: Any) -> SchemeHandle:
        """Validator that coerces a copy, leaving the input untouched."""
        return self._handle(raw, DataSource.FORMAT)


def needs(config: Optional[NeedsConfig] = None, **options: Any) -> Needs:
    """Create a Needs factory."""
    return Needs(config, **options)


__all__ = [
    "DataSource",
    "REQUEST_KEYS",
    "request_data",
    "SchemeHandle",
    "ZeroSchema",
    "Needs",
    "needs",
]
