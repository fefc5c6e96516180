from typing import Any, Dict, Optional

import pytest

from needs_core import Needs, NeedsConfig, ValidationEngine


class Request:
    """Minimal request object exposing the attributes validators read."""

    def __init__(
        self,
        headers: Optional[Dict[str, Any]] = None,
        query: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.headers = headers if headers is not None else {}
        self.query = query if query is not None else {}
        self.params = params if params is not None else {}
        self.body = body


@pytest.fixture
def engine() -> ValidationEngine:
    return ValidationEngine(NeedsConfig(strict=True))


@pytest.fixture
def lenient_engine() -> ValidationEngine:
    return ValidationEngine(NeedsConfig(strict=False))


@pytest.fixture
def check() -> Needs:
    return Needs(strict=True)


@pytest.fixture
def lenient() -> Needs:
    return Needs(strict=False)
