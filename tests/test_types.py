from datetime import datetime, timezone

import pytest

from needs_core.types import (
    ErrorKind,
    TypeRegistry,
    ValidationError,
    coerce_bool,
    coerce_datetime,
    coerce_float,
    coerce_int,
    coerce_null,
    coerce_obj,
    coerce_str,
)


@pytest.mark.parametrize(
    "coerce,raw,expected",
    [
        (coerce_int, "42", 42),
        (coerce_int, " 7 ", 7),
        (coerce_int, 42, 42),
        (coerce_int, 4.0, 4),
        (coerce_int, "3.0", 3),
        (coerce_bool, "t", True),
        (coerce_bool, "TRUE", True),
        (coerce_bool, 1, True),
        (coerce_bool, True, True),
        (coerce_bool, "f", False),
        (coerce_bool, "-1", False),
        (coerce_bool, 0, False),
        (coerce_bool, False, False),
        (coerce_float, "1.5", 1.5),
        (coerce_float, 2, 2.0),
        (coerce_str, 5, "5"),
        (coerce_str, "abc", "abc"),
        (coerce_null, None, None),
        (coerce_null, "null", None),
        (coerce_null, "NULL", None),
        (coerce_obj, {"a": 1}, {"a": 1}),
    ],
)
def test_coerce_valid(coerce, raw, expected) -> None:
    result = coerce(raw)
    assert result == expected
    assert type(result) is type(expected)


@pytest.mark.parametrize(
    "coerce,raw",
    [
        (coerce_int, "x"),
        (coerce_int, 3.5),
        (coerce_int, "3.5"),
        (coerce_int, True),
        (coerce_int, None),
        (coerce_bool, "yes"),
        (coerce_bool, "2"),
        (coerce_bool, None),
        (coerce_float, "abc"),
        (coerce_float, "nan"),
        (coerce_float, True),
        (coerce_float, [1]),
        (coerce_float, 10**400),
        (coerce_str, None),
        (coerce_str, {"a": 1}),
        (coerce_str, ["a"]),
        (coerce_datetime, "not a date"),
        (coerce_datetime, -1),
        (coerce_datetime, 10**400),
        (coerce_datetime, True),
        (coerce_null, 0),
        (coerce_null, ""),
        (coerce_obj, "x"),
        (coerce_obj, [1, 2]),
    ],
)
def test_coerce_invalid(coerce, raw) -> None:
    result = coerce(raw)
    assert isinstance(result, ValidationError)
    assert result.kind is ErrorKind.INVALID_VALUE
    assert result.value == raw
    assert result.field == ""


@pytest.mark.parametrize(
    "coerce,raw",
    [
        (coerce_int, "12"),
        (coerce_bool, "false"),
        (coerce_bool, "T"),
        (coerce_float, "0.25"),
        (coerce_str, 10),
        (coerce_null, "null"),
        (coerce_datetime, "2024-05-06T07:08:09Z"),
        (coerce_datetime, 86400000),
    ],
)
def test_coerce_is_idempotent(coerce, raw) -> None:
    once = coerce(raw)
    assert coerce(once) == once
    assert coerce(raw) == once


def test_datetime_parsing() -> None:
    assert coerce_datetime("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert coerce_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert coerce_datetime(1700000000000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    now = datetime.now()
    assert coerce_datetime(now) is now


def test_string_max_length() -> None:
    assert coerce_str("abcde", 5) == "abcde"

    error = coerce_str("abcdef", 5)
    assert isinstance(error, ValidationError)
    assert error.kind is ErrorKind.INVALID_LENGTH
    assert "max 5" in error.message


def test_registry_aliases() -> None:
    assert TypeRegistry.get("int") is TypeRegistry.get("INTEGER") is coerce_int
    assert TypeRegistry.get("bool") is TypeRegistry.get("boolean")
    assert TypeRegistry.get("str") is TypeRegistry.get("string")
    for alias in ("number", "numeric", "num"):
        assert TypeRegistry.get(alias) is coerce_float
    for alias in ("date", "time", "timestamp"):
        assert TypeRegistry.get(alias) is coerce_datetime
    assert TypeRegistry.get("object") is coerce_obj
    assert TypeRegistry.get("uuid") is None


def test_registry_register(monkeypatch) -> None:
    monkeypatch.setattr(TypeRegistry, "_types", TypeRegistry.all_types())

    def coerce_upper(value, length=None):
        return str(value).upper()

    TypeRegistry.register("Upper", coerce_upper)
    assert TypeRegistry.get("upper") is coerce_upper


def test_error_path_and_dict() -> None:
    error = ValidationError(ErrorKind.INVALID_VALUE, "Invalid parameter value", value="x")
    assert error.at("a[b]").field == "a[b]"
    # a deeper level already set the path
    assert error.at("a").field == "a[b]"
    assert str(error) == "Invalid parameter value: a[b]"
    assert error.to_dict() == {
        "kind": "InvalidValue",
        "message": "Invalid parameter value",
        "field": "a[b]",
        "value": "x",
        "expected": True,
    }
