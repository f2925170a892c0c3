"""JSON and URI encoding of query parameter values."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum
from urllib.parse import quote
from uuid import UUID

from pydantic import BaseModel

from queryhttp.services.errors import EncodingError, problem

_MICROS_PER_MILLI = 1000
_MICROS_PER_SECOND = 1_000_000


def escape_data_string(text: str) -> str:
    """
    Percent-encode text for use as a URI query component.

    Only RFC 3986 unreserved characters are left untouched.

    Returns
    -------
    str
        Escaped text.
    """
    return quote(text, safe="")


def _json_default(value: object) -> object:  # noqa: PLR0911
    """
    Map non-JSON-native values onto JSON-native ones.

    Returns
    -------
    object
        JSON-serializable replacement value.

    Raises
    ------
    TypeError
        When the value has no JSON representation.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            message = f"Non-finite decimal {value} cannot be encoded"
            raise ValueError(message)
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (set, frozenset)):
        try:
            return sorted(value)
        except TypeError:
            return list(value)
    message = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(message)


def to_json(value: object) -> str:
    """
    Serialize a value to compact canonical JSON.

    Returns
    -------
    str
        JSON text without insignificant whitespace.

    Raises
    ------
    EncodingError
        When the value (or anything nested in it) cannot be serialized.
    """
    try:
        return json.dumps(
            value,
            default=_json_default,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncodingError(
            problem(
                code="request.encoding_failed",
                title="Parameter encoding failed",
                detail=str(exc),
                extras={"value_type": type(value).__name__},
            )
        ) from exc


def encode_parameter(value: object) -> str:
    """
    JSON encode a parameter value and escape it for the query string.

    Returns
    -------
    str
        JSON text, percent-encoded.
    """
    return escape_data_string(to_json(value))


def credential_records(credentials: Mapping[str, str]) -> list[dict[str, str]]:
    """
    Render stored credentials as ``{user, pass}`` records in insertion order.

    Returns
    -------
    list[dict[str, str]]
        One record per stored username.
    """
    return [{"user": user, "pass": password} for user, password in credentials.items()]


def format_duration(duration: timedelta) -> str:
    """
    Render a duration in the service's duration syntax.

    Whole seconds render as ``"5s"``, whole milliseconds as ``"1500ms"`` and
    anything finer as microseconds.

    Returns
    -------
    str
        Duration text.
    """
    micros = duration // timedelta(microseconds=1)
    if micros % _MICROS_PER_SECOND == 0:
        return f"{micros // _MICROS_PER_SECOND}s"
    if micros % _MICROS_PER_MILLI == 0:
        return f"{micros // _MICROS_PER_MILLI}ms"
    return f"{micros}us"
