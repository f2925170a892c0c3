"""Wire-level enums and value types shared by the request and service layers."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Literal


class HttpMethod(StrEnum):
    """HTTP verbs accepted by the query endpoint."""

    GET = "GET"
    POST = "POST"


class Format(StrEnum):
    """Result formats the service can render."""

    JSON = "JSON"
    XML = "XML"
    CSV = "CSV"
    TSV = "TSV"


class Encoding(StrEnum):
    """Character encodings for the response body."""

    UTF8 = "UTF-8"


class Compression(StrEnum):
    """Response compression schemes."""

    ZIP = "ZIP"
    RLE = "RLE"
    LZMA = "LZMA"
    LZO = "LZO"
    NONE = "NONE"


class ScanConsistency(StrEnum):
    """Index scan consistency levels forwarded to the service."""

    NOT_BOUNDED = "not_bounded"
    AT_PLUS = "at_plus"
    REQUEST_PLUS = "request_plus"
    STATEMENT_PLUS = "statement_plus"


ScanVectorKind = Literal["text", "structured"]


@dataclass(frozen=True)
class ScanVector:
    """
    Tagged scan vector value.

    Text vectors are forwarded verbatim (percent-encoded); structured vectors
    are JSON encoded like any other parameter value.
    """

    kind: ScanVectorKind
    value: str | Mapping[str, object] | Sequence[object]

    @classmethod
    def of(cls, value: str | Mapping[str, object] | Sequence[object] | ScanVector) -> ScanVector:
        """
        Wrap a raw scan vector in its tagged form.

        Returns
        -------
        ScanVector
            Tagged vector; an existing ``ScanVector`` is returned unchanged.

        Raises
        ------
        TypeError
            When the value is neither text, a mapping nor a sequence, or is binary.
        """
        if isinstance(value, ScanVector):
            return value
        if isinstance(value, str):
            return cls(kind="text", value=value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            message = f"Scan vectors must be text, not {type(value).__name__}"
            raise TypeError(message)
        if isinstance(value, (Mapping, Sequence)):
            return cls(kind="structured", value=value)
        message = f"Unsupported scan vector type: {type(value).__name__}"
        raise TypeError(message)

