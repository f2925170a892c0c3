"""Request builder, HTTP client and response mapper for N1QL-style query services."""

from __future__ import annotations

from queryhttp.config import ClientConfig
from queryhttp.models import QueryError, QueryResult
from queryhttp.request import QueryDescriptor, QueryRequest, encode_parameter, resolve_method
from queryhttp.services.errors import (
    DuplicateKeyError,
    EncodingError,
    MalformedResponseError,
    ProblemError,
    TransportError,
    ValidationError,
)
from queryhttp.services.query_client import QueryClient
from queryhttp.services.response_mapper import parse_response
from queryhttp.types import (
    Compression,
    Encoding,
    Format,
    HttpMethod,
    ScanConsistency,
    ScanVector,
)

__all__ = [
    "ClientConfig",
    "Compression",
    "DuplicateKeyError",
    "Encoding",
    "EncodingError",
    "Format",
    "HttpMethod",
    "MalformedResponseError",
    "ProblemError",
    "QueryClient",
    "QueryDescriptor",
    "QueryError",
    "QueryRequest",
    "QueryResult",
    "ScanConsistency",
    "ScanVector",
    "TransportError",
    "ValidationError",
    "encode_parameter",
    "parse_response",
    "resolve_method",
]
