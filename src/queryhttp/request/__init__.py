"""Request building: parameter encoding, method inference and descriptors."""

from __future__ import annotations

from queryhttp.request.builder import QueryParameters, QueryRequest
from queryhttp.request.descriptor import QueryDescriptor
from queryhttp.request.encoding import encode_parameter, escape_data_string, format_duration
from queryhttp.request.method import resolve_method

__all__ = [
    "QueryDescriptor",
    "QueryParameters",
    "QueryRequest",
    "encode_parameter",
    "escape_data_string",
    "format_duration",
    "resolve_method",
]
