"""Fluent query request builder producing canonical request descriptors."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import timedelta
from enum import StrEnum
from typing import Self

from queryhttp.request.descriptor import QueryDescriptor
from queryhttp.request.encoding import (
    credential_records,
    encode_parameter,
    escape_data_string,
    format_duration,
)
from queryhttp.request.method import resolve_method
from queryhttp.services.errors import duplicate_key, invalid_request
from queryhttp.types import (
    Compression,
    Encoding,
    Format,
    HttpMethod,
    ScanConsistency,
    ScanVector,
)

LOG = logging.getLogger("queryhttp.request.builder")

PARAMETER_IDENTIFIER = "$"
ADMIN_PREFIX = "admin:"
LOCAL_PREFIX = "local:"
LOWER_CASE_TRUE = "true"


class QueryParameters:
    """Query string keys understood by the service."""

    STATEMENT = "statement"
    PREPARED = "prepared"
    TIMEOUT = "timeout"
    READONLY = "readonly"
    METRICS = "metrics"
    ARGS = "args"
    FORMAT = "format"
    ENCODING = "encoding"
    COMPRESSION = "compression"
    SIGNATURE = "signature"
    SCAN_CONSISTENCY = "scan_consistency"
    SCAN_VECTOR = "scan_vector"
    SCAN_WAIT = "scan_wait"
    PRETTY = "pretty"
    CREDS = "creds"
    CLIENT_CONTEXT_ID = "client_context_id"


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _coerce_option[E: StrEnum](enum_cls: type[E], value: E | str, field_name: str) -> E:
    """
    Coerce a raw option value onto its enum.

    Returns
    -------
    E
        Enum member matching ``value``.

    Raises
    ------
    ValidationError
        When ``value`` is not a member of ``enum_cls``.
    """
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        message = f"{field_name} must be one of {allowed}; got {value!r}"
        raise invalid_request(message, field_name=field_name) from exc


class QueryRequest:
    """
    Mutable accumulator describing one query.

    Setters validate eagerly and return the builder so calls can be chained.
    ``produce`` validates the request as a whole and returns an immutable
    ``QueryDescriptor``; the builder itself is never handed to the client.
    A builder is meant for a single query on a single thread.
    """

    def __init__(self) -> None:
        self._method: HttpMethod | None = None
        self._statement: str | None = None
        self._prepared: str | None = None
        self._timeout: timedelta | None = None
        self._read_only = False
        self._include_metrics = False
        self._named: dict[str, object] = {}
        self._positional: list[object] = []
        self._format: Format | None = None
        self._encoding: Encoding | None = None
        self._compression: Compression | None = None
        self._include_signature = False
        self._scan_consistency: ScanConsistency | None = None
        self._scan_vector: ScanVector | None = None
        self._scan_wait: timedelta | None = None
        self._pretty = False
        self._credentials: dict[str, str] = {}
        self._client_context_id: str | None = None
        self._base_uri: str | None = None

    @classmethod
    def create(cls, text: str | None = None, *, is_prepared: bool = False) -> QueryRequest:
        """
        Create a builder, optionally seeded with statement or prepared text.

        Returns
        -------
        QueryRequest
            New builder instance.
        """
        request = cls()
        if text is None:
            return request
        if is_prepared:
            return request.prepared_statement(text)
        return request.statement(text)

    # ------------------------------------------------------------------
    # Statement selection
    # ------------------------------------------------------------------

    def statement(self, statement: str) -> Self:
        """
        Set the statement text.

        Returns
        -------
        Self
            This builder.

        Raises
        ------
        ValidationError
            When a prepared statement has already been provided.
        """
        if not _is_blank(self._prepared):
            message = "A prepared statement has already been provided."
            raise invalid_request(message, field_name="statement")
        self._statement = statement
        return self

    def prepared_statement(self, prepared_statement: str) -> Self:
        """
        Set the prepared statement identifier.

        Returns
        -------
        Self
            This builder.

        Raises
        ------
        ValidationError
            When a statement has already been provided.
        """
        if not _is_blank(self._statement):
            message = "A statement has already been provided."
            raise invalid_request(message, field_name="prepared_statement")
        self._prepared = prepared_statement
        return self

    def http_method(self, method: HttpMethod | str) -> Self:
        """Force the HTTP method instead of inferring it from the statement."""
        self._method = _coerce_option(HttpMethod, method.upper(), "method")
        return self

    # ------------------------------------------------------------------
    # Execution options
    # ------------------------------------------------------------------

    def timeout(self, timeout: timedelta) -> Self:
        """Set the server-side execution budget; only positive values are sent."""
        self._timeout = timeout
        return self

    def read_only(self, read_only: bool = True) -> Self:  # noqa: FBT001, FBT002
        """Mark the request read-only."""
        self._read_only = read_only
        return self

    def metrics(self, include_metrics: bool = True) -> Self:  # noqa: FBT001, FBT002
        """Ask the service to include execution metrics."""
        self._include_metrics = include_metrics
        return self

    def format(self, fmt: Format | str) -> Self:
        """Set the result format."""
        self._format = _coerce_option(Format, fmt, "format")
        return self

    def encoding(self, encoding: Encoding | str) -> Self:
        """Set the response encoding."""
        self._encoding = _coerce_option(Encoding, encoding, "encoding")
        return self

    def compression(self, compression: Compression | str) -> Self:
        """Set the response compression."""
        self._compression = _coerce_option(Compression, compression, "compression")
        return self

    def signature(self, include_signature: bool = True) -> Self:  # noqa: FBT001, FBT002
        """Ask the service to include the result signature."""
        self._include_signature = include_signature
        return self

    def scan_consistency(self, scan_consistency: ScanConsistency | str) -> Self:
        """Set the index scan consistency level."""
        self._scan_consistency = _coerce_option(
            ScanConsistency, scan_consistency, "scan_consistency"
        )
        return self

    def scan_vector(
        self, scan_vector: str | Mapping[str, object] | Sequence[object] | ScanVector | None
    ) -> Self:
        """
        Set or clear the scan vector.

        Returns
        -------
        Self
            This builder.

        Raises
        ------
        ValidationError
            When the value is not text, a mapping or a sequence, or is binary.
        """
        if scan_vector is None:
            self._scan_vector = None
            return self
        try:
            self._scan_vector = ScanVector.of(scan_vector)
        except TypeError as exc:
            raise invalid_request(str(exc), field_name="scan_vector") from exc
        return self

    def scan_wait(self, scan_wait: timedelta) -> Self:
        """Set how long the service may wait for index catch-up."""
        self._scan_wait = scan_wait
        return self

    def pretty(self, pretty: bool = True) -> Self:  # noqa: FBT001, FBT002
        """Ask the service to pretty-print the response."""
        self._pretty = pretty
        return self

    def client_context_id(self, client_context_id: str) -> Self:
        """Set the opaque id echoed back by the service."""
        self._client_context_id = client_context_id
        return self

    def base_uri(self, base_uri: object) -> Self:
        """
        Set the query endpoint, e.g. ``http://localhost:8093/query``.

        Returns
        -------
        Self
            This builder.

        Raises
        ------
        ValidationError
            When the URI is blank.
        """
        text = str(base_uri) if base_uri is not None else None
        if _is_blank(text):
            message = "base_uri cannot be null, empty or whitespace."
            raise invalid_request(message, field_name="base_uri")
        self._base_uri = text
        return self

    # ------------------------------------------------------------------
    # Parameters and credentials
    # ------------------------------------------------------------------

    def add_named_parameter(self, name: str, value: object) -> Self:
        """
        Add a named parameter; names are sent with a ``$`` prefix.

        Returns
        -------
        Self
            This builder.

        Raises
        ------
        ValidationError
            When the name is blank.
        DuplicateKeyError
            When the parameter name was already added.
        """
        if _is_blank(name):
            message = "name cannot be null, empty or whitespace."
            raise invalid_request(message, field_name="name")
        key = name if name.startswith(PARAMETER_IDENTIFIER) else PARAMETER_IDENTIFIER + name
        if key in self._named:
            raise duplicate_key("named parameter", key)
        self._named[key] = value
        return self

    def add_named_parameters(
        self, parameters: Mapping[str, object] | None = None, /, **kwargs: object
    ) -> Self:
        """Add several named parameters in iteration order."""
        for name, value in (parameters or {}).items():
            self.add_named_parameter(name, value)
        for name, value in kwargs.items():
            self.add_named_parameter(name, value)
        return self

    def add_positional_parameter(self, value: object) -> Self:
        """Append one positional parameter."""
        self._positional.append(value)
        return self

    def add_positional_parameters(self, *values: object) -> Self:
        """Append positional parameters in order."""
        self._positional.extend(values)
        return self

    def add_credentials(self, username: str | None, password: str, is_admin: bool) -> Self:  # noqa: FBT001
        """
        Add a scoped credential pair.

        The username is prefixed with ``admin:`` for admin credentials and
        ``local:`` otherwise, unless the matching prefix is already present.

        Returns
        -------
        Self
            This builder.

        Raises
        ------
        ValidationError
            When the username is null, empty or whitespace.
        DuplicateKeyError
            When credentials for the final username were already added.
        """
        if username is None or _is_blank(username):
            message = "username cannot be null, empty or whitespace."
            raise invalid_request(message, field_name="username")
        if is_admin:
            if not username.startswith(ADMIN_PREFIX):
                username = ADMIN_PREFIX + username
        elif not username.startswith(LOCAL_PREFIX):
            username = LOCAL_PREFIX + username
        if username in self._credentials:
            raise duplicate_key("credential", username)
        self._credentials[username] = password
        return self

    @property
    def has_base_uri(self) -> bool:
        """Return True once a base URI has been set."""
        return self._base_uri is not None

    @property
    def credentials(self) -> Mapping[str, str]:
        """Read-only view of stored credentials keyed by scoped username."""
        return dict(self._credentials)

    # ------------------------------------------------------------------
    # Terminal operation
    # ------------------------------------------------------------------

    def _resolved_method(self) -> HttpMethod:
        if self._method is not None:
            return self._method
        text = self._statement if not _is_blank(self._statement) else self._prepared
        return resolve_method(text or "")

    def _query_pairs(self) -> list[tuple[str, str]]:  # noqa: C901, PLR0912
        """
        Render every set option as ``(key, escaped value)`` in wire order.

        Returns
        -------
        list[tuple[str, str]]
            Ordered query string pairs.
        """
        pairs: list[tuple[str, str]] = []
        if not _is_blank(self._statement):
            pairs.append((QueryParameters.STATEMENT, escape_data_string(self._statement or "")))
        elif not _is_blank(self._prepared):
            pairs.append((QueryParameters.PREPARED, escape_data_string(self._prepared or "")))
        if self._timeout is not None and self._timeout > timedelta(0):
            pairs.append((QueryParameters.TIMEOUT, format_duration(self._timeout)))
        if self._read_only:
            pairs.append((QueryParameters.READONLY, LOWER_CASE_TRUE))
        if self._include_metrics:
            pairs.append((QueryParameters.METRICS, LOWER_CASE_TRUE))
        for key, value in self._named.items():
            name = escape_data_string(key.removeprefix(PARAMETER_IDENTIFIER))
            pairs.append((PARAMETER_IDENTIFIER + name, encode_parameter(value)))
        if self._positional:
            pairs.append((QueryParameters.ARGS, encode_parameter(self._positional)))
        if self._format is not None:
            pairs.append((QueryParameters.FORMAT, escape_data_string(self._format.value)))
        if self._encoding is not None:
            pairs.append((QueryParameters.ENCODING, escape_data_string(self._encoding.value)))
        if self._compression is not None:
            pairs.append((QueryParameters.COMPRESSION, escape_data_string(self._compression.value)))
        if self._include_signature:
            pairs.append((QueryParameters.SIGNATURE, LOWER_CASE_TRUE))
        if self._scan_consistency is not None:
            pairs.append(
                (QueryParameters.SCAN_CONSISTENCY, escape_data_string(self._scan_consistency.value))
            )
        if self._scan_vector is not None:
            vector = self._scan_vector
            rendered = (
                escape_data_string(vector.value)
                if isinstance(vector.value, str)
                else encode_parameter(vector.value)
            )
            pairs.append((QueryParameters.SCAN_VECTOR, rendered))
        if self._scan_wait is not None:
            pairs.append((QueryParameters.SCAN_WAIT, format_duration(self._scan_wait)))
        if self._pretty:
            pairs.append((QueryParameters.PRETTY, LOWER_CASE_TRUE))
        if self._credentials:
            pairs.append(
                (QueryParameters.CREDS, encode_parameter(credential_records(self._credentials)))
            )
        if self._client_context_id:
            pairs.append(
                (QueryParameters.CLIENT_CONTEXT_ID, escape_data_string(self._client_context_id))
            )
        return pairs

    def produce(self) -> QueryDescriptor:
        """
        Validate the request and render its immutable descriptor.

        Returns
        -------
        QueryDescriptor
            Base URI with the canonical query string appended, plus the
            explicit or inferred HTTP method.

        Raises
        ------
        ValidationError
            When no statement/prepared statement or no base URI is set.
        """
        if _is_blank(self._statement) and _is_blank(self._prepared):
            message = "A statement or prepared statement must be provided, but not both."
            raise invalid_request(message, field_name="statement")
        if self._base_uri is None:
            message = "A base URI must be provided before producing a request."
            raise invalid_request(message, field_name="base_uri")
        method = self._resolved_method()
        query = "&".join(f"{key}={value}" for key, value in self._query_pairs())
        LOG.debug(
            "Produced %s request with %d named and %d positional parameters",
            method.value,
            len(self._named),
            len(self._positional),
        )
        return QueryDescriptor(uri=f"{self._base_uri}?{query}", method=method)
