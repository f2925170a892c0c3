"""Map raw query service replies onto typed ``QueryResult`` values."""

from __future__ import annotations

import json
import logging
from functools import lru_cache

from pydantic import PydanticSchemaGenerationError, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from queryhttp.models import (
    MALFORMED_STATUS,
    ErrorPayload,
    QueryError,
    QueryResponsePayload,
    QueryResult,
)
from queryhttp.services.errors import (
    MalformedResponseError,
    invalid_request,
    log_problem,
    problem,
)

LOG = logging.getLogger("queryhttp.services.response_mapper")

MALFORMED_ERROR_CODE = 0


@lru_cache(maxsize=128)
def _cached_adapter(row_type: object) -> TypeAdapter[object]:
    return TypeAdapter(row_type)


def row_adapter(row_type: object) -> TypeAdapter[object]:
    """
    Resolve the validator used to decode rows into ``row_type``.

    Returns
    -------
    TypeAdapter[object]
        Cached adapter for the row type.

    Raises
    ------
    ValidationError
        When pydantic cannot build a schema for the row type.
    """
    try:
        return _cached_adapter(row_type)
    except (PydanticSchemaGenerationError, TypeError) as exc:
        message = f"Unsupported row type: {row_type!r}"
        raise invalid_request(message, field_name="row_type") from exc


def _to_errors(entries: list[ErrorPayload]) -> tuple[QueryError, ...]:
    return tuple(QueryError(code=entry.code, message=entry.msg) for entry in entries)


def _malformed(reason: str, *, body: bytes | str) -> MalformedResponseError:
    preview = body[:200].decode("utf-8", "replace") if isinstance(body, bytes) else body[:200]
    return MalformedResponseError(
        problem(
            code="response.malformed",
            title="Malformed query response",
            detail=reason,
            extras={"body_preview": preview},
        )
    )


def _decode[T](
    body: bytes | str, adapter: TypeAdapter[object], http_status: int | None
) -> QueryResult[T]:
    """
    Decode a reply body strictly.

    Returns
    -------
    QueryResult[T]
        Result with rows validated by ``adapter``.

    Raises
    ------
    MalformedResponseError
        When the body is not JSON, not an object, or does not match the expected shape.
    """
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError, RecursionError) as exc:
        raise _malformed(f"Response body is not valid JSON: {exc}", body=body) from exc
    if not isinstance(data, dict):
        message = f"Expected a JSON object, got {type(data).__name__}"
        raise _malformed(message, body=body)
    try:
        payload = QueryResponsePayload.model_validate(data)
        rows = tuple(adapter.validate_python(row) for row in payload.results)
    except PydanticValidationError as exc:
        message = f"Response does not match the expected shape: {exc.error_count()} error(s)"
        raise _malformed(message, body=body) from exc
    except RecursionError as exc:
        raise _malformed("Response rows are nested too deeply", body=body) from exc
    return QueryResult(
        status=payload.status,
        rows=rows,
        errors=_to_errors(payload.errors),
        warnings=_to_errors(payload.warnings),
        metrics=payload.metrics,
        signature=payload.signature,
        request_id=payload.request_id,
        client_context_id=payload.client_context_id,
        http_status=http_status,
    )


def parse_response[T](
    body: bytes | str,
    row_type: type[T] | object = object,
    *,
    http_status: int | None = None,
) -> QueryResult[T]:
    """
    Parse a query service reply without raising on malformed input.

    Parameters
    ----------
    body:
        Raw response body.
    row_type:
        Type each result row is validated into; ``object`` keeps decoded JSON.
    http_status:
        HTTP status of the reply, recorded on the result for diagnostics only.

    Returns
    -------
    QueryResult[T]
        Decoded result, or an unsuccessful result with status
        ``malformed_response`` and no rows when the body cannot be mapped.

    Raises
    ------
    ValidationError
        When ``row_type`` is not a type pydantic can validate; the body is not
        inspected in that case.
    """
    adapter = row_adapter(row_type)
    try:
        return _decode(body, adapter, http_status)
    except MalformedResponseError as exc:
        detail = exc.problem_detail
        log_problem(LOG, detail)
        return QueryResult(
            status=MALFORMED_STATUS,
            errors=(QueryError(code=MALFORMED_ERROR_CODE, message=detail.detail),),
            http_status=http_status,
        )
