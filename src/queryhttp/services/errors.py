"""Shared error taxonomy and Problem Details helpers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4


def generate_correlation_id() -> str:
    """
    Return a new correlation identifier for tracing errors.

    Returns
    -------
    str
        UUID4 correlation identifier.
    """
    return str(uuid4())


@dataclass(frozen=True)
class ProblemDetail:
    """
    RFC 9457 Problem Details payload.

    Fields mirror the standard shape with optional extras for diagnostics.
    """

    type: str
    title: str
    detail: str
    status: int | None = None
    instance: str = field(default_factory=generate_correlation_id)
    code: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Problem detail payload as a plain dictionary.
        """
        payload: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "detail": self.detail,
            "instance": self.instance,
        }
        if self.status is not None:
            payload["status"] = self.status
        if self.code is not None:
            payload["code"] = self.code
        if self.extras:
            payload["extras"] = self.extras
        return payload


def problem(  # noqa: PLR0913
    code: str,
    title: str,
    detail: str,
    *,
    status: int | None = None,
    instance: str | None = None,
    type_uri: str | None = None,
    extras: dict[str, Any] | None = None,
) -> ProblemDetail:
    """
    Create a ProblemDetail with defaults for type/instance.

    Parameters
    ----------
    code
        Stable problem code (e.g., 'request.invalid').
    title
        Human-readable error summary.
    detail
        Detailed description of the error.
    status
        Optional HTTP-style status code.
    instance
        Correlation/trace identifier; defaults to a UUID4.
    type_uri
        URI identifying the problem type; defaults to a queryhttp namespace.
    extras
        Optional structured context for diagnostics.

    Returns
    -------
    ProblemDetail
        Structured problem payload.
    """
    resolved_instance = instance or generate_correlation_id()
    resolved_type = type_uri or f"https://problems.queryhttp.dev/{code}"
    return ProblemDetail(
        type=resolved_type,
        title=title,
        detail=detail,
        status=status,
        instance=resolved_instance,
        code=code,
        extras=extras or {},
    )


def log_problem(logger: logging.Logger | logging.LoggerAdapter, detail: ProblemDetail) -> None:
    """Emit a Problem Detail as a structured error log."""
    logger.error(json.dumps(detail.to_dict()))


class ProblemError(Exception):
    """Base exception carrying a ProblemDetail payload."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail.detail)
        self.problem_detail = detail


class ValidationError(ProblemError):
    """Request builder misuse."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail)


class DuplicateKeyError(ProblemError):
    """A unique key (credential username or parameter name) was added twice."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail)


class EncodingError(ProblemError):
    """A parameter value could not be serialized."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail)


class TransportError(ProblemError):
    """Network or connection failure while talking to the query service."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail)


class MalformedResponseError(ProblemError):
    """Response body could not be mapped onto the result shape."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail)


def invalid_request(message: str, *, field_name: str | None = None) -> ValidationError:
    """
    Construct a builder validation error.

    Returns
    -------
    ValidationError
        Error whose problem extras name the offending field when given.
    """
    extras = {"field": field_name} if field_name is not None else None
    return ValidationError(
        problem(
            code="request.invalid",
            title="Invalid query request",
            detail=message,
            status=400,
            extras=extras,
        )
    )


def duplicate_key(kind: str, key: str) -> DuplicateKeyError:
    """
    Construct a duplicate-key error for an ordered mapping.

    Returns
    -------
    DuplicateKeyError
        Error naming the mapping kind and the repeated key.
    """
    return DuplicateKeyError(
        problem(
            code="request.duplicate_key",
            title="Duplicate key",
            detail=f"An entry for {kind} '{key}' has already been added.",
            status=400,
            extras={"kind": kind, "key": key},
        )
    )
