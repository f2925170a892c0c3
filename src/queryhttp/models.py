"""Typed query results and the wire models they are decoded from."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

SUCCESS_STATUS = "success"
MALFORMED_STATUS = "malformed_response"


class ErrorPayload(BaseModel):
    """Wire shape of one entry in the ``errors``/``warnings`` arrays."""

    model_config = ConfigDict(extra="allow")

    code: int
    msg: str = ""


class QueryResponsePayload(BaseModel):
    """Wire shape of the service's top-level JSON reply."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: str
    results: list[object] = Field(
        default_factory=list,
        validation_alias=AliasChoices("results", "resultset"),
    )
    errors: list[ErrorPayload] = Field(default_factory=list)
    warnings: list[ErrorPayload] = Field(default_factory=list)
    metrics: dict[str, object] | None = None
    signature: object | None = None
    request_id: str | None = Field(default=None, validation_alias="requestID")
    client_context_id: str | None = Field(default=None, validation_alias="clientContextID")


@dataclass(frozen=True)
class QueryError:
    """Error or warning reported by the query service."""

    code: int
    message: str


@dataclass(frozen=True)
class QueryResult[T]:
    """
    Uniform outcome of one query execution.

    ``success`` is true only when the service reported ``success`` and no
    errors; every other outcome (server-side errors, unparseable replies) is
    represented by the same shape with ``success`` false.
    """

    status: str
    rows: tuple[T, ...] = ()
    errors: tuple[QueryError, ...] = ()
    warnings: tuple[QueryError, ...] = ()
    metrics: dict[str, object] | None = None
    signature: object | None = None
    request_id: str | None = None
    client_context_id: str | None = None
    http_status: int | None = field(default=None, compare=False)

    @property
    def success(self) -> bool:
        """Return True when the service reported success without errors."""
        return self.status == SUCCESS_STATUS and not self.errors

    def to_dict(self) -> dict[str, object]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, object]
            Result payload with rows left as decoded.
        """
        payload: dict[str, object] = {
            "status": self.status,
            "success": self.success,
            "rows": [_plain(row) for row in self.rows],
            "errors": [{"code": err.code, "message": err.message} for err in self.errors],
        }
        if self.warnings:
            payload["warnings"] = [
                {"code": warn.code, "message": warn.message} for warn in self.warnings
            ]
        if self.metrics is not None:
            payload["metrics"] = self.metrics
        if self.request_id is not None:
            payload["request_id"] = self.request_id
        if self.client_context_id is not None:
            payload["client_context_id"] = self.client_context_id
        return payload


def _plain(row: object) -> object:
    if isinstance(row, BaseModel):
        return row.model_dump(mode="json")
    return row
