"""Structured per-call logging for query executions."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from queryhttp.models import QueryResult

LOG = logging.getLogger("queryhttp.services.query")


@dataclass
class ServiceCallMetrics:
    """Structured metrics describing a service invocation."""

    name: str
    method: str
    duration_ms: float
    rows: int | None = None
    status: str | None = None
    http_status: int | None = None
    errors: int | None = None
    error: str | None = None


@dataclass
class ServiceObservability:
    """Configuration for service-level observability."""

    enabled: bool = False
    logger: logging.Logger = field(default_factory=lambda: LOG)

    def record(self, metrics: ServiceCallMetrics) -> None:
        """
        Emit a structured log line for a service call.

        Parameters
        ----------
        metrics:
            Call metrics describing the invocation outcome.
        """
        if not self.enabled or not self.logger.isEnabledFor(logging.INFO):
            return
        payload: dict[str, object] = {
            "name": metrics.name,
            "method": metrics.method,
            "duration_ms": round(metrics.duration_ms, 2),
        }
        if metrics.rows is not None:
            payload["rows"] = metrics.rows
        if metrics.status is not None:
            payload["status"] = metrics.status
        if metrics.http_status is not None:
            payload["http_status"] = metrics.http_status
        if metrics.errors is not None:
            payload["errors"] = metrics.errors
        if metrics.error is not None:
            payload["error"] = metrics.error
        self.logger.info("service_call %s", payload)


def observe_call[T](
    observability: ServiceObservability | None,
    *,
    name: str,
    method: str,
    func: Callable[[], QueryResult[T]],
) -> QueryResult[T]:
    """
    Execute a callable while capturing observability signals.

    Returns
    -------
    QueryResult[T]
        Result returned by the wrapped callable.
    """
    start = time.perf_counter()
    try:
        result = func()
    except Exception as exc:
        duration_ms = (time.perf_counter() - start) * 1000
        if observability is not None:
            observability.record(
                ServiceCallMetrics(
                    name=name,
                    method=method,
                    duration_ms=duration_ms,
                    error=exc.__class__.__name__,
                )
            )
        raise
    duration_ms = (time.perf_counter() - start) * 1000
    if observability is not None:
        observability.record(
            ServiceCallMetrics(
                name=name,
                method=method,
                duration_ms=duration_ms,
                rows=len(result.rows),
                status=result.status,
                http_status=result.http_status,
                errors=len(result.errors),
            )
        )
    return result
