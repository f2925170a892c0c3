"""Execute query descriptors over HTTP and map the replies."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Self
from urllib.parse import urlsplit

import anyio
import httpx

from queryhttp.config.models import ClientConfig
from queryhttp.models import QueryResult
from queryhttp.request.builder import QueryRequest
from queryhttp.request.descriptor import QueryDescriptor
from queryhttp.services.errors import TransportError, problem
from queryhttp.services.observability import ServiceObservability, observe_call
from queryhttp.services.response_mapper import parse_response, row_adapter

LOG = logging.getLogger("queryhttp.services.query_client")


async def _request_async(client: httpx.AsyncClient, method: str, uri: str) -> httpx.Response:
    """
    Perform an async request and read the body.

    Returns
    -------
    httpx.Response
        Response from the remote server.
    """
    return await client.request(method, uri)


@dataclass
class QueryClient:
    """
    Issue one HTTP round trip per descriptor and map the reply.

    The whole parameter set travels in the descriptor URI, so POST requests
    carry no body. Transport failures raise ``TransportError``; any response
    that arrives, whatever its HTTP status, is handed to the response mapper
    and comes back as a ``QueryResult``.
    """

    config: ClientConfig = field(default_factory=ClientConfig)
    client: httpx.Client | httpx.AsyncClient | None = None
    observability: ServiceObservability | None = None
    _owns_client: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        """Create the HTTP client and observability hooks when not supplied."""
        if self.client is None:
            self.client = httpx.Client(timeout=self.config.timeout_seconds)
            self._owns_client = True
        if self.observability is None and self.config.observability_enabled:
            self.observability = ServiceObservability(enabled=True)

    @classmethod
    def from_env(cls) -> QueryClient:
        """
        Build a client configured from ``QUERYHTTP_*`` environment variables.

        Returns
        -------
        QueryClient
            Client owning its HTTP connection pool.
        """
        return cls(config=ClientConfig.from_env())

    def close(self) -> None:
        """Close the underlying HTTP client when this instance created it."""
        client = self.client
        if self._owns_client and isinstance(client, httpx.Client):
            client.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _send(self, descriptor: QueryDescriptor) -> httpx.Response:
        """
        Send the descriptor as a single request.

        Returns
        -------
        httpx.Response
            Response with its body read.

        Raises
        ------
        TransportError
            When the request fails below the HTTP layer.
        """
        client = self.client
        if client is None:
            message = "HTTP client is not initialized"
            raise TransportError(
                problem(code="transport.closed", title="Transport failure", detail=message)
            )
        method = descriptor.method.value
        try:
            if isinstance(client, httpx.AsyncClient):
                return anyio.run(_request_async, client, method, descriptor.uri)
            return client.request(method, descriptor.uri)
        except httpx.RequestError as exc:
            # The URI may carry credentials; only the host is reported.
            host = urlsplit(descriptor.uri).netloc
            raise TransportError(
                problem(
                    code="transport.failed",
                    title="Transport failure",
                    detail=f"{method} request to {host} failed: {exc.__class__.__name__}",
                    extras={"method": method, "host": host},
                )
            ) from exc

    def execute[T](
        self, descriptor: QueryDescriptor, row_type: type[T] | object = object
    ) -> QueryResult[T]:
        """
        Execute a descriptor and map the reply.

        Parameters
        ----------
        descriptor:
            Immutable request produced by ``QueryRequest.produce``.
        row_type:
            Type each result row is validated into.

        Returns
        -------
        QueryResult[T]
            Mapped result; malformed replies yield ``success`` false.

        Raises
        ------
        ValidationError
            When ``row_type`` cannot be validated by pydantic; nothing is sent.
        """
        row_adapter(row_type)

        def _run() -> QueryResult[T]:
            response = self._send(descriptor)
            LOG.debug("Received HTTP %s from query service", response.status_code)
            return parse_response(response.content, row_type, http_status=response.status_code)

        return observe_call(
            self.observability,
            name="execute",
            method=descriptor.method.value,
            func=_run,
        )

    def query[T](
        self,
        request: QueryRequest | str,
        row_type: type[T] | object = object,
        *,
        base_uri: str | None = None,
    ) -> QueryResult[T]:
        """
        Build, produce and execute a request in one call.

        A statement string is wrapped in a new builder. The base URI falls back
        to ``base_uri`` and then to the configured endpoint, and configured
        credentials are added when the request carries none.

        Returns
        -------
        QueryResult[T]
            Mapped result.
        """
        builder = QueryRequest.create(request) if isinstance(request, str) else request
        if base_uri is not None:
            builder.base_uri(base_uri)
        elif not builder.has_base_uri:
            builder.base_uri(self.config.base_uri)
        if self.config.has_credentials and not builder.credentials:
            builder.add_credentials(
                self.config.username, self.config.password or "", self.config.admin
            )
        return self.execute(builder.produce(), row_type)
