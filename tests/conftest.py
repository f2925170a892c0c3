"""Pytest configuration for the queryhttp test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import httpx
import pytest

from queryhttp.config.models import ClientConfig
from queryhttp.services.query_client import QueryClient

BASE_URI = "http://192.168.30.101:8093/query"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def base_uri() -> str:
    """Query endpoint used by builder and client tests.

    Returns
    -------
    str
        Absolute query endpoint URI.
    """
    return BASE_URI


@pytest.fixture
def captured_requests() -> list[httpx.Request]:
    """Collect requests seen by mock transports.

    Returns
    -------
    list[httpx.Request]
        Requests in the order they were sent.
    """
    return []


@pytest.fixture
def make_client(
    captured_requests: list[httpx.Request],
) -> Iterator[Callable[..., QueryClient]]:
    """Build QueryClients backed by an ``httpx.MockTransport``.

    Yields
    ------
    Callable[..., QueryClient]
        Factory taking a handler plus optional config/observability.
    """
    created: list[httpx.Client] = []

    def _factory(handler: Handler, **kwargs: object) -> QueryClient:
        def _recording(request: httpx.Request) -> httpx.Response:
            captured_requests.append(request)
            return handler(request)

        http_client = httpx.Client(transport=httpx.MockTransport(_recording))
        created.append(http_client)
        config = kwargs.pop("config", None) or ClientConfig(base_uri=BASE_URI)
        return QueryClient(config=config, client=http_client, **kwargs)  # type: ignore[arg-type]

    yield _factory
    for http_client in created:
        http_client.close()
