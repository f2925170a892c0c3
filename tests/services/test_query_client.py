"""QueryClient execution against mock HTTP transports."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

import httpx
import pytest

from queryhttp.config.models import ClientConfig
from queryhttp.models import MALFORMED_STATUS
from queryhttp.request.builder import QueryRequest
from queryhttp.services.errors import TransportError, ValidationError
from queryhttp.services.observability import ServiceObservability
from queryhttp.services.query_client import QueryClient

HELLO_WORLD = {"status": "success", "results": [{"Greeting": "Hello World"}], "errors": []}
SYNTAX_ERROR = {
    "status": "fatal",
    "results": [],
    "errors": [{"code": 3000, "msg": "syntax error"}],
}

ClientFactory = Callable[..., QueryClient]


def _expect(*, condition: bool, detail: str) -> None:
    if condition:
        return
    pytest.fail(detail)


def _reply(payload: object, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return _handler


def test_hello_world_round_trip(
    make_client: ClientFactory, captured_requests: list[httpx.Request], base_uri: str
) -> None:
    """A select statement is sent as GET and its rows are returned."""
    client = make_client(_reply(HELLO_WORLD))
    descriptor = QueryRequest.create("SELECT 'Hello World' AS Greeting").base_uri(base_uri).produce()
    result = client.execute(descriptor)
    _expect(condition=result.success, detail="expected success")
    _expect(condition=list(result.rows) == [{"Greeting": "Hello World"}], detail="rows mismatch")
    request = captured_requests[0]
    _expect(condition=request.method == "GET", detail=f"method {request.method}")
    _expect(
        condition=request.url.params["statement"] == "SELECT 'Hello World' AS Greeting",
        detail=f"statement param {request.url.params.get('statement')}",
    )


def test_syntax_error_is_returned_not_raised(make_client: ClientFactory, base_uri: str) -> None:
    """Server-side errors with a non-2xx status still map to a result."""
    client = make_client(_reply(SYNTAX_ERROR, status_code=400))
    descriptor = QueryRequest.create("SELECT 'Hello World' ASB Greeting").base_uri(base_uri).produce()
    result = client.execute(descriptor)
    _expect(condition=not result.success, detail="expected failure")
    _expect(condition=result.rows == (), detail="rows should be empty")
    _expect(condition=bool(result.errors), detail="errors should be populated")
    _expect(condition=result.http_status == 400, detail="http status")  # noqa: PLR2004


def test_post_requests_carry_no_body(
    make_client: ClientFactory, captured_requests: list[httpx.Request], base_uri: str
) -> None:
    """Non-select statements go out as POST with every parameter in the URI."""
    client = make_client(_reply({"status": "success", "results": []}))
    descriptor = (
        QueryRequest.create("CREATE PRIMARY INDEX ON `authenticated`")
        .base_uri(base_uri)
        .add_positional_parameter("x")
        .produce()
    )
    result = client.execute(descriptor)
    request = captured_requests[0]
    _expect(condition=result.success, detail="expected success")
    _expect(condition=request.method == "POST", detail=f"method {request.method}")
    _expect(condition=request.content == b"", detail="POST must not carry a body")
    _expect(condition=request.url.params["args"] == '["x"]', detail="args should be in the URI")


def test_malformed_body_returns_unsuccessful_result(
    make_client: ClientFactory, base_uri: str
) -> None:
    """Garbage replies never raise from execute."""

    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json at all")

    client = make_client(_handler)
    result = client.execute(QueryRequest.create("SELECT 1").base_uri(base_uri).produce())
    _expect(condition=result is not None, detail="execute must return a result")
    _expect(condition=not result.success, detail="expected failure")
    _expect(condition=result.status == MALFORMED_STATUS, detail=f"status {result.status}")
    _expect(condition=result.rows == (), detail="rows should be empty")


@pytest.mark.parametrize(
    "failure",
    [httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout],
)
def test_transport_failures_raise_transport_error(
    make_client: ClientFactory, base_uri: str, failure: type[httpx.TransportError]
) -> None:
    """Socket-level failures surface as TransportError without leaking credentials."""

    def _handler(request: httpx.Request) -> httpx.Response:
        message = "connection failed"
        raise failure(message, request=request)

    client = make_client(_handler)
    descriptor = (
        QueryRequest.create("SELECT 1")
        .base_uri(base_uri)
        .add_credentials("bob", "hunter2", False)
        .produce()
    )
    with pytest.raises(TransportError) as excinfo:
        client.execute(descriptor)
    _expect(condition=isinstance(excinfo.value.__cause__, failure), detail="cause not chained")
    rendered = json.dumps(excinfo.value.problem_detail.to_dict())
    _expect(condition="hunter2" not in rendered, detail="password leaked into problem detail")
    _expect(
        condition=excinfo.value.problem_detail.extras["host"] == "192.168.30.101:8093",
        detail="host should be reported",
    )


def test_async_client_is_driven_synchronously(base_uri: str) -> None:
    """An injected AsyncClient is run to completion per execute call."""
    seen: list[str] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        return httpx.Response(200, json=HELLO_WORLD)

    async_client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
    client = QueryClient(client=async_client)
    descriptor = QueryRequest.create("SELECT 'Hello World' AS Greeting").base_uri(base_uri).produce()
    first = client.execute(descriptor)
    second = client.execute(descriptor)
    _expect(condition=first.success and second.success, detail="expected success")
    _expect(condition=seen == ["GET", "GET"], detail=f"unexpected calls {seen}")


def test_observability_logs_each_call(
    make_client: ClientFactory, base_uri: str, caplog: pytest.LogCaptureFixture
) -> None:
    """Enabled observability emits one structured line per execute."""
    logger = logging.getLogger("queryhttp.tests.observability")
    caplog.set_level(logging.INFO, logger=logger.name)
    client = make_client(
        _reply(HELLO_WORLD), observability=ServiceObservability(enabled=True, logger=logger)
    )
    client.execute(QueryRequest.create("SELECT 1").base_uri(base_uri).produce())
    messages = [record.getMessage() for record in caplog.records if record.name == logger.name]
    _expect(condition=len(messages) == 1, detail=f"expected one log line, got {messages}")
    _expect(condition="'rows': 1" in messages[0], detail=f"row count missing: {messages[0]}")
    _expect(condition="'status': 'success'" in messages[0], detail="status missing")


def test_observability_records_transport_failures(
    make_client: ClientFactory, base_uri: str, caplog: pytest.LogCaptureFixture
) -> None:
    """Failed calls are logged with the exception class before re-raising."""
    logger = logging.getLogger("queryhttp.tests.observability_errors")
    caplog.set_level(logging.INFO, logger=logger.name)

    def _handler(request: httpx.Request) -> httpx.Response:
        message = "refused"
        raise httpx.ConnectError(message, request=request)

    client = make_client(_handler, observability=ServiceObservability(enabled=True, logger=logger))
    with pytest.raises(TransportError):
        client.execute(QueryRequest.create("SELECT 1").base_uri(base_uri).produce())
    messages = [record.getMessage() for record in caplog.records if record.name == logger.name]
    _expect(condition="'error': 'TransportError'" in messages[0], detail=f"got {messages}")


def test_query_fills_base_uri_and_credentials_from_config(
    make_client: ClientFactory, captured_requests: list[httpx.Request]
) -> None:
    """query() accepts raw statements and applies configured defaults."""
    config = ClientConfig(base_uri="http://query.test:8093/query", username="alice", password="pw")
    client = make_client(_reply(HELLO_WORLD), config=config)
    result = client.query("SELECT 'Hello World' AS Greeting")
    _expect(condition=result.success, detail="expected success")
    request = captured_requests[0]
    _expect(condition=request.url.host == "query.test", detail=f"host {request.url.host}")
    _expect(
        condition=json.loads(request.url.params["creds"])
        == [{"user": "local:alice", "pass": "pw"}],
        detail=f"creds {request.url.params.get('creds')}",
    )


def test_query_keeps_request_credentials(
    make_client: ClientFactory, captured_requests: list[httpx.Request], base_uri: str
) -> None:
    """Configured credentials do not replace credentials already on the request."""
    config = ClientConfig(base_uri=base_uri, username="alice", password="pw")
    client = make_client(_reply(HELLO_WORLD), config=config)
    request = QueryRequest.create("SELECT 1").add_credentials("root", "toor", True)
    client.query(request, base_uri="http://other.test/query")
    sent = captured_requests[0]
    _expect(condition=sent.url.host == "other.test", detail="explicit base_uri ignored")
    _expect(
        condition=json.loads(sent.url.params["creds"]) == [{"user": "admin:root", "pass": "toor"}],
        detail=f"creds {sent.url.params.get('creds')}",
    )


def test_context_manager_closes_owned_client() -> None:
    """A client created by QueryClient is closed on exit."""
    with QueryClient() as client:
        http_client = client.client
    _expect(
        condition=isinstance(http_client, httpx.Client) and http_client.is_closed,
        detail="owned client should be closed",
    )


def test_injected_client_is_left_open(make_client: ClientFactory) -> None:
    """Injected clients belong to the caller."""
    client = make_client(_reply(HELLO_WORLD))
    client.close()
    http_client = client.client
    _expect(
        condition=isinstance(http_client, httpx.Client) and not http_client.is_closed,
        detail="injected client must stay open",
    )


def test_deeply_nested_reply_maps_to_malformed(make_client: ClientFactory, base_uri: str) -> None:
    """A reply nested past the decoder's limit still returns a result."""
    deep = "[" * 200_000 + "]" * 200_000

    def _handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=deep)

    client = make_client(_handler)
    descriptor = QueryRequest.create("SELECT 1").base_uri(base_uri).produce()
    result = client.execute(descriptor)
    _expect(condition=result.status == MALFORMED_STATUS, detail=f"status {result.status}")
    _expect(condition=not result.success, detail="nested reply must not succeed")


class PlainRow:
    def __init__(self, name: str) -> None:
        self.name = name


def test_unsupported_row_type_raises_before_sending(
    make_client: ClientFactory, captured_requests: list[httpx.Request], base_uri: str
) -> None:
    """Row types without a pydantic schema are rejected before any request."""
    client = make_client(_reply(HELLO_WORLD))
    descriptor = QueryRequest.create("SELECT 1").base_uri(base_uri).produce()
    with pytest.raises(ValidationError):
        client.execute(descriptor, PlainRow)
    _expect(condition=captured_requests == [], detail="no request should be sent")
