"""CLI entrypoint for producing and executing query requests."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Iterable
from datetime import timedelta

from queryhttp.config.models import ClientConfig
from queryhttp.request.builder import QueryRequest
from queryhttp.services.errors import ProblemError, log_problem, problem
from queryhttp.services.query_client import QueryClient
from queryhttp.types import HttpMethod, ScanConsistency

LOG = logging.getLogger("queryhttp.cli")

CommandHandler = Callable[[argparse.Namespace], int]


# ---------------------------------------------------------------------------
# Argument parsing / logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure logging based on -v/--verbose count.

    0 -> WARNING, 1 -> INFO, 2+ -> DEBUG.
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _json_value(text: str) -> object:
    """
    Parse a JSON command-line value.

    Returns
    -------
    object
        Decoded JSON value.

    Raises
    ------
    argparse.ArgumentTypeError
        When the text is not valid JSON.
    """
    try:
        return json.loads(text)
    except ValueError as exc:
        message = f"not valid JSON: {text!r}"
        raise argparse.ArgumentTypeError(message) from exc


def _named_value(text: str) -> tuple[str, object]:
    """
    Parse a ``NAME=JSON`` named parameter.

    Returns
    -------
    tuple[str, object]
        Parameter name and decoded value.

    Raises
    ------
    argparse.ArgumentTypeError
        When the text has no ``=`` or the value is not valid JSON.
    """
    name, sep, raw = text.partition("=")
    if not sep or not name:
        message = f"expected NAME=JSON, got {text!r}"
        raise argparse.ArgumentTypeError(message)
    return name, _json_value(raw)


def _add_request_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("statement", help="Statement text, or prepared name with --prepared")
    p.add_argument("--base-uri", default=None, help="Query endpoint (default: from environment)")
    p.add_argument(
        "--prepared",
        action="store_true",
        help="Treat the positional argument as a prepared statement name",
    )
    p.add_argument(
        "--method",
        choices=[m.value for m in HttpMethod],
        default=None,
        help="Force the HTTP method instead of inferring it",
    )
    p.add_argument(
        "--arg",
        dest="args",
        action="append",
        type=_json_value,
        default=[],
        help="Positional parameter as JSON (repeatable)",
    )
    p.add_argument(
        "--param",
        dest="params",
        action="append",
        type=_named_value,
        default=[],
        help="Named parameter as NAME=JSON (repeatable)",
    )
    p.add_argument("--timeout", type=float, default=None, help="Server-side timeout in seconds")
    p.add_argument("--readonly", action="store_true", help="Send readonly=true")
    p.add_argument("--metrics", action="store_true", help="Request execution metrics")
    p.add_argument("--pretty", action="store_true", help="Request pretty-printed output")
    p.add_argument(
        "--scan-consistency",
        choices=[level.value for level in ScanConsistency],
        default=None,
        help="Index scan consistency level",
    )
    p.add_argument("--client-context-id", default=None, help="Opaque id echoed by the service")
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (-v, -vv)",
    )


def _build_request(args: argparse.Namespace, cfg: ClientConfig) -> QueryRequest:
    """
    Translate parsed arguments into a request builder.

    Returns
    -------
    QueryRequest
        Builder carrying every option given on the command line.
    """
    request = QueryRequest.create(args.statement, is_prepared=args.prepared)
    request.base_uri(args.base_uri or cfg.base_uri)
    if args.method is not None:
        request.http_method(args.method)
    for name, value in args.params:
        request.add_named_parameter(name, value)
    request.add_positional_parameters(*args.args)
    if args.timeout is not None:
        request.timeout(timedelta(seconds=args.timeout))
    if args.readonly:
        request.read_only()
    if args.metrics:
        request.metrics()
    if args.pretty:
        request.pretty()
    if args.scan_consistency is not None:
        request.scan_consistency(args.scan_consistency)
    if args.client_context_id:
        request.client_context_id(args.client_context_id)
    if cfg.has_credentials:
        request.add_credentials(cfg.username, cfg.password or "", cfg.admin)
    return request


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_uri(args: argparse.Namespace) -> int:
    cfg = ClientConfig.from_env()
    descriptor = _build_request(args, cfg).produce()
    sys.stdout.write(f"{descriptor.method.value} {descriptor.uri}\n")
    return 0


def _cmd_query(args: argparse.Namespace) -> int:
    cfg = ClientConfig.from_env()
    descriptor = _build_request(args, cfg).produce()
    with QueryClient(config=cfg) as client:
        result = client.execute(descriptor)
    sys.stdout.write(json.dumps(result.to_dict(), indent=2, default=str) + "\n")
    return 0 if result.success else 1


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="queryhttp",
        description="Build and execute queries against an HTTP query service.",
    )
    subparsers = parser.add_subparsers(dest="command")

    p_uri = subparsers.add_parser("uri", help="Print the encoded request without sending it")
    _add_request_args(p_uri)
    p_uri.set_defaults(func=_cmd_uri)

    p_query = subparsers.add_parser("query", help="Execute a statement and print the result")
    _add_request_args(p_query)
    p_query.set_defaults(func=_cmd_query)
    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Iterable[str] | None = None) -> int:
    """
    CLI entrypoint for the queryhttp commands.

    Parameters
    ----------
    argv:
        Optional argument list (defaults to sys.argv).

    Returns
    -------
    int
        Exit code (0 on success).
    """
    parser = _make_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    _setup_logging(args.verbose)

    try:
        func: CommandHandler = args.func
        return int(func(args))
    except ProblemError as exc:
        log_problem(LOG, exc.problem_detail)
        return 2
    except ValueError as exc:
        pd = problem(
            code="cli.invalid_config",
            title="Invalid configuration",
            detail=str(exc),
            extras={"command": args.command},
        )
        log_problem(LOG, pd)
        return 2


if __name__ == "__main__":
    sys.exit(main())
