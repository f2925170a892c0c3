"""HTTP method inference for query statements."""

from __future__ import annotations

from queryhttp.types import HttpMethod

_READ_MARKER = "select"


def resolve_method(text: str) -> HttpMethod:
    """
    Infer the HTTP method for statement text.

    Any text containing ``select`` (case-insensitive) is sent as GET, everything
    else as POST. This is a substring match, so a literal such as
    ``"selection"`` inside an INSERT also resolves to GET.

    Returns
    -------
    HttpMethod
        GET for read-looking text, POST otherwise.
    """
    return HttpMethod.GET if _READ_MARKER in text.lower() else HttpMethod.POST
