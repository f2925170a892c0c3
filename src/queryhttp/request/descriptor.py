"""Immutable request descriptors produced by the request builder."""

from __future__ import annotations

from dataclasses import dataclass

from queryhttp.types import HttpMethod


@dataclass(frozen=True)
class QueryDescriptor:
    """Fully encoded request: the target URI and the HTTP method to use."""

    uri: str
    method: HttpMethod

    @property
    def is_post(self) -> bool:
        """Return True when the request is sent as POST."""
        return self.method is HttpMethod.POST

    def __str__(self) -> str:
        return self.uri
