"""Client configuration shared by the query client and the CLI."""

from __future__ import annotations

import os
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, model_validator

DEFAULT_BASE_URI = "http://localhost:8093/query"


def _parse_env_flag(value: str | None, *, default: bool) -> bool:
    """
    Interpret a string environment value as a boolean.

    Parameters
    ----------
    value:
        Raw environment variable value or None.
    default:
        Value to return when the environment variable is unset.

    Returns
    -------
    bool
        Parsed boolean flag.
    """
    if value is None:
        return default
    return value.lower() not in {"0", "false", "no", "off", ""}


class ClientConfig(BaseModel):
    """
    Runtime settings for talking to a query service.

    Static credentials, when configured, are attached to requests that do not
    already carry credentials of their own.
    """

    base_uri: str = Field(
        default=DEFAULT_BASE_URI,
        description="Query endpoint, e.g. 'http://localhost:8093/query'.",
    )
    timeout_seconds: float = Field(
        default=75.0,
        description="Client-side HTTP timeout in seconds for each round trip.",
    )
    observability_enabled: bool = Field(
        default=False,
        description="Emit a structured log line per executed query.",
    )
    username: str | None = Field(
        default=None,
        description="Username attached as request credentials.",
    )
    password: str | None = Field(
        default=None,
        description="Password for the configured username.",
    )
    admin: bool = Field(
        default=False,
        description="Scope configured credentials as admin instead of local.",
    )

    @classmethod
    def from_env(cls) -> ClientConfig:
        """
        Construct a ClientConfig from environment variables.

        Returns
        -------
        ClientConfig
            Validated configuration populated from environment values.
        """
        return cls(
            base_uri=os.environ.get("QUERYHTTP_BASE_URI", DEFAULT_BASE_URI),
            timeout_seconds=float(os.environ.get("QUERYHTTP_TIMEOUT_SEC", "75.0")),
            observability_enabled=_parse_env_flag(
                os.environ.get("QUERYHTTP_OBSERVABILITY"), default=False
            ),
            username=os.environ.get("QUERYHTTP_USERNAME") or None,
            password=os.environ.get("QUERYHTTP_PASSWORD"),
            admin=_parse_env_flag(os.environ.get("QUERYHTTP_ADMIN"), default=False),
        )

    @model_validator(mode="after")
    def _validate(self) -> ClientConfig:
        """
        Validate URI, timeout and credential settings.

        Returns
        -------
        ClientConfig
            Validated configuration.

        Raises
        ------
        ValueError
            When a setting is out of range or inconsistent.
        """
        parts = urlsplit(self.base_uri)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            message = f"base_uri must be an absolute http(s) URI: {self.base_uri!r}"
            raise ValueError(message)
        if self.timeout_seconds <= 0:
            message = "timeout_seconds must be positive"
            raise ValueError(message)
        if self.password is not None and self.username is None:
            message = "password requires username"
            raise ValueError(message)
        return self

    @property
    def has_credentials(self) -> bool:
        """Return True when a username is configured."""
        return self.username is not None
