"""Configuration models for queryhttp."""

from __future__ import annotations

from queryhttp.config.models import DEFAULT_BASE_URI, ClientConfig

__all__ = ["DEFAULT_BASE_URI", "ClientConfig"]
