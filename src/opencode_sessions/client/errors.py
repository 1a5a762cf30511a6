"""Client errors."""

from __future__ import annotations


class OpencodeClientError(RuntimeError):
    """Raised when a request cannot reach the OpenCode server."""


__all__ = ["OpencodeClientError"]
