# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""
Base Page Cache Exception.

Summary:
    Root of every error the page cache raises. Each subclass pins a stable
    envelope ``code`` and a fallback message. ``details`` carries key and
    operation context for logs and error envelopes, never response bodies.

Layer:
    domain/exceptions
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class DomainError(Exception):
    """Base class for page cache errors.

    Attributes:
        code: Machine-readable code used in error envelopes and logs.
        default_message: Message used when the raiser gives none.
        details: Context such as the cache key or store operation.
    """

    code: str = "PAGE_CACHE_ERROR"
    default_message: str = "Page cache failure"

    def __init__(self, message: str = "", *, details: Mapping[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details: dict[str, Any] = dict(details or {})

    def describe(self) -> dict[str, Any]:
        """Return the structured log payload for this error."""
        payload: dict[str, Any] = {"code": self.code, "error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload
