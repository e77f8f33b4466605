# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Cached response entry (domain entity)."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """A stored response: textual body plus its content type.

    Expiry is enforced by the store, not by this entity.
    """

    body: str
    content_type: str | None = None

    def to_mapping(self) -> dict[str, Any]:
        """Return a JSON-serializable mapping for store adapters."""
        return {"body": self.body, "content_type": self.content_type}

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CacheEntry:
        """Rebuild an entry from :meth:`to_mapping` output.

        Raises:
            ValueError: If ``body`` is missing or not a string.
        """
        body = raw.get("body")
        if not isinstance(body, str):
            raise ValueError("Cached entry body must be a string.")
        content_type = raw.get("content_type")
        return cls(body=body, content_type=str(content_type) if content_type else None)
