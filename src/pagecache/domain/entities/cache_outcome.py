# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Outcome of the cache gate: keep going, or answer right away."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

REPLAY_STATUS_CODE = 200


@dataclass(frozen=True)
class Continue:
    """Run the route normally."""


@dataclass(frozen=True)
class Respond:
    """Short-circuit the route with a stored response."""

    body: str
    content_type: str | None = None
    status_code: int = REPLAY_STATUS_CODE


CacheOutcome: TypeAlias = Continue | Respond
