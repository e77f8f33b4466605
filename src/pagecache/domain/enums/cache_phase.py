# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Request cache phase enumeration."""

from __future__ import annotations

from enum import Enum


class CachePhase(str, Enum):
    """Lifecycle phase of a single request's cache handling.

    ``FRESH`` is initial. ``ATTEMPTED`` means the policy applied and the store
    is being consulted. ``HIT`` and ``MISS_RECORDED`` are terminal for the
    request.
    """

    FRESH = "fresh"
    ATTEMPTED = "attempted"
    HIT = "hit"
    MISS_RECORDED = "miss_recorded"
