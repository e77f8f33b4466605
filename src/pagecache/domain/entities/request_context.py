# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Request context handed to deferred cache keys.

Layer:
    domain/entities
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RequestContext:
    """Read-only view of the request being served.

    Attributes:
        path: Request path (no scheme/host/query).
        method: Upper-cased HTTP method.
        params: Query parameters overlaid with path parameters.
        request: Underlying framework request, for keys needing more data.
    """

    path: str
    method: str
    params: Mapping[str, Any] = field(default_factory=dict)
    request: Any = None
