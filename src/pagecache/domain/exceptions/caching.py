# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""
Page Cache Domain Exceptions

Purpose:
    Error conditions raised while declaring cache policies, talking to the
    response store, or driving the per-request cache state machine.

Layer: domain/exceptions

Notes:
    - ``CacheConfigurationError`` is raised at declaration time and never
      reaches request handling.
    - ``StoreUnavailable`` is raised by store adapters. Request pipelines
      degrade it to uncached serving.
"""
from __future__ import annotations

from .base import DomainError


class CacheConfigurationError(DomainError):
    """A cache declaration is invalid (e.g. both a static and a deferred key)."""

    code = "CACHE_CONFIGURATION_ERROR"
    default_message = "Invalid cache declaration"


class StoreUnavailable(DomainError):
    """The backing response store could not be reached or failed a command."""

    code = "CACHE_STORE_UNAVAILABLE"
    default_message = "Response store unavailable"


class InvalidCacheTransition(DomainError):
    """A request cache state was asked to move along an illegal edge."""

    code = "CACHE_STATE_ERROR"
    default_message = "Illegal request cache state transition"
