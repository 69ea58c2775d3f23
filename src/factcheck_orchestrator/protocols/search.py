# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Search provider protocol.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..types.results import SearchResult


@runtime_checkable
class SearchProtocol(Protocol):
    """
    A web search collaborator.

    Implementations perform one search per call and return a flat list of
    results. Failures should be raised as UpstreamError so the request
    queue can recognise HTTP 429 and back off.

    Example:
        >>> class BraveSearch:
        ...     async def search(self, query: str) -> list[SearchResult]:
        ...         ...
    """

    async def search(self, query: str) -> list[SearchResult]:
        """Run one search and return its results."""
        ...


__all__ = ["SearchProtocol"]
