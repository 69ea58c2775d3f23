# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Storage backend protocol used for cache persistence.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageProtocol(Protocol):
    """
    Opaque key/value storage addressed by namespace.

    Each namespace holds one serialized blob. Implementations must be safe
    to call concurrently from a single event loop.
    """

    async def get(self, namespace: str) -> bytes | None:
        """Return the blob stored under ``namespace``, or None."""
        ...

    async def set(self, namespace: str, data: bytes) -> None:
        """Store ``data`` under ``namespace``, replacing any previous blob."""
        ...

    async def delete(self, namespace: str) -> None:
        """Remove ``namespace``. Missing namespaces are ignored."""
        ...


__all__ = ["StorageProtocol"]
