# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for external collaborators.

This module provides the runtime-checkable protocols that search providers
and storage backends implement.
"""

from .search import SearchProtocol
from .storage import StorageProtocol

__all__ = ["SearchProtocol", "StorageProtocol"]
