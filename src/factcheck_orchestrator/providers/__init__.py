# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Provider adapters for AI model calls.

Concrete adapters (HTTP clients for OpenAI, Anthropic, ...) live in the
application; this package defines the interface and the default tier
model tables.
"""

from .base import ANTHROPIC_MODELS, OPENAI_MODELS, ProviderAdapter, TierModelMap

__all__ = ["ANTHROPIC_MODELS", "OPENAI_MODELS", "ProviderAdapter", "TierModelMap"]
