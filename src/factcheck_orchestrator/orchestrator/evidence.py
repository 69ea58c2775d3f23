# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Evidence collection from the search collaborator.

The search query is split into at most two short claim queries, each run
through the search provider's own RequestQueue. Results from all claims
are merged, de-duplicated by URL and ranked with fact-checking sites
first, then newest first. A failed claim search only loses that claim's
results.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..config import QueueConfig
from ..queueing.queue import RequestQueue
from ..types.results import SearchResult

if TYPE_CHECKING:
    from ..cancellation import CancellationToken
    from ..observability.protocols import MetricsCollectorProtocol
    from ..protocols.search import SearchProtocol

logger = logging.getLogger(__name__)

FACT_CHECK_DOMAINS: tuple[str, ...] = (
    "factcheck.org",
    "politifact.com",
    "snopes.com",
    "fullfact.org",
    "reuters.com/fact-check",
    "apnews.com/hub/ap-fact-check",
    "factchecker.washingtonpost.com",
    "checkyourfact.com",
    "truthorfiction.com",
    "factcheck.afp.com",
    "leadstories.com",
    "mediabiasfactcheck.com",
    "poynter.org/ifcn",
    "bbc.com/news/reality_check",
    "channel4.com/news/factcheck",
    "vox.com/pages/facts-matter",
    "factcrescendo.com",
    "hoax-slayer.net",
    "verafiles.org",
    "africacheck.org",
)

MAX_CLAIMS = 2
MAX_CLAIM_LENGTH = 80
MIN_CLAIM_LENGTH = 10

_CLAIM_SPLIT = re.compile(r"[;.]")
_UNSAFE_CHARS = re.compile(r"[^\w\s.,'\"]")


@dataclass
class Evidence:
    """Merged search results and the prompt context built from them."""

    context: str = ""
    references: list[SearchResult] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)
    failed_queries: int = 0

    @property
    def empty(self) -> bool:
        return not self.references


def split_claims(
    query: str,
    max_claims: int = MAX_CLAIMS,
    max_length: int = MAX_CLAIM_LENGTH,
) -> list[str]:
    """
    Split a query into short, sanitized claim queries.

    Claims are separated by ``;`` or ``.``; fragments of 10 characters or
    fewer are dropped, punctuation other than ``.,'"`` is blanked out and
    each claim is capped at ``max_length`` characters.
    """
    claims: list[str] = []
    for fragment in _CLAIM_SPLIT.split(query):
        if len(fragment.strip()) <= MIN_CLAIM_LENGTH:
            continue
        sanitized = _UNSAFE_CHARS.sub(" ", fragment.strip()).strip()
        claims.append(sanitized[:max_length])
        if len(claims) >= max_claims:
            break
    return claims


def is_fact_check_source(result: SearchResult) -> bool:
    location = f"{result.domain} {result.url}"
    return any(domain in location for domain in FACT_CHECK_DOMAINS)


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def rank_results(results: list[SearchResult]) -> list[SearchResult]:
    """
    De-duplicate by URL (first occurrence wins) and rank.

    Fact-check sources come first. Within each group, results with a
    parseable date come newest first, followed by undated results in
    their original order.
    """
    unique: dict[str, SearchResult] = {}
    for result in results:
        unique.setdefault(result.url, result)

    def sort_key(indexed: tuple[int, SearchResult]) -> tuple[int, int, float, int]:
        index, result = indexed
        group = 0 if is_fact_check_source(result) else 1
        date = _parse_date(result.date)
        if date is None:
            return (group, 1, 0.0, index)
        return (group, 0, -date.timestamp(), index)

    return [r for _, r in sorted(enumerate(unique.values()), key=sort_key)]


def build_context(results: list[SearchResult]) -> str:
    """Format ranked results as the evidence block of a prompt."""
    blocks = []
    for result in results:
        block = f"Source: {result.title} ({result.domain})"
        if result.date:
            block += f" [{result.date}]"
        block += f"\nContent: {result.description}"
        blocks.append(block)
    return "\n\n".join(blocks)


class EvidenceCollector:
    """
    Runs claim searches through a dedicated queue and merges the results.

    Args:
        search: The search collaborator.
        queue: Queue in front of ``search.search``; built from
            ``queue_config`` (the search preset by default) when omitted.
        metrics_collector: Optional metrics sink for the built queue.
    """

    def __init__(
        self,
        search: SearchProtocol,
        queue: RequestQueue[str, list[SearchResult]] | None = None,
        queue_config: QueueConfig | None = None,
        metrics_collector: MetricsCollectorProtocol | None = None,
        max_claims: int = MAX_CLAIMS,
        max_claim_length: int = MAX_CLAIM_LENGTH,
    ) -> None:
        self.search = search
        self.max_claims = max_claims
        self.max_claim_length = max_claim_length
        self.queue: RequestQueue[str, list[SearchResult]] = queue or RequestQueue(
            search.search,
            queue_config or QueueConfig.search(),
            name="search",
            metrics_collector=metrics_collector,
        )

    async def collect(
        self, query: str, token: CancellationToken | None = None
    ) -> Evidence:
        """
        Search every claim in ``query`` and build the evidence context.

        Individual search failures are logged and skipped; the result is
        empty only when every claim search failed or returned nothing.
        """
        claims = split_claims(query, self.max_claims, self.max_claim_length)
        if not claims:
            logger.debug("No searchable claims in query")
            return Evidence()

        outcomes = await asyncio.gather(
            *(self.queue.submit(claim, token) for claim in claims),
            return_exceptions=True,
        )
        if token is not None:
            token.raise_if_cancelled()

        merged: list[SearchResult] = []
        failed = 0
        for claim, outcome in zip(claims, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                failed += 1
                logger.warning(f"Search failed for claim '{claim[:40]}': {outcome}")
                continue
            merged.extend(outcome)

        ranked = rank_results(merged)
        logger.debug(
            f"Collected {len(ranked)} unique results from {len(claims)} claims "
            f"({failed} failed)"
        )
        return Evidence(
            context=build_context(ranked),
            references=ranked,
            queries=claims,
            failed_queries=failed,
        )

    async def close(self) -> None:
        await self.queue.close()


__all__ = [
    "FACT_CHECK_DOMAINS",
    "Evidence",
    "EvidenceCollector",
    "build_context",
    "rank_results",
    "split_claims",
]
