import asyncio
import time
from dataclasses import replace
from typing import Optional

import httpx

from adintel.config import ENABLED_SOURCES, REQUEST_TIMEOUT
from adintel.models import AdSearchRequest, PrimaryResult, SourceResult
from adintel.sources.base import SourceAdapter
from adintel.sources.google import GoogleAdapter
from adintel.sources.linkedin import LinkedInAdapter
from adintel.sources.meta import MetaAdapter
from adintel.utils.name_matcher import calculate_similarity, guess_domain
from adintel.utils.rate_limiter import RateLimiter
from adintel.utils.relevance_scoring import RelevanceScorer
from adintel.utils.logger import get_logger

logger = get_logger("aggregator")

ADAPTERS = {
    "linkedin": LinkedInAdapter,
    "meta": MetaAdapter,
    "google": GoogleAdapter,
}

LOW_SCORE_THRESHOLD = 40
LOW_SCORE_LOG_SAMPLES = 5


def build_adapters(
    sources: list[str] = None,
    client: httpx.AsyncClient = None,
    rate_limiter: RateLimiter = None,
    **adapter_kwargs,
) -> list[SourceAdapter]:
    rate_limiter = rate_limiter or RateLimiter()
    adapters = []
    for name in sources or ENABLED_SOURCES:
        adapter_cls = ADAPTERS.get(name)
        if adapter_cls is None:
            raise ValueError(f"Unknown ad source: {name!r} (expected one of {', '.join(ADAPTERS)})")
        adapters.append(adapter_cls(client=client, rate_limiter=rate_limiter, **adapter_kwargs))
    return adapters


class PrimaryAggregator:
    """Queries every primary source concurrently and scores what comes back.

    One failing source never affects the others; it shows up as an
    unsuccessful SourceResult with an error message.
    """

    def __init__(
        self,
        adapters: list[SourceAdapter] = None,
        scorer: RelevanceScorer = None,
        client: httpx.AsyncClient = None,
        sources: list[str] = None,
        **adapter_kwargs,
    ):
        self.client = client
        self._owns_client = client is None
        self.adapters = adapters or build_adapters(sources, client=client, **adapter_kwargs)
        self.scorer = scorer or RelevanceScorer()

    @property
    def platforms(self) -> list[str]:
        return [a.platform.value for a in self.adapters]

    async def start(self):
        """Initialize one HTTP client shared by all adapters."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT, follow_redirects=True)
            self._owns_client = True
        for adapter in self.adapters:
            if adapter.client is None:
                adapter.client = self.client
                adapter._owns_client = False

    async def stop(self):
        """Close the shared HTTP client and any client an adapter opened on its own."""
        for adapter in self.adapters:
            await adapter.stop()
        if self.client and self._owns_client:
            await self.client.aclose()
            self.client = None
            for adapter in self.adapters:
                adapter.client = None

    async def fetch_all(self, request: AdSearchRequest) -> PrimaryResult:
        started = time.monotonic()
        logger.info("primary_fetch_started", query=request.query, sources=self.platforms)

        outcomes = await asyncio.gather(
            *(adapter.fetch(request) for adapter in self.adapters),
            return_exceptions=True,
        )

        results = []
        for adapter, outcome in zip(self.adapters, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(
                    "source_fetch_crashed",
                    platform=adapter.platform.value,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                outcome = SourceResult(
                    platform=adapter.platform,
                    success=False,
                    error=str(outcome) or type(outcome).__name__,
                )
            results.append(self.score_result(outcome, request.query, request.domain))

        primary = PrimaryResult(results=results, duration_ms=int((time.monotonic() - started) * 1000))
        logger.info(
            "primary_fetch_complete",
            total_ads=primary.total_ads,
            failed_sources=[r.platform.value for r in results if not r.success],
            duration_ms=primary.duration_ms,
        )
        return primary

    def score_result(self, result: SourceResult, query: str, domain: Optional[str] = None) -> SourceResult:
        if not result.creatives:
            return result

        domain = domain or guess_domain(query)
        scored = [
            replace(c, relevance=self.scorer.assess(c, query, domain))
            for c in result.creatives
        ]

        low = [c for c in scored if c.relevance.score < LOW_SCORE_THRESHOLD]
        for creative in low[:LOW_SCORE_LOG_SAMPLES]:
            logger.debug(
                "low_relevance_creative",
                platform=result.platform.value,
                advertiser=creative.advertiser,
                similarity=round(calculate_similarity(creative.advertiser, query), 3),
                score=creative.relevance.score,
            )

        return replace(result, creatives=scored)
