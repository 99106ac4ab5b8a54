import asyncio
import time
from dataclasses import replace
from typing import Optional

import httpx
import structlog
from sqlalchemy.orm import Session

from adintel.config import (
    ENABLE_FOREPLAY,
    FOREPLAY_API_KEY,
    SEARCHAPI_COST_PER_QUERY,
)
from adintel.models import (
    AdSearchRequest,
    AggregateResult,
    BrandCorpus,
    CostSummary,
    CreativeSource,
    EnrichedCreative,
    EnrichmentMetadata,
    PrimaryResult,
    SecondarySourceMetadata,
    SessionLocal,
    SearchRun,
    SourceFailure,
)
from adintel.sources.aggregator import PrimaryAggregator
from adintel.sources.enrichment import CORPUS_LIMIT, EnrichmentMerger
from adintel.sources.foreplay import ForeplayClient, SecondarySourceError
from adintel.utils.cost_tracker import CostLedger
from adintel.utils.dedup import deduplicate_creatives
from adintel.utils.name_matcher import guess_domain
from adintel.utils.relevance_scoring import RelevanceScorer, sort_by_relevance
from adintel.utils.logger import get_logger, new_request_id

logger = get_logger("orchestrator")


class AdIntelligenceOrchestrator:
    """
    Runs aggregation sessions: primary fan-out, secondary lookup, enrichment,
    dedup, scoring and ranking.

    Each session gets its own CostLedger and request id, so sessions can run
    concurrently on one orchestrator.
    """

    def __init__(
        self,
        aggregator: PrimaryAggregator = None,
        client: httpx.AsyncClient = None,
        foreplay_api_key: str = None,
        foreplay_enabled: bool = None,
        foreplay_options: dict = None,
        scorer: RelevanceScorer = None,
        cost_per_query: float = None,
        cost_per_credit: float = None,
        save_runs: bool = False,
        session_factory=None,
    ):
        self.client = client
        self._owns_client = client is None
        self.aggregator = aggregator or PrimaryAggregator(client=client)
        self.foreplay_api_key = FOREPLAY_API_KEY if foreplay_api_key is None else foreplay_api_key
        self.foreplay_enabled = ENABLE_FOREPLAY if foreplay_enabled is None else foreplay_enabled
        self.foreplay_options = foreplay_options or {}
        self.scorer = scorer or RelevanceScorer()
        self.cost_per_query = SEARCHAPI_COST_PER_QUERY if cost_per_query is None else cost_per_query
        self.cost_per_credit = cost_per_credit
        self.save_runs = save_runs
        self.session_factory = session_factory or SessionLocal

    async def start(self):
        """Initialize the shared HTTP client."""
        if self.client is None:
            await self.aggregator.start()
            self.client = self.aggregator.client
            self._owns_client = False

    async def stop(self):
        """Close HTTP clients."""
        await self.aggregator.stop()
        if self.client and self._owns_client:
            await self.client.aclose()
        self.client = None

    @property
    def secondary_available(self) -> bool:
        return self.foreplay_enabled and bool(self.foreplay_api_key)

    async def run_batch(self, requests: list[AdSearchRequest]) -> list[AggregateResult]:
        """Run independent sessions concurrently. Results are in request order."""
        return list(await asyncio.gather(*(self.run(r) for r in requests)))

    async def run(self, request: AdSearchRequest) -> AggregateResult:
        request_id = new_request_id()
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            db = None
            search_run = None
            if self.save_runs:
                db = self.session_factory()
                search_run = self._start_run_record(db, request, request_id)

            try:
                result = await self._run_session(request, request_id)
            except Exception as e:
                logger.error("search_run_failed", query=request.query, error=str(e))
                if search_run is not None:
                    search_run.mark_failed(str(e))
                    db.commit()
                raise
            else:
                if search_run is not None:
                    self._complete_run_record(db, search_run, result)
                return result
            finally:
                if db is not None:
                    db.close()

    async def _run_session(self, request: AdSearchRequest, request_id: str) -> AggregateResult:
        started = time.monotonic()
        domain = request.domain or guess_domain(request.query)
        ledger = CostLedger(self.cost_per_credit)

        logger.info(
            "search_started",
            query=request.query,
            domain=domain,
            enrich=request.enrich,
            include_secondary=request.include_secondary,
        )

        merger = None
        wants_secondary = request.enrich or request.include_secondary
        if wants_secondary and self.secondary_available:
            foreplay = ForeplayClient(
                api_key=self.foreplay_api_key,
                client=self.client,
                ledger=ledger,
                **self.foreplay_options,
            )
            merger = EnrichmentMerger(foreplay)

        # Secondary lookup runs alongside the primary fan-out
        if merger is not None:
            try:
                primary, (corpus, secondary_error) = await asyncio.gather(
                    self.aggregator.fetch_all(request),
                    self._fetch_corpus(merger, domain, request),
                )
            finally:
                await merger.client.stop()
        else:
            primary = await self.aggregator.fetch_all(request)
            corpus, secondary_error = None, None

        creatives = primary.creatives

        enrichment = None
        if request.enrich:
            creatives, enrichment = self._enrich(merger, creatives, corpus, secondary_error, primary, ledger, request)

        secondary_source = None
        if request.include_secondary:
            creatives, secondary_source = self._ingest(merger, creatives, corpus, secondary_error)
        else:
            creatives = deduplicate_creatives(creatives)

        creatives = [
            c if c.relevance is not None else replace(c, relevance=self.scorer.assess(c, request.query, domain))
            for c in creatives
        ]
        creatives = sort_by_relevance(self._apply_filters(creatives, request))

        costs = CostSummary(
            primary={r.platform.value: self.cost_per_query for r in primary.results},
            secondary=ledger.total_cost,
            secondary_breakdown=ledger.breakdown(),
        )

        result = AggregateResult(
            request_id=request_id,
            creatives=creatives,
            primary=primary,
            enrichment=enrichment,
            secondary_source=secondary_source,
            costs=costs,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

        logger.info(
            "search_completed",
            query=request.query,
            ads=len(creatives),
            enriched=enrichment.enriched_count if enrichment else 0,
            total_cost=round(costs.total, 4),
            duration_ms=result.duration_ms,
        )
        return result

    async def _fetch_corpus(
        self,
        merger: EnrichmentMerger,
        domain: Optional[str],
        request: AdSearchRequest,
    ) -> tuple[Optional[BrandCorpus], Optional[str]]:
        """Secondary corpus for the session, or the error that prevented it."""
        if not domain:
            return None, None

        limit = CORPUS_LIMIT
        if request.include_secondary and request.limit:
            limit = max(limit, request.limit)

        try:
            corpus = await merger.fetch_corpus(
                domain,
                date_from=request.date_from,
                date_to=request.date_to,
                limit=limit,
                skip_analytics=request.skip_analytics,
            )
        except SecondarySourceError as e:
            logger.error("secondary_source_failed", domain=domain, error=e.message, status=e.status_code)
            return None, e.message
        except httpx.HTTPError as e:
            logger.error("secondary_source_failed", domain=domain, error=str(e))
            return None, str(e) or type(e).__name__
        except Exception as e:
            # Bad secondary data degrades to primary-only results
            logger.error(
                "secondary_source_crashed",
                domain=domain,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None, f"{type(e).__name__}: {e}"

        return corpus, None

    def _enrich(
        self,
        merger: Optional[EnrichmentMerger],
        creatives: list[EnrichedCreative],
        corpus: Optional[BrandCorpus],
        error: Optional[str],
        primary: PrimaryResult,
        ledger: CostLedger,
        request: AdSearchRequest,
    ) -> tuple[list[EnrichedCreative], EnrichmentMetadata]:
        if merger is None:
            reason = "Secondary source disabled" if not self.foreplay_enabled else "Secondary source API key not set"
            return creatives, EnrichmentMetadata(skipped_reason=reason)

        if error:
            return creatives, EnrichmentMetadata(credits_used=ledger.total_credits, error=error)

        if primary.total_ads == 0:
            return creatives, EnrichmentMetadata(
                credits_used=ledger.total_credits,
                skipped_reason="No ads to enrich",
            )

        enriched, count = merger.enrich(creatives, corpus, request.max_enrichments)
        return enriched, EnrichmentMetadata(
            enriched_count=count,
            credits_used=ledger.total_credits,
            analytics=corpus.analytics if corpus else None,
            skipped_reason=None if corpus else "Brand not found in secondary source",
            duration_ms=corpus.duration_ms if corpus else 0,
        )

    def _ingest(
        self,
        merger: Optional[EnrichmentMerger],
        creatives: list[EnrichedCreative],
        corpus: Optional[BrandCorpus],
        error: Optional[str],
    ) -> tuple[list[EnrichedCreative], SecondarySourceMetadata]:
        if merger is None or error or corpus is None:
            return deduplicate_creatives(creatives), SecondarySourceMetadata(error=error)

        secondary = merger.ingest(corpus)
        combined = deduplicate_creatives(creatives + secondary)
        unique = sum(1 for c in combined if c.source == CreativeSource.SECONDARY)

        logger.info("secondary_ads_ingested", total=len(secondary), unique=unique)
        return combined, SecondarySourceMetadata(
            total_ads=len(secondary),
            unique_ads=unique,
            duration_ms=corpus.duration_ms,
        )

    @staticmethod
    def _apply_filters(creatives: list[EnrichedCreative], request: AdSearchRequest) -> list[EnrichedCreative]:
        if request.min_relevance_score is not None:
            creatives = [c for c in creatives if c.relevance.score >= request.min_relevance_score]
        if request.exclude_categories:
            excluded = set(request.exclude_categories)
            creatives = [c for c in creatives if c.relevance.category not in excluded]
        return creatives

    def _start_run_record(self, db: Session, request: AdSearchRequest, request_id: str) -> SearchRun:
        search_run = SearchRun(
            request_id=request_id,
            query=request.query,
            domain=request.domain,
            status="running",
        )
        db.add(search_run)
        db.commit()
        logger.info("search_run_started", run_id=search_run.id)
        return search_run

    def _complete_run_record(self, db: Session, search_run: SearchRun, result: AggregateResult):
        failed = [r for r in result.primary.results if not r.success]

        search_run.sources_total = len(result.primary.results)
        search_run.sources_failed = len(failed)
        search_run.ads_found = result.primary.total_ads
        search_run.ads_returned = len(result.creatives)
        search_run.ads_enriched = result.enrichment.enriched_count if result.enrichment else 0
        search_run.secondary_ads = result.secondary_source.total_ads if result.secondary_source else 0
        search_run.total_cost = result.costs.total
        search_run.run_metadata = {
            "primary": result.primary.to_dict(),
            "enrichment": result.enrichment.to_dict() if result.enrichment else None,
            "secondary_source": result.secondary_source.to_dict() if result.secondary_source else None,
            "costs": result.costs.to_dict(),
        }

        for source in failed:
            db.add(SourceFailure(
                search_run_id=search_run.id,
                platform=source.platform.value,
                error_type="timeout" if "timed out" in (source.error or "") else "source_error",
                error_message=source.error,
            ))

        search_run.mark_completed()
        db.commit()
        logger.info("search_run_saved", run_id=search_run.id, sources_failed=len(failed))
