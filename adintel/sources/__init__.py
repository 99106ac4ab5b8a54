from adintel.sources.base import SourceAdapter, SourceError, SourceTimeoutError
from adintel.sources.linkedin import LinkedInAdapter
from adintel.sources.meta import MetaAdapter
from adintel.sources.google import GoogleAdapter
from adintel.sources.foreplay import ForeplayClient, SecondarySourceError
from adintel.sources.aggregator import PrimaryAggregator, build_adapters
from adintel.sources.enrichment import EnrichmentMerger, platforms_match
from adintel.sources.orchestrator import AdIntelligenceOrchestrator

__all__ = [
    "SourceAdapter",
    "SourceError",
    "SourceTimeoutError",
    "LinkedInAdapter",
    "MetaAdapter",
    "GoogleAdapter",
    "ForeplayClient",
    "SecondarySourceError",
    "PrimaryAggregator",
    "build_adapters",
    "EnrichmentMerger",
    "platforms_match",
    "AdIntelligenceOrchestrator",
]
