from adintel.models.database import Base, engine, SessionLocal, get_db, init_db
from adintel.models.creative import AdPlatform, AdFormat, CreativeSource, Creative, EnrichedCreative
from adintel.models.relevance import RelevanceCategory, RelevanceAssessment
from adintel.models.enrichment import (
    Hook,
    Enrichment,
    BrandRecord,
    BrandAnalytics,
    BrandCorpus,
    SecondaryAd,
)
from adintel.models.results import (
    AdSearchRequest,
    SourceResult,
    PrimaryResult,
    EnrichmentMetadata,
    SecondarySourceMetadata,
    CostSummary,
    AggregateResult,
)
from adintel.models.search_run import SearchRun, SourceFailure

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
    "AdPlatform",
    "AdFormat",
    "CreativeSource",
    "Creative",
    "EnrichedCreative",
    "RelevanceCategory",
    "RelevanceAssessment",
    "Hook",
    "Enrichment",
    "BrandRecord",
    "BrandAnalytics",
    "BrandCorpus",
    "SecondaryAd",
    "AdSearchRequest",
    "SourceResult",
    "PrimaryResult",
    "EnrichmentMetadata",
    "SecondarySourceMetadata",
    "CostSummary",
    "AggregateResult",
    "SearchRun",
    "SourceFailure",
]
