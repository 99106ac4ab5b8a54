"""Request/response shapes for one aggregation session."""

from dataclasses import dataclass, field
from typing import Optional

from adintel.models.creative import AdPlatform, EnrichedCreative
from adintel.models.enrichment import BrandAnalytics
from adintel.models.relevance import RelevanceCategory


@dataclass
class AdSearchRequest:
    query: str
    domain: Optional[str] = None
    country: Optional[str] = None
    limit: Optional[int] = None
    enrich: bool = True
    include_secondary: bool = False
    max_enrichments: Optional[int] = None
    date_from: Optional[str] = None  # YYYY-MM-DD
    date_to: Optional[str] = None
    skip_analytics: bool = False
    min_relevance_score: Optional[int] = None
    exclude_categories: tuple[RelevanceCategory, ...] = ()
    google_ad_format: Optional[str] = None
    google_platform: Optional[str] = None


@dataclass
class SourceResult:
    """Outcome of one primary source query."""

    platform: AdPlatform
    success: bool
    creatives: list[EnrichedCreative] = field(default_factory=list)
    total_count: int = 0
    error: Optional[str] = None
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "count": len(self.creatives),
            "total_count": self.total_count,
            "success": self.success,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass
class PrimaryResult:
    results: list[SourceResult] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def creatives(self) -> list[EnrichedCreative]:
        return [c for r in self.results for c in r.creatives]

    @property
    def total_ads(self) -> int:
        return sum(len(r.creatives) for r in self.results)

    @property
    def has_creatives(self) -> bool:
        return any(c.has_media for c in self.creatives)

    def to_dict(self) -> dict:
        return {
            "total_ads": self.total_ads,
            "platforms_queried": [r.platform.value for r in self.results],
            "duration_ms": self.duration_ms,
            "sources": {r.platform.value: r.to_dict() for r in self.results},
        }


@dataclass
class EnrichmentMetadata:
    enriched_count: int = 0
    credits_used: float = 0
    analytics: Optional[BrandAnalytics] = None
    error: Optional[str] = None
    skipped_reason: Optional[str] = None
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "enriched_count": self.enriched_count,
            "credits_used": self.credits_used,
            "analytics": self.analytics.to_dict() if self.analytics else None,
            "error": self.error,
            "skipped_reason": self.skipped_reason,
            "duration_ms": self.duration_ms,
        }


@dataclass
class SecondarySourceMetadata:
    total_ads: int = 0
    unique_ads: int = 0  # not already found on a primary source
    duration_ms: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "total_ads": self.total_ads,
            "unique_ads": self.unique_ads,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


@dataclass
class CostSummary:
    primary: dict[str, float] = field(default_factory=dict)
    secondary: float = 0.0
    secondary_breakdown: dict[str, float] = field(default_factory=dict)

    @property
    def primary_total(self) -> float:
        return sum(self.primary.values())

    @property
    def total(self) -> float:
        return self.primary_total + self.secondary

    def to_dict(self) -> dict:
        return {
            "primary": {k: round(v, 4) for k, v in self.primary.items()},
            "primary_total": round(self.primary_total, 4),
            "secondary": round(self.secondary, 4),
            "secondary_breakdown": {k: round(v, 4) for k, v in self.secondary_breakdown.items()},
            "total": round(self.total, 4),
            "currency": "USD",
        }


@dataclass
class AggregateResult:
    request_id: str
    creatives: list[EnrichedCreative]
    primary: PrimaryResult
    enrichment: Optional[EnrichmentMetadata] = None
    secondary_source: Optional[SecondarySourceMetadata] = None
    costs: CostSummary = field(default_factory=CostSummary)
    duration_ms: int = 0

    @property
    def has_creatives(self) -> bool:
        return any(c.has_media for c in self.creatives)

    def to_dict(self, include_raw: bool = False) -> dict:
        return {
            "request_id": self.request_id,
            "ads": [c.to_dict(include_raw=include_raw) for c in self.creatives],
            "has_creatives": self.has_creatives,
            "metadata": {
                "primary": self.primary.to_dict(),
                "enrichment": self.enrichment.to_dict() if self.enrichment else None,
                "secondary_source": self.secondary_source.to_dict() if self.secondary_source else None,
            },
            "costs": self.costs.to_dict(),
            "duration_ms": self.duration_ms,
        }
