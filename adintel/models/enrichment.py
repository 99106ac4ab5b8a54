"""Secondary intelligence source records and the enrichment block they produce."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class Hook:
    text: str
    type: str
    duration: float

    def to_dict(self) -> dict:
        return {"text": self.text, "type": self.type, "duration": self.duration}


@dataclass(frozen=True)
class Enrichment:
    """Creative-level metadata attached from the secondary source."""

    transcript: Optional[str] = None
    hook: Optional[Hook] = None
    emotional_tone: tuple[str, ...] = ()
    landing_page_url: Optional[str] = None
    landing_page_screenshot: Optional[str] = None
    secondary_ad_id: Optional[str] = None
    match_confidence: float = 0.0

    def to_dict(self) -> dict:
        return {
            "transcript": self.transcript,
            "hook": self.hook.to_dict() if self.hook else None,
            "emotional_tone": list(self.emotional_tone),
            "landing_page_url": self.landing_page_url,
            "landing_page_screenshot": self.landing_page_screenshot,
            "secondary_ad_id": self.secondary_ad_id,
            "match_confidence": round(self.match_confidence, 4),
        }


@dataclass(frozen=True)
class BrandRecord:
    """Lookup key into the secondary source's ad corpus. Never persisted."""

    id: str
    name: str
    domain: Optional[str] = None
    page_id: Optional[str] = None


@dataclass
class HookAnalysis:
    hook_text: str = ""
    hook_type: str = "benefit"
    hook_duration_seconds: float = 3.0


@dataclass
class LandingPage:
    url: str
    screenshot_url: Optional[str] = None


@dataclass
class SecondaryCreativeAsset:
    type: str = "image"  # video, image, carousel
    url: str = ""
    thumbnail_url: str = ""
    video_transcript: str = ""
    duration_seconds: Optional[float] = None
    carousel_urls: list[str] = field(default_factory=list)


@dataclass
class SecondaryCopy:
    headline: str = ""
    body: str = ""
    cta: str = ""
    sponsor_name: str = ""


@dataclass
class SecondaryMetadata:
    platform: str = "facebook"  # facebook, instagram, tiktok, linkedin
    first_seen: str = ""
    last_seen: str = ""
    is_active: bool = False
    hook_analysis: Optional[HookAnalysis] = None
    emotional_tone: list[str] = field(default_factory=list)
    landing_page: Optional[LandingPage] = None


@dataclass
class SecondaryAd:
    """One ad from the secondary source corpus, in nested form."""

    ad_id: str
    brand: BrandRecord
    creative: SecondaryCreativeAsset = field(default_factory=SecondaryCreativeAsset)
    copy: SecondaryCopy = field(default_factory=SecondaryCopy)
    metadata: SecondaryMetadata = field(default_factory=SecondaryMetadata)
    ad_library_id: Optional[str] = None
    raw_data: Any = field(default=None, repr=False, compare=False)


@dataclass
class BrandAnalytics:
    brand_id: str
    date_from: str
    date_to: str
    total_ads_launched: int = 0
    avg_new_ads_per_week: float = 0.0
    trend: str = "stable"
    video_percentage: float = 0.0
    image_percentage: float = 0.0
    carousel_percentage: float = 0.0
    top_hooks: list[dict] = field(default_factory=list)
    avg_ad_lifespan_days: float = 0.0

    def to_dict(self) -> dict:
        return {
            "brand_id": self.brand_id,
            "date_range": {"from": self.date_from, "to": self.date_to},
            "total_ads_launched": self.total_ads_launched,
            "avg_new_ads_per_week": self.avg_new_ads_per_week,
            "trend": self.trend,
            "creative_distribution": {
                "video_percentage": self.video_percentage,
                "image_percentage": self.image_percentage,
                "carousel_percentage": self.carousel_percentage,
            },
            "top_hooks": self.top_hooks,
            "avg_ad_lifespan_days": self.avg_ad_lifespan_days,
        }


@dataclass
class BrandCorpus:
    """Everything fetched from the secondary source for one brand."""

    brand: BrandRecord
    ads: list[SecondaryAd] = field(default_factory=list)
    analytics: Optional[BrandAnalytics] = None
    duration_ms: int = 0
