"""Unified creative model shared by every ad source."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from adintel.models.enrichment import Enrichment
from adintel.models.relevance import RelevanceAssessment


class AdPlatform(str, Enum):
    LINKEDIN = "linkedin"
    META = "meta"
    GOOGLE = "google"


class AdFormat(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    CAROUSEL = "carousel"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AdFormat":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


class CreativeSource(str, Enum):
    PRIMARY = "primary"  # discovery sources (ad libraries)
    SECONDARY = "secondary"  # enrichment source


@dataclass
class Creative:
    """A single advertisement observed on one source.

    `id` is only unique together with `platform`; the same real ad can show
    up under different ids on different sources.
    """

    platform: AdPlatform
    id: str
    advertiser: str
    headline: Optional[str] = None
    body: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    format: AdFormat = AdFormat.UNKNOWN
    is_active: bool = False
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    platforms: Optional[list[str]] = None
    details_url: Optional[str] = None
    raw_data: Any = field(default=None, repr=False, compare=False)

    @property
    def has_media(self) -> bool:
        return bool(self.image_url or self.video_url)

    @property
    def content(self) -> str:
        return f"{self.headline or ''} {self.body or ''}"

    def to_dict(self, include_raw: bool = False) -> dict:
        data = {
            "platform": self.platform.value,
            "id": self.id,
            "advertiser": self.advertiser,
            "headline": self.headline,
            "body": self.body,
            "image_url": self.image_url,
            "video_url": self.video_url,
            "format": self.format.value,
            "is_active": self.is_active,
            "first_seen": self.first_seen.isoformat() if self.first_seen else None,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
            "platforms": self.platforms,
            "details_url": self.details_url,
        }
        if include_raw:
            data["raw_data"] = self.raw_data
        return data


@dataclass
class EnrichedCreative(Creative):
    """Creative plus origin, relevance assessment and enrichment metadata."""

    source: CreativeSource = CreativeSource.PRIMARY
    relevance: Optional[RelevanceAssessment] = None
    enrichment: Optional[Enrichment] = None

    @property
    def is_enriched(self) -> bool:
        return self.enrichment is not None

    def to_dict(self, include_raw: bool = False) -> dict:
        data = super().to_dict(include_raw=include_raw)
        data["source"] = self.source.value
        data["relevance"] = self.relevance.to_dict() if self.relevance else None
        data["enrichment"] = self.enrichment.to_dict() if self.enrichment else None
        return data
