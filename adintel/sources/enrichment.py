"""Merge secondary-source intelligence into primary creatives.

Primary sources tell us what a brand is running; the secondary source tells
us why it might work (transcripts, hooks, emotional tone, landing pages).
Ads are matched on copy similarity since the two sources share no ids.
"""

import time
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional
from urllib.parse import quote

from adintel.config import SECONDARY_LOOKBACK_DAYS
from adintel.models import (
    AdFormat,
    AdPlatform,
    BrandCorpus,
    CreativeSource,
    Enrichment,
    EnrichedCreative,
    Hook,
    SecondaryAd,
)
from adintel.sources.base import parse_timestamp
from adintel.sources.foreplay import ForeplayClient, SecondarySourceError
from adintel.utils.name_matcher import NameMatcher
from adintel.utils.logger import get_logger

logger = get_logger("enrichment")

AD_MATCH_THRESHOLD = 0.7
CORPUS_LIMIT = 100

# Match confidence weights
HEADLINE_WEIGHT = 0.5
BODY_WEIGHT = 0.35
PLATFORM_BONUS = 0.1
FORMAT_BONUS = 0.05

META_PLATFORMS = ("facebook", "instagram")

# Secondary platform -> closest primary platform
PLATFORM_MAP = {
    "facebook": AdPlatform.META,
    "instagram": AdPlatform.META,
    "tiktok": AdPlatform.META,
    "linkedin": AdPlatform.LINKEDIN,
}

META_LIBRARY_URL = "https://www.facebook.com/ads/library/"
TIKTOK_CREATIVE_CENTER_URL = "https://ads.tiktok.com/business/creativecenter/inspiration/topads/pc/en"


def platforms_match(primary_platform: str, secondary_platform: str) -> bool:
    """Same platform, treating "meta" as facebook/instagram."""
    a = "".join(c for c in str(primary_platform).lower() if c.isalpha())
    b = "".join(c for c in str(secondary_platform).lower() if c.isalpha())

    if a == b:
        return True
    if a == "meta" and b in META_PLATFORMS:
        return True
    if a in META_PLATFORMS and b == "meta":
        return True
    return False


def default_date_range(lookback_days: int = None) -> tuple[str, str]:
    days = SECONDARY_LOOKBACK_DAYS if lookback_days is None else lookback_days
    today = date.today()
    return (today - timedelta(days=days)).isoformat(), today.isoformat()


def build_enrichment(ad: SecondaryAd, confidence: float) -> Enrichment:
    hook_analysis = ad.metadata.hook_analysis
    landing_page = ad.metadata.landing_page

    return Enrichment(
        transcript=ad.creative.video_transcript or None,
        hook=Hook(
            text=hook_analysis.hook_text,
            type=hook_analysis.hook_type,
            duration=hook_analysis.hook_duration_seconds,
        ) if hook_analysis else None,
        emotional_tone=tuple(ad.metadata.emotional_tone),
        landing_page_url=landing_page.url if landing_page else None,
        landing_page_screenshot=landing_page.screenshot_url if landing_page else None,
        secondary_ad_id=ad.ad_id,
        match_confidence=confidence,
    )


def details_url_for(ad: SecondaryAd) -> Optional[str]:
    """Public ad library link for a secondary ad, falling back to its landing page."""
    platform = ad.metadata.platform
    brand = ad.brand
    landing_url = ad.metadata.landing_page.url if ad.metadata.landing_page else None
    url = None

    if platform in META_PLATFORMS:
        if ad.ad_library_id:
            url = f"{META_LIBRARY_URL}?id={ad.ad_library_id}"
        elif brand.page_id and str(brand.page_id).isdigit():
            url = (
                f"{META_LIBRARY_URL}?active_status=all&ad_type=all&country=ALL"
                f"&view_all_page_id={brand.page_id}&search_type=page&media_type=all"
            )
        elif brand.name:
            url = (
                f"{META_LIBRARY_URL}?active_status=all&ad_type=all&country=ALL"
                f"&q={quote(brand.name)}&search_type=keyword_unordered&media_type=all"
            )
    elif platform == "tiktok" and brand.name:
        url = f"{TIKTOK_CREATIVE_CENTER_URL}?keyword={quote(brand.name)}&period=180&sort_by=like"

    return url or landing_url


class EnrichmentMerger:
    """Looks up a brand's secondary corpus and merges it with primary creatives."""

    def __init__(
        self,
        client: ForeplayClient,
        matcher: NameMatcher = None,
        match_threshold: float = AD_MATCH_THRESHOLD,
        lookback_days: int = None,
    ):
        self.client = client
        self.matcher = matcher or NameMatcher()
        self.match_threshold = match_threshold
        self.lookback_days = lookback_days

    async def fetch_corpus(
        self,
        domain: str,
        date_from: str = None,
        date_to: str = None,
        limit: int = CORPUS_LIMIT,
        skip_analytics: bool = False,
    ) -> Optional[BrandCorpus]:
        """
        Brand lookup, then analytics, then the brand's ads.

        Returns None when the secondary source doesn't know the brand.
        Lookup and ad search failures propagate as SecondarySourceError.
        """
        started = time.monotonic()

        brands = await self.client.search_brands(domain)
        if not brands:
            logger.info("secondary_brand_not_found", domain=domain)
            return None

        brand = brands[0]
        default_from, default_to = default_date_range(self.lookback_days)
        date_from = date_from or default_from
        date_to = date_to or default_to

        analytics = None
        if not skip_analytics:
            try:
                analytics = await self.client.get_brand_analytics(brand.id, date_from, date_to)
            except SecondarySourceError as e:
                logger.warning("brand_analytics_failed", brand_id=brand.id, error=e.message)

        ads = await self.client.search_ads(brand.id, date_from, date_to, limit=limit)

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "secondary_corpus_fetched",
            brand_id=brand.id,
            brand=brand.name,
            ads=len(ads),
            has_analytics=analytics is not None,
            duration_ms=duration_ms,
        )
        return BrandCorpus(brand=brand, ads=ads, analytics=analytics, duration_ms=duration_ms)

    def find_match(self, creative: EnrichedCreative, ads: list[SecondaryAd]) -> tuple[Optional[SecondaryAd], float]:
        """Best secondary ad for a creative, if its confidence reaches the threshold."""
        best_match = None
        best_confidence = 0.0

        has_headline = bool(self.matcher.normalize(creative.headline or ""))
        has_body = bool(self.matcher.normalize(creative.body or ""))

        for ad in ads:
            headline_similarity = 0.0
            if has_headline and self.matcher.normalize(ad.copy.headline):
                headline_similarity = self.matcher.similarity(creative.headline, ad.copy.headline)

            body_similarity = 0.0
            if has_body and self.matcher.normalize(ad.copy.body):
                body_similarity = self.matcher.similarity(creative.body, ad.copy.body)

            confidence = headline_similarity * HEADLINE_WEIGHT + body_similarity * BODY_WEIGHT
            if platforms_match(creative.platform.value, ad.metadata.platform or "unknown"):
                confidence += PLATFORM_BONUS
            if creative.format.value == (ad.creative.type or "unknown"):
                confidence += FORMAT_BONUS

            if confidence > best_confidence and confidence >= self.match_threshold:
                best_match = ad
                best_confidence = confidence

        return best_match, best_confidence

    def enrich(
        self,
        creatives: list[EnrichedCreative],
        corpus: Optional[BrandCorpus],
        max_enrichments: int = None,
    ) -> tuple[list[EnrichedCreative], int]:
        """
        Attach enrichment to primary creatives that match the corpus.

        Only the first `max_enrichments` primary creatives are considered;
        the rest, unmatched creatives and secondary-sourced creatives pass
        through unchanged. Returns the creatives and the number enriched.
        """
        if corpus is None or not corpus.ads:
            return list(creatives), 0

        result = []
        attempted = 0
        enriched_count = 0

        for creative in creatives:
            eligible = (
                creative.source == CreativeSource.PRIMARY
                and creative.enrichment is None
                and (max_enrichments is None or attempted < max_enrichments)
            )
            if not eligible:
                result.append(creative)
                continue

            attempted += 1
            match, confidence = self.find_match(creative, corpus.ads)
            if match is None:
                result.append(creative)
                continue

            result.append(replace(creative, enrichment=build_enrichment(match, confidence)))
            enriched_count += 1

        logger.info(
            "creatives_enriched",
            enriched=enriched_count,
            attempted=attempted,
            total=len(creatives),
        )
        return result, enriched_count

    def to_creative(self, ad: SecondaryAd) -> EnrichedCreative:
        """A secondary ad as a creative in its own right (match confidence 1.0)."""
        asset = ad.creative
        is_video = asset.type == "video"

        if is_video:
            image_url = asset.thumbnail_url or asset.url
        else:
            image_url = asset.url or asset.thumbnail_url

        return EnrichedCreative(
            platform=PLATFORM_MAP.get(ad.metadata.platform, AdPlatform.META),
            id=ad.ad_id,
            advertiser=ad.brand.name or ad.copy.sponsor_name or "Unknown",
            headline=ad.copy.headline or None,
            body=ad.copy.body or None,
            image_url=image_url or None,
            video_url=(asset.url or None) if is_video else None,
            format=AdFormat.parse(asset.type),
            is_active=ad.metadata.is_active,
            first_seen=parse_timestamp(ad.metadata.first_seen),
            last_seen=parse_timestamp(ad.metadata.last_seen),
            platforms=[ad.metadata.platform],
            details_url=details_url_for(ad),
            raw_data=ad.raw_data,
            source=CreativeSource.SECONDARY,
            enrichment=build_enrichment(ad, 1.0),
        )

    def ingest(self, corpus: Optional[BrandCorpus]) -> list[EnrichedCreative]:
        if corpus is None:
            return []
        return [self.to_creative(ad) for ad in corpus.ads]
