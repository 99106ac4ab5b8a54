from adintel.config import GOOGLE_AD_FORMAT
from adintel.models import AdPlatform, AdSearchRequest, EnrichedCreative
from adintel.sources.base import (
    SourceAdapter,
    SourceError,
    as_dict,
    generate_id,
    infer_format,
    parse_timestamp,
    text,
)
from adintel.utils.name_matcher import guess_domain


class GoogleAdapter(SourceAdapter):
    """
    Google Ads Transparency Center.

    Searches by advertiser domain, not by name. Without an explicit domain
    one is guessed from the query ("Acme Corp" -> "acmecorp.com").
    """

    platform = AdPlatform.GOOGLE
    engine = "google_ads_transparency_center"
    results_key = "ad_creatives"

    def __init__(self, *args, ad_format: str = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.ad_format = GOOGLE_AD_FORMAT if ad_format is None else ad_format

    def build_params(self, request: AdSearchRequest) -> dict:
        domain = request.domain or guess_domain(request.query)
        if not domain:
            raise SourceError(self.platform, "Domain is required for Google Ads Transparency")

        params = {"engine": self.engine, "domain": domain}

        # Default to image ads; text-only results are mostly search sponsor links
        ad_format = request.google_ad_format or self.ad_format
        if ad_format:
            params["ad_format"] = ad_format
        if request.google_platform:
            params["platform"] = request.google_platform

        return params

    def parse_record(self, record: dict) -> EnrichedCreative:
        advertiser = as_dict(record.get("advertiser"))
        image_url = text(as_dict(record.get("image")).get("link"))

        video_url = None
        if str(record.get("format") or "").lower() == "video":
            video_url = text(as_dict(record.get("video")).get("link"))

        return EnrichedCreative(
            platform=self.platform,
            id=str(record.get("creative_id") or record.get("id") or generate_id(self.platform)),
            advertiser=text(advertiser.get("name")) or "Unknown",
            headline=text(record.get("headline")),
            body=text(record.get("description")),
            image_url=image_url,
            video_url=video_url,
            format=infer_format([image_url] if image_url else [], video_url),
            # Presence in the transparency center means it ran
            is_active=True,
            first_seen=parse_timestamp(record.get("first_shown_datetime")),
            last_seen=parse_timestamp(record.get("last_shown_datetime")),
            details_url=text(record.get("details_link")),
            raw_data=record,
        )
