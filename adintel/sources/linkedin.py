from adintel.models import AdPlatform, AdSearchRequest, EnrichedCreative
from adintel.sources.base import SourceAdapter, as_dict, generate_id, infer_format, parse_timestamp, text


class LinkedInAdapter(SourceAdapter):
    """LinkedIn Ad Library."""

    platform = AdPlatform.LINKEDIN
    engine = "linkedin_ad_library"

    def build_params(self, request: AdSearchRequest) -> dict:
        return {"engine": self.engine, "q": request.query}

    def parse_record(self, record: dict) -> EnrichedCreative:
        advertiser = as_dict(record.get("advertiser"))
        content = as_dict(record.get("content"))
        image_url = text(content.get("image"))

        return EnrichedCreative(
            platform=self.platform,
            id=str(record.get("ad_id") or record.get("id") or generate_id(self.platform)),
            advertiser=text(advertiser.get("name")) or "Unknown",
            headline=text(content.get("headline")),
            body=text(content.get("body")),
            image_url=image_url,
            format=infer_format([image_url] if image_url else [], None),
            # LinkedIn doesn't report active status
            is_active=True,
            first_seen=parse_timestamp(record.get("first_shown_datetime")),
            last_seen=parse_timestamp(record.get("last_shown_datetime")),
            details_url=text(record.get("link")),
            raw_data=record,
        )
