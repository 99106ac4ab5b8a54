from adintel.models import AdPlatform, AdSearchRequest, EnrichedCreative
from adintel.sources.base import (
    SourceAdapter,
    as_dict,
    first_media_url,
    generate_id,
    infer_format,
    parse_timestamp,
    text,
)


class MetaAdapter(SourceAdapter):
    """Meta Ad Library (Facebook, Instagram, Messenger, Audience Network)."""

    platform = AdPlatform.META
    engine = "meta_ad_library"

    def build_params(self, request: AdSearchRequest) -> dict:
        return {
            "engine": self.engine,
            "q": request.query,
            "country": request.country or self.default_country,
        }

    def parse_record(self, record: dict) -> EnrichedCreative:
        snapshot = as_dict(record.get("snapshot"))
        body = as_dict(snapshot.get("body"))

        images = snapshot.get("images") if isinstance(snapshot.get("images"), list) else []
        image_url = first_media_url(images, "url", "original_image_url")
        video_url = first_media_url(snapshot.get("videos"), "video_hd_url", "video_sd_url")

        platforms = record.get("publisher_platform")
        if isinstance(platforms, str):
            platforms = [platforms]
        elif isinstance(platforms, list):
            platforms = [p for p in map(text, platforms) if p] or None
        else:
            platforms = None

        return EnrichedCreative(
            platform=self.platform,
            id=str(record.get("id") or record.get("ad_archive_id") or generate_id(self.platform)),
            advertiser=text(record.get("page_name")) or text(snapshot.get("page_name")) or "Unknown",
            headline=text(snapshot.get("title")),
            body=text(body.get("text")),
            image_url=image_url,
            video_url=video_url,
            format=infer_format([i for i in images if i], video_url),
            is_active=bool(record.get("is_active", False)),
            first_seen=parse_timestamp(record.get("start_date")),
            last_seen=parse_timestamp(record.get("end_date")),
            platforms=platforms,
            details_url=text(record.get("link")),
            raw_data=record,
        )
