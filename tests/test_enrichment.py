import asyncio
from datetime import date, timedelta

import pytest

from adintel.models import AdFormat, AdPlatform, BrandCorpus, BrandRecord, CreativeSource, Enrichment, SecondaryAd
from adintel.models.enrichment import HookAnalysis, LandingPage, SecondaryCopy, SecondaryCreativeAsset, SecondaryMetadata
from adintel.sources.enrichment import (
    EnrichmentMerger,
    default_date_range,
    details_url_for,
    platforms_match,
)
from adintel.sources.foreplay import ForeplayClient, SecondarySourceError

BRAND = BrandRecord(id="b1", name="HubSpot", domain="hubspot.com")

HEADLINE = "Stop guessing your ROI"
BODY = "HubSpot attribution shows which campaigns drive revenue"


def _secondary_ad(
    ad_id="s1",
    headline=HEADLINE,
    body=BODY,
    platform="facebook",
    kind="video",
    brand=BRAND,
    ad_library_id=None,
    landing_url=None,
) -> SecondaryAd:
    return SecondaryAd(
        ad_id=ad_id,
        brand=brand,
        creative=SecondaryCreativeAsset(
            type=kind,
            url="https://cdn.test/ad.mp4" if kind == "video" else "https://cdn.test/ad.jpg",
            thumbnail_url="https://cdn.test/thumb.jpg",
            video_transcript="Stop guessing. Start knowing." if kind == "video" else "",
        ),
        copy=SecondaryCopy(headline=headline, body=body),
        metadata=SecondaryMetadata(
            platform=platform,
            first_seen="2024-02-01",
            is_active=True,
            hook_analysis=HookAnalysis(hook_text="Stop guessing", hook_type="problem", hook_duration_seconds=2.5),
            emotional_tone=["urgency"],
            landing_page=LandingPage(url=landing_url) if landing_url else None,
        ),
        ad_library_id=ad_library_id,
    )


def _merger() -> EnrichmentMerger:
    return EnrichmentMerger(ForeplayClient(api_key="fp_key"))


def test_platforms_match():
    assert platforms_match("meta", "facebook")
    assert platforms_match("instagram", "meta")
    assert platforms_match("Face-book", "facebook")
    assert not platforms_match("linkedin", "facebook")


def test_default_date_range():
    today = date.today()
    assert default_date_range(30) == ((today - timedelta(days=30)).isoformat(), today.isoformat())


def test_find_match_full_confidence(make_creative):
    creative = make_creative(headline=HEADLINE, body=BODY, format=AdFormat.VIDEO)

    match, confidence = _merger().find_match(creative, [_secondary_ad()])

    assert match.ad_id == "s1"
    assert confidence == pytest.approx(1.0)


def test_find_match_copy_only(make_creative):
    creative = make_creative(headline=HEADLINE, body=BODY, format=AdFormat.VIDEO)

    match, confidence = _merger().find_match(creative, [_secondary_ad(platform="linkedin", kind="image")])

    assert match is not None
    assert confidence == pytest.approx(0.85)


def test_find_match_below_threshold(make_creative):
    # headline + platform + format only reach 0.65
    creative = make_creative(headline=HEADLINE, format=AdFormat.VIDEO)

    match, confidence = _merger().find_match(creative, [_secondary_ad(body="")])

    assert match is None
    assert confidence == 0.0


def test_find_match_first_best_wins(make_creative):
    creative = make_creative(headline=HEADLINE, body=BODY, format=AdFormat.VIDEO)

    match, _ = _merger().find_match(creative, [_secondary_ad(ad_id="first"), _secondary_ad(ad_id="second")])

    assert match.ad_id == "first"


def test_enrich_respects_cap_and_skips_ineligible(make_creative):
    corpus = BrandCorpus(brand=BRAND, ads=[_secondary_ad()])
    already = Enrichment(secondary_ad_id="old", match_confidence=0.9)
    creatives = [
        make_creative(id="secondary", headline=HEADLINE, body=BODY, source=CreativeSource.SECONDARY),
        make_creative(id="already", headline=HEADLINE, body=BODY, enrichment=already),
        make_creative(id="p1", headline=HEADLINE, body=BODY, format=AdFormat.VIDEO),
        make_creative(id="p2", headline="Totally different", body="Nothing alike"),
        make_creative(id="p3", headline=HEADLINE, body=BODY, format=AdFormat.VIDEO),
    ]

    result, count = _merger().enrich(creatives, corpus, max_enrichments=2)

    by_id = {c.id: c for c in result}
    assert [c.id for c in result] == ["secondary", "already", "p1", "p2", "p3"]
    assert count == 1
    assert by_id["p1"].enrichment.secondary_ad_id == "s1"
    assert by_id["p1"].enrichment.transcript == "Stop guessing. Start knowing."
    assert by_id["p1"].enrichment.hook.duration == 2.5
    assert by_id["p1"].enrichment.emotional_tone == ("urgency",)
    assert by_id["p2"].enrichment is None
    # p3 is past the cap
    assert by_id["p3"].enrichment is None
    assert by_id["already"].enrichment is already
    assert by_id["secondary"].enrichment is None
    # inputs are not mutated
    assert creatives[2].enrichment is None


def test_enrich_without_corpus(make_creative):
    creatives = [make_creative()]

    result, count = _merger().enrich(creatives, None)

    assert result == creatives
    assert count == 0


def test_to_creative_video():
    creative = _merger().to_creative(_secondary_ad(platform="instagram", ad_library_id="555"))

    assert creative.source == CreativeSource.SECONDARY
    assert creative.platform == AdPlatform.META
    assert creative.format == AdFormat.VIDEO
    assert creative.video_url == "https://cdn.test/ad.mp4"
    assert creative.image_url == "https://cdn.test/thumb.jpg"
    assert creative.platforms == ["instagram"]
    assert creative.advertiser == "HubSpot"
    assert creative.is_active
    assert creative.first_seen.year == 2024
    assert creative.enrichment.match_confidence == 1.0
    assert creative.details_url == "https://www.facebook.com/ads/library/?id=555"


def test_to_creative_image_on_linkedin():
    creative = _merger().to_creative(
        _secondary_ad(platform="linkedin", kind="image", landing_url="https://hubspot.com/crm")
    )

    assert creative.platform == AdPlatform.LINKEDIN
    assert creative.image_url == "https://cdn.test/ad.jpg"
    assert creative.video_url is None
    assert creative.details_url == "https://hubspot.com/crm"


def test_details_url_for():
    by_page = _secondary_ad(brand=BrandRecord(id="b1", name="HubSpot", page_id="1234"))
    by_name = _secondary_ad(brand=BrandRecord(id="b1", name="Hub Spot", page_id="not-a-number"))
    tiktok = _secondary_ad(platform="tiktok")
    nameless = _secondary_ad(brand=BrandRecord(id="b1", name=""), landing_url="https://hubspot.com")

    assert "view_all_page_id=1234" in details_url_for(by_page)
    assert "q=Hub%20Spot" in details_url_for(by_name)
    assert details_url_for(tiktok).startswith("https://ads.tiktok.com/business/creativecenter/")
    assert "keyword=HubSpot" in details_url_for(tiktok)
    assert details_url_for(nameless) == "https://hubspot.com"


class FakeForeplay(ForeplayClient):
    def __init__(self, brands=None, ads=None, analytics_error=None):
        super().__init__(api_key="fp_key")
        self.brands = brands or []
        self.ads = ads or []
        self.analytics_error = analytics_error
        self.calls = []

    async def search_brands(self, domain):
        self.calls.append(("search_brands", domain))
        return self.brands

    async def get_brand_analytics(self, brand_id, date_from, date_to):
        self.calls.append(("get_brand_analytics", brand_id, date_from, date_to))
        if self.analytics_error:
            raise self.analytics_error
        return None

    async def search_ads(self, brand_id, date_from=None, date_to=None, limit=50):
        self.calls.append(("search_ads", brand_id, date_from, date_to, limit))
        return self.ads


def test_fetch_corpus_uses_first_brand():
    client = FakeForeplay(brands=[BRAND, BrandRecord(id="b2", name="Other")], ads=[_secondary_ad()])
    merger = EnrichmentMerger(client)

    corpus = asyncio.run(merger.fetch_corpus("hubspot.com", "2024-01-01", "2024-03-31", limit=120))

    assert corpus.brand.id == "b1"
    assert len(corpus.ads) == 1
    assert client.calls[-1] == ("search_ads", "b1", "2024-01-01", "2024-03-31", 120)


def test_fetch_corpus_brand_not_found():
    client = FakeForeplay()

    assert asyncio.run(EnrichmentMerger(client).fetch_corpus("unknown.io")) is None
    assert [c[0] for c in client.calls] == ["search_brands"]


def test_fetch_corpus_survives_analytics_failure():
    client = FakeForeplay(
        brands=[BRAND],
        ads=[_secondary_ad()],
        analytics_error=SecondarySourceError("Foreplay API error: 403", status_code=403),
    )

    corpus = asyncio.run(EnrichmentMerger(client, lookback_days=30).fetch_corpus("hubspot.com"))

    assert corpus.analytics is None
    assert len(corpus.ads) == 1
    expected_from, expected_to = default_date_range(30)
    assert ("get_brand_analytics", "b1", expected_from, expected_to) in client.calls


def test_fetch_corpus_can_skip_analytics():
    client = FakeForeplay(brands=[BRAND])

    asyncio.run(EnrichmentMerger(client).fetch_corpus("hubspot.com", skip_analytics=True))

    assert "get_brand_analytics" not in [c[0] for c in client.calls]
