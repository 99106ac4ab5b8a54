import asyncio

import httpx
import pytest

from adintel.sources.foreplay import (
    ForeplayClient,
    SecondarySourceError,
    domain_variants,
    normalize_hook_type,
    normalize_platform,
    parse_analytics,
    transform_ad,
)
from adintel.utils.cost_tracker import CostLedger


def _client(mock_client, handler, **kwargs) -> ForeplayClient:
    kwargs.setdefault("retry_delay", 0)
    kwargs.setdefault("max_retries", 2)
    return ForeplayClient(
        api_key="fp_key",
        client=mock_client(handler),
        ledger=CostLedger(cost_per_credit=0.01),
        base_url="https://foreplay.test",
        **kwargs,
    )


def test_domain_variants():
    assert domain_variants("https://www.HubSpot.com/pricing") == [
        "hubspot.com",
        "www.hubspot.com",
        "https://hubspot.com",
        "https://www.hubspot.com",
    ]
    assert domain_variants("hubspot")[:2] == ["hubspot", "hubspot.com"]


def test_search_brands_tries_variants_until_found(mock_client):
    seen = []

    def handler(request):
        seen.append(request)
        if request.url.params["domain"] == "www.hubspot.com":
            return httpx.Response(200, json={"data": [{"brand_id": "b1", "name": "HubSpot", "page_id": "123"}]})
        return httpx.Response(200, json={"data": []})

    foreplay = _client(mock_client, handler)

    brands = asyncio.run(foreplay.search_brands("hubspot.com"))

    assert [b.id for b in brands] == ["b1"]
    assert brands[0].page_id == "123"
    assert [r.url.params["domain"] for r in seen] == ["hubspot.com", "www.hubspot.com"]
    assert seen[0].url.path == "/api/brand/getBrandsByDomain"
    assert seen[0].headers["Authorization"] == "fp_key"
    assert foreplay.ledger.credits_by_operation()["brand_search"] == 2


def test_search_brands_none_found(mock_client):
    foreplay = _client(mock_client, lambda request: httpx.Response(200, json={"data": []}))

    assert asyncio.run(foreplay.search_brands("unknown.io")) == []
    assert asyncio.run(foreplay.search_brands("")) == []


def test_search_brands_account_error_stops_immediately(mock_client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(401, json={"message": "invalid key"})

    foreplay = _client(mock_client, handler)

    with pytest.raises(SecondarySourceError) as exc_info:
        asyncio.run(foreplay.search_brands("hubspot.com"))

    assert exc_info.value.status_code == 401
    assert "API key is invalid or missing" in exc_info.value.message
    assert len(seen) == 1


def test_search_brands_raises_when_every_variant_fails(mock_client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(422, json={"message": "bad domain"})

    foreplay = _client(mock_client, handler)

    with pytest.raises(SecondarySourceError, match="Brand search failed for all domain variants"):
        asyncio.run(foreplay.search_brands("hubspot.com"))

    assert len(seen) == len(domain_variants("hubspot.com"))


def test_rate_limited_request_is_retried(mock_client):
    responses = [
        httpx.Response(429, headers={"Retry-After": "0"}, json={}),
        httpx.Response(200, json={"data": [{"id": "b1", "name": "HubSpot"}]}),
    ]
    foreplay = _client(mock_client, lambda request: responses.pop(0))

    brands = asyncio.run(foreplay.search_brands("hubspot.com"))

    assert brands[0].id == "b1"
    assert responses == []


def test_server_errors_are_retried_then_raised(mock_client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(500, text="upstream down")

    foreplay = _client(mock_client, handler, max_retries=2)

    with pytest.raises(SecondarySourceError) as exc_info:
        asyncio.run(foreplay.get_ad_details("ad-1"))

    assert exc_info.value.status_code == 500
    assert len(seen) == 3


def test_server_error_recovers(mock_client):
    responses = [
        httpx.Response(502, text="bad gateway"),
        httpx.Response(200, json={"data": {"ad_id": "ad-1", "headline": "Hello"}}),
    ]
    foreplay = _client(mock_client, lambda request: responses.pop(0))

    ad = asyncio.run(foreplay.get_ad_details("ad-1"))

    assert ad.ad_id == "ad-1"
    assert ad.copy.headline == "Hello"
    assert foreplay.ledger.credits_by_operation()["ad_details"] == 1


def test_client_errors_are_not_retried(mock_client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(404, json={"message": "not found"})

    foreplay = _client(mock_client, handler)

    with pytest.raises(SecondarySourceError) as exc_info:
        asyncio.run(foreplay.get_ad_details("missing"))

    assert exc_info.value.status_code == 404
    assert len(seen) == 1


def test_timeout_is_not_retried(mock_client):
    seen = []

    def handler(request):
        seen.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    foreplay = _client(mock_client, handler, timeout=10)

    with pytest.raises(SecondarySourceError, match="timed out after 10 seconds"):
        asyncio.run(foreplay.get_ad_details("ad-1"))

    assert len(seen) == 1


def test_search_ads_retries_without_dates_when_empty(mock_client):
    seen = []

    def handler(request):
        seen.append(request)
        if "start_date" in request.url.params:
            return httpx.Response(200, json={"data": [], "metadata": {"count": 0}})
        return httpx.Response(200, json={"data": [{"ad_id": "a1"}, {"ad_id": "a2"}]})

    foreplay = _client(mock_client, handler)

    ads = asyncio.run(foreplay.search_ads("b1", "2024-01-01", "2024-03-31", limit=25))

    assert [a.ad_id for a in ads] == ["a1", "a2"]
    assert len(seen) == 2
    assert seen[0].url.params["end_date"] == "2024-03-31"
    assert seen[0].url.params.get_list("brand_ids") == ["b1"]
    assert seen[0].url.params["limit"] == "25"
    assert "start_date" not in seen[1].url.params
    # zero for the empty page, one per ad for the retry
    assert foreplay.ledger.credits_by_operation()["ad_search"] == 2


def test_search_ads_ignores_single_date_bound(mock_client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"data": []})

    foreplay = _client(mock_client, handler)

    asyncio.run(foreplay.search_ads("b1", date_from="2024-01-01"))

    assert len(seen) == 1
    assert "start_date" not in seen[0].url.params


def test_reported_credits_take_precedence(mock_client):
    payload = {"data": [{"ad_id": "a1"}], "metadata": {"credits_used": 5}}
    foreplay = _client(mock_client, lambda request: httpx.Response(200, json=payload))

    asyncio.run(foreplay.search_ads("b1"))

    assert foreplay.ledger.total_credits == 5
    assert foreplay.ledger.total_cost == pytest.approx(0.05)


def test_get_brand_analytics(mock_client):
    payload = {
        "data": {
            "creative_velocity": {"total_ads_launched": 42, "avg_new_ads_per_week": 3.5, "trend": "increasing"},
            "creative_distribution": {"video_percentage": 60, "image_percentage": 30, "carousel_percentage": 10},
            "top_hooks": [{"text": "Stop guessing", "type": "problem"}, "junk"],
            "avg_ad_lifespan_days": 21,
        }
    }
    foreplay = _client(mock_client, lambda request: httpx.Response(200, json=payload))

    analytics = asyncio.run(foreplay.get_brand_analytics("b1", "2024-01-01", "2024-03-31"))

    assert analytics.brand_id == "b1"
    assert analytics.total_ads_launched == 42
    assert analytics.trend == "increasing"
    assert analytics.video_percentage == 60.0
    assert analytics.top_hooks == [{"text": "Stop guessing", "type": "problem"}]
    assert analytics.to_dict()["date_range"] == {"from": "2024-01-01", "to": "2024-03-31"}


def test_parse_analytics_without_velocity():
    assert parse_analytics("b1", {"creative_distribution": {}}, "2024-01-01", "2024-03-31") is None


def test_transform_ad_handles_alternate_keys():
    raw = {
        "id": 77,
        "brand_id": "b1",
        "brand_name": "HubSpot",
        "title": "Grow better",
        "primary_text": "All-in-one CRM",
        "call_to_action": "Sign up",
        "source": "Instagram",
        "video_transcript": "Tired of spreadsheets?",
        "thumbnail": "https://cdn.test/thumb.jpg",
        "video_url": "https://cdn.test/ad.mp4",
        "hook": {"text": "Tired of spreadsheets?", "type": "Problem-Agitate"},
        "emotions": ["frustration", "relief"],
        "landing_page_url": "https://hubspot.com/crm",
        "status": "active",
        "ad_library_id": "555",
    }

    ad = transform_ad(raw)

    assert ad.ad_id == "77"
    assert ad.brand.name == "HubSpot"
    assert ad.copy.headline == "Grow better"
    assert ad.copy.body == "All-in-one CRM"
    assert ad.copy.cta == "Sign up"
    assert ad.creative.type == "video"
    assert ad.creative.url == "https://cdn.test/ad.mp4"
    assert ad.creative.thumbnail_url == "https://cdn.test/thumb.jpg"
    assert ad.metadata.platform == "instagram"
    assert ad.metadata.is_active
    assert ad.metadata.hook_analysis.hook_type == "problem"
    assert ad.metadata.hook_analysis.hook_duration_seconds == 3.0
    assert ad.metadata.emotional_tone == ["frustration", "relief"]
    assert ad.metadata.landing_page.url == "https://hubspot.com/crm"
    assert ad.ad_library_id == "555"


def test_normalizers():
    assert normalize_hook_type("Social Proof") == "social_proof"
    assert normalize_hook_type("Stat shock") == "statistic"
    assert normalize_hook_type(None) == "benefit"
    assert normalize_platform("TikTok Ads") == "tiktok"
    assert normalize_platform("li") == "linkedin"
    assert normalize_platform("") == "facebook"


def test_transform_ad_tolerates_malformed_values():
    raw = {
        "ad_id": "s9",
        "name": 2024,
        "headline": 42,
        "description": {"text": "nested"},
        "platform": ["facebook"],
        "duration": "long",
        "hook": {"text": "Wait for it", "type": 7, "duration": "3s"},
        "emotional_tone": "urgent",
    }

    ad = transform_ad(raw)

    assert ad.copy.headline == "42"
    assert ad.copy.body == ""
    assert ad.brand.name == "2024"
    assert ad.metadata.platform == "facebook"
    assert ad.creative.duration_seconds is None
    assert ad.metadata.hook_analysis.hook_type == "benefit"
    assert ad.metadata.hook_analysis.hook_duration_seconds == 3.0
    assert ad.metadata.emotional_tone == ["urgent"]


def test_parse_analytics_tolerates_malformed_numbers():
    payload = {
        "creative_velocity": {"total_ads_launched": "n/a", "avg_new_ads_per_week": "4.5", "trend": None},
        "creative_distribution": {"video_percentage": "lots", "image_percentage": 40},
        "avg_ad_lifespan_days": [],
    }

    analytics = parse_analytics("b1", payload, "2024-01-01", "2024-03-31")

    assert analytics.total_ads_launched == 0
    assert analytics.avg_new_ads_per_week == 4.5
    assert analytics.trend == "stable"
    assert analytics.video_percentage == 0
    assert analytics.image_percentage == 40
    assert analytics.avg_ad_lifespan_days == 0
