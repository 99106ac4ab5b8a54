import asyncio

import httpx
import pytest

from adintel.models import AdPlatform, AdSearchRequest
from adintel.sources.aggregator import PrimaryAggregator, build_adapters
from adintel.sources.google import GoogleAdapter
from adintel.sources.linkedin import LinkedInAdapter
from adintel.sources.meta import MetaAdapter


def _gateway(request: httpx.Request) -> httpx.Response:
    engine = request.url.params["engine"]
    if engine == "linkedin_ad_library":
        return httpx.Response(200, json={"ads": [
            {"ad_id": "li-1", "advertiser": {"name": "HubSpot"}, "content": {"headline": "HubSpot CRM"}},
        ]})
    if engine == "meta_ad_library":
        return httpx.Response(200, json={"ads": [
            {"id": "m-1", "page_name": "Completely Different Company", "snapshot": {"title": "Pizza night"}},
        ]})
    return httpx.Response(503, json={"error": "Service temporarily unavailable"})


class CrashingAdapter(MetaAdapter):
    async def fetch(self, request):
        raise RuntimeError("adapter exploded")


def test_fetch_all_isolates_failures(mock_client):
    client = mock_client(_gateway)
    aggregator = PrimaryAggregator(client=client, sources=["linkedin", "meta", "google"], api_key="test_key")

    primary = asyncio.run(aggregator.fetch_all(AdSearchRequest(query="HubSpot")))

    by_platform = {r.platform: r for r in primary.results}
    assert [r.platform for r in primary.results] == [AdPlatform.LINKEDIN, AdPlatform.META, AdPlatform.GOOGLE]
    assert by_platform[AdPlatform.LINKEDIN].success
    assert by_platform[AdPlatform.META].success
    assert not by_platform[AdPlatform.GOOGLE].success
    assert by_platform[AdPlatform.GOOGLE].error == "Service temporarily unavailable"
    assert primary.total_ads == 2


def test_fetch_all_scores_every_creative(mock_client):
    aggregator = PrimaryAggregator(client=mock_client(_gateway), sources=["linkedin", "meta"], api_key="test_key")

    primary = asyncio.run(aggregator.fetch_all(AdSearchRequest(query="HubSpot")))

    scores = {c.id: c.relevance.score for c in primary.creatives}
    assert all(c.relevance is not None for c in primary.creatives)
    assert scores["li-1"] > scores["m-1"]


def test_crashing_adapter_becomes_failed_result(mock_client):
    client = mock_client(_gateway)
    adapters = [
        LinkedInAdapter(api_key="test_key", client=client),
        CrashingAdapter(api_key="test_key", client=client),
    ]
    aggregator = PrimaryAggregator(adapters=adapters, client=client)

    primary = asyncio.run(aggregator.fetch_all(AdSearchRequest(query="HubSpot")))

    crashed = primary.results[1]
    assert crashed.platform == AdPlatform.META
    assert not crashed.success
    assert crashed.error == "adapter exploded"
    assert primary.results[0].success


def test_build_adapters():
    adapters = build_adapters(["google", "linkedin"], api_key="test_key")

    assert [type(a) for a in adapters] == [GoogleAdapter, LinkedInAdapter]
    assert adapters[0].rate_limiter is adapters[1].rate_limiter


def test_build_adapters_rejects_unknown_source():
    with pytest.raises(ValueError, match="Unknown ad source: 'tiktok'"):
        build_adapters(["tiktok"])


def test_start_shares_one_client():
    aggregator = PrimaryAggregator(sources=["linkedin", "meta"], api_key="test_key")

    async def run():
        await aggregator.start()
        clients = {id(a.client) for a in aggregator.adapters}
        shared = aggregator.client
        await aggregator.stop()
        return clients, shared

    clients, shared = asyncio.run(run())

    assert clients == {id(shared)}
    assert aggregator.client is None
    assert all(a.client is None for a in aggregator.adapters)


def test_stop_closes_clients_adapters_opened_themselves():
    aggregator = PrimaryAggregator(sources=["linkedin", "meta"], api_key="test_key")

    async def run():
        # adapters used without aggregator.start() open their own clients
        for adapter in aggregator.adapters:
            await adapter.start()
        opened = [a.client for a in aggregator.adapters]
        await aggregator.stop()
        return opened

    opened = asyncio.run(run())

    assert len({id(c) for c in opened}) == 2
    assert all(c.is_closed for c in opened)
    assert all(a.client is None for a in aggregator.adapters)
