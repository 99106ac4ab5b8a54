"""Client for the Foreplay creative intelligence API (secondary source).

Provides brand lookup by domain, a brand's ad corpus with transcripts, hooks
and landing pages, per-ad details and brand analytics. Every call is billed
in credits and recorded in the session's CostLedger.
"""

import asyncio
import math
from typing import Any, Optional

import httpx

from adintel.config import (
    FOREPLAY_API_KEY,
    FOREPLAY_BASE_URL,
    REQUEST_TIMEOUT,
    SECONDARY_MAX_RETRIES,
    SECONDARY_RETRY_DELAY,
)
from adintel.models import BrandAnalytics, BrandRecord, SecondaryAd
from adintel.models.enrichment import (
    HookAnalysis,
    LandingPage,
    SecondaryCopy,
    SecondaryCreativeAsset,
    SecondaryMetadata,
)
from adintel.sources.base import as_dict, text
from adintel.utils.cost_tracker import CostLedger, CostOperation
from adintel.utils.logger import get_logger

logger = get_logger("foreplay")

DEFAULT_AD_LIMIT = 50
BRAND_SEARCH_LIMIT = 10
DEFAULT_HOOK_DURATION = 3.0

ERROR_CONTEXT = {
    400: "Bad Request - malformed parameters or invalid request format",
    401: "Unauthorized - API key is invalid or missing",
    402: "Payment Required - insufficient credits on your Foreplay plan",
    403: "Forbidden - you do not have permission for this feature",
    404: "Not Found - the requested resource (brand/ad) does not exist",
    422: "Unprocessable Entity - parameter validation failed (check domain format, date format, or required fields)",
    429: "Rate Limited - too many requests, please slow down",
    500: "Internal Server Error - Foreplay API is experiencing issues",
}

# Retrying another domain variant won't fix these
ACCOUNT_ERRORS = (401, 402, 403)


class SecondarySourceError(Exception):
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_context(status: int) -> str:
    return ERROR_CONTEXT.get(status, f"HTTP {status} - unexpected error")


class ForeplayClient:
    """Foreplay API client. One instance per aggregation session (it owns the session's ledger)."""

    def __init__(
        self,
        api_key: str = None,
        client: httpx.AsyncClient = None,
        ledger: CostLedger = None,
        base_url: str = None,
        timeout: float = None,
        max_retries: int = None,
        retry_delay: float = None,
    ):
        self.api_key = FOREPLAY_API_KEY if api_key is None else api_key
        self.base_url = (base_url or FOREPLAY_BASE_URL).rstrip("/")
        self.timeout = REQUEST_TIMEOUT if timeout is None else timeout
        self.max_retries = SECONDARY_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = SECONDARY_RETRY_DELAY if retry_delay is None else retry_delay
        self.ledger = ledger or CostLedger()
        self.client = client
        self._owns_client = client is None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def start(self):
        """Initialize the HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True

    async def stop(self):
        """Close the HTTP client if we created it."""
        if self.client and self._owns_client:
            await self.client.aclose()
            self.client = None

    async def search_brands(self, domain: str) -> list[BrandRecord]:
        """
        Find brands registered for a domain.

        Tries several spellings of the domain and returns the brands from the
        first one that yields any. Raises SecondarySourceError only if every
        variant failed outright.
        """
        if not domain:
            return []

        variants = domain_variants(domain)
        last_error = None
        any_succeeded = False

        for variant in variants:
            try:
                data = await self._get(
                    "/api/brand/getBrandsByDomain",
                    params={"domain": variant, "limit": BRAND_SEARCH_LIMIT, "order": "most_ranked"},
                )
            except SecondarySourceError as e:
                logger.warning("brand_search_variant_failed", domain=variant, error=e.message)
                if e.status_code in ACCOUNT_ERRORS:
                    raise
                last_error = e
                continue

            any_succeeded = True
            self._record_credits(CostOperation.BRAND_SEARCH, data, estimate=1)

            brands = [parse_brand(b) for b in _records(data, allow_single=True)]
            brands = [b for b in brands if b is not None]
            if brands:
                logger.info(
                    "brands_found",
                    domain=variant,
                    count=len(brands),
                    brands=[b.name for b in brands[:3]],
                )
                return brands

        if not any_succeeded and last_error is not None:
            raise SecondarySourceError(
                f"Brand search failed for all domain variants: {last_error.message}",
                last_error.status_code,
            )

        logger.info("no_brands_found", domain=domain, variants_tried=len(variants))
        return []

    async def search_ads(
        self,
        brand_id: str,
        date_from: str = None,
        date_to: str = None,
        limit: int = DEFAULT_AD_LIMIT,
    ) -> list[SecondaryAd]:
        """
        A brand's ads, newest first.

        Date filters apply only when both bounds are given; if the filtered
        query comes back empty it is repeated without them.
        """
        if not brand_id:
            return []

        params = {"brand_ids": [brand_id], "limit": limit, "order": "newest"}
        has_dates = bool(date_from and date_to)
        if has_dates:
            params["start_date"] = date_from
            params["end_date"] = date_to

        data = await self._get("/api/brand/getAdsByBrandId", params=params)
        records = _records(data)
        self._record_credits(CostOperation.AD_SEARCH, data, estimate=len(records))

        if has_dates and _result_count(data, records) == 0:
            logger.info("ad_search_retry_without_dates", brand_id=brand_id)
            params = {"brand_ids": [brand_id], "limit": limit, "order": "newest"}
            data = await self._get("/api/brand/getAdsByBrandId", params=params)
            records = _records(data)
            self._record_credits(CostOperation.AD_SEARCH, data, estimate=len(records))

        ads = [transform_ad(r) for r in records if isinstance(r, dict)]
        logger.info("secondary_ads_found", brand_id=brand_id, count=len(ads))
        return ads

    async def get_ad_details(self, ad_id: str) -> Optional[SecondaryAd]:
        data = await self._get(f"/api/ad/{ad_id}")
        self._record_credits(CostOperation.AD_DETAILS, data, estimate=1)

        payload = as_dict(data)
        if isinstance(payload.get("data"), dict):
            return transform_ad(payload["data"])
        if payload.get("ad_id") or payload.get("id"):
            return transform_ad(payload)
        return None

    async def get_brand_analytics(self, brand_id: str, date_from: str, date_to: str) -> Optional[BrandAnalytics]:
        """Brand analytics, or None when the API has none for this brand."""
        data = await self._get("/api/spyder/brand", params={"brand_id": brand_id})
        self._record_credits(CostOperation.ANALYTICS, data, estimate=1)

        payload = as_dict(data)
        if isinstance(payload.get("data"), dict):
            payload = payload["data"]
        return parse_analytics(brand_id, payload, date_from, date_to)

    async def _get(self, endpoint: str, params: dict = None) -> Any:
        """GET with retries on 429, 5xx and network errors. 4xx and timeouts fail immediately."""
        if self.client is None:
            await self.start()

        url = f"{self.base_url}{endpoint}"
        headers = {
            # Raw key, not a Bearer token
            "Authorization": self.api_key,
            "Accept": "application/json",
        }
        last_error = None

        for attempt in range(self.max_retries + 1):
            logger.debug("foreplay_request", endpoint=endpoint, attempt=attempt + 1)
            try:
                response = await self.client.get(url, params=params, headers=headers, timeout=self.timeout)
            except httpx.TimeoutException:
                raise SecondarySourceError(f"Foreplay API request timed out after {self.timeout:g} seconds")
            except httpx.TransportError as e:
                last_error = SecondarySourceError(f"Foreplay API network error: {e}")
                await self._backoff(attempt)
                continue

            if response.status_code == 429:
                last_error = SecondarySourceError(
                    f"Foreplay API error: 429 - {error_context(429)}",
                    status_code=429,
                )
                delay = self._retry_after(response, attempt)
                logger.warning("foreplay_rate_limited", endpoint=endpoint, delay_seconds=delay)
                if attempt < self.max_retries:
                    await asyncio.sleep(delay)
                continue

            if response.is_error:
                error = SecondarySourceError(
                    f"Foreplay API error: {response.status_code} {response.reason_phrase} - "
                    f"{error_context(response.status_code)} - {response.text[:200]}",
                    status_code=response.status_code,
                )
                logger.error(
                    "foreplay_api_error",
                    endpoint=endpoint,
                    status=response.status_code,
                    cause=error_context(response.status_code),
                )
                if response.status_code < 500:
                    raise error
                last_error = error
                await self._backoff(attempt)
                continue

            try:
                return response.json()
            except ValueError:
                raise SecondarySourceError(
                    f"Foreplay API returned malformed JSON for {endpoint}",
                    status_code=response.status_code,
                )

        raise last_error

    async def _backoff(self, attempt: int):
        if attempt < self.max_retries:
            await asyncio.sleep(self.retry_delay * (attempt + 1))

    def _retry_after(self, response: httpx.Response, attempt: int) -> float:
        header = response.headers.get("Retry-After")
        if header:
            try:
                return float(header)
            except ValueError:
                logger.debug("retry_after_not_seconds", value=header)
        return self.retry_delay * (attempt + 1)

    def _record_credits(self, operation: CostOperation, data: Any, estimate: float):
        reported = _reported_credits(data)
        credits = reported if reported is not None else estimate
        self.ledger.record(operation, credits)
        logger.debug("credits_recorded", operation=operation.value, credits=credits, reported=reported is not None)


def domain_variants(value: str) -> list[str]:
    """Spellings of a domain to try against brand search, most likely first."""
    domain = value.lower().strip()
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    if domain.startswith("www."):
        domain = domain[4:]
    domain = domain.split("/")[0]

    variants = [domain]
    if "." not in domain:
        variants.append(f"{domain}.com")
    variants.append(f"www.{domain}")
    variants.append(f"https://{domain}")
    variants.append(f"https://www.{domain}")

    return list(dict.fromkeys(variants))


def parse_brand(raw: Any) -> Optional[BrandRecord]:
    if not isinstance(raw, dict):
        return None
    brand_id = raw.get("id") or raw.get("brand_id")
    if not brand_id:
        return None
    return BrandRecord(
        id=str(brand_id),
        name=text(raw.get("name")) or text(raw.get("brand_name")) or "",
        domain=text(raw.get("domain")) or text(raw.get("website")),
        page_id=text(raw.get("page_id")) or text(raw.get("pageId")),
    )


def transform_ad(raw: dict) -> SecondaryAd:
    """Map a flat API ad record (with alternate key spellings) to the nested model."""
    hook = as_dict(raw.get("hook"))
    hook_analysis = None
    if hook or raw.get("hook_text"):
        hook_analysis = HookAnalysis(
            hook_text=text(hook.get("text")) or text(raw.get("hook_text")) or "",
            hook_type=normalize_hook_type(text(hook.get("type"))),
            hook_duration_seconds=_to_float(hook.get("duration"), DEFAULT_HOOK_DURATION),
        )

    landing_page = None
    if text(raw.get("landing_page_url")):
        landing_page = LandingPage(
            url=text(raw["landing_page_url"]),
            screenshot_url=text(raw.get("landing_page_screenshot")),
        )

    is_active = raw.get("is_active")
    if is_active is None:
        is_active = raw.get("status") == "active"

    carousel = raw.get("carousel_images") or raw.get("images") or []

    return SecondaryAd(
        ad_id=str(_first(raw, "ad_id", "id")),
        brand=BrandRecord(
            id=str(raw.get("brand_id") or ""),
            name=_first(raw, "name", "brand_name"),
            domain=text(raw.get("website")) or text(raw.get("domain")),
            page_id=text(raw.get("page_id")),
        ),
        creative=SecondaryCreativeAsset(
            type=infer_creative_type(raw),
            url=_first(raw, "video_url", "image_url", "media_url", "thumbnail"),
            thumbnail_url=_first(raw, "thumbnail", "image_url"),
            video_transcript=_first(raw, "transcript", "video_transcript"),
            duration_seconds=_to_float(raw.get("duration") or raw.get("video_duration"), None),
            carousel_urls=[u for u in carousel if isinstance(u, str)] if isinstance(carousel, list) else [],
        ),
        copy=SecondaryCopy(
            headline=_first(raw, "headline", "title"),
            body=_first(raw, "description", "body", "primary_text"),
            cta=_first(raw, "cta", "call_to_action"),
            sponsor_name=_first(raw, "name", "brand_name", "page_name"),
        ),
        metadata=SecondaryMetadata(
            platform=normalize_platform(text(raw.get("platform")) or text(raw.get("source")) or ""),
            first_seen=_first(raw, "first_seen", "created_at", "start_date"),
            last_seen=_first(raw, "last_seen", "updated_at", "end_date"),
            is_active=bool(is_active),
            hook_analysis=hook_analysis,
            emotional_tone=_string_list(raw.get("emotional_tone") or raw.get("emotions") or raw.get("tones")),
            landing_page=landing_page,
        ),
        ad_library_id=text(raw.get("ad_library_id")),
        raw_data=raw,
    )


def infer_creative_type(raw: dict) -> str:
    kind = str(raw.get("type") or raw.get("display_format") or "").lower()
    if "video" in kind:
        return "video"
    if "carousel" in kind:
        return "carousel"
    if "image" in kind:
        return "image"

    if raw.get("video_url") or raw.get("transcript") or raw.get("video_transcript"):
        return "video"
    images = raw.get("images")
    if raw.get("carousel_images") or (isinstance(images, list) and len(images) > 1):
        return "carousel"
    return "image"


def normalize_hook_type(value: Optional[str]) -> str:
    if not value:
        return "benefit"
    kind = value.lower()
    if "problem" in kind:
        return "problem"
    if "benefit" in kind:
        return "benefit"
    if "curiosity" in kind:
        return "curiosity"
    if "social" in kind or "proof" in kind:
        return "social_proof"
    if "question" in kind:
        return "question"
    if "stat" in kind:
        return "statistic"
    if "story" in kind:
        return "story"
    return "benefit"


def normalize_platform(value: str) -> str:
    platform = (value or "").lower()
    if "facebook" in platform or platform in ("fb", "meta"):
        return "facebook"
    if "instagram" in platform or platform == "ig":
        return "instagram"
    if "tiktok" in platform or platform == "tt":
        return "tiktok"
    if "linkedin" in platform or platform == "li":
        return "linkedin"
    return "facebook"


def parse_analytics(brand_id: str, payload: dict, date_from: str, date_to: str) -> Optional[BrandAnalytics]:
    velocity = payload.get("creative_velocity")
    if not isinstance(velocity, dict):
        return None

    distribution = as_dict(payload.get("creative_distribution"))
    date_range = as_dict(payload.get("date_range"))
    hooks = payload.get("top_hooks")

    return BrandAnalytics(
        brand_id=str(payload.get("brand_id") or brand_id),
        date_from=text(date_range.get("from")) or date_from,
        date_to=text(date_range.get("to")) or date_to,
        total_ads_launched=_to_int(velocity.get("total_ads_launched")),
        avg_new_ads_per_week=_to_float(velocity.get("avg_new_ads_per_week")),
        trend=text(velocity.get("trend")) or "stable",
        video_percentage=_to_float(distribution.get("video_percentage")),
        image_percentage=_to_float(distribution.get("image_percentage")),
        carousel_percentage=_to_float(distribution.get("carousel_percentage")),
        top_hooks=[h for h in hooks if isinstance(h, dict)] if isinstance(hooks, list) else [],
        avg_ad_lifespan_days=_to_float(payload.get("avg_ad_lifespan_days")),
    )


def _first(raw: dict, *keys: str) -> str:
    for key in keys:
        value = text(raw.get(key))
        if value:
            return value
    return ""


def _to_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value: Any, default: int = 0) -> int:
    number = _to_float(value, None)
    if number is None or not math.isfinite(number):
        return default
    return int(number)


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, list):
        return []
    return [item for item in map(text, value) if item]


def _records(data: Any, allow_single: bool = False) -> list:
    """Records from a bare list, `{data: [...]}` or (optionally) `{data: {...}}` payload."""
    if isinstance(data, list):
        return data
    inner = as_dict(data).get("data")
    if isinstance(inner, list):
        return inner
    if allow_single and isinstance(inner, dict):
        return [inner]
    return []


def _result_count(data: Any, records: list) -> int:
    count = as_dict(as_dict(data).get("metadata")).get("count")
    if isinstance(count, int) and not isinstance(count, bool):
        return count
    return len(records)


def _reported_credits(data: Any) -> Optional[float]:
    payload = as_dict(data)
    for value in (payload.get("credits_used"), as_dict(payload.get("metadata")).get("credits_used")):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return None
