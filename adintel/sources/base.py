import asyncio
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from dateutil.parser import parse as parse_date

from adintel.config import (
    SEARCHAPI_KEY,
    SEARCHAPI_BASE_URL,
    REQUEST_TIMEOUT,
    DEFAULT_LIMIT,
    DEFAULT_COUNTRY,
)
from adintel.models import AdFormat, AdPlatform, AdSearchRequest, EnrichedCreative, SourceResult
from adintel.utils.rate_limiter import RateLimiter
from adintel.utils.logger import get_logger

logger = get_logger("sources")


class SourceError(Exception):
    """A single primary source failed to return usable data."""

    def __init__(self, platform: AdPlatform, message: str):
        super().__init__(message)
        self.platform = platform
        self.message = message


class SourceTimeoutError(SourceError):
    def __init__(self, platform: AdPlatform, timeout: float):
        super().__init__(platform, f"Request timed out after {timeout:g} seconds")
        self.timeout = timeout


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an API timestamp (ISO string, date string or epoch seconds)."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None
    try:
        return parse_date(value)
    except (ValueError, OverflowError):
        return None


def infer_format(image_urls: list, video_url: Optional[str]) -> AdFormat:
    if video_url:
        return AdFormat.VIDEO
    if len(image_urls) >= 2:
        return AdFormat.CAROUSEL
    if image_urls:
        return AdFormat.IMAGE
    return AdFormat.UNKNOWN


def first_media_url(items: Any, *keys: str) -> Optional[str]:
    """First entry of a media list; entries are plain URLs or dicts keyed by `keys`."""
    if not isinstance(items, list) or not items:
        return None
    first = items[0]
    if isinstance(first, str):
        return first or None
    if isinstance(first, dict):
        for key in keys:
            if first.get(key):
                return text(first[key])
    return None


def text(value: Any) -> Optional[str]:
    """String form of a scalar API value; None when missing, empty or structured."""
    if value is None or isinstance(value, (dict, list)):
        return None
    value = str(value)
    return value or None


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def generate_id(platform: AdPlatform) -> str:
    return f"{platform.value}-{uuid.uuid4().hex[:12]}"


class SourceAdapter(ABC):
    """
    One primary ad library queried through the search gateway.

    Subclasses declare the gateway engine and the key holding the ad list,
    build their query params and map one raw record to a creative.
    """

    platform: AdPlatform
    engine: str
    results_key: str = "ads"

    def __init__(
        self,
        api_key: str = None,
        client: httpx.AsyncClient = None,
        rate_limiter: RateLimiter = None,
        base_url: str = None,
        timeout: float = None,
        default_limit: int = None,
        default_country: str = None,
    ):
        self.api_key = SEARCHAPI_KEY if api_key is None else api_key
        self.base_url = base_url or SEARCHAPI_BASE_URL
        self.timeout = REQUEST_TIMEOUT if timeout is None else timeout
        self.default_limit = default_limit or DEFAULT_LIMIT
        self.default_country = default_country or DEFAULT_COUNTRY
        self.rate_limiter = rate_limiter or RateLimiter()
        self.client = client
        self._owns_client = client is None

    async def start(self):
        """Initialize the HTTP client."""
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
            self._owns_client = True

    async def stop(self):
        """Close the HTTP client if we created it."""
        if self.client and self._owns_client:
            await self.client.aclose()
            self.client = None

    @abstractmethod
    def build_params(self, request: AdSearchRequest) -> dict:
        """Gateway query params for this source, without the api key."""

    @abstractmethod
    def parse_record(self, record: dict) -> EnrichedCreative:
        """Map one raw ad record to a creative."""

    async def fetch(self, request: AdSearchRequest) -> SourceResult:
        """Query the source. Never raises; failures become an unsuccessful result."""
        started = time.monotonic()
        await self.rate_limiter.wait(self.platform.value)

        try:
            params = self.build_params(request)
            data = await self.fetch_json(params)

            if data.get("error"):
                raise SourceError(self.platform, str(data["error"]))

            records = data.get(self.results_key) or []
            if not isinstance(records, list):
                raise SourceError(self.platform, f"Malformed response: '{self.results_key}' is not a list")

            total_count = self._declared_total(data) or len(records)
            limit = request.limit or self.default_limit

            creatives = [
                self.parse_record(record)
                for record in records[:limit]
                if isinstance(record, dict)
            ]

        except SourceError as e:
            return self._error_result(e.message, started)
        except httpx.HTTPError as e:
            return self._error_result(str(e) or e.__class__.__name__, started)

        duration_ms = _elapsed_ms(started)
        logger.info(
            "source_fetch_complete",
            platform=self.platform.value,
            count=len(creatives),
            total_count=total_count,
            duration_ms=duration_ms,
        )

        return SourceResult(
            platform=self.platform,
            success=True,
            creatives=creatives,
            total_count=total_count,
            duration_ms=duration_ms,
        )

    async def fetch_json(self, params: dict) -> dict:
        """GET the gateway with a hard deadline and decode the JSON envelope."""
        if self.client is None:
            await self.start()

        query = {**params, "api_key": self.api_key}

        try:
            response = await asyncio.wait_for(
                self.client.get(self.base_url, params=query),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise SourceTimeoutError(self.platform, self.timeout)

        try:
            data = response.json()
        except ValueError:
            raise SourceError(
                self.platform,
                f"Malformed response (HTTP {response.status_code})",
            )

        if not isinstance(data, dict):
            raise SourceError(self.platform, "Malformed response: expected a JSON object")

        if response.is_error and not data.get("error"):
            raise SourceError(self.platform, f"HTTP {response.status_code}")

        return data

    @staticmethod
    def _declared_total(data: dict) -> int:
        info = as_dict(data.get("search_information"))
        total = info.get("total_results")
        if isinstance(total, bool) or not isinstance(total, (int, float)):
            return 0
        return int(total)

    def _error_result(self, error: str, started: float) -> SourceResult:
        logger.error("source_fetch_failed", platform=self.platform.value, error=error)
        return SourceResult(
            platform=self.platform,
            success=False,
            error=error,
            duration_ms=_elapsed_ms(started),
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
