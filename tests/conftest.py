import os
import sys
import tempfile
from pathlib import Path

import httpx
import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("SEARCHAPI_KEY", "test_key")
os.environ.setdefault("FOREPLAY_API_KEY", "")
os.environ.setdefault("ENABLE_FOREPLAY", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("MIN_REQUEST_INTERVAL_MS", "0")
os.environ.setdefault("SECONDARY_RETRY_DELAY", "0")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_FILE", str(Path(tempfile.gettempdir()) / "adintel-tests.log"))

from adintel.models import AdFormat, AdPlatform, CreativeSource, EnrichedCreative


@pytest.fixture
def make_creative():
    def _make(**overrides) -> EnrichedCreative:
        fields = {
            "platform": AdPlatform.META,
            "id": "ad-1",
            "advertiser": "Acme",
            "headline": None,
            "body": None,
            "format": AdFormat.UNKNOWN,
            "source": CreativeSource.PRIMARY,
        }
        fields.update(overrides)
        return EnrichedCreative(**fields)

    return _make


@pytest.fixture
def mock_client():
    """Build an httpx.AsyncClient whose requests are answered by `handler`."""

    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
