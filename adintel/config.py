import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"
LOGS_DIR = BASE_DIR / "logs"

# Database (run history)
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR / 'adintel.db'}")

# Primary ad library gateway
SEARCHAPI_KEY = os.getenv("SEARCHAPI_KEY", "")
SEARCHAPI_BASE_URL = os.getenv("SEARCHAPI_BASE_URL", "https://www.searchapi.io/api/v1/search")
ENABLED_SOURCES = [
    s.strip().lower()
    for s in os.getenv("ENABLED_SOURCES", "linkedin,meta,google").split(",")
    if s.strip()
]

# Secondary intelligence source
FOREPLAY_API_KEY = os.getenv("FOREPLAY_API_KEY", "")
FOREPLAY_BASE_URL = os.getenv("FOREPLAY_BASE_URL", "https://public.api.foreplay.co")
ENABLE_FOREPLAY = os.getenv("ENABLE_FOREPLAY", "false").lower() == "true"
SECONDARY_LOOKBACK_DAYS = int(os.getenv("SECONDARY_LOOKBACK_DAYS", 90))
SECONDARY_MAX_RETRIES = int(os.getenv("SECONDARY_MAX_RETRIES", 2))
SECONDARY_RETRY_DELAY = float(os.getenv("SECONDARY_RETRY_DELAY", 1.0))

# Request behaviour (seconds unless noted)
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 30))
MIN_REQUEST_INTERVAL_MS = int(os.getenv("MIN_REQUEST_INTERVAL_MS", 100))
DEFAULT_LIMIT = int(os.getenv("DEFAULT_LIMIT", 50))
DEFAULT_COUNTRY = os.getenv("DEFAULT_COUNTRY", "US")
GOOGLE_AD_FORMAT = os.getenv("GOOGLE_AD_FORMAT", "image")

# Cost estimates (USD)
COST_PER_CREDIT = float(os.getenv("COST_PER_CREDIT", 0.0049))
SEARCHAPI_COST_PER_QUERY = float(os.getenv("SEARCHAPI_COST_PER_QUERY", 0.03))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = Path(os.getenv("LOG_FILE", str(LOGS_DIR / "adintel.log")))
