from adintel.utils.logger import logger, get_logger, setup_logging, new_request_id
from adintel.utils.name_matcher import (
    NameMatcher,
    normalize_company_name,
    calculate_similarity,
    is_advertiser_match,
    extract_company_from_domain,
    generate_company_aliases,
    guess_domain,
)
from adintel.utils.relevance_scoring import (
    RelevanceScorer,
    ScoringRules,
    assess_ad_relevance,
    sort_by_relevance,
    filter_by_relevance,
)
from adintel.utils.rate_limiter import RateLimiter
from adintel.utils.cost_tracker import CostLedger, CostOperation
from adintel.utils.dedup import dedup_key, deduplicate_creatives

__all__ = [
    "logger",
    "get_logger",
    "setup_logging",
    "new_request_id",
    "NameMatcher",
    "normalize_company_name",
    "calculate_similarity",
    "is_advertiser_match",
    "extract_company_from_domain",
    "generate_company_aliases",
    "guess_domain",
    "RelevanceScorer",
    "ScoringRules",
    "assess_ad_relevance",
    "sort_by_relevance",
    "filter_by_relevance",
    "RateLimiter",
    "CostLedger",
    "CostOperation",
    "dedup_key",
    "deduplicate_creatives",
]
