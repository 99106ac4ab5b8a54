"""Relevance scoring for ad creatives.

Scores creatives 0-100 by how confident we are that they were run by the
searched company, and assigns a category explaining what kind of ad it is.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from adintel.models import Creative, EnrichedCreative, RelevanceAssessment, RelevanceCategory
from adintel.utils.name_matcher import NameMatcher


# Point allocations
ADVERTISER_POINTS = 40
CONTENT_MENTION_POINTS = 30
DOMAIN_POINTS = 20
SUBSIDIARY_FLOOR = 35
EXTRA_WORDS_PENALTY = 20
LEAD_MAGNET_PENALTY = 10
PARTNERSHIP_PENALTY = 25

# Similarity thresholds
STRONG_MATCH = 0.8
CLOSE_MATCH = 0.9
PARTIAL_MATCH = 0.7
WEAK_MATCH = 0.5
DOMAIN_MATCH = 0.7
SUBSIDIARY_MATCH = 0.8

MIN_WORD_LENGTH = 3  # shorter words are ignored when comparing names word by word
EXTRA_WORDS_LIMIT = 2

UNSCORED_DEFAULT = 50

TLD_SUFFIXES = ("ai", "io", "com", "co", "net", "org", "app", "dev", "tech")

LEAD_MAGNET_KEYWORDS = (
    "free guide",
    "free ebook",
    "free e-book",
    "ebook",
    "free book",
    "download free",
    "get the guide",
    "get your free",
    "webinar",
    "masterclass",
    "workshop",
    "checklist",
    "template",
    "playbook",
    "blueprint",
    "cheat sheet",
    "toolkit",
    "framework",
    "secrets",
    "revealed",
    "discover how",
    "learn how",
)

PRODUCT_KEYWORDS = (
    "attribution",
    "analytics",
    "dashboard",
    "roi",
    "revenue",
    "marketing",
    "data",
    "tracking",
    "metrics",
    "report",
    "platform",
    "software",
    "tool",
    "solution",
    "automation",
    "insight",
    "performance",
    "conversion",
)

# parent -> subsidiaries; lookups go both ways
KNOWN_SUBSIDIARIES = {
    "salesforce": ("slack", "tableau", "mulesoft", "heroku", "pardot"),
    "microsoft": ("linkedin", "github", "azure"),
    "google": ("youtube", "waze", "fitbit"),
    "meta": ("facebook", "instagram", "whatsapp", "oculus"),
    "amazon": ("aws", "twitch", "audible", "imdb", "whole foods"),
    "oracle": ("netsuite", "java"),
    "adobe": ("figma", "magento", "marketo"),
    "hubspot": ("clearbit",),
    "intuit": ("mailchimp", "quickbooks", "turbotax", "mint"),
}

PARTNERSHIP_SIGNAL = "Ad content appears unrelated to company product (possible partnership/sponsored ad)"


@dataclass(frozen=True)
class ScoringRules:
    """Keyword lists and lookup tables used by the scorer."""

    tld_suffixes: tuple[str, ...] = TLD_SUFFIXES
    lead_magnet_keywords: tuple[str, ...] = LEAD_MAGNET_KEYWORDS
    product_keywords: tuple[str, ...] = PRODUCT_KEYWORDS
    subsidiaries: dict = field(default_factory=lambda: dict(KNOWN_SUBSIDIARIES))


class RelevanceScorer:
    """
    Assess how likely a creative belongs to the searched company.

    Scoring:
    - advertiser name similarity: up to +40
    - advertiser has 2+ words unrelated to the company name: -20
    - advertiser is a known parent/subsidiary/sibling brand: score floored at 35
    - ad content mentions the company: +30
    - searched domain confirmed by details URL or advertiser name: +20
    - lead magnet content from a weakly matching advertiser: -10
    - matching advertiser but content unrelated to any product: -25

    The total is clamped to 0-100.
    """

    def __init__(self, rules: ScoringRules = None, matcher: NameMatcher = None):
        self.rules = rules or ScoringRules()
        self.matcher = matcher or NameMatcher()
        tlds = "|".join(re.escape(t) for t in self.rules.tld_suffixes)
        self._tld_re = re.compile(rf"\.(?:{tlds})$", re.IGNORECASE)

    def assess(self, creative: Creative, searched_company: str, searched_domain: Optional[str] = None) -> RelevanceAssessment:
        signals: list[str] = []
        score = 0
        advertiser = creative.advertiser or ""

        # "Windsor.ai" -> "windsor"
        searched_core = self.matcher.normalize(self._tld_re.sub("", (searched_company or "").strip()))
        advertiser_core = self.matcher.normalize(advertiser)
        content = creative.content.lower()

        # 1. Advertiser name similarity (0-40)
        similarity = max(
            self.matcher.similarity(advertiser, searched_company),
            self.matcher.similarity(advertiser_core, searched_core),
        )
        score += int(similarity * ADVERTISER_POINTS + 0.5)

        if similarity >= CLOSE_MATCH:
            signals.append("Advertiser name closely matches search")
        elif similarity >= PARTIAL_MATCH:
            signals.append("Advertiser name partially matches search")
        else:
            signals.append("Advertiser name differs from search")

        # 2. Extra words, e.g. "Windsor Airport Limo" vs "Windsor.ai"
        extra_words = self._extra_words(advertiser_core, searched_core)
        if len(extra_words) >= EXTRA_WORDS_LIMIT:
            score -= EXTRA_WORDS_PENALTY
            signals.append(f'Different company detected: "{" ".join(extra_words)}"')

        # 3. Known parent/subsidiary relationship
        is_subsidiary = any(
            self.matcher.similarity(advertiser_core, brand) >= SUBSIDIARY_MATCH
            for brand in self.related_brands(searched_core)
        )
        if is_subsidiary:
            score = max(score, SUBSIDIARY_FLOOR)
            signals.append(f"{advertiser} is a known related brand")

        # 4. Content mentions the company (0-30)
        mentions_company = self._mentions_company(content, searched_core)
        if mentions_company:
            score += CONTENT_MENTION_POINTS
            signals.append("Ad content mentions searched company")
        else:
            signals.append("Ad content does not mention searched company")

        # 5. Domain confirmation (0-20)
        if searched_domain:
            domain_company = self.matcher.extract_company_from_domain(searched_domain)
            if domain_company:
                url_match = domain_company in (creative.details_url or "").lower()
                name_match = self.matcher.similarity(advertiser_core, domain_company) >= DOMAIN_MATCH
                if url_match or name_match:
                    score += DOMAIN_POINTS
                    signals.append("Domain association confirmed")
                else:
                    signals.append(f"Domain association not confirmed for {domain_company}")

        # 6. Lead magnets
        is_lead_magnet = self._contains_any(content, self.rules.lead_magnet_keywords)
        if is_lead_magnet:
            signals.append("Ad appears to be lead generation content")
            if similarity < STRONG_MATCH:
                score -= LEAD_MAGNET_PENALTY
                signals.append("Lead magnet from different brand")

        # 7. Matching advertiser promoting something unrelated
        is_partnership = False
        if similarity >= STRONG_MATCH and not mentions_company and not is_lead_magnet:
            if not self._contains_any(content, self.rules.product_keywords):
                is_partnership = True
                score -= PARTNERSHIP_PENALTY
                signals.append(PARTNERSHIP_SIGNAL)

        category, explanation = self._categorize(
            advertiser,
            searched_company,
            similarity=similarity,
            mentions_company=mentions_company,
            is_lead_magnet=is_lead_magnet,
            is_partnership=is_partnership,
            is_subsidiary=is_subsidiary,
        )

        score = max(0, min(100, score))

        return RelevanceAssessment(
            score=score,
            category=category,
            explanation=explanation,
            signals=tuple(signals),
        )

    def related_brands(self, company: str) -> list[str]:
        """Subsidiaries of a parent, or the parent and siblings of a subsidiary."""
        normalized = self.matcher.normalize(company)
        related = list(self.rules.subsidiaries.get(normalized, ()))

        for parent, subsidiaries in self.rules.subsidiaries.items():
            if normalized in subsidiaries:
                related.append(parent)
                related.extend(s for s in subsidiaries if s != normalized)

        return related

    def _extra_words(self, advertiser_core: str, searched_core: str) -> list[str]:
        advertiser_words = [w for w in advertiser_core.split() if len(w) >= MIN_WORD_LENGTH]
        searched_words = [w for w in searched_core.split() if len(w) >= MIN_WORD_LENGTH]
        return [
            w for w in advertiser_words
            if not any(sw in w or w in sw for sw in searched_words)
        ]

    def _mentions_company(self, content: str, searched_core: str) -> bool:
        if not content.strip() or not searched_core:
            return False
        normalized_content = self.matcher.normalize(content)
        if searched_core in normalized_content:
            return True
        return searched_core in normalized_content.split()

    @staticmethod
    def _contains_any(text: str, keywords: Iterable[str]) -> bool:
        return any(keyword in text for keyword in keywords)

    @staticmethod
    def _categorize(
        advertiser: str,
        searched_company: str,
        similarity: float,
        mentions_company: bool,
        is_lead_magnet: bool,
        is_partnership: bool,
        is_subsidiary: bool,
    ) -> tuple[RelevanceCategory, str]:
        if similarity >= STRONG_MATCH and mentions_company:
            return (
                RelevanceCategory.DIRECT,
                "This ad directly promotes the searched company's products or services.",
            )
        if similarity >= STRONG_MATCH and is_lead_magnet:
            return (
                RelevanceCategory.LEAD_MAGNET,
                f"This appears to be a lead generation ad from {advertiser}. It may promote "
                "educational content (book, guide, webinar) rather than their core product.",
            )
        if is_partnership:
            return (
                RelevanceCategory.LEAD_MAGNET,
                f"This ad is from {advertiser} but promotes unrelated content (likely a partnership "
                "or sponsored ad). The content doesn't mention their product or relevant keywords.",
            )
        if similarity >= STRONG_MATCH:
            return (
                RelevanceCategory.BRAND_AWARENESS,
                f"This ad is from {advertiser} but doesn't mention their product directly. "
                "It may be brand awareness or top-of-funnel content.",
            )
        if is_subsidiary:
            return (
                RelevanceCategory.SUBSIDIARY,
                f"{advertiser} is a brand related to or owned by {searched_company}. "
                "Showing because of known corporate relationship.",
            )
        if similarity < WEAK_MATCH:
            return (
                RelevanceCategory.UNCLEAR,
                f'This ad is from {advertiser}, which doesn\'t clearly match "{searched_company}". '
                "It may have appeared due to API matching logic.",
            )
        return (
            RelevanceCategory.UNCLEAR,
            f'The relationship between this ad and "{searched_company}" is not immediately clear. '
            "Manual review recommended.",
        )


_default_scorer = RelevanceScorer()


def assess_ad_relevance(creative: Creative, searched_company: str, searched_domain: Optional[str] = None) -> RelevanceAssessment:
    return _default_scorer.assess(creative, searched_company, searched_domain)


def relevance_score(creative: EnrichedCreative) -> int:
    return creative.relevance.score if creative.relevance else UNSCORED_DEFAULT


def sort_by_relevance(creatives: list[EnrichedCreative]) -> list[EnrichedCreative]:
    """Highest score first. Stable, so ties keep their input order."""
    return sorted(creatives, key=relevance_score, reverse=True)


def filter_by_relevance(creatives: list[EnrichedCreative], min_score: int = 40) -> list[EnrichedCreative]:
    """Drop creatives scoring below `min_score`. Unscored creatives are kept."""
    return [c for c in creatives if c.relevance is None or c.relevance.score >= min_score]
