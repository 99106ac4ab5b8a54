"""Fuzzy company/brand name matching.

Used to reject ads whose advertiser only looks like the searched company.

Similarity is computed on normalized names:
- identical (after normalization) -> 1.0
- one name found as whole words inside the other -> graduated score
  (see `_containment_score`)
- short names (<= 5 chars) with a different two-letter prefix -> 0.3
- plain substring (not on a word boundary) -> 0.5
- everything else -> Jaro-Winkler
"""

import re
from dataclasses import dataclass
from typing import Optional

# Similarity scores for the containment cases
PHRASE_PREFIX_SCORE = 0.95  # multi-word name at the start of the other name
PHRASE_WORD_SCORE = 0.90  # multi-word name elsewhere in the other name
SHORT_WORD_SCORE = 0.80  # short name as a non-leading word
ONE_EXTRA_WORD_SCORE = 0.75  # single-word name plus one extra word
SUBSTRING_SCORE = 0.50  # substring without word boundary, or too many extra words
SHORT_PREFIX_MISMATCH_SCORE = 0.30

WINKLER_PREFIX_LIMIT = 4
WINKLER_SCALING = 0.1
DEFAULT_MATCH_THRESHOLD = 0.7

CORPORATE_SUFFIXES = (
    "inc",
    "llc",
    "corp",
    "corporation",
    "ltd",
    "limited",
    "co",
    "company",
    "group",
    "international",
    "intl",
)

# Second-level labels of multi-part public suffixes (co.uk, com.au, ...)
REGISTRABLE_SUFFIX_LABELS = ("co", "com", "org", "net")


@dataclass(frozen=True)
class MatcherConfig:
    corporate_suffixes: tuple[str, ...] = CORPORATE_SUFFIXES
    short_name_length: int = 5
    registrable_suffix_labels: tuple[str, ...] = REGISTRABLE_SUFFIX_LABELS


class NameMatcher:
    """Normalizes and compares company names."""

    def __init__(self, config: MatcherConfig = None):
        self.config = config or MatcherConfig()
        suffixes = "|".join(re.escape(s) for s in self.config.corporate_suffixes)
        self._suffix_re = re.compile(rf"\s+(?:{suffixes})\.?$")

    def normalize(self, name: str) -> str:
        """Lowercase, drop a trailing corporate suffix, strip punctuation.

        Repeats until stable so the result is idempotent even for inputs
        like "Acme Inc, Co." where one pass exposes another suffix.
        """
        if not name or not isinstance(name, str):
            return ""

        normalized = name.lower().strip()
        while True:
            previous = normalized
            normalized = self._suffix_re.sub("", normalized)
            normalized = re.sub(r"[^\w\s]", "", normalized)
            normalized = re.sub(r"\s+", " ", normalized).strip()
            if normalized == previous:
                return normalized

    def similarity(self, str1: str, str2: str) -> float:
        """Similarity between two company names in [0, 1]. Commutative."""
        if not str1 or not str2:
            return 0.0
        if str1 == str2:
            return 1.0

        s1 = self.normalize(str1)
        s2 = self.normalize(str2)

        if not s1 or not s2:
            return 0.0
        if s1 == s2:
            return 1.0

        shorter, longer = sorted((s1, s2), key=lambda s: (len(s), s))

        if len(shorter) <= self.config.short_name_length:
            contained = self._containment_score(shorter, longer)
            if contained is not None:
                return contained
            # "huel" must not drift into "hula hoop" territory via edit distance
            if s1[:2] != s2[:2]:
                return SHORT_PREFIX_MISMATCH_SCORE

        if shorter in longer:
            contained = self._containment_score(shorter, longer)
            return contained if contained is not None else SUBSTRING_SCORE

        return self._jaro_winkler(shorter, longer)

    def is_match(self, advertiser: str, searched: str, threshold: float = DEFAULT_MATCH_THRESHOLD) -> bool:
        """Check if an advertiser name refers to the searched company."""
        if not advertiser or not searched:
            return False

        if self.normalize(advertiser) == self.normalize(searched):
            return True

        return self.similarity(advertiser, searched) >= threshold

    def extract_company_from_domain(self, domain: str) -> Optional[str]:
        """
        Extract the company label from a domain or URL.

        Examples:
            tesla.com -> tesla
            https://www.amazon.com/deals -> amazon
            shop.nike.co.uk -> nike
        """
        if not domain or not isinstance(domain, str):
            return None

        cleaned = re.sub(r"^https?://", "", domain.strip().lower())
        cleaned = re.sub(r"^www\.", "", cleaned)
        cleaned = cleaned.split("/")[0].split("?")[0]

        parts = cleaned.split(".")
        if len(parts) < 2:
            return None

        if len(parts) >= 3 and parts[-2] in self.config.registrable_suffix_labels:
            label = parts[-3]
        else:
            label = parts[-2]
        return label or None

    def _containment_score(self, shorter: str, longer: str) -> Optional[float]:
        """Score `shorter` appearing as whole words inside `longer`.

        Returns None when there is no word-aligned occurrence.
        """
        short_words = shorter.split(" ")
        long_words = longer.split(" ")
        n = len(short_words)

        positions = [
            i for i in range(len(long_words) - n + 1)
            if long_words[i:i + n] == short_words
        ]
        if not positions:
            return None

        at_start = positions[0] == 0
        extra_words = len(long_words) - n
        is_short = len(shorter) <= self.config.short_name_length

        if n >= 2:
            return PHRASE_PREFIX_SCORE if at_start else PHRASE_WORD_SCORE

        if at_start:
            if is_short or extra_words == 1:
                return ONE_EXTRA_WORD_SCORE
            return SUBSTRING_SCORE

        if is_short:
            return SHORT_WORD_SCORE
        return ONE_EXTRA_WORD_SCORE if extra_words == 1 else SUBSTRING_SCORE

    def _jaro_winkler(self, s1: str, s2: str) -> float:
        jaro = _jaro(s1, s2)
        if jaro == 0:
            return 0.0

        prefix = 0
        for a, b in zip(s1[:WINKLER_PREFIX_LIMIT], s2[:WINKLER_PREFIX_LIMIT]):
            if a != b:
                break
            prefix += 1

        return min(jaro + prefix * WINKLER_SCALING * (1 - jaro), 1.0)


def _jaro(s1: str, s2: str) -> float:
    if not s1 or not s2:
        return 0.0

    match_window = max(0, max(len(s1), len(s2)) // 2 - 1)
    s1_matches = [False] * len(s1)
    s2_matches = [False] * len(s2)
    matches = 0

    for i, ch in enumerate(s1):
        start = max(0, i - match_window)
        end = min(i + match_window + 1, len(s2))
        for j in range(start, end):
            if s2_matches[j] or s2[j] != ch:
                continue
            s1_matches[i] = True
            s2_matches[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    transpositions = 0
    k = 0
    for i, ch in enumerate(s1):
        if not s1_matches[i]:
            continue
        while not s2_matches[k]:
            k += 1
        if ch != s2[k]:
            transpositions += 1
        k += 1

    return (
        matches / len(s1)
        + matches / len(s2)
        + (matches - transpositions / 2) / matches
    ) / 3


def guess_domain(query: str) -> Optional[str]:
    """Best-effort domain for a company name when none was supplied."""
    if not query:
        return None
    query = query.strip()
    if "." in query and " " not in query:
        return query.lower()
    sanitized = re.sub(r"[^a-z0-9]", "", query.lower())
    return f"{sanitized}.com" if sanitized else None


_default_matcher = NameMatcher()


def normalize_company_name(name: str) -> str:
    return _default_matcher.normalize(name)


def calculate_similarity(str1: str, str2: str) -> float:
    return _default_matcher.similarity(str1, str2)


def is_advertiser_match(advertiser: str, searched: str, threshold: float = DEFAULT_MATCH_THRESHOLD) -> bool:
    return _default_matcher.is_match(advertiser, searched, threshold)


def extract_company_from_domain(domain: str) -> Optional[str]:
    return _default_matcher.extract_company_from_domain(domain)


def generate_company_aliases(name: str) -> list[str]:
    """
    Alternative spellings worth searching for a company.

    "Tesla Inc" -> ["Tesla Inc", "tesla", "tesla inc", "tesla llc", "tesla corp", "Tesla"]
    """
    if not name:
        return []

    aliases = [name]
    normalized = normalize_company_name(name)
    if normalized and normalized != name.lower():
        aliases.append(normalized)

    if normalized:
        aliases.extend(f"{normalized} {suffix}" for suffix in ("inc", "llc", "corp"))
        aliases.append(" ".join(word.capitalize() for word in normalized.split(" ")))

    # Keep order, drop duplicates and empties
    return [a for a in dict.fromkeys(aliases) if a]
