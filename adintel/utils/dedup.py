import re

from adintel.models import CreativeSource, EnrichedCreative

KEY_PART_LENGTH = 100
KEY_SEPARATOR = "|"


def _key_part(value) -> str:
    return re.sub(r"[^a-z0-9]", "", str(value or "").lower())[:KEY_PART_LENGTH]


def dedup_key(creative: EnrichedCreative) -> str:
    """Content key for a creative: advertiser, headline and body, alphanumerics only."""
    return KEY_SEPARATOR.join(
        _key_part(part) for part in (creative.advertiser, creative.headline, creative.body)
    )


def deduplicate_creatives(creatives: list[EnrichedCreative]) -> list[EnrichedCreative]:
    """
    Collapse creatives with the same content key.

    The first occurrence wins, unless a later duplicate came from the
    secondary source and the kept one did not. The replacement takes the
    position of the record it replaces.
    """
    kept: dict[str, EnrichedCreative] = {}

    for creative in creatives:
        key = dedup_key(creative)
        existing = kept.get(key)
        if existing is None:
            kept[key] = creative
        elif creative.source == CreativeSource.SECONDARY and existing.source != CreativeSource.SECONDARY:
            kept[key] = creative

    return list(kept.values())
