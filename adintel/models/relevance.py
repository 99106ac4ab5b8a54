from dataclasses import dataclass, field
from enum import Enum


class RelevanceCategory(str, Enum):
    DIRECT = "direct"
    BRAND_AWARENESS = "brand_awareness"
    LEAD_MAGNET = "lead_magnet"
    SUBSIDIARY = "subsidiary"
    UNCLEAR = "unclear"


@dataclass(frozen=True)
class RelevanceAssessment:
    """Confidence (0-100) that a creative belongs to the searched company."""

    score: int
    category: RelevanceCategory
    explanation: str
    signals: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "category": self.category.value,
            "explanation": self.explanation,
            "signals": list(self.signals),
        }
