"""
Triage configuration for ReviewDesk.

Single home for the keyword tiers and the priority scoring constants used
by the triage engine. Both the priority scorer and the auto-flag decision
read the same TriageConfig instance, so the tiers cannot drift apart.

TIERS:
- urgent: legal / safety / health language. Largest score bonus, and
  overrides every other flag reason.
- negative: general dissatisfaction. Smaller bonus, and only becomes the
  flag reason when the rating alone did not already flag the review.
"""

from dataclasses import dataclass, field
from typing import Tuple


URGENT_KEYWORDS: Tuple[str, ...] = (
    "lawsuit",
    "legal",
    "health",
    "safety",
    "discrimination",
)

NEGATIVE_KEYWORDS: Tuple[str, ...] = (
    "terrible",
    "horrible",
    "worst",
    "awful",
    "scam",
    "rude",
    "unprofessional",
)


@dataclass(frozen=True)
class PriorityScoringConfig:
    """
    Constants for the 1-10 priority score.

    score = base + rating adjustment + keyword tier bonus + length bonus,
    clamped to [min_score, max_score].
    """
    base_score: int = 5

    # Rating bands (ratings below 1 fall in the low band, above 5 in the high band)
    low_rating_max: int = 2
    low_rating_bonus: int = 3       # rating <= 2
    mid_rating: int = 3
    mid_rating_bonus: int = 2       # rating == 3
    high_rating_min: int = 5
    high_rating_penalty: int = -1   # rating >= 5

    # Keyword tiers are mutually exclusive, urgent checked first
    urgent_keyword_bonus: int = 4
    negative_keyword_bonus: int = 2

    # Long reviews tend to carry more detail worth reading
    long_text_threshold: int = 500  # characters, strictly greater than
    long_text_bonus: int = 1

    min_score: int = 1
    max_score: int = 10


@dataclass(frozen=True)
class TriageConfig:
    """Keyword tiers plus scoring constants, shared by scorer and flagger."""
    urgent_keywords: Tuple[str, ...] = URGENT_KEYWORDS
    negative_keywords: Tuple[str, ...] = NEGATIVE_KEYWORDS
    scoring: PriorityScoringConfig = field(default_factory=PriorityScoringConfig)

    # Ratings at or below this value are auto-flagged on their own
    auto_flag_rating_max: int = 2

    # Actor recorded on automatic flags
    system_actor: str = "system"


DEFAULT_TRIAGE_CONFIG = TriageConfig()
