"""
Triage Data Models
==================

Plain values produced by the triage engine. They carry no storage
concerns; `to_document()` renders the camelCase layout used by the
review documents so the persistence step can write them as-is.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class FlagReason(str, Enum):
    """Why a review was flagged."""
    NONE = "none"
    LOW_RATING = "low_rating"
    NEGATIVE_KEYWORDS = "negative_keywords"
    URGENT_KEYWORDS = "urgent_keywords"

    @property
    def is_keyword_based(self) -> bool:
        return self in (FlagReason.NEGATIVE_KEYWORDS, FlagReason.URGENT_KEYWORDS)


@dataclass(frozen=True)
class FlagDecision:
    """Outcome of the auto-flag check for one review."""
    should_flag: bool
    reason: FlagReason = FlagReason.NONE
    keywords: List[str] = field(default_factory=list)

    @classmethod
    def no_flag(cls) -> "FlagDecision":
        return cls(should_flag=False, reason=FlagReason.NONE, keywords=[])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shouldFlag": self.should_flag,
            "reason": self.reason.value,
            "keywords": list(self.keywords),
        }

    def to_flagging(self, flagged_by: str, flagged_at: Optional[str] = None) -> Dict[str, Any]:
        """
        Render the `flagging` structure stored on a review.

        Only meaningful when should_flag is True; unflagged decisions
        render the cleared structure.
        """
        if not self.should_flag:
            return {
                "isFlagged": False,
                "reason": None,
                "keywords": [],
                "flaggedAt": None,
            }
        return {
            "isFlagged": True,
            "reason": self.reason.value,
            "keywords": list(self.keywords),
            "flaggedAt": flagged_at or datetime.now(timezone.utc).isoformat(),
            "flaggedBy": flagged_by,
        }


@dataclass(frozen=True)
class TriageResult:
    """Priority score and flag decision for a single review."""
    priority_score: int
    decision: FlagDecision

    @property
    def is_high_priority(self) -> bool:
        """Scores of 8+ are what the dashboards surface as urgent."""
        return self.priority_score >= 8

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priorityScore": self.priority_score,
            "flag": self.decision.to_dict(),
        }
