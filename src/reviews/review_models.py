"""
Review Document Models
======================

Layout and defaults of the documents stored in the `reviews` collection
and its `media` sub-collection. Field names are camelCase because the
documents are shared with the dashboard as-is.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

REVIEWS_COLLECTION = "reviews"

REQUIRED_REVIEW_FIELDS = ("businessId", "platform", "platformReviewId", "rating", "text", "author")
REQUIRED_MEDIA_FIELDS = ("type", "url")

MIN_RATING = 1
MAX_RATING = 5


class MediaType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"


def media_collection(review_id: str) -> str:
    """Sub-collection path holding a review's media."""
    return f"{REVIEWS_COLLECTION}/{review_id}/media"


def default_flagging() -> Dict[str, Any]:
    return {
        "isFlagged": False,
        "reason": None,
        "keywords": [],
        "flaggedAt": None,
    }


def default_analysis(text: str) -> Dict[str, Any]:
    """Placeholder analysis, filled in later by background processing."""
    return {
        "sentimentScore": None,
        "sentimentLabel": None,
        "emotionTags": [],
        "languageDetected": "en",
        "isSpam": False,
        "spamConfidence": 0,
        "wordCount": len(text.split()),
    }


def default_metadata() -> Dict[str, Any]:
    return {
        "helpfulVotes": 0,
        "totalVotes": 0,
        "isVerifiedPurchase": False,
        "hasPhotos": False,
        "hasVideo": False,
    }


def default_response() -> Dict[str, Any]:
    return {
        "hasResponse": False,
        "responseCount": 0,
        "lastResponseAt": None,
    }


@dataclass
class ReviewAuthor:
    """Author block of a review, with the defaults applied on create."""
    name: str = "Anonymous"
    username: str = ""
    avatar_url: str = ""
    location: str = ""
    review_count: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ReviewAuthor":
        data = data or {}
        return cls(
            name=data.get("name") or "Anonymous",
            username=data.get("username") or "",
            avatar_url=data.get("avatarUrl") or "",
            location=data.get("location") or "",
            review_count=data.get("reviewCount") or 0,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "username": self.username,
            "avatarUrl": self.avatar_url,
            "location": self.location,
            "reviewCount": self.review_count,
        }


@dataclass
class ReviewStats:
    """Per-business review statistics for the dashboard."""
    total: int = 0
    avg_rating: float = 0.0
    rating_distribution: Dict[int, int] = field(
        default_factory=lambda: {r: 0 for r in range(MIN_RATING, MAX_RATING + 1)}
    )
    platform_breakdown: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    flagged_count: int = 0
    responded_count: int = 0
    response_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "avgRating": self.avg_rating,
            "ratingDistribution": dict(self.rating_distribution),
            "platformBreakdown": self.platform_breakdown,
            "flaggedCount": self.flagged_count,
            "respondedCount": self.responded_count,
            "responseRate": self.response_rate,
        }


# ============================================================================
# RESPONSES
# ============================================================================

RESPONSES_COLLECTION = "review_responses"

REQUIRED_RESPONSE_FIELDS = ("reviewId", "businessId", "userId", "responseText", "responseType")


class ResponseType(str, Enum):
    MANUAL = "manual"
    AI_GENERATED = "ai_generated"
    TEMPLATE = "template"


class PublishingStatus(str, Enum):
    PENDING = "pending"
    PUBLISHED = "published"
    FAILED = "failed"


def default_publishing() -> Dict[str, Any]:
    return {
        "isPublished": False,
        "publishedAt": None,
        "status": PublishingStatus.PENDING.value,
        "error": None,
        "platformResponseId": None,
        "platformResponseUrl": None,
    }


@dataclass
class ResponseStats:
    """Per-business response publishing statistics."""
    total: int = 0
    published: int = 0
    pending: int = 0
    failed: int = 0
    publish_rate: float = 0.0
    ai_generated: int = 0
    manual: int = 0
    template: int = 0
    avg_generation_time: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "published": self.published,
            "pending": self.pending,
            "failed": self.failed,
            "publishRate": self.publish_rate,
            "aiGenerated": self.ai_generated,
            "manual": self.manual,
            "template": self.template,
            "avgGenerationTime": self.avg_generation_time,
        }
