"""
Reviews Service
===============

Review management over the `reviews` collection: creation from platform
sync (with triage), business listings, manual flag / unflag, archive,
response tracking, stats, and media.

Creation flow:
    1. validate + merge defaults
    2. ReviewTriageEngine computes priorityScore and the FlagDecision
    3. the review document is written
    4. apply_auto_flag persists the decision, best-effort

Step 4 never fails the creation: errors are logged and swallowed there.
"""

import logging
from typing import Any, Dict, List, Optional

from ..api.crud import COUNT_LIMIT, BaseCRUD
from ..api.errors import APIError, utc_now, validate_required
from ..store import DocumentStore
from ..triage import FlagDecision, ReviewTriageEngine
from .review_insights import ReviewStatsAggregator
from .review_models import (
    MAX_RATING,
    MIN_RATING,
    REQUIRED_MEDIA_FIELDS,
    REQUIRED_REVIEW_FIELDS,
    REVIEWS_COLLECTION,
    MediaType,
    ReviewAuthor,
    default_analysis,
    default_flagging,
    default_metadata,
    default_response,
    media_collection,
)

logger = logging.getLogger(__name__)

MANUAL_FLAG_DEFAULT_PRIORITY = 8
NEEDS_RESPONSE_MAX_RATING = 3


def parse_rating(value: Any) -> int:
    """Coerce a submitted rating to int and check it is 1-5."""
    if isinstance(value, bool):
        raise APIError("Rating must be an integer between 1 and 5", "VALIDATION_ERROR", 400)
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise APIError(f"Invalid rating: {value!r}", "VALIDATION_ERROR", 400)
    if not (MIN_RATING <= rating <= MAX_RATING):
        raise APIError(f"Invalid rating: {rating}. Must be 1-5", "VALIDATION_ERROR", 400)
    return rating


def parse_priority(value: Any, min_score: int, max_score: int) -> int:
    """Coerce a submitted priorityScore to int and clamp it to [min_score, max_score]."""
    if isinstance(value, bool):
        raise APIError("priorityScore must be a number", "VALIDATION_ERROR", 400)
    try:
        priority = int(value)
    except (TypeError, ValueError):
        raise APIError(f"Invalid priorityScore: {value!r}", "VALIDATION_ERROR", 400)
    return max(min_score, min(max_score, priority))


def apply_auto_flag(
    reviews: BaseCRUD,
    review_id: str,
    decision: FlagDecision,
    flagged_by: str = "system",
) -> Optional[Dict[str, Any]]:
    """
    Persist an automatic flag decision, best-effort.

    Returns the updated review, or None when nothing was written (no flag,
    or the write failed). Never raises.
    """
    if not decision.should_flag:
        return None

    try:
        updated = reviews.update(review_id, {"flagging": decision.to_flagging(flagged_by)})
    except Exception as e:
        logger.error(
            f"Auto-flag failed for review {review_id}: {e}",
            extra={"review_id": review_id, "flag_reason": decision.reason.value},
        )
        return None

    logger.info(
        f"Auto-flagged review {review_id}: {decision.reason.value} {decision.keywords}",
        extra={"review_id": review_id, "flag_reason": decision.reason.value},
    )
    return updated


class ReviewsService(BaseCRUD):
    """Review operations on top of BaseCRUD."""

    def __init__(self, store: DocumentStore, triage_engine: Optional[ReviewTriageEngine] = None):
        super().__init__(store, REVIEWS_COLLECTION)
        self.triage_engine = triage_engine or ReviewTriageEngine()
        self.stats_aggregator = ReviewStatsAggregator()

    # ================================================================ create

    def create_review(self, review_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a review (usually from platform sync) and auto-flag it."""
        validate_required(review_data, REQUIRED_REVIEW_FIELDS)
        if not isinstance(review_data["author"], dict):
            raise APIError("author must be an object", "VALIDATION_ERROR", 400)

        rating = parse_rating(review_data["rating"])
        text = str(review_data["text"]).strip()
        triage = self.triage_engine.triage({"rating": rating, "text": text})
        now = utc_now()

        review_doc = {
            "businessId": review_data["businessId"],
            "platform": review_data["platform"],
            "platformReviewId": review_data["platformReviewId"],
            "platformUrl": review_data.get("platformUrl") or "",

            "rating": rating,
            "title": review_data.get("title") or "",
            "text": text,

            "author": ReviewAuthor.from_dict(review_data["author"]).to_document(),

            "reviewDate": review_data.get("reviewDate") or now,
            "lastUpdatedDate": review_data.get("lastUpdatedDate") or now,

            "flagging": default_flagging(),
            "analysis": review_data.get("analysis") or default_analysis(text),
            "metadata": review_data.get("metadata") or default_metadata(),
            "response": default_response(),

            "isArchived": False,
            "priorityScore": triage.priority_score,
        }

        result = self.create(review_doc)
        logger.info(
            f"Created review {result['id']} for business {result['businessId']} "
            f"(rating={rating}, priority={triage.priority_score})",
            extra={
                "review_id": result["id"],
                "business_id": result["businessId"],
                "priority_score": triage.priority_score,
            },
        )

        flagged = apply_auto_flag(self, result["id"], triage.decision, self.triage_engine.config.system_actor)
        return flagged or result

    # ================================================================ listings

    def get_business_reviews(self, business_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        List a business's reviews.

        Options: platform, min_rating, max_rating, flagged, has_response,
        include_archived, sort_by (reviewDate), sort_order (desc), limit,
        start_after.
        """
        options = options or {}
        filters: List[Dict[str, Any]] = [
            {"field": "businessId", "operator": "==", "value": business_id},
        ]

        if options.get("platform"):
            filters.append({"field": "platform", "operator": "==", "value": options["platform"]})
        if options.get("min_rating"):
            filters.append({"field": "rating", "operator": ">=", "value": options["min_rating"]})
        if options.get("max_rating"):
            filters.append({"field": "rating", "operator": "<=", "value": options["max_rating"]})
        if options.get("flagged") is not None:
            filters.append({"field": "flagging.isFlagged", "operator": "==", "value": options["flagged"]})
        if options.get("has_response") is not None:
            filters.append({"field": "response.hasResponse", "operator": "==", "value": options["has_response"]})
        if options.get("include_archived") is not True:
            filters.append({"field": "isArchived", "operator": "==", "value": False})

        return self.get_where(filters, {
            "order_by": options.get("sort_by") or "reviewDate",
            "order_direction": options.get("sort_order") or "desc",
            "limit": options.get("limit"),
            "start_after": options.get("start_after"),
        })

    def get_flagged_reviews(self, business_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Flagged, non-archived reviews, most urgent first."""
        options = options or {}
        filters = [
            {"field": "businessId", "operator": "==", "value": business_id},
            {"field": "flagging.isFlagged", "operator": "==", "value": True},
            {"field": "isArchived", "operator": "==", "value": False},
        ]
        return self.get_where(filters, {
            "order_by": "priorityScore",
            "order_direction": "desc",
            "limit": options.get("limit"),
            "start_after": options.get("start_after"),
        })

    def get_reviews_needing_response(
        self,
        business_id: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Unanswered, non-archived reviews; only 1-3 stars unless include_positive."""
        options = options or {}
        filters = [
            {"field": "businessId", "operator": "==", "value": business_id},
            {"field": "response.hasResponse", "operator": "==", "value": False},
            {"field": "isArchived", "operator": "==", "value": False},
        ]
        if options.get("include_positive") is not True:
            filters.append({"field": "rating", "operator": "<=", "value": NEEDS_RESPONSE_MAX_RATING})

        return self.get_where(filters, {
            "order_by": "priorityScore",
            "order_direction": "desc",
            "limit": options.get("limit"),
            "start_after": options.get("start_after"),
        })

    # ================================================================ updates

    def update_analysis(self, review_id: str, analysis_data: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(analysis_data, dict):
            raise APIError("analysis must be an object", "VALIDATION_ERROR", 400)
        return self.update(review_id, {"analysis": analysis_data})

    def flag_review(self, review_id: str, flag_data: Dict[str, Any]) -> Dict[str, Any]:
        """Manual (or explicit) flag. Overwrites the whole flagging block."""
        validate_required(flag_data, ["reason"])

        scoring = self.triage_engine.config.scoring
        priority = parse_priority(
            flag_data.get("priorityScore") or MANUAL_FLAG_DEFAULT_PRIORITY,
            scoring.min_score,
            scoring.max_score,
        )
        update_data = {
            "flagging": {
                "isFlagged": True,
                "reason": flag_data["reason"],
                "keywords": list(flag_data.get("keywords") or []),
                "flaggedAt": utc_now(),
                "flaggedBy": flag_data.get("flaggedBy") or "system",
            },
            "priorityScore": priority,
        }
        return self.update(review_id, update_data)

    def unflag_review(self, review_id: str) -> Dict[str, Any]:
        return self.update(review_id, {
            "flagging": {**default_flagging(), "unflaggedAt": utc_now()},
        })

    def archive_review(self, review_id: str) -> Dict[str, Any]:
        return self.update(review_id, {"isArchived": True, "archivedAt": utc_now()})

    def unarchive_review(self, review_id: str) -> Dict[str, Any]:
        return self.update(review_id, {"isArchived": False, "unarchivedAt": utc_now()})

    def mark_as_responded(self, review_id: str, response_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Set hasResponse / lastResponseAt and bump responseCount in one store write."""
        return self.increment(review_id, "response.responseCount", set_fields={
            "response.hasResponse": True,
            "response.lastResponseAt": utc_now(),
        })

    # ================================================================ stats

    def get_review_stats(self, business_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Stats over up to COUNT_LIMIT reviews, archived included."""
        page = self.get_business_reviews(business_id, {
            "include_archived": True,
            "limit": COUNT_LIMIT,
        })
        return self.stats_aggregator.build_stats(page["documents"]).to_dict()

    # ================================================================ media

    def add_review_media(self, review_id: str, media_data: Dict[str, Any]) -> Dict[str, Any]:
        validate_required(media_data, REQUIRED_MEDIA_FIELDS)
        self.get_by_id(review_id)

        media_doc = {
            "type": media_data["type"],
            "url": media_data["url"],
            "thumbnailUrl": media_data.get("thumbnailUrl") or "",
            "caption": media_data.get("caption") or "",
            "metadata": media_data.get("metadata") or {
                "fileSize": 0,
                "width": 0,
                "height": 0,
                "format": "",
            },
        }
        media = BaseCRUD(self.store, media_collection(review_id)).create(media_doc)

        flag_field = "metadata.hasPhotos" if media_doc["type"] == MediaType.PHOTO.value else "metadata.hasVideo"
        self.update(review_id, {flag_field: True})
        return media

    def get_review_media(self, review_id: str) -> List[Dict[str, Any]]:
        self.get_by_id(review_id)
        page = BaseCRUD(self.store, media_collection(review_id)).get_where([], {
            "order_by": "createdAt",
            "order_direction": "asc",
            "limit": COUNT_LIMIT,
        })
        return page["documents"]
