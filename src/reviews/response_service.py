"""
Review Responses Service
========================

Replies written to reviews (manual, AI-generated or from a template) and
their publishing lifecycle on the source platform:

    pending -> published
            -> failed

Creating a response marks the review as responded (see
ReviewsService.mark_as_responded).
"""

import logging
from typing import Any, Dict, Optional

from ..api.crud import COUNT_LIMIT, BaseCRUD
from ..api.errors import APIError, utc_now, validate_required
from ..store import DocumentStore
from .review_insights import ResponseStatsAggregator
from .review_models import (
    REQUIRED_RESPONSE_FIELDS,
    RESPONSES_COLLECTION,
    PublishingStatus,
    ResponseType,
    default_publishing,
)
from .review_service import ReviewsService

logger = logging.getLogger(__name__)


def _permission_denied() -> APIError:
    return APIError("Permission denied", "PERMISSION_DENIED", 403)


class ResponsesService(BaseCRUD):
    """Response operations on top of BaseCRUD."""

    def __init__(self, store: DocumentStore, reviews: Optional[ReviewsService] = None):
        super().__init__(store, RESPONSES_COLLECTION)
        self.reviews = reviews or ReviewsService(store)
        self.stats_aggregator = ResponseStatsAggregator()

    def create_response(self, response_data: Dict[str, Any]) -> Dict[str, Any]:
        validate_required(response_data, REQUIRED_RESPONSE_FIELDS)

        response_type = response_data["responseType"]
        if response_type not in {t.value for t in ResponseType}:
            raise APIError(f"Invalid responseType: {response_type}", "VALIDATION_ERROR", 400)

        review_id = response_data["reviewId"]
        self.reviews.get_by_id(review_id)

        ai_generation = None
        if response_type == ResponseType.AI_GENERATED.value:
            ai_generation = {
                "provider": response_data.get("aiProvider") or "claude",
                "confidence": response_data.get("aiConfidence") or 0,
                "promptVersion": response_data.get("promptVersion") or "v1.0",
                "generationTimeMs": response_data.get("generationTimeMs") or 0,
                "alternatives": response_data.get("alternatives") or [],
            }

        template = None
        if response_data.get("templateId"):
            template = {
                "templateId": response_data["templateId"],
                "variables": response_data.get("templateVariables") or {},
            }

        response_doc = {
            "reviewId": review_id,
            "businessId": response_data["businessId"],
            "userId": response_data["userId"],
            "responseText": str(response_data["responseText"]).strip(),
            "responseType": response_type,
            "aiGeneration": ai_generation,
            "template": template,
            "publishing": default_publishing(),
            "performance": {"helpfulVotes": 0, "totalVotes": 0},
            "editCount": 0,
            "lastEditedAt": None,
        }

        result = self.create(response_doc)
        self.reviews.mark_as_responded(review_id)
        logger.info(
            f"Created {response_type} response {result['id']} for review {review_id}",
            extra={"review_id": review_id, "business_id": result["businessId"]},
        )
        return result

    # ================================================================ reads

    def get_business_responses(self, business_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Options: status, response_type, sort_by, sort_order, limit, start_after."""
        options = options or {}
        filters = [{"field": "businessId", "operator": "==", "value": business_id}]
        if options.get("status"):
            filters.append({"field": "publishing.status", "operator": "==", "value": options["status"]})
        if options.get("response_type"):
            filters.append({"field": "responseType", "operator": "==", "value": options["response_type"]})

        return self.get_where(filters, {
            "order_by": options.get("sort_by") or "createdAt",
            "order_direction": options.get("sort_order") or "desc",
            "limit": options.get("limit"),
            "start_after": options.get("start_after"),
        })

    def get_response_by_review_id(self, review_id: str) -> Optional[Dict[str, Any]]:
        """Latest response for a review, or None."""
        page = self.get_where(
            [{"field": "reviewId", "operator": "==", "value": review_id}],
            {"limit": 1},
        )
        return page["documents"][0] if page["documents"] else None

    def _by_status(self, business_id: str, status: PublishingStatus, direction: str, options) -> Dict[str, Any]:
        options = options or {}
        filters = [
            {"field": "businessId", "operator": "==", "value": business_id},
            {"field": "publishing.status", "operator": "==", "value": status.value},
        ]
        return self.get_where(filters, {
            "order_by": "createdAt",
            "order_direction": direction,
            "limit": options.get("limit"),
            "start_after": options.get("start_after"),
        })

    def get_pending_responses(self, business_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Oldest first, so the publishing queue drains in order."""
        return self._by_status(business_id, PublishingStatus.PENDING, "asc", options)

    def get_failed_responses(self, business_id: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._by_status(business_id, PublishingStatus.FAILED, "desc", options)

    # ================================================================ updates

    def update_response_text(self, response_id: str, new_text: str, user_id: str) -> Dict[str, Any]:
        """Author-only edit. A published response goes back to pending."""
        response = self.get_by_id(response_id)
        if response.get("userId") != user_id:
            raise _permission_denied()
        if not isinstance(new_text, str) or not new_text.strip():
            raise APIError("Missing required fields: responseText", "VALIDATION_ERROR", 400)

        changes: Dict[str, Any] = {
            "responseText": new_text.strip(),
            "lastEditedAt": utc_now(),
        }
        if (response.get("publishing") or {}).get("isPublished"):
            changes["publishing.status"] = PublishingStatus.PENDING.value

        return self.increment(response_id, "editCount", set_fields=changes)

    def publish_response(self, response_id: str, publishing_data: Dict[str, Any]) -> Dict[str, Any]:
        validate_required(publishing_data, ["platformResponseId"])
        return self.update(response_id, {
            "publishing": {
                "isPublished": True,
                "publishedAt": utc_now(),
                "status": PublishingStatus.PUBLISHED.value,
                "error": None,
                "platformResponseId": publishing_data["platformResponseId"],
                "platformResponseUrl": publishing_data.get("platformResponseUrl"),
            },
        })

    def mark_publishing_failed(self, response_id: str, error_message: Optional[str] = None) -> Dict[str, Any]:
        logger.warning(f"Publishing failed for response {response_id}: {error_message}")
        return self.update(response_id, {
            "publishing": {
                **default_publishing(),
                "status": PublishingStatus.FAILED.value,
                "error": error_message or "Unknown error",
            },
        })

    def update_performance(self, response_id: str, performance_data: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(performance_data, dict):
            raise APIError("performance must be an object", "VALIDATION_ERROR", 400)
        return self.update(response_id, {"performance": performance_data})

    def delete_response(self, response_id: str, user_id: str) -> Dict[str, Any]:
        response = self.get_by_id(response_id)
        if response.get("userId") != user_id:
            raise _permission_denied()
        return self.delete(response_id)

    # ================================================================ stats

    def get_response_stats(self, business_id: str) -> Dict[str, Any]:
        page = self.get_business_responses(business_id, {"limit": COUNT_LIMIT})
        return self.stats_aggregator.build_stats(page["documents"]).to_dict()

    def get_ai_metrics(self, business_id: str) -> Dict[str, Any]:
        page = self.get_business_responses(business_id, {
            "response_type": ResponseType.AI_GENERATED.value,
            "limit": COUNT_LIMIT,
        })
        return self.stats_aggregator.build_ai_metrics(page["documents"])
