"""
Review Response API Routes
==========================

POST   /api/responses                                  — create (marks the review responded)
GET    /api/responses/{response_id}
PUT    /api/responses/{response_id}/text               — author-only edit
POST   /api/responses/{response_id}/publish | publish-failed
PUT    /api/responses/{response_id}/performance
DELETE /api/responses/{response_id}?user_id=...        — author-only delete
GET    /api/reviews/{review_id}/response               — latest response for a review
GET    /api/businesses/{business_id}/responses[/pending|/failed|/stats|/ai-metrics]
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Query, Request

from ..reviews import ResponsesService
from .review_routes import envelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Responses"])


def get_responses_service(request: Request) -> ResponsesService:
    return request.app.state.responses_service


@router.post("/responses")
def create_response(request: Request, response_data: Dict[str, Any] = Body(...)):
    service = get_responses_service(request)
    return envelope(lambda: service.create_response(response_data), "Response created successfully", 201)


@router.get("/responses/{response_id}")
def get_response(response_id: str, request: Request):
    service = get_responses_service(request)
    return envelope(lambda: service.get_by_id(response_id), "Response retrieved successfully")


@router.put("/responses/{response_id}/text")
def update_response_text(response_id: str, request: Request, payload: Dict[str, Any] = Body(...)):
    service = get_responses_service(request)
    return envelope(
        lambda: service.update_response_text(response_id, payload.get("responseText"), payload.get("userId")),
        "Response text updated successfully",
    )


@router.post("/responses/{response_id}/publish")
def publish_response(response_id: str, request: Request, publishing_data: Dict[str, Any] = Body(...)):
    service = get_responses_service(request)
    return envelope(
        lambda: service.publish_response(response_id, publishing_data),
        "Response published successfully",
    )


@router.post("/responses/{response_id}/publish-failed")
def mark_publishing_failed(
    response_id: str,
    request: Request,
    payload: Optional[Dict[str, Any]] = Body(None),
):
    service = get_responses_service(request)
    return envelope(
        lambda: service.mark_publishing_failed(response_id, (payload or {}).get("error")),
        "Response marked as failed successfully",
    )


@router.put("/responses/{response_id}/performance")
def update_response_performance(response_id: str, request: Request, performance: Dict[str, Any] = Body(...)):
    service = get_responses_service(request)
    return envelope(
        lambda: service.update_performance(response_id, performance),
        "Response performance updated successfully",
    )


@router.delete("/responses/{response_id}")
def delete_response(response_id: str, request: Request, user_id: str = Query(...)):
    service = get_responses_service(request)
    return envelope(lambda: service.delete_response(response_id, user_id), "Response deleted successfully")


@router.get("/reviews/{review_id}/response")
def get_response_by_review(review_id: str, request: Request):
    service = get_responses_service(request)
    return envelope(lambda: service.get_response_by_review_id(review_id), "Response retrieved successfully")


# ============================================================================
# BUSINESS LISTINGS
# ============================================================================

@router.get("/businesses/{business_id}/responses")
def get_business_responses(
    business_id: str,
    request: Request,
    status: Optional[str] = Query(None, pattern="^(pending|published|failed)$"),
    response_type: Optional[str] = Query(None, pattern="^(manual|ai_generated|template)$"),
    sort_by: str = Query("createdAt"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(25, ge=1, le=1000),
    start_after: Optional[str] = Query(None),
):
    service = get_responses_service(request)
    options = {
        "status": status,
        "response_type": response_type,
        "sort_by": sort_by,
        "sort_order": sort_order,
        "limit": limit,
        "start_after": start_after,
    }
    return envelope(
        lambda: service.get_business_responses(business_id, options),
        "Business responses retrieved successfully",
    )


@router.get("/businesses/{business_id}/responses/pending")
def get_pending_responses(
    business_id: str,
    request: Request,
    limit: int = Query(25, ge=1, le=1000),
    start_after: Optional[str] = Query(None),
):
    service = get_responses_service(request)
    options = {"limit": limit, "start_after": start_after}
    return envelope(
        lambda: service.get_pending_responses(business_id, options),
        "Pending responses retrieved successfully",
    )


@router.get("/businesses/{business_id}/responses/failed")
def get_failed_responses(
    business_id: str,
    request: Request,
    limit: int = Query(25, ge=1, le=1000),
    start_after: Optional[str] = Query(None),
):
    service = get_responses_service(request)
    options = {"limit": limit, "start_after": start_after}
    return envelope(
        lambda: service.get_failed_responses(business_id, options),
        "Failed responses retrieved successfully",
    )


@router.get("/businesses/{business_id}/responses/stats")
def get_response_stats(business_id: str, request: Request):
    service = get_responses_service(request)
    return envelope(
        lambda: service.get_response_stats(business_id),
        "Response statistics retrieved successfully",
    )


@router.get("/businesses/{business_id}/responses/ai-metrics")
def get_ai_metrics(business_id: str, request: Request):
    service = get_responses_service(request)
    return envelope(lambda: service.get_ai_metrics(business_id), "AI metrics retrieved successfully")
