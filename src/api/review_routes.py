"""
Review Management API Routes
============================

POST /api/triage                                   — triage preview, nothing stored
POST /api/reviews                                  — create (scores + auto-flags)
GET  /api/reviews/{review_id}                      — fetch one review
PUT  /api/reviews/{review_id}/analysis             — store AI analysis
POST /api/reviews/{review_id}/flag | unflag        — manual flagging
POST /api/reviews/{review_id}/archive | unarchive
POST /api/reviews/{review_id}/responded            — response tracking
POST /api/reviews/{review_id}/media, GET .../media
GET  /api/businesses/{business_id}/reviews[/flagged|/needing-response|/stats]

Every endpoint answers with the success / error envelope from errors.py.
"""

import logging
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Body, Query, Request
from fastapi.responses import JSONResponse

from ..reviews import ReviewsService
from .errors import APIError, format_error, format_response
from .models import TriageRequest, TriageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Reviews"])


def get_reviews_service(request: Request) -> ReviewsService:
    return request.app.state.reviews_service


def envelope(operation: Callable[[], Any], message: str, status_code: int = 200) -> JSONResponse:
    """Run a service call and wrap its outcome in the response envelope."""
    try:
        result = operation()
    except APIError as e:
        return JSONResponse(format_error(e), status_code=e.status_code)
    except Exception:
        logger.exception("Unhandled error in review endpoint")
        error = APIError("Internal server error", "INTERNAL_ERROR", 500)
        return JSONResponse(format_error(error), status_code=error.status_code)
    return JSONResponse(format_response(result, message), status_code=status_code)


# ============================================================================
# TRIAGE PREVIEW
# ============================================================================

@router.post("/triage")
def triage_review(payload: TriageRequest, request: Request):
    """Score and flag-check a review without storing anything."""
    service = get_reviews_service(request)

    def run():
        result = service.triage_engine.triage(payload.model_dump())
        return TriageResponse.from_result(result).model_dump(mode="json")

    return envelope(run, "Review triaged successfully")


# ============================================================================
# SINGLE REVIEW
# ============================================================================

@router.post("/reviews")
def create_review(request: Request, review_data: Dict[str, Any] = Body(...)):
    service = get_reviews_service(request)
    return envelope(lambda: service.create_review(review_data), "Review created successfully", 201)


@router.get("/reviews/{review_id}")
def get_review(review_id: str, request: Request):
    service = get_reviews_service(request)
    return envelope(lambda: service.get_by_id(review_id), "Review retrieved successfully")


@router.put("/reviews/{review_id}/analysis")
def update_review_analysis(review_id: str, request: Request, analysis_data: Dict[str, Any] = Body(...)):
    service = get_reviews_service(request)
    return envelope(
        lambda: service.update_analysis(review_id, analysis_data),
        "Review analysis updated successfully",
    )


@router.post("/reviews/{review_id}/flag")
def flag_review(review_id: str, request: Request, flag_data: Dict[str, Any] = Body(...)):
    service = get_reviews_service(request)
    return envelope(lambda: service.flag_review(review_id, flag_data), "Review flagged successfully")


@router.post("/reviews/{review_id}/unflag")
def unflag_review(review_id: str, request: Request):
    service = get_reviews_service(request)
    return envelope(lambda: service.unflag_review(review_id), "Review unflagged successfully")


@router.post("/reviews/{review_id}/archive")
def archive_review(review_id: str, request: Request):
    service = get_reviews_service(request)
    return envelope(lambda: service.archive_review(review_id), "Review archived successfully")


@router.post("/reviews/{review_id}/unarchive")
def unarchive_review(review_id: str, request: Request):
    service = get_reviews_service(request)
    return envelope(lambda: service.unarchive_review(review_id), "Review unarchived successfully")


@router.post("/reviews/{review_id}/responded")
def mark_review_as_responded(
    review_id: str,
    request: Request,
    response_data: Optional[Dict[str, Any]] = Body(None),
):
    service = get_reviews_service(request)
    return envelope(
        lambda: service.mark_as_responded(review_id, response_data),
        "Review marked as responded successfully",
    )


@router.post("/reviews/{review_id}/media")
def add_review_media(review_id: str, request: Request, media_data: Dict[str, Any] = Body(...)):
    service = get_reviews_service(request)
    return envelope(
        lambda: service.add_review_media(review_id, media_data),
        "Review media added successfully",
        201,
    )


@router.get("/reviews/{review_id}/media")
def get_review_media(review_id: str, request: Request):
    service = get_reviews_service(request)
    return envelope(lambda: service.get_review_media(review_id), "Review media retrieved successfully")


# ============================================================================
# BUSINESS LISTINGS
# ============================================================================

@router.get("/businesses/{business_id}/reviews")
def get_business_reviews(
    business_id: str,
    request: Request,
    platform: Optional[str] = Query(None),
    min_rating: Optional[int] = Query(None, ge=1, le=5),
    max_rating: Optional[int] = Query(None, ge=1, le=5),
    flagged: Optional[bool] = Query(None),
    has_response: Optional[bool] = Query(None),
    include_archived: bool = Query(False),
    sort_by: str = Query("reviewDate"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(25, ge=1, le=1000),
    start_after: Optional[str] = Query(None),
):
    service = get_reviews_service(request)
    options = {
        "platform": platform,
        "min_rating": min_rating,
        "max_rating": max_rating,
        "flagged": flagged,
        "has_response": has_response,
        "include_archived": include_archived,
        "sort_by": sort_by,
        "sort_order": sort_order,
        "limit": limit,
        "start_after": start_after,
    }
    return envelope(
        lambda: service.get_business_reviews(business_id, options),
        "Business reviews retrieved successfully",
    )


@router.get("/businesses/{business_id}/reviews/flagged")
def get_flagged_reviews(
    business_id: str,
    request: Request,
    limit: int = Query(25, ge=1, le=1000),
    start_after: Optional[str] = Query(None),
):
    service = get_reviews_service(request)
    options = {"limit": limit, "start_after": start_after}
    return envelope(
        lambda: service.get_flagged_reviews(business_id, options),
        "Flagged reviews retrieved successfully",
    )


@router.get("/businesses/{business_id}/reviews/needing-response")
def get_reviews_needing_response(
    business_id: str,
    request: Request,
    include_positive: bool = Query(False),
    limit: int = Query(25, ge=1, le=1000),
    start_after: Optional[str] = Query(None),
):
    service = get_reviews_service(request)
    options = {"include_positive": include_positive, "limit": limit, "start_after": start_after}
    return envelope(
        lambda: service.get_reviews_needing_response(business_id, options),
        "Reviews needing response retrieved successfully",
    )


@router.get("/businesses/{business_id}/reviews/stats")
def get_review_stats(business_id: str, request: Request):
    service = get_reviews_service(request)
    return envelope(
        lambda: service.get_review_stats(business_id),
        "Review statistics retrieved successfully",
    )
