"""
ReviewDesk Reviews
==================

Review management on top of the document store.

Modules:
    review_models    — Document layout, defaults, ReviewStats / ResponseStats
    review_insights  — Per-business review and response stats aggregation
    review_service   — ReviewsService (CRUD + triage on create), apply_auto_flag
    response_service — ResponsesService (replies and their publishing lifecycle)
"""

from .review_models import (
    RESPONSES_COLLECTION,
    REVIEWS_COLLECTION,
    MediaType,
    PublishingStatus,
    ResponseStats,
    ResponseType,
    ReviewAuthor,
    ReviewStats,
)
from .review_insights import ResponseStatsAggregator, ReviewStatsAggregator
from .review_service import ReviewsService, apply_auto_flag, parse_priority, parse_rating
from .response_service import ResponsesService
