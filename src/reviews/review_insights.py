"""
Review Stats Aggregator
=======================

Aggregates a business's review documents into the ReviewStats shown on
the dashboard: totals, rating distribution, per-platform averages, and
flag / response counts. ResponseStatsAggregator does the same for
review responses (publishing status, AI generation figures).

Usage:
    aggregator = ReviewStatsAggregator()
    stats = aggregator.build_stats(reviews)
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List

from .review_models import MAX_RATING, MIN_RATING, PublishingStatus, ResponseStats, ResponseType, ReviewStats

logger = logging.getLogger(__name__)


def _round1(value: float) -> float:
    return round(value * 10) / 10


class ReviewStatsAggregator:
    """Pure aggregation over already-loaded review documents."""

    def build_stats(self, reviews: List[Dict[str, Any]]) -> ReviewStats:
        """
        Build statistics from review documents.

        avgRating and responseRate are rounded to one decimal;
        per-platform avgRating is left unrounded. Ratings outside 1-5 count
        towards totals and averages but not the distribution.
        """
        if not reviews:
            return ReviewStats()

        total = len(reviews)
        avg_rating = sum(r.get("rating", 0) for r in reviews) / total

        distribution = {rating: 0 for rating in range(MIN_RATING, MAX_RATING + 1)}
        for review in reviews:
            rating = review.get("rating")
            if rating in distribution:
                distribution[rating] += 1
            else:
                logger.warning(f"Review {review.get('id')} has out-of-range rating {rating}")

        ratings_by_platform: Dict[str, List[int]] = defaultdict(list)
        for review in reviews:
            ratings_by_platform[review.get("platform", "unknown")].append(review.get("rating", 0))

        platform_breakdown = {
            platform: {
                "count": len(ratings),
                "avgRating": sum(ratings) / len(ratings),
            }
            for platform, ratings in ratings_by_platform.items()
        }

        flagged = sum(1 for r in reviews if (r.get("flagging") or {}).get("isFlagged"))
        responded = sum(1 for r in reviews if (r.get("response") or {}).get("hasResponse"))

        return ReviewStats(
            total=total,
            avg_rating=_round1(avg_rating),
            rating_distribution=distribution,
            platform_breakdown=platform_breakdown,
            flagged_count=flagged,
            responded_count=responded,
            response_rate=_round1(responded / total * 100),
        )


def _status(response: Dict[str, Any]) -> str:
    return (response.get("publishing") or {}).get("status")


def _generation(response: Dict[str, Any]) -> Dict[str, Any]:
    return response.get("aiGeneration") or {}


class ResponseStatsAggregator:
    """Publishing and AI-generation figures over response documents."""

    def build_stats(self, responses: List[Dict[str, Any]]) -> ResponseStats:
        if not responses:
            return ResponseStats()

        total = len(responses)
        published = sum(1 for r in responses if _status(r) == PublishingStatus.PUBLISHED.value)
        timed = [
            _generation(r)["generationTimeMs"]
            for r in responses
            if r.get("responseType") == ResponseType.AI_GENERATED.value and _generation(r).get("generationTimeMs")
        ]

        return ResponseStats(
            total=total,
            published=published,
            pending=sum(1 for r in responses if _status(r) == PublishingStatus.PENDING.value),
            failed=sum(1 for r in responses if _status(r) == PublishingStatus.FAILED.value),
            publish_rate=_round1(published / total * 100),
            ai_generated=sum(1 for r in responses if r.get("responseType") == ResponseType.AI_GENERATED.value),
            manual=sum(1 for r in responses if r.get("responseType") == ResponseType.MANUAL.value),
            template=sum(1 for r in responses if r.get("responseType") == ResponseType.TEMPLATE.value),
            avg_generation_time=int(sum(timed) / len(timed) + 0.5) if timed else 0,
        )

    def build_ai_metrics(self, ai_responses: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Confidence, timing and provider breakdown for AI-generated responses.

        avgConfidence is rounded to two decimals, successRate (percent
        published) to one.
        """
        if not ai_responses:
            return {
                "totalGenerated": 0,
                "avgConfidence": 0,
                "avgGenerationTime": 0,
                "providerBreakdown": {},
                "successRate": 0,
            }

        total = len(ai_responses)
        by_provider: Dict[str, List[float]] = defaultdict(list)
        for response in ai_responses:
            generation = _generation(response)
            by_provider[generation.get("provider") or "unknown"].append(generation.get("confidence") or 0)

        confidence = sum(_generation(r).get("confidence") or 0 for r in ai_responses) / total
        generation_time = sum(_generation(r).get("generationTimeMs") or 0 for r in ai_responses) / total
        published = sum(1 for r in ai_responses if _status(r) == PublishingStatus.PUBLISHED.value)

        return {
            "totalGenerated": total,
            "avgConfidence": round(confidence * 100) / 100,
            "avgGenerationTime": int(generation_time + 0.5),
            "providerBreakdown": {
                provider: {"count": len(scores), "avgConfidence": sum(scores) / len(scores)}
                for provider, scores in by_provider.items()
            },
            "successRate": _round1(published / total * 100),
        }
