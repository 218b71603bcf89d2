"""
Review Triage Engine (Deterministic)
====================================

Scores incoming reviews for priority and decides whether they should be
auto-flagged for staff attention. Pure functions over (rating, text)
with no I/O.

Persisting the decision is the caller's job (see
src.reviews.review_service.apply_auto_flag).

Usage:
    engine = ReviewTriageEngine()
    result = engine.triage({"rating": 2, "text": "Rude staff, awful wait"})
    result.priority_score   # 10
    result.decision.reason  # FlagReason.LOW_RATING
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .triage_config import DEFAULT_TRIAGE_CONFIG, TriageConfig
from .triage_models import FlagDecision, FlagReason, TriageResult

logger = logging.getLogger(__name__)


def match_keywords(text: Optional[str], keywords: Iterable[str]) -> List[str]:
    """
    Return every keyword found in text, in keyword order.

    Case-insensitive substring match against the lower-cased full text,
    so "lawsuit-worthy" matches "lawsuit".
    """
    if not text:
        return []
    lower_text = text.lower()
    return [kw for kw in keywords if kw in lower_text]


def calculate_priority_score(
    rating: int,
    text: Optional[str],
    config: TriageConfig = DEFAULT_TRIAGE_CONFIG,
) -> int:
    """
    Compute the 1-10 priority score (10 = most urgent).

    Out-of-range ratings never raise: below 1 lands in the low band,
    above 5 in the high band.
    """
    cfg = config.scoring
    text = text or ""
    score = cfg.base_score

    if rating <= cfg.low_rating_max:
        score += cfg.low_rating_bonus
    elif rating == cfg.mid_rating:
        score += cfg.mid_rating_bonus
    elif rating >= cfg.high_rating_min:
        score += cfg.high_rating_penalty

    if match_keywords(text, config.urgent_keywords):
        score += cfg.urgent_keyword_bonus
    elif match_keywords(text, config.negative_keywords):
        score += cfg.negative_keyword_bonus

    if len(text) > cfg.long_text_threshold:
        score += cfg.long_text_bonus

    return min(cfg.max_score, max(cfg.min_score, score))


def decide_auto_flag(
    rating: int,
    text: Optional[str],
    config: TriageConfig = DEFAULT_TRIAGE_CONFIG,
) -> FlagDecision:
    """
    Decide whether a new review is flagged automatically, and why.

    Reason precedence: urgent_keywords > low_rating > negative_keywords.
    Keywords carry every match of the tier that was checked last
    (urgent if any urgent term matched, negative otherwise).
    """
    should_flag = False
    reason = FlagReason.NONE
    keywords: List[str] = []

    if rating <= config.auto_flag_rating_max:
        should_flag = True
        reason = FlagReason.LOW_RATING

    found_urgent = match_keywords(text, config.urgent_keywords)
    if found_urgent:
        should_flag = True
        reason = FlagReason.URGENT_KEYWORDS
        keywords = found_urgent
    else:
        found_negative = match_keywords(text, config.negative_keywords)
        if found_negative:
            should_flag = True
            if reason is FlagReason.NONE:
                reason = FlagReason.NEGATIVE_KEYWORDS
            keywords = found_negative

    if not should_flag:
        return FlagDecision.no_flag()

    return FlagDecision(should_flag=True, reason=reason, keywords=keywords)


class ReviewTriageEngine:
    """
    Thin holder for a TriageConfig.

    Lets callers swap keyword tiers (e.g. per-business vocabularies)
    without threading the config through every call.
    """

    def __init__(self, config: Optional[TriageConfig] = None):
        self.config = config or DEFAULT_TRIAGE_CONFIG

    def score(self, rating: int, text: Optional[str]) -> int:
        return calculate_priority_score(rating, text, self.config)

    def decide(self, rating: int, text: Optional[str]) -> FlagDecision:
        return decide_auto_flag(rating, text, self.config)

    def triage(self, review: Dict[str, Any]) -> TriageResult:
        """
        Triage a review record.

        Args:
            review: Dict with at least 'rating' and 'text' keys.

        Returns:
            TriageResult with the priority score and flag decision.
        """
        rating = review["rating"]
        text = review.get("text") or ""

        result = TriageResult(
            priority_score=self.score(rating, text),
            decision=self.decide(rating, text),
        )
        logger.debug(
            "Triaged review: rating=%s priority=%d reason=%s",
            rating, result.priority_score, result.decision.reason.value,
        )
        return result
