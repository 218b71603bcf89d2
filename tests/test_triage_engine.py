"""
Tests for the ReviewDesk triage engine.

Covers:
- Priority score: rating bands, keyword tiers, length bonus, clamping
- Auto-flag decision: reason precedence and matched keywords
- Shared keyword configuration and purity
- CLI output

Usage:
    pytest tests/test_triage_engine.py -v
"""

import json

import pytest

from src.triage import (
    DEFAULT_TRIAGE_CONFIG,
    NEGATIVE_KEYWORDS,
    URGENT_KEYWORDS,
    FlagDecision,
    FlagReason,
    ReviewTriageEngine,
    TriageConfig,
    calculate_priority_score,
    decide_auto_flag,
    match_keywords,
)
from src.triage import cli


LONG_NEUTRAL_TEXT = "The visit was okay overall. " * 25  # > 500 chars, no keywords


# ============================================================================
# KEYWORD MATCHING
# ============================================================================

class TestMatchKeywords:

    def test_case_insensitive_substring(self):
        assert match_keywords("This was a LAWSUIT-worthy mess", URGENT_KEYWORDS) == ["lawsuit"]

    def test_preserves_tier_order_not_text_order(self):
        text = "rude and scam and terrible"
        assert match_keywords(text, NEGATIVE_KEYWORDS) == ["terrible", "scam", "rude"]

    def test_repeated_keyword_reported_once(self):
        assert match_keywords("awful awful awful", NEGATIVE_KEYWORDS) == ["awful"]

    def test_empty_and_none_text(self):
        assert match_keywords("", URGENT_KEYWORDS) == []
        assert match_keywords(None, URGENT_KEYWORDS) == []


# ============================================================================
# PRIORITY SCORE
# ============================================================================

class TestPriorityScore:

    def test_low_rating_empty_text(self):
        assert calculate_priority_score(1, "") == 8

    def test_five_stars_empty_text(self):
        assert calculate_priority_score(5, "") == 4

    def test_three_stars_neutral_text(self):
        assert calculate_priority_score(3, "this is fine") == 7

    def test_four_stars_no_adjustment(self):
        assert calculate_priority_score(4, "nice place") == 5

    def test_negative_tier_counts_once(self):
        # rating 4 (+0) and a negative-tier match (+2), however many hits
        assert calculate_priority_score(4, "terrible awful service") == 7

    def test_urgent_tier_dominates_negative(self):
        assert calculate_priority_score(4, "this was a lawsuit-worthy terrible experience") == 9

    def test_long_text_adds_one(self):
        assert len(LONG_NEUTRAL_TEXT) > 500
        assert calculate_priority_score(4, LONG_NEUTRAL_TEXT) == 6
        assert calculate_priority_score(5, LONG_NEUTRAL_TEXT) == 5

    def test_long_text_bonus_stacks_on_keyword_tier(self):
        # 5 + 0 (rating 4) + 2 (negative) + 1 (long)
        assert calculate_priority_score(4, "terrible " + LONG_NEUTRAL_TEXT) == 8
        # 5 + 0 + 4 (urgent) + 1
        assert calculate_priority_score(4, "legal " + LONG_NEUTRAL_TEXT) == 10

    def test_exactly_500_chars_has_no_bonus(self):
        assert calculate_priority_score(4, "a" * 500) == 5
        assert calculate_priority_score(4, "a" * 501) == 6

    def test_clamped_to_ten(self):
        text = "health and safety issue, terrible. " + LONG_NEUTRAL_TEXT
        # 5 + 3 + 4 + 1 = 13 before clamping
        assert calculate_priority_score(1, text) == 10

    def test_out_of_range_ratings_use_nearest_band(self):
        assert calculate_priority_score(0, "") == calculate_priority_score(1, "")
        assert calculate_priority_score(-7, "") == 8
        assert calculate_priority_score(6, "") == calculate_priority_score(5, "")
        assert calculate_priority_score(99, "") == 4

    def test_none_text_treated_as_empty(self):
        assert calculate_priority_score(3, None) == 7

    @pytest.mark.parametrize("rating", [-3, 0, 1, 2, 3, 4, 5, 6, 100])
    @pytest.mark.parametrize("text", [
        "",
        "lovely",
        "scam",
        "legal",
        "legal scam " * 100,
        LONG_NEUTRAL_TEXT,
    ])
    def test_always_within_bounds(self, rating, text):
        assert 1 <= calculate_priority_score(rating, text) <= 10

    def test_custom_config(self):
        config = TriageConfig(urgent_keywords=("refund",), negative_keywords=("meh",))
        assert calculate_priority_score(4, "I want a refund", config) == 9
        assert calculate_priority_score(4, "lawsuit", config) == 5


# ============================================================================
# AUTO-FLAG DECISION
# ============================================================================

class TestAutoFlagDecision:

    def test_low_rating_alone(self):
        decision = decide_auto_flag(1, "fine")
        assert decision.should_flag is True
        assert decision.reason == FlagReason.LOW_RATING
        assert decision.keywords == []

    def test_negative_keyword_on_five_stars(self):
        decision = decide_auto_flag(5, "this was a scam")
        assert decision.should_flag is True
        assert decision.reason == FlagReason.NEGATIVE_KEYWORDS
        assert decision.keywords == ["scam"]

    def test_urgent_overrides_low_rating_and_negative(self):
        decision = decide_auto_flag(1, "lawsuit and scam")
        assert decision.should_flag is True
        assert decision.reason == FlagReason.URGENT_KEYWORDS
        assert "lawsuit" in decision.keywords
        assert "scam" not in decision.keywords

    def test_urgent_collects_every_match_in_tier_order(self):
        decision = decide_auto_flag(4, "Safety problem, legal action, a lawsuit")
        assert decision.keywords == ["lawsuit", "legal", "safety"]

    def test_low_rating_keeps_precedence_over_negative(self):
        decision = decide_auto_flag(2, "rude and unprofessional")
        assert decision.reason == FlagReason.LOW_RATING
        assert decision.keywords == ["rude", "unprofessional"]

    def test_no_flag(self):
        decision = decide_auto_flag(4, "Lovely staff, will return")
        assert decision == FlagDecision.no_flag()
        assert decision.reason == FlagReason.NONE
        assert decision.keywords == []

    def test_three_stars_not_flagged_without_keywords(self):
        assert decide_auto_flag(3, "average").should_flag is False

    def test_out_of_range_low_rating_flags(self):
        assert decide_auto_flag(0, "").reason == FlagReason.LOW_RATING

    def test_keywords_only_for_keyword_reasons_when_unflagged(self):
        decision = decide_auto_flag(5, "")
        assert not decision.reason.is_keyword_based
        assert decision.keywords == []


class TestFlagDecisionRendering:

    def test_to_flagging_sets_system_actor(self):
        decision = decide_auto_flag(5, "worst meal ever")
        flagging = decision.to_flagging("system", flagged_at="2026-01-01T00:00:00+00:00")
        assert flagging == {
            "isFlagged": True,
            "reason": "negative_keywords",
            "keywords": ["worst"],
            "flaggedAt": "2026-01-01T00:00:00+00:00",
            "flaggedBy": "system",
        }

    def test_to_flagging_without_flag_is_cleared(self):
        flagging = FlagDecision.no_flag().to_flagging("system")
        assert flagging["isFlagged"] is False
        assert flagging["flaggedAt"] is None

    def test_to_dict(self):
        assert decide_auto_flag(1, "fine").to_dict() == {
            "shouldFlag": True,
            "reason": "low_rating",
            "keywords": [],
        }


# ============================================================================
# ENGINE
# ============================================================================

class TestReviewTriageEngine:

    def setup_method(self):
        self.engine = ReviewTriageEngine()

    def test_uses_default_config(self):
        assert self.engine.config is DEFAULT_TRIAGE_CONFIG

    def test_triage_combines_score_and_decision(self):
        result = self.engine.triage({"rating": 2, "text": "Rude staff, awful wait"})
        assert result.priority_score == 10
        assert result.decision.reason == FlagReason.LOW_RATING
        assert result.is_high_priority

    def test_triage_is_pure(self):
        review = {"rating": 1, "text": "health hazard, terrible"}
        assert self.engine.triage(review) == self.engine.triage(review)
        assert review == {"rating": 1, "text": "health hazard, terrible"}

    def test_triage_missing_text(self):
        result = self.engine.triage({"rating": 5})
        assert result.priority_score == 4
        assert result.decision.should_flag is False

    def test_scorer_and_flagger_share_tiers(self):
        config = TriageConfig(urgent_keywords=("mould",), negative_keywords=())
        engine = ReviewTriageEngine(config)
        result = engine.triage({"rating": 4, "text": "Mould in the bathroom"})
        assert result.priority_score == 9
        assert result.decision.reason == FlagReason.URGENT_KEYWORDS
        assert result.decision.keywords == ["mould"]

    def test_to_dict(self):
        result = self.engine.triage({"rating": 5, "text": "this was a scam"})
        assert result.to_dict() == {
            "priorityScore": 6,
            "flag": {"shouldFlag": True, "reason": "negative_keywords", "keywords": ["scam"]},
        }


# ============================================================================
# CLI
# ============================================================================

class TestTriageCli:

    def test_score_json(self, capsys):
        code = cli.main(["score", "--rating", "1", "--text", "lawsuit and scam", "--json"])
        assert code == 0
        output = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert output["priorityScore"] == 10
        assert output["flag"]["reason"] == "urgent_keywords"

    def test_score_human_readable(self, capsys):
        assert cli.main(["score", "--rating", "5", "--text", "great"]) == 0
        out = capsys.readouterr().out
        assert "Priority score: 4/10" in out
        assert "Flagged: no" in out

    def test_batch(self, tmp_path, capsys):
        path = tmp_path / "reviews.json"
        path.write_text(json.dumps([
            {"id": "a", "rating": 5, "text": "lovely"},
            {"id": "b", "rating": "1", "text": "scam"},
            {"text": "no rating"},
        ]))
        assert cli.main(["batch", str(path)]) == 0
        lines = [json.loads(l) for l in capsys.readouterr().out.strip().splitlines() if l.startswith("{")]
        assert [l["id"] for l in lines] == ["a", "b"]
        assert lines[1]["flag"]["reason"] == "low_rating"

    def test_batch_unreadable_file(self, tmp_path):
        assert cli.main(["batch", str(tmp_path / "missing.json")]) == 1

    def test_no_command(self):
        assert cli.main([]) == 1
