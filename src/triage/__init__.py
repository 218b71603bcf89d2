"""
ReviewDesk Triage Engine
========================

Deterministic priority scoring and auto-flagging of incoming reviews.
No storage, no network: plain data in, plain data out.

Modules:
    triage_config — Keyword tiers and scoring constants (shared, immutable)
    triage_models — FlagReason, FlagDecision, TriageResult
    triage_engine — Priority scorer, auto-flag decision, ReviewTriageEngine
"""

from .triage_config import (
    DEFAULT_TRIAGE_CONFIG,
    NEGATIVE_KEYWORDS,
    URGENT_KEYWORDS,
    PriorityScoringConfig,
    TriageConfig,
)
from .triage_models import FlagDecision, FlagReason, TriageResult
from .triage_engine import (
    ReviewTriageEngine,
    calculate_priority_score,
    decide_auto_flag,
    match_keywords,
)
