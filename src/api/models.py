"""
ReviewDesk API Models
=====================

Pydantic models for the typed endpoints (triage preview, health).
Review CRUD endpoints take and return plain documents inside the
success / error envelope.
"""

from pydantic import BaseModel, Field
from typing import List

from ..triage import FlagReason, TriageResult


class TriageRequest(BaseModel):
    """Review fields the triage engine looks at."""
    rating: int
    text: str = ""


class FlagDecisionModel(BaseModel):
    """Auto-flag decision."""
    shouldFlag: bool = Field(alias="should_flag")
    reason: FlagReason
    keywords: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class TriageResponse(BaseModel):
    """Priority score plus flag decision for a review."""
    priorityScore: int = Field(alias="priority_score", ge=1, le=10)
    isHighPriority: bool = Field(alias="is_high_priority")
    flag: FlagDecisionModel

    class Config:
        populate_by_name = True

    @classmethod
    def from_result(cls, result: TriageResult) -> "TriageResponse":
        return cls(
            priority_score=result.priority_score,
            is_high_priority=result.is_high_priority,
            flag=FlagDecisionModel(
                should_flag=result.decision.should_flag,
                reason=result.decision.reason,
                keywords=list(result.decision.keywords),
            ),
        )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    store: str
