"""Pydantic models for API request/response serialization.

These models mirror the feedguard dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from feedguard.moderation.service import MAX_WINDOW_DAYS

ContentTypeLiteral = Literal["post", "reply", "profile"]
SeverityLiteral = Literal["low", "medium", "high"]


# ---------------------------------------------------------------------------
# Analysis models
# ---------------------------------------------------------------------------


class CategoryScoresResponse(BaseModel):
    """Mirrors feedguard.analysis.models.CategoryScores."""

    toxicity: float = 0.0
    spam: float = 0.0
    profanity: float = 0.0
    threat: float = 0.0
    personal_info: float = 0.0


class AnalysisResultResponse(BaseModel):
    """Mirrors feedguard.analysis.models.AnalysisResult."""

    scores: CategoryScoresResponse = Field(default_factory=CategoryScoresResponse)
    confidence: float = 0.0
    severity: SeverityLiteral = "low"
    suggested_action: Literal["approve", "review", "block"] = "approve"
    should_flag: bool = False
    moderation_tags: list[str] = Field(default_factory=list)
    flag_reason: Optional[str] = None


class SettingsPayload(BaseModel):
    """Partial settings update; omitted fields keep their current value.

    Accepts snake_case or camelCase keys (``flag_threshold`` / ``flagThreshold``).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    flag_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)
    enable_toxicity_detection: Optional[bool] = None
    enable_spam_detection: Optional[bool] = None
    enable_profanity_filter: Optional[bool] = None
    enable_threat_detection: Optional[bool] = None
    enable_personal_info_detection: Optional[bool] = None


class SettingsResponse(BaseModel):
    """Mirrors feedguard.analysis.models.AnalysisOptions."""

    flag_threshold: float
    enable_toxicity_detection: bool
    enable_spam_detection: bool
    enable_profanity_filter: bool
    enable_threat_detection: bool
    enable_personal_info_detection: bool


class AnalyzeRequest(BaseModel):
    """Request body for a dry-run analysis."""

    text: str
    options: Optional[SettingsPayload] = None


# ---------------------------------------------------------------------------
# Publish-decision models
# ---------------------------------------------------------------------------


class ModerateRequest(BaseModel):
    """Mirrors feedguard.moderation.models.ContentSubmission."""

    text: str
    content_type: ContentTypeLiteral
    author_id: str = Field(..., min_length=1)
    content_id: Optional[str] = None


class BulkModerateRequest(BaseModel):
    submissions: list[ModerateRequest] = Field(default_factory=list)


class PublishDecisionResponse(BaseModel):
    """Mirrors feedguard.moderation.models.PublishDecision."""

    content_id: str
    allowed: bool
    filtered: bool
    filtered_content: Optional[str] = None
    queue_id: Optional[str] = None
    analysis: AnalysisResultResponse


# ---------------------------------------------------------------------------
# Queue models
# ---------------------------------------------------------------------------


class QueueItemResponse(BaseModel):
    """Mirrors feedguard.moderation.models.QueueItem."""

    id: str
    content_id: str
    content_type: ContentTypeLiteral
    content: str
    user_id: str
    flag_reason: str = ""
    severity: SeverityLiteral
    confidence: float = 0.0
    moderation_tags: list[str] = Field(default_factory=list)
    created_at: str
    status: Literal["pending", "escalated", "reviewed"]
    analysis: AnalysisResultResponse


class DecisionRequest(BaseModel):
    """Request body for a reviewer decision."""

    decision: Literal["approve", "reject", "escalate"]
    reason: Optional[str] = None


class CleanupRequest(BaseModel):
    max_age_days: float = Field(30, ge=0, le=MAX_WINDOW_DAYS)


class CleanupResponse(BaseModel):
    removed: int


# ---------------------------------------------------------------------------
# Audit models
# ---------------------------------------------------------------------------


class ModerationActionResponse(BaseModel):
    """Mirrors feedguard.moderation.models.ModerationAction."""

    id: str
    content_id: str
    content_type: ContentTypeLiteral
    action: Literal["approved", "blocked", "flagged"]
    automated: bool
    severity: SeverityLiteral
    reason: str = ""
    timestamp: str
    reviewer_id: Optional[str] = None
    moderation_tags: list[str] = Field(default_factory=list)


class QueueStatsResponse(BaseModel):
    pending: int = 0
    escalated: int = 0
    total_in_queue: int = 0


class ModerationStatsResponse(BaseModel):
    """Mirrors feedguard.moderation.models.ModerationStats."""

    total: int = 0
    automated: int = 0
    manual: int = 0
    action_breakdown: dict[str, int] = Field(default_factory=dict)
    severity_breakdown: dict[str, int] = Field(default_factory=dict)
    queue: QueueStatsResponse = Field(default_factory=QueueStatsResponse)
    automation_rate: float = 0.0
