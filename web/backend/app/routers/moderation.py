"""Moderation router -- analysis, publish decisions, review queue, audit and settings."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from feedguard.analysis.models import AnalysisResult, Severity
from feedguard.errors import InvalidTransitionError, SettingsValidationError
from feedguard.moderation.models import (
    ContentSubmission,
    ContentType,
    ModerationAction,
    PublishDecision,
    QueueItem,
    QueueStatus,
    ReviewDecision,
)
from feedguard.moderation.service import MAX_WINDOW_DAYS, ModerationService
from feedguard.moderation.settings import merge_settings, settings_to_dict
from web.backend.app.middleware.auth import get_reviewer_id
from web.backend.app.models.api import (
    AnalysisResultResponse,
    AnalyzeRequest,
    BulkModerateRequest,
    CleanupRequest,
    CleanupResponse,
    DecisionRequest,
    ModerateRequest,
    ModerationActionResponse,
    ModerationStatsResponse,
    PublishDecisionResponse,
    QueueItemResponse,
    SettingsPayload,
    SettingsResponse,
)

router = APIRouter(prefix="/api/moderation", tags=["moderation"])


# ---------------------------------------------------------------------------
# Service singleton
# ---------------------------------------------------------------------------

_service: ModerationService | None = None


def get_service() -> ModerationService:
    global _service
    if _service is None:
        from feedguard.config import build_service

        _service = build_service()
    return _service


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _analysis_response(result: AnalysisResult) -> AnalysisResultResponse:
    return AnalysisResultResponse(**result.to_dict())


def _decision_response(decision: PublishDecision) -> PublishDecisionResponse:
    return PublishDecisionResponse(
        content_id=decision.content_id,
        allowed=decision.allowed,
        filtered=decision.filtered,
        filtered_content=decision.filtered_content,
        queue_id=decision.queue_id,
        analysis=_analysis_response(decision.analysis),
    )


def _item_response(item: QueueItem) -> QueueItemResponse:
    return QueueItemResponse(**item.to_dict())


def _action_response(action: ModerationAction) -> ModerationActionResponse:
    return ModerationActionResponse(**action.to_dict())


def _submission(body: ModerateRequest) -> ContentSubmission:
    return ContentSubmission(
        text=body.text,
        content_type=ContentType(body.content_type),
        author_id=body.author_id,
        content_id=body.content_id,
    )


# ---------------------------------------------------------------------------
# Analysis & publish decisions
# ---------------------------------------------------------------------------


@router.post(
    "/analyze",
    response_model=AnalysisResultResponse,
    summary="Score text without recording anything",
)
async def analyze_text(body: AnalyzeRequest, service: ModerationService = Depends(get_service)):
    """Dry run: options in the body override the current settings for this call only."""
    options = service.get_settings()
    if body.options is not None:
        try:
            options = merge_settings(options, body.options.model_dump(exclude_none=True))
        except SettingsValidationError as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    result = service.analyzer.analyze(body.text, options)
    return _analysis_response(result)


@router.post(
    "/moderate",
    response_model=PublishDecisionResponse,
    summary="Decide whether content may be published",
)
async def moderate(body: ModerateRequest, service: ModerationService = Depends(get_service)):
    submission = _submission(body)
    decision = service.moderate_before_publish(
        submission.text, submission.content_type, submission.author_id, submission.content_id
    )
    return _decision_response(decision)


@router.post(
    "/bulk",
    response_model=list[PublishDecisionResponse],
    summary="Moderate several submissions",
)
async def moderate_bulk(body: BulkModerateRequest, service: ModerationService = Depends(get_service)):
    """Results are returned in submission order."""
    decisions = service.bulk_moderate([_submission(s) for s in body.submissions])
    return [_decision_response(d) for d in decisions]


# ---------------------------------------------------------------------------
# Review queue
# ---------------------------------------------------------------------------


@router.get(
    "/queue",
    response_model=list[QueueItemResponse],
    summary="List queue items, most severe and newest first",
)
async def list_queue(
    status_filter: Optional[Literal["pending", "escalated", "reviewed"]] = Query(None, alias="status"),
    severity: Optional[Literal["low", "medium", "high"]] = Query(None),
    content_type: Optional[Literal["post", "reply", "profile"]] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: ModerationService = Depends(get_service),
):
    items = service.list_queue(
        status=QueueStatus(status_filter) if status_filter else None,
        severity=Severity(severity) if severity else None,
        content_type=ContentType(content_type) if content_type else None,
        limit=limit,
        offset=offset,
    )
    return [_item_response(i) for i in items]


@router.get(
    "/queue/{queue_id}",
    response_model=QueueItemResponse,
    summary="Get a single queue item",
)
async def get_queue_item(queue_id: str, service: ModerationService = Depends(get_service)):
    item = service.get_item(queue_id)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Queue item '{queue_id}' not found",
        )
    return _item_response(item)


@router.post(
    "/queue/{queue_id}/decision",
    response_model=QueueItemResponse,
    summary="Record a reviewer decision",
)
async def decide(
    queue_id: str,
    body: DecisionRequest,
    reviewer_id: str = Depends(get_reviewer_id),
    service: ModerationService = Depends(get_service),
):
    """Approve, reject or escalate a queue item. Rejections need a reason."""
    if body.decision == "reject" and not (body.reason and body.reason.strip()):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A reason is required to reject content",
        )

    try:
        item = service.process_decision(queue_id, ReviewDecision(body.decision), reviewer_id, body.reason)
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Queue item '{queue_id}' not found",
        )
    return _item_response(item)


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    summary="Remove old reviewed queue items",
)
async def cleanup(body: CleanupRequest, service: ModerationService = Depends(get_service)):
    removed = service.cleanup(body.max_age_days)
    return CleanupResponse(removed=removed)


# ---------------------------------------------------------------------------
# Audit & statistics
# ---------------------------------------------------------------------------


@router.get(
    "/history/{content_id}",
    response_model=list[ModerationActionResponse],
    summary="Moderation history of one piece of content, newest first",
)
async def get_history(content_id: str, service: ModerationService = Depends(get_service)):
    return [_action_response(a) for a in service.get_history(content_id)]


@router.get(
    "/stats",
    response_model=ModerationStatsResponse,
    summary="Aggregate moderation statistics",
)
async def get_stats(
    days: Optional[int] = Query(None, ge=1, le=MAX_WINDOW_DAYS, description="Only count the last N days"),
    service: ModerationService = Depends(get_service),
):
    start = datetime.now(timezone.utc) - timedelta(days=days) if days else None
    return ModerationStatsResponse(**dataclasses.asdict(service.get_stats(start=start)))


@router.get(
    "/export",
    response_class=PlainTextResponse,
    summary="Export the audit log as JSON or CSV",
)
async def export_history(
    fmt: Literal["json", "csv"] = Query("json", alias="format"),
    service: ModerationService = Depends(get_service),
):
    media_type = "text/csv" if fmt == "csv" else "application/json"
    return PlainTextResponse(service.export_history(fmt), media_type=media_type)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@router.get(
    "/settings",
    response_model=SettingsResponse,
    summary="Current detection settings",
)
async def get_settings(service: ModerationService = Depends(get_service)):
    return SettingsResponse(**settings_to_dict(service.get_settings()))


@router.put(
    "/settings",
    response_model=SettingsResponse,
    summary="Update detection settings",
)
async def update_settings(body: SettingsPayload, service: ModerationService = Depends(get_service)):
    """Partial update; omitted fields keep their value."""
    try:
        updated = service.update_settings(body.model_dump(exclude_none=True))
    except SettingsValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return SettingsResponse(**settings_to_dict(updated))
