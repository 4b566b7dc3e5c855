"""
Trust Engine - Contributions Router

HTTP surface over the submission pipeline, signals, reputation and the
notification inbox. The caller's identity arrives in the X-User-Id header,
set by the upstream auth layer; an absent header means a guest.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from ...core.errors import (
    ERROR_ACCESS_DENIED,
    ERROR_CONFLICT,
    ERROR_INVALID_IDENTITY,
    ERROR_MODERATION_REJECTED,
    ERROR_PERSISTENCE,
    ERROR_SCHEMA_MISSING,
    ERROR_STORAGE_PERMISSION,
    ERROR_VALIDATION,
)
from ...core.models import (
    CallerContext,
    NotificationRecord,
    SignalToggleResult,
    SubmissionRequest,
    SubmissionResult,
)
from ...pipeline.submission import ContributionPipeline, build_default_pipeline
from ...repositories import PostgresProfileStore, PostgresSignalStore
from ...services.notification_service import PostgresNotificationSender
from ...services.reputation import ReputationService, ReputationStatus
from ...services.signal_service import SignalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Contributions"])

# HTTP status for a failed SubmissionResult
_STATUS_BY_ERROR_CODE = {
    ERROR_VALIDATION: 422,
    ERROR_INVALID_IDENTITY: 401,
    ERROR_ACCESS_DENIED: 403,
    ERROR_MODERATION_REJECTED: 422,
    ERROR_CONFLICT: 409,
    ERROR_PERSISTENCE: 503,
    ERROR_SCHEMA_MISSING: 503,
    ERROR_STORAGE_PERMISSION: 503,
}


# =============================================================================
# Dependencies
# =============================================================================


@lru_cache(maxsize=1)
def get_pipeline() -> ContributionPipeline:
    return build_default_pipeline()


@lru_cache(maxsize=1)
def get_notification_sender() -> PostgresNotificationSender:
    return PostgresNotificationSender()


def get_signal_service() -> SignalService:
    return SignalService(PostgresSignalStore(), PostgresProfileStore(), get_notification_sender())


def get_reputation_service() -> ReputationService:
    return ReputationService(PostgresProfileStore())


def get_caller(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> CallerContext:
    """Explicit caller context; a missing or blank header is a guest."""
    identity = (x_user_id or "").strip()
    return CallerContext(identity_id=identity or None)


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/contributions", response_model=SubmissionResult)
async def submit_contribution(
    request: SubmissionRequest,
    caller: CallerContext = Depends(get_caller),
    pipeline: ContributionPipeline = Depends(get_pipeline),
):
    """Submit a contribution. Failures come back as a SubmissionResult body."""
    result = await pipeline.submit(caller, request)
    if result.success:
        return JSONResponse(status_code=201, content=result.model_dump(mode="json"))

    status_code = _STATUS_BY_ERROR_CODE.get(result.error_code or "", 500)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.post("/contributions/{contribution_id}/signals/raise-hand", response_model=SignalToggleResult)
async def toggle_raise_hand(
    contribution_id: str,
    caller: CallerContext = Depends(get_caller),
    signals: SignalService = Depends(get_signal_service),
) -> SignalToggleResult:
    return await signals.toggle_raise_hand(caller, contribution_id)


@router.get("/reputation/{user_id}", response_model=ReputationStatus)
async def get_reputation(
    user_id: str,
    reputation: ReputationService = Depends(get_reputation_service),
) -> ReputationStatus:
    status = await reputation.get_status(user_id)
    if status is None:
        raise HTTPException(status_code=404, detail=f"No profile for user {user_id}")
    return status


@router.get("/notifications/{user_id}", response_model=list[NotificationRecord])
async def list_notifications(
    user_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    sender: PostgresNotificationSender = Depends(get_notification_sender),
) -> list[NotificationRecord]:
    return await sender.list_for_user(user_id, limit=limit)


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    sender: PostgresNotificationSender = Depends(get_notification_sender),
) -> dict[str, bool]:
    if not await sender.mark_read(notification_id):
        raise HTTPException(status_code=404, detail=f"Notification {notification_id} not found")
    return {"success": True}
