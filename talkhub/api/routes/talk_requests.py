"""Talk Request Routes — submission and the admin approve/reject decision.

Invariants:
    - POST /requests is open to any authenticated caller, decisions are admin-only
    - Approval responds with both the decided request and the materialized lecture

Design Decisions:
    - Thin routes: validation, transactions and logging live in services/approval_workflow.py
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from talkhub.api.identity import get_current_identity, require_admin
from talkhub.config import Settings, get_settings
from talkhub.core.clock import utc_now
from talkhub.core.domain_types import DecisionState, Identity
from talkhub.infrastructure.database import get_db
from talkhub.schemas.lecture import LectureView
from talkhub.schemas.talk_request import (
    DecisionBody, TalkRequestCreate, TalkRequestResponse,
)
from talkhub.services import approval_workflow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/requests", tags=["talk-requests"])


@router.post(
    "", response_model=TalkRequestResponse, status_code=status.HTTP_201_CREATED,
)
async def create_request(
    body: TalkRequestCreate,
    caller: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Submit a talk proposal; it stays pending until an admin decides."""
    request = await approval_workflow.create_request(db, caller, body, settings)
    return TalkRequestResponse.from_model(request, settings.schedule_timezone)


@router.get("", response_model=list[TalkRequestResponse])
async def list_requests(
    decision: DecisionState | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    requests = await approval_workflow.list_requests(db, decision, limit, offset)
    return [
        TalkRequestResponse.from_model(r, settings.schedule_timezone)
        for r in requests
    ]


@router.get("/{request_id}", response_model=TalkRequestResponse)
async def get_request(
    request_id: UUID,
    caller: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    request = await approval_workflow.get_request_for(db, request_id, caller)
    return TalkRequestResponse.from_model(request, settings.schedule_timezone)


@router.post("/{request_id}/approve")
async def approve_request(
    request_id: UUID,
    body: DecisionBody | None = None,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Approve a pending request and create its lecture."""
    request, lecture = await approval_workflow.approve_request(
        db, request_id, body.message if body else None, settings,
    )
    tz = settings.schedule_timezone
    return {
        "message": "Talk request approved successfully",
        "request": TalkRequestResponse.from_model(request, tz),
        "lecture": LectureView.from_model(
            lecture, admin, utc_now(), is_registered=False, tz_name=tz,
        ),
    }


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: UUID,
    body: DecisionBody,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Reject a pending request. A message explaining the reason is required."""
    request = await approval_workflow.reject_request(db, request_id, body.message)
    return {
        "message": "Talk request rejected",
        "request": TalkRequestResponse.from_model(
            request, settings.schedule_timezone,
        ),
    }
