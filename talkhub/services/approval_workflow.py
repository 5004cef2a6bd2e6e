"""Approval Workflow — talk-request creation and the admin approve/reject decision.

Invariants:
    - A request leaves pending exactly once; approved and rejected are terminal
    - Approval writes the new Lecture and the request decision in ONE transaction:
      either both are committed or neither is
    - The decision write is a conditional UPDATE (... WHERE decision = 'pending')
      issued BEFORE the Lecture insert, so a racing admin fails on the predicate
      (PostgreSQL: after waiting on the row lock) instead of on the unique index
    - A failed commit leaves the request pending and no Lecture; it surfaces as
      DatabaseError, never as a conflict
    - lectures.source_request_id is unique: the database refuses a second Lecture
      for the same request even if the conditional update were bypassed

Design Decisions:
    - Pure rules live in core/enforce_decision.py and core/enforce_fields.py;
      this module only sequences IO around them
    - synchronize_session=False on bulk updates: rowcount is the only thing read
      back, the ORM object is refreshed explicitly after commit
"""

import logging
import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talkhub.config import Settings
from talkhub.core.clock import utc_now
from talkhub.core.domain_types import (
    DecisionState, Identity, LectureStatus, location_to_columns,
)
from talkhub.core.enforce_decision import (
    approval_message, check_pending, lecture_fields_from_request, rejection_message,
)
from talkhub.core.enforce_fields import TalkFields, check_talk_fields, parse_talk_fields
from talkhub.core.errors import (
    AlreadyDecidedError, DatabaseError, ErrorContext, PermissionDeniedError,
    ResourceNotFoundError,
)
from talkhub.models.lecture import Lecture
from talkhub.models.talk_request import TalkRequest
from talkhub.schemas.talk_request import TalkRequestCreate

logger = logging.getLogger(__name__)


async def create_request(
    db: AsyncSession,
    proposer: Identity,
    body: TalkRequestCreate,
    settings: Settings,
    now: datetime | None = None,
) -> TalkRequest:
    """Validate and store a pending talk request."""
    fields = parse_talk_fields(
        body.model_dump(), now or utc_now(), settings.schedule_timezone,
    )
    request = TalkRequest(
        proposer_id=proposer.user_id,
        decision=DecisionState.PENDING.value,
        **_talk_columns(fields),
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)
    logger.info(
        "Talk request submitted",
        extra={"request_id": str(request.id), "member_id": proposer.user_id},
    )
    return request


async def get_request_or_404(db: AsyncSession, request_id: UUID) -> TalkRequest:
    result = await db.execute(
        select(TalkRequest).where(TalkRequest.id == request_id),
    )
    request = result.scalar_one_or_none()
    if not request:
        raise ResourceNotFoundError(
            "Talk request", str(request_id),
            ErrorContext(request_id=str(request_id)),
        )
    return request


async def get_request_for(
    db: AsyncSession, request_id: UUID, caller: Identity,
) -> TalkRequest:
    """Admins see every request; members only their own."""
    request = await get_request_or_404(db, request_id)
    if not caller.is_admin and request.proposer_id != caller.user_id:
        raise PermissionDeniedError("Access denied: not your talk request")
    return request


async def list_requests(
    db: AsyncSession,
    decision: DecisionState | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[TalkRequest]:
    query = select(TalkRequest).order_by(TalkRequest.created_at.desc())
    if decision is not None:
        query = query.where(TalkRequest.decision == decision.value)
    result = await db.execute(query.limit(limit).offset(offset))
    return list(result.scalars().all())


async def approve_request(
    db: AsyncSession,
    request_id: UUID,
    message: str | None,
    settings: Settings,
    now: datetime | None = None,
) -> tuple[TalkRequest, Lecture]:
    """Approve a pending request and materialize its Lecture atomically."""
    now = now or utc_now()
    request = await get_request_or_404(db, request_id)
    check_pending(request.decision)

    fields = lecture_fields_from_request(request)
    check_talk_fields(fields, now)

    lecture_id = uuid.uuid4()
    decided = await _decide(
        db, request.id,
        decision=DecisionState.APPROVED,
        admin_message=approval_message(message, settings.default_approval_message),
        lecture_id=lecture_id,
        decided_at=now,
    )
    if not decided:
        await _raise_already_decided(db, request_id)

    lecture = Lecture(
        id=lecture_id,
        instructor_id=request.proposer_id,
        status=LectureStatus.SCHEDULED.value,
        registered_count=0,
        source_request_id=request.id,
        registrations=[],
        **_talk_columns(fields),
    )
    db.add(lecture)
    try:
        await db.commit()
    except IntegrityError as e:
        logger.error(f"Approval commit failed: {e}", extra={"request_id": str(request_id)})
        await _raise_already_decided(db, request_id, failure="commit")

    await db.refresh(request)
    logger.info(
        "Talk request approved",
        extra={"request_id": str(request.id), "lecture_id": str(lecture.id)},
    )
    return request, lecture


async def reject_request(
    db: AsyncSession,
    request_id: UUID,
    message: str | None,
    now: datetime | None = None,
) -> TalkRequest:
    """Reject a pending request. The message is mandatory."""
    text = rejection_message(message)
    request = await get_request_or_404(db, request_id)
    check_pending(request.decision)

    decided = await _decide(
        db, request.id,
        decision=DecisionState.REJECTED,
        admin_message=text,
        lecture_id=None,
        decided_at=now or utc_now(),
    )
    if not decided:
        await _raise_already_decided(db, request_id)
    await db.commit()
    await db.refresh(request)
    logger.info("Talk request rejected", extra={"request_id": str(request.id)})
    return request


# ─── Helpers ─────────────────────────────────────────────────────

def _talk_columns(fields: TalkFields) -> dict:
    return {
        "title": fields.title,
        "description": fields.description,
        "starts_at": fields.starts_at,
        "duration": fields.duration,
        "capacity": fields.capacity,
        "prerequisites": list(fields.prerequisites),
        "tags": list(fields.tags),
        "materials": fields.materials,
        **location_to_columns(fields.location),
    }


async def _decide(
    db: AsyncSession,
    request_id: UUID,
    decision: DecisionState,
    admin_message: str,
    lecture_id: UUID | None,
    decided_at: datetime,
) -> bool:
    """Conditional pending → decision transition. True if this call won."""
    result = await db.execute(
        update(TalkRequest)
        .where(
            TalkRequest.id == request_id,
            TalkRequest.decision == DecisionState.PENDING.value,
        )
        .values(
            decision=decision.value,
            admin_message=admin_message,
            lecture_id=lecture_id,
            decided_at=decided_at,
        )
        .execution_options(synchronize_session=False),
    )
    return result.rowcount == 1


async def _raise_already_decided(
    db: AsyncSession, request_id: UUID, failure: str = "update",
) -> None:
    """Roll back the losing attempt and report the state that won.

    A request still pending after the rollback means nothing won the race:
    the write itself failed, which is a storage error, not a conflict.
    """
    await db.rollback()
    current = await db.scalar(
        select(TalkRequest.decision).where(TalkRequest.id == request_id),
    )
    context = ErrorContext(request_id=str(request_id))
    if current == DecisionState.PENDING.value:
        raise DatabaseError("decision was not applied", failure, context)
    logger.warning(
        "Concurrent decision lost",
        extra={"request_id": str(request_id), "decision": current},
    )
    raise AlreadyDecidedError(current or "decided", context)
