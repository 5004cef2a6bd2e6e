"""Lecture Administration — stored-status transitions and recording references.

Invariants:
    - Transitions are checked against the STORED status (core/enforce_lecture_status.py)
    - The status write is conditional on the status that was checked; a concurrent
      change makes the call fail with the status that won instead of overwriting it
    - Only the lecture's instructor or an admin can attach a recording
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from talkhub.core.clock import utc_now
from talkhub.core.domain_types import Identity, LectureStatus
from talkhub.core.enforce_fields import check_http_url
from talkhub.core.enforce_lecture_status import check_recording_allowed, check_transition
from talkhub.core.errors import (
    ErrorContext, InvalidStatusTransitionError, PermissionDeniedError,
)
from talkhub.models.lecture import Lecture
from talkhub.services.lecture_queries import get_lecture_or_404

logger = logging.getLogger(__name__)


async def change_status(
    db: AsyncSession,
    lecture_id: UUID,
    target: LectureStatus,
    message: str | None = None,
    now: datetime | None = None,
) -> Lecture:
    lecture = await get_lecture_or_404(db, lecture_id)
    current = lecture.status
    check_transition(current, target.value)

    values: dict = {"status": target.value, "updated_at": now or utc_now()}
    if message and message.strip():
        values["admin_message"] = message.strip()
    result = await db.execute(
        update(Lecture)
        .where(Lecture.id == lecture_id, Lecture.status == current)
        .values(**values)
        .execution_options(synchronize_session=False),
    )
    if result.rowcount != 1:
        await db.rollback()
        winner = await db.scalar(select(Lecture.status).where(Lecture.id == lecture_id))
        raise InvalidStatusTransitionError(
            winner or current, target.value, ErrorContext(lecture_id=str(lecture_id)),
        )
    await db.commit()
    await db.refresh(lecture)
    logger.info(
        f"Lecture status {current} -> {target.value}",
        extra={"lecture_id": str(lecture_id)},
    )
    return lecture


async def attach_recording(
    db: AsyncSession,
    lecture_id: UUID,
    caller: Identity,
    recording_url: str,
    now: datetime | None = None,
) -> Lecture:
    lecture = await get_lecture_or_404(db, lecture_id)
    if not caller.is_admin and caller.user_id != lecture.instructor_id:
        raise PermissionDeniedError(
            "Only the instructor or an admin can attach a recording",
        )
    check_recording_allowed(lecture.status, lecture.starts_at, now or utc_now())
    check_http_url(recording_url, "recording_url", "Recording link")

    lecture.recording = recording_url.strip()
    await db.commit()
    await db.refresh(lecture)
    logger.info("Recording attached", extra={"lecture_id": str(lecture_id)})
    return lecture
