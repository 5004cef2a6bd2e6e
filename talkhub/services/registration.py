"""Registration Engine — admits members into a lecture's attendee set under its capacity.

Invariants:
    - |attendees| <= capacity at every observable instant, under any interleaving
    - Admission is ONE conditional UPDATE on the lecture row:
        registered_count += 1
        WHERE status = 'scheduled' AND starts_at > now
          AND registered_count < capacity AND member not yet registered
      followed by the attendee INSERT, committed together
    - Nothing is written when the UPDATE matches no row; the lecture is then
      re-read only to explain the refusal
    - A clean re-read after a refused UPDATE means the row changed in between:
      retry up to registration_max_attempts, then ConcurrencyError

Design Decisions:
    - Conditional update over SELECT ... FOR UPDATE: works the same on PostgreSQL
      (row lock + predicate re-check) and SQLite (BEGIN IMMEDIATE serializes writers)
    - The unique (lecture_id, member_id) constraint and the registered_count CHECK
      are backstops; their IntegrityError is mapped to a conflict, never a 500
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talkhub.config import Settings
from talkhub.core.clock import utc_now
from talkhub.core.domain_types import Identity, LectureStatus
from talkhub.core.enforce_registration import registration_block
from talkhub.core.errors import (
    AlreadyRegisteredError, ConcurrencyError, ErrorContext, ResourceNotFoundError,
)
from talkhub.models.lecture import Lecture
from talkhub.models.lecture_registration import LectureRegistration

logger = logging.getLogger(__name__)


async def register(
    db: AsyncSession,
    lecture_id: UUID,
    member: Identity,
    settings: Settings,
    now: datetime | None = None,
) -> Lecture:
    """Register member for lecture. Returns the lecture as committed."""
    context = ErrorContext(lecture_id=str(lecture_id), member_id=member.user_id)
    attempts = max(1, settings.registration_max_attempts)

    for attempt in range(1, attempts + 1):
        at = now or utc_now()
        if await _admit(db, lecture_id, member.user_id, at):
            db.add(LectureRegistration(
                lecture_id=lecture_id, member_id=member.user_id,
            ))
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise AlreadyRegisteredError(context)
            logger.info(
                "Member registered",
                extra={"lecture_id": str(lecture_id), "member_id": member.user_id},
            )
            return await _reload(db, lecture_id)

        await db.rollback()
        lecture, registered = await _snapshot(db, lecture_id, member.user_id)
        if lecture is None:
            await db.rollback()
            raise ResourceNotFoundError("Lecture", str(lecture_id), context)
        block = registration_block(
            lecture.status, lecture.starts_at, lecture.registered_count,
            lecture.capacity, at, already_registered=registered,
        )
        # rollback expires `lecture`; every attribute was read above
        await db.rollback()
        if block is not None:
            block.context = context
            raise block
        logger.warning(
            "Registration raced with a concurrent change, retrying",
            extra={"lecture_id": str(lecture_id), "attempt": attempt},
        )

    raise ConcurrencyError(
        "Lecture changed concurrently, please retry the registration", context,
    )


async def is_registered(db: AsyncSession, lecture_id: UUID, member_id: str) -> bool:
    return bool(await db.scalar(
        select(exists().where(
            LectureRegistration.lecture_id == lecture_id,
            LectureRegistration.member_id == member_id,
        )),
    ))


async def registered_lecture_ids(
    db: AsyncSession, member_id: str, lecture_ids: list[UUID],
) -> set[UUID]:
    """Subset of lecture_ids the member is registered for (one query)."""
    if not lecture_ids:
        return set()
    result = await db.execute(
        select(LectureRegistration.lecture_id).where(
            LectureRegistration.member_id == member_id,
            LectureRegistration.lecture_id.in_(lecture_ids),
        ),
    )
    return set(result.scalars().all())


# ─── Helpers ─────────────────────────────────────────────────────

async def _admit(
    db: AsyncSession, lecture_id: UUID, member_id: str, now: datetime,
) -> bool:
    """Claim one seat atomically. True iff the seat was taken by this call."""
    already = exists().where(
        LectureRegistration.lecture_id == lecture_id,
        LectureRegistration.member_id == member_id,
    )
    result = await db.execute(
        update(Lecture)
        .where(
            Lecture.id == lecture_id,
            Lecture.status == LectureStatus.SCHEDULED.value,
            Lecture.starts_at > now,
            Lecture.registered_count < Lecture.capacity,
            ~already,
        )
        .values(registered_count=Lecture.registered_count + 1, updated_at=now)
        .execution_options(synchronize_session=False),
    )
    return result.rowcount == 1


async def _snapshot(
    db: AsyncSession, lecture_id: UUID, member_id: str,
) -> tuple[Lecture | None, bool]:
    result = await db.execute(
        select(Lecture)
        .where(Lecture.id == lecture_id)
        .execution_options(populate_existing=True),
    )
    lecture = result.scalar_one_or_none()
    if lecture is None:
        return None, False
    return lecture, await is_registered(db, lecture_id, member_id)


async def _reload(db: AsyncSession, lecture_id: UUID) -> Lecture:
    result = await db.execute(
        select(Lecture)
        .where(Lecture.id == lecture_id)
        .execution_options(populate_existing=True),
    )
    return result.scalar_one()
