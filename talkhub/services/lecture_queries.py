"""Lecture Queries — listings, detail, search and "my talks", all read-only.

Invariants:
    - Nothing here writes; display status comes from core/status_projection.py
    - upcoming: starts_at > now AND stored status in (scheduled, ongoing), soonest first
    - past: starts_at <= now, any stored status, most recent first
    - all (admin only): every lecture whatever its status or start, most recent first
    - the optional status filter matches the STORED status
    - is_registered is resolved for the whole page in one query
    - search matches tag VALUES one by one (json_each / json_array_elements_text),
      so JSON punctuation in the query never matches

Design Decisions:
    - Listings filter on the projected status, expressed in SQL from stored status
      + start time, so a date-passed "scheduled" lecture moves to past listings
      without anyone writing "completed" to storage
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from talkhub.core.domain_types import (
    DecisionState, Identity, LectureStatus, ListingWindow,
)
from talkhub.core.errors import (
    ErrorContext, PermissionDeniedError, ResourceNotFoundError,
)
from talkhub.core.status_projection import UPCOMING_STORED_STATUSES
from talkhub.models.lecture import Lecture
from talkhub.models.talk_request import TalkRequest
from talkhub.services.registration import registered_lecture_ids

logger = logging.getLogger(__name__)

MY_TALK_LECTURE_STATUSES = (LectureStatus.SCHEDULED, LectureStatus.ONGOING)
MY_TALK_REQUEST_DECISIONS = (DecisionState.PENDING, DecisionState.REJECTED)


async def list_lectures(
    db: AsyncSession,
    caller: Identity,
    window: ListingWindow,
    now: datetime,
    limit: int = 50,
    offset: int = 0,
    status: LectureStatus | None = None,
) -> list[tuple[Lecture, bool]]:
    """Projected listing with the caller's registration flag per lecture."""
    query = select(Lecture)
    if window is ListingWindow.UPCOMING:
        query = query.where(
            Lecture.starts_at > now,
            Lecture.status.in_([s.value for s in UPCOMING_STORED_STATUSES]),
        ).order_by(Lecture.starts_at.asc())
    elif window is ListingWindow.PAST:
        query = query.where(Lecture.starts_at <= now).order_by(
            Lecture.starts_at.desc(),
        )
    else:
        if not caller.is_admin:
            raise PermissionDeniedError()
        query = query.order_by(Lecture.starts_at.desc())
    if status is not None:
        query = query.where(Lecture.status == status.value)
    result = await db.execute(query.limit(limit).offset(offset))
    return await _with_registration_flags(db, caller, list(result.scalars().all()))


async def get_lecture_or_404(db: AsyncSession, lecture_id: UUID) -> Lecture:
    result = await db.execute(select(Lecture).where(Lecture.id == lecture_id))
    lecture = result.scalar_one_or_none()
    if not lecture:
        raise ResourceNotFoundError(
            "Lecture", str(lecture_id), ErrorContext(lecture_id=str(lecture_id)),
        )
    return lecture


async def search_lectures(
    db: AsyncSession,
    caller: Identity,
    text: str,
    limit: int = 50,
) -> list[tuple[Lecture, bool]]:
    """Case-insensitive substring search over title, description, tags, instructor."""
    pattern = f"%{_escape_like(text.strip())}%"
    query = (
        select(Lecture)
        .where(or_(
            Lecture.title.ilike(pattern, escape="\\"),
            Lecture.description.ilike(pattern, escape="\\"),
            _tag_matches(db.get_bind().dialect.name, pattern),
            Lecture.instructor_id.ilike(pattern, escape="\\"),
        ))
        .order_by(Lecture.starts_at.desc())
        .limit(limit)
    )
    result = await db.execute(query)
    lectures = list(result.scalars().all())
    logger.debug(f"Search '{text}' matched {len(lectures)} lecture(s)")
    return await _with_registration_flags(db, caller, lectures)


async def my_talks(
    db: AsyncSession, caller: Identity,
) -> tuple[list[Lecture], list[TalkRequest]]:
    """Caller's live lectures plus their pending/rejected requests."""
    lectures = await db.execute(
        select(Lecture).where(
            Lecture.instructor_id == caller.user_id,
            Lecture.status.in_([s.value for s in MY_TALK_LECTURE_STATUSES]),
        ),
    )
    requests = await db.execute(
        select(TalkRequest).where(
            TalkRequest.proposer_id == caller.user_id,
            TalkRequest.decision.in_([d.value for d in MY_TALK_REQUEST_DECISIONS]),
        ),
    )
    return list(lectures.scalars().all()), list(requests.scalars().all())


# ─── Helpers ─────────────────────────────────────────────────────

async def _with_registration_flags(
    db: AsyncSession, caller: Identity, lectures: list[Lecture],
) -> list[tuple[Lecture, bool]]:
    registered = await registered_lecture_ids(
        db, caller.user_id, [lecture.id for lecture in lectures],
    )
    return [(lecture, lecture.id in registered) for lecture in lectures]


def _escape_like(text: str) -> str:
    return (
        text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )


def _tag_matches(dialect_name: str, pattern: str):
    """EXISTS over the individual tag values, never the serialized JSON text."""
    if dialect_name == "sqlite":
        tags = func.json_each(Lecture.tags).table_valued("value")
    else:
        # PostgreSQL needs the column list on the alias: AS anon(value)
        tags = func.json_array_elements_text(Lecture.tags).table_valued(
            "value",
        ).render_derived()
    return (
        select(tags.c.value)
        .where(tags.c.value.ilike(pattern, escape="\\"))
        .exists()
    )
