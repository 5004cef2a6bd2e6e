"""Lecture Routes — projected listings, detail, registration and administration.

Invariants:
    - Every lecture in a response is a LectureView: projected status + stored_status
    - is_registered is computed for the calling identity
    - Static paths (/search, /mine) are registered before /{lecture_id}

Design Decisions:
    - `now` is taken once per request so every item of a page is projected
      against the same instant
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from talkhub.api.identity import get_current_identity, require_admin
from talkhub.config import Settings, get_settings
from talkhub.core.clock import ensure_utc, utc_now
from talkhub.core.domain_types import Identity, LectureStatus, ListingWindow
from talkhub.core.status_projection import project_status
from talkhub.infrastructure.database import get_db
from talkhub.schemas.lecture import LectureView, MyTalkItem, RecordingBody, StatusChange
from talkhub.services import lecture_admin, lecture_queries, registration

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/lectures", tags=["lectures"])


@router.get("", response_model=list[LectureView])
async def list_lectures(
    when: ListingWindow = Query(ListingWindow.UPCOMING),
    status: LectureStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Upcoming or past lectures, projected for display; `all` is admin-only."""
    now = utc_now()
    rows = await lecture_queries.list_lectures(
        db, caller, when, now, limit, offset, status,
    )
    return [
        LectureView.from_model(
            lecture, caller, now, registered, settings.schedule_timezone,
        )
        for lecture, registered in rows
    ]


@router.get("/search", response_model=list[LectureView])
async def search_lectures(
    q: str = Query(..., min_length=1, max_length=200),
    caller: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    now = utc_now()
    rows = await lecture_queries.search_lectures(db, caller, q)
    return [
        LectureView.from_model(
            lecture, caller, now, registered, settings.schedule_timezone,
        )
        for lecture, registered in rows
    ]


@router.get("/mine", response_model=list[MyTalkItem])
async def my_talks(
    caller: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Caller's scheduled lectures together with their pending/rejected requests."""
    now = utc_now()
    lectures, requests = await lecture_queries.my_talks(db, caller)
    items = [
        MyTalkItem(
            id=lecture.id,
            title=lecture.title,
            starts_at=ensure_utc(lecture.starts_at),
            status=project_status(lecture.status, lecture.starts_at, now).value,
            is_request=False,
            capacity=lecture.capacity,
            registered_count=lecture.registered_count,
            admin_message=lecture.admin_message,
        )
        for lecture in lectures
    ]
    items.extend(
        MyTalkItem(
            id=request.id,
            title=request.title,
            starts_at=ensure_utc(request.starts_at),
            status=request.decision,
            is_request=True,
            capacity=request.capacity,
            admin_message=request.admin_message,
        )
        for request in requests
    )
    items.sort(key=lambda item: item.starts_at)
    return items


@router.get("/{lecture_id}", response_model=LectureView)
async def get_lecture(
    lecture_id: UUID,
    caller: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    lecture = await lecture_queries.get_lecture_or_404(db, lecture_id)
    return LectureView.from_model(
        lecture, caller, utc_now(),
        is_registered=caller.user_id in lecture.attendee_ids,
        tz_name=settings.schedule_timezone,
        include_attendees=True,
    )


@router.post("/{lecture_id}/register", response_model=LectureView)
async def register_for_lecture(
    lecture_id: UUID,
    caller: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Claim a seat. 409 when closed, full, or already registered."""
    lecture = await registration.register(db, lecture_id, caller, settings)
    return LectureView.from_model(
        lecture, caller, utc_now(), is_registered=True,
        tz_name=settings.schedule_timezone,
    )


@router.post("/{lecture_id}/status", response_model=LectureView)
async def change_lecture_status(
    lecture_id: UUID,
    body: StatusChange,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    lecture = await lecture_admin.change_status(
        db, lecture_id, LectureStatus(body.status), body.message,
    )
    return LectureView.from_model(
        lecture, admin, utc_now(),
        is_registered=admin.user_id in lecture.attendee_ids,
        tz_name=settings.schedule_timezone,
    )


@router.post("/{lecture_id}/recording", response_model=LectureView)
async def attach_recording(
    lecture_id: UUID,
    body: RecordingBody,
    caller: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    lecture = await lecture_admin.attach_recording(
        db, lecture_id, caller, body.recording_url,
    )
    return LectureView.from_model(
        lecture, caller, utc_now(),
        is_registered=caller.user_id in lecture.attendee_ids,
        tz_name=settings.schedule_timezone,
    )
