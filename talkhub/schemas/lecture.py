"""Lecture Schemas — Pydantic views of lectures as seen by a specific caller.

Invariants:
    - status is the PROJECTED display status; stored_status is the persisted one
    - registered_count and recording always come from the stored record
    - attendee_ids only populated for the instructor or an admin
"""

import datetime as dt
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from talkhub.core.clock import ensure_utc, split_schedule
from talkhub.core.domain_types import Identity
from talkhub.core.status_projection import is_past, project_status
from talkhub.models.lecture import Lecture


class LectureView(BaseModel):
    id: UUID
    title: str
    description: str
    instructor_id: str
    date: dt.date
    time: str
    starts_at: dt.datetime
    duration: int
    mode: str
    venue: str | None
    meet_link: str | None
    capacity: int
    registered_count: int
    prerequisites: list[str]
    tags: list[str]
    materials: str | None
    status: str
    stored_status: str
    recording: str | None
    admin_message: str | None
    is_registered: bool
    is_past: bool
    attendee_ids: list[str] | None = None

    @classmethod
    def from_model(
        cls,
        lecture: Lecture,
        caller: Identity,
        now: dt.datetime,
        is_registered: bool,
        tz_name: str = "UTC",
        include_attendees: bool = False,
    ) -> "LectureView":
        day, at = split_schedule(lecture.starts_at, tz_name)
        attendees = None
        if include_attendees and (
            caller.is_admin or caller.user_id == lecture.instructor_id
        ):
            attendees = lecture.attendee_ids
        return cls(
            id=lecture.id,
            title=lecture.title,
            description=lecture.description,
            instructor_id=lecture.instructor_id,
            date=day,
            time=at,
            starts_at=ensure_utc(lecture.starts_at),
            duration=lecture.duration,
            mode=lecture.mode,
            venue=lecture.venue,
            meet_link=lecture.meet_link,
            capacity=lecture.capacity,
            registered_count=lecture.registered_count,
            prerequisites=list(lecture.prerequisites or []),
            tags=list(lecture.tags or []),
            materials=lecture.materials,
            status=project_status(lecture.status, lecture.starts_at, now).value,
            stored_status=lecture.status,
            recording=lecture.recording,
            admin_message=lecture.admin_message,
            is_registered=is_registered,
            is_past=is_past(lecture.starts_at, now),
            attendee_ids=attendees,
        )


class StatusChange(BaseModel):
    """Administrative lecture status change."""
    status: Literal["ongoing", "completed", "cancelled"]
    message: str | None = Field(None, max_length=2000)


class RecordingBody(BaseModel):
    recording_url: str = Field(min_length=1, max_length=500)


class MyTalkItem(BaseModel):
    """Entry of the caller's own talks: an approved lecture or an open/rejected request."""
    id: UUID
    title: str
    starts_at: dt.datetime
    status: str
    is_request: bool
    capacity: int
    registered_count: int | None = None
    admin_message: str | None = None
