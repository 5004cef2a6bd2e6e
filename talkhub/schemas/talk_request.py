"""Talk Request Schemas — Pydantic models for the talk-request API boundary.

Invariants:
    - TalkRequestCreate only coerces types; presence, future start, capacity and
      the mode/location pairing are enforced by core/enforce_fields.py so every
      failure names its field the same way
    - DecisionBody.message is optional here; reject requires it (core/enforce_decision.py)

Design Decisions:
    - Request fields optional at the schema level: a missing field and an empty
      field produce the same ValidationError shape
"""

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field

from talkhub.core.clock import ensure_utc, split_schedule
from talkhub.models.talk_request import TalkRequest


class TalkRequestCreate(BaseModel):
    """Talk proposal submitted by a member."""
    title: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=10_000)
    date: dt.date | None = None
    time: dt.time | None = None
    duration: int | None = None
    mode: str | None = None
    venue: str | None = Field(None, max_length=300)
    meet_link: str | None = Field(None, max_length=500)
    capacity: int | None = None
    prerequisites: list[str] | str | None = None
    tags: list[str] | str | None = None
    materials: str | None = Field(None, max_length=2000)


class DecisionBody(BaseModel):
    """Admin decision payload for approve / reject."""
    message: str | None = Field(None, max_length=2000)


class TalkRequestResponse(BaseModel):
    id: UUID
    title: str
    description: str
    proposer_id: str
    date: dt.date
    time: str
    starts_at: dt.datetime
    duration: int
    mode: str
    venue: str | None
    meet_link: str | None
    capacity: int
    prerequisites: list[str]
    tags: list[str]
    materials: str | None
    decision: str
    admin_message: str | None
    lecture_id: UUID | None
    created_at: dt.datetime
    decided_at: dt.datetime | None

    @classmethod
    def from_model(cls, req: TalkRequest, tz_name: str = "UTC") -> "TalkRequestResponse":
        day, at = split_schedule(req.starts_at, tz_name)
        return cls(
            id=req.id,
            title=req.title,
            description=req.description,
            proposer_id=req.proposer_id,
            date=day,
            time=at,
            starts_at=ensure_utc(req.starts_at),
            duration=req.duration,
            mode=req.mode,
            venue=req.venue,
            meet_link=req.meet_link,
            capacity=req.capacity,
            prerequisites=list(req.prerequisites or []),
            tags=list(req.tags or []),
            materials=req.materials,
            decision=req.decision,
            admin_message=req.admin_message,
            lecture_id=req.lecture_id,
            created_at=ensure_utc(req.created_at),
            decided_at=ensure_utc(req.decided_at) if req.decided_at else None,
        )
