"""Decision Enforcement — pure rules of the talk-request approval state machine.

Invariants:
    - pending → approved | rejected; both targets are terminal
    - A non-pending request is never mutated: the check raises before any write
    - Rejection requires a non-empty admin message; approval falls back to a default
    - The Lecture copy is field-for-field (title, description, schedule, location,
      capacity, prerequisites, tags, materials) — id, status and attendees are not copied

Design Decisions:
    - Shell applies the mutation inside one transaction; this module only decides
"""

from typing import Protocol
from datetime import datetime

from talkhub.core.domain_types import DecisionState, location_from_columns
from talkhub.core.enforce_fields import TalkFields
from talkhub.core.errors import AlreadyDecidedError, ValidationError


DEFAULT_APPROVAL_MESSAGE: str = "Your talk request has been approved."


class TalkRequestLike(Protocol):
    """Structural contract for the stored request fields copied onto a Lecture."""
    title: str
    description: str
    starts_at: datetime
    duration: int
    mode: str
    venue: str | None
    meet_link: str | None
    capacity: int
    prerequisites: list
    tags: list
    materials: str | None
    decision: str


def check_pending(decision: str) -> None:
    """Raise AlreadyDecidedError unless the request is still pending."""
    if DecisionState(decision) is not DecisionState.PENDING:
        raise AlreadyDecidedError(decision)


def approval_message(message: str | None, default: str = DEFAULT_APPROVAL_MESSAGE) -> str:
    text = (message or "").strip()
    return text or default


def rejection_message(message: str | None) -> str:
    text = (message or "").strip()
    if not text:
        raise ValidationError("Rejection reason is required", "message")
    return text


def lecture_fields_from_request(request: TalkRequestLike) -> TalkFields:
    """Copy the materialized fields of an approved request."""
    return TalkFields(
        title=request.title,
        description=request.description,
        starts_at=request.starts_at,
        location=location_from_columns(
            request.mode, request.venue, request.meet_link,
        ),
        capacity=request.capacity,
        duration=request.duration,
        prerequisites=list(request.prerequisites or []),
        tags=list(request.tags or []),
        materials=request.materials,
    )
