"""Registration Enforcement — decides why a lecture refuses a registration.

Invariants:
    - Registration is open only while: stored status == scheduled,
      now < starts_at, registered_count < capacity
    - Closure reasons are checked in that order; "already registered" is checked last
    - PURE: the shell's atomic conditional update is the real guard, these
      functions only explain a refusal after the fact

Design Decisions:
    - Returns the error instead of raising: the shell decides whether a clean
      re-read means "retry" (the record changed under us) or "refuse"
"""

from datetime import datetime

from talkhub.core.clock import ensure_utc
from talkhub.core.domain_types import LectureStatus
from talkhub.core.errors import (
    AlreadyRegisteredError, ConflictError, RegistrationClosedError,
)


def registration_block(
    status: str,
    starts_at: datetime,
    registered_count: int,
    capacity: int,
    now: datetime,
    already_registered: bool = False,
) -> ConflictError | None:
    """Return the conflict that blocks this registration, or None if it may proceed."""
    if LectureStatus(status) is not LectureStatus.SCHEDULED:
        return RegistrationClosedError("lecture is not open for registration")
    if ensure_utc(starts_at) <= ensure_utc(now):
        return RegistrationClosedError("cannot register for past lectures")
    if registered_count >= capacity:
        return RegistrationClosedError("lecture is full", code="LECTURE_FULL")
    if already_registered:
        return AlreadyRegisteredError()
    return None

