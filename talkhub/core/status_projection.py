"""Status Projection — read-time display status for lectures.

Invariants:
    - project_status is PURE and never feeds back into storage
    - stored scheduled + start already passed → displayed completed
    - every other stored status is displayed unchanged
    - Administrative actions match the STORED status, never the projection

Design Decisions:
    - No background sweeper moves date-passed lectures to completed in storage;
      listings filter on the projection instead (services/lecture_queries.py)
"""

from datetime import datetime

from talkhub.core.clock import ensure_utc
from talkhub.core.domain_types import DisplayStatus, LectureStatus


# Stored statuses that still show up under "upcoming" while the start is ahead
UPCOMING_STORED_STATUSES: tuple[LectureStatus, ...] = (
    LectureStatus.SCHEDULED, LectureStatus.ONGOING,
)


def project_status(status: str, starts_at: datetime, now: datetime) -> DisplayStatus:
    stored = LectureStatus(status)
    if stored is LectureStatus.SCHEDULED and ensure_utc(starts_at) <= ensure_utc(now):
        return DisplayStatus.COMPLETED
    return DisplayStatus(stored.value)


def is_past(starts_at: datetime, now: datetime) -> bool:
    return ensure_utc(starts_at) <= ensure_utc(now)
