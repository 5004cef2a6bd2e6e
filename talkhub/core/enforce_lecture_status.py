"""Lecture Status Enforcement — administrative transitions on the stored status.

Invariants:
    - scheduled → ongoing | completed | cancelled
    - ongoing → completed | cancelled
    - cancelled and completed are terminal
    - Checks run against the stored status; a date-passed scheduled lecture
      (displayed completed) can still be cancelled or completed
    - A recording can be attached once the lecture has started and was not cancelled
"""

from datetime import datetime

from talkhub.core.domain_types import DisplayStatus, LectureStatus
from talkhub.core.errors import ConflictError, InvalidStatusTransitionError
from talkhub.core.status_projection import project_status


ALLOWED_TRANSITIONS: dict[LectureStatus, frozenset[LectureStatus]] = {
    LectureStatus.SCHEDULED: frozenset({
        LectureStatus.ONGOING, LectureStatus.COMPLETED, LectureStatus.CANCELLED,
    }),
    LectureStatus.ONGOING: frozenset({
        LectureStatus.COMPLETED, LectureStatus.CANCELLED,
    }),
    LectureStatus.CANCELLED: frozenset(),
    LectureStatus.COMPLETED: frozenset(),
}


def check_transition(current: str, target: str) -> None:
    if LectureStatus(target) not in ALLOWED_TRANSITIONS[LectureStatus(current)]:
        raise InvalidStatusTransitionError(current, target)


def check_recording_allowed(status: str, starts_at: datetime, now: datetime) -> None:
    displayed = project_status(status, starts_at, now)
    if displayed is DisplayStatus.CANCELLED:
        raise ConflictError(
            "Cannot attach a recording to a cancelled lecture", "LECTURE_CANCELLED",
        )
    if displayed is DisplayStatus.SCHEDULED:
        raise ConflictError(
            "Cannot attach a recording before the lecture starts", "LECTURE_NOT_STARTED",
        )
