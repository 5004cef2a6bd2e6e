"""ORM Models — SQLAlchemy declarative models for talk requests, lectures and attendees.

Invariants:
    - All models inherit from Base (db/base.py)
    - The attendee set lives in lecture_registrations; lectures.registered_count mirrors its size

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from talkhub.models.talk_request import TalkRequest  # noqa: F401
from talkhub.models.lecture import Lecture  # noqa: F401
from talkhub.models.lecture_registration import LectureRegistration  # noqa: F401
