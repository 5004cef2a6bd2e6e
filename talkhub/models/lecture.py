"""Lecture ORM — a scheduled talk with a capacity-bounded attendee set.

Invariants:
    - registered_count == number of lecture_registrations rows for this lecture
      (both written in the same transaction by the registration engine)
    - registered_count <= capacity, enforced by CHECK as the last line of defense
    - status starts at scheduled; only administrative transitions change it
    - source_request_id is unique: one talk request materializes at most one lecture

Design Decisions:
    - Denormalized registered_count: lets admission be a single conditional
      UPDATE on one row instead of a COUNT over the attendee table
    - registrations loaded with selectin: detail views need attendee ids, listings do not
      touch the relationship
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint, DateTime, ForeignKey, Index, Integer, JSON, String, Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from talkhub.db.base import Base
from talkhub.models.talk_request import LOCATION_MATCHES_MODE


class Lecture(Base):
    """Scheduled talk — materialized from an approved TalkRequest."""
    __tablename__ = "lectures"
    __table_args__ = (
        CheckConstraint(LOCATION_MATCHES_MODE, name="ck_lectures_location"),
        CheckConstraint("capacity >= 1", name="ck_lectures_capacity"),
        CheckConstraint(
            "registered_count >= 0 AND registered_count <= capacity",
            name="ck_lectures_registered_count",
        ),
        Index("ix_lectures_starts_at_status", "starts_at", "status"),
        Index("ix_lectures_instructor_id", "instructor_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    instructor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    mode: Mapped[str] = mapped_column(String(10), nullable=False)
    venue: Mapped[str | None] = mapped_column(String(300), nullable=True)
    meet_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    registered_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    prerequisites: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    materials: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="scheduled",
    )
    recording: Mapped[str | None] = mapped_column(String(500), nullable=True)
    admin_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_request_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("talk_requests.id"),
        nullable=True, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    registrations: Mapped[list["LectureRegistration"]] = relationship(
        "LectureRegistration", back_populates="lecture",
        cascade="all, delete-orphan", lazy="selectin",
    )

    @property
    def attendee_ids(self) -> list[str]:
        return [r.member_id for r in self.registrations]
