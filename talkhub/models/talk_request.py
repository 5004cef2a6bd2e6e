"""TalkRequest ORM — a member's talk proposal awaiting an admin decision.

Invariants:
    - decision: pending (initial) → approved | rejected (terminal)
    - Exactly one of venue / meet_link is populated, matching mode (CHECK constraint)
    - capacity >= 1, duration >= 1
    - lecture_id is set once, on approval, and never relinked

Design Decisions:
    - starts_at stored as one UTC timestamp: date + time are split only for responses
    - lecture_id has no FK constraint: lectures.source_request_id already points back,
      and a two-way FK cycle cannot be created on SQLite
    - JSON for tags/prerequisites: short free-form lists, never queried by element
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint, DateTime, Index, Integer, JSON, String, Text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from talkhub.db.base import Base


LOCATION_MATCHES_MODE = (
    "(mode = 'offline' AND venue IS NOT NULL AND meet_link IS NULL) OR "
    "(mode = 'online' AND meet_link IS NOT NULL AND venue IS NULL)"
)


class TalkRequest(Base):
    """Talk proposal owned by its proposer until decided."""
    __tablename__ = "talk_requests"
    __table_args__ = (
        CheckConstraint(LOCATION_MATCHES_MODE, name="ck_talk_requests_location"),
        CheckConstraint("capacity >= 1", name="ck_talk_requests_capacity"),
        CheckConstraint("duration >= 1", name="ck_talk_requests_duration"),
        Index("ix_talk_requests_decision", "decision"),
        Index("ix_talk_requests_proposer_id", "proposer_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    proposer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    mode: Mapped[str] = mapped_column(String(10), nullable=False)
    venue: Mapped[str | None] = mapped_column(String(300), nullable=True)
    meet_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    prerequisites: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    materials: Mapped[str | None] = mapped_column(Text, nullable=True)

    decision: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    admin_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    lecture_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
