"""LectureRegistration ORM — one row per (lecture, member) in the attendee set.

Invariants:
    - (lecture_id, member_id) is unique: the attendee set never holds duplicates
    - Rows are only inserted by the registration engine, in the same transaction
      that increments lectures.registered_count
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from talkhub.db.base import Base


class LectureRegistration(Base):
    """Attendee entry — membership of one member in one lecture."""
    __tablename__ = "lecture_registrations"
    __table_args__ = (
        UniqueConstraint(
            "lecture_id", "member_id", name="uq_lecture_registrations_member",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    lecture_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("lectures.id", ondelete="CASCADE"),
        nullable=False,
    )
    member_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    lecture: Mapped["Lecture"] = relationship(
        "Lecture", back_populates="registrations",
    )
