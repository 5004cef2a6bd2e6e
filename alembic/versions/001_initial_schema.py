"""Initial schema — talk_requests, lectures, lecture_registrations.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LOCATION_MATCHES_MODE = (
    "(mode = 'offline' AND venue IS NOT NULL AND meet_link IS NULL) OR "
    "(mode = 'online' AND meet_link IS NOT NULL AND venue IS NULL)"
)


def _talk_columns() -> list[sa.Column]:
    return [
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer, nullable=False, server_default="60"),
        sa.Column("mode", sa.String(10), nullable=False),
        sa.Column("venue", sa.String(300), nullable=True),
        sa.Column("meet_link", sa.String(500), nullable=True),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("prerequisites", sa.JSON, nullable=False),
        sa.Column("tags", sa.JSON, nullable=False),
        sa.Column("materials", sa.Text, nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "talk_requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("proposer_id", sa.String(64), nullable=False),
        *_talk_columns(),
        sa.Column("decision", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("admin_message", sa.Text, nullable=True),
        sa.Column("lecture_id", UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(LOCATION_MATCHES_MODE, name="ck_talk_requests_location"),
        sa.CheckConstraint("capacity >= 1", name="ck_talk_requests_capacity"),
        sa.CheckConstraint("duration >= 1", name="ck_talk_requests_duration"),
    )
    op.create_index("ix_talk_requests_decision", "talk_requests", ["decision"])
    op.create_index("ix_talk_requests_proposer_id", "talk_requests", ["proposer_id"])

    op.create_table(
        "lectures",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("instructor_id", sa.String(64), nullable=False),
        *_talk_columns(),
        sa.Column("registered_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="scheduled"),
        sa.Column("recording", sa.String(500), nullable=True),
        sa.Column("admin_message", sa.Text, nullable=True),
        sa.Column(
            "source_request_id", UUID(as_uuid=True),
            sa.ForeignKey("talk_requests.id"), nullable=True, unique=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(LOCATION_MATCHES_MODE, name="ck_lectures_location"),
        sa.CheckConstraint("capacity >= 1", name="ck_lectures_capacity"),
        sa.CheckConstraint(
            "registered_count >= 0 AND registered_count <= capacity",
            name="ck_lectures_registered_count",
        ),
    )
    op.create_index("ix_lectures_starts_at_status", "lectures", ["starts_at", "status"])
    op.create_index("ix_lectures_instructor_id", "lectures", ["instructor_id"])

    op.create_table(
        "lecture_registrations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lecture_id", UUID(as_uuid=True),
            sa.ForeignKey("lectures.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("member_id", sa.String(64), nullable=False),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("lecture_id", "member_id", name="uq_lecture_registrations_member"),
    )
    op.create_index(
        "ix_lecture_registrations_member_id", "lecture_registrations", ["member_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_lecture_registrations_member_id", table_name="lecture_registrations")
    op.drop_table("lecture_registrations")
    op.drop_index("ix_lectures_instructor_id", table_name="lectures")
    op.drop_index("ix_lectures_starts_at_status", table_name="lectures")
    op.drop_table("lectures")
    op.drop_index("ix_talk_requests_proposer_id", table_name="talk_requests")
    op.drop_index("ix_talk_requests_decision", table_name="talk_requests")
    op.drop_table("talk_requests")
