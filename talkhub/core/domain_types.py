"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - RequestId and LectureId wrap UUIDs; MemberId wraps the identity provider's opaque id
    - All lifecycle states encoded as str Enums — no raw string matching in core logic
    - A Location is exactly one of Venue | MeetingLink, never both, never neither

Design Decisions:
    - NewType over dataclass wrappers for ids: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and compare against DB columns without converters
    - Location as a tagged variant: the ORM keeps mode/venue/meet_link columns,
      core logic only ever sees the variant (ADR: no implicit mutual exclusion)
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType, Union
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

RequestId = NewType("RequestId", UUID)
LectureId = NewType("LectureId", UUID)
MemberId = NewType("MemberId", str)


# ─── Enums ───────────────────────────────────────────────────────

class DecisionState(str, Enum):
    """Talk request decision — pending is initial, the others are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LectureStatus(str, Enum):
    """Stored lecture lifecycle — maps to DB `status` column."""
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class DisplayStatus(str, Enum):
    """Projected lecture status shown to callers. Never persisted."""
    SCHEDULED = "scheduled"
    ONGOING = "ongoing"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class DeliveryMode(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class Role(str, Enum):
    """Caller roles resolved by the identity provider."""
    MEMBER = "member"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class ListingWindow(str, Enum):
    """`when` filter for lecture listings. ALL is admin-only."""
    UPCOMING = "upcoming"
    PAST = "past"
    ALL = "all"


# ─── Location Variant ────────────────────────────────────────────

@dataclass(frozen=True)
class Venue:
    name: str

    @property
    def mode(self) -> DeliveryMode:
        return DeliveryMode.OFFLINE


@dataclass(frozen=True)
class MeetingLink:
    url: str

    @property
    def mode(self) -> DeliveryMode:
        return DeliveryMode.ONLINE


Location = Union[Venue, MeetingLink]


def location_from_columns(
    mode: str, venue: str | None, meet_link: str | None,
) -> Location:
    """Rebuild the variant from persisted columns (already validated on write)."""
    if DeliveryMode(mode) is DeliveryMode.OFFLINE:
        return Venue(venue or "")
    return MeetingLink(meet_link or "")


def location_to_columns(location: Location) -> dict:
    """Flatten the variant into mode/venue/meet_link column values."""
    if isinstance(location, Venue):
        return {
            "mode": DeliveryMode.OFFLINE.value,
            "venue": location.name,
            "meet_link": None,
        }
    return {
        "mode": DeliveryMode.ONLINE.value,
        "venue": None,
        "meet_link": location.url,
    }


# ─── Caller Identity ─────────────────────────────────────────────

@dataclass(frozen=True)
class Identity:
    """Caller as resolved by the external identity provider."""
    user_id: MemberId
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
