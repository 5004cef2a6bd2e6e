"""Talk Field Enforcement — shared validation for TalkRequest creation and Lecture materialization.

Invariants:
    - Required: title, description, date, time, mode, capacity (present and non-empty)
    - Start must be strictly in the future at creation time
    - capacity and duration are positive integers
    - offline requires venue, online requires a meeting link; exactly one is populated
    - Every failure raises ValidationError naming the offending field
    - PURE: no IO, `now` is always passed in

Design Decisions:
    - Two layers: parse_talk_fields turns raw boundary input into TalkFields,
      check_talk_fields re-checks the invariants on already-typed fields
      (approval re-runs only the second layer on the stored request)
    - tags/prerequisites accept a list or a comma-separated string (form clients send both)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any
from urllib.parse import urlparse

from talkhub.core.clock import combine_schedule, ensure_utc
from talkhub.core.domain_types import (
    DeliveryMode, Location, MeetingLink, Venue,
)
from talkhub.core.errors import ValidationError


REQUIRED_FIELDS: tuple[str, ...] = (
    "title", "description", "date", "time", "mode", "capacity",
)
DEFAULT_DURATION_MINUTES: int = 60


@dataclass
class TalkFields:
    """Validated, typed talk fields shared by TalkRequest and Lecture."""
    title: str
    description: str
    starts_at: datetime
    location: Location
    capacity: int
    duration: int = DEFAULT_DURATION_MINUTES
    prerequisites: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    materials: str | None = None


def parse_talk_fields(
    raw: dict[str, Any], now: datetime, tz_name: str = "UTC",
) -> TalkFields:
    """Validate raw boundary input and build TalkFields. Raises ValidationError."""
    for name in REQUIRED_FIELDS:
        if _is_blank(raw.get(name)):
            raise ValidationError(f"Missing required field: {name}", name)

    day = raw["date"]
    at = raw["time"]
    if not isinstance(day, date) or isinstance(day, datetime):
        raise ValidationError("date must be a calendar date (YYYY-MM-DD)", "date")
    if not isinstance(at, time):
        raise ValidationError("time must be a wall-clock time (HH:MM)", "time")

    fields = TalkFields(
        title=str(raw["title"]).strip(),
        description=str(raw["description"]).strip(),
        starts_at=combine_schedule(day, at, tz_name),
        location=_parse_location(raw),
        capacity=_parse_positive_int(raw["capacity"], "capacity"),
        duration=(
            DEFAULT_DURATION_MINUTES if _is_blank(raw.get("duration"))
            else _parse_positive_int(raw["duration"], "duration")
        ),
        prerequisites=split_list(raw.get("prerequisites")),
        tags=split_list(raw.get("tags")),
        materials=_strip_or_none(raw.get("materials")),
    )
    check_talk_fields(fields, now)
    return fields


def check_talk_fields(fields: TalkFields, now: datetime) -> None:
    """Re-check invariants on typed fields. Raises ValidationError."""
    if not fields.title.strip():
        raise ValidationError("Missing required field: title", "title")
    if not fields.description.strip():
        raise ValidationError("Missing required field: description", "description")
    if ensure_utc(fields.starts_at) <= ensure_utc(now):
        raise ValidationError("Lecture date must be in the future", "date")
    if fields.capacity < 1:
        raise ValidationError("Capacity must be a positive number", "capacity")
    if fields.duration < 1:
        raise ValidationError("Duration must be a positive number", "duration")
    if isinstance(fields.location, Venue):
        if not fields.location.name.strip():
            raise ValidationError(
                "Venue is required for offline lectures", "venue",
            )
    else:
        check_http_url(fields.location.url, "meet_link", "Meeting link")


def split_list(value: Any) -> list[str]:
    """Normalize a list or comma-separated string; drops blank entries."""
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else list(value)
    return [str(item).strip() for item in items if str(item).strip()]


# ─── Helpers ─────────────────────────────────────────────────────

def _parse_location(raw: dict[str, Any]) -> Location:
    try:
        mode = DeliveryMode(str(raw["mode"]).strip().lower())
    except ValueError:
        raise ValidationError("Mode must be 'online' or 'offline'", "mode")

    venue = _strip_or_none(raw.get("venue"))
    meet_link = _strip_or_none(raw.get("meet_link"))
    if mode is DeliveryMode.OFFLINE:
        if not venue:
            raise ValidationError("Venue is required for offline lectures", "venue")
        if meet_link:
            raise ValidationError(
                "Meeting link must not be set for offline lectures", "meet_link",
            )
        return Venue(venue)

    if not meet_link:
        raise ValidationError(
            "Meeting link is required for online lectures", "meet_link",
        )
    if venue:
        raise ValidationError("Venue must not be set for online lectures", "venue")
    check_http_url(meet_link, "meet_link", "Meeting link")
    return MeetingLink(meet_link)


def check_http_url(url: str, field_name: str, label: str) -> None:
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"{label} must be an http(s) URL", field_name)


def _parse_positive_int(value: Any, name: str) -> int:
    # bool is an int subclass; True must not pass as capacity 1
    if isinstance(value, bool):
        raise ValidationError(f"{name.capitalize()} must be a positive number", name)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name.capitalize()} must be a positive number", name)
    if number != value and not isinstance(value, str):
        raise ValidationError(f"{name.capitalize()} must be a whole number", name)
    if number < 1:
        raise ValidationError(f"{name.capitalize()} must be a positive number", name)
    return number


def _strip_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
