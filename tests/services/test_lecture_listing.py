"""Lecture Queries — projected listings, detail view, search and "my talks".

Invariants:
    - A date-passed "scheduled" lecture is displayed completed and listed as past,
      while its stored status stays scheduled
    - upcoming lists future scheduled/ongoing lectures soonest first
    - is_registered reflects the calling member
    - Attendee ids are only shown to the instructor and admins
    - when=all lists every lecture (cancelled included) to admins only
    - Search matches individual tag values, not their JSON encoding
"""

from datetime import datetime, timedelta, timezone

from talkhub.models.lecture import Lecture


def _at(**delta) -> datetime:
    return datetime.now(timezone.utc) + timedelta(**delta)


# ─── Projection ──────────────────────────────────────────────────

async def test_past_scheduled_lecture_displays_completed(
    client, member_headers, test_session_factory, make_lecture,
):
    lecture_id = await make_lecture(test_session_factory, starts_at=_at(days=-1))

    res = await client.get(f"/api/v1/lectures/{lecture_id}", headers=member_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "completed"
    assert body["stored_status"] == "scheduled"
    assert body["is_past"] is True

    async with test_session_factory() as db:
        stored = await db.get(Lecture, lecture_id)
    assert stored.status == "scheduled"


async def test_upcoming_and_past_windows(
    client, member_headers, test_session_factory, make_lecture,
):
    later = await make_lecture(test_session_factory, title="Later", starts_at=_at(days=5))
    sooner = await make_lecture(test_session_factory, title="Sooner", starts_at=_at(days=1))
    ongoing = await make_lecture(
        test_session_factory, title="Ongoing", status="ongoing", starts_at=_at(days=2),
    )
    await make_lecture(
        test_session_factory, title="Cancelled", status="cancelled", starts_at=_at(days=3),
    )
    yesterday = await make_lecture(test_session_factory, title="Yesterday", starts_at=_at(days=-1))
    last_week = await make_lecture(test_session_factory, title="Last week", starts_at=_at(days=-7))

    res = await client.get("/api/v1/lectures?when=upcoming", headers=member_headers)
    assert [item["id"] for item in res.json()] == [str(sooner), str(ongoing), str(later)]

    res = await client.get("/api/v1/lectures?when=past", headers=member_headers)
    past = res.json()
    assert [item["id"] for item in past] == [str(yesterday), str(last_week)]
    assert {item["status"] for item in past} == {"completed"}


async def test_listing_defaults_to_upcoming(
    client, member_headers, test_session_factory, make_lecture,
):
    await make_lecture(test_session_factory, starts_at=_at(days=-1))
    res = await client.get("/api/v1/lectures", headers=member_headers)
    assert res.status_code == 200
    assert res.json() == []


async def test_listing_rejects_unknown_window(client, member_headers):
    res = await client.get("/api/v1/lectures?when=someday", headers=member_headers)
    assert res.status_code == 400


# ─── Caller-specific fields ──────────────────────────────────────

async def test_is_registered_per_caller(
    client, member_headers, other_member_headers, test_session_factory, make_lecture,
):
    await make_lecture(test_session_factory, attendees=("member-1",))

    mine = (await client.get("/api/v1/lectures", headers=member_headers)).json()
    theirs = (await client.get("/api/v1/lectures", headers=other_member_headers)).json()
    assert mine[0]["is_registered"] is True
    assert theirs[0]["is_registered"] is False
    assert mine[0]["registered_count"] == 1


async def test_attendees_visible_to_instructor_and_admin_only(
    client, member_headers, admin_headers, test_session_factory, make_lecture,
):
    lecture_id = await make_lecture(test_session_factory, attendees=("member-1", "member-9"))
    instructor_headers = {"X-User-Id": "instructor-1", "X-User-Role": "instructor"}

    member_view = (await client.get(f"/api/v1/lectures/{lecture_id}", headers=member_headers)).json()
    admin_view = (await client.get(f"/api/v1/lectures/{lecture_id}", headers=admin_headers)).json()
    owner_view = (await client.get(f"/api/v1/lectures/{lecture_id}", headers=instructor_headers)).json()

    assert member_view["attendee_ids"] is None
    assert member_view["is_registered"] is True
    assert sorted(admin_view["attendee_ids"]) == ["member-1", "member-9"]
    assert sorted(owner_view["attendee_ids"]) == ["member-1", "member-9"]


# ─── Search ──────────────────────────────────────────────────────

async def test_search_matches_title_tags_and_instructor(
    client, member_headers, test_session_factory, make_lecture,
):
    by_title = await make_lecture(test_session_factory, title="Rust for Pythonistas", tags=["ffi"])
    by_tag = await make_lecture(test_session_factory, title="Packaging", tags=["rustup"])
    await make_lecture(test_session_factory, title="Testing", tags=["pytest"])

    res = await client.get("/api/v1/lectures/search?q=RUST", headers=member_headers)
    assert {item["id"] for item in res.json()} == {str(by_title), str(by_tag)}

    res = await client.get("/api/v1/lectures/search?q=instructor-1", headers=member_headers)
    assert len(res.json()) == 3


async def test_search_treats_wildcards_literally(
    client, member_headers, test_session_factory, make_lecture,
):
    await make_lecture(test_session_factory, title="Plain title")
    res = await client.get("/api/v1/lectures/search?q=%25", headers=member_headers)
    assert res.json() == []


# ─── My talks ────────────────────────────────────────────────────

async def test_my_talks_combines_lectures_and_requests(
    client, test_session_factory, make_lecture, make_request,
):
    headers = {"X-User-Id": "instructor-1", "X-User-Role": "instructor"}
    lecture_id = await make_lecture(test_session_factory, starts_at=_at(days=3))
    await make_lecture(test_session_factory, status="cancelled")
    request_id = await make_request(test_session_factory, proposer_id="instructor-1")
    await make_request(test_session_factory, proposer_id="instructor-1", decision="approved")

    res = await client.get("/api/v1/lectures/mine", headers=headers)
    assert res.status_code == 200
    items = res.json()
    assert [(item["id"], item["is_request"]) for item in items] == [
        (str(lecture_id), False), (str(request_id), True),
    ]
    assert items[1]["status"] == "pending"


# ─── Admin listing ───────────────────────────────────────────────

async def test_all_window_lists_every_lecture_for_admin(
    client, admin_headers, test_session_factory, make_lecture,
):
    cancelled = await make_lecture(
        test_session_factory, title="Cancelled", status="cancelled", starts_at=_at(days=4),
    )
    upcoming = await make_lecture(test_session_factory, title="Upcoming", starts_at=_at(days=2))
    past = await make_lecture(test_session_factory, title="Past", starts_at=_at(days=-2))

    res = await client.get("/api/v1/lectures?when=all", headers=admin_headers)
    assert res.status_code == 200
    assert [item["id"] for item in res.json()] == [str(cancelled), str(upcoming), str(past)]

    res = await client.get("/api/v1/lectures?when=all&status=cancelled", headers=admin_headers)
    assert [item["id"] for item in res.json()] == [str(cancelled)]
    assert res.json()[0]["status"] == "cancelled"


async def test_status_filter_matches_stored_status(
    client, admin_headers, test_session_factory, make_lecture,
):
    # displayed completed, stored scheduled
    date_passed = await make_lecture(test_session_factory, starts_at=_at(days=-1))
    res = await client.get("/api/v1/lectures?when=all&status=scheduled", headers=admin_headers)
    assert [item["id"] for item in res.json()] == [str(date_passed)]
    assert res.json()[0]["status"] == "completed"


async def test_all_window_is_admin_only(client, member_headers):
    res = await client.get("/api/v1/lectures?when=all", headers=member_headers)
    assert res.status_code == 403


# ─── Tag search ──────────────────────────────────────────────────

async def test_search_ignores_json_punctuation(
    client, member_headers, test_session_factory, make_lecture,
):
    await make_lecture(
        test_session_factory, title="Plain", description="Nothing special", tags=["one", "two"],
    )
    for q in ['", "', "[", '"']:
        res = await client.get("/api/v1/lectures/search", params={"q": q}, headers=member_headers)
        assert res.json() == [], q


async def test_search_matches_non_ascii_tag(
    client, member_headers, test_session_factory, make_lecture,
):
    lecture_id = await make_lecture(
        test_session_factory, title="Plain", description="Nothing special", tags=["café"],
    )
    res = await client.get("/api/v1/lectures/search", params={"q": "café"}, headers=member_headers)
    assert [item["id"] for item in res.json()] == [str(lecture_id)]
