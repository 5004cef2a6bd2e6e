"""Approval Workflow — approve/reject decisions and lecture materialization.

Invariants:
    - Approval creates exactly one Lecture copying the request's talk fields,
      owned by the proposer, scheduled, with no attendees
    - A decided request is never mutated again: second decisions return 409
    - Rejection without a message returns 400 and leaves the request pending
    - Approving a request whose start has passed fails without side effects
    - Racing approvals: exactly one wins, the rest get AlreadyDecidedError
    - A failed commit leaves the request pending and no Lecture behind
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from talkhub.core.errors import AlreadyDecidedError, DatabaseError
from talkhub.models.lecture import Lecture
from talkhub.models.talk_request import TalkRequest
from talkhub.services.approval_workflow import approve_request


async def _load_request(session_factory, request_id) -> TalkRequest:
    async with session_factory() as db:
        return await db.get(TalkRequest, request_id)


async def _count_lectures(session_factory) -> int:
    async with session_factory() as db:
        return await db.scalar(select(func.count()).select_from(Lecture))


# ─── Approve ─────────────────────────────────────────────────────

async def test_approve_materializes_lecture(
    client, admin_headers, test_session_factory, make_request,
):
    request_id = await make_request(test_session_factory)

    res = await client.post(f"/api/v1/requests/{request_id}/approve", headers=admin_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["request"]["decision"] == "approved"
    assert body["request"]["admin_message"] == "Your talk request has been approved."

    lecture = body["lecture"]
    assert body["request"]["lecture_id"] == lecture["id"]
    assert lecture["title"] == "Async Python in production"
    assert lecture["instructor_id"] == "member-1"
    assert lecture["mode"] == "online"
    assert lecture["meet_link"] == "https://meet.example.com/async"
    assert lecture["venue"] is None
    assert lecture["capacity"] == 20
    assert lecture["duration"] == 45
    assert lecture["prerequisites"] == ["Python"]
    assert lecture["tags"] == ["asyncio"]
    assert lecture["materials"] == "https://slides.example.com/async"
    assert lecture["status"] == "scheduled"
    assert lecture["registered_count"] == 0

    async with test_session_factory() as db:
        stored = await db.scalar(select(Lecture).where(Lecture.source_request_id == request_id))
    assert str(stored.id) == lecture["id"]
    assert stored.attendee_ids == []


async def test_approve_keeps_admin_message(
    client, admin_headers, test_session_factory, make_request,
):
    request_id = await make_request(test_session_factory)
    res = await client.post(
        f"/api/v1/requests/{request_id}/approve",
        json={"message": "Great topic, see you there"},
        headers=admin_headers,
    )
    assert res.json()["request"]["admin_message"] == "Great topic, see you there"


async def test_second_approval_conflicts_without_new_lecture(
    client, admin_headers, test_session_factory, make_request,
):
    request_id = await make_request(test_session_factory)
    first = await client.post(f"/api/v1/requests/{request_id}/approve", headers=admin_headers)
    assert first.status_code == 200

    second = await client.post(f"/api/v1/requests/{request_id}/approve", headers=admin_headers)
    assert second.status_code == 409
    assert second.json()["error"]["message"] == "This request has already been approved"
    assert await _count_lectures(test_session_factory) == 1


async def test_reject_after_approve_conflicts(
    client, admin_headers, test_session_factory, make_request,
):
    request_id = await make_request(test_session_factory)
    await client.post(f"/api/v1/requests/{request_id}/approve", headers=admin_headers)

    res = await client.post(
        f"/api/v1/requests/{request_id}/reject",
        json={"message": "Changed my mind"}, headers=admin_headers,
    )
    assert res.status_code == 409
    request = await _load_request(test_session_factory, request_id)
    assert request.decision == "approved"
    assert request.admin_message == "Your talk request has been approved."


async def test_approve_past_request_fails_cleanly(
    client, admin_headers, test_session_factory, make_request,
):
    request_id = await make_request(
        test_session_factory, starts_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )
    res = await client.post(f"/api/v1/requests/{request_id}/approve", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"]["field"] == "date"

    request = await _load_request(test_session_factory, request_id)
    assert request.decision == "pending"
    assert await _count_lectures(test_session_factory) == 0


async def test_approve_requires_admin(
    client, member_headers, test_session_factory, make_request,
):
    request_id = await make_request(test_session_factory)
    res = await client.post(f"/api/v1/requests/{request_id}/approve", headers=member_headers)
    assert res.status_code == 403
    assert await _count_lectures(test_session_factory) == 0


# ─── Reject ──────────────────────────────────────────────────────

async def test_reject_records_reason(client, admin_headers, test_session_factory, make_request):
    request_id = await make_request(test_session_factory)
    res = await client.post(
        f"/api/v1/requests/{request_id}/reject",
        json={"message": "Please narrow the scope"}, headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()["request"]
    assert body["decision"] == "rejected"
    assert body["admin_message"] == "Please narrow the scope"
    assert body["decided_at"] is not None
    assert await _count_lectures(test_session_factory) == 0


async def test_reject_without_message_is_400(
    client, admin_headers, test_session_factory, make_request,
):
    request_id = await make_request(test_session_factory)
    res = await client.post(
        f"/api/v1/requests/{request_id}/reject", json={"message": "  "}, headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["field"] == "message"
    request = await _load_request(test_session_factory, request_id)
    assert request.decision == "pending"


async def test_second_rejection_conflicts(
    client, admin_headers, test_session_factory, make_request,
):
    request_id = await make_request(
        test_session_factory, decision="rejected", admin_message="Duplicate",
    )
    res = await client.post(
        f"/api/v1/requests/{request_id}/reject",
        json={"message": "Still a duplicate"}, headers=admin_headers,
    )
    assert res.status_code == 409
    assert res.json()["error"]["message"] == "This request has already been rejected"
    request = await _load_request(test_session_factory, request_id)
    assert request.admin_message == "Duplicate"


async def test_decision_on_unknown_request_is_404(client, admin_headers):
    res = await client.post(
        "/api/v1/requests/00000000-0000-0000-0000-000000000000/approve",
        headers=admin_headers,
    )
    assert res.status_code == 404


# ─── Races and failed commits ────────────────────────────────────

async def test_concurrent_approvals_create_one_lecture(file_manager, make_request, settings):
    request_id = await make_request(file_manager._session_factory)

    async def attempt():
        async with file_manager.session() as db:
            return await approve_request(db, request_id, None, settings)

    results = await asyncio.gather(*(attempt() for _ in range(5)), return_exceptions=True)
    winners = [r for r in results if isinstance(r, tuple)]
    losers = [r for r in results if isinstance(r, AlreadyDecidedError)]
    assert len(winners) == 1
    assert len(losers) == 4
    assert all(e.decision == "approved" for e in losers)

    _, lecture = winners[0]
    assert await _count_lectures(file_manager._session_factory) == 1
    request = await _load_request(file_manager._session_factory, request_id)
    assert request.decision == "approved"
    assert request.lecture_id == lecture.id


async def test_stale_pending_read_loses_on_conditional_update(
    test_session_factory, make_request, settings, monkeypatch,
):
    request_id = await make_request(test_session_factory)
    async with test_session_factory() as db:
        await approve_request(db, request_id, None, settings)

    # the second approver read "pending" before the first one committed
    monkeypatch.setattr(
        "talkhub.services.approval_workflow.check_pending", lambda decision: None,
    )
    async with test_session_factory() as db:
        with pytest.raises(AlreadyDecidedError) as exc:
            await approve_request(db, request_id, "late", settings)
    assert exc.value.decision == "approved"

    assert await _count_lectures(test_session_factory) == 1
    request = await _load_request(test_session_factory, request_id)
    assert request.admin_message == "Your talk request has been approved."


@pytest.mark.parametrize("error", [
    IntegrityError("INSERT INTO lectures", {}, Exception("constraint failed")),
    OperationalError("COMMIT", {}, Exception("disk I/O error")),
])
async def test_failed_commit_leaves_nothing_behind(file_manager, make_request, settings, error):
    request_id = await make_request(file_manager._session_factory)

    async def failing_commit():
        raise error

    with pytest.raises(DatabaseError):
        async with file_manager.session() as db:
            db.commit = failing_commit
            await approve_request(db, request_id, None, settings)

    request = await _load_request(file_manager._session_factory, request_id)
    assert request.decision == "pending"
    assert request.lecture_id is None
    assert await _count_lectures(file_manager._session_factory) == 0
