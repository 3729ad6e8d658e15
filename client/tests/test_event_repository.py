"""
Tests for the event repository: fetch with bounded retry, server-confirmed
mutations, local pre-checks, and the derived my_events view.
"""

from datetime import datetime, timedelta, timezone

import pytest

from timeleft.core.errors import AUTH_REQUIRED_MESSAGE
from timeleft.schemas.event import EventCreate, EventStatus, EventUpdate, ImageUpload
from timeleft.services.event_repository import FETCH_FAILED_MESSAGE, NOT_AUTHENTICATED_MESSAGE


def dinner(title="Dinner A", max_participants=4, **overrides) -> EventCreate:
    event_date = datetime.now(timezone.utc) + timedelta(days=7)
    fields = dict(
        title=title,
        description="Six strangers, one table",
        event_date=event_date,
        reveal_date=event_date - timedelta(days=1),
        location="Lisbon",
        max_participants=max_participants,
    )
    fields.update(overrides)
    return EventCreate(**fields)


# ----------------------------------------------------------------------
# Fetching
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_loads_events(sign_in, member, admin, backend):
    backend.add_event(admin["_id"], title="Supper Club")
    backend.add_event(admin["_id"], title="Brunch", status="pending")

    client = await sign_in(member)

    assert sorted(e.title for e in client.events.events) == ["Brunch", "Supper Club"]
    assert not client.events.loading
    assert client.events.error is None


@pytest.mark.asyncio
async def test_fetch_retries_with_growing_delay(sign_in, member, backend, sleeps):
    backend.add_event(member["_id"])
    backend.fail("GET /events", times=2)

    client = await sign_in(member)

    assert backend.calls.count("GET /events") == 3
    assert sleeps == [2.0, 4.0]
    assert len(client.events.events) == 1
    assert client.events.error is None


@pytest.mark.asyncio
async def test_fetch_gives_up_after_three_attempts_and_keeps_cache(sign_in, member, backend, sleeps):
    backend.add_event(member["_id"], title="Kept")
    client = await sign_in(member)
    before = client.events.events

    backend.add_event(member["_id"], title="Never seen")
    backend.fail("GET /events", times=3, status_code=500)
    sleeps.clear()

    assert not await client.events.fetch_all()
    assert backend.calls.count("GET /events") == 4
    assert sleeps == [2.0, 4.0]
    assert client.events.error == FETCH_FAILED_MESSAGE
    assert client.events.events == before


@pytest.mark.asyncio
async def test_fetch_requires_session(client, backend):
    assert not await client.events.fetch_all()
    assert client.events.error == NOT_AUTHENTICATED_MESSAGE
    assert backend.calls == []


@pytest.mark.asyncio
async def test_participants_resolve_from_either_shape(sign_in, member, admin, backend):
    backend.expand_participants = True
    backend.add_event(admin["_id"], participants=[member["_id"]])
    client = await sign_in(member)

    event = client.events.events[0]
    assert event.participant_ids == [member["_id"]]
    assert event.creator_id == admin["_id"]
    assert client.events.my_events == [event]


@pytest.mark.asyncio
async def test_partially_populated_users_still_load(sign_in, member, admin, backend):
    backend.add_event(admin["_id"], participants=[member["_id"], admin["_id"]])
    client = await sign_in(member)

    backend.expand_participants = True
    backend.partial_expansion = True
    assert await client.events.fetch_all()

    event = client.events.events[0]
    assert event.participant_ids == [member["_id"], admin["_id"]]
    assert event.creator_id == admin["_id"]
    assert event.participants[0].record.name == "Ana"
    assert event.participants[0].record.email is None
    assert client.events.error is None


@pytest.mark.asyncio
async def test_refresh_replaces_one_record(sign_in, member, backend):
    stored = backend.add_event(member["_id"], title="Old title")
    client = await sign_in(member)

    stored["title"] = "New title"
    event = await client.events.refresh(stored["_id"])

    assert event.title == "New title"
    assert client.events.get(stored["_id"]).title == "New title"


# ----------------------------------------------------------------------
# Create / update / delete
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_then_list(sign_in, member, backend):
    client = await sign_in(member)

    created = await client.events.create(dinner("Dinner A", max_participants=4))
    assert created is not None
    assert created.status == EventStatus.PENDING
    assert client.events.get(created.id) == created
    assert backend.last_headers["content-type"].startswith("multipart/form-data")

    assert await client.events.fetch_all()
    matching = [e for e in client.events.events if e.title == "Dinner A"]
    assert len(matching) == 1
    assert matching[0].max_participants == 4
    assert matching[0].participants == ()
    assert matching[0].is_created_by(member["_id"])


@pytest.mark.asyncio
async def test_create_with_image(sign_in, member):
    client = await sign_in(member)
    image = ImageUpload(filename="table.png", content_type="image/png", content=b"\x89PNG")

    created = await client.events.create(dinner(image=image))
    assert created.image_url == "/uploads/table.png"


@pytest.mark.asyncio
async def test_create_rejected_by_server_reports_field_errors(sign_in, member, backend):
    backend.add_event(member["_id"], title="Existing")
    client = await sign_in(member)
    before = client.events.events
    event_date = datetime.now(timezone.utc) + timedelta(days=7)
    blank = EventCreate.model_construct(
        title="",
        description="Six strangers, one table",
        event_date=event_date,
        reveal_date=event_date - timedelta(days=1),
        location="",
        max_participants=4,
        image=None,
    )

    assert await client.events.create(blank) is None
    assert client.events.error == "Title is required, Location is required"
    assert client.events.events == before
    assert backend.calls.count("POST /events") == 1


@pytest.mark.asyncio
async def test_mutations_require_session(client, backend):
    assert await client.events.create(dinner()) is None
    assert client.events.error == AUTH_REQUIRED_MESSAGE
    assert await client.events.join("e1") is None
    assert not await client.events.delete("e1")
    assert backend.calls == []


@pytest.mark.asyncio
async def test_update_by_creator(sign_in, member, backend):
    stored = backend.add_event(member["_id"])
    client = await sign_in(member)

    updated = await client.events.update(stored["_id"], EventUpdate(location="Porto", max_participants=8))
    assert updated.location == "Porto"
    assert updated.max_participants == 8
    assert client.events.get(stored["_id"]).location == "Porto"


@pytest.mark.asyncio
async def test_update_by_other_user_is_refused_locally(sign_in, member, admin, backend):
    stored = backend.add_event(admin["_id"])
    client = await sign_in(member)

    assert await client.events.update(stored["_id"], EventUpdate(title="Mine now")) is None
    assert client.events.error == "Only the event creator can update this event"
    assert f"PUT /events/{stored['_id']}" not in backend.calls


@pytest.mark.asyncio
async def test_delete_by_creator(sign_in, member, backend):
    stored = backend.add_event(member["_id"])
    client = await sign_in(member)

    assert await client.events.delete(stored["_id"])
    assert client.events.get(stored["_id"]) is None
    assert stored["_id"] not in backend.events


@pytest.mark.asyncio
async def test_admin_can_delete_any_event(sign_in, member, admin, backend):
    stored = backend.add_event(member["_id"])
    client = await sign_in(admin)

    assert await client.events.delete(stored["_id"])
    assert client.events.events == []


@pytest.mark.asyncio
async def test_delete_by_stranger_is_refused_locally(sign_in, member, admin, backend):
    stored = backend.add_event(admin["_id"])
    client = await sign_in(member)

    assert not await client.events.delete(stored["_id"])
    assert client.events.error == "Only the event creator or an admin can delete this event"
    assert f"DELETE /events/{stored['_id']}" not in backend.calls
    assert client.events.get(stored["_id"]) is not None


# ----------------------------------------------------------------------
# Join / leave
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_join_and_leave(sign_in, member, admin, backend):
    stored = backend.add_event(admin["_id"], max_participants=2)
    client = await sign_in(member)

    joined = await client.events.join(stored["_id"])
    assert joined.has_participant(member["_id"])
    assert client.events.my_events == [joined]

    left = await client.events.leave(stored["_id"])
    assert not left.has_participant(member["_id"])
    assert client.events.my_events == []


@pytest.mark.asyncio
async def test_join_respects_capacity(sign_in, member, admin, backend):
    other = backend.add_user("Zoe", "zoe@example.com")
    stored = backend.add_event(admin["_id"], max_participants=2, participants=[other["_id"]])
    client = await sign_in(member)

    joined = await client.events.join(stored["_id"])
    assert len(joined.participants) <= joined.max_participants
    assert joined.is_full

    client.session.logout()
    client = await sign_in(admin)
    before = client.events.get(stored["_id"])
    calls_before = len(backend.calls)

    assert await client.events.join(stored["_id"]) is None
    assert client.events.error == "Event is full"
    assert client.events.get(stored["_id"]) == before
    assert len(backend.calls) == calls_before


@pytest.mark.asyncio
async def test_join_pending_event_is_refused_locally(sign_in, member, admin, backend):
    stored = backend.add_event(admin["_id"], status="pending")
    client = await sign_in(member)

    assert await client.events.join(stored["_id"]) is None
    assert client.events.error == "Only approved events can be joined"
    assert f"PUT /events/{stored['_id']}/join" not in backend.calls


@pytest.mark.asyncio
async def test_server_refusal_leaves_cache_untouched(sign_in, member, admin, backend):
    other = backend.add_user("Zoe", "zoe@example.com")
    stored = backend.add_event(admin["_id"], max_participants=2)
    client = await sign_in(member)
    before = client.events.get(stored["_id"])

    # Fills up on the server after our cache was loaded
    stored["participants"].extend([other["_id"], admin["_id"]])

    assert await client.events.join(stored["_id"]) is None
    assert client.events.error == "Event is full"
    assert client.events.get(stored["_id"]) == before


@pytest.mark.asyncio
async def test_transient_failure_surfaces_server_message(sign_in, member, admin, backend):
    stored = backend.add_event(admin["_id"])
    client = await sign_in(member)
    backend.fail(f"PUT /events/{stored['_id']}/join")

    assert await client.events.join(stored["_id"]) is None
    assert client.events.error == "Service temporarily unavailable"

    client.events.clear_error()
    assert client.events.error is None


@pytest.mark.asyncio
async def test_next_operation_resets_error(sign_in, member, admin, backend):
    stored = backend.add_event(admin["_id"])
    client = await sign_in(member)

    await client.events.leave(stored["_id"])
    assert client.events.error == "Not a participant of this event"

    assert await client.events.join(stored["_id"]) is not None
    assert client.events.error is None


@pytest.mark.asyncio
async def test_my_events_is_stable(sign_in, member, admin, backend):
    backend.add_event(member["_id"], title="Mine")
    backend.add_event(admin["_id"], title="Joined", participants=[member["_id"]])
    backend.add_event(admin["_id"], title="Other")
    client = await sign_in(member)

    first = client.events.my_events
    second = client.events.my_events
    assert first == second
    assert [e.title for e in first] == ["Mine", "Joined"]


# ----------------------------------------------------------------------
# Moderation
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_admin_approves_pending_event(sign_in, member, admin, backend):
    stored = backend.add_event(member["_id"], status="pending")
    client = await sign_in(admin)

    approved = await client.events.approve(stored["_id"])
    assert approved.status == EventStatus.APPROVED
    assert client.events.get(stored["_id"]).accepts_joins


@pytest.mark.asyncio
async def test_member_cannot_moderate(sign_in, member, admin, backend):
    stored = backend.add_event(admin["_id"], status="pending")
    client = await sign_in(member)
    before = client.events.get(stored["_id"])

    assert await client.events.approve(stored["_id"]) is None
    assert client.events.error == "Admin access required"
    assert await client.events.reject(stored["_id"], "Too vague") is None
    assert client.events.get(stored["_id"]) == before
    assert not any(call.endswith(("/approve", "/reject")) for call in backend.calls)


@pytest.mark.asyncio
async def test_only_pending_events_can_be_moderated(sign_in, member, admin, backend):
    stored = backend.add_event(member["_id"], status="approved")
    client = await sign_in(admin)

    assert await client.events.approve(stored["_id"]) is None
    assert client.events.error == "Only pending events can be approved"
    assert await client.events.reject(stored["_id"], "Late") is None
    assert client.events.error == "Only pending events can be rejected"


@pytest.mark.asyncio
async def test_reject_requires_reason(sign_in, member, admin, backend):
    stored = backend.add_event(member["_id"], status="pending")
    client = await sign_in(admin)
    calls_before = len(backend.calls)

    assert await client.events.reject(stored["_id"], "   ") is None
    assert client.events.error == "A reason is required to reject an event"
    assert len(backend.calls) == calls_before
    assert client.events.get(stored["_id"]).status == EventStatus.PENDING


@pytest.mark.asyncio
async def test_reject_with_reason(sign_in, member, admin, backend):
    stored = backend.add_event(member["_id"], status="pending")
    client = await sign_in(admin)

    rejected = await client.events.reject(stored["_id"], "Location missing")
    assert rejected.status == EventStatus.REJECTED
    assert rejected.rejection_reason == "Location missing"
