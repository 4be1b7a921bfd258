"""
Test cases for SOS acknowledgement
"""
from sqlalchemy import select

from models.sos import FamilyAlert, SOSAcknowledgement
from repositories.sos import AcknowledgementRepository


async def _setup(create_user, create_family, create_event, member_status="active", event_status="active"):
    owner = await create_user(first_name="Maria", device_token="owner-token")
    member = await create_user(first_name="Pablo", last_name="Ruiz")
    group = await create_family(owner, [member], status=member_status)
    event = await create_event(owner, group, status=event_status)
    return owner, member, group, event


async def test_first_acknowledgement_records_and_notifies(
    client, db_session, create_user, create_family, create_event, auth_headers, channels
):
    """
    Test: Active family member acknowledges an active event
    Confirm: Row stored with the default message and all three downstream effects attempted
    Input: event_id, no message
    Result: 200, call_sequence_paused=True, group broadcast, originator alerted, pause requested
    """
    owner, member, group, event = await _setup(create_user, create_family, create_event)
    headers = await auth_headers(member)

    response = await client.post("/api/v1/sos/acknowledge", json={"event_id": event.id}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["call_sequence_paused"] is True
    assert data["acknowledgement"]["message"] == "Received & On It"
    assert data["acknowledgement"]["family_user_id"] == member.id

    channels.pause.assert_awaited_once_with(event.id, "family_acknowledged")

    broadcast_calls = [(c.args[0], c.args[1]) for c in channels.broadcast.await_args_list]
    assert (f"sos_event:{event.id}", "sos_acknowledged") in broadcast_calls
    assert (f"family_member:{owner.id}", "acknowledgement") in broadcast_calls

    result = await db_session.execute(select(FamilyAlert).where(FamilyAlert.event_id == event.id))
    alert = result.scalar_one()
    assert alert.family_user_id == owner.id
    assert alert.alert_type == "acknowledgement"
    assert alert.alert_data["message"] == "Family member responded: Received & On It"
    assert alert.alert_data["user_profile"]["first_name"] == "Pablo"

    channels.push.assert_awaited_once()
    assert channels.push.await_args.args[0] == "owner-token"


async def test_acknowledgement_is_idempotent(
    client, create_user, create_family, create_event, auth_headers, channels, count_rows
):
    """
    Test: Same member acknowledges twice
    Confirm: One row, same acknowledgement returned, downstream effects not repeated
    Input: two identical requests
    Result: both 200, one row, pause requested once
    """
    owner, member, group, event = await _setup(create_user, create_family, create_event)
    headers = await auth_headers(member)

    first = await client.post("/api/v1/sos/acknowledge", json={"event_id": event.id, "message": "On my way"}, headers=headers)
    second = await client.post("/api/v1/sos/acknowledge", json={"event_id": event.id, "message": "Again"}, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["acknowledgement"]["id"] == first.json()["acknowledgement"]["id"]
    assert second.json()["acknowledgement"]["message"] == "On my way"
    assert second.json()["call_sequence_paused"] is False
    assert await count_rows(SOSAcknowledgement, SOSAcknowledgement.event_id == event.id) == 1
    assert channels.pause.await_count == 1


async def test_two_members_each_acknowledge(
    client, create_user, create_family, create_event, auth_headers, count_rows
):
    owner = await create_user()
    first_member = await create_user(first_name="Ana")
    second_member = await create_user(first_name="Bea")
    group = await create_family(owner, [first_member, second_member])
    event = await create_event(owner, group)

    for member in (first_member, second_member):
        response = await client.post(
            "/api/v1/sos/acknowledge", json={"event_id": event.id}, headers=await auth_headers(member)
        )
        assert response.status_code == 200

    assert await count_rows(SOSAcknowledgement, SOSAcknowledgement.event_id == event.id) == 2


async def test_resolved_event_cannot_be_acknowledged(
    client, create_user, create_family, create_event, auth_headers, count_rows
):
    """
    Test: Acknowledge an event that is already resolved
    Confirm: Rejected and nothing stored
    Input: event status resolved
    Result: 409, no acknowledgement row
    """
    owner, member, group, event = await _setup(create_user, create_family, create_event, event_status="resolved")
    headers = await auth_headers(member)

    response = await client.post("/api/v1/sos/acknowledge", json={"event_id": event.id}, headers=headers)

    assert response.status_code == 409
    assert response.json()["success"] is False
    assert await count_rows(SOSAcknowledgement) == 0


async def test_non_member_cannot_acknowledge(
    client, create_user, create_family, create_event, auth_headers, channels, count_rows
):
    """
    Test: A user outside the family group acknowledges
    Confirm: Authorization error with the generic message, nothing stored
    Input: stranger's bearer token
    Result: 403, no row, no pause
    """
    owner, member, group, event = await _setup(create_user, create_family, create_event)
    stranger = await create_user(first_name="Extra")
    headers = await auth_headers(stranger)

    response = await client.post("/api/v1/sos/acknowledge", json={"event_id": event.id}, headers=headers)

    assert response.status_code == 403
    assert response.json()["message"] == "SOS event not found or user not authorized"
    assert await count_rows(SOSAcknowledgement) == 0
    channels.pause.assert_not_awaited()


async def test_pending_member_cannot_acknowledge(
    client, create_user, create_family, create_event, auth_headers, count_rows
):
    owner, member, group, event = await _setup(create_user, create_family, create_event, member_status="pending")
    headers = await auth_headers(member)

    response = await client.post("/api/v1/sos/acknowledge", json={"event_id": event.id}, headers=headers)

    assert response.status_code == 403
    assert await count_rows(SOSAcknowledgement) == 0


async def test_unknown_event_looks_like_unauthorized(client, create_user, auth_headers):
    member = await create_user()
    headers = await auth_headers(member)

    response = await client.post("/api/v1/sos/acknowledge", json={"event_id": 4242}, headers=headers)

    assert response.status_code == 403
    assert response.json()["message"] == "SOS event not found or user not authorized"


async def test_acknowledge_requires_authentication(client, create_user, create_family, create_event):
    owner, member, group, event = await _setup(create_user, create_family, create_event)

    response = await client.post("/api/v1/sos/acknowledge", json={"event_id": event.id})

    assert response.status_code == 401


async def test_downstream_failures_do_not_fail_acknowledgement(
    client, create_user, create_family, create_event, auth_headers, channels, count_rows
):
    """
    Test: Broadcast, push and pause all fail
    Confirm: The acknowledgement itself still succeeds
    Input: every channel raises
    Result: 200, call_sequence_paused=False, one row
    """
    owner, member, group, event = await _setup(create_user, create_family, create_event)
    headers = await auth_headers(member)
    channels.broadcast.side_effect = ConnectionError("redis unavailable")
    channels.push.side_effect = RuntimeError("fcm unavailable")
    channels.pause.side_effect = RuntimeError("call controller unavailable")

    response = await client.post("/api/v1/sos/acknowledge", json={"event_id": event.id}, headers=headers)

    assert response.status_code == 200
    assert response.json()["call_sequence_paused"] is False
    assert await count_rows(SOSAcknowledgement) == 1


async def test_concurrent_insert_returns_existing_row(db_session, create_user, create_event):
    """
    Test: Another request inserts between the existence check and the insert
    Confirm: Unique constraint settles the race and the existing row is returned
    Input: existence check forced to miss once
    Result: created=False, same row id, one row stored
    """
    owner = await create_user()
    member = await create_user(first_name="Ana")
    event = await create_event(owner)
    event_id, member_id = event.id, member.id

    repo = AcknowledgementRepository(db_session)
    existing, created = await repo.create_once(event_id, member_id, "First")
    assert created is True
    existing_id = existing.id

    real_get = repo.get
    calls = {"count": 0}

    async def racing_get(event_id, family_user_id):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return await real_get(event_id, family_user_id)

    repo.get = racing_get
    acknowledgement, created = await repo.create_once(event_id, member_id, "Second")

    assert created is False
    assert acknowledgement.id == existing_id
    assert acknowledgement.message == "First"

    result = await db_session.execute(
        select(SOSAcknowledgement).where(SOSAcknowledgement.event_id == event_id)
    )
    assert len(result.scalars().all()) == 1
