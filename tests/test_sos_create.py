"""
Test cases for SOS event intake
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from models.sos import RegionalSOSEvent, SOSEvent, SOSEventAccess, SOSLocation
from models.organization import Organization
from repositories.sos import SOSEventRepository


async def test_spain_rule_rejects_user_without_connections(client, create_user, auth_headers, count_rows):
    """
    Test: Spanish user with no connections and no regional subscription triggers SOS
    Confirm: Rejected with the policy code and no event stored
    Input: country_code=ES, zero connections, subscription_regional=False
    Result: 403 SPAIN_RULE_VIOLATION
    """
    user = await create_user(country_code="ES")
    headers = await auth_headers(user)

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id, "lat": 40.4, "lng": -3.7}, headers=headers)

    assert response.status_code == 403
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "SPAIN_RULE_VIOLATION"
    assert "Spain rule violation" in data["message"]
    assert await count_rows(SOSEvent) == 0


async def test_spain_rule_ignores_pending_connections(client, create_user, auth_headers, create_connection, count_rows):
    """
    Test: Spanish user whose only connection is still pending
    Confirm: Pending connections do not satisfy the rule
    Input: country_code=ES, one pending trusted contact
    Result: 403, no event
    """
    user = await create_user(country_code="ES")
    contact = await create_user(first_name="Luis")
    await create_connection(user, contact, status="pending")
    headers = await auth_headers(user)

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 403
    assert response.json()["code"] == "SPAIN_RULE_VIOLATION"
    assert await count_rows(SOSEvent) == 0


async def test_spain_user_with_active_connection_succeeds(client, create_user, auth_headers, create_connection, count_rows):
    """
    Test: Spanish user with one active connection
    Confirm: Rule passes and exactly one active event is created
    Input: country_code=ES, one active trusted contact
    Result: 200, event status active
    """
    user = await create_user(country_code="es")
    contact = await create_user(first_name="Luis")
    await create_connection(user, contact)
    headers = await auth_headers(user)

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id, "lat": 40.4, "lng": -3.7}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["event"]["status"] == "active"
    assert data["connections_notified"] == 1
    assert await count_rows(SOSEvent) == 1


async def test_spain_user_with_regional_subscription_succeeds(client, db_session, create_user, auth_headers, count_rows):
    """
    Test: Spanish user with no connections but a regional subscription
    Confirm: Regional subscription alone satisfies the rule and mirrors the event
    Input: country_code=ES, subscription_regional=True, organization set
    Result: 200, regional event open/medium
    """
    organization = Organization(name="Centro Regional", country="ES")
    db_session.add(organization)
    await db_session.commit()
    await db_session.refresh(organization)

    user = await create_user(country_code="ES", subscription_regional=True, organization_id=organization.id)
    headers = await auth_headers(user)

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["regional_created"] is True
    assert data["connections_notified"] == 0

    result = await db_session.execute(select(RegionalSOSEvent))
    regional = result.scalars().all()
    assert len(regional) == 1
    assert regional[0].sos_event_id == data["event"]["id"]
    assert regional[0].status == "open"
    assert regional[0].priority == "medium"
    assert regional[0].organization_id == organization.id


async def test_regional_subscription_without_organization_skips_mirror(client, create_user, auth_headers, count_rows):
    user = await create_user(country_code="ES", subscription_regional=True)
    headers = await auth_headers(user)

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    assert response.json()["regional_created"] is False
    assert await count_rows(RegionalSOSEvent) == 0


async def test_non_spain_user_without_connections_succeeds(client, create_user, auth_headers, count_rows):
    user = await create_user(country_code="FR")
    headers = await auth_headers(user)

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    assert response.json()["connections_notified"] == 0
    assert await count_rows(SOSEvent) == 1


async def test_create_event_stores_location_and_tags_group(client, create_user, auth_headers, create_family, count_rows):
    """
    Test: Trigger with coordinates by a family group owner
    Confirm: First location row written and the event tagged with the group
    Input: lat=40.0, lng=-3.0, emergency_type=medical, source=device
    Result: event.group_id set, one sos_locations row
    """
    user = await create_user()
    member = await create_user(first_name="Pablo")
    group = await create_family(user, [member])
    headers = await auth_headers(user)

    response = await client.post(
        "/api/v1/sos/events",
        json={"user_id": user.id, "lat": 40.0, "lng": -3.0, "emergency_type": "medical", "source": "device"},
        headers=headers,
    )

    assert response.status_code == 200
    event = response.json()["event"]
    assert event["group_id"] == group.id
    assert event["emergency_type"] == "medical"
    assert event["source"] == "device"
    assert event["lat"] == 40.0
    assert await count_rows(SOSLocation, SOSLocation.event_id == event["id"]) == 1


async def test_create_event_without_coordinates_has_no_location(client, create_user, auth_headers, count_rows):
    user = await create_user()
    headers = await auth_headers(user)

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    assert await count_rows(SOSLocation) == 0


async def test_trusted_contacts_receive_24h_access(client, db_session, create_user, auth_headers, create_connection):
    """
    Test: Owner with two trusted contacts, one family circle contact and one unaccepted invite
    Confirm: Grants only for trusted contacts with a resolved user id
    Input: 2 trusted_contact, 1 family_circle, 1 trusted_contact without contact_user_id
    Result: 2 live_only grants expiring ~24h from now, 4 connections notified
    """
    user = await create_user()
    first = await create_user(first_name="Ana")
    second = await create_user(first_name="Jose")
    circle = await create_user(first_name="Eva")
    await create_connection(user, first)
    await create_connection(user, second)
    await create_connection(user, circle, type="family_circle")
    await create_connection(user, None)
    headers = await auth_headers(user)

    before = datetime.now(timezone.utc).replace(tzinfo=None)
    response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["connections_notified"] == 4
    assert data["access_granted"] == 2

    result = await db_session.execute(select(SOSEventAccess).order_by(SOSEventAccess.user_id))
    grants = result.scalars().all()
    assert [g.user_id for g in grants] == sorted([first.id, second.id])
    for grant in grants:
        assert grant.access_scope == "live_only"
        expires_at = grant.expires_at.replace(tzinfo=None)
        assert before + timedelta(hours=23, minutes=59) <= expires_at <= before + timedelta(hours=24, minutes=1)


async def test_grant_scope_follows_settings(client, db_session, create_user, create_connection, auth_headers):
    user = await create_user()
    contact = await create_user(first_name="Ana")
    await create_connection(user, contact)

    with patch.object(settings, "SOS_ACCESS_SCOPE", "location_history"):
        response = await client.post(
            "/api/v1/sos/events", json={"user_id": user.id}, headers=await auth_headers(user)
        )

    assert response.status_code == 200
    result = await db_session.execute(select(SOSEventAccess))
    assert [g.access_scope for g in result.scalars().all()] == ["location_history"]


async def test_grant_failure_does_not_undo_event(client, create_user, auth_headers, create_connection, count_rows):
    user = await create_user()
    contact = await create_user(first_name="Ana")
    await create_connection(user, contact)
    headers = await auth_headers(user)

    with patch.object(SOSEventRepository, "create_access_grant", new_callable=AsyncMock, side_effect=SQLAlchemyError("grant insert failed")):
        response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    assert response.json()["access_granted"] == 0
    assert await count_rows(SOSEvent) == 1


async def test_regional_failure_does_not_undo_event(client, db_session, create_user, auth_headers, count_rows):
    """
    Test: Regional mirror insert fails
    Confirm: Primary event survives and the response reports no regional event
    Input: regional subscriber, create_regional_event raises
    Result: 200, regional_created=False, one SOS event
    """
    organization = Organization(name="Centro Regional", country="ES")
    db_session.add(organization)
    await db_session.commit()
    await db_session.refresh(organization)
    user = await create_user(subscription_regional=True, organization_id=organization.id)
    headers = await auth_headers(user)

    with patch.object(SOSEventRepository, "create_regional_event", new_callable=AsyncMock, side_effect=SQLAlchemyError("regional insert failed")):
        response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    assert response.json()["regional_created"] is False
    assert await count_rows(SOSEvent) == 1


async def test_primary_insert_failure_returns_500(client, create_user, auth_headers):
    user = await create_user()
    headers = await auth_headers(user)

    with patch.object(SOSEventRepository, "create_event", new_callable=AsyncMock, side_effect=SQLAlchemyError("connection lost")):
        response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert "connection lost" in data["message"]


async def test_missing_user_id_returns_400(client, create_user, auth_headers):
    user = await create_user()
    headers = await auth_headers(user)

    response = await client.post("/api/v1/sos/events", json={"lat": 40.0, "lng": -3.0}, headers=headers)

    assert response.status_code == 400
    assert response.json()["message"] == "user_id is required"


async def test_unauthenticated_trigger_returns_401(client, create_user, count_rows):
    user = await create_user()

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id})

    assert response.status_code == 401
    assert await count_rows(SOSEvent) == 0


async def test_expired_session_returns_401(client, db_session, create_user):
    from models.authentication import UserSession

    user = await create_user()
    db_session.add(UserSession(
        session_id="expired-session",
        user_id=user.id,
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
        is_active=True,
    ))
    await db_session.commit()

    response = await client.post(
        "/api/v1/sos/events",
        json={"user_id": user.id},
        headers={"Authorization": "Bearer expired-session"},
    )

    assert response.status_code == 401


async def test_trigger_for_another_user_returns_403(client, create_user, auth_headers, count_rows):
    user = await create_user()
    other = await create_user(first_name="Otro")
    headers = await auth_headers(other)

    response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 403
    assert await count_rows(SOSEvent) == 0


async def test_internal_caller_can_trigger_for_user(client, create_user, internal_headers):
    """
    Test: Device gateway triggers SOS with the internal header
    Confirm: No bearer token needed
    Input: x-internal header, source=device
    Result: 200
    """
    user = await create_user()

    response = await client.post(
        "/api/v1/sos/events",
        json={"user_id": user.id, "source": "device"},
        headers=internal_headers,
    )

    assert response.status_code == 200
    assert response.json()["event"]["source"] == "device"


async def test_wrong_internal_secret_is_not_trusted(client, create_user):
    user = await create_user()

    response = await client.post(
        "/api/v1/sos/events",
        json={"user_id": user.id},
        headers={"x-internal": "guess"},
    )

    assert response.status_code == 401


async def test_unknown_user_returns_404(client, internal_headers):
    response = await client.post("/api/v1/sos/events", json={"user_id": 9999}, headers=internal_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


async def test_stacked_active_events_are_allowed(client, create_user, auth_headers, count_rows):
    user = await create_user()
    headers = await auth_headers(user)

    first = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)
    second = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert await count_rows(SOSEvent, SOSEvent.status == "active") == 2


async def test_auto_dispatch_queues_family_alerts(client, create_user, auth_headers, monkeypatch):
    user = await create_user()
    headers = await auth_headers(user)
    monkeypatch.setattr(settings, "AUTO_DISPATCH_FAMILY_ALERTS", True)

    with patch("services.sos_service.celery_app.send_task") as mock_send:
        response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    mock_send.assert_called_once_with("dispatch_family_sos_alerts", args=[response.json()["event"]["id"]])


async def test_dispatch_failure_does_not_fail_intake(client, create_user, auth_headers, monkeypatch, count_rows):
    user = await create_user()
    headers = await auth_headers(user)
    monkeypatch.setattr(settings, "AUTO_DISPATCH_FAMILY_ALERTS", True)

    with patch("services.sos_service.celery_app.send_task", side_effect=ConnectionError("broker down")):
        response = await client.post("/api/v1/sos/events", json={"user_id": user.id}, headers=headers)

    assert response.status_code == 200
    assert await count_rows(SOSEvent) == 1
