"""
Tests for event endpoints and the event service.
"""
from datetime import timedelta

import pytest

from eventsync.errors import AccessDenied, NotFound, ValidationError
from eventsync.models.event import Event, EventParticipant
from eventsync.schemas import EventCreate, EventPatch, EventUpdate, RecipientCreate
from eventsync.types import utcnow

from conftest import future


def event_payload(**overrides):
    payload = {
        "title": "Launch",
        "event_date": future().isoformat(),
        "location": "Main Hall",
        "tags": ["launch", "public"],
    }
    payload.update(overrides)
    return payload


def make_event(event_service, user, **fields):
    fields.setdefault("title", "Launch")
    fields.setdefault("event_date", future())
    return event_service.create(user.id, EventCreate(**fields))


def make_recipient(recipient_service, user, email, **fields):
    return recipient_service.create(user.id, RecipientCreate(email=email, **fields))


class TestEventService:
    """Event domain rules, exercised without HTTP."""

    def test_create_round_trip(self, event_service, test_user):
        event_date = future()
        created = make_event(event_service, test_user, event_date=event_date, tags=["a"], metadata={"k": 1})

        event = event_service.get_owned(created.id, test_user.id)
        assert event.title == "Launch"
        assert event.event_date == event_date
        assert event.tags == ["a"]
        assert event.metadata_ == {"k": 1}
        assert event.status == "draft"
        assert event.current_participants == 0
        assert event.is_public is False

    def test_create_rejects_past_date(self, event_service, test_user):
        with pytest.raises(ValidationError) as exc:
            make_event(event_service, test_user, event_date=utcnow() - timedelta(days=1))
        assert exc.value.field == "event_date"

    def test_get_missing_and_foreign(self, event_service, test_user, other_user):
        event = make_event(event_service, test_user)
        with pytest.raises(NotFound):
            event_service.get_owned("missing-id", test_user.id)
        with pytest.raises(AccessDenied):
            event_service.get_owned(event.id, other_user.id)

    def test_other_user_cannot_update_or_delete(self, event_service, test_user, other_user):
        event = make_event(event_service, test_user)
        update = EventUpdate(title="Hijacked", event_date=future(3))

        with pytest.raises(AccessDenied):
            event_service.update(event.id, other_user.id, update)
        with pytest.raises(AccessDenied):
            event_service.patch(event.id, other_user.id, EventPatch(title="Hijacked"))
        with pytest.raises(AccessDenied):
            event_service.delete(event.id, other_user.id)

        event = event_service.get_owned(event.id, test_user.id)
        assert event.title == "Launch"

    def test_update_replaces_every_field(self, event_service, test_user):
        event = make_event(event_service, test_user, description="Old", location="Hall", tags=["x"])
        updated = event_service.update(
            event.id,
            test_user.id,
            EventUpdate(title="Launch v2", event_date=event.event_date, status="active"),
        )
        assert updated.title == "Launch v2"
        assert updated.status == "active"
        assert updated.description is None
        assert updated.location is None
        assert updated.tags == []

    def test_patch_changes_only_set_fields(self, event_service, test_user):
        event = make_event(event_service, test_user, description="Keep me", location="Hall")
        patched = event_service.patch(event.id, test_user.id, EventPatch(status="active"))
        assert patched.status == "active"
        assert patched.description == "Keep me"
        assert patched.location == "Hall"

    def test_patch_rejects_null_title(self, event_service, test_user):
        event = make_event(event_service, test_user)
        with pytest.raises(ValidationError):
            event_service.patch(event.id, test_user.id, EventPatch(title=None))

    def test_update_to_past_date_rejected(self, event_service, test_user):
        event = make_event(event_service, test_user)
        with pytest.raises(ValidationError):
            event_service.patch(event.id, test_user.id, EventPatch(event_date=utcnow() - timedelta(hours=1)))

    def test_list_paginates_and_filters(self, event_service, test_user, other_user):
        for i in range(5):
            make_event(event_service, test_user, title=f"Event {i}", status="active" if i % 2 else "draft")
        make_event(event_service, other_user, title="Not mine")

        items, total = event_service.list(test_user.id, page=1, limit=2, sort_by="title", sort_order="asc")
        assert total == 5
        assert [e.title for e in items] == ["Event 0", "Event 1"]

        items, total = event_service.list(test_user.id, status="active")
        assert total == 2

    def test_list_rejects_unknown_sort_column(self, event_service, test_user):
        with pytest.raises(ValidationError):
            event_service.list(test_user.id, sort_by="password_hash")

    def test_delete_cascades_participants(self, event_service, recipient_service, test_user, db):
        event = make_event(event_service, test_user)
        bob = make_recipient(recipient_service, test_user, "bob@x.com")
        event_service.add_participant(event.id, bob.id, test_user.id)

        assert event_service.delete(event.id, test_user.id) is True
        assert db.query(EventParticipant).count() == 0
        assert db.query(Event).count() == 0


class TestParticipants:
    """Participant upsert and the derived participant count."""

    def test_add_participant_twice_is_idempotent(self, event_service, recipient_service, test_user, db):
        event = make_event(event_service, test_user)
        bob = make_recipient(recipient_service, test_user, "bob@x.com")

        event_service.add_participant(event.id, bob.id, test_user.id, status="confirmed")
        participant = event_service.add_participant(event.id, bob.id, test_user.id, status="confirmed")

        assert participant.status == "confirmed"
        assert db.query(EventParticipant).filter(EventParticipant.event_id == event.id).count() == 1
        assert event_service.get_owned(event.id, test_user.id).current_participants == 1

    def test_current_participants_counts_confirmed_and_attended(self, event_service, recipient_service, test_user):
        event = make_event(event_service, test_user)
        recipients = [
            make_recipient(recipient_service, test_user, f"r{i}@x.com") for i in range(3)
        ]
        for recipient, status in zip(recipients, ["confirmed", "invited", "attended"]):
            event_service.add_participant(event.id, recipient.id, test_user.id, status=status)

        assert event_service.get_owned(event.id, test_user.id).current_participants == 2

        assert event_service.remove_participant(event.id, recipients[2].id, test_user.id) is True
        assert event_service.get_owned(event.id, test_user.id).current_participants == 1

    def test_readd_updates_status_and_invited_at(self, event_service, recipient_service, test_user):
        event = make_event(event_service, test_user)
        bob = make_recipient(recipient_service, test_user, "bob@x.com")

        first = event_service.add_participant(event.id, bob.id, test_user.id)
        first_invited_at = first.invited_at
        assert first.responded_at is None

        second = event_service.add_participant(event.id, bob.id, test_user.id, status="declined", notes="Busy")
        assert second.id == first.id
        assert second.status == "declined"
        assert second.notes == "Busy"
        assert second.responded_at is not None
        assert second.invited_at >= first_invited_at

    def test_remove_missing_participant_returns_false(self, event_service, recipient_service, test_user):
        event = make_event(event_service, test_user)
        bob = make_recipient(recipient_service, test_user, "bob@x.com")
        assert event_service.remove_participant(event.id, bob.id, test_user.id) is False

    def test_cannot_invite_foreign_recipient(self, event_service, recipient_service, test_user, other_user):
        event = make_event(event_service, test_user)
        stranger = make_recipient(recipient_service, other_user, "stranger@x.com")
        with pytest.raises(NotFound):
            event_service.add_participant(event.id, stranger.id, test_user.id)

    def test_invalid_participant_status(self, event_service, recipient_service, test_user):
        event = make_event(event_service, test_user)
        bob = make_recipient(recipient_service, test_user, "bob@x.com")
        with pytest.raises(ValidationError):
            event_service.add_participant(event.id, bob.id, test_user.id, status="maybe")

    def test_concrete_scenario(self, db, event_service, recipient_service):
        """Register, create an event, invite then confirm a participant."""
        from eventsync.services import IdentityService
        from conftest import service_logger

        user, _ = IdentityService(db, service_logger).register("a@x.com", "password1")
        conf = make_event(event_service, user, title="Conf", event_date=future(7))
        assert conf.status == "draft"

        bob = make_recipient(recipient_service, user, "bob@x.com")
        event_service.add_participant(conf.id, bob.id, user.id, status="invited")

        rows = event_service.get_participants(conf.id, user.id)
        assert len(rows) == 1
        participant, recipient = rows[0]
        assert recipient.email == "bob@x.com"
        assert event_service.get_owned(conf.id, user.id).current_participants == 0

        event_service.add_participant(conf.id, bob.id, user.id, status="confirmed")
        assert event_service.get_owned(conf.id, user.id).current_participants == 1


class TestEventQueries:
    """Search, upcoming and statistics."""

    def test_search_matches_text_and_exact_tag(self, event_service, test_user, other_user):
        make_event(event_service, test_user, title="Spring Launch", tags=["product"])
        make_event(event_service, test_user, title="Workshop", location="Berlin", tags=["partners"])
        make_event(event_service, test_user, title="Dinner", tags=["productivity"])
        make_event(event_service, other_user, title="Launch party")

        assert [e.title for e in event_service.search(test_user.id, "launch")] == ["Spring Launch"]
        assert [e.title for e in event_service.search(test_user.id, "BERLIN")] == ["Workshop"]
        assert [e.title for e in event_service.search(test_user.id, "product")] == ["Spring Launch"]

    def test_tag_match_is_whole_element(self, event_service, test_user):
        make_event(event_service, test_user, title="Quoted", tags=['x", "vip'])
        make_event(event_service, test_user, title="Tagged", tags=["vip"])
        assert [e.title for e in event_service.search(test_user.id, "vip")] == ["Tagged"]

    def test_search_term_with_wildcards_is_literal(self, event_service, test_user):
        make_event(event_service, test_user, title="Launch")
        assert event_service.search(test_user.id, "%") == []

    def test_search_requires_term(self, event_service, test_user):
        with pytest.raises(ValidationError):
            event_service.search(test_user.id, "  ")

    def test_upcoming_only_active_future_events(self, event_service, test_user):
        make_event(event_service, test_user, title="Later", event_date=future(10), status="active")
        make_event(event_service, test_user, title="Sooner", event_date=future(2), status="active")
        make_event(event_service, test_user, title="Draft", event_date=future(1))

        assert [e.title for e in event_service.get_upcoming(test_user.id)] == ["Sooner", "Later"]

    def test_stats(self, event_service, recipient_service, test_user):
        event = make_event(event_service, test_user, status="active")
        make_event(event_service, test_user, status="cancelled")
        bob = make_recipient(recipient_service, test_user, "bob@x.com")
        event_service.add_participant(event.id, bob.id, test_user.id, status="confirmed")

        stats = event_service.get_stats(test_user.id)
        assert stats["total"] == 2
        assert stats["active"] == 1
        assert stats["cancelled"] == 1
        assert stats["draft"] == 0
        assert stats["upcoming"] == 2
        assert stats["total_participants"] == 1


class TestEventsEndpoints:
    """Test events endpoints."""

    def test_create_event(self, client, auth_headers):
        response = client.post("/api/events", headers=auth_headers, json=event_payload())
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Launch"
        assert data["status"] == "draft"
        assert data["current_participants"] == 0
        assert data["tags"] == ["launch", "public"]

    def test_create_event_unauthenticated(self, client):
        response = client.post("/api/events", json=event_payload())
        assert response.status_code == 401

    def test_create_event_validation(self, client, auth_headers):
        response = client.post("/api/events", headers=auth_headers, json=event_payload(title="ab"))
        assert response.status_code == 422
        fields = [f["field"] for f in response.json()["details"]["fields"]]
        assert "title" in fields

        past = (utcnow() - timedelta(days=1)).isoformat()
        response = client.post("/api/events", headers=auth_headers, json=event_payload(event_date=past))
        assert response.status_code == 422
        assert response.json()["details"]["field"] == "event_date"

    def test_list_events(self, client, auth_headers):
        for title in ("One", "Two", "Three"):
            client.post("/api/events", headers=auth_headers, json=event_payload(title=title))

        response = client.get("/api/events?limit=2", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"]["total"] == 3
        assert body["pagination"]["has_next"] is True

    def test_list_events_bad_sort(self, client, auth_headers):
        response = client.get("/api/events?sort_by=user_id", headers=auth_headers)
        assert response.status_code == 422

    def test_get_event_forbidden_vs_not_found(self, client, auth_headers, other_headers):
        created = client.post("/api/events", headers=auth_headers, json=event_payload()).json()["data"]

        assert client.get(f"/api/events/{created['id']}", headers=other_headers).status_code == 403
        assert client.get("/api/events/does-not-exist", headers=auth_headers).status_code == 404

    def test_update_and_patch_event(self, client, auth_headers):
        created = client.post("/api/events", headers=auth_headers, json=event_payload()).json()["data"]

        response = client.put(
            f"/api/events/{created['id']}",
            headers=auth_headers,
            json=event_payload(title="Launch v2", status="active", tags=[]),
        )
        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Launch v2"
        assert response.json()["data"]["tags"] == []

        response = client.patch(
            f"/api/events/{created['id']}",
            headers=auth_headers,
            json={"status": "completed"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"
        assert response.json()["data"]["title"] == "Launch v2"

    def test_delete_event(self, client, auth_headers, other_headers):
        created = client.post("/api/events", headers=auth_headers, json=event_payload()).json()["data"]

        assert client.delete(f"/api/events/{created['id']}", headers=other_headers).status_code == 403
        assert client.delete(f"/api/events/{created['id']}", headers=auth_headers).status_code == 200
        assert client.get(f"/api/events/{created['id']}", headers=auth_headers).status_code == 404

    def test_participants_flow(self, client, auth_headers):
        event = client.post("/api/events", headers=auth_headers, json=event_payload()).json()["data"]
        bob = client.post(
            "/api/recipients",
            headers=auth_headers,
            json={"email": "bob@x.com", "first_name": "Bob"},
        ).json()["data"]

        response = client.post(
            f"/api/events/{event['id']}/participants",
            headers=auth_headers,
            json={"recipient_id": bob["id"], "status": "confirmed"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "confirmed"

        detail = client.get(f"/api/events/{event['id']}", headers=auth_headers).json()["data"]
        assert detail["current_participants"] == 1
        assert detail["participants"][0]["email"] == "bob@x.com"

        response = client.delete(f"/api/events/{event['id']}/participants/{bob['id']}", headers=auth_headers)
        assert response.status_code == 200
        response = client.delete(f"/api/events/{event['id']}/participants/{bob['id']}", headers=auth_headers)
        assert response.status_code == 404

        participants = client.get(f"/api/events/{event['id']}/participants", headers=auth_headers)
        assert participants.json()["data"] == []

    def test_search_upcoming_and_stats_routes(self, client, auth_headers):
        client.post("/api/events", headers=auth_headers, json=event_payload(status="active"))

        search = client.get("/api/events/search?q=launch", headers=auth_headers)
        assert search.status_code == 200
        assert len(search.json()["data"]) == 1

        upcoming = client.get("/api/events/upcoming", headers=auth_headers)
        assert len(upcoming.json()["data"]) == 1

        stats = client.get("/api/events/stats", headers=auth_headers)
        assert stats.json()["data"]["total"] == 1

        assert client.get("/api/events/search?q=", headers=auth_headers).status_code == 422
