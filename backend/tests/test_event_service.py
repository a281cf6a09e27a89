"""
Tests for EventService: the verbs the HTTP layer calls.
"""

from datetime import datetime
from uuid import uuid4

import pytest

from portal_calendar.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from portal_calendar.schemas import EventCreate, EventUpdate, RecurrenceRule


def _single(title="Review", starts_at=datetime(2025, 1, 10, 14, 0), **extra):
    return EventCreate(
        title=title,
        starts_at=starts_at,
        ends_at=starts_at.replace(hour=starts_at.hour + 1),
        **extra,
    )


def _instances(service, template):
    return service.repository.find_series(template.id, include_template=False)


class TestCreateEvent:
    """Tests for event creation."""

    def test_single_event(self, event_service, owner):
        event = event_service.create_event(_single(), owner)

        assert event.role == "single"
        assert event.is_active is True
        assert event.owner_email == owner.email
        assert event.color == "#3788d8"
        assert event.reminders == [{"type": "email", "minutes_before": 15}]

    def test_recurring_event_returns_hidden_template(self, sample_series, event_service):
        template = sample_series()

        assert template.role == "template"
        assert template.is_active is False
        assert len(_instances(event_service, template)) == 5

    def test_end_date_before_start_rejected(self, event_service, owner):
        payload = _single(recurrence=RecurrenceRule(pattern="daily", end_date=datetime(2025, 1, 1)))

        with pytest.raises(ValidationError):
            event_service.create_event(payload, owner)

    def test_end_date_on_start_day_accepted(self, event_service, owner):
        payload = _single(
            starts_at=datetime(2025, 1, 10, 14, 0),
            recurrence=RecurrenceRule(pattern="daily", end_date=datetime(2025, 1, 10)),
        )

        template = event_service.create_event(payload, owner)

        assert template.role == "template"
        assert _instances(event_service, template) == []

    def test_recurring_creation_commits_once(self, event_service, owner, test_db_session, monkeypatch):
        commits = []
        commit = test_db_session.commit

        def counting_commit():
            commits.append(True)
            commit()

        monkeypatch.setattr(test_db_session, "commit", counting_commit)

        template = event_service.create_event(
            _single(recurrence=RecurrenceRule(pattern="daily", end_after=10)), owner
        )

        assert len(commits) == 1
        assert len(_instances(event_service, template)) == 10

    def test_disabled_rule_creates_single_event(self, event_service, owner):
        payload = _single(recurrence=RecurrenceRule(is_recurring=False, pattern="daily"))

        event = event_service.create_event(payload, owner)

        assert event.role == "single"
        assert event.recurrence is None

    def test_unknown_invitees_are_skipped(self, event_service, owner, sample_user):
        guest = sample_user(email="guest@example.com", full_name="Guest")
        retired = sample_user(email="retired@example.com", is_active=False)

        event = event_service.create_event(
            _single(invited_user_ids=[guest.id, uuid4(), retired.id, guest.id]), owner
        )

        assert event.invited_users == [
            {"user_id": str(guest.id), "email": guest.email, "rsvp": "pending", "responded_at": None}
        ]

    def test_reminders_copied_to_instances(self, sample_series, event_service):
        template = sample_series(reminders=[{"type": "push", "minutes_before": 5}])

        for instance in _instances(event_service, template):
            assert instance.reminders == [{"type": "push", "minutes_before": 5}]


class TestListVisibleEvents:
    """Tests for listing and visibility."""

    def test_series_lists_instances_only(self, sample_series, event_service, owner):
        template = sample_series()

        events = event_service.list_visible_events(owner)

        assert len(events) == 5
        assert template.id not in {event.id for event in events}

    def test_private_events_of_others_hidden(self, event_service, owner, sample_user):
        other = sample_user(email="other@example.com")
        event_service.create_event(_single(title="Private"), other)
        event_service.create_event(_single(title="Public", privacy="public"), other)
        event_service.create_event(
            _single(title="Invited", invited_user_ids=[owner.id]), other
        )

        titles = {event.title for event in event_service.list_visible_events(owner)}

        assert titles == {"Public", "Invited"}

    def test_mine_filter(self, event_service, owner, sample_user):
        other = sample_user(email="other@example.com")
        event_service.create_event(_single(title="Theirs", privacy="public"), other)
        event_service.create_event(_single(title="Mine"), owner)

        events = event_service.list_visible_events(owner, mine=True)

        assert [event.title for event in events] == ["Mine"]

    def test_date_range(self, sample_series, event_service, owner):
        sample_series()

        events = event_service.list_visible_events(
            owner,
            starts_after=datetime(2025, 1, 4),
            ends_before=datetime(2025, 1, 5, 23, 59),
        )

        assert [event.starts_at.day for event in events] == [4, 5]


class TestGetEvent:
    def test_missing_event(self, event_service, owner):
        with pytest.raises(NotFoundError):
            event_service.get_event(uuid4(), owner)

    def test_private_event_of_other_user(self, event_service, owner, sample_user):
        other = sample_user(email="other@example.com")
        event = event_service.create_event(_single(), other)

        with pytest.raises(PermissionDeniedError):
            event_service.get_event(event.id, owner)

    def test_owner_match_ignores_case(self, event_service, owner):
        event = event_service.create_event(_single(), owner)
        event.owner_email = owner.email.upper()

        assert event_service.get_event(event.id, owner).id == event.id


class TestUpdateEvent:
    """Tests for update scopes and permissions."""

    def test_single_scope_on_instance(self, sample_series, event_service, owner):
        template = sample_series()
        target = _instances(event_service, template)[2]

        count, event = event_service.update_event(
            target.id, EventUpdate(title="Only this"), owner, scope="single"
        )

        assert count == 1
        assert event.id == target.id
        assert event.is_modified_instance is True

    def test_future_scope_on_instance(self, sample_series, event_service, owner):
        template = sample_series()
        target = _instances(event_service, template)[2]

        count, event = event_service.update_event(
            target.id, EventUpdate(title="From here"), owner, scope="future"
        )

        assert count == 4
        assert event.id == target.id
        assert [i.title for i in _instances(event_service, template)] == [
            "Standup",
            "Standup",
            "From here",
            "From here",
            "From here",
        ]

    def test_future_scope_with_new_rule_returns_template(self, sample_series, event_service, owner):
        template = sample_series()
        target = _instances(event_service, template)[2]

        count, event = event_service.update_event(
            target.id,
            EventUpdate(recurrence=RecurrenceRule(pattern="weekly", end_after=1)),
            owner,
            scope="future",
        )

        assert count == 3
        assert event.id == template.id
        assert event.recurrence["pattern"] == "weekly"

    def test_rule_change_needs_future_scope(self, sample_series, event_service, owner):
        template = sample_series()
        target = _instances(event_service, template)[0]

        with pytest.raises(ValidationError):
            event_service.update_event(
                target.id,
                EventUpdate(recurrence=RecurrenceRule(pattern="weekly")),
                owner,
                scope="single",
            )

    def test_single_event_becomes_series(self, event_service, owner):
        event = event_service.create_event(_single(), owner)

        count, updated = event_service.update_event(
            event.id,
            EventUpdate(recurrence=RecurrenceRule(pattern="daily", end_after=3)),
            owner,
        )

        assert count == 4
        assert updated.role == "template"
        assert updated.is_active is False
        assert len(_instances(event_service, updated)) == 3

    def test_null_title_rejected(self, event_service, owner):
        event = event_service.create_event(_single(), owner)

        with pytest.raises(ValidationError) as exc_info:
            event_service.update_event(event.id, EventUpdate(title=None), owner)

        assert exc_info.value.field == "title"

    def test_other_user_cannot_edit_private_event(self, event_service, owner, sample_user):
        other = sample_user(email="other@example.com")
        event = event_service.create_event(_single(), owner)

        with pytest.raises(PermissionDeniedError):
            event_service.update_event(event.id, EventUpdate(title="Hijack"), other)

    def test_public_event_editable_by_anyone(self, event_service, owner, sample_user):
        other = sample_user(email="other@example.com")
        event = event_service.create_event(_single(privacy="public"), owner)

        count, updated = event_service.update_event(event.id, EventUpdate(title="Shared"), other)

        assert count == 1
        assert updated.title == "Shared"


class TestDeleteEvent:
    """Tests for delete scopes."""

    def test_series_scope_from_instance(self, sample_series, event_service, owner):
        template = sample_series()
        target = _instances(event_service, template)[2]

        assert event_service.delete_event(target.id, owner, scope="series") == 3
        assert len(_instances(event_service, template)) == 2

    def test_single_scope_on_instance(self, sample_series, event_service, owner):
        template = sample_series()
        target = _instances(event_service, template)[0]

        assert event_service.delete_event(target.id, owner, scope="single") == 1
        assert len(_instances(event_service, template)) == 4

    def test_single_scope_on_template_rejected(self, sample_series, event_service, owner):
        template = sample_series()

        with pytest.raises(ValidationError):
            event_service.delete_event(template.id, owner, scope="single")

    def test_missing_event(self, event_service, owner):
        with pytest.raises(NotFoundError):
            event_service.delete_event(uuid4(), owner)


class TestRespondToInvitation:
    def test_invited_user_responds(self, event_service, owner, sample_user):
        guest = sample_user(email="guest@example.com")
        event = event_service.create_event(_single(invited_user_ids=[guest.id]), owner)

        event = event_service.respond_to_invitation(event.id, guest, "accepted")

        entry = event.invitee(guest.id)
        assert entry["rsvp"] == "accepted"
        assert entry["responded_at"] is not None

    def test_uninvited_user_rejected(self, event_service, owner, sample_user):
        stranger = sample_user(email="stranger@example.com")
        event = event_service.create_event(_single(privacy="public"), owner)

        with pytest.raises(PermissionDeniedError):
            event_service.respond_to_invitation(event.id, stranger, "declined")
