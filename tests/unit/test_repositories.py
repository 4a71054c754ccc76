"""
Unit tests for repository functions.
Tests profile lookups, catalog queries, the conditional ticket reservation and cascades.
"""
import pytest
from decimal import Decimal
from sqlalchemy import select, func

from eventhub.db import repositories as repo
from eventhub.db.models import (
    ApprovalStatus, EventStatus, Organization, Registration, RegistrationStatus, Role, TicketType, Event,
)


@pytest.mark.unit
class TestUserRepository:

    async def test_create_user(self, db_session):
        user = await repo.create_user(
            db_session,
            email="new@example.com",
            hashed_password="hashed",
            role=Role.organizer,
            approval_status=ApprovalStatus.pending_approval,
        )
        await db_session.commit()

        assert user.id is not None
        assert user.is_active is True
        assert user.is_organization_owner is False

    async def test_get_user_by_email_is_case_insensitive(self, db_session, attendee):
        user = await repo.get_user_by_email(db_session, attendee.email.upper())

        assert user is not None
        assert user.id == attendee.id

    async def test_get_user_by_email_not_found(self, db_session):
        assert await repo.get_user_by_email(db_session, "nobody@example.com") is None

    async def test_list_users_filters(self, db_session, organizer, pending_organizer, attendee):
        organizers = await repo.list_users(db_session, role=Role.organizer)
        queue = await repo.list_users(db_session, role=Role.organizer, approval_status=ApprovalStatus.pending_approval)

        assert {u.id for u in organizers} == {organizer.id, pending_organizer.id}
        assert [u.id for u in queue] == [pending_organizer.id]


@pytest.mark.unit
class TestEventQueries:

    async def test_list_events_by_owner_and_status(self, db_session, make_event, organizer, other_organizer):
        mine = await make_event(organizer, status=EventStatus.draft)
        await make_event(other_organizer)

        events = await repo.list_events(db_session, created_by=organizer.id)
        drafts = await repo.list_events(db_session, statuses=[EventStatus.draft])

        assert [e.id for e in events] == [mine.id]
        assert [e.id for e in drafts] == [mine.id]

    async def test_search_matches_name_or_description(self, db_session, make_event, organizer):
        by_name = await make_event(organizer, name="Python Summit")
        by_description = await make_event(organizer, name="Dev Day", description="talks about PYTHON typing")
        await make_event(organizer, name="Rust Day", description="systems")

        events = await repo.list_events(db_session, search="python")

        assert {e.id for e in events} == {by_name.id, by_description.id}

    async def test_search_treats_wildcards_literally(self, db_session, make_event, organizer):
        await make_event(organizer, name="Plain")
        percent = await make_event(organizer, name="100% Uptime")

        events = await repo.list_events(db_session, search="%")

        assert [e.id for e in events] == [percent.id]

    async def test_public_list_only_visible_events(self, db_session, make_event, organizer):
        visible = await make_event(organizer, status=EventStatus.published)
        await make_event(organizer, status=EventStatus.draft)
        await make_event(organizer, approval=ApprovalStatus.pending_approval, status=EventStatus.published)
        await make_event(organizer, status=EventStatus.completed)

        events = await repo.list_public_events(db_session)

        assert [e["id"] for e in events] == [str(visible.id)]

    async def test_public_list_is_cached_until_invalidated(self, db_session, make_event, organizer, fake_redis):
        existing = await make_event(organizer)
        await repo.list_public_events(db_session)
        assert any(key.startswith("events:public:") for key in fake_redis.store)

        db_session.add(Event(
            name="Late", slug="late", start_date=existing.start_date, end_date=existing.end_date,
            approval_status=ApprovalStatus.approved, status=EventStatus.published, created_by=organizer.id,
        ))
        await db_session.commit()

        assert len(await repo.list_public_events(db_session)) == 1
        await repo.invalidate_event_caches()
        assert len(await repo.list_public_events(db_session)) == 2


@pytest.mark.unit
class TestReserveTickets:

    async def test_reserve_within_capacity(self, db_session, open_event, make_ticket_type):
        tt = await make_ticket_type(open_event, quantity_available=5)

        assert await repo.reserve_tickets(db_session, tt.id, open_event.id, 3) is True
        assert await repo.reserve_tickets(db_session, tt.id, open_event.id, 2) is True
        await db_session.commit()
        await db_session.refresh(tt)

        assert tt.quantity_sold == 5
        assert tt.quantity_remaining == 0

    async def test_reserve_refuses_oversell(self, db_session, open_event, make_ticket_type):
        tt = await make_ticket_type(open_event, quantity_available=5, quantity_sold=4)

        assert await repo.reserve_tickets(db_session, tt.id, open_event.id, 2) is False
        await db_session.commit()
        await db_session.refresh(tt)

        assert tt.quantity_sold == 4

    async def test_unlimited_ticket_type(self, db_session, open_event, make_ticket_type):
        tt = await make_ticket_type(open_event, quantity_available=None)

        assert await repo.reserve_tickets(db_session, tt.id, open_event.id, 1000) is True

    async def test_inactive_or_foreign_ticket_type(self, db_session, open_event, make_event, organizer, make_ticket_type):
        inactive = await make_ticket_type(open_event, is_active=False)
        other_event = await make_event(organizer)
        foreign = await make_ticket_type(other_event)

        assert await repo.reserve_tickets(db_session, inactive.id, open_event.id, 1) is False
        assert await repo.reserve_tickets(db_session, foreign.id, open_event.id, 1) is False

    async def test_update_ticket_type_quantity_guard(self, db_session, open_event, make_ticket_type):
        tt = await make_ticket_type(open_event, quantity_available=10, quantity_sold=6)

        assert await repo.update_ticket_type(db_session, tt.id, {"quantity_available": 5}) is False
        assert await repo.update_ticket_type(db_session, tt.id, {"quantity_available": 6}) is True


@pytest.mark.unit
class TestCascades:

    async def test_delete_user_removes_registrations_and_events(
        self, db_session, make_event, make_ticket_type, organizer, attendee
    ):
        event = await make_event(organizer)
        tt = await make_ticket_type(event)
        db_session.add(Registration(
            event_id=event.id, user_id=attendee.id, ticket_type_id=tt.id, quantity=1,
            total_amount=Decimal("25.00"), status=RegistrationStatus.pending, confirmation_code="ABC123XYZ",
        ))
        await db_session.commit()

        await repo.delete_user_cascade(db_session, organizer)
        await db_session.commit()

        assert (await db_session.execute(select(func.count(Event.id)))).scalar() == 0
        assert (await db_session.execute(select(func.count(TicketType.id)))).scalar() == 0
        assert (await db_session.execute(select(func.count(Registration.id)))).scalar() == 0
        assert await repo.get_user(db_session, attendee.id) is not None

    async def test_delete_owner_removes_organization(self, db_session, make_user, attendee):
        org = await repo.create_organization(db_session, name="Savannah Events", slug="savannah-events-abc123")
        owner = await make_user(Role.management, organization_id=org.id, is_organization_owner=True)
        org.created_by = owner.id
        attendee.organization_id = org.id
        await db_session.commit()

        await repo.delete_user_cascade(db_session, owner)
        await db_session.commit()

        assert (await db_session.execute(select(func.count(Organization.id)))).scalar() == 0
        member = await repo.get_user(db_session, attendee.id)
        await db_session.refresh(member)
        assert member.organization_id is None
        assert member.is_organization_owner is False

    async def test_delete_member_keeps_organization(self, db_session, make_user, attendee):
        org = await repo.create_organization(db_session, name="Savannah Events", slug="savannah-events-def456")
        owner = await make_user(Role.management, organization_id=org.id, is_organization_owner=True)
        org.created_by = owner.id
        attendee.organization_id = org.id
        await db_session.commit()

        await repo.delete_user_cascade(db_session, attendee)
        await db_session.commit()

        assert await repo.get_organization(db_session, org.id) is not None
        await db_session.refresh(owner)
        assert owner.organization_id == org.id

    async def test_platform_stats(self, db_session, make_event, make_ticket_type, organizer, pending_organizer, attendee):
        event = await make_event(organizer)
        await make_event(organizer, status=EventStatus.draft)
        tt = await make_ticket_type(event)
        db_session.add_all([
            Registration(event_id=event.id, user_id=attendee.id, ticket_type_id=tt.id, quantity=2,
                         total_amount=Decimal("50.00"), status=RegistrationStatus.confirmed, confirmation_code="AAA"),
            Registration(event_id=event.id, user_id=attendee.id, ticket_type_id=tt.id, quantity=1,
                         total_amount=Decimal("25.00"), status=RegistrationStatus.cancelled, confirmation_code="BBB"),
        ])
        await db_session.commit()

        stats = await repo.platform_stats(db_session)

        assert stats["total_users"] == 3
        assert stats["pending_organizers"] == 1
        assert stats["total_events"] == 2
        assert stats["active_events"] == 1
        assert stats["upcoming_events"] == 2
        assert stats["total_registrations"] == 2
        assert Decimal(str(stats["total_revenue"])) == Decimal("50.00")
