"""
Repository layer for database operations.

Async query/update primitives for user profiles, organizations, events, ticket types
and registrations. Write helpers only flush: the calling service owns the
transaction and decides when to commit or roll back.
"""
from sqlalchemy import select, update, delete, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.db.models.user import UserProfile, Role, ApprovalStatus
from eventhub.db.models.organization import Organization
from eventhub.db.models.event import Event, EventStatus
from eventhub.db.models.ticket_type import MAX_TICKET_QUANTITY, TicketType
from eventhub.db.models.registration import Registration, RegistrationStatus
from eventhub.db.models.base import utcnow
from eventhub.core.config import settings
from eventhub.core.permissions import PUBLIC_EVENT_STATUSES
from eventhub.cache.cache_decorators import cached
from eventhub.cache.redis_client import cache
from typing import Iterable, List, Optional, Sequence
from datetime import datetime
import uuid

PUBLIC_EVENTS_CACHE_PREFIX = "events:public"


# --- user profiles ---------------------------------------------------------

async def create_user(
    db: AsyncSession,
    *,
    email: str,
    hashed_password: str,
    role: Role,
    approval_status: ApprovalStatus,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> UserProfile:
    """
    Insert a new user profile.

    Args:
        db: Database session
        email: Unique login email
        hashed_password: Already hashed password
        role: Role chosen at signup
        approval_status: Initial approval status for the role

    Returns:
        Created UserProfile (flushed, not committed)
    """
    user = UserProfile(
        email=email,
        hashed_password=hashed_password,
        first_name=first_name,
        last_name=last_name,
        role=role,
        approval_status=approval_status,
    )
    db.add(user)
    await db.flush()
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[UserProfile]:
    q = select(UserProfile).where(func.lower(UserProfile.email) == email.lower())
    res = await db.execute(q)
    return res.scalars().first()


async def get_user(db: AsyncSession, user_id) -> Optional[UserProfile]:
    """
    Retrieve a user profile by ID.

    Args:
        db: Database session
        user_id: Profile UUID

    Returns:
        UserProfile if found, None otherwise
    """
    return await db.get(UserProfile, _as_uuid(user_id))


async def list_users(
    db: AsyncSession,
    role: Optional[Role] = None,
    approval_status: Optional[ApprovalStatus] = None,
    organization_id=None,
) -> List[UserProfile]:
    q = select(UserProfile).order_by(UserProfile.created_at.desc())
    if role:
        q = q.where(UserProfile.role == role)
    if approval_status:
        q = q.where(UserProfile.approval_status == approval_status)
    if organization_id:
        q = q.where(UserProfile.organization_id == _as_uuid(organization_id))
    res = await db.execute(q)
    return list(res.scalars().all())


async def delete_user_cascade(db: AsyncSession, user: UserProfile) -> None:
    """
    Remove a profile together with its registrations and the events it created.

    An organization the user owns goes with them. Its remaining members are
    unlinked and keep their profiles.
    """
    event_ids = select(Event.id).where(Event.created_by == user.id)
    await db.execute(delete(Registration).where(Registration.user_id == user.id))
    await db.execute(delete(Registration).where(Registration.event_id.in_(event_ids)))
    await db.execute(delete(TicketType).where(TicketType.event_id.in_(event_ids)))
    await db.execute(delete(Event).where(Event.created_by == user.id))

    owned = select(Organization.id).where(Organization.created_by == user.id)
    if user.is_organization_owner and user.organization_id:
        owned = owned.union(select(Organization.id).where(Organization.id == user.organization_id))
    org_ids = list((await db.execute(owned)).scalars().all())
    if org_ids:
        await db.execute(
            update(UserProfile)
            .where(UserProfile.organization_id.in_(org_ids), UserProfile.id != user.id)
            .values(organization_id=None, is_organization_owner=False)
        )
        user.organization_id = None
        await db.flush()
        await db.execute(delete(Organization).where(Organization.id.in_(org_ids)))
    await db.delete(user)
    await db.flush()


# --- organizations ---------------------------------------------------------

async def organization_slug_exists(db: AsyncSession, slug: str) -> bool:
    res = await db.execute(select(func.count(Organization.id)).where(Organization.slug == slug))
    return (res.scalar() or 0) > 0


async def create_organization(db: AsyncSession, **fields) -> Organization:
    org = Organization(**fields)
    db.add(org)
    await db.flush()
    return org


async def get_organization(db: AsyncSession, organization_id) -> Optional[Organization]:
    return await db.get(Organization, _as_uuid(organization_id))


async def list_organizations(db: AsyncSession, organization_id=None) -> List[Organization]:
    q = select(Organization).order_by(Organization.created_at.desc())
    if organization_id:
        q = q.where(Organization.id == _as_uuid(organization_id))
    res = await db.execute(q)
    return list(res.scalars().all())


# --- events ----------------------------------------------------------------

def event_to_dict(ev: Event) -> dict:
    """Serializable event representation used by the public catalog cache."""
    def iso(value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None

    return {
        'id': str(ev.id),
        'name': ev.name,
        'slug': ev.slug,
        'description': ev.description,
        'start_date': iso(ev.start_date),
        'end_date': iso(ev.end_date),
        'venue': ev.venue,
        'address': ev.address,
        'city': ev.city,
        'country': ev.country,
        'is_virtual': ev.is_virtual,
        'virtual_platform': ev.virtual_platform,
        'virtual_url': ev.virtual_url,
        'capacity': ev.capacity,
        'banner_url': ev.banner_url,
        'registration_start_date': iso(ev.registration_start_date),
        'registration_end_date': iso(ev.registration_end_date),
        'status': EventStatus(ev.status).value,
        'approval_status': ApprovalStatus(ev.approval_status).value,
        'approved_by': str(ev.approved_by) if ev.approved_by else None,
        'approved_at': iso(ev.approved_at),
        'approval_notes': ev.approval_notes,
        'created_by': str(ev.created_by),
        'created_at': iso(ev.created_at),
    }


async def event_slug_exists(db: AsyncSession, slug: str) -> bool:
    res = await db.execute(select(func.count(Event.id)).where(Event.slug == slug))
    return (res.scalar() or 0) > 0


async def create_event(db: AsyncSession, fields: dict, creator_id) -> Event:
    ev = Event(**fields, created_by=creator_id)
    db.add(ev)
    await db.flush()
    return ev


async def get_event(db: AsyncSession, event_id) -> Optional[Event]:
    return await db.get(Event, _as_uuid(event_id))


def _search_clause(search: str):
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return or_(
        Event.name.ilike(pattern, escape="\\"),
        Event.description.ilike(pattern, escape="\\"),
    )


async def list_events(
    db: AsyncSession,
    created_by=None,
    approval_status: Optional[ApprovalStatus] = None,
    statuses: Optional[Iterable[EventStatus]] = None,
    search: Optional[str] = None,
) -> List[Event]:
    """
    List events newest first.

    Args:
        db: Database session
        created_by: Restrict to one owner
        approval_status: Restrict to one approval status
        statuses: Restrict to these publication statuses
        search: Case-insensitive substring over name and description

    Returns:
        Matching Event rows
    """
    q = select(Event).order_by(Event.created_at.desc(), Event.id)
    if created_by:
        q = q.where(Event.created_by == _as_uuid(created_by))
    if approval_status:
        q = q.where(Event.approval_status == approval_status)
    if statuses is not None:
        q = q.where(Event.status.in_(list(statuses)))
    if search:
        q = q.where(_search_clause(search))
    res = await db.execute(q)
    return list(res.scalars().all())


@cached(PUBLIC_EVENTS_CACHE_PREFIX, expire=settings.EVENTS_CACHE_TTL_SECONDS)
async def list_public_events(
    db: AsyncSession,
    statuses: Optional[Sequence[str]] = None,
    search: Optional[str] = None,
) -> List[dict]:
    """
    The attendee catalog: approved events that are published or open.

    ``statuses`` can only narrow the public set. Returns dicts for caching.
    """
    allowed = set(PUBLIC_EVENT_STATUSES)
    if statuses is not None:
        allowed &= {EventStatus(s) for s in statuses}
    events = await list_events(
        db,
        approval_status=ApprovalStatus.approved,
        statuses=sorted(allowed, key=lambda s: s.value),
        search=search,
    )
    return [event_to_dict(ev) for ev in events]


async def invalidate_event_caches() -> None:
    await cache.delete_pattern(f"{PUBLIC_EVENTS_CACHE_PREFIX}:*")


async def delete_event_cascade(db: AsyncSession, event: Event) -> None:
    await db.execute(delete(Registration).where(Registration.event_id == event.id))
    await db.execute(delete(TicketType).where(TicketType.event_id == event.id))
    await db.delete(event)
    await db.flush()


# --- ticket types ----------------------------------------------------------

async def create_ticket_type(db: AsyncSession, event_id, **fields) -> TicketType:
    ticket_type = TicketType(event_id=_as_uuid(event_id), **fields)
    db.add(ticket_type)
    await db.flush()
    return ticket_type


async def get_ticket_type(db: AsyncSession, ticket_type_id) -> Optional[TicketType]:
    return await db.get(TicketType, _as_uuid(ticket_type_id))


async def list_ticket_types(db: AsyncSession, event_id, active_only: bool = False) -> List[TicketType]:
    q = select(TicketType).where(TicketType.event_id == _as_uuid(event_id)).order_by(TicketType.price, TicketType.name)
    if active_only:
        q = q.where(TicketType.is_active.is_(True))
    res = await db.execute(q)
    return list(res.scalars().all())


async def get_ticket_types_by_ids(db: AsyncSession, ticket_type_ids: Iterable) -> dict:
    ids = [_as_uuid(i) for i in ticket_type_ids]
    if not ids:
        return {}
    res = await db.execute(select(TicketType).where(TicketType.id.in_(ids)))
    return {tt.id: tt for tt in res.scalars().all()}


async def reserve_tickets(db: AsyncSession, ticket_type_id, event_id, quantity: int) -> bool:
    """
    Atomically take ``quantity`` tickets from a ticket type.

    A single conditional UPDATE checks and increments ``quantity_sold`` together, so
    concurrent callers can never both take the last tickets.

    Args:
        db: Database session (inside the caller's transaction)
        ticket_type_id: Ticket type to take from
        event_id: Event the ticket type must belong to
        quantity: Number of tickets, at least 1

    Returns:
        True if the tickets were taken, False if the type is inactive or sold out
    """
    stmt = (
        update(TicketType)
        .where(
            TicketType.id == _as_uuid(ticket_type_id),
            TicketType.event_id == _as_uuid(event_id),
            TicketType.is_active.is_(True),
            TicketType.quantity_sold <= MAX_TICKET_QUANTITY - quantity,
            or_(
                TicketType.quantity_available.is_(None),
                TicketType.quantity_sold <= TicketType.quantity_available - quantity,
            ),
        )
        .values(quantity_sold=TicketType.quantity_sold + quantity)
        .execution_options(synchronize_session=False)
    )
    res = await db.execute(stmt)
    return res.rowcount == 1


async def update_ticket_type(db: AsyncSession, ticket_type_id, values: dict) -> bool:
    """
    Apply field changes to a ticket type.

    A new ``quantity_available`` is only written if it still covers what has been sold
    at the moment of the update.

    Returns:
        False if the quantity guard rejected the change
    """
    stmt = update(TicketType).where(TicketType.id == _as_uuid(ticket_type_id))
    new_quantity = values.get('quantity_available')
    if new_quantity is not None:
        stmt = stmt.where(TicketType.quantity_sold <= new_quantity)
    res = await db.execute(stmt.values(**values).execution_options(synchronize_session=False))
    return res.rowcount == 1


async def delete_ticket_type(db: AsyncSession, ticket_type: TicketType) -> None:
    await db.delete(ticket_type)
    await db.flush()


# --- registrations ---------------------------------------------------------

async def existing_confirmation_codes(db: AsyncSession, codes: Iterable[str]) -> set:
    codes = list(codes)
    if not codes:
        return set()
    res = await db.execute(
        select(Registration.confirmation_code).where(Registration.confirmation_code.in_(codes))
    )
    return set(res.scalars().all())


async def add_registrations(db: AsyncSession, rows: List[Registration]) -> List[Registration]:
    db.add_all(rows)
    await db.flush()
    return rows


async def get_registration(db: AsyncSession, registration_id) -> Optional[Registration]:
    return await db.get(Registration, _as_uuid(registration_id))


async def list_registrations(db: AsyncSession, user_id=None, event_id=None) -> List[Registration]:
    q = select(Registration).order_by(Registration.created_at.desc(), Registration.id)
    if user_id:
        q = q.where(Registration.user_id == _as_uuid(user_id))
    if event_id:
        q = q.where(Registration.event_id == _as_uuid(event_id))
    res = await db.execute(q)
    return list(res.scalars().all())



# --- statistics ------------------------------------------------------------

async def platform_stats(db: AsyncSession) -> dict:
    now = utcnow()

    async def scalar(q):
        return (await db.execute(q)).scalar() or 0

    return {
        'total_users': await scalar(select(func.count(UserProfile.id))),
        'pending_organizers': await scalar(
            select(func.count(UserProfile.id)).where(
                UserProfile.role == Role.organizer,
                UserProfile.approval_status == ApprovalStatus.pending_approval,
            )
        ),
        'total_events': await scalar(select(func.count(Event.id))),
        'active_events': await scalar(
            select(func.count(Event.id)).where(Event.status.in_(list(PUBLIC_EVENT_STATUSES)))
        ),
        'upcoming_events': await scalar(select(func.count(Event.id)).where(Event.start_date > now)),
        'total_registrations': await scalar(select(func.count(Registration.id))),
        'total_revenue': await scalar(
            select(func.coalesce(func.sum(Registration.total_amount), 0)).where(
                Registration.status != RegistrationStatus.cancelled
            )
        ),
    }


def _as_uuid(value):
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))
