"""Attendee lists, swipe tracking and match derivation for events.

Each event has one attendee document holding the swipeable cards and a
``user_swipes`` map of every decision made on them. The card list is
rebuilt from real enrollments whenever it is requested, so enrollment
changes show up without a separate sync step.
"""
import logging
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from eventmatch.core.config import settings
from eventmatch.core.errors import StoreError, ValidationError
from eventmatch.core.timestamps import utcnow
from eventmatch.matching.enrollments import get_event_enrollments
from eventmatch.matching.identity import extract_user_id, normalize_id, same_user
from eventmatch.matching.users import get_user_by_id
from eventmatch.models import Attendee, EventAttendees, SwipeAction, User
from eventmatch.models.attendee import attendee_key
from eventmatch.models.enrollment import ENROLLMENT_STATUSES

logger = logging.getLogger(__name__)

# Placeholder profiles for the demo path. They deliberately carry no user_id.
_MOCK_PROFILES = [
    {
        "name": "Sarah Johnson",
        "job": "UX Designer",
        "company": "Tech Innovations",
        "bio": "Designs for people first. Hikes and shoots film on weekends.",
        "image": "https://images.unsplash.com/photo-1494790108755-2616b612b786?w=400&h=600&fit=crop",
        "interests": ["Design", "Photography", "Hiking"],
    },
    {
        "name": "Michael Chen",
        "job": "Software Engineer",
        "company": "StartupCorp",
        "bio": "Full-stack developer, coffee snob, weekend climber.",
        "image": "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=400&h=600&fit=crop",
        "interests": ["Coding", "Coffee", "Rock Climbing"],
    },
    {
        "name": "Emily Davis",
        "job": "Product Manager",
        "company": "Digital Solutions",
        "bio": "Ships products, collects recipes from every trip.",
        "image": "https://images.unsplash.com/photo-1438761681033-6461ffad8d80?w=400&h=600&fit=crop",
        "interests": ["Product Strategy", "Travel", "Cooking"],
    },
    {
        "name": "David Rodriguez",
        "job": "Data Scientist",
        "company": "Analytics Pro",
        "bio": "Turns data into decisions. Chess and sci-fi after hours.",
        "image": "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=400&h=600&fit=crop",
        "interests": ["Data Analysis", "Chess", "Sci-Fi"],
    },
    {
        "name": "Lisa Thompson",
        "job": "Marketing Director",
        "company": "Brand Masters",
        "bio": "Tells brand stories by day, teaches yoga by night.",
        "image": "https://images.unsplash.com/photo-1544005313-94ddf0286df2?w=400&h=600&fit=crop",
        "interests": ["Marketing", "Yoga", "Plants"],
    },
]


def generate_mock_attendees(event_title: str | None, event_id) -> list[Attendee]:
    """Placeholder attendees for demos, ids ``"<eventId>_1"`` onwards."""
    event_id = normalize_id(event_id)
    logger.debug(f"Generating mock attendees for {event_title or event_id}")
    return [
        Attendee(id=f"{event_id}_{index}", event_id=event_id, **profile)
        for index, profile in enumerate(_MOCK_PROFILES, start=1)
    ]


def _coerce_action(action) -> SwipeAction:
    try:
        return SwipeAction(action)
    except ValueError as e:
        raise ValidationError(f"Unknown swipe action: {action}") from e


def _attendee_from_user(event_id: str, user_id: str, user: User | None) -> Attendee:
    """Project a user onto an attendee card for one event."""
    if user is None:
        return Attendee(id=attendee_key(event_id, user_id), user_id=user_id, event_id=event_id)
    return Attendee(
        id=attendee_key(event_id, user_id),
        user_id=user_id,
        event_id=event_id,
        name=user.name or user.email,
        job=user.job,
        company=user.company,
        bio=user.bio,
        image=user.image,
        interests=list(user.interests or []),
    )


def _load_for_write(session: Session, event_id: str) -> EventAttendees | None:
    try:
        return session.get(EventAttendees, event_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load attendee document {event_id}: {e}")
        raise StoreError(f"Failed to load attendees for event {event_id}") from e


def _commit(session: Session, document: EventAttendees, what: str) -> None:
    document.updated_at = utcnow()
    try:
        session.add(document)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Failed to {what} for event {document.event_id}: {e}")
        raise StoreError(f"Failed to {what} for event {document.event_id}") from e


def get_event_attendees(session: Session, event_id) -> list[Attendee]:
    """The stored attendee list for an event, empty if none."""
    event_id = normalize_id(event_id)
    try:
        document = session.get(EventAttendees, event_id)
    except SQLAlchemyError as e:
        logger.error(f"Error getting attendees for event {event_id}: {e}")
        return []
    if document is None:
        return []
    return [Attendee.model_validate(raw) for raw in document.attendees or []]


def get_user_swipes(session: Session, event_id, user_id) -> dict:
    """A user's swipe map for an event: ``{attendeeId: {action, swipedAt}}``."""
    event_id = normalize_id(event_id)
    try:
        document = session.get(EventAttendees, event_id)
    except SQLAlchemyError as e:
        logger.error(f"Error getting swipes for event {event_id}: {e}")
        return {}
    if document is None:
        return {}
    return dict((document.user_swipes or {}).get(normalize_id(user_id), {}))


def store_event_attendees(
    session: Session,
    event_id,
    attendees: list[Attendee],
    event_title: str | None = None,
) -> None:
    """Replace the attendee list of an event, keeping its swipe map."""
    event_id = normalize_id(event_id)
    document = _load_for_write(session, event_id)
    if document is None:
        document = EventAttendees(event_id=event_id)
    if event_title:
        document.event_title = event_title
    document.attendees = [attendee.to_document() for attendee in attendees]
    _commit(session, document, "store attendees")


def clear_all_attendees(session: Session, event_id) -> None:
    """Empty the attendee list of an event. Swipes are kept."""
    event_id = normalize_id(event_id)
    document = _load_for_write(session, event_id)
    if document is None:
        return
    document.attendees = []
    _commit(session, document, "clear attendees")
    logger.info(f"Cleared attendees for event {event_id}")


def _real_attendees(session: Session, event_id: str) -> list[Attendee]:
    """One attendee card per enrolled user."""
    attendees = []
    seen = set()
    for enrollment in get_event_enrollments(session, event_id):
        if enrollment.status not in ENROLLMENT_STATUSES:
            continue
        user_id = extract_user_id(enrollment.user_id)
        if not user_id or user_id in seen:
            continue
        seen.add(user_id)
        attendees.append(_attendee_from_user(event_id, user_id, get_user_by_id(session, user_id)))
    return attendees


def _without_user(attendees: list[Attendee], user_id) -> list[Attendee]:
    """Drop the card of ``user_id``, if any."""
    if user_id is None:
        return attendees
    return [
        attendee
        for attendee in attendees
        if not (attendee.user_id and same_user(attendee.user_id, user_id))
    ]


def initialize_event_attendees(
    session: Session,
    event_id,
    event_title: str | None = None,
    current_user_id=None,
    use_mock: bool = False,
) -> list[Attendee]:
    """
    Refresh and return the attendee list for an event.

    Refresh policy, first match wins:
    1. Enrolled users exist: persist all of them, return them minus the
       viewer. The stored list is shared by every viewer of the event.
    2. Stored list is all mock entries: clear it and return nothing, unless
       mock data was explicitly requested.
    3. Stored list has real entries (users since unenrolled): return it
       untouched, minus the viewer.
    4. ``use_mock``: generate, persist and return placeholder attendees.
    5. Otherwise return nothing.
    """
    event_id = normalize_id(event_id)

    real = _real_attendees(session, event_id)
    if real:
        store_event_attendees(session, event_id, real, event_title)
        logger.info(f"Refreshed {len(real)} attendees for event {event_id}")
        return _without_user(real, current_user_id)

    stored = get_event_attendees(session, event_id)
    if stored:
        if all(attendee.user_id is None for attendee in stored):
            if use_mock:
                return stored
            logger.info(f"Removing {len(stored)} mock attendees from event {event_id}")
            clear_all_attendees(session, event_id)
            return []
        return _without_user(stored, current_user_id)

    if use_mock:
        mock = generate_mock_attendees(event_title, event_id)
        store_event_attendees(session, event_id, mock, event_title)
        return mock

    return []


def add_attendee(session: Session, event_id, attendee: Attendee) -> Attendee:
    """
    Append an attendee card to an event.

    Cards for real users get the canonical ``"<eventId>_<userId>"`` id and
    replace any existing card for the same user.
    """
    event_id = normalize_id(event_id)
    if attendee.user_id:
        card_id = attendee_key(event_id, attendee.user_id)
    else:
        card_id = f"{event_id}_{int(time.time() * 1000)}"
    card = attendee.model_copy(update={"id": card_id, "event_id": event_id})

    document = _load_for_write(session, event_id)
    if document is None:
        document = EventAttendees(event_id=event_id)
    existing = [raw for raw in document.attendees or [] if raw.get("id") != card_id]
    document.attendees = existing + [card.to_document()]
    _commit(session, document, "add attendee")
    return card


def get_attendee_count(session: Session, event_id) -> int:
    return len(get_event_attendees(session, event_id))


def track_user_swipe(session: Session, event_id, swiper_user_id, attendee_id: str, action) -> None:
    """Record a swipe, overwriting any earlier decision on the same card."""
    action = _coerce_action(action)
    event_id = normalize_id(event_id)
    swiper = normalize_id(swiper_user_id)
    if not swiper:
        raise ValidationError("A swipe needs the swiping user's id")

    document = _load_for_write(session, event_id)
    if document is None:
        document = EventAttendees(event_id=event_id)

    swipes = {key: dict(value) for key, value in (document.user_swipes or {}).items()}
    user_swipes = swipes.setdefault(swiper, {})
    user_swipes[attendee_id] = {"action": action.value, "swipedAt": utcnow().isoformat()}
    document.user_swipes = swipes
    _commit(session, document, "track swipe")
    logger.debug(f"User {swiper} {action.value} {attendee_id} at event {event_id}")


def update_attendee_action(
    session: Session,
    event_id,
    attendee_id: str,
    action,
    swiper_user_id=None,
) -> None:
    """
    Annotate an attendee card with the latest swipe.

    When the swiper is known the decision is also recorded in the
    per-user swipe map, which is what completion and matching read.
    """
    action = _coerce_action(action)
    event_id = normalize_id(event_id)

    document = _load_for_write(session, event_id)
    if document is None:
        logger.warning(f"No attendee document for event {event_id}, skipping card annotation")
    else:
        swiped_at = utcnow().isoformat()
        document.attendees = [
            {**raw, "swipe_action": action.value, "swiped_at": swiped_at}
            if raw.get("id") == attendee_id
            else raw
            for raw in document.attendees or []
        ]
        _commit(session, document, "update attendee action")

    if swiper_user_id is not None:
        track_user_swipe(session, event_id, swiper_user_id, attendee_id, action)


def has_completed_swiping(session: Session, event_id, user_id) -> bool:
    """
    True once the user has a decision on every current attendee card.

    An event with no attendees is never complete. The user's own card, which
    the shared list holds for every enrolled user, does not count.
    """
    candidates = _without_user(get_event_attendees(session, event_id), user_id)
    if not candidates:
        return False
    swipes = get_user_swipes(session, event_id, user_id)
    return all(attendee.id in swipes for attendee in candidates)


def get_user_matches(
    session: Session,
    event_id,
    user_id,
    mutual_only: bool | None = None,
) -> list[Attendee]:
    """
    Attendees the user liked at an event.

    By default any like is a match. With ``mutual_only`` (or the
    ``MUTUAL_MATCHES_ONLY`` setting) the liked user must also have liked
    the viewer's own card back.
    """
    if mutual_only is None:
        mutual_only = settings.mutual_matches_only

    event_id = normalize_id(event_id)
    user_id = normalize_id(user_id)
    try:
        document = session.get(EventAttendees, event_id)
    except SQLAlchemyError as e:
        logger.error(f"Error getting matches for {user_id} at event {event_id}: {e}")
        return []
    if document is None:
        return []

    all_swipes = document.user_swipes or {}
    liked = {
        attendee_id
        for attendee_id, decision in all_swipes.get(user_id, {}).items()
        if decision.get("action") == SwipeAction.LIKED.value
    }
    cards = [Attendee.model_validate(raw) for raw in document.attendees or []]
    matches = [attendee for attendee in _without_user(cards, user_id) if attendee.id in liked]

    if mutual_only:
        own_card = attendee_key(event_id, user_id)
        matches = [
            attendee
            for attendee in matches
            if attendee.user_id
            and all_swipes.get(normalize_id(attendee.user_id), {}).get(own_card, {}).get("action")
            == SwipeAction.LIKED.value
        ]

    return matches
