"""Tests for attendee decks, swipes and matches."""

import pytest
from sqlmodel import Session

from eventmatch.core.errors import StoreError, ValidationError
from eventmatch.matching.attendees import (
    add_attendee,
    clear_all_attendees,
    generate_mock_attendees,
    get_attendee_count,
    get_event_attendees,
    get_user_matches,
    get_user_swipes,
    has_completed_swiping,
    initialize_event_attendees,
    store_event_attendees,
    track_user_swipe,
    update_attendee_action,
)
from eventmatch.matching.enrollments import enroll_user_in_event
from eventmatch.models import Attendee, EventAttendees, EventEnrollment


class TestInitializeEventAttendees:
    """Tests for the attendee refresh policy."""

    def test_builds_deck_from_enrollments(self, session: Session, enrolled_event: str):
        """Enrolled users become attendees, minus the viewer."""
        attendees = initialize_event_attendees(session, enrolled_event, "Tech Mixer", "42")

        assert sorted(a.id for a in attendees) == ["E1_7", "E1_8"]
        maria = next(a for a in attendees if a.user_id == "7")
        assert maria.name == "Maria Garcia"
        assert maria.job == "Analyst"
        assert maria.event_id == "E1"

        stored = get_event_attendees(session, enrolled_event)
        assert sorted(a.id for a in stored) == ["E1_42", "E1_7", "E1_8"]

    def test_numeric_event_id(self, session: Session, users):
        """Numeric and string event ids address the same deck."""
        enroll_user_in_event(session, "7", 101)
        attendees = initialize_event_attendees(session, "101", current_user_id="42")
        assert [a.id for a in attendees] == ["101_7"]
        assert get_attendee_count(session, 101) == 1

    def test_one_card_per_user(self, session: Session, users):
        """A legacy composite enrollment id does not produce a second card."""
        enroll_user_in_event(session, "7", "E5")
        session.add(EventEnrollment(id="E5_7_E5", user_id="E5_7", event_id="E5"))
        session.commit()

        attendees = initialize_event_attendees(session, "E5", current_user_id="42")
        assert [a.id for a in attendees] == ["E5_7"]

    def test_no_data_returns_empty(self, session: Session):
        assert initialize_event_attendees(session, "E9", "Quiet Night") == []
        assert get_event_attendees(session, "E9") == []

    def test_mock_generated_only_on_request(self, session: Session):
        attendees = initialize_event_attendees(session, "E9", "Party", use_mock=True)

        assert len(attendees) == 5
        assert all(a.user_id is None for a in attendees)
        assert attendees[0].id == "E9_1"
        assert len(get_event_attendees(session, "E9")) == 5

    def test_real_enrollments_supersede_mock(self, session: Session, users):
        """Once someone really enrolls, placeholder attendees disappear."""
        store_event_attendees(session, "E2", generate_mock_attendees("Party", "E2"), "Party")
        assert all(a.user_id is None for a in get_event_attendees(session, "E2"))

        enroll_user_in_event(session, "7", "E2")
        attendees = initialize_event_attendees(session, "E2", "Party", "42")

        assert [a.id for a in attendees] == ["E2_7"]
        stored = get_event_attendees(session, "E2")
        assert [a.id for a in stored] == ["E2_7"]
        assert all(a.user_id for a in stored)

    def test_stale_mock_cleared_without_enrollments(self, session: Session):
        store_event_attendees(session, "E3", generate_mock_attendees("Party", "E3"))

        assert initialize_event_attendees(session, "E3", "Party") == []
        assert get_event_attendees(session, "E3") == []

    def test_stale_mock_kept_when_mock_requested(self, session: Session):
        store_event_attendees(session, "E3", generate_mock_attendees("Party", "E3"))

        attendees = initialize_event_attendees(session, "E3", "Party", use_mock=True)
        assert len(attendees) == 5

    def test_unenrolled_real_attendees_kept(self, session: Session):
        """Real cards whose users have since unenrolled are not deleted."""
        store_event_attendees(
            session,
            "E4",
            [
                Attendee(id="E4_7", user_id="7", event_id="E4", name="Maria"),
                Attendee(id="E4_42", user_id="42", event_id="E4", name="Alex"),
            ],
        )

        attendees = initialize_event_attendees(session, "E4", current_user_id="42")

        assert [a.id for a in attendees] == ["E4_7"]
        assert get_attendee_count(session, "E4") == 2


class TestSharedDeck:
    """One viewer refreshing the deck must not change what another sees."""

    def test_other_viewer_keeps_matches(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, current_user_id="42")
        track_user_swipe(session, enrolled_event, "42", "E1_7", "liked")

        initialize_event_attendees(session, enrolled_event, current_user_id="7")

        assert [m.id for m in get_user_matches(session, enrolled_event, "42")] == ["E1_7"]

    def test_other_viewer_keeps_completion(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, current_user_id="42")
        track_user_swipe(session, enrolled_event, "42", "E1_8", "passed")

        initialize_event_attendees(session, enrolled_event, current_user_id="7")

        assert has_completed_swiping(session, enrolled_event, "42") is False
        track_user_swipe(session, enrolled_event, "42", "E1_7", "liked")
        assert has_completed_swiping(session, enrolled_event, "42") is True

    def test_viewer_card_stored_but_not_returned(self, session: Session, enrolled_event: str):
        deck = initialize_event_attendees(session, enrolled_event, current_user_id="7")

        assert "E1_7" not in [a.id for a in deck]
        assert "E1_7" in [a.id for a in get_event_attendees(session, enrolled_event)]

    def test_own_card_is_never_a_match(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event)
        track_user_swipe(session, enrolled_event, "42", "E1_42", "liked")

        assert get_user_matches(session, enrolled_event, "42") == []


class TestAttendeeDocument:
    """Tests for direct attendee list maintenance."""

    def test_add_attendee_uses_canonical_id(self, session: Session):
        card = add_attendee(session, "E1", Attendee(id="tmp", user_id="7", event_id="x", name="Maria"))

        assert card.id == "E1_7"
        assert card.event_id == "E1"
        assert [a.id for a in get_event_attendees(session, "E1")] == ["E1_7"]

    def test_add_attendee_replaces_same_user(self, session: Session):
        add_attendee(session, "E1", Attendee(id="a", user_id="7", event_id="E1", name="Old"))
        add_attendee(session, "E1", Attendee(id="b", user_id="7", event_id="E1", name="New"))

        attendees = get_event_attendees(session, "E1")
        assert len(attendees) == 1
        assert attendees[0].name == "New"

    def test_clear_keeps_swipes(self, session: Session):
        add_attendee(session, "E1", Attendee(id="a", user_id="7", event_id="E1"))
        track_user_swipe(session, "E1", "42", "E1_7", "liked")

        clear_all_attendees(session, "E1")

        assert get_event_attendees(session, "E1") == []
        assert "E1_7" in get_user_swipes(session, "E1", "42")


class TestSwipes:
    """Tests for swipe recording."""

    def test_later_swipe_overwrites_earlier(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, current_user_id="42")

        track_user_swipe(session, enrolled_event, "42", "E1_7", "passed")
        track_user_swipe(session, enrolled_event, "42", "E1_7", "liked")

        swipes = get_user_swipes(session, enrolled_event, "42")
        assert list(swipes) == ["E1_7"]
        assert swipes["E1_7"]["action"] == "liked"
        assert "swipedAt" in swipes["E1_7"]

    def test_swipes_of_different_users_are_independent(self, session: Session):
        track_user_swipe(session, "E1", "42", "E1_7", "liked")
        track_user_swipe(session, "E1", "8", "E1_7", "passed")

        assert get_user_swipes(session, "E1", "42")["E1_7"]["action"] == "liked"
        assert get_user_swipes(session, "E1", "8")["E1_7"]["action"] == "passed"

    def test_swipe_creates_missing_document(self, session: Session):
        track_user_swipe(session, "E7", "42", "E7_7", "liked")

        document = session.get(EventAttendees, "E7")
        assert document is not None
        assert document.attendees == []

    def test_update_attendee_action_annotates_card(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, current_user_id="42")

        update_attendee_action(session, enrolled_event, "E1_8", "passed", "42")

        card = next(a for a in get_event_attendees(session, enrolled_event) if a.id == "E1_8")
        assert card.swipe_action == "passed"
        assert card.swiped_at is not None
        assert get_user_swipes(session, enrolled_event, "42")["E1_8"]["action"] == "passed"

    def test_update_without_swiper_only_annotates(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, current_user_id="42")

        update_attendee_action(session, enrolled_event, "E1_8", "liked")

        assert get_user_swipes(session, enrolled_event, "42") == {}

    def test_unknown_action_rejected(self, session: Session):
        with pytest.raises(ValidationError):
            track_user_swipe(session, "E1", "42", "E1_7", "maybe")
        assert session.get(EventAttendees, "E1") is None


class TestHasCompletedSwiping:
    """Tests for swipe completion."""

    def test_no_attendees_is_not_complete(self, session: Session):
        assert has_completed_swiping(session, "E1", "42") is False

    def test_partial_then_complete(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, current_user_id="42")

        assert has_completed_swiping(session, enrolled_event, "42") is False

        track_user_swipe(session, enrolled_event, "42", "E1_7", "liked")
        assert has_completed_swiping(session, enrolled_event, "42") is False

        track_user_swipe(session, enrolled_event, "42", "E1_8", "passed")
        assert has_completed_swiping(session, enrolled_event, "42") is True

    def test_own_card_not_required(self, session: Session, enrolled_event: str):
        """The stored deck holds a card for every enrolled user."""
        initialize_event_attendees(session, enrolled_event, current_user_id="8")

        track_user_swipe(session, enrolled_event, "42", "E1_7", "liked")
        assert has_completed_swiping(session, enrolled_event, "42") is True


class TestGetUserMatches:
    """Tests for match derivation."""

    def test_likes_are_matches(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, current_user_id="42")
        track_user_swipe(session, enrolled_event, "42", "E1_7", "liked")
        track_user_swipe(session, enrolled_event, "42", "E1_8", "passed")

        matches = get_user_matches(session, enrolled_event, "42", mutual_only=False)
        assert [m.id for m in matches] == ["E1_7"]

    def test_mutual_mode_requires_like_back(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, current_user_id="42")
        track_user_swipe(session, enrolled_event, "42", "E1_7", "liked")
        track_user_swipe(session, enrolled_event, "42", "E1_8", "liked")
        track_user_swipe(session, enrolled_event, "7", "E1_42", "liked")
        track_user_swipe(session, enrolled_event, "8", "E1_42", "passed")

        matches = get_user_matches(session, enrolled_event, "42", mutual_only=True)
        assert [m.id for m in matches] == ["E1_7"]

    def test_unknown_event(self, session: Session):
        assert get_user_matches(session, "nope", "42") == []


class TestStoreFailures:
    """Reads degrade to empty results; writes raise."""

    def test_reads_return_empty(self, session: Session, monkeypatch, store_failure):
        def fail(*args, **kwargs):
            raise store_failure

        monkeypatch.setattr(session, "get", fail)
        monkeypatch.setattr(session, "exec", fail)

        assert get_event_attendees(session, "E1") == []
        assert get_user_matches(session, "E1", "42") == []
        assert get_user_swipes(session, "E1", "42") == {}
        assert has_completed_swiping(session, "E1", "42") is False

    def test_swipe_write_raises(self, session: Session, monkeypatch, store_failure):
        def fail(*args, **kwargs):
            raise store_failure

        monkeypatch.setattr(session, "commit", fail)

        with pytest.raises(StoreError) as excinfo:
            track_user_swipe(session, "E1", "42", "E1_7", "liked")
        assert excinfo.value.__cause__ is store_failure
