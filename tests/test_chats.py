"""Tests for chat identity, messages and read tracking."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlmodel import Session, select

from eventmatch.core.errors import StoreError, ValidationError
from eventmatch.matching.attendees import (
    get_user_matches,
    initialize_event_attendees,
    update_attendee_action,
)
from eventmatch.matching.chats import (
    chat_id_for,
    get_chat,
    get_chat_details,
    get_or_create_chat,
    other_participant,
)
from eventmatch.matching.messages import (
    get_chat_messages,
    get_recent_messages,
    get_unread_message_count,
    mark_messages_as_read,
    send_message,
)
from eventmatch.models import Chat


class TestGetOrCreateChat:
    """Tests for deterministic chat creation."""

    def test_id_is_sorted_pair_plus_event(self, session: Session, users):
        chat_id = get_or_create_chat(session, "7", "42", "E1", "Tech Mixer", "img.png")

        assert chat_id == "42_7_E1"
        chat = get_chat(session, chat_id)
        assert chat.user_id1 == "42"
        assert chat.user_id2 == "7"
        assert chat.event_title == "Tech Mixer"
        assert chat.event_image == "img.png"
        assert chat.last_message is None

    def test_same_chat_from_either_side(self, session: Session, users):
        first = get_or_create_chat(session, "7", "42", "E1")
        second = get_or_create_chat(session, "42", "7", "E1")

        assert first == second == chat_id_for("42", "7", "E1")
        assert len(session.exec(select(Chat)).all()) == 1

    def test_existing_chat_left_untouched(self, session: Session, users):
        chat_id = get_or_create_chat(session, "7", "42", "E1", "Tech Mixer")
        send_message(session, chat_id, "42", "hello")

        get_or_create_chat(session, "42", "7", "E1", "Renamed")

        chat = get_chat(session, chat_id)
        assert chat.event_title == "Tech Mixer"
        assert chat.last_message == "hello"

    def test_defaults_without_event_snapshot(self, session: Session):
        chat = get_chat(session, get_or_create_chat(session, "7", "42", "E1"))
        assert chat.event_title == "Event"
        assert chat.event_image == ""

    def test_numeric_ids(self, session: Session):
        assert get_or_create_chat(session, 7, 42.0, 101) == "42_7_101"

    def test_different_events_get_different_chats(self, session: Session):
        assert get_or_create_chat(session, "7", "42", "E1") != get_or_create_chat(
            session, "7", "42", "E2"
        )

    def test_invalid_participants(self, session: Session):
        with pytest.raises(ValidationError):
            get_or_create_chat(session, "7", "7", "E1")
        with pytest.raises(ValidationError):
            get_or_create_chat(session, "", "7", "E1")
        with pytest.raises(ValidationError):
            get_or_create_chat(session, "42", "7", None)

    def test_concurrent_creation_reuses_chat(self, session: Session, monkeypatch):
        """Another writer inserting the chat first is not an error."""
        chat_id = get_or_create_chat(session, "7", "42", "E1", "Tech Mixer")
        session.expunge_all()
        monkeypatch.setattr(session, "get", lambda *args, **kwargs: None)

        assert get_or_create_chat(session, "42", "7", "E1", "Other") == chat_id

        monkeypatch.undo()
        assert get_chat(session, chat_id).event_title == "Tech Mixer"

    def test_lookup_failure_raises(self, session: Session, monkeypatch, store_failure):
        def fail(*args, **kwargs):
            raise store_failure

        monkeypatch.setattr(session, "get", fail)
        with pytest.raises(StoreError):
            get_or_create_chat(session, "7", "42", "E1")


class TestChatDetails:
    """Tests for participant resolution."""

    def test_other_participant(self, session: Session, add_chat):
        chat = add_chat("42_7_E1", "42", "7", "E1")

        assert other_participant(chat, "42") == "7"
        assert other_participant(chat, 7) == "42"
        assert other_participant(chat, "8") is None

    def test_other_participant_with_legacy_ids(self, session: Session, add_chat):
        chat = add_chat("legacy", "42", "E1_7", "E1")

        assert other_participant(chat, "7") == "42"
        assert other_participant(chat, "42") == "7"

    def test_details_include_profile(self, session: Session, users):
        chat_id = get_or_create_chat(session, "7", "42", "E1")

        details = get_chat_details(session, chat_id, "42")

        assert details.other_user_id == "7"
        assert details.other_user.name == "Maria Garcia"
        assert details.chat.id == chat_id

    def test_details_for_outsider_or_missing_chat(self, session: Session, users):
        chat_id = get_or_create_chat(session, "7", "42", "E1")

        assert get_chat_details(session, chat_id, "8") is None
        assert get_chat_details(session, "nope", "42") is None


class TestSendMessage:
    """Tests for message delivery."""

    def test_send_updates_summary(self, session: Session):
        chat_id = get_or_create_chat(session, "7", "42", "E1")

        message = send_message(session, chat_id, "42", "  hello  ")

        assert message.text == "hello"
        assert message.read is False
        chat = get_chat(session, chat_id)
        assert chat.last_message == "hello"
        assert chat.last_message_at is not None
        assert chat.last_message_at == chat.updated_at

    def test_blank_message_rejected(self, session: Session):
        chat_id = get_or_create_chat(session, "7", "42", "E1")
        send_message(session, chat_id, "42", "hello")

        for text in ("", "   ", None):
            with pytest.raises(ValidationError, match="Cannot send empty message"):
                send_message(session, chat_id, "42", text)

        assert len(get_chat_messages(session, chat_id)) == 1
        assert get_chat(session, chat_id).last_message == "hello"

    def test_unknown_chat_rejected(self, session: Session):
        with pytest.raises(ValidationError):
            send_message(session, "missing", "42", "hello")
        assert get_chat_messages(session, "missing") == []

    def test_write_failure_raises(self, session: Session, monkeypatch, store_failure):
        chat_id = get_or_create_chat(session, "7", "42", "E1")

        def fail(*args, **kwargs):
            raise store_failure

        monkeypatch.setattr(session, "commit", fail)
        with pytest.raises(StoreError):
            send_message(session, chat_id, "42", "hello")


class TestMessageQueries:
    """Tests for history, unread counts and read marking."""

    def test_history_is_chronological(self, session: Session, add_chat, add_message):
        add_chat("42_7_E1", "42", "7", "E1")
        start = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)
        add_message("42_7_E1", "7", "third", timestamp=start + timedelta(minutes=2))
        add_message("42_7_E1", "42", "first", timestamp=start)
        add_message("42_7_E1", "7", "second", timestamp=start + timedelta(minutes=1))

        assert [m.text for m in get_chat_messages(session, "42_7_E1")] == ["first", "second", "third"]
        assert [m.text for m in get_recent_messages(session, limit=2)] == ["third", "second"]

    def test_unread_counts_and_marking(self, session: Session):
        chat_id = get_or_create_chat(session, "7", "42", "E1")
        send_message(session, chat_id, "42", "hello")
        send_message(session, chat_id, "42", "are you there?")
        send_message(session, chat_id, "7", "hi!")

        assert get_unread_message_count(session, chat_id, "7") == 2
        assert get_unread_message_count(session, chat_id, "42") == 1

        assert mark_messages_as_read(session, chat_id, "7") == 2
        assert get_unread_message_count(session, chat_id, "7") == 0
        assert mark_messages_as_read(session, chat_id, "7") == 0
        assert get_unread_message_count(session, chat_id, "42") == 1

        send_message(session, chat_id, "42", "one more")
        assert get_unread_message_count(session, chat_id, "7") == 1

    def test_reads_degrade_on_failure(self, session: Session, monkeypatch, store_failure):
        def fail(*args, **kwargs):
            raise store_failure

        monkeypatch.setattr(session, "exec", fail)

        assert get_chat_messages(session, "42_7_E1") == []
        assert get_unread_message_count(session, "42_7_E1", "7") == 0
        assert get_recent_messages(session) == []


class TestLikeToConversation:
    """A like becomes a match, a chat and a read conversation."""

    def test_like_chat_and_read(self, session: Session, enrolled_event: str):
        initialize_event_attendees(session, enrolled_event, "Tech Mixer", "42")
        update_attendee_action(session, enrolled_event, "E1_7", "liked", "42")

        matches = get_user_matches(session, enrolled_event, "42")
        assert [m.id for m in matches] == ["E1_7"]

        chat_id = get_or_create_chat(session, "42", matches[0].user_id, enrolled_event)
        assert chat_id == "42_7_E1"

        send_message(session, chat_id, "42", "hello")
        assert get_unread_message_count(session, chat_id, "7") == 1

        mark_messages_as_read(session, chat_id, "7")
        assert get_unread_message_count(session, chat_id, "7") == 0
        assert get_chat_messages(session, chat_id)[0].read is True
