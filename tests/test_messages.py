"""Direct messages between users."""

import pytest

from tutorlink.api.message import get_conversation, list_conversations
from tutorlink.exceptions import NotFoundError, ValidationError
from tutorlink.services import message_service


def test_send_message_notifies_receiver(db_session, make_user):
    alice = make_user(name="Alice")
    bob = make_user("mentor", name="Bob")

    message, notification = message_service.send_message(
        db_session, sender=alice, receiver_id=bob.id, content="  Are you free Friday?  "
    )

    assert message.content == "Are you free Friday?"
    assert message.conversation_id == f"{min(alice.id, bob.id)}_{max(alice.id, bob.id)}"
    assert message.is_read is False
    assert notification.type == "message_received"
    assert notification.recipient_id == bob.id
    assert notification.title == "New message from Alice"
    assert notification.related_model == "Message"
    assert message_service.unread_count(db_session, user=bob) == 1


def test_notification_preview_is_truncated(db_session, make_user):
    alice = make_user()
    bob = make_user()

    _, notification = message_service.send_message(
        db_session, sender=alice, receiver_id=bob.id, content="x" * 300
    )

    assert len(notification.message) == 100
    assert notification.message.endswith("...")


@pytest.mark.parametrize("content", ["", "   ", "y" * 2001])
def test_send_message_rejects_bad_content(db_session, make_user, content):
    alice = make_user()
    bob = make_user()
    with pytest.raises(ValidationError):
        message_service.send_message(db_session, sender=alice, receiver_id=bob.id, content=content)


def test_send_message_rejects_self_inactive_and_unknown_targets(db_session, make_user):
    alice = make_user()
    gone = make_user(active=False)

    with pytest.raises(ValidationError):
        message_service.send_message(db_session, sender=alice, receiver_id=alice.id, content="hi")
    with pytest.raises(NotFoundError):
        message_service.send_message(db_session, sender=alice, receiver_id=gone.id, content="hi")
    with pytest.raises(NotFoundError):
        message_service.send_message(db_session, sender=alice, receiver_id=9999, content="hi")
    with pytest.raises(NotFoundError):
        message_service.send_message(
            db_session, sender=alice, receiver_id=make_user().id, content="hi", session_id=4242
        )


def test_conversation_is_shared_and_chronological(db_session, make_user):
    alice = make_user()
    bob = make_user()
    carol = make_user()

    first, _ = message_service.send_message(db_session, sender=alice, receiver_id=bob.id, content="one")
    second, _ = message_service.send_message(db_session, sender=bob, receiver_id=alice.id, content="two")
    message_service.send_message(db_session, sender=carol, receiver_id=alice.id, content="other thread")

    thread = message_service.conversation_query(db_session, user=bob, other_user_id=alice.id).all()
    assert [m.id for m in thread] == [first.id, second.id]

    page = get_conversation(user_id=bob.id, page=1, limit=1, current_user=alice, db=db_session)
    assert [m.content for m in page["data"]["messages"]] == ["one"]
    assert page["data"]["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}


def test_conversation_overview_lists_latest_message_each(db_session, make_user):
    alice = make_user()
    bob = make_user()
    carol = make_user()

    message_service.send_message(db_session, sender=alice, receiver_id=bob.id, content="hi bob")
    latest_bob, _ = message_service.send_message(db_session, sender=bob, receiver_id=alice.id, content="hi alice")
    latest_carol, _ = message_service.send_message(db_session, sender=carol, receiver_id=alice.id, content="hey")

    overview = list_conversations(current_user=alice, db=db_session)["data"]

    assert [c["last_message"].id for c in overview["conversations"]] == [latest_carol.id, latest_bob.id]
    assert [c["other_user_id"] for c in overview["conversations"]] == [carol.id, bob.id]
    assert overview["unread_count"] == 2


def test_only_receiver_can_mark_read(db_session, make_user):
    alice = make_user()
    bob = make_user()
    message, _ = message_service.send_message(db_session, sender=alice, receiver_id=bob.id, content="ping")

    with pytest.raises(NotFoundError):
        message_service.mark_message_read(db_session, message_id=message.id, user=alice)

    read = message_service.mark_message_read(db_session, message_id=message.id, user=bob)
    assert read.is_read is True
    assert read.read_at is not None
    assert message_service.unread_count(db_session, user=bob) == 0
