from __future__ import annotations

import pytest

# Skip suite when FastAPI dependency is not present in local environment.
pytest.importorskip("fastapi")

from tutorlink.api.notification import (
    get_legacy_messages,
    get_my_notifications,
    get_unread_count,
    mark_all_notifications_read,
    mark_notification_read,
)
from tutorlink.exceptions import NotFoundError, ValidationError
from tutorlink.services import notification_service


def _notify(db, user, type, message, **extra):
    return notification_service.create_notification(
        db,
        recipient_id=user.id,
        sender_id=None,
        type=type,
        title=type.replace("_", " ").title(),
        message=message,
        **extra,
    )


def test_notification_api_read_flow(db_session, make_user):
    user = make_user("mentor")

    first = _notify(db_session, user, "session_request", "New session request")
    second = _notify(db_session, user, "session_joined", "A student joined")
    second.is_read = True
    db_session.commit()

    unread = get_my_notifications(
        unread_only=True,
        notification_type=None,
        limit=50,
        current_user=user,
        db=db_session,
    )
    assert unread["success"] is True
    assert [n.id for n in unread["data"]["notifications"]] == [first.id]
    assert unread["data"]["unread_count"] == 1

    count_before = get_unread_count(current_user=user, db=db_session)
    assert count_before["data"]["count"] == 1

    marked = mark_notification_read(
        notification_id=first.id,
        current_user=user,
        db=db_session,
    )
    assert marked["data"]["notification"].id == first.id
    assert marked["data"]["notification"].is_read is True

    count_after = get_unread_count(current_user=user, db=db_session)
    assert count_after["data"]["count"] == 0

    third = _notify(db_session, user, "session_cancelled", "Session cancelled")
    assert third.id is not None
    db_session.commit()

    all_marked = mark_all_notifications_read(current_user=user, db=db_session)
    assert all_marked["data"]["updated"] == 1

    final_count = get_unread_count(current_user=user, db=db_session)
    assert final_count["data"]["count"] == 0


def test_notification_type_filter(db_session, make_user):
    user = make_user()
    _notify(db_session, user, "session_approved", "Approved")
    _notify(db_session, user, "message_received", "Hello")
    db_session.commit()

    result = get_my_notifications(
        unread_only=False,
        notification_type="message_received",
        limit=50,
        current_user=user,
        db=db_session,
    )
    assert [n.type for n in result["data"]["notifications"]] == ["message_received"]

    with pytest.raises(ValidationError):
        get_my_notifications(
            unread_only=False,
            notification_type="bogus",
            limit=50,
            current_user=user,
            db=db_session,
        )


def test_mark_notification_read_404(db_session, make_user):
    user = make_user()
    with pytest.raises(NotFoundError) as exc_info:
        mark_notification_read(notification_id=99999, current_user=user, db=db_session)
    assert exc_info.value.status_code == 404


def test_legacy_messages_route(db_session, make_user):
    student = make_user()
    mentor = make_user("mentor", name="Maya")
    notification_service.create_notification(
        db_session,
        recipient_id=student.id,
        sender_id=mentor.id,
        type="session_notification",
        title="New Session Available",
        message="Maya opened a session",
        related_id=3,
        related_model="Session",
        metadata={
            "mentor_name": "Maya",
            "session_title": "Linear Algebra",
            "session_date": "2030-01-01T10:00:00",
            "duration": 60,
            "meet_link": "https://meet.example.com/la",
        },
    )
    db_session.commit()

    result = get_legacy_messages(limit=50, current_user=student, db=db_session)

    messages = result["data"]["messages"]
    assert len(messages) == 1
    assert messages[0].message_type == "session_notification"
    assert messages[0].session_id == 3
    assert messages[0].sender == mentor.id
    assert "Maya has scheduled a new session:" in messages[0].content
    assert "Meet Link: https://meet.example.com/la" in messages[0].content
    assert "Description:" not in messages[0].content
