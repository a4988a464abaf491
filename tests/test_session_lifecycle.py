"""Complete / cancel transitions and session reads."""

from datetime import datetime

import pytest

from tutorlink import models
from tutorlink.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from tutorlink.services import session_request_service, session_service


@pytest.fixture
def direct_session(db_session, make_user):
    student = make_user("student", name="Sam Student")
    mentor = make_user("mentor", name="Maya Mentor")
    request, _ = session_request_service.create_request(
        db_session,
        student=student,
        mentor_id=mentor.id,
        subject="Chemistry",
        duration=60,
        preferred_times=[datetime(2030, 1, 10, 9, 0)],
    )
    _, session, _ = session_request_service.accept_request(
        db_session, request_id=request.id, mentor=mentor, scheduled_date=datetime(2030, 1, 10, 9, 0)
    )
    return {"student": student, "mentor": mentor, "session": session}


def test_complete_sets_fields_and_notifies_counterpart(db_session, direct_session):
    student, mentor = direct_session["student"], direct_session["mentor"]

    session, notifications = session_service.complete_session(
        db_session,
        session_id=direct_session["session"].id,
        actor=mentor,
        notes="  Covered titration  ",
        actual_duration=55,
    )

    assert session.status == "completed"
    assert session.completed_by == mentor.id
    assert session.completed_at is not None
    assert session.completion_notes == "Covered titration"
    assert session.actual_duration == 55
    assert [(n.type, n.recipient_id) for n in notifications] == [("session_completed", student.id)]


def test_complete_twice_fails(db_session, direct_session):
    session_id = direct_session["session"].id
    session_service.complete_session(db_session, session_id=session_id, actor=direct_session["student"])

    with pytest.raises(InvalidStateError):
        session_service.complete_session(db_session, session_id=session_id, actor=direct_session["mentor"])


def test_complete_rejects_outsider_and_bad_duration(db_session, direct_session, make_user):
    session_id = direct_session["session"].id

    with pytest.raises(AuthorizationError):
        session_service.complete_session(db_session, session_id=session_id, actor=make_user("student"))
    with pytest.raises(ValidationError):
        session_service.complete_session(
            db_session, session_id=session_id, actor=direct_session["mentor"], actual_duration=0
        )

    db_session.refresh(direct_session["session"])
    assert direct_session["session"].status == "scheduled"


def test_cancel_records_reason_and_notifies(db_session, direct_session):
    student, mentor = direct_session["student"], direct_session["mentor"]

    session, notifications = session_service.cancel_session(
        db_session, session_id=direct_session["session"].id, actor=student, reason="Exam clash"
    )

    assert session.status == "cancelled"
    assert session.cancelled_by == student.id
    assert session.cancellation_reason == "Exam clash"
    assert [(n.type, n.recipient_id) for n in notifications] == [("session_cancelled", mentor.id)]
    assert notifications[0].payload == {"reason": "Exam clash"}


def test_cancel_completed_session_fails(db_session, direct_session):
    session_id = direct_session["session"].id
    session_service.complete_session(db_session, session_id=session_id, actor=direct_session["mentor"])

    with pytest.raises(InvalidStateError):
        session_service.cancel_session(
            db_session, session_id=session_id, actor=direct_session["mentor"], reason="Too late"
        )


def test_cancel_twice_and_complete_after_cancel_fail(db_session, direct_session):
    session_id = direct_session["session"].id
    mentor = direct_session["mentor"]
    session_service.cancel_session(db_session, session_id=session_id, actor=mentor, reason="Ill")

    with pytest.raises(InvalidStateError):
        session_service.cancel_session(db_session, session_id=session_id, actor=mentor, reason="Ill again")
    with pytest.raises(InvalidStateError):
        session_service.complete_session(db_session, session_id=session_id, actor=mentor)


def test_cancel_requires_reason(db_session, direct_session):
    with pytest.raises(ValidationError):
        session_service.cancel_session(
            db_session, session_id=direct_session["session"].id, actor=direct_session["mentor"], reason="   "
        )
    with pytest.raises(ValidationError):
        session_service.cancel_session(
            db_session, session_id=direct_session["session"].id, actor=direct_session["mentor"], reason="x" * 501
        )


def test_mentor_only_cancel_rejects_students(db_session, direct_session):
    with pytest.raises(AuthorizationError):
        session_service.cancel_session(
            db_session,
            session_id=direct_session["session"].id,
            actor=direct_session["student"],
            reason="Not my call",
            mentor_only=True,
        )


def test_group_cancel_notifies_every_other_participant(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    students = [make_user("student") for _ in range(3)]
    session, _ = session_service.create_open_session(
        db_session,
        mentor=mentor,
        title="Revision Circle",
        date=tomorrow.strftime("%Y-%m-%d"),
        time=tomorrow.strftime("%H:%M"),
        duration=90,
        meet_link="https://meet.example.com/rev",
        capacity=5,
    )
    for student in students:
        session_service.join_session(db_session, session_id=session.id, user=student)

    _, notifications = session_service.cancel_session(
        db_session, session_id=session.id, actor=students[0], reason="Venue closed"
    )

    assert sorted(n.recipient_id for n in notifications) == sorted([mentor.id, students[1].id, students[2].id])


def test_session_reads(db_session, direct_session, make_user):
    student, mentor = direct_session["student"], direct_session["mentor"]
    session_id = direct_session["session"].id

    assert [s.id for s in session_service.user_sessions_query(db_session, student).all()] == [session_id]
    assert [s.id for s in session_service.user_sessions_query(db_session, mentor).all()] == [session_id]
    assert session_service.user_sessions_query(db_session, student, status="completed").all() == []
    with pytest.raises(ValidationError):
        session_service.user_sessions_query(db_session, student, status="confirmed")

    assert session_service.get_session_for_user(db_session, session_id, student).id == session_id
    with pytest.raises(AuthorizationError):
        session_service.get_session_for_user(db_session, session_id, make_user("student"))
    with pytest.raises(NotFoundError):
        session_service.get_session_for_user(db_session, 999, student)

    # Direct sessions are not listed among the mentor's published sessions
    assert session_service.mentor_open_sessions_query(db_session, mentor).all() == []
    assert db_session.query(models.Session).count() == 1
