"""Open session creation and the join protocol."""

from datetime import timedelta

import pytest

from tutorlink import models
from tutorlink.config import settings
from tutorlink.exceptions import (
    AuthorizationError,
    CapacityError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tutorlink.services import session_service
from tutorlink.utils.clock import utcnow


@pytest.fixture(autouse=True)
def inline_fanout(monkeypatch):
    monkeypatch.setattr(settings, "FANOUT_ASYNC", False)


def _open_session(db, mentor, when, capacity=3, title="Group Study"):
    session, _ = session_service.create_open_session(
        db,
        mentor=mentor,
        title=title,
        date=when.strftime("%Y-%m-%d"),
        time=when.strftime("%H:%M"),
        duration=60,
        meet_link="https://meet.example.com/group",
        capacity=capacity,
    )
    return session


def test_open_session_starts_empty(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    session = _open_session(db_session, mentor, tomorrow)

    assert session.status == "scheduled"
    assert session.participant_count == 0
    assert session.participant_ids == []
    assert session.capacity == 3
    assert session.request_id is None
    assert session.scheduled_at == tomorrow.replace(second=0)


def test_open_session_keeps_notes_and_materials(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    session, _ = session_service.create_open_session(
        db_session,
        mentor=mentor,
        title="Stats Clinic",
        date=tomorrow.strftime("%Y-%m-%d"),
        time=tomorrow.strftime("%H:%M"),
        duration=45,
        meet_link="https://meet.example.com/stats",
        notes="  Bring last week's problem set  ",
        materials=["https://notes.example.com/ch4", "  ", "Chapter 5 slides "],
    )

    assert session.notes == "Bring last week's problem set"
    assert session.materials == ["https://notes.example.com/ch4", "Chapter 5 slides"]

    bare = _open_session(db_session, mentor, tomorrow, title="No Extras")
    assert bare.notes is None
    assert bare.materials == []


def test_join_until_full_then_capacity_error(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    a, b, c, d = (make_user("student") for _ in range(4))
    session = _open_session(db_session, mentor, tomorrow, capacity=3)

    first, joined, notifications = session_service.join_session(db_session, session_id=session.id, user=a)
    assert joined is True
    assert first.status == "active"
    assert sorted(n.type for n in notifications) == ["session_confirmation", "session_joined"]

    session_service.join_session(db_session, session_id=session.id, user=b)
    full, _, _ = session_service.join_session(db_session, session_id=session.id, user=c)

    assert full.participant_ids == [a.id, b.id, c.id]
    assert full.participant_count == 3
    with pytest.raises(CapacityError):
        session_service.join_session(db_session, session_id=session.id, user=d)

    db_session.refresh(full)
    assert full.participant_count == 3
    assert d.id not in full.participant_ids


def test_join_is_idempotent(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    student = make_user("student")
    session = _open_session(db_session, mentor, tomorrow)

    session_service.join_session(db_session, session_id=session.id, user=student)
    again, joined, notifications = session_service.join_session(db_session, session_id=session.id, user=student)

    assert joined is False
    assert notifications == []
    assert again.participant_ids == [student.id]
    assert again.participant_count == 1
    assert db_session.query(models.SessionParticipant).count() == 1


def test_mentor_join_is_a_no_op(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    session = _open_session(db_session, mentor, tomorrow, capacity=1)

    same, joined, _ = session_service.join_session(db_session, session_id=session.id, user=mentor)

    assert joined is False
    assert same.participant_count == 0
    assert same.status == "scheduled"


@pytest.mark.parametrize("role", ["mentor", "admin"])
def test_only_students_take_seats(db_session, make_user, tomorrow, role):
    owner = make_user("mentor")
    outsider = make_user(role)
    student = make_user("student")
    session = _open_session(db_session, owner, tomorrow, capacity=1)

    with pytest.raises(AuthorizationError) as exc_info:
        session_service.join_session(db_session, session_id=session.id, user=outsider)
    assert exc_info.value.message == "Only students can join sessions"

    db_session.refresh(session)
    assert session.participant_count == 0
    assert session.status == "scheduled"
    assert outsider.id not in session.participant_ids

    # The seat is still there for a student
    _, joined, _ = session_service.join_session(db_session, session_id=session.id, user=student)
    assert joined is True


def test_join_direct_session_is_full(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    student = make_user("student")
    outsider = make_user("student")
    session = session_service.create_direct_session(
        db_session,
        request=models.SessionRequest(
            student_id=student.id, mentor_id=mentor.id, subject="Physics", duration=45, preferred_times=[]
        ),
        scheduled_at=tomorrow,
    )
    db_session.commit()

    with pytest.raises(CapacityError):
        session_service.join_session(db_session, session_id=session.id, user=outsider)


def test_join_rejects_missing_terminal_and_past_sessions(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    student = make_user("student")

    with pytest.raises(NotFoundError):
        session_service.join_session(db_session, session_id=12345, user=student)

    cancelled = _open_session(db_session, mentor, tomorrow, title="Cancelled")
    session_service.cancel_session(db_session, session_id=cancelled.id, actor=mentor, reason="Sick")
    with pytest.raises(InvalidStateError):
        session_service.join_session(db_session, session_id=cancelled.id, user=student)

    past = _open_session(db_session, mentor, utcnow() - timedelta(days=1), title="Past")
    with pytest.raises(InvalidStateError):
        session_service.join_session(db_session, session_id=past.id, user=student)


def test_join_seat_claim_respects_capacity_under_stale_reads(db_session, make_user, tomorrow):
    """A joiner holding a stale view of the session still cannot overbook."""
    mentor = make_user("mentor")
    first = make_user("student")
    late = make_user("student")
    session = _open_session(db_session, mentor, tomorrow, capacity=1)

    # Seat taken behind the ORM's back, as another worker would
    db_session.execute(
        models.SessionParticipant.__table__.insert().values(session_id=session.id, user_id=first.id)
    )
    db_session.execute(
        models.Session.__table__.update()
        .where(models.Session.id == session.id)
        .values(participant_count=1, status="active")
    )

    with pytest.raises(CapacityError):
        session_service.join_session(db_session, session_id=session.id, user=late)


@pytest.mark.parametrize("overrides", [
    {"title": ""},
    {"date": None},
    {"time": None},
    {"meet_link": "  "},
    {"duration": 0},
    {"duration": "abc"},
    {"capacity": 0},
    {"date": "2030-13-45"},
    {"time": "25:99"},
])
def test_create_open_session_validation(db_session, make_user, overrides):
    mentor = make_user("mentor")
    fields = {
        "title": "Calculus Drop-in",
        "date": "2030-05-01",
        "time": "15:00",
        "duration": 60,
        "meet_link": "https://meet.example.com/calc",
        "capacity": 2,
    }
    fields.update(overrides)

    with pytest.raises(ValidationError):
        session_service.create_open_session(db_session, mentor=mentor, **fields)
    assert db_session.query(models.Session).count() == 0


def test_available_sessions_hide_full_joined_and_past(db_session, make_user, tomorrow):
    mentor = make_user("mentor")
    viewer = make_user("student")
    other = make_user("student")

    open_one = _open_session(db_session, mentor, tomorrow, capacity=2, title="Algebra Lab")
    joined = _open_session(db_session, mentor, tomorrow, capacity=2, title="Joined Lab")
    full = _open_session(db_session, mentor, tomorrow, capacity=1, title="Full Lab")
    _open_session(db_session, mentor, utcnow() - timedelta(hours=2), title="Old Lab")

    session_service.join_session(db_session, session_id=joined.id, user=viewer)
    session_service.join_session(db_session, session_id=full.id, user=other)

    visible = session_service.available_sessions_query(db_session, viewer).all()
    assert [s.id for s in visible] == [open_one.id]

    by_subject = session_service.available_sessions_query(db_session, other, subject="algebra").all()
    assert [s.id for s in by_subject] == [open_one.id]

    by_date = session_service.available_sessions_query(
        db_session, other, date=(tomorrow + timedelta(days=3)).strftime("%Y-%m-%d")
    ).all()
    assert by_date == []
