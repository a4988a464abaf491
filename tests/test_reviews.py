# tests/test_reviews.py
"""
Review ledger and rating aggregation tests
Service layer plus the review CRUD helpers
"""

from datetime import datetime

import pytest

from tutorlink import models
from tutorlink.crud import review as review_crud
from tutorlink.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tutorlink.services import review_service


# ======================
# TEST DATA SETUP
# ======================

def _session(db, mentor, students, status="completed", capacity=None):
    session = models.Session(
        title="Statistics",
        mentor_id=mentor.id,
        scheduled_at=datetime(2030, 1, 1, 10, 0),
        duration=60,
        status=status,
        capacity=capacity or max(len(students), 1),
        participant_count=len(students),
    )
    for student in students:
        session.participants.append(models.SessionParticipant(user_id=student.id))
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


@pytest.fixture
def pair(db_session, make_user):
    return {"student": make_user("student", name="Sam"), "mentor": make_user("mentor", name="Maya")}


# ======================
# TEST 1: SUBMISSION
# ======================

def test_student_review_updates_mentor_rating(db_session, pair):
    session = _session(db_session, pair["mentor"], [pair["student"]])

    review, (average, total), notification = review_service.submit_review(
        db_session, session_id=session.id, reviewer=pair["student"], rating=5, comment="great"
    )

    assert review.reviewee_id == pair["mentor"].id
    assert review.comment == "great"
    assert (average, total) == (5.0, 1)
    db_session.refresh(pair["mentor"])
    assert pair["mentor"].rating == 5.0
    assert pair["mentor"].total_reviews == 1
    assert notification.type == "review_received"
    assert notification.recipient_id == pair["mentor"].id


def test_second_review_on_same_session_conflicts(db_session, pair):
    session = _session(db_session, pair["mentor"], [pair["student"]])
    review_service.submit_review(db_session, session_id=session.id, reviewer=pair["student"], rating=5)

    with pytest.raises(ConflictError):
        review_service.submit_review(db_session, session_id=session.id, reviewer=pair["student"], rating=1)

    db_session.refresh(pair["mentor"])
    assert pair["mentor"].total_reviews == 1


def test_mentor_reviews_sole_student_by_default(db_session, pair):
    session = _session(db_session, pair["mentor"], [pair["student"]])

    review, (average, total), _ = review_service.submit_review(
        db_session, session_id=session.id, reviewer=pair["mentor"], rating=4
    )

    assert review.reviewee_id == pair["student"].id
    assert (average, total) == (4.0, 1)


def test_mentor_must_name_reviewee_in_group_session(db_session, make_user):
    mentor = make_user("mentor")
    a, b = make_user("student"), make_user("student")
    outsider = make_user("student")
    session = _session(db_session, mentor, [a, b])

    with pytest.raises(ValidationError):
        review_service.submit_review(db_session, session_id=session.id, reviewer=mentor, rating=4)
    with pytest.raises(ValidationError):
        review_service.submit_review(
            db_session, session_id=session.id, reviewer=mentor, rating=4, reviewee_id=outsider.id
        )

    review, _, _ = review_service.submit_review(
        db_session, session_id=session.id, reviewer=mentor, rating=4, reviewee_id=b.id
    )
    assert review.reviewee_id == b.id


def test_student_cannot_redirect_review(db_session, make_user):
    mentor = make_user("mentor")
    a, b = make_user("student"), make_user("student")
    session = _session(db_session, mentor, [a, b])

    with pytest.raises(ValidationError):
        review_service.submit_review(
            db_session, session_id=session.id, reviewer=a, rating=2, reviewee_id=b.id
        )


def test_review_guards(db_session, pair, make_user):
    scheduled = _session(db_session, pair["mentor"], [pair["student"]], status="scheduled")
    completed = _session(db_session, pair["mentor"], [pair["student"]])

    with pytest.raises(NotFoundError):
        review_service.submit_review(db_session, session_id=999, reviewer=pair["student"], rating=5)
    with pytest.raises(AuthorizationError):
        review_service.submit_review(db_session, session_id=completed.id, reviewer=make_user("student"), rating=5)
    with pytest.raises(InvalidStateError):
        review_service.submit_review(db_session, session_id=scheduled.id, reviewer=pair["student"], rating=5)
    with pytest.raises(ValidationError):
        review_service.submit_review(db_session, session_id=completed.id, reviewer=pair["student"], rating=6)

    assert db_session.query(models.Review).count() == 0


# ======================
# TEST 2: AGGREGATION
# ======================

def test_rating_is_mean_of_all_reviews(db_session, make_user):
    mentor = make_user("mentor")
    ratings = [5, 4, 2, 5, 3]
    for rating in ratings:
        student = make_user("student")
        session = _session(db_session, mentor, [student])
        review_service.submit_review(db_session, session_id=session.id, reviewer=student, rating=rating)

    db_session.refresh(mentor)
    assert mentor.rating == pytest.approx(sum(ratings) / len(ratings))
    assert mentor.total_reviews == len(ratings)
    assert review_crud.get_rating_distribution(db_session, mentor.id) == {1: 0, 2: 1, 3: 1, 4: 1, 5: 2}


def test_update_and_delete_recompute_rating(db_session, make_user):
    mentor = make_user("mentor")
    s1, s2 = make_user("student"), make_user("student")
    first, _, _ = review_service.submit_review(
        db_session, session_id=_session(db_session, mentor, [s1]).id, reviewer=s1, rating=2
    )
    review_service.submit_review(
        db_session, session_id=_session(db_session, mentor, [s2]).id, reviewer=s2, rating=4
    )

    _, (average, total) = review_service.update_review(db_session, review_id=first.id, author=s1, rating=5)
    assert (average, total) == (4.5, 2)

    average, total = review_service.delete_review(db_session, review_id=first.id, author=s1)
    assert (average, total) == (4.0, 1)


def test_deleting_last_review_resets_rating(db_session, pair):
    session = _session(db_session, pair["mentor"], [pair["student"]])
    review, _, _ = review_service.submit_review(
        db_session, session_id=session.id, reviewer=pair["student"], rating=3
    )

    assert review_service.delete_review(db_session, review_id=review.id, author=pair["student"]) == (0.0, 0)
    db_session.refresh(pair["mentor"])
    assert pair["mentor"].rating == 0.0
    assert pair["mentor"].total_reviews == 0


def test_only_author_can_edit_or_delete(db_session, pair):
    session = _session(db_session, pair["mentor"], [pair["student"]])
    review, _, _ = review_service.submit_review(
        db_session, session_id=session.id, reviewer=pair["student"], rating=3
    )

    with pytest.raises(NotFoundError):
        review_service.update_review(db_session, review_id=review.id, author=pair["mentor"], rating=1)
    with pytest.raises(NotFoundError):
        review_service.delete_review(db_session, review_id=review.id, author=pair["mentor"])


# ======================
# TEST 3: READS
# ======================

def test_public_reviews_and_summary(db_session, pair):
    session = _session(db_session, pair["mentor"], [pair["student"]])
    review_service.submit_review(
        db_session, session_id=session.id, reviewer=pair["student"], rating=4, is_public=False
    )

    assert review_service.user_reviews_query(db_session, pair["mentor"].id).all() == []
    summary = review_service.get_rating_summary(db_session, pair["mentor"].id)
    assert summary["average_rating"] == 4.0
    assert summary["total_reviews"] == 1
    assert len(review_service.my_reviews_query(db_session, pair["student"]).all()) == 1
    assert len(review_service.session_reviews(db_session, session_id=session.id, user=pair["mentor"])) == 1

    with pytest.raises(NotFoundError):
        review_service.user_reviews_query(db_session, 999)


def test_crud_rejects_out_of_range_rating(db_session, pair):
    session = _session(db_session, pair["mentor"], [pair["student"]])
    with pytest.raises(ValueError, match="Rating must be between 1 and 5"):
        review_crud.create_review(
            db=db_session,
            session_id=session.id,
            reviewer_id=pair["student"].id,
            reviewee_id=pair["mentor"].id,
            rating=0,
        )
