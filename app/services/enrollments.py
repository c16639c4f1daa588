"""Enrollment ledger.

Per (user, course) the lineage is ``active -> completed | cancelled``.
Enrolling again after a cancellation adds a new ``active`` row and leaves the
old one untouched, so rows are never deleted and history survives. A
completed lineage is closed: enrolling again is an invalid transition. The
partial unique index on ``enrollments`` (``status = 'active'``) is what makes
check-then-insert safe when requests race, including across service instances.
"""
import logging
from typing import List

from fastapi import Depends
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import AlreadyEnrolled, Forbidden, InvalidTransition, NotFound
from app.models.enrollment import ACTIVE, CANCELLED, COMPLETED, Enrollment
from app.services.courses import CourseLookup, get_course_lookup

logger = logging.getLogger("app.enrollments")


class EnrollmentLedger:
    def __init__(self, db: Session, courses: CourseLookup):
        self.db = db
        self.courses = courses

    def enroll(self, user_id: str, course_id: str) -> Enrollment:
        # CourseNotFound / DependencyUnavailable 直接往上丟
        course = self.courses.get(course_id)

        current = self._find_blocking(user_id, course_id)
        if current is not None and current.status == ACTIVE:
            raise AlreadyEnrolled(user_id, course_id)
        if current is not None and current.status == COMPLETED:
            # 修畢之後不能再選
            raise InvalidTransition(COMPLETED, ACTIVE)

        enrollment = Enrollment(
            user_id=user_id,
            course_id=course_id,
            course_title=course.title,
            status=ACTIVE,
        )
        self.db.add(enrollment)
        try:
            self.db.commit()
        except IntegrityError:
            # lost the race against a concurrent enroll for the same pair
            self.db.rollback()
            logger.info("Concurrent enroll rejected for user %s course %s", user_id, course_id)
            raise AlreadyEnrolled(user_id, course_id)

        self.db.refresh(enrollment)
        logger.info("User %s enrolled in %s (enrollment %s)", user_id, course_id, enrollment.id)
        return enrollment

    def list_for_user(self, user_id: str) -> List[Enrollment]:
        return (
            self.db.query(Enrollment)
            .filter(Enrollment.user_id == user_id)
            .order_by(Enrollment.id.asc())
            .all()
        )

    def get_for_user(self, enrollment_id: int, requester_id: str) -> Enrollment:
        enrollment = self.db.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFound(f"Enrollment {enrollment_id} not found")
        if enrollment.user_id != requester_id:
            raise Forbidden("Enrollment belongs to another user")
        return enrollment

    def cancel(self, enrollment_id: int, requester_id: str) -> Enrollment:
        return self._transition(enrollment_id, requester_id, CANCELLED)

    def complete(self, enrollment_id: int, requester_id: str) -> Enrollment:
        return self._transition(enrollment_id, requester_id, COMPLETED)

    def _transition(self, enrollment_id: int, requester_id: str, target: str) -> Enrollment:
        enrollment = self.get_for_user(enrollment_id, requester_id)
        if enrollment.status != ACTIVE:
            raise InvalidTransition(enrollment.status, target)

        # conditional update: only one of two racing transitions sees rowcount 1
        result = self.db.execute(
            update(Enrollment)
            .where(Enrollment.id == enrollment_id, Enrollment.status == ACTIVE)
            .values(status=target)
        )
        if result.rowcount != 1:
            self.db.rollback()
            self.db.refresh(enrollment)
            raise InvalidTransition(enrollment.status, target)

        self.db.commit()
        self.db.refresh(enrollment)
        logger.info("Enrollment %s -> %s by user %s", enrollment_id, target, requester_id)
        return enrollment

    def _find_blocking(self, user_id: str, course_id: str):
        """The active or completed row for the pair, if any. Cancelled rows never block."""
        return (
            self.db.query(Enrollment)
            .filter(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
                Enrollment.status.in_([ACTIVE, COMPLETED]),
            )
            .order_by(Enrollment.id.desc())
            .first()
        )


def get_enrollment_ledger(
    db: Session = Depends(get_db),
    courses: CourseLookup = Depends(get_course_lookup),
) -> EnrollmentLedger:
    return EnrollmentLedger(db, courses)
