from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, String, text

from app.database import Base

ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"

STATUSES = (ACTIVE, COMPLETED, CANCELLED)


def _utcnow():
    return datetime.now(timezone.utc)


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # users / courses 可能在別的服務，不建 FK
    user_id = Column(String(255), nullable=False, index=True)
    course_id = Column(String(20), nullable=False, index=True)
    course_title = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=ACTIVE)
    enrolled_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        # at most one active row per (user, course); cancelled/completed rows are kept
        Index(
            "uq_enrollments_active_user_course",
            "user_id",
            "course_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )
