from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from app.schemas.common import ApiModel


class EnrollIn(ApiModel):
    # course ids are String(20) on both the course and enrollment tables
    course_id: str = Field(..., min_length=1, max_length=20)

    @field_validator("course_id")
    @classmethod
    def course_id_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("courseId must not be blank")
        return v


class EnrollmentOut(ApiModel):
    enrollment_id: int
    user_id: str
    course_id: str
    course_title: str
    status: Literal["active", "completed", "cancelled"]
    enrolled_at: datetime

    @classmethod
    def from_record(cls, e) -> "EnrollmentOut":
        return cls(
            enrollment_id=e.id,
            user_id=e.user_id,
            course_id=e.course_id,
            course_title=e.course_title,
            status=e.status,
            enrolled_at=e.enrolled_at,
        )
