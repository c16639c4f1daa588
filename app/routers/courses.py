# app/routers/courses.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import CourseNotFound
from app.models.course import Course
from app.schemas.common import Envelope, ok
from app.schemas.course import CourseOut, CoursePage

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get("", response_model=Envelope[CoursePage])
def search_courses(
    db: Session = Depends(get_db),
    keyword: Optional[str] = Query(None, description="Title or instructor keyword"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
):
    q = db.query(Course)

    if keyword and keyword.strip():
        k = f"%{keyword.strip()}%"
        q = q.filter(or_(Course.title.ilike(k), Course.instructor.ilike(k)))

    total = q.count()

    rows = (
        q.order_by(Course.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return ok(CoursePage(
        page=page,
        page_size=page_size,
        total=total,
        items=[CourseOut.model_validate(c) for c in rows],
    ))


@router.get("/{course_id}", response_model=Envelope[CourseOut])
def get_course(course_id: str, db: Session = Depends(get_db)):
    course = db.get(Course, course_id)
    if not course:
        raise CourseNotFound(course_id)
    return ok(CourseOut.model_validate(course))
