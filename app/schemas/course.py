from typing import List, Optional

from app.schemas.common import ApiModel


class CourseOut(ApiModel):
    id: str
    title: str
    description: Optional[str] = None
    instructor: Optional[str] = None
    duration: Optional[str] = None
    price: float


class CoursePage(ApiModel):
    page: int
    page_size: int
    total: int
    items: List[CourseOut] = []
