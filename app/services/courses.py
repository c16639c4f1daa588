"""Course lookup used by enrollment.

Courses are reference data owned by the course service. The enrollment side
only needs ``exists`` and ``get``; which implementation it gets depends on
whether ``COURSE_SERVICE_URL`` points at a separately deployed course service.
"""
import json
import logging
import time
from typing import Callable, Protocol
from urllib.parse import quote

import httpx
from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.errors import CourseNotFound, DependencyUnavailable
from app.models.course import Course
from app.schemas.course import CourseOut

logger = logging.getLogger("app.courses")

# a course record is a few hundred bytes
MAX_RESPONSE_BYTES = 64 * 1024


class CourseLookup(Protocol):
    def exists(self, course_id: str) -> bool: ...

    def get(self, course_id: str) -> CourseOut: ...


class DatabaseCourseLookup:
    def __init__(self, db: Session):
        self.db = db

    def exists(self, course_id: str) -> bool:
        return self.db.get(Course, course_id) is not None

    def get(self, course_id: str) -> CourseOut:
        course = self.db.get(Course, course_id)
        if course is None:
            raise CourseNotFound(course_id)
        return CourseOut.model_validate(course)


class HttpCourseLookup:
    """Asks the course service over HTTP.

    The client's timeout bounds each phase (connect, each read) on its own, so
    a server trickling bytes could stretch a lookup far past it. ``deadline``
    caps the whole call: the body is streamed and the lookup gives up with
    ``DependencyUnavailable`` once the deadline has passed, so no call outlives
    ``deadline`` plus one read timeout.
    """

    def __init__(
        self,
        client: httpx.Client,
        deadline: float = settings.COURSE_LOOKUP_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.deadline = deadline
        self._clock = clock

    def exists(self, course_id: str) -> bool:
        try:
            self.get(course_id)
        except CourseNotFound:
            return False
        return True

    def get(self, course_id: str) -> CourseOut:
        # "." and ".." would be folded into the parent path by the URL layer
        if not course_id.strip() or course_id in (".", ".."):
            raise CourseNotFound(course_id)

        give_up_at = self._clock() + self.deadline
        try:
            with self.client.stream("GET", f"/courses/{quote(course_id, safe='')}") as resp:
                if resp.status_code == 404:
                    raise CourseNotFound(course_id)
                if resp.status_code != 200:
                    logger.warning("Course service answered %s for %s", resp.status_code, course_id)
                    raise DependencyUnavailable(f"Course service returned {resp.status_code}")
                body = self._read_body(resp, give_up_at, course_id)
        except httpx.TimeoutException as e:
            logger.warning("Course service timed out looking up %s", course_id)
            raise DependencyUnavailable("Course service timed out") from e
        except httpx.HTTPError as e:
            logger.warning("Course service unreachable: %s", e)
            raise DependencyUnavailable("Course service unreachable") from e

        try:
            return CourseOut.model_validate(json.loads(body)["data"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Unreadable course service response for %s", course_id)
            raise DependencyUnavailable("Course service sent an invalid response") from e

    def _read_body(self, resp: httpx.Response, give_up_at: float, course_id: str) -> bytes:
        body = bytearray()
        for chunk in resp.iter_bytes():
            body.extend(chunk)
            if self._clock() > give_up_at:
                logger.warning("Course service too slow looking up %s", course_id)
                raise DependencyUnavailable("Course service timed out")
            if len(body) > MAX_RESPONSE_BYTES:
                logger.warning("Oversized course service response for %s", course_id)
                raise DependencyUnavailable("Course service sent an invalid response")
        return bytes(body)


def get_course_lookup(db: Session = Depends(get_db)):
    if not settings.COURSE_SERVICE_URL:
        yield DatabaseCourseLookup(db)
        return

    # per-phase timeout on the client, overall deadline in the lookup
    with httpx.Client(
        base_url=settings.COURSE_SERVICE_URL,
        timeout=settings.COURSE_LOOKUP_TIMEOUT_SECONDS,
    ) as client:
        yield HttpCourseLookup(client, deadline=settings.COURSE_LOOKUP_TIMEOUT_SECONDS)
