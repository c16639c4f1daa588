"""Application error taxonomy.

Every failure a caller can see is an ``AppError`` carrying a stable ``code``
string and the HTTP status it maps to. Services raise them; ``app.main``
renders them into the response envelope.
"""


class AppError(Exception):
    """Base class for failures surfaced to API callers."""

    code = "InternalError"
    status_code = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.code
        super().__init__(self.message)


class InvalidInput(AppError):
    code = "InvalidInput"
    status_code = 400


class InvalidCredentials(AppError):
    code = "InvalidCredentials"
    status_code = 401


class Unauthenticated(AppError):
    code = "Unauthenticated"
    status_code = 401


class Forbidden(AppError):
    code = "Forbidden"
    status_code = 403


class NotFound(AppError):
    code = "NotFound"
    status_code = 404


class CourseNotFound(NotFound):
    code = "CourseNotFound"

    def __init__(self, course_id: str):
        self.course_id = course_id
        super().__init__(f"Course '{course_id}' not found")


class DuplicateEmail(AppError):
    code = "DuplicateEmail"
    status_code = 409


class AlreadyEnrolled(AppError):
    code = "AlreadyEnrolled"
    status_code = 409

    def __init__(self, user_id: str, course_id: str):
        self.user_id = user_id
        self.course_id = course_id
        super().__init__(f"User '{user_id}' already has an active enrollment in '{course_id}'")


class InvalidTransition(AppError):
    code = "InvalidTransition"
    status_code = 409

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move enrollment from '{current}' to '{target}'")


class DependencyUnavailable(AppError):
    code = "DependencyUnavailable"
    status_code = 503


class TokenError(Exception):
    """Raised by the token verifier. Never shown to callers as-is."""

    reason = "invalid"


class MalformedToken(TokenError):
    reason = "malformed"


class BadSignature(TokenError):
    reason = "bad_signature"


class Expired(TokenError):
    reason = "expired"
