"""HTTP API tests: envelope, gate and the register/login/enroll flow."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.main import create_app
from app.utils.tokens import MAX_SUBJECT_LENGTH, TokenIssuer

JOHN = {"name": "John", "email": "john@example.com", "rawSecret": "password123"}


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_scenario_register_login_me_enroll(client, add_course):
    add_course("1", "Intro to Python")

    r = client.post("/auth/register", json=JOHN)
    assert r.status_code == 201
    user_id = r.json()["data"]["userId"]
    assert user_id

    r = client.post("/auth/login", json={"email": JOHN["email"], "rawSecret": JOHN["rawSecret"]})
    assert r.status_code == 200
    token = r.json()["data"]["token"]
    assert token
    assert r.json()["data"]["tokenType"] == "bearer"
    assert r.json()["data"]["expiresAt"]

    r = client.get("/me", headers=_bearer(token))
    assert r.status_code == 200
    me = r.json()["data"]
    assert me["name"] == "John"
    assert me["email"] == "john@example.com"
    assert me["id"] == user_id

    r = client.post("/enrollments", json={"courseId": "1"}, headers=_bearer(token))
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["data"]["status"] == "active"
    assert body["data"]["enrollmentId"]

    r = client.post("/enrollments", json={"courseId": "1"}, headers=_bearer(token))
    assert r.status_code == 409
    assert r.json() == {"success": False, "data": None, "error": "AlreadyEnrolled"}


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class TestRegisterAndLogin:
    def test_envelope_on_success(self, client):
        body = client.post("/auth/register", json=JOHN).json()
        assert body["success"] is True
        assert body["error"] is None
        assert set(body["data"]) == {"userId"}

    def test_snake_case_body_accepted(self, client):
        r = client.post("/auth/register", json={"name": "Jane", "email": "jane@example.com", "raw_secret": "password123"})
        assert r.status_code == 201

    def test_duplicate_email(self, client):
        client.post("/auth/register", json=JOHN)
        r = client.post("/auth/register", json={**JOHN, "email": "JOHN@example.com"})
        assert r.status_code == 409
        assert r.json()["error"] == "DuplicateEmail"

    @pytest.mark.parametrize(
        "payload",
        [
            {**JOHN, "rawSecret": "short"},
            {**JOHN, "email": "nope"},
            {"email": "john@example.com", "rawSecret": "password123"},
            {},
        ],
    )
    def test_invalid_input(self, client, payload):
        r = client.post("/auth/register", json=payload)
        assert r.status_code == 400
        assert r.json() == {"success": False, "data": None, "error": "InvalidInput"}

    def test_login_failures_look_the_same(self, client):
        client.post("/auth/register", json=JOHN)
        wrong_secret = client.post("/auth/login", json={"email": JOHN["email"], "rawSecret": "wrong-password"})
        unknown = client.post("/auth/login", json={"email": "ghost@example.com", "rawSecret": "password123"})
        assert wrong_secret.status_code == unknown.status_code == 401
        assert wrong_secret.json() == unknown.json() == {"success": False, "data": None, "error": "InvalidCredentials"}


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------

UNAUTHENTICATED = {"success": False, "data": None, "error": "Unauthenticated"}


class TestGate:
    @pytest.mark.parametrize("path", ["/me", "/enrollments"])
    def test_missing_token(self, client, path):
        r = client.get(path)
        assert r.status_code == 401
        assert r.json() == UNAUTHENTICATED

    def test_wrong_scheme(self, client, login):
        token = login()["Authorization"].split()[1]
        r = client.get("/me", headers={"Authorization": f"Basic {token}"})
        assert r.status_code == 401
        assert r.json() == UNAUTHENTICATED

    def test_failure_reasons_are_not_distinguishable(self, client, login):
        headers = login()
        token = headers["Authorization"].split()[1]
        user_id = client.get("/me", headers=headers).json()["data"]["id"]

        past = datetime.now(timezone.utc) - timedelta(hours=25)
        expired = TokenIssuer(settings.JWT_SECRET, clock=lambda: past).issue(user_id).token
        foreign = TokenIssuer("some-other-secret-0123456789abcdef0123").issue(user_id).token
        tampered = token[:-5] + ("AAAAA" if not token.endswith("AAAAA") else "BBBBB")

        responses = [
            client.get("/me", headers=_bearer(t))
            for t in (expired, foreign, tampered, "garbage")
        ]
        assert {r.status_code for r in responses} == {401}
        assert all(r.json() == UNAUTHENTICATED for r in responses)

    def test_valid_token_for_unknown_user_fails_me(self, client):
        token = TokenIssuer(settings.JWT_SECRET).issue("not-a-registered-user").token
        r = client.get("/me", headers=_bearer(token))
        assert r.status_code == 401
        assert r.json() == UNAUTHENTICATED

    def test_enrollment_side_needs_only_the_token(self, client, add_course):
        # no users table lookup on the enrollment side: the subject is enough
        add_course("1")
        token = TokenIssuer(settings.JWT_SECRET).issue("user-from-elsewhere").token
        r = client.post("/enrollments", json={"courseId": "1"}, headers=_bearer(token))
        assert r.status_code == 201
        assert r.json()["data"]["userId"] == "user-from-elsewhere"

    def test_subject_length_is_capped_at_the_ledger_column(self, client, add_course):
        add_course("1")
        longest = "u" * MAX_SUBJECT_LENGTH
        token = TokenIssuer(settings.JWT_SECRET).issue(longest).token
        r = client.post("/enrollments", json={"courseId": "1"}, headers=_bearer(token))
        assert r.status_code == 201
        assert r.json()["data"]["userId"] == longest

        token = TokenIssuer(settings.JWT_SECRET).issue(longest + "u").token
        r = client.post("/enrollments", json={"courseId": "1"}, headers=_bearer(token))
        assert r.status_code == 401
        assert r.json() == UNAUTHENTICATED

    def test_gate_runs_before_body_validation(self, client):
        r = client.post("/enrollments", json={})
        assert r.status_code == 401
        assert r.json() == UNAUTHENTICATED


# ---------------------------------------------------------------------------
# Enrollments
# ---------------------------------------------------------------------------

class TestEnrollments:
    def test_unknown_course(self, client, login):
        r = client.post("/enrollments", json={"courseId": "404"}, headers=login())
        assert r.status_code == 404
        assert r.json()["error"] == "CourseNotFound"

    @pytest.mark.parametrize("course_id", ["", "   ", "x" * 21, None, 1])
    def test_blank_or_invalid_course_id(self, client, login, course_id):
        r = client.post("/enrollments", json={"courseId": course_id}, headers=login())
        assert r.status_code == 400
        assert r.json() == {"success": False, "data": None, "error": "InvalidInput"}

    def test_course_id_is_trimmed(self, client, login, add_course):
        add_course("1")
        r = client.post("/enrollments", json={"courseId": " 1 "}, headers=login())
        assert r.status_code == 201
        assert r.json()["data"]["courseId"] == "1"

    def test_list_is_per_user(self, client, login, add_course):
        add_course("1")
        add_course("2", "Databases")
        john = login()
        jane = login(email="jane@example.com", name="Jane")

        client.post("/enrollments", json={"courseId": "1"}, headers=john)
        client.post("/enrollments", json={"courseId": "2"}, headers=john)
        client.post("/enrollments", json={"courseId": "1"}, headers=jane)

        johns = client.get("/enrollments", headers=john).json()["data"]
        assert [e["courseId"] for e in johns] == ["1", "2"]
        assert [e["courseTitle"] for e in johns] == ["Intro to Python", "Databases"]
        assert len(client.get("/enrollments", headers=jane).json()["data"]) == 1

    def test_empty_list(self, client, login):
        r = client.get("/enrollments", headers=login())
        assert r.status_code == 200
        assert r.json() == {"success": True, "data": [], "error": None}

    def test_cancel_then_reenroll(self, client, login, add_course):
        add_course("1")
        headers = login()
        first = client.post("/enrollments", json={"courseId": "1"}, headers=headers).json()["data"]

        r = client.post(f"/enrollments/{first['enrollmentId']}/cancel", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["status"] == "cancelled"

        r = client.post(f"/enrollments/{first['enrollmentId']}/cancel", headers=headers)
        assert r.status_code == 409
        assert r.json()["error"] == "InvalidTransition"

        second = client.post("/enrollments", json={"courseId": "1"}, headers=headers).json()["data"]
        assert second["enrollmentId"] != first["enrollmentId"]
        assert second["status"] == "active"

        statuses = [e["status"] for e in client.get("/enrollments", headers=headers).json()["data"]]
        assert statuses == ["cancelled", "active"]

    def test_complete_is_terminal(self, client, login, add_course):
        add_course("1")
        headers = login()
        e = client.post("/enrollments", json={"courseId": "1"}, headers=headers).json()["data"]

        r = client.post(f"/enrollments/{e['enrollmentId']}/complete", headers=headers)
        assert r.json()["data"]["status"] == "completed"

        r = client.post(f"/enrollments/{e['enrollmentId']}/cancel", headers=headers)
        assert r.status_code == 409
        assert r.json()["error"] == "InvalidTransition"

        r = client.post("/enrollments", json={"courseId": "1"}, headers=headers)
        assert r.status_code == 409
        assert r.json()["error"] == "InvalidTransition"

    def test_cannot_touch_someone_elses_enrollment(self, client, login, add_course):
        add_course("1")
        john = login()
        jane = login(email="jane@example.com", name="Jane")
        e = client.post("/enrollments", json={"courseId": "1"}, headers=john).json()["data"]

        for path in (f"/enrollments/{e['enrollmentId']}/cancel", f"/enrollments/{e['enrollmentId']}/complete"):
            r = client.post(path, headers=jane)
            assert r.status_code == 403
            assert r.json() == {"success": False, "data": None, "error": "Forbidden"}

        r = client.get(f"/enrollments/{e['enrollmentId']}", headers=jane)
        assert r.status_code == 403

        r = client.get(f"/enrollments/{e['enrollmentId']}", headers=john)
        assert r.json()["data"]["status"] == "active"

    def test_missing_enrollment(self, client, login):
        r = client.post("/enrollments/999/cancel", headers=login())
        assert r.status_code == 404
        assert r.json()["error"] == "NotFound"


# ---------------------------------------------------------------------------
# Courses and service wiring
# ---------------------------------------------------------------------------

class TestCourses:
    def test_browse_is_public_and_paginated(self, client, add_course):
        add_course("1", "Intro to Python")
        add_course("2", "Databases", instructor="Edgar Codd")
        add_course("3", "Advanced Python")

        r = client.get("/courses", params={"page_size": 2})
        page = r.json()["data"]
        assert page["total"] == 3
        assert page["pageSize"] == 2
        assert [c["id"] for c in page["items"]] == ["1", "2"]

        page2 = client.get("/courses", params={"page": 2, "page_size": 2}).json()["data"]
        assert [c["id"] for c in page2["items"]] == ["3"]

    def test_keyword_matches_title_or_instructor(self, client, add_course):
        add_course("1", "Intro to Python")
        add_course("2", "Databases", instructor="Edgar Codd")
        add_course("3", "Advanced Python")

        titles = [c["title"] for c in client.get("/courses", params={"keyword": "python"}).json()["data"]["items"]]
        assert titles == ["Intro to Python", "Advanced Python"]
        ids = [c["id"] for c in client.get("/courses", params={"keyword": "codd"}).json()["data"]["items"]]
        assert ids == ["2"]

    def test_get_course(self, client, add_course):
        add_course("1", "Intro to Python", price=120.0)
        data = client.get("/courses/1").json()["data"]
        assert data["title"] == "Intro to Python"
        assert data["price"] == 120.0

        r = client.get("/courses/nope")
        assert r.status_code == 404
        assert r.json()["error"] == "CourseNotFound"


class TestServiceWiring:
    def test_health_and_root(self, client):
        assert client.get("/health").json() == {"success": True, "data": {"status": "ok"}, "error": None}
        assert client.get("/").json()["success"] is True

    def test_unknown_route_uses_envelope(self, client):
        r = client.get("/does-not-exist")
        assert r.status_code == 404
        assert r.json() == {"success": False, "data": None, "error": "NotFound"}

    def test_enrollment_only_deployment(self):
        client = TestClient(create_app(["enrollments"]))
        assert client.post("/auth/login", json={}).status_code == 404
        assert client.get("/enrollments").status_code == 401

    def test_unknown_service_name(self):
        with pytest.raises(ValueError):
            create_app(["billing"])
