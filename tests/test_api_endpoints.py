from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import datetime
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import workhub.security as security_module
from workhub.db import Base, get_db
from workhub.main import app
from workhub.models import AuditActorType, AuditLog, Employee, Role, User
from workhub.security import hash_password


def _make_session() -> Session:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def _override_get_db(db: Session):
    def _override() -> Generator[Session, None, None]:
        yield db

    return _override


def _seed_user(db: Session, employee_no: str, password: str, role: Role = Role.USER, *, active: bool = True) -> User:
    user = User(
        employee_no=employee_no,
        password_hash=hash_password(password),
        role=role,
        is_active=active,
        must_change_password=False,
    )
    db.add_all([user, Employee(user=user, name=f"Name {employee_no}")])
    db.commit()
    return user


class ApiEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        security_module._FAILED_ATTEMPTS.clear()
        self.db = _make_session()
        _seed_user(self.db, "A001", "adminpw", Role.ADMIN)
        _seed_user(self.db, "U001", "userpw")
        app.dependency_overrides[get_db] = _override_get_db(self.db)
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()
        security_module._FAILED_ATTEMPTS.clear()
        self.db.close()

    def _login(self, employee_no: str, password: str):  # type: ignore[no-untyped-def]
        return self.client.post("/api/login", json={"employee_no": employee_no, "password": password})

    def test_login_then_check_login_returns_profile(self) -> None:
        response = self._login("U001", "userpw")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["employee_no"], "U001")
        self.assertEqual(response.json()["role"], "USER")

        check = self.client.get("/api/check-login")
        self.assertEqual(check.status_code, 200)
        self.assertEqual(check.json()["name"], "Name U001")

        actions = self.db.scalars(select(AuditLog.action)).all()
        self.assertIn("LOGIN_SUCCESS", actions)

    def test_login_accepts_camel_case_employee_no(self) -> None:
        response = self.client.post("/api/login", json={"employeeNo": "U001", "password": "userpw"})
        self.assertEqual(response.status_code, 200)

    def test_wrong_password_is_rejected_with_error_envelope(self) -> None:
        response = self._login("U001", "nope")

        self.assertEqual(response.status_code, 401)
        body = response.json()
        self.assertEqual(body["error"]["code"], "INVALID_CREDENTIALS")
        self.assertTrue(body["error"]["request_id"])
        self.assertEqual(response.headers["X-Request-Id"], body["error"]["request_id"])

    def test_inactive_user_cannot_login(self) -> None:
        _seed_user(self.db, "U002", "userpw", active=False)
        response = self._login("U002", "userpw")
        self.assertEqual(response.status_code, 401)

    def test_repeated_failures_are_throttled(self) -> None:
        for _ in range(10):
            self.assertEqual(self._login("U001", "nope").status_code, 401)

        response = self._login("U001", "userpw")
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()["error"]["code"], "TOO_MANY_ATTEMPTS")

    def test_protected_endpoint_requires_session(self) -> None:
        response = self.client.get("/api/userinfo/me")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "UNAUTHENTICATED")

    def test_logout_clears_session(self) -> None:
        self._login("U001", "userpw")
        self.assertEqual(self.client.post("/api/logout").json(), {"ok": True})
        self.assertEqual(self.client.get("/api/check-login").status_code, 401)

    def test_admin_routes_reject_regular_users(self) -> None:
        self._login("U001", "userpw")
        response = self.client.get("/api/admin/stats")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"]["code"], "FORBIDDEN")

        board_response = self.client.post("/api/board/add", json={"title": "Hi", "content": "body"})
        self.assertEqual(board_response.status_code, 403)

    def test_admin_can_read_stats_and_register_employee(self) -> None:
        self._login("A001", "adminpw")

        stats = self.client.get("/api/admin/stats")
        self.assertEqual(stats.status_code, 200)
        self.assertEqual(stats.json()["total_employees"], 2)

        created = self.client.post("/api/admin/register", json={"employee_no": "E500", "name": "New Hire"})
        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["employee_no"], "E500")

        duplicate = self.client.post("/api/admin/register", json={"employee_no": "E500", "name": "Again"})
        self.assertEqual(duplicate.status_code, 400)
        self.assertEqual(duplicate.json()["error"]["code"], "DUPLICATE_EMPLOYEE_NO")

    def test_check_in_twice_returns_duplicate_error(self) -> None:
        self._login("U001", "userpw")
        fixed_now = datetime(2026, 3, 2, 8, 45)

        with patch("workhub.services.attendance.local_now", return_value=fixed_now):
            first = self.client.post("/api/attendance/check-in", json={"notes": "office"})
            second = self.client.post("/api/attendance/check-in")

        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["status_code"], "NORMAL")
        self.assertEqual(first.json()["notes"], "office")
        self.assertEqual(second.status_code, 400)
        self.assertEqual(second.json()["error"]["code"], "DUPLICATE_CHECK_IN")

    def test_unknown_status_filter_is_rejected(self) -> None:
        self._login("U001", "userpw")
        response = self.client.get("/api/attendance/me/status/SLEEPING")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_STATUS")

    def test_unknown_task_status_is_rejected_on_full_and_partial_update(self) -> None:
        self._login("U001", "userpw")
        task_id = self.client.post("/api/task", json={"title": "Report"}).json()["id"]

        put_response = self.client.put(f"/api/task/{task_id}", json={"title": "t", "status": "FOO"})
        patch_response = self.client.patch(f"/api/task/{task_id}/status", json={"status": "FOO"})

        for response in (put_response, patch_response):
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["error"]["code"], "INVALID_STATUS")

        self.assertEqual(self.client.get(f"/api/task/{task_id}").json()["title"], "Report")

    def test_unknown_request_type_is_rejected(self) -> None:
        self._login("U001", "userpw")
        response = self.client.post(
            "/api/requests",
            json={"type": "VACATIONX", "start_date": "2026-03-05", "end_date": "2026-03-06"},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_TYPE")
        self.assertEqual(self.client.get("/api/requests").json(), [])

    def test_unknown_review_type_is_rejected(self) -> None:
        self._login("A001", "adminpw")
        response = self.client.put("/api/admin/requests/1/approve", params={"type": "OBJECTION"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_TYPE")

    def test_logout_audit_records_callers_role(self) -> None:
        for employee_no, password in (("A001", "adminpw"), ("U001", "userpw")):
            self._login(employee_no, password)
            self.client.post("/api/logout")

        rows = self.db.scalars(select(AuditLog).where(AuditLog.action == "LOGOUT").order_by(AuditLog.id)).all()
        self.assertEqual(
            [(row.actor_type, row.actor_id) for row in rows],
            [(AuditActorType.ADMIN, "A001"), (AuditActorType.USER, "U001")],
        )

    def test_validation_errors_use_error_envelope(self) -> None:
        self._login("U001", "userpw")
        response = self.client.post("/api/task", json={"description": "no title"})
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")


if __name__ == "__main__":
    unittest.main()
