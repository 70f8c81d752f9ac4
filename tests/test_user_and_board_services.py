from __future__ import annotations

import unittest
from datetime import datetime

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from workhub.db import Base
from workhub.errors import ApiError
from workhub.models import Department, Employee, Importance, Notice, Role, User
from workhub.schemas import (
    DepartmentUpdate,
    EmployeeAdminUpdateRequest,
    EmployeeRegisterRequest,
    NoticeCreate,
    NoticeUpdate,
)
from workhub.security import Principal, build_principal, hash_password, verify_password
from workhub.services.board import create_notice, delete_notice, list_notices, to_notice_read, update_notice
from workhub.services.departments import delete_department, to_department_read, update_department
from workhub.services.users import (
    authenticate,
    build_profile,
    change_password,
    ensure_admin_user,
    register_user,
    reset_password,
    to_employee_read,
    update_employee_by_admin,
    update_my_info,
)
from workhub.settings import get_settings


def _make_session() -> Session:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def _principal_for(db: Session, employee: Employee) -> Principal:
    return build_principal(db.get(User, employee.user_id), employee)


class UserServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _make_session()
        self.settings = get_settings()

    def tearDown(self) -> None:
        self.db.close()

    def test_register_creates_user_with_default_password(self) -> None:
        employee = register_user(
            self.db,
            EmployeeRegisterRequest(employee_no=" E200 ", name="Kim", email="  ", position="Engineer"),
        )

        user = employee.user
        self.assertEqual(user.employee_no, "E200")
        self.assertEqual(user.role, Role.USER)
        self.assertTrue(user.must_change_password)
        self.assertTrue(verify_password(self.settings.default_password, user.password_hash))
        self.assertIsNone(employee.email)
        self.assertEqual(employee.total_leave, self.settings.default_total_leave)
        self.assertEqual(to_employee_read(employee).remaining_leave, self.settings.default_total_leave)

    def test_register_rejects_duplicate_employee_no(self) -> None:
        register_user(self.db, EmployeeRegisterRequest(employee_no="E200", name="Kim"))

        with self.assertRaises(ApiError) as exc:
            register_user(self.db, EmployeeRegisterRequest(employee_no="E200", name="Lee"))

        self.assertEqual(exc.exception.code, "DUPLICATE_EMPLOYEE_NO")
        self.assertEqual(self.db.scalar(select(func.count(User.id))), 1)

    def test_register_rejects_unknown_department(self) -> None:
        with self.assertRaises(ApiError) as exc:
            register_user(self.db, EmployeeRegisterRequest(employee_no="E200", name="Kim", department_id=77))
        self.assertEqual(exc.exception.code, "DEPARTMENT_NOT_FOUND")

    def test_profile_reports_unassigned_department(self) -> None:
        employee = register_user(self.db, EmployeeRegisterRequest(employee_no="E200", name="Kim"))

        profile = build_profile(self.db, employee.user)

        self.assertEqual(profile.department_name, "Unassigned")
        self.assertEqual(profile.employee_id, employee.id)

    def test_authenticate_rejects_wrong_password_and_inactive_user(self) -> None:
        employee = register_user(self.db, EmployeeRegisterRequest(employee_no="E200", name="Kim"))

        self.assertIsNone(authenticate(self.db, "E200", "wrong"))
        self.assertIsNone(authenticate(self.db, "E999", self.settings.default_password))

        user = authenticate(self.db, "E200", self.settings.default_password)
        self.assertIsNotNone(user)
        self.assertIsNotNone(user.last_login_at)

        employee.user.is_active = False
        self.db.commit()
        self.assertIsNone(authenticate(self.db, "E200", self.settings.default_password))

    def test_change_password_requires_current_password(self) -> None:
        employee = register_user(self.db, EmployeeRegisterRequest(employee_no="E200", name="Kim"))
        principal = _principal_for(self.db, employee)

        with self.assertRaises(ApiError) as exc:
            change_password(self.db, principal, old_password="nope", new_password="secret1")
        self.assertEqual(exc.exception.code, "INVALID_PASSWORD")

        user = change_password(
            self.db,
            principal,
            old_password=self.settings.default_password,
            new_password="secret1",
        )
        self.assertFalse(user.must_change_password)
        self.assertTrue(verify_password("secret1", user.password_hash))

    def test_reset_password_restores_reset_value(self) -> None:
        employee = register_user(self.db, EmployeeRegisterRequest(employee_no="E200", name="Kim"))
        employee.user.must_change_password = False
        self.db.commit()

        user = reset_password(self.db, employee.user_id)

        self.assertTrue(user.must_change_password)
        self.assertTrue(verify_password(self.settings.reset_password, user.password_hash))

        with self.assertRaises(ApiError) as exc:
            reset_password(self.db, 999)
        self.assertEqual(exc.exception.code, "USER_NOT_FOUND")

    def test_update_my_info_ignores_blank_values(self) -> None:
        employee = register_user(
            self.db,
            EmployeeRegisterRequest(employee_no="E200", name="Kim", email="kim@example.com", phone="010-1"),
        )
        principal = _principal_for(self.db, employee)

        updated = update_my_info(self.db, principal, email="  ", phone="010-2")

        self.assertEqual(updated.email, "kim@example.com")
        self.assertEqual(updated.phone, "010-2")

    def test_admin_update_applies_only_sent_fields(self) -> None:
        employee = register_user(self.db, EmployeeRegisterRequest(employee_no="E200", name="Kim", position="Dev"))

        updated = update_employee_by_admin(
            self.db,
            employee.id,
            EmployeeAdminUpdateRequest(used_leave=2.5, position="Lead"),
        )

        self.assertEqual(updated.name, "Kim")
        self.assertEqual(updated.position, "Lead")
        self.assertEqual(updated.remaining_leave, self.settings.default_total_leave - 2.5)

        with self.assertRaises(ApiError) as exc:
            update_employee_by_admin(self.db, employee.id, EmployeeAdminUpdateRequest(department_id=5))
        self.assertEqual(exc.exception.code, "DEPARTMENT_NOT_FOUND")

    def test_ensure_admin_user_is_idempotent(self) -> None:
        first = ensure_admin_user(self.db, employee_no="admin", password="adminpw", name="Admin")
        second = ensure_admin_user(self.db, employee_no="admin", password="other", name="Admin")

        self.assertEqual(first.id, second.id)
        self.assertEqual(second.role, Role.ADMIN)
        self.assertFalse(second.must_change_password)
        self.assertTrue(verify_password("adminpw", second.password_hash))
        self.assertEqual(self.db.scalar(select(func.count(Employee.id))), 1)


class DepartmentServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _make_session()

    def tearDown(self) -> None:
        self.db.close()

    def test_manager_must_exist_and_is_reported_by_name(self) -> None:
        department = Department(name="Platform")
        user = User(employee_no="E300", password_hash="x", role=Role.USER, is_active=True)
        manager = Employee(user=user, name="Choi")
        self.db.add_all([department, user, manager])
        self.db.commit()

        with self.assertRaises(ApiError) as exc:
            update_department(self.db, department.id, _department_update(manager_id=999))
        self.assertEqual(exc.exception.code, "EMPLOYEE_NOT_FOUND")

        updated = update_department(self.db, department.id, _department_update(manager_id=manager.id))
        self.assertEqual(to_department_read(updated).manager_name, "Choi")

        delete_department(self.db, department.id)
        with self.assertRaises(ApiError) as exc:
            delete_department(self.db, department.id)
        self.assertEqual(exc.exception.code, "DEPARTMENT_NOT_FOUND")


def _department_update(**overrides: object) -> DepartmentUpdate:
    values: dict[str, object] = {"name": "Platform", "tel": "02-000", "email": None, "location": "3F"}
    values.update(overrides)
    return DepartmentUpdate(**values)


class BoardServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _make_session()
        admin_user = User(employee_no="A001", password_hash=hash_password("pw12"), role=Role.ADMIN, is_active=True)
        self.admin_employee = Employee(user=admin_user, name="Admin", position="HR Lead")
        plain_user = User(employee_no="U001", password_hash="x", role=Role.USER, is_active=True)
        self.plain_employee = Employee(user=plain_user, name="Plain")
        self.db.add_all([admin_user, self.admin_employee, plain_user, self.plain_employee])
        self.db.commit()
        self.admin = build_principal(admin_user, self.admin_employee)
        self.plain = build_principal(plain_user, self.plain_employee)

    def tearDown(self) -> None:
        self.db.close()

    def test_only_admin_authors_can_post(self) -> None:
        with self.assertRaises(ApiError) as exc:
            create_notice(self.db, self.plain, NoticeCreate(title="Hi", content="body"))
        self.assertEqual(exc.exception.status_code, 403)

        notice = create_notice(self.db, self.admin, NoticeCreate(title="Hi", content="body"))
        read = to_notice_read(notice)
        self.assertEqual(read.author_name, "Admin")
        self.assertEqual(read.author_position, "HR Lead")
        self.assertEqual(read.importance, Importance.NORMAL)

    def test_unknown_importance_is_rejected(self) -> None:
        with self.assertRaises(ApiError) as exc:
            create_notice(self.db, self.admin, NoticeCreate(title="Hi", content="body", importance="URGENT"))
        self.assertEqual(exc.exception.status_code, 400)
        self.assertEqual(exc.exception.code, "INVALID_IMPORTANCE")
        self.assertEqual(list_notices(self.db), [])

    def test_admin_without_profile_cannot_post(self) -> None:
        ghost = User(employee_no="A002", password_hash="x", role=Role.ADMIN, is_active=True)
        self.db.add(ghost)
        self.db.commit()

        with self.assertRaises(ApiError) as exc:
            create_notice(self.db, build_principal(ghost, None), NoticeCreate(title="Hi", content="body"))
        self.assertEqual(exc.exception.code, "EMPLOYEE_NOT_FOUND")

    def test_list_is_newest_first_and_update_is_partial(self) -> None:
        self.db.add_all(
            [
                Notice(employee_id=self.admin_employee.id, title="Old", content="a", created_at=datetime(2026, 1, 1)),
                Notice(employee_id=self.admin_employee.id, title="New", content="b", created_at=datetime(2026, 2, 1)),
            ]
        )
        self.db.commit()

        notices = list_notices(self.db)
        self.assertEqual([item.title for item in notices], ["New", "Old"])

        updated = update_notice(self.db, notices[1].id, NoticeUpdate(importance="high"))
        self.assertEqual(updated.title, "Old")
        self.assertEqual(updated.importance, Importance.HIGH)

        delete_notice(self.db, updated.id)
        with self.assertRaises(ApiError) as exc:
            delete_notice(self.db, updated.id)
        self.assertEqual(exc.exception.code, "NOTICE_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
