from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from workhub.db import Base
from workhub.errors import ApiError
from workhub.models import (
    Attendance,
    AttendanceStatus,
    Employee,
    LeaveRequest,
    ObjectionRequest,
    RequestType,
    ReviewStatus,
    Role,
    Task,
    TaskStatus,
    User,
)
from workhub.services.dashboard import (
    attendance_rate,
    build_objection_views,
    build_request_views,
    get_dashboard_stats,
    review_request,
    round_half_up,
)


def _make_session() -> Session:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def _seed_employee(db: Session, employee_no: str, name: str) -> Employee:
    user = User(employee_no=employee_no, password_hash="x", role=Role.USER, is_active=True)
    employee = Employee(user=user, name=name)
    db.add_all([user, employee])
    db.commit()
    return employee


class AttendanceRateTests(unittest.TestCase):
    def test_zero_employees_gives_zero_rate(self) -> None:
        self.assertEqual(attendance_rate(0, 0), 0.0)
        self.assertEqual(attendance_rate(3, 0), 0.0)

    def test_rate_is_rounded_half_up_to_one_decimal(self) -> None:
        self.assertEqual(attendance_rate(1, 3), 33.3)
        self.assertEqual(attendance_rate(2, 3), 66.7)
        self.assertEqual(round_half_up(12.25), 12.3)
        self.assertEqual(attendance_rate(3, 3), 100.0)


class DashboardServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = _make_session()

    def tearDown(self) -> None:
        self.db.close()

    def test_stats_on_empty_database(self) -> None:
        stats = get_dashboard_stats(self.db, today=date(2026, 3, 2))

        self.assertEqual(stats.total_employees, 0)
        self.assertEqual(stats.today_attendance_count, 0)
        self.assertEqual(stats.pending_objections_count, 0)
        self.assertEqual(stats.attendance_rate, 0.0)

    def test_stats_count_todays_attendance_and_pending_objections(self) -> None:
        first = _seed_employee(self.db, "U001", "Kim")
        second = _seed_employee(self.db, "U002", "Lee")
        _seed_employee(self.db, "U003", "Park")
        self.db.add_all(
            [
                Attendance(employee_id=first.id, work_date=date(2026, 3, 2), status=AttendanceStatus.NORMAL),
                Attendance(employee_id=second.id, work_date=date(2026, 3, 2), status=AttendanceStatus.LATE),
                Attendance(employee_id=first.id, work_date=date(2026, 3, 1), status=AttendanceStatus.NORMAL),
                ObjectionRequest(user_id=first.user_id, category="Late", status=ReviewStatus.PENDING),
                ObjectionRequest(user_id=second.user_id, category="Late", status=ReviewStatus.APPROVED),
            ]
        )
        self.db.commit()

        stats = get_dashboard_stats(self.db, today=date(2026, 3, 2))

        self.assertEqual(stats.total_employees, 3)
        self.assertEqual(stats.today_attendance_count, 2)
        self.assertEqual(stats.pending_objections_count, 1)
        self.assertEqual(stats.attendance_rate, 66.7)

    def test_objection_views_fall_back_when_profile_missing(self) -> None:
        orphan_user = User(employee_no="X999", password_hash="x", role=Role.USER, is_active=True)
        self.db.add(orphan_user)
        self.db.commit()
        self.db.add(ObjectionRequest(user_id=orphan_user.id, category="Absent", reason="sick"))
        self.db.commit()

        views = build_objection_views(self.db)

        self.assertEqual(len(views), 1)
        self.assertEqual(views[0].type, "OBJECTION")
        self.assertEqual(views[0].employee_no, "X999")
        self.assertEqual(views[0].employee_name, "Unknown")
        self.assertEqual(views[0].title, "[Objection] Absent")

    def test_request_views_merge_tasks_and_requests_newest_first(self) -> None:
        employee = _seed_employee(self.db, "U001", "Kim")
        base = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        self.db.add_all(
            [
                Task(title="[Leave] 3/5", status=TaskStatus.TODO, employee_id=None, created_at=base),
                Task(title="Quarterly report", status=TaskStatus.TODO, created_at=base + timedelta(hours=1)),
                Task(
                    title="[Remote] 3/6",
                    status=TaskStatus.TODO,
                    employee_id=employee.id,
                    created_at=base + timedelta(hours=2),
                ),
                LeaveRequest(
                    user_id=employee.user_id,
                    type=RequestType.LEAVE,
                    start_date=date(2026, 3, 9),
                    end_date=date(2026, 3, 10),
                    reason="trip",
                    created_at=base + timedelta(hours=3),
                ),
            ]
        )
        self.db.commit()

        views = build_request_views(self.db)

        self.assertEqual([view.type for view in views], ["REQUEST", "TASK", "TASK"])
        self.assertEqual(views[0].title, "[Leave] 2026-03-09 ~ 2026-03-10")
        self.assertEqual(views[0].employee_name, "Kim")
        self.assertEqual(views[1].title, "[Remote] 3/6")
        self.assertEqual(views[1].employee_no, "U001")
        self.assertEqual(views[2].employee_name, "Unassigned")
        self.assertEqual(views[2].employee_no, "Unassigned")

    def test_review_request_routes_by_kind(self) -> None:
        employee = _seed_employee(self.db, "U001", "Kim")
        task = Task(title="[Leave] 3/5", status=TaskStatus.DONE, employee_id=employee.id)
        leave_request = LeaveRequest(
            user_id=employee.user_id,
            type=RequestType.REMOTE,
            start_date=date(2026, 3, 9),
            end_date=date(2026, 3, 9),
        )
        self.db.add_all([task, leave_request])
        self.db.commit()

        approved = review_request(self.db, task.id, kind="TASK", approved=True)
        rejected = review_request(self.db, leave_request.id, kind="REQUEST", approved=False)

        self.assertEqual(approved.status, "APPROVED")
        self.assertEqual(rejected.status, "REJECTED")
        self.assertEqual(rejected.title, "[Remote] 2026-03-09 ~ 2026-03-09")

        with self.assertRaises(ApiError) as exc:
            review_request(self.db, 999, kind="REQUEST", approved=True)
        self.assertEqual(exc.exception.code, "REQUEST_NOT_FOUND")


if __name__ == "__main__":
    unittest.main()
