from __future__ import annotations

import math
from datetime import date, datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workhub.models import (
    Attendance,
    Employee,
    LeaveRequest,
    ObjectionRequest,
    RequestType,
    ReviewStatus,
    Task,
)
from workhub.schemas import AdminRequestView, DashboardStatsRead
from workhub.services.leave_requests import list_all_requests, set_request_status
from workhub.services.lookups import local_today
from workhub.services.objections import count_pending_objections, list_all_objections
from workhub.services.tasks import approve_task, list_request_tasks, reject_task

UNKNOWN_EMPLOYEE = "Unknown"
UNASSIGNED_EMPLOYEE = "Unassigned"

_REQUEST_TYPE_PREFIX = {
    RequestType.LEAVE: "[Leave]",
    RequestType.REMOTE: "[Remote]",
}


def round_half_up(value: float, digits: int = 1) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def attendance_rate(today_count: int, total_employees: int) -> float:
    if total_employees <= 0:
        return 0.0
    return round_half_up(today_count / total_employees * 100)


def get_dashboard_stats(db: Session, *, today: date | None = None) -> DashboardStatsRead:
    work_date = today or local_today()
    total_employees = int(db.scalar(select(func.count(Employee.id))) or 0)
    today_count = int(
        db.scalar(select(func.count(Attendance.id)).where(Attendance.work_date == work_date)) or 0
    )
    return DashboardStatsRead(
        total_employees=total_employees,
        today_attendance_count=today_count,
        pending_objections_count=count_pending_objections(db),
        attendance_rate=attendance_rate(today_count, total_employees),
    )


def _objection_view(objection: ObjectionRequest) -> AdminRequestView:
    employee = objection.user.employee if objection.user is not None else None
    return AdminRequestView(
        id=objection.id,
        type="OBJECTION",
        employee_no=objection.user.employee_no if objection.user is not None else UNKNOWN_EMPLOYEE,
        employee_name=employee.name if employee is not None else UNKNOWN_EMPLOYEE,
        title=f"[Objection] {objection.category or ''}".rstrip(),
        description=f"Date: {objection.attendance_date}\nReason: {objection.reason or ''}",
        status=objection.status.value,
        created_at=objection.created_at,
    )


def _task_view(task: Task) -> AdminRequestView:
    assignee = task.assignee
    return AdminRequestView(
        id=task.id,
        type="TASK",
        employee_no=assignee.user.employee_no if assignee is not None else UNASSIGNED_EMPLOYEE,
        employee_name=assignee.name if assignee is not None else UNASSIGNED_EMPLOYEE,
        title=task.title,
        description=task.description,
        status=task.status.value,
        created_at=task.created_at,
    )


def _request_view(leave_request: LeaveRequest) -> AdminRequestView:
    user = leave_request.user
    employee = user.employee if user is not None else None
    prefix = _REQUEST_TYPE_PREFIX.get(leave_request.type, f"[{leave_request.type.value}]")
    return AdminRequestView(
        id=leave_request.id,
        type="REQUEST",
        employee_no=user.employee_no if user is not None else UNKNOWN_EMPLOYEE,
        employee_name=employee.name if employee is not None else UNKNOWN_EMPLOYEE,
        title=f"{prefix} {leave_request.start_date.isoformat()} ~ {leave_request.end_date.isoformat()}",
        description=leave_request.reason,
        status=leave_request.status.value,
        created_at=leave_request.created_at,
    )


def build_objection_views(db: Session) -> list[AdminRequestView]:
    return [_objection_view(item) for item in list_all_objections(db)]


def build_request_views(db: Session) -> list[AdminRequestView]:
    views = [_task_view(task) for task in list_request_tasks(db)]
    views.extend(_request_view(item) for item in list_all_requests(db))
    views.sort(key=lambda item: (_sortable(item.created_at), item.id), reverse=True)
    return views


def _sortable(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; compare everything as naive UTC.
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def review_request(db: Session, request_id: int, *, kind: str, approved: bool) -> AdminRequestView:
    if kind == "REQUEST":
        new_status = ReviewStatus.APPROVED if approved else ReviewStatus.REJECTED
        return _request_view(set_request_status(db, request_id, new_status))

    task = approve_task(db, request_id) if approved else reject_task(db, request_id)
    return _task_view(task)
