from __future__ import annotations

import logging
from calendar import monthrange
from datetime import date, datetime, time

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workhub.errors import ApiError, bad_request
from workhub.models import ATTENDANCE_STATUS_LABELS, Attendance, AttendanceStatus, Employee
from workhub.schemas import AttendanceRead
from workhub.services.lookups import get_employee_or_404, local_now
from workhub.settings import get_settings

logger = logging.getLogger("workhub.attendance")


def derive_status(
    check_in: time | None,
    check_out: time | None,
    *,
    work_start: time | None = None,
    work_end: time | None = None,
) -> AttendanceStatus:
    """Late arrival wins over early leave; a missing check-in means absent."""
    settings = get_settings()
    start = work_start or settings.work_start_time
    end = work_end or settings.work_end_time

    if check_in is None:
        return AttendanceStatus.ABSENT
    if check_in > start:
        return AttendanceStatus.LATE
    if check_out is not None and check_out < end:
        return AttendanceStatus.EARLY_LEAVE
    return AttendanceStatus.NORMAL


def work_hours(check_in: time | None, check_out: time | None) -> float:
    if check_in is None or check_out is None:
        return 0.0
    anchor = date.min
    minutes = int((datetime.combine(anchor, check_out) - datetime.combine(anchor, check_in)).total_seconds() // 60)
    return minutes / 60


def to_attendance_read(attendance: Attendance) -> AttendanceRead:
    return AttendanceRead(
        id=attendance.id,
        employee_id=attendance.employee_id,
        work_date=attendance.work_date,
        check_in_time=attendance.check_in_time,
        check_out_time=attendance.check_out_time,
        status=ATTENDANCE_STATUS_LABELS.get(attendance.status, attendance.status.value),
        status_code=attendance.status.value,
        notes=attendance.notes,
        work_hours=work_hours(attendance.check_in_time, attendance.check_out_time),
    )


def _resolve_now(now: datetime | None) -> datetime:
    return now or local_now()


def _find_for_day(db: Session, employee_id: int, work_date: date) -> Attendance | None:
    return db.scalar(
        select(Attendance).where(
            Attendance.employee_id == employee_id,
            Attendance.work_date == work_date,
        )
    )


def check_in(
    db: Session,
    employee: Employee,
    *,
    notes: str | None = None,
    now: datetime | None = None,
) -> Attendance:
    current = _resolve_now(now)
    work_date = current.date()

    if _find_for_day(db, employee.id, work_date) is not None:
        raise bad_request("DUPLICATE_CHECK_IN", "Already checked in today.")

    attendance = Attendance(
        employee_id=employee.id,
        work_date=work_date,
        check_in_time=current.time(),
        status=AttendanceStatus.NORMAL,
        notes=notes,
    )
    db.add(attendance)
    try:
        db.flush()
    except IntegrityError:
        # A concurrent check-in for the same day won the unique constraint.
        db.rollback()
        raise bad_request("DUPLICATE_CHECK_IN", "Already checked in today.") from None

    db.commit()
    db.refresh(attendance)
    logger.info(
        "attendance_check_in",
        extra={
            "employee_id": employee.id,
            "attendance_id": attendance.id,
            "work_date": work_date.isoformat(),
        },
    )
    return attendance


def check_out(
    db: Session,
    employee: Employee,
    *,
    now: datetime | None = None,
) -> Attendance:
    current = _resolve_now(now)
    attendance = _find_for_day(db, employee.id, current.date())
    if attendance is None:
        raise bad_request("NO_CHECK_IN_FOUND", "No check-in found for today. Check in first.")
    if attendance.check_out_time is not None:
        raise bad_request("ALREADY_CHECKED_OUT", "Already checked out today.")

    check_out_time = current.time()
    if attendance.check_in_time is not None and check_out_time < attendance.check_in_time:
        raise bad_request("INVALID_CHECK_OUT_TIME", "Check-out time cannot be earlier than check-in time.")

    attendance.check_out_time = check_out_time
    attendance.status = derive_status(attendance.check_in_time, check_out_time)
    db.commit()
    db.refresh(attendance)
    logger.info(
        "attendance_check_out",
        extra={
            "employee_id": employee.id,
            "attendance_id": attendance.id,
            "status": attendance.status.value,
        },
    )
    return attendance


def get_today_attendance(
    db: Session,
    employee: Employee,
    *,
    now: datetime | None = None,
) -> Attendance | None:
    return _find_for_day(db, employee.id, _resolve_now(now).date())


def list_my_attendance(db: Session, employee: Employee) -> list[Attendance]:
    stmt = (
        select(Attendance)
        .where(Attendance.employee_id == employee.id)
        .order_by(Attendance.work_date.desc(), Attendance.id.desc())
    )
    return list(db.scalars(stmt).all())


def list_my_attendance_by_period(
    db: Session,
    employee: Employee,
    *,
    start_date: date,
    end_date: date,
) -> list[Attendance]:
    if end_date < start_date:
        raise ApiError(
            status_code=400,
            code="INVALID_DATE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )
    stmt = (
        select(Attendance)
        .where(
            Attendance.employee_id == employee.id,
            Attendance.work_date >= start_date,
            Attendance.work_date <= end_date,
        )
        .order_by(Attendance.work_date.desc(), Attendance.id.desc())
    )
    return list(db.scalars(stmt).all())


def list_my_attendance_by_month(
    db: Session,
    employee: Employee,
    *,
    year: int,
    month: int,
) -> list[Attendance]:
    days_in_month = monthrange(year, month)[1]
    return list_my_attendance_by_period(
        db,
        employee,
        start_date=date(year, month, 1),
        end_date=date(year, month, days_in_month),
    )


def list_my_attendance_by_status(
    db: Session,
    employee: Employee,
    status: AttendanceStatus,
) -> list[Attendance]:
    stmt = (
        select(Attendance)
        .where(
            Attendance.employee_id == employee.id,
            Attendance.status == status,
        )
        .order_by(Attendance.work_date.desc(), Attendance.id.desc())
    )
    return list(db.scalars(stmt).all())


def list_all_attendance(db: Session) -> list[Attendance]:
    stmt = select(Attendance).order_by(Attendance.work_date.desc(), Attendance.id.desc())
    return list(db.scalars(stmt).all())


def list_attendance_for_employee(db: Session, employee_id: int) -> list[Attendance]:
    employee = get_employee_or_404(db, employee_id)
    return list_my_attendance(db, employee)
