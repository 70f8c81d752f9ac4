from datetime import date

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from workhub.db import get_db
from workhub.models import AttendanceStatus
from workhub.schemas import AttendanceCheckInRequest, AttendanceRead
from workhub.security import Principal, get_current_principal
from workhub.services.attendance import (
    check_in,
    check_out,
    get_today_attendance,
    list_my_attendance,
    list_my_attendance_by_month,
    list_my_attendance_by_period,
    list_my_attendance_by_status,
    to_attendance_read,
)
from workhub.services.lookups import parse_status, require_employee

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


@router.post("/check-in", response_model=AttendanceRead, status_code=status.HTTP_201_CREATED)
def post_check_in(
    request: Request,
    payload: AttendanceCheckInRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> AttendanceRead:
    employee = require_employee(db, principal)
    attendance = check_in(db, employee, notes=payload.notes if payload is not None else None)
    request.state.attendance_id = attendance.id
    return to_attendance_read(attendance)


@router.post("/check-out", response_model=AttendanceRead)
def post_check_out(
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> AttendanceRead:
    employee = require_employee(db, principal)
    attendance = check_out(db, employee)
    request.state.attendance_id = attendance.id
    return to_attendance_read(attendance)


@router.get("/today", response_model=AttendanceRead | None)
def get_today(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> AttendanceRead | None:
    attendance = get_today_attendance(db, require_employee(db, principal))
    if attendance is None:
        return None
    return to_attendance_read(attendance)


@router.get("/me", response_model=list[AttendanceRead])
def get_my_attendance(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[AttendanceRead]:
    return [to_attendance_read(item) for item in list_my_attendance(db, require_employee(db, principal))]


@router.get("/me/period", response_model=list[AttendanceRead])
def get_my_attendance_by_period(
    start_date: date = Query(...),
    end_date: date = Query(...),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[AttendanceRead]:
    employee = require_employee(db, principal)
    rows = list_my_attendance_by_period(db, employee, start_date=start_date, end_date=end_date)
    return [to_attendance_read(item) for item in rows]


@router.get("/me/month", response_model=list[AttendanceRead])
def get_my_attendance_by_month(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[AttendanceRead]:
    employee = require_employee(db, principal)
    rows = list_my_attendance_by_month(db, employee, year=year, month=month)
    return [to_attendance_read(item) for item in rows]


@router.get("/me/status/{status_value}", response_model=list[AttendanceRead])
def get_my_attendance_by_status(
    status_value: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[AttendanceRead]:
    attendance_status = parse_status(AttendanceStatus, status_value)
    employee = require_employee(db, principal)
    return [to_attendance_read(item) for item in list_my_attendance_by_status(db, employee, attendance_status)]
