from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy import select
from sqlalchemy.orm import Session

from workhub.errors import ApiError, not_found
from workhub.models import Employee, User
from workhub.security import Principal
from workhub.settings import get_settings

EnumT = TypeVar("EnumT", bound=enum.Enum)


@lru_cache
def attendance_timezone() -> ZoneInfo | timezone:
    raw_name = (get_settings().attendance_timezone or "").strip()
    if not raw_name:
        return timezone.utc
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def local_now() -> datetime:
    return datetime.now(attendance_timezone())


def local_today() -> date:
    return local_now().date()


def parse_enum(enum_cls: type[EnumT], raw_value: str, *, code: str, label: str) -> EnumT:
    normalized = (raw_value or "").strip().upper()
    try:
        return enum_cls(normalized)
    except ValueError:
        allowed = ", ".join(item.value for item in enum_cls)
        raise ApiError(
            status_code=400,
            code=code,
            message=f"Unknown {label} '{raw_value}'. Allowed: {allowed}.",
        ) from None


def parse_status(enum_cls: type[EnumT], raw_value: str) -> EnumT:
    return parse_enum(enum_cls, raw_value, code="INVALID_STATUS", label="status")


def get_employee_by_user_id(db: Session, user_id: int) -> Employee | None:
    return db.scalar(select(Employee).where(Employee.user_id == user_id))


def require_employee(db: Session, principal: Principal) -> Employee:
    employee = None
    if principal.employee_id is not None:
        employee = db.get(Employee, principal.employee_id)
    if employee is None:
        employee = get_employee_by_user_id(db, principal.user_id)
    if employee is None:
        raise not_found("EMPLOYEE_NOT_FOUND", "No employee profile for the current user.")
    return employee


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise not_found("USER_NOT_FOUND", "User not found.")
    return user


def get_employee_or_404(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise not_found("EMPLOYEE_NOT_FOUND", "Employee not found.")
    return employee
