from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from workhub.errors import ApiError, bad_request
from workhub.models import Employee, Role, User
from workhub.schemas import (
    EmployeeAdminUpdateRequest,
    EmployeeRead,
    EmployeeRegisterRequest,
    ProfileRead,
)
from workhub.security import Principal, hash_password, verify_password
from workhub.services.departments import get_department
from workhub.services.lookups import get_employee_by_user_id, get_employee_or_404, get_user_or_404
from workhub.settings import get_settings

logger = logging.getLogger("workhub.users")

UNASSIGNED_DEPARTMENT = "Unassigned"


def _normalize_employee_no(value: str) -> str:
    return value.strip()


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def authenticate(db: Session, employee_no: str, password: str) -> User | None:
    user = db.scalar(select(User).where(User.employee_no == _normalize_employee_no(employee_no)))
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return user


def build_profile(db: Session, user: User) -> ProfileRead:
    employee = get_employee_by_user_id(db, user.id)
    if employee is None:
        return ProfileRead(
            user_id=user.id,
            employee_no=user.employee_no,
            role=user.role,
            must_change_password=user.must_change_password,
        )
    return ProfileRead(
        user_id=user.id,
        employee_no=user.employee_no,
        role=user.role,
        must_change_password=user.must_change_password,
        employee_id=employee.id,
        name=employee.name,
        email=employee.email,
        phone=employee.phone,
        position=employee.position,
        department_id=employee.department_id,
        department_name=employee.department.name if employee.department is not None else UNASSIGNED_DEPARTMENT,
        join_date=employee.join_date,
        total_leave=employee.total_leave,
        used_leave=employee.used_leave,
        remaining_leave=employee.remaining_leave,
    )


def to_employee_read(employee: Employee) -> EmployeeRead:
    user = employee.user
    return EmployeeRead(
        employee_id=employee.id,
        user_id=employee.user_id,
        employee_no=user.employee_no,
        role=user.role,
        is_active=user.is_active,
        name=employee.name,
        email=employee.email,
        phone=employee.phone,
        position=employee.position,
        department_id=employee.department_id,
        department_name=employee.department.name if employee.department is not None else None,
        join_date=employee.join_date,
        resignation_date=employee.resignation_date,
        total_leave=employee.total_leave,
        used_leave=employee.used_leave,
        remaining_leave=employee.remaining_leave,
    )


def register_user(db: Session, payload: EmployeeRegisterRequest) -> Employee:
    settings = get_settings()
    employee_no = _normalize_employee_no(payload.employee_no)
    if not employee_no:
        raise bad_request("VALIDATION_ERROR", "employee_no must not be blank.")

    existing = db.scalar(select(User.id).where(User.employee_no == employee_no))
    if existing is not None:
        raise bad_request("DUPLICATE_EMPLOYEE_NO", "Employee number already exists.")

    if payload.department_id is not None:
        get_department(db, payload.department_id)

    user = User(
        employee_no=employee_no,
        password_hash=hash_password(settings.default_password),
        role=Role.USER,
        is_active=True,
        must_change_password=True,
    )
    employee = Employee(
        user=user,
        name=payload.name.strip(),
        department_id=payload.department_id,
        email=_blank_to_none(payload.email),
        phone=_blank_to_none(payload.phone),
        position=_blank_to_none(payload.position),
        join_date=payload.join_date,
        total_leave=settings.default_total_leave,
        used_leave=0.0,
    )
    db.add(user)
    db.add(employee)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise bad_request("DUPLICATE_EMPLOYEE_NO", "Employee number already exists.") from None

    db.refresh(employee)
    logger.info("user_registered", extra={"user_id": user.id, "employee_id": employee.id})
    return employee


def update_my_info(
    db: Session,
    principal: Principal,
    *,
    email: str | None,
    phone: str | None,
) -> Employee:
    employee = get_employee_by_user_id(db, principal.user_id)
    if employee is None:
        raise ApiError(status_code=404, code="EMPLOYEE_NOT_FOUND", message="No employee profile for the current user.")

    # Blank values leave the stored contact field untouched.
    normalized_email = _blank_to_none(email)
    normalized_phone = _blank_to_none(phone)
    if normalized_email is not None:
        employee.email = normalized_email
    if normalized_phone is not None:
        employee.phone = normalized_phone
    db.commit()
    db.refresh(employee)
    return employee


def change_password(db: Session, principal: Principal, *, old_password: str, new_password: str) -> User:
    user = get_user_or_404(db, principal.user_id)
    if not verify_password(old_password, user.password_hash):
        raise bad_request("INVALID_PASSWORD", "Current password is incorrect.")

    user.password_hash = hash_password(new_password)
    user.must_change_password = False
    db.commit()
    db.refresh(user)
    return user


def reset_password(db: Session, user_id: int) -> User:
    user = get_user_or_404(db, user_id)
    user.password_hash = hash_password(get_settings().reset_password)
    user.must_change_password = True
    db.commit()
    db.refresh(user)
    return user


def list_employees(db: Session) -> list[Employee]:
    stmt = (
        select(Employee)
        .options(selectinload(Employee.user), selectinload(Employee.department))
        .order_by(Employee.id.asc())
    )
    return list(db.scalars(stmt).all())


def update_employee_by_admin(db: Session, employee_id: int, payload: EmployeeAdminUpdateRequest) -> Employee:
    employee = get_employee_or_404(db, employee_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("department_id") is not None:
        get_department(db, changes["department_id"])

    for field_name, value in changes.items():
        if field_name == "name" and value is None:
            continue
        if field_name in {"total_leave", "used_leave"} and value is None:
            continue
        setattr(employee, field_name, value)

    db.commit()
    db.refresh(employee)
    return employee


def ensure_admin_user(db: Session, *, employee_no: str, password: str, name: str) -> User:
    """Create the admin account (with an employee profile) if it does not exist yet."""
    normalized = _normalize_employee_no(employee_no)
    user = db.scalar(select(User).where(User.employee_no == normalized))
    if user is not None:
        if user.role != Role.ADMIN:
            user.role = Role.ADMIN
            db.commit()
        return user

    user = User(
        employee_no=normalized,
        password_hash=hash_password(password),
        role=Role.ADMIN,
        is_active=True,
        must_change_password=False,
    )
    employee = Employee(
        user=user,
        name=name,
        total_leave=get_settings().default_total_leave,
        used_leave=0.0,
    )
    db.add(user)
    db.add(employee)
    db.commit()
    db.refresh(user)
    logger.info("admin_bootstrapped", extra={"user_id": user.id})
    return user
