from __future__ import annotations

import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request
from passlib.context import CryptContext
from passlib.exc import UnknownHashError
from sqlalchemy import select
from sqlalchemy.orm import Session

from workhub.db import get_db
from workhub.errors import ApiError
from workhub.models import Employee, Role, User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SESSION_USER_KEY = "user_id"

_LOCK = threading.Lock()
_FAILED_ATTEMPTS: dict[str, deque[datetime]] = defaultdict(deque)
_MAX_ATTEMPTS = 10
_ATTEMPT_WINDOW = timedelta(minutes=10)


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated caller, resolved from the session once per request."""

    user_id: int
    employee_no: str
    role: Role
    employee_id: int | None = None
    employee_name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cleanup_attempts(ip: str, now: datetime) -> None:
    queue = _FAILED_ATTEMPTS[ip]
    threshold = now - _ATTEMPT_WINDOW
    while queue and queue[0] < threshold:
        queue.popleft()
    if not queue:
        _FAILED_ATTEMPTS.pop(ip, None)


def ensure_login_attempt_allowed(ip: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(ip, now)
        queue = _FAILED_ATTEMPTS.get(ip, deque())
        if len(queue) >= _MAX_ATTEMPTS:
            raise ApiError(
                status_code=429,
                code="TOO_MANY_ATTEMPTS",
                message="Too many failed login attempts. Please try again later.",
            )


def register_login_failure(ip: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(ip, now)
        _FAILED_ATTEMPTS[ip].append(now)


def register_login_success(ip: str) -> None:
    with _LOCK:
        _FAILED_ATTEMPTS.pop(ip, None)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError, UnknownHashError):
        # Invalid/legacy hash values should not crash auth flow.
        return False


def build_principal(user: User, employee: Employee | None) -> Principal:
    return Principal(
        user_id=user.id,
        employee_no=user.employee_no,
        role=user.role,
        employee_id=employee.id if employee is not None else None,
        employee_name=employee.name if employee is not None else None,
    )


def start_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id


def end_session(request: Request) -> None:
    request.session.clear()


def get_current_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    cached = getattr(request.state, "principal", None)
    if isinstance(cached, Principal):
        return cached

    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        raise ApiError(status_code=401, code="UNAUTHENTICATED", message="Login required.")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        request.session.clear()
        raise ApiError(status_code=401, code="UNAUTHENTICATED", message="Login required.")

    employee = db.scalar(select(Employee).where(Employee.user_id == user.id))
    principal = build_principal(user, employee)

    request.state.principal = principal
    request.state.actor = "admin" if principal.is_admin else "user"
    request.state.actor_id = principal.employee_no
    request.state.employee_id = principal.employee_id
    return principal


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise ApiError(status_code=403, code="FORBIDDEN", message="Administrator role required.")
    return principal
