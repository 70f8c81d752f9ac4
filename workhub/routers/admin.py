from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from workhub.audit import log_request_audit
from workhub.db import get_db
from workhub.errors import bad_request
from workhub.schemas import (
    AdminRequestView,
    AttendanceRead,
    DashboardStatsRead,
    EmployeeAdminUpdateRequest,
    EmployeeRead,
    EmployeeRegisterRequest,
    LeaveRequestRead,
    ObjectionRead,
    PasswordResetResponse,
    StatusUpdateRequest,
)
from workhub.security import Principal, require_admin
from workhub.services.attendance import list_all_attendance, list_attendance_for_employee, to_attendance_read
from workhub.services.dashboard import (
    build_objection_views,
    build_request_views,
    get_dashboard_stats,
    review_request,
)
from workhub.services.leave_requests import update_request_status
from workhub.services.objections import update_objection_status
from workhub.services.users import (
    list_employees,
    register_user,
    reset_password,
    to_employee_read,
    update_employee_by_admin,
)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

REVIEW_KINDS = ("TASK", "REQUEST")


@router.get("/stats", response_model=DashboardStatsRead)
def get_stats(db: Session = Depends(get_db)) -> DashboardStatsRead:
    return get_dashboard_stats(db)


@router.get("/employees", response_model=list[EmployeeRead])
def get_employees(db: Session = Depends(get_db)) -> list[EmployeeRead]:
    return [to_employee_read(item) for item in list_employees(db)]


@router.put("/employees/{employee_id}", response_model=EmployeeRead)
def put_employee(
    employee_id: int,
    payload: EmployeeAdminUpdateRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> EmployeeRead:
    employee = update_employee_by_admin(db, employee_id, payload)
    result = to_employee_read(employee)
    log_request_audit(
        db,
        request,
        principal,
        action="EMPLOYEE_UPDATED",
        entity_type="employee",
        entity_id=str(employee_id),
        details={"fields": sorted(payload.model_dump(exclude_unset=True))},
    )
    return result


@router.post("/register", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
def post_register(
    payload: EmployeeRegisterRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> EmployeeRead:
    employee = register_user(db, payload)
    result = to_employee_read(employee)
    log_request_audit(
        db,
        request,
        principal,
        action="EMPLOYEE_REGISTERED",
        entity_type="user",
        entity_id=str(employee.user_id),
        details={"employee_no": result.employee_no},
    )
    return result


@router.post("/reset-password/{user_id}", response_model=PasswordResetResponse)
def post_reset_password(
    user_id: int,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> PasswordResetResponse:
    user = reset_password(db, user_id)
    log_request_audit(
        db,
        request,
        principal,
        action="PASSWORD_RESET",
        entity_type="user",
        entity_id=str(user.id),
    )
    return PasswordResetResponse(user_id=user.id, must_change_password=user.must_change_password)


@router.get("/attendance", response_model=list[AttendanceRead])
def get_all_attendance(db: Session = Depends(get_db)) -> list[AttendanceRead]:
    return [to_attendance_read(item) for item in list_all_attendance(db)]


@router.get("/attendance/{employee_id}", response_model=list[AttendanceRead])
def get_employee_attendance(employee_id: int, db: Session = Depends(get_db)) -> list[AttendanceRead]:
    return [to_attendance_read(item) for item in list_attendance_for_employee(db, employee_id)]


@router.get("/objections", response_model=list[AdminRequestView])
def get_objections(db: Session = Depends(get_db)) -> list[AdminRequestView]:
    return build_objection_views(db)


@router.put("/objections/{objection_id}/status", response_model=ObjectionRead)
def put_objection_status(
    objection_id: int,
    payload: StatusUpdateRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ObjectionRead:
    objection = update_objection_status(db, objection_id, payload.status)
    result = ObjectionRead.model_validate(objection)
    log_request_audit(
        db,
        request,
        principal,
        action="OBJECTION_STATUS_UPDATED",
        entity_type="objection",
        entity_id=str(objection_id),
        details={"status": result.status.value},
    )
    return result


@router.get("/requests", response_model=list[AdminRequestView])
def get_requests(db: Session = Depends(get_db)) -> list[AdminRequestView]:
    return build_request_views(db)


@router.put("/requests/{request_id}/status", response_model=LeaveRequestRead)
def put_request_status(
    request_id: int,
    payload: StatusUpdateRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> LeaveRequestRead:
    leave_request = update_request_status(db, request_id, payload.status)
    result = LeaveRequestRead.model_validate(leave_request)
    log_request_audit(
        db,
        request,
        principal,
        action="REQUEST_STATUS_UPDATED",
        entity_type="request",
        entity_id=str(request_id),
        details={"status": result.status.value},
    )
    return result


def _review(
    request_id: int,
    kind: str,
    approved: bool,
    request: Request,
    principal: Principal,
    db: Session,
) -> AdminRequestView:
    kind = kind.strip().upper()
    if kind not in REVIEW_KINDS:
        raise bad_request("INVALID_TYPE", f"Unknown request type '{kind}'. Allowed: TASK, REQUEST.")
    view = review_request(db, request_id, kind=kind, approved=approved)
    log_request_audit(
        db,
        request,
        principal,
        action="REQUEST_APPROVED" if approved else "REQUEST_REJECTED",
        entity_type=kind.lower(),
        entity_id=str(request_id),
        details={"status": view.status},
    )
    return view


@router.put("/requests/{request_id}/approve", response_model=AdminRequestView)
def put_request_approve(
    request_id: int,
    request: Request,
    kind: str = Query(default="TASK", alias="type"),
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AdminRequestView:
    return _review(request_id, kind, True, request, principal, db)


@router.put("/requests/{request_id}/reject", response_model=AdminRequestView)
def put_request_reject(
    request_id: int,
    request: Request,
    kind: str = Query(default="TASK", alias="type"),
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AdminRequestView:
    return _review(request_id, kind, False, request, principal, db)
