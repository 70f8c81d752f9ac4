from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from workhub.errors import ApiError, bad_request, forbidden, not_found
from workhub.models import LeaveRequest, RequestType, ReviewStatus, User
from workhub.schemas import LeaveRequestCreate
from workhub.security import Principal
from workhub.services.lookups import parse_enum, parse_status


def submit_request(db: Session, principal: Principal, payload: LeaveRequestCreate) -> LeaveRequest:
    request_type = parse_enum(RequestType, payload.type, code="INVALID_TYPE", label="request type")
    if payload.end_date < payload.start_date:
        raise ApiError(
            status_code=400,
            code="INVALID_DATE_RANGE",
            message="end_date must be greater than or equal to start_date.",
        )

    leave_request = LeaveRequest(
        user_id=principal.user_id,
        type=request_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
        status=ReviewStatus.PENDING,
    )
    db.add(leave_request)
    db.commit()
    db.refresh(leave_request)
    return leave_request


def list_my_requests(db: Session, principal: Principal) -> list[LeaveRequest]:
    stmt = (
        select(LeaveRequest)
        .where(LeaveRequest.user_id == principal.user_id)
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
    )
    return list(db.scalars(stmt).all())


def list_all_requests(db: Session) -> list[LeaveRequest]:
    stmt = (
        select(LeaveRequest)
        .options(selectinload(LeaveRequest.user).selectinload(User.employee))
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
    )
    return list(db.scalars(stmt).all())


def get_request(db: Session, request_id: int) -> LeaveRequest:
    leave_request = db.get(LeaveRequest, request_id)
    if leave_request is None:
        raise not_found("REQUEST_NOT_FOUND", "Request not found.")
    return leave_request


def cancel_request(db: Session, principal: Principal, request_id: int) -> None:
    leave_request = get_request(db, request_id)
    if leave_request.user_id != principal.user_id:
        raise forbidden("You can only cancel your own requests.")
    if leave_request.status != ReviewStatus.PENDING:
        raise bad_request("INVALID_STATE", "Only pending requests can be cancelled.")
    db.delete(leave_request)
    db.commit()


def set_request_status(db: Session, request_id: int, new_status: ReviewStatus) -> LeaveRequest:
    leave_request = get_request(db, request_id)
    leave_request.status = new_status
    db.commit()
    db.refresh(leave_request)
    return leave_request


def update_request_status(db: Session, request_id: int, raw_status: str) -> LeaveRequest:
    return set_request_status(db, request_id, parse_status(ReviewStatus, raw_status))
