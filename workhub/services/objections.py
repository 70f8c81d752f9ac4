from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from workhub.errors import forbidden, not_found
from workhub.models import ObjectionRequest, ReviewStatus, User
from workhub.schemas import ObjectionCreate
from workhub.security import Principal
from workhub.services.lookups import parse_status


def submit_objection(db: Session, principal: Principal, payload: ObjectionCreate) -> ObjectionRequest:
    objection = ObjectionRequest(
        user_id=principal.user_id,
        attendance_date=payload.attendance_date,
        category=payload.category,
        reason=payload.reason,
        status=ReviewStatus.PENDING,
    )
    db.add(objection)
    db.commit()
    db.refresh(objection)
    return objection


def list_my_objections(db: Session, principal: Principal) -> list[ObjectionRequest]:
    stmt = (
        select(ObjectionRequest)
        .where(ObjectionRequest.user_id == principal.user_id)
        .order_by(ObjectionRequest.created_at.desc(), ObjectionRequest.id.desc())
    )
    return list(db.scalars(stmt).all())


def list_all_objections(db: Session) -> list[ObjectionRequest]:
    stmt = (
        select(ObjectionRequest)
        .options(selectinload(ObjectionRequest.user).selectinload(User.employee))
        .order_by(ObjectionRequest.created_at.desc(), ObjectionRequest.id.desc())
    )
    return list(db.scalars(stmt).all())


def get_objection(db: Session, objection_id: int) -> ObjectionRequest:
    objection = db.get(ObjectionRequest, objection_id)
    if objection is None:
        raise not_found("OBJECTION_NOT_FOUND", "Objection not found.")
    return objection


def cancel_objection(db: Session, principal: Principal, objection_id: int) -> None:
    objection = get_objection(db, objection_id)
    if objection.user_id != principal.user_id:
        raise forbidden("You can only cancel your own objections.")
    # Objections carry no state restriction on cancel, unlike leave requests.
    db.delete(objection)
    db.commit()


def update_objection_status(db: Session, objection_id: int, raw_status: str) -> ObjectionRequest:
    new_status = parse_status(ReviewStatus, raw_status)
    objection = get_objection(db, objection_id)
    objection.status = new_status
    db.commit()
    db.refresh(objection)
    return objection


def count_pending_objections(db: Session) -> int:
    stmt = select(func.count(ObjectionRequest.id)).where(ObjectionRequest.status == ReviewStatus.PENDING)
    return int(db.scalar(stmt) or 0)
