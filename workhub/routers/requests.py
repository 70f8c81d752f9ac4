from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from workhub.db import get_db
from workhub.schemas import (
    LeaveRequestCreate,
    LeaveRequestRead,
    ObjectionCreate,
    ObjectionRead,
    OkResponse,
)
from workhub.security import Principal, get_current_principal
from workhub.services.leave_requests import cancel_request, list_my_requests, submit_request
from workhub.services.objections import cancel_objection, list_my_objections, submit_objection

router = APIRouter(prefix="/api", tags=["requests"])


@router.get("/objections", response_model=list[ObjectionRead])
def get_my_objections(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[ObjectionRead]:
    return [ObjectionRead.model_validate(item) for item in list_my_objections(db, principal)]


@router.post("/objections", response_model=ObjectionRead, status_code=status.HTTP_201_CREATED)
def post_objection(
    payload: ObjectionCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ObjectionRead:
    return ObjectionRead.model_validate(submit_objection(db, principal, payload))


@router.delete("/objections/{objection_id}", response_model=OkResponse)
def delete_objection(
    objection_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> OkResponse:
    cancel_objection(db, principal, objection_id)
    return OkResponse()


@router.get("/requests", response_model=list[LeaveRequestRead])
def get_my_requests(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[LeaveRequestRead]:
    return [LeaveRequestRead.model_validate(item) for item in list_my_requests(db, principal)]


@router.post("/requests", response_model=LeaveRequestRead, status_code=status.HTTP_201_CREATED)
def post_request(
    payload: LeaveRequestCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> LeaveRequestRead:
    return LeaveRequestRead.model_validate(submit_request(db, principal, payload))


@router.delete("/requests/{request_id}", response_model=OkResponse)
def delete_request(
    request_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> OkResponse:
    cancel_request(db, principal, request_id)
    return OkResponse()
