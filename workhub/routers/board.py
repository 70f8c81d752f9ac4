from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from workhub.audit import log_request_audit
from workhub.db import get_db
from workhub.schemas import NoticeCreate, NoticeRead, NoticeUpdate, OkResponse
from workhub.security import Principal, require_admin
from workhub.services.board import (
    create_notice,
    delete_notice,
    get_notice,
    list_notices,
    to_notice_read,
    update_notice,
)

router = APIRouter(prefix="/api/board", tags=["board"])


@router.get("/list", response_model=list[NoticeRead])
def get_notices(db: Session = Depends(get_db)) -> list[NoticeRead]:
    return [to_notice_read(item) for item in list_notices(db)]


@router.post("/add", response_model=NoticeRead, status_code=status.HTTP_201_CREATED)
def post_notice(
    payload: NoticeCreate,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
) -> NoticeRead:
    notice = create_notice(db, principal, payload)
    result = to_notice_read(notice)
    log_request_audit(
        db,
        request,
        principal,
        action="NOTICE_CREATED",
        entity_type="notice",
        entity_id=str(notice.id),
        details={"title": notice.title, "importance": notice.importance.value},
    )
    return result


@router.get("/{notice_id}", response_model=NoticeRead)
def get_notice_detail(notice_id: int, db: Session = Depends(get_db)) -> NoticeRead:
    return to_notice_read(get_notice(db, notice_id))


@router.put(
    "/{notice_id}",
    response_model=NoticeRead,
    dependencies=[Depends(require_admin)],
)
def put_notice(notice_id: int, payload: NoticeUpdate, db: Session = Depends(get_db)) -> NoticeRead:
    return to_notice_read(update_notice(db, notice_id, payload))


@router.delete(
    "/{notice_id}",
    response_model=OkResponse,
    dependencies=[Depends(require_admin)],
)
def remove_notice(notice_id: int, db: Session = Depends(get_db)) -> OkResponse:
    delete_notice(db, notice_id)
    return OkResponse()
