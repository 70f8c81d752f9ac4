from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from workhub.errors import forbidden, not_found
from workhub.models import Importance, Notice, Role
from workhub.schemas import NoticeCreate, NoticeRead, NoticeUpdate
from workhub.security import Principal
from workhub.services.lookups import parse_enum, require_employee


def _parse_importance(raw_value: str) -> Importance:
    return parse_enum(Importance, raw_value, code="INVALID_IMPORTANCE", label="importance")


def to_notice_read(notice: Notice) -> NoticeRead:
    author = notice.author
    return NoticeRead(
        id=notice.id,
        employee_id=notice.employee_id,
        author_name=author.name if author is not None else None,
        author_position=author.position if author is not None else None,
        title=notice.title,
        content=notice.content,
        importance=notice.importance,
        created_at=notice.created_at,
    )


def create_notice(db: Session, principal: Principal, payload: NoticeCreate) -> Notice:
    importance = _parse_importance(payload.importance)
    author = require_employee(db, principal)
    # Authorship is checked against the stored role, not the session snapshot.
    if author.user is None or author.user.role != Role.ADMIN:
        raise forbidden("Only administrators can post notices.")

    notice = Notice(
        employee_id=author.id,
        title=payload.title,
        content=payload.content,
        importance=importance,
    )
    db.add(notice)
    db.commit()
    db.refresh(notice)
    return notice


def list_notices(db: Session) -> list[Notice]:
    stmt = (
        select(Notice)
        .options(selectinload(Notice.author))
        .order_by(Notice.created_at.desc(), Notice.id.desc())
    )
    return list(db.scalars(stmt).all())


def get_notice(db: Session, notice_id: int) -> Notice:
    notice = db.get(Notice, notice_id)
    if notice is None:
        raise not_found("NOTICE_NOT_FOUND", "Notice not found.")
    return notice


def update_notice(db: Session, notice_id: int, payload: NoticeUpdate) -> Notice:
    notice = get_notice(db, notice_id)
    importance = _parse_importance(payload.importance) if payload.importance is not None else None
    if payload.title is not None:
        notice.title = payload.title
    if payload.content is not None:
        notice.content = payload.content
    if importance is not None:
        notice.importance = importance
    db.commit()
    db.refresh(notice)
    return notice


def delete_notice(db: Session, notice_id: int) -> None:
    notice = get_notice(db, notice_id)
    db.delete(notice)
    db.commit()
