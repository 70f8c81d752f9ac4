from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from workhub.db import get_db
from workhub.schemas import (
    OkResponse,
    StatusUpdateRequest,
    TaskAssigneeUpdateRequest,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from workhub.security import Principal, get_current_principal
from workhub.services.tasks import (
    create_task,
    delete_task,
    get_task_for,
    list_tasks,
    to_task_read,
    update_task,
    update_task_assignee,
    update_task_status,
)

router = APIRouter(prefix="/api/task", tags=["tasks"])


@router.get("", response_model=list[TaskRead])
def get_tasks(
    scope: str | None = Query(default=None, max_length=20),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> list[TaskRead]:
    return [to_task_read(task) for task in list_tasks(db, principal, scope=scope)]


@router.get("/{task_id}", response_model=TaskRead)
def get_task_detail(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskRead:
    return to_task_read(get_task_for(db, task_id, principal))


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
def post_task(
    payload: TaskCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskRead:
    return to_task_read(create_task(db, principal, payload))


@router.put("/{task_id}", response_model=TaskRead)
def put_task(
    task_id: int,
    payload: TaskUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskRead:
    task = get_task_for(db, task_id, principal)
    return to_task_read(update_task(db, task, payload))


@router.patch("/{task_id}/status", response_model=TaskRead)
def patch_task_status(
    task_id: int,
    payload: StatusUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskRead:
    task = get_task_for(db, task_id, principal)
    return to_task_read(update_task_status(db, task, payload.status))


@router.put("/{task_id}/assignee", response_model=TaskRead)
def put_task_assignee(
    task_id: int,
    payload: TaskAssigneeUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TaskRead:
    task = get_task_for(db, task_id, principal)
    return to_task_read(update_task_assignee(db, task, payload.user_id))


@router.delete("/{task_id}", response_model=OkResponse)
def remove_task(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> OkResponse:
    delete_task(db, get_task_for(db, task_id, principal))
    return OkResponse()
