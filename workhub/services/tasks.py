from __future__ import annotations

import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session, selectinload

from workhub.errors import forbidden, not_found
from workhub.models import Employee, Task, TaskStatus
from workhub.schemas import TaskCreate, TaskRead, TaskUpdate
from workhub.security import Principal
from workhub.services.lookups import get_employee_or_404, get_user_or_404, parse_status

logger = logging.getLogger("workhub.tasks")

REQUEST_TASK_PREFIXES = ("[Leave]", "[Remote]")


def to_task_read(task: Task) -> TaskRead:
    return TaskRead(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        employee_id=task.employee_id,
        user_id=task.user_id,
        department_id=task.department_id,
        assignee_name=task.assignee.name if task.assignee is not None else None,
        created_at=task.created_at,
    )


def _visible_to(principal: Principal):
    if principal.employee_id is not None:
        return Task.employee_id == principal.employee_id
    return and_(Task.employee_id.is_(None), Task.user_id == principal.user_id)


def can_access_task(task: Task, principal: Principal) -> bool:
    if principal.is_admin:
        return True
    if principal.employee_id is not None:
        return task.employee_id == principal.employee_id
    return task.employee_id is None and task.user_id == principal.user_id


def ensure_task_access(task: Task, principal: Principal) -> None:
    if not can_access_task(task, principal):
        raise forbidden("You do not have access to this task.")


def list_tasks(db: Session, principal: Principal, *, scope: str | None = None) -> list[Task]:
    stmt = select(Task).options(selectinload(Task.assignee)).order_by(Task.created_at.desc(), Task.id.desc())
    # Only admins may widen the view; any other caller silently gets their own tasks.
    if not (principal.is_admin and (scope or "").strip().lower() == "all"):
        stmt = stmt.where(_visible_to(principal))
    return list(db.scalars(stmt).all())


def get_task(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise not_found("TASK_NOT_FOUND", "Task not found.")
    return task


def get_task_for(db: Session, task_id: int, principal: Principal) -> Task:
    task = get_task(db, task_id)
    ensure_task_access(task, principal)
    return task


def create_task(db: Session, principal: Principal, payload: TaskCreate) -> Task:
    employee_id = payload.employee_id
    if principal.is_admin:
        if employee_id is not None:
            get_employee_or_404(db, employee_id)
    else:
        if employee_id is None:
            employee_id = principal.employee_id
        elif employee_id != principal.employee_id:
            raise forbidden("You can only create tasks for yourself.")

    task = Task(
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
        priority=payload.priority,
        department_id=payload.department_id,
        employee_id=employee_id,
        user_id=principal.user_id,
        status=TaskStatus.TODO,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info(
        "task_created",
        extra={"task_id": task.id, "employee_id": task.employee_id, "user_id": task.user_id},
    )
    return task


def update_task(db: Session, task: Task, payload: TaskUpdate) -> Task:
    new_status = parse_status(TaskStatus, payload.status)
    task.title = payload.title
    task.description = payload.description
    task.status = new_status
    task.priority = payload.priority
    task.due_date = payload.due_date
    db.commit()
    db.refresh(task)
    return task


def set_task_status(db: Session, task: Task, new_status: TaskStatus) -> Task:
    previous = task.status
    task.status = new_status
    db.commit()
    db.refresh(task)
    logger.info(
        "task_status_changed",
        extra={"task_id": task.id, "from_status": previous.value, "to_status": new_status.value},
    )
    return task


def update_task_status(db: Session, task: Task, raw_status: str) -> Task:
    return set_task_status(db, task, parse_status(TaskStatus, raw_status))


def update_task_assignee(db: Session, task: Task, user_id: int) -> Task:
    get_user_or_404(db, user_id)
    task.user_id = user_id
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task: Task) -> None:
    db.delete(task)
    db.commit()


def approve_task(db: Session, task_id: int) -> Task:
    return set_task_status(db, get_task(db, task_id), TaskStatus.APPROVED)


def reject_task(db: Session, task_id: int) -> Task:
    return set_task_status(db, get_task(db, task_id), TaskStatus.REJECTED)


def list_request_tasks(db: Session) -> list[Task]:
    stmt = (
        select(Task)
        .options(selectinload(Task.assignee).selectinload(Employee.user))
        .where(or_(*(Task.title.startswith(prefix) for prefix in REQUEST_TASK_PREFIXES)))
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    return list(db.scalars(stmt).all())
