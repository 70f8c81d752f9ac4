from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from workhub.db import get_db
from workhub.schemas import DepartmentCreate, DepartmentRead, DepartmentUpdate, OkResponse
from workhub.security import get_current_principal, require_admin
from workhub.services.departments import (
    create_department,
    delete_department,
    list_departments,
    to_department_read,
    update_department,
)

router = APIRouter(prefix="/api/departments", tags=["departments"])


@router.get(
    "",
    response_model=list[DepartmentRead],
    dependencies=[Depends(get_current_principal)],
)
def get_departments(db: Session = Depends(get_db)) -> list[DepartmentRead]:
    return [to_department_read(item) for item in list_departments(db)]


@router.post(
    "",
    response_model=DepartmentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def post_department(payload: DepartmentCreate, db: Session = Depends(get_db)) -> DepartmentRead:
    return to_department_read(create_department(db, payload))


@router.put(
    "/{department_id}",
    response_model=DepartmentRead,
    dependencies=[Depends(require_admin)],
)
def put_department(
    department_id: int,
    payload: DepartmentUpdate,
    db: Session = Depends(get_db),
) -> DepartmentRead:
    return to_department_read(update_department(db, department_id, payload))


@router.delete(
    "/{department_id}",
    response_model=OkResponse,
    dependencies=[Depends(require_admin)],
)
def remove_department(department_id: int, db: Session = Depends(get_db)) -> OkResponse:
    delete_department(db, department_id)
    return OkResponse()
