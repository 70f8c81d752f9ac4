from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from workhub.errors import not_found
from workhub.models import Department
from workhub.schemas import DepartmentCreate, DepartmentRead, DepartmentUpdate
from workhub.services.lookups import get_employee_or_404


def to_department_read(department: Department) -> DepartmentRead:
    return DepartmentRead(
        id=department.id,
        name=department.name,
        tel=department.tel,
        email=department.email,
        location=department.location,
        manager_id=department.manager_id,
        manager_name=department.manager.name if department.manager is not None else None,
    )


def list_departments(db: Session) -> list[Department]:
    stmt = select(Department).options(selectinload(Department.manager)).order_by(Department.id.asc())
    return list(db.scalars(stmt).all())


def get_department(db: Session, department_id: int) -> Department:
    department = db.get(Department, department_id)
    if department is None:
        raise not_found("DEPARTMENT_NOT_FOUND", "Department not found.")
    return department


def _apply(db: Session, department: Department, payload: DepartmentCreate) -> None:
    if payload.manager_id is not None:
        get_employee_or_404(db, payload.manager_id)
    department.name = payload.name
    department.tel = payload.tel
    department.email = payload.email
    department.location = payload.location
    department.manager_id = payload.manager_id


def create_department(db: Session, payload: DepartmentCreate) -> Department:
    department = Department()
    _apply(db, department, payload)
    db.add(department)
    db.commit()
    db.refresh(department)
    return department


def update_department(db: Session, department_id: int, payload: DepartmentUpdate) -> Department:
    department = get_department(db, department_id)
    _apply(db, department, payload)
    db.commit()
    db.refresh(department)
    return department


def delete_department(db: Session, department_id: int) -> None:
    department = get_department(db, department_id)
    db.delete(department)
    db.commit()
