from datetime import date, datetime, time
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from workhub.models import Importance, RequestType, ReviewStatus, Role, TaskStatus


class OkResponse(BaseModel):
    ok: bool = True


class LoginRequest(BaseModel):
    employee_no: str = Field(
        min_length=1,
        max_length=50,
        validation_alias=AliasChoices("employee_no", "employeeNo"),
    )
    password: str = Field(min_length=1, max_length=128)


class ProfileRead(BaseModel):
    user_id: int
    employee_no: str
    role: Role
    must_change_password: bool
    employee_id: int | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    department_id: int | None = None
    department_name: str | None = None
    join_date: date | None = None
    total_leave: float | None = None
    used_leave: float | None = None
    remaining_leave: float | None = None


class MyInfoUpdateRequest(BaseModel):
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)


class PasswordChangeRequest(BaseModel):
    old_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=4, max_length=128)


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    tel: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=255)
    location: str | None = Field(default=None, max_length=255)
    manager_id: int | None = Field(default=None, ge=1)


class DepartmentUpdate(DepartmentCreate):
    pass


class DepartmentRead(BaseModel):
    id: int
    name: str
    tel: str | None = None
    email: str | None = None
    location: str | None = None
    manager_id: int | None = None
    manager_name: str | None = None


class EmployeeRegisterRequest(BaseModel):
    employee_no: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    department_id: int | None = Field(default=None, ge=1)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    position: str | None = Field(default=None, max_length=100)
    join_date: date | None = None


class EmployeeAdminUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    position: str | None = Field(default=None, max_length=100)
    department_id: int | None = Field(default=None, ge=1)
    join_date: date | None = None
    resignation_date: date | None = None
    total_leave: float | None = Field(default=None, ge=0)
    used_leave: float | None = Field(default=None, ge=0)


class EmployeeRead(BaseModel):
    employee_id: int
    user_id: int
    employee_no: str
    role: Role
    is_active: bool
    name: str
    email: str | None = None
    phone: str | None = None
    position: str | None = None
    department_id: int | None = None
    department_name: str | None = None
    join_date: date | None = None
    resignation_date: date | None = None
    total_leave: float
    used_leave: float
    remaining_leave: float


class PasswordResetResponse(BaseModel):
    ok: bool = True
    user_id: int
    must_change_password: bool


class AttendanceCheckInRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=1000)


class AttendanceRead(BaseModel):
    id: int
    employee_id: int
    work_date: date
    check_in_time: time | None = None
    check_out_time: time | None = None
    status: str
    status_code: str
    notes: str | None = None
    work_hours: float


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    due_date: date | None = None
    employee_id: int | None = Field(default=None, ge=1)
    department_id: int | None = Field(default=None, ge=1)
    priority: int | None = None


class TaskUpdate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    status: str
    priority: int | None = None
    due_date: date | None = None


class StatusUpdateRequest(BaseModel):
    status: str


class TaskAssigneeUpdateRequest(BaseModel):
    user_id: int = Field(ge=1)


class TaskRead(BaseModel):
    id: int
    title: str
    description: str | None = None
    status: TaskStatus
    priority: int | None = None
    due_date: date | None = None
    employee_id: int | None = None
    user_id: int | None = None
    department_id: int | None = None
    assignee_name: str | None = None
    created_at: datetime


class ObjectionCreate(BaseModel):
    attendance_date: date | None = None
    category: str | None = Field(default=None, max_length=100)
    reason: str | None = Field(default=None, max_length=1000)


class ObjectionRead(BaseModel):
    id: int
    user_id: int
    attendance_date: date | None = None
    category: str | None = None
    reason: str | None = None
    status: ReviewStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LeaveRequestCreate(BaseModel):
    type: str
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=500)


class LeaveRequestRead(BaseModel):
    id: int
    user_id: int
    type: RequestType
    start_date: date
    end_date: date
    reason: str | None = None
    status: ReviewStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NoticeCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    importance: str = Importance.NORMAL.value


class NoticeUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    importance: str | None = None

    @model_validator(mode="after")
    def validate_any_field(self) -> "NoticeUpdate":
        if self.title is None and self.content is None and self.importance is None:
            raise ValueError("At least one of title, content or importance must be provided")
        return self


class NoticeRead(BaseModel):
    id: int
    employee_id: int
    author_name: str | None = None
    author_position: str | None = None
    title: str
    content: str
    importance: Importance
    created_at: datetime


class DashboardStatsRead(BaseModel):
    total_employees: int
    today_attendance_count: int
    pending_objections_count: int
    attendance_rate: float


class AdminRequestView(BaseModel):
    id: int
    type: Literal["TASK", "OBJECTION", "REQUEST"]
    employee_no: str
    employee_name: str
    title: str
    description: str | None = None
    status: str
    created_at: datetime
