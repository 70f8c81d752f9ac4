from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from workhub.audit import client_ip, log_audit
from workhub.db import get_db
from workhub.errors import ApiError
from workhub.models import AuditActorType, Role, User
from workhub.schemas import (
    LoginRequest,
    MyInfoUpdateRequest,
    OkResponse,
    PasswordChangeRequest,
    ProfileRead,
)
from workhub.security import (
    SESSION_USER_KEY,
    Principal,
    end_session,
    ensure_login_attempt_allowed,
    get_current_principal,
    register_login_failure,
    register_login_success,
    start_session,
)
from workhub.services.lookups import get_user_or_404
from workhub.services.users import authenticate, build_profile, change_password, update_my_info

router = APIRouter(prefix="/api", tags=["auth"])


def _user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


@router.post("/login", response_model=ProfileRead)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> ProfileRead:
    employee_no = payload.employee_no.strip()
    ip = client_ip(request)
    user_agent = _user_agent(request)
    request_id = getattr(request.state, "request_id", None)

    if ip:
        try:
            ensure_login_attempt_allowed(ip)
        except ApiError:
            log_audit(
                db,
                actor_type=AuditActorType.SYSTEM,
                actor_id=employee_no,
                action="LOGIN_FAIL",
                success=False,
                ip=ip,
                user_agent=user_agent,
                details={"reason": "TOO_MANY_ATTEMPTS"},
                request_id=request_id,
            )
            raise

    user = authenticate(db, employee_no, payload.password)
    if user is None:
        if ip:
            register_login_failure(ip)
        log_audit(
            db,
            actor_type=AuditActorType.SYSTEM,
            actor_id=employee_no,
            action="LOGIN_FAIL",
            success=False,
            ip=ip,
            user_agent=user_agent,
            details={"reason": "INVALID_CREDENTIALS"},
            request_id=request_id,
        )
        raise ApiError(
            status_code=401,
            code="INVALID_CREDENTIALS",
            message="Invalid employee number or password.",
        )

    if ip:
        register_login_success(ip)
    start_session(request, user)
    request.state.actor = "admin" if user.role == Role.ADMIN else "user"
    request.state.actor_id = user.employee_no

    log_audit(
        db,
        actor_type=AuditActorType.ADMIN if user.role == Role.ADMIN else AuditActorType.USER,
        actor_id=user.employee_no,
        action="LOGIN_SUCCESS",
        success=True,
        entity_type="user",
        entity_id=str(user.id),
        ip=ip,
        user_agent=user_agent,
        request_id=request_id,
    )
    return build_profile(db, user)


@router.post("/logout", response_model=OkResponse)
def logout(request: Request, db: Session = Depends(get_db)) -> OkResponse:
    user_id = request.session.get(SESSION_USER_KEY)
    user = db.get(User, user_id) if user_id is not None else None
    end_session(request)
    if user_id is not None:
        log_audit(
            db,
            actor_type=AuditActorType.ADMIN if user is not None and user.role == Role.ADMIN else AuditActorType.USER,
            actor_id=user.employee_no if user is not None else str(user_id),
            action="LOGOUT",
            success=True,
            entity_type="user",
            entity_id=str(user_id),
            ip=client_ip(request),
            user_agent=_user_agent(request),
            request_id=getattr(request.state, "request_id", None),
        )
    return OkResponse()


@router.get("/check-login", response_model=ProfileRead)
def check_login(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ProfileRead:
    return build_profile(db, get_user_or_404(db, principal.user_id))


@router.get("/userinfo/me", response_model=ProfileRead)
def get_my_info(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ProfileRead:
    return build_profile(db, get_user_or_404(db, principal.user_id))


@router.put("/userinfo/me", response_model=ProfileRead)
@router.put("/user/info", response_model=ProfileRead)
def put_my_info(
    payload: MyInfoUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ProfileRead:
    update_my_info(db, principal, email=payload.email, phone=payload.phone)
    return build_profile(db, get_user_or_404(db, principal.user_id))


@router.post("/user/password", response_model=OkResponse)
def post_password_change(
    payload: PasswordChangeRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> OkResponse:
    change_password(db, principal, old_password=payload.old_password, new_password=payload.new_password)
    return OkResponse()
