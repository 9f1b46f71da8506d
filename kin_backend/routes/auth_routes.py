from fastapi import APIRouter, Cookie, Depends, Request, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from kin_backend.auth.cookies import ACCESS_COOKIE, VERIFY_COOKIE, clear_token_cookie, set_token_cookie
from kin_backend.auth.dependencies import (
    Principal,
    get_current_principal,
    get_mailer,
    get_optional_principal,
    get_password_hasher,
    get_settings,
    get_token_service,
    require_logged_out,
)
from kin_backend.auth.jwt_handler import PURPOSE_ACCESS, PURPOSE_VERIFY, TokenService
from kin_backend.auth.passwords import PasswordHasher
from kin_backend.core.config import Settings
from kin_backend.core.rate_limit import AUTH_RATE_LIMIT, limiter
from kin_backend.core.responses import success_response
from kin_backend.database import get_db
from kin_backend.models.user import User
from kin_backend.schemas import UserResponse, dump
from kin_backend.services import accounts
from kin_backend.services.mailer import Mailer

router = APIRouter(tags=['auth'])


class EmailRequest(BaseModel):
    email: str | None = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().lower()


class RegisterRequest(EmailRequest):
    name: str | None = None
    password: str | None = None
    gender: str | None = None
    mobile: str | None = None


class ActivateRequest(BaseModel):
    code: str | None = None


class LoginRequest(EmailRequest):
    password: str | None = None


def _login_response(message: str, user: User, access_token: str, tokens: TokenService, app_settings: Settings):
    response = success_response(
        message,
        data={**dump(UserResponse, user), 'accessToken': access_token},
    )
    # readable by the client so the frontend can tell it is logged in
    set_token_cookie(
        response,
        ACCESS_COOKIE,
        access_token,
        tokens.max_age(PURPOSE_ACCESS),
        app_settings,
        http_only=False,
    )
    return response


@router.post('/register', status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_logged_out)])
@limiter.limit(AUTH_RATE_LIMIT)
def register(
    request: Request,
    data: RegisterRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
    mailer: Mailer = Depends(get_mailer),
    app_settings: Settings = Depends(get_settings),
):
    user, verify_token = accounts.register(db, tokens, hasher, mailer, **data.model_dump())

    response = success_response(
        f'Email has been sent to {user.email}. Follow the instruction to activate your account',
        data=dump(UserResponse, user),
        status_code=status.HTTP_201_CREATED,
    )
    set_token_cookie(response, VERIFY_COOKIE, verify_token, tokens.max_age(PURPOSE_VERIFY), app_settings)
    return response


@router.post('/activate', dependencies=[Depends(require_logged_out)])
def activate(
    data: ActivateRequest,
    verify_token: str | None = Cookie(default=None, alias=VERIFY_COOKIE),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    app_settings: Settings = Depends(get_settings),
):
    accounts.activate(db, tokens, token=verify_token, code=data.code)

    response = success_response('Successfully activated your account.')
    clear_token_cookie(response, VERIFY_COOKIE, app_settings)
    return response


@router.post('/resend-active-code', dependencies=[Depends(require_logged_out)])
def resend_active_code(
    data: EmailRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    mailer: Mailer = Depends(get_mailer),
    app_settings: Settings = Depends(get_settings),
):
    verify_token = accounts.resend_activation(db, tokens, mailer, email=data.email)

    response = success_response(
        f'Email has been sent to {data.email}. Follow the instruction to activate your account'
    )
    set_token_cookie(response, VERIFY_COOKIE, verify_token, tokens.max_age(PURPOSE_VERIFY), app_settings)
    return response


@router.post('/login', dependencies=[Depends(require_logged_out)])
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
    app_settings: Settings = Depends(get_settings),
):
    user, access_token = accounts.login(db, tokens, hasher, email=data.email, password=data.password)
    return _login_response('Successfully Login to KIN.', user, access_token, tokens, app_settings)


@router.post('/dashboard-login', dependencies=[Depends(require_logged_out)])
@limiter.limit(AUTH_RATE_LIMIT)
def dashboard_login(
    request: Request,
    data: LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
    app_settings: Settings = Depends(get_settings),
):
    user, access_token = accounts.dashboard_login(db, tokens, hasher, email=data.email, password=data.password)
    return _login_response('Successfully Login to KIN Dashboard.', user, access_token, tokens, app_settings)


@router.post('/logout')
def logout(
    principal: Principal = Depends(get_current_principal),
    app_settings: Settings = Depends(get_settings),
):
    response = success_response('Successfully Logout.')
    clear_token_cookie(response, ACCESS_COOKIE, app_settings, http_only=False)
    return response


@router.get('/me')
def me(
    principal: Principal | None = Depends(get_optional_principal),
    db: Session = Depends(get_db),
):
    user = db.get(User, principal.id) if principal else None
    if user is None:
        return success_response('User is not register.', data=None)
    return success_response('Login User Data.', data=dump(UserResponse, user))
