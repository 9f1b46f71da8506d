from fastapi import APIRouter, BackgroundTasks, Cookie, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from kin_backend.auth.cookies import RESET_COOKIE, clear_token_cookie, set_token_cookie
from kin_backend.auth.dependencies import (
    Principal,
    get_current_principal,
    get_mailer,
    get_password_hasher,
    get_settings,
    get_token_service,
    require_logged_out,
    require_roles,
)
from kin_backend.auth.jwt_handler import PURPOSE_RESET, TokenService
from kin_backend.auth.passwords import PasswordHasher
from kin_backend.core.config import Settings
from kin_backend.core.responses import success_response
from kin_backend.database import get_db
from kin_backend.models.user import PRIVILEGED_ROLES, ROLE_ADMIN, ROLE_SUPER_ADMIN
from kin_backend.routes.auth_routes import EmailRequest
from kin_backend.schemas import UserProfileResponse, UserResponse, dump, dump_many
from kin_backend.services import accounts, users as user_service
from kin_backend.services.images import delete_image
from kin_backend.services.mailer import Mailer

router = APIRouter(tags=['users'])

IMAGE_FOLDER = 'users'

admin_only = require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)
super_admin_only = require_roles(ROLE_SUPER_ADMIN)


class AddUserRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None
    gender: str | None = None
    mobile: str | None = None
    photo: str | None = None


class UpdateUserRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    gender: str | None = None
    mobile: str | None = None
    photo: str | None = None
    role: str | None = None
    is_verified: bool | None = None
    is_banned: bool | None = None


class PasswordUpdateRequest(BaseModel):
    old_password: str | None = None
    password: str | None = None


class ResetPasswordRequest(BaseModel):
    code: str | None = None
    password: str | None = None


class RoleUpdateRequest(BaseModel):
    role: str | None = None


def _set_reset_cookie(response, reset_token: str, tokens: TokenService, app_settings: Settings) -> None:
    set_token_cookie(response, RESET_COOKIE, reset_token, tokens.max_age(PURPOSE_RESET), app_settings)


@router.get('')
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    rows, pagination = user_service.users.paginate(db, page=page, limit=limit, search=search)
    return success_response(
        'Users Data Fetched Successfully.',
        data=dump_many(UserResponse, rows),
        pagination=pagination,
    )


@router.post('', status_code=status.HTTP_201_CREATED)
def add_user(
    data: AddUserRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    principal: Principal = Depends(admin_only),
):
    user = user_service.add_user(db, hasher, data.model_dump(exclude_none=True))
    return success_response(
        'Successfully added a new user.',
        data=dump(UserResponse, user),
        status_code=status.HTTP_201_CREATED,
    )


@router.get('/count')
def count_users(
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    return success_response('Users Data Fetched Successfully.', data=user_service.count_users(db))


@router.patch('/password-update')
def update_password(
    data: PasswordUpdateRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    principal: Principal = Depends(get_current_principal),
):
    user = accounts.update_password(
        db,
        hasher,
        user_id=principal.id,
        old_password=data.old_password,
        password=data.password,
    )
    return success_response('Password updated successfully.', data=dump(UserResponse, user))


@router.post('/bulk-create', status_code=status.HTTP_201_CREATED)
def bulk_create_users(
    data: list[AddUserRequest],
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    principal: Principal = Depends(super_admin_only),
):
    created = user_service.bulk_create_users(db, hasher, [item.model_dump(exclude_none=True) for item in data])
    return success_response(
        'Successfully added a new user.',
        data=dump_many(UserResponse, created),
        status_code=status.HTTP_201_CREATED,
    )


@router.post('/forgot-password', dependencies=[Depends(require_logged_out)])
def forgot_password(
    data: EmailRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    mailer: Mailer = Depends(get_mailer),
    app_settings: Settings = Depends(get_settings),
):
    reset_token = accounts.forgot_password(db, tokens, mailer, email=data.email)
    response = success_response(f'Password reset code has been sent to :{data.email}')
    _set_reset_cookie(response, reset_token, tokens, app_settings)
    return response


@router.post('/reset-password', dependencies=[Depends(require_logged_out)])
def reset_password(
    data: ResetPasswordRequest,
    reset_token: str | None = Cookie(default=None, alias=RESET_COOKIE),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
    app_settings: Settings = Depends(get_settings),
):
    user = accounts.reset_password(db, tokens, hasher, token=reset_token, code=data.code, password=data.password)
    response = success_response('Password updated successfully.', data=dump(UserProfileResponse, user))
    clear_token_cookie(response, RESET_COOKIE, app_settings)
    return response


@router.post('/resend-password-reset-code', dependencies=[Depends(require_logged_out)])
def resend_password_reset_code(
    data: EmailRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    mailer: Mailer = Depends(get_mailer),
    app_settings: Settings = Depends(get_settings),
):
    reset_token = accounts.resend_password_reset_code(db, tokens, mailer, email=data.email)
    response = success_response(f'Email has been sent to {data.email}. Follow the instruction to reset your password')
    _set_reset_cookie(response, reset_token, tokens, app_settings)
    return response


@router.patch('/ban/{user_id}')
def ban_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    user = user_service.ban_user(db, user_id)
    return success_response('User account is successfully banned.', data=dump(UserResponse, user))


@router.patch('/unban/{user_id}')
def unban_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    user = user_service.unban_user(db, user_id)
    return success_response('User Unbanned Successfully', data=dump(UserResponse, user))


@router.patch('/role-update/{user_id}')
def update_user_role(
    user_id: int,
    data: RoleUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(super_admin_only),
):
    user = user_service.update_role(db, user_id, data.role)
    return success_response('User role updated successfully.', data=dump(UserResponse, user))


@router.get('/{user_id}')
def find_user_by_id(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = user_service.get_user_for(db, principal, user_id)
    schema = UserResponse if principal.role in PRIVILEGED_ROLES else UserProfileResponse
    return success_response('User Data Fetched Successfully.', data=dump(schema, user))


@router.patch('/{user_id}')
def update_user_by_id(
    user_id: int,
    data: UpdateUserRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    app_settings: Settings = Depends(get_settings),
):
    user, replaced_photo = user_service.update_user(db, principal, user_id, data.model_dump(exclude_unset=True))
    if replaced_photo:
        background_tasks.add_task(delete_image, app_settings.upload_dir, IMAGE_FOLDER, replaced_photo)

    schema = UserResponse if principal.role in PRIVILEGED_ROLES else UserProfileResponse
    return success_response('User data is successfully updated.', data=dump(schema, user))


@router.delete('/{user_id}')
def delete_user_by_id(
    user_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    app_settings: Settings = Depends(get_settings),
):
    user, photo = user_service.delete_user(db, principal, user_id)
    if photo:
        background_tasks.add_task(delete_image, app_settings.upload_dir, IMAGE_FOLDER, photo)
    return success_response('User account is successfully deleted.', data=dump(UserProfileResponse, user))
