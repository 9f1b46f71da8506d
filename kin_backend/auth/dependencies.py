from dataclasses import dataclass

from fastapi import Cookie, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from kin_backend.auth.cookies import ACCESS_COOKIE
from kin_backend.auth.jwt_handler import PURPOSE_ACCESS, TokenService
from kin_backend.auth.passwords import PasswordHasher
from kin_backend.core.config import Settings
from kin_backend.core.errors import Forbidden, TokenInvalid, Unauthorized, ValidationFailed
from kin_backend.database import get_db
from kin_backend.models.user import User
from kin_backend.services.mailer import Mailer

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as seen by the services."""

    id: int
    role: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=user.role, email=user.email)


# services are built once per app in create_app and kept on app.state
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def resolve_principal(db: Session, tokens: TokenService, token: str | None) -> Principal:
    if not token:
        raise Unauthorized("Please login first.")
    try:
        claims = tokens.verify(token, PURPOSE_ACCESS)
        user_id = int(claims.get("sub", ""))
    except (TokenInvalid, ValueError) as exc:
        raise Unauthorized("Invalid token. Please login again.") from exc

    user = db.get(User, user_id)
    if user is None:
        raise Unauthorized("User not found.")
    if user.is_banned:
        raise Forbidden("You are banned. Please contact with authority.")
    return Principal.from_user(user)


def _bearer_or_cookie(
    access_token: str | None,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    if access_token:
        return access_token
    return credentials.credentials if credentials else None


def get_current_principal(
    access_token: str | None = Cookie(default=None, alias=ACCESS_COOKIE),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> Principal:
    return resolve_principal(db, tokens, _bearer_or_cookie(access_token, credentials))


def get_optional_principal(
    access_token: str | None = Cookie(default=None, alias=ACCESS_COOKIE),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> Principal | None:
    try:
        return resolve_principal(db, tokens, _bearer_or_cookie(access_token, credentials))
    except (Unauthorized, Forbidden):
        return None


def require_roles(*roles: str):
    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise Forbidden("Forbidden. You don't have permission to access this resource.")
        return principal

    return dependency


def require_logged_out(
    access_token: str | None = Cookie(default=None, alias=ACCESS_COOKIE),
    tokens: TokenService = Depends(get_token_service),
) -> None:
    if not access_token:
        return
    try:
        tokens.verify(access_token, PURPOSE_ACCESS)
    except TokenInvalid:
        return
    raise ValidationFailed("You are already logged in.")
