"""Account verification, login and password reset workflows.

Per email the account moves ``Unregistered -> PendingVerification -> Verified``;
a password reset takes a verified account through ``PasswordResetPending`` and
back without touching verification. Every function either returns its result
or raises exactly one :class:`~kin_backend.core.errors.AppError`.

One-time codes never reach the database. The code's hash travels inside a
purpose-scoped token together with the user's ``token_version``; the version
is bumped on every mint and on every successful use, so only the newest token
is honoured and each is honoured once.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kin_backend.auth.jwt_handler import PURPOSE_RESET, PURPOSE_VERIFY, TokenService
from kin_backend.auth.passwords import PasswordHasher
from kin_backend.core.errors import (
    AlreadyActive,
    Conflict,
    Forbidden,
    NotFound,
    TokenInvalid,
    Unauthorized,
    ValidationFailed,
)
from kin_backend.models.user import PRIVILEGED_ROLES, ROLE_USER, User
from kin_backend.services.mailer import Mailer

logger = logging.getLogger(__name__)

ACTIVATION_SUBJECT = "Account Activation Code."
RESET_SUBJECT = "Password Reset Code"
NO_ACCOUNT_MESSAGE = "Couldn't find any user account!. Please register."
BAD_CREDENTIALS_MESSAGE = "Invalid email or password."


def require(value, message: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationFailed(message)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user_by_email(db: Session, email: str | None) -> User | None:
    if not email:
        return None
    return db.query(User).filter(User.email == normalize_email(email)).first()


def _mint_code_token(tokens: TokenService, user: User, purpose: str) -> tuple[str, str]:
    user.token_version = (user.token_version or 0) + 1
    return tokens.issue_code_token(purpose, user.email, user.token_version)


def _consume_code_token(db: Session, tokens: TokenService, token: str | None, purpose: str) -> tuple[User, dict]:
    claims = tokens.verify(token, purpose)
    user = find_user_by_email(db, claims.get("email"))
    if user is None:
        raise NotFound(NO_ACCOUNT_MESSAGE)
    return user, claims


def _check_version(user: User, claims: dict) -> None:
    if claims.get("ver") != user.token_version:
        logger.debug("Stale token for %s: ver=%r current=%r", user.email, claims.get("ver"), user.token_version)
        raise TokenInvalid()


def _send_or_rollback(db: Session, mailer: Mailer, email: str, subject: str, code: str, token: str) -> None:
    try:
        mailer.send(email, subject, code, token)
    except Exception:
        db.rollback()
        raise


def register(
    db: Session,
    tokens: TokenService,
    hasher: PasswordHasher,
    mailer: Mailer,
    *,
    name: str | None,
    email: str | None,
    password: str | None,
    gender: str | None = None,
    mobile: str | None = None,
) -> tuple[User, str]:
    require(name, "Name is required.")
    require(email, "Please provide email")
    require(password, "Please provide password")

    email = normalize_email(email)
    if find_user_by_email(db, email) is not None:
        raise Conflict("Already have an account.Please login.")

    user = User(
        name=name.strip(),
        email=email,
        hashed_password=hasher.hash(password),
        role=ROLE_USER,
        gender=gender,
        mobile=mobile,
        is_verified=False,
        is_banned=False,
        token_version=0,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Already have an account.Please login.") from exc

    verify_token, code = _mint_code_token(tokens, user, PURPOSE_VERIFY)
    # committed before SMTP so no write transaction is held while mailing
    db.commit()

    try:
        mailer.send(email, ACTIVATION_SUBJECT, code, verify_token)
    except Exception:
        db.delete(user)
        db.commit()
        logger.warning("Removed %s after the activation email failed", email)
        raise
    db.refresh(user)
    logger.info("Registered %s; pending verification", email)
    return user, verify_token


def activate(db: Session, tokens: TokenService, *, token: str | None, code: str | None) -> User:
    require(code, "Please provide code")
    user, claims = _consume_code_token(db, tokens, token, PURPOSE_VERIFY)
    if user.is_verified:
        raise AlreadyActive()
    _check_version(user, claims)
    tokens.check_code(claims, code)

    user.is_verified = True
    user.token_version += 1
    db.commit()
    db.refresh(user)
    logger.info("Activated %s", user.email)
    return user


def resend_activation(db: Session, tokens: TokenService, mailer: Mailer, *, email: str | None) -> str:
    require(email, "Please provide email")
    user = find_user_by_email(db, email)
    if user is None:
        raise NotFound(NO_ACCOUNT_MESSAGE)
    if user.is_verified:
        raise AlreadyActive()

    verify_token, code = _mint_code_token(tokens, user, PURPOSE_VERIFY)
    _send_or_rollback(db, mailer, user.email, ACTIVATION_SUBJECT, code, verify_token)
    db.commit()
    logger.info("Resent activation code to %s", user.email)
    return verify_token


def _authenticate(db: Session, hasher: PasswordHasher, email: str | None, password: str | None) -> User:
    require(email, "Please provide email")
    require(password, "Please provide password")

    user = find_user_by_email(db, email)
    if user is None or not hasher.verify(password, user.hashed_password):
        raise Unauthorized(BAD_CREDENTIALS_MESSAGE)
    return user


def _check_can_login(user: User) -> None:
    if not user.is_verified:
        raise Forbidden("Please active your account.")
    if user.is_banned:
        raise Forbidden("You are banned. Please contact with authority")


def login(
    db: Session,
    tokens: TokenService,
    hasher: PasswordHasher,
    *,
    email: str | None,
    password: str | None,
) -> tuple[User, str]:
    user = _authenticate(db, hasher, email, password)
    _check_can_login(user)
    logger.info("Login for %s", user.email)
    return user, tokens.issue_access_token(user.id, user.email)


def dashboard_login(
    db: Session,
    tokens: TokenService,
    hasher: PasswordHasher,
    *,
    email: str | None,
    password: str | None,
) -> tuple[User, str]:
    user = _authenticate(db, hasher, email, password)
    if user.role not in PRIVILEGED_ROLES:
        raise Forbidden("Please contact with authority.")
    _check_can_login(user)
    logger.info("Dashboard login for %s", user.email)
    return user, tokens.issue_access_token(user.id, user.email)


def forgot_password(db: Session, tokens: TokenService, mailer: Mailer, *, email: str | None) -> str:
    require(email, "Email is required.Please enter your email address.")
    user = find_user_by_email(db, email)
    if user is None:
        raise NotFound("Email not found. Please register first.")

    reset_token, code = _mint_code_token(tokens, user, PURPOSE_RESET)
    _send_or_rollback(db, mailer, user.email, RESET_SUBJECT, code, reset_token)
    db.commit()
    logger.info("Password reset requested for %s", user.email)
    return reset_token


resend_password_reset_code = forgot_password


def reset_password(
    db: Session,
    tokens: TokenService,
    hasher: PasswordHasher,
    *,
    token: str | None,
    code: str | None,
    password: str | None,
) -> User:
    require(code, "Code is required.")
    require(password, "Password is required.")
    user, claims = _consume_code_token(db, tokens, token, PURPOSE_RESET)
    _check_version(user, claims)
    tokens.check_code(claims, code)

    user.hashed_password = hasher.hash(password)
    user.token_version += 1
    db.commit()
    db.refresh(user)
    logger.info("Password reset for %s", user.email)
    return user


def update_password(
    db: Session,
    hasher: PasswordHasher,
    *,
    user_id: int,
    old_password: str | None,
    password: str | None,
) -> User:
    require(old_password, "Old password is required.")
    require(password, "Password is required.")
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("Couldn't find any data!")
    if not hasher.verify(old_password, user.hashed_password):
        raise ValidationFailed("Wrong password")

    user.hashed_password = hasher.hash(password)
    db.commit()
    db.refresh(user)
    logger.info("Password updated for %s", user.email)
    return user
