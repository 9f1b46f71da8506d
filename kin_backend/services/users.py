import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from kin_backend.auth.passwords import PasswordHasher
from kin_backend.core.errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationFailed
from kin_backend.models.committee import CommitteeMember
from kin_backend.models.user import (
    PRIVILEGED_ROLES,
    ROLE_ADMIN,
    ROLE_SUPER_ADMIN,
    ROLE_USER,
    ROLES,
    User,
)
from kin_backend.services.accounts import find_user_by_email, normalize_email, require
from kin_backend.services.crud import ResourceCRUD

logger = logging.getLogger(__name__)

users = ResourceCRUD(
    User,
    label="user",
    natural_key="email",
    search_fields=("name", "email", "mobile"),
    image_field="photo",
    immutable_fields=("id", "created_at", "updated_at", "hashed_password", "token_version"),
)

# fields only admins may write on someone's profile
ADMIN_ONLY_FIELDS = ("is_verified", "is_banned")


def _build_user(hasher: PasswordHasher, data: dict) -> User:
    require(data.get("email"), "Email is required.")
    require(data.get("password"), "Password is required.")
    role = data.get("role") or ROLE_USER
    if role not in ROLES:
        raise ValidationFailed("Invalid role.")

    fields = {
        key: value
        for key, value in data.items()
        if key in User.__table__.columns and key not in users.immutable_fields
    }
    fields.update(
        email=normalize_email(data["email"]),
        hashed_password=hasher.hash(data["password"]),
        role=role,
        is_verified=True,
        is_banned=False,
        token_version=0,
    )
    return User(**fields)


def add_user(db: Session, hasher: PasswordHasher, data: dict) -> User:
    """Create an account on behalf of an admin. Such accounts skip verification."""
    user = _build_user(hasher, data)
    if find_user_by_email(db, user.email) is not None:
        raise Conflict("Already have an account.")
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Admin added user %s", user.email)
    return user


def bulk_create_users(db: Session, hasher: PasswordHasher, items: list[dict]) -> list[User]:
    if not items:
        raise ValidationFailed("No data provided.")
    created = [_build_user(hasher, item) for item in items]
    emails = [user.email for user in created]
    if len(set(emails)) != len(emails):
        raise Conflict("Email already exists!")
    if db.query(User).filter(User.email.in_(emails)).first() is not None:
        raise Conflict("Email already exists!")

    db.add_all(created)
    db.commit()
    for user in created:
        db.refresh(user)
    logger.info("Bulk created %d users", len(created))
    return created


def count_users(db: Session) -> dict:
    rows = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    total = sum(rows.values())
    if not total:
        raise NotFound("Couldn't find any data!")
    return {
        "total": total,
        "superAdmin": rows.get(ROLE_SUPER_ADMIN, 0),
        "admin": rows.get(ROLE_ADMIN, 0),
    }


def get_user_for(db: Session, principal, user_id: int) -> User:
    user = users.get(db, user_id)
    if principal.role not in PRIVILEGED_ROLES and principal.id != user.id:
        raise Unauthorized("You can't access this data.")
    return user


def update_user(db: Session, principal, user_id: int, data: dict) -> tuple[User, str | None]:
    user = users.get(db, user_id)

    if "role" in data and data["role"] is not None:
        if principal.role != ROLE_SUPER_ADMIN:
            raise Forbidden("You can't change your role.")
        if data["role"] not in ROLES:
            raise ValidationFailed("Invalid role.")
        if user.role == ROLE_SUPER_ADMIN:
            raise Forbidden("You can't change this account role.")

    # a superAdmin account is only ever edited by its owner
    if user.role == ROLE_SUPER_ADMIN and principal.id != user.id:
        raise Forbidden("You can't change this account.")

    if principal.role not in PRIVILEGED_ROLES:
        if principal.id != user.id:
            raise Unauthorized("You can't access this data.")
        for field in ADMIN_ONLY_FIELDS:
            if field in data:
                raise Unauthorized(f"you can't update {field} field.")

    if "email" in data and data["email"]:
        data = {**data, "email": normalize_email(data["email"])}
    return users.update(db, user_id, data)


def delete_user(db: Session, principal, user_id: int) -> tuple[User, str | None]:
    user = users.get(db, user_id)
    if user.role == ROLE_SUPER_ADMIN:
        raise Forbidden("Can't delete this account.")
    if principal.role not in PRIVILEGED_ROLES and principal.id != user.id:
        raise Unauthorized("Can't delete this account.")

    db.query(CommitteeMember).filter(CommitteeMember.user_id == user_id).delete(synchronize_session="fetch")
    return users.delete(db, user_id)


def ban_user(db: Session, user_id: int) -> User:
    user = users.get(db, user_id)
    if user.role == ROLE_SUPER_ADMIN:
        raise Forbidden("You can't ban this account.")
    if user.is_banned:
        raise ValidationFailed("User is already banned")
    user.is_banned = True
    db.commit()
    db.refresh(user)
    logger.info("Banned user %s", user.id)
    return user


def unban_user(db: Session, user_id: int) -> User:
    user = users.get(db, user_id)
    if not user.is_banned:
        raise ValidationFailed("User is already unbanned")
    user.is_banned = False
    db.commit()
    db.refresh(user)
    logger.info("Unbanned user %s", user.id)
    return user


def update_role(db: Session, user_id: int, role: str | None) -> User:
    require(role, "Role is required.")
    if role not in ROLES:
        raise ValidationFailed("Invalid role.")
    user = users.get(db, user_id)
    if user.role == ROLE_SUPER_ADMIN:
        raise Forbidden("You can't change this account role.")
    user.role = role
    db.commit()
    db.refresh(user)
    logger.info("Role of user %s set to %s", user.id, role)
    return user
