"""User model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func
from kin_backend.database import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "superAdmin"
ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_SUPER_ADMIN)
PRIVILEGED_ROLES = (ROLE_ADMIN, ROLE_SUPER_ADMIN)


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default=ROLE_USER)  # user/admin/superAdmin
    gender = Column(String)
    mobile = Column(String)
    photo = Column(String)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_banned = Column(Boolean, nullable=False, default=False)
    # bumped on every code-token mint and consumption; stale tokens carry an older value
    token_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
