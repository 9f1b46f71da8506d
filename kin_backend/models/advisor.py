"""Advisor model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, func
from kin_backend.database import Base


class Advisor(Base):
    """Represents a faculty advisor of the organization."""
    __tablename__ = "advisors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    email = Column(String, unique=True, index=True, nullable=False)
    mobile = Column(String)
    designation = Column(String)
    department = Column(String)
    photo = Column(String)
    index = Column(Integer)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
