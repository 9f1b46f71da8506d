"""Executive committee and member assignment models."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from kin_backend.database import Base
from kin_backend.models.user import User


class Committee(Base):
    """An executive committee (EC) for a given year."""
    __tablename__ = "committees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    year = Column(String, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    members = relationship(
        "CommitteeMember",
        back_populates="committee",
        cascade="all, delete-orphan",
    )


class CommitteeMember(Base):
    """Assignment of a user to a committee, ordered by ``index``."""
    __tablename__ = "committee_members"
    __table_args__ = (
        UniqueConstraint("committee_id", "user_id", name="uq_committee_member"),
    )

    id = Column(Integer, primary_key=True, index=True)
    committee_id = Column(Integer, ForeignKey("committees.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    index = Column(Integer, nullable=False)
    designation = Column(String, nullable=False)

    committee = relationship("Committee", back_populates="members")
    user = relationship(User, lazy="joined")
