"""Executive committee roster.

Members are kept in storage order; the ``index`` on each assignment is only a
display/seniority hint and is applied whenever a committee is read. Equal
indices fall back to assignment id, so reads are stable.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from kin_backend.core.errors import Conflict, NotFound, ValidationFailed
from kin_backend.models.committee import Committee, CommitteeMember
from kin_backend.models.user import User

logger = logging.getLogger(__name__)

MEMBER_FIELDS = ("index", "designation")


def _missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def ordered_members(committee: Committee) -> list[CommitteeMember]:
    return sorted(committee.members, key=lambda member: (member.index, member.id or 0))


def _load_committee(db: Session, committee_id: int) -> Committee:
    committee = (
        db.query(Committee)
        .options(selectinload(Committee.members))
        .filter(Committee.id == committee_id)
        .first()
    )
    if committee is None:
        raise NotFound("Couldn't find any data!")
    return committee


def get_committee(db: Session, committee_id: int) -> Committee:
    committee = _load_committee(db, committee_id)
    db.refresh(committee, attribute_names=["members"])
    return committee


def list_committees(db: Session) -> list[Committee]:
    committees = (
        db.query(Committee)
        .options(selectinload(Committee.members))
        .populate_existing()
        .order_by(Committee.id.asc())
        .all()
    )
    if not committees:
        raise NotFound("Couldn't find any data!")
    return committees


def create_committee(db: Session, *, name: str | None, year: str | None) -> Committee:
    if _missing(name):
        raise ValidationFailed("Name is required")
    if _missing(year):
        raise ValidationFailed("Year is required")
    name = name.strip()
    if db.query(Committee).filter(Committee.name == name).first() is not None:
        raise Conflict("This name already exists")

    committee = Committee(name=name, year=str(year).strip())
    db.add(committee)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("This name already exists") from exc
    db.refresh(committee)
    logger.info("Created committee %s (%s)", committee.id, committee.name)
    return committee


def update_committee(db: Session, committee_id: int, fields: dict) -> Committee:
    committee = _load_committee(db, committee_id)
    name = fields.get("name")
    if name is not None:
        if _missing(name):
            raise ValidationFailed("Name is required")
        name = name.strip()
        clash = (
            db.query(Committee)
            .filter(Committee.name == name, Committee.id != committee_id)
            .first()
        )
        if clash is not None:
            raise Conflict("This name already exists")
        committee.name = name
    if fields.get("year") is not None:
        committee.year = str(fields["year"]).strip()
    db.commit()
    return get_committee(db, committee_id)


def delete_committee(db: Session, committee_id: int) -> Committee:
    committee = _load_committee(db, committee_id)
    db.delete(committee)
    db.commit()
    logger.info("Deleted committee %s with %d members", committee_id, len(committee.members))
    return committee


def add_member(
    db: Session,
    *,
    committee_id: int | None,
    user_id: int | None,
    index: int | None,
    designation: str | None,
) -> CommitteeMember:
    if index is None:
        raise ValidationFailed("Index is required")
    if _missing(designation):
        raise ValidationFailed("Designation is required")
    if user_id is None:
        raise ValidationFailed("User id is required")
    if committee_id is None:
        raise ValidationFailed("EC id is required")

    committee = _load_committee(db, committee_id)
    if db.get(User, user_id) is None:
        raise NotFound("Couldn't find any user data.")

    existing = (
        db.query(CommitteeMember)
        .filter(CommitteeMember.committee_id == committee_id, CommitteeMember.user_id == user_id)
        .first()
    )
    if existing is not None:
        raise Conflict("Already added")

    member = CommitteeMember(user_id=user_id, index=index, designation=designation.strip())
    committee.members.append(member)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Already added") from exc
    db.refresh(member)
    logger.info("Added user %s to committee %s at index %s", user_id, committee_id, index)
    return member


def _load_member(db: Session, assignment_id: int) -> CommitteeMember:
    member = db.get(CommitteeMember, assignment_id)
    if member is None:
        raise NotFound("Couldn't find any member data.")
    return member


def update_member(db: Session, assignment_id: int, fields: dict) -> CommitteeMember:
    member = _load_member(db, assignment_id)
    for field in MEMBER_FIELDS:
        value = fields.get(field)
        if value is None:
            continue
        if field == "designation":
            if _missing(value):
                raise ValidationFailed("Designation is required")
            value = value.strip()
        setattr(member, field, value)
    db.commit()
    db.refresh(member)
    return member


def remove_member(db: Session, assignment_id: int) -> int:
    """Delete an assignment and return the id of the committee it belonged to."""
    member = _load_member(db, assignment_id)
    committee_id = member.committee_id
    db.delete(member)
    db.commit()
    logger.info("Removed assignment %s from committee %s", assignment_id, committee_id)
    return committee_id
