from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from kin_backend.auth.dependencies import Principal, require_roles
from kin_backend.core.responses import success_response
from kin_backend.database import get_db
from kin_backend.models.committee import Committee
from kin_backend.models.user import ROLE_ADMIN, ROLE_SUPER_ADMIN
from kin_backend.schemas import CommitteeMemberResponse, CommitteeResponse, dump, dump_many
from kin_backend.services import roster

router = APIRouter(tags=['ec'])

admin_only = require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)


class CreateCommitteeRequest(BaseModel):
    name: str | None = None
    year: str | None = None


class AddMemberRequest(BaseModel):
    committee_id: int | None = None
    user_id: int | None = None
    index: int | None = None
    designation: str | None = None


class UpdateMemberRequest(BaseModel):
    index: int | None = None
    designation: str | None = None


def serialize_committee(committee: Committee) -> dict:
    data = dump(CommitteeResponse, committee)
    data['members'] = dump_many(CommitteeMemberResponse, roster.ordered_members(committee))
    return data


@router.get('')
def list_committees(db: Session = Depends(get_db)):
    committees = roster.list_committees(db)
    return success_response(
        "EC's Data Fetched Successfully.",
        data=[serialize_committee(committee) for committee in committees],
    )


@router.post('')
def add_committee(
    data: CreateCommitteeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    committee = roster.create_committee(db, name=data.name, year=data.year)
    return success_response('New ec added successfully', data=serialize_committee(committee))


@router.post('/member-add-in-ec')
def add_member_in_committee(
    data: AddMemberRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    member = roster.add_member(
        db,
        committee_id=data.committee_id,
        user_id=data.user_id,
        index=data.index,
        designation=data.designation,
    )
    committee = roster.get_committee(db, member.committee_id)
    return success_response('New member added successfully', data=serialize_committee(committee))


@router.patch('/update-member/{member_id}')
def update_member(
    member_id: int,
    data: UpdateMemberRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    member = roster.update_member(db, member_id, data.model_dump(exclude_none=True))
    committee = roster.get_committee(db, member.committee_id)
    return success_response('Member data updated.', data=serialize_committee(committee))


@router.delete('/remove-member/{member_id}')
def remove_member(
    member_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    committee_id = roster.remove_member(db, member_id)
    committee = roster.get_committee(db, committee_id)
    return success_response('Member data removed successfully.', data=serialize_committee(committee))


@router.get('/{committee_id}')
def find_committee_by_id(committee_id: int, db: Session = Depends(get_db)):
    committee = roster.get_committee(db, committee_id)
    return success_response('EC Data Fetched Successfully.', data=serialize_committee(committee))


@router.patch('/{committee_id}')
def update_committee(
    committee_id: int,
    data: CreateCommitteeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    committee = roster.update_committee(db, committee_id, data.model_dump(exclude_none=True))
    return success_response('Ec data is successfully updated.', data=serialize_committee(committee))


@router.delete('/{committee_id}')
def delete_committee(
    committee_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    committee = roster.delete_committee(db, committee_id)
    return success_response('Ec Data is successfully deleted.', data=serialize_committee(committee))
