"""Response shapes. Everything leaving the API goes through one of these."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserResponse(ORMModel):
    id: int
    name: str | None = None
    email: str
    role: str
    gender: str | None = None
    mobile: str | None = None
    photo: str | None = None
    is_verified: bool
    is_banned: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserProfileResponse(ORMModel):
    """What a non-admin may see of their own account."""

    id: int
    name: str | None = None
    email: str
    gender: str | None = None
    mobile: str | None = None
    photo: str | None = None


class MemberUserResponse(ORMModel):
    id: int
    name: str | None = None
    email: str
    photo: str | None = None


class CommitteeMemberResponse(ORMModel):
    id: int
    committee_id: int | None = None
    user_id: int
    index: int
    designation: str
    user: MemberUserResponse | None = None


class CommitteeResponse(ORMModel):
    id: int
    name: str
    year: str
    members: list[CommitteeMemberResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AdvisorResponse(ORMModel):
    id: int
    name: str | None = None
    email: str
    mobile: str | None = None
    designation: str | None = None
    department: str | None = None
    photo: str | None = None
    index: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CommentResponse(ORMModel):
    id: int
    post_id: int
    name: str
    email: str | None = None
    comment: str
    created_at: datetime | None = None


class PostResponse(ORMModel):
    id: int
    title: str
    slug: str
    content: str | None = None
    image: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PostDetailResponse(PostResponse):
    comments: list[CommentResponse] = []


def dump(schema: type[BaseModel], obj: Any) -> dict:
    return schema.model_validate(obj).model_dump(mode="json")


def dump_many(schema: type[BaseModel], objs) -> list[dict]:
    return [dump(schema, obj) for obj in objs]
