from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from kin_backend.auth.dependencies import Principal, get_settings, require_roles
from kin_backend.core.config import Settings
from kin_backend.core.responses import success_response
from kin_backend.database import get_db
from kin_backend.models.advisor import Advisor
from kin_backend.models.user import ROLE_ADMIN, ROLE_SUPER_ADMIN
from kin_backend.schemas import AdvisorResponse, dump, dump_many
from kin_backend.services.crud import ResourceCRUD
from kin_backend.services.images import delete_image

router = APIRouter(tags=['advisors'])

IMAGE_FOLDER = 'advisors'

admin_only = require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)

advisors = ResourceCRUD(
    Advisor,
    label='advisor',
    natural_key='email',
    search_fields=('name', 'email', 'mobile'),
    image_field='photo',
)


class AdvisorRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    mobile: str | None = None
    designation: str | None = None
    department: str | None = None
    photo: str | None = None
    index: int | None = None


class BulkDeleteRequest(BaseModel):
    ids: list[int] = []


@router.get('')
def list_advisors(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    rows, pagination = advisors.paginate(
        db,
        page=page,
        limit=limit,
        search=search,
        order_by=Advisor.index.asc(),
    )
    return success_response(
        'Advisors data fetched successfully.',
        data=dump_many(AdvisorResponse, rows),
        pagination=pagination,
    )


@router.post('')
def create_advisor(
    data: AdvisorRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    advisor = advisors.create(db, data.model_dump(exclude_none=True))
    return success_response('Advisor data created successfully.', data=dump(AdvisorResponse, advisor))


@router.post('/bulk-create')
def bulk_create_advisors(
    data: list[AdvisorRequest],
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    created = advisors.bulk_create(db, [item.model_dump(exclude_none=True) for item in data])
    return success_response('Advisors data created successfully.', data=dump_many(AdvisorResponse, created))


@router.delete('/bulk-delete')
def bulk_delete_advisors(
    data: BulkDeleteRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
    app_settings: Settings = Depends(get_settings),
):
    deleted, photos = advisors.bulk_delete(db, data.ids)
    for photo in photos:
        background_tasks.add_task(delete_image, app_settings.upload_dir, IMAGE_FOLDER, photo)
    return success_response('Advisors data deleted successfully.', data=dump_many(AdvisorResponse, deleted))


@router.get('/{advisor_id}')
def find_advisor_by_id(
    advisor_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    advisor = advisors.get(db, advisor_id)
    return success_response('Advisor data fetched successfully.', data=dump(AdvisorResponse, advisor))


@router.patch('/{advisor_id}')
def update_advisor_by_id(
    advisor_id: int,
    data: AdvisorRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
    app_settings: Settings = Depends(get_settings),
):
    advisor, replaced_photo = advisors.update(db, advisor_id, data.model_dump(exclude_unset=True))
    if replaced_photo:
        background_tasks.add_task(delete_image, app_settings.upload_dir, IMAGE_FOLDER, replaced_photo)
    return success_response('Advisor data updated successfully.', data=dump(AdvisorResponse, advisor))


@router.delete('/{advisor_id}')
def delete_advisor_by_id(
    advisor_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
    app_settings: Settings = Depends(get_settings),
):
    advisor, photo = advisors.delete(db, advisor_id)
    if photo:
        background_tasks.add_task(delete_image, app_settings.upload_dir, IMAGE_FOLDER, photo)
    return success_response('Advisor data deleted successfully.', data=dump(AdvisorResponse, advisor))
