from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from kin_backend.auth.dependencies import Principal, get_settings, require_roles
from kin_backend.core.config import Settings
from kin_backend.core.responses import success_response
from kin_backend.database import get_db
from kin_backend.models.post import Post
from kin_backend.models.user import ROLE_ADMIN, ROLE_SUPER_ADMIN
from kin_backend.schemas import CommentResponse, PostDetailResponse, PostResponse, dump, dump_many
from kin_backend.services import posts as post_service
from kin_backend.services.images import delete_image

router = APIRouter(tags=['posts'])

IMAGE_FOLDER = 'posts'

admin_only = require_roles(ROLE_ADMIN, ROLE_SUPER_ADMIN)


class PostRequest(BaseModel):
    title: str | None = None
    content: str | None = None
    image: str | None = None


class CommentRequest(BaseModel):
    post_id: int | None = None
    name: str | None = None
    email: str | None = None
    comment: str | None = None


@router.get('')
def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    rows, pagination = post_service.posts.paginate(
        db,
        page=page,
        limit=limit,
        search=search,
        order_by=Post.id.desc(),
    )
    return success_response(
        'Posts data fetched successfully.',
        data=dump_many(PostResponse, rows),
        pagination=pagination,
    )


@router.post('')
def create_post(
    data: PostRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    post = post_service.create_post(db, data.model_dump(exclude_none=True))
    return success_response('Post created successfully.', data=dump(PostResponse, post))


@router.post('/comment-on-post')
def comment_on_post(data: CommentRequest, db: Session = Depends(get_db)):
    comment = post_service.add_comment(
        db,
        post_id=data.post_id,
        name=data.name,
        email=data.email,
        comment=data.comment,
    )
    return success_response('Comment added successfully.', data=dump(CommentResponse, comment))


@router.delete('/delete-comment/{comment_id}')
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    comment = post_service.delete_comment(db, comment_id)
    return success_response('Comment deleted successfully.', data=dump(CommentResponse, comment))


@router.patch('/{post_id}')
def update_post_by_id(
    post_id: int,
    data: PostRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
    app_settings: Settings = Depends(get_settings),
):
    post, replaced_image = post_service.update_post(db, post_id, data.model_dump(exclude_unset=True))
    if replaced_image:
        background_tasks.add_task(delete_image, app_settings.upload_dir, IMAGE_FOLDER, replaced_image)
    return success_response('Post updated successfully.', data=dump(PostResponse, post))


@router.get('/{slug}')
def find_post_by_slug(slug: str, db: Session = Depends(get_db)):
    post = post_service.get_post_by_slug(db, slug)
    return success_response('Post data fetched successfully.', data=dump(PostDetailResponse, post))


@router.delete('/{slug}')
def delete_post_by_slug(
    slug: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
    app_settings: Settings = Depends(get_settings),
):
    post, image = post_service.delete_post_by_slug(db, slug)
    if image:
        background_tasks.add_task(delete_image, app_settings.upload_dir, IMAGE_FOLDER, image)
    return success_response('Post deleted successfully.', data=dump(PostResponse, post))
