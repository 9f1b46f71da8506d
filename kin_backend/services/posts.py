import logging
import re

from sqlalchemy.orm import Session

from kin_backend.core.errors import NotFound, ValidationFailed
from kin_backend.models.post import Comment, Post
from kin_backend.services.crud import ResourceCRUD

logger = logging.getLogger(__name__)

posts = ResourceCRUD(
    Post,
    label='post',
    natural_key='slug',
    search_fields=('title', 'content'),
    image_field='image',
)


def slugify(title: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', title.strip().lower()).strip('-')
    if not slug:
        raise ValidationFailed('Title must contain letters or digits.')
    return slug


def create_post(db: Session, data: dict) -> Post:
    title = data.get('title')
    if not title or not title.strip():
        raise ValidationFailed('Title is required.')
    return posts.create(db, {**data, 'title': title.strip(), 'slug': slugify(title)})


def update_post(db: Session, post_id: int, data: dict) -> tuple[Post, str | None]:
    title = data.get('title')
    if title is not None:
        if not title.strip():
            raise ValidationFailed('Title is required.')
        data = {**data, 'title': title.strip(), 'slug': slugify(title)}
    return posts.update(db, post_id, data)


def get_post_by_slug(db: Session, slug: str) -> Post:
    return posts.get_by(db, 'slug', slug)


def delete_post_by_slug(db: Session, slug: str) -> tuple[Post, str | None]:
    post = get_post_by_slug(db, slug)
    return posts.delete(db, post.id)


def add_comment(
    db: Session,
    *,
    post_id: int | None,
    name: str | None,
    comment: str | None,
    email: str | None = None,
) -> Comment:
    if post_id is None:
        raise ValidationFailed('Post id is required.')
    if not name or not name.strip():
        raise ValidationFailed('Name is required.')
    if not comment or not comment.strip():
        raise ValidationFailed('Comment is required.')
    posts.get(db, post_id)

    record = Comment(post_id=post_id, name=name.strip(), email=email, comment=comment.strip())
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info('Comment %s added to post %s', record.id, post_id)
    return record


def delete_comment(db: Session, comment_id: int) -> Comment:
    record = db.get(Comment, comment_id)
    if record is None:
        raise NotFound("Couldn't find any comment data.")
    db.delete(record)
    db.commit()
    return record
