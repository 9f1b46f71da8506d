import json

import pytest
from fastapi import BackgroundTasks

from kin_backend.auth.dependencies import Principal
from kin_backend.core.errors import NotFound
from kin_backend.models.post import Comment, Post
from kin_backend.models.user import ROLE_ADMIN
from kin_backend.routes import post_routes
from kin_backend.services.images import delete_image


def _body(response) -> dict:
    return json.loads(response.body)


@pytest.fixture
def admin(make_user) -> Principal:
    return Principal.from_user(make_user(email='admin@example.com', role=ROLE_ADMIN))


def _create(db, admin, title='Annual Meetup', image=None) -> dict:
    response = post_routes.create_post(
        data=post_routes.PostRequest(title=title, content='See you there.', image=image),
        db=db,
        principal=admin,
    )
    return _body(response)['payload']['data']


def test_anonymous_visitor_can_comment(client, db, admin) -> None:
    post = _create(db, admin)

    response = client.post(
        '/api/v1/posts/comment-on-post',
        json={'post_id': post['id'], 'name': ' Visitor ', 'email': 'visitor@example.com', 'comment': 'Nice!'},
    )

    assert response.status_code == 200
    data = response.json()['payload']['data']
    assert data['post_id'] == post['id']
    assert data['name'] == 'Visitor'
    assert data['comment'] == 'Nice!'


def test_comment_on_missing_post_is_not_found(client) -> None:
    response = client.post('/api/v1/posts/comment-on-post', json={'post_id': 99, 'name': 'Visitor', 'comment': 'Hi'})

    assert response.status_code == 404
    assert response.json()['error']['message'] == "Couldn't find any post data."


def test_post_by_slug_includes_comments(client, db, admin) -> None:
    post = _create(db, admin, title='Annual Meetup 2024!')
    for text in ('First', 'Second'):
        post_routes.comment_on_post(
            data=post_routes.CommentRequest(post_id=post['id'], name='Visitor', comment=text),
            db=db,
        )

    response = client.get('/api/v1/posts/annual-meetup-2024')

    assert response.status_code == 200
    data = response.json()['payload']['data']
    assert data['slug'] == 'annual-meetup-2024'
    assert [comment['comment'] for comment in data['comments']] == ['First', 'Second']


def test_unknown_slug_is_not_found(db) -> None:
    with pytest.raises(NotFound):
        post_routes.find_post_by_slug(slug='missing', db=db)


def test_delete_by_slug_schedules_image_cleanup(db, admin, app_settings) -> None:
    post = _create(db, admin, image='cover.png')
    post_routes.comment_on_post(
        data=post_routes.CommentRequest(post_id=post['id'], name='Visitor', comment='Bye'),
        db=db,
    )
    background_tasks = BackgroundTasks()

    response = post_routes.delete_post_by_slug(
        slug=post['slug'],
        background_tasks=background_tasks,
        db=db,
        principal=admin,
        app_settings=app_settings,
    )

    assert _body(response)['payload']['data']['slug'] == 'annual-meetup'
    assert db.query(Post).count() == 0
    assert db.query(Comment).count() == 0
    assert len(background_tasks.tasks) == 1
    task = background_tasks.tasks[0]
    assert task.func is delete_image
    assert task.args == (app_settings.upload_dir, 'posts', 'cover.png')


def test_retitled_post_moves_slug_and_drops_old_image(db, admin, app_settings) -> None:
    post = _create(db, admin, image='old.png')
    background_tasks = BackgroundTasks()

    response = post_routes.update_post_by_id(
        post_id=post['id'],
        data=post_routes.PostRequest(title='Winter Meetup', image='new.png'),
        background_tasks=background_tasks,
        db=db,
        principal=admin,
        app_settings=app_settings,
    )

    data = _body(response)['payload']['data']
    assert data['slug'] == 'winter-meetup'
    assert [task.args for task in background_tasks.tasks] == [(app_settings.upload_dir, 'posts', 'old.png')]


def test_delete_comment_requires_admin(client, db, tokens, make_user, admin) -> None:
    post = _create(db, admin)
    comment = _body(post_routes.comment_on_post(
        data=post_routes.CommentRequest(post_id=post['id'], name='Visitor', comment='Spam'),
        db=db,
    ))['payload']['data']
    member = make_user(email='member@example.com')
    access_token = tokens.issue_access_token(member.id, member.email)

    response = client.delete(
        f"/api/v1/posts/delete-comment/{comment['id']}",
        headers={'Authorization': f'Bearer {access_token}'},
    )

    assert response.status_code == 403
    assert db.get(Comment, comment['id']) is not None
