import json

import pytest
from fastapi import BackgroundTasks

from kin_backend.auth.dependencies import Principal
from kin_backend.core.errors import NotFound
from kin_backend.models.advisor import Advisor
from kin_backend.models.user import ROLE_ADMIN, User
from kin_backend.routes import advisor_routes
from kin_backend.services.images import delete_image


def _body(response) -> dict:
    return json.loads(response.body)


@pytest.fixture
def admin(make_user) -> Principal:
    return Principal.from_user(make_user(email='admin@example.com', role=ROLE_ADMIN))


def _create(db, admin, email, photo=None, index=None) -> dict:
    response = advisor_routes.create_advisor(
        data=advisor_routes.AdvisorRequest(name='Advisor', email=email, photo=photo, index=index),
        db=db,
        principal=admin,
    )
    return _body(response)['payload']['data']


def _bearer(tokens, user) -> dict:
    return {'Authorization': f'Bearer {tokens.issue_access_token(user.id, user.email)}'}


def test_find_advisor_by_id_is_admin_only(client, db, tokens, make_user, admin) -> None:
    advisor = _create(db, admin, 'advisor@example.com')
    member = make_user(email='member@example.com')
    staff = db.get(User, admin.id)

    assert client.get(f"/api/v1/advisors/{advisor['id']}").status_code == 401

    response = client.get(f"/api/v1/advisors/{advisor['id']}", headers=_bearer(tokens, member))
    assert response.status_code == 403
    assert response.json()['error']['message'] == "Forbidden. You don't have permission to access this resource."

    response = client.get(f"/api/v1/advisors/{advisor['id']}", headers=_bearer(tokens, staff))
    assert response.status_code == 200
    assert response.json()['payload']['data']['email'] == 'advisor@example.com'


def test_list_advisors_is_public_and_ordered_by_index(client, db, admin) -> None:
    _create(db, admin, 'second@example.com', index=2)
    _create(db, admin, 'first@example.com', index=1)

    response = client.get('/api/v1/advisors')

    assert response.status_code == 200
    assert [row['email'] for row in response.json()['payload']['data']] == ['first@example.com', 'second@example.com']


def test_bulk_delete_schedules_cleanup_for_each_photo(db, admin, app_settings) -> None:
    first = _create(db, admin, 'one@example.com', photo='one.png')
    second = _create(db, admin, 'two@example.com')
    third = _create(db, admin, 'three@example.com', photo='three.png')
    background_tasks = BackgroundTasks()

    response = advisor_routes.bulk_delete_advisors(
        data=advisor_routes.BulkDeleteRequest(ids=[first['id'], second['id'], third['id']]),
        background_tasks=background_tasks,
        db=db,
        principal=admin,
        app_settings=app_settings,
    )

    assert len(_body(response)['payload']['data']) == 3
    assert db.query(Advisor).count() == 0
    assert all(task.func is delete_image for task in background_tasks.tasks)
    assert sorted(task.args for task in background_tasks.tasks) == [
        (app_settings.upload_dir, 'advisors', 'one.png'),
        (app_settings.upload_dir, 'advisors', 'three.png'),
    ]


def test_bulk_delete_of_unknown_ids_is_not_found(db, admin, app_settings) -> None:
    background_tasks = BackgroundTasks()

    with pytest.raises(NotFound):
        advisor_routes.bulk_delete_advisors(
            data=advisor_routes.BulkDeleteRequest(ids=[404]),
            background_tasks=background_tasks,
            db=db,
            principal=admin,
            app_settings=app_settings,
        )

    assert background_tasks.tasks == []


def test_photo_replacement_schedules_cleanup(db, admin, app_settings) -> None:
    advisor = _create(db, admin, 'advisor@example.com', photo='old.png')
    background_tasks = BackgroundTasks()

    response = advisor_routes.update_advisor_by_id(
        advisor_id=advisor['id'],
        data=advisor_routes.AdvisorRequest(photo='new.png'),
        background_tasks=background_tasks,
        db=db,
        principal=admin,
        app_settings=app_settings,
    )

    assert _body(response)['payload']['data']['photo'] == 'new.png'
    assert [task.args for task in background_tasks.tasks] == [(app_settings.upload_dir, 'advisors', 'old.png')]


def test_delete_without_photo_schedules_nothing(db, admin, app_settings) -> None:
    advisor = _create(db, admin, 'advisor@example.com')
    background_tasks = BackgroundTasks()

    advisor_routes.delete_advisor_by_id(
        advisor_id=advisor['id'],
        background_tasks=background_tasks,
        db=db,
        principal=admin,
        app_settings=app_settings,
    )

    assert background_tasks.tasks == []
    assert db.get(Advisor, advisor['id']) is None
