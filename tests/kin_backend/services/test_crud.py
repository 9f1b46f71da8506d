import pytest

from kin_backend.core.errors import Conflict, NotFound, ValidationFailed
from kin_backend.models.advisor import Advisor
from kin_backend.routes.advisor_routes import advisors
from kin_backend.services.crud import build_pagination
from kin_backend.services.images import delete_image


def _advisor(db, email, **fields):
    return advisors.create(db, {'name': email.split('@')[0], 'email': email, **fields})


def test_build_pagination_links_neighbouring_pages() -> None:
    assert build_pagination(25, 2, 10) == {
        'totalDocuments': 25,
        'totalPages': 3,
        'currentPage': 2,
        'previousPage': 1,
        'nextPage': 3,
    }
    first = build_pagination(5, 1, 10)
    assert first['previousPage'] is None
    assert first['nextPage'] is None


def test_paginate_searches_and_orders(db) -> None:
    _advisor(db, 'zed@example.com', index=2, department='Physics')
    _advisor(db, 'amy@example.com', index=1, department='Chemistry')
    _advisor(db, 'bob@example.com', index=3)

    rows, pagination = advisors.paginate(db, page=1, limit=2, order_by=Advisor.index.asc())
    assert [row.email for row in rows] == ['amy@example.com', 'zed@example.com']
    assert pagination['totalDocuments'] == 3
    assert pagination['nextPage'] == 2

    rows, pagination = advisors.paginate(db, search='BOB')
    assert [row.email for row in rows] == ['bob@example.com']
    assert pagination['totalPages'] == 1


def test_paginate_raises_when_nothing_matches(db) -> None:
    with pytest.raises(NotFound):
        advisors.paginate(db)

    _advisor(db, 'amy@example.com')
    with pytest.raises(NotFound):
        advisors.paginate(db, page=5)


def test_create_requires_unique_natural_key(db) -> None:
    _advisor(db, 'amy@example.com')

    with pytest.raises(Conflict) as exception_info:
        _advisor(db, 'amy@example.com')
    assert exception_info.value.message == 'Email already exists!'

    with pytest.raises(ValidationFailed):
        advisors.create(db, {'name': 'No Email'})


def test_update_skips_immutable_and_unknown_fields(db) -> None:
    advisor = _advisor(db, 'amy@example.com', designation='Professor')
    original_id = advisor.id

    updated, replaced = advisors.update(
        db, advisor.id, {'id': 999, 'designation': 'Dean', 'unknown': 'value', 'email': None}
    )

    assert updated.id == original_id
    assert updated.designation == 'Dean'
    assert updated.email == 'amy@example.com'
    assert replaced is None


def test_update_rejects_natural_key_taken_by_another_record(db) -> None:
    _advisor(db, 'amy@example.com')
    bob = _advisor(db, 'bob@example.com')

    with pytest.raises(Conflict):
        advisors.update(db, bob.id, {'email': 'amy@example.com'})

    advisors.update(db, bob.id, {'email': 'bob@example.com'})


def test_delete_returns_record_and_image(db) -> None:
    advisor = _advisor(db, 'amy@example.com', photo='amy.png')

    deleted, photo = advisors.delete(db, advisor.id)

    assert deleted.email == 'amy@example.com'
    assert photo == 'amy.png'
    with pytest.raises(NotFound) as exception_info:
        advisors.get(db, advisor.id)
    assert exception_info.value.message == "Couldn't find any advisor data."


def test_bulk_create_rejects_duplicates_in_batch(db) -> None:
    with pytest.raises(Conflict):
        advisors.bulk_create(db, [{'email': 'amy@example.com'}, {'email': 'amy@example.com'}])
    assert db.query(Advisor).count() == 0

    created = advisors.bulk_create(db, [{'email': 'amy@example.com'}, {'email': 'bob@example.com'}])
    assert [advisor.email for advisor in created] == ['amy@example.com', 'bob@example.com']


def test_bulk_delete_collects_images(db) -> None:
    amy = _advisor(db, 'amy@example.com', photo='amy.png')
    bob = _advisor(db, 'bob@example.com')

    deleted, photos = advisors.bulk_delete(db, [amy.id, bob.id, 999])

    assert len(deleted) == 2
    assert photos == ['amy.png']
    with pytest.raises(NotFound):
        advisors.bulk_delete(db, [amy.id])


def test_delete_image_removes_file_inside_folder(tmp_path) -> None:
    folder = tmp_path / 'advisors'
    folder.mkdir()
    (folder / 'amy.png').write_bytes(b'png')

    assert delete_image(str(tmp_path), 'advisors', 'amy.png') is True
    assert not (folder / 'amy.png').exists()


def test_delete_image_tolerates_missing_and_escaping_names(tmp_path) -> None:
    outside = tmp_path / 'secret.txt'
    outside.write_text('keep')

    assert delete_image(str(tmp_path), 'advisors', 'gone.png') is False
    assert delete_image(str(tmp_path), 'advisors', '../secret.txt') is False
    assert delete_image(str(tmp_path), 'advisors', None) is False
    assert outside.exists()
