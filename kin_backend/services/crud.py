"""Generic create/read/update/delete helper shared by the resource routes."""

import logging
import math
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kin_backend.core.errors import Conflict, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def build_pagination(total: int, page: int, limit: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "totalDocuments": total,
        "totalPages": total_pages,
        "currentPage": page,
        "previousPage": page - 1 if page > 1 else None,
        "nextPage": page + 1 if page < total_pages else None,
    }


class ResourceCRUD:
    """ORM operations for one model, keyed by primary key.

    ``natural_key`` names a unique business field checked before inserts and
    updates; ``image_field`` names the column holding an uploaded filename, which
    ``update`` and ``delete`` hand back so the caller can clean it up.
    """

    def __init__(
        self,
        model,
        label: str,
        natural_key: str | None = None,
        search_fields: tuple[str, ...] = (),
        image_field: str | None = None,
        immutable_fields: tuple[str, ...] = ("id", "created_at", "updated_at"),
    ):
        self.model = model
        self.label = label
        self.natural_key = natural_key
        self.search_fields = search_fields
        self.image_field = image_field
        self.immutable_fields = immutable_fields

    def _not_found(self) -> NotFound:
        return NotFound(f"Couldn't find any {self.label} data.")

    def _conflict(self) -> Conflict:
        return Conflict(f"{self.natural_key.capitalize()} already exists!")

    def paginate(
        self,
        db: Session,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        search: str | None = None,
        order_by=None,
    ) -> tuple[list, dict]:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_LIMIT)

        query = db.query(self.model)
        if search and self.search_fields:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(*(getattr(self.model, field).ilike(pattern) for field in self.search_fields))
            )

        total = query.count()
        query = query.order_by(order_by if order_by is not None else self.model.id.asc())
        rows = query.offset((page - 1) * limit).limit(limit).all()
        if not rows:
            raise NotFound("Couldn't find any data!")
        return rows, build_pagination(total, page, limit)

    def get(self, db: Session, record_id: int):
        record = db.get(self.model, record_id)
        if record is None:
            raise self._not_found()
        return record

    def get_by(self, db: Session, field: str, value: Any):
        record = db.query(self.model).filter(getattr(self.model, field) == value).first()
        if record is None:
            raise self._not_found()
        return record

    def _check_natural_key(self, db: Session, data: dict, exclude_id: int | None = None) -> None:
        if not self.natural_key or data.get(self.natural_key) is None:
            return
        column = getattr(self.model, self.natural_key)
        query = db.query(self.model).filter(column == data[self.natural_key])
        if exclude_id is not None:
            query = query.filter(self.model.id != exclude_id)
        if query.first() is not None:
            raise self._conflict()

    def _clean(self, data: dict) -> dict:
        columns = self.model.__table__.columns
        return {
            key: value
            for key, value in data.items()
            if key not in self.immutable_fields
            and key in columns
            and (value is not None or columns[key].nullable)
        }

    def _commit(self, db: Session) -> None:
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if self.natural_key:
                raise self._conflict() from exc
            raise ValidationFailed("Invalid data.") from exc

    def create(self, db: Session, data: dict):
        data = self._clean(data)
        if self.natural_key and not data.get(self.natural_key):
            raise ValidationFailed(f"{self.natural_key.capitalize()} is required!")
        self._check_natural_key(db, data)

        record = self.model(**data)
        db.add(record)
        self._commit(db)
        db.refresh(record)
        logger.info("Created %s %s", self.label, record.id)
        return record

    def update(self, db: Session, record_id: int, data: dict) -> tuple[Any, str | None]:
        """Apply ``data``; return the record and any image filename it replaced."""
        record = self.get(db, record_id)
        data = self._clean(data)
        self._check_natural_key(db, data, exclude_id=record_id)

        replaced_image = None
        if self.image_field and data.get(self.image_field):
            current = getattr(record, self.image_field)
            if current and current != data[self.image_field]:
                replaced_image = current

        for key, value in data.items():
            setattr(record, key, value)
        self._commit(db)
        db.refresh(record)
        return record, replaced_image

    def delete(self, db: Session, record_id: int) -> tuple[Any, str | None]:
        record = self.get(db, record_id)
        image = getattr(record, self.image_field) if self.image_field else None
        db.delete(record)
        db.commit()
        logger.info("Deleted %s %s", self.label, record_id)
        return record, image

    def bulk_create(self, db: Session, items: list[dict]) -> list:
        if not items:
            raise ValidationFailed("No data provided.")
        records = []
        seen = set()
        for item in items:
            data = self._clean(item)
            if self.natural_key:
                key = data.get(self.natural_key)
                if not key:
                    raise ValidationFailed(f"{self.natural_key.capitalize()} is required!")
                if key in seen:
                    raise self._conflict()
                seen.add(key)
                self._check_natural_key(db, data)
            records.append(self.model(**data))
        db.add_all(records)
        self._commit(db)
        for record in records:
            db.refresh(record)
        return records

    def bulk_delete(self, db: Session, ids: list[int]) -> tuple[list, list[str]]:
        records = db.query(self.model).filter(self.model.id.in_(ids)).all() if ids else []
        if not records:
            raise self._not_found()
        images = [
            getattr(record, self.image_field)
            for record in records
            if self.image_field and getattr(record, self.image_field)
        ]
        for record in records:
            db.delete(record)
        db.commit()
        return records, images
