# storefront/repositories/base.py
"""
Generic record store over SQLModel.

Every write commits on its own: services compose several store calls, and
a failure in a later call leaves the earlier ones committed.
"""

from __future__ import annotations

import uuid
from typing import Any, Generic, Iterable, TypeVar

from sqlalchemy import func, update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, select

ModelT = TypeVar("ModelT", bound=SQLModel)


class DuplicateKeyError(Exception):
    """Raised when an insert/update violates a unique constraint."""


def merge_patch(
    record: SQLModel,
    patch: SQLModel,
    *,
    skip_none: bool = False,
) -> dict[str, Any]:
    """
    Copy onto `record` only the fields that were explicitly set on `patch`.

    With skip_none, an explicit null leaves the field untouched.
    Returns the applied changes.
    """
    changes = patch.model_dump(exclude_unset=True, exclude_none=skip_none)
    for field, value in changes.items():
        setattr(record, field, value)
    return changes


class BaseRepository(Generic[ModelT]):
    """
    CRUD + query primitives shared by all repositories.

    Subclasses set `model` and add their own domain-specific lookups.
    No FastAPI, no business rules.
    """

    model: type[ModelT]

    # ----- Reads -----

    def get_by_id(self, session: Session, record_id: uuid.UUID) -> ModelT | None:
        return session.get(self.model, record_id)

    def find_one(self, session: Session, *where: Any) -> ModelT | None:
        stmt = select(self.model).where(*where)
        return session.exec(stmt).first()

    def find_all(
        self,
        session: Session,
        *where: Any,
        order_by: Any = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        stmt = select(self.model).where(*where)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(session.exec(stmt).all())

    def count(self, session: Session, *where: Any) -> int:
        stmt = select(func.count()).select_from(self.model).where(*where)
        return session.exec(stmt).one()

    def list(
        self,
        session: Session,
        *where: Any,
        order_by: Any = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ModelT], int]:
        """
        Filtered, sorted, paged listing.

        Returns:
            (records on this page, total number of matching records)
        """
        stmt = select(self.model).where(*where)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = list(session.exec(stmt).all())
        return rows, self.count(session, *where)

    # ----- Writes -----

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateKeyError(str(exc.orig)) from exc

    def insert(self, session: Session, record: ModelT) -> ModelT:
        session.add(record)
        self._commit(session)
        session.refresh(record)
        return record

    def insert_many(self, session: Session, records: Iterable[ModelT]) -> list[ModelT]:
        records = list(records)
        session.add_all(records)
        self._commit(session)
        for record in records:
            session.refresh(record)
        return records

    def update(
        self,
        session: Session,
        record: ModelT,
        changes: dict[str, Any] | None = None,
    ) -> ModelT:
        for field, value in (changes or {}).items():
            setattr(record, field, value)
        session.add(record)
        self._commit(session)
        session.refresh(record)
        return record

    def delete(self, session: Session, record: ModelT) -> None:
        session.delete(record)
        session.commit()

    def delete_where(self, session: Session, *where: Any) -> None:
        for row in self.find_all(session, *where):
            session.delete(row)
        session.commit()

    def increment(
        self,
        session: Session,
        record_id: uuid.UUID,
        field: str,
        by: int | float = 1,
    ) -> None:
        """
        Atomic `field = field + by` on one row, evaluated by the database.
        """
        column = getattr(self.model, field)
        stmt = (
            sa_update(self.model)
            .where(self.model.id == record_id)
            .values({field: column + by})
        )
        session.execute(stmt)
        session.commit()
