"""Flip-or-create logic shared by likes, shares and follows.

A relationship row moves through ``absent -> active <-> inactive``. User
toggles never delete rows: the existing row (active or not) is looked up and
flipped, and only the very first toggle inserts. Two concurrent first toggles
race on the ``(actor, target)`` unique constraint; the loser rolls back,
re-reads the winner's row and flips it, so one pair never owns two rows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, TypeVar

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.base import ToggleMixin

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=ToggleMixin)


@dataclass(slots=True)
class ToggleResult:
    record: Any
    active: bool
    created: bool


def _find_existing(db: Session, model: type[RowT], keys: dict[str, Any]) -> RowT | None:
    stmt = select(model).filter_by(**keys).with_for_update()
    return db.scalar(stmt)


def _flip(record: ToggleMixin) -> bool:
    if record.is_active:
        record.deactivate()
        return False
    record.activate()
    return True


def toggle_relation(
    db: Session,
    model: type[RowT],
    **keys: Any,
) -> ToggleResult:
    """Flip the ``model`` row identified by ``keys``, creating it on first use."""

    created = False
    try:
        record = _find_existing(db, model, keys)
        if record is None:
            record = model(**keys)
            db.add(record)
            try:
                db.flush()
                created = True
                active = True
            except IntegrityError:
                # Another request inserted the row first; flip theirs instead.
                db.rollback()
                logger.info("Concurrent %s insert for %s, flipping existing row", model.__tablename__, keys)
                record = _find_existing(db, model, keys)
                if record is None:
                    raise
                active = _flip(record)
        else:
            active = _flip(record)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Toggle on %s failed for %s", model.__tablename__, keys)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unable to update state") from exc

    db.refresh(record)
    return ToggleResult(record=record, active=active, created=created)


__all__ = ["ToggleResult", "toggle_relation"]
