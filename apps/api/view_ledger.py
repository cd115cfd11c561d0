# apps/api/view_ledger.py
from __future__ import annotations

import logging
from typing import Any, Dict, Set
from uuid import UUID

from sqlalchemy import Select, delete, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import ConflictIgnored, store_guard
from models import VideoView

log = logging.getLogger("view_ledger")


def insert_ignore(db: Session, model, values: Dict[str, Any]) -> bool:
    """Insert a row, doing nothing when a unique constraint already holds it.

    Returns True if a row was written. The caller owns the commit.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(model).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite_insert(model).values(**values).on_conflict_do_nothing()
    else:
        stmt = insert(model).values(**values)
        try:
            with db.begin_nested():
                db.execute(stmt)
        except IntegrityError as exc:
            raise ConflictIgnored(str(exc.orig)) from exc
        return True
    result = db.execute(stmt)
    return bool(result.rowcount)


def record_view(db: Session, user_id: UUID, video_id: UUID) -> None:
    with store_guard("record_view"):
        try:
            written = insert_ignore(db, VideoView, {"user_id": user_id, "video_id": video_id})
        except ConflictIgnored:
            written = False
        db.commit()
    if written:
        log.info("view_recorded user_id=%s video_id=%s", user_id, video_id)
    else:
        log.debug("view_conflict_ignored user_id=%s video_id=%s", user_id, video_id)


def viewed_by(user_id: UUID) -> Select:
    return select(VideoView.video_id).where(VideoView.user_id == user_id)


def excluded_video_ids(db: Session, user_id: UUID) -> Set[UUID]:
    with store_guard("excluded_video_ids"):
        return set(db.execute(viewed_by(user_id)).scalars())


def reset_for_user(db: Session, user_id: UUID) -> int:
    """Forget every view of one user. Deleting nothing is still a success."""
    with store_guard("reset_for_user"):
        result = db.execute(delete(VideoView).where(VideoView.user_id == user_id))
        db.commit()
    log.info("view_ledger_reset user_id=%s deleted=%d", user_id, result.rowcount or 0)
    return result.rowcount or 0
