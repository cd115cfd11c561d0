# apps/api/bookmarks.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.orm import Session

from cursor import Cursor
from errors import ConflictIgnored, store_guard
from models import Bookmark, Video
from view_ledger import insert_ignore

log = logging.getLogger("bookmarks")


def toggle_bookmark(db: Session, user_id: UUID, video_id: UUID) -> bool:
    """Flip the bookmark for (user, video) and return the resulting state."""
    with store_guard("toggle_bookmark"):
        removed = db.execute(
            delete(Bookmark).where(
                Bookmark.user_id == user_id, Bookmark.video_id == video_id
            )
        ).rowcount
        if removed:
            db.commit()
            log.info("bookmark_removed user_id=%s video_id=%s", user_id, video_id)
            return False
        try:
            insert_ignore(db, Bookmark, {"user_id": user_id, "video_id": video_id})
        except ConflictIgnored:
            pass
        db.commit()
    log.info("bookmark_added user_id=%s video_id=%s", user_id, video_id)
    return True


def bookmarked_ids(db: Session, user_id: UUID, video_ids: Iterable[UUID]) -> Set[UUID]:
    ids = list(video_ids)
    if not ids:
        return set()
    with store_guard("bookmarked_ids"):
        rows = db.execute(
            select(Bookmark.video_id).where(
                Bookmark.user_id == user_id, Bookmark.video_id.in_(ids)
            )
        ).scalars()
        return set(rows)


def list_bookmarks(
    db: Session,
    user_id: UUID,
    after: Optional[Cursor],
    limit: int,
) -> Tuple[List[Tuple[Video, Bookmark]], bool]:
    """Newest bookmark first. Returns the page and whether more rows follow."""
    q = (
        select(Video, Bookmark)
        .join(Bookmark, Bookmark.video_id == Video.id)
        .where(Bookmark.user_id == user_id)
    )
    if after is not None:
        q = q.where(
            or_(
                Bookmark.created_at < after.ordering_key,
                and_(
                    Bookmark.created_at == after.ordering_key,
                    Bookmark.video_id < after.item_id,
                ),
            )
        )
    q = q.order_by(Bookmark.created_at.desc(), Bookmark.video_id.desc()).limit(limit + 1)
    with store_guard("list_bookmarks"):
        rows = [(v, b) for v, b in db.execute(q).all()]
    has_more = len(rows) > limit
    return rows[:limit], has_more
