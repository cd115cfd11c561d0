# apps/api/content_feed.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from cursor import Cursor
from errors import store_guard
from models import Video, Vote

log = logging.getLogger("content_feed")


def vote_scores(db: Session, video_ids: Iterable[UUID]) -> Dict[UUID, int]:
    """Net vote score per video; videos without votes are absent."""
    ids = list(video_ids)
    if not ids:
        return {}
    q = (
        select(Vote.target_id, func.coalesce(func.sum(Vote.value), 0))
        .where(Vote.target_type == "video", Vote.target_id.in_(ids))
        .group_by(Vote.target_id)
    )
    with store_guard("vote_scores"):
        return {vid: int(score) for vid, score in db.execute(q).all()}


def list_content_videos(
    db: Session,
    target_type: str,
    target_id: UUID,
    after: Optional[Cursor],
    limit: int,
) -> Tuple[List[Video], bool]:
    """Videos attached to one proposal/program, newest first.

    Keyset pagination on (created_at, id); returns the page and whether more
    rows follow.
    """
    q = select(Video).where(Video.target_type == target_type, Video.target_id == target_id)
    if after is not None:
        q = q.where(
            or_(
                Video.created_at < after.ordering_key,
                and_(Video.created_at == after.ordering_key, Video.id < after.item_id),
            )
        )
    q = q.order_by(Video.created_at.desc(), Video.id.desc()).limit(limit + 1)
    with store_guard("list_content_videos"):
        items = list(db.execute(q).scalars())
    has_more = len(items) > limit
    log.debug(
        "content_feed_page target_type=%s target_id=%s count=%d has_more=%s",
        target_type, target_id, min(len(items), limit), has_more,
    )
    return items[:limit], has_more
