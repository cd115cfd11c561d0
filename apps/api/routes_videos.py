# apps/api/routes_videos.py
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from content_feed import list_content_videos, vote_scores
from cursor import Cursor, codec
from db import get_db
from models import Video
from schemas import PaginatedVideos, VideoOut, VideoTargetType
from video_feed import clamp_limit

router = APIRouter(prefix="/videos", tags=["videos"])


def parse_uuid(value: str, field: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError, AttributeError):
        raise HTTPException(status_code=400, detail=f"Invalid {field}")


def video_to_out(
    v: Video,
    *,
    vote_score: int = 0,
    bookmarked: Optional[bool] = None,
) -> VideoOut:
    return VideoOut(
        id=str(v.id),
        owner_user_id=str(v.owner_user_id),
        target_type=v.target_type,
        target_id=str(v.target_id),
        storage_bucket=v.storage_bucket,
        storage_key=v.storage_key,
        content_type=v.content_type,
        duration_seconds=v.duration_seconds,
        created_at=v.created_at,
        vote_score=vote_score,
        bookmarked=bookmarked,
    )


@router.get("/content", response_model=PaginatedVideos)
def content_videos(
    target_type: VideoTargetType,
    target_id: str,
    cursor: Optional[str] = None,
    limit: int = Query(20, ge=1),
    db: Session = Depends(get_db),
):
    tid = parse_uuid(target_id, "target_id")
    limit = clamp_limit(limit)

    items, has_more = list_content_videos(db, target_type, tid, codec.decode_or_none(cursor), limit)
    scores = vote_scores(db, [v.id for v in items])

    out: List[VideoOut] = [video_to_out(v, vote_score=scores.get(v.id, 0)) for v in items]
    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = codec.encode(Cursor(item_id=last.id, ordering_key=last.created_at))
    return PaginatedVideos(items=out, next_cursor=next_cursor)
