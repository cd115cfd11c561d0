# apps/api/routes_bookmarks.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bookmarks import list_bookmarks, toggle_bookmark
from content_feed import vote_scores
from csrf import csrf_protected
from cursor import Cursor, codec
from db import get_db
from errors import store_guard
from models import User, Video
from routes_videos import parse_uuid, video_to_out
from schemas import BookmarkState, BookmarkToggleRequest, PaginatedVideos, VideoOut
from session import get_current_user
from video_feed import clamp_limit

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/toggle", response_model=BookmarkState, dependencies=[Depends(csrf_protected)])
def toggle(
    body: BookmarkToggleRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    vid = parse_uuid(body.video_id, "video_id")
    with store_guard("get_video"):
        video = db.get(Video, vid)
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found")

    state = toggle_bookmark(db, user.id, vid)
    return BookmarkState(video_id=str(vid), bookmarked=state)


@router.get("", response_model=PaginatedVideos)
def bookmarked_videos(
    cursor: Optional[str] = None,
    limit: int = Query(20, ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    limit = clamp_limit(limit)
    rows, has_more = list_bookmarks(db, user.id, codec.decode_or_none(cursor), limit)
    scores = vote_scores(db, [v.id for v, _ in rows])

    items: List[VideoOut] = [
        video_to_out(v, vote_score=scores.get(v.id, 0), bookmarked=True) for v, _ in rows
    ]
    next_cursor = None
    if has_more and rows:
        _, last = rows[-1]
        next_cursor = codec.encode(Cursor(item_id=last.video_id, ordering_key=last.created_at))
    return PaginatedVideos(items=items, next_cursor=next_cursor)
