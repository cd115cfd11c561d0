# apps/api/routes_feed.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, sessionmaker

from csrf import csrf_protected
from db import get_db, get_session_factory
from errors import store_guard
from models import User, Video
from routes_videos import parse_uuid, video_to_out
from schemas import FeedItem, FeedPageOut, MarkViewedRequest, Ok
from session import get_current_user
from video_feed import FeedOrchestrator
from view_ledger import record_view

router = APIRouter(prefix="/feed", tags=["feed"])


def get_orchestrator(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> FeedOrchestrator:
    return FeedOrchestrator(session_factory)


@router.get("", response_model=FeedPageOut)
def feed(
    cursor: Optional[str] = None,
    limit: int = Query(20, ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    orchestrator: FeedOrchestrator = Depends(get_orchestrator),
):
    page = orchestrator.list_feed(db, user.id, cursor=cursor, limit=limit)

    items: List[FeedItem] = []
    for entry in page.items:
        base = video_to_out(entry.video, vote_score=entry.vote_score, bookmarked=entry.bookmarked)
        items.append(FeedItem(**base.model_dump(), source=entry.source))
    return FeedPageOut(items=items, next_cursor=page.next_cursor)


@router.post(
    "/mark-viewed",
    response_model=Ok,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(csrf_protected)],
)
def mark_viewed(
    body: MarkViewedRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    vid = parse_uuid(body.video_id, "video_id")

    # Avoid orphan rows on backends without enforced foreign keys
    with store_guard("get_video"):
        video = db.get(Video, vid)
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found")

    record_view(db, user.id, vid)
    return Ok(ok=True)
