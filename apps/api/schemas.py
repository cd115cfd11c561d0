# apps/api/schemas.py
from pydantic import BaseModel
from typing import List, Literal, Optional
from datetime import datetime

VideoTargetType = Literal["proposal", "program"]
FeedSource = Literal["affinity", "popularity", "engagement"]


class Ok(BaseModel):
    ok: bool

class CsrfOut(BaseModel):
    csrf: str
    header: str

class MarkViewedRequest(BaseModel):
    video_id: str

class BookmarkToggleRequest(BaseModel):
    video_id: str

class BookmarkState(BaseModel):
    video_id: str
    bookmarked: bool

class VideoOut(BaseModel):
    id: str
    owner_user_id: str
    target_type: VideoTargetType
    target_id: str
    storage_bucket: str
    storage_key: str
    content_type: str
    duration_seconds: Optional[int] = None
    created_at: datetime
    vote_score: int = 0
    bookmarked: Optional[bool] = None

class FeedItem(VideoOut):
    source: FeedSource

class FeedPageOut(BaseModel):
    items: List[FeedItem]
    next_cursor: Optional[str] = None

class PaginatedVideos(BaseModel):
    items: List[VideoOut]
    next_cursor: Optional[str] = None
