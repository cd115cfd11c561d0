# apps/api/video_feed.py
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from bookmarks import bookmarked_ids
from config import settings
from content_feed import vote_scores
from cursor import Cursor, CursorCodec, codec as default_codec
from errors import SourceUnavailable, StoreUnavailable, store_guard
from feed_blend import Blender, blend_seed
from feed_sources import CandidateSource, FeedCandidate, default_sources
from models import Video, utcnow
from view_ledger import reset_for_user

log = logging.getLogger("video_feed")

def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        limit = settings.feed_default_limit
    return max(1, min(settings.feed_max_limit, int(limit)))


@dataclass
class FeedEntry:
    video: Video
    source: str
    score: float
    vote_score: int = 0
    bookmarked: bool = False


@dataclass
class FeedPage:
    items: List[FeedEntry] = field(default_factory=list)
    next_cursor: Optional[str] = None
    reset: bool = False


@dataclass
class Gathered:
    lists: List[List[FeedCandidate]] = field(default_factory=list)
    unavailable: List[str] = field(default_factory=list)


def paginate(
    blended: Sequence[FeedCandidate], position: Optional[Cursor], limit: int
) -> Tuple[List[FeedCandidate], bool]:
    """Slice the page after the cursor's video.

    A cursor whose video is no longer a candidate (it was viewed since) restarts
    at the head, which only holds unseen videos.
    """
    start = 0
    if position is not None:
        for i, c in enumerate(blended):
            if c.video_id == position.item_id:
                start = i + 1
                break
    remaining = list(blended[start:])
    return remaining[:limit], len(remaining) > limit


class FeedOrchestrator:
    """Personalized, non-repeating video feed.

    Per request: fetch candidates from every source concurrently, blend them,
    page the result. A fresh request (no cursor) whose sources all answered and
    found nothing resets the user's view ledger and tries exactly once more. A
    mid-scroll request that finds nothing, or a fresh one that found nothing
    because a source was unavailable, returns an empty page and leaves the
    ledger alone.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        sources: Optional[Sequence[CandidateSource]] = None,
        blender: Optional[Blender] = None,
        cursor_codec: Optional[CursorCodec] = None,
        source_timeout: float = settings.feed_source_timeout_seconds,
        seed_window_seconds: int = settings.feed_seed_window_seconds,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.sources = list(sources) if sources is not None else default_sources()
        self.blender = blender or Blender()
        self.codec = cursor_codec or default_codec
        self.source_timeout = source_timeout
        self.seed_window_seconds = seed_window_seconds
        self.clock = clock

    def list_feed(
        self,
        db: Session,
        user_id: UUID,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> FeedPage:
        limit = clamp_limit(limit)
        position = self.codec.decode_or_none(cursor)
        now = self.clock()
        # Follow-up pages keep the burst time of the first page so the order holds
        burst_at = position.ordering_key if position is not None else now
        seed = blend_seed(user_id, burst_at, self.seed_window_seconds)

        blended, gathered = self._attempt(user_id, limit, seed, now)
        reset = False
        if not blended:
            if position is not None:
                log.info("video_feed_exhausted_mid_scroll user_id=%s", user_id)
                return FeedPage()
            if gathered.unavailable:
                # Empty because sources failed, not because the user saw everything
                log.warning(
                    "video_feed_degraded user_id=%s unavailable=%s action=skip_reset",
                    user_id, ",".join(gathered.unavailable),
                )
                return FeedPage()
            log.info("video_feed_exhausted user_id=%s action=reset", user_id)
            reset_for_user(db, user_id)
            reset = True
            blended, _ = self._attempt(user_id, limit, seed, now)
            if not blended:
                log.info("video_feed_empty_catalog user_id=%s", user_id)
                return FeedPage(reset=True)

        window, has_more = paginate(blended, position, limit)
        items = self._hydrate(db, user_id, window)
        next_cursor = None
        if has_more and items:
            last = items[-1].video.id
            next_cursor = self.codec.encode(Cursor(item_id=last, ordering_key=burst_at))

        log.info(
            "video_feed_page user_id=%s blended=%d returned=%d has_more=%s reset=%s",
            user_id, len(blended), len(items), has_more, reset,
        )
        return FeedPage(items=items, next_cursor=next_cursor, reset=reset)

    def _attempt(
        self, user_id: UUID, limit: int, seed: int, now: datetime
    ) -> Tuple[List[FeedCandidate], Gathered]:
        gathered = self.gather(user_id, now)
        return self.blender.blend(gathered.lists, limit, seed), gathered

    def gather(self, user_id: UUID, now: datetime) -> Gathered:
        """Run every source concurrently; a slow or failing one counts as empty.

        Each call gets its own executor with a thread per source, so the timeout
        measures the source itself and never time spent queued behind other
        requests. If every source failed because the store is down, that is
        raised as StoreUnavailable instead of being served as an empty feed.
        """
        executor = ThreadPoolExecutor(
            max_workers=max(1, len(self.sources)), thread_name_prefix="feed-source"
        )
        try:
            futures: List[Tuple[CandidateSource, Future]] = [
                (source, executor.submit(self._run_source, source, user_id, now))
                for source in self.sources
            ]
            _done, pending = wait([f for _, f in futures], timeout=self.source_timeout)
        finally:
            # Stragglers finish in the background; their results are dropped
            executor.shutdown(wait=False, cancel_futures=True)

        gathered = Gathered()
        store_errors: List[StoreUnavailable] = []
        for source, fut in futures:
            if fut in pending:
                self._degraded(SourceUnavailable(source.name, f"timed out after {self.source_timeout}s"))
                gathered.lists.append([])
                gathered.unavailable.append(source.name)
                continue
            try:
                gathered.lists.append(fut.result())
            except Exception as exc:
                if isinstance(exc, StoreUnavailable):
                    store_errors.append(exc)
                self._degraded(SourceUnavailable(source.name, str(exc)), exc)
                gathered.lists.append([])
                gathered.unavailable.append(source.name)
        if store_errors and len(store_errors) == len(self.sources):
            raise store_errors[0]
        return gathered

    def _run_source(
        self, source: CandidateSource, user_id: UUID, now: datetime
    ) -> List[FeedCandidate]:
        with store_guard(f"source_{source.name}"), self.session_factory() as db:
            return source.fetch(db, user_id, now)

    @staticmethod
    def _degraded(err: SourceUnavailable, exc: Optional[BaseException] = None) -> None:
        log.warning(
            "video_feed_source_unavailable source=%s reason=%s", err.source, err.reason,
            exc_info=exc,
        )

    def _hydrate(
        self, db: Session, user_id: UUID, window: Sequence[FeedCandidate]
    ) -> List[FeedEntry]:
        ids = [c.video_id for c in window]
        if not ids:
            return []
        with store_guard("hydrate_feed"):
            rows = db.execute(select(Video).where(Video.id.in_(ids))).scalars()
            by_id = {v.id: v for v in rows}
        scores = vote_scores(db, ids)
        marks = bookmarked_ids(db, user_id, ids)

        entries: List[FeedEntry] = []
        for c in window:
            v = by_id.get(c.video_id)
            if v is None:
                # Deleted with its target since the candidates were read
                continue
            entries.append(
                FeedEntry(
                    video=v,
                    source=c.source,
                    score=c.score,
                    vote_score=scores.get(v.id, 0),
                    bookmarked=v.id in marks,
                )
            )
        return entries
