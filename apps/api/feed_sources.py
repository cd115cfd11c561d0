# apps/api/feed_sources.py
"""Candidate sources for the video feed.

Each source is an independent read over votes/comments/videos that returns a
ranked, capped list of videos the user has not viewed yet. Sources never see
each other's output; blending is done afterwards.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import Select, and_, func, select
from sqlalchemy.orm import Session, aliased

from config import settings
from models import Comment, Video, Vote
from view_ledger import viewed_by

log = logging.getLogger("feed_sources")

AFFINITY = "affinity"
POPULARITY = "popularity"
ENGAGEMENT = "engagement"


@dataclass(frozen=True)
class FeedCandidate:
    video_id: UUID
    source: str
    score: float
    created_at: Optional[datetime] = None


class CandidateSource(ABC):
    name: str = ""

    def __init__(self, cap: int):
        self.cap = cap

    @abstractmethod
    def build_query(
        self, user_id: UUID, now: datetime
    ) -> Optional[Select]:
        """Ranked query yielding (video_id, created_at, score) rows, or None."""

    def query(self, user_id: UUID, now: datetime) -> Optional[Select]:
        """The ranked query minus the user's viewed videos, capped."""
        q = self.build_query(user_id, now)
        if q is None:
            return None
        # Subquery, not an id list: a ledger can outgrow the driver's bind limit
        return q.where(Video.id.not_in(viewed_by(user_id))).limit(self.cap)

    def fetch(self, db: Session, user_id: UUID, now: datetime) -> List[FeedCandidate]:
        if not self.applies_to(db, user_id):
            log.debug("feed_source_skip source=%s user_id=%s", self.name, user_id)
            return []
        q = self.query(user_id, now)
        if q is None:
            return []
        rows = db.execute(q).all()
        out = [
            FeedCandidate(video_id=vid, source=self.name, score=float(score or 0), created_at=created_at)
            for vid, created_at, score in rows
        ]
        log.debug("feed_source_done source=%s user_id=%s count=%d", self.name, user_id, len(out))
        return out

    def applies_to(self, db: Session, user_id: UUID) -> bool:
        return True


class AffinitySource(CandidateSource):
    """Videos upvoted by users who upvoted at least one video the user upvoted."""

    name = AFFINITY

    def __init__(self, cap: int = settings.feed_affinity_cap):
        super().__init__(cap)

    @staticmethod
    def _upvoted_by(user_id: UUID) -> Select:
        return select(Vote.target_id).where(
            Vote.user_id == user_id, Vote.target_type == "video", Vote.value == 1
        )

    def applies_to(self, db: Session, user_id: UUID) -> bool:
        # Cold start: nothing to correlate on
        return db.execute(self._upvoted_by(user_id).limit(1)).first() is not None

    def build_query(self, user_id: UUID, now: datetime) -> Optional[Select]:
        peer = aliased(Vote)
        co_voters = (
            select(peer.user_id)
            .where(
                peer.target_type == "video",
                peer.value == 1,
                peer.target_id.in_(self._upvoted_by(user_id)),
                peer.user_id != user_id,
            )
            .distinct()
        )
        own_votes = select(Vote.target_id).where(
            Vote.user_id == user_id, Vote.target_type == "video"
        )
        co_vote = aliased(Vote)
        co_voter_count = func.count(co_vote.user_id.distinct()).label("co_voters")
        return (
            select(Video.id, Video.created_at, co_voter_count)
            .join(
                co_vote,
                and_(
                    co_vote.target_type == "video",
                    co_vote.target_id == Video.id,
                    co_vote.value == 1,
                ),
            )
            .where(co_vote.user_id.in_(co_voters), Video.id.not_in(own_votes))
            .group_by(Video.id, Video.created_at)
            .order_by(co_voter_count.desc(), Video.created_at.desc(), Video.id.desc())
        )


class PopularitySource(CandidateSource):
    """Recent videos by net vote score."""

    name = POPULARITY

    def __init__(
        self,
        cap: int = settings.feed_popularity_cap,
        window_days: int = settings.feed_recency_window_days,
    ):
        super().__init__(cap)
        self.window = timedelta(days=window_days)

    def build_query(self, user_id: UUID, now: datetime) -> Optional[Select]:
        score = func.coalesce(func.sum(Vote.value), 0).label("vote_score")
        return (
            select(Video.id, Video.created_at, score)
            .outerjoin(Vote, and_(Vote.target_type == "video", Vote.target_id == Video.id))
            .where(Video.created_at >= now - self.window)
            .group_by(Video.id, Video.created_at)
            .order_by(score.desc(), Video.created_at.desc(), Video.id.desc())
        )


class EngagementSource(CandidateSource):
    """Recent videos by distinct votes plus weighted distinct comments."""

    name = ENGAGEMENT

    def __init__(
        self,
        cap: int = settings.feed_engagement_cap,
        window_days: int = settings.feed_recency_window_days,
        comment_weight: int = settings.feed_comment_weight,
    ):
        super().__init__(cap)
        self.window = timedelta(days=window_days)
        self.comment_weight = comment_weight

    def build_query(self, user_id: UUID, now: datetime) -> Optional[Select]:
        engagement = (
            func.count(Vote.id.distinct())
            + self.comment_weight * func.count(Comment.id.distinct())
        ).label("engagement")
        return (
            select(Video.id, Video.created_at, engagement)
            .outerjoin(Vote, and_(Vote.target_type == "video", Vote.target_id == Video.id))
            .outerjoin(
                Comment, and_(Comment.target_type == "video", Comment.target_id == Video.id)
            )
            .where(Video.created_at >= now - self.window)
            .group_by(Video.id, Video.created_at)
            .order_by(engagement.desc(), Video.created_at.desc(), Video.id.desc())
        )


def default_sources() -> List[CandidateSource]:
    """Sources in weight order: affinity, popularity, engagement."""
    return [AffinitySource(), PopularitySource(), EngagementSource()]
