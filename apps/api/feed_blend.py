# apps/api/feed_blend.py
"""Weighted blending of the feed's candidate lists.

Lists arrive in weight order (affinity, popularity, engagement). The output is
built in page-sized rounds: each round apportions ``limit`` slots over the
source weights with the largest-remainder rule (ties go to the higher-weighted
source), hands the slots a short source cannot fill to the other sources in
weight order, then shuffles the round with a seeded RNG. With the default
40/30/30 weights a 10-item page is 4/3/3, a 5-item page 2/2/1.
"""
from __future__ import annotations

import hashlib
import logging
import math
import random
from datetime import datetime
from typing import List, Sequence, Set
from uuid import UUID

from config import settings
from feed_sources import FeedCandidate

log = logging.getLogger("feed_blend")

_EPS = 1e-9


def blend_seed(user_id: UUID, at: datetime, window_seconds: int) -> int:
    """Seed that is constant for one user within one coarse time window."""
    bucket = int(at.timestamp()) // max(1, window_seconds)
    digest = hashlib.sha256(f"{user_id}:{bucket}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def apportion(limit: int, weights: Sequence[float]) -> List[int]:
    total = sum(weights)
    if limit <= 0 or total <= 0:
        return [0] * len(weights)
    exact = [limit * w / total for w in weights]
    quotas = [math.floor(x + _EPS) for x in exact]
    remainder = limit - sum(quotas)
    by_fraction = sorted(
        range(len(weights)),
        key=lambda i: (-round(exact[i] - quotas[i], 9), i),
    )
    for i in by_fraction[:remainder]:
        quotas[i] += 1
    return quotas


def redistribute(quotas: Sequence[int], available: Sequence[int]) -> List[int]:
    """Cap each quota at what the source has; give the shortfall away in order."""
    take = [min(q, a) for q, a in zip(quotas, available)]
    shortfall = sum(quotas) - sum(take)
    for i, have in enumerate(available):
        if shortfall <= 0:
            break
        extra = min(shortfall, have - take[i])
        take[i] += extra
        shortfall -= extra
    return take


def dedupe(lists: Sequence[Sequence[FeedCandidate]]) -> List[List[FeedCandidate]]:
    """Keep each video once, in the highest-weighted list that has it."""
    seen: Set[UUID] = set()
    out: List[List[FeedCandidate]] = []
    for candidates in lists:
        kept = []
        for c in candidates:
            if c.video_id in seen:
                continue
            seen.add(c.video_id)
            kept.append(c)
        out.append(kept)
    return out


class Blender:
    def __init__(self, weights: Sequence[float] = settings.feed_source_weights):
        self.weights = tuple(weights)

    def blend(
        self,
        lists: Sequence[Sequence[FeedCandidate]],
        limit: int,
        seed: int,
    ) -> List[FeedCandidate]:
        if len(lists) != len(self.weights):
            raise ValueError(f"expected {len(self.weights)} candidate lists, got {len(lists)}")
        pools = dedupe(lists)
        if limit <= 0 or not any(pools):
            return []

        rng = random.Random(seed)
        cursors = [0] * len(pools)
        blended: List[FeedCandidate] = []
        rounds = 0
        while any(cursors[i] < len(p) for i, p in enumerate(pools)):
            available = [len(p) - cursors[i] for i, p in enumerate(pools)]
            take = redistribute(apportion(limit, self.weights), available)
            chunk: List[FeedCandidate] = []
            for i, n in enumerate(take):
                chunk.extend(pools[i][cursors[i]:cursors[i] + n])
                cursors[i] += n
            rng.shuffle(chunk)
            blended.extend(chunk)
            rounds += 1

        log.debug(
            "feed_blend_done total=%d rounds=%d sizes=%s",
            len(blended), rounds, [len(p) for p in pools],
        )
        return blended
