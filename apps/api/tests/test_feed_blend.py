import uuid
from collections import Counter
from datetime import datetime, timezone

import pytest

from feed_blend import Blender, apportion, blend_seed, redistribute
from feed_sources import AFFINITY, ENGAGEMENT, POPULARITY, FeedCandidate


def _candidates(source, n):
    return [FeedCandidate(video_id=uuid.uuid4(), source=source, score=float(n - i)) for i in range(n)]


@pytest.mark.parametrize(
    "limit,expected",
    [
        (10, [4, 3, 3]),
        (5, [2, 2, 1]),
        (3, [1, 1, 1]),
        (1, [1, 0, 0]),
        (20, [8, 6, 6]),
        (7, [3, 2, 2]),
        (0, [0, 0, 0]),
    ],
)
def test_apportion_largest_remainder(limit, expected):
    assert apportion(limit, (0.4, 0.3, 0.3)) == expected
    assert sum(apportion(limit, (0.4, 0.3, 0.3))) == limit


def test_shortfall_goes_to_next_source_in_weight_order():
    assert redistribute([4, 3, 3], [1, 15, 15]) == [1, 6, 3]
    assert redistribute([4, 3, 3], [20, 0, 15]) == [7, 0, 3]


def test_shortfall_when_several_sources_are_short():
    assert redistribute([4, 3, 3], [1, 1, 20]) == [1, 1, 8]
    assert redistribute([4, 3, 3], [1, 1, 2]) == [1, 1, 2]


def test_first_page_honours_40_30_30():
    lists = [_candidates(AFFINITY, 20), _candidates(POPULARITY, 15), _candidates(ENGAGEMENT, 15)]
    out = Blender().blend(lists, limit=10, seed=7)

    assert len(out) == 50
    assert len({c.video_id for c in out}) == 50
    assert Counter(c.source for c in out[:10]) == {AFFINITY: 4, POPULARITY: 3, ENGAGEMENT: 3}
    assert Counter(c.source for c in out[10:20]) == {AFFINITY: 4, POPULARITY: 3, ENGAGEMENT: 3}


def test_each_source_keeps_its_rank_order():
    lists = [_candidates(AFFINITY, 20), _candidates(POPULARITY, 15), _candidates(ENGAGEMENT, 15)]
    out = Blender().blend(lists, limit=10, seed=3)
    position = {c.video_id: i for i, c in enumerate(out)}
    for source_list in lists:
        # higher-ranked candidates never land in a later page than lower-ranked ones
        pages = [position[c.video_id] // 10 for c in source_list]
        assert pages == sorted(pages)


def test_short_sources_never_leave_slots_empty():
    lists = [_candidates(AFFINITY, 1), _candidates(POPULARITY, 2), _candidates(ENGAGEMENT, 15)]
    out = Blender().blend(lists, limit=10, seed=1)
    assert Counter(c.source for c in out[:10]) == {AFFINITY: 1, POPULARITY: 2, ENGAGEMENT: 7}
    assert len(out) == 18


def test_cold_start_fills_from_popularity_and_engagement():
    lists = [[], _candidates(POPULARITY, 15), _candidates(ENGAGEMENT, 15)]
    out = Blender().blend(lists, limit=10, seed=1)
    assert Counter(c.source for c in out[:10]) == {POPULARITY: 7, ENGAGEMENT: 3}


def test_duplicate_kept_once_under_highest_weight_source():
    shared = uuid.uuid4()
    affinity = [FeedCandidate(shared, AFFINITY, 1.0)]
    popularity = [FeedCandidate(shared, POPULARITY, 9.0)] + _candidates(POPULARITY, 2)
    engagement = [FeedCandidate(shared, ENGAGEMENT, 9.0)] + _candidates(ENGAGEMENT, 2)

    out = Blender().blend([affinity, popularity, engagement], limit=10, seed=5)

    assert [c.source for c in out if c.video_id == shared] == [AFFINITY]
    assert len(out) == 5
    assert Counter(c.source for c in out) == {AFFINITY: 1, POPULARITY: 2, ENGAGEMENT: 2}


def test_all_empty_blends_to_nothing():
    assert Blender().blend([[], [], []], limit=10, seed=1) == []


def test_same_seed_same_order_other_seed_other_order():
    lists = [_candidates(AFFINITY, 20), _candidates(POPULARITY, 15), _candidates(ENGAGEMENT, 15)]
    blender = Blender()
    first = [c.video_id for c in blender.blend(lists, limit=10, seed=11)]
    again = [c.video_id for c in blender.blend(lists, limit=10, seed=11)]
    other = [c.video_id for c in blender.blend(lists, limit=10, seed=12)]
    assert first == again
    assert first != other
    assert set(first) == set(other)


def test_wrong_number_of_lists_is_rejected():
    with pytest.raises(ValueError):
        Blender().blend([[], []], limit=10, seed=1)


def test_seed_stable_within_window_and_changes_across_windows():
    user_id = uuid.uuid4()
    t0 = datetime(2026, 1, 1, 12, 0, 10, tzinfo=timezone.utc)
    t1 = datetime(2026, 1, 1, 12, 4, 0, tzinfo=timezone.utc)
    t2 = datetime(2026, 1, 1, 12, 10, 0, tzinfo=timezone.utc)
    assert blend_seed(user_id, t0, 300) == blend_seed(user_id, t1, 300)
    assert blend_seed(user_id, t0, 300) != blend_seed(user_id, t2, 300)
    assert blend_seed(user_id, t0, 300) != blend_seed(uuid.uuid4(), t0, 300)
