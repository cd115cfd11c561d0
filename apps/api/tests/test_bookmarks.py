from bookmarks import bookmarked_ids, list_bookmarks, toggle_bookmark
from cursor import Cursor


def test_toggle_flips_state(db, seed, user):
    video = seed.video(seed.user())
    assert toggle_bookmark(db, user.id, video.id) is True
    assert bookmarked_ids(db, user.id, [video.id]) == {video.id}
    assert toggle_bookmark(db, user.id, video.id) is False
    assert bookmarked_ids(db, user.id, [video.id]) == set()
    assert toggle_bookmark(db, user.id, video.id) is True


def test_bookmarked_ids_with_no_ids(db, user):
    assert bookmarked_ids(db, user.id, []) == set()


def test_list_bookmarks_newest_first_with_keyset(db, seed, user):
    owner = seed.user()
    videos = [seed.video(owner) for _ in range(3)]
    for v in videos:
        seed.bookmark(user, v)

    page, has_more = list_bookmarks(db, user.id, None, 2)
    assert [v.id for v, _ in page] == [videos[2].id, videos[1].id]
    assert has_more is True

    _, last = page[-1]
    rest, has_more = list_bookmarks(db, user.id, Cursor(last.video_id, last.created_at), 2)
    assert [v.id for v, _ in rest] == [videos[0].id]
    assert has_more is False
