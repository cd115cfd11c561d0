import os

# Engine in db.py is built at import time; tests bind their own per-test database.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET", "test-secret")

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from models import Base, Bookmark, Comment, User, Video, VideoView, Vote, utcnow


class Seed:
    """Row factories for the tables the feed reads."""

    def __init__(self, db):
        self.db = db

    def _add(self, row):
        self.db.add(row)
        self.db.commit()
        return row

    def user(self):
        return self._add(User(auth_subject=f"sub-{uuid.uuid4()}"))

    def video(self, owner, *, target_type="proposal", target_id=None, age=None, created_at=None):
        if created_at is None:
            created_at = utcnow() - (age or timedelta(0))
        return self._add(
            Video(
                owner_user_id=owner.id,
                target_type=target_type,
                target_id=target_id or uuid.uuid4(),
                storage_bucket="media",
                storage_key=f"videos/{uuid.uuid4()}.mp4",
                content_type="video/mp4",
                duration_seconds=30,
                created_at=created_at,
            )
        )

    def vote(self, user, video, value=1):
        return self._add(Vote(user_id=user.id, target_type="video", target_id=video.id, value=value))

    def comment(self, author, video, body="ok"):
        return self._add(
            Comment(author_user_id=author.id, target_type="video", target_id=video.id, body_markdown=body)
        )

    def view(self, user, video):
        return self._add(VideoView(user_id=user.id, video_id=video.id))

    def bookmark(self, user, video):
        return self._add(Bookmark(user_id=user.id, video_id=video.id))


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'feed.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    return Seed(db)


@pytest.fixture
def user(seed):
    return seed.user()


@pytest.fixture
def client(session_factory, user):
    from fastapi.testclient import TestClient

    from db import get_db, get_session_factory
    from main import app
    from session import get_current_user

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_current_user] = lambda: user

    with TestClient(app) as c:
        token = c.get("/csrf").json()["csrf"]
        c.headers["x-csrf-token"] = token
        yield c

    app.dependency_overrides.clear()
