# apps/api/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import declarative_base

# Naming convention helps Alembic autogenerate predictable constraint names
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)
Base = declarative_base(metadata=metadata)

# Things a video can be attached to
VIDEO_TARGET_TYPES = ("proposal", "program")
# Things that can be voted or commented on
CONTENT_TARGET_TYPES = ("proposal", "program", "video", "comment")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    auth_subject = Column(String, unique=True, nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class Video(Base):
    __tablename__ = "videos"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    owner_user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_type = Column(String(16), nullable=False)  # proposal|program
    target_id = Column(Uuid, nullable=False)

    storage_bucket = Column(String, nullable=False)
    storage_key = Column(String, nullable=False)
    content_type = Column(String, nullable=False)
    duration_seconds = Column(Integer, nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "target_type in ('proposal', 'program')", name="target_type"
        ),
        Index("ix_videos_target", "target_type", "target_id", "created_at"),
        Index("ix_videos_owner_user_id", "owner_user_id"),
        Index("ix_videos_created_at", "created_at"),
    )


class Vote(Base):
    __tablename__ = "votes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_type = Column(String(16), nullable=False)
    target_id = Column(Uuid, nullable=False)
    value = Column(SmallInteger, nullable=False)  # -1 | +1
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "target_type", "target_id"),
        CheckConstraint("value in (-1, 1)", name="value"),
        Index("ix_votes_target", "target_type", "target_id"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    author_user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_type = Column(String(16), nullable=False)
    target_id = Column(Uuid, nullable=False)
    parent_comment_id = Column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    body_markdown = Column(Text, nullable=False)
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_comments_target", "target_type", "target_id", "created_at"),
    )


class VideoView(Base):
    __tablename__ = "video_views"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    video_id = Column(
        Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "video_id"),
        Index("ix_video_views_user_created", "user_id", "created_at"),
        Index("ix_video_views_video_id", "video_id"),
    )


class Bookmark(Base):
    __tablename__ = "bookmarks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    video_id = Column(
        Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_id", "video_id"),
        Index("ix_bookmarks_user_created", "user_id", "created_at"),
        Index("ix_bookmarks_video_id", "video_id"),
    )
