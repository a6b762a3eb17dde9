# vidshare/models.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from vidshare.database import Base

ROLES = ("creator", "consumer")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=new_id)
    # unique at the store level so concurrent registrations cannot both win
    username = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Video(Base):
    __tablename__ = "videos"
    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    object_key = Column(String(512), nullable=False)
    url = Column(String(1024), nullable=False)
    thumbnail_url = Column(String(1024), nullable=True)
    # advisory reference to users.id, no foreign key
    uploader_id = Column(String(36), nullable=True, index=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    tags = relationship(
        "VideoHashtag",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="VideoHashtag.position",
    )

    @property
    def hashtags(self) -> list:
        return [t.tag for t in self.tags]


class VideoHashtag(Base):
    __tablename__ = "video_hashtags"
    video_id = Column(String(36), ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True)
    tag = Column(String(128), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (Index("ix_video_hashtags_tag", "tag"),)


class Comment(Base):
    __tablename__ = "comments"
    id = Column(String(36), primary_key=True, default=new_id)
    # advisory references, the video is not required to exist
    video_id = Column(String(255), nullable=False, index=True)
    user_id = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)
