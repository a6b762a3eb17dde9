# vidshare/crud.py
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from vidshare.models import Comment, User, Video, VideoHashtag, new_id


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalars().first()


async def create_user(db: AsyncSession, username: str, password_hash: str, role: str) -> User:
    db_user = User(username=username, password_hash=password_hash, role=role)
    db.add(db_user)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return db_user


async def create_video(
    db: AsyncSession,
    *,
    title: str,
    description: Optional[str],
    hashtags: Sequence[str],
    object_key: str,
    url: str,
    thumbnail_url: Optional[str],
    uploader_id: Optional[str],
    uploaded_at: datetime,
    video_id: Optional[str] = None,
) -> Video:
    db_video = Video(
        id=video_id or new_id(),
        title=title,
        description=description,
        object_key=object_key,
        url=url,
        thumbnail_url=thumbnail_url,
        uploader_id=uploader_id,
        uploaded_at=uploaded_at,
        tags=[VideoHashtag(tag=tag, position=i) for i, tag in enumerate(hashtags)],
    )
    db.add(db_video)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return db_video


async def get_video(db: AsyncSession, video_id: str) -> Optional[Video]:
    result = await db.execute(select(Video).where(Video.id == video_id))
    return result.scalars().first()


async def list_videos(db: AsyncSession, search: Optional[str] = None, limit: Optional[int] = None) -> List[Video]:
    """
    Newest first. ``search`` matches a title substring or a whole hashtag,
    both case-insensitively.
    """
    stmt = select(Video).order_by(Video.uploaded_at.desc())
    if search:
        needle = search.lower()
        stmt = stmt.where(
            or_(
                func.lower(Video.title).contains(needle, autoescape=True),
                Video.tags.any(func.lower(VideoHashtag.tag) == needle),
            )
        )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_comment(db: AsyncSession, video_id: str, user_id: str, body: str, timestamp: datetime) -> Comment:
    db_comment = Comment(video_id=video_id, user_id=user_id, body=body, timestamp=timestamp)
    db.add(db_comment)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return db_comment


async def list_comments(db: AsyncSession, video_id: str) -> List[Comment]:
    result = await db.execute(
        select(Comment).where(Comment.video_id == video_id).order_by(Comment.timestamp.asc())
    )
    return list(result.scalars().all())
