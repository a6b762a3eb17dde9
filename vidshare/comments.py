# vidshare/comments.py
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from vidshare import crud
from vidshare.config import Settings
from vidshare.errors import ValidationError, guard_store
from vidshare.logger import get_logger
from vidshare.models import Comment, utcnow

logger = get_logger("comments")


async def post_comment(db: AsyncSession, settings: Settings, video_id: str, user_id: str, body: str) -> Comment:
    # The video is not looked up: comments may reference ids this store has not seen.
    missing = [name for name, value in (("videoId", video_id), ("userId", user_id), ("comment", body))
               if not value or not value.strip()]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))

    comment = await guard_store(
        crud.create_comment(db, video_id.strip(), user_id.strip(), body.strip(), utcnow()),
        "posting comment",
        settings.STORE_TIMEOUT_SECONDS,
    )
    logger.info("comment %s posted on video %s", comment.id, comment.video_id)
    return comment


async def list_comments(db: AsyncSession, settings: Settings, video_id: str) -> List[Comment]:
    return await guard_store(
        crud.list_comments(db, video_id), "fetching comments", settings.STORE_TIMEOUT_SECONDS
    )
