# vidshare/videos.py
import asyncio
import base64
import binascii
import re
import time
import uuid
from typing import Iterable, List, Optional, Union

from kombu.exceptions import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from vidshare import crud
from vidshare.config import Settings
from vidshare.errors import StorageError, ValidationError, guard_store
from vidshare.logger import get_logger
from vidshare.models import Video, new_id, utcnow
from vidshare.schemas import UploadRequest
from vidshare.tasks import REMOVE_ORPHANED_OBJECT

logger = get_logger("videos")

_SLUG_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")
_TAG_SPLIT = re.compile(r"[,\s]+")


def build_object_key(title: str) -> str:
    """``<epoch-ms>-<slug>-<8 hex>.mp4``; the random suffix keeps same-millisecond uploads apart."""
    slug = _SLUG_UNSAFE.sub("-", title.strip()).strip("-")[:80] or "video"
    return f"{int(time.time() * 1000)}-{slug}-{uuid.uuid4().hex[:8]}.mp4"


def normalize_hashtags(hashtags: Union[Iterable[str], str, None]) -> List[str]:
    if not hashtags:
        return []
    if isinstance(hashtags, str):
        hashtags = _TAG_SPLIT.split(hashtags)
    tags: List[str] = []
    for raw in hashtags:
        tag = str(raw).strip().lstrip("#").strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def decode_video_payload(encoded: str) -> bytes:
    # tolerate data URLs from browser uploads
    if encoded.startswith("data:") and "," in encoded:
        encoded = encoded.split(",", 1)[1]
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("videoBase64 is not valid base64") from exc
    if not data:
        raise ValidationError("videoBase64 is empty")
    return data


def _timed_out(exc: StorageError) -> bool:
    return isinstance(exc.__cause__, asyncio.TimeoutError)


async def _compensate(object_store, celery_app, object_key: str, timeout: float) -> None:
    """Best-effort removal of an object whose metadata write failed."""
    try:
        await guard_store(run_in_threadpool(object_store.delete, object_key), "deleting orphaned object", timeout)
        return
    except StorageError:
        logger.warning("inline cleanup of %s failed, handing it to the worker", object_key)

    if celery_app is None:
        logger.error("orphaned object %s left in store, no cleanup worker configured", object_key)
        return
    try:
        await run_in_threadpool(
            celery_app.send_task,
            REMOVE_ORPHANED_OBJECT,
            args=[object_key],
            kwargs=object_store.location(),
        )
    except OperationalError as exc:
        logger.error("orphaned object %s left in store, cleanup could not be queued: %s", object_key, exc)


async def _find_saved_video(db: AsyncSession, video_id: str, timeout: float) -> Optional[Video]:
    # the request session may be stuck in the cancelled commit
    async with AsyncSession(db.bind, expire_on_commit=False) as fresh:
        return await guard_store(crud.get_video(fresh, video_id), "checking video metadata", timeout)


async def _resolve_failed_save(
    db: AsyncSession,
    object_store,
    celery_app,
    stored_key: Optional[str],
    video_id: str,
    error: StorageError,
    timeout: float,
) -> Video:
    """
    A metadata write that timed out may still have committed. The stored
    object is only removed once the row is known to be absent; if that cannot
    be determined the object is left in place and logged.
    """
    if _timed_out(error):
        try:
            video = await _find_saved_video(db, video_id, timeout)
        except StorageError:
            if stored_key is not None:
                logger.error(
                    "orphaned object %s may be left in store, could not tell whether video %s was saved",
                    stored_key,
                    video_id,
                )
            raise error
        if video is not None:
            logger.warning("video %s was saved although its metadata write timed out", video_id)
            return video

    if stored_key is not None:
        await _compensate(object_store, celery_app, stored_key, timeout)
    raise error


async def upload_video(
    db: AsyncSession,
    settings: Settings,
    object_store,
    payload: UploadRequest,
    uploader_id: Optional[str] = None,
    celery_app=None,
) -> Video:
    """
    Store the video object (when raw bytes are sent) and then its metadata.

    If the object write fails nothing is recorded. If the metadata write fails
    after the object was stored, the object is removed again and the caller
    gets a StorageError. Orphans that cannot be removed inline are sent to
    ``celery_app`` for the cleanup worker.
    """
    title = (payload.title or "").strip()
    if not title:
        raise ValidationError("Missing required fields: title")
    blob_name = (payload.video_blob_name or "").strip()
    if not payload.video_base64 and not blob_name:
        raise ValidationError("Missing required fields: videoBase64 or videoBlobName")

    hashtags = normalize_hashtags(payload.hashtags)
    timeout = settings.STORE_TIMEOUT_SECONDS
    stored_key = None

    if payload.video_base64:
        data = decode_video_payload(payload.video_base64)
        object_key = build_object_key(title)
        try:
            url = await guard_store(
                run_in_threadpool(object_store.put, object_key, data, "video/mp4"), "uploading video", timeout
            )
        except StorageError as exc:
            if _timed_out(exc):
                logger.error("orphaned object %s may still land in store after the upload timed out", object_key)
            raise
        stored_key = object_key
    else:
        object_key = blob_name
        url = object_store.url_for(object_key)

    thumbnail_url = object_store.url_for(payload.thumbnail_blob_name) if payload.thumbnail_blob_name else None

    video_id = new_id()
    try:
        video = await guard_store(
            crud.create_video(
                db,
                video_id=video_id,
                title=title,
                description=payload.description,
                hashtags=hashtags,
                object_key=object_key,
                url=url,
                thumbnail_url=thumbnail_url,
                uploader_id=uploader_id or payload.creator_id,
                uploaded_at=utcnow(),
            ),
            "saving video metadata",
            timeout,
        )
    except StorageError as exc:
        video = await _resolve_failed_save(db, object_store, celery_app, stored_key, video_id, exc, timeout)

    logger.info("video %s uploaded as %s", video.id, object_key)
    return video


async def list_videos(db: AsyncSession, settings: Settings, search: Optional[str] = None) -> List[Video]:
    """
    Each call runs a fresh query, so uploads are visible immediately.
    """
    term = (search or "").strip() or None
    limit = None if term else settings.VIDEO_LIST_LIMIT
    return await guard_store(
        crud.list_videos(db, search=term, limit=limit), "retrieving videos", settings.STORE_TIMEOUT_SECONDS
    )
