# vidshare/tasks.py
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError
from celery import Celery, shared_task

from vidshare.config import Settings
from vidshare.logger import get_logger
from vidshare.storage import S3ObjectStore

logger = get_logger("tasks")

REMOVE_ORPHANED_OBJECT = "vidshare.tasks.remove_orphaned_object"


def build_celery(settings: Settings) -> Celery:
    """
    Celery app for the given settings. The API uses it to send tasks by name,
    the worker (vidshare.worker) to consume them.
    """
    celery_app = Celery(
        "vidshare",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
    )

    # Set soft/hard timeouts so a stuck object store cannot hold a worker forever
    celery_app.conf.update(
        task_soft_time_limit=60,
        task_time_limit=120,
        task_default_queue="default",
        task_send_sent_event=True,
        worker_send_task_events="state_changed",
    )
    return celery_app


def build_object_store(bucket: str, region: str = "us-east-1", endpoint_url: Optional[str] = None) -> S3ObjectStore:
    return S3ObjectStore.connect(bucket=bucket, region=region, endpoint_url=endpoint_url)


# Use Retries with Exponential Backoff
@shared_task(
    name=REMOVE_ORPHANED_OBJECT,
    autoretry_for=(BotoCoreError, ClientError),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def remove_orphaned_object(
    object_key: str,
    bucket: str,
    region: str = "us-east-1",
    endpoint_url: Optional[str] = None,
) -> Dict[str, str]:
    """
    Delete a video object whose metadata record was never written.

    The bucket comes from the API process that stored the object, so the
    worker deletes from the same place whatever its own environment says.
    """
    build_object_store(bucket, region, endpoint_url).delete(object_key)
    logger.info("removed orphaned object %s from %s", object_key, bucket)
    return {"object_key": object_key, "bucket": bucket, "status": "deleted"}
