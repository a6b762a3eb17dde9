# vidshare/storage.py
from typing import Dict, Optional

import boto3
from botocore.config import Config

from vidshare.config import Settings
from vidshare.logger import get_logger

logger = get_logger("storage")


class S3ObjectStore:
    """
    Blob storage for raw video files on S3 or any S3-compatible endpoint.

    Calls are blocking; async callers run them in a worker thread.
    """

    def __init__(
        self,
        client,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        cdn_base_url: Optional[str] = None,
    ):
        self.client = client
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.cdn_base_url = cdn_base_url

    @classmethod
    def connect(
        cls,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        cdn_base_url: Optional[str] = None,
        timeout: float = 10.0,
    ) -> "S3ObjectStore":
        client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            config=Config(connect_timeout=timeout, read_timeout=timeout, retries={"max_attempts": 3}),
        )
        return cls(client, bucket=bucket, region=region, endpoint_url=endpoint_url, cdn_base_url=cdn_base_url)

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStore":
        return cls.connect(
            bucket=settings.OBJECT_STORE_BUCKET,
            region=settings.AWS_REGION,
            endpoint_url=settings.OBJECT_STORE_ENDPOINT_URL,
            cdn_base_url=settings.CDN_BASE_URL,
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )

    def location(self) -> Dict[str, Optional[str]]:
        """Enough to reconnect to the same bucket from another process."""
        return {"bucket": self.bucket, "region": self.region, "endpoint_url": self.endpoint_url}

    def url_for(self, key: str) -> str:
        if self.cdn_base_url:
            return f"{self.cdn_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def put(self, key: str, data: bytes, content_type: str = "video/mp4") -> str:
        self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        logger.info("stored object %s (%d bytes)", key, len(data))
        return self.url_for(key)

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info("deleted object %s", key)
