# vidshare/config.py
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

INSECURE_JWT_SECRET = "your-secret-key"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class Settings(BaseModel):
    DATABASE_URL: str = "sqlite+aiosqlite:///./vidshare.db"

    JWT_SECRET: str = INSECURE_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 10

    OBJECT_STORE_BUCKET: str = "videos"
    OBJECT_STORE_ENDPOINT_URL: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    CDN_BASE_URL: Optional[str] = None

    STORE_TIMEOUT_SECONDS: float = 10.0
    # None lists every video; a number keeps only the newest N
    VIDEO_LIST_LIMIT: Optional[int] = None

    RATE_LIMIT_ENABLED: bool = True

    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    SENTRY_DSN: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    @property
    def uses_insecure_secret(self) -> bool:
        return self.JWT_SECRET == INSECURE_JWT_SECRET

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment and an optional .env file."""
        load_dotenv()
        return cls(
            DATABASE_URL=os.getenv("DATABASE_URL", cls.model_fields["DATABASE_URL"].default),
            JWT_SECRET=os.getenv("JWT_SECRET") or INSECURE_JWT_SECRET,
            JWT_ALGORITHM=os.getenv("JWT_ALGORITHM", "HS256"),
            ACCESS_TOKEN_EXPIRE_MINUTES=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
            BCRYPT_ROUNDS=int(os.getenv("BCRYPT_ROUNDS", "10")),
            OBJECT_STORE_BUCKET=os.getenv("OBJECT_STORE_BUCKET", "videos"),
            OBJECT_STORE_ENDPOINT_URL=os.getenv("OBJECT_STORE_ENDPOINT_URL") or None,
            AWS_REGION=os.getenv("AWS_REGION", "us-east-1"),
            CDN_BASE_URL=os.getenv("CDN_BASE_URL") or None,
            STORE_TIMEOUT_SECONDS=float(os.getenv("STORE_TIMEOUT_SECONDS", "10")),
            VIDEO_LIST_LIMIT=_env_optional_int("VIDEO_LIST_LIMIT"),
            RATE_LIMIT_ENABLED=_env_bool("RATE_LIMIT_ENABLED", True),
            CELERY_BROKER_URL=os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0"),
            CELERY_RESULT_BACKEND=os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0"),
            SENTRY_DSN=os.getenv("SENTRY_DSN") or None,
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
