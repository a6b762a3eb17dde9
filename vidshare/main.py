# vidshare/main.py
"""
uvicorn vidshare.main:create_app --factory --host 0.0.0.0 --port 8000 --workers 2
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from vidshare import auth, comments, schemas, videos
from vidshare.auth import get_current_user, get_optional_user, get_settings
from vidshare.config import Settings
from vidshare.database import build_engine, build_session_factory, create_tables, get_db
from vidshare.errors import AuthError, register_exception_handlers
from vidshare.logger import get_logger, init_sentry, setup_logging
from vidshare.storage import S3ObjectStore
from vidshare.tasks import build_celery

logger = get_logger()


def get_object_store(request: Request):
    return request.app.state.object_store


def get_celery(request: Request):
    return request.app.state.celery


def build_router(limiter: Limiter) -> APIRouter:
    """
    API routes, rate limited by the limiter of the app they are mounted on.
    """
    router = APIRouter(prefix="/api")

    # --- Auth Routes ---
    @router.post("/register", response_model=schemas.RegisterOut, status_code=201)
    @limiter.limit("10/minute")
    async def register(
        request: Request,
        payload: schemas.RegisterRequest,
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ):
        user = await auth.register_user(db, settings, payload.username, payload.password, payload.role)
        return schemas.RegisterOut(message="User registered successfully", user_id=user.id)

    @router.post("/register-creator", response_model=schemas.RegisterCreatorOut, status_code=201)
    @limiter.limit("10/minute")
    async def register_creator(
        request: Request,
        payload: schemas.CredentialsRequest,
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ):
        user = await auth.register_creator(db, settings, payload.username, payload.password)
        return schemas.RegisterCreatorOut(message="Creator registered successfully", creator_id=user.id)

    @router.post("/login", response_model=schemas.TokenOut)
    @limiter.limit("5/minute")
    async def login(
        request: Request,
        payload: schemas.CredentialsRequest,
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ):
        token = await auth.login(db, settings, payload.username, payload.password)
        return schemas.TokenOut(message="Login successful", token=token)

    @router.get("/protected", response_model=schemas.ProtectedOut)
    async def protected(user: schemas.TokenClaims = Depends(get_current_user)):
        return schemas.ProtectedOut(message="Access to protected route granted", user=user)

    # --- Video Routes ---
    @router.post("/upload", response_model=schemas.UploadOut, status_code=201)
    async def upload_video(
        payload: schemas.UploadRequest,
        user: Optional[schemas.TokenClaims] = Depends(get_optional_user),
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
        object_store=Depends(get_object_store),
        celery_app=Depends(get_celery),
    ):
        """
        Anonymous uploads are accepted; a bearer token, when sent, must belong to a creator.
        """
        if user is not None and user.role != "creator":
            raise AuthError("Only creators can upload videos", status_code=403)
        video = await videos.upload_video(
            db,
            settings,
            object_store,
            payload,
            uploader_id=user.user_id if user else None,
            celery_app=celery_app,
        )
        return schemas.UploadOut(message="Video uploaded successfully", video_id=video.id, url=video.url)

    @router.get("/videos", response_model=List[schemas.VideoOut])
    async def list_videos(
        search: Optional[str] = None,
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ):
        result = await videos.list_videos(db, settings, search)
        return [schemas.VideoOut.model_validate(v) for v in result]

    # --- Comment Routes ---
    @router.get("/comments/{video_id}", response_model=List[schemas.CommentOut])
    async def list_comments(
        video_id: str,
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ):
        result = await comments.list_comments(db, settings, video_id)
        return [schemas.CommentOut.model_validate(c) for c in result]

    @router.post("/comments", response_model=schemas.CommentCreatedOut, status_code=201)
    async def post_comment(
        payload: schemas.CommentRequest,
        db: AsyncSession = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ):
        comment = await comments.post_comment(db, settings, payload.video_id, payload.user_id, payload.comment)
        return schemas.CommentCreatedOut(message="Comment posted successfully", comment_id=comment.id)

    return router


def create_app(
    settings: Optional[Settings] = None,
    object_store=None,
    engine: Optional[AsyncEngine] = None,
    celery_app=None,
) -> FastAPI:
    """
    Build the API with its store clients. Anything not passed in is built from settings.
    """
    settings = settings or Settings.from_env()
    setup_logging(settings.LOG_LEVEL)
    if settings.uses_insecure_secret:
        logger.warning("JWT_SECRET is not set, tokens are signed with an insecure default key")
    init_sentry(settings.SENTRY_DSN)

    engine = engine or build_engine(settings.DATABASE_URL)

    app = FastAPI(title="VidShare API")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.object_store = object_store or S3ObjectStore.from_settings(settings)
    # only used to send cleanup tasks by name; the worker runs vidshare.worker
    app.state.celery = celery_app or build_celery(settings)

    # Initialize rate limiter
    limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
    app.state.limiter = limiter
    register_exception_handlers(app)

    # Create DB tables
    @app.on_event("startup")
    async def startup_event():
        await create_tables(engine)

    @app.on_event("shutdown")
    async def shutdown_event():
        await engine.dispose()

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(build_router(limiter))
    return app
