# vidshare/auth.py
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from vidshare import crud
from vidshare.config import Settings
from vidshare.errors import AuthError, ConflictError, ValidationError, guard_store
from vidshare.logger import get_logger
from vidshare.models import ROLES, User
from vidshare.schemas import TokenClaims

logger = get_logger("auth")

bearer = HTTPBearer(auto_error=False)

# bcrypt only looks at the first 72 bytes of a secret
MAX_PASSWORD_BYTES = 72


# --- Passwords ---

def _check_password_length(password: str) -> bytes:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return raw


def hash_password(password: str, rounds: int) -> str:
    raw = _check_password_length(password)
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash or over-long input
        return False


@lru_cache(maxsize=8)
def _dummy_hash(rounds: int) -> str:
    return bcrypt.hashpw(b"vidshare-timing-equaliser", bcrypt.gensalt(rounds=rounds)).decode("utf-8")


# --- Tokens ---

def create_access_token(user: User, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta is not None else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"id": user.id, "username": user.username, "role": user.role, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: Optional[str], settings: Settings) -> TokenClaims:
    """
    Check signature and expiry and return the identity carried by the token.

    A missing token is a 401, anything that fails verification a 403.
    """
    if not token:
        raise AuthError("Access Denied: missing token", status_code=401)
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        logger.info("rejected bearer token: %s", exc)
        raise AuthError("Invalid Token", status_code=403) from exc

    try:
        return TokenClaims(user_id=payload["id"], username=payload["username"], role=payload["role"])
    except KeyError as exc:
        raise AuthError("Invalid Token", status_code=403) from exc


# --- Registration / login ---

def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if not value or not str(value).strip()]
    if missing:
        raise ValidationError("Missing required fields: " + ", ".join(missing))


async def _create_account(db: AsyncSession, settings: Settings, username: str, password: str, role: str) -> User:
    timeout = settings.STORE_TIMEOUT_SECONDS
    existing = await guard_store(crud.get_user_by_username(db, username), "looking up user", timeout)
    if existing is not None:
        raise ConflictError("Username already exists")

    password_hash = await run_in_threadpool(hash_password, password, settings.BCRYPT_ROUNDS)
    # the unique index on username catches a concurrent registration that passed the lookup
    user = await guard_store(
        crud.create_user(db, username, password_hash, role),
        "registering user",
        timeout,
        conflict_message="Username already exists",
    )
    logger.info("registered user %s with role %s", user.id, role)
    return user


async def register_user(db: AsyncSession, settings: Settings, username: str, password: str, role: str) -> User:
    _require(username=username, password=password, role=role)
    if role not in ROLES:
        raise ValidationError(f"Invalid role: must be one of {', '.join(ROLES)}")
    _check_password_length(password)
    return await _create_account(db, settings, username, password, role)


async def register_creator(db: AsyncSession, settings: Settings, username: str, password: str) -> User:
    """Register an account whose role is always ``creator``."""
    _require(username=username, password=password)
    _check_password_length(password)
    return await _create_account(db, settings, username, password, "creator")


async def authenticate_user(db: AsyncSession, settings: Settings, username: str, password: str) -> User:
    _require(username=username, password=password)
    user = await guard_store(
        crud.get_user_by_username(db, username), "looking up user", settings.STORE_TIMEOUT_SECONDS
    )
    if user is None:
        # same bcrypt cost as a real check so unknown names are not faster
        await run_in_threadpool(verify_password, password, _dummy_hash(settings.BCRYPT_ROUNDS))
        raise AuthError("Invalid credentials")
    if not await run_in_threadpool(verify_password, password, user.password_hash):
        raise AuthError("Invalid credentials")
    return user


async def login(db: AsyncSession, settings: Settings, username: str, password: str) -> str:
    user = await authenticate_user(db, settings, username, password)
    logger.info("user %s logged in", user.id)
    return create_access_token(user, settings)


# --- FastAPI dependencies ---

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def bearer_token(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Optional[str]:
    return creds.credentials if creds else None


def get_current_user(
    token: Optional[str] = Depends(bearer_token),
    settings: Settings = Depends(get_settings),
) -> TokenClaims:
    return verify_token(token, settings)


def get_optional_user(
    token: Optional[str] = Depends(bearer_token),
    settings: Settings = Depends(get_settings),
) -> Optional[TokenClaims]:
    if token is None:
        return None
    return verify_token(token, settings)
