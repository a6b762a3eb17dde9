# vidshare/errors.py
import asyncio
from typing import Awaitable, Optional, TypeVar

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from vidshare.logger import get_logger

logger = get_logger("errors")

T = TypeVar("T")


class VidShareError(Exception):
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(VidShareError):
    status_code = 400
    default_message = "Missing required fields"


class ConflictError(VidShareError):
    status_code = 400
    default_message = "Username already exists"


class AuthError(VidShareError):
    status_code = 401
    default_message = "Invalid credentials"


class StorageError(VidShareError):
    status_code = 500
    default_message = "Internal Server Error"


async def guard_store(
    awaitable: Awaitable[T],
    action: str,
    timeout: float,
    conflict_message: Optional[str] = None,
) -> T:
    """
    Await a store or object-store call with a timeout.

    Store failures are logged with their detail and re-raised as a StorageError
    carrying a generic message. When ``conflict_message`` is given, a
    unique-constraint violation becomes a ConflictError instead.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except IntegrityError as exc:
        if conflict_message:
            logger.info("%s rejected by unique constraint", action)
            raise ConflictError(conflict_message) from exc
        logger.error("%s failed: %s", action, exc)
        raise StorageError(f"Error {action}") from exc
    except asyncio.TimeoutError as exc:
        logger.error("%s timed out after %.1fs", action, timeout)
        raise StorageError(f"Error {action}") from exc
    except (SQLAlchemyError, BotoCoreError, ClientError) as exc:
        logger.error("%s failed: %s", action, exc)
        raise StorageError(f"Error {action}") from exc


def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(VidShareError)
    def vidshare_error_handler(request: Request, exc: VidShareError):
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        return _error_response(400, "Malformed request body", fields=fields)

    # Rate limit error handler
    @app.exception_handler(RateLimitExceeded)
    def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        return _error_response(429, "Too many requests", limit=str(exc.detail))
