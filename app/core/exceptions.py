"""Application errors and the handlers that turn them into JSON responses.

Every error body has the same shape: ``{"message": str}``.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingApiKeyError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "OpenAI API key not found. Please add your API key in settings."


class PromptNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Prompt not found"


class EnhancementError(AppError):
    """Upstream transcription/completion failure.

    ``str(exc)`` carries the upstream message for the logs; clients only
    see ``public_message``.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Failed to enhance prompt"

    def __init__(self, upstream: str):
        super().__init__(f"{self.public_message}: {upstream}")


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = first.get("msg", "Invalid request")
    # "Value error, ..." prefix comes from plain ValueErrors raised in validators
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    loc = first.get("loc", ())
    if loc and loc[-1] == "email" and first.get("type") == "value_error":
        return "Invalid email address"
    if first.get("type") == "missing":
        field = ".".join(str(part) for part in loc[1:])
        if field:
            message = f"{field}: {message}"
    return message


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": _first_validation_message(exc)},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, EnhancementError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        message = exc.public_message
    else:
        message = exc.message
    return JSONResponse(status_code=exc.status_code, content={"message": message})


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
