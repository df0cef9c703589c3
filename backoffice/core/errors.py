import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backoffice.core.config import get_settings

logger = logging.getLogger(__name__)


def _status_label(status_code: int) -> str:
    return "fail" if str(status_code).startswith("4") else "error"


class AppError(Exception):
    """
    Operational error whose message is safe to send to the client.
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.status = _status_label(self.status_code)
        self.is_operational = True


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ValidationFailedError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status, "message": exc.message},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
        message = f"Can't find {request.url.path} on this server!"
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": _status_label(exc.status_code), "message": message},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()) if part != 'body')}: {error.get('msg')}"
        for error in errors
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "status": "fail",
            "message": message or "Invalid request",
            "errors": [{"loc": list(error.get("loc", ())), "msg": error.get("msg")} for error in errors],
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    settings = get_settings()
    if settings.is_development:
        content = {
            "status": "error",
            "message": str(exc),
            "error": repr(exc),
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }
    else:
        content = {"status": "error", "message": "Something went wrong"}
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
