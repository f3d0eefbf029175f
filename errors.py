"""
errors.py

Error taxonomy and the global handlers that turn raised errors into HTTP
responses. Route handlers raise; nothing in between recovers.

  AppValidationError   -> 400 {"validationError": {...}}
  HTTPException        -> its own status, {"message": ...}
  UpstreamError        -> 502 {"message": ...}
  anything else        -> 500, detail hidden in production
"""

import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import IS_PRODUCTION

logger = logging.getLogger(__name__)


# =====================================================================
# SECTION: ERROR TYPES
# =====================================================================

VALIDATION_TYPES = ("form", "query", "param")


class AppValidationError(Exception):
    """Malformed client input. `path` is only reported for form (body) errors."""

    def __init__(self, type: str, message: str, path: Optional[str] = None):
        super().__init__(message)
        if type not in VALIDATION_TYPES:
            type = "form"
        self.type = type
        self.message = message
        self.path = path

    def to_dict(self) -> dict:
        body = {"type": self.type, "message": self.message}
        if self.type == "form" and self.path:
            body["path"] = self.path
        return {"validationError": body}


class UpstreamError(Exception):
    """A third-party API (token, search, geo, currency, SMTP) failed."""

    def __init__(self, message: str = "Upstream service failed"):
        super().__init__(message)
        self.message = message


# =====================================================================
# SECTION: HANDLERS
# =====================================================================

_LOC_TO_TYPE = {"body": "form", "query": "query", "path": "param", "header": "param"}


def validation_error_from_request(exc: RequestValidationError) -> AppValidationError:
    errors = exc.errors()
    if not errors:
        return AppValidationError("form", "Invalid request")

    first = errors[0]
    loc = list(first.get("loc") or [])
    source = str(loc[0]) if loc else "body"
    field_path = ".".join(str(p) for p in loc[1:])
    message = first.get("msg") or "Invalid value"
    if field_path:
        message = f"{field_path}: {message}"

    return AppValidationError(_LOC_TO_TYPE.get(source, "form"), message, field_path or None)


async def app_validation_error_handler(request: Request, exc: AppValidationError):
    logger.info(f"[validation] path={request.url.path} type={exc.type} message={exc.message}")
    return JSONResponse(status_code=400, content=exc.to_dict())


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return await app_validation_error_handler(request, validation_error_from_request(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if exc.status_code == 404 and detail == "Not Found":
        # Router-level miss, not a handler raising 404
        detail = f"{request.url.path} Not Found"
    if isinstance(detail, dict):
        content = detail
    else:
        content = {"message": detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.warning(f"[upstream] path={request.url.path} error={exc.message}")
    return JSONResponse(status_code=502, content={"message": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"[error] unhandled path={request.url.path}")
    if IS_PRODUCTION:
        return JSONResponse(status_code=500, content={"message": "Internal Server Error"})
    return JSONResponse(
        status_code=500,
        content={
            "message": str(exc) or exc.__class__.__name__,
            "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppValidationError, app_validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
