from typing import Generic, Optional, TypeVar

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope returned by every API route."""

    status: str = "success"
    message: Optional[str] = None
    data: Optional[T] = None


def success(data=None, message: Optional[str] = None) -> dict:
    return {"status": "success", "message": message, "data": data}


def error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message},
        headers=headers,
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if location:
        return f"Invalid value for {location}: {first.get('msg')}"
    return f"Invalid request body: {first.get('msg')}"


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail
        if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
            message = "Route not found"
        return error_response(exc.status_code, str(message), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("request_validation_failed", path=request.url.path, errors=str(exc.errors()))
        return error_response(status.HTTP_400_BAD_REQUEST, _describe_validation_error(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, method=request.method)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
