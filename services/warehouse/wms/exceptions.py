"""
Error taxonomy for the Warehouse service and the FastAPI handlers that
turn it into HTTP responses.

Service code raises these exceptions; route handlers never build error
responses themselves.
"""
import logging
from http import HTTPStatus
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = "An internal error occurred"


class WarehouseError(Exception):
    """Base class for errors that map onto an HTTP status."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    title = "Request failed"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"title": self.title, "status": self.status_code, "detail": self.detail}


class ValidationError(WarehouseError):
    """A required field is missing or a value is not acceptable."""
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Validation failed"

    def __init__(self, field: str, detail: str = None):
        super().__init__(detail or f"The {field} field is required.")
        self.field = field

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["field"] = self.field
        return body


class NotFoundError(WarehouseError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Not found"


class ConflictError(WarehouseError):
    status_code = status.HTTP_409_CONFLICT
    title = "Conflict"


class InternalError(WarehouseError):
    """Store or infrastructure failure. The detail sent to clients is always generic."""
    title = "Internal error"

    def __init__(self, detail: str = INTERNAL_ERROR_DETAIL):
        super().__init__(detail)

    def to_dict(self) -> dict:
        return {"title": self.title, "status": self.status_code, "detail": INTERNAL_ERROR_DETAIL}


def _field_name(loc) -> str:
    """Turn a pydantic error location like ("body", "items", 0, "sku") into "items[0].sku"."""
    parts = [part for part in loc if part not in ("body", "query", "path")]
    name = ""
    for part in parts:
        if isinstance(part, int):
            name += f"[{part}]"
        else:
            name += f".{part}" if name else str(part)
    return name or "body"


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on the application."""

    @app.exception_handler(WarehouseError)
    async def warehouse_error_handler(request: Request, exc: WarehouseError):
        if isinstance(exc, InternalError):
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return JSONResponse(content=exc.to_dict(), status_code=exc.status_code)

    # Framework errors (401 from auth, unknown routes, wrong methods)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        try:
            title = HTTPStatus(exc.status_code).phrase
        except ValueError:
            title = "Request failed"
        body = {"title": title, "status": exc.status_code, "detail": exc.detail}
        return JSONResponse(content=body, status_code=exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {"loc": (), "msg": "Invalid request"}
        field = _field_name(first.get("loc", ()))
        error = ValidationError(field, f"{field}: {first.get('msg', 'Invalid value')}")
        return JSONResponse(content=error.to_dict(), status_code=error.status_code)

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(content=InternalError().to_dict(), status_code=500)
