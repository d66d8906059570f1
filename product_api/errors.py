# ============================================
# product_api/errors.py: Error Taxonomy & Handlers
# ============================================
# Every per-request failure ends up here and leaves as a JSON response
# shaped {"message": ..., ...}. Nothing escapes to crash the worker.

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError

from .logger import get_logger

logger = get_logger("errors")


class ProductAPIError(Exception):
    status_code = 500
    message = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.extra}


class InputError(ProductAPIError):
    status_code = 400
    message = "Validation failed"


class SearchQueryRequired(InputError):
    message = "Search query 'q' is required"


class InvalidProductId(InputError):
    message = "Invalid ID format"


class EmptyUpdate(InputError):
    message = "No fields provided for update"


class ProductNotFound(ProductAPIError):
    status_code = 404
    message = "Product not found"


class AuthenticationRequired(ProductAPIError):
    status_code = 401
    message = "Access denied. No API key provided."


class InvalidAPIKey(ProductAPIError):
    status_code = 403
    message = "Invalid API key."


def _format_validation_error(error: Dict[str, Any]) -> str:
    # ("body", "price") -> "price"
    location = [str(part) for part in error.get("loc", ()) if part != "body"]
    field = ".".join(location)
    return f"{field}: {error['msg']}" if field else error["msg"]


async def product_api_error_handler(request: Request, exc: ProductAPIError):
    logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [_format_validation_error(error) for error in exc.errors()]
    logger.warning("%s %s -> 400 validation failed: %s", request.method, request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "errors": errors},
    )


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    details = exc.details or {}
    logger.warning("%s %s -> 400 duplicate key %s", request.method, request.url.path, details.get("keyValue"))
    return JSONResponse(
        status_code=400,
        content={"message": "Duplicate field value entered", "error": details.get("keyValue")},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    production = request.app.state.settings.is_production
    return JSONResponse(
        status_code=500,
        content={
            "message": "Something went wrong!",
            "error": {} if production else str(exc),
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProductAPIError, product_api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
