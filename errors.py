from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from logger import get_logger

log = get_logger("errors")

GENERIC_ERROR = "An error occurred. Please try again."
LOGIN_REQUIRED = "Unauthenticated, login is required"


class ApiError(HTTPException):
    status_code = 400
    default_detail = "Bad request"

    def __init__(self, detail=None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class BadRequest(ApiError):
    status_code = 400


class Unauthenticated(ApiError):
    status_code = 401
    default_detail = LOGIN_REQUIRED


class Forbidden(ApiError):
    status_code = 403
    default_detail = "Forbidden"


class NotFound(ApiError):
    status_code = 404
    default_detail = "Not found"


class InvalidTransition(BadRequest):
    default_detail = "Invalid order status transition"


class InvalidProduct(BadRequest):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Invalid product ID: {product_id}")


class InvalidQuantity(BadRequest):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Quantity must be greater than 0 for product ID: {product_id}")


class InvalidAddress(BadRequest):
    def __init__(self, address_id: int):
        self.address_id = address_id
        super().__init__(f"Invalid address ID: {address_id}")


def _bound(value):
    # pydantic reports float bounds as 0.0
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _field_message(error: dict) -> str:
    ctx = error.get("ctx") or {}
    kind = error.get("type")
    if kind == "missing":
        return "This field is required."
    if kind == "greater_than":
        return f"Value must be greater than {_bound(ctx.get('gt'))}."
    if kind == "greater_than_equal":
        return f"Value must be greater than or equal to {_bound(ctx.get('ge'))}."
    if kind == "less_than_equal":
        return f"Value must be less than or equal to {_bound(ctx.get('le'))}."
    if kind in ("string_too_short", "too_short"):
        return f"Value length must be greater than or equal to {ctx.get('min_length')}"
    return error.get("msg", "Invalid value.")


def validation_messages(errors) -> dict:
    """Flatten pydantic errors into {snake_case_field: message}."""
    messages = {}
    for error in errors:
        names = [str(part) for part in error.get("loc", ()) if isinstance(part, str)]
        names = [n for n in names if n not in ("body", "query", "path")]
        field = names[-1] if names else "body"
        messages.setdefault(field, _field_message(error))
    return messages


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": validation_messages(exc.errors())})


async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": GENERIC_ERROR})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
