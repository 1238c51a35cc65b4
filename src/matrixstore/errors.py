"""Error taxonomy and the FastAPI handlers that render it.

Every domain failure is a MatrixStoreError subclass carrying its own HTTP
status, a stable error code and a client-safe message. Services raise them,
one handler turns them into `{"error": ..., "code": ...}` bodies.

The optional `cause` is kept for logs only; it never reaches the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class MatrixStoreError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code = 500
    code = "internal_error"
    message = "Internal server error"
    headers: dict[str, str] | None = None

    def __init__(self, message: str | None = None, *, cause: BaseException | None = None):
        self.message = message or self.message
        self.cause = cause
        super().__init__(self.message)


class InvalidInput(MatrixStoreError):
    status_code = 400
    code = "invalid_input"
    message = "Invalid request body"


class InvalidCredentials(MatrixStoreError):
    """Login mismatch. Unknown email and wrong password look the same."""

    status_code = 401
    code = "invalid_credentials"
    message = "Invalid credentials"


class Unauthorized(MatrixStoreError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required"
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(MatrixStoreError):
    status_code = 403
    code = "forbidden"
    message = "Invalid or expired token"


class InvalidToken(MatrixStoreError):
    """Raised by token verification: bad signature, malformed or expired."""

    status_code = 403
    code = "forbidden"
    message = "Invalid or expired token"


class EmailAlreadyRegistered(MatrixStoreError):
    status_code = 409
    code = "email_taken"
    message = "Email already registered"


class StorageError(MatrixStoreError):
    """Any backing-store failure. The driver exception is kept in `cause`."""

    status_code = 500
    code = "storage_error"
    message = "Database error"


class HashingError(MatrixStoreError):
    status_code = 500
    code = "hashing_error"
    message = "Could not process password"


def error_response(exc: MatrixStoreError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
        headers=exc.headers,
    )


async def _matrixstore_error_handler(request: Request, exc: MatrixStoreError):
    if exc.status_code >= 500:
        logger.error(
            "request.failed",
            path=request.url.path,
            code=exc.code,
            cause=repr(exc.cause) if exc.cause else None,
        )
    else:
        logger.info("request.rejected", path=request.url.path, code=exc.code)
    return error_response(exc)


async def _validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = first.get("msg", "Invalid request body")
    message = f"{location}: {detail}" if location else detail
    return error_response(InvalidInput(message))


async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("request.unhandled_error", path=request.url.path)
    return error_response(MatrixStoreError())


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that translate failures into JSON error bodies."""
    app.add_exception_handler(MatrixStoreError, _matrixstore_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
