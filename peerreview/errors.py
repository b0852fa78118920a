# peerreview/errors.py
"""
Error taxonomy for the API.

Every error renders as ``{"error": message}`` with its HTTP status; request
body validation failures are folded into ValidationError (400).
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class AuthenticationError(APIError):
    status_code = 401
    message = "Access token required"


class InvalidTokenError(AuthenticationError):
    # kept at 403 for compatibility with existing clients
    status_code = 403
    message = "Invalid or expired token"


class InvalidCredentialsError(AuthenticationError):
    message = "Invalid credentials"


class AuthorizationError(APIError):
    status_code = 403
    message = "Access denied"


class ValidationError(APIError):
    status_code = 400
    message = "Invalid request"


class DuplicateError(APIError):
    status_code = 400
    message = "Already exists"


class UploadError(APIError):
    status_code = 400
    message = "Only images (JPEG, PNG) and documents (PDF, ZIP) are allowed!"


class NotFoundError(APIError):
    status_code = 404
    message = "Not found"


class ServiceError(APIError):
    """A storage failure; the message is a static per-endpoint string."""


async def api_error_handler(request: Request, exc: APIError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path", "form"))
    detail = first.get("msg", "invalid value")
    message = f"{field}: {detail}" if field else detail
    return JSONResponse(status_code=400, content={"error": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_error_handlers(app):
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
