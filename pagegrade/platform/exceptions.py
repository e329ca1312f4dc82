import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from pagegrade.platform.response import error_response

logger = logging.getLogger(__name__)


class PageGradeError(Exception):
    """Base error. Carries the HTTP status it maps to when it reaches the API."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PageGradeError):
    """Malformed or absent input (e.g. the URL to analyze)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class NotFoundError(PageGradeError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class JobNotFoundError(NotFoundError):
    default_message = "Analysis not found"


class InvalidStatusTransition(PageGradeError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Invalid job status transition"


class UpstreamFetchError(PageGradeError):
    """The target page could not be retrieved. Retried at the job level."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to fetch page"


class NetworkError(UpstreamFetchError):
    default_message = "Could not connect to the page"


class FetchTimeoutError(UpstreamFetchError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    default_message = "Timed out waiting for the page to load"


class ModelServiceError(PageGradeError):
    """The external model call failed or returned an unusable response."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Model service unavailable"


def add_exception_handlers(app):
    @app.exception_handler(PageGradeError)
    async def pagegrade_exception_handler(request: Request, exc: PageGradeError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc.message, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg") if errors else "Validation failed"
        return error_response(f"Invalid request: {detail}", status_code=status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        return error_response(
            "Internal server error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
