import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.platform.response import error_response


class ServiceError(Exception):
    """Base class for failures that surface to the caller with a status code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Request failed"):
        super().__init__(message)
        self.message = message


class CrawlError(ServiceError):
    """Base class for crawl failures that surface to the caller."""

    def __init__(self, message: str = "Crawl failed"):
        super().__init__(message)


class InvalidURLError(CrawlError):
    """The seed URL could not be parsed or is not http(s)."""

    status_code = status.HTTP_400_BAD_REQUEST


class BrowserStartupError(CrawlError):
    """The browser resource for a session could not be acquired."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class CrawlCancelled(CrawlError):
    """Raised at a cancellation checkpoint; never leaves the scheduler."""


class SpacesError(ServiceError):
    """Kontent.ai could not be reached or answered with an error."""

    status_code = status.HTTP_502_BAD_GATEWAY


class MissingCredentialsError(SpacesError):
    status_code = status.HTTP_400_BAD_REQUEST


class SpacesAuthError(SpacesError):
    """Kontent.ai rejected the API key."""

    status_code = status.HTTP_401_UNAUTHORIZED


def add_exception_handlers(app):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail) or "Error", status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(
            "Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            errors=exc.errors(),
        )

    @app.exception_handler(ServiceError)
    async def service_exception_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logging.error(f"{request.url.path} failed: {exc.message}")
        return error_response(exc.message, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logging.exception(f"Unhandled exception: {exc}")
        return error_response("Internal server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
