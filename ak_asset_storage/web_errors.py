"""Errors raised by web handlers and their translation into HTTP responses."""

from __future__ import annotations

import logging

from starlette.responses import JSONResponse

from .errors import AppError, ExternalServiceError

logger = logging.getLogger(__name__)


class WebError(Exception):
    """Base class for errors that map directly onto an HTTP status."""

    status_code = 500
    template = "{}"

    def __init__(self, detail: object = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return self.template.format(self.detail)


class InternalError(WebError):
    """An application failure; answered with 500."""

    status_code = 500
    template = "Internal Server Error:\n{}"


class NotFound(WebError):
    """The requested resource does not exist; answered with 404."""

    status_code = 404
    template = "Not found"


class ServiceUnavailable(WebError):
    """An external dependency failed; answered with 503."""

    status_code = 503
    template = "Service Unavailable:\n{}"


class Unauthorized(WebError):
    """Missing or wrong credentials; answered with 401."""

    status_code = 401
    template = "Unauthorized: {}"


class BadRequest(WebError):
    """The request could not be understood; answered with 400."""

    status_code = 400
    template = "Bad Request: {}"


def from_app_error(error: AppError) -> WebError:
    """Map an application error to the web error describing it."""
    if isinstance(error, ExternalServiceError):
        return ServiceUnavailable(error)
    return InternalError(error)


def error_response(error: WebError) -> JSONResponse:
    """Render ``error`` as a JSON body ``{"detail": ...}`` with its status."""
    logger.error("controller_error: %s (%r)", error, error)
    return JSONResponse({"detail": str(error)}, status_code=error.status_code)