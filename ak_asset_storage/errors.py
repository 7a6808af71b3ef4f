"""Exception hierarchy shared by the application and infrastructure layers."""

from __future__ import annotations


class AppError(Exception):
    """Base class for every error raised by the application."""

    label = "Application error"

    def __init__(self, detail: object = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.label}:\n{self.detail}"


class ApplicationError(AppError):
    """A failure inside the application's own logic."""

    label = "Application error"


class ExternalServiceError(AppError):
    """A failure reported by an external dependency (database, storage, API)."""

    label = "External service error"


class DatabaseError(ExternalServiceError):
    """A database operation failed."""

    def __init__(self, message: str, source: BaseException | None = None) -> None:
        self.message = message
        self.source = source
        suffix = "" if source is None else str(source)
        super().__init__(f"Database error:\n {message} {suffix}")