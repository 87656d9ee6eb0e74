from __future__ import annotations


class GritError(Exception):
    """Base class for every fatal error raised by grit."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class InvalidDate(GritError, ValueError):
    pass


class InvalidDateRange(GritError, ValueError):
    pass


class InvalidRef(GritError):
    pass


class InvalidSortField(GritError, ValueError):
    pass


class InvalidGlob(GritError, ValueError):
    pass


class InvalidThreadCount(GritError, ValueError):
    pass


class DataSourceUnreadable(GritError, RuntimeError):
    """A git object or command could not be read mid-traversal."""


class ImageRequiresFile(GritError, ValueError):
    pass
