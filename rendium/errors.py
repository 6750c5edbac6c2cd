"""Exception types raised by rendium."""

from __future__ import annotations


class RendiumError(Exception):
    """Base class for all rendium errors."""


class ParseError(RendiumError, ValueError):
    """Raised when a URL handed to the extractor cannot be parsed."""


class UnreachableError(RendiumError):
    """Raised when a remote page cannot be fetched (transport failure or bad status)."""


class MalformedDocumentError(RendiumError):
    """Raised when fetched markup or an import file cannot be parsed."""


class UnauthorizedError(RendiumError):
    """Raised when a caller touches a record it does not own."""


class NotFoundError(RendiumError):
    """Raised when a referenced record does not exist."""
