"""
Domain errors raised by the short link core.

Routes translate these into HTTP responses (see main.py), so services
never import FastAPI.
"""


class ShortLinkError(Exception):
    """Base class for all short link errors."""


class ConflictError(ShortLinkError):
    """Raised when a requested custom short code is already in use."""


class RetriesExhaustedError(ShortLinkError):
    """Raised when random code generation found no free code within the attempt limit."""


class NotFoundError(ShortLinkError):
    """Raised when a short code does not exist in the durable store."""


class InvalidPageError(ShortLinkError):
    """Raised when a listing page or page size is not positive."""


class TransientIOError(ShortLinkError):
    """Raised when the cache or the store fails for infrastructure reasons."""


class SyncFailureError(ShortLinkError):
    """Raised when a view aggregation sweep step fails."""
