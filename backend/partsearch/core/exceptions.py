"""Custom exception classes for the application."""


class PartSearchException(Exception):
    """Base exception for all part search errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class QueryValidationError(PartSearchException):
    """Raised when a search query is rejected before any upstream is contacted."""

    def __init__(self, query: str, min_length: int):
        self.query = query
        super().__init__(f"Query must be at least {min_length} characters")


class SupplierError(PartSearchException):
    """Base class for failures scoped to a single supplier."""

    def __init__(self, supplier: str, message: str):
        self.supplier = supplier
        super().__init__(f"{supplier}: {message}")


class ConfigurationError(SupplierError):
    """Raised when a supplier is missing required credentials or settings."""


class UpstreamAuthError(SupplierError):
    """Raised when login fails or a cached session is detected as stale."""


class UpstreamProtocolError(SupplierError):
    """Raised when an upstream answers with an unexpected or malformed payload."""


class SessionExpiredError(UpstreamAuthError):
    """Raised when an upstream rejects a session that was cached as valid."""
