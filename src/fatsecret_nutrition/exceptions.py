"""Custom exceptions for FatSecret Nutrition MCP."""


class FatSecretError(Exception):
    """Base exception for FatSecret errors."""

    pass


class ConfigurationError(FatSecretError):
    """Raised when the consumer key or secret is missing."""

    pass


class UserNotAuthenticatedError(FatSecretError):
    """Raised when an operation requires user auth but no user is connected."""

    pass


class HandshakeError(FatSecretError):
    """Raised when an OAuth leg returns a malformed response or runs out of order.

    A failed leg is never retried; the handshake must be started again.
    """

    pass


class TransportError(FatSecretError):
    """Raised on a non-2xx HTTP status or a network failure.

    The raw response body is kept verbatim since the provider puts its
    diagnostic text there.
    """

    def __init__(
        self, message: str, status_code: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RateLimitError(TransportError):
    """Raised when the provider answers with HTTP 429."""

    pass


class APIError(FatSecretError):
    """Raised when the FatSecret API returns an error payload."""

    def __init__(self, message: str, error_code: int | None = None):
        super().__init__(message)
        self.error_code = error_code


class ValidationError(FatSecretError):
    """Raised for malformed caller input, before any network call."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
