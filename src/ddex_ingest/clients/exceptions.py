"""Exceptions raised by HTTP clients talking to source endpoints."""


class ClientError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConnectionError(ClientError):
    """Raised when the endpoint cannot be reached after all retries."""

    pass


class APIError(ClientError):
    """Raised when the endpoint answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int, body: str = "", *args, **kwargs):
        self.status_code = status_code
        self.body = body
        super().__init__(message, *args, **kwargs)


class AuthenticationError(APIError):
    """Raised when credentials or a bearer token are rejected (401/403)."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401):
        super().__init__(message, status_code=status_code)


class RateLimitError(APIError):
    """Raised when the endpoint keeps answering 429."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, status_code=429)


class NotFoundError(APIError):
    def __init__(self, message: str = "Endpoint not found"):
        super().__init__(message, status_code=404)


class ValidationError(ClientError):
    """Raised when a response body does not have the expected shape."""

    def __init__(self, message: str, errors: list | None = None, *args, **kwargs):
        self.errors = errors or []
        super().__init__(message, *args, **kwargs)
