from fastapi import status
from src.libs.result import Error


class ClientError(Exception):
    def __init__(self, base_error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        self.base_error = base_error
        self.status_code = status_code
        super().__init__(base_error.message)


class ServerError(Exception):
    def __init__(self, base_error: Error):
        self.base_error = base_error
        super().__init__(base_error.message)


class RateLimitError(ClientError):
    """Quota exceeded; carries the seconds the caller must wait"""

    def __init__(self, retry_after: int, limit: int):
        self.retry_after = retry_after
        self.limit = limit
        super().__init__(
            Error("RATE_LIMITED", "Too many requests. Please try again later."),
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )


class ConfigurationError(RuntimeError):
    """Missing or invalid server configuration; fatal at startup"""
