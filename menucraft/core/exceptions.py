"""
API Error Taxonomy

Every failure surfaced by the network layer is one of the classes below.
Each carries a ``message`` suitable for showing to the user as-is.
"""

from typing import Optional

__all__ = ["APIError", "InvalidURLError", "RequestFailedError", "DecodingFailedError",
           "InvalidResponseError", "ServerError", "UnauthorizedError", "NotFoundError",
           "EmptyResponseError", "UNEXPECTED_ERROR_MESSAGE", "AUTH_REQUIRED_MESSAGE"]

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
AUTH_REQUIRED_MESSAGE = "Authentication error. Please log in again."


class APIError(Exception):
    """Base class for all client-side API errors."""

    default_message = "API error"

    def __init__(self, message: Optional[str] = None):
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)


class InvalidURLError(APIError):
    default_message = "Invalid URL - Please check server configuration"


class RequestFailedError(APIError):
    """The request never produced an HTTP response (DNS, connect, timeout...)."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Request failed: {cause}")


class DecodingFailedError(APIError):
    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to decode response: {cause}")


class InvalidResponseError(APIError):
    default_message = "Invalid server response"


class ServerError(APIError):
    """Non-2xx status other than 401/404; message comes from the server when it sent one."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class UnauthorizedError(APIError):
    default_message = "Unauthorized access - Please log in again"


class NotFoundError(APIError):
    default_message = "Resource not found"


class EmptyResponseError(APIError):
    default_message = "Server returned an empty response"
