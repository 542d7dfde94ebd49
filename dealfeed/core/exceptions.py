"""Custom exception classes for the application."""

from typing import Optional


class DealFeedException(Exception):
    """Base exception for all DealFeed errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class TransportError(DealFeedException):
    """Raised when a request fails at the network level or times out."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(f"Request to {url} failed: {reason}")


class InvalidResponseError(DealFeedException):
    """Raised when a response has a non-2xx status or an unparseable body."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(f"Invalid response from {url}: {reason}")


class DecodeError(DealFeedException):
    """Raised when a post record does not match the expected shape."""

    def __init__(self, message: str, post_id: Optional[object] = None):
        self.post_id = post_id
        if post_id is not None:
            message = f"Post {post_id}: {message}"
        super().__init__(message)


class InvalidURLError(DealFeedException):
    """Raised when a request URL cannot be constructed."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Malformed URL: '{url}'")


class NotFoundError(DealFeedException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")
