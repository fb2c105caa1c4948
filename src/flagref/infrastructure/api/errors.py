"""Exception types for the management API client."""

from typing import Optional


class ApiClientError(Exception):
    """Base exception for management API errors."""

    pass


class RetryableError(ApiClientError):
    """
    Error that can be retried (rate limits, temporary failures).

    Attributes:
        retry_after: Server requested delay in seconds, if any
        request_processed: False when the server is known not to have acted
            on the request (connection failures, rate limits)
    """

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        request_processed: bool = True,
    ):
        super().__init__(message)
        self.retry_after = retry_after
        self.request_processed = request_processed


class NonRetryableError(ApiClientError):
    """Error that should not be retried (auth failures, invalid requests)."""

    pass


class MissingCredentialsError(NonRetryableError):
    """Raised when no username/password is configured for the API."""

    pass
