"""
Management API client module for flagref.

Provides the async HTTP client used to load flags and upload code
references, with exponential backoff retry logic.
"""

from .client import ManagementApiClient, create_api_client
from .errors import (
    ApiClientError,
    MissingCredentialsError,
    NonRetryableError,
    RetryableError,
)
from .interface import FlagSourceInterface, UploadSinkInterface
from .retry import RetryConfig

__all__ = [
    "FlagSourceInterface",
    "UploadSinkInterface",
    "ManagementApiClient",
    "create_api_client",
    "ApiClientError",
    "RetryableError",
    "NonRetryableError",
    "MissingCredentialsError",
    "RetryConfig",
]
