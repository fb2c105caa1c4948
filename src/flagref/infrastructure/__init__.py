"""
Infrastructure Layer - Reference scanner, management API client and git collaborator.
"""

from flagref.infrastructure.api import (
    ApiClientError,
    FlagSourceInterface,
    ManagementApiClient,
    MissingCredentialsError,
    NonRetryableError,
    RetryableError,
    RetryConfig,
    UploadSinkInterface,
    create_api_client,
)
from flagref.infrastructure.fakes import FakeGitClient, InMemoryFlagApi
from flagref.infrastructure.git_client import GitClient, GitInfo
from flagref.infrastructure.reference_scanner import (
    DEFAULT_CONTEXT_SIZE,
    MatchMode,
    ReferenceScanner,
    ReferenceScannerError,
    clamp_context_size,
    find_matched_text,
)

__all__ = [
    # Management API
    "FlagSourceInterface",
    "UploadSinkInterface",
    "ManagementApiClient",
    "ApiClientError",
    "RetryableError",
    "NonRetryableError",
    "MissingCredentialsError",
    "RetryConfig",
    "create_api_client",
    # Git
    "GitClient",
    "GitInfo",
    # Reference scanner
    "ReferenceScanner",
    "ReferenceScannerError",
    "MatchMode",
    "DEFAULT_CONTEXT_SIZE",
    "clamp_context_size",
    "find_matched_text",
    # Fakes for testing
    "InMemoryFlagApi",
    "FakeGitClient",
]
