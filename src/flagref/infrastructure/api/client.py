"""HTTP client for the feature flag management API."""

import logging
from typing import Any, Optional

import httpx

from flagref.core.flag_index import DeletedFlagModel, FlagModel

from .errors import MissingCredentialsError, NonRetryableError, RetryableError
from .interface import FlagSourceInterface, UploadSinkInterface
from .retry import RetryConfig, parse_retry_after, with_retry

logger = logging.getLogger(__name__)

USER_AGENT = "flagref"


class ManagementApiClient(FlagSourceInterface, UploadSinkInterface):
    """
    Client for the management API endpoints used by the scanner.

    Uses HTTP basic authentication. Rate limits and connection failures are
    retried for every method, other transient failures only for idempotent
    ones; a ``Retry-After`` header overrides the exponential backoff. The
    underlying ``httpx.AsyncClient`` is created lazily and reused across
    requests.
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        timeout: float = 30.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the API client.

        Args:
            host: API host, with or without scheme
            username: Basic authentication username
            password: Basic authentication password
            timeout: Request timeout in seconds
            retry_config: Configuration for retry behavior
            transport: Optional transport override (used by tests)
        """
        if "://" not in host:
            host = f"https://{host}"
        self._base_url = host.rstrip("/") + "/"
        self._username = username
        self._password = password
        self._timeout = timeout
        self._retry_config = retry_config or RetryConfig()
        self._transport = transport

        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if not self._username or not self._password:
            raise MissingCredentialsError(
                "API credentials are not configured. Run `flagref setup` or set "
                "FLAGREF_API_USER and FLAGREF_API_PASS."
            )

        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=(self._username, self._password),
                timeout=self._timeout,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ManagementApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def get_flags(self, config_id: str) -> list[FlagModel]:
        data = await self._request("GET", f"v1/configs/{config_id}/settings")
        return [FlagModel.from_dict(item) for item in data or []]

    async def get_deleted_flags(self, config_id: str) -> list[DeletedFlagModel]:
        data = await self._request("GET", f"v1/configs/{config_id}/deleted-settings")
        return [DeletedFlagModel.from_dict(item) for item in data or []]

    async def upload(self, payload: dict[str, Any]) -> None:
        await self._request("POST", "v1/code-references", json=payload)
        logger.debug("Code references uploaded")

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        return await with_retry(
            method, lambda: self._call_api(method, path, json), self._retry_config
        )

    async def _call_api(self, method: str, path: str, json: Any = None) -> Any:
        """
        Make a single API call.

        Raises:
            RetryableError: For rate limits and transient errors
            NonRetryableError: For auth failures and invalid requests
        """
        client = await self._get_client()
        logger.debug(f"{method} {self._base_url}{path}")

        try:
            response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            raise RetryableError(f"Request timeout: {e}")
        except httpx.ConnectError as e:
            raise RetryableError(f"Connection error: {e}", request_processed=False)
        except httpx.RequestError as e:
            raise RetryableError(f"Request error: {e}")

        status = response.status_code
        if 200 <= status < 300:
            if not response.content:
                return None
            return response.json()
        elif status == 429:
            raise RetryableError(
                f"Rate limited: {status} - {response.text}",
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
                request_processed=False,
            )
        elif status in (500, 502, 503, 504):
            raise RetryableError(
                f"Server error: {status} - {response.text}",
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        elif status in (401, 403):
            raise NonRetryableError(
                f"Authentication failed: {status} - {response.text} (url={response.request.url})"
            )
        elif status == 404:
            raise NonRetryableError(f"Not found: {response.request.url}")
        else:
            raise NonRetryableError(
                f"API error: {status} - {response.text} (url={response.request.url})"
            )


def create_api_client(
    host: str,
    username: str,
    password: str,
    timeout: float = 30.0,
    max_retries: int = 3,
) -> ManagementApiClient:
    """
    Factory function to create a management API client.

    Args:
        host: API host
        username: Basic authentication username
        password: Basic authentication password
        timeout: Request timeout in seconds
        max_retries: Maximum number of retry attempts

    Returns:
        Configured ManagementApiClient instance
    """
    return ManagementApiClient(
        host=host,
        username=username,
        password=password,
        timeout=timeout,
        retry_config=RetryConfig(max_retries=max_retries),
    )
