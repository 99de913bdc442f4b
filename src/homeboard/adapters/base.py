"""Base adapter interface for all upstream sources."""

from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class SourceError(Exception):
    """Base exception for upstream source errors."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class UpstreamError(SourceError):
    """Raised when an upstream fetch fails (network, HTTP, protocol, timeout)."""


class AuthenticationError(UpstreamError):
    """Raised when the upstream rejects our credentials."""


class ConfigurationError(SourceError):
    """Raised before any fetch when required settings are missing."""


class AllSourcesFailedError(SourceError):
    """Raised (or reported) when every collection of a view failed."""

    def __init__(self, source: str, failed: int, total: int, message: str) -> None:
        self.failed = failed
        self.total = total
        super().__init__(source, message)


class BaseAdapter:
    """Base class for HTTP upstream adapters.

    Owns one ``httpx.AsyncClient``, created on :meth:`connect` or on first
    request. Subclasses add typed fetch methods returning raw upstream records.
    """

    def __init__(
        self,
        name: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize adapter with a name for logging."""
        self.name = name
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self.logger = logger.bind(adapter=name)

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is open."""
        return self._client is not None and not self._client.is_closed

    def _client_options(self) -> dict[str, Any]:
        """Extra ``httpx.AsyncClient`` options (auth, headers, base_url)."""
        return {}

    def check_configured(self) -> None:
        """Raise :class:`ConfigurationError` when required settings are missing."""

    async def connect(self) -> httpx.AsyncClient:
        """Open the HTTP client if needed and return it."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                **self._client_options(),
            )
            self.logger.debug("HTTP client opened")
        return self._client

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self.logger.debug("HTTP client closed")

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, translating transport and HTTP errors to :class:`UpstreamError`."""
        client = await self.connect()

        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise UpstreamError(self.name, f"{method} {url} timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(self.name, f"{method} {url} failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                self.name, f"{method} {url} rejected credentials ({response.status_code})"
            )
        if response.is_error:
            raise UpstreamError(
                self.name,
                f"{method} {url} returned {response.status_code}: {response.text[:200]}",
            )
        return response

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        response = await self._request("GET", url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(self.name, f"GET {url} returned invalid JSON") from e

    async def __aenter__(self) -> "BaseAdapter":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.disconnect()
