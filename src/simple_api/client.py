"""HTTP client for the ioBroker Simple API.

Builds fully-qualified request URLs, applies the configured authentication
strategy, serializes JSON bodies and sends the request. Responses are
returned as-is: interpreting status and body is the caller's job.
"""

import json
from typing import Any, Optional

import httpx

from shared.logging import get_logger
from shared.models import AuthStrategy, NoAuth, RequestSpec
from simple_api.auth import apply_auth

logger = get_logger(__name__)


class SimpleAPIError(Exception):
    """Base exception for Simple API errors."""
    pass


class TransportError(SimpleAPIError):
    """The backend could not be reached."""
    pass


class OperationFailed(SimpleAPIError):
    """The backend answered a tool's request with a non-2xx status."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class UpstreamBodyError(SimpleAPIError):
    """The response body does not have the expected shape."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(message)
        self.operation = operation


def encode_json_body(body: Any) -> bytes:
    """Serialize a request body as compact JSON."""
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class SimpleAPIClient:
    """
    Request executor for the Simple API.

    One instance is created at startup and shared by all tool handlers.
    The host and authentication strategy are fixed for its lifetime.
    """

    def __init__(
        self,
        host: str,
        auth: Optional[AuthStrategy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            host: Simple API base URL (e.g. http://localhost:8082)
            auth: Authentication strategy, NoAuth when omitted
            http_client: HTTP client to send requests with; when omitted the
                client creates and owns one
            timeout: Timeout in seconds for an owned client, None for no timeout
        """
        self.host = host
        self.auth = auth or NoAuth()
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def spec(self, path: str, method: str = "GET", body: Any = None) -> RequestSpec:
        """Describe a request against this client's host and auth."""
        return RequestSpec(host=self.host, path=path, method=method, body=body, auth=self.auth)

    def build_request(self, spec: RequestSpec) -> httpx.Request:
        """
        Turn a request description into an httpx request.

        The path is resolved against the host the way a browser resolves a
        relative reference, so query strings embedded in the path survive.
        """
        url = httpx.URL(spec.host).join(spec.path)
        headers: dict[str, str] = {}

        url = apply_auth(spec.auth, url, headers)

        content: Optional[bytes] = None
        if spec.body is not None:
            headers["Content-Type"] = "application/json"
            content = encode_json_body(spec.body)

        return self._get_client().build_request(
            spec.method, url, headers=headers, content=content
        )

    async def execute(self, spec: RequestSpec) -> httpx.Response:
        """
        Send a request to the Simple API.

        Args:
            spec: Request description

        Returns:
            The HTTP response, whatever its status

        Raises:
            TransportError: If the backend is unreachable or the request times out
        """
        request = self.build_request(spec)

        logger.debug("Sending request", method=spec.method, path=spec.path)

        try:
            response = await self._get_client().send(request)
        except httpx.TransportError as e:
            logger.error("Simple API request failed", path=spec.path, error=str(e))
            raise TransportError(f"Cannot reach Simple API at {spec.host}: {e}") from e

        logger.debug(
            "Received response",
            method=spec.method,
            path=spec.path,
            status=response.status_code,
        )
        return response

    async def request(self, path: str, method: str = "GET", body: Any = None) -> httpx.Response:
        """Send a request to ``path`` on the configured host."""
        return await self.execute(self.spec(path, method=method, body=body))
