"""
Seq HTTP API client.

Minimal asynchronous client for the Seq HTTP API. Authentication uses the
X-Seq-ApiKey header.
Ref: https://datalust.co/docs/using-the-http-api
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import aiohttp

from config import SeqConfig

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Seq-ApiKey"


class SeqAPIError(Exception):
    """Raised for non-2xx responses from the Seq API."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"seq api returned {status_code}: {message}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class SeqDecodeError(Exception):
    """Raised when a successful response body is not valid UTF-8 JSON."""


class SeqClient:
    """
    Client for the Seq HTTP API.

    Holds only fixed connection settings; every request opens its own
    session so a single client can be shared by all resources.
    """

    def __init__(
        self,
        server_url: str,
        api_key: str = "",
        insecure_skip_verify: bool = False,
        timeout_seconds: int = 30,
    ):
        # Relative paths resolve below the base URL, so keep a trailing slash
        self.base_url = server_url if server_url.endswith("/") else server_url + "/"
        self.api_key = api_key
        self.insecure_skip_verify = insecure_skip_verify
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    @classmethod
    async def from_config(cls, config: SeqConfig) -> "SeqClient":
        """
        Build a client from validated settings and probe connectivity.

        The /health probe is best-effort: failures are logged, never raised.
        """
        client = cls(
            server_url=config.server_url,
            api_key=config.api_key,
            insecure_skip_verify=config.insecure_skip_verify,
            timeout_seconds=config.timeout_seconds,
        )

        try:
            await client.ping()
        except (
            aiohttp.ClientError,
            asyncio.TimeoutError,
            SeqAPIError,
            SeqDecodeError,
        ) as e:
            logger.warning(f"Seq client configured, but /health check failed: {e}")

        logger.info(f"Configured Seq client for {config.server_url}")
        return client

    def _get_headers(self, has_body: bool) -> Dict[str, str]:
        """Get HTTP headers for Seq API requests."""
        headers = {"Accept": "application/json"}
        if has_body:
            headers["Content-Type"] = "application/json"
        if self.api_key:
            headers[API_KEY_HEADER] = self.api_key
        return headers

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    async def request(
        self, method: str, path: str, body: Optional[Dict[str, Any]] = None
    ) -> Optional[Any]:
        """
        Perform a JSON request against the Seq API.

        Args:
            method: HTTP method.
            path: API path relative to the server URL, e.g. /api/apikeys.
            body: Optional payload, serialized as JSON.

        Returns:
            The decoded JSON response, or None when the body is empty.

        Raises:
            SeqAPIError: For non-2xx responses.
            SeqDecodeError: If a successful response is not valid UTF-8 JSON.
            aiohttp.ClientError: For transport failures.
        """
        url = self._url(path)
        data = json.dumps(body) if body is not None else None
        connector = (
            aiohttp.TCPConnector(ssl=False) if self.insecure_skip_verify else None
        )

        logger.debug(f"{method} {url}")

        async with aiohttp.ClientSession(
            timeout=self.timeout, connector=connector
        ) as session:
            async with session.request(
                method,
                url,
                data=data,
                headers=self._get_headers(body is not None),
            ) as response:
                payload = await response.read()

                if response.status < 200 or response.status > 299:
                    message = payload.decode("utf-8", errors="replace").strip()
                    if not message:
                        message = f"{response.status} {response.reason or ''}".strip()
                    raise SeqAPIError(response.status, message)

        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SeqDecodeError(f"decode JSON response: {e}") from e

        if not text.strip():
            return None

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise SeqDecodeError(f"decode JSON response: {e}") from e

    async def ping(self) -> None:
        """Check connectivity against the /health endpoint."""
        await self.request("GET", "/health")

    async def health(self) -> Dict[str, Any]:
        """Return the /health payload, or an empty dict when Seq sends none."""
        result = await self.request("GET", "/health")
        return result if isinstance(result, dict) else {}
