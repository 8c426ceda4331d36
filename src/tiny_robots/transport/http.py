"""
REST HTTP client for the chat platform API.

One request per call, no retries. Every response is a JSON envelope whose
``result`` field must be ``"success"``.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from tiny_robots.auth import authorization_header, read_key_file
from tiny_robots.errors import TransportError
from tiny_robots.transport.envelope import unwrap

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://chat.zulip.org"
DEFAULT_TIMEOUT_S = 30.0
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class HttpClient:
    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        username: str = "",
        secret: str = "",
        timeout: float = DEFAULT_TIMEOUT_S,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._endpoint = endpoint.rstrip("/")
        self._username = username
        self._debug = debug
        self._client = httpx.AsyncClient(
            base_url=f"{self._endpoint}/api/v1/",
            headers={
                "User-Agent": "tiny-robots/0.1.0",
                "Accept": "application/json",
                "Authorization": authorization_header(username, secret),
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_key_file(
        cls, endpoint: str, username: str, key_file: Union[str, Path], **kwargs: Any,
    ) -> "HttpClient":
        return cls(endpoint=endpoint, username=username, secret=read_key_file(key_file), **kwargs)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def username(self) -> str:
        return self._username

    async def request(
        self,
        method: str,
        action: str,
        params: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded success envelope.

        GET parameters are query-encoded, POST parameters are form-encoded.
        Raises TransportError for network or decoding failures and APIError
        when the envelope's result is not ``success``.
        """
        method = method.upper()
        kwargs: dict[str, Any] = {}
        if method == "GET":
            kwargs["params"] = params or {}
        elif method == "POST":
            kwargs["data"] = params or {}
            kwargs["headers"] = {"Content-Type": FORM_CONTENT_TYPE}
        else:
            raise TransportError(f"Parameters for {method} requests are not supported")
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            resp = await self._client.request(method, action, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {action}: {e}") from e

        if self._debug:
            logger.debug("%s %s -> HTTP %d: %s", method, action, resp.status_code, resp.text)

        try:
            body = resp.json()
        except ValueError:
            raise TransportError(
                f"{action}: HTTP {resp.status_code}: {resp.text[:200]}",
                details={"status": resp.status_code},
            )
        return unwrap(action, body, status=resp.status_code)

    async def get(
        self, action: str, params: Optional[dict[str, str]] = None, timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        return await self.request("GET", action, params, timeout=timeout)

    async def post(
        self, action: str, params: Optional[dict[str, str]] = None, timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        return await self.request("POST", action, params, timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.close()
