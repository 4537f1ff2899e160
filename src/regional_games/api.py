"""regional_games.api

Thin async client for the games API.

  - Base URI + HTTP basic auth, supplied once at construction.
  - GET returns the decoded JSON body; non-200, empty or undecodable bodies
    and transport failures raise ApiError subclasses.
  - POST returns a PostResult; the status is interpreted by the caller
    (see regional_games.attach).
  - One aiohttp.ClientSession per client; use as an async context manager.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 3.0


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ApiError(RuntimeError):
    """Base class for failures talking to the games API."""


class ApiTransportError(ApiError):
    """Network failure or timeout before a response was received."""


class ApiStatusError(ApiError):
    """GET answered with a status other than 200."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(f"Invalid response code: {status} from {url}")
        self.url = url
        self.status = status


class ApiEmptyBodyError(ApiError):
    """GET answered 200 with no usable content."""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PostResult:
    url: str
    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

def build_url(base: str, path: str) -> str:
    """Join base URI and resource path with exactly one slash."""
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


class ApiClient:
    """Marshals calls to the games API.

    Args:
        base_uri: Root of the API, e.g. ``https://api.example.com/v1``.
        user:     Basic-auth user name.
        password: Basic-auth password.
        timeout:  Total per-request timeout in seconds.
        session:  Optional pre-built session, which must carry its own
                  Authorization header; otherwise one is
                  created on ``__aenter__`` and closed on ``__aexit__``.
    """

    def __init__(
        self,
        base_uri: str,
        user: str,
        password: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not base_uri or user is None or password is None:
            raise ValueError("Cannot make api requests with missing options")
        self.base_uri = base_uri
        self._auth_header = aiohttp.BasicAuth(user, password).encode()
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> ApiClient:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={
                    "Accept": "application/json",
                    "Authorization": self._auth_header,
                },
            )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("ApiClient used outside of 'async with'")
        return self._session

    async def get(self, path: str, query: dict[str, Any] | None = None) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        url = build_url(self.base_uri, path)
        params = {k: str(v) for k, v in (query or {}).items()}
        log.debug("Making call to: %s with the following query: %s", url, params)
        session = self._require_session()
        try:
            async with session.get(url, params=params, timeout=self._timeout) as resp:
                status = resp.status
                charset = resp.charset or "utf-8"
                raw = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ApiTransportError(f"Error requesting: {url} {exc!r}") from exc

        if status != 200:
            raise ApiStatusError(url, status)
        try:
            text = raw.decode(charset)
        except (UnicodeDecodeError, LookupError) as exc:
            raise ApiError(f"Undecodable response body from: {url}: {exc}") from exc
        if not text.strip():
            raise ApiEmptyBodyError(f"Empty response body from: {url}")
        try:
            body = json.loads(text)
        except ValueError as exc:
            raise ApiError(f"Non-JSON response body from: {url}: {exc}") from exc
        if not body:
            raise ApiEmptyBodyError(f"Empty response body from: {url}")

        log.debug("Completed request to: %s", url)
        return body

    async def post(self, path: str, data: dict[str, Any] | None = None) -> PostResult:
        """POST ``data`` as JSON to ``path``. Only transport failures raise.

        The response body is kept as raw bytes and never decoded.
        """
        url = build_url(self.base_uri, path)
        log.debug("Posting to: %s with the following data: %s", url, data)
        session = self._require_session()
        try:
            async with session.post(url, json=data or {}, timeout=self._timeout) as resp:
                result = PostResult(url=url, status=resp.status, body=await resp.read())
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ApiTransportError(f"Error posting: {url} {exc!r}") from exc

        log.debug("Completed POST request to: %s (status=%s)", url, result.status)
        return result
