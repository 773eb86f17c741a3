"""Base class for data sources backed by an HTTP/JSON API.

Uses one shared `httpx.AsyncClient` per instance, created in `initialize` and
released in `aclose`. Subclasses implement `fetch_topics`/`fetch_data` on top
of `_request_json`, which turns transport and HTTP failures into `FetchError`
with a matching `FetchErrorKind`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from topicsource.config import SourceConfig
from topicsource.exceptions import FetchError, FetchErrorKind, InitializationError
from topicsource.logging import get_logger
from topicsource.sources.base import DataSource

logger = get_logger(__name__)


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        # HTTP-date form is not interpreted
        return None


class HttpDataSource(DataSource):
    """Data source talking to a JSON API over HTTP.

    `fetch_topics` and `fetch_data` remain abstract.
    """

    name = "http"
    description = "Base for HTTP/JSON backed sources"
    health_path: str = "/"

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 5.0,
        probe_timeout: float = 2.0,
        verify_ssl: bool = True,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__()
        self.base_url = (base_url or "").rstrip("/")
        self.token = token
        self.timeout = timeout
        self.probe_timeout = probe_timeout
        self.verify_ssl = verify_ssl
        self.extra_headers = dict(headers or {})
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: SourceConfig) -> HttpDataSource:
        return cls(
            base_url=config.base_url or "",
            token=config.token,
            timeout=config.timeout,
            verify_ssl=config.verify_ssl,
        )

    def _headers(self) -> Dict[str, str]:
        h = {"Accept": "application/json", **self.extra_headers}
        if self.token:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            verify=self.verify_ssl,
            headers=self._headers(),
            transport=self._transport,
        )

    async def on_initialize(self, client: httpx.AsyncClient) -> None:
        """Hook for subclasses: validate credentials, warm caches, etc."""

    async def initialize(self) -> None:
        async with self._lock:
            if self.initialized:
                return
            parsed = urlparse(self.base_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise InitializationError(
                    f"{self.name}: base_url must be an absolute http(s) URL, got '{self.base_url}'"
                )
            client = self._client()
            try:
                await self.on_initialize(client)
            except InitializationError:
                await client.aclose()
                raise
            except Exception as exc:
                # transport, HTTP status and response parsing failures alike
                await client.aclose()
                raise InitializationError(f"{self.name}: initialization failed: {exc!r}") from exc
            except BaseException:
                await client.aclose()
                raise
            self._http = client
            self._mark_initialized()
            logger.info("source_initialized", source=self.name, base_url=self.base_url)

    async def check_availability(self) -> bool:
        client = self._http
        if client is None or self.closed:
            return False
        try:
            resp = await client.get(self.health_path, timeout=self.probe_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("availability_probe_failed", source=self.name, error=str(exc))
            return False
        return resp.is_success

    def _require_client(self) -> httpx.AsyncClient:
        self._require_initialized()
        if self._http is None:
            raise FetchError(
                "HTTP client is not open", kind=FetchErrorKind.NOT_INITIALIZED, source=self.name
            )
        return self._http

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Issue a request and decode its JSON body.

        Returns None for a 404 when `allow_not_found` is set.
        """
        client = self._require_client()
        try:
            resp = await client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as exc:
            raise FetchError(
                f"{method} {path} timed out", kind=FetchErrorKind.TIMEOUT, source=self.name
            ) from exc
        except httpx.HTTPError as exc:
            logger.debug("request_failed", source=self.name, path=path, error=str(exc))
            raise FetchError(
                f"{method} {path} failed: {exc}",
                kind=FetchErrorKind.UNAVAILABLE,
                source=self.name,
            ) from exc

        status = resp.status_code
        if status == 404 and allow_not_found:
            return None
        if status >= 400:
            if status in (401, 403):
                kind = FetchErrorKind.AUTHENTICATION
            elif status == 429:
                kind = FetchErrorKind.RATE_LIMITED
            elif status >= 500:
                kind = FetchErrorKind.UNAVAILABLE
            else:
                kind = FetchErrorKind.UNKNOWN
            raise FetchError(
                f"{method} {path} returned HTTP {status}",
                kind=kind,
                source=self.name,
                retry_after=_parse_retry_after(resp.headers.get("Retry-After")),
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(
                f"{method} {path} returned a non-JSON body",
                kind=FetchErrorKind.MALFORMED_RESPONSE,
                source=self.name,
            ) from exc

    async def aclose(self) -> None:
        client, self._http = self._http, None
        if client is not None:
            await client.aclose()
        await super().aclose()
