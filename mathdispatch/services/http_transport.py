"""
MathDispatch — httpx Transport Implementation
==============================================

What:  Concrete HttpTransport built on httpx, with tenacity retries.
Why:   httpx gives one API for blocking and async calls, so ``invoke`` and
       ``ainvoke`` share identical request semantics.
How:   Connection-level failures (httpx.TransportError) are retried with
       exponential backoff + jitter up to ``retry_max_attempts``. Once the
       budget is spent the failure becomes a TransportError, is logged, and
       the caller receives "". UnsupportedProtocol (empty URL, no scheme)
       fails on the first attempt.

Status codes:
    Not inspected. A 500 with a body returns that body; only a WARNING is
    logged. The integration services encode their own errors in the JSON
    envelope, so the body is more useful to the editor than the code.

Timeouts:
    ``http_timeout`` defaults to None: the call blocks until the server
    answers, as the plugin always has.
"""

import logging
import time
from typing import Mapping, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from mathdispatch.config import DispatcherSettings, settings
from mathdispatch.exceptions import TransportError
from mathdispatch.services.transport_base import HttpTransport

logger = logging.getLogger(__name__)


class HttpxTransport(HttpTransport):
    """
    Blocking and async HTTP transport.

    Clients are created lazily and reused (connection pooling). Pass your own
    ``httpx.Client`` / ``httpx.AsyncClient`` to control proxies, auth or, in
    tests, an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: DispatcherSettings = settings,
        client: Optional[httpx.Client] = None,
        async_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self._client = client
        self._async_client = async_client

    # ── Clients ───────────────────────────────────────────────────────────

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.config.http_timeout, follow_redirects=True)
        return self._client

    @property
    def async_client(self) -> httpx.AsyncClient:
        if self._async_client is None:
            self._async_client = httpx.AsyncClient(
                timeout=self.config.http_timeout, follow_redirects=True
            )
        return self._async_client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    async def aclose(self) -> None:
        self.close()
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── Retry policy ──────────────────────────────────────────────────────

    def _retry_kwargs(self) -> dict:
        return dict(
            # A missing or unknown scheme fails the same way on every attempt
            retry=(
                retry_if_exception_type(httpx.TransportError)
                & retry_if_not_exception_type(httpx.UnsupportedProtocol)
            ),
            stop=stop_after_attempt(self.config.retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self.config.retry_min_wait,
                max=self.config.retry_max_wait,
                jitter=self.config.retry_min_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    # ── Requests ──────────────────────────────────────────────────────────

    def request(
        self,
        method: str,
        url: str,
        body: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        start_time = time.perf_counter()
        try:
            response = self._send_with_retry(method, url, body, headers)
        except TransportError as e:
            logger.error(
                "%s %s failed after %.0fms: %s",
                method, url, (time.perf_counter() - start_time) * 1000, e.message,
                extra={"error_context": e.context},
            )
            return ""
        return self._read_body(method, url, response, start_time)

    async def arequest(
        self,
        method: str,
        url: str,
        body: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        start_time = time.perf_counter()
        try:
            response = await self._asend_with_retry(method, url, body, headers)
        except TransportError as e:
            logger.error(
                "%s %s failed after %.0fms: %s",
                method, url, (time.perf_counter() - start_time) * 1000, e.message,
                extra={"error_context": e.context},
            )
            return ""
        return self._read_body(method, url, response, start_time)

    def _send_with_retry(
        self,
        method: str,
        url: str,
        body: Optional[str],
        headers: Optional[Mapping[str, str]],
    ) -> httpx.Response:
        try:
            for attempt in Retrying(**self._retry_kwargs()):
                with attempt:
                    return self.client.request(
                        method, url, content=body, headers=dict(headers or {})
                    )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(
                message=str(e) or type(e).__name__,
                url=url,
                method=method,
                context={"error_type": type(e).__name__},
            ) from e
        raise TransportError(message="No request attempt was made", url=url, method=method)

    async def _asend_with_retry(
        self,
        method: str,
        url: str,
        body: Optional[str],
        headers: Optional[Mapping[str, str]],
    ) -> httpx.Response:
        try:
            async for attempt in AsyncRetrying(**self._retry_kwargs()):
                with attempt:
                    return await self.async_client.request(
                        method, url, content=body, headers=dict(headers or {})
                    )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TransportError(
                message=str(e) or type(e).__name__,
                url=url,
                method=method,
                context={"error_type": type(e).__name__},
            ) from e
        raise TransportError(message="No request attempt was made", url=url, method=method)

    @staticmethod
    def _read_body(method: str, url: str, response: httpx.Response, start_time: float) -> str:
        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 400:
            logger.warning(
                "%s %s returned %d in %.0fms; passing body through",
                method, url, status, duration_ms,
            )
        else:
            logger.debug("%s %s returned %d in %.0fms", method, url, status, duration_ms)
        return response.text
