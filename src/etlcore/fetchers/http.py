# src/etlcore/fetchers/http.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import aiohttp
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from etlcore.config import DEFAULT_USER_AGENT, HttpSettings

logger = logging.getLogger(__name__)

# connection-level failures; a response with an error status is not one of these
NETWORK_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


@dataclass
class HttpResponse:
    url: str
    status: int
    body: bytes
    content_type: str | None = None
    charset: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HttpFetcher:
    """
    Small wrapper around aiohttp.
    - Handles timeouts
    - Caps in-flight requests with a semaphore
    - Reuses one session for many requests
    - Retries transient network errors only when retry_attempts > 1
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 30,
        user_agent: str = DEFAULT_USER_AGENT,
        max_concurrency: int = 10,
        retry_attempts: int = 1,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "application/json, text/plain;q=0.9, */*;q=0.8",
        }
        self._retry_attempts = max(1, retry_attempts)
        self._session: Optional[aiohttp.ClientSession] = None
        self._sem = asyncio.Semaphore(max_concurrency)

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> "HttpFetcher":
        return cls(
            timeout_seconds=settings.timeout_s,
            user_agent=settings.user_agent,
            max_concurrency=settings.max_concurrency,
            retry_attempts=settings.retry_attempts,
        )

    async def __aenter__(self) -> "HttpFetcher":
        self._session = aiohttp.ClientSession(timeout=self._timeout, headers=self._headers)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _require_session(self) -> aiohttp.ClientSession:
        if not self._session:
            raise RuntimeError("HttpFetcher session not started. Use: `async with HttpFetcher() as f:`")
        return self._session

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        data: bytes | str | None = None,
        auth: aiohttp.BasicAuth | None = None,
    ) -> HttpResponse:
        """
        Send one request and read the whole body.
        Network errors (aiohttp.ClientError, timeouts) propagate to the caller.
        """
        if self._retry_attempts == 1:
            return await self._send(method, url, headers=headers, json=json, data=data, auth=auth)

        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.6, min=0.6, max=6),
            retry=retry_if_exception_type(NETWORK_ERRORS),
        )
        async for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info("Retrying %s %s (attempt %d)", method, url, attempt.retry_state.attempt_number)
                return await self._send(method, url, headers=headers, json=json, data=data, auth=auth)
        raise AssertionError("unreachable")

    async def _send(self, method, url, *, headers, json, data, auth) -> HttpResponse:
        session = self._require_session()

        async with self._sem:
            logger.debug("HTTP %s %s", method, url)
            async with session.request(
                method,
                url,
                headers=dict(headers) if headers else None,
                json=json,
                data=data,
                auth=auth,
                allow_redirects=True,
            ) as resp:
                body = await resp.read()
                logger.debug("HTTP %s %s -> %d (%d bytes)", method, url, resp.status, len(body))
                return HttpResponse(
                    url=str(resp.url),
                    status=resp.status,
                    body=body,
                    content_type=resp.headers.get("Content-Type"),
                    charset=resp.charset,
                )
