# Translation Helps Proxy — Tool-calling relay for LLM chat
# Copyright (C) 2025–2026 Neven Kordic <neven@broodlink.ai>
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Low-level async HTTP transport with retry and exponential backoff."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from .config import RetryPolicy
from .errors import UpstreamConnectionError

logger = logging.getLogger(__name__)

# Transport-level failures worth another attempt. Anything else raised while
# sending (bad URL, programming errors) propagates on the first attempt.
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    asyncio.TimeoutError,
)


@dataclass
class FetchResponse:
    """A fully read HTTP response, detached from its connection."""

    status: int
    reason: str
    url: str
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class AttemptState:
    """Bookkeeping for one logical fetch; never outlives the call."""

    attempt_number: int = 1
    last_error: BaseException | None = None
    last_status: int | None = None
    next_delay_ms: float = 0.0


class ResilientFetcher:
    """Performs one logical HTTP operation with bounded retries.

    Retryable statuses and transport errors are retried with exponential
    backoff; other non-2xx responses are handed back to the caller untouched.
    When retries run out on a retryable status the last response is returned,
    and on a transport error ``UpstreamConnectionError`` is raised.

    Usage::

        async with ResilientFetcher(RetryPolicy(max_retries=2)) as fetcher:
            resp = await fetcher.fetch("POST", url, json={"method": "tools/list"})
    """

    def __init__(
        self,
        retry: RetryPolicy | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.retry = retry or RetryPolicy()
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ResilientFetcher":
        await self._ensure_session()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session and self._owns_session:
            await self._session.close()
        self._session = None

    @property
    def max_attempts(self) -> int:
        return self.retry.max_retries + 1

    async def fetch(self, method: str, url: str, **options: Any) -> FetchResponse:
        """Send ``method url`` with retries. ``options`` go to ``session.request``."""
        session = await self._ensure_session()
        options.setdefault("timeout", aiohttp.ClientTimeout(total=self.retry.timeout_ms / 1000))
        state = AttemptState()

        while True:
            try:
                async with session.request(method, url, **options) as resp:
                    body = await resp.read()
                    response = FetchResponse(
                        status=resp.status,
                        reason=resp.reason or "",
                        url=str(resp.url),
                        body=body,
                        headers=dict(resp.headers),
                    )
            except RETRYABLE_ERRORS as exc:
                state.last_error = exc
                state.last_status = None
                if not self._schedule_retry(state, "retryable-error"):
                    raise UpstreamConnectionError(self._describe_error(exc)) from exc
            else:
                if response.ok:
                    # Info only when a retry recovered.
                    level = logging.INFO if state.attempt_number > 1 else logging.DEBUG
                    logger.log(
                        level,
                        "Upstream call succeeded on attempt %d",
                        state.attempt_number,
                        extra={"attempt": state.attempt_number, "classification": "success"},
                    )
                    return response
                if response.status not in self.retry.retryable_statuses:
                    logger.debug(
                        "Upstream returned non-retryable status %d",
                        response.status,
                        extra={
                            "attempt": state.attempt_number,
                            "classification": "terminal-status",
                            "status": response.status,
                        },
                    )
                    return response
                state.last_error = None
                state.last_status = response.status
                if not self._schedule_retry(state, "retryable-status"):
                    return response

            await asyncio.sleep(state.next_delay_ms / 1000)
            state.attempt_number += 1

    def _schedule_retry(self, state: AttemptState, classification: str) -> bool:
        """Log the failed attempt and decide whether another one follows."""
        detail = (
            f"HTTP {state.last_status}"
            if state.last_status is not None
            else self._describe_error(state.last_error)
        )
        fields = {
            "attempt": state.attempt_number,
            "max_attempts": self.max_attempts,
            "classification": classification,
            "status": state.last_status,
        }
        if state.attempt_number > self.retry.max_retries:
            logger.warning(
                "Upstream attempt %d/%d failed (%s: %s), giving up",
                state.attempt_number, self.max_attempts, classification, detail,
                extra={**fields, "delay_ms": None},
            )
            return False

        state.next_delay_ms = self.retry.delay_ms(state.attempt_number)
        logger.warning(
            "Upstream attempt %d/%d failed (%s: %s), retrying in %.0fms",
            state.attempt_number, self.max_attempts, classification, detail, state.next_delay_ms,
            extra={**fields, "delay_ms": state.next_delay_ms},
        )
        return True

    def _describe_error(self, exc: BaseException | None) -> str:
        if isinstance(exc, asyncio.TimeoutError):
            return f"Request timed out after {self.retry.timeout_ms:.0f}ms"
        return f"Network error: {exc or 'unknown'}"
