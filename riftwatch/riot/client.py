# riot/client.py

import asyncio
import json
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

import aiohttp

from riftwatch.config import settings
from riftwatch.riot import metrics as m
from riftwatch.riot.errors import (
    AuthError,
    ConfigurationError,
    DecodeError,
    NetworkError,
    NotFoundError,
    RateLimitExhausted,
    RequestCancelled,
    UpstreamError,
    UpstreamServerError,
)
from riftwatch.riot.metrics import ClientMetrics
from riftwatch.riot.rate_limit import parse_rate_limit_headers, windows_near_limit

# Mapping plateforme → région globale pour /match-v5 et /account-v1
REGION_GROUPS = {
    "euw1": "europe", "eun1": "europe", "ru": "europe", "tr1": "europe",
    "kr": "asia",   "jp1": "asia",
    "na1": "americas", "br1": "americas", "la1": "americas", "la2": "americas",
    "oc1": "sea",
}

log = logging.getLogger(__name__)


@dataclass
class RiotResponse:
    """A 2xx answer. The body is left raw; callers decode it."""
    url: str
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodeError(f"Invalid JSON from {urlsplit(self.url).path}") from e


class RiotClient:
    """Async Riot API client: authentication, retries and error classification."""

    def __init__(
        self,
        api_key: Optional[str],
        region: str = settings.DEFAULT_REGION,
        metrics: Optional[ClientMetrics] = None,
        max_retries: int = settings.MAX_RETRIES,
        max_rate_limit_retries: int = settings.MAX_RATE_LIMIT_RETRIES,
        retry_base_delay: float = settings.RETRY_BASE_DELAY,
        default_retry_after: int = settings.DEFAULT_RETRY_AFTER,
        timeout: float = settings.REQUEST_TIMEOUT,
        rate_limit_warn_ratio: float = settings.RATE_LIMIT_WARN_RATIO,
    ):
        self.api_key = api_key
        self.region = region.lower()
        self.metrics = metrics or ClientMetrics()
        self.max_retries = max_retries
        self.max_rate_limit_retries = max_rate_limit_retries
        self.retry_base_delay = retry_base_delay
        self.default_retry_after = default_retry_after
        self.timeout = timeout
        self.rate_limit_warn_ratio = rate_limit_warn_ratio
        self._session: Optional[aiohttp.ClientSession] = None

    # ─── Routing ─────────────────────────────────────────────────────────
    @property
    def platform_base(self) -> str:
        """summoner-v4, league-v4, spectator-v5."""
        return f"https://{self.region}.api.riotgames.com"

    @property
    def regional_base(self) -> str:
        """account-v1, match-v5."""
        group = REGION_GROUPS.get(self.region, "americas")
        return f"https://{group}.api.riotgames.com"

    # ─── Session ─────────────────────────────────────────────────────────
    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ─── Helpers ─────────────────────────────────────────────────────────
    @staticmethod
    def _check_cancel(cancel: Optional[asyncio.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise RequestCancelled()

    async def _sleep(self, delay: float, cancel: Optional[asyncio.Event]) -> None:
        """Backoff sleep, cut short by ``cancel``."""
        if cancel is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise RequestCancelled()

    def _retry_after(self, headers: Mapping[str, str]) -> float:
        raw = headers.get("Retry-After")
        try:
            delay = float(raw) if raw is not None else float(self.default_retry_after)
        except ValueError:
            return float(self.default_retry_after)
        # inf / nan / négatif → on ignore l'en-tête
        if not math.isfinite(delay) or delay < 0:
            return float(self.default_retry_after)
        return delay

    def _inspect_rate_limits(self, path: str, headers: Mapping[str, str]) -> None:
        windows = parse_rate_limit_headers(headers)
        for w in windows_near_limit(windows, self.rate_limit_warn_ratio):
            self.metrics.incr(m.RATE_LIMIT_NEAR)
            log.warning(
                f"Rate limit proche ({w.scope} {w.count}/{w.limit} sur {w.window}s) après {path}"
            )

    # ─── Pipeline ────────────────────────────────────────────────────────
    async def fetch(
        self,
        url: str,
        *,
        authenticated: bool = True,
        cancel: Optional[asyncio.Event] = None,
    ) -> RiotResponse:
        """
        GET ``url`` with retry logic.

        Args:
            url: The full URL to request
            authenticated: Attach the X-Riot-Token header (False for Data Dragon)
            cancel: Optional event; once set, the next attempt or backoff sleep aborts

        Returns:
            The 2xx response, body unparsed

        Raises:
            ConfigurationError: No API key configured (never retried)
            NetworkError: Network failures on every attempt
            RateLimitExhausted: Still 429 after the allowed rate-limit retries
            UpstreamServerError: 5xx on every attempt
            AuthError: 401/403
            NotFoundError: 404
            UpstreamError: Any other non-2xx status
            RequestCancelled: ``cancel`` was set
        """
        if authenticated and not self.api_key:
            raise ConfigurationError()

        session = await self._get_session()
        headers = {"X-Riot-Token": self.api_key} if authenticated else {}
        path = urlsplit(url).path

        attempt = 1
        rate_limit_retries = 0

        while True:
            self._check_cancel(cancel)
            started = time.monotonic()
            try:
                async with session.get(url, headers=headers) as resp:
                    status = resp.status
                    reason = resp.reason
                    resp_headers = resp.headers
                    body = await resp.read() if 200 <= status < 300 else b""
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.metrics.observe_request(path, None, time.monotonic() - started)
                if attempt < self.max_retries:
                    wait = self.retry_base_delay * attempt
                    log.warning(f"Network error on {path}, retrying in {wait:.1f}s (attempt {attempt}/{self.max_retries}): {e!r}")
                    self.metrics.incr(m.FETCH_RETRY)
                    await self._sleep(wait, cancel)
                    attempt += 1
                    continue
                self.metrics.incr(m.FETCH_ERROR)
                raise NetworkError() from e

            self.metrics.observe_request(path, status, time.monotonic() - started)
            self._inspect_rate_limits(path, resp_headers)

            if status == 429:
                if rate_limit_retries >= self.max_rate_limit_retries:
                    self.metrics.incr(m.FETCH_ERROR)
                    raise RateLimitExhausted(
                        f"Rate limit exceeded after {rate_limit_retries} retries",
                        retries=rate_limit_retries,
                    )
                retry_after = self._retry_after(resp_headers)
                rate_limit_retries += 1
                log.warning(f"429 Rate limited on {path}, retrying after {retry_after:g}s ({rate_limit_retries}/{self.max_rate_limit_retries})")
                self.metrics.incr(m.RATE_LIMITED)
                await self._sleep(retry_after, cancel)
                continue

            if status >= 500:
                if attempt < self.max_retries:
                    wait = self.retry_base_delay * attempt
                    log.warning(f"Server error {status} on {path}, retrying in {wait:.1f}s")
                    self.metrics.incr(m.FETCH_RETRY)
                    await self._sleep(wait, cancel)
                    attempt += 1
                    continue
                self.metrics.incr(m.FETCH_ERROR)
                raise UpstreamServerError(status, reason)

            if status == 401:
                self.metrics.incr(m.FETCH_ERROR)
                raise AuthError("Riot API key is missing or invalid", status)
            if status == 403:
                self.metrics.incr(m.FETCH_ERROR)
                raise AuthError("Riot API key is invalid or expired", status)
            if status == 404:
                log.debug(f"404 Not Found: {path}")
                self.metrics.incr(m.FETCH_ERROR)
                raise NotFoundError()
            if not 200 <= status < 300:
                self.metrics.incr(m.FETCH_ERROR)
                raise UpstreamError(status, reason)

            return RiotResponse(url=url, status=status, headers=dict(resp_headers), body=body)
