from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import date
from typing import Any, Callable
from urllib.parse import quote

import httpx

from courtdata.errors import ErrorCode, ProviderFailure, RecordNormalizationError
from courtdata.normalize import (
    case_from_record,
    cause_list_from_record,
    orders_from_payload,
    search_result_from_payload,
)
from courtdata.providers.common import ProviderOperationsMixin, require_valid_cnr
from courtdata.types import (
    CauseList,
    CourtCase,
    Order,
    ProviderConfig,
    ProviderResult,
    SearchFilters,
    SearchResult,
)
from courtdata.validation import normalize_api_key

logger = logging.getLogger(__name__)
_RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

DEFAULT_TIMEOUT = 30.0
DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_BACKOFF_SECONDS = 0.5
DEFAULT_MAX_BACKOFF_SECONDS = 8.0
DEFAULT_USER_AGENT = "courtdata/0.1"


class HttpCourtProvider(ProviderOperationsMixin):
    """
    Base for providers that wrap one upstream HTTP API declared in ``ProviderConfig``.

    Subclasses differ in policy (authentication, historical-only data, captcha gating) rather
    than in transport. Every call validates its input locally first, then issues GET requests
    with bounded retry/backoff for transient failures, all within ``config.timeout`` seconds.
    """

    requires_api_key: bool = False
    default_court: str | None = None

    def __init__(
        self,
        config: ProviderConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.perf_counter,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or ProviderConfig()
        self._transport = transport
        self._clock = clock
        self._rng = rng or random.Random()
        self._client: httpx.AsyncClient | None = None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpCourtProvider":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def get_case_by_cnr(
        self, cnr: str, config: ProviderConfig | None = None
    ) -> ProviderResult[CourtCase]:
        cfg = self.config.merged(config)
        return await self._execute("get_case_by_cnr", self._fetch_case, cnr, cfg, timeout=effective_timeout(cfg))

    async def search_case(
        self, filters: SearchFilters, config: ProviderConfig | None = None
    ) -> ProviderResult[SearchResult]:
        cfg = self.config.merged(config)
        return await self._execute("search_case", self._search, filters, cfg, timeout=effective_timeout(cfg))

    async def get_cause_list(
        self, court: str, on_date: date, config: ProviderConfig | None = None
    ) -> ProviderResult[CauseList]:
        cfg = self.config.merged(config)
        return await self._execute(
            "get_cause_list", self._cause_list, court, on_date, cfg, timeout=effective_timeout(cfg)
        )

    async def list_orders(
        self, cnr: str, config: ProviderConfig | None = None
    ) -> ProviderResult[list[Order]]:
        cfg = self.config.merged(config)
        return await self._execute("list_orders", self._orders, cnr, cfg, timeout=effective_timeout(cfg))

    async def download_order_pdf(
        self, order_id: str, config: ProviderConfig | None = None
    ) -> ProviderResult[bytes]:
        cfg = self.config.merged(config)
        return await self._execute("download_order_pdf", self._pdf, order_id, cfg, timeout=effective_timeout(cfg))

    async def test_connection(self, config: ProviderConfig | None = None) -> ProviderResult[bool]:
        cfg = self.config.merged(config)
        return await self._execute("test_connection", self._check_connection, cfg, timeout=effective_timeout(cfg))

    # Operation bodies. They raise ProviderFailure for expected outcomes.

    async def _fetch_case(self, cnr: str, cfg: ProviderConfig) -> CourtCase:
        require_valid_cnr(cnr)
        self._require_config(cfg)
        self._before_request(cfg)
        payload = self._json(await self._request(cfg, f"/cases/{quote(cnr, safe='')}"))
        return self._normalize_case(payload, cfg)

    async def _search(self, filters: SearchFilters, cfg: ProviderConfig) -> SearchResult:
        self._require_config(cfg)
        self._before_request(cfg)
        params = self._search_params(filters, cfg)
        payload = self._json(await self._request(cfg, "/cases", params=params or None))
        if not isinstance(payload, dict):
            raise ProviderFailure(ErrorCode.INVALID_RESPONSE, "Search payload is not an object")
        result = search_result_from_payload(payload, default_court=self._court_for(cfg))
        logger.debug("Fetched %s cases from %s", len(result.cases), self.name)
        return self._filter_search(result)

    async def _cause_list(self, court: str, on_date: date, cfg: ProviderConfig) -> CauseList:
        self._check_cause_list_date(on_date)
        self._require_config(cfg)
        self._before_request(cfg)
        path = f"/cause-lists/{quote(court, safe='')}"
        params = {**self._scope_params(cfg), "date": on_date.isoformat()}
        payload = self._json(await self._request(cfg, path, params=params))
        if not isinstance(payload, dict):
            raise ProviderFailure(ErrorCode.INVALID_RESPONSE, "Cause list payload is not an object")
        try:
            return cause_list_from_record(payload, court=court, on_date=on_date)
        except RecordNormalizationError as exc:
            raise ProviderFailure(ErrorCode.INVALID_RESPONSE, str(exc)) from exc

    async def _orders(self, cnr: str, cfg: ProviderConfig) -> list[Order]:
        require_valid_cnr(cnr)
        self._require_config(cfg)
        self._before_request(cfg)
        payload = self._json(await self._request(cfg, f"/cases/{quote(cnr, safe='')}/orders"))
        try:
            return orders_from_payload(payload, cnr=cnr)
        except RecordNormalizationError as exc:
            raise ProviderFailure(ErrorCode.INVALID_RESPONSE, str(exc)) from exc

    async def _pdf(self, order_id: str, cfg: ProviderConfig) -> bytes:
        if not self.capabilities.supports_pdf_download:
            raise ProviderFailure(ErrorCode.UNSUPPORTED_OPERATION, f"{self.name} does not serve order PDFs")
        self._require_config(cfg)
        self._before_request(cfg)
        response = await self._request(cfg, f"/orders/{quote(order_id, safe='')}/pdf")
        return response.content

    async def _check_connection(self, cfg: ProviderConfig) -> bool:
        self._require_config(cfg)
        await self._request(cfg, "/health")
        return True

    # Hooks for subclasses.

    def _before_request(self, cfg: ProviderConfig) -> None:
        """Runs after local validation, right before a data request goes out."""

    def _check_cause_list_date(self, on_date: date) -> None:
        """Reject cause list dates the source cannot serve."""

    def _scope_params(self, cfg: ProviderConfig) -> dict[str, str]:
        """Query parameters that scope every listing request (e.g. a bench)."""

        return {}

    def _search_params(self, filters: SearchFilters, cfg: ProviderConfig) -> dict[str, str]:
        return {**self._scope_params(cfg), **filters.to_query()}

    def _filter_search(self, result: SearchResult) -> SearchResult:
        return result

    def _normalize_case(self, payload: Any, cfg: ProviderConfig) -> CourtCase:
        if not isinstance(payload, dict):
            raise ProviderFailure(ErrorCode.INVALID_RESPONSE, "Case payload is not an object")
        try:
            return case_from_record(payload, default_court=self._court_for(cfg))
        except RecordNormalizationError as exc:
            raise ProviderFailure(ErrorCode.INVALID_RESPONSE, str(exc)) from exc

    def _court_for(self, cfg: ProviderConfig) -> str | None:
        return cfg.court_code or self.default_court

    # Transport.

    def _require_config(self, cfg: ProviderConfig) -> None:
        if not cfg.api_endpoint:
            raise ProviderFailure(ErrorCode.CONFIG_ERROR, f"API endpoint is required for {self.name}")
        if self.requires_api_key and not normalize_api_key(cfg.api_key):
            raise ProviderFailure(ErrorCode.CONFIG_ERROR, f"API key is required for {self.name}")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(transport=self._transport, follow_redirects=True)
        return self._client

    def _headers(self, cfg: ProviderConfig) -> dict[str, str]:
        headers = {"User-Agent": cfg.user_agent or DEFAULT_USER_AGENT, "Accept": "application/json"}
        api_key = normalize_api_key(cfg.api_key)
        if api_key:
            headers["Authorization"] = f"Token {api_key}"
        return headers

    async def _request(
        self,
        cfg: ProviderConfig,
        path: str,
        *,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Execute a GET request with bounded retry/backoff for transient failures.

        Only known transient conditions are retried; anything else is classified straight away
        so persistent errors are not masked.
        """

        client = self._get_client()
        url = f"{str(cfg.api_endpoint).rstrip('/')}/{path.lstrip('/')}"
        max_retries = cfg.retry_attempts if cfg.retry_attempts is not None else DEFAULT_RETRY_ATTEMPTS
        headers = self._headers(cfg)

        response: httpx.Response | None = None
        for attempt in range(max_retries + 1):
            try:
                response = await client.get(url, params=params, headers=headers, timeout=effective_timeout(cfg))
            except httpx.TransportError as exc:
                if attempt >= max_retries:
                    code = ErrorCode.TIMEOUT if isinstance(exc, httpx.TimeoutException) else ErrorCode.NETWORK_ERROR
                    raise ProviderFailure(code, f"Request to {url} failed: {exc}") from exc
                wait_seconds = self._compute_backoff(cfg, attempt)
                logger.warning(
                    "Retrying court API request after transport failure",
                    extra={
                        "url": url,
                        "attempt": attempt + 1,
                        "max_retries": max_retries,
                        "wait_seconds": wait_seconds,
                        "error": str(exc),
                    },
                )
                await asyncio.sleep(wait_seconds)
                continue

            if response.status_code in _RETRYABLE_STATUS_CODES and attempt < max_retries:
                wait_seconds = self._compute_backoff(cfg, attempt, response=response)
                logger.warning(
                    "Retrying court API request after retryable status",
                    extra={
                        "url": url,
                        "status_code": response.status_code,
                        "attempt": attempt + 1,
                        "max_retries": max_retries,
                        "wait_seconds": wait_seconds,
                    },
                )
                await asyncio.sleep(wait_seconds)
                continue
            break

        if response is None:
            raise RuntimeError("Unreachable retry state: no response after retry loop")
        return _check_status(response, url)

    def _compute_backoff(
        self,
        cfg: ProviderConfig,
        attempt: int,
        *,
        response: httpx.Response | None = None,
    ) -> float:
        base = cfg.backoff_seconds if cfg.backoff_seconds is not None else DEFAULT_BACKOFF_SECONDS
        ceiling = cfg.max_backoff_seconds if cfg.max_backoff_seconds is not None else DEFAULT_MAX_BACKOFF_SECONDS
        # Respect Retry-After when present; otherwise use exponential backoff with jitter.
        retry_after = response.headers.get("Retry-After") if response is not None else None
        if retry_after:
            try:
                wait = float(retry_after)
                return max(0.0, min(wait, ceiling))
            except ValueError:
                pass
        expo = base * (2**attempt)
        jitter = self._rng.uniform(0.0, base)
        return max(0.0, min(expo + jitter, ceiling))

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderFailure(ErrorCode.INVALID_RESPONSE, f"Malformed JSON from {response.url}") from exc


def _check_status(response: httpx.Response, url: str) -> httpx.Response:
    status = response.status_code
    if status < 400:
        return response
    if status == 404:
        raise ProviderFailure(ErrorCode.NOT_FOUND, f"No record at {url}")
    if status == 401:
        raise ProviderFailure(ErrorCode.CONFIG_ERROR, "Court API rejected the configured credentials")
    if status in _RETRYABLE_STATUS_CODES:
        raise ProviderFailure(ErrorCode.NETWORK_ERROR, f"Court API kept failing with HTTP {status}")
    raise ProviderFailure(ErrorCode.UPSTREAM_ERROR, f"Court API returned HTTP {status}")


def effective_timeout(cfg: ProviderConfig) -> float:
    return cfg.timeout if cfg.timeout is not None else DEFAULT_TIMEOUT
