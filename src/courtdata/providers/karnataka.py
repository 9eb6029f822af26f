from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Callable

from courtdata.errors import ErrorCode, ProviderFailure
from courtdata.providers.http import HttpCourtProvider, effective_timeout
from courtdata.types import (
    Bench,
    CaptchaChallenge,
    CourtCase,
    ProviderCapabilities,
    ProviderConfig,
    ProviderResult,
    SearchFilters,
)

logger = logging.getLogger(__name__)

DEFAULT_CAPTCHA_THRESHOLD = 5


def _new_session_id() -> str:
    return f"khc-session-{uuid.uuid4().hex}"


def resolve_bench(cfg: ProviderConfig) -> Bench | None:
    try:
        return Bench((cfg.bench_code or Bench.BENGALURU.value).strip().lower())
    except ValueError:
        return None


class KarnatakaHighCourtProvider(HttpCourtProvider):
    """
    Karnataka High Court portal, scoped to one bench.

    The portal challenges sessions with a captcha after a bounded number of requests. This
    provider counts data requests per session and surfaces the challenge on the
    ``captcha_threshold``-th request instead of continuing silently; the challenged session is
    then closed and the next request opens a new one.
    """

    name = "Karnataka High Court Provider"
    provider_type = "KARNATAKA_HIGH_COURT"
    capabilities = ProviderCapabilities(
        supports_cnr_lookup=True,
        supports_case_search=True,
        supports_cause_list=True,
        supports_order_listing=True,
        supports_pdf_download=True,
        supports_real_time_sync=True,
        max_concurrent_requests=8,
        rate_limit_per_minute=40,
        supported_courts=tuple(bench.court_label for bench in Bench),
        supported_case_types=("WRIT", "APPEAL", "CRIMINAL", "CIVIL", "CONSTITUTIONAL"),
    )

    def __init__(
        self,
        config: ProviderConfig | None = None,
        *,
        captcha_threshold: int = DEFAULT_CAPTCHA_THRESHOLD,
        session_id_factory: Callable[[], str] = _new_session_id,
        **kwargs: Any,
    ) -> None:
        if captcha_threshold < 1:
            raise ValueError("captcha_threshold must be at least 1")
        super().__init__(config, **kwargs)
        self.captcha_threshold = captcha_threshold
        self._session_id_factory = session_id_factory
        self._session_id: str | None = None
        self._requests_in_session = 0

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def requests_in_session(self) -> int:
        return self._requests_in_session

    def reset_session(self) -> None:
        self._session_id = None
        self._requests_in_session = 0

    async def get_case_by_number(
        self, case_number: str, config: ProviderConfig | None = None
    ) -> ProviderResult[CourtCase]:
        """Look a case up by its bench case number (e.g. ``WP 12345/2023``)."""

        cfg = self.config.merged(config)
        return await self._execute("get_case_by_number", self._case_by_number, case_number, cfg, timeout=effective_timeout(cfg))

    async def _case_by_number(self, case_number: str, cfg: ProviderConfig) -> CourtCase:
        wanted = case_number.strip().upper()
        if not wanted:
            raise ProviderFailure(ErrorCode.NOT_FOUND, "Empty case number")
        result = await self._search(SearchFilters(case_number=case_number.strip()), cfg)
        for case in result.cases:
            if case.case_number.strip().upper() == wanted:
                return case
        raise ProviderFailure(ErrorCode.NOT_FOUND, f"No Karnataka High Court case numbered {case_number}")

    def _require_config(self, cfg: ProviderConfig) -> None:
        super()._require_config(cfg)
        if resolve_bench(cfg) is None:
            benches = ", ".join(bench.value for bench in Bench)
            raise ProviderFailure(ErrorCode.CONFIG_ERROR, f"Unknown bench {cfg.bench_code!r}; expected one of {benches}")

    def _before_request(self, cfg: ProviderConfig) -> None:
        if self._session_id is None:
            self._session_id = self._session_id_factory()
        self._requests_in_session += 1
        if self._requests_in_session < self.captcha_threshold:
            return

        session_id = self._session_id
        self.reset_session()
        challenge = CaptchaChallenge(
            captcha_url=f"{str(cfg.api_endpoint).rstrip('/')}/captcha/{session_id}",
            session_id=session_id,
            message="CAPTCHA verification required for Karnataka High Court access",
        )
        logger.info(
            "Captcha challenge issued",
            extra={"provider": self.name, "session_id": session_id, "threshold": self.captcha_threshold},
        )
        raise ProviderFailure(ErrorCode.CAPTCHA_REQUIRED, challenge.message, handoff=challenge)

    def _scope_params(self, cfg: ProviderConfig) -> dict[str, str]:
        bench = resolve_bench(cfg)
        return {"bench": bench.value} if bench else {}

    def _court_for(self, cfg: ProviderConfig) -> str | None:
        bench = resolve_bench(cfg)
        return bench.court_label if bench else None

    def _normalize_case(self, payload: Any, cfg: ProviderConfig) -> CourtCase:
        case = super()._normalize_case(payload, cfg)
        bench = resolve_bench(cfg)
        if bench is not None and not case.court_location:
            case = replace(case, court_location=bench.location)
        return case
