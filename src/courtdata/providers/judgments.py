from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Callable

from courtdata.errors import ErrorCode, ProviderFailure
from courtdata.providers.http import HttpCourtProvider
from courtdata.types import CaseStatus, CourtCase, ProviderCapabilities, ProviderConfig, SearchResult

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JudgmentsProvider(HttpCourtProvider):
    """
    Judgments archive: historical, decided matters only.

    Cause lists are served for past and current dates only, and every case it returns is in a
    terminal status. Access is authenticated.
    """

    name = "Judgments Provider"
    provider_type = "JUDGMENTS"
    requires_api_key = True
    default_court = "HIGH COURT"
    capabilities = ProviderCapabilities(
        supports_cnr_lookup=True,
        supports_case_search=True,
        supports_cause_list=True,
        supports_order_listing=True,
        supports_pdf_download=True,
        supports_real_time_sync=False,
        max_concurrent_requests=5,
        rate_limit_per_minute=30,
        supported_courts=("SUPREME COURT", "HIGH COURT", "CONSTITUTIONAL COURT"),
        supported_case_types=("CONSTITUTIONAL", "CRIMINAL", "CIVIL", "WRIT", "APPEAL"),
    )

    def __init__(self, config: ProviderConfig | None = None, *, now: Callable[[], datetime] = _utc_now, **kwargs: Any) -> None:
        super().__init__(config, **kwargs)
        self._now = now

    def _check_cause_list_date(self, on_date: date) -> None:
        if isinstance(on_date, datetime):
            # Naive datetimes are treated as UTC so the comparison is deterministic across machines.
            moment = on_date if on_date.tzinfo else on_date.replace(tzinfo=timezone.utc)
            in_future = moment > self._now()
        else:
            in_future = on_date > self._now().date()
        if in_future:
            raise ProviderFailure(
                ErrorCode.INVALID_DATE,
                f"{self.name} only serves historical cause lists; {on_date.isoformat()} is in the future",
            )

    def _normalize_case(self, payload: Any, cfg: ProviderConfig) -> CourtCase:
        return _as_decided(super()._normalize_case(payload, cfg))

    def _filter_search(self, result: SearchResult) -> SearchResult:
        return replace(result, cases=[_as_decided(case) for case in result.cases])


def _as_decided(case: CourtCase) -> CourtCase:
    if case.case_status.is_terminal:
        return case
    logger.debug("Coercing archived case %s from %s to DISPOSED", case.cnr, case.case_status.value)
    return replace(case, case_status=CaseStatus.DISPOSED)
