from __future__ import annotations

import copy
import logging
import time
from datetime import date
from typing import Callable

from courtdata.errors import ErrorCode, PortalParseError, ProviderFailure
from courtdata.normalize import matches_filters
from courtdata.parsing import EcourtsPortalParser, PortalParser
from courtdata.providers.base import CourtProvider
from courtdata.providers.common import ProviderOperationsMixin, require_valid_cnr
from courtdata.types import (
    CauseList,
    CauseListItem,
    CourtCase,
    ManualFetchModalData,
    Order,
    ProviderCapabilities,
    ProviderConfig,
    ProviderResult,
    SearchFilters,
    SearchResult,
    SyncStatus,
)
from courtdata.validation import is_valid_cnr, normalize_cnr, provisional_case_number

logger = logging.getLogger(__name__)

DEFAULT_PORTAL_URL = "https://services.ecourts.gov.in/ecourtindia_v6/"

StatusListener = Callable[[str, SyncStatus], None]


class _Blocked(Exception):
    """Automated retrieval did not produce the case; escalate to the user."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ManualImportProvider(ProviderOperationsMixin):
    """
    Provider for courts whose records cannot be retrieved automatically.

    Each CNR moves through ``not_synced`` -> ``action_required`` -> ``manual_required`` ->
    ``synced``. An automated lookup is attempted through ``fetcher`` the first time a CNR is
    requested; when that is blocked the caller receives ``MANUAL_FETCH_REQUIRED`` with a
    ``ManualFetchModalData`` hand-off and the case has to be imported, either as a
    ``CourtCase`` or as saved portal HTML. Imported cases, orders and sync states live on
    this instance only.
    """

    name = "Manual Import Provider"
    provider_type = "MANUAL_IMPORT"
    capabilities = ProviderCapabilities(
        supports_cnr_lookup=True,
        supports_case_search=True,
        supports_cause_list=True,
        supports_order_listing=True,
        supports_pdf_download=False,
        supports_real_time_sync=False,
        max_concurrent_requests=100,
        rate_limit_per_minute=1000,
        supported_courts=("ALL",),
        supported_case_types=("ALL",),
    )

    def __init__(
        self,
        config: ProviderConfig | None = None,
        *,
        fetcher: CourtProvider | None = None,
        parser: PortalParser | None = None,
        on_status_change: StatusListener | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.config = config or ProviderConfig()
        self.fetcher = fetcher
        self.parser = parser or EcourtsPortalParser()
        self._on_status_change = on_status_change
        self._clock = clock
        self._cases: dict[str, CourtCase] = {}
        self._orders: dict[str, list[Order]] = {}
        self._statuses: dict[str, SyncStatus] = {}

    async def aclose(self) -> None:
        closer = getattr(self.fetcher, "aclose", None)
        if closer is not None:
            await closer()

    # Provider contract

    async def get_case_by_cnr(self, cnr: str, config: ProviderConfig | None = None) -> ProviderResult[CourtCase]:
        return await self._execute("get_case_by_cnr", self._fetch_case, cnr, config)

    async def search_case(self, filters: SearchFilters, config: ProviderConfig | None = None) -> ProviderResult[SearchResult]:
        return await self._execute("search_case", self._search, filters)

    async def get_cause_list(self, court: str, on_date: date, config: ProviderConfig | None = None) -> ProviderResult[CauseList]:
        return await self._execute("get_cause_list", self._cause_list, court, on_date)

    async def list_orders(self, cnr: str, config: ProviderConfig | None = None) -> ProviderResult[list[Order]]:
        return await self._execute("list_orders", self._list_orders, cnr)

    async def download_order_pdf(self, order_id: str, config: ProviderConfig | None = None) -> ProviderResult[bytes]:
        return await self._execute("download_order_pdf", self._pdf, order_id)

    async def test_connection(self, config: ProviderConfig | None = None) -> ProviderResult[bool]:
        return await self._execute("test_connection", self._check_connection)

    # Import surface

    async def import_case(self, case: CourtCase) -> ProviderResult[CourtCase]:
        """
        Store an externally obtained case and mark its CNR as synced.

        The case is stored by value. Lookups, searches and ``list_imported_cases`` hand out
        copies, so neither side can change the synced record in place.
        """

        return await self._execute("import_case", self._import_case, case)

    async def import_orders(self, cnr: str, orders: list[Order]) -> ProviderResult[list[Order]]:
        return await self._execute("import_orders", self._import_orders, cnr, orders)

    async def parse_portal_html(self, html: str, cnr: str) -> ProviderResult[CourtCase]:
        """
        Import a case from a saved portal page.

        The configured parser may return several cases; the one whose CNR matches ``cnr`` is
        imported. Any parse failure yields ``PARSE_ERROR`` and the CNR stays in
        ``action_required`` so the user can try again.
        """

        return await self._execute("parse_portal_html", self._parse_portal_html, html, cnr)

    def get_sync_status(self, cnr: str) -> SyncStatus:
        return self._statuses.get(normalize_cnr(cnr), SyncStatus.NOT_SYNCED)

    def mark_manual_required(self, cnr: str) -> SyncStatus:
        """Record that the user has been shown the manual-fetch screen for ``cnr``."""

        if not is_valid_cnr(cnr):
            raise ValueError(f"Invalid CNR format: {cnr!r}")
        key = normalize_cnr(cnr)
        if self.get_sync_status(key) is not SyncStatus.SYNCED:
            self._set_status(key, SyncStatus.MANUAL_REQUIRED)
        return self.get_sync_status(key)

    def invalidate_case(self, cnr: str) -> bool:
        """Drop an imported case and its orders. Returns False when nothing was imported."""

        key = normalize_cnr(cnr)
        dropped = self._cases.pop(key, None) is not None
        self._orders.pop(key, None)
        if dropped:
            self._set_status(key, SyncStatus.ACTION_REQUIRED)
        return dropped

    def list_imported_cases(self) -> list[CourtCase]:
        return [copy.deepcopy(case) for case in self._cases.values()]

    def clear_imported_data(self) -> None:
        self._cases.clear()
        self._orders.clear()
        self._statuses.clear()

    # Operation bodies

    async def _fetch_case(self, cnr: str, config: ProviderConfig | None) -> CourtCase:
        require_valid_cnr(cnr)
        key = normalize_cnr(cnr)
        if key in self._cases:
            return copy.deepcopy(self._cases[key])

        status = self.get_sync_status(key)
        if status in (SyncStatus.ACTION_REQUIRED, SyncStatus.MANUAL_REQUIRED):
            raise self._handoff(key, status, config)

        try:
            case = await self._automated_lookup(key, config)
        except _Blocked as blocked:
            logger.info("Automated retrieval blocked", extra={"cnr": key, "reason": blocked.reason})
            self._set_status(key, SyncStatus.ACTION_REQUIRED)
            raise self._handoff(key, SyncStatus.ACTION_REQUIRED, config) from None
        self._store_case(key, case)
        return case

    async def _automated_lookup(self, cnr: str, config: ProviderConfig | None) -> CourtCase:
        if self.fetcher is None:
            raise _Blocked("no automated fetcher configured")
        result = await self.fetcher.get_case_by_cnr(cnr, config)
        if result.success and result.data is not None:
            return result.data
        if result.error in (ErrorCode.NOT_FOUND, ErrorCode.INVALID_CNR):
            raise ProviderFailure(result.error, result.message or f"Case {cnr} not found")
        code = result.error.value if result.error else "no data"
        raise _Blocked(f"{self.fetcher.name}: {code}")

    def _handoff(self, cnr: str, status: SyncStatus, config: ProviderConfig | None) -> ProviderFailure:
        cfg = self.config.merged(config)
        modal = ManualFetchModalData(
            case_number=provisional_case_number(cnr),
            cnr=cnr,
            portal_url=cfg.portal_url or DEFAULT_PORTAL_URL,
            message=(
                f"Automated retrieval is blocked for CNR {cnr}. "
                "Look the case up on the court portal and import it here."
            ),
            sync_status=status,
        )
        return ProviderFailure(ErrorCode.MANUAL_FETCH_REQUIRED, modal.message, handoff=modal)

    async def _import_case(self, case: CourtCase) -> CourtCase:
        require_valid_cnr(case.cnr)
        self._store_case(normalize_cnr(case.cnr), case)
        return case

    async def _import_orders(self, cnr: str, orders: list[Order]) -> list[Order]:
        require_valid_cnr(cnr)
        stored = sorted(orders, key=lambda order: (order.order_date, order.id))
        self._orders[normalize_cnr(cnr)] = stored
        return list(stored)

    async def _parse_portal_html(self, html: str, cnr: str) -> CourtCase:
        require_valid_cnr(cnr)
        key = normalize_cnr(cnr)
        try:
            parsed = list(self.parser.parse(html))
        except PortalParseError as exc:
            raise self._parse_failure(key, str(exc)) from exc
        except Exception as exc:
            logger.warning(
                "Portal parser failed",
                extra={"cnr": key, "parser": type(self.parser).__name__, "error": repr(exc)},
            )
            raise self._parse_failure(key, f"Portal parser failed: {exc!r}") from exc
        for case in parsed:
            if not isinstance(case, CourtCase):
                raise self._parse_failure(key, f"Portal parser returned {type(case).__name__}, expected CourtCase")
            if normalize_cnr(case.cnr) == key:
                self._store_case(key, case)
                return case
        raise self._parse_failure(key, f"No case with CNR {key} found in the portal page")

    def _parse_failure(self, cnr: str, message: str) -> ProviderFailure:
        # An already imported record stays authoritative.
        if self.get_sync_status(cnr) is not SyncStatus.SYNCED:
            self._set_status(cnr, SyncStatus.ACTION_REQUIRED)
        return ProviderFailure(ErrorCode.PARSE_ERROR, message)

    async def _search(self, filters: SearchFilters) -> SearchResult:
        cases = [copy.deepcopy(case) for case in self._cases.values() if matches_filters(case, filters)]
        return SearchResult(cases=cases, total_count=len(cases))

    async def _cause_list(self, court: str, on_date: date) -> CauseList:
        wanted = court.strip().lower()
        items: list[CauseListItem] = []
        for case in self._cases.values():
            if case.next_hearing_date != on_date or wanted not in case.court.lower():
                continue
            items.append(
                CauseListItem(
                    item_number=len(items) + 1,
                    case_number=case.case_number,
                    cnr=case.cnr,
                    title=case.title,
                    parties=[party.name for party in case.parties],
                    advocates=[advocate.name for advocate in case.advocates],
                    judge=case.judges[0] if case.judges else None,
                )
            )
        return CauseList(id=f"cause-list-{court}-{on_date.isoformat()}", court=court, date=on_date, items=items)

    async def _list_orders(self, cnr: str) -> list[Order]:
        require_valid_cnr(cnr)
        return list(self._orders.get(normalize_cnr(cnr), []))

    async def _pdf(self, order_id: str) -> bytes:
        raise ProviderFailure(ErrorCode.UNSUPPORTED_OPERATION, f"{self.name} does not serve order PDFs")

    async def _check_connection(self) -> bool:
        return True

    def _store_case(self, cnr: str, case: CourtCase) -> None:
        # Stored by value: edits to the caller's object never reach the synced record.
        self._cases[cnr] = copy.deepcopy(case)
        self._set_status(cnr, SyncStatus.SYNCED)

    def _set_status(self, cnr: str, status: SyncStatus) -> None:
        previous = self._statuses.get(cnr, SyncStatus.NOT_SYNCED)
        self._statuses[cnr] = status
        if previous is status:
            return
        logger.info("Sync status changed", extra={"cnr": cnr, "from_status": previous.value, "to_status": status.value})
        if self._on_status_change is not None:
            self._on_status_change(cnr, status)

