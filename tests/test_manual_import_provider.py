from __future__ import annotations

from datetime import date

import pytest

from courtdata.errors import ErrorCode
from courtdata.providers import DistrictHighCourtProvider, ManualImportProvider
from courtdata.providers.manual import DEFAULT_PORTAL_URL
from courtdata.types import (
    CaseStatus,
    CourtCase,
    ManualFetchModalData,
    Order,
    Party,
    PartyRole,
    ProviderConfig,
    ProviderResult,
    SearchFilters,
    SyncStatus,
)

pytestmark = pytest.mark.anyio

CNR = "MHPU010012342023"


class StubFetcher:
    """Automated lookup that always answers with the same failure."""

    name = "Stub Fetcher"
    provider_type = "STUB"

    def __init__(self, error: ErrorCode):
        self.error = error
        self.calls: list[str] = []

    async def get_case_by_cnr(self, cnr, config=None):
        self.calls.append(cnr)
        return ProviderResult(success=False, provider=self.name, response_time=0.0, error=self.error, message="stub")


def _case(cnr: str = CNR, **overrides) -> CourtCase:
    values = dict(
        cnr=cnr,
        case_number="CS 1234/2023",
        title="Ramesh Kumar vs State of Maharashtra",
        court="DISTRICT COURT PUNE",
        court_location="Pune",
        case_type="CIVIL",
        case_status=CaseStatus.PENDING,
        filing_date=date(2023, 1, 15),
        next_hearing_date=date(2024, 3, 15),
        parties=[Party(name="Ramesh Kumar", role=PartyRole.PLAINTIFF)],
    )
    values.update(overrides)
    return CourtCase(**values)


async def test_without_fetcher_lookup_is_blocked_with_handoff():
    provider = ManualImportProvider()

    result = await provider.get_case_by_cnr(CNR)

    assert result.success is False
    assert result.error is ErrorCode.MANUAL_FETCH_REQUIRED
    assert result.requires_handoff is True
    assert result.handoff == ManualFetchModalData(
        case_number="1234/2023",
        cnr=CNR,
        portal_url=DEFAULT_PORTAL_URL,
        message=result.message,
        sync_status=SyncStatus.ACTION_REQUIRED,
    )
    assert provider.get_sync_status(CNR) is SyncStatus.ACTION_REQUIRED


async def test_handoff_uses_configured_portal_url():
    provider = ManualImportProvider(ProviderConfig(portal_url="https://hcservices.ecourts.gov.in/"))

    result = await provider.get_case_by_cnr("kahc12345abc")

    assert result.handoff.portal_url == "https://hcservices.ecourts.gov.in/"
    assert result.handoff.case_number == "KAHC12345ABC"
    assert result.handoff.cnr == "KAHC12345ABC"


async def test_blocked_cnr_is_not_retried_automatically():
    fetcher = StubFetcher(ErrorCode.CAPTCHA_REQUIRED)
    provider = ManualImportProvider(fetcher=fetcher)

    first = await provider.get_case_by_cnr(CNR)
    second = await provider.get_case_by_cnr(CNR)

    assert first.error is ErrorCode.MANUAL_FETCH_REQUIRED
    assert second.error is ErrorCode.MANUAL_FETCH_REQUIRED
    assert fetcher.calls == [CNR]


async def test_fetcher_not_found_passes_through_unchanged():
    fetcher = StubFetcher(ErrorCode.NOT_FOUND)
    provider = ManualImportProvider(fetcher=fetcher)

    result = await provider.get_case_by_cnr(CNR)

    assert result.error is ErrorCode.NOT_FOUND
    assert result.handoff is None
    assert provider.get_sync_status(CNR) is SyncStatus.NOT_SYNCED


async def test_fetcher_success_is_imported(portal, simulated_config):
    fetcher = DistrictHighCourtProvider(simulated_config, transport=portal.transport())
    provider = ManualImportProvider(fetcher=fetcher)

    result = await provider.get_case_by_cnr(CNR)
    again = await provider.get_case_by_cnr(CNR)
    await provider.aclose()

    assert result.success is True
    assert result.provider == "Manual Import Provider"
    assert provider.get_sync_status(CNR) is SyncStatus.SYNCED
    assert again.data == result.data
    assert len(portal.requests) == 1


async def test_import_case_round_trip():
    provider = ManualImportProvider()
    await provider.get_case_by_cnr(CNR)
    case = _case()

    imported = await provider.import_case(case)
    result = await provider.get_case_by_cnr(CNR)

    assert imported.success is True
    assert provider.get_sync_status(CNR) is SyncStatus.SYNCED
    assert result.success is True
    assert result.data == case
    assert provider.list_imported_cases() == [case]


async def test_imported_case_is_isolated_from_caller_edits():
    provider = ManualImportProvider()
    case = _case()

    await provider.import_case(case)
    case.case_status = CaseStatus.DISPOSED
    case.parties.append(Party(name="Intervenor", role=PartyRole.RESPONDENT))
    listed = provider.list_imported_cases()
    listed[0].title = "edited"
    result = await provider.get_case_by_cnr(CNR)

    assert result.data.case_status is CaseStatus.PENDING
    assert [party.name for party in result.data.parties] == ["Ramesh Kumar"]
    assert result.data.title == "Ramesh Kumar vs State of Maharashtra"


async def test_import_case_rejects_invalid_cnr():
    provider = ManualImportProvider()

    result = await provider.import_case(_case(cnr="bad"))

    assert result.error is ErrorCode.INVALID_CNR
    assert provider.list_imported_cases() == []


async def test_invalid_cnr_is_rejected():
    provider = ManualImportProvider()

    result = await provider.get_case_by_cnr("MH-PU")

    assert result.error is ErrorCode.INVALID_CNR
    assert provider.get_sync_status("MH-PU") is SyncStatus.NOT_SYNCED


async def test_parse_portal_html_imports_matching_case(fixture_path):
    html = (fixture_path.parent / "ecourts_case_status.html").read_text(encoding="utf-8")
    provider = ManualImportProvider()
    await provider.get_case_by_cnr(CNR)

    result = await provider.parse_portal_html(html, CNR)
    lookup = await provider.get_case_by_cnr(CNR)

    assert result.success is True
    assert result.data.cnr == CNR
    assert provider.get_sync_status(CNR) is SyncStatus.SYNCED
    assert lookup.data == result.data


async def test_parse_failure_leaves_cnr_action_required(fixture_path):
    html = (fixture_path.parent / "ecourts_case_status.html").read_text(encoding="utf-8")
    provider = ManualImportProvider()

    mismatch = await provider.parse_portal_html(html, "DLHC010045672022")
    garbage = await provider.parse_portal_html("<html><p>Invalid Captcha</p></html>", CNR)
    no_filing_date = await provider.parse_portal_html(
        "<table><tr><td>CNR Number</td><td>MHPU010012342023</td></tr></table>", CNR
    )

    assert mismatch.error is ErrorCode.PARSE_ERROR
    assert garbage.error is ErrorCode.PARSE_ERROR
    assert no_filing_date.error is ErrorCode.PARSE_ERROR
    assert provider.get_sync_status("DLHC010045672022") is SyncStatus.ACTION_REQUIRED
    assert provider.get_sync_status(CNR) is SyncStatus.ACTION_REQUIRED
    assert provider.list_imported_cases() == []


async def test_custom_parser_strategy():
    class FixedParser:
        def parse(self, html):
            return [_case(cnr="DLHC010045672022"), _case()]

    provider = ManualImportProvider(parser=FixedParser())

    result = await provider.parse_portal_html("<html></html>", CNR)

    assert result.data.cnr == CNR
    assert [case.cnr for case in provider.list_imported_cases()] == [CNR]


async def test_mark_manual_required_and_invalidate():
    provider = ManualImportProvider()

    assert provider.mark_manual_required(CNR) is SyncStatus.MANUAL_REQUIRED
    blocked = await provider.get_case_by_cnr(CNR)
    assert blocked.handoff.sync_status is SyncStatus.MANUAL_REQUIRED

    await provider.import_case(_case())
    assert provider.mark_manual_required(CNR) is SyncStatus.SYNCED

    assert provider.invalidate_case(CNR) is True
    assert provider.invalidate_case(CNR) is False
    assert provider.get_sync_status(CNR) is SyncStatus.ACTION_REQUIRED
    result = await provider.get_case_by_cnr(CNR)
    assert result.error is ErrorCode.MANUAL_FETCH_REQUIRED

    with pytest.raises(ValueError):
        provider.mark_manual_required("bad")


async def test_status_listener_sees_each_transition():
    seen: list[tuple[str, SyncStatus]] = []
    provider = ManualImportProvider(on_status_change=lambda cnr, status: seen.append((cnr, status)))

    provider.get_sync_status(CNR)
    await provider.get_case_by_cnr(CNR)
    await provider.get_case_by_cnr(CNR)
    provider.mark_manual_required(CNR)
    await provider.import_case(_case())

    assert seen == [
        (CNR, SyncStatus.ACTION_REQUIRED),
        (CNR, SyncStatus.MANUAL_REQUIRED),
        (CNR, SyncStatus.SYNCED),
    ]


async def test_search_cause_list_and_orders_use_imported_data():
    provider = ManualImportProvider()
    await provider.import_case(_case())
    await provider.import_case(
        _case(cnr="MHPU010000552022", case_number="CS 55/2022", next_hearing_date=date(2024, 4, 1))
    )
    orders = [
        Order(id="o-2", case_id=CNR, cnr=CNR, order_date=date(2024, 2, 10), order_type="Interim", order_text=""),
        Order(id="o-1", case_id=CNR, cnr=CNR, order_date=date(2023, 2, 1), order_type="Notice", order_text=""),
    ]
    await provider.import_orders(CNR, orders)

    search = await provider.search_case(SearchFilters(case_number="55/2022"))
    everything = await provider.search_case(SearchFilters())
    cause_list = await provider.get_cause_list("district court", date(2024, 3, 15))
    listed = await provider.list_orders(CNR)
    none_listed = await provider.list_orders("MHPU010000552022")

    assert [case.cnr for case in search.data.cases] == ["MHPU010000552022"]
    assert everything.data.total_count == 2
    assert [(item.item_number, item.cnr) for item in cause_list.data.items] == [(1, CNR)]
    assert [order.id for order in listed.data] == ["o-1", "o-2"]
    assert none_listed.data == []


async def test_pdf_unsupported_and_connection_always_ok():
    provider = ManualImportProvider()

    pdf = await provider.download_order_pdf("o-1")
    connection = await provider.test_connection()

    assert pdf.error is ErrorCode.UNSUPPORTED_OPERATION
    assert provider.get_capabilities().supports("download_order_pdf") is False
    assert connection.success is True


async def test_clear_imported_data_resets_state():
    provider = ManualImportProvider()
    await provider.import_case(_case())

    provider.clear_imported_data()

    assert provider.list_imported_cases() == []
    assert provider.get_sync_status(CNR) is SyncStatus.NOT_SYNCED


async def test_parser_exception_becomes_parse_error():
    class BrokenParser:
        def parse(self, html):
            raise KeyError("cnr")

    provider = ManualImportProvider(parser=BrokenParser())

    result = await provider.parse_portal_html("<html></html>", CNR)

    assert result.success is False
    assert result.error is ErrorCode.PARSE_ERROR
    assert "KeyError" in result.message
    assert provider.get_sync_status(CNR) is SyncStatus.ACTION_REQUIRED
    assert provider.list_imported_cases() == []


async def test_parser_returning_non_case_items_is_rejected():
    class DictParser:
        def parse(self, html):
            return [{"cnr": CNR}]

    provider = ManualImportProvider(parser=DictParser())

    result = await provider.parse_portal_html("<html></html>", CNR)

    assert result.error is ErrorCode.PARSE_ERROR
    assert provider.get_sync_status(CNR) is SyncStatus.ACTION_REQUIRED
