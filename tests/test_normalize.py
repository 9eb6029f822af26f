from __future__ import annotations

import json
from datetime import date

import pytest

from courtdata.errors import RecordNormalizationError
from courtdata.normalize import (
    case_from_record,
    cause_list_from_record,
    matches_filters,
    normalize_case_status,
    normalize_party_role,
    orders_from_payload,
    parse_date,
    search_result_from_payload,
)
from courtdata.types import CaseStatus, PartyRole, SearchFilters


@pytest.fixture
def records(fixture_path):
    with fixture_path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def test_case_from_camel_case_record(records):
    case = case_from_record(records["cases"][0])

    assert case.cnr == "MHPU010012342023"
    assert case.case_number == "CS 1234/2023"
    assert case.case_status is CaseStatus.PENDING
    assert case.filing_date == date(2023, 1, 15)
    assert case.next_hearing_date == date(2024, 3, 15)
    assert [party.role for party in case.parties] == [PartyRole.PLAINTIFF, PartyRole.DEFENDANT]
    assert case.advocates[0].bar_number == "MAH/1234/2010"
    assert case.judges[0].designation == "District Judge"
    assert case.case_details is not None
    assert case.case_details.case_value == 500000.0


def test_case_from_aggregator_record(records):
    case = case_from_record(records["cases"][3])

    assert case.cnr == "TNCH030011112021"
    assert case.case_number == "COMS 111/2021"
    assert case.title == "Lakshmi Traders vs Sri Balaji Exports"
    assert case.court == "COMMERCIAL COURT"
    assert case.court_location == "Chennai"
    assert case.case_type == "COMMERCIAL"
    assert case.case_status is CaseStatus.PENDING
    assert case.filing_date == date(2021, 3, 12)
    assert [(p.name, p.role) for p in case.parties] == [
        ("Lakshmi Traders", PartyRole.PETITIONER),
        ("Sri Balaji Exports", PartyRole.RESPONDENT),
    ]


def test_case_from_record_requires_cnr_and_filing_date():
    with pytest.raises(RecordNormalizationError):
        case_from_record({"caseNumber": "CS 1/2020", "filingDate": "2020-01-01"})
    with pytest.raises(RecordNormalizationError):
        case_from_record({"cnr": "MHPU010000012020", "filingDate": "sometime"})


def test_case_from_record_uses_default_court():
    case = case_from_record({"cnr": "MHPU010000012020", "filingDate": "2020-01-01"}, default_court="HIGH COURT")
    assert case.court == "HIGH COURT"
    assert case.title == "MHPU010000012020"
    assert case.case_status is CaseStatus.UNKNOWN


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-15", date(2024, 1, 15)),
        ("2024-01-15T10:30:00Z", date(2024, 1, 15)),
        ("15-01-2024", date(2024, 1, 15)),
        ("15/01/2024", date(2024, 1, 15)),
        ("15.01.2024", date(2024, 1, 15)),
        ("15th January 2024", date(2024, 1, 15)),
        ("1st Feb 2024", date(2024, 2, 1)),
        ("", None),
        (None, None),
        ("not a date", None),
    ],
)
def test_parse_date_formats(value, expected):
    assert parse_date(value) == expected


def test_normalize_case_status_vocabulary():
    assert normalize_case_status("PENDING") is CaseStatus.PENDING
    assert normalize_case_status("Decided") is CaseStatus.DISPOSED
    assert normalize_case_status("Disposed - Contested") is CaseStatus.DISPOSED
    assert normalize_case_status("Arguments") is CaseStatus.PENDING
    assert normalize_case_status("withdrawn") is CaseStatus.WITHDRAWN
    assert normalize_case_status("something else") is CaseStatus.UNKNOWN
    assert normalize_case_status(None) is CaseStatus.UNKNOWN


def test_normalize_party_role_synonyms():
    assert normalize_party_role("Complainant") is PartyRole.PLAINTIFF
    assert normalize_party_role("accused") is PartyRole.DEFENDANT
    assert normalize_party_role("RESPONDENT_APPEAL") is PartyRole.RESPONDENT_APPEAL
    assert normalize_party_role("intervenor", default=PartyRole.RESPONDENT) is PartyRole.RESPONDENT


def test_search_result_skips_malformed_records(records):
    payload = {
        "cases": [records["cases"][0], {"caseNumber": "no cnr"}],
        "totalCount": 2,
        "hasMore": True,
        "nextPageToken": "abc",
    }
    result = search_result_from_payload(payload)

    assert [case.cnr for case in result.cases] == ["MHPU010012342023"]
    assert result.total_count == 2
    assert result.has_more is True
    assert result.next_page_token == "abc"


def test_search_result_skips_non_object_records_and_bad_totals(records):
    payload = {"cases": ["MHPU010012342023", 42, records["cases"][0]], "totalCount": "n/a"}
    result = search_result_from_payload(payload)

    assert [case.cnr for case in result.cases] == ["MHPU010012342023"]
    assert result.total_count == 1


@pytest.mark.parametrize(
    "record",
    [
        {"cnr": "MHPU010012342023", "filingDate": "2023-01-15", "caseDetails": {"caseValue": "1,00,000"}},
        {"cnr": "MHPU010012342023", "filingDate": "2023-01-15", "caseDetails": "Rs. 5 lakh"},
        {"cnr": "MHPU010012342023", "filingDate": "2023-01-15", "advocates": [7]},
        {"cnr": "MHPU010012342023", "filingDate": "2023-01-15", "parties": [None]},
    ],
)
def test_case_from_record_rejects_malformed_values(record):
    with pytest.raises(RecordNormalizationError):
        case_from_record(record)


def test_case_from_record_rejects_non_object():
    with pytest.raises(RecordNormalizationError):
        case_from_record("MHPU010012342023")


def test_case_value_accepts_numeric_strings():
    case = case_from_record({"cnr": "MHPU010012342023", "filingDate": "2023-01-15", "caseDetails": {"caseValue": "250000.50"}})

    assert case.case_details.case_value == 250000.5


def test_orders_are_sorted_by_date(records):
    orders = orders_from_payload({"orders": records["orders"]["MHPU010012342023"]}, cnr="MHPU010012342023")

    assert [order.id for order in orders] == ["ord-1001", "ord-1002"]
    assert orders[0].is_downloadable is True
    assert orders[1].judge is not None
    assert orders[1].order_number == "2"


def test_cause_list_items_sorted_by_item_number(records):
    cause_list = cause_list_from_record(records["causeLists"][0], court="DISTRICT COURT", on_date=date(2024, 3, 15))

    assert [item.item_number for item in cause_list.items] == [1, 2]
    assert cause_list.items[0].cnr == "MHPU010012342023"
    assert cause_list.items[1].cnr is None
    assert cause_list.id == "cause-list-DISTRICT COURT-2024-03-15"


@pytest.mark.parametrize(
    "items",
    [
        [{"itemNumber": "12A", "caseNumber": "A"}],
        ["CS 1/2024"],
    ],
)
def test_cause_list_rejects_malformed_items(items):
    with pytest.raises(RecordNormalizationError):
        cause_list_from_record({"items": items}, court="HIGH COURT", on_date=date(2024, 1, 2))


def test_cause_list_keeps_upstream_order_for_equal_item_numbers():
    raw = {"items": [{"itemNumber": 1, "caseNumber": "A"}, {"itemNumber": 1, "caseNumber": "B"}]}
    cause_list = cause_list_from_record(raw, court="HIGH COURT", on_date=date(2024, 1, 2))

    assert [item.case_number for item in cause_list.items] == ["A", "B"]
    assert cause_list.date == date(2024, 1, 2)


def test_matches_filters(records):
    case = case_from_record(records["cases"][0])

    assert matches_filters(case, SearchFilters())
    assert matches_filters(case, SearchFilters(party_name="ramesh", year=2023))
    assert matches_filters(case, SearchFilters(case_status="pending", case_type="civil"))
    assert not matches_filters(case, SearchFilters(advocate_name="Mehta"))
    assert not matches_filters(case, SearchFilters(filing_date_from=date(2023, 2, 1)))
