"""
Normalization of upstream court records into the shared DTOs.

Upstream sources disagree on field names (``caseNumber`` vs ``case_no``), date formats
(ISO vs ``DD-MM-YYYY``) and status vocabulary ("Case disposed", "Decided", ...). All of that
is resolved here so providers only differ in transport and policy. The mapping is pure and
deterministic: the same payload always yields the same DTO.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from courtdata.errors import RecordNormalizationError
from courtdata.types import (
    Advocate,
    CaseDetails,
    CaseStatus,
    CauseList,
    CauseListItem,
    CourtCase,
    Judge,
    Order,
    Party,
    PartyRole,
    SearchFilters,
    SearchResult,
)

logger = logging.getLogger(__name__)

_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "cnr": ("cnr", "cnrNumber", "cnr_number", "cino"),
    "case_number": ("caseNumber", "case_number", "case_no", "registrationNumber", "registration_number"),
    "title": ("title", "caseTitle", "case_title"),
    "court": ("court", "courtName", "court_name", "establishment"),
    "court_location": ("courtLocation", "court_location", "location", "district", "bench"),
    "case_type": ("caseType", "case_type", "type_name"),
    "case_status": ("caseStatus", "case_status", "status", "stage", "case_stage"),
    "filing_date": ("filingDate", "filing_date", "date_of_filing", "dt_filing"),
    "last_hearing_date": ("lastHearingDate", "last_hearing_date", "last_listed_date"),
    "next_hearing_date": ("nextHearingDate", "next_hearing_date", "next_date"),
}

_STATUS_SYNONYMS: dict[str, CaseStatus] = {
    "pending": CaseStatus.PENDING,
    "active": CaseStatus.PENDING,
    "open": CaseStatus.PENDING,
    "case pending": CaseStatus.PENDING,
    "registered": CaseStatus.PENDING,
    # eCourts "Case Stage" values for live matters
    "admission": CaseStatus.PENDING,
    "notice": CaseStatus.PENDING,
    "evidence": CaseStatus.PENDING,
    "arguments": CaseStatus.PENDING,
    "hearing": CaseStatus.PENDING,
    "heard": CaseStatus.HEARD,
    "reserved": CaseStatus.HEARD,
    "adjourned": CaseStatus.ADJOURNED,
    "transferred": CaseStatus.TRANSFERRED,
    "disposed": CaseStatus.DISPOSED,
    "case disposed": CaseStatus.DISPOSED,
    "decided": CaseStatus.DISPOSED,
    "closed": CaseStatus.DISPOSED,
    "allowed": CaseStatus.DISPOSED,
    "dismissed": CaseStatus.DISMISSED,
    "withdrawn": CaseStatus.WITHDRAWN,
}

_ROLE_SYNONYMS: dict[str, PartyRole] = {
    "plaintiff": PartyRole.PLAINTIFF,
    "complainant": PartyRole.PLAINTIFF,
    "defendant": PartyRole.DEFENDANT,
    "accused": PartyRole.DEFENDANT,
    "petitioner": PartyRole.PETITIONER,
    "applicant": PartyRole.PETITIONER,
    "respondent": PartyRole.RESPONDENT,
    "opposite party": PartyRole.RESPONDENT,
    "appellant": PartyRole.APPELLANT,
    "respondent_appeal": PartyRole.RESPONDENT_APPEAL,
    "respondent appeal": PartyRole.RESPONDENT_APPEAL,
}

_DATE_FORMATS = ("%d-%m-%Y", "%d/%m/%Y", "%d.%m.%Y", "%d %B %Y", "%d %b %Y", "%d-%b-%Y", "%B %d, %Y")
_ORDINAL_SUFFIX = re.compile(r"(?<=\d)(st|nd|rd|th)\b", re.IGNORECASE)


def parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _ORDINAL_SUFFIX.sub("", str(value).strip())
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug("Unable to parse date value %s", value)
    return None


def normalize_case_status(value: Any) -> CaseStatus:
    if isinstance(value, CaseStatus):
        return value
    if not value:
        return CaseStatus.UNKNOWN
    text = str(value).strip()
    try:
        return CaseStatus(text.upper())
    except ValueError:
        pass
    lowered = text.lower()
    if lowered in _STATUS_SYNONYMS:
        return _STATUS_SYNONYMS[lowered]
    # Portals often prefix the stage, e.g. "Disposed - Contested"
    for keyword, status in _STATUS_SYNONYMS.items():
        if lowered.startswith(keyword):
            return status
    return CaseStatus.UNKNOWN


def normalize_party_role(value: Any, default: PartyRole = PartyRole.PETITIONER) -> PartyRole:
    if isinstance(value, PartyRole):
        return value
    if not value:
        return default
    text = str(value).strip()
    try:
        return PartyRole(text.upper())
    except ValueError:
        return _ROLE_SYNONYMS.get(text.lower(), default)


def case_from_record(
    raw: Mapping[str, Any],
    *,
    default_court: str | None = None,
    default_location: str | None = None,
) -> CourtCase:
    """Build a ``CourtCase`` from any supported upstream record shape."""

    if not isinstance(raw, Mapping):
        raise RecordNormalizationError(f"Case record must be an object, got {type(raw).__name__}")
    cnr = _pick(raw, "cnr")
    if not cnr:
        raise RecordNormalizationError("Case record has no CNR")
    filing_date = parse_date(_pick(raw, "filing_date"))
    if filing_date is None:
        raise RecordNormalizationError(f"Case record {cnr} has no usable filing date")

    parties = list(_parties_from_record(raw))
    title = _pick(raw, "title") or _title_from_parties(parties) or str(cnr)
    court = _pick(raw, "court") or default_court or ""

    return CourtCase(
        cnr=str(cnr),
        case_number=str(_pick(raw, "case_number") or cnr),
        title=str(title),
        court=str(court),
        court_location=str(_pick(raw, "court_location") or default_location or ""),
        case_type=str(_pick(raw, "case_type") or "").upper(),
        case_status=normalize_case_status(_pick(raw, "case_status")),
        filing_date=filing_date,
        last_hearing_date=parse_date(_pick(raw, "last_hearing_date")),
        next_hearing_date=parse_date(_pick(raw, "next_hearing_date")),
        parties=parties,
        advocates=[_advocate_from_record(item) for item in _as_list(raw.get("advocates"))],
        judges=[_judge_from_record(item) for item in _as_list(raw.get("judges"))],
        case_details=_details_from_record(raw.get("caseDetails") or raw.get("case_details")),
    )


def search_result_from_payload(
    payload: Mapping[str, Any],
    *,
    default_court: str | None = None,
) -> SearchResult:
    """Normalize a search payload, dropping records that cannot be normalized."""

    cases: list[CourtCase] = []
    for raw in _as_list(payload.get("cases") or payload.get("results")):
        try:
            cases.append(case_from_record(raw, default_court=default_court))
        except RecordNormalizationError as exc:
            logger.warning("Skipping malformed case record", extra={"error": str(exc)})
    total = payload.get("totalCount", payload.get("total_count"))
    try:
        total_count = _to_int(total, "totalCount") if total is not None else len(cases)
    except RecordNormalizationError as exc:
        logger.warning("Ignoring malformed total count", extra={"error": str(exc)})
        total_count = len(cases)
    return SearchResult(
        cases=cases,
        total_count=total_count,
        has_more=bool(payload.get("hasMore", payload.get("has_more", False))),
        next_page_token=payload.get("nextPageToken") or payload.get("next_page_token"),
    )


def order_from_record(raw: Mapping[str, Any], *, cnr: str) -> Order:
    if not isinstance(raw, Mapping):
        raise RecordNormalizationError(f"Order record for {cnr} must be an object")
    order_id = raw.get("id") or raw.get("orderId") or raw.get("order_id")
    order_date = parse_date(raw.get("orderDate") or raw.get("order_date"))
    if not order_id or order_date is None:
        raise RecordNormalizationError(f"Order record for {cnr} lacks an id or date")
    judge = raw.get("judge")
    pdf_url = raw.get("pdfUrl") or raw.get("pdf_url")
    downloadable = raw.get("isDownloadable", raw.get("is_downloadable"))
    return Order(
        id=str(order_id),
        case_id=str(raw.get("caseId") or raw.get("case_id") or cnr),
        cnr=str(raw.get("cnr") or cnr),
        order_date=order_date,
        order_type=str(raw.get("orderType") or raw.get("order_type") or "Order"),
        order_text=str(raw.get("orderText") or raw.get("order_text") or ""),
        judge=_judge_from_record(judge) if judge else None,
        order_number=raw.get("orderNumber") or raw.get("order_number"),
        pdf_url=pdf_url,
        is_downloadable=bool(downloadable) if downloadable is not None else bool(pdf_url),
    )


def orders_from_payload(payload: Any, *, cnr: str) -> list[Order]:
    records = payload.get("orders", []) if isinstance(payload, Mapping) else payload
    orders = [order_from_record(raw, cnr=cnr) for raw in _as_list(records)]
    orders.sort(key=lambda order: (order.order_date, order.id))
    return orders


def cause_list_from_record(raw: Mapping[str, Any], *, court: str, on_date: date) -> CauseList:
    if not isinstance(raw, Mapping):
        raise RecordNormalizationError(f"Cause list for {court} must be an object")
    items: list[CauseListItem] = []
    for position, item in enumerate(_as_list(raw.get("items")), start=1):
        if not isinstance(item, Mapping):
            raise RecordNormalizationError(f"Cause list item {position} for {court} must be an object")
        judge = item.get("judge")
        items.append(
            CauseListItem(
                item_number=_to_int(item.get("itemNumber") or item.get("item_number") or position, "itemNumber"),
                case_number=str(item.get("caseNumber") or item.get("case_number") or ""),
                cnr=item.get("cnr"),
                title=str(item.get("title") or ""),
                parties=[str(name) for name in _as_list(item.get("parties"))],
                advocates=[str(name) for name in _as_list(item.get("advocates"))],
                hearing_time=item.get("hearingTime") or item.get("hearing_time"),
                purpose=item.get("purpose"),
                judge=_judge_from_record(judge) if judge else None,
            )
        )
    # sorted() is stable, so upstream order survives for equal item numbers
    items = sorted(items, key=lambda entry: entry.item_number)
    listed_on = parse_date(raw.get("date")) or on_date
    return CauseList(
        id=str(raw.get("id") or f"cause-list-{court}-{listed_on.isoformat()}"),
        court=str(raw.get("court") or court),
        date=listed_on,
        items=items,
    )


def _pick(raw: Mapping[str, Any], name: str) -> Any:
    for key in _FIELD_ALIASES[name]:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _parties_from_record(raw: Mapping[str, Any]) -> Iterable[Party]:
    records = _as_list(raw.get("parties"))
    if records:
        for item in records:
            if isinstance(item, str):
                yield Party(name=item, role=PartyRole.PETITIONER)
                continue
            if not isinstance(item, Mapping):
                raise RecordNormalizationError(f"Party entry must be a name or an object, got {item!r}")
            yield Party(
                name=str(item.get("name", "")).strip(),
                role=normalize_party_role(item.get("type") or item.get("role")),
                address=item.get("address"),
                phone=item.get("phone"),
                email=item.get("email"),
            )
        return
    # Flat aggregator shape: one petitioner / respondent name per record
    petitioner = raw.get("pet_name") or raw.get("petitioner")
    respondent = raw.get("res_name") or raw.get("respondent")
    if petitioner:
        yield Party(name=str(petitioner).strip(), role=PartyRole.PETITIONER)
    if respondent:
        yield Party(name=str(respondent).strip(), role=PartyRole.RESPONDENT)


def _title_from_parties(parties: list[Party]) -> str | None:
    first_side = [p.name for p in parties if p.role in (PartyRole.PLAINTIFF, PartyRole.PETITIONER, PartyRole.APPELLANT)]
    other_side = [p.name for p in parties if p.role not in (PartyRole.PLAINTIFF, PartyRole.PETITIONER, PartyRole.APPELLANT)]
    if first_side and other_side:
        return f"{first_side[0]} vs {other_side[0]}"
    return None


def _advocate_from_record(item: Any) -> Advocate:
    if isinstance(item, str):
        return Advocate(name=item)
    if not isinstance(item, Mapping):
        raise RecordNormalizationError(f"Advocate entry must be a name or an object, got {item!r}")
    return Advocate(
        name=str(item.get("name", "")).strip(),
        bar_number=item.get("barNumber") or item.get("bar_number"),
        phone=item.get("phone"),
        email=item.get("email"),
        address=item.get("address"),
    )


def _judge_from_record(item: Any) -> Judge:
    if isinstance(item, str):
        return Judge(name=item)
    if not isinstance(item, Mapping):
        raise RecordNormalizationError(f"Judge entry must be a name or an object, got {item!r}")
    return Judge(name=str(item.get("name", "")).strip(), designation=item.get("designation"), court=item.get("court"))


def _details_from_record(item: Any) -> CaseDetails | None:
    if not item:
        return None
    if not isinstance(item, Mapping):
        raise RecordNormalizationError("caseDetails must be an object")
    value = item.get("caseValue", item.get("case_value"))
    return CaseDetails(
        subject_matter=item.get("subjectMatter") or item.get("subject_matter"),
        case_description=item.get("caseDescription") or item.get("case_description"),
        relief_sought=item.get("reliefSought") or item.get("relief_sought"),
        case_value=_to_float(value, "caseValue") if value is not None else None,
        jurisdiction=item.get("jurisdiction"),
    )


def _to_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise RecordNormalizationError(f"{field} is not a number: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise RecordNormalizationError(f"{field} is not a number: {value!r}") from exc


def _to_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise RecordNormalizationError(f"{field} is not a number: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise RecordNormalizationError(f"{field} is not a number: {value!r}") from exc


def matches_filters(case: CourtCase, filters: SearchFilters) -> bool:
    """Local evaluation of search filters; text filters are case-insensitive substring matches."""

    if not _contains(case.case_number, filters.case_number):
        return False
    if filters.year is not None and case.filing_date.year != int(filters.year):
        return False
    if not _contains(case.court, filters.court):
        return False
    for location in (filters.state, filters.district, filters.bench):
        if not _contains(case.court_location, location):
            return False
    if filters.case_type and case.case_type != filters.case_type.strip().upper():
        return False
    if filters.case_status and case.case_status is not normalize_case_status(filters.case_status):
        return False
    if filters.filing_date_from and case.filing_date < filters.filing_date_from:
        return False
    if filters.filing_date_to and case.filing_date > filters.filing_date_to:
        return False
    if filters.party_name and not any(_contains(party.name, filters.party_name) for party in case.parties):
        return False
    if filters.advocate_name and not any(_contains(adv.name, filters.advocate_name) for adv in case.advocates):
        return False
    return True


def _contains(haystack: str | None, needle: str | None) -> bool:
    if not needle:
        return True
    return haystack is not None and needle.strip().lower() in haystack.lower()
