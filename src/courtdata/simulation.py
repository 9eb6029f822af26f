from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Mapping

import httpx

from courtdata.errors import RecordNormalizationError
from courtdata.normalize import case_from_record, matches_filters, parse_date
from courtdata.types import SearchFilters
from courtdata.validation import normalize_cnr

logger = logging.getLogger(__name__)

DEFAULT_FIXTURE_PATH = Path("data/fixtures/mock_portal.json")
SIMULATED_ENDPOINT = "https://portal.simulated"

_FILTER_PARAMS = {
    "caseNumber": "case_number",
    "year": "year",
    "state": "state",
    "district": "district",
    "court": "court",
    "bench": "bench",
    "partyName": "party_name",
    "advocateName": "advocate_name",
    "filingDateFrom": "filing_date_from",
    "filingDateTo": "filing_date_to",
    "caseType": "case_type",
    "caseStatus": "case_status",
}


class SimulatedCourtPortal:
    """
    Court portal served from a static JSON fixture.

    Implements the upstream REST surface (cases, search, cause lists, orders, order PDFs and
    health) as an ``httpx`` request handler, so every networked provider can run offline
    through ``httpx.MockTransport``.
    """

    def __init__(self, fixture_path: Path = DEFAULT_FIXTURE_PATH, *, require_api_key: bool = False, page_size: int = 10):
        with fixture_path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)

        self.require_api_key = require_api_key
        self.page_size = page_size
        self.requests: list[httpx.Request] = []
        self._records: dict[str, dict[str, Any]] = {}
        for record in payload.get("cases", []):
            cnr = record.get("cnr") or record.get("cino")
            if cnr:
                self._records[normalize_cnr(str(cnr))] = record
        self._orders: dict[str, list[dict[str, Any]]] = {
            normalize_cnr(cnr): list(orders) for cnr, orders in payload.get("orders", {}).items()
        }
        self._cause_lists: list[dict[str, Any]] = list(payload.get("causeLists", []))
        logger.debug(
            "Loaded simulated portal fixture",
            extra={"path": str(fixture_path), "cases": len(self._records), "cause_lists": len(self._cause_lists)},
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method != "GET":
            return _error(405, "Method not allowed")
        segments = [segment for segment in request.url.path.split("/") if segment]
        if segments[-1:] == ["health"]:
            return httpx.Response(200, json={"status": "ok"})
        if self.require_api_key and not request.headers.get("Authorization"):
            return _error(401, "Authentication credentials were not provided")

        if segments[-1:] == ["cases"]:
            return self._search(request.url.params)
        if len(segments) >= 2 and segments[-2] == "cases":
            return self._case(segments[-1])
        if len(segments) >= 3 and segments[-3] == "cases" and segments[-1] == "orders":
            return self._orders_for(segments[-2])
        if len(segments) >= 3 and segments[-3] == "orders" and segments[-1] == "pdf":
            return self._pdf(segments[-2])
        if len(segments) >= 2 and segments[-2] == "cause-lists":
            return self._cause_list(segments[-1], request.url.params)
        return _error(404, f"No route for {request.url.path}")

    def _case(self, cnr: str) -> httpx.Response:
        record = self._records.get(normalize_cnr(cnr))
        if record is None:
            return _error(404, f"Case {cnr} not found")
        return httpx.Response(200, json=record)

    def _search(self, params: Mapping[str, str]) -> httpx.Response:
        filters = _filters_from_params(params)
        matched: list[dict[str, Any]] = []
        for record in self._records.values():
            try:
                case = case_from_record(record)
            except RecordNormalizationError:
                continue
            if matches_filters(case, filters):
                matched.append(record)

        token = params.get("pageToken") or "0"
        if not token.isdigit():
            return _error(400, f"Invalid page token {token!r}")
        offset = int(token)
        page = matched[offset : offset + self.page_size]
        next_offset = offset + len(page)
        has_more = next_offset < len(matched)
        return httpx.Response(
            200,
            json={
                "cases": page,
                "totalCount": len(matched),
                "hasMore": has_more,
                "nextPageToken": str(next_offset) if has_more else None,
            },
        )

    def _orders_for(self, cnr: str) -> httpx.Response:
        key = normalize_cnr(cnr)
        if key not in self._records:
            return _error(404, f"Case {cnr} not found")
        return httpx.Response(200, json={"orders": self._orders.get(key, [])})

    def _pdf(self, order_id: str) -> httpx.Response:
        for orders in self._orders.values():
            for order in orders:
                if str(order.get("id")) == order_id and order.get("isDownloadable", bool(order.get("pdfUrl"))):
                    content = f"%PDF-1.4\n% simulated order {order_id}\n".encode("ascii")
                    return httpx.Response(200, content=content, headers={"Content-Type": "application/pdf"})
        return _error(404, f"Order {order_id} has no PDF")

    def _cause_list(self, court: str, params: Mapping[str, str]) -> httpx.Response:
        on_date = parse_date(params.get("date"))
        if on_date is None:
            return _error(400, "A valid date query parameter is required")
        wanted = {court.strip().lower()}
        if params.get("bench"):
            wanted.add(params["bench"].strip().lower())
        for entry in self._cause_lists:
            if str(entry.get("court", "")).lower() in wanted and parse_date(entry.get("date")) == on_date:
                return httpx.Response(200, json=entry)
        return httpx.Response(200, json={"court": court, "date": on_date.isoformat(), "items": []})


def _filters_from_params(params: Mapping[str, str]) -> SearchFilters:
    values: dict[str, Any] = {}
    for param, field_name in _FILTER_PARAMS.items():
        raw = params.get(param)
        if not raw:
            continue
        if field_name == "year":
            values[field_name] = int(raw)
        elif field_name.startswith("filing_date"):
            values[field_name] = date.fromisoformat(raw)
        else:
            values[field_name] = raw
    return SearchFilters(**values)


def _error(status_code: int, detail: str) -> httpx.Response:
    return httpx.Response(status_code, json={"detail": detail})
