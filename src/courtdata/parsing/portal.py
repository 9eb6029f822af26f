from __future__ import annotations

import logging
import re
from typing import Any, Protocol

from bs4 import BeautifulSoup, Tag

from courtdata.errors import PortalParseError, RecordNormalizationError
from courtdata.normalize import case_from_record
from courtdata.types import CourtCase, PartyRole

logger = logging.getLogger(__name__)

_CNR_TOKEN = re.compile(r"\b[A-Z0-9]{10,20}\b")
_NUMBERED_ENTRY = re.compile(r"(?:^|\s)\d+\)\s*")
_ADVOCATE_MARKER = re.compile(r"\s*Advocate\s*[-:]\s*", re.IGNORECASE)

_LABELS = {
    "cnr number": "cnr",
    "cnr no": "cnr",
    "case type": "caseType",
    "filing date": "filingDate",
    "date of filing": "filingDate",
    "registration number": "caseNumber",
    "registration no": "caseNumber",
    "filing number": "filingNumber",
    "case status": "caseStatus",
    "case stage": "caseStatus",
    "stage of case": "caseStatus",
    "next hearing date": "nextHearingDate",
    "last hearing date": "lastHearingDate",
    "decision date": "lastHearingDate",
    "court number and judge": "judge",
    "court name": "court",
    "court establishment": "court",
    "district": "courtLocation",
}


class PortalParser(Protocol):
    """
    Strategy that turns a saved portal page into case records.

    Implementations must be pure: same HTML in, same cases out, no I/O and no shared state.
    """

    def parse(self, html: str) -> list[CourtCase]:
        ...


class EcourtsPortalParser:
    """
    Minimal parser for eCourts-style case status pages.

    Reads label/value table cells plus the petitioner and respondent tables, then hands the
    collected fields to the regular record normalization.
    """

    def parse(self, html: str) -> list[CourtCase]:
        soup = BeautifulSoup(html, "html.parser")
        record: dict[str, Any] = {}
        for label, value in _label_values(soup):
            key = _LABELS.get(label)
            if key and value and key not in record:
                record[key] = value

        cnr = _extract_cnr(record.get("cnr"))
        if cnr is None:
            logger.debug("No CNR found in portal HTML")
            return []
        record["cnr"] = cnr
        record.setdefault("caseNumber", record.get("filingNumber") or cnr)
        if "court" not in record:
            heading = soup.find(id="chHeading") or soup.find(["h2", "h3"])
            if heading is not None:
                record["court"] = heading.get_text(" ", strip=True)

        parties, advocates = _parties_and_advocates(soup)
        record["parties"] = parties
        record["advocates"] = advocates
        if record.get("judge"):
            record["judges"] = [{"name": _judge_name(record["judge"]), "court": record.get("court")}]

        try:
            return [case_from_record(record)]
        except RecordNormalizationError as exc:
            raise PortalParseError(str(exc)) from exc


def _label_values(soup: BeautifulSoup) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for row in soup.find_all("tr"):
        cells = row.find_all(["td", "th"])
        for index in range(0, len(cells) - 1, 2):
            label = _clean_label(cells[index].get_text(" ", strip=True))
            value = cells[index + 1].get_text(" ", strip=True)
            if label:
                pairs.append((label, value))
    return pairs


def _clean_label(text: str) -> str:
    return re.sub(r"\s+", " ", text.replace(":", "")).strip().lower()


def _extract_cnr(value: Any) -> str | None:
    if not value:
        return None
    match = _CNR_TOKEN.search(str(value).upper())
    return match.group(0) if match else None


def _judge_name(value: str) -> str:
    # "3-Principal District Judge" -> "Principal District Judge"
    return re.sub(r"^\s*\d+\s*-\s*", "", value).strip()


def _parties_and_advocates(soup: BeautifulSoup) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    parties: list[dict[str, Any]] = []
    advocates: list[dict[str, Any]] = []
    for marker, role in (("petitioner", PartyRole.PETITIONER), ("respondent", PartyRole.RESPONDENT)):
        table = soup.find(class_=lambda classes: _has_marker(classes, marker))
        if not isinstance(table, Tag):
            continue
        text = table.get_text(" ", strip=True)
        for entry in _NUMBERED_ENTRY.split(text):
            entry = entry.strip()
            if not entry:
                continue
            name, *rest = _ADVOCATE_MARKER.split(entry, maxsplit=1)
            parties.append({"name": name.strip(), "type": role.value})
            if rest and rest[0].strip():
                advocates.append({"name": rest[0].strip()})
    return parties, advocates


def _has_marker(classes: Any, marker: str) -> bool:
    if not classes:
        return False
    if isinstance(classes, str):
        classes = classes.split()
    return any(marker in name.lower() for name in classes)
