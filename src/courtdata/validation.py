from __future__ import annotations

import re
from dataclasses import dataclass

_CNR_PATTERN = re.compile(r"^[A-Z0-9]{10,20}$", re.IGNORECASE)
# eCourts CNR: state(2) district(2) establishment(2) serial(6) year(4), e.g. MHPU010012342023
_ECOURTS_CNR = re.compile(r"^([A-Z]{2})([A-Z0-9]{2})(\d{2})(\d{6})(\d{4})$")


@dataclass(slots=True, frozen=True)
class CnrParts:
    state_code: str
    district_code: str
    establishment_code: str
    serial: int
    year: int


def is_valid_cnr(cnr: object) -> bool:
    """
    Return True when ``cnr`` is a well-formed CNR.

    Every provider calls this before any network I/O so malformed input is rejected with
    ``INVALID_CNR`` without a round trip. Whitespace is not stripped here.
    """

    if not isinstance(cnr, str):
        return False
    return _CNR_PATTERN.fullmatch(cnr) is not None


def normalize_cnr(cnr: str) -> str:
    """Canonical key for a CNR (CNRs compare case-insensitively)."""

    return cnr.strip().upper()


def parse_cnr(cnr: str) -> CnrParts | None:
    """Split a 16-character eCourts CNR into its components, or return None."""

    match = _ECOURTS_CNR.fullmatch(normalize_cnr(cnr))
    if match is None:
        return None
    state, district, establishment, serial, year = match.groups()
    return CnrParts(
        state_code=state,
        district_code=district,
        establishment_code=establishment,
        serial=int(serial),
        year=int(year),
    )


def provisional_case_number(cnr: str) -> str:
    """
    Best-effort case number for a CNR whose record has not been fetched yet.

    Hand-off screens need something human-readable before the real record is known; eCourts
    CNRs embed the filing serial and year, anything else falls back to the CNR itself.
    """

    parts = parse_cnr(cnr)
    if parts is None:
        return normalize_cnr(cnr)
    return f"{parts.serial}/{parts.year}"


def normalize_api_key(api_key: str | None) -> str:
    """
    Normalize user-provided API keys.

    Keys are often pasted together with their scheme ("Token abc", "Bearer abc"). The header
    builder adds the scheme itself, so strip it here to avoid sending "Token Token abc".
    """

    if not api_key:
        return ""
    stripped = api_key.strip()
    if not stripped:
        return ""
    scheme, _, rest = stripped.partition(" ")
    if scheme.lower() in ("token", "bearer") and rest.strip():
        stripped = rest.strip()
    return stripped
