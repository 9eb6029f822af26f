from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import date
from enum import Enum
from typing import Any, Generic, TypeVar

from courtdata.errors import ErrorCode

T = TypeVar("T")


class CaseStatus(str, Enum):
    PENDING = "PENDING"
    HEARD = "HEARD"
    ADJOURNED = "ADJOURNED"
    TRANSFERRED = "TRANSFERRED"
    DISPOSED = "DISPOSED"
    DISMISSED = "DISMISSED"
    WITHDRAWN = "WITHDRAWN"
    UNKNOWN = "UNKNOWN"

    @property
    def is_terminal(self) -> bool:
        return self in (CaseStatus.DISPOSED, CaseStatus.DISMISSED, CaseStatus.WITHDRAWN)


class PartyRole(str, Enum):
    PLAINTIFF = "PLAINTIFF"
    DEFENDANT = "DEFENDANT"
    PETITIONER = "PETITIONER"
    RESPONDENT = "RESPONDENT"
    APPELLANT = "APPELLANT"
    RESPONDENT_APPEAL = "RESPONDENT_APPEAL"


class SyncStatus(str, Enum):
    NOT_SYNCED = "not_synced"
    ACTION_REQUIRED = "action_required"
    MANUAL_REQUIRED = "manual_required"
    SYNCED = "synced"


class Bench(str, Enum):
    BENGALURU = "bengaluru"
    DHARWAD = "dharwad"
    KALABURAGI = "kalaburagi"

    @property
    def location(self) -> str:
        return self.value.capitalize()

    @property
    def court_label(self) -> str:
        return f"KARNATAKA HIGH COURT - {self.value.upper()}"


@dataclass(slots=True)
class Party:
    name: str
    role: PartyRole
    address: str | None = None
    phone: str | None = None
    email: str | None = None


@dataclass(slots=True)
class Advocate:
    name: str
    bar_number: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None


@dataclass(slots=True)
class Judge:
    name: str
    designation: str | None = None
    court: str | None = None


@dataclass(slots=True)
class CaseDetails:
    subject_matter: str | None = None
    case_description: str | None = None
    relief_sought: str | None = None
    case_value: float | None = None
    jurisdiction: str | None = None


@dataclass(slots=True)
class CourtCase:
    cnr: str
    case_number: str
    title: str
    court: str
    court_location: str
    case_type: str
    case_status: CaseStatus
    filing_date: date
    last_hearing_date: date | None = None
    next_hearing_date: date | None = None
    parties: list[Party] = field(default_factory=list)
    advocates: list[Advocate] = field(default_factory=list)
    judges: list[Judge] = field(default_factory=list)
    case_details: CaseDetails | None = None


@dataclass(slots=True)
class SearchFilters:
    """Optional search criteria. An instance with nothing set matches broadly."""

    case_number: str | None = None
    year: int | None = None
    state: str | None = None
    district: str | None = None
    court: str | None = None
    bench: str | None = None
    party_name: str | None = None
    advocate_name: str | None = None
    filing_date_from: date | None = None
    filing_date_to: date | None = None
    case_type: str | None = None
    case_status: str | None = None
    page_token: str | None = None

    def is_empty(self) -> bool:
        return not self.to_query()

    def to_query(self) -> dict[str, str]:
        query: dict[str, str] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None or value == "":
                continue
            key = _camel(item.name)
            query[key] = value.isoformat() if isinstance(value, date) else str(value)
        return query


@dataclass(slots=True)
class SearchResult:
    cases: list[CourtCase]
    total_count: int
    has_more: bool = False
    next_page_token: str | None = None


@dataclass(slots=True, frozen=True)
class Order:
    id: str
    case_id: str
    cnr: str
    order_date: date
    order_type: str
    order_text: str
    judge: Judge | None = None
    order_number: str | None = None
    pdf_url: str | None = None
    is_downloadable: bool = False


@dataclass(slots=True)
class CauseListItem:
    item_number: int
    case_number: str
    cnr: str | None
    title: str
    parties: list[str] = field(default_factory=list)
    advocates: list[str] = field(default_factory=list)
    hearing_time: str | None = None
    purpose: str | None = None
    judge: Judge | None = None


@dataclass(slots=True)
class CauseList:
    id: str
    court: str
    date: date
    items: list[CauseListItem] = field(default_factory=list)


_OPERATION_FLAGS = {
    "get_case_by_cnr": "supports_cnr_lookup",
    "search_case": "supports_case_search",
    "get_cause_list": "supports_cause_list",
    "list_orders": "supports_order_listing",
    "download_order_pdf": "supports_pdf_download",
}


@dataclass(slots=True, frozen=True)
class ProviderCapabilities:
    """Advertised provider features. Nothing here is enforced by the provider itself."""

    supports_cnr_lookup: bool
    supports_case_search: bool
    supports_cause_list: bool
    supports_order_listing: bool
    supports_pdf_download: bool
    supports_real_time_sync: bool
    max_concurrent_requests: int
    rate_limit_per_minute: int
    supported_courts: tuple[str, ...]
    supported_case_types: tuple[str, ...]

    def supports(self, operation: str) -> bool:
        flag = _OPERATION_FLAGS.get(operation)
        if flag is None:
            raise KeyError(f"Unknown provider operation: {operation}")
        return bool(getattr(self, flag))


@dataclass(slots=True, frozen=True)
class ProviderConfig:
    api_endpoint: str | None = None
    api_key: str | None = None
    court_code: str | None = None
    bench_code: str | None = None
    portal_url: str | None = None
    timeout: float | None = None
    retry_attempts: int | None = None
    backoff_seconds: float | None = None
    max_backoff_seconds: float | None = None
    user_agent: str | None = None

    def merged(self, override: ProviderConfig | None) -> ProviderConfig:
        """Return a copy where every field set on ``override`` wins."""

        if override is None:
            return self
        changes = {
            item.name: getattr(override, item.name)
            for item in fields(override)
            if getattr(override, item.name) is not None
        }
        return replace(self, **changes)


@dataclass(slots=True, frozen=True)
class ManualFetchModalData:
    """Everything a presentation layer needs to ask a human to finish a lookup."""

    case_number: str
    cnr: str
    portal_url: str
    message: str
    sync_status: SyncStatus


@dataclass(slots=True, frozen=True)
class CaptchaChallenge:
    captcha_url: str
    session_id: str
    message: str


@dataclass(slots=True)
class ProviderResult(Generic[T]):
    success: bool
    provider: str
    response_time: float
    data: T | None = None
    error: ErrorCode | None = None
    message: str | None = None
    handoff: ManualFetchModalData | CaptchaChallenge | None = None

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable

    @property
    def requires_handoff(self) -> bool:
        return self.error is not None and self.error.requires_handoff


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_jsonable(value: Any) -> Any:
    """Recursively coerce DTOs into JSON-safe primitives (camelCase keys)."""

    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "__dataclass_fields__"):
        return {_camel(item.name): to_jsonable(getattr(value, item.name)) for item in fields(value)}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return f"<{len(value)} bytes>"
    return value
