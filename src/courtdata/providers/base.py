from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable

from courtdata.types import (
    CauseList,
    CourtCase,
    Order,
    ProviderCapabilities,
    ProviderConfig,
    ProviderResult,
    SearchFilters,
    SearchResult,
)


@runtime_checkable
class CourtProvider(Protocol):
    """Interface every court data source implements."""

    name: str
    provider_type: str

    async def get_case_by_cnr(
        self, cnr: str, config: ProviderConfig | None = None
    ) -> ProviderResult[CourtCase]:
        """Return case details for a CNR (``INVALID_CNR`` before any I/O when malformed)."""

    async def search_case(
        self, filters: SearchFilters, config: ProviderConfig | None = None
    ) -> ProviderResult[SearchResult]:
        """Return cases matching the filters; empty filters yield the default window."""

    async def get_cause_list(
        self, court: str, on_date: date, config: ProviderConfig | None = None
    ) -> ProviderResult[CauseList]:
        """Return the cause list of a court/bench for one day."""

    async def list_orders(
        self, cnr: str, config: ProviderConfig | None = None
    ) -> ProviderResult[list[Order]]:
        """Return the orders passed in a case."""

    async def download_order_pdf(
        self, order_id: str, config: ProviderConfig | None = None
    ) -> ProviderResult[bytes]:
        """Return the PDF bytes of an order."""

    async def test_connection(self, config: ProviderConfig | None = None) -> ProviderResult[bool]:
        """Check mandatory configuration and reachability."""

    def get_capabilities(self) -> ProviderCapabilities:
        """Advertise supported operations and limits. Pure, no I/O."""
