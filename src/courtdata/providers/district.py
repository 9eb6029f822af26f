from __future__ import annotations

from courtdata.providers.http import HttpCourtProvider
from courtdata.types import ProviderCapabilities


class DistrictHighCourtProvider(HttpCourtProvider):
    """Real-time district and high court portal API. Supports every operation."""

    name = "District High Court Provider"
    provider_type = "DISTRICT_HIGH_COURT"
    default_court = "DISTRICT COURT"
    capabilities = ProviderCapabilities(
        supports_cnr_lookup=True,
        supports_case_search=True,
        supports_cause_list=True,
        supports_order_listing=True,
        supports_pdf_download=True,
        supports_real_time_sync=True,
        max_concurrent_requests=10,
        rate_limit_per_minute=60,
        supported_courts=(
            "DISTRICT COURT",
            "HIGH COURT",
            "SESSIONS COURT",
            "FAMILY COURT",
            "MAGISTRATE COURT",
            "COMMERCIAL COURT",
            "CONSUMER FORUM",
            "LABOUR COURT",
        ),
        supported_case_types=("CIVIL", "CRIMINAL", "WRIT", "APPEAL"),
    )
