from __future__ import annotations

from courtdata.providers.http import HttpCourtProvider
from courtdata.types import ProviderCapabilities


class ThirdPartyProvider(HttpCourtProvider):
    """
    Commercial case-data aggregator.

    Same operations as the district/high court portal, but every request is authenticated and
    the aggregator publishes its own limits and court coverage. Its records use the flat
    snake_case shape (``cino``, ``case_no``, ``pet_name``...), handled by normalization.
    """

    name = "Third Party Provider"
    provider_type = "THIRD_PARTY"
    requires_api_key = True
    default_court = "DISTRICT COURT"
    capabilities = ProviderCapabilities(
        supports_cnr_lookup=True,
        supports_case_search=True,
        supports_cause_list=True,
        supports_order_listing=True,
        supports_pdf_download=True,
        supports_real_time_sync=True,
        max_concurrent_requests=15,
        rate_limit_per_minute=100,
        supported_courts=("COMMERCIAL COURT", "CONSUMER FORUM", "FAMILY COURT", "LABOUR COURT", "DISTRICT COURT"),
        supported_case_types=("CIVIL", "CRIMINAL", "COMMERCIAL", "FAMILY", "LABOUR", "CONSUMER"),
    )
