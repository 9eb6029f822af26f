from __future__ import annotations

from enum import Enum
from typing import Any

from courtdata.errors import ProviderConfigError
from courtdata.providers.base import CourtProvider
from courtdata.providers.district import DistrictHighCourtProvider
from courtdata.providers.judgments import JudgmentsProvider
from courtdata.providers.karnataka import KarnatakaHighCourtProvider
from courtdata.providers.manual import ManualImportProvider
from courtdata.providers.third_party import ThirdPartyProvider
from courtdata.types import ProviderConfig


class ProviderType(str, Enum):
    DISTRICT_HIGH_COURT = "DISTRICT_HIGH_COURT"
    JUDGMENTS = "JUDGMENTS"
    THIRD_PARTY = "THIRD_PARTY"
    KARNATAKA_HIGH_COURT = "KARNATAKA_HIGH_COURT"
    MANUAL_IMPORT = "MANUAL_IMPORT"


_REGISTRY: dict[ProviderType, type] = {
    ProviderType.DISTRICT_HIGH_COURT: DistrictHighCourtProvider,
    ProviderType.JUDGMENTS: JudgmentsProvider,
    ProviderType.THIRD_PARTY: ThirdPartyProvider,
    ProviderType.KARNATAKA_HIGH_COURT: KarnatakaHighCourtProvider,
    ProviderType.MANUAL_IMPORT: ManualImportProvider,
}

if set(_REGISTRY) != set(ProviderType):
    raise RuntimeError("every ProviderType needs a provider class")


def resolve_provider_type(value: ProviderType | str) -> ProviderType:
    if isinstance(value, ProviderType):
        return value
    try:
        return ProviderType(str(value).strip().upper())
    except ValueError:
        known = ", ".join(member.value for member in ProviderType)
        raise ProviderConfigError(f"Unknown provider type {value!r}; expected one of {known}") from None


class CourtProviderFactory:
    """Creates providers by type token."""

    @staticmethod
    def create_provider(
        provider_type: ProviderType | str,
        config: ProviderConfig | None = None,
        **options: Any,
    ) -> CourtProvider:
        """
        Instantiate the provider registered for ``provider_type``.

        ``options`` are passed to the provider constructor (``transport``, ``clock``,
        ``captcha_threshold``, ``fetcher`` and so on). Raises ``ProviderConfigError`` for unknown
        types.
        """

        provider_class = _REGISTRY[resolve_provider_type(provider_type)]
        return provider_class(config, **options)

    @staticmethod
    def get_available_providers() -> list[str]:
        return [provider_type.value for provider_type in _REGISTRY]
