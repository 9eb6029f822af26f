from .base import CourtProvider
from .district import DistrictHighCourtProvider
from .factory import CourtProviderFactory, ProviderType, resolve_provider_type
from .http import HttpCourtProvider
from .judgments import JudgmentsProvider
from .karnataka import KarnatakaHighCourtProvider
from .manual import ManualImportProvider
from .third_party import ThirdPartyProvider

__all__ = [
    "CourtProvider",
    "CourtProviderFactory",
    "DistrictHighCourtProvider",
    "HttpCourtProvider",
    "JudgmentsProvider",
    "KarnatakaHighCourtProvider",
    "ManualImportProvider",
    "ProviderType",
    "ThirdPartyProvider",
    "resolve_provider_type",
]
