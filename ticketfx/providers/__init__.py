"""
Rate provider adapters.

- Forex: open.er-api.com (direct and USD cross-rate)
- ARS: CriptoYa and DolarAPI
"""

from ticketfx.providers.ars import (
    ARS_PROVIDERS,
    ArsProvider,
    CriptoyaProvider,
    DolarApiProvider,
)
from ticketfx.providers.base import ProviderResult, RateProvider
from ticketfx.providers.forex import (
    ErApiCrossRateProvider,
    ErApiForexProvider,
    ForexProvider,
)
from ticketfx.providers.http import FetchResult, fetch_json

__all__ = [
    "ARS_PROVIDERS",
    "ArsProvider",
    "CriptoyaProvider",
    "DolarApiProvider",
    "ErApiCrossRateProvider",
    "ErApiForexProvider",
    "FetchResult",
    "ForexProvider",
    "ProviderResult",
    "RateProvider",
    "fetch_json",
]
