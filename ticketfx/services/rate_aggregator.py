"""
Rate Aggregator.

One normalized quote per resource (forex, ARS), read through the TTL cache,
with ordered provider failover:

    1. fresh cache entry → return it
    2. primary adapter → on success cache and return
    3. secondary adapter → on success cache (same key) and return
    4. both failed → ProviderExhaustionError

Providers are called one after the other, never in parallel, so the worst
case is two provider timeouts.
"""

import re
from collections.abc import Sequence

import httpx

from ticketfx.config import Settings, settings
from ticketfx.errors import ProviderExhaustionError, ValidationError
from ticketfx.logging_config import get_logger
from ticketfx.providers.ars import ARS_PROVIDERS, ArsProvider
from ticketfx.providers.forex import (
    ErApiCrossRateProvider,
    ErApiForexProvider,
    ForexProvider,
)
from ticketfx.schemas.quotes import ArsQuote, ForexQuote
from ticketfx.storage.ttl_cache import TTLCache

logger = get_logger(__name__)

CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")

ARS_CACHE_KEY = "ars"


def normalize_currency_code(value: object) -> str:
    """
    Trim and upper-case a currency code.

    Raises:
        ValidationError: If the result is not three ASCII letters
    """
    code = str(value).strip().upper() if value is not None else ""
    if not CURRENCY_CODE_RE.match(code):
        raise ValidationError(f"Invalid currency code: {value}")
    return code


def forex_cache_key(base: str, symbols: Sequence[str]) -> str:
    return f"forex:{base}:{','.join(sorted(symbols))}"


def build_rate_cache(config: Settings = settings) -> TTLCache:
    """TTL cache with the per-resource TTLs from configuration."""
    return TTLCache(
        ttls={
            "forex": config.forex_cache_ttl_seconds,
            "ars": config.ars_cache_ttl_seconds,
        },
        default_ttl=config.forex_cache_ttl_seconds,
    )


class RateAggregator:
    """
    Failover and caching in front of the provider adapters.

    Example:
        >>> aggregator = RateAggregator.from_settings(build_rate_cache())
        >>> quote = await aggregator.get_forex_quote("PEN", ["USD"])
        >>> quote.rates["USD"]
        Decimal('0.2688')
    """

    def __init__(
        self,
        cache: TTLCache,
        forex_providers: Sequence[ForexProvider],
        ars_providers: Sequence[ArsProvider],
    ):
        """
        Args:
            cache: Process-wide cache owned by the hosting application
            forex_providers: Forex adapters, primary first
            ars_providers: ARS adapters, primary first
        """
        if not forex_providers or not ars_providers:
            raise ValueError("At least one forex and one ARS provider are required")
        self.cache = cache
        self.forex_providers = list(forex_providers)
        self.ars_providers = list(ars_providers)

    @classmethod
    def from_settings(
        cls,
        cache: TTLCache,
        client: httpx.AsyncClient | None = None,
        config: Settings = settings,
    ) -> "RateAggregator":
        """Wire the adapters in the order given by configuration."""
        forex_providers = [
            ErApiForexProvider(api_base=config.exchange_api_base, client=client),
            ErApiCrossRateProvider(api_base=config.exchange_api_base, client=client),
        ]
        ars_urls = {"criptoya": config.criptoya_url, "dolarapi": config.dolarapi_url}
        ars_providers = [
            ARS_PROVIDERS[name](url=ars_urls[name], client=client)
            for name in (config.ars_provider, config.ars_fallback_provider)
        ]
        return cls(cache, forex_providers, ars_providers)

    @property
    def provider_names(self) -> dict[str, list[str]]:
        return {
            "forex": [p.name for p in self.forex_providers],
            "ars": [p.name for p in self.ars_providers],
        }

    async def get_forex_quote(self, base: str, symbols: Sequence[str]) -> ForexQuote:
        """
        Rates from ``base`` into every symbol in ``symbols``.

        Raises:
            ValidationError: If a currency code is malformed or symbols is empty
            ProviderExhaustionError: If no provider produced a valid quote
        """
        base = normalize_currency_code(base)
        wanted = list(dict.fromkeys(normalize_currency_code(s) for s in symbols))
        if not wanted:
            raise ValidationError("At least one target symbol is required")

        key = forex_cache_key(base, wanted)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        failures: dict[str, str] = {}
        for provider in self.forex_providers:
            result = await provider.fetch(base, wanted)
            quote = result.quote
            if quote is not None and quote.covers(wanted):
                self._store(key, quote, failures)
                return quote
            failures[provider.name] = str(result.error) if result.error else "Incomplete quote"

        logger.error("forex_providers_exhausted", base=base, symbols=wanted, failures=failures)
        raise ProviderExhaustionError("forex", failures)

    async def get_ars_quote(self) -> ArsQuote:
        """
        Current ARS rates.

        Raises:
            ProviderExhaustionError: If no provider produced a valid quote
        """
        cached = self.cache.get(ARS_CACHE_KEY)
        if cached is not None:
            return cached

        failures: dict[str, str] = {}
        for provider in self.ars_providers:
            result = await provider.fetch()
            if result.quote is not None:
                self._store(ARS_CACHE_KEY, result.quote, failures)
                return result.quote
            failures[provider.name] = str(result.error) if result.error else "No quote"

        logger.error("ars_providers_exhausted", failures=failures)
        raise ProviderExhaustionError("ARS", failures)

    def _store(self, key: str, quote: ForexQuote | ArsQuote, failures: dict[str, str]) -> None:
        self.cache.set(key, quote)
        logger.info(
            "rate_quote_refreshed",
            key=key,
            provider=quote.provider,
            fallback_used=bool(failures),
        )
