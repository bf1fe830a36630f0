"""
Base class for rate provider adapters.

An adapter fetches one vendor endpoint and normalizes its payload into a
canonical quote. Failures come back as values: ``fetch`` returns a
``ProviderResult`` with either ``quote`` or ``error`` set, and
``fetch_quote`` collapses that to ``quote | None``. No exception escapes an
adapter.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx

from ticketfx.config import settings
from ticketfx.errors import ProviderError, ProviderSchemaError
from ticketfx.logging_config import get_logger
from ticketfx.providers.http import fetch_json

logger = get_logger(__name__)

Q = TypeVar("Q")


@dataclass
class ProviderResult(Generic[Q]):
    """Outcome of one adapter call."""

    provider: str
    quote: Q | None = None
    error: ProviderError | None = None

    @property
    def ok(self) -> bool:
        return self.quote is not None


class RateProvider(Generic[Q]):
    """Common fetch → normalize pipeline shared by all adapters."""

    name: str = "unknown"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.client = client
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds

    async def _fetch(
        self,
        url: str,
        normalize: Callable[[Any], "Q | ProviderSchemaError"],
    ) -> ProviderResult[Q]:
        fetched = await fetch_json(
            url, provider=self.name, timeout=self.timeout, client=self.client
        )
        if fetched.error is not None:
            return self._failed(fetched.error, url=url)

        try:
            outcome = normalize(fetched.data)
        except Exception as e:
            # Payload shapes nobody anticipated still must not escape
            logger.error(
                "provider_normalize_crashed",
                provider=self.name,
                error=str(e),
                exc_info=True,
            )
            outcome = ProviderSchemaError(self.name, f"Unexpected payload: {e}")

        if isinstance(outcome, ProviderSchemaError):
            return self._failed(outcome, url=url)

        logger.info("provider_fetch_succeeded", provider=self.name)
        return ProviderResult(provider=self.name, quote=outcome)

    def _failed(self, error: ProviderError, **context: Any) -> ProviderResult[Q]:
        logger.warning(
            "provider_fetch_failed",
            provider=self.name,
            error=str(error),
            error_type=type(error).__name__,
            **context,
        )
        return ProviderResult(provider=self.name, error=error)

    def schema_error(self, message: str) -> ProviderSchemaError:
        return ProviderSchemaError(self.name, message)
