"""
Exception hierarchy for ticketfx.

Provider errors are mostly passed around as values (see
``ticketfx.providers.http.FetchResult``); only the aggregator raises
``ProviderExhaustionError``. Timeouts are subclasses so callers can offer a
retry without string matching.
"""

from typing import Any


class TicketFXError(Exception):
    """Base exception for all ticketfx errors."""

    pass


# ─────────────────────────────────────────────────────────────────────────────
# Rate providers
# ─────────────────────────────────────────────────────────────────────────────


class ProviderError(TicketFXError):
    """Base exception for rate provider failures."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderFetchError(ProviderError):
    """Network failure or non-2xx response from a provider."""

    def __init__(self, provider: str, message: str, status: int = 0):
        self.status = status
        super().__init__(provider, message)


class ProviderTimeoutError(ProviderFetchError):
    """Provider did not answer within the configured timeout."""

    pass


class ProviderSchemaError(ProviderError):
    """Provider answered with malformed JSON or missing required fields."""

    pass


class ProviderExhaustionError(TicketFXError):
    """Both the primary and the fallback provider failed."""

    def __init__(self, resource: str, failures: dict[str, str]):
        self.resource = resource
        self.failures = failures
        detail = "; ".join(f"{name}: {reason}" for name, reason in failures.items())
        super().__init__(
            f"Unable to fetch {resource} rates from any provider"
            + (f" ({detail})" if detail else "")
        )


# ─────────────────────────────────────────────────────────────────────────────
# Input validation
# ─────────────────────────────────────────────────────────────────────────────


class ValidationError(TicketFXError):
    """Invalid amount, currency code or rate value."""

    pass


# ─────────────────────────────────────────────────────────────────────────────
# Tool orchestration
# ─────────────────────────────────────────────────────────────────────────────


class ToolExecutionError(TicketFXError):
    """A tool handler failed or received unusable arguments."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


class UnknownToolError(ToolExecutionError):
    """The model requested a tool that is not in the dispatch table."""

    def __init__(self, tool_name: str):
        super().__init__(tool_name, f"Unknown tool: {tool_name}")


class UpstreamModelError(TicketFXError):
    """The language model endpoint failed."""

    def __init__(
        self,
        message: str,
        status_code: int = 502,
        body: Any | None = None,
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class UpstreamModelTimeoutError(UpstreamModelError):
    """The language model endpoint did not answer in time."""

    def __init__(self, message: str, timeout: float):
        self.timeout = timeout
        super().__init__(message, status_code=504)


class ScanParseError(UpstreamModelError):
    """The model's final answer is not valid ticket-analysis JSON."""

    def __init__(self, message: str):
        super().__init__(message, status_code=502)
