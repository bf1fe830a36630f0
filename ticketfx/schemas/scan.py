"""
Pydantic schemas for receipt (ticket) analysis.
Validates the JSON answer produced by the language model at the end of the
tool loop.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TicketItem(BaseModel):
    """A single line item read from the receipt."""

    name: str = Field(..., min_length=1)
    quantity: float = Field(default=1.0)
    unit_price: float
    subtotal: float


class ConvertedTotals(BaseModel):
    """The receipt total converted through the USD bridge."""

    model_config = ConfigDict(populate_by_name=True)

    usd: float | None = Field(default=None, alias="USD")
    ars_tarjeta: float | None = Field(default=None, alias="ARS_tarjeta")
    ars_cripto: float | None = Field(default=None, alias="ARS_cripto")


class ScanProviders(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    forex: str | None = None
    ars: str | None = None
    updated_at: str | None = Field(default=None, alias="updatedAt")


class TicketAnalysis(BaseModel):
    """
    Structured answer for the ``ticket_analysis`` response schema.

    Mirrors the JSON schema sent to the model in
    ``ticketfx.tools.definitions.TICKET_ANALYSIS_SCHEMA``.
    """

    model_config = ConfigDict(populate_by_name=True)

    currency_detected: str = Field(..., min_length=3, max_length=3)
    confidence: float = Field(..., ge=0.0, le=1.0)
    cues: list[str] = Field(default_factory=list)
    needs_confirmation: bool = False
    currency: str = Field(..., min_length=3, max_length=3)
    items: list[TicketItem] = Field(default_factory=list)
    total: float = Field(..., ge=0)
    converted: ConvertedTotals = Field(default_factory=ConvertedTotals)
    providers: ScanProviders | None = None

    @field_validator("currency_detected", "currency")
    @classmethod
    def currency_uppercase(cls, v: str) -> str:
        """Ensure currency code is uppercase."""
        return v.strip().upper()


class ScanResult(TicketAnalysis):
    """Ticket analysis after guardrails, plus run metadata."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    estimated_cost: float | None = Field(default=None, alias="estimatedCost")
    model: str | None = None

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
