"""Pydantic schemas for the MatchedCover API responses.

Request bodies reuse the carrier payload models from
:mod:`matchedcover.quotes.schemas`; only the envelopes and summaries below are
specific to the HTTP surface.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from matchedcover.carriers.models import CarrierConfig, Environment, WireModel
from matchedcover.quotes.analysis import QuoteAnalysis
from matchedcover.quotes.schemas import QuoteResponse


class ProductSummary(WireModel):
    type: str
    available_states: list[str] = Field(default_factory=list)
    discounts_available: list[str] = Field(default_factory=list)


class CarrierSummary(WireModel):
    """Public view of one carrier (no credentials or endpoints).

    Attributes
    ----------
    carrier_id:
        Stable carrier identifier used in the other endpoints.
    name:
        Display name.
    environment:
        ``sandbox`` or ``production``.
    products:
        Products written and where.
    rating_factors:
        Factors the carrier prices on.
    binding_capabilities:
        Whether ``/v1/policies/{carrierId}/bind`` is supported.
    claims_support:
        Whether ``/v1/claims/{carrierId}`` is supported.
    """

    carrier_id: str
    name: str
    environment: Environment
    products: list[ProductSummary] = Field(default_factory=list)
    rating_factors: list[str] = Field(default_factory=list)
    binding_capabilities: bool = False
    claims_support: bool = False

    @classmethod
    def from_config(cls, carrier: CarrierConfig) -> "CarrierSummary":
        return cls(
            carrier_id=carrier.carrier_id,
            name=carrier.name,
            environment=carrier.environment,
            products=[
                ProductSummary(
                    type=p.type,
                    available_states=list(p.available_states),
                    discounts_available=list(p.discounts_available),
                )
                for p in carrier.supported_products
            ],
            rating_factors=list(carrier.rating_factors),
            binding_capabilities=carrier.binding_capabilities,
            claims_support=carrier.claims_support,
        )


class CarrierListResponse(WireModel):
    product_type: str
    state: str
    carriers: list[CarrierSummary] = Field(default_factory=list)


class MultiQuoteResponse(WireModel):
    """Response for POST /v1/quotes.

    ``analysis`` is ``None`` when no carrier returned a quote.
    """

    success: bool = True
    request_id: str
    quotes: list[QuoteResponse] = Field(default_factory=list)
    analysis: QuoteAnalysis | None = None
    quote_time_ms: float = 0.0
    timestamp: datetime


class HealthResponse(WireModel):
    """Response for GET /v1/health.

    Attributes
    ----------
    status:
        ``"ok"`` when every carrier is up, otherwise ``"degraded"``.
    version:
        MatchedCover version string.
    environment:
        Carrier environment in use.
    carriers_loaded:
        Number of registered carriers.
    carriers:
        Operational status per carrier id.
    cached_responses:
        Entries currently held by the response cache.
    """

    status: str
    version: str
    environment: str
    carriers_loaded: int = 0
    carriers: dict[str, str] = Field(default_factory=dict)
    cached_responses: int = 0
    timestamp: datetime
