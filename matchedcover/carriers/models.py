"""Carrier descriptors — identity, capabilities and API connection settings.

These models are constructed once at service start and never mutated; they
are frozen so that a registry handed to many concurrent quote calls cannot be
altered by any of them.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ProductType = Literal["auto", "home", "life", "commercial", "renters", "umbrella"]
Environment = Literal["sandbox", "production"]


class WireModel(BaseModel):
    """Base for every model that crosses a carrier or API boundary.

    Field names are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenWireModel(WireModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# ---------------------------------------------------------------------------
# Coverage minimums
# ---------------------------------------------------------------------------


class LiabilityMinimum(FrozenWireModel):
    bodily_injury: int
    property_damage: int


class DeductibleOptions(FrozenWireModel):
    deductible: tuple[int, ...] = ()


class CoverageLimits(FrozenWireModel):
    """Minimum coverage limits a carrier accepts for one product."""

    liability: LiabilityMinimum | None = None
    collision: DeductibleOptions | None = None
    comprehensive: DeductibleOptions | None = None
    dwelling: int | None = None
    personal_property: int | None = None
    face_amount: int | None = None


# ---------------------------------------------------------------------------
# Carrier descriptors
# ---------------------------------------------------------------------------


class InsuranceProduct(FrozenWireModel):
    """One product a carrier writes, and where.

    Attributes
    ----------
    type:
        Product type (``auto``, ``home``, ...).
    available_states:
        Two-letter state codes the product is written in.
    minimum_limits:
        Minimum coverage limits for the product.
    discounts_available:
        Discount codes the carrier may apply to this product.
    """

    type: ProductType
    available_states: tuple[str, ...]
    minimum_limits: CoverageLimits = Field(default_factory=CoverageLimits)
    discounts_available: tuple[str, ...] = ()


class CarrierConfig(FrozenWireModel):
    """Identity and capability descriptor for one carrier.

    Attributes
    ----------
    carrier_id:
        Stable lowercase identifier (e.g. ``"geico"``).
    name:
        Display name.
    api_endpoint:
        Carrier API base URL.
    api_key:
        Carrier API key; excluded from repr and serialisation.
    environment:
        ``sandbox`` or ``production``.
    supported_products:
        Products the carrier writes.
    rating_factors:
        Names of the rating factors the carrier prices on.
    binding_capabilities:
        Whether quotes can be bound into policies online.
    claims_support:
        Whether claims can be submitted online.
    premium_multiplier:
        Historical competitiveness factor applied by the premium estimator.
    """

    carrier_id: str
    name: str
    api_endpoint: str
    api_key: str = Field(default="", repr=False, exclude=True)
    environment: Environment = "sandbox"
    supported_products: tuple[InsuranceProduct, ...] = ()
    rating_factors: tuple[str, ...] = ()
    binding_capabilities: bool = False
    claims_support: bool = False
    premium_multiplier: float = Field(default=1.0, gt=0.0)

    def offers(self, product_type: str, state: str) -> bool:
        """Return ``True`` if the carrier writes *product_type* in *state*."""
        return any(
            product.type == product_type and state in product.available_states
            for product in self.supported_products
        )

    def product(self, product_type: str) -> InsuranceProduct | None:
        return next(
            (p for p in self.supported_products if p.type == product_type), None
        )


class CarrierApiConfig(FrozenWireModel):
    """Connection parameters for one carrier's API.

    Attributes
    ----------
    api_base_url:
        Base URL; endpoints are appended as ``{base}/{endpoint}``.
    api_key:
        Bearer token sent in ``Authorization``.
    partner_id:
        Value of the ``X-Partner-ID`` header; the platform partner id is used
        when absent.
    timeout:
        Per-call timeout in seconds.
    headers:
        Carrier-specific extra headers.
    min_interval_seconds:
        Minimum spacing between consecutive calls to this carrier
        (``0`` disables throttling).
    """

    api_base_url: str
    api_key: str = Field(default="", repr=False)
    partner_id: str | None = None
    timeout: float = Field(default=30.0, gt=0.0)
    headers: dict[str, str] = Field(default_factory=dict)
    min_interval_seconds: float = Field(default=0.0, ge=0.0)
