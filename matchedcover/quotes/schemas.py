"""Quote, bind and claim schemas.

These models are the typed payload for each carrier endpoint:

- ``quote`` — :class:`QuoteRequest` in, :class:`QuoteResponse` out
- ``bind``  — :class:`PolicyBindRequest` in, :class:`PolicyBindResponse` out
- ``claim`` — :class:`ClaimRequest` in, :class:`ClaimResponse` out

Carrier responses are validated against the model for their endpoint before
they reach business logic, so a malformed body surfaces as a validation error
rather than as a half-populated quote.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Literal

from pydantic import Field, field_validator, model_validator

from matchedcover.carriers.models import ProductType, WireModel

Endpoint = Literal["quote", "bind", "claim"]

# Products that accept a vehicle / a property description
VEHICLE_PRODUCTS: frozenset[str] = frozenset({"auto", "commercial"})
PROPERTY_PRODUCTS: frozenset[str] = frozenset({"home", "renters", "commercial"})

# monthly × 12 may differ from annual by one unit of rounding per month
MONTHLY_ROUNDING_TOLERANCE = 12.0


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Applicant and risk
# ---------------------------------------------------------------------------


class Address(WireModel):
    street: str
    city: str
    state: str = Field(..., min_length=2, max_length=2)
    zip_code: str
    county: str | None = None

    @field_validator("state")
    @classmethod
    def _upper_state(cls, value: str) -> str:
        return value.upper()


class PriorInsuranceInfo(WireModel):
    carrier: str
    policy_number: str | None = None
    expiration_date: date
    years_with_carrier: int = Field(default=0, ge=0)
    lapse_in_coverage: bool = False
    claims_last5_years: int = Field(default=0, ge=0)


class ApplicantInfo(WireModel):
    """The person applying for coverage (or, on a claim, the claimant)."""

    first_name: str
    last_name: str
    date_of_birth: date
    gender: Literal["M", "F", "X"] | None = None
    marital_status: Literal["single", "married", "divorced", "widowed"] | None = None
    address: Address
    phone: str = ""
    email: str = ""
    ssn: str | None = Field(default=None, repr=False)
    license_number: str | None = None
    license_state: str | None = None
    credit_score: int | None = Field(default=None, ge=300, le=850)
    prior_insurance: PriorInsuranceInfo | None = None


class VehicleInfo(WireModel):
    year: int = Field(..., ge=1900, le=2100)
    make: str
    model: str
    trim: str | None = None
    vin: str = ""
    usage: Literal["pleasure", "commute", "business"] = "commute"
    annual_mileage: int = Field(default=12000, ge=0)
    garaging_address: Address | None = None
    financing: Literal["owned", "financed", "leased"] = "owned"
    lienholder: str | None = None


class PropertyInfo(WireModel):
    property_type: Literal["single_family", "condo", "townhouse", "mobile_home"]
    dwelling_type: Literal["primary", "secondary", "rental"] = "primary"
    year_built: int = Field(..., ge=1600, le=2100)
    square_footage: int = Field(..., gt=0)
    stories: int = Field(default=1, ge=1)
    roof_type: str = ""
    foundation_type: str = ""
    heating_type: str = ""
    has_pool: bool = False
    has_fireplace: bool = False
    security_system: bool = False
    protection_class: int = Field(default=5, ge=1, le=10)
    distance_to_fire_station: float = Field(default=0.0, ge=0.0)
    distance_to_hydrant: float = Field(default=0.0, ge=0.0)


# ---------------------------------------------------------------------------
# Coverage request
# ---------------------------------------------------------------------------


class LiabilityRequest(WireModel):
    bodily_injury_per_person: int
    bodily_injury_per_accident: int
    property_damage: int


class DeductibleRequest(WireModel):
    deductible: int


class Beneficiary(WireModel):
    name: str
    relationship: str
    percentage: float = Field(..., gt=0.0, le=100.0)
    ssn: str | None = Field(default=None, repr=False)
    date_of_birth: date | None = None


class CoverageRequest(WireModel):
    """Desired coverage; only the fields relevant to the product are used."""

    # auto
    liability: LiabilityRequest | None = None
    collision: DeductibleRequest | None = None
    comprehensive: DeductibleRequest | None = None
    uninsured_motorist: bool | None = None
    underinsured_motorist: bool | None = None
    medical_payments: int | None = None
    pip: int | None = None
    # home / renters
    dwelling: int | None = None
    personal_property: int | None = None
    liability_home: int | None = None
    medical_payments_home: int | None = None
    # life
    face_amount: int | None = None
    beneficiaries: list[Beneficiary] | None = None


class QuoteRequest(WireModel):
    """Product-agnostic quote request submitted by a caller.

    Exactly one of ``vehicle`` / ``property`` is meaningful for a product;
    supplying the one that does not apply is rejected.
    """

    customer_id: str
    product_type: ProductType
    applicant: ApplicantInfo
    vehicle: VehicleInfo | None = None
    property: PropertyInfo | None = None
    coverage: CoverageRequest = Field(default_factory=CoverageRequest)
    effective_date: date
    quote_id: str | None = None

    @model_validator(mode="after")
    def _check_risk_object(self) -> "QuoteRequest":
        if self.vehicle is not None and self.property is not None:
            raise ValueError("a quote request carries either a vehicle or a property, not both")
        if self.vehicle is not None and self.product_type not in VEHICLE_PRODUCTS:
            raise ValueError(f"vehicle is not applicable to product type {self.product_type!r}")
        if self.property is not None and self.product_type not in PROPERTY_PRODUCTS:
            raise ValueError(f"property is not applicable to product type {self.product_type!r}")
        return self


# ---------------------------------------------------------------------------
# Quote response
# ---------------------------------------------------------------------------


class PremiumBreakdown(WireModel):
    annual: float = Field(..., ge=0.0)
    semi_annual: float = Field(..., ge=0.0)
    quarterly: float = Field(..., ge=0.0)
    monthly: float = Field(..., ge=0.0)

    def installments_consistent(self) -> bool:
        """Whether twelve monthly payments land within one unit per month of annual."""
        return abs(self.monthly * 12 - self.annual) <= MONTHLY_ROUNDING_TOLERANCE


class QuoteFees(WireModel):
    policy_fee: float = 0.0
    installment_fee: float = 0.0
    down_payment: float = 0.0


class CoverageDetail(WireModel):
    limit: str | int | float
    deductible: float | None = None
    premium: float = 0.0


class AppliedDiscount(WireModel):
    code: str
    name: str
    description: str = ""
    amount: float
    percentage: float | None = None


class RatingFactor(WireModel):
    factor: str
    value: str | int | float
    impact: Literal["positive", "negative", "neutral"] = "neutral"
    description: str = ""


class QuoteDocument(WireModel):
    type: Literal["quote_summary", "coverage_details", "terms_conditions"]
    name: str
    url: str
    format: Literal["pdf", "html"] = "pdf"


class PaymentMethod(WireModel):
    type: Literal["credit_card", "debit_card", "ach", "check"]
    fees: float = 0.0
    processing_time: str = ""


class BindingInfo(WireModel):
    minimum_down_payment: float
    available_payment_methods: list[PaymentMethod] = Field(default_factory=list)
    required_documents: list[str] = Field(default_factory=list)
    binding_deadline: datetime
    policy_number: str | None = None


class QuoteResponse(WireModel):
    """One carrier's answer to a quote request.

    ``is_fallback`` is ``True`` when the quote was synthesized by the premium
    estimator because the carrier could not be reached; such quotes must be
    presented to end users as estimates.
    """

    quote_id: str
    carrier_id: str
    carrier_name: str
    product_type: ProductType
    premium: PremiumBreakdown
    fees: QuoteFees = Field(default_factory=QuoteFees)
    coverage: dict[str, CoverageDetail] = Field(default_factory=dict)
    discounts: list[AppliedDiscount] = Field(default_factory=list)
    bindable_until: datetime
    valid_until: datetime
    rating_factors: list[RatingFactor] = Field(default_factory=list)
    documents: list[QuoteDocument] = Field(default_factory=list)
    binding_info: BindingInfo | None = None
    is_fallback: bool = False

    @field_validator("bindable_until", "valid_until")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_window(self) -> "QuoteResponse":
        if self.valid_until > self.bindable_until:
            raise ValueError("validUntil must not be later than bindableUntil")
        return self


# ---------------------------------------------------------------------------
# Binding
# ---------------------------------------------------------------------------


class CreditCardInfo(WireModel):
    number: str = Field(..., repr=False)
    expiration_month: int = Field(..., ge=1, le=12)
    expiration_year: int
    cvv: str = Field(..., repr=False)
    billing_address: Address


class BankAccountInfo(WireModel):
    routing_number: str
    account_number: str = Field(..., repr=False)
    account_type: Literal["checking", "savings"]


class PaymentInfo(WireModel):
    method: Literal["credit_card", "debit_card", "ach", "check"]
    amount: float = Field(..., ge=0.0)
    credit_card: CreditCardInfo | None = None
    bank_account: BankAccountInfo | None = None


class SignedDocument(WireModel):
    document_id: str
    signature: str
    timestamp: datetime
    ip_address: str


class PolicyBindRequest(WireModel):
    quote_id: str
    payment_info: PaymentInfo
    signed_documents: list[SignedDocument] = Field(default_factory=list)
    agent_license: str | None = None
    effective_date: date


class PolicyDocument(WireModel):
    type: Literal["policy", "declarations", "id_cards", "billing"]
    name: str
    url: str
    format: Literal["pdf"] = "pdf"


class BindError(WireModel):
    code: str
    message: str
    details: list[str] = Field(default_factory=list)


class PolicyBindResponse(WireModel):
    """Carrier answer to a bind request.

    A successful bind carries the policy and confirmation numbers; a declined
    bind carries a structured ``error``.
    """

    success: bool
    policy_number: str | None = None
    effective_date: str | None = None
    confirmation_number: str | None = None
    documents: list[PolicyDocument] = Field(default_factory=list)
    error: BindError | None = None

    @model_validator(mode="after")
    def _check_outcome(self) -> "PolicyBindResponse":
        if self.success and not self.policy_number:
            raise ValueError("a successful bind must carry a policyNumber")
        if not self.success and self.error is None:
            raise ValueError("an unsuccessful bind must carry an error")
        return self


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


class ClaimRequest(WireModel):
    policy_number: str
    claim_type: str
    date_of_loss: date
    description: str
    claimant: ApplicantInfo


class ClaimResponse(WireModel):
    claim_number: str
    status: str
    estimated_settlement: float | None = None

