"""Premium estimator: deterministic premiums for when a carrier cannot answer.

The estimation pipeline is:

    estimated = base_premium
                × carrier_multiplier
                × age_factor
                × vehicle_age_factor

rounded half-up to a whole currency unit.  :func:`estimate_premium` is pure:
no I/O, no randomness, and the only clock dependency is the year of
``as_of``.  :class:`PremiumEstimator` wraps it into the *fallback* quote
returned in place of a failed live carrier quote.
"""

from __future__ import annotations

import logging
import math
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from pydantic import BaseModel, Field

from matchedcover.carriers.models import CarrierConfig
from matchedcover.quotes.schemas import (
    CoverageDetail,
    CoverageRequest,
    PremiumBreakdown,
    QuoteFees,
    QuoteRequest,
    QuoteResponse,
    RatingFactor,
)

logger = logging.getLogger("matchedcover.quotes.estimator")

BASE_PREMIUM = 800.0

# Age bands
_YOUNG_DRIVER_AGE = 25
_SENIOR_DRIVER_AGE = 65
_YOUNG_DRIVER_FACTOR = 1.5
_SENIOR_DRIVER_FACTOR = 1.2

# Vehicle age bands
_NEW_VEHICLE_AGE = 3
_OLD_VEHICLE_AGE = 10
_NEW_VEHICLE_FACTOR = 1.2
_OLD_VEHICLE_FACTOR = 0.8

# Installment ratios of the annual premium: (semi-annual, quarterly, monthly).
# INSTALLMENT_RATIOS is the carrier-style display split; fallback quotes use
# EVEN_SPLIT_RATIOS so monthly × 12 stays within 12 of annual.
INSTALLMENT_RATIOS = (0.52, 0.27, 0.09)
EVEN_SPLIT_RATIOS = (0.52, 1 / 4, 1 / 12)

POLICY_FEE = 25.0
INSTALLMENT_FEE = 5.0
DOWN_PAYMENT_RATIO = 0.25

FALLBACK_VALIDITY = timedelta(hours=24)
BINDABLE_WINDOW = timedelta(days=30)

FALLBACK_PREFIX = "FALLBACK_"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class PremiumEstimate(BaseModel):
    """Estimated annual premium and the factors that produced it.

    Attributes
    ----------
    base_premium:
        Starting premium before any factor.
    carrier_factor:
        Carrier competitiveness multiplier.
    applicant_age:
        Applicant age in whole calendar years.
    age_factor:
        Age adjustment applied.
    vehicle_age:
        Vehicle age in calendar years, or ``None`` without a vehicle.
    vehicle_factor:
        Vehicle age adjustment applied.
    annual:
        Final annual premium, rounded half-up.
    """

    product_type: str
    base_premium: float = Field(default=BASE_PREMIUM)
    carrier_factor: float = Field(default=1.0)
    applicant_age: int
    age_factor: float = Field(default=1.0)
    vehicle_age: int | None = None
    vehicle_factor: float = Field(default=1.0)
    annual: int


def age_factor(age: int) -> float:
    if age < _YOUNG_DRIVER_AGE:
        return _YOUNG_DRIVER_FACTOR
    if age > _SENIOR_DRIVER_AGE:
        return _SENIOR_DRIVER_FACTOR
    return 1.0


def vehicle_age_factor(vehicle_age: int) -> float:
    if vehicle_age < _NEW_VEHICLE_AGE:
        return _NEW_VEHICLE_FACTOR
    if vehicle_age > _OLD_VEHICLE_AGE:
        return _OLD_VEHICLE_FACTOR
    return 1.0


def estimate_premium(
    carrier: CarrierConfig,
    date_of_birth: date,
    vehicle_year: int | None = None,
    product_type: str = "auto",
    as_of: date | None = None,
) -> PremiumEstimate:
    """Compute the deterministic annual premium for one carrier.

    Parameters
    ----------
    carrier:
        Carrier whose ``premium_multiplier`` is applied.
    date_of_birth:
        Applicant date of birth; age is the difference in calendar years.
    vehicle_year:
        Model year of the vehicle, when one is being insured.
    product_type:
        Product being priced.
    as_of:
        Reference date (defaults to today); only its year is used.

    Returns
    -------
    PremiumEstimate
    """
    current_year = (as_of or date.today()).year
    applicant_age = current_year - date_of_birth.year
    a_factor = age_factor(applicant_age)

    vehicle_age: int | None = None
    v_factor = 1.0
    if vehicle_year is not None:
        vehicle_age = current_year - vehicle_year
        v_factor = vehicle_age_factor(vehicle_age)

    raw = BASE_PREMIUM * carrier.premium_multiplier * a_factor * v_factor
    return PremiumEstimate(
        product_type=product_type,
        base_premium=BASE_PREMIUM,
        carrier_factor=carrier.premium_multiplier,
        applicant_age=applicant_age,
        age_factor=a_factor,
        vehicle_age=vehicle_age,
        vehicle_factor=v_factor,
        annual=round_half_up(raw),
    )


def premium_breakdown(
    annual: float, ratios: tuple[float, float, float] = INSTALLMENT_RATIOS
) -> PremiumBreakdown:
    """Derive installment amounts from the annual figure by fixed ratios."""
    semi_annual, quarterly, monthly = ratios
    return PremiumBreakdown(
        annual=annual,
        semi_annual=round_half_up(annual * semi_annual),
        quarterly=round_half_up(annual * quarterly),
        monthly=round_half_up(annual * monthly),
    )


def is_fallback_quote(quote: QuoteResponse) -> bool:
    return quote.is_fallback or quote.quote_id.startswith(FALLBACK_PREFIX)


# ---------------------------------------------------------------------------
# PremiumEstimator
# ---------------------------------------------------------------------------


class PremiumEstimator:
    """Builds fallback :class:`QuoteResponse` objects from premium estimates.

    Parameters
    ----------
    clock:
        Returns the current UTC datetime; injectable for tests.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def estimate(self, carrier: CarrierConfig, request: QuoteRequest) -> PremiumEstimate:
        now = self._clock()
        return estimate_premium(
            carrier,
            request.applicant.date_of_birth,
            vehicle_year=request.vehicle.year if request.vehicle else None,
            product_type=request.product_type,
            as_of=now.date(),
        )

    def fallback_quote(self, carrier: CarrierConfig, request: QuoteRequest) -> QuoteResponse:
        """Return the estimate that replaces a failed live quote.

        The quote id is prefixed ``FALLBACK_<carrier>_``, validity is 24 hours,
        and no discounts, documents or binding info are attached.
        """
        now = self._clock()
        estimate = self.estimate(carrier, request)
        annual = estimate.annual
        logger.warning(
            "Using fallback estimate for carrier=%s product=%s: annual=%d",
            carrier.carrier_id,
            request.product_type,
            annual,
        )
        return QuoteResponse(
            quote_id=(
                f"{FALLBACK_PREFIX}{carrier.carrier_id}_{int(now.timestamp() * 1000)}"
                f"_{uuid.uuid4().hex[:6]}"
            ),
            carrier_id=carrier.carrier_id,
            carrier_name=carrier.name,
            product_type=request.product_type,
            premium=premium_breakdown(annual, EVEN_SPLIT_RATIOS),
            fees=self._fees(annual),
            coverage=coverage_details(request.coverage),
            discounts=[],
            bindable_until=now + BINDABLE_WINDOW,
            valid_until=now + FALLBACK_VALIDITY,
            rating_factors=rating_factors(carrier, estimate),
            documents=[],
            is_fallback=True,
        )

    @staticmethod
    def _fees(annual: int) -> QuoteFees:
        return QuoteFees(
            policy_fee=POLICY_FEE,
            installment_fee=INSTALLMENT_FEE,
            down_payment=round_half_up(annual * DOWN_PAYMENT_RATIO),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def coverage_details(coverage: CoverageRequest) -> dict[str, CoverageDetail]:
    """Describe the requested auto coverages with nominal category premiums."""
    details: dict[str, CoverageDetail] = {}
    if coverage.liability is not None:
        lia = coverage.liability
        details["liability"] = CoverageDetail(
            limit=f"{lia.bodily_injury_per_person}/{lia.bodily_injury_per_accident}/{lia.property_damage}",
            premium=350,
        )
    if coverage.collision is not None:
        details["collision"] = CoverageDetail(
            limit="Actual Cash Value",
            deductible=coverage.collision.deductible,
            premium=200,
        )
    if coverage.comprehensive is not None:
        details["comprehensive"] = CoverageDetail(
            limit="Actual Cash Value",
            deductible=coverage.comprehensive.deductible,
            premium=150,
        )
    return details


def _impact(factor: float) -> str:
    if factor > 1.0:
        return "negative"
    if factor < 1.0:
        return "positive"
    return "neutral"


def rating_factors(carrier: CarrierConfig, estimate: PremiumEstimate) -> list[RatingFactor]:
    """Explain each factor that went into *estimate*."""
    factors = [
        RatingFactor(
            factor="carrier",
            value=carrier.name,
            impact=_impact(estimate.carrier_factor),
            description=f"Quote provided by {carrier.name} (×{estimate.carrier_factor:.2f})",
        ),
        RatingFactor(
            factor="product_type",
            value=estimate.product_type,
            impact="neutral",
            description=f"Insurance product type: {estimate.product_type}",
        ),
        RatingFactor(
            factor="applicant_age",
            value=estimate.applicant_age,
            impact=_impact(estimate.age_factor),
            description=f"Applicant age adjustment ×{estimate.age_factor:.2f}",
        ),
    ]
    if estimate.vehicle_age is not None:
        factors.append(
            RatingFactor(
                factor="vehicle_age",
                value=estimate.vehicle_age,
                impact=_impact(estimate.vehicle_factor),
                description=f"Vehicle age adjustment ×{estimate.vehicle_factor:.2f}",
            )
        )
    return factors
