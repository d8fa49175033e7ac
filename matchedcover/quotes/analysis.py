"""Quote analysis — price spread and best-value pick across carrier quotes.

Value scoring weights:

- 0.4 × price score, where price score = max(0, 100 − annual / 100)
- 10 points per coverage category quoted
- 0.1 × total discount amount

Ties on value score keep the earliest quote, so with a premium-sorted input
the cheaper of two equal-value quotes wins.
"""

from __future__ import annotations

import logging

from pydantic import Field

from matchedcover.carriers.models import WireModel
from matchedcover.quotes.estimator import round_half_up
from matchedcover.quotes.schemas import QuoteResponse

logger = logging.getLogger("matchedcover.quotes.analysis")

_W_PRICE = 0.4
_POINTS_PER_COVERAGE = 10.0
_W_DISCOUNT = 0.1

NOT_AVAILABLE = "Not Available"


class PremiumExtreme(WireModel):
    carrier_id: str
    carrier_name: str
    annual_premium: float


class CarrierCoverage(WireModel):
    carrier_id: str
    limit: str | int | float
    premium: float = 0.0


class CoverageComparison(WireModel):
    coverage_type: str
    carriers: list[CarrierCoverage] = Field(default_factory=list)


class QuoteAnalysis(WireModel):
    """Summary of a set of quotes for one request.

    Attributes
    ----------
    lowest_premium / highest_premium:
        Carrier holding the cheapest / most expensive annual premium.
    average_premium:
        Mean annual premium, rounded to a whole unit.
    potential_savings:
        Highest minus lowest annual premium, rounded.
    best_value:
        Quote with the highest value score.
    coverage_comparison:
        For each coverage category seen in any quote, every carrier's limit
        and premium (``"Not Available"`` / ``0`` when not quoted).
    fallback_quotes:
        Number of quotes that are estimates rather than live carrier quotes.
    """

    lowest_premium: PremiumExtreme
    highest_premium: PremiumExtreme
    average_premium: int
    potential_savings: int
    best_value: QuoteResponse
    coverage_comparison: list[CoverageComparison] = Field(default_factory=list)
    fallback_quotes: int = 0


def value_score(quote: QuoteResponse) -> float:
    price_score = max(0.0, 100.0 - quote.premium.annual / 100.0)
    discount_total = sum(d.amount for d in quote.discounts)
    return (
        _W_PRICE * price_score
        + _POINTS_PER_COVERAGE * len(quote.coverage)
        + _W_DISCOUNT * discount_total
    )


def compare_coverage(quotes: list[QuoteResponse]) -> list[CoverageComparison]:
    coverage_types: list[str] = []
    for quote in quotes:
        for coverage_type in quote.coverage:
            if coverage_type not in coverage_types:
                coverage_types.append(coverage_type)

    comparison = []
    for coverage_type in coverage_types:
        carriers = []
        for quote in quotes:
            detail = quote.coverage.get(coverage_type)
            carriers.append(
                CarrierCoverage(
                    carrier_id=quote.carrier_id,
                    limit=detail.limit if detail else NOT_AVAILABLE,
                    premium=detail.premium if detail else 0.0,
                )
            )
        comparison.append(CoverageComparison(coverage_type=coverage_type, carriers=carriers))
    return comparison


def analyze_quotes(quotes: list[QuoteResponse]) -> QuoteAnalysis:
    """Summarise *quotes*.

    Raises
    ------
    ValueError
        *quotes* is empty.
    """
    if not quotes:
        raise ValueError("No quotes available for analysis")

    lowest = min(quotes, key=lambda q: q.premium.annual)
    highest = max(quotes, key=lambda q: q.premium.annual)
    average = sum(q.premium.annual for q in quotes) / len(quotes)

    best = quotes[0]
    best_score = value_score(best)
    for quote in quotes[1:]:
        score = value_score(quote)
        if score > best_score:
            best, best_score = quote, score

    logger.debug(
        "Analyzed %d quotes: lowest=%s highest=%s best_value=%s (%.2f)",
        len(quotes),
        lowest.carrier_id,
        highest.carrier_id,
        best.carrier_id,
        best_score,
    )

    return QuoteAnalysis(
        lowest_premium=PremiumExtreme(
            carrier_id=lowest.carrier_id,
            carrier_name=lowest.carrier_name,
            annual_premium=lowest.premium.annual,
        ),
        highest_premium=PremiumExtreme(
            carrier_id=highest.carrier_id,
            carrier_name=highest.carrier_name,
            annual_premium=highest.premium.annual,
        ),
        average_premium=round_half_up(average),
        potential_savings=round_half_up(highest.premium.annual - lowest.premium.annual),
        best_value=best,
        coverage_comparison=compare_coverage(quotes),
        fallback_quotes=sum(1 for q in quotes if q.is_fallback),
    )
