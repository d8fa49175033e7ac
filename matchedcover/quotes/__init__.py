"""MatchedCover quotes package — request/response schemas and quote pricing.

- :mod:`schemas` — quote, bind and claim payloads
- :mod:`normalizer` — caller request to carrier body
- :mod:`estimator` — deterministic premium estimates and fallback quotes
- :mod:`cache` — short-TTL response cache
- :mod:`analysis` — price spread and best-value pick across quotes
"""

from matchedcover.quotes.analysis import QuoteAnalysis, analyze_quotes
from matchedcover.quotes.cache import ResponseCache
from matchedcover.quotes.estimator import (
    PremiumEstimate,
    PremiumEstimator,
    estimate_premium,
    is_fallback_quote,
)
from matchedcover.quotes.normalizer import cache_key, quote_payload
from matchedcover.quotes.schemas import (
    ClaimRequest,
    ClaimResponse,
    PolicyBindRequest,
    PolicyBindResponse,
    QuoteRequest,
    QuoteResponse,
)

__all__ = [
    "ClaimRequest",
    "ClaimResponse",
    "PolicyBindRequest",
    "PolicyBindResponse",
    "PremiumEstimate",
    "PremiumEstimator",
    "QuoteAnalysis",
    "QuoteRequest",
    "QuoteResponse",
    "ResponseCache",
    "analyze_quotes",
    "cache_key",
    "estimate_premium",
    "is_fallback_quote",
    "quote_payload",
]
