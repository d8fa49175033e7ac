"""MatchedCover carriers package — who the carriers are and how to reach them.

- :class:`CarrierRegistry` — eligibility lookup over the known carriers
- :class:`CarrierApiConfigStore` — per-carrier connection settings
"""

from matchedcover.carriers.api_config import CarrierApiConfigStore
from matchedcover.carriers.models import (
    CarrierApiConfig,
    CarrierConfig,
    CoverageLimits,
    InsuranceProduct,
    ProductType,
)
from matchedcover.carriers.registry import CarrierRegistry, default_carriers

__all__ = [
    "CarrierApiConfig",
    "CarrierApiConfigStore",
    "CarrierConfig",
    "CarrierRegistry",
    "CoverageLimits",
    "InsuranceProduct",
    "ProductType",
    "default_carriers",
]
